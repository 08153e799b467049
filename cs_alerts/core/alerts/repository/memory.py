# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Process-local alert cache.

Used when the durable store is unreachable so no generated alert is lost
for the lifetime of the process. The cache is append/merge-only: entries
are added or updated one by one and the collection is never replaced.
"""

import asyncio
import logging

from cs_alerts.core.alerts.lifecycle import apply_status_change
from cs_alerts.core.alerts.models import Alert, AlertFilters, AlertStatus
from cs_alerts.core.alerts.repository.base import AlertRepository

logger = logging.getLogger(__name__)


def _most_recent_first(alerts: list[Alert]) -> list[Alert]:
    return sorted(alerts, key=lambda alert: alert.created_at, reverse=True)


class InMemoryAlertRepository(AlertRepository):
    """Alert repository backed by a dict keyed by alert id."""

    def __init__(self) -> None:
        self._alerts: dict[str, Alert] = {}
        self._lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._alerts)

    def __contains__(self, alert_id: object) -> bool:
        return alert_id in self._alerts

    async def read_open(self, limit: int) -> list[Alert]:
        open_alerts = [a for a in self._alerts.values() if a.blocks_duplicates]
        return _most_recent_first(open_alerts)[:limit]

    async def persist(self, alerts: list[Alert], batch_id: str) -> int:
        async with self._lock:
            open_fingerprints = {
                a.fingerprint for a in self._alerts.values() if a.blocks_duplicates
            }
            saved = 0
            for alert in alerts:
                if alert.id in self._alerts or alert.fingerprint in open_fingerprints:
                    continue
                self._alerts[alert.id] = alert.model_copy(
                    update={"generation_batch_id": batch_id}
                )
                open_fingerprints.add(alert.fingerprint)
                saved += 1

        logger.debug("Cached %d of %d alerts for batch %s", saved, len(alerts), batch_id)
        return saved

    async def update_status(
        self,
        alert_id: str,
        new_status: AlertStatus,
        notes: str | None = None,
    ) -> bool:
        async with self._lock:
            alert = self._alerts.get(alert_id)
            if alert is None:
                return False

            updated = apply_status_change(alert, new_status, notes=notes)
            if updated.blocks_duplicates and self._holds_open_fingerprint(
                updated.fingerprint, exclude_id=alert_id
            ):
                logger.warning(
                    "Cannot move alert %s to %s: fingerprint %s is already open",
                    alert_id,
                    new_status.value,
                    updated.fingerprint,
                )
                return False

            self._alerts[alert_id] = updated
        return True

    def _holds_open_fingerprint(self, fingerprint: str, exclude_id: str) -> bool:
        return any(
            other.fingerprint == fingerprint and other.blocks_duplicates
            for other_id, other in self._alerts.items()
            if other_id != exclude_id
        )

    async def get(self, alert_id: str) -> Alert | None:
        return self._alerts.get(alert_id)

    async def list_alerts(self, filters: AlertFilters) -> list[Alert]:
        matching = [a for a in self._alerts.values() if filters.matches(a)]
        return _most_recent_first(matching)[: filters.limit]
