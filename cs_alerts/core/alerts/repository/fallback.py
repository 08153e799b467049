# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Dual-path alert repository.

Composes the durable store with the process-local cache:

- Writes go to the durable store first; if it saves nothing the alerts are
  appended to the cache instead.
- Reads prefer durable results and add cache alerts the store does not
  know about (matched by id and by fingerprint). If the durable store is
  unreachable, reads are served from the cache alone.

Results are weakly consistent: a cached alert stays visible next to the
durable data until the process exits.
"""

import logging

from cs_alerts.core.alerts.models import Alert, AlertFilters, AlertStatus
from cs_alerts.core.alerts.repository.base import AlertRepository, AlertStoreError
from cs_alerts.core.alerts.repository.memory import InMemoryAlertRepository

logger = logging.getLogger(__name__)


def _merge(primary: list[Alert], cached: list[Alert], limit: int) -> list[Alert]:
    """Durable results plus cache alerts unknown to the store."""
    known_ids = {alert.id for alert in primary}
    known_fingerprints = {alert.fingerprint for alert in primary}

    extras = [
        alert
        for alert in cached
        if alert.id not in known_ids and alert.fingerprint not in known_fingerprints
    ]
    if not extras:
        return primary[:limit]

    merged = sorted(primary + extras, key=lambda alert: alert.created_at, reverse=True)
    return merged[:limit]


class FallbackAlertRepository(AlertRepository):
    """Durable repository with an in-process fallback cache.

    Args:
        primary: Durable repository.
        cache: Fallback cache, shared for the lifetime of the process.

    Example:
        >>> repository = FallbackAlertRepository(
        ...     DatabaseAlertRepository(), InMemoryAlertRepository()
        ... )
        >>> saved = await repository.persist(alerts, batch_id)
    """

    def __init__(
        self,
        primary: AlertRepository,
        cache: InMemoryAlertRepository | None = None,
    ) -> None:
        self._primary = primary
        self._cache = cache if cache is not None else InMemoryAlertRepository()

    @property
    def primary(self) -> AlertRepository:
        return self._primary

    @property
    def cache(self) -> InMemoryAlertRepository:
        return self._cache

    async def read_open(self, limit: int) -> list[Alert]:
        cached = await self._cache.read_open(limit)

        try:
            stored = await self._primary.read_open(limit)
        except AlertStoreError as e:
            logger.warning("Alert store unreachable, reading open alerts from cache: %s", e)
            return cached

        return _merge(stored, cached, limit)

    async def persist(self, alerts: list[Alert], batch_id: str) -> int:
        if not alerts:
            return 0

        try:
            saved = await self._primary.persist(alerts, batch_id)
        except AlertStoreError as e:
            logger.warning("Alert store write failed for batch %s: %s", batch_id, e)
            saved = 0

        if saved > 0:
            return saved

        cached = await self._cache.persist(alerts, batch_id)
        logger.warning(
            "Alert store saved no rows for batch %s; cached %d alerts in memory",
            batch_id,
            cached,
        )
        return cached

    async def update_status(
        self,
        alert_id: str,
        new_status: AlertStatus,
        notes: str | None = None,
    ) -> bool:
        # Cached alerts never reached the store, so the cache owns them
        if alert_id in self._cache:
            return await self._cache.update_status(alert_id, new_status, notes)

        try:
            return await self._primary.update_status(alert_id, new_status, notes)
        except AlertStoreError as e:
            logger.error("Status update failed for alert %s: %s", alert_id, e)
            return False

    async def get(self, alert_id: str) -> Alert | None:
        """Fetch one alert, cache first.

        Raises:
            AlertStoreError: If the alert is not cached and the store is
                unreachable, so callers can tell an outage from a missing
                alert.
        """
        cached = await self._cache.get(alert_id)
        if cached is not None:
            return cached

        return await self._primary.get(alert_id)

    async def list_alerts(self, filters: AlertFilters) -> list[Alert]:
        cached = await self._cache.list_alerts(filters)

        try:
            stored = await self._primary.list_alerts(filters)
        except AlertStoreError as e:
            logger.warning("Alert store unreachable, listing alerts from cache: %s", e)
            return cached

        return _merge(stored, cached, filters.limit)
