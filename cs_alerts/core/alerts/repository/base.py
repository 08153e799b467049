# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Alert repository interface shared by the durable store and the cache."""

from abc import ABC, abstractmethod

from cs_alerts.core.alerts.exceptions import AlertStoreError
from cs_alerts.core.alerts.models import Alert, AlertFilters, AlertStatus


class AlertRepository(ABC):
    """Persistence operations the alert engine relies on."""

    @abstractmethod
    async def read_open(self, limit: int) -> list[Alert]:
        """Alerts not resolved or dismissed, most recent first.

        Args:
            limit: Maximum number of alerts.

        Raises:
            AlertStoreError: If the store is unreachable.
        """
        ...

    @abstractmethod
    async def persist(self, alerts: list[Alert], batch_id: str) -> int:
        """Store new alerts, ignoring fingerprint conflicts with open alerts.

        Args:
            alerts: Alerts to store.
            batch_id: Generation batch that produced them.

        Returns:
            Number of alerts actually saved.

        Raises:
            AlertStoreError: If the store is unreachable.
        """
        ...

    @abstractmethod
    async def update_status(
        self,
        alert_id: str,
        new_status: AlertStatus,
        notes: str | None = None,
    ) -> bool:
        """Apply a status change without validating the transition.

        Returns:
            True if the alert was updated.
        """
        ...

    @abstractmethod
    async def get(self, alert_id: str) -> Alert | None:
        """Fetch one alert by id.

        Raises:
            AlertStoreError: If the store is unreachable.
        """
        ...

    @abstractmethod
    async def list_alerts(self, filters: AlertFilters) -> list[Alert]:
        """Filtered listing, most recent first.

        Raises:
            AlertStoreError: If the store is unreachable.
        """
        ...
