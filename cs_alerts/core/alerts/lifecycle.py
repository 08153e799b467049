# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Alert status lifecycle.

Allowed transitions::

    new          -> acknowledged | in_progress
    acknowledged -> in_progress
    in_progress  -> resolved | dismissed | false_positive
    resolved | dismissed | false_positive -> new   (reopen)

Entering ``acknowledged`` stamps ``acknowledged_at``, entering a terminal
status stamps ``resolved_at`` and reopening clears both. Updates are
last-writer-wins: there is no version check between reading the current
status and writing the new one.
"""

import logging
from datetime import datetime
from typing import TYPE_CHECKING, Any

from cs_alerts.core.alerts.exceptions import (
    AlertNotFoundError,
    AlertStoreError,
    InvalidTransitionError,
)
from cs_alerts.core.alerts.models import Alert, AlertStatus
from cs_alerts.utils.datetime import utc_now

if TYPE_CHECKING:
    from cs_alerts.core.alerts.repository.base import AlertRepository

logger = logging.getLogger(__name__)


TERMINAL_STATUSES: frozenset[AlertStatus] = frozenset(
    {AlertStatus.RESOLVED, AlertStatus.DISMISSED, AlertStatus.FALSE_POSITIVE}
)

ALLOWED_TRANSITIONS: dict[AlertStatus, frozenset[AlertStatus]] = {
    AlertStatus.NEW: frozenset({AlertStatus.ACKNOWLEDGED, AlertStatus.IN_PROGRESS}),
    AlertStatus.ACKNOWLEDGED: frozenset({AlertStatus.IN_PROGRESS}),
    AlertStatus.IN_PROGRESS: TERMINAL_STATUSES,
    AlertStatus.RESOLVED: frozenset({AlertStatus.NEW}),
    AlertStatus.DISMISSED: frozenset({AlertStatus.NEW}),
    AlertStatus.FALSE_POSITIVE: frozenset({AlertStatus.NEW}),
}


def can_transition(current: AlertStatus, target: AlertStatus) -> bool:
    """Check whether ``current -> target`` is an allowed transition."""
    return target in ALLOWED_TRANSITIONS.get(current, frozenset())


def status_change_values(
    new_status: AlertStatus,
    changed_at: datetime,
    notes: str | None = None,
) -> dict[str, Any]:
    """Field updates that accompany entering ``new_status``.

    Shared by every repository so the durable and in-memory paths apply
    the same timestamp semantics.

    Args:
        new_status: Status being entered.
        changed_at: Timestamp of the change.
        notes: Optional resolution notes; None leaves existing notes.

    Returns:
        Mapping of Alert field names to new values.
    """
    values: dict[str, Any] = {"status": new_status}

    if new_status == AlertStatus.ACKNOWLEDGED:
        values["acknowledged_at"] = changed_at
    elif new_status in TERMINAL_STATUSES:
        values["resolved_at"] = changed_at
    elif new_status == AlertStatus.NEW:
        values["acknowledged_at"] = None
        values["resolved_at"] = None

    if notes is not None:
        values["resolution_notes"] = notes

    return values


def apply_status_change(
    alert: Alert,
    new_status: AlertStatus,
    changed_at: datetime | None = None,
    notes: str | None = None,
) -> Alert:
    """Return a copy of ``alert`` with the status change applied."""
    return alert.model_copy(
        update=status_change_values(new_status, changed_at or utc_now(), notes)
    )


class AlertLifecycleManager:
    """Enforces allowed status transitions on stored alerts.

    Example:
        >>> manager = AlertLifecycleManager(repository)
        >>> await manager.transition(alert_id, AlertStatus.ACKNOWLEDGED)
        True
    """

    def __init__(self, repository: "AlertRepository") -> None:
        self._repository = repository

    async def transition(
        self,
        alert_id: str,
        new_status: AlertStatus,
        notes: str | None = None,
    ) -> bool:
        """Move an alert to a new status.

        Args:
            alert_id: Alert to update.
            new_status: Target status.
            notes: Optional resolution notes.

        Returns:
            True if the store accepted the update, False if the alert could
            not be loaded or both update paths failed.

        Raises:
            AlertNotFoundError: If the alert does not exist.
            InvalidTransitionError: If the transition is not allowed.
        """
        try:
            alert = await self._repository.get(alert_id)
        except AlertStoreError as e:
            logger.error("Could not load alert %s for status change: %s", alert_id, e)
            return False

        if alert is None:
            raise AlertNotFoundError(alert_id)

        if not can_transition(alert.status, new_status):
            logger.warning(
                "Rejected status change for alert %s: %s -> %s",
                alert_id,
                alert.status.value,
                new_status.value,
            )
            raise InvalidTransitionError(alert.status, new_status)

        updated = await self._repository.update_status(alert_id, new_status, notes)

        if updated:
            logger.info(
                "Alert %s moved %s -> %s",
                alert_id,
                alert.status.value,
                new_status.value,
            )
        else:
            logger.error(
                "Failed to store status change for alert %s: %s -> %s",
                alert_id,
                alert.status.value,
                new_status.value,
            )

        return updated

    async def acknowledge(self, alert_id: str) -> bool:
        """Acknowledge a new alert."""
        return await self.transition(alert_id, AlertStatus.ACKNOWLEDGED)

    async def resolve(self, alert_id: str, notes: str | None = None) -> bool:
        """Resolve an alert that is in progress."""
        return await self.transition(alert_id, AlertStatus.RESOLVED, notes)

    async def reopen(self, alert_id: str, notes: str | None = None) -> bool:
        """Reopen a terminal alert."""
        return await self.transition(alert_id, AlertStatus.NEW, notes)
