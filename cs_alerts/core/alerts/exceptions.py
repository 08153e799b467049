# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Exceptions for alert storage and lifecycle operations.

- AlertStoreError: an alert store cannot serve a request
- AlertNotFoundError: a status change targets an unknown alert
- InvalidTransitionError: a status change is not allowed by the lifecycle
"""

from typing import Optional

from cs_alerts.core.alerts.models import AlertStatus


class AlertStoreError(Exception):
    """Raised when an alert store cannot serve a request.

    Attributes:
        message: Human-readable error description.
        original_error: The underlying database error.
    """

    def __init__(self, message: str, original_error: Optional[Exception] = None) -> None:
        super().__init__(message)
        self.message = message
        self.original_error = original_error

    def __str__(self) -> str:
        if self.original_error:
            return f"{self.message}: {self.original_error}"
        return self.message


class AlertNotFoundError(Exception):
    """Raised when a status change targets an unknown alert."""

    def __init__(self, alert_id: str):
        self.alert_id = alert_id
        super().__init__(f"Alert {alert_id} not found")


class InvalidTransitionError(Exception):
    """Raised when a status change is not allowed by the lifecycle."""

    def __init__(self, current: AlertStatus, target: AlertStatus):
        self.current = current
        self.target = target
        super().__init__(
            f"Cannot change alert status from '{current.value}' to '{target.value}'"
        )
