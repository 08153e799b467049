# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Alert persistence.

Implementations:
- DatabaseAlertRepository: durable PostgreSQL store
- InMemoryAlertRepository: process-local fallback cache
- FallbackAlertRepository: durable store with cache fallback
"""

from cs_alerts.core.alerts.repository.base import AlertRepository, AlertStoreError
from cs_alerts.core.alerts.repository.database import DatabaseAlertRepository
from cs_alerts.core.alerts.repository.fallback import FallbackAlertRepository
from cs_alerts.core.alerts.repository.memory import InMemoryAlertRepository

__all__ = [
    "AlertRepository",
    "AlertStoreError",
    "DatabaseAlertRepository",
    "FallbackAlertRepository",
    "InMemoryAlertRepository",
]
