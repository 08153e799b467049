# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""FastAPI dependency injection definitions.

The fallback cache must outlive single requests, so the repository, the
generation service and the lifecycle manager are process-wide singletons
created on first use. Tests override the ``get_*`` dependencies through
``app.dependency_overrides``.

Example:
    @router.get("/alerts")
    async def list_alerts(
        repository: AlertRepository = Depends(get_alert_repository),
    ):
        ...
"""

import logging

from cs_alerts.core.alerts.audit import DatabaseGenerationAuditLog
from cs_alerts.core.alerts.lifecycle import AlertLifecycleManager
from cs_alerts.core.alerts.oracle import LLMRecommendationOracle
from cs_alerts.core.alerts.repository import (
    AlertRepository,
    DatabaseAlertRepository,
    FallbackAlertRepository,
    InMemoryAlertRepository,
)
from cs_alerts.core.alerts.service import AlertGenerationService
from cs_alerts.core.config import get_settings
from cs_alerts.infrastructure.database.connection import close_database, init_database

logger = logging.getLogger(__name__)

# Process-wide singletons
_alert_repository: AlertRepository | None = None
_generation_service: AlertGenerationService | None = None
_lifecycle_manager: AlertLifecycleManager | None = None


async def init_db() -> None:
    """Initialize the alert store connection pool."""
    await init_database(get_settings())


async def close_db() -> None:
    """Close the alert store connection pool."""
    await close_database()


def get_alert_repository() -> AlertRepository:
    """Get the shared durable-with-fallback repository."""
    global _alert_repository

    if _alert_repository is None:
        _alert_repository = FallbackAlertRepository(
            DatabaseAlertRepository(), InMemoryAlertRepository()
        )
    return _alert_repository


def get_generation_service() -> AlertGenerationService:
    """Get the shared generation service."""
    global _generation_service

    if _generation_service is None:
        settings = get_settings()
        _generation_service = AlertGenerationService(
            repository=get_alert_repository(),
            oracle=LLMRecommendationOracle(settings=settings.alerts),
            audit_log=DatabaseGenerationAuditLog(),
            settings=settings.alerts,
        )
    return _generation_service


def get_lifecycle_manager() -> AlertLifecycleManager:
    """Get the shared lifecycle manager."""
    global _lifecycle_manager

    if _lifecycle_manager is None:
        _lifecycle_manager = AlertLifecycleManager(get_alert_repository())
    return _lifecycle_manager


def reset_dependencies() -> None:
    """Drop all singletons. Used by tests."""
    global _alert_repository, _generation_service, _lifecycle_manager

    _alert_repository = None
    _generation_service = None
    _lifecycle_manager = None
