# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Health check endpoint."""

import logging
from datetime import datetime

from fastapi import APIRouter
from pydantic import BaseModel, Field

from cs_alerts.core.config import get_settings
from cs_alerts.infrastructure.database.connection import check_database_connection
from cs_alerts.utils.datetime import utc_now

logger = logging.getLogger(__name__)

router = APIRouter()


class HealthResponse(BaseModel):
    """Health check response model."""
    status: str = Field(description="Overall health status")
    timestamp: datetime = Field(description="Current server timestamp")
    version: str = Field(description="API version")
    environment: str = Field(description="Deployment environment")
    database: str = Field(description="Alert store status")


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Report service health.

    An unreachable database only degrades the service: generated alerts
    are kept in the in-process cache until the store is back.
    """
    settings = get_settings()

    database_ok = await check_database_connection()
    if not database_ok:
        logger.warning("Health check: alert store unreachable")

    return HealthResponse(
        status="healthy" if database_ok else "degraded",
        timestamp=utc_now(),
        version=settings.api.version,
        environment=settings.environment,
        database="healthy" if database_ok else "unavailable",
    )
