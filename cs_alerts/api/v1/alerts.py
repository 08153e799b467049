# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Customer-success alert API endpoints.

This module provides endpoints for alert management:
- GET / - List alerts with filtering
- POST /generate - Run one generation pass over the given accounts
- POST /{alert_id}/status - Move an alert through its lifecycle

Example:
    POST /api/v1/alerts/{alert_id}/status
    {
        "status": "resolved",
        "notes": "Renewal signed"
    }
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field

from cs_alerts.api.dependencies import (
    get_alert_repository,
    get_generation_service,
    get_lifecycle_manager,
)
from cs_alerts.core.alerts.lifecycle import (
    AlertLifecycleManager,
    AlertNotFoundError,
    InvalidTransitionError,
)
from cs_alerts.core.alerts.models import (
    AccountSummary,
    Alert,
    AlertFilters,
    AlertSeverity,
    AlertStatus,
    AlertType,
    GenerationResult,
)
from cs_alerts.core.alerts.repository import AlertRepository
from cs_alerts.core.alerts.service import AlertGenerationService
from cs_alerts.core.config import get_settings

logger = logging.getLogger(__name__)

router = APIRouter()


class GenerateRequest(BaseModel):
    """Request body for a generation run."""
    accounts: list[AccountSummary] = Field(description="Account summaries to analyze")
    max_alerts: int | None = Field(None, ge=1, description="Maximum alerts to propose")


class StatusUpdateRequest(BaseModel):
    """Request body for a status change."""
    status: AlertStatus = Field(description="Target status")
    notes: str | None = Field(None, description="Resolution notes")


class StatusUpdateResponse(BaseModel):
    """Result of a status change."""
    alert_id: str
    status: AlertStatus
    updated: bool


class AlertListResponse(BaseModel):
    """Filtered alert listing."""
    items: list[Alert]
    total: int


@router.get(
    "",
    response_model=AlertListResponse,
    summary="List alerts",
    description="List alerts, most recent first.",
)
async def list_alerts(
    statuses: Annotated[
        list[AlertStatus] | None, Query(alias="status", description="Filter by status")
    ] = None,
    types: Annotated[
        list[AlertType] | None, Query(alias="type", description="Filter by alert type")
    ] = None,
    severities: Annotated[
        list[AlertSeverity] | None, Query(alias="severity", description="Filter by severity")
    ] = None,
    limit: Annotated[
        int | None, Query(ge=1, le=500, description="Maximum results (defaults to settings)")
    ] = None,
    repository: AlertRepository = Depends(get_alert_repository),
) -> AlertListResponse:
    """List alerts matching the filters.

    Served from the in-process cache alone while the alert store is down.
    """
    if limit is None:
        limit = get_settings().alerts.list_default_limit

    filters = AlertFilters(
        statuses=statuses or [],
        types=types or [],
        severities=severities or [],
        limit=limit,
    )
    alerts = await repository.list_alerts(filters)
    return AlertListResponse(items=alerts, total=len(alerts))


@router.post(
    "/generate",
    response_model=GenerationResult,
    summary="Generate alerts",
    description="Analyze the given accounts and store new, deduplicated alerts.",
)
async def generate_alerts(
    data: GenerateRequest,
    service: AlertGenerationService = Depends(get_generation_service),
) -> GenerationResult:
    """Run one generation pass.

    A failed run is still a 200 response; the result carries ``error``
    and zero counts.
    """
    result = await service.generate(accounts=data.accounts, max_alerts=data.max_alerts)

    if result.error:
        logger.warning("Generation batch %s failed: %s", result.batch_id, result.error)

    return result


@router.post(
    "/{alert_id}/status",
    response_model=StatusUpdateResponse,
    summary="Change alert status",
    description="Move an alert to a new status if the lifecycle allows it.",
)
async def update_alert_status(
    alert_id: str,
    data: StatusUpdateRequest,
    lifecycle: AlertLifecycleManager = Depends(get_lifecycle_manager),
) -> StatusUpdateResponse:
    """Change an alert's status.

    Raises:
        HTTPException: 404 for unknown alerts, 409 for a disallowed
            transition, 502 if the store rejected the update.
    """
    try:
        updated = await lifecycle.transition(alert_id, data.status, data.notes)
    except AlertNotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e),
        ) from e
    except InvalidTransitionError as e:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=str(e),
        ) from e

    if not updated:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"Alert {alert_id} could not be updated",
        )

    return StatusUpdateResponse(alert_id=alert_id, status=data.status, updated=True)
