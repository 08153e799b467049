# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""API v1 routes package.

Modules:
    alerts: Alert listing, generation and status endpoints.
"""

from fastapi import APIRouter

from cs_alerts.api.v1 import alerts

# Mounted under settings.api.prefix by create_app()
router = APIRouter()

router.include_router(alerts.router, prefix="/alerts", tags=["Alerts"])
