# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Utility functions and helpers.

This package contains cross-cutting utilities:
- logging: Structured logging with structlog
- datetime: Timezone-aware datetime operations
"""

from cs_alerts.utils.datetime import ensure_utc, format_iso, utc_now
from cs_alerts.utils.logging import (
    bind_context,
    clear_context,
    get_logger,
    setup_logging,
    unbind_context,
)

__all__ = [
    # Logging
    "setup_logging",
    "get_logger",
    "bind_context",
    "unbind_context",
    "clear_context",
    # Datetime
    "utc_now",
    "ensure_utc",
    "format_iso",
]
