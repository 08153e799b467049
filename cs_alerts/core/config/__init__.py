# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Configuration package.

Pydantic-based settings loaded from environment variables.

Example:
    >>> from cs_alerts.core.config import get_settings
    >>> settings = get_settings()
    >>> print(settings.environment)
    'development'
"""

from cs_alerts.core.config.settings import (
    AlertEngineSettings,
    APISettings,
    DatabaseSettings,
    LLMSettings,
    Settings,
    clear_settings_cache,
    get_settings,
)

__all__ = [
    "AlertEngineSettings",
    "APISettings",
    "DatabaseSettings",
    "LLMSettings",
    "Settings",
    "clear_settings_cache",
    "get_settings",
]
