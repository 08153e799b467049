# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Dedup key for alerts.

Two oracle outputs are "the same alert" only when they restate the same
title for the same account and type. Descriptions, reasoning and severity
never influence the key, and no semantic similarity is attempted.
"""

import re
from enum import Enum
from typing import Any, Protocol

_WHITESPACE_RUN = re.compile(r"\s+")


class Fingerprintable(Protocol):
    """Anything carrying the fields a fingerprint is built from."""

    type: Any
    account_id: Any
    title: str


def normalize_title(title: str) -> str:
    """Lower-case a title and collapse whitespace runs to single hyphens.

    Example:
        >>> normalize_title("  Critical   activity drop ")
        'critical-activity-drop'
    """
    return _WHITESPACE_RUN.sub("-", title.strip().lower())


def _as_text(value: Any) -> str:
    if isinstance(value, Enum):
        return str(value.value)
    return str(value)


def fingerprint(candidate: Fingerprintable) -> str:
    """Build the dedup key for an alert or alert candidate.

    Args:
        candidate: Object with ``type``, ``account_id`` and ``title``.

    Returns:
        ``"{type}-{account_id}-{normalized title}"``.

    Example:
        >>> fingerprint(alert)
        'churn_risk-3-critical-activity-drop'
    """
    return "-".join(
        (
            _as_text(candidate.type),
            _as_text(candidate.account_id),
            normalize_title(candidate.title),
        )
    )
