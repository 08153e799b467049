# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Account metrics sources.

The engine only consumes account summaries; computing health scores and
activity ratios belongs to the admin console's analytics layer.
"""

from collections.abc import Iterable
from typing import Protocol

from cs_alerts.core.alerts.models import AccountSummary


class MetricsSnapshotProvider(Protocol):
    """Supplies per-account summaries for a generation run."""

    async def get_account_summaries(self) -> list[AccountSummary]: ...


class StaticMetricsProvider:
    """Provider over a fixed list of summaries."""

    def __init__(self, summaries: Iterable[AccountSummary] = ()) -> None:
        self._summaries = list(summaries)

    async def get_account_summaries(self) -> list[AccountSummary]:
        return list(self._summaries)
