# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Pytest configuration and shared fixtures.

This module provides fixtures used across all test types:
- Unit tests
- Integration (API) tests
"""

import json
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from typing import Any

import pytest

from cs_alerts.core.alerts.fingerprint import fingerprint
from cs_alerts.core.alerts.models import (
    AccountSummary,
    Alert,
    AlertSeverity,
    AlertStatus,
    AlertType,
)
from cs_alerts.core.alerts.oracle import OracleAnalysis, OracleError, parse_oracle_response
from cs_alerts.core.config.settings import AlertEngineSettings


# =============================================================================
# Marker Configuration
# =============================================================================


def pytest_configure(config: pytest.Config) -> None:
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test"
    )
    config.addinivalue_line(
        "markers", "slow: mark test as slow running"
    )


# =============================================================================
# Oracle Fakes
# =============================================================================


class FakeOracle:
    """Recommendation oracle returning canned text.

    The canned text goes through the real response parser, so tests cover
    the same envelope handling as the LLM-backed oracle.
    """

    def __init__(
        self,
        responses: list[str] | None = None,
        error: Exception | None = None,
        tokens_used: int = 120,
    ) -> None:
        self.responses = list(responses or [])
        self.error = error
        self.tokens_used = tokens_used
        self.calls: list[dict[str, Any]] = []

    @property
    def model(self) -> str:
        return "fake/oracle"

    async def analyze(
        self,
        account_summaries: list[AccountSummary],
        open_alert_summaries: list[dict[str, Any]],
        max_alerts: int,
    ) -> OracleAnalysis:
        self.calls.append(
            {
                "accounts": account_summaries,
                "open_alerts": open_alert_summaries,
                "max_alerts": max_alerts,
            }
        )
        if self.error is not None:
            raise self.error

        text = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        try:
            candidates, analysis = parse_oracle_response(text, len(account_summaries))
        except OracleError as e:
            e.model = self.model
            raise
        return OracleAnalysis(
            candidates=candidates,
            tokens_used=self.tokens_used,
            model=self.model,
            analysis=analysis,
        )


def render_oracle_payload(*entries: dict[str, Any], analysis: str | None = None) -> str:
    """Render an oracle response the way a chatty model would."""
    body: dict[str, Any] = {"alerts": list(entries)}
    if analysis is not None:
        body["analysis"] = analysis
    return f"Here is my analysis:\n```json\n{json.dumps(body)}\n```"


@pytest.fixture
def oracle_payload() -> Callable[..., str]:
    """Renderer for canned oracle responses."""
    return render_oracle_payload


@pytest.fixture
def make_oracle() -> Callable[..., FakeOracle]:
    """Factory for fake oracles."""
    return FakeOracle


# =============================================================================
# Domain Fixtures
# =============================================================================


@pytest.fixture
def engine_settings() -> AlertEngineSettings:
    """Alert engine settings with defaults, independent of the environment."""
    return AlertEngineSettings(
        max_alerts=10,
        open_alert_prompt_limit=20,
        existing_alert_fetch_limit=100,
    )


@pytest.fixture
def sample_accounts() -> list[AccountSummary]:
    """Three schools, one of them about to churn."""
    return [
        AccountSummary(
            accountId="1",
            accountName="Northside Primary",
            healthScore=82,
            activityLevel="very_active",
            trend="up",
            activeTeachers=20,
            totalTeachers=22,
            daysUntilExpiry=200,
        ),
        AccountSummary(
            accountId="2",
            accountName="Lakeview Secondary",
            healthScore=64,
            trend="stable",
            activeTeachers=12,
            totalTeachers=18,
            daysUntilExpiry=150,
        ),
        AccountSummary(
            accountId="3",
            accountName="Hillcrest Academy",
            healthScore=35,
            activityLevel="inactive",
            trend="down",
            activeTeachers=8,
            totalTeachers=22,
            daysUntilExpiry=14,
        ),
    ]


@pytest.fixture
def churn_entry() -> dict[str, Any]:
    """Oracle entry for the at-risk school."""
    return {
        "type": "churn_risk",
        "severity": "critical",
        "accountId": "3",
        "accountName": "Hillcrest Academy",
        "title": "License expires with declining activity",
        "description": "Health score 35/100, license expires in 14 days.",
        "recommendation": "Call the school contact this week.",
        "reasoning": "Expiry within 30 days and a declining trend.",
    }


@pytest.fixture
def make_alert() -> Callable[..., Alert]:
    """Factory for stored alerts with a consistent fingerprint."""
    base_time = datetime(2025, 6, 1, 9, 0, tzinfo=timezone.utc)
    counter = {"n": 0}

    def _make(
        title: str = "Low teacher engagement",
        account_id: str = "1",
        type: AlertType = AlertType.ENGAGEMENT,
        status: AlertStatus = AlertStatus.NEW,
        severity: AlertSeverity = AlertSeverity.MEDIUM,
        **overrides: Any,
    ) -> Alert:
        counter["n"] += 1
        fields: dict[str, Any] = {
            "type": type,
            "severity": severity,
            "account_id": account_id,
            "account_name": f"School {account_id}",
            "title": title,
            "status": status,
            "created_at": base_time + timedelta(minutes=counter["n"]),
        }
        fields.update(overrides)
        if "fingerprint" not in fields:
            fields["fingerprint"] = fingerprint(SimpleNamespace(**fields))
        return Alert(**fields)

    return _make
