# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Recommendation oracle client.

The oracle is an external generative scoring service that reads account
metrics and proposes candidate alerts. It is non-deterministic, so the
pipeline depends only on the narrow RecommendationOracle protocol and tests
inject fakes returning canned JSON.

The response must contain a JSON object shaped like::

    {
      "alerts": [
        {"type": "...", "severity": "...", "accountId": "...",
         "accountName": "...", "title": "...", "description": "...",
         "recommendation": "...", "reasoning": "..."}
      ],
      "analysis": "optional portfolio summary"
    }

Anything else fails the whole call with OracleError; malformed entries
are never partially accepted.
"""

import json
import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional, Protocol

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)

from cs_alerts.core.alerts.fingerprint import fingerprint
from cs_alerts.core.alerts.models import (
    AccountSummary,
    Alert,
    AlertSeverity,
    AlertStatus,
    AlertType,
)
from cs_alerts.core.config.settings import AlertEngineSettings, get_settings
from cs_alerts.core.intelligence.llm.client import LLMClient, LLMError
from cs_alerts.utils.datetime import format_iso, utc_now

logger = logging.getLogger(__name__)

_JSON_OBJECT = re.compile(r"\{.*\}", re.DOTALL)

SYSTEM_PROMPT = (
    "You are a customer success analyst for an education platform used by "
    "schools and teachers. You only answer with a single JSON object."
)

PROMPT_TEMPLATE = """Analyze the school accounts below and propose at most {max_alerts} of the most important alerts for the customer success team.

CURRENT ACCOUNT DATA:
{accounts}

EXISTING OPEN ALERTS (do not create duplicates of these):
{open_alerts}

ALERT TYPES:
- churn_risk: risk of leaving (low activity, license expiring soon, declining trend)
- upsell: sales opportunity (high activity, satisfied users, unused products)
- renewal: license renewal approaching (30-180 days until expiry)
- engagement: low engagement (few active teachers or students)
- onboarding: problems onboarding a new school
- support: the school needs support

SEVERITY:
- critical: immediate action (expiry within 30 days and declining activity)
- high: urgent (expiry within 60 days OR health score < 40)
- medium: important (expiry within 120 days OR health score < 60)
- low: informational

PRIORITIES: declining trend, health score below 50, approaching license
expiry, high share of inactive teachers, opportunities at very active schools.

DO NOT CREATE: duplicate alerts for the same school and type, alerts for
schools with health score above 85 unless it is an upsell opportunity,
vague alerts without concrete data.

RESPONSE FORMAT (JSON ONLY):
{{
  "alerts": [
    {{
      "type": "churn_risk",
      "severity": "high",
      "accountId": "3",
      "accountName": "Example Primary School",
      "title": "Critical activity drop",
      "description": "Health score 35/100. Only 8 of 22 teachers active. License expires in 75 days.",
      "recommendation": "1. Call the school contact. 2. Offer free training. 3. Find the cause of the drop.",
      "reasoning": "Low health score, declining trend and approaching expiry combine into a high churn risk."
    }}
  ],
  "analysis": "Short summary of the overall portfolio."
}}

Answer ONLY with a valid JSON object and no other text."""


class OracleError(Exception):
    """Raised when the oracle call fails or its response cannot be parsed.

    Attributes:
        message: Error description.
        model: Model that served the request, if known.
        original_error: Underlying exception if any.
    """

    def __init__(
        self,
        message: str,
        model: Optional[str] = None,
        original_error: Optional[Exception] = None,
    ):
        self.message = message
        self.model = model
        self.original_error = original_error
        super().__init__(self.message)


@dataclass
class OracleAnalysis:
    """Parsed oracle output.

    Attributes:
        candidates: Fully formed alerts with status ``new``.
        tokens_used: Total tokens billed for the call.
        model: Model identity reported for the audit log.
        analysis: Optional free-text portfolio summary.
    """

    candidates: list[Alert] = field(default_factory=list)
    tokens_used: int = 0
    model: str | None = None
    analysis: str | None = None


class RecommendationOracle(Protocol):
    """Narrow interface the generation pipeline depends on."""

    @property
    def model(self) -> str | None: ...

    async def analyze(
        self,
        account_summaries: list[AccountSummary],
        open_alert_summaries: list[dict[str, Any]],
        max_alerts: int,
    ) -> OracleAnalysis: ...


class CandidateAlert(BaseModel):
    """One entry of the oracle's ``alerts`` array."""

    model_config = ConfigDict(extra="ignore")

    type: AlertType = AlertType.ENGAGEMENT
    severity: AlertSeverity = AlertSeverity.MEDIUM
    account_id: str = Field(
        default="",
        validation_alias=AliasChoices("accountId", "schoolId", "account_id"),
    )
    account_name: str = Field(
        default="",
        validation_alias=AliasChoices("accountName", "schoolName", "account_name"),
    )
    subject_id: str | None = Field(
        default=None,
        validation_alias=AliasChoices("subjectId", "teacherId", "subject_id"),
    )
    subject_name: str | None = Field(
        default=None,
        validation_alias=AliasChoices("subjectName", "teacherName", "subject_name"),
    )
    title: str = "Alert"
    description: str = ""
    recommendation: str = ""
    reasoning: str | None = Field(
        default=None,
        validation_alias=AliasChoices("reasoning", "aiReasoning"),
    )

    @model_validator(mode="before")
    @classmethod
    def drop_nulls(cls, data: Any) -> Any:
        # Explicit nulls fall back to the field defaults
        if isinstance(data, dict):
            return {key: value for key, value in data.items() if value is not None}
        return data

    @field_validator("account_id", "subject_id", mode="before")
    @classmethod
    def coerce_identifier(cls, value: Any) -> Any:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value

    def to_alert(self, created_at: datetime, accounts_analyzed: int) -> Alert:
        """Turn the candidate into a new alert with id and fingerprint."""
        return Alert(
            type=self.type,
            severity=self.severity,
            account_id=self.account_id,
            account_name=self.account_name,
            subject_id=self.subject_id,
            subject_name=self.subject_name,
            title=self.title,
            description=self.description,
            recommendation=self.recommendation,
            reasoning=self.reasoning,
            metrics_snapshot={
                "generatedAt": format_iso(created_at),
                "accountsAnalyzed": accounts_analyzed,
            },
            status=AlertStatus.NEW,
            created_at=created_at,
            fingerprint=fingerprint(self),
        )


class OracleEnvelope(BaseModel):
    """Top-level oracle response object."""

    model_config = ConfigDict(extra="ignore")

    alerts: list[CandidateAlert]
    analysis: str | None = None


def summarize_open_alerts(alerts: Iterable[Alert], limit: int) -> list[dict[str, Any]]:
    """Summarize still-raised alerts for the prompt, most recent first.

    The cap only bounds prompt size; deduplication never relies on it.

    Args:
        alerts: Existing alerts.
        limit: Maximum number of summaries.

    Returns:
        List of compact alert dictionaries.
    """
    open_alerts = sorted(
        (alert for alert in alerts if alert.blocks_duplicates),
        key=lambda alert: alert.created_at,
        reverse=True,
    )
    return [alert.to_summary() for alert in open_alerts[:limit]]


def parse_oracle_response(
    text: str,
    accounts_analyzed: int,
    created_at: datetime | None = None,
) -> tuple[list[Alert], str | None]:
    """Extract candidate alerts from raw oracle text.

    Args:
        text: Raw oracle output, possibly wrapped in prose or code fences.
        accounts_analyzed: Number of accounts sent, recorded in snapshots.
        created_at: Creation timestamp for all candidates (defaults to now).

    Returns:
        Tuple of (candidate alerts, optional analysis text).

    Raises:
        OracleError: If no JSON object is found or it has the wrong shape.
    """
    match = _JSON_OBJECT.search(text or "")
    if not match:
        raise OracleError("Invalid response format - no JSON object found")

    try:
        payload = json.loads(match.group(0))
    except json.JSONDecodeError as e:
        raise OracleError(
            f"Invalid response format - malformed JSON: {e.msg}",
            original_error=e,
        ) from e

    try:
        envelope = OracleEnvelope.model_validate(payload)
    except ValidationError as e:
        raise OracleError(
            f"Invalid response format - unexpected alert structure ({e.error_count()} errors)",
            original_error=e,
        ) from e

    now = created_at or utc_now()
    alerts = [candidate.to_alert(now, accounts_analyzed) for candidate in envelope.alerts]
    return alerts, envelope.analysis


class LLMRecommendationOracle:
    """Oracle backed by an LLM through LiteLLM.

    Example:
        >>> oracle = LLMRecommendationOracle()
        >>> analysis = await oracle.analyze(accounts, open_summaries, max_alerts=10)
        >>> len(analysis.candidates)
        3
    """

    def __init__(
        self,
        llm_client: LLMClient | None = None,
        settings: AlertEngineSettings | None = None,
    ) -> None:
        self._llm = llm_client or LLMClient()
        self._settings = settings or get_settings().alerts

    @property
    def model(self) -> str:
        return self._llm.model

    def build_prompt(
        self,
        account_summaries: list[AccountSummary],
        open_alert_summaries: list[dict[str, Any]],
        max_alerts: int,
    ) -> str:
        """Render the analysis prompt."""
        return PROMPT_TEMPLATE.format(
            max_alerts=max_alerts,
            accounts=json.dumps(
                [summary.to_prompt_dict() for summary in account_summaries],
                indent=2,
                ensure_ascii=False,
            ),
            open_alerts=json.dumps(open_alert_summaries, indent=2, ensure_ascii=False),
        )

    async def analyze(
        self,
        account_summaries: list[AccountSummary],
        open_alert_summaries: list[dict[str, Any]],
        max_alerts: int,
    ) -> OracleAnalysis:
        """Ask the model for candidate alerts.

        Args:
            account_summaries: Metrics for every analyzed account.
            open_alert_summaries: Already-raised alerts (capped by the caller).
            max_alerts: Upper bound on proposed alerts.

        Returns:
            OracleAnalysis with candidates and token usage.

        Raises:
            OracleError: On transport failure or an unparseable response.
        """
        prompt = self.build_prompt(account_summaries, open_alert_summaries, max_alerts)

        try:
            response = await self._llm.complete(
                prompt=prompt,
                system_prompt=SYSTEM_PROMPT,
                temperature=self._settings.temperature,
                max_tokens=self._settings.max_output_tokens,
            )
        except LLMError as e:
            raise OracleError(
                f"Oracle request failed: {e.message}",
                model=e.model,
                original_error=e,
            ) from e

        logger.debug("Oracle response: %s", response.content[:500])

        try:
            candidates, analysis = parse_oracle_response(
                response.content,
                accounts_analyzed=len(account_summaries),
            )
        except OracleError as e:
            e.model = response.model
            logger.error("Oracle response could not be parsed: %s", e.message)
            raise

        logger.info(
            "Oracle proposed %d alerts: model=%s, tokens=%d",
            len(candidates),
            response.model,
            response.total_tokens,
        )

        return OracleAnalysis(
            candidates=candidates,
            tokens_used=response.total_tokens,
            model=response.model,
            analysis=analysis,
        )
