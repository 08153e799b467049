# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Shared types for the customer-success alert engine.

An Alert is created only by the generation pipeline, mutated only through
lifecycle status transitions and never physically deleted. Terminal
statuses are soft markers.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Literal
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

from cs_alerts.utils.datetime import format_iso, utc_now


class AlertType(str, Enum):
    """Kinds of customer-success alerts."""

    CHURN_RISK = "churn_risk"
    UPSELL = "upsell"
    RENEWAL = "renewal"
    ENGAGEMENT = "engagement"
    ONBOARDING = "onboarding"
    SUPPORT = "support"


class AlertSeverity(str, Enum):
    """Alert severity levels."""

    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class AlertStatus(str, Enum):
    """Operator-driven alert status."""

    NEW = "new"
    ACKNOWLEDGED = "acknowledged"
    IN_PROGRESS = "in_progress"
    RESOLVED = "resolved"
    DISMISSED = "dismissed"
    FALSE_POSITIVE = "false_positive"


# Statuses that no longer block a new alert with the same fingerprint.
# false_positive is terminal for the lifecycle but still counts as raised.
CLOSED_STATUSES: frozenset[AlertStatus] = frozenset(
    {AlertStatus.RESOLVED, AlertStatus.DISMISSED}
)


class Alert(BaseModel):
    """A customer-success alert.

    Attributes:
        id: Opaque unique identifier, immutable.
        type: Alert type.
        severity: Severity level.
        account_id: School the alert is about.
        account_name: School display name.
        subject_id: Teacher the alert is scoped to (optional).
        subject_name: Teacher display name (optional).
        title: Short human-readable title.
        description: What was observed.
        recommendation: What the CS team should do.
        reasoning: Free-text justification from the oracle.
        metrics_snapshot: Opaque blob of the inputs, stored for audit.
        status: Lifecycle status.
        created_at: Creation time, immutable.
        fingerprint: Dedup key, immutable.
        acknowledged_at: Set when the alert enters acknowledged.
        resolved_at: Set when the alert enters a terminal status.
        resolution_notes: Notes recorded with the last status change.
        generation_batch_id: Batch that persisted the alert.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid4()))
    type: AlertType
    severity: AlertSeverity
    account_id: str
    account_name: str
    subject_id: str | None = None
    subject_name: str | None = None
    title: str
    description: str = ""
    recommendation: str = ""
    reasoning: str | None = None
    metrics_snapshot: dict[str, Any] = Field(default_factory=dict)
    status: AlertStatus = AlertStatus.NEW
    created_at: datetime = Field(default_factory=utc_now)
    fingerprint: str
    acknowledged_at: datetime | None = None
    resolved_at: datetime | None = None
    resolution_notes: str | None = None
    generation_batch_id: str | None = None

    @property
    def blocks_duplicates(self) -> bool:
        """Whether this alert still counts as raised for deduplication."""
        return self.status not in CLOSED_STATUSES

    def to_summary(self) -> dict[str, Any]:
        """Compact form used in the oracle prompt."""
        return {
            "type": self.type.value,
            "accountId": self.account_id,
            "title": self.title,
            "status": self.status.value,
            "createdAt": format_iso(self.created_at),
        }


class AccountSummary(BaseModel):
    """Per-school metrics supplied by the metrics snapshot provider.

    The engine never computes these values, it only forwards them to the
    oracle.
    """

    model_config = ConfigDict(populate_by_name=True)

    account_id: str = Field(alias="accountId")
    account_name: str = Field(alias="accountName")
    health_score: float = Field(alias="healthScore")
    activity_level: Literal["very_active", "active", "inactive"] = Field(
        default="active", alias="activityLevel"
    )
    trend: Literal["up", "down", "stable"] = "stable"
    active_teachers: int = Field(default=0, alias="activeTeachers")
    total_teachers: int = Field(default=0, alias="totalTeachers")
    active_students: int = Field(default=0, alias="activeStudents")
    total_students: int = Field(default=0, alias="totalStudents")
    inactive_teachers: int = Field(default=0, alias="inactiveTeachers")
    days_until_expiry: int | None = Field(default=None, alias="daysUntilExpiry")
    days_since_last_activity: int | None = Field(
        default=None, alias="daysSinceLastActivity"
    )
    monthly_ai_cost: float = Field(default=0.0, alias="monthlyAICost")
    monthly_access: int = Field(default=0, alias="monthlyAccess")
    paid_subjects: int = Field(default=0, alias="paidSubjects")
    free_subjects: int = Field(default=0, alias="freeSubjects")
    has_ecosystem: bool = Field(default=False, alias="hasEcosystem")
    has_board: bool = Field(default=False, alias="hasBoard")
    contact_name: str | None = Field(default=None, alias="contactName")

    def to_prompt_dict(self) -> dict[str, Any]:
        """Render the summary the way the oracle prompt expects it."""
        return {
            "id": self.account_id,
            "name": self.account_name,
            "healthScore": self.health_score,
            "activityLevel": self.activity_level,
            "trend": self.trend,
            "teacherRatio": f"{self.active_teachers}/{self.total_teachers}",
            "studentRatio": f"{self.active_students}/{self.total_students}",
            "daysUntilLicenseExpiry": self.days_until_expiry,
            "daysSinceLastActivity": self.days_since_last_activity,
            "monthlyAICost": self.monthly_ai_cost,
            "monthlyAccess": self.monthly_access,
            "hasEcosystem": self.has_ecosystem,
            "hasBoard": self.has_board,
            "paidSubjects": self.paid_subjects,
            "freeSubjects": self.free_subjects,
            "inactiveTeachers": self.inactive_teachers,
            "contactName": self.contact_name,
        }


class AlertFilters(BaseModel):
    """Filters for alert listings. Empty lists mean no filter."""

    statuses: list[AlertStatus] = Field(default_factory=list)
    types: list[AlertType] = Field(default_factory=list)
    severities: list[AlertSeverity] = Field(default_factory=list)
    limit: int = Field(default=50, ge=1)

    def matches(self, alert: Alert) -> bool:
        """Check an alert against the filters."""
        if self.statuses and alert.status not in self.statuses:
            return False
        if self.types and alert.type not in self.types:
            return False
        if self.severities and alert.severity not in self.severities:
            return False
        return True


class GenerationResult(BaseModel):
    """Outcome of one generation run.

    On failure ``alerts`` is empty, both counters are zero and ``error``
    carries a non-empty message.
    """

    batch_id: str
    alerts: list[Alert] = Field(default_factory=list)
    schools_analyzed: int = 0
    alerts_generated: int = 0
    alerts_skipped: int = 0
    tokens_used: int = 0
    error: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class GenerationBatch:
    """Audit record for one generation run. Never mutated."""

    batch_id: str
    completed_at: datetime
    accounts_analyzed: int
    alerts_generated: int
    alerts_skipped: int
    model_used: str | None
    tokens_used: int
    error: str | None = None
