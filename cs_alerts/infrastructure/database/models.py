# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""SQLAlchemy models for the alert store.

Tables:
- customer_alerts: one row per alert, never deleted
- customer_alert_history: one row per status change
- generation_logs: one row per generation run (audit only)

The partial unique index on ``customer_alerts.fingerprint`` only covers
alerts that still block duplicates, so a resolved or dismissed alert does
not prevent the same fingerprint from being raised again.
"""

from datetime import datetime
from typing import Any

from sqlalchemy import (
    JSON,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    Uuid,
    func,
    text,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from cs_alerts.utils.datetime import utc_now

JSONType = JSON().with_variant(JSONB(), "postgresql")

# Predicate of the partial unique index; also the ON CONFLICT target.
OPEN_FINGERPRINT_PREDICATE = text("status NOT IN ('resolved', 'dismissed')")


class Base(DeclarativeBase):
    """Declarative base for alert store tables."""


class CustomerAlert(Base):
    """Stored customer-success alert."""

    __tablename__ = "customer_alerts"
    __table_args__ = (
        CheckConstraint(
            "type IN ('churn_risk', 'upsell', 'renewal', 'engagement', 'onboarding', 'support')",
            name="valid_alert_type",
        ),
        CheckConstraint(
            "severity IN ('critical', 'high', 'medium', 'low')",
            name="valid_alert_severity",
        ),
        CheckConstraint(
            "status IN ('new', 'acknowledged', 'in_progress', 'resolved', 'dismissed', 'false_positive')",
            name="valid_alert_status",
        ),
        Index(
            "uq_customer_alerts_open_fingerprint",
            "fingerprint",
            unique=True,
            postgresql_where=OPEN_FINGERPRINT_PREDICATE,
        ),
        Index("ix_customer_alerts_account_id", "account_id"),
        Index("ix_customer_alerts_status", "status"),
        Index("ix_customer_alerts_created_at", "created_at"),
    )

    id: Mapped[str] = mapped_column(Uuid(as_uuid=False), primary_key=True)
    type: Mapped[str] = mapped_column(String(30), nullable=False)
    severity: Mapped[str] = mapped_column(String(20), nullable=False)
    account_id: Mapped[str] = mapped_column(String(100), nullable=False)
    account_name: Mapped[str] = mapped_column(String(255), nullable=False)
    teacher_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    teacher_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    recommendation: Mapped[str | None] = mapped_column(Text, nullable=True)
    ai_reasoning: Mapped[str | None] = mapped_column(Text, nullable=True)
    metrics_snapshot: Mapped[dict[str, Any]] = mapped_column(
        JSONType, nullable=False, default=dict
    )
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="new")
    resolution_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now, server_default=func.now()
    )
    acknowledged_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    resolved_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    fingerprint: Mapped[str] = mapped_column(String(700), nullable=False)
    generation_batch_id: Mapped[str | None] = mapped_column(
        Uuid(as_uuid=False), nullable=True
    )


class AlertHistory(Base):
    """Status change trail for an alert."""

    __tablename__ = "customer_alert_history"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    alert_id: Mapped[str] = mapped_column(
        Uuid(as_uuid=False),
        ForeignKey("customer_alerts.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    action: Mapped[str] = mapped_column(String(50), nullable=False)
    old_value: Mapped[dict[str, Any] | None] = mapped_column(JSONType, nullable=True)
    new_value: Mapped[dict[str, Any] | None] = mapped_column(JSONType, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    performed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now, server_default=func.now()
    )


class GenerationLog(Base):
    """Audit row for one generation run."""

    __tablename__ = "generation_logs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    batch_id: Mapped[str] = mapped_column(Uuid(as_uuid=False), nullable=False, index=True)
    completed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    accounts_analyzed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    alerts_generated: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    alerts_skipped: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    model_used: Mapped[str | None] = mapped_column(String(200), nullable=True)
    tokens_used: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    error: Mapped[str | None] = mapped_column(Text, nullable=True)
