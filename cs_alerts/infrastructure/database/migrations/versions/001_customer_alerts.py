# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Customer alert tables.

Revision ID: 001_customer_alerts
Revises: None
Create Date: 2025-06-02

Creates customer_alerts, customer_alert_history and generation_logs based
on the SQLAlchemy models in cs_alerts/infrastructure/database/models.py.
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision: str = "001_customer_alerts"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create alert store tables."""
    # ==========================================================================
    # 1. customer_alerts table
    # ==========================================================================
    op.create_table(
        "customer_alerts",
        sa.Column(
            "id",
            postgresql.UUID(as_uuid=False),
            server_default=sa.text("gen_random_uuid()"),
            primary_key=True,
        ),
        sa.Column("type", sa.String(30), nullable=False),
        sa.Column("severity", sa.String(20), nullable=False),
        sa.Column("account_id", sa.String(100), nullable=False),
        sa.Column("account_name", sa.String(255), nullable=False),
        sa.Column("teacher_id", sa.String(100), nullable=True),
        sa.Column("teacher_name", sa.String(255), nullable=True),
        sa.Column("title", sa.String(500), nullable=False),
        sa.Column("description", sa.Text, nullable=False, server_default=""),
        sa.Column("recommendation", sa.Text, nullable=True),
        sa.Column("ai_reasoning", sa.Text, nullable=True),
        sa.Column("metrics_snapshot", postgresql.JSONB, nullable=False, server_default="{}"),
        sa.Column("status", sa.String(20), nullable=False, server_default="new"),
        sa.Column("resolution_notes", sa.Text, nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.Column("acknowledged_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("resolved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("fingerprint", sa.String(700), nullable=False),
        sa.Column("generation_batch_id", postgresql.UUID(as_uuid=False), nullable=True),
        sa.CheckConstraint(
            "type IN ('churn_risk', 'upsell', 'renewal', 'engagement', 'onboarding', 'support')",
            name="valid_alert_type",
        ),
        sa.CheckConstraint(
            "severity IN ('critical', 'high', 'medium', 'low')",
            name="valid_alert_severity",
        ),
        sa.CheckConstraint(
            "status IN ('new', 'acknowledged', 'in_progress', 'resolved', 'dismissed', 'false_positive')",
            name="valid_alert_status",
        ),
    )
    op.create_index("ix_customer_alerts_account_id", "customer_alerts", ["account_id"])
    op.create_index("ix_customer_alerts_status", "customer_alerts", ["status"])
    op.create_index("ix_customer_alerts_created_at", "customer_alerts", ["created_at"])

    # Only alerts that still block duplicates take part in the unique key,
    # and INSERT ... ON CONFLICT targets this index.
    op.create_index(
        "uq_customer_alerts_open_fingerprint",
        "customer_alerts",
        ["fingerprint"],
        unique=True,
        postgresql_where=sa.text("status NOT IN ('resolved', 'dismissed')"),
    )

    # ==========================================================================
    # 2. customer_alert_history table
    # ==========================================================================
    op.create_table(
        "customer_alert_history",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "alert_id",
            postgresql.UUID(as_uuid=False),
            sa.ForeignKey("customer_alerts.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("action", sa.String(50), nullable=False),
        sa.Column("old_value", postgresql.JSONB, nullable=True),
        sa.Column("new_value", postgresql.JSONB, nullable=True),
        sa.Column("notes", sa.Text, nullable=True),
        sa.Column(
            "performed_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
    )
    op.create_index(
        "ix_customer_alert_history_alert_id", "customer_alert_history", ["alert_id"]
    )

    # ==========================================================================
    # 3. generation_logs table
    # ==========================================================================
    op.create_table(
        "generation_logs",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("batch_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("accounts_analyzed", sa.Integer, nullable=False, server_default="0"),
        sa.Column("alerts_generated", sa.Integer, nullable=False, server_default="0"),
        sa.Column("alerts_skipped", sa.Integer, nullable=False, server_default="0"),
        sa.Column("model_used", sa.String(200), nullable=True),
        sa.Column("tokens_used", sa.Integer, nullable=False, server_default="0"),
        sa.Column("error", sa.Text, nullable=True),
    )
    op.create_index("ix_generation_logs_batch_id", "generation_logs", ["batch_id"])


def downgrade() -> None:
    """Drop alert store tables."""
    op.drop_table("generation_logs")
    op.drop_table("customer_alert_history")
    op.drop_table("customer_alerts")
