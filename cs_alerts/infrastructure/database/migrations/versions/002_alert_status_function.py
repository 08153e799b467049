# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Atomic alert status update procedure.

Revision ID: 002_alert_status_function
Revises: 001_customer_alerts
Create Date: 2025-06-02

update_alert_status() changes the status, stamps or clears the lifecycle
timestamps and writes a history row in one statement. Callers fall back to
a direct update when the function is missing.
"""

from typing import Sequence, Union

from alembic import op

revision: str = "002_alert_status_function"
down_revision: Union[str, None] = "001_customer_alerts"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create update_alert_status()."""
    op.execute("""
        CREATE OR REPLACE FUNCTION update_alert_status(
            p_alert_id UUID,
            p_new_status TEXT,
            p_notes TEXT DEFAULT NULL
        ) RETURNS VOID AS $$
        DECLARE
            v_old_status TEXT;
        BEGIN
            SELECT status INTO v_old_status
            FROM customer_alerts
            WHERE id = p_alert_id
            FOR UPDATE;

            IF NOT FOUND THEN
                RAISE EXCEPTION 'Alert % not found', p_alert_id;
            END IF;

            UPDATE customer_alerts
            SET status = p_new_status,
                acknowledged_at = CASE
                    WHEN p_new_status = 'acknowledged' THEN NOW()
                    WHEN p_new_status = 'new' THEN NULL
                    ELSE acknowledged_at
                END,
                resolved_at = CASE
                    WHEN p_new_status IN ('resolved', 'dismissed', 'false_positive') THEN NOW()
                    WHEN p_new_status = 'new' THEN NULL
                    ELSE resolved_at
                END,
                resolution_notes = COALESCE(p_notes, resolution_notes)
            WHERE id = p_alert_id;

            INSERT INTO customer_alert_history (alert_id, action, old_value, new_value, notes)
            VALUES (
                p_alert_id,
                'status_changed',
                jsonb_build_object('status', v_old_status),
                jsonb_build_object('status', p_new_status),
                p_notes
            );
        END;
        $$ LANGUAGE plpgsql;
    """)


def downgrade() -> None:
    """Drop update_alert_status()."""
    op.execute("DROP FUNCTION IF EXISTS update_alert_status(UUID, TEXT, TEXT)")
