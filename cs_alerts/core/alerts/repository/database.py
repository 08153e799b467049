# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Durable alert repository on PostgreSQL.

Inserts ignore conflicts on the open-fingerprint partial unique index, so
two concurrent generation runs cannot create two open alerts with the same
fingerprint. Status changes go through the ``update_alert_status`` stored
procedure when it exists and fall back to a direct row update otherwise.
"""

import logging
from collections.abc import Callable
from contextlib import AbstractAsyncContextManager
from typing import Any

from sqlalchemy import select, text
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.exc import DBAPIError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from cs_alerts.core.alerts.lifecycle import status_change_values
from cs_alerts.core.alerts.models import (
    CLOSED_STATUSES,
    Alert,
    AlertFilters,
    AlertSeverity,
    AlertStatus,
    AlertType,
)
from cs_alerts.core.alerts.repository.base import AlertRepository, AlertStoreError
from cs_alerts.infrastructure.database.connection import DatabaseError, get_session
from cs_alerts.infrastructure.database.models import (
    OPEN_FINGERPRINT_PREDICATE,
    AlertHistory,
    CustomerAlert,
)
from cs_alerts.utils.datetime import ensure_utc, utc_now

logger = logging.getLogger(__name__)

SessionFactory = Callable[[], AbstractAsyncContextManager[AsyncSession]]

# Failures that mean "the store cannot serve this request right now"
STORE_ERRORS = (SQLAlchemyError, DatabaseError, OSError)

_STATUS_PROCEDURE = text(
    "SELECT update_alert_status(CAST(:alert_id AS uuid), :new_status, :notes)"
)


def alert_to_row(alert: Alert, batch_id: str | None) -> dict[str, Any]:
    """Map a domain alert onto ``customer_alerts`` columns."""
    return {
        "id": alert.id,
        "type": alert.type.value,
        "severity": alert.severity.value,
        "account_id": alert.account_id,
        "account_name": alert.account_name,
        "teacher_id": alert.subject_id,
        "teacher_name": alert.subject_name,
        "title": alert.title,
        "description": alert.description,
        "recommendation": alert.recommendation,
        "ai_reasoning": alert.reasoning,
        "metrics_snapshot": alert.metrics_snapshot,
        "status": alert.status.value,
        "created_at": alert.created_at,
        "acknowledged_at": alert.acknowledged_at,
        "resolved_at": alert.resolved_at,
        "resolution_notes": alert.resolution_notes,
        "fingerprint": alert.fingerprint,
        "generation_batch_id": batch_id,
    }


def row_to_alert(row: CustomerAlert) -> Alert:
    """Map a ``customer_alerts`` row onto a domain alert."""
    return Alert(
        id=str(row.id),
        type=AlertType(row.type),
        severity=AlertSeverity(row.severity),
        account_id=row.account_id,
        account_name=row.account_name,
        subject_id=row.teacher_id,
        subject_name=row.teacher_name,
        title=row.title,
        description=row.description or "",
        recommendation=row.recommendation or "",
        reasoning=row.ai_reasoning,
        metrics_snapshot=row.metrics_snapshot or {},
        status=AlertStatus(row.status),
        created_at=ensure_utc(row.created_at),
        fingerprint=row.fingerprint,
        acknowledged_at=ensure_utc(row.acknowledged_at),
        resolved_at=ensure_utc(row.resolved_at),
        resolution_notes=row.resolution_notes,
        generation_batch_id=str(row.generation_batch_id) if row.generation_batch_id else None,
    )


class DatabaseAlertRepository(AlertRepository):
    """Alert repository backed by the ``customer_alerts`` table.

    Args:
        session_factory: Callable returning an async session context
            manager. Defaults to the shared connection pool.
    """

    def __init__(self, session_factory: SessionFactory | None = None) -> None:
        self._session_factory = session_factory or get_session

    async def read_open(self, limit: int) -> list[Alert]:
        closed = [status.value for status in CLOSED_STATUSES]
        query = (
            select(CustomerAlert)
            .where(CustomerAlert.status.not_in(closed))
            .order_by(CustomerAlert.created_at.desc())
            .limit(limit)
        )

        try:
            async with self._session_factory() as session:
                result = await session.execute(query)
                rows = list(result.scalars().all())
        except STORE_ERRORS as e:
            raise AlertStoreError("Could not read open alerts", e) from e

        return [row_to_alert(row) for row in rows]

    async def persist(self, alerts: list[Alert], batch_id: str) -> int:
        if not alerts:
            return 0

        statement = (
            pg_insert(CustomerAlert)
            .values([alert_to_row(alert, batch_id) for alert in alerts])
            .on_conflict_do_nothing(
                index_elements=[CustomerAlert.fingerprint],
                index_where=OPEN_FINGERPRINT_PREDICATE,
            )
            .returning(CustomerAlert.id)
        )

        try:
            async with self._session_factory() as session:
                result = await session.execute(statement)
                saved = len(result.scalars().all())
        except STORE_ERRORS as e:
            raise AlertStoreError("Could not save alerts", e) from e

        if saved < len(alerts):
            logger.info(
                "Store ignored %d conflicting alerts for batch %s",
                len(alerts) - saved,
                batch_id,
            )
        return saved

    async def update_status(
        self,
        alert_id: str,
        new_status: AlertStatus,
        notes: str | None = None,
    ) -> bool:
        try:
            async with self._session_factory() as session:
                if await self._call_status_procedure(session, alert_id, new_status, notes):
                    return True
                return await self._update_status_directly(session, alert_id, new_status, notes)
        except STORE_ERRORS as e:
            logger.error("Status update failed for alert %s: %s", alert_id, str(e))
            return False

    async def _call_status_procedure(
        self,
        session: AsyncSession,
        alert_id: str,
        new_status: AlertStatus,
        notes: str | None,
    ) -> bool:
        """Run the atomic stored procedure inside a savepoint.

        Returns:
            False if the procedure is missing or failed, so the caller can
            fall back to a direct update on the same session.
        """
        try:
            async with session.begin_nested():
                await session.execute(
                    _STATUS_PROCEDURE,
                    {"alert_id": alert_id, "new_status": new_status.value, "notes": notes},
                )
        except DBAPIError as e:
            logger.info(
                "update_alert_status procedure unavailable, using direct update: %s",
                str(e.orig) if e.orig is not None else str(e),
            )
            return False
        return True

    async def _update_status_directly(
        self,
        session: AsyncSession,
        alert_id: str,
        new_status: AlertStatus,
        notes: str | None,
    ) -> bool:
        row = await session.get(CustomerAlert, alert_id)
        if row is None:
            return False

        old_status = row.status
        for column, value in status_change_values(new_status, utc_now(), notes).items():
            setattr(row, column, value.value if isinstance(value, AlertStatus) else value)

        session.add(
            AlertHistory(
                alert_id=alert_id,
                action="status_changed",
                old_value={"status": old_status},
                new_value={"status": new_status.value},
                notes=notes,
            )
        )
        await session.flush()
        return True

    async def get(self, alert_id: str) -> Alert | None:
        try:
            async with self._session_factory() as session:
                row = await session.get(CustomerAlert, alert_id)
        except STORE_ERRORS as e:
            raise AlertStoreError(f"Could not load alert {alert_id}", e) from e

        return row_to_alert(row) if row is not None else None

    async def list_alerts(self, filters: AlertFilters) -> list[Alert]:
        query = select(CustomerAlert)
        if filters.statuses:
            query = query.where(CustomerAlert.status.in_([s.value for s in filters.statuses]))
        if filters.types:
            query = query.where(CustomerAlert.type.in_([t.value for t in filters.types]))
        if filters.severities:
            query = query.where(
                CustomerAlert.severity.in_([s.value for s in filters.severities])
            )
        query = query.order_by(CustomerAlert.created_at.desc()).limit(filters.limit)

        try:
            async with self._session_factory() as session:
                result = await session.execute(query)
                rows = list(result.scalars().all())
        except STORE_ERRORS as e:
            raise AlertStoreError("Could not list alerts", e) from e

        return [row_to_alert(row) for row in rows]
