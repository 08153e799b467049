# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Generation audit log.

Write-only and best-effort: a failed audit write is logged at warning level
and never fails the generation run that produced it.
"""

import logging
from typing import Protocol

from sqlalchemy.exc import SQLAlchemyError

from cs_alerts.core.alerts.models import GenerationBatch
from cs_alerts.core.alerts.repository.database import SessionFactory
from cs_alerts.infrastructure.database.connection import DatabaseError, get_session
from cs_alerts.infrastructure.database.models import GenerationLog

logger = logging.getLogger(__name__)


class GenerationAuditLog(Protocol):
    """Sink for one audit record per generation run."""

    async def record(self, batch: GenerationBatch) -> None: ...


class DatabaseGenerationAuditLog:
    """Writes ``generation_logs`` rows."""

    def __init__(self, session_factory: SessionFactory | None = None) -> None:
        self._session_factory = session_factory or get_session

    async def record(self, batch: GenerationBatch) -> None:
        row = GenerationLog(
            batch_id=batch.batch_id,
            completed_at=batch.completed_at,
            accounts_analyzed=batch.accounts_analyzed,
            alerts_generated=batch.alerts_generated,
            alerts_skipped=batch.alerts_skipped,
            model_used=batch.model_used,
            tokens_used=batch.tokens_used,
            error=batch.error,
        )

        try:
            async with self._session_factory() as session:
                session.add(row)
        except (SQLAlchemyError, DatabaseError, OSError) as e:
            logger.warning("Failed to record generation batch %s: %s", batch.batch_id, e)
            return

        logger.debug("Recorded generation batch %s", batch.batch_id)
