# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Alert generation orchestrator.

One generation run is a strictly sequential pipeline::

    idle -> fetching_existing -> analyzing -> persisting -> done

with a jump to ``failed`` from any stage.

A failure at any stage aborts the run. Nothing fetched so far is kept and
nothing is persisted, and the result carries the error message with zero
counts. Store outages do not count as failures because the repository
degrades to its in-process cache.

Usage:
    service = AlertGenerationService(
        repository=FallbackAlertRepository(DatabaseAlertRepository()),
        oracle=LLMRecommendationOracle(),
        audit_log=DatabaseGenerationAuditLog(),
    )

    result = await service.generate(accounts=summaries, max_alerts=5)
    print(result.alerts_generated, result.alerts_skipped)
"""

import inspect
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum
from uuid import uuid4

from cs_alerts.core.alerts.audit import GenerationAuditLog
from cs_alerts.core.alerts.deduplicator import filter_duplicates
from cs_alerts.core.alerts.metrics import MetricsSnapshotProvider
from cs_alerts.core.alerts.models import AccountSummary, GenerationBatch, GenerationResult
from cs_alerts.core.alerts.oracle import RecommendationOracle, summarize_open_alerts
from cs_alerts.core.alerts.repository.base import AlertRepository
from cs_alerts.core.config.settings import AlertEngineSettings, get_settings
from cs_alerts.utils.datetime import utc_now
from cs_alerts.utils.logging import bind_context, unbind_context

logger = logging.getLogger(__name__)


class GenerationStage(str, Enum):
    """Stages of a generation run."""

    IDLE = "idle"
    FETCHING_EXISTING = "fetching_existing"
    ANALYZING = "analyzing"
    PERSISTING = "persisting"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True)
class GenerationProgress:
    """Progress milestone reported to the caller.

    Attributes:
        current: Milestone number (1 to ``total``).
        total: Number of milestones in a run.
        status: Human-readable description.
        stage: Pipeline stage the milestone belongs to.
    """

    current: int
    status: str
    stage: GenerationStage
    total: int = 3


ProgressCallback = Callable[[GenerationProgress], Awaitable[None] | None]


class AlertGenerationService:
    """Orchestrates alert generation runs.

    Attributes:
        last_generation: Audit record of the most recent run, if any.
    """

    def __init__(
        self,
        repository: AlertRepository,
        oracle: RecommendationOracle,
        audit_log: GenerationAuditLog | None = None,
        metrics_provider: MetricsSnapshotProvider | None = None,
        settings: AlertEngineSettings | None = None,
    ) -> None:
        """Initialize the service.

        Args:
            repository: Alert store, usually a FallbackAlertRepository.
            oracle: Recommendation oracle proposing candidates.
            audit_log: Optional sink for per-run audit records.
            metrics_provider: Source of account summaries when generate()
                is called without explicit accounts.
            settings: Engine settings (defaults to the global settings).
        """
        self._repository = repository
        self._oracle = oracle
        self._audit_log = audit_log
        self._metrics_provider = metrics_provider
        self._settings = settings or get_settings().alerts

        self.last_generation: GenerationBatch | None = None

    async def generate(
        self,
        accounts: list[AccountSummary] | None = None,
        max_alerts: int | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> GenerationResult:
        """Run one generation pass.

        Args:
            accounts: Account summaries to analyze. Fetched from the
                metrics provider when omitted.
            max_alerts: Cap on proposed alerts (defaults to settings).
            on_progress: Optional sync or async progress callback.

        Returns:
            GenerationResult. Failures are reported through ``error``
            rather than raised.

        Raises:
            ValueError: If no accounts are given and no metrics provider
                is configured.
        """
        batch_id = str(uuid4())
        limit = max_alerts if max_alerts is not None else self._settings.max_alerts

        if accounts is None and self._metrics_provider is None:
            raise ValueError("No accounts given and no metrics provider configured")

        bind_context(generation_batch_id=batch_id)
        try:
            if accounts is None:
                try:
                    accounts = await self._metrics_provider.get_account_summaries()
                except Exception as e:
                    return await self._fail(
                        batch_id, e, GenerationStage.IDLE, 0, on_progress, accounts_analyzed=0
                    )

            if not accounts:
                logger.info("No accounts to analyze, skipping generation")
                result = GenerationResult(batch_id=batch_id)
                await self._report(
                    on_progress,
                    GenerationProgress(3, "No accounts to analyze", GenerationStage.DONE),
                )
                await self._record(result, model=None)
                return result

            return await self._run(batch_id, accounts, limit, on_progress)
        finally:
            unbind_context("generation_batch_id")

    async def _run(
        self,
        batch_id: str,
        accounts: list[AccountSummary],
        max_alerts: int,
        on_progress: ProgressCallback | None,
    ) -> GenerationResult:
        stage = GenerationStage.IDLE
        logger.info("Generating alerts for %d accounts (max %d)", len(accounts), max_alerts)

        step = 0
        try:
            stage = GenerationStage.FETCHING_EXISTING
            step = 1
            await self._report(on_progress, GenerationProgress(step, "Loading existing alerts", stage))
            existing = await self._repository.read_open(self._settings.existing_alert_fetch_limit)
            open_summaries = summarize_open_alerts(
                existing, self._settings.open_alert_prompt_limit
            )

            stage = GenerationStage.ANALYZING
            step = 2
            await self._report(on_progress, GenerationProgress(step, "Analyzing accounts", stage))
            analysis = await self._oracle.analyze(accounts, open_summaries, max_alerts)

            dedup = filter_duplicates(analysis.candidates, existing)

            stage = GenerationStage.PERSISTING
            step = 3
            await self._report(on_progress, GenerationProgress(step, "Saving alerts", stage))
            saved = await self._repository.persist(dedup.unique, batch_id)
            if saved < len(dedup.unique):
                logger.warning(
                    "Only %d of %d new alerts were saved", saved, len(dedup.unique)
                )

        except Exception as e:
            return await self._fail(batch_id, e, stage, step, on_progress, len(accounts))

        result = GenerationResult(
            batch_id=batch_id,
            alerts=dedup.unique,
            schools_analyzed=len(accounts),
            alerts_generated=len(dedup.unique),
            alerts_skipped=dedup.skipped,
            tokens_used=analysis.tokens_used,
        )

        logger.info(
            "Generation complete: %d accounts, %d generated, %d skipped, %d tokens",
            result.schools_analyzed,
            result.alerts_generated,
            result.alerts_skipped,
            result.tokens_used,
        )

        await self._report(on_progress, GenerationProgress(3, "Done", GenerationStage.DONE))
        await self._record(result, model=analysis.model or self._oracle.model)
        return result

    async def _fail(
        self,
        batch_id: str,
        error: Exception,
        stage: GenerationStage,
        step: int,
        on_progress: ProgressCallback | None,
        accounts_analyzed: int,
    ) -> GenerationResult:
        message = str(error) or type(error).__name__
        logger.error(
            "Alert generation failed during %s: %s", stage.value, message, exc_info=True
        )
        result = GenerationResult(batch_id=batch_id, error=message)
        await self._report(on_progress, GenerationProgress(step, message, GenerationStage.FAILED))
        await self._record(
            result,
            model=getattr(error, "model", None) or self._oracle.model,
            accounts_analyzed=accounts_analyzed,
        )
        return result

    async def _report(
        self,
        on_progress: ProgressCallback | None,
        progress: GenerationProgress,
    ) -> None:
        if on_progress is None:
            return
        try:
            outcome = on_progress(progress)
            if inspect.isawaitable(outcome):
                await outcome
        except Exception as e:
            logger.warning("Progress callback failed at %s: %s", progress.stage.value, e)

    async def _record(
        self,
        result: GenerationResult,
        model: str | None,
        accounts_analyzed: int | None = None,
    ) -> None:
        batch = GenerationBatch(
            batch_id=result.batch_id,
            completed_at=utc_now(),
            accounts_analyzed=(
                accounts_analyzed if accounts_analyzed is not None else result.schools_analyzed
            ),
            alerts_generated=result.alerts_generated,
            alerts_skipped=result.alerts_skipped,
            model_used=model,
            tokens_used=result.tokens_used,
            error=result.error,
        )
        self.last_generation = batch

        if self._audit_log is None:
            return
        try:
            await self._audit_log.record(batch)
        except Exception as e:
            logger.warning("Audit log write failed for batch %s: %s", batch.batch_id, e)
