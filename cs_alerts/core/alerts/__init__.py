# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Customer-success alert generation and lifecycle.

This package turns per-school usage metrics into deduplicated, stateful
alerts for the customer success team.

Key Components:
- AlertGenerationService: Orchestrates one generation run
- LLMRecommendationOracle: Asks an LLM for candidate alerts
- filter_duplicates: Fingerprint-based deduplication
- FallbackAlertRepository: Durable store with in-process cache fallback
- AlertLifecycleManager: Enforces allowed status transitions

Usage:
    from cs_alerts.core.alerts import (
        AlertGenerationService,
        AlertLifecycleManager,
        DatabaseAlertRepository,
        FallbackAlertRepository,
        LLMRecommendationOracle,
    )

    repository = FallbackAlertRepository(DatabaseAlertRepository())
    service = AlertGenerationService(repository, LLMRecommendationOracle())
    result = await service.generate(accounts=summaries)

    lifecycle = AlertLifecycleManager(repository)
    await lifecycle.acknowledge(result.alerts[0].id)
"""

from cs_alerts.core.alerts.audit import DatabaseGenerationAuditLog, GenerationAuditLog
from cs_alerts.core.alerts.deduplicator import (
    DeduplicationResult,
    blocking_fingerprints,
    filter_duplicates,
)
from cs_alerts.core.alerts.exceptions import (
    AlertNotFoundError,
    AlertStoreError,
    InvalidTransitionError,
)
from cs_alerts.core.alerts.fingerprint import fingerprint, normalize_title
from cs_alerts.core.alerts.lifecycle import (
    ALLOWED_TRANSITIONS,
    TERMINAL_STATUSES,
    AlertLifecycleManager,
    can_transition,
)
from cs_alerts.core.alerts.metrics import MetricsSnapshotProvider, StaticMetricsProvider
from cs_alerts.core.alerts.models import (
    CLOSED_STATUSES,
    AccountSummary,
    Alert,
    AlertFilters,
    AlertSeverity,
    AlertStatus,
    AlertType,
    GenerationBatch,
    GenerationResult,
)
from cs_alerts.core.alerts.oracle import (
    LLMRecommendationOracle,
    OracleAnalysis,
    OracleError,
    RecommendationOracle,
    parse_oracle_response,
)
from cs_alerts.core.alerts.repository import (
    AlertRepository,
    DatabaseAlertRepository,
    FallbackAlertRepository,
    InMemoryAlertRepository,
)
from cs_alerts.core.alerts.service import (
    AlertGenerationService,
    GenerationProgress,
    GenerationStage,
)

__all__ = [
    # Models
    "AccountSummary",
    "Alert",
    "AlertFilters",
    "AlertSeverity",
    "AlertStatus",
    "AlertType",
    "CLOSED_STATUSES",
    "GenerationBatch",
    "GenerationResult",
    # Fingerprint and dedup
    "fingerprint",
    "normalize_title",
    "DeduplicationResult",
    "blocking_fingerprints",
    "filter_duplicates",
    # Oracle
    "LLMRecommendationOracle",
    "OracleAnalysis",
    "OracleError",
    "RecommendationOracle",
    "parse_oracle_response",
    # Repositories
    "AlertRepository",
    "AlertStoreError",
    "DatabaseAlertRepository",
    "FallbackAlertRepository",
    "InMemoryAlertRepository",
    # Lifecycle
    "ALLOWED_TRANSITIONS",
    "TERMINAL_STATUSES",
    "AlertLifecycleManager",
    "AlertNotFoundError",
    "InvalidTransitionError",
    "can_transition",
    # Generation
    "AlertGenerationService",
    "GenerationProgress",
    "GenerationStage",
    "DatabaseGenerationAuditLog",
    "GenerationAuditLog",
    "MetricsSnapshotProvider",
    "StaticMetricsProvider",
]
