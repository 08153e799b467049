# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Fingerprint-based deduplication of oracle candidates."""

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field

from cs_alerts.core.alerts.models import Alert

logger = logging.getLogger(__name__)


@dataclass
class DeduplicationResult:
    """Candidates that survived deduplication plus the skipped count.

    ``len(unique) + skipped`` always equals the number of candidates.
    """

    unique: list[Alert] = field(default_factory=list)
    skipped: int = 0


def blocking_fingerprints(existing_alerts: Iterable[Alert]) -> set[str]:
    """Fingerprints of alerts that are still raised (not resolved or dismissed)."""
    return {alert.fingerprint for alert in existing_alerts if alert.blocks_duplicates}


def filter_duplicates(
    candidates: list[Alert],
    existing_alerts: Iterable[Alert],
) -> DeduplicationResult:
    """Drop candidates whose fingerprint is already raised.

    A candidate is kept iff its fingerprint is not held by an existing
    non-closed alert and was not already kept earlier in this batch.

    Args:
        candidates: Alerts proposed by the oracle, in oracle order.
        existing_alerts: Snapshot of stored alerts taken at run start.

    Returns:
        DeduplicationResult with kept candidates and the skipped count.
    """
    seen = blocking_fingerprints(existing_alerts)
    result = DeduplicationResult()

    for candidate in candidates:
        if candidate.fingerprint in seen:
            logger.debug("Skipping duplicate alert %s", candidate.fingerprint)
            result.skipped += 1
            continue
        seen.add(candidate.fingerprint)
        result.unique.append(candidate)

    logger.info(
        "Deduplicated %d candidates: %d unique, %d skipped",
        len(candidates),
        len(result.unique),
        result.skipped,
    )
    return result
