# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for candidate deduplication."""

import pytest

from cs_alerts.core.alerts.deduplicator import blocking_fingerprints, filter_duplicates
from cs_alerts.core.alerts.models import AlertStatus


class TestBlockingFingerprints:
    """Tests for the blocking set."""

    @pytest.mark.parametrize(
        "status",
        [
            AlertStatus.NEW,
            AlertStatus.ACKNOWLEDGED,
            AlertStatus.IN_PROGRESS,
            AlertStatus.FALSE_POSITIVE,
        ],
    )
    def test_raised_statuses_block(self, make_alert, status) -> None:
        alert = make_alert(status=status)

        assert blocking_fingerprints([alert]) == {alert.fingerprint}

    @pytest.mark.parametrize("status", [AlertStatus.RESOLVED, AlertStatus.DISMISSED])
    def test_closed_statuses_do_not_block(self, make_alert, status) -> None:
        alert = make_alert(status=status)

        assert blocking_fingerprints([alert]) == set()


class TestFilterDuplicates:
    """Tests for filter_duplicates."""

    def test_open_alert_blocks_candidate(self, make_alert) -> None:
        existing = make_alert(status=AlertStatus.ACKNOWLEDGED)
        candidate = make_alert()

        result = filter_duplicates([candidate], [existing])

        assert result.unique == []
        assert result.skipped == 1

    def test_resolved_alert_does_not_block(self, make_alert) -> None:
        existing = make_alert(status=AlertStatus.RESOLVED)
        candidate = make_alert()

        result = filter_duplicates([candidate], [existing])

        assert result.unique == [candidate]
        assert result.skipped == 0

    def test_keeps_unrelated_candidates_in_order(self, make_alert) -> None:
        existing = make_alert(title="Renewal due")
        first = make_alert(title="Low engagement", account_id="2")
        second = make_alert(title="Upsell opportunity", account_id="4")

        result = filter_duplicates([first, second], [existing])

        assert result.unique == [first, second]
        assert result.skipped == 0

    def test_repeated_fingerprint_within_batch_is_skipped(self, make_alert) -> None:
        first = make_alert(title="Low engagement")
        repeat = make_alert(title="LOW  engagement", description="Restated")

        result = filter_duplicates([first, repeat], [])

        assert result.unique == [first]
        assert result.skipped == 1

    def test_conservation(self, make_alert) -> None:
        existing = [
            make_alert(title="A", status=AlertStatus.NEW),
            make_alert(title="B", status=AlertStatus.DISMISSED),
        ]
        candidates = [
            make_alert(title="A"),
            make_alert(title="B"),
            make_alert(title="C"),
            make_alert(title="C"),
        ]

        result = filter_duplicates(candidates, existing)

        assert len(candidates) == len(result.unique) + result.skipped
        assert [a.title for a in result.unique] == ["B", "C"]

    def test_empty_candidates(self, make_alert) -> None:
        result = filter_duplicates([], [make_alert()])

        assert result.unique == []
        assert result.skipped == 0
