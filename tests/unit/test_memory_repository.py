# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for the in-process alert cache."""

import pytest

from cs_alerts.core.alerts.models import AlertFilters, AlertSeverity, AlertStatus, AlertType
from cs_alerts.core.alerts.repository.memory import InMemoryAlertRepository


@pytest.fixture
def cache():
    """Create an empty cache."""
    return InMemoryAlertRepository()


class TestPersist:
    """Tests for cache writes."""

    @pytest.mark.asyncio
    async def test_persist_sets_batch_id(self, cache, make_alert) -> None:
        alert = make_alert()

        saved = await cache.persist([alert], "batch-1")

        assert saved == 1
        assert alert.id in cache
        assert (await cache.get(alert.id)).generation_batch_id == "batch-1"

    @pytest.mark.asyncio
    async def test_persist_is_append_only(self, cache, make_alert) -> None:
        first = make_alert(title="First")
        second = make_alert(title="Second")

        await cache.persist([first], "batch-1")
        await cache.persist([second], "batch-2")

        assert len(cache) == 2

    @pytest.mark.asyncio
    async def test_persist_ignores_known_ids(self, cache, make_alert) -> None:
        alert = make_alert()
        await cache.persist([alert], "batch-1")

        saved = await cache.persist([alert], "batch-2")

        assert saved == 0
        assert (await cache.get(alert.id)).generation_batch_id == "batch-1"

    @pytest.mark.asyncio
    async def test_persist_ignores_open_fingerprint_conflicts(self, cache, make_alert) -> None:
        await cache.persist([make_alert()], "batch-1")

        saved = await cache.persist([make_alert()], "batch-2")

        assert saved == 0
        assert len(cache) == 1

    @pytest.mark.asyncio
    async def test_closed_fingerprint_can_recur(self, cache, make_alert) -> None:
        await cache.persist([make_alert(status=AlertStatus.DISMISSED)], "batch-1")

        saved = await cache.persist([make_alert()], "batch-2")

        assert saved == 1


class TestReads:
    """Tests for cache reads."""

    @pytest.mark.asyncio
    async def test_read_open_excludes_closed_and_orders(self, cache, make_alert) -> None:
        older = make_alert(title="Older")
        resolved = make_alert(title="Resolved", status=AlertStatus.RESOLVED)
        newer = make_alert(title="Newer", status=AlertStatus.FALSE_POSITIVE)
        await cache.persist([older, resolved, newer], "batch-1")

        result = await cache.read_open(limit=10)

        assert [a.title for a in result] == ["Newer", "Older"]

    @pytest.mark.asyncio
    async def test_read_open_respects_limit(self, cache, make_alert) -> None:
        await cache.persist([make_alert(title=f"A{i}") for i in range(4)], "batch-1")

        assert len(await cache.read_open(limit=2)) == 2

    @pytest.mark.asyncio
    async def test_list_alerts_filters(self, cache, make_alert) -> None:
        await cache.persist(
            [
                make_alert(title="Churn", type=AlertType.CHURN_RISK, severity=AlertSeverity.HIGH),
                make_alert(title="Upsell", type=AlertType.UPSELL, severity=AlertSeverity.LOW),
                make_alert(title="Done", type=AlertType.CHURN_RISK, status=AlertStatus.RESOLVED),
            ],
            "batch-1",
        )

        result = await cache.list_alerts(
            AlertFilters(types=[AlertType.CHURN_RISK], statuses=[AlertStatus.NEW])
        )

        assert [a.title for a in result] == ["Churn"]

    @pytest.mark.asyncio
    async def test_get_unknown(self, cache) -> None:
        assert await cache.get("missing") is None


class TestUpdateStatus:
    """Tests for cache status updates."""

    @pytest.mark.asyncio
    async def test_update_status(self, cache, make_alert) -> None:
        alert = make_alert()
        await cache.persist([alert], "batch-1")

        assert await cache.update_status(alert.id, AlertStatus.ACKNOWLEDGED)

        stored = await cache.get(alert.id)
        assert stored.status == AlertStatus.ACKNOWLEDGED
        assert stored.acknowledged_at is not None

    @pytest.mark.asyncio
    async def test_update_unknown(self, cache) -> None:
        assert await cache.update_status("missing", AlertStatus.ACKNOWLEDGED) is False

    @pytest.mark.asyncio
    async def test_reopen_rejected_while_fingerprint_is_open(self, cache, make_alert) -> None:
        closed = make_alert(status=AlertStatus.RESOLVED)
        await cache.persist([closed], "batch-1")
        replacement = make_alert()
        assert await cache.persist([replacement], "batch-2") == 1

        assert await cache.update_status(closed.id, AlertStatus.NEW) is False

        assert (await cache.get(closed.id)).status == AlertStatus.RESOLVED
        assert [a.id for a in await cache.read_open(limit=10)] == [replacement.id]

    @pytest.mark.asyncio
    async def test_reopen_allowed_once_fingerprint_is_closed(self, cache, make_alert) -> None:
        closed = make_alert(status=AlertStatus.RESOLVED)
        other = make_alert(status=AlertStatus.DISMISSED)
        await cache.persist([closed, other], "batch-1")

        assert await cache.update_status(closed.id, AlertStatus.NEW)
