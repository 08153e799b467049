# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for the alert status lifecycle."""

from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from cs_alerts.core.alerts.lifecycle import (
    ALLOWED_TRANSITIONS,
    AlertLifecycleManager,
    AlertNotFoundError,
    InvalidTransitionError,
    apply_status_change,
    can_transition,
    status_change_values,
)
from cs_alerts.core.alerts.models import AlertStatus
from cs_alerts.core.alerts.repository.base import AlertStoreError
from cs_alerts.core.alerts.repository.fallback import FallbackAlertRepository
from cs_alerts.core.alerts.repository.memory import InMemoryAlertRepository

CHANGED_AT = datetime(2025, 6, 3, 12, 0, tzinfo=timezone.utc)


class TestCanTransition:
    """Tests for the transition table."""

    @pytest.mark.parametrize(
        "current,target",
        [
            (AlertStatus.NEW, AlertStatus.ACKNOWLEDGED),
            (AlertStatus.NEW, AlertStatus.IN_PROGRESS),
            (AlertStatus.ACKNOWLEDGED, AlertStatus.IN_PROGRESS),
            (AlertStatus.IN_PROGRESS, AlertStatus.RESOLVED),
            (AlertStatus.IN_PROGRESS, AlertStatus.DISMISSED),
            (AlertStatus.IN_PROGRESS, AlertStatus.FALSE_POSITIVE),
            (AlertStatus.RESOLVED, AlertStatus.NEW),
            (AlertStatus.DISMISSED, AlertStatus.NEW),
            (AlertStatus.FALSE_POSITIVE, AlertStatus.NEW),
        ],
    )
    def test_allowed(self, current, target) -> None:
        assert can_transition(current, target)

    @pytest.mark.parametrize(
        "current,target",
        [
            (AlertStatus.RESOLVED, AlertStatus.IN_PROGRESS),
            (AlertStatus.NEW, AlertStatus.RESOLVED),
            (AlertStatus.ACKNOWLEDGED, AlertStatus.NEW),
            (AlertStatus.IN_PROGRESS, AlertStatus.ACKNOWLEDGED),
            (AlertStatus.NEW, AlertStatus.NEW),
        ],
    )
    def test_rejected(self, current, target) -> None:
        assert not can_transition(current, target)

    def test_every_status_has_an_entry(self) -> None:
        assert set(ALLOWED_TRANSITIONS) == set(AlertStatus)


class TestStatusChangeValues:
    """Tests for timestamp side effects."""

    def test_acknowledge_sets_acknowledged_at(self) -> None:
        values = status_change_values(AlertStatus.ACKNOWLEDGED, CHANGED_AT)

        assert values == {"status": AlertStatus.ACKNOWLEDGED, "acknowledged_at": CHANGED_AT}

    @pytest.mark.parametrize(
        "status",
        [AlertStatus.RESOLVED, AlertStatus.DISMISSED, AlertStatus.FALSE_POSITIVE],
    )
    def test_terminal_sets_resolved_at(self, status) -> None:
        values = status_change_values(status, CHANGED_AT, notes="Done")

        assert values["resolved_at"] == CHANGED_AT
        assert values["resolution_notes"] == "Done"

    def test_reopen_clears_timestamps(self) -> None:
        values = status_change_values(AlertStatus.NEW, CHANGED_AT)

        assert values["acknowledged_at"] is None
        assert values["resolved_at"] is None

    def test_in_progress_touches_only_status(self) -> None:
        assert status_change_values(AlertStatus.IN_PROGRESS, CHANGED_AT) == {
            "status": AlertStatus.IN_PROGRESS
        }

    def test_apply_returns_copy(self, make_alert) -> None:
        alert = make_alert(status=AlertStatus.IN_PROGRESS)

        resolved = apply_status_change(alert, AlertStatus.RESOLVED, CHANGED_AT)

        assert alert.status == AlertStatus.IN_PROGRESS
        assert resolved.status == AlertStatus.RESOLVED
        assert resolved.resolved_at == CHANGED_AT
        assert resolved.id == alert.id
        assert resolved.fingerprint == alert.fingerprint


@pytest.fixture
def repository():
    """Create an in-memory repository."""
    return InMemoryAlertRepository()


@pytest.fixture
def manager(repository):
    """Create lifecycle manager over the in-memory repository."""
    return AlertLifecycleManager(repository)


class TestAlertLifecycleManager:
    """Tests for AlertLifecycleManager."""

    @pytest.mark.asyncio
    async def test_full_lifecycle(self, manager, repository, make_alert) -> None:
        alert = make_alert()
        await repository.persist([alert], "batch-1")

        assert await manager.acknowledge(alert.id)
        assert await manager.transition(alert.id, AlertStatus.IN_PROGRESS)
        assert await manager.resolve(alert.id, notes="Renewal signed")

        stored = await repository.get(alert.id)
        assert stored.status == AlertStatus.RESOLVED
        assert stored.acknowledged_at is not None
        assert stored.resolved_at is not None
        assert stored.resolution_notes == "Renewal signed"

    @pytest.mark.asyncio
    async def test_resolved_to_in_progress_rejected(
        self, manager, repository, make_alert
    ) -> None:
        alert = make_alert(status=AlertStatus.RESOLVED, resolved_at=CHANGED_AT)
        await repository.persist([alert], "batch-1")

        with pytest.raises(InvalidTransitionError) as exc_info:
            await manager.transition(alert.id, AlertStatus.IN_PROGRESS)

        assert exc_info.value.current == AlertStatus.RESOLVED
        assert exc_info.value.target == AlertStatus.IN_PROGRESS
        assert (await repository.get(alert.id)).status == AlertStatus.RESOLVED

    @pytest.mark.asyncio
    async def test_reopen_clears_resolved_at(self, manager, repository, make_alert) -> None:
        alert = make_alert(
            status=AlertStatus.RESOLVED,
            acknowledged_at=CHANGED_AT,
            resolved_at=CHANGED_AT,
        )
        await repository.persist([alert], "batch-1")

        assert await manager.reopen(alert.id)

        stored = await repository.get(alert.id)
        assert stored.status == AlertStatus.NEW
        assert stored.resolved_at is None
        assert stored.acknowledged_at is None

    @pytest.mark.asyncio
    async def test_unknown_alert(self, manager) -> None:
        with pytest.raises(AlertNotFoundError) as exc_info:
            await manager.acknowledge("missing")

        assert exc_info.value.alert_id == "missing"

    @pytest.mark.asyncio
    async def test_store_failure_returns_false(self, make_alert) -> None:
        alert = make_alert()
        repository = MagicMock()
        repository.get = AsyncMock(return_value=alert)
        repository.update_status = AsyncMock(return_value=False)

        manager = AlertLifecycleManager(repository)

        assert await manager.acknowledge(alert.id) is False
        repository.update_status.assert_awaited_once_with(
            alert.id, AlertStatus.ACKNOWLEDGED, None
        )

    @pytest.mark.asyncio
    async def test_store_outage_on_load_returns_false(self) -> None:
        primary = MagicMock()
        primary.get = AsyncMock(side_effect=AlertStoreError("Could not load alert"))
        primary.update_status = AsyncMock(side_effect=AlertStoreError("Could not update"))
        manager = AlertLifecycleManager(FallbackAlertRepository(primary, InMemoryAlertRepository()))

        assert await manager.transition("stored-id", AlertStatus.ACKNOWLEDGED) is False
        primary.update_status.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_reopen_keeps_one_open_alert_per_fingerprint(
        self, manager, repository, make_alert
    ) -> None:
        closed = make_alert(title="Critical activity drop", status=AlertStatus.RESOLVED)
        await repository.persist([closed], "batch-1")
        await repository.persist([make_alert(title="Critical activity drop")], "batch-2")

        assert await manager.reopen(closed.id) is False

        open_fingerprints = [a.fingerprint for a in await repository.read_open(limit=10)]
        assert len(open_fingerprints) == len(set(open_fingerprints)) == 1
