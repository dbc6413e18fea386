"""
Tests for the application store and the optimistic apply/commit/rollback protocol.
"""

from dataclasses import replace
from unittest.mock import AsyncMock

import pytest

from app.features.pipeline.domain.errors import CollaboratorError, NotFoundError, OptimisticRollbackError
from app.features.pipeline.domain.models import Application
from app.features.pipeline.state.optimistic import OptimisticStateManager
from app.features.pipeline.state.store import InMemoryApplicationStore


def _app(app_id: int = 1, stage: int | None = 5, status: str = "submitted") -> Application:
    return Application(
        id=app_id,
        name=f"Candidate {app_id}",
        email=f"c{app_id}@example.com",
        status=status,
        current_stage=stage,
        notes="original notes",
    )


def test_apply_optimistic_returns_snapshot_and_new_value():
    store = InMemoryApplicationStore([_app()])

    previous, optimistic = store.apply_optimistic(1, lambda a: replace(a, current_stage=8))

    assert previous.current_stage == 5
    assert optimistic.current_stage == 8
    assert store.get(1).current_stage == 8


def test_apply_optimistic_cannot_change_id():
    store = InMemoryApplicationStore([_app()])

    with pytest.raises(ValueError):
        store.apply_optimistic(1, lambda a: replace(a, id=2))
    assert store.get(1) == _app()


def test_apply_optimistic_unknown_application():
    store = InMemoryApplicationStore()

    with pytest.raises(NotFoundError):
        store.apply_optimistic(99, lambda a: a)


def test_replace_all_preserves_load_order():
    store = InMemoryApplicationStore([_app(3), _app(1)])
    store.replace_all([_app(2), _app(4)])

    assert [a.id for a in store.all()] == [2, 4]
    assert 3 not in store


@pytest.mark.asyncio
async def test_execute_commits_optimistic_value():
    original = _app()
    store = InMemoryApplicationStore([original])
    manager = OptimisticStateManager(store)
    request = AsyncMock(return_value=None)

    committed = await manager.execute(1, lambda a: replace(a, current_stage=8), request)

    request.assert_awaited_once()
    assert committed.current_stage == 8
    assert store.get(1).current_stage == 8
    assert manager.in_flight(1) is False


@pytest.mark.asyncio
async def test_execute_reconciles_with_authoritative_record():
    store = InMemoryApplicationStore([_app()])
    manager = OptimisticStateManager(store)
    authoritative = replace(_app(), current_stage=8, notes="server notes")

    committed = await manager.execute(
        1, lambda a: replace(a, current_stage=8), AsyncMock(return_value=authoritative)
    )

    assert committed == authoritative
    assert store.get(1).notes == "server notes"


@pytest.mark.asyncio
async def test_execute_rolls_back_verbatim_on_failure():
    original = _app()
    store = InMemoryApplicationStore([original])
    manager = OptimisticStateManager(store)
    cause = CollaboratorError("Server exploded", status_code=500)

    with pytest.raises(OptimisticRollbackError) as exc_info:
        await manager.execute(
            1,
            lambda a: replace(a, current_stage=8, status="rejected", notes=None),
            AsyncMock(side_effect=cause),
        )

    assert exc_info.value.cause is cause
    assert exc_info.value.application_id == 1
    assert store.get(1) == original
    assert store.get(1) is original
    assert manager.in_flight(1) is False


@pytest.mark.asyncio
async def test_state_is_optimistic_while_request_in_flight():
    store = InMemoryApplicationStore([_app()])
    manager = OptimisticStateManager(store)
    seen = {}

    async def request():
        seen["stage"] = store.get(1).current_stage
        seen["in_flight"] = manager.in_flight(1)
        return None

    await manager.execute(1, lambda a: replace(a, current_stage=9), request)

    assert seen == {"stage": 9, "in_flight": True}


def test_begin_and_rollback_manually():
    original = _app()
    store = InMemoryApplicationStore([original])
    manager = OptimisticStateManager(store)

    mutation = manager.begin(1, lambda a: replace(a, status="shortlisted"))
    assert store.get(1).status == "shortlisted"

    manager.rollback(mutation)
    assert store.get(1) == original
