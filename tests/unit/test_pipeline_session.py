"""
Tests for the board session: quick moves, status updates, stage reorder and refresh.
"""

import pytest

from app.features.pipeline.domain.errors import CollaboratorError, NotFoundError, OptimisticRollbackError
from app.features.pipeline.domain.models import Application, PipelineStage
from app.features.pipeline.stages.transitions import Reject


@pytest.mark.asyncio
async def test_quick_move_records_history(session, fake_actions):
    moved = await session.quick_move(1, 8, notes="Strong phone screen")

    assert moved.current_stage == 8
    history = session.history_for(1)
    assert len(history) == 1
    assert (history[0].from_stage, history[0].to_stage) == (5, 8)
    assert history[0].actor == "recruiter-1"
    assert history[0].notes == "Strong phone screen"
    assert fake_actions.calls_for("move_stage") == [("move_stage", 1, 8, "Strong phone screen")]


@pytest.mark.asyncio
async def test_repeated_move_is_idempotent(session, fake_actions):
    await session.quick_move(1, 8)
    second = await session.quick_move(1, 8)

    assert second == Reject("no-op")
    assert len(fake_actions.calls_for("move_stage")) == 1
    assert len(session.history_for(1)) == 1


@pytest.mark.asyncio
async def test_quick_move_failure_surfaces_and_restores(session, fake_actions):
    original = session.store.get(1)
    fake_actions.fail("move_stage", 1)

    with pytest.raises(OptimisticRollbackError):
        await session.quick_move(1, 8)

    assert session.store.get(1) == original
    assert session.history_for(1) == []


@pytest.mark.asyncio
async def test_quick_move_unknown_application(session):
    with pytest.raises(NotFoundError):
        await session.quick_move(404, 8)


@pytest.mark.asyncio
async def test_update_status_optimistic(session, fake_actions):
    updated = await session.update_status(2, "shortlisted", notes="Great portfolio")

    assert updated.status == "shortlisted"
    assert fake_actions.calls_for("update_status") == [("update_status", 2, "shortlisted", "Great portfolio")]


@pytest.mark.asyncio
async def test_update_status_rollback(session, fake_actions):
    fake_actions.fail("update_status", 2)

    with pytest.raises(OptimisticRollbackError):
        await session.update_status(2, "shortlisted")

    assert session.store.get(2).status == "submitted"


@pytest.mark.asyncio
async def test_reorder_stages_persists_changed_orders(session, fake_actions):
    graph = await session.reorder_stages(9, 6)

    assert [stage.id for stage in graph.stages_in_order()] == [5, 9, 6, 8]
    assert session.graph is graph
    assert sorted(call[1:] for call in fake_actions.calls_for("update_stage_order")) == [
        (6, 2),
        (8, 3),
        (9, 1),
    ]


@pytest.mark.asyncio
async def test_reorder_stages_rolls_back_on_failure(session, fake_actions):
    previous = session.graph
    fake_actions.fail("update_stage_order", 6, CollaboratorError("Server exploded", status_code=500))

    with pytest.raises(CollaboratorError):
        await session.reorder_stages(9, 6)

    assert session.graph is previous


@pytest.mark.asyncio
async def test_reorder_onto_itself_makes_no_calls(session, fake_actions):
    await session.reorder_stages(6, 6)

    assert fake_actions.calls == []


def test_categorized_columns(make_session):
    apps = [
        Application(id=1, name="A", email="a@example.com", status="rejected", current_stage=5),
        Application(id=2, name="B", email="b@example.com", status="shortlisted", current_stage=5),
        Application(id=3, name="C", email="c@example.com", status="submitted", current_stage=5),
        Application(id=4, name="D", email="d@example.com", status="submitted", current_stage=5),
        Application(id=5, name="E", email="e@example.com", status="submitted", current_stage=None),
    ]
    board, _ = make_session(applications=apps)

    columns = board.categorized_columns()

    assert [column.stage.id for column, _ in columns] == [0, 5, 6, 8, 9]
    applied_column, applied_buckets = columns[1]
    assert applied_column.count == 4
    assert (len(applied_buckets.active), len(applied_buckets.advanced), len(applied_buckets.archived)) == (2, 1, 1)
    assert applied_buckets.is_flat is False
    assert board.stage_counts() == {5: 4, 6: 0, 8: 0, 9: 0}


@pytest.mark.asyncio
async def test_refresh_replaces_board_and_trims_selection(session, fake_actions):
    session.select_all_visible()
    fake_actions.stages = [PipelineStage(id=5, name="Applied", order=0), PipelineStage(id=12, name="Hired", order=1)]
    fake_actions.applications = [
        Application(id=1, name="A", email="a@example.com", current_stage=12),
        Application(id=20, name="New", email="n@example.com", current_stage=None),
    ]

    await session.refresh(job_id=3)

    assert [app.id for app in session.applications()] == [1, 20]
    assert list(session.selection) == [1]
    assert 12 in session.graph
    # Validator follows the refreshed stages
    assert await session.quick_move(20, 8) == Reject("unknown stage")


@pytest.mark.asyncio
async def test_refresh_cancels_drag_of_removed_candidate(session, fake_actions):
    session.drag.start(3)
    fake_actions.applications = [Application(id=1, name="A", email="a@example.com", current_stage=5)]

    await session.refresh(job_id=3)

    assert session.drag.state.is_dragging is False


def test_toggle_selection_unknown_application(session):
    with pytest.raises(NotFoundError):
        session.toggle_selection(404)


def test_toggle_stage_selection(session):
    session.toggle_stage_selection(5, True)

    assert len(session.selection) == 7
