"""
Tests for the single-call interview batch and its local mirroring.
"""

from datetime import datetime

import pytest

from app.features.pipeline.bulk.interviews import normalize_batch_response, should_advance
from app.features.pipeline.domain.errors import CollaboratorError
from app.features.pipeline.domain.models import Application
from app.features.pipeline.stages.graph import StageGraph

BASE = datetime(2026, 3, 2, 9, 0)


def test_normalize_response_marks_failed_ids():
    result = normalize_batch_response(
        (1, 2, 3),
        {"total": 3, "scheduledCount": 2, "failedCount": 1, "failed": [{"id": 2, "error": "Not found"}]},
    )

    assert (result.total, result.succeeded, result.failed) == (3, 2, 1)
    assert result.per_item[2].reason == "Not found"
    assert result.summary() == "Scheduled: 2, Failed: 1"


def test_should_advance_only_forward(stages):
    graph = StageGraph(stages)

    def app(stage):
        return Application(id=1, name="A", email="a@example.com", current_stage=stage)

    assert should_advance(app(None), 8, graph) is True
    assert should_advance(app(5), 8, graph) is True
    assert should_advance(app(8), 8, graph) is False
    assert should_advance(app(9), 8, graph) is False
    assert should_advance(app(5), None, graph) is False
    assert should_advance(app(5), 404, graph) is False


@pytest.mark.asyncio
async def test_schedule_single_call_with_selection_order(session, fake_actions):
    for app_id in (3, 1, 4, 2):
        session.toggle_selection(app_id)

    result = await session.schedule_interviews(start_time=BASE, interval_hours=1, location="Room 4")

    batch_calls = fake_actions.calls_for("schedule_interview_batch")
    assert len(batch_calls) == 1
    assert batch_calls[0][1] == (1, 2, 3, 4)
    assert result.succeeded == 4
    times = {app_id: session.store.get(app_id).interview_date.strftime("%H:%M") for app_id in (1, 2, 3, 4)}
    assert times == {1: "09:00", 2: "10:00", 3: "11:00", 4: "12:00"}
    assert session.store.get(1).interview_location == "Room 4"
    assert len(session.selection) == 0


@pytest.mark.asyncio
async def test_schedule_explicit_target_order(session):
    await session.schedule_interviews(
        start_time=BASE, interval_hours=2, location="Zoom", target_ids=[7, 5, 6]
    )

    assert session.store.get(7).interview_date == BASE
    assert session.store.get(5).interview_date.hour == 11
    assert session.store.get(6).interview_date.hour == 13


@pytest.mark.asyncio
async def test_schedule_advances_stage_for_scheduled_only(make_session):
    apps = [
        Application(id=1, name="A", email="a@example.com", current_stage=5),
        Application(id=2, name="B", email="b@example.com", current_stage=9),
        Application(id=3, name="C", email="c@example.com", current_stage=None),
        Application(id=4, name="D", email="d@example.com", current_stage=5),
    ]
    board, actions = make_session(applications=apps)
    actions.interview_response = {
        "total": 4,
        "scheduledCount": 3,
        "failedCount": 1,
        "failed": [{"id": 4, "error": "Calendar conflict"}],
    }

    result = await board.schedule_interviews(
        start_time=BASE, interval_hours=1, location="Room 4", stage_id=8, target_ids=[1, 2, 3, 4]
    )

    assert result.failed == 1
    assert board.store.get(1).current_stage == 8
    assert board.store.get(2).current_stage == 9
    assert board.store.get(3).current_stage == 8
    # Failed item rolled back entirely
    assert board.store.get(4) == apps[3]
    assert [t.to_stage for t in board.history_for(1)] == [8]
    assert board.history_for(2) == []


@pytest.mark.asyncio
async def test_schedule_call_failure_rolls_back_everything(session, fake_actions, applications):
    fake_actions.interview_error = CollaboratorError("Unauthorized", status_code=403)
    session.select_all_visible()

    result = await session.schedule_interviews(start_time=BASE, interval_hours=0, location="Room 4")

    assert result.failed == 7
    assert result.per_item[1].failure_kind == "unauthorized"
    assert session.store.all() == applications
    assert len(session.selection) == 7


@pytest.mark.asyncio
async def test_progress_reported_once_for_batch(session):
    progress = []

    await session.schedule_interviews(
        start_time=BASE,
        interval_hours=1,
        location="Room 4",
        target_ids=[1, 2],
        on_progress=lambda completed, total: progress.append((completed, total)),
    )

    assert progress == [(2, 2)]


@pytest.mark.asyncio
async def test_failing_progress_callback_does_not_abort_batch(session):
    def explode(completed, total):
        raise RuntimeError("progress sink down")

    session.select_all_visible()

    result = await session.schedule_interviews(
        start_time=BASE, interval_hours=1, location="Room 4", on_progress=explode
    )

    assert result.succeeded == 7
    assert session.store.get(1).interview_location == "Room 4"
    # Selection still settles after the callback error
    assert len(session.selection) == 0


@pytest.mark.asyncio
async def test_sync_progress_callback_return_value_ignored(session):
    seen = []

    def record(completed, total):
        seen.append(completed)
        return completed

    result = await session.schedule_interviews(
        start_time=BASE, interval_hours=1, location="Room 4", target_ids=[1, 2], on_progress=record
    )

    assert result.failed == 0
    assert seen == [2]
