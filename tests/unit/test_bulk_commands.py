from datetime import datetime

import pytest

from app.features.pipeline.bulk.commands import (
    archive_command,
    compute_interview_slots,
    interview_batch_command,
    move_stage_command,
    send_email_command,
    send_form_command,
)
from app.features.pipeline.domain.errors import InvalidCommandError


def test_move_stage_command_payload():
    command = move_stage_command([3, 1, 3], stage_id=8, notes="moving")

    assert command.kind == "moveStage"
    assert command.target_ids == frozenset({1, 3})
    assert command.payload == {"stage_id": 8, "notes": "moving"}


def test_move_to_unassigned_is_not_a_valid_command():
    with pytest.raises(InvalidCommandError):
        move_stage_command([1], stage_id=0)


def test_empty_target_set_rejected():
    with pytest.raises(InvalidCommandError):
        send_email_command([], template_id=4)


@pytest.mark.parametrize("bad_id", [0, -3, "abc", None, True, 3.7, float("nan")])
def test_invalid_application_ids_rejected(bad_id):
    with pytest.raises(InvalidCommandError):
        send_email_command([1, bad_id], template_id=4)


def test_too_many_targets_rejected(monkeypatch):
    monkeypatch.setattr("app.features.pipeline.bulk.commands.settings.BULK_MAX_TARGETS", 2)

    with pytest.raises(InvalidCommandError):
        archive_command([1, 2, 3])


def test_archive_command_uses_configured_status_and_note():
    command = archive_command([1, 2])

    assert command.kind == "archive"
    assert command.payload == {"status": "rejected", "notes": "[Archived via bulk action]"}


def test_send_form_command_drops_empty_message():
    command = send_form_command([1], form_id=12, custom_message="")

    assert command.kind == "sendForm"
    assert command.payload == {"form_id": 12, "custom_message": None}


def test_interview_slots_follow_interval():
    base = datetime(2026, 3, 2, 9, 0)

    slots = compute_interview_slots([40, 10, 30, 20], base, 1)

    assert [slot.application_id for slot in slots] == [40, 10, 30, 20]
    assert [slot.start_time.strftime("%H:%M") for slot in slots] == ["09:00", "10:00", "11:00", "12:00"]


def test_interview_slots_zero_interval_share_start():
    base = datetime(2026, 3, 2, 14, 30)

    slots = compute_interview_slots([1, 2, 3], base, 0)

    assert {slot.start_time for slot in slots} == {base}


def test_interview_command_freezes_selection_order():
    base = datetime(2026, 3, 2, 9, 0)

    command = interview_batch_command([4, 2, 3, 1], base, 1.5, "Room 4", stage_id=8)

    assert command.payload["ordered_ids"] == (4, 2, 3, 1)
    assert [slot.start_time.strftime("%H:%M") for slot in command.payload["slots"]] == [
        "09:00",
        "10:30",
        "12:00",
        "13:30",
    ]
    assert command.payload["stage_id"] == 8
    # Label only applies when everyone shares one slot
    assert command.payload["time_range_label"] is None


@pytest.mark.parametrize("interval", [-1, 24.5])
def test_interview_interval_bounds(interval):
    with pytest.raises(InvalidCommandError):
        interview_batch_command([1], datetime(2026, 3, 2, 9, 0), interval, "Room 4")


def test_interview_requires_location():
    with pytest.raises(InvalidCommandError):
        interview_batch_command([1], datetime(2026, 3, 2, 9, 0), 1, "   ")


def test_integral_ids_normalized():
    command = send_email_command([2.0, "3", 2], template_id=4)

    assert command.target_ids == frozenset({2, 3})
