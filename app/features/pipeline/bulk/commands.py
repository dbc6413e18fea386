"""
Bulk command builders.

Commands are built fresh per invocation and validated here, so the
coordinator only ever sees well-formed input.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime, timedelta

from app.config import settings
from app.features.pipeline.domain.errors import InvalidCommandError
from app.features.pipeline.domain.models import (
    UNASSIGNED_STAGE_ID,
    BulkCommand,
    InterviewSlot,
)

MOVE_STAGE = "moveStage"
SEND_EMAIL = "sendEmail"
SEND_FORM = "sendForm"
ARCHIVE = "archive"
SCHEDULE_INTERVIEWS = "scheduleInterviews"


def _validated_ids(target_ids: Iterable[int]) -> list[int]:
    """Normalize targets preserving first-seen order, rejecting bad ids."""
    ordered: list[int] = []
    seen: set[int] = set()
    for raw in target_ids:
        if isinstance(raw, bool) or (isinstance(raw, float) and not raw.is_integer()):
            raise InvalidCommandError(f"Invalid application id: {raw!r}")
        try:
            app_id = int(raw)
        except (TypeError, ValueError, OverflowError) as e:
            raise InvalidCommandError(f"Invalid application id: {raw!r}") from e
        if app_id <= 0:
            raise InvalidCommandError(f"Invalid application id: {raw!r}")
        if app_id not in seen:
            seen.add(app_id)
            ordered.append(app_id)

    if not ordered:
        raise InvalidCommandError("No applications selected")
    if len(ordered) > settings.BULK_MAX_TARGETS:
        raise InvalidCommandError(
            f"Too many applications selected ({len(ordered)} > {settings.BULK_MAX_TARGETS})"
        )
    return ordered


def move_stage_command(target_ids: Iterable[int], stage_id: int, notes: str | None = None) -> BulkCommand:
    if stage_id == UNASSIGNED_STAGE_ID:
        raise InvalidCommandError("target is read-only", details={"stage_id": stage_id})
    if stage_id < 0:
        raise InvalidCommandError(f"Invalid stage id: {stage_id}")
    ids = _validated_ids(target_ids)
    return BulkCommand(kind=MOVE_STAGE, target_ids=frozenset(ids), payload={"stage_id": stage_id, "notes": notes})


def send_email_command(target_ids: Iterable[int], template_id: int) -> BulkCommand:
    if template_id <= 0:
        raise InvalidCommandError(f"Invalid template id: {template_id}")
    ids = _validated_ids(target_ids)
    return BulkCommand(kind=SEND_EMAIL, target_ids=frozenset(ids), payload={"template_id": template_id})


def send_form_command(
    target_ids: Iterable[int], form_id: int, custom_message: str | None = None
) -> BulkCommand:
    if form_id <= 0:
        raise InvalidCommandError(f"Invalid form id: {form_id}")
    ids = _validated_ids(target_ids)
    payload = {"form_id": form_id, "custom_message": custom_message or None}
    return BulkCommand(kind=SEND_FORM, target_ids=frozenset(ids), payload=payload)


def archive_command(target_ids: Iterable[int]) -> BulkCommand:
    ids = _validated_ids(target_ids)
    payload = {"status": settings.ARCHIVE_STATUS, "notes": settings.ARCHIVE_NOTE}
    return BulkCommand(kind=ARCHIVE, target_ids=frozenset(ids), payload=payload)


def compute_interview_slots(
    ordered_ids: Iterable[int], base_time: datetime, interval_hours: float
) -> list[InterviewSlot]:
    """One start time per candidate: base_time + index * interval_hours."""
    step = timedelta(hours=interval_hours)
    return [
        InterviewSlot(application_id=app_id, start_time=base_time + step * index)
        for index, app_id in enumerate(ordered_ids)
    ]


def interview_batch_command(
    target_ids: Iterable[int],
    start_time: datetime,
    interval_hours: float,
    location: str,
    notes: str | None = None,
    stage_id: int | None = None,
    time_range_label: str | None = None,
) -> BulkCommand:
    """
    Build a batch interview command.

    Slot assignment follows the iteration order of target_ids at build time
    and is frozen into the payload.
    """
    if interval_hours < 0 or interval_hours > settings.INTERVIEW_MAX_INTERVAL_HOURS:
        raise InvalidCommandError(
            f"intervalHours must be between 0 and {settings.INTERVIEW_MAX_INTERVAL_HOURS}"
        )
    if not location or not location.strip():
        raise InvalidCommandError("Interview location is required")
    if stage_id is not None and stage_id <= UNASSIGNED_STAGE_ID:
        raise InvalidCommandError("target is read-only", details={"stage_id": stage_id})

    ordered = _validated_ids(target_ids)
    slots = compute_interview_slots(ordered, start_time, interval_hours)
    # Time label only makes sense when every candidate shares one slot
    label = time_range_label if interval_hours == 0 else None
    payload = {
        "ordered_ids": tuple(ordered),
        "slots": tuple(slots),
        "start_time": start_time,
        "interval_hours": interval_hours,
        "location": location.strip(),
        "notes": notes or None,
        "stage_id": stage_id,
        "time_range_label": label,
    }
    return BulkCommand(kind=SCHEDULE_INTERVIEWS, target_ids=frozenset(ordered), payload=payload)
