"""
Transition validator - the single rule set for every stage move path
(drag-and-drop, quick move, bulk move).
"""

from __future__ import annotations

from dataclasses import dataclass

from app.features.pipeline.domain.models import UNASSIGNED_STAGE_ID, Application

REASON_READ_ONLY = "target is read-only"
REASON_NO_OP = "no-op"
REASON_UNKNOWN_STAGE = "unknown stage"


@dataclass(slots=True, frozen=True)
class Accept:
    target_stage_id: int

    @property
    def accepted(self) -> bool:
        return True


@dataclass(slots=True, frozen=True)
class Reject:
    reason: str

    @property
    def accepted(self) -> bool:
        return False

    @property
    def is_silent(self) -> bool:
        """No-op rejections are never shown to the operator."""
        return self.reason in (REASON_NO_OP, REASON_READ_ONLY)


Verdict = Accept | Reject


class TransitionValidator:
    """
    Rules, in order:
    1. Target is the Unassigned sentinel -> Reject("target is read-only")
    2. Target equals the current stage -> Reject("no-op")
    3. Otherwise -> Accept

    When constructed with the set of known stage ids, unknown targets are
    rejected as well so a stale board cannot post a move the service refuses.
    """

    def __init__(self, known_stage_ids: set[int] | None = None):
        self._known = known_stage_ids

    def validate(self, application: Application, target_stage_id: int) -> Verdict:
        if target_stage_id == UNASSIGNED_STAGE_ID:
            return Reject(REASON_READ_ONLY)
        if target_stage_id == application.current_stage:
            return Reject(REASON_NO_OP)
        if self._known is not None and target_stage_id not in self._known:
            return Reject(REASON_UNKNOWN_STAGE)
        return Accept(target_stage_id)
