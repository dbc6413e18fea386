"""
Domain models for the pipeline board.

Plain dataclasses shared by the engine, the collaborator client and the
API layer. Records are frozen: every change to a candidate produces a new
instance, which is what makes snapshot/rollback exact.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Literal

UNASSIGNED_STAGE_ID = 0
UNASSIGNED_STAGE_NAME = "Unassigned"
UNASSIGNED_STAGE_ORDER = -1
UNASSIGNED_STAGE_COLOR = "#64748b"
DEFAULT_STAGE_COLOR = "#3b82f6"

# Known candidate statuses. The collaborator may send others; they are kept verbatim.
STATUS_SUBMITTED = "submitted"
STATUS_REVIEWED = "reviewed"
STATUS_SHORTLISTED = "shortlisted"
STATUS_REJECTED = "rejected"
STATUS_DOWNLOADED = "downloaded"
KNOWN_STATUSES = (
    STATUS_SUBMITTED,
    STATUS_REVIEWED,
    STATUS_SHORTLISTED,
    STATUS_REJECTED,
    STATUS_DOWNLOADED,
)

BulkKind = Literal["moveStage", "sendEmail", "sendForm", "archive", "scheduleInterviews"]
FailureKind = Literal["duplicate-invitation", "unauthorized", "other-failure"]

BULK_KINDS: tuple[str, ...] = ("moveStage", "sendEmail", "sendForm", "archive", "scheduleInterviews")


@dataclass(slots=True, frozen=True)
class PipelineStage:
    """A named, ordered step in the hiring pipeline."""

    id: int
    name: str
    order: int
    color: str = DEFAULT_STAGE_COLOR

    @property
    def is_unassigned(self) -> bool:
        return self.id == UNASSIGNED_STAGE_ID

    @classmethod
    def unassigned(cls) -> PipelineStage:
        return cls(
            id=UNASSIGNED_STAGE_ID,
            name=UNASSIGNED_STAGE_NAME,
            order=UNASSIGNED_STAGE_ORDER,
            color=UNASSIGNED_STAGE_COLOR,
        )

    @classmethod
    def from_dict(cls, data: dict) -> PipelineStage:
        return cls(
            id=int(data["id"]),
            name=data.get("name", ""),
            order=int(data.get("order") or 0),
            color=data.get("color") or DEFAULT_STAGE_COLOR,
        )

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "order": self.order, "color": self.color}


@dataclass(slots=True, frozen=True)
class Application:
    """A candidate's application as the board sees it."""

    id: int
    name: str
    email: str
    status: str = STATUS_SUBMITTED
    current_stage: int | None = None
    phone: str | None = None
    rating: int | None = None
    interview_date: datetime | None = None
    interview_time: str | None = None
    interview_location: str | None = None
    notes: str | None = None

    @property
    def is_unassigned(self) -> bool:
        return self.current_stage is None

    @classmethod
    def from_dict(cls, data: dict) -> Application:
        """Build from collaborator JSON (camelCase) or internal dicts (snake_case)."""
        stage = data.get("currentStage", data.get("current_stage"))
        interview = data.get("interviewDate", data.get("interview_date"))
        if isinstance(interview, str):
            interview = datetime.fromisoformat(interview.replace("Z", "+00:00"))
        return cls(
            id=int(data["id"]),
            name=data.get("name", ""),
            email=data.get("email", ""),
            status=data.get("status") or STATUS_SUBMITTED,
            current_stage=int(stage) if stage else None,
            phone=data.get("phone"),
            rating=data.get("rating"),
            interview_date=interview,
            interview_time=data.get("interviewTime", data.get("interview_time")),
            interview_location=data.get("interviewLocation", data.get("interview_location")),
            notes=data.get("notes"),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "status": self.status,
            "current_stage": self.current_stage,
            "phone": self.phone,
            "rating": self.rating,
            "interview_date": self.interview_date.isoformat() if self.interview_date else None,
            "interview_time": self.interview_time,
            "interview_location": self.interview_location,
            "notes": self.notes,
        }


@dataclass(slots=True, frozen=True)
class StageTransition:
    """Append-only history record; one per accepted move."""

    application_id: int
    from_stage: int | None
    to_stage: int | None
    changed_at: datetime
    actor: str
    notes: str | None = None


@dataclass(slots=True, frozen=True)
class BulkCommand:
    """One logical action over a set of candidates. Never mutated after dispatch."""

    kind: str
    target_ids: frozenset[int]
    payload: dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True, frozen=True)
class ItemOutcome:
    """Per-item result of a bulk run: ok or error(reason)."""

    ok: bool
    reason: str | None = None
    failure_kind: str | None = None
    detail: str | None = None

    @classmethod
    def success(cls, detail: str | None = None) -> ItemOutcome:
        return cls(ok=True, detail=detail)

    @classmethod
    def error(cls, reason: str, failure_kind: str = "other-failure") -> ItemOutcome:
        return cls(ok=False, reason=reason, failure_kind=failure_kind)


@dataclass(slots=True)
class BulkOperationResult:
    """Aggregate of a bulk run. succeeded + failed == total on completion."""

    kind: str
    total: int
    per_item: dict[int, ItemOutcome] = field(default_factory=dict)

    @property
    def succeeded(self) -> int:
        return sum(1 for outcome in self.per_item.values() if outcome.ok)

    @property
    def failed(self) -> int:
        return sum(1 for outcome in self.per_item.values() if not outcome.ok)

    @property
    def is_complete(self) -> bool:
        return len(self.per_item) == self.total

    def failed_ids(self) -> list[int]:
        return sorted(app_id for app_id, outcome in self.per_item.items() if not outcome.ok)

    def succeeded_ids(self) -> list[int]:
        return sorted(app_id for app_id, outcome in self.per_item.items() if outcome.ok)

    def failure_breakdown(self) -> dict[str, int]:
        breakdown: dict[str, int] = {}
        for outcome in self.per_item.values():
            if not outcome.ok:
                key = outcome.failure_kind or "other-failure"
                breakdown[key] = breakdown.get(key, 0) + 1
        return breakdown

    def summary(self, verb: str | None = None) -> str:
        """Operator-facing toast text for this run."""
        if self.kind == "sendForm":
            breakdown = self.failure_breakdown()
            duplicates = breakdown.get("duplicate-invitation", 0)
            return (
                f"Created: {self.succeeded}, Duplicates: {duplicates}, "
                f"Failed: {self.failed - duplicates}"
            )
        verb = verb or {
            "moveStage": "Moved",
            "sendEmail": "Sent",
            "archive": "Archived",
            "scheduleInterviews": "Scheduled",
        }.get(self.kind, "Succeeded")
        return f"{verb}: {self.succeeded}, Failed: {self.failed}"

    def to_dict(self) -> dict:
        return {
            "kind": self.kind,
            "total": self.total,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "summary": self.summary(),
            "failure_breakdown": self.failure_breakdown(),
            "per_item": {
                str(app_id): {
                    "ok": outcome.ok,
                    "reason": outcome.reason,
                    "failure_kind": outcome.failure_kind,
                    "detail": outcome.detail,
                }
                for app_id, outcome in sorted(self.per_item.items())
            },
        }


@dataclass(slots=True, frozen=True)
class InterviewSlot:
    """One computed interview start time for a selected candidate."""

    application_id: int
    start_time: datetime
