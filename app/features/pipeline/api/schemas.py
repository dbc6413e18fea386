"""
Pipeline API request/response models.
Used by the pipeline router for input validation and output formatting.
"""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

from app.features.pipeline.domain.models import (
    DEFAULT_STAGE_COLOR,
    STATUS_SUBMITTED,
    Application,
    BulkOperationResult,
    PipelineStage,
    StageTransition,
)
from app.features.pipeline.dragdrop.resolver import DragOutcome, DragState
from app.features.pipeline.stages.categorizer import CategorizedStage
from app.features.pipeline.stages.graph import StageColumn

# =====================================================================
# Shared shapes
# =====================================================================


class StageModel(BaseModel):
    id: int = Field(..., ge=0)
    name: str
    order: int
    color: str = DEFAULT_STAGE_COLOR

    @classmethod
    def from_domain(cls, stage: PipelineStage) -> "StageModel":
        return cls(id=stage.id, name=stage.name, order=stage.order, color=stage.color)

    def to_domain(self) -> PipelineStage:
        return PipelineStage(id=self.id, name=self.name, order=self.order, color=self.color)


class ApplicationModel(BaseModel):
    id: int = Field(..., gt=0)
    name: str
    email: str = ""
    status: str = STATUS_SUBMITTED
    current_stage: int | None = None
    phone: str | None = None
    rating: int | None = None
    interview_date: datetime | None = None
    interview_time: str | None = None
    interview_location: str | None = None
    notes: str | None = None

    @classmethod
    def from_domain(cls, application: Application) -> "ApplicationModel":
        return cls(
            id=application.id,
            name=application.name,
            email=application.email,
            status=application.status,
            current_stage=application.current_stage,
            phone=application.phone,
            rating=application.rating,
            interview_date=application.interview_date,
            interview_time=application.interview_time,
            interview_location=application.interview_location,
            notes=application.notes,
        )

    def to_domain(self) -> Application:
        return Application(**self.model_dump())


# =====================================================================
# Board
# =====================================================================


class BucketResponse(BaseModel):
    name: Literal["active", "advanced", "archived"]
    applications: list[ApplicationModel]


class ColumnResponse(BaseModel):
    stage: StageModel
    read_only: bool
    count: int
    applications: list[ApplicationModel]
    buckets: list[BucketResponse] | None = Field(
        default=None, description="Sub-buckets; null when the column renders flat"
    )

    @classmethod
    def from_domain(cls, column: StageColumn, categorized: CategorizedStage) -> "ColumnResponse":
        buckets = None
        if not categorized.is_flat:
            buckets = [
                BucketResponse(name=name, applications=[ApplicationModel.from_domain(a) for a in members])
                for name, members in categorized.non_empty_buckets()
            ]
        return cls(
            stage=StageModel.from_domain(column.stage),
            read_only=column.is_read_only,
            count=column.count,
            applications=[ApplicationModel.from_domain(a) for a in column.applications],
            buckets=buckets,
        )


class ColumnsResponse(BaseModel):
    columns: list[ColumnResponse]
    stage_counts: dict[int, int]


class BoardReplaceRequest(BaseModel):
    stages: list[StageModel]
    applications: list[ApplicationModel]


class BoardReplaceResponse(BaseModel):
    stages: int
    applications: int
    selected: int


# =====================================================================
# Selection
# =====================================================================


class SelectionResponse(BaseModel):
    selected_ids: list[int]
    count: int
    state: Literal["none", "some", "all"]


class SelectionSetRequest(BaseModel):
    application_ids: list[int] = Field(default_factory=list)


class SelectionToggleRequest(BaseModel):
    application_id: int = Field(..., gt=0)


class SelectAllRequest(BaseModel):
    selected: bool = True
    visible_ids: list[int] | None = Field(
        default=None, description="Currently visible (filtered) ids; defaults to the whole board"
    )


class StageSelectionRequest(BaseModel):
    stage_id: int = Field(..., ge=0, description="0 selects the unassigned column")
    selected: bool = True


# =====================================================================
# Bulk
# =====================================================================


class BulkRequest(BaseModel):
    kind: Literal["moveStage", "sendEmail", "sendForm", "archive"]
    application_ids: list[int] | None = Field(
        default=None, description="Targets; defaults to the current selection"
    )
    stage_id: int | None = None
    notes: str | None = Field(default=None, max_length=2000)
    template_id: int | None = None
    form_id: int | None = None
    custom_message: str | None = Field(default=None, max_length=2000)
    concurrency_limit: int | None = Field(default=None, ge=1, le=50)


class InterviewBatchRequest(BaseModel):
    application_ids: list[int] | None = Field(
        default=None, description="Targets in slot order; defaults to the current selection"
    )
    start_time: datetime
    interval_hours: float = Field(default=1.0, ge=0, le=24)
    location: str = Field(..., min_length=1, max_length=500)
    notes: str | None = Field(default=None, max_length=2000)
    stage_id: int | None = Field(default=None, gt=0)
    time_range_label: str | None = Field(default=None, max_length=100)


class BulkItemResponse(BaseModel):
    application_id: int
    ok: bool
    reason: str | None = None
    failure_kind: str | None = None
    detail: str | None = None


class BulkResultResponse(BaseModel):
    kind: str
    total: int
    succeeded: int
    failed: int
    summary: str
    failure_breakdown: dict[str, int]
    items: list[BulkItemResponse]

    @classmethod
    def from_domain(cls, result: BulkOperationResult) -> "BulkResultResponse":
        return cls(
            kind=result.kind,
            total=result.total,
            succeeded=result.succeeded,
            failed=result.failed,
            summary=result.summary(),
            failure_breakdown=result.failure_breakdown(),
            items=[
                BulkItemResponse(
                    application_id=app_id,
                    ok=outcome.ok,
                    reason=outcome.reason,
                    failure_kind=outcome.failure_kind,
                    detail=outcome.detail,
                )
                for app_id, outcome in sorted(result.per_item.items())
            ],
        )


# =====================================================================
# Moves and drag
# =====================================================================


class MoveRequest(BaseModel):
    stage_id: int = Field(..., ge=0)
    notes: str | None = Field(default=None, max_length=2000)


class MoveResponse(BaseModel):
    status: Literal["moved", "rejected"]
    reason: str | None = None
    application: ApplicationModel


class StatusUpdateRequest(BaseModel):
    status: str = Field(..., min_length=1, max_length=50)
    notes: str | None = Field(default=None, max_length=2000)


class DragStartRequest(BaseModel):
    application_id: int = Field(..., gt=0)
    keyboard: bool = False


class DropTargetModel(BaseModel):
    kind: Literal["stage", "application"]
    id: int = Field(..., ge=0)


class DragOverRequest(BaseModel):
    target: DropTargetModel | None = None


class DragDropRequest(BaseModel):
    target: DropTargetModel | None = Field(
        default=None, description="Drop target; defaults to the last target hovered"
    )


class DragStateResponse(BaseModel):
    phase: Literal["idle", "dragging"]
    active_application_id: int | None = None
    over: DropTargetModel | None = None
    keyboard: bool = False

    @classmethod
    def from_domain(cls, state: DragState) -> "DragStateResponse":
        over = DropTargetModel(kind=state.over.kind, id=state.over.id) if state.over else None
        return cls(
            phase=state.phase,
            active_application_id=state.active_application_id,
            over=over,
            keyboard=state.keyboard,
        )


class NoticeModel(BaseModel):
    title: str
    description: str


class DragOutcomeResponse(BaseModel):
    status: Literal["moved", "rejected", "cancelled", "failed"]
    application_id: int | None = None
    target_stage_id: int | None = None
    reason: str | None = None
    application: ApplicationModel | None = None
    notice: NoticeModel | None = None

    @classmethod
    def from_domain(cls, outcome: DragOutcome) -> "DragOutcomeResponse":
        return cls(
            status=outcome.status,
            application_id=outcome.application_id,
            target_stage_id=outcome.target_stage_id,
            reason=outcome.reason,
            application=ApplicationModel.from_domain(outcome.application) if outcome.application else None,
            notice=(
                NoticeModel(title=outcome.notice.title, description=outcome.notice.description)
                if outcome.notice
                else None
            ),
        )


class TransitionResponse(BaseModel):
    application_id: int
    from_stage: int | None
    to_stage: int | None
    changed_at: datetime
    actor: str
    notes: str | None = None

    @classmethod
    def from_domain(cls, transition: StageTransition) -> "TransitionResponse":
        return cls(
            application_id=transition.application_id,
            from_stage=transition.from_stage,
            to_stage=transition.to_stage,
            changed_at=transition.changed_at,
            actor=transition.actor,
            notes=transition.notes,
        )


class StageReorderRequest(BaseModel):
    active_stage_id: int = Field(..., gt=0)
    over_stage_id: int = Field(..., gt=0)


class StagesResponse(BaseModel):
    stages: list[StageModel]
