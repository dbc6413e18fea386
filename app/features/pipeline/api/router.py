"""
Pipeline board routes.

Usage:
    1. GET /pipeline/columns - Stage columns with sub-buckets and counts
    2. GET|POST|DELETE /pipeline/selection - Read, replace or clear the selection
    3. POST /pipeline/selection/toggle|select-all|stage - Selection shortcuts
    4. POST /pipeline/bulk - Run a bulk command (defaults to the selection)
    5. POST /pipeline/bulk/interviews - Schedule a batch of interviews
    6. POST /pipeline/drag/start|over|drop|cancel - Drag gesture
    7. POST /pipeline/applications/{id}/move - Quick move
    8. POST /pipeline/applications/{id}/status - Single status update
    9. GET /pipeline/applications/{id}/history - Stage transition history
    10. POST /pipeline/stages/reorder - Move a stage header
    11. PUT /pipeline/board - Authoritative refresh
"""

from fastapi import APIRouter, Depends, HTTPException, Request, status

from app.features.pipeline.api.schemas import (
    ApplicationModel,
    BoardReplaceRequest,
    BoardReplaceResponse,
    BulkRequest,
    BulkResultResponse,
    ColumnResponse,
    ColumnsResponse,
    DragDropRequest,
    DragOutcomeResponse,
    DragOverRequest,
    DragStartRequest,
    DragStateResponse,
    DropTargetModel,
    InterviewBatchRequest,
    MoveRequest,
    MoveResponse,
    SelectAllRequest,
    SelectionResponse,
    SelectionSetRequest,
    SelectionToggleRequest,
    StageModel,
    StageReorderRequest,
    StageSelectionRequest,
    StagesResponse,
    StatusUpdateRequest,
    TransitionResponse,
)
from app.features.pipeline.bulk.commands import (
    archive_command,
    move_stage_command,
    send_email_command,
    send_form_command,
)
from app.features.pipeline.domain.errors import (
    CollaboratorError,
    InvalidCommandError,
    NotFoundError,
    OptimisticRollbackError,
    PipelineError,
)
from app.features.pipeline.domain.models import BulkCommand
from app.features.pipeline.dragdrop.resolver import DropTarget
from app.features.pipeline.services.pipeline_session import PipelineSession
from app.features.pipeline.stages.transitions import Reject
from app.infrastructure.observability.logging import get_logger

router = APIRouter(prefix="/pipeline", tags=["pipeline"])
logger = get_logger(__name__)


def get_pipeline_session(request: Request) -> PipelineSession:
    session = getattr(request.app.state, "pipeline_session", None)
    if session is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Pipeline session not initialized"
        )
    return session


def _http_error(e: PipelineError) -> HTTPException:
    if isinstance(e, InvalidCommandError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)
    if isinstance(e, NotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.message)
    if isinstance(e, (OptimisticRollbackError, CollaboratorError)):
        return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=e.message)
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=e.message)


def _selection_response(session: PipelineSession) -> SelectionResponse:
    selected = list(session.selection)
    return SelectionResponse(
        selected_ids=selected,
        count=len(selected),
        state=session.selection.state(len(session.applications())),
    )


def _drop_target(model: DropTargetModel | None) -> DropTarget | None:
    if model is None:
        return None
    return DropTarget(kind=model.kind, id=model.id)


# =====================================================================
# Board
# =====================================================================


@router.get("/columns", response_model=ColumnsResponse)
async def get_columns(session: PipelineSession = Depends(get_pipeline_session)):
    """Stage columns in display order, Unassigned first when it has members."""
    columns = [ColumnResponse.from_domain(column, buckets) for column, buckets in session.categorized_columns()]
    return ColumnsResponse(columns=columns, stage_counts=session.stage_counts())


@router.put("/board", response_model=BoardReplaceResponse)
async def replace_board(
    request: BoardReplaceRequest, session: PipelineSession = Depends(get_pipeline_session)
):
    """Replace stages and candidates with an authoritative snapshot."""
    try:
        session.replace_board(
            [stage.to_domain() for stage in request.stages],
            [application.to_domain() for application in request.applications],
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e
    return BoardReplaceResponse(
        stages=len(session.graph), applications=len(session.store), selected=len(session.selection)
    )


@router.post("/stages/reorder", response_model=StagesResponse)
async def reorder_stages(
    request: StageReorderRequest, session: PipelineSession = Depends(get_pipeline_session)
):
    try:
        graph = await session.reorder_stages(request.active_stage_id, request.over_stage_id)
    except PipelineError as e:
        raise _http_error(e) from e
    return StagesResponse(stages=[StageModel.from_domain(stage) for stage in graph.stages_in_order()])


# =====================================================================
# Selection
# =====================================================================


@router.get("/selection", response_model=SelectionResponse)
async def get_selection(session: PipelineSession = Depends(get_pipeline_session)):
    return _selection_response(session)


@router.post("/selection", response_model=SelectionResponse)
async def set_selection(
    request: SelectionSetRequest, session: PipelineSession = Depends(get_pipeline_session)
):
    unknown = [app_id for app_id in request.application_ids if session.store.get(app_id) is None]
    if unknown:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Unknown applications: {unknown}")
    session.clear_selection()
    for app_id in set(request.application_ids):
        session.toggle_selection(app_id)
    return _selection_response(session)


@router.delete("/selection", response_model=SelectionResponse)
async def clear_selection(session: PipelineSession = Depends(get_pipeline_session)):
    session.clear_selection()
    return _selection_response(session)


@router.post("/selection/toggle", response_model=SelectionResponse)
async def toggle_selection(
    request: SelectionToggleRequest, session: PipelineSession = Depends(get_pipeline_session)
):
    try:
        session.toggle_selection(request.application_id)
    except NotFoundError as e:
        raise _http_error(e) from e
    return _selection_response(session)


@router.post("/selection/select-all", response_model=SelectionResponse)
async def select_all(request: SelectAllRequest, session: PipelineSession = Depends(get_pipeline_session)):
    visible = None
    if request.visible_ids is not None:
        wanted = set(request.visible_ids)
        visible = [application for application in session.applications() if application.id in wanted]
    session.select_all_visible(request.selected, visible)
    return _selection_response(session)


@router.post("/selection/stage", response_model=SelectionResponse)
async def select_stage(
    request: StageSelectionRequest, session: PipelineSession = Depends(get_pipeline_session)
):
    session.toggle_stage_selection(request.stage_id, request.selected)
    return _selection_response(session)


# =====================================================================
# Bulk
# =====================================================================


def _build_command(request: BulkRequest, targets: list[int]) -> BulkCommand:
    if request.kind == "moveStage":
        if request.stage_id is None:
            raise InvalidCommandError("stage_id is required for moveStage")
        return move_stage_command(targets, request.stage_id, request.notes)
    if request.kind == "sendEmail":
        if request.template_id is None:
            raise InvalidCommandError("template_id is required for sendEmail")
        return send_email_command(targets, request.template_id)
    if request.kind == "sendForm":
        if request.form_id is None:
            raise InvalidCommandError("form_id is required for sendForm")
        return send_form_command(targets, request.form_id, request.custom_message)
    return archive_command(targets)


@router.post("/bulk", response_model=BulkResultResponse)
async def run_bulk(request: BulkRequest, session: PipelineSession = Depends(get_pipeline_session)):
    """
    Run one bulk command to completion.

    Per-item failures are reported in the result, never as an HTTP error.
    """
    targets = request.application_ids if request.application_ids is not None else list(session.selection)
    try:
        command = _build_command(request, targets)
    except InvalidCommandError as e:
        raise _http_error(e) from e

    result = await session.run_bulk_command(command, concurrency_limit=request.concurrency_limit)
    return BulkResultResponse.from_domain(result)


@router.post("/bulk/interviews", response_model=BulkResultResponse)
async def schedule_interviews(
    request: InterviewBatchRequest, session: PipelineSession = Depends(get_pipeline_session)
):
    try:
        result = await session.schedule_interviews(
            start_time=request.start_time,
            interval_hours=request.interval_hours,
            location=request.location,
            notes=request.notes,
            stage_id=request.stage_id,
            time_range_label=request.time_range_label,
            target_ids=request.application_ids,
        )
    except InvalidCommandError as e:
        raise _http_error(e) from e
    return BulkResultResponse.from_domain(result)


# =====================================================================
# Single candidate
# =====================================================================


@router.post("/applications/{application_id}/move", response_model=MoveResponse)
async def move_application(
    application_id: int, request: MoveRequest, session: PipelineSession = Depends(get_pipeline_session)
):
    try:
        moved = await session.quick_move(application_id, request.stage_id, request.notes)
    except PipelineError as e:
        raise _http_error(e) from e

    if isinstance(moved, Reject):
        return MoveResponse(
            status="rejected",
            reason=moved.reason,
            application=ApplicationModel.from_domain(session.get_application(application_id)),
        )
    return MoveResponse(status="moved", application=ApplicationModel.from_domain(moved))


@router.post("/applications/{application_id}/status", response_model=ApplicationModel)
async def update_application_status(
    application_id: int,
    request: StatusUpdateRequest,
    session: PipelineSession = Depends(get_pipeline_session),
):
    try:
        updated = await session.update_status(application_id, request.status, request.notes)
    except PipelineError as e:
        raise _http_error(e) from e
    return ApplicationModel.from_domain(updated)


@router.get("/applications/{application_id}/history", response_model=list[TransitionResponse])
async def application_history(
    application_id: int, session: PipelineSession = Depends(get_pipeline_session)
):
    try:
        session.get_application(application_id)
    except NotFoundError as e:
        raise _http_error(e) from e
    return [TransitionResponse.from_domain(record) for record in session.history_for(application_id)]


# =====================================================================
# Drag gesture
# =====================================================================


@router.post("/drag/start", response_model=DragStateResponse)
async def drag_start(request: DragStartRequest, session: PipelineSession = Depends(get_pipeline_session)):
    try:
        state = session.drag.start(request.application_id, keyboard=request.keyboard)
    except NotFoundError as e:
        raise _http_error(e) from e
    return DragStateResponse.from_domain(state)


@router.post("/drag/over", response_model=DragStateResponse)
async def drag_over(request: DragOverRequest, session: PipelineSession = Depends(get_pipeline_session)):
    return DragStateResponse.from_domain(session.drag.over(_drop_target(request.target)))


@router.post("/drag/drop", response_model=DragOutcomeResponse)
async def drag_drop(request: DragDropRequest, session: PipelineSession = Depends(get_pipeline_session)):
    outcome = await session.drag.drop(_drop_target(request.target))
    return DragOutcomeResponse.from_domain(outcome)


@router.post("/drag/cancel", response_model=DragOutcomeResponse)
async def drag_cancel(session: PipelineSession = Depends(get_pipeline_session)):
    return DragOutcomeResponse.from_domain(session.drag.cancel())
