"""
Pipeline session - the surface the board talks to.

One session per board: it owns the stage graph, the candidate store, the
selection set and the drag resolver, and wires every action through the
same StageMover/OptimisticStateManager pair.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import replace
from datetime import datetime

from app.features.pipeline.bulk.commands import SCHEDULE_INTERVIEWS, interview_batch_command
from app.features.pipeline.bulk.coordinator import BulkOperationCoordinator
from app.features.pipeline.bulk.interviews import InterviewBatchScheduler
from app.features.pipeline.bulk.progress import ProgressCallback
from app.features.pipeline.domain.errors import NotFoundError
from app.features.pipeline.domain.models import (
    Application,
    BulkCommand,
    BulkOperationResult,
    PipelineStage,
    StageTransition,
)
from app.features.pipeline.dragdrop.resolver import DragDropResolver
from app.features.pipeline.repository.actions_client import PipelineActions
from app.features.pipeline.services.stage_mover import StageMover
from app.features.pipeline.stages.categorizer import CategorizedStage, categorize
from app.features.pipeline.stages.graph import StageColumn, StageGraph
from app.features.pipeline.stages.transitions import Reject, TransitionValidator
from app.features.pipeline.state.optimistic import OptimisticStateManager
from app.features.pipeline.state.selection import SelectionSet
from app.features.pipeline.state.store import InMemoryApplicationStore
from app.infrastructure.audit.audit_logger import audit_logger
from app.infrastructure.audit.transition_log import TransitionHistory
from app.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


class PipelineSession:
    def __init__(
        self,
        actions: PipelineActions,
        stages: Iterable[PipelineStage] = (),
        applications: Iterable[Application] = (),
        actor: str = "system",
        concurrency_limit: int | None = None,
    ):
        self.actions = actions
        self.actor = actor
        self.graph = StageGraph(stages)
        self.store = InMemoryApplicationStore(applications)
        self.selection = SelectionSet()
        self.history = TransitionHistory()
        self.optimistic = OptimisticStateManager(self.store)
        self.mover = StageMover(
            actions, self.optimistic, self._validator_for(self.graph), self.history, actor
        )
        self.coordinator = BulkOperationCoordinator(
            actions, self.optimistic, self.mover, concurrency_limit=concurrency_limit
        )
        self.interviews = InterviewBatchScheduler(actions, self.optimistic, self.history, actor)
        self.drag = DragDropResolver(self.mover, lambda: self.graph)

    @staticmethod
    def _validator_for(graph: StageGraph) -> TransitionValidator:
        return TransitionValidator({stage.id for stage in graph.stages_in_order()})

    # =================================================================
    # Board state
    # =================================================================

    def applications(self) -> list[Application]:
        return self.store.all()

    def get_application(self, application_id: int) -> Application:
        return self.store.require(application_id)

    def stage_columns(self, applications: Iterable[Application] | None = None) -> list[StageColumn]:
        return self.graph.columns_for_display(self.store.all() if applications is None else applications)

    def categorized_columns(self) -> list[tuple[StageColumn, CategorizedStage]]:
        return [(column, categorize(column.applications)) for column in self.stage_columns()]

    def stage_counts(self) -> dict[int, int]:
        return self.graph.stage_counts(self.store.all())

    def replace_board(self, stages: Iterable[PipelineStage], applications: Iterable[Application]) -> None:
        """Authoritative refresh of stages and candidates."""
        self.graph = StageGraph(stages)
        self.mover.validator = self._validator_for(self.graph)
        self.store.replace_all(applications)
        self.selection.retain_visible(self.store.all())
        if self.drag.state.is_dragging and self.store.get(self.drag.state.active_application_id) is None:
            self.drag.cancel()
        logger.info("Board refreshed", stages=len(self.graph), applications=len(self.store))

    async def refresh(self, job_id: int) -> None:
        """Reload stages and candidates for one job from the collaborator."""
        stages = await self.actions.list_stages()
        applications = await self.actions.list_applications(job_id)
        self.replace_board(stages, applications)

    def history_for(self, application_id: int) -> list[StageTransition]:
        return self.history.history_for(application_id)

    # =================================================================
    # Selection
    # =================================================================

    def toggle_selection(self, application_id: int) -> bool:
        if self.store.get(application_id) is None:
            raise NotFoundError("Application", application_id)
        return self.selection.toggle(application_id)

    def select_all_visible(self, selected: bool = True, visible: Iterable[Application] | None = None) -> None:
        self.selection.select_all_visible(self.store.all() if visible is None else visible, selected)

    def toggle_stage_selection(self, stage_id: int | None, selected: bool) -> None:
        self.selection.toggle_stage(stage_id, self.store.all(), selected)

    def clear_selection(self) -> None:
        self.selection.clear()

    # =================================================================
    # Single-candidate actions
    # =================================================================

    async def quick_move(
        self, application_id: int, stage_id: int, notes: str | None = None
    ) -> Application | Reject:
        return await self.mover.move(application_id, stage_id, notes)

    async def update_status(self, application_id: int, status: str, notes: str | None = None) -> Application:
        """Optimistic status change. Raises OptimisticRollbackError on failure."""
        if self.store.get(application_id) is None:
            raise NotFoundError("Application", application_id)
        return await self.optimistic.execute(
            application_id,
            lambda current: replace(current, status=status),
            lambda: self.actions.update_status(application_id, status, notes),
        )

    # =================================================================
    # Bulk actions
    # =================================================================

    async def run_bulk_command(
        self,
        command: BulkCommand,
        concurrency_limit: int | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> BulkOperationResult:
        """
        Run a bulk command to completion.

        The selection is cleared only when nothing failed, so the operator
        can retry the failures against the same selection.
        """
        if command.kind == SCHEDULE_INTERVIEWS:
            result = await self.interviews.schedule(command, self.graph, on_progress=on_progress)
        else:
            result = await self.coordinator.run(
                command, concurrency_limit=concurrency_limit, on_progress=on_progress
            )
        self._settle_selection(result)
        return result

    async def schedule_interviews(
        self,
        start_time: datetime,
        interval_hours: float,
        location: str,
        notes: str | None = None,
        stage_id: int | None = None,
        time_range_label: str | None = None,
        target_ids: Iterable[int] | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> BulkOperationResult:
        """Schedule interviews for target_ids, or the current selection in its iteration order."""
        command = interview_batch_command(
            list(self.selection) if target_ids is None else target_ids,
            start_time,
            interval_hours,
            location,
            notes=notes,
            stage_id=stage_id,
            time_range_label=time_range_label,
        )
        return await self.run_bulk_command(command, on_progress=on_progress)

    def _settle_selection(self, result: BulkOperationResult) -> None:
        if result.failed == 0:
            self.selection.clear()

    # =================================================================
    # Stage ordering
    # =================================================================

    async def reorder_stages(self, active_stage_id: int, over_stage_id: int) -> StageGraph:
        """
        Move one stage header onto another's position and persist new orders.

        The new graph is shown immediately; if any order update fails the
        previous graph is restored and the error is re-raised.
        """
        previous = self.graph
        reordered = previous.reorder(active_stage_id, over_stage_id)
        changes = previous.changed_orders(reordered)
        if not changes:
            return previous

        self.graph = reordered
        try:
            for stage_id, order in changes.items():
                await self.actions.update_stage_order(stage_id, order)
        except Exception as e:
            self.graph = previous
            logger.warning(
                "Stage reorder rolled back",
                active_stage_id=active_stage_id,
                over_stage_id=over_stage_id,
                error=str(e),
            )
            raise

        audit_logger.log(
            actor=self.actor,
            action="stages_reordered",
            resource_type="pipeline_stage",
            resource_id=active_stage_id,
            resource_count=len(changes),
            metadata={"orders": changes},
        )
        return reordered
