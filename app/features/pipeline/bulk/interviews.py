"""
Batch interview scheduling.

Unlike the other bulk kinds this is one server-side call for the whole
selection. Local candidates are updated optimistically before the call,
then committed or rolled back per id according to the server's answer.
"""

from __future__ import annotations

import time
from dataclasses import replace
from typing import Any

from app.features.pipeline.bulk.commands import SCHEDULE_INTERVIEWS
from app.features.pipeline.bulk.progress import ProgressCallback, notify_progress
from app.features.pipeline.domain.errors import InvalidCommandError, classify_failure, failure_reason
from app.features.pipeline.domain.models import (
    Application,
    BulkCommand,
    BulkOperationResult,
    InterviewSlot,
    ItemOutcome,
)
from app.features.pipeline.repository.actions_client import PipelineActions
from app.features.pipeline.stages.graph import StageGraph
from app.features.pipeline.state.optimistic import OptimisticMutation, OptimisticStateManager
from app.infrastructure.audit.transition_log import TransitionHistory
from app.infrastructure.observability.logging import get_logger, log_bulk_run

logger = get_logger(__name__)


def should_advance(application: Application, target_stage_id: int | None, graph: StageGraph) -> bool:
    """Advance only unassigned candidates or those whose stage orders before the target."""
    if target_stage_id is None or target_stage_id not in graph:
        return False
    if application.current_stage is None:
        return True
    return graph.is_before(application.current_stage, target_stage_id)


def normalize_batch_response(
    ordered_ids: tuple[int, ...] | list[int], response: dict[str, Any]
) -> BulkOperationResult:
    """Turn {total, scheduledCount, failedCount, failed: [{id, error}]} into per-item outcomes."""
    result = BulkOperationResult(kind=SCHEDULE_INTERVIEWS, total=len(ordered_ids))
    failures: dict[int, str] = {}
    for entry in response.get("failed") or []:
        try:
            failures[int(entry.get("id"))] = str(entry.get("error") or "Scheduling failed")
        except (TypeError, ValueError):
            logger.warning("Unparseable interview failure entry", entry=entry)

    for app_id in ordered_ids:
        if app_id in failures:
            result.per_item[app_id] = ItemOutcome.error(failures[app_id])
        else:
            result.per_item[app_id] = ItemOutcome.success()

    reported = response.get("scheduledCount")
    if reported is not None and reported != result.succeeded:
        logger.warning(
            "Interview batch count mismatch",
            reported_scheduled=reported,
            derived_scheduled=result.succeeded,
        )
    return result


class InterviewBatchScheduler:
    def __init__(
        self,
        actions: PipelineActions,
        optimistic: OptimisticStateManager,
        history: TransitionHistory,
        actor: str,
    ):
        self.actions = actions
        self.optimistic = optimistic
        self.history = history
        self.actor = actor

    async def schedule(
        self,
        command: BulkCommand,
        graph: StageGraph,
        on_progress: ProgressCallback | None = None,
    ) -> BulkOperationResult:
        """Send the batch and settle local state. Never raises for collaborator failures."""
        if command.kind != SCHEDULE_INTERVIEWS:
            raise InvalidCommandError(f"Expected {SCHEDULE_INTERVIEWS} command, got {command.kind}")

        payload = command.payload
        ordered_ids: tuple[int, ...] = payload["ordered_ids"]
        slots: dict[int, InterviewSlot] = {slot.application_id: slot for slot in payload["slots"]}
        stage_id = payload.get("stage_id")
        started = time.time()

        pending: dict[int, tuple[OptimisticMutation, bool]] = {}
        for app_id in ordered_ids:
            current = self.optimistic.store.get(app_id)
            if current is None:
                continue
            advance = should_advance(current, stage_id, graph)
            mutation = self.optimistic.begin(
                app_id, self._mirror(slots[app_id], payload, stage_id if advance else None)
            )
            pending[app_id] = (mutation, advance)

        try:
            response = await self.actions.schedule_interview_batch(
                list(ordered_ids),
                payload["start_time"],
                payload["interval_hours"],
                payload["location"],
                notes=payload.get("notes"),
                stage_id=stage_id,
                time_range_label=payload.get("time_range_label"),
            )
            result = normalize_batch_response(ordered_ids, response or {})
        except Exception as e:
            logger.warning("Interview batch call failed", count=len(ordered_ids), error=str(e))
            result = BulkOperationResult(kind=SCHEDULE_INTERVIEWS, total=len(ordered_ids))
            outcome = ItemOutcome.error(failure_reason(e), classify_failure(e))
            for app_id in ordered_ids:
                result.per_item[app_id] = outcome

        for app_id, (mutation, advanced) in pending.items():
            if result.per_item[app_id].ok:
                committed = self.optimistic.commit(mutation)
                if advanced:
                    self.history.record(
                        application_id=app_id,
                        from_stage=mutation.previous.current_stage,
                        to_stage=committed.current_stage,
                        actor=self.actor,
                        notes="Advanced by interview scheduling",
                    )
            else:
                self.optimistic.rollback(mutation)

        await notify_progress(on_progress, result.total, result.total)

        log_bulk_run(
            kind=SCHEDULE_INTERVIEWS,
            total=result.total,
            succeeded=result.succeeded,
            failed=result.failed,
            duration_ms=round((time.time() - started) * 1000, 2),
        )
        return result

    @staticmethod
    def _mirror(slot: InterviewSlot, payload: dict[str, Any], advance_to: int | None):
        interview_time = payload.get("time_range_label") or slot.start_time.strftime("%H:%M")

        def mutate(current: Application) -> Application:
            updated = replace(
                current,
                interview_date=slot.start_time,
                interview_time=interview_time,
                interview_location=payload["location"],
            )
            if advance_to is not None:
                updated = replace(updated, current_stage=advance_to)
            return updated

        return mutate
