"""
Bulk operation coordinator.

Fans one logical command out over its target ids in consecutive batches of
`concurrency_limit`. Every item in a batch is dispatched at once and the
whole batch settles before the next one starts, so at most
`concurrency_limit` collaborator calls are in flight. Each item's outcome
is recorded on its own: a failure never aborts siblings or later batches,
and the run itself never raises.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import replace

from app.config import settings
from app.features.pipeline.bulk.commands import ARCHIVE, MOVE_STAGE, SEND_EMAIL, SEND_FORM
from app.features.pipeline.bulk.progress import ProgressCallback, notify_progress
from app.features.pipeline.domain.errors import InvalidCommandError, classify_failure, failure_reason
from app.features.pipeline.domain.models import BulkCommand, BulkOperationResult, ItemOutcome
from app.features.pipeline.repository.actions_client import PipelineActions
from app.features.pipeline.services.stage_mover import StageMover
from app.features.pipeline.stages.transitions import REASON_NO_OP, Reject
from app.features.pipeline.state.optimistic import OptimisticStateManager
from app.infrastructure.audit.audit_logger import audit_logger
from app.infrastructure.observability.logging import get_logger, log_bulk_run

logger = get_logger(__name__)

ItemAction = Callable[[int], Awaitable[ItemOutcome | None]]


def partition(ids: Sequence[int], size: int) -> list[list[int]]:
    """Split ids into consecutive batches of at most `size`."""
    if size < 1:
        raise ValueError("Batch size must be at least 1")
    return [list(ids[i : i + size]) for i in range(0, len(ids), size)]


class BulkOperationCoordinator:
    def __init__(
        self,
        actions: PipelineActions,
        optimistic: OptimisticStateManager,
        mover: StageMover,
        concurrency_limit: int | None = None,
    ):
        self.actions = actions
        self.optimistic = optimistic
        self.mover = mover
        self.concurrency_limit = settings.bulk_concurrency_limit(concurrency_limit)

    async def run(
        self,
        command: BulkCommand,
        concurrency_limit: int | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> BulkOperationResult:
        action = self._item_action(command)
        # Sorted so runs over the same selection are reproducible
        ids = sorted(command.target_ids)
        result = await self.run_items(
            command.kind,
            ids,
            action,
            concurrency_limit=concurrency_limit,
            on_progress=on_progress,
        )
        audit_logger.log(
            actor=self.mover.actor,
            action="bulk_run_completed",
            resource_type="applications",
            resource_count=result.total,
            metadata={"kind": command.kind, "succeeded": result.succeeded, "failed": result.failed},
        )
        return result

    async def run_items(
        self,
        kind: str,
        ids: Sequence[int],
        action: ItemAction,
        concurrency_limit: int | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> BulkOperationResult:
        """Batch-and-settle over arbitrary ids with an arbitrary per-item action."""
        limit = concurrency_limit if concurrency_limit and concurrency_limit > 0 else self.concurrency_limit
        total = len(ids)
        result = BulkOperationResult(kind=kind, total=total)
        completed = 0
        started = time.time()

        async def settle(app_id: int) -> None:
            nonlocal completed
            try:
                outcome = await action(app_id)
                result.per_item[app_id] = outcome or ItemOutcome.success()
            except Exception as e:
                result.per_item[app_id] = ItemOutcome.error(failure_reason(e), classify_failure(e))
                logger.info(
                    "Bulk item failed",
                    kind=kind,
                    application_id=app_id,
                    failure_kind=result.per_item[app_id].failure_kind,
                    error=str(e),
                )
            finally:
                completed += 1
                await notify_progress(on_progress, completed, total)

        for batch in partition(ids, limit):
            await asyncio.gather(*(settle(app_id) for app_id in batch))

        log_bulk_run(
            kind=kind,
            total=result.total,
            succeeded=result.succeeded,
            failed=result.failed,
            duration_ms=round((time.time() - started) * 1000, 2),
        )
        return result

    def _item_action(self, command: BulkCommand) -> ItemAction:
        payload = command.payload

        if command.kind == MOVE_STAGE:
            stage_id = payload["stage_id"]
            notes = payload.get("notes")

            async def move(app_id: int) -> ItemOutcome:
                moved = await self.mover.move(app_id, stage_id, notes)
                if isinstance(moved, Reject):
                    if moved.reason == REASON_NO_OP:
                        return ItemOutcome.success(detail=REASON_NO_OP)
                    return ItemOutcome.error(moved.reason)
                return ItemOutcome.success()

            return move

        if command.kind == SEND_EMAIL:
            template_id = payload["template_id"]

            async def send_email(app_id: int) -> ItemOutcome:
                await self.actions.send_email(app_id, template_id)
                return ItemOutcome.success()

            return send_email

        if command.kind == SEND_FORM:
            form_id = payload["form_id"]
            message = payload.get("custom_message")

            async def send_form(app_id: int) -> ItemOutcome:
                await self.actions.send_form_invitation(app_id, form_id, message)
                return ItemOutcome.success()

            return send_form

        if command.kind == ARCHIVE:
            status = payload["status"]
            notes = payload.get("notes")

            async def archive(app_id: int) -> ItemOutcome:
                async def request():
                    return await self.actions.update_status(app_id, status, notes)

                if self.optimistic.store.get(app_id) is None:
                    await request()
                else:
                    await self.optimistic.execute(
                        app_id, lambda current: replace(current, status=status), request
                    )
                return ItemOutcome.success()

            return archive

        raise InvalidCommandError(f"Command kind '{command.kind}' is not fanned out by the coordinator")

