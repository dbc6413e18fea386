"""
Stage mover - one path for every single-candidate stage move.

validate -> optimistic apply -> collaborator call -> commit/rollback ->
history append. Used by drag-and-drop, quick move and bulk move alike.
"""

from __future__ import annotations

from dataclasses import replace

from app.features.pipeline.domain.errors import NotFoundError
from app.features.pipeline.domain.models import Application
from app.features.pipeline.repository.actions_client import PipelineActions
from app.features.pipeline.stages.transitions import Reject, TransitionValidator
from app.features.pipeline.state.optimistic import OptimisticStateManager
from app.infrastructure.audit.transition_log import TransitionHistory
from app.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


class StageMover:
    def __init__(
        self,
        actions: PipelineActions,
        optimistic: OptimisticStateManager,
        validator: TransitionValidator,
        history: TransitionHistory,
        actor: str,
    ):
        self.actions = actions
        self.optimistic = optimistic
        self.validator = validator
        self.history = history
        self.actor = actor

    async def move(
        self, application_id: int, target_stage_id: int, notes: str | None = None
    ) -> Application | Reject:
        """
        Move one candidate.

        Returns the Reject verdict for illegal moves (nothing is mutated and
        no call is made), otherwise the committed application. Raises
        OptimisticRollbackError when the collaborator call fails.
        """
        application = self.optimistic.store.get(application_id)
        if application is None:
            raise NotFoundError("Application", application_id)

        verdict = self.validator.validate(application, target_stage_id)
        if isinstance(verdict, Reject):
            logger.debug(
                "Stage move rejected",
                application_id=application_id,
                target_stage_id=target_stage_id,
                reason=verdict.reason,
            )
            return verdict

        from_stage = application.current_stage
        committed = await self.optimistic.execute(
            application_id,
            lambda current: replace(current, current_stage=target_stage_id),
            lambda: self.actions.move_stage(application_id, target_stage_id, notes),
        )
        self.history.record(
            application_id=application_id,
            from_stage=from_stage,
            to_stage=committed.current_stage,
            actor=self.actor,
            notes=notes,
        )
        return committed
