"""
Drag-and-drop resolver.

Explicit state machine over one drag gesture:

    Idle -> Dragging(application) -> Dropped(stage) | Cancelled -> Idle

Pointer and keyboard input drive the same transitions. The resolver only
decides which stage a drop means; legality and state changes go through
the StageMover (validator + optimistic manager).
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field, replace
from typing import Literal

from app.features.pipeline.domain.errors import NotFoundError, OptimisticRollbackError
from app.features.pipeline.domain.models import UNASSIGNED_STAGE_ID, Application
from app.features.pipeline.services.stage_mover import StageMover
from app.features.pipeline.stages.graph import StageGraph
from app.features.pipeline.stages.transitions import Reject
from app.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

DragPhase = Literal["idle", "dragging"]
DropKind = Literal["stage", "application"]
DragStatus = Literal["moved", "rejected", "cancelled", "failed"]

CANCEL_TITLE = "Drag cancelled"
CANCEL_DESCRIPTION = "Drop onto a stage column to move the application."
FAILED_TITLE = "Move failed"

PICKUP_KEYS = frozenset({" ", "Space", "Enter"})
CANCEL_KEYS = frozenset({"Escape", "Esc"})
NEXT_KEYS = frozenset({"ArrowRight", "ArrowDown"})
PREVIOUS_KEYS = frozenset({"ArrowLeft", "ArrowUp"})


@dataclass(slots=True, frozen=True)
class DropTarget:
    """What the pointer (or keyboard cursor) is over: a stage column or a card."""

    kind: DropKind
    id: int

    @classmethod
    def stage(cls, stage_id: int) -> DropTarget:
        return cls(kind="stage", id=stage_id)

    @classmethod
    def application(cls, application_id: int) -> DropTarget:
        return cls(kind="application", id=application_id)


@dataclass(slots=True, frozen=True)
class DragState:
    phase: DragPhase = "idle"
    active_application_id: int | None = None
    over: DropTarget | None = None
    keyboard: bool = False

    @property
    def is_dragging(self) -> bool:
        return self.phase == "dragging"


@dataclass(slots=True, frozen=True)
class DragNotice:
    title: str
    description: str


@dataclass(slots=True, frozen=True)
class DragOutcome:
    status: DragStatus
    application_id: int | None
    target_stage_id: int | None = None
    reason: str | None = None
    application: Application | None = None
    notice: DragNotice | None = field(default=None)


class DragDropResolver:
    def __init__(self, mover: StageMover, graph: Callable[[], StageGraph]):
        self.mover = mover
        self._graph = graph
        self.state = DragState()

    @property
    def store(self):
        return self.mover.optimistic.store

    def start(self, application_id: int, keyboard: bool = False) -> DragState:
        if self.store.get(application_id) is None:
            raise NotFoundError("Application", application_id)
        if self.state.is_dragging:
            logger.debug(
                "Drag restarted before drop",
                previous_application_id=self.state.active_application_id,
                application_id=application_id,
            )
        self.state = DragState(phase="dragging", active_application_id=application_id, keyboard=keyboard)
        return self.state

    def over(self, target: DropTarget | None) -> DragState:
        if not self.state.is_dragging:
            return self.state
        self.state = replace(self.state, over=target)
        return self.state

    def resolve_target(self, target: DropTarget | None) -> int | None:
        """Stage id a drop on `target` means, or None when it is not a valid target."""
        if target is None:
            return None
        if target.kind == "stage":
            return target.id
        card = self.store.get(target.id)
        if card is None:
            return None
        # Dropping on a card means dropping on that card's column
        return card.current_stage if card.current_stage is not None else UNASSIGNED_STAGE_ID

    async def drop(self, target: DropTarget | None = None) -> DragOutcome:
        if not self.state.is_dragging:
            return DragOutcome(status="rejected", application_id=None, reason="not dragging")

        application_id = self.state.active_application_id
        stage_id = self.resolve_target(target if target is not None else self.state.over)
        if stage_id is None:
            return self.cancel()

        self.state = DragState()
        try:
            moved = await self.mover.move(application_id, stage_id)
        except OptimisticRollbackError as e:
            return DragOutcome(
                status="failed",
                application_id=application_id,
                target_stage_id=stage_id,
                reason=str(e.cause),
                notice=DragNotice(title=FAILED_TITLE, description=str(e.cause)),
            )

        if isinstance(moved, Reject):
            # Silent: the card snaps back
            return DragOutcome(
                status="rejected",
                application_id=application_id,
                target_stage_id=stage_id,
                reason=moved.reason,
            )
        return DragOutcome(
            status="moved",
            application_id=application_id,
            target_stage_id=stage_id,
            application=moved,
        )

    def cancel(self) -> DragOutcome:
        application_id = self.state.active_application_id
        self.state = DragState()
        logger.debug("Drag cancelled", application_id=application_id)
        return DragOutcome(
            status="cancelled",
            application_id=application_id,
            notice=DragNotice(title=CANCEL_TITLE, description=CANCEL_DESCRIPTION),
        )

    async def handle_key(self, key: str, application_id: int | None = None) -> DragState | DragOutcome:
        """
        Keyboard drag: Space/Enter picks up (needs application_id) and drops,
        arrows move across stage columns, Escape cancels.
        """
        if not self.state.is_dragging:
            if key in PICKUP_KEYS and application_id is not None:
                return self.start(application_id, keyboard=True)
            return self.state

        if key in CANCEL_KEYS:
            return self.cancel()
        if key in PICKUP_KEYS:
            return await self.drop()
        if key in NEXT_KEYS:
            return self.over(self._step(1))
        if key in PREVIOUS_KEYS:
            return self.over(self._step(-1))
        return self.state

    def _step(self, delta: int) -> DropTarget | None:
        stage_ids = [stage.id for stage in self._graph().stages_in_order()]
        if not stage_ids:
            return self.state.over

        if self.state.over is not None:
            current = self.resolve_target(self.state.over)
        else:
            active = self.store.get(self.state.active_application_id)
            current = active.current_stage if active is not None else None

        if current in stage_ids:
            index = stage_ids.index(current) + delta
        else:
            index = 0 if delta > 0 else len(stage_ids) - 1
        index = max(0, min(index, len(stage_ids) - 1))
        return DropTarget.stage(stage_ids[index])
