"""
Stage graph - ordered pipeline stages plus the synthetic Unassigned column.

A StageGraph is immutable; reordering returns a new graph.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, replace

from app.features.pipeline.domain.errors import NotFoundError
from app.features.pipeline.domain.models import (
    UNASSIGNED_STAGE_ID,
    Application,
    PipelineStage,
)


@dataclass(slots=True, frozen=True)
class StageColumn:
    """One rendered column: a stage and the candidates currently in it."""

    stage: PipelineStage
    applications: tuple[Application, ...]

    @property
    def is_read_only(self) -> bool:
        return self.stage.is_unassigned

    @property
    def count(self) -> int:
        return len(self.applications)


class StageGraph:
    """Ordered view over the real pipeline stages."""

    def __init__(self, stages: Iterable[PipelineStage]):
        ordered = sorted(stages, key=lambda stage: (stage.order, stage.id))
        for stage in ordered:
            if stage.id <= UNASSIGNED_STAGE_ID:
                raise ValueError(f"Real stages must have a positive id, got {stage.id}")
        self._stages: tuple[PipelineStage, ...] = tuple(ordered)
        self._by_id: dict[int, PipelineStage] = {stage.id: stage for stage in ordered}
        if len(self._by_id) != len(self._stages):
            raise ValueError("Duplicate stage ids in pipeline")

    def __len__(self) -> int:
        return len(self._stages)

    def __contains__(self, stage_id: object) -> bool:
        return stage_id in self._by_id

    def stages_in_order(self) -> tuple[PipelineStage, ...]:
        return self._stages

    def get(self, stage_id: int) -> PipelineStage | None:
        if stage_id == UNASSIGNED_STAGE_ID:
            return PipelineStage.unassigned()
        return self._by_id.get(stage_id)

    def require(self, stage_id: int) -> PipelineStage:
        stage = self._by_id.get(stage_id)
        if stage is None:
            raise NotFoundError("Stage", stage_id)
        return stage

    def is_before(self, stage_id: int | None, other_stage_id: int) -> bool:
        """True when stage_id sorts strictly before other_stage_id (None sorts first)."""
        target = self.require(other_stage_id)
        if stage_id is None:
            return True
        current = self._by_id.get(stage_id)
        if current is None:
            return True
        return current.order < target.order

    def columns_for_display(self, applications: Iterable[Application]) -> list[StageColumn]:
        """
        Bucket candidates by current stage in a single pass.

        The Unassigned pseudo-stage is prepended only when at least one
        candidate has no stage. Candidates pointing at a stage that is no
        longer in the graph are shown as unassigned.
        """
        buckets: dict[int | None, list[Application]] = {stage.id: [] for stage in self._stages}
        buckets[None] = []

        for application in applications:
            key = application.current_stage if application.current_stage in self._by_id else None
            buckets[key].append(application)

        columns: list[StageColumn] = []
        if buckets[None]:
            columns.append(StageColumn(stage=PipelineStage.unassigned(), applications=tuple(buckets[None])))
        for stage in self._stages:
            columns.append(StageColumn(stage=stage, applications=tuple(buckets[stage.id])))
        return columns

    def stage_counts(self, applications: Iterable[Application]) -> dict[int, int]:
        counts = {stage.id: 0 for stage in self._stages}
        for application in applications:
            if application.current_stage in counts:
                counts[application.current_stage] += 1
        return counts

    def reorder(self, active_stage_id: int, over_stage_id: int) -> StageGraph:
        """
        Move the active stage to the position of the stage it was dropped on.

        Orders are renumbered contiguously from 0. Dropping a stage on itself
        returns the same graph.
        """
        if active_stage_id == over_stage_id:
            return self
        ids = [stage.id for stage in self._stages]
        if active_stage_id not in self._by_id:
            raise NotFoundError("Stage", active_stage_id)
        if over_stage_id not in self._by_id:
            raise NotFoundError("Stage", over_stage_id)

        old_index = ids.index(active_stage_id)
        new_index = ids.index(over_stage_id)
        ids.insert(new_index, ids.pop(old_index))

        return StageGraph(
            replace(self._by_id[stage_id], order=index) for index, stage_id in enumerate(ids)
        )

    def changed_orders(self, other: StageGraph) -> dict[int, int]:
        """Stage id -> new order for every stage whose order differs in other."""
        changes = {}
        for stage in other.stages_in_order():
            current = self._by_id.get(stage.id)
            if current is None or current.order != stage.order:
                changes[stage.id] = stage.order
        return changes
