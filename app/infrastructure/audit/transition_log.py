"""
Append-only stage transition history.

One record per accepted, confirmed move. Used for history display only;
the candidate record itself stays the source of truth for current stage.
"""

from __future__ import annotations

from collections import defaultdict
from datetime import UTC, datetime

from app.features.pipeline.domain.models import StageTransition
from app.infrastructure.audit.audit_logger import audit_logger


class TransitionHistory:
    def __init__(self):
        self._records: list[StageTransition] = []
        self._by_application: defaultdict[int, list[StageTransition]] = defaultdict(list)

    def __len__(self) -> int:
        return len(self._records)

    def record(
        self,
        application_id: int,
        from_stage: int | None,
        to_stage: int | None,
        actor: str,
        notes: str | None = None,
        changed_at: datetime | None = None,
    ) -> StageTransition:
        transition = StageTransition(
            application_id=application_id,
            from_stage=from_stage,
            to_stage=to_stage,
            changed_at=changed_at or datetime.now(UTC),
            actor=actor,
            notes=notes,
        )
        self._records.append(transition)
        self._by_application[application_id].append(transition)

        audit_logger.log(
            actor=actor,
            action="stage_changed",
            resource_type="application",
            resource_id=application_id,
            metadata={"from_stage": from_stage, "to_stage": to_stage},
        )
        return transition

    def history_for(self, application_id: int) -> list[StageTransition]:
        """Records for one application, oldest first."""
        return list(self._by_application.get(application_id, ()))

    def all(self) -> list[StageTransition]:
        return list(self._records)
