"""
Selection set - the candidate ids currently checked on the board.

Session-local, order-irrelevant. Cleared on a fully successful bulk run or
an explicit clear.
"""

from __future__ import annotations

from collections.abc import Iterable

from app.features.pipeline.domain.models import UNASSIGNED_STAGE_ID, Application


class SelectionSet:
    def __init__(self, ids: Iterable[int] = ()):
        self._ids: set[int] = set(ids)

    def __contains__(self, application_id: object) -> bool:
        return application_id in self._ids

    def __len__(self) -> int:
        return len(self._ids)

    def __iter__(self):
        return iter(sorted(self._ids))

    def ids(self) -> frozenset[int]:
        return frozenset(self._ids)

    def toggle(self, application_id: int) -> bool:
        """Flip membership; returns True when the id is now selected."""
        if application_id in self._ids:
            self._ids.discard(application_id)
            return False
        self._ids.add(application_id)
        return True

    def clear(self) -> None:
        self._ids.clear()

    def select_all_visible(self, visible: Iterable[Application], selected: bool = True) -> None:
        """Select-all is scoped to the currently visible (filtered) candidates."""
        if selected:
            self._ids = {application.id for application in visible}
        else:
            self._ids.clear()

    def toggle_stage(self, stage_id: int | None, visible: Iterable[Application], selected: bool) -> None:
        """Select or deselect every visible candidate in one column."""
        target = None if stage_id in (None, UNASSIGNED_STAGE_ID) else stage_id
        column_ids = {app.id for app in visible if app.current_stage == target}
        if selected:
            self._ids |= column_ids
        else:
            self._ids -= column_ids

    def retain_visible(self, visible: Iterable[Application]) -> None:
        """Drop selected ids that are no longer on the board (after a refresh)."""
        self._ids &= {application.id for application in visible}

    def state(self, visible_count: int) -> str:
        """Checkbox state for the select-all control: none, some or all."""
        if not self._ids:
            return "none"
        if len(self._ids) >= visible_count:
            return "all"
        return "some"
