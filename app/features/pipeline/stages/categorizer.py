"""
Sub-bucket classification of the candidates inside one stage column.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

from app.features.pipeline.domain.models import (
    STATUS_DOWNLOADED,
    STATUS_REJECTED,
    STATUS_SHORTLISTED,
    Application,
)

ARCHIVED_STATUSES = frozenset({STATUS_REJECTED})
ADVANCED_STATUSES = frozenset({STATUS_SHORTLISTED, STATUS_DOWNLOADED})

BUCKET_ORDER = ("active", "advanced", "archived")


@dataclass(slots=True)
class CategorizedStage:
    active: list[Application] = field(default_factory=list)
    advanced: list[Application] = field(default_factory=list)
    archived: list[Application] = field(default_factory=list)

    def non_empty_buckets(self) -> list[tuple[str, list[Application]]]:
        """Buckets with members, in display order. Empty buckets are omitted."""
        buckets = []
        for name in BUCKET_ORDER:
            members = getattr(self, name)
            if members:
                buckets.append((name, members))
        return buckets

    @property
    def is_flat(self) -> bool:
        """Fewer than two non-empty buckets renders as a plain list."""
        return len(self.non_empty_buckets()) < 2


def bucket_for(application: Application) -> str:
    status = (application.status or "").lower()
    if status in ARCHIVED_STATUSES:
        return "archived"
    if status in ADVANCED_STATUSES:
        return "advanced"
    return "active"


def categorize(applications: Iterable[Application]) -> CategorizedStage:
    result = CategorizedStage()
    for application in applications:
        getattr(result, bucket_for(application)).append(application)
    return result
