"""
Stage model: ordering, column grouping, sub-buckets and move legality.
"""

from .categorizer import CategorizedStage, categorize
from .graph import StageColumn, StageGraph
from .transitions import Accept, Reject, TransitionValidator

__all__ = [
    "Accept",
    "CategorizedStage",
    "Reject",
    "StageColumn",
    "StageGraph",
    "TransitionValidator",
    "categorize",
]
