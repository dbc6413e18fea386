"""
Local candidate state: store, optimistic protocol and selection.
"""

from .optimistic import OptimisticMutation, OptimisticStateManager
from .selection import SelectionSet
from .store import ApplicationStore, InMemoryApplicationStore

__all__ = [
    "ApplicationStore",
    "InMemoryApplicationStore",
    "OptimisticMutation",
    "OptimisticStateManager",
    "SelectionSet",
]
