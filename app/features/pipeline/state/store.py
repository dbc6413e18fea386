"""
Application store - the board's local view of candidate state.

Only the optimistic apply/commit/rollback protocol and a full authoritative
refresh may change what is stored here.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from typing import Protocol

from app.features.pipeline.domain.errors import NotFoundError
from app.features.pipeline.domain.models import Application

Mutation = Callable[[Application], Application]


class ApplicationStore(Protocol):
    def get(self, application_id: int) -> Application | None: ...

    def all(self) -> list[Application]: ...

    def apply_optimistic(self, application_id: int, mutate: Mutation) -> tuple[Application, Application]: ...

    def commit(self, application_id: int, authoritative: Application | None = None) -> Application: ...

    def rollback(self, application_id: int, snapshot: Application) -> Application: ...

    def replace_all(self, applications: Iterable[Application]) -> None: ...


class InMemoryApplicationStore:
    """Process-local store keyed by application id, preserving load order."""

    def __init__(self, applications: Iterable[Application] = ()):
        self._items: dict[int, Application] = {}
        self.replace_all(applications)

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, application_id: object) -> bool:
        return application_id in self._items

    def get(self, application_id: int) -> Application | None:
        return self._items.get(application_id)

    def require(self, application_id: int) -> Application:
        application = self._items.get(application_id)
        if application is None:
            raise NotFoundError("Application", application_id)
        return application

    def all(self) -> list[Application]:
        return list(self._items.values())

    def apply_optimistic(self, application_id: int, mutate: Mutation) -> tuple[Application, Application]:
        """Apply a tentative change. Returns (previous snapshot, optimistic value)."""
        previous = self.require(application_id)
        optimistic = mutate(previous)
        if optimistic.id != application_id:
            raise ValueError("Optimistic mutation must not change the application id")
        self._items[application_id] = optimistic
        return previous, optimistic

    def commit(self, application_id: int, authoritative: Application | None = None) -> Application:
        """Keep the optimistic value, or reconcile with the server's copy when given."""
        if authoritative is not None:
            self._items[application_id] = authoritative
            return authoritative
        return self.require(application_id)

    def rollback(self, application_id: int, snapshot: Application) -> Application:
        self._items[application_id] = snapshot
        return snapshot

    def replace_all(self, applications: Iterable[Application]) -> None:
        """Authoritative refresh: replace the whole candidate list."""
        self._items = {application.id: application for application in applications}
