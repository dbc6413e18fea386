"""
Optimistic state manager.

Protocol:
1. Capture the entity's snapshot before mutating.
2. Apply the tentative mutation to the store synchronously.
3. Await the authoritative request.
4. Success: keep the optimistic value, reconciling with any returned record.
5. Failure: restore the snapshot verbatim and raise OptimisticRollbackError.

At most one in-flight mutation per entity is assumed. Overlapping mutations
are logged and resolve last-writer-wins.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from app.features.pipeline.domain.errors import OptimisticRollbackError
from app.features.pipeline.domain.models import Application
from app.features.pipeline.state.store import ApplicationStore, Mutation
from app.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

AuthoritativeRequest = Callable[[], Awaitable[Application | None]]


@dataclass(slots=True, frozen=True)
class OptimisticMutation:
    application_id: int
    previous: Application
    optimistic: Application


class OptimisticStateManager:
    def __init__(self, store: ApplicationStore):
        self.store = store
        self._in_flight: Counter[int] = Counter()

    def in_flight(self, application_id: int) -> bool:
        return self._in_flight[application_id] > 0

    def begin(self, application_id: int, mutate: Mutation) -> OptimisticMutation:
        if self.in_flight(application_id):
            logger.warning(
                "Overlapping optimistic mutation",
                application_id=application_id,
                in_flight=self._in_flight[application_id],
            )
        previous, optimistic = self.store.apply_optimistic(application_id, mutate)
        self._in_flight[application_id] += 1
        return OptimisticMutation(application_id, previous, optimistic)

    def commit(self, mutation: OptimisticMutation, authoritative: Application | None = None) -> Application:
        self._release(mutation.application_id)
        if authoritative is not None and authoritative != mutation.optimistic:
            logger.debug(
                "Reconciling optimistic state with authoritative record",
                application_id=mutation.application_id,
            )
            return self.store.commit(mutation.application_id, authoritative)
        return self.store.commit(mutation.application_id)

    def rollback(self, mutation: OptimisticMutation) -> Application:
        self._release(mutation.application_id)
        return self.store.rollback(mutation.application_id, mutation.previous)

    async def execute(
        self,
        application_id: int,
        mutate: Mutation,
        request: AuthoritativeRequest,
    ) -> Application:
        """Run the full apply -> request -> commit/rollback cycle."""
        mutation = self.begin(application_id, mutate)
        try:
            authoritative = await request()
        except Exception as e:
            self.rollback(mutation)
            logger.info(
                "Optimistic update rolled back",
                application_id=application_id,
                error=str(e),
            )
            raise OptimisticRollbackError(application_id, e) from e
        return self.commit(mutation, authoritative)

    def _release(self, application_id: int) -> None:
        self._in_flight[application_id] -= 1
        if self._in_flight[application_id] <= 0:
            del self._in_flight[application_id]
