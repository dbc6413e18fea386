"""
Progress reporting shared by every bulk path.
"""

from __future__ import annotations

import inspect
from collections.abc import Awaitable, Callable

from app.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

ProgressCallback = Callable[[int, int], Awaitable[None] | None]


async def notify_progress(callback: ProgressCallback | None, completed: int, total: int) -> None:
    """Report (completed, total). Callbacks may be sync or async; their failures never abort a run."""
    if callback is None:
        return
    try:
        maybe = callback(completed, total)
        if inspect.isawaitable(maybe):
            await maybe
    except Exception as e:
        logger.warning("Progress callback failed", completed=completed, total=total, error=str(e))
