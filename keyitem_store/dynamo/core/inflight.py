"""
Single-flight guard for an asynchronous operation.
"""

import asyncio
from collections.abc import Awaitable, Callable
from typing import Generic, TypeVar

T = TypeVar("T")


class InFlight(Generic[T]):
    """
    Run an async factory at most once at a time.

    Callers arriving while an attempt is running await that same attempt.
    Once it settles, successfully or not, the slot is cleared and the next
    call starts a fresh attempt. Awaiters are shielded: cancelling one caller
    does not cancel the shared attempt.
    """

    def __init__(self, factory: Callable[[], Awaitable[T]]):
        self._factory = factory
        self._task: asyncio.Future[T] | None = None

    @property
    def running(self) -> bool:
        """True while an attempt is in flight."""
        return self._task is not None

    async def __call__(self) -> T:
        if self._task is None:
            task = asyncio.ensure_future(self._factory())
            task.add_done_callback(self._settled)
            self._task = task
        return await asyncio.shield(self._task)

    def _settled(self, task: "asyncio.Future[T]") -> None:
        if self._task is task:
            self._task = None
        # Mark the outcome as retrieved when every awaiter has gone away
        if not task.cancelled():
            task.exception()
