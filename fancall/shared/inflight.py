import asyncio
from collections.abc import Awaitable, Callable, Hashable
from typing import Generic, TypeVar

from loguru import logger

T = TypeVar("T")


class InFlight(Generic[T]):
    """Single-slot once-guard for an asynchronous operation.

    At most one operation occupies the slot. Callers that arrive while it is
    running with the same key await the same task and observe the same result
    or exception, so the underlying work happens once. The slot frees itself
    when the operation finishes.

    Waiters are shielded: cancelling one waiter does not cancel the shared
    operation.
    """

    def __init__(self, name: str):
        self.name = name
        self._task: asyncio.Task[T] | None = None
        self._key: Hashable | None = None

    @property
    def busy(self) -> bool:
        return self._task is not None

    @property
    def key(self) -> Hashable | None:
        return self._key if self._task is not None else None

    async def run(self, factory: Callable[[], Awaitable[T]], key: Hashable | None = None) -> T:
        """Start ``factory()`` in the slot, or join the operation already there.

        Raises:
            RuntimeError: If the slot is busy with a different key.
        """
        if self._task is not None:
            if key != self._key:
                raise RuntimeError(
                    f"{self.name} is busy with key={self._key!r}, refusing key={key!r}"
                )
            logger.debug("{} already in flight (key={!r}), joining", self.name, key)
            return await self.join()

        task = asyncio.ensure_future(factory())
        self._task = task
        self._key = key
        task.add_done_callback(self._release)
        logger.debug("{} started (key={!r})", self.name, key)
        return await asyncio.shield(task)

    async def join(self) -> T:
        """Await the outcome of the operation currently in the slot."""
        task = self._task
        if task is None:
            raise RuntimeError(f"{self.name} has nothing in flight")
        return await asyncio.shield(task)

    async def settle(self) -> None:
        """Wait until the slot is free, ignoring the outcome of what was in it."""
        task = self._task
        if task is not None:
            await asyncio.wait({task})

    def _release(self, task: asyncio.Task[T]) -> None:
        if self._task is task:
            self._task = None
            self._key = None
        # Outcome is delivered through shield(); mark it retrieved here so an
        # unobserved failure is not reported again at garbage collection.
        if not task.cancelled():
            task.exception()
