"""Actions held back until a precondition becomes true."""

import asyncio
import inspect
from collections.abc import Callable
from typing import Any

from loguru import logger


class Gate:
    """A boolean condition that pending actions can wait on."""

    def __init__(self, is_open: bool = True):
        self._event = asyncio.Event()
        if is_open:
            self._event.set()

    @property
    def is_open(self) -> bool:
        return self._event.is_set()

    def open(self) -> None:
        self._event.set()

    def close(self) -> None:
        self._event.clear()

    async def wait(self) -> None:
        await self._event.wait()

    def defer(
        self,
        action: Callable[[], Any],
        delay: float = 0.0,
        name: str | None = None,
    ) -> "PendingAction":
        """Run ``action`` once: after ``delay`` if open now, else when the gate opens."""
        return PendingAction(self, action, delay=delay, name=name)


class PendingAction:
    """One-shot action scheduled against a :class:`Gate`. Cancellable until it runs."""

    def __init__(
        self,
        gate: Gate,
        action: Callable[[], Any],
        delay: float = 0.0,
        name: str | None = None,
    ):
        self._gate = gate
        self._action = action
        self._delay = delay
        self.name = name or getattr(action, "__name__", "pending-action")
        self.deferred = not gate.is_open
        self._task = asyncio.create_task(self._run(), name=f"pending:{self.name}")

    async def _run(self) -> None:
        if self._gate.is_open:
            if self._delay > 0:
                await asyncio.sleep(self._delay)
        else:
            logger.debug("{} deferred until gate opens", self.name)
            await self._gate.wait()

        try:
            result = self._action()
            if inspect.isawaitable(result):
                await result
        except Exception:
            logger.exception("Pending action {} failed", self.name)

    @property
    def done(self) -> bool:
        return self._task.done()

    @property
    def cancelled(self) -> bool:
        return self._task.cancelled()

    def cancel(self) -> None:
        if not self._task.done():
            self._task.cancel()
            logger.debug("{} cancelled", self.name)

    async def wait(self) -> None:
        """Wait until the action has run or been cancelled."""
        await asyncio.wait({self._task})


class PageVisibility(Gate):
    """Tab visibility modeled as a gate: visible means open."""

    def __init__(self, visible: bool = True):
        super().__init__(is_open=visible)

    @property
    def visible(self) -> bool:
        return self.is_open

    def set_visible(self, visible: bool) -> None:
        if visible:
            self.open()
        else:
            self.close()
