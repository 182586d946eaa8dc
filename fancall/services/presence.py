"""Presence heartbeat with a shared periodic task runner.

One timer per participant: every tick resends the presence status and runs each
registered task, so unrelated periodic work (queue-count refresh and the like)
rides the same cadence instead of opening its own timer.

Usage:
    presence = PresenceHeartbeat(backend_client)
    await presence.start_heartbeat(True)
    presence.register_task("queue-count", refresh_queue_count)
    ...
    await presence.stop_heartbeat()
"""

import asyncio
import inspect
from collections.abc import Callable
from typing import Any, Protocol

from loguru import logger

from fancall.app_config import get_app_environ_config

PeriodicTask = Callable[[], Any]


class PresenceSender(Protocol):
    async def send_presence(self, is_online: bool) -> None: ...


class PresenceHeartbeat:
    """Liveness ping plus pluggable periodic tasks on a single timer."""

    def __init__(self, sender: PresenceSender, interval: float | None = None) -> None:
        cfg = get_app_environ_config()
        self._sender = sender
        self._interval = float(
            interval if interval is not None else cfg.PRESENCE_HEARTBEAT_INTERVAL_SECONDS
        )
        self._loop_task: asyncio.Task | None = None
        self._current_status = False
        self._tasks: dict[str, PeriodicTask] = {}

    @property
    def current_status(self) -> bool:
        return self._current_status

    @property
    def is_running(self) -> bool:
        return self._loop_task is not None and not self._loop_task.done()

    @property
    def task_ids(self) -> list[str]:
        return list(self._tasks)

    async def start_heartbeat(self, is_online: bool) -> None:
        """Send one status update now, then every interval until stopped."""
        self._current_status = is_online
        await self._send(is_online)

        self._stop_loop()
        self._loop_task = asyncio.create_task(self._loop(), name="presence-heartbeat")
        logger.info("Heartbeat started, is_online={} interval={}s", is_online, self._interval)

    async def stop_heartbeat(self) -> None:
        """Stop the timer and send a final offline update."""
        self._stop_loop()
        await self._send(False)
        self._current_status = False
        logger.info("Heartbeat stopped")

    async def update_status(self, is_online: bool) -> None:
        """Send a single status update without touching the timer."""
        await self._send(is_online)
        self._current_status = is_online

    def cleanup(self) -> None:
        """Reset local bookkeeping without a network call (abrupt unmount)."""
        self._stop_loop()
        self._current_status = False
        self._tasks.clear()
        logger.info("Heartbeat cleaned up")

    def register_task(self, task_id: str, fn: PeriodicTask) -> None:
        if task_id in self._tasks:
            logger.debug("Replacing heartbeat task {}", task_id)
        self._tasks[task_id] = fn
        logger.debug("Registered heartbeat task {} (total={})", task_id, len(self._tasks))

    def unregister_task(self, task_id: str) -> None:
        if self._tasks.pop(task_id, None) is not None:
            logger.debug("Unregistered heartbeat task {}", task_id)

    async def tick(self) -> None:
        """One heartbeat: resend status, then run every registered task."""
        await self._send(self._current_status)
        await self._run_tasks()

    async def _loop(self) -> None:
        try:
            while True:
                await asyncio.sleep(self._interval)
                await self.tick()
        except asyncio.CancelledError:
            pass
        except Exception as e:
            logger.error("Heartbeat loop crashed: {}", e)

    async def _run_tasks(self) -> None:
        for task_id, fn in list(self._tasks.items()):
            try:
                result = fn()
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.warning("Heartbeat task {} failed: {}", task_id, e)

    async def _send(self, is_online: bool) -> None:
        try:
            await self._sender.send_presence(is_online)
            logger.debug("Heartbeat sent: is_online={}", is_online)
        except Exception as e:
            logger.error("Heartbeat error: {}", e)

    def _stop_loop(self) -> None:
        if self._loop_task is not None and not self._loop_task.done():
            self._loop_task.cancel()
        self._loop_task = None
