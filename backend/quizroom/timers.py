from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Optional, Protocol

logger = logging.getLogger(__name__)


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> TimerHandle: ...


class AsyncioScheduler:
    """Schedules callbacks on the running event loop."""

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> asyncio.TimerHandle:
        return asyncio.get_running_loop().call_later(delay, callback, *args)


class TimerSlot:
    """A single pending callback per owner.

    Arming the slot cancels whatever was pending. Each arm bumps a
    generation number and the callback only runs if its generation is
    still current, so a handle that fires after being superseded (or
    after ``cancel``) does nothing.
    """

    def __init__(self, scheduler: Scheduler, name: str = "timer"):
        self._scheduler = scheduler
        self._name = name
        self._handle: Optional[TimerHandle] = None
        self._generation = 0

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def arm(self, delay_ms: int, callback: Callable[[], None]) -> None:
        self.cancel()
        generation = self._generation
        self._handle = self._scheduler.call_later(delay_ms / 1000, self._fire, generation, callback)
        logger.debug("[timer-set] %s delay=%sms generation=%s", self._name, delay_ms, generation)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        self._generation += 1

    def _fire(self, generation: int, callback: Callable[[], None]) -> None:
        if generation != self._generation:
            logger.debug(
                "[timer-abort] %s stale generation=%s current=%s", self._name, generation, self._generation
            )
            return
        self._handle = None
        self._generation += 1
        callback()
