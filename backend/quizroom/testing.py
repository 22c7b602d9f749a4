"""A hand-cranked clock and scheduler for driving sessions in tests."""

from __future__ import annotations

from typing import Any, Callable, List


class ManualHandle:
    def __init__(self, when: int, callback: Callable[..., Any], args: tuple):
        self.when = when
        self.callback = callback
        self.args = args
        self.cancelled = False
        self.fired = False

    def cancel(self) -> None:
        self.cancelled = True

    def run(self) -> None:
        """Invoke the callback even if cancelled, like a late loop firing."""
        self.fired = True
        self.callback(*self.args)


class ManualClock:
    """Millisecond clock that doubles as a ``Scheduler``."""

    def __init__(self, start: int = 1_000_000):
        self.now = start
        self.handles: List[ManualHandle] = []

    def __call__(self) -> int:
        return self.now

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> ManualHandle:
        handle = ManualHandle(self.now + round(delay * 1000), callback, args)
        self.handles.append(handle)
        return handle

    def pending(self) -> List[ManualHandle]:
        return [h for h in self.handles if not h.cancelled and not h.fired]

    def advance(self, ms: int) -> None:
        """Move time forward, firing due callbacks in deadline order."""
        target = self.now + ms
        while True:
            due = [h for h in self.pending() if h.when <= target]
            if not due:
                break
            handle = min(due, key=lambda h: h.when)
            self.now = handle.when
            handle.run()
        self.now = target
