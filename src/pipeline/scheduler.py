"""
Tick schedulers for the detection loop.

The loop never sleeps on its own; it asks a scheduler to call it back on the
next display tick. Production uses FrameTickScheduler on the running asyncio
loop; tests drive the loop with a manual scheduler.
"""

from __future__ import annotations

import asyncio
import math
from typing import Any, Callable, Optional, Protocol


class TickScheduler(Protocol):
    def schedule(self, callback: Callable[[], None], delay: float = 0.0) -> Any:
        """Run ``callback`` on the first tick at least ``delay`` seconds from now."""
        ...

    def cancel(self, handle: Any) -> None:
        ...


class FrameTickScheduler:
    """
    Calls back on the boundaries of a fixed display cadence.

    Ticks sit on a grid of ``1 / fps`` seconds of the event loop clock, so a
    pass that finishes mid-frame waits for the next frame boundary rather
    than a full period.
    """

    def __init__(self, fps: float = 30.0, loop: Optional[asyncio.AbstractEventLoop] = None):
        if fps <= 0:
            raise ValueError("fps must be positive")
        self.fps = fps
        self._loop = loop

    @property
    def period(self) -> float:
        return 1.0 / self.fps

    def next_tick(self, now: float, delay: float = 0.0) -> float:
        """Event loop time of the first tick strictly after ``now + delay``."""
        target = now + max(0.0, delay)
        return (math.floor(target / self.period) + 1) * self.period

    def schedule(self, callback: Callable[[], None], delay: float = 0.0) -> asyncio.TimerHandle:
        loop = self._loop or asyncio.get_running_loop()
        return loop.call_at(self.next_tick(loop.time(), delay), callback)

    def cancel(self, handle: Any) -> None:
        if handle is not None:
            handle.cancel()
