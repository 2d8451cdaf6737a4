"""
Detection loop controller.

Runs detection passes over a frame source and keeps the overlay in sync:

    read frame -> detect -> render -> (continuous) schedule next tick

At most one pass is ever in flight: the next pass is only scheduled after the
current render has completed. stop() is cooperative; it is checked before
rendering a resolved pass and before scheduling the next one, and never
aborts a detect call already running.
"""

from __future__ import annotations

import asyncio
import functools
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, List, Optional

from detection.base import DetectionSource
from models.config import LoopConfig
from models.detection import Detection
from models.frame import FrameData
from observation.base import ObservationSource
from rendering.overlay import OverlayRenderer
from runtime.errors import DetectionPassFailure
from .scheduler import TickScheduler

MAX_RETRY_BACKOFF_S = 5.0


class LoopState(Enum):
    IDLE = "idle"
    RUNNING = "running"
    DONE = "done"
    STOPPED = "stopped"


class DetectionMode(Enum):
    ONE_SHOT = "one_shot"
    CONTINUOUS = "continuous"


@dataclass
class LoopStats:
    """Runtime statistics for one loop instance."""
    passes_completed: int = 0
    passes_discarded: int = 0
    consecutive_failures: int = 0
    total_failures: int = 0
    last_pass_ms: Optional[float] = None


class DetectionLoop:
    """
    One detection session over one frame source.

    Lifecycle: IDLE -> RUNNING -> DONE (one-shot) or STOPPED (stop/failure).
    start() from DONE or STOPPED runs again.

    Example:
        loop = DetectionLoop(source, model, renderer, FrameTickScheduler(30))
        loop.start()
        ...
        loop.stop()
        await loop.wait()
    """

    def __init__(
        self,
        source: ObservationSource,
        detector: DetectionSource,
        renderer: OverlayRenderer,
        scheduler: TickScheduler,
        mode: Optional[DetectionMode] = None,
        config: Optional[LoopConfig] = None,
    ):
        self.source = source
        self.detector = detector
        self.renderer = renderer
        self.scheduler = scheduler
        if mode is None:
            mode = DetectionMode.ONE_SHOT if source.is_static else DetectionMode.CONTINUOUS
        self.mode = mode
        self.config = config or LoopConfig()
        self.state = LoopState.IDLE
        self.stats = LoopStats()
        self.last_error: Optional[str] = None
        self._generation = 0
        self._pending: Any = None
        self._task: Optional[asyncio.Task] = None
        self._in_flight = False
        self._restart_requested = False
        self._callbacks: List[Callable[[FrameData, List[Detection]], None]] = []
        self._failure_callbacks: List[Callable[[Exception], None]] = []

    @property
    def is_running(self) -> bool:
        return self.state is LoopState.RUNNING

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    def add_callback(self, callback: Callable[[FrameData, List[Detection]], None]) -> None:
        """
        Add a callback to be called after each rendered pass.

        Args:
            callback: Function taking (frame_data, detections) as arguments.
        """
        self._callbacks.append(callback)

    def add_failure_callback(self, callback: Callable[[Exception], None]) -> None:
        """Add a callback to be called when a failure stops the loop."""
        self._failure_callbacks.append(callback)

    def start(self) -> bool:
        """
        Begin detecting. Must be called from the event loop thread.

        Returns False (and changes nothing) when the detector is not ready
        or the source is not open.
        """
        if self.state is LoopState.RUNNING:
            return True
        if not self.detector.is_ready:
            logging.warning("Detection loop not started: model is not loaded")
            return False
        if not self.source.is_open:
            logging.warning(f"Detection loop not started: source {self.source.source_id} is not open")
            return False

        self._generation += 1
        self.state = LoopState.RUNNING
        self.stats.consecutive_failures = 0
        self.last_error = None
        logging.info(f"Detection loop started: source={self.source.source_id}, mode={self.mode.value}")

        if self._in_flight:
            # A pass from before the last stop is still settling; go once it has.
            self._restart_requested = True
        else:
            self._launch()
        return True

    def stop(self) -> None:
        """Halt the loop, cancel the pending tick and clear the overlay."""
        if self.state is LoopState.IDLE:
            return
        was_running = self.state is LoopState.RUNNING
        self.state = LoopState.STOPPED
        self._restart_requested = False
        self._cancel_pending()
        self.renderer.clear()
        if was_running:
            logging.info(f"Detection loop stopped: source={self.source.source_id}")

    async def wait(self) -> None:
        """Wait for the pass currently in flight, if any."""
        task = self._task
        if task is not None and not task.done():
            await task

    def _launch(self) -> None:
        # Claimed before the task runs so a same-tick restart sees it.
        self._in_flight = True
        self._task = asyncio.ensure_future(self._run_pass(self._generation))

    def _on_tick(self, generation: int) -> None:
        self._pending = None
        if self._is_stale(generation) or self._in_flight:
            return
        self._launch()

    def _schedule_next(self, delay: float = 0.0) -> None:
        self._pending = self.scheduler.schedule(functools.partial(self._on_tick, self._generation), delay)

    def _cancel_pending(self) -> None:
        if self._pending is not None:
            self.scheduler.cancel(self._pending)
            self._pending = None

    def _is_stale(self, generation: int) -> bool:
        return self.state is not LoopState.RUNNING or generation != self._generation

    async def _read_frame(self) -> Optional[FrameData]:
        if self.source.is_static:
            return self.source.read()
        # Camera reads block until the next frame is decoded.
        return await asyncio.to_thread(self.source.read)

    async def _run_pass(self, generation: int) -> None:
        started = time.perf_counter()
        frame_data: Optional[FrameData] = None
        detections: List[Detection] = []
        error: Optional[Exception] = None
        try:
            frame_data = await self._read_frame()
            if frame_data is None:
                raise DetectionPassFailure(f"No frame available from {self.source.source_id}")
            detections = await self.detector.detect(frame_data.frame)
        except Exception as e:
            error = e
        finally:
            self._in_flight = False

        if self._is_stale(generation):
            self.stats.passes_discarded += 1
            logging.debug("Discarding detection pass that resolved after stop")
            if self._restart_requested and self.state is LoopState.RUNNING:
                self._restart_requested = False
                self._launch()
            return

        if error is not None:
            self._on_failure(error)
            return

        self.renderer.render(detections, frame_data.width, frame_data.height)
        self.stats.passes_completed += 1
        self.stats.consecutive_failures = 0
        self.stats.last_pass_ms = (time.perf_counter() - started) * 1000.0
        self._notify(frame_data, detections)

        # A callback may have stopped us.
        if self._is_stale(generation):
            return
        if self.mode is DetectionMode.ONE_SHOT:
            self.state = LoopState.DONE
            logging.info(f"One-shot detection done: {len(detections)} detections")
        else:
            self._schedule_next()

    def _notify(self, frame_data: FrameData, detections: List[Detection]) -> None:
        for callback in self._callbacks:
            try:
                callback(frame_data, detections)
            except Exception as e:
                logging.warning(f"Callback error: {e}")

    def _on_failure(self, error: Exception) -> None:
        self.stats.consecutive_failures += 1
        self.stats.total_failures += 1
        self.last_error = str(error)
        limit = max(1, self.config.max_consecutive_failures)
        logging.error(
            f"Detection pass failed ({self.stats.consecutive_failures}/{limit}): {error}"
        )

        if self.mode is DetectionMode.ONE_SHOT or self.stats.consecutive_failures >= limit:
            self.state = LoopState.STOPPED
            self._cancel_pending()
            self.renderer.clear()
            logging.warning(f"Detection loop stopped after failure: source={self.source.source_id}")
            for callback in self._failure_callbacks:
                try:
                    callback(error)
                except Exception as e:
                    logging.warning(f"Failure callback error: {e}")
            return

        backoff = self.config.retry_backoff_s * 2 ** (self.stats.consecutive_failures - 1)
        self._schedule_next(min(backoff, MAX_RETRY_BACKOFF_S))


class LoopController:
    """
    Owns the active DetectionLoop and enforces one loop per render surface.

    start(source, detector, mode) returns the loop as its handle. Starting
    with a different source stops the previous loop first so a stale
    scheduled pass can never draw onto the new session.
    """

    def __init__(self, renderer: OverlayRenderer, scheduler: TickScheduler, config: Optional[LoopConfig] = None):
        self.renderer = renderer
        self.scheduler = scheduler
        self.config = config or LoopConfig()
        self.active: Optional[DetectionLoop] = None
        self._callbacks: List[Callable[[FrameData, List[Detection]], None]] = []
        self._failure_callbacks: List[Callable[[Exception], None]] = []

    def add_callback(self, callback: Callable[[FrameData, List[Detection]], None]) -> None:
        """Register a callback on every loop this controller creates."""
        self._callbacks.append(callback)

    def add_failure_callback(self, callback: Callable[[Exception], None]) -> None:
        self._failure_callbacks.append(callback)

    def start(
        self,
        source: ObservationSource,
        detector: DetectionSource,
        mode: Optional[DetectionMode] = None,
    ) -> DetectionLoop:
        handle = self.active
        reuse = (
            handle is not None
            and handle.source is source
            and handle.detector is detector
            and (mode is None or handle.mode is mode)
        )
        if not reuse:
            if handle is not None:
                self.stop(handle)
            handle = DetectionLoop(source, detector, self.renderer, self.scheduler, mode, self.config)
            for callback in self._callbacks:
                handle.add_callback(callback)
            for callback in self._failure_callbacks:
                handle.add_failure_callback(callback)
            self.active = handle
        handle.start()
        return handle

    def stop(self, handle: Optional[DetectionLoop] = None) -> None:
        handle = handle or self.active
        if handle is not None:
            handle.stop()
