"""
Application session: the state behind the browser UI.

Holds the mode (webcam or uploaded image), the camera handle, the uploaded
image, the loop controller and the last predictions. All methods run on the
event loop; blocking camera work is pushed to a worker thread.
"""

from __future__ import annotations

import asyncio
import logging
import time
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

import numpy as np

from detection.model import ModelHolder
from models.config import Config
from models.detection import Detection
from models.frame import FrameData
from observation.base import ObservationSource
from observation.camera_source import create_camera_source
from observation.image_source import ImageSource
from pipeline.loop import DetectionLoop, DetectionMode, LoopController, LoopState
from pipeline.scheduler import TickScheduler
from rendering.overlay import OverlayRenderer
from runtime.errors import ModelUnavailable, NoFrameSource


class Mode(Enum):
    WEBCAM = "webcam"
    UPLOAD = "upload"


class DetectionSession:
    """Holds runtime state and service references; avoids global singletons."""

    def __init__(
        self,
        model: ModelHolder,
        renderer: OverlayRenderer,
        scheduler: TickScheduler,
        config: Optional[Config] = None,
        camera_factory: Optional[Callable[[], ObservationSource]] = None,
    ):
        self.config = config or Config()
        self.model = model
        self.renderer = renderer
        self.controller = LoopController(renderer, scheduler, self.config.loop)
        self.controller.add_callback(self._on_pass)
        self.controller.add_failure_callback(self._on_loop_failed)
        self._camera_factory = camera_factory or (
            lambda: create_camera_source(self.config.camera.to_dict())
        )
        self.mode = Mode(self.config.default_mode)
        self.camera: Optional[ObservationSource] = None
        self.image: Optional[ImageSource] = None
        self.predictions: List[Detection] = []
        self.latest_frame: Optional[FrameData] = None
        self.system_stats: Dict[str, Any] = {"start_time": time.time(), "last_frame_ts": None}

    @property
    def camera_active(self) -> bool:
        return self.camera is not None and self.camera.is_open

    @property
    def loop(self) -> Optional[DetectionLoop]:
        return self.controller.active

    def _loop_for(self, source: Optional[ObservationSource]) -> Optional[DetectionLoop]:
        loop = self.controller.active
        if source is not None and loop is not None and loop.source is source:
            return loop
        return None

    async def _halt_loop(self) -> None:
        loop = self.controller.active
        if loop is not None:
            loop.stop()
            await loop.wait()

    async def set_mode(self, mode: Mode) -> None:
        """Switch between webcam and upload. Stops the running loop first."""
        if mode is self.mode:
            return
        await self._halt_loop()
        if self.mode is Mode.WEBCAM:
            await self.stop_camera()
        self.mode = mode
        self.predictions = []
        self.latest_frame = self.image.read() if mode is Mode.UPLOAD and self.image else None
        logging.info(f"Mode switched to {mode.value}")

    async def start_camera(self) -> None:
        """
        Acquire the webcam.

        Raises:
            CameraUnavailable: the device could not be opened. The session
                stays usable (e.g. for image upload).
        """
        if self.camera_active:
            return
        if self.mode is not Mode.WEBCAM:
            await self.set_mode(Mode.WEBCAM)

        camera = self._camera_factory()
        try:
            await asyncio.to_thread(camera.open)
        except Exception:
            camera.close()
            raise

        self.camera = camera
        self.predictions = []
        logging.info("Webcam started")

    async def stop_camera(self) -> None:
        """Stop detection on the webcam and release the device."""
        loop = self._loop_for(self.camera)
        if loop is not None:
            loop.stop()
            await loop.wait()

        if self.camera is not None:
            self.camera.close()
            self.camera = None
            logging.info("Webcam stopped")

        if self.mode is Mode.WEBCAM:
            self.latest_frame = None
            self.predictions = []

    async def upload_image(self, data: bytes, content_type: Optional[str] = None) -> ImageSource:
        """
        Decode an uploaded image and make it the current source.

        Raises:
            DecodeFailure: payload is not an image. Nothing changes in that case.
        """
        source = await asyncio.to_thread(ImageSource.from_bytes, data, content_type)

        await self._halt_loop()
        await self.stop_camera()
        if self.image is not None:
            self.image.close()

        self.image = source
        self.mode = Mode.UPLOAD
        self.predictions = []
        self.latest_frame = source.read()
        self.renderer.clear()
        logging.info(f"Image uploaded: {source.width}x{source.height}")
        return source

    async def toggle_detection(self) -> LoopState:
        """
        Upload mode: run one detection pass over the image.
        Webcam mode: start the continuous loop, or stop it if running.

        Raises:
            ModelUnavailable: the model is not loaded; nothing is started.
            NoFrameSource: no camera/image to detect on.
        """
        if self.mode is Mode.UPLOAD:
            if self.image is None:
                raise NoFrameSource()
            if not self.model.is_ready:
                raise ModelUnavailable()
            loop = self.controller.start(self.image, self.model, DetectionMode.ONE_SHOT)
            await loop.wait()
            return loop.state

        if not self.camera_active:
            raise NoFrameSource()

        loop = self._loop_for(self.camera)
        if loop is not None and loop.is_running:
            loop.stop()
            self.predictions = []
            return loop.state

        if not self.model.is_ready:
            raise ModelUnavailable()
        loop = self.controller.start(self.camera, self.model, DetectionMode.CONTINUOUS)
        return loop.state

    def _on_pass(self, frame_data: FrameData, detections: List[Detection]) -> None:
        now = time.time()
        last = self.system_stats.get("last_frame_ts")
        if last:
            self.system_stats["fps"] = 1.0 / max(now - last, 1e-6)
        self.system_stats["last_frame_ts"] = now
        self.latest_frame = frame_data
        self.predictions = list(detections)

    def _on_loop_failed(self, error: Exception) -> None:
        # The overlay was wiped; drop the list that described it.
        self.predictions = []

    async def current_frame(self) -> Optional[FrameData]:
        """
        Frame for the preview. While the webcam is on but not detecting,
        grab a fresh frame; otherwise reuse the last rendered one.
        """
        if self.mode is Mode.WEBCAM and self.camera_active:
            loop = self._loop_for(self.camera)
            if loop is None or not loop.is_running:
                frame_data = await asyncio.to_thread(self.camera.read)
                if frame_data is not None:
                    self.latest_frame = frame_data
        return self.latest_frame

    def snapshot(self) -> Optional[np.ndarray]:
        """Latest frame with the overlay blended on top (BGR)."""
        if self.latest_frame is None:
            return None
        return self.renderer.surface.composite(self.latest_frame.frame)

    def detection_status(self) -> str:
        if self.mode is Mode.UPLOAD:
            loop = self._loop_for(self.image)
            return "done" if loop is not None and loop.state is LoopState.DONE else "none"
        loop = self._loop_for(self.camera)
        return "running" if loop is not None and loop.is_running else "stopped"

    def status(self) -> Dict[str, Any]:
        loop = self.controller.active
        now = time.time()
        last_frame_ts = self.system_stats.get("last_frame_ts")
        return {
            "model_loaded": self.model.is_ready,
            "model_loading": self.model.is_loading,
            "model_error": self.model.last_error,
            "mode": self.mode.value,
            "camera_active": self.camera_active,
            "image_loaded": self.image is not None,
            "detection": self.detection_status(),
            "loop_state": loop.state.value if loop else LoopState.IDLE.value,
            "prediction_count": len(self.predictions),
            "passes_completed": loop.stats.passes_completed if loop else 0,
            "last_error": loop.last_error if loop else None,
            "fps": self.system_stats.get("fps", 0.0),
            "last_frame_age": now - last_frame_ts if last_frame_ts else None,
            "uptime_seconds": int(now - self.system_stats["start_time"]),
        }

    async def teardown(self) -> None:
        """Stop everything and release the camera; safe on every exit path."""
        try:
            await self._halt_loop()
        finally:
            if self.camera is not None:
                self.camera.close()
                self.camera = None
            if self.image is not None:
                self.image.close()
        logging.info("Session torn down")
