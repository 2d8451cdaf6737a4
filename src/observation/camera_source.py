"""
OpenCV webcam frame provider.

Supports:
- USB webcams (device_id as int, e.g., 0)
- Video files or stream URLs (device_id as str), handy for demos without a camera
"""

from __future__ import annotations

import logging
import os
import threading
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

import cv2
import numpy as np

from models.frame import FrameData
from runtime.errors import CameraUnavailable
from .base import ObservationSource, ObservationConfig


@dataclass
class CameraSourceConfig(ObservationConfig):
    """
    Configuration for the webcam source.

    Attributes:
        device_id: Camera index (int), or file path / URL (str).
        buffer_size: OpenCV capture buffer size (reduces latency for live feeds).
        max_retries: Maximum attempts to open the device.
        rotate: Rotation in degrees (0, 90, 180, 270).
        flip_horizontal: Flip frame horizontally (mirror view).
        flip_vertical: Flip frame vertically.
    """
    device_id: Union[int, str] = 0
    buffer_size: int = 1
    max_retries: int = 3
    rotate: int = 0
    flip_horizontal: bool = False
    flip_vertical: bool = False

    @classmethod
    def from_camera_config(cls, camera_cfg: Dict[str, Any], source_id: str = "webcam") -> "CameraSourceConfig":
        """
        Adapter: Create CameraSourceConfig from the camera section of config.yaml.
        """
        resolution = camera_cfg.get("resolution")
        if resolution:
            resolution = tuple(resolution)

        return cls(
            source_id=source_id,
            resolution=resolution,
            fps=camera_cfg.get("fps"),
            device_id=camera_cfg.get("device_id", 0),
            buffer_size=camera_cfg.get("buffer_size", 1),
            max_retries=camera_cfg.get("max_retries", 3),
            rotate=camera_cfg.get("rotate", 0) or 0,
            flip_horizontal=camera_cfg.get("flip_horizontal", False),
            flip_vertical=camera_cfg.get("flip_vertical", False),
        )


class CameraSource(ObservationSource):
    """
    Live video frame provider wrapping cv2.VideoCapture.

    The capture handle is the shared media resource: whoever opened the
    source owns it and must close() it on every exit path.

    Example:
        config = CameraSourceConfig(device_id=0, resolution=(640, 480))
        with CameraSource(config) as source:
            frame_data = source.read()
    """

    def __init__(self, config: CameraSourceConfig):
        super().__init__(config)
        self._camera_config = config
        self._cap: Optional[cv2.VideoCapture] = None
        self._lock = threading.Lock()

    @property
    def device_id(self) -> Union[int, str]:
        return self._camera_config.device_id

    @property
    def is_static(self) -> bool:
        return False

    @property
    def is_file(self) -> bool:
        """Check if this is a video file."""
        return isinstance(self.device_id, str) and os.path.exists(self.device_id)

    def open(self) -> None:
        """Acquire the capture device."""
        if self._is_open:
            return

        attempts = max(1, self._camera_config.max_retries)
        for attempt in range(attempts):
            if attempt > 0:
                wait_time = min(2 ** (attempt - 1), 4)
                logging.info(f"Retrying camera open (attempt {attempt + 1}/{attempts}) after {wait_time}s")
                time.sleep(wait_time)

            self._cap = cv2.VideoCapture(self.device_id)
            if self._cap.isOpened():
                break

            logging.warning(f"Failed to open camera {self.device_id}")
            self._cap.release()
            self._cap = None

        if self._cap is None:
            raise CameraUnavailable(
                f"Failed to open camera {self.device_id} after {attempts} attempts"
            )

        self._configure_capture()
        self._is_open = True
        self._frame_index = 0
        logging.info(
            f"CameraSource opened: source_id={self.source_id}, "
            f"device={self.device_id}, resolution={self._camera_config.resolution}"
        )

    def _configure_capture(self) -> None:
        """Apply resolution/fps to USB cameras (not files/streams)."""
        if not isinstance(self.device_id, int) or not self._camera_config.resolution:
            return

        w, h = self._camera_config.resolution
        self._cap.set(cv2.CAP_PROP_FRAME_WIDTH, w)
        self._cap.set(cv2.CAP_PROP_FRAME_HEIGHT, h)
        if self._camera_config.fps:
            self._cap.set(cv2.CAP_PROP_FPS, self._camera_config.fps)
        self._cap.set(cv2.CAP_PROP_BUFFERSIZE, self._camera_config.buffer_size)

        actual_w = self._cap.get(cv2.CAP_PROP_FRAME_WIDTH)
        actual_h = self._cap.get(cv2.CAP_PROP_FRAME_HEIGHT)
        logging.info(f"Camera actual resolution: ({actual_w}x{actual_h})")

    def read(self) -> Optional[FrameData]:
        """Grab the current frame. Returns None on a failed read."""
        with self._lock:
            if not self._is_open or self._cap is None:
                return None
            ret, frame = self._cap.read()

        if not ret or frame is None:
            if self.is_file:
                logging.info("End of video file reached")
            else:
                logging.warning("Failed to read frame from camera")
            return None

        frame = self._apply_transforms(frame)
        self._frame_index += 1

        return FrameData.from_numpy(
            frame,
            timestamp=time.time(),
            frame_index=self._frame_index,
            source=self.source_id,
        )

    def _apply_transforms(self, frame: np.ndarray) -> np.ndarray:
        """Apply configured image transforms (rotate, flip)."""
        cfg = self._camera_config

        if cfg.rotate == 90:
            frame = cv2.rotate(frame, cv2.ROTATE_90_CLOCKWISE)
        elif cfg.rotate == 180:
            frame = cv2.rotate(frame, cv2.ROTATE_180)
        elif cfg.rotate == 270:
            frame = cv2.rotate(frame, cv2.ROTATE_90_COUNTERCLOCKWISE)

        if cfg.flip_horizontal or cfg.flip_vertical:
            if cfg.flip_horizontal and cfg.flip_vertical:
                flip_code = -1
            elif cfg.flip_horizontal:
                flip_code = 1
            else:
                flip_code = 0
            frame = cv2.flip(frame, flip_code)

        return frame

    def close(self) -> None:
        """Release the capture device."""
        with self._lock:
            if self._cap is not None:
                self._cap.release()
                self._cap = None
                logging.info(f"CameraSource closed: source_id={self.source_id}")
            self._is_open = False


def create_camera_source(camera_cfg: Dict[str, Any], source_id: str = "webcam") -> CameraSource:
    """Factory: build a CameraSource from the camera config section."""
    return CameraSource(CameraSourceConfig.from_camera_config(camera_cfg or {}, source_id=source_id))
