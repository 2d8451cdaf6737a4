"""
Still-image frame provider for uploaded pictures.
"""

from __future__ import annotations

import logging
import time
from typing import Optional

import cv2
import numpy as np

from models.frame import FrameData
from runtime.errors import DecodeFailure
from .base import ObservationSource, ObservationConfig


class ImageSource(ObservationSource):
    """
    A decoded image served as a static frame.

    The payload is decoded on open(), so the intrinsic size is known before
    the first detection pass. read() returns the same frame every time.
    """

    def __init__(self, data: bytes, content_type: Optional[str] = None, config: Optional[ObservationConfig] = None):
        super().__init__(config or ObservationConfig(source_id="upload"))
        self._data = data
        self._content_type = content_type
        self._frame_data: Optional[FrameData] = None

    @classmethod
    def from_bytes(cls, data: bytes, content_type: Optional[str] = None) -> "ImageSource":
        """Build and decode an image source, raising DecodeFailure on bad input."""
        source = cls(data, content_type)
        source.open()
        return source

    @property
    def is_static(self) -> bool:
        return True

    @property
    def width(self) -> int:
        return self._frame_data.width if self._frame_data else 0

    @property
    def height(self) -> int:
        return self._frame_data.height if self._frame_data else 0

    def open(self) -> None:
        if self._is_open:
            return

        if self._content_type is not None and not self._content_type.startswith("image/"):
            raise DecodeFailure(f"Unsupported content type: {self._content_type}")
        if not self._data:
            raise DecodeFailure("Empty upload")

        buf = np.frombuffer(self._data, dtype=np.uint8)
        frame = cv2.imdecode(buf, cv2.IMREAD_COLOR)
        if frame is None:
            raise DecodeFailure("Could not decode uploaded image")

        self._frame_data = FrameData.from_numpy(frame, timestamp=time.time(), source=self.source_id)
        self._is_open = True
        self._frame_index = 0
        logging.info(f"Image decoded: {self._frame_data.width}x{self._frame_data.height}")

    def read(self) -> Optional[FrameData]:
        if not self._is_open or self._frame_data is None:
            return None
        self._frame_index += 1
        return self._frame_data

    def close(self) -> None:
        self._is_open = False
