"""
ObservationSource interface for frame providers.

A frame provider supplies the current visual frame to the detection loop:
- a live webcam (continuous, one new frame per read)
- a decoded still image (static, the same frame on every read)
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, Optional

from models.frame import FrameData


@dataclass
class ObservationConfig:
    """
    Base configuration for observation sources.

    Attributes:
        source_id: Identifier for this source (e.g., "webcam", "upload").
        resolution: Requested resolution as (width, height). None = source default.
        fps: Requested frames per second. None = source default.
        metadata: Additional source-specific configuration.
    """
    source_id: str = "default"
    resolution: Optional[tuple[int, int]] = None
    fps: Optional[int] = None
    metadata: Dict[str, Any] = field(default_factory=dict)


class ObservationSource(ABC):
    """
    Abstract base class for frame providers.

    Lifecycle:
        1. Create instance with config
        2. Call open() to acquire the device or decode the image
        3. Call read() to get frames
        4. Call close() to release resources

    Can also be used as a context manager:
        with CameraSource(config) as source:
            frame_data = source.read()
    """

    def __init__(self, config: ObservationConfig):
        self._config = config
        self._is_open = False
        self._frame_index = 0

    @property
    def source_id(self) -> str:
        """Identifier for this source."""
        return self._config.source_id

    @property
    def is_open(self) -> bool:
        """Whether the source is currently open and ready to read."""
        return self._is_open

    @property
    def frame_index(self) -> int:
        """Number of frames read since open."""
        return self._frame_index

    @property
    @abstractmethod
    def is_static(self) -> bool:
        """True for still images (one-shot detection), False for live video."""

    @abstractmethod
    def open(self) -> None:
        """
        Open/initialize the source.

        Must be called before read().

        Raises:
            DetectionAppError: If the source cannot be opened.
        """

    @abstractmethod
    def read(self) -> Optional[FrameData]:
        """
        Read the current frame.

        Returns:
            FrameData, or None if no frame is available.
        """

    @abstractmethod
    def close(self) -> None:
        """
        Release any resources held by the source.

        Safe to call multiple times.
        """

    def __enter__(self) -> "ObservationSource":
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def __iter__(self) -> Iterator[FrameData]:
        """
        Iterate over frames until the source yields None.

        Static sources yield their frame once.
        """
        if not self._is_open:
            raise RuntimeError("Source must be open before iterating")

        while True:
            frame_data = self.read()
            if frame_data is None:
                break
            yield frame_data
            if self.is_static:
                break
