"""
Detection interfaces.

Detectors are black boxes wrapping a pretrained model library:
- YOLO via Ultralytics
- SSD MobileNet (COCO) via OpenCV DNN

They return detections in pixel-space of the frame they were given.
"""

from __future__ import annotations

from typing import List, Protocol

import numpy as np

from models.detection import Detection


class Detector(Protocol):
    """Synchronous detector returning detections in pixel-space."""

    def detect(self, frame: np.ndarray) -> List[Detection]:
        ...


class DetectionSource(Protocol):
    """
    What the detection loop talks to: an awaitable detect with a ready flag.
    """

    @property
    def is_ready(self) -> bool:
        ...

    async def detect(self, frame: np.ndarray) -> List[Detection]:
        ...
