"""
Model lifecycle: load once, then serve detections to the loop.

The loaded detector is held by a ModelHolder instance that is passed to
whoever needs it, rather than kept in a module-level variable.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Dict, List, Optional

import numpy as np

from models.detection import Detection
from runtime.errors import ModelUnavailable
from .base import Detector


class ModelHolder:
    """
    Owns the load/ready lifecycle of a detector.

    load() builds the detector in a worker thread so the event loop keeps
    serving requests while weights are read. detect() is awaitable and
    raises ModelUnavailable until loading has succeeded.
    """

    def __init__(self, factory: Callable[[], Detector], name: str = "detector"):
        self._factory = factory
        self._detector: Optional[Detector] = None
        self._loading = False
        self.name = name
        self.last_error: Optional[str] = None

    @classmethod
    def from_detector(cls, detector: Detector, name: str = "detector") -> "ModelHolder":
        """Wrap an already constructed detector; the holder is ready immediately."""
        holder = cls(lambda: detector, name=name)
        holder._detector = detector
        return holder

    @property
    def is_ready(self) -> bool:
        return self._detector is not None

    @property
    def is_loading(self) -> bool:
        return self._loading

    async def load(self) -> bool:
        """Load the detector. Returns True when ready; failures are logged, not raised."""
        if self._detector is not None:
            return True
        if self._loading:
            return False

        self._loading = True
        try:
            self._detector = await asyncio.to_thread(self._factory)
        except Exception as e:
            self.last_error = str(e)
            logging.error(f"Failed to load detection model '{self.name}': {e}")
            return False
        finally:
            self._loading = False

        self.last_error = None
        logging.info(f"Detection model '{self.name}' loaded")
        return True

    async def detect(self, frame: np.ndarray) -> List[Detection]:
        if self._detector is None:
            raise ModelUnavailable()
        return await asyncio.to_thread(self._detector.detect, frame)


def create_detector(detection_cfg: Dict[str, Any]) -> Detector:
    """
    Factory: build the configured detector backend.

    detection.backend selects "yolo" (Ultralytics) or "ssd" (OpenCV DNN).
    """
    backend = detection_cfg.get("backend", "yolo")
    if backend == "yolo":
        from .ultralytics_detector import UltralyticsConfig, UltralyticsDetector

        ycfg = detection_cfg.get("yolo", {}) or {}
        return UltralyticsDetector(
            UltralyticsConfig(
                model=ycfg.get("model", "yolov8n.pt"),
                conf_threshold=float(ycfg.get("conf_threshold", 0.25)),
                iou_threshold=float(ycfg.get("iou_threshold", 0.45)),
                classes=ycfg.get("classes"),
                class_name_overrides=ycfg.get("class_name_overrides"),
            )
        )
    if backend == "ssd":
        from .ssd_detector import SsdDetector, SsdDetectorConfig

        scfg = detection_cfg.get("ssd", {}) or {}
        return SsdDetector(
            SsdDetectorConfig(
                model=scfg.get("model", "models/ssd/frozen_inference_graph.pb"),
                config=scfg.get("config", "models/ssd/ssd_mobilenet_v2_coco.pbtxt"),
                labels=scfg.get("labels", "models/ssd/coco.names"),
                score_threshold=float(scfg.get("score_threshold", 0.3)),
                input_size=int(scfg.get("input_size", 300)),
            )
        )
    raise ValueError(f"Unknown detection backend: {backend}")


def create_model_holder(detection_cfg: Dict[str, Any]) -> ModelHolder:
    """Holder whose load() builds the configured backend."""
    backend = detection_cfg.get("backend", "yolo")
    return ModelHolder(lambda: create_detector(detection_cfg), name=backend)
