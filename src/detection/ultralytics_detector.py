"""
YOLO detector backed by Ultralytics.

Ultralytics is an optional dependency (``pip install .[yolo]``); the import is
deferred so the rest of the app stays importable without it.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

import numpy as np

from models.detection import Detection


@dataclass(frozen=True)
class UltralyticsConfig:
    model: str
    conf_threshold: float = 0.25
    iou_threshold: float = 0.45
    classes: Optional[Sequence[int]] = None
    class_name_overrides: Optional[Dict[int, str]] = None


class UltralyticsDetector:
    def __init__(self, cfg: UltralyticsConfig):
        self.cfg = cfg
        try:
            from ultralytics import YOLO  # type: ignore
        except ImportError as e:  # pragma: no cover
            raise ImportError(
                "Ultralytics is not installed. Install with `pip install ultralytics` "
                "or switch detection.backend to 'ssd'."
            ) from e

        self._model = YOLO(cfg.model)

    def detect(self, frame: np.ndarray) -> List[Detection]:
        results = self._model.predict(
            source=frame,
            conf=self.cfg.conf_threshold,
            iou=self.cfg.iou_threshold,
            classes=list(self.cfg.classes) if self.cfg.classes is not None else None,
            verbose=False,
        )
        if not results:
            return []

        r0 = results[0]
        names = getattr(r0, "names", None) or {}
        boxes = getattr(r0, "boxes", None)
        if boxes is None:
            return []

        xyxy = boxes.xyxy.cpu().numpy() if hasattr(boxes.xyxy, "cpu") else np.asarray(boxes.xyxy)
        conf = boxes.conf.cpu().numpy() if hasattr(boxes.conf, "cpu") else np.asarray(boxes.conf)
        cls = boxes.cls.cpu().numpy() if hasattr(boxes.cls, "cpu") else np.asarray(boxes.cls)

        return [
            Detection.from_xyxy(self._class_name(int(k), names), float(c), x1, y1, x2, y2)
            for (x1, y1, x2, y2), c, k in zip(xyxy, conf, cls)
        ]

    def _class_name(self, class_id: int, names: Dict[int, str]) -> str:
        return (
            (self.cfg.class_name_overrides or {}).get(class_id)
            or names.get(class_id)
            or str(class_id)
        )
