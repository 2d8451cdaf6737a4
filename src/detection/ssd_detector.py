"""
SSD MobileNet (COCO) detector running on OpenCV's DNN module.

Needs the frozen TensorFlow graph, its .pbtxt description, and a labels file
with one class name per line (COCO ordering, index 0 = class id 1).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Sequence

import cv2
import numpy as np

from models.detection import Detection


@dataclass(frozen=True)
class SsdDetectorConfig:
    model: str
    config: str
    labels: str
    score_threshold: float = 0.3
    input_size: int = 300


def load_labels(path: str) -> List[str]:
    with open(path, "r") as f:
        return [line.strip() for line in f if line.strip()]


class SsdDetector:
    def __init__(self, cfg: SsdDetectorConfig):
        self.cfg = cfg
        self._net = cv2.dnn.readNetFromTensorflow(cfg.model, cfg.config)
        self._labels = load_labels(cfg.labels)
        logging.info(f"SSD model loaded: {cfg.model} ({len(self._labels)} labels)")

    def detect(self, frame: np.ndarray) -> List[Detection]:
        h, w = frame.shape[:2]
        size = (self.cfg.input_size, self.cfg.input_size)
        blob = cv2.dnn.blobFromImage(frame, size=size, swapRB=True, crop=False)
        self._net.setInput(blob)
        out = self._net.forward()
        return parse_ssd_output(out, w, h, self._labels, self.cfg.score_threshold)


def parse_ssd_output(
    out: np.ndarray,
    frame_w: int,
    frame_h: int,
    labels: Sequence[str],
    score_threshold: float,
) -> List[Detection]:
    """
    Convert the (1, 1, N, 7) SSD output tensor into pixel-space detections.

    Each row is [batch, class_id, score, x1, y1, x2, y2] with normalized corners.
    """
    detections: List[Detection] = []
    for row in out.reshape(-1, 7):
        score = float(row[2])
        if score < score_threshold:
            continue
        class_id = int(row[1])
        idx = class_id - 1
        class_name = labels[idx] if 0 <= idx < len(labels) else str(class_id)

        x1, y1, x2, y2 = np.clip(row[3:7], 0.0, 1.0) * np.array([frame_w, frame_h, frame_w, frame_h])
        if x2 <= x1 or y2 <= y1:
            continue
        detections.append(Detection.from_xyxy(class_name, score, x1, y1, x2, y2))
    return detections
