"""
Detection models for object detection results.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Tuple


@dataclass(frozen=True)
class BoundingBox:
    """
    An axis-aligned box in frame-pixel coordinates (origin top-left).

    Attributes:
        x: Left edge x coordinate.
        y: Top edge y coordinate.
        width: Box width in pixels.
        height: Box height in pixels.
    """
    x: float
    y: float
    width: float
    height: float

    @property
    def x2(self) -> float:
        return self.x + self.width

    @property
    def y2(self) -> float:
        return self.y + self.height

    @property
    def center(self) -> Tuple[float, float]:
        return (self.x + self.width / 2, self.y + self.height / 2)

    @property
    def area(self) -> float:
        return self.width * self.height

    def as_tuple(self) -> Tuple[float, float, float, float]:
        """Return as (x, y, width, height) tuple."""
        return (self.x, self.y, self.width, self.height)

    def as_int_tuple(self) -> Tuple[int, int, int, int]:
        """Return as integer (x1, y1, x2, y2) corners, the form cv2 drawing wants."""
        return (int(self.x), int(self.y), int(self.x2), int(self.y2))

    @classmethod
    def from_tuple(cls, t: Tuple[float, float, float, float]) -> "BoundingBox":
        """Create from (x, y, width, height) tuple."""
        return cls(x=float(t[0]), y=float(t[1]), width=float(t[2]), height=float(t[3]))

    @classmethod
    def from_xyxy(cls, x1: float, y1: float, x2: float, y2: float) -> "BoundingBox":
        """Create from corner coordinates."""
        return cls(x=float(x1), y=float(y1), width=float(x2 - x1), height=float(y2 - y1))


@dataclass(frozen=True)
class Detection:
    """
    A single detection from an object detector.

    Attributes:
        class_name: Human-readable class label (e.g. "person").
        confidence: Detection confidence score (0-1).
        bbox: Bounding box in pixel coordinates of the source frame.
    """
    class_name: str
    confidence: float
    bbox: BoundingBox

    @property
    def label(self) -> str:
        """Overlay text, e.g. ``cat (92.0%)``."""
        return format_label(self.class_name, self.confidence)

    @classmethod
    def from_xywh(
        cls,
        class_name: str,
        confidence: float,
        x: float,
        y: float,
        width: float,
        height: float,
    ) -> "Detection":
        return cls(
            class_name=class_name,
            confidence=float(confidence),
            bbox=BoundingBox(x=float(x), y=float(y), width=float(width), height=float(height)),
        )

    @classmethod
    def from_xyxy(
        cls,
        class_name: str,
        confidence: float,
        x1: float,
        y1: float,
        x2: float,
        y2: float,
    ) -> "Detection":
        return cls(
            class_name=class_name,
            confidence=float(confidence),
            bbox=BoundingBox.from_xyxy(x1, y1, x2, y2),
        )

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Detection":
        """
        Adapter: build from a prediction dict ``{"class" | "class_name", "score", "bbox": [x, y, w, h]}``.
        """
        return cls(
            class_name=str(d["class"] if "class" in d else d["class_name"]),
            confidence=float(d["score"]),
            bbox=BoundingBox.from_tuple(d["bbox"]),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "class_name": self.class_name,
            "score": self.confidence,
            "bbox": list(self.bbox.as_tuple()),
            "label": self.label,
        }


def format_label(class_name: str, confidence: float) -> str:
    """Format ``"{class} ({percent:.1f}%)"``."""
    return f"{class_name} ({confidence * 100:.1f}%)"


def filter_by_confidence(detections: List[Detection], threshold) -> List[Detection]:
    """
    Keep detections strictly above ``threshold``.

    A ``None`` threshold keeps everything.
    """
    if threshold is None:
        return list(detections)
    return [d for d in detections if d.confidence > threshold]

