"""
Typed models for the object overlay application.

These models are plain frozen/regular dataclasses; use the adapter
classmethods to convert from config dicts and prediction dicts.
"""

from .frame import FrameData
from .detection import Detection, BoundingBox, format_label, filter_by_confidence
from .config import (
    Config,
    CameraConfig,
    DetectionConfig,
    YoloConfig,
    SsdConfig,
    OverlayConfig,
    LoopConfig,
    WebConfig,
)

__all__ = [
    # Frame
    "FrameData",
    # Detection
    "Detection",
    "BoundingBox",
    "format_label",
    "filter_by_confidence",
    # Config
    "Config",
    "CameraConfig",
    "DetectionConfig",
    "YoloConfig",
    "SsdConfig",
    "OverlayConfig",
    "LoopConfig",
    "WebConfig",
]
