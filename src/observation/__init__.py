"""
Observation layer: frame providers for the detection loop.

Each source implements the ObservationSource interface and returns
FrameData objects. The webcam is continuous; an uploaded image is static.
"""

from .base import ObservationSource, ObservationConfig
from .camera_source import CameraSource, CameraSourceConfig, create_camera_source
from .image_source import ImageSource

__all__ = [
    "ObservationSource",
    "ObservationConfig",
    "CameraSource",
    "CameraSourceConfig",
    "create_camera_source",
    "ImageSource",
]
