"""
Pipeline module for the object overlay app.

The pipeline drives the detection flow:
- Frame acquisition from an observation source
- Detection via the loaded model
- Overlay rendering
- Scheduling of the next pass on the display cadence
"""

from .loop import DetectionLoop, DetectionMode, LoopController, LoopState, LoopStats
from .scheduler import FrameTickScheduler, TickScheduler

__all__ = [
    "DetectionLoop",
    "DetectionMode",
    "LoopController",
    "LoopState",
    "LoopStats",
    "FrameTickScheduler",
    "TickScheduler",
]
