"""
Overlay rendering: markers drawn on a transparent canvas over the frame.
"""

from .surface import OverlaySurface
from .overlay import OverlayMarker, OverlayRenderer, label_top_for

__all__ = [
    "OverlaySurface",
    "OverlayMarker",
    "OverlayRenderer",
    "label_top_for",
]
