"""
Overlay renderer: draws one rectangle + label per detection.

The renderer owns its marker set. Every render() call throws away the markers
from the previous call and draws the new set from scratch; nothing carries
over between passes.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from models.config import OverlayConfig
from models.detection import BoundingBox, Detection, filter_by_confidence
from .surface import OverlaySurface

_UNSET = object()

LABEL_TEXT_COLOR = (0, 0, 0)


@dataclass(frozen=True)
class OverlayMarker:
    """
    A drawn rectangle + label for one detection.

    Attributes:
        detection: The detection this marker shows.
        label: Text drawn next to the box.
        label_top: Top edge of the label area in frame pixels.
        label_height: Height of the label area.
    """
    detection: Detection
    label: str
    label_top: float
    label_height: int

    @property
    def box(self) -> BoundingBox:
        return self.detection.bbox

    @property
    def label_above(self) -> bool:
        return self.label_top < self.box.y


def label_top_for(bbox: BoundingBox, label_height: int) -> float:
    """
    Top of the label area: above the box when it fits, otherwise inside it.

    Never negative, so labels are not clipped off the top edge.
    """
    if bbox.y > label_height:
        return bbox.y - label_height
    return max(0.0, bbox.y)


class OverlayRenderer:
    """
    Draws detections onto an OverlaySurface.

    Example:
        renderer = OverlayRenderer(OverlaySurface(), OverlayConfig(confidence_threshold=0.5))
        renderer.render(detections, frame.width, frame.height)
        preview = renderer.surface.composite(frame.frame)
    """

    def __init__(self, surface: Optional[OverlaySurface] = None, config: Optional[OverlayConfig] = None):
        self.surface = surface if surface is not None else OverlaySurface()
        self.config = config or OverlayConfig()
        self._markers: List[OverlayMarker] = []

    @property
    def markers(self) -> Tuple[OverlayMarker, ...]:
        return tuple(self._markers)

    def render(
        self,
        detections: Sequence[Detection],
        frame_width: int,
        frame_height: int,
        confidence_threshold=_UNSET,
    ) -> None:
        """
        Replace the overlay with markers for ``detections``.

        Detections with confidence <= threshold are skipped. The threshold
        defaults to the configured one; pass None to draw everything.
        """
        if confidence_threshold is _UNSET:
            confidence_threshold = self.config.confidence_threshold

        self.clear()
        self.surface.resize(frame_width, frame_height)

        for det in filter_by_confidence(list(detections), confidence_threshold):
            marker = OverlayMarker(
                detection=det,
                label=det.label,
                label_top=label_top_for(det.bbox, self.config.label_height),
                label_height=self.config.label_height,
            )
            self._draw(marker)
            self._markers.append(marker)

    def clear(self) -> None:
        """Destroy every marker and wipe the surface."""
        self._markers = []
        self.surface.clear()

    def _draw(self, marker: OverlayMarker) -> None:
        cfg = self.config
        x1, y1, x2, y2 = marker.box.as_int_tuple()
        self.surface.draw_rect((x1, y1), (x2, y2), cfg.box_color, cfg.box_thickness)

        top = int(marker.label_top)
        baseline = top + marker.label_height - 4
        if cfg.label_background:
            tw = self.surface.text_width(marker.label, cfg.font_scale)
            self.surface.fill_rect((x1, top), (x1 + tw + 8, top + marker.label_height), cfg.box_color)
            self.surface.draw_text(marker.label, (x1 + 4, baseline), LABEL_TEXT_COLOR, cfg.font_scale)
        else:
            self.surface.draw_text(marker.label, (x1, baseline), cfg.box_color, cfg.font_scale)
