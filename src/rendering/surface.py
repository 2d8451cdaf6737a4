"""
2D drawable overlay surface.

A transparent BGRA canvas the size of the frame. Drawing goes onto the
canvas only; composite() blends it over a frame for display.
"""

from __future__ import annotations

from typing import Sequence, Tuple

import cv2
import numpy as np

FONT = cv2.FONT_HERSHEY_SIMPLEX


class OverlaySurface:
    def __init__(self, width: int = 0, height: int = 0):
        self._canvas = np.zeros((height, width, 4), dtype=np.uint8)

    @property
    def width(self) -> int:
        return self._canvas.shape[1]

    @property
    def height(self) -> int:
        return self._canvas.shape[0]

    @property
    def size(self) -> Tuple[int, int]:
        return (self.width, self.height)

    @property
    def image(self) -> np.ndarray:
        """Copy of the BGRA canvas."""
        return self._canvas.copy()

    def resize(self, width: int, height: int) -> None:
        """Match the frame's intrinsic size; reallocating wipes the canvas."""
        if (width, height) != self.size:
            self._canvas = np.zeros((int(height), int(width), 4), dtype=np.uint8)

    def clear(self) -> None:
        self._canvas[:] = 0

    def is_blank(self) -> bool:
        return not self._canvas[..., 3].any()

    def draw_rect(self, pt1: Tuple[int, int], pt2: Tuple[int, int], color: Sequence[int], thickness: int) -> None:
        cv2.rectangle(self._canvas, pt1, pt2, _bgra(color), thickness)

    def fill_rect(self, pt1: Tuple[int, int], pt2: Tuple[int, int], color: Sequence[int]) -> None:
        cv2.rectangle(self._canvas, pt1, pt2, _bgra(color), -1)

    def draw_text(self, text: str, origin: Tuple[int, int], color: Sequence[int], font_scale: float, thickness: int = 1) -> None:
        """origin is the text baseline's left end, as in cv2.putText."""
        cv2.putText(self._canvas, text, origin, FONT, font_scale, _bgra(color), thickness, cv2.LINE_AA)

    @staticmethod
    def text_width(text: str, font_scale: float, thickness: int = 1) -> int:
        (tw, _th), _ = cv2.getTextSize(text, FONT, font_scale, thickness)
        return tw

    def composite(self, frame: np.ndarray) -> np.ndarray:
        """Return a copy of ``frame`` (BGR) with the overlay blended on top."""
        out = frame.copy()
        if self.width == 0 or self.height == 0:
            return out

        overlay = self._canvas
        fh, fw = frame.shape[:2]
        if (fw, fh) != self.size:
            overlay = cv2.resize(overlay, (fw, fh), interpolation=cv2.INTER_NEAREST)

        alpha = overlay[..., 3:4].astype(np.float32) / 255.0
        blended = out.astype(np.float32) * (1.0 - alpha) + overlay[..., :3].astype(np.float32) * alpha
        return blended.astype(np.uint8)


def _bgra(color: Sequence[int]) -> Tuple[int, int, int, int]:
    b, g, r = (int(c) for c in color[:3])
    return (b, g, r, 255)
