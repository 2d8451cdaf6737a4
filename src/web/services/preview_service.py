from __future__ import annotations

import asyncio
from typing import AsyncIterator

import cv2
import numpy as np

from runtime.session import DetectionSession


class PreviewService:
    @staticmethod
    def encode_jpeg(frame: np.ndarray, quality: int = 80) -> bytes:
        ok, buf = cv2.imencode(".jpg", frame, [int(cv2.IMWRITE_JPEG_QUALITY), int(quality)])
        if not ok:
            raise RuntimeError("Failed to encode JPEG")
        return buf.tobytes()

    @staticmethod
    async def snapshot_jpeg(session: DetectionSession, quality: int = 80) -> bytes | None:
        await session.current_frame()
        frame = session.snapshot()
        if frame is None:
            return None
        return PreviewService.encode_jpeg(frame, quality)

    @staticmethod
    async def mjpeg_stream(session: DetectionSession, fps: int = 10, quality: int = 80) -> AsyncIterator[bytes]:
        """
        Yield MJPEG multipart chunks of the frame with its overlay.

        Note: the stream reads the camera only while detection is off; while
        the loop runs it re-encodes the last rendered frame.
        """
        fps = max(1, min(30, int(fps)))
        delay = 1.0 / fps

        while True:
            jpg = await PreviewService.snapshot_jpeg(session, quality)
            if jpg is not None:
                yield b"--frame\r\nContent-Type: image/jpeg\r\n\r\n" + jpg + b"\r\n"
            await asyncio.sleep(delay)
