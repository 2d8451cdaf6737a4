from __future__ import annotations

import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import Response, StreamingResponse

from runtime.session import DetectionSession, Mode
from ..api_models import DetectionResponse, ImageResponse, PredictionModel, StatusResponse
from ..services.preview_service import PreviewService
from ..state import get_session

router = APIRouter()


def _predictions(session: DetectionSession) -> List[PredictionModel]:
    return [PredictionModel.from_detection(d) for d in session.predictions]


@router.get("/status", response_model=StatusResponse)
def status(session: DetectionSession = Depends(get_session)):
    return session.status()


@router.get("/predictions", response_model=List[PredictionModel])
def predictions(session: DetectionSession = Depends(get_session)):
    return _predictions(session)


@router.post("/model/load", response_model=StatusResponse)
async def load_model(session: DetectionSession = Depends(get_session)):
    """Load the model now (also started automatically at startup)."""
    await session.model.load()
    return session.status()


@router.post("/mode/{mode}", response_model=StatusResponse)
async def set_mode(mode: Mode, session: DetectionSession = Depends(get_session)):
    await session.set_mode(mode)
    return session.status()


@router.post("/camera/start", response_model=StatusResponse)
async def start_camera(session: DetectionSession = Depends(get_session)):
    await session.start_camera()
    return session.status()


@router.post("/camera/stop", response_model=StatusResponse)
async def stop_camera(session: DetectionSession = Depends(get_session)):
    await session.stop_camera()
    return session.status()


@router.post("/image", response_model=ImageResponse)
async def upload_image(request: Request, session: DetectionSession = Depends(get_session)):
    """
    Upload an image as the raw request body; Content-Type must be image/*.
    """
    content_type = request.headers.get("content-type", "")
    if not content_type.startswith("image/"):
        raise HTTPException(status_code=415, detail="Upload must be an image (Content-Type image/*)")

    data = await request.body()
    source = await session.upload_image(data, content_type)
    return ImageResponse(width=source.width, height=source.height, mode=session.mode.value)


@router.post("/detection/toggle", response_model=DetectionResponse)
async def toggle_detection(session: DetectionSession = Depends(get_session)):
    state = await session.toggle_detection()
    logging.info(f"Detection toggled: mode={session.mode.value}, state={state.value}")
    return DetectionResponse(
        loop_state=state.value,
        detection=session.detection_status(),
        predictions=_predictions(session),
    )


@router.get("/snapshot.jpg")
async def snapshot(request: Request, session: DetectionSession = Depends(get_session)):
    quality = request.app.state.config.web.jpeg_quality
    jpg = await PreviewService.snapshot_jpeg(session, quality)
    if jpg is None:
        raise HTTPException(status_code=404, detail="No frame available")
    return Response(content=jpg, media_type="image/jpeg")


@router.get("/stream.mjpg")
def stream(request: Request, session: DetectionSession = Depends(get_session)):
    web_cfg = request.app.state.config.web
    return StreamingResponse(
        PreviewService.mjpeg_stream(session, fps=web_cfg.stream_fps, quality=web_cfg.jpeg_quality),
        media_type="multipart/x-mixed-replace; boundary=frame",
    )
