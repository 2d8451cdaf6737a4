"""
Wiring between the FastAPI app and the detection session.

The session is created once per app and stored on ``app.state``; routes get
it through the ``get_session`` dependency instead of a module-level singleton.
"""

from __future__ import annotations

from fastapi import Request

from detection.model import create_model_holder
from models.config import Config
from pipeline.scheduler import FrameTickScheduler
from rendering.overlay import OverlayRenderer
from rendering.surface import OverlaySurface
from runtime.session import DetectionSession


def build_session(config: Config) -> DetectionSession:
    """Assemble a session from config: model holder, renderer, tick scheduler."""
    model = create_model_holder(config.detection.to_dict())
    renderer = OverlayRenderer(OverlaySurface(), config.overlay)
    scheduler = FrameTickScheduler(fps=config.loop.fps)
    return DetectionSession(model, renderer, scheduler, config=config)


def get_session(request: Request) -> DetectionSession:
    return request.app.state.session
