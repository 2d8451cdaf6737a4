"""
FastAPI application factory for the object overlay app.

Routes:
- /        -> single page (Jinja2 template)
- /api/*   -> JSON API, JPEG snapshot, MJPEG preview
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from models.config import Config
from runtime.errors import (
    DecodeFailure,
    DetectionAppError,
    ModelUnavailable,
    NoFrameSource,
    PermissionDenied,
)
from runtime.session import DetectionSession
from .routes import pages, api
from .state import build_session

ERROR_STATUS = {
    PermissionDenied: 403,
    ModelUnavailable: 503,
    DecodeFailure: 422,
    NoFrameSource: 409,
}


def status_for(exc: DetectionAppError) -> int:
    for kind, code in ERROR_STATUS.items():
        if isinstance(exc, kind):
            return code
    return 500


def create_app(
    config: Optional[Config] = None,
    session: Optional[DetectionSession] = None,
    load_model: bool = True,
) -> FastAPI:
    """Create the FastAPI app and wire the session, routes and error mapping."""
    config = config or Config()
    session = session or build_session(config)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        load_task = None
        if load_model and not session.model.is_ready:
            # Serve the page while weights load; status shows "loading".
            load_task = asyncio.create_task(session.model.load())
        try:
            yield
        finally:
            if load_task is not None and not load_task.done():
                load_task.cancel()
            await session.teardown()

    app = FastAPI(
        title="Object Overlay",
        version="0.1.0",
        description="Live object detection overlay for a webcam or an uploaded image",
        lifespan=lifespan,
    )
    app.state.config = config
    app.state.session = session

    @app.exception_handler(DetectionAppError)
    async def detection_app_error(request: Request, exc: DetectionAppError):
        code = status_for(exc)
        logging.warning(f"{request.method} {request.url.path} -> {code}: {exc}")
        return JSONResponse({"detail": exc.user_message, "error": str(exc)}, status_code=code)

    app.include_router(api.router, prefix="/api")
    app.include_router(pages.router)

    return app
