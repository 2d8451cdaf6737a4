"""
Page routes for the object overlay web interface.
"""

from __future__ import annotations

from pathlib import Path

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates

from runtime.session import DetectionSession
from ..state import get_session

router = APIRouter()
templates = Jinja2Templates(directory=str(Path(__file__).resolve().parent.parent / "templates"))


@router.get("/", response_class=HTMLResponse)
def index(request: Request, session: DetectionSession = Depends(get_session)):
    """Single page: preview, controls, status, detected objects."""
    return templates.TemplateResponse(
        request,
        "index.html",
        {"status": session.status(), "predictions": [d.label for d in session.predictions]},
    )
