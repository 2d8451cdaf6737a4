from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from models.detection import Detection


class PredictionModel(BaseModel):
    class_name: str
    score: float = Field(..., ge=0.0, le=1.0)
    bbox: List[float] = Field(..., description="[x, y, width, height] in frame pixels")
    label: str

    @classmethod
    def from_detection(cls, det: Detection) -> "PredictionModel":
        return cls(**det.to_dict())


class StatusResponse(BaseModel):
    """
    Session status polled by the page.
    """
    model_config = ConfigDict(protected_namespaces=())

    model_loaded: bool
    model_loading: bool
    model_error: Optional[str] = None
    mode: str = Field(..., description="webcam|upload")
    camera_active: bool
    image_loaded: bool
    detection: str = Field(..., description="running|stopped (webcam), done|none (upload)")
    loop_state: str = Field(..., description="idle|running|done|stopped")
    prediction_count: int
    passes_completed: int
    last_error: Optional[str] = None
    fps: float
    last_frame_age: Optional[float] = None
    uptime_seconds: int


class DetectionResponse(BaseModel):
    loop_state: str
    detection: str
    predictions: List[PredictionModel] = Field(default_factory=list)


class ImageResponse(BaseModel):
    width: int
    height: int
    mode: str
