"""
Typed configuration models matching the YAML config structure.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union


@dataclass
class CameraConfig:
    """Webcam configuration."""
    device_id: Union[int, str] = 0
    resolution: List[int] = field(default_factory=lambda: [640, 480])
    fps: int = 30
    max_retries: int = 3
    rotate: int = 0
    flip_horizontal: bool = False
    flip_vertical: bool = False

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "CameraConfig":
        """Adapter: Create from config dictionary."""
        return cls(
            device_id=d.get("device_id", 0),
            resolution=d.get("resolution", [640, 480]),
            fps=d.get("fps", 30),
            max_retries=d.get("max_retries", 3),
            rotate=d.get("rotate", 0) or 0,
            flip_horizontal=d.get("flip_horizontal", False),
            flip_vertical=d.get("flip_vertical", False),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "device_id": self.device_id,
            "resolution": self.resolution,
            "fps": self.fps,
            "max_retries": self.max_retries,
            "rotate": self.rotate,
            "flip_horizontal": self.flip_horizontal,
            "flip_vertical": self.flip_vertical,
        }


@dataclass
class YoloConfig:
    """YOLO detector configuration."""
    model: str = "yolov8n.pt"
    conf_threshold: float = 0.25
    iou_threshold: float = 0.45
    classes: Optional[List[int]] = None
    class_name_overrides: Optional[Dict[int, str]] = None

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "YoloConfig":
        return cls(
            model=d.get("model", "yolov8n.pt"),
            conf_threshold=d.get("conf_threshold", 0.25),
            iou_threshold=d.get("iou_threshold", 0.45),
            classes=d.get("classes"),
            class_name_overrides=d.get("class_name_overrides"),
        )

    def to_dict(self) -> Dict[str, Any]:
        d = {
            "model": self.model,
            "conf_threshold": self.conf_threshold,
            "iou_threshold": self.iou_threshold,
        }
        if self.classes is not None:
            d["classes"] = self.classes
        if self.class_name_overrides is not None:
            d["class_name_overrides"] = self.class_name_overrides
        return d


@dataclass
class SsdConfig:
    """SSD MobileNet (COCO) configuration for the OpenCV DNN backend."""
    model: str = "models/ssd/frozen_inference_graph.pb"
    config: str = "models/ssd/ssd_mobilenet_v2_coco.pbtxt"
    labels: str = "models/ssd/coco.names"
    score_threshold: float = 0.3
    input_size: int = 300

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "SsdConfig":
        return cls(
            model=d.get("model", "models/ssd/frozen_inference_graph.pb"),
            config=d.get("config", "models/ssd/ssd_mobilenet_v2_coco.pbtxt"),
            labels=d.get("labels", "models/ssd/coco.names"),
            score_threshold=d.get("score_threshold", 0.3),
            input_size=d.get("input_size", 300),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "model": self.model,
            "config": self.config,
            "labels": self.labels,
            "score_threshold": self.score_threshold,
            "input_size": self.input_size,
        }


@dataclass
class DetectionConfig:
    """Detection backend selection."""
    backend: str = "yolo"
    yolo: Optional[YoloConfig] = None
    ssd: Optional[SsdConfig] = None

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "DetectionConfig":
        yolo_dict = d.get("yolo")
        ssd_dict = d.get("ssd")
        return cls(
            backend=d.get("backend", "yolo"),
            yolo=YoloConfig.from_dict(yolo_dict) if yolo_dict else None,
            ssd=SsdConfig.from_dict(ssd_dict) if ssd_dict else None,
        )

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {"backend": self.backend}
        if self.yolo:
            d["yolo"] = self.yolo.to_dict()
        if self.ssd:
            d["ssd"] = self.ssd.to_dict()
        return d


@dataclass
class OverlayConfig:
    """
    Overlay drawing configuration.

    confidence_threshold: detections at or below it are not drawn.
        None draws every detection the model returns.
    """
    confidence_threshold: Optional[float] = None
    label_height: int = 20
    box_color: List[int] = field(default_factory=lambda: [0, 255, 0])
    box_thickness: int = 2
    label_background: bool = False
    font_scale: float = 0.5

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "OverlayConfig":
        return cls(
            confidence_threshold=d.get("confidence_threshold"),
            label_height=d.get("label_height", 20),
            box_color=d.get("box_color", [0, 255, 0]),
            box_thickness=d.get("box_thickness", 2),
            label_background=d.get("label_background", False),
            font_scale=d.get("font_scale", 0.5),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "confidence_threshold": self.confidence_threshold,
            "label_height": self.label_height,
            "box_color": self.box_color,
            "box_thickness": self.box_thickness,
            "label_background": self.label_background,
            "font_scale": self.font_scale,
        }


@dataclass
class LoopConfig:
    """
    Detection loop configuration.

    max_consecutive_failures: failed passes tolerated before the loop stops.
        1 means fail-stop.
    retry_backoff_s: base delay before retrying a failed pass.
    """
    fps: int = 30
    max_consecutive_failures: int = 1
    retry_backoff_s: float = 0.5

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "LoopConfig":
        return cls(
            fps=d.get("fps", 30),
            max_consecutive_failures=d.get("max_consecutive_failures", 1),
            retry_backoff_s=d.get("retry_backoff_s", 0.5),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "fps": self.fps,
            "max_consecutive_failures": self.max_consecutive_failures,
            "retry_backoff_s": self.retry_backoff_s,
        }


@dataclass
class WebConfig:
    """HTTP server configuration."""
    host: str = "0.0.0.0"
    port: int = 5000
    stream_fps: int = 10
    jpeg_quality: int = 80

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "WebConfig":
        return cls(
            host=d.get("host", "0.0.0.0"),
            port=d.get("port", 5000),
            stream_fps=d.get("stream_fps", 10),
            jpeg_quality=d.get("jpeg_quality", 80),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "host": self.host,
            "port": self.port,
            "stream_fps": self.stream_fps,
            "jpeg_quality": self.jpeg_quality,
        }


@dataclass
class Config:
    """
    Complete application configuration.

    This is a typed representation of the YAML config structure.
    """
    camera: CameraConfig = field(default_factory=CameraConfig)
    detection: DetectionConfig = field(default_factory=DetectionConfig)
    overlay: OverlayConfig = field(default_factory=OverlayConfig)
    loop: LoopConfig = field(default_factory=LoopConfig)
    web: WebConfig = field(default_factory=WebConfig)
    default_mode: str = "webcam"
    log_path: str = "logs/object_overlay.log"
    log_level: str = "INFO"

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Config":
        """Adapter: Create Config from raw dictionary (e.g., from load_config)."""
        return cls(
            camera=CameraConfig.from_dict(d.get("camera", {}) or {}),
            detection=DetectionConfig.from_dict(d.get("detection", {}) or {}),
            overlay=OverlayConfig.from_dict(d.get("overlay", {}) or {}),
            loop=LoopConfig.from_dict(d.get("loop", {}) or {}),
            web=WebConfig.from_dict(d.get("web", {}) or {}),
            default_mode=d.get("default_mode", "webcam"),
            log_path=d.get("log_path", "logs/object_overlay.log"),
            log_level=d.get("log_level", "INFO"),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert back to dictionary (for saving or logging the effective config)."""
        return {
            "camera": self.camera.to_dict(),
            "detection": self.detection.to_dict(),
            "overlay": self.overlay.to_dict(),
            "loop": self.loop.to_dict(),
            "web": self.web.to_dict(),
            "default_mode": self.default_mode,
            "log_path": self.log_path,
            "log_level": self.log_level,
        }
