"""
Pytest configuration and shared fixtures.
"""

import os
import sys

import cv2
import numpy as np
import pytest

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))


@pytest.fixture
def temp_config_dir(tmp_path):
    """Create a temporary config directory with default.yaml."""
    config_dir = tmp_path / "config"
    config_dir.mkdir()

    default_yaml = config_dir / "default.yaml"
    default_yaml.write_text("""
camera:
  device_id: 0
  resolution: [640, 480]
  fps: 30

detection:
  backend: "yolo"
  yolo:
    model: "yolov8n.pt"
    conf_threshold: 0.25

overlay:
  confidence_threshold: null
  label_height: 20

loop:
  fps: 30
  max_consecutive_failures: 1

log_path: "logs/test.log"
log_level: "INFO"
""")

    return config_dir


@pytest.fixture
def valid_config():
    """Return a valid configuration dictionary."""
    return {
        "camera": {
            "device_id": 0,
            "resolution": [1280, 720],
            "fps": 30,
        },
        "detection": {
            "backend": "yolo",
            "yolo": {"model": "yolov8n.pt", "conf_threshold": 0.25},
        },
        "overlay": {
            "confidence_threshold": 0.5,
            "label_height": 20,
        },
        "loop": {
            "fps": 30,
            "max_consecutive_failures": 1,
            "retry_backoff_s": 0.5,
        },
        "web": {"port": 5000},
        "default_mode": "webcam",
        "log_path": "logs/test.log",
        "log_level": "INFO",
    }


@pytest.fixture
def png_bytes():
    """A small encoded PNG (80x60, black)."""
    ok, buf = cv2.imencode(".png", np.zeros((60, 80, 3), dtype=np.uint8))
    assert ok
    return buf.tobytes()
