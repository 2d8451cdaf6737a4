"""
Object Overlay: live object detection on a webcam feed or an uploaded image.

Serves a small web page; a pretrained detector runs on the frames and the
boxes and labels are drawn on an overlay.

Usage:
    python src/main.py --config config/config.yaml

Arguments:
    --config: Path to configuration file
    --host / --port: Override web.host / web.port
    --mode: Initial mode (webcam or upload)
"""

import os
import sys
import argparse
import logging
import yaml
import uvicorn
from typing import Dict, Any, Tuple, Optional

from models.config import Config
from ops.logging import setup_logging
from web.app import create_app


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge override into base and return base."""
    for k, v in (override or {}).items():
        if isinstance(v, dict) and isinstance(base.get(k), dict):
            _deep_merge(base[k], v)
        else:
            base[k] = v
    return base


def load_config(config_path: str) -> Dict[str, Any]:
    """
    Load configuration with layering:
    - `config/default.yaml` (checked in)
    - `config/config.yaml` (local overrides)
    - plus any explicitly provided `--config` path (treated as overrides)
    """
    try:
        base_path = os.path.join(os.path.dirname(config_path), "default.yaml")
        base_cfg: Dict[str, Any] = {}
        if os.path.exists(base_path):
            with open(base_path, "r") as f:
                base_cfg = yaml.safe_load(f) or {}

        local_overrides_path = os.path.join(os.path.dirname(config_path), "config.yaml")
        local_cfg: Dict[str, Any] = {}
        if os.path.exists(local_overrides_path):
            with open(local_overrides_path, "r") as f:
                local_cfg = yaml.safe_load(f) or {}

        merged = _deep_merge(base_cfg, local_cfg)

        # Finally apply explicit config_path if it's not the local override file itself
        if os.path.exists(config_path) and os.path.abspath(config_path) != os.path.abspath(local_overrides_path):
            with open(config_path, "r") as f:
                explicit_cfg = yaml.safe_load(f) or {}
            merged = _deep_merge(merged, explicit_cfg)

        return merged
    except (OSError, yaml.YAMLError) as e:
        logging.error(f"Failed to load configuration: {e}")
        sys.exit(1)


def validate_config(config: Dict[str, Any]) -> Tuple[bool, Optional[str]]:
    """
    Validate configuration file structure and values.

    Args:
        config: Configuration dictionary

    Returns:
        Tuple of (is_valid, error_message)
    """
    required_sections = ['camera', 'detection', 'log_path', 'log_level']
    for section in required_sections:
        if section not in config:
            return False, f"Missing required configuration section: {section}"

    # Camera
    camera = config.get('camera', {}) or {}
    device_id = camera.get('device_id', 0)
    if not isinstance(device_id, (int, str)):
        return False, "camera.device_id must be an integer (index) or string (path/URL)"
    if isinstance(device_id, int) and device_id < 0:
        return False, "camera.device_id integer must be non-negative"

    if 'resolution' in camera:
        if not isinstance(camera['resolution'], list) or len(camera['resolution']) != 2:
            return False, "camera.resolution must be a list of [width, height]"
        if not all(isinstance(x, int) and x > 0 for x in camera['resolution']):
            return False, "camera.resolution values must be positive integers"

    if 'fps' in camera and (not isinstance(camera['fps'], int) or camera['fps'] <= 0):
        return False, "camera.fps must be a positive integer"

    if camera.get('rotate', 0) not in (0, 90, 180, 270, None):
        return False, "camera.rotate must be one of: 0, 90, 180, 270"

    # Detection backend
    detection = config.get('detection', {}) or {}
    backend = detection.get('backend', 'yolo')
    if backend not in ('yolo', 'ssd'):
        return False, "detection.backend must be one of: yolo, ssd"
    if backend == 'yolo':
        yolo_cfg = detection.get('yolo', {}) or {}
        if 'model' not in yolo_cfg or not isinstance(yolo_cfg.get('model'), str) or not yolo_cfg.get('model'):
            return False, "detection.yolo.model is required when detection.backend is 'yolo'"
        if 'conf_threshold' in yolo_cfg and not isinstance(yolo_cfg['conf_threshold'], (int, float)):
            return False, "detection.yolo.conf_threshold must be a number"
        if 'iou_threshold' in yolo_cfg and not isinstance(yolo_cfg['iou_threshold'], (int, float)):
            return False, "detection.yolo.iou_threshold must be a number"
    if backend == 'ssd':
        ssd_cfg = detection.get('ssd', {}) or {}
        for key in ('model', 'config', 'labels'):
            if not isinstance(ssd_cfg.get(key), str) or not ssd_cfg.get(key):
                return False, f"detection.ssd.{key} is required when detection.backend is 'ssd'"

    # Overlay
    overlay = config.get('overlay', {}) or {}
    threshold = overlay.get('confidence_threshold')
    if threshold is not None:
        if not isinstance(threshold, (int, float)) or not (0 <= threshold <= 1):
            return False, "overlay.confidence_threshold must be null or between 0 and 1"
    if 'label_height' in overlay:
        if not isinstance(overlay['label_height'], int) or overlay['label_height'] <= 0:
            return False, "overlay.label_height must be a positive integer"
    if 'box_color' in overlay:
        color = overlay['box_color']
        if not isinstance(color, list) or len(color) != 3 or not all(isinstance(c, int) and 0 <= c <= 255 for c in color):
            return False, "overlay.box_color must be a list of three 0-255 integers (BGR)"

    # Loop
    loop = config.get('loop', {}) or {}
    if 'fps' in loop and (not isinstance(loop['fps'], (int, float)) or loop['fps'] <= 0):
        return False, "loop.fps must be a positive number"
    if 'max_consecutive_failures' in loop:
        mcf = loop['max_consecutive_failures']
        if not isinstance(mcf, int) or mcf < 1:
            return False, "loop.max_consecutive_failures must be an integer >= 1"
    if 'retry_backoff_s' in loop:
        rb = loop['retry_backoff_s']
        if not isinstance(rb, (int, float)) or rb < 0:
            return False, "loop.retry_backoff_s must be a non-negative number"

    # Web
    web = config.get('web', {}) or {}
    if 'port' in web and (not isinstance(web['port'], int) or not (0 < web['port'] < 65536)):
        return False, "web.port must be a valid TCP port"

    if config.get('default_mode', 'webcam') not in ('webcam', 'upload'):
        return False, "default_mode must be one of: webcam, upload"

    valid_log_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
    if config['log_level'] not in valid_log_levels:
        return False, f"log_level must be one of: {', '.join(valid_log_levels)}"

    return True, None


def main():
    """Main application function."""
    parser = argparse.ArgumentParser(description='Object Overlay - live object detection')
    parser.add_argument('--config', type=str, default='config/config.yaml',
                        help='Path to configuration file')
    parser.add_argument('--host', type=str, default=None,
                        help='Bind address (overrides web.host)')
    parser.add_argument('--port', type=int, default=None,
                        help='Port (overrides web.port)')
    parser.add_argument('--mode', choices=['webcam', 'upload'], default=None,
                        help='Initial mode (overrides default_mode)')
    args = parser.parse_args()

    config = load_config(args.config)
    if args.mode:
        config['default_mode'] = args.mode

    is_valid, error_msg = validate_config(config)
    if not is_valid:
        logging.error(f"Configuration validation failed: {error_msg}")
        sys.exit(1)

    setup_logging(config['log_path'], config['log_level'])

    cfg = Config.from_dict(config)
    host = args.host or cfg.web.host
    port = args.port or cfg.web.port

    logging.info(
        f"Starting Object Overlay: backend={cfg.detection.backend}, "
        f"mode={cfg.default_mode}, threshold={cfg.overlay.confidence_threshold}"
    )

    uvicorn.run(
        create_app(cfg),
        host=host,
        port=port,
        log_level=cfg.log_level.lower(),
        log_config=None,
    )


if __name__ == "__main__":
    main()
