"""
Logging setup.

One root configuration for the app and the server: main.py starts uvicorn
with ``log_config=None`` so its loggers propagate here instead of installing
their own handlers.
"""

from __future__ import annotations

import logging
import os

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Per-request lines; at MJPEG/status polling rates they drown everything else.
NOISY_LOGGERS = ("uvicorn.access",)


def setup_logging(log_path: str, log_level: str, quiet_access: bool = True) -> None:
    log_dir = os.path.dirname(log_path)
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)

    level = getattr(logging, log_level)
    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        handlers=[
            logging.FileHandler(log_path),
            logging.StreamHandler(),
        ],
        force=True,
    )

    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        server_logger = logging.getLogger(name)
        server_logger.handlers.clear()
        server_logger.propagate = True

    if quiet_access:
        for name in NOISY_LOGGERS:
            logging.getLogger(name).setLevel(max(level, logging.WARNING))
