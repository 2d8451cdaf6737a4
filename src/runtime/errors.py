"""
Error kinds surfaced by the detection app.

None of these are fatal to the process; each is recoverable by a user action
(retry, switch mode, re-upload). The web layer maps them to HTTP responses.
"""

from __future__ import annotations


class DetectionAppError(Exception):
    """Base class for recoverable application errors."""

    user_message = "Unexpected error"

    def __init__(self, message: str = ""):
        super().__init__(message or self.user_message)


class PermissionDenied(DetectionAppError):
    """Camera access was refused or no camera could be opened."""

    user_message = "Unable to access the webcam. You can use image upload mode instead."


# The webcam is the only permission-gated resource.
CameraUnavailable = PermissionDenied


class ModelUnavailable(DetectionAppError):
    """The detector has not finished loading (or failed to load)."""

    user_message = "Detection model is not loaded yet"


class DecodeFailure(DetectionAppError):
    """An uploaded payload is not a decodable image."""

    user_message = "Uploaded file is not a valid image"


class NoFrameSource(DetectionAppError):
    """Detection was requested without an active camera or uploaded image."""

    user_message = "Start the camera or upload an image first"


class DetectionPassFailure(DetectionAppError):
    """A single detection pass failed (detector raised or no frame was available)."""

    user_message = "Detection pass failed"
