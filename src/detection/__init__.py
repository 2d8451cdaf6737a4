"""
Object Overlay - Detection Module

Wraps pretrained detectors and their load/ready lifecycle.
"""

from .base import Detector, DetectionSource
from .model import ModelHolder, create_detector, create_model_holder

__all__ = ['Detector', 'DetectionSource', 'ModelHolder', 'create_detector', 'create_model_holder']
