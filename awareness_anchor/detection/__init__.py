"""
Detection Module - Gesture pipelines and source arbitration.

This module provides:
- Exponential smoothing and baseline capture (filters.py)
- Threshold classification and dwell gating (gesture_detection.py)
- Head pose and pointer edge pipelines (pipeline.py)
- Motion-based source arbitration (arbiter.py)
"""

from .filters import SignalSmoother, BaselineCapture
from .gesture_detection import GestureClassifier, DwellGate, DwellResult
from .pipeline import GesturePipeline, HeadPoseSource, PointerEdgeSource, ScreenGeometry
from .arbiter import InputArbiter

__all__ = [
    'SignalSmoother',
    'BaselineCapture',
    'GestureClassifier',
    'DwellGate',
    'DwellResult',
    'GesturePipeline',
    'HeadPoseSource',
    'PointerEdgeSource',
    'ScreenGeometry',
    'InputArbiter',
]
