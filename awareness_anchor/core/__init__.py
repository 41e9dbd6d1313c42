"""
Core Module - Shared types, response loop and worker threads.

This module contains:
- Value types shared by every component (types.py)
- Response window recording (recorder.py)
- Randomised chime scheduling (scheduler.py)
- Host wiring of sources, arbiter, scheduler and recorder (controller.py)
- Sample channel and consumer thread (workers.py)

Note: ResponseController depends on the detection package, which itself uses
the types here, so import it from awareness_anchor.core.controller.
"""

from .types import (
    Edge,
    InputSource,
    Outcome,
    RawSample,
    GestureVerdict,
    EdgeIntensities,
    SourceSnapshot,
    PresentationFrame,
)

from .recorder import ResponseRecorder
from .scheduler import ChimeScheduler
from .workers import SampleChannel, InputWorker

__all__ = [
    # Types
    'Edge',
    'InputSource',
    'Outcome',
    'RawSample',
    'GestureVerdict',
    'EdgeIntensities',
    'SourceSnapshot',
    'PresentationFrame',
    # Response loop
    'ResponseRecorder',
    'ChimeScheduler',
    # Workers
    'SampleChannel',
    'InputWorker',
]
