"""
Stats Module - Event history and time-in-state estimation.

This module provides:
- Autocorrelation-corrected Wilson interval estimator (estimator.py)
- Thread-safe event and session history with JSON snapshots (history.py)
- Period summaries (summary.py)
"""

from .estimator import TimeInStateEstimate, estimate, estimate_events, practice_duration
from .history import ChimeEvent, Session, EventHistory
from .summary import StatsPeriod, StatsSummary, summarize

__all__ = [
    'TimeInStateEstimate',
    'estimate',
    'estimate_events',
    'practice_duration',
    'ChimeEvent',
    'Session',
    'EventHistory',
    'StatsPeriod',
    'StatsSummary',
    'summarize',
]
