"""Shared fixtures for awareness_anchor tests.

All samples are synthetic and carry explicit timestamps; no camera, no clock.
"""

import pytest

from awareness_anchor.config import DetectionSettings
from awareness_anchor.core.types import RawSample
from awareness_anchor.detection.pipeline import HeadPoseSource, PointerEdgeSource, ScreenGeometry
from awareness_anchor.stats.history import EventHistory

TICK = 0.033


@pytest.fixture
def settings():
    return DetectionSettings()


@pytest.fixture
def screen():
    return ScreenGeometry(1000, 800)


@pytest.fixture
def head(settings):
    source = HeadPoseSource(settings)
    source.activate()
    return source


@pytest.fixture
def pointer(screen, settings):
    source = PointerEdgeSource(screen, settings)
    source.activate()
    return source


@pytest.fixture
def history():
    return EventHistory()


@pytest.fixture
def make_sample():
    """Factory for raw samples."""
    def _make(a: float, b: float, t: float, present: bool = True) -> RawSample:
        return RawSample(channels=(a, b), present=present, timestamp=t)
    return _make


@pytest.fixture
def feed():
    """Feed a pipeline ``count`` identical samples, one tick apart; returns (snapshots, next_t)."""
    def _feed(pipeline, a, b, count, t0=0.0, dt=TICK, present=True):
        snapshots = []
        t = t0
        for _ in range(count):
            snapshots.append(pipeline.update(RawSample((a, b), present, t)))
            t += dt
        return snapshots, t
    return _feed
