"""Tests for cross-source arbitration."""

import pytest

from awareness_anchor.config import DetectionSettings
from awareness_anchor.core.types import Edge, EdgeIntensities, InputSource, SourceSnapshot
from awareness_anchor.detection.arbiter import InputArbiter

TICK = 0.033


class StubPipeline:
    """Only what the arbiter reads: the latest snapshot."""

    def __init__(self, source):
        self.snapshot = SourceSnapshot(source)


def snap(source, **kwargs):
    kwargs.setdefault("present", True)
    kwargs.setdefault("activity", (0.0, 0.0))
    return SourceSnapshot(source, **kwargs)


@pytest.fixture
def stubs():
    return StubPipeline(InputSource.HEAD), StubPipeline(InputSource.POINTER)


@pytest.fixture
def arbiter(stubs):
    head, pointer = stubs
    return InputArbiter(head, pointer, DetectionSettings(speed_smoothing=0.0))


def adopt_head(arbiter, head, pointer):
    """Head is mid-dwell at t=0 and becomes active, then unlocks."""
    head.snapshot = snap(InputSource.HEAD, dwell_progress=0.5)
    pointer.snapshot = snap(InputSource.POINTER)
    arbiter.tick(0.0)
    assert arbiter.active_source is InputSource.HEAD
    head.snapshot = snap(InputSource.HEAD)


class TestSourceSelection:
    def test_starts_with_no_source(self, arbiter):
        frame = arbiter.tick(0.0)
        assert arbiter.active_source is InputSource.NONE
        assert frame.active_source is InputSource.NONE
        assert frame.dwell_progress == 0.0

    def test_single_enabled_source_is_always_active(self, stubs):
        head, pointer = stubs
        arbiter = InputArbiter(head, pointer, DetectionSettings(head_enabled=False))
        assert arbiter.tick(0.0).active_source is InputSource.POINTER

    def test_no_enabled_source(self, stubs):
        head, pointer = stubs
        head.snapshot = snap(InputSource.HEAD, dwell_progress=0.8)
        arbiter = InputArbiter(head, pointer,
                               DetectionSettings(head_enabled=False, pointer_enabled=False))
        frame = arbiter.tick(0.0)
        assert frame.active_source is InputSource.NONE
        assert frame.dwell_progress == 0.0
        assert not frame.subject_present

    def test_locked_source_adopted_first(self, arbiter, stubs):
        head, pointer = stubs
        pointer.snapshot = snap(InputSource.POINTER, awaiting_neutral=True)
        assert arbiter.tick(0.0).active_source is InputSource.POINTER

    def test_switch_waits_for_debounce(self, arbiter, stubs):
        head, pointer = stubs
        adopt_head(arbiter, head, pointer)

        for k in range(1, 17):
            pointer.snapshot = snap(InputSource.POINTER, activity=(0.1 * k, 0.0))
            arbiter.tick(k * TICK)
        # Faster since tick 1, but 0.495 s is still inside the 0.5 s debounce
        assert arbiter.active_source is InputSource.HEAD
        assert arbiter.pending_source is InputSource.POINTER

        pointer.snapshot = snap(InputSource.POINTER, activity=(1.7, 0.0))
        arbiter.tick(17 * TICK)
        assert arbiter.active_source is InputSource.POINTER
        assert arbiter.pending_source is None

    def test_locked_active_source_is_never_interrupted(self, arbiter, stubs):
        head, pointer = stubs
        head.snapshot = snap(InputSource.HEAD, dwell_progress=0.3)
        for k in range(40):
            pointer.snapshot = snap(InputSource.POINTER, activity=(0.1 * k, 0.0))
            arbiter.tick(k * TICK)
        assert arbiter.active_source is InputSource.HEAD
        assert arbiter.pending_source is None

    def test_hysteresis_blocks_marginally_faster_source(self, arbiter, stubs):
        head, pointer = stubs
        adopt_head(arbiter, head, pointer)
        for k in range(1, 40):
            head.snapshot = snap(InputSource.HEAD, activity=(0.10 * k, 0.0))
            pointer.snapshot = snap(InputSource.POINTER, activity=(0.11 * k, 0.0))
            arbiter.tick(k * TICK)
        assert arbiter.active_source is InputSource.HEAD

    def test_pending_switch_cancelled_when_speed_drops(self, arbiter, stubs):
        head, pointer = stubs
        adopt_head(arbiter, head, pointer)
        pointer.snapshot = snap(InputSource.POINTER, activity=(0.5, 0.0))
        arbiter.tick(TICK)
        assert arbiter.pending_source is InputSource.POINTER

        arbiter.tick(2 * TICK)
        assert arbiter.pending_source is None

    def test_slow_drift_is_not_adopted(self, arbiter, stubs):
        head, pointer = stubs
        for k in range(30):
            # 0.3 units/s, under the minimum speed
            head.snapshot = snap(InputSource.HEAD, activity=(0.01 * k, 0.0))
            arbiter.tick(k * TICK)
        assert arbiter.active_source is InputSource.NONE

    def test_slow_drift_never_becomes_pending(self, arbiter, stubs):
        head, pointer = stubs
        adopt_head(arbiter, head, pointer)
        for k in range(1, 30):
            pointer.snapshot = snap(InputSource.POINTER, activity=(0.01 * k, 0.0))
            arbiter.tick(k * TICK)
        assert arbiter.pending_source is None
        assert arbiter.active_source is InputSource.HEAD

    def test_gesture_on_other_source_takes_over_idle_source(self, arbiter, stubs):
        head, pointer = stubs
        adopt_head(arbiter, head, pointer)
        arbiter.tick(TICK)

        pointer.snapshot = snap(InputSource.POINTER, dwell_active=True)
        frame = arbiter.tick(2 * TICK)
        assert frame.active_source is InputSource.POINTER
        assert arbiter.pending_source is None

    def test_dwell_start_locks_active_source(self, arbiter, stubs):
        head, pointer = stubs
        adopt_head(arbiter, head, pointer)
        head.snapshot = snap(InputSource.HEAD, dwell_active=True)
        for k in range(1, 40):
            pointer.snapshot = snap(InputSource.POINTER, activity=(0.1 * k, 0.0))
            arbiter.tick(k * TICK)
        assert arbiter.active_source is InputSource.HEAD


class TestTriggerForwarding:
    def test_active_trigger_forwarded_once(self, arbiter, stubs):
        head, pointer = stubs
        adopt_head(arbiter, head, pointer)
        head.snapshot = snap(InputSource.HEAD, trigger_count=1, last_trigger=Edge.TOP,
                             dwell_progress=1.0, awaiting_neutral=True)
        assert arbiter.tick(TICK).trigger_edge is Edge.TOP
        assert arbiter.tick(2 * TICK).trigger_edge is None

    def test_inactive_trigger_suppressed(self, arbiter, stubs):
        head, pointer = stubs
        head.snapshot = snap(InputSource.HEAD, dwell_progress=0.5)
        arbiter.tick(0.0)

        pointer.snapshot = snap(InputSource.POINTER, trigger_count=1, last_trigger=Edge.RIGHT,
                                awaiting_neutral=True)
        frame = arbiter.tick(TICK)
        assert frame.trigger_edge is None
        assert frame.active_source is InputSource.HEAD
        assert arbiter.suppressed_triggers == 1

    def test_trigger_from_other_source_forwarded_when_active_idle(self, arbiter, stubs):
        head, pointer = stubs
        adopt_head(arbiter, head, pointer)
        pointer.snapshot = snap(InputSource.POINTER, trigger_count=1, last_trigger=Edge.TOP,
                                dwell_progress=1.0, awaiting_neutral=True)
        frame = arbiter.tick(TICK)
        assert frame.active_source is InputSource.POINTER
        assert frame.trigger_edge is Edge.TOP
        assert arbiter.suppressed_triggers == 0

    def test_reset_drops_old_triggers(self, stubs):
        head, pointer = stubs
        pointer.snapshot = snap(InputSource.POINTER, trigger_count=3, last_trigger=Edge.TOP)
        arbiter = InputArbiter(head, pointer, DetectionSettings(head_enabled=False))
        assert arbiter.tick(0.0).trigger_edge is None

    def test_frame_carries_active_source_state(self, arbiter, stubs):
        head, pointer = stubs
        head.snapshot = snap(InputSource.HEAD, dwell_progress=0.4,
                             intensities=EdgeIntensities(top=0.9))
        pointer.snapshot = snap(InputSource.POINTER, intensities=EdgeIntensities(right=1.0))
        frame = arbiter.tick(0.0)
        assert frame.active_source is InputSource.HEAD
        assert frame.top_intensity == 0.9
        assert frame.right_intensity == 0.0
        assert frame.dwell_progress == 0.4
        assert frame.subject_present
