"""Tests for response window recording and chime scheduling."""

import pytest

from awareness_anchor.config import AbsentPolicy, SessionConfig
from awareness_anchor.core.recorder import ResponseRecorder
from awareness_anchor.core.scheduler import ChimeScheduler
from awareness_anchor.core.types import Outcome


@pytest.fixture
def recorder(history):
    rec = ResponseRecorder(history, window_duration=10.0)
    rec.start_session(0.0, 150.0)
    return rec


class TestResponseRecorder:
    def test_window_requires_session(self, history):
        with pytest.raises(RuntimeError):
            ResponseRecorder(history).open_window(0.0)

    def test_response_recorded_with_latency(self, recorder, history):
        recorder.open_window(100.0)
        event = recorder.record_response(Outcome.PRESENT, 102.5)

        assert event.outcome is Outcome.PRESENT
        assert event.response_latency_ms == 2500
        assert event.session_id == recorder.session.id
        assert not recorder.is_window_open
        assert history.snapshot() == [event]

    def test_second_response_ignored(self, recorder, history):
        recorder.open_window(0.0)
        recorder.record_response(Outcome.RETURNED, 1.0)
        assert recorder.record_response(Outcome.PRESENT, 1.5) is None
        assert len(history) == 1

    def test_only_responses_can_be_recorded(self, recorder):
        recorder.open_window(0.0)
        with pytest.raises(ValueError):
            recorder.record_response(Outcome.MISSED, 1.0)

    def test_expiry(self, recorder):
        recorder.open_window(5.0)
        assert not recorder.expired(14.9)
        assert recorder.expired(15.0)
        assert recorder.remaining(12.0) == pytest.approx(3.0)

    def test_unanswered_with_subject_seen_is_missed(self, history):
        for policy in AbsentPolicy:
            rec = ResponseRecorder(history, absent_policy=policy)
            rec.start_session(0.0, 150.0)
            rec.open_window(1.0)
            assert rec.close_window(11.0, subject_seen=True).outcome is Outcome.MISSED

    @pytest.mark.parametrize("policy, expected", [
        (AbsentPolicy.COUNT_AS_MISSED, Outcome.MISSED),
        (AbsentPolicy.RECORD_ABSENT, Outcome.ABSENT),
        (AbsentPolicy.SKIP, None),
    ])
    def test_absent_policy(self, history, policy, expected):
        rec = ResponseRecorder(history, absent_policy=policy)
        rec.start_session(0.0, 150.0)
        rec.open_window(1.0)
        event = rec.close_window(11.0, subject_seen=False)

        if expected is None:
            assert event is None
            assert len(history) == 0
        else:
            assert event.outcome is expected
            assert event.response_latency_ms is None
        assert not rec.is_window_open

    def test_end_session_closes_pending_window(self, recorder, history):
        recorder.open_window(50.0)
        session = recorder.end_session(55.0, subject_seen=True)

        assert session.end_time == 55.0
        assert recorder.session is None
        assert [e.outcome for e in history.snapshot()] == [Outcome.MISSED]
        assert history.sessions()[0].end_time == 55.0

    def test_end_without_session(self, history):
        assert ResponseRecorder(history).end_session(1.0) is None


class TestChimeScheduler:
    def test_first_chime_within_jitter_range(self):
        scheduler = ChimeScheduler(seed=1)
        scheduler.start(0.0, 100.0)
        assert 50.0 <= scheduler.next_fire_time <= 150.0

    def test_poll_fires_once_and_reschedules(self):
        scheduler = ChimeScheduler(seed=2)
        scheduler.start(0.0, 100.0)
        due = scheduler.next_fire_time

        assert not scheduler.poll(due - 0.01)
        assert scheduler.poll(due)
        assert not scheduler.poll(due)
        assert scheduler.next_fire_time >= due + 50.0

    def test_minimum_interval(self):
        scheduler = ChimeScheduler(seed=3)
        scheduler.start(0.0, 0.1)
        for _ in range(20):
            assert scheduler.next_interval() >= SessionConfig.MIN_INTERVAL

    def test_pause_keeps_remaining_time(self):
        scheduler = ChimeScheduler(seed=4)
        scheduler.start(0.0, 100.0)
        due = scheduler.next_fire_time

        scheduler.pause(10.0)
        assert not scheduler.poll(due + 1000.0)

        scheduler.resume(500.0)
        assert scheduler.next_fire_time == pytest.approx(500.0 + due - 10.0)

    def test_stop(self):
        scheduler = ChimeScheduler(seed=5)
        scheduler.start(0.0, 10.0)
        scheduler.stop()
        assert not scheduler.poll(1e6)

    def test_update_interval_reschedules(self):
        scheduler = ChimeScheduler(seed=6)
        scheduler.start(0.0, 1000.0)
        scheduler.update_interval(20.0, 10.0)
        assert 25.0 <= scheduler.next_fire_time <= 35.0

    def test_seeded_schedules_repeat(self):
        a, b = ChimeScheduler(seed=9), ChimeScheduler(seed=9)
        a.start(0.0, 60.0)
        b.start(0.0, 60.0)
        assert a.next_fire_time == b.next_fire_time
