"""
Response window bookkeeping.

Each chime opens a response window. The window ends either with a response
(Present or Returned, written with its latency) or unanswered when it expires
or the session stops. An unanswered window becomes Missed, Absent or nothing,
depending on the absent policy and on whether the subject was ever seen.
"""

import logging
from typing import Optional

from awareness_anchor.config import AbsentPolicy, SessionConfig
from awareness_anchor.core.types import Outcome
from awareness_anchor.stats.history import ChimeEvent, EventHistory, Session

logger = logging.getLogger(__name__)


class ResponseRecorder:
    """
    Writes exactly one event per answered window into the history, and at
    most one per unanswered window.
    """

    def __init__(self, history: EventHistory,
                 window_duration: float = SessionConfig.RESPONSE_WINDOW,
                 absent_policy: AbsentPolicy = AbsentPolicy.RECORD_ABSENT):
        """
        Args:
            history (EventHistory): Store the events go to
            window_duration (float): Seconds a window stays open
            absent_policy (AbsentPolicy): Treatment of windows where the subject was never seen
        """
        self.history = history
        self.window_duration = window_duration
        self.absent_policy = absent_policy

        self.session: Optional[Session] = None
        self.window_opened_at: Optional[float] = None

    @property
    def is_window_open(self) -> bool:
        return self.window_opened_at is not None

    def remaining(self, now: float) -> float:
        """Seconds left in the open window, 0 when none is open."""
        if self.window_opened_at is None:
            return 0.0
        return max(0.0, self.window_duration - (now - self.window_opened_at))

    # ==================== Sessions ====================

    def start_session(self, now: float, avg_interval: float) -> Session:
        if self.session is not None:
            logger.warning("Session already running, ending it before starting a new one")
            self.end_session(now)

        self.session = Session(avg_interval_seconds=avg_interval, start_time=now)
        self.history.save_session(self.session)
        logger.info(f"Session started: {self.session.id} (avg interval {avg_interval:.0f}s)")
        return self.session

    def end_session(self, now: float, subject_seen: bool = False) -> Optional[Session]:
        """
        Close the current session, and its pending window as unanswered.

        Returns:
            Session: The closed session, or None if no session was running
        """
        if self.session is None:
            return None

        if self.is_window_open:
            self.close_window(now, subject_seen)

        self.session.end_time = now
        self.history.save_session(self.session)
        session, self.session = self.session, None
        logger.info(f"Session ended: {session.id} after {session.formatted_duration}")
        return session

    # ==================== Windows ====================

    def open_window(self, now: float) -> None:
        """
        Raises:
            RuntimeError: If no session is running or a window is already open
        """
        if self.session is None:
            raise RuntimeError("Cannot open a response window without a session")
        if self.is_window_open:
            raise RuntimeError("A response window is already open")

        self.window_opened_at = now
        logger.info(f"Response window opened ({self.window_duration:.0f}s)")

    def expired(self, now: float) -> bool:
        return self.is_window_open and now - self.window_opened_at >= self.window_duration

    def record_response(self, outcome: Outcome, now: float) -> Optional[ChimeEvent]:
        """
        Record a response into the open window and close it.

        Args:
            outcome (Outcome): Present or Returned
            now (float): Response time in seconds

        Returns:
            ChimeEvent: The written event, or None if the response was ignored
        """
        if outcome not in (Outcome.PRESENT, Outcome.RETURNED):
            raise ValueError(f"{outcome} is not a response")
        if not self.is_window_open:
            logger.warning(f"Ignoring response {outcome.value}: no window open")
            return None

        latency_ms = int(round((now - self.window_opened_at) * 1000))
        event = ChimeEvent(outcome=outcome, session_id=self.session.id,
                           timestamp=now, response_latency_ms=max(0, latency_ms))
        self.history.append_event(event)
        self.window_opened_at = None
        logger.info(f"Response recorded: {outcome.display_name} after {latency_ms}ms")
        return event

    def close_window(self, now: float, subject_seen: bool) -> Optional[ChimeEvent]:
        """
        Close an unanswered window according to the absent policy.

        Args:
            now (float): Close time in seconds
            subject_seen (bool): Whether any source saw the subject during the window

        Returns:
            ChimeEvent: The written event, or None if nothing was recorded
        """
        if not self.is_window_open:
            return None
        self.window_opened_at = None

        if subject_seen or self.absent_policy is AbsentPolicy.COUNT_AS_MISSED:
            outcome = Outcome.MISSED
        elif self.absent_policy is AbsentPolicy.RECORD_ABSENT:
            outcome = Outcome.ABSENT
        else:
            logger.info("Window closed unanswered with subject absent, nothing recorded")
            return None

        event = ChimeEvent(outcome=outcome, session_id=self.session.id, timestamp=now)
        self.history.append_event(event)
        logger.info(f"Window closed unanswered: {outcome.display_name}")
        return event
