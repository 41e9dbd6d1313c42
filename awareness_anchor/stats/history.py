"""
In-memory event history.

Stores the immutable chime events and the practice sessions they belong to,
answers time-range queries in ascending order, and snapshots to/from JSON.
The response recorder is the only writer; readers always get copies.
"""

import bisect
import json
import logging
import threading
import uuid
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional

from awareness_anchor.core.types import Outcome

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChimeEvent:
    """
    Outcome of one response window. Never modified after creation.
    """

    outcome: Outcome
    session_id: uuid.UUID
    timestamp: float
    " Seconds since the epoch. "
    response_latency_ms: Optional[int] = None
    " None when nobody responded. "
    id: uuid.UUID = field(default_factory=uuid.uuid4)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": str(self.id),
            "timestamp": self.timestamp,
            "outcome": self.outcome.value,
            "response_latency_ms": self.response_latency_ms,
            "session_id": str(self.session_id),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ChimeEvent":
        return cls(
            id=uuid.UUID(data["id"]),
            timestamp=float(data["timestamp"]),
            outcome=Outcome(data["outcome"]),
            response_latency_ms=data.get("response_latency_ms"),
            session_id=uuid.UUID(data["session_id"]),
        )


@dataclass
class Session:
    """
    One practice session, from play to pause.
    """

    avg_interval_seconds: float
    start_time: float
    end_time: Optional[float] = None
    id: uuid.UUID = field(default_factory=uuid.uuid4)

    @property
    def duration(self) -> Optional[float]:
        """Length in seconds, None while the session is still running."""
        if self.end_time is None:
            return None
        return self.end_time - self.start_time

    @property
    def formatted_duration(self) -> str:
        duration = self.duration
        if duration is None:
            return "In progress"
        minutes, seconds = divmod(int(duration), 60)
        if minutes > 0:
            return f"{minutes}m {seconds}s"
        return f"{seconds}s"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": str(self.id),
            "start_time": self.start_time,
            "end_time": self.end_time,
            "avg_interval_seconds": self.avg_interval_seconds,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Session":
        return cls(
            id=uuid.UUID(data["id"]),
            start_time=float(data["start_time"]),
            end_time=data.get("end_time"),
            avg_interval_seconds=float(data["avg_interval_seconds"]),
        )


class EventHistory:
    """
    Append-only store of chime events plus session bookkeeping.

    Events are kept sorted by timestamp. All methods are safe to call from
    several threads.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._events: List[ChimeEvent] = []
        self._timestamps: List[float] = []
        self._sessions: Dict[uuid.UUID, Session] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)

    def append_event(self, event: ChimeEvent) -> None:
        """
        Add an event, keeping timestamp order.
        """
        with self._lock:
            index = bisect.bisect_right(self._timestamps, event.timestamp)
            self._timestamps.insert(index, event.timestamp)
            self._events.insert(index, event)
        logger.info(f"Saved chime event: {event.outcome.value}, session={event.session_id}")

    def query(self, start: float, end: float) -> List[ChimeEvent]:
        """
        Events with ``start <= timestamp < end``, ascending.
        """
        with self._lock:
            lo = bisect.bisect_left(self._timestamps, start)
            hi = bisect.bisect_left(self._timestamps, end)
            return list(self._events[lo:hi])

    def events_for_session(self, session_id: uuid.UUID) -> List[ChimeEvent]:
        with self._lock:
            return [event for event in self._events if event.session_id == session_id]

    def snapshot(self) -> List[ChimeEvent]:
        """A copy of every event, ascending."""
        with self._lock:
            return list(self._events)

    def save_session(self, session: Session) -> None:
        """
        Insert or replace a session by id.
        """
        with self._lock:
            self._sessions[session.id] = replace(session)
        logger.info(f"Saved session: {session.id}")

    def get_session(self, session_id: uuid.UUID) -> Optional[Session]:
        with self._lock:
            session = self._sessions.get(session_id)
            return None if session is None else replace(session)

    def sessions(self, limit: Optional[int] = 100) -> List[Session]:
        """
        Most recent sessions first. ``limit=None`` returns all of them.
        """
        with self._lock:
            ordered = sorted((replace(s) for s in self._sessions.values()),
                             key=lambda s: s.start_time, reverse=True)
        return ordered if limit is None else ordered[:limit]

    # ==================== Persistence ====================

    def save(self, filename: str) -> None:
        """
        Write all sessions and events to a JSON file.
        """
        with self._lock:
            data = {
                "sessions": [s.to_dict() for s in self._sessions.values()],
                "events": [e.to_dict() for e in self._events],
            }
        with open(filename, "w") as f:
            json.dump(data, f, indent=2)
        logger.info(f"Saved {len(data['events'])} events to {filename}")

    @classmethod
    def load(cls, filename: str) -> "EventHistory":
        """
        Read a history written by ``save``.
        """
        with open(filename, "r") as f:
            data = json.load(f)

        history = cls()
        for item in data.get("sessions", []):
            session = Session.from_dict(item)
            history._sessions[session.id] = session
        for item in data.get("events", []):
            event = ChimeEvent.from_dict(item)
            index = bisect.bisect_right(history._timestamps, event.timestamp)
            history._timestamps.insert(index, event.timestamp)
            history._events.insert(index, event)

        logger.info(f"Loaded {len(history._events)} events from {filename}")
        return history
