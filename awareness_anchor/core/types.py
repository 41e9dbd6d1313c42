"""
Shared value types passed between the pipelines, the arbiter and the recorder.

Every type here is immutable. Pipelines publish a fresh ``SourceSnapshot`` on
each update instead of mutating fields in place, so a reader on another tick
always sees one consistent state.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple


class Edge(Enum):
    """
    Screen edge a gesture points at.
    """

    NONE = "none"
    TOP = "top"
    LEFT = "left"
    RIGHT = "right"

    def __str__(self) -> str:
        return self.value


class InputSource(Enum):
    """
    Gesture input sources known to the arbiter.
    """

    NONE = "none"
    HEAD = "head"
    POINTER = "pointer"

    def __str__(self) -> str:
        return self.value


class Outcome(Enum):
    """
    How a response window ended.
    """

    PRESENT = "present"
    "Was already in open awareness."
    RETURNED = "returned"
    "Had to come back from distraction."
    MISSED = "missed"
    "No response within the window."
    ABSENT = "absent"
    "No response, and the subject was never observed during the window."

    @property
    def display_name(self) -> str:
        return {
            Outcome.PRESENT: "Already Present",
            Outcome.RETURNED: "Returned",
            Outcome.MISSED: "Missed",
            Outcome.ABSENT: "Away",
        }[self]

    @classmethod
    def for_edge(cls, edge: Edge) -> "Outcome":
        """
        Map a fired gesture edge to the response it stands for.
        """
        if edge is Edge.TOP:
            return cls.PRESENT
        if edge in (Edge.LEFT, Edge.RIGHT):
            return cls.RETURNED
        raise ValueError(f"Edge {edge} does not stand for a response")


@dataclass(frozen=True)
class RawSample:
    """
    One frame's raw reading from a source.

    ``channels`` are (pitch, yaw) radians for the head source and (x, y)
    pixels for the pointer source.
    """

    channels: Tuple[float, ...]
    present: bool
    timestamp: float


@dataclass(frozen=True)
class GestureVerdict:
    """
    Per-frame classification of a gesture delta.
    """

    edge: Edge = Edge.NONE
    intensity: float = 0.0

    @property
    def is_neutral(self) -> bool:
        return self.edge is Edge.NONE


NEUTRAL = GestureVerdict()


@dataclass(frozen=True)
class EdgeIntensities:
    """
    How close the current gesture is to each edge, 0 to 1.
    """

    top: float = 0.0
    left: float = 0.0
    right: float = 0.0


@dataclass(frozen=True)
class SourceSnapshot:
    """
    State one pipeline publishes after each update.
    """

    source: InputSource
    present: bool = False
    " Subject observed in the latest frame. "
    subject_seen: bool = False
    " Subject observed at least once since activation. "
    intensities: EdgeIntensities = EdgeIntensities()
    dwell_progress: float = 0.0
    dwell_active: bool = False
    " A dwell timer is running, including the frame it started on. "
    awaiting_neutral: bool = False
    activity: Optional[Tuple[float, ...]] = None
    " Channels normalised to the source's own gesture range, for speed comparison. "
    trigger_count: int = 0
    last_trigger: Edge = Edge.NONE
    timestamp: Optional[float] = None

    @property
    def is_locked(self) -> bool:
        """
        True while a gesture is in progress or waiting for return to neutral.
        """
        return self.dwell_active or self.dwell_progress > 0 or self.awaiting_neutral


@dataclass(frozen=True)
class PresentationFrame:
    """
    Unified per-tick output for the rendering surface.
    """

    top_intensity: float = 0.0
    left_intensity: float = 0.0
    right_intensity: float = 0.0
    dwell_progress: float = 0.0
    active_source: InputSource = InputSource.NONE
    trigger_edge: Optional[Edge] = None
    subject_present: bool = False
