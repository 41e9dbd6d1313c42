"""
Configuration module for Awareness Anchor.

This module contains all configuration parameters and constants used by the
gesture pipelines, the input arbiter, the response recorder and the statistics.
Centralizing configuration makes it easier to tune parameters and understand system behavior.

TUNING:
- Head gestures feel sluggish: lower DwellConfig.DWELL_TIME or HeadPoseConfig.SMOOTHING_FACTOR
- Turns are read as tilts on external monitors: lower HeadPoseConfig.YAW_NOISE_THRESHOLD
  or HeadPoseConfig.YAW_THRESHOLD so the lateral gesture wins earlier
- Source flickers between head and pointer: raise ArbiterConfig.SWITCH_DEBOUNCE
"""

import json
import logging
from dataclasses import asdict, dataclass, fields, replace
from enum import Enum
from typing import Any, Dict

logger = logging.getLogger(__name__)


# ==================== Head Pose Configuration ====================
class HeadPoseConfig:
    """Head orientation gesture parameters (radians)."""

    # Tilt up past this pitch delta counts as "already present"
    PITCH_THRESHOLD = 0.12

    # Turn past this yaw delta counts as "returned"
    YAW_THRESHOLD = 0.20

    # A tilt only counts while yaw stays inside this band (cross-talk suppression)
    YAW_NOISE_THRESHOLD = 0.10

    # IIR smoothing factor (0 = raw, towards 1 = smoother but laggy)
    SMOOTHING_FACTOR = 0.3

    # Frames discarded after activation before the baseline is trusted
    FRAMES_TO_SKIP = 3

    # Intensity below this delta is shown as no edge at all
    DEAD_ZONE = 0.02


# ==================== Pointer Configuration ====================
class PointerConfig:
    """Pointer screen-edge gesture parameters (pixels)."""

    # Distance from an edge that counts as "at the edge"
    EDGE_ZONE_PX = 10.0

    # Radius around the centre with no edge glow
    DEAD_ZONE_PX = 20.0

    # After a trigger the pointer must return within this fraction of min(width, height)
    NEUTRAL_RADIUS_FRACTION = 0.2

    # Pointer events are already clean
    SMOOTHING_FACTOR = 0.0
    FRAMES_TO_SKIP = 0

    # Fallback screen size when none is supplied
    DEFAULT_WIDTH = 1920
    DEFAULT_HEIGHT = 1080


# ==================== Dwell Configuration ====================
class DwellConfig:
    """Dwell gate shared by both sources."""

    # Seconds a gesture must persist before it fires (0 = fire immediately)
    DWELL_TIME = 0.15

    # Upper bound accepted for dwell time, larger values are clamped
    MAX_DWELL_TIME = 5.0


# ==================== Arbiter Configuration ====================
class ArbiterConfig:
    """Cross-source arbitration parameters."""

    # Fixed tick period (seconds)
    TICK_INTERVAL = 0.033

    # Exponential smoothing of per-source speed (0 = responsive, 1 = frozen)
    SPEED_SMOOTHING = 0.8

    # Candidate must be this many times faster than the active source
    HYSTERESIS_RATIO = 1.2

    # Seconds a switch suggestion must stay dominant before it is applied
    SWITCH_DEBOUNCE = 0.5

    # Smoothed speed (normalised units per second) a source needs before it can
    # take over on speed alone; tracker jitter stays below it
    MIN_SPEED = 0.5


# ==================== Session Configuration ====================
class SessionConfig:
    """Chime scheduling and response window parameters."""

    # Average seconds between chimes (actual interval is 0.5x - 1.5x of this)
    AVERAGE_INTERVAL = 150.0

    # Shortest interval ever scheduled
    MIN_INTERVAL = 1.0

    # Seconds the user has to respond after a chime
    RESPONSE_WINDOW = 10.0


# ==================== Statistics Configuration ====================
class StatsConfig:
    """Time-in-state estimator parameters."""

    # Two-sided confidence level for the Wilson interval
    CONFIDENCE_LEVEL = 0.95

    # Below this many events the interval is not shown
    MIN_SAMPLES = 3


# ==================== Worker Thread Configuration ====================
class WorkerConfig:
    """Configuration for the sample channel and consumer thread."""

    # Bounded channel size between sample producers and the consumer
    SAMPLE_QUEUE_MAXSIZE = 64

    # Consumer wait on an empty channel before re-checking the stop event (seconds)
    QUEUE_TIMEOUT = 0.01

    # Thread shutdown timeout (seconds)
    THREAD_SHUTDOWN_TIMEOUT = 2.0


class AbsentPolicy(Enum):
    """
    What an unanswered window becomes when the subject was never observed.
    """

    COUNT_AS_MISSED = "missed"
    "Always record Missed."
    RECORD_ABSENT = "absent"
    "Record a distinct Absent outcome that statistics ignore."
    SKIP = "skip"
    "Record nothing for the window."


# Practical upper bounds for user-tunable values
_LIMITS = {
    "pitch_threshold": 1.5,
    "yaw_threshold": 1.5,
    "yaw_noise_threshold": 1.5,
    "smoothing_factor": 0.99,
    "dwell_time": DwellConfig.MAX_DWELL_TIME,
    "frames_to_skip": 60,
    "edge_zone_px": 500.0,
    "dead_zone_px": 500.0,
    "neutral_radius_fraction": 0.5,
    "pointer_smoothing_factor": 0.99,
    "speed_smoothing": 0.99,
    "hysteresis_ratio": 10.0,
    "switch_debounce": 10.0,
    "min_speed": 100.0,
    "response_window": 600.0,
    "average_interval": 86400.0,
}


@dataclass(frozen=True)
class DetectionSettings:
    """
    Live-tunable settings handed to every component explicitly.

    The host reloads these and calls ``configure(settings)``; components never
    read configuration ambiently.
    """

    pitch_threshold: float = HeadPoseConfig.PITCH_THRESHOLD
    yaw_threshold: float = HeadPoseConfig.YAW_THRESHOLD
    yaw_noise_threshold: float = HeadPoseConfig.YAW_NOISE_THRESHOLD
    smoothing_factor: float = HeadPoseConfig.SMOOTHING_FACTOR
    dwell_time: float = DwellConfig.DWELL_TIME
    frames_to_skip: int = HeadPoseConfig.FRAMES_TO_SKIP

    edge_zone_px: float = PointerConfig.EDGE_ZONE_PX
    dead_zone_px: float = PointerConfig.DEAD_ZONE_PX
    neutral_radius_fraction: float = PointerConfig.NEUTRAL_RADIUS_FRACTION
    pointer_smoothing_factor: float = PointerConfig.SMOOTHING_FACTOR

    speed_smoothing: float = ArbiterConfig.SPEED_SMOOTHING
    hysteresis_ratio: float = ArbiterConfig.HYSTERESIS_RATIO
    switch_debounce: float = ArbiterConfig.SWITCH_DEBOUNCE
    min_speed: float = ArbiterConfig.MIN_SPEED

    head_enabled: bool = True
    pointer_enabled: bool = True

    response_window: float = SessionConfig.RESPONSE_WINDOW
    average_interval: float = SessionConfig.AVERAGE_INTERVAL
    absent_policy: AbsentPolicy = AbsentPolicy.RECORD_ABSENT

    def clamped(self) -> "DetectionSettings":
        """
        Return a copy with every numeric value clamped to ``[0, practical max]``.

        Out-of-range values are user tuning mistakes, not programmer errors,
        so they are corrected and logged instead of rejected.
        """
        changes: Dict[str, Any] = {}
        for name, upper in _LIMITS.items():
            value = getattr(self, name)
            fixed = min(max(value, 0), upper)
            if name == "hysteresis_ratio":
                fixed = max(fixed, 1.0)
            if fixed != value:
                logger.warning(f"Setting {name}={value} out of range, clamped to {fixed}")
                changes[name] = type(value)(fixed)
        return replace(self, **changes) if changes else self

    @classmethod
    def from_dict(cls, values: Dict[str, Any]) -> "DetectionSettings":
        """
        Build settings from a plain mapping, ignoring unknown keys.
        """
        known = {f.name for f in fields(cls)}
        kwargs: Dict[str, Any] = {}
        for key, value in values.items():
            if key not in known:
                logger.warning(f"Ignoring unknown setting: {key}")
                continue
            if key == "absent_policy":
                value = AbsentPolicy(value)
            kwargs[key] = value
        return cls(**kwargs).clamped()

    def to_dict(self) -> Dict[str, Any]:
        values = asdict(self)
        values["absent_policy"] = self.absent_policy.value
        return values


def load_settings(filename: str) -> DetectionSettings:
    """
    Load detection settings from a JSON file.

    Args:
        filename (str): Path to a JSON object of setting names to values

    Returns:
        DetectionSettings: Clamped settings
    """
    with open(filename, "r") as f:
        values = json.load(f)
    logger.info(f"Loaded settings from {filename}")
    return DetectionSettings.from_dict(values)
