"""
Gesture classification and dwell detection.

This module turns a gesture-space delta into a discrete verdict (no gesture,
toward the top edge, toward the left or right edge) and gates verdicts on
dwell time, so that only gestures held long enough fire, and each one fires
once until the user returns to neutral.

Gesture space is shared by every source: ``vertical > 0`` points toward the
top edge and ``lateral > 0`` toward the right edge. Sources map their raw
channels into it before classification.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from awareness_anchor.config import DwellConfig
from awareness_anchor.core.types import NEUTRAL, Edge, EdgeIntensities, GestureVerdict

logger = logging.getLogger(__name__)


def _ratio(value: float, scale: float) -> float:
    if scale <= 0:
        return 1.0 if value > 0 else 0.0
    return min(value / scale, 1.0)


class GestureClassifier:
    """
    Threshold classifier for one source.

    The lateral axis is evaluated first: a deliberate turn must never be read
    as a tilt because of correlated vertical motion during the turn (an
    external monitor above the camera makes turns look like tilts). A tilt
    only counts while the lateral delta stays inside the noise band.
    """

    def __init__(self, vertical_threshold, lateral_threshold, lateral_noise=None,
                 vertical_scale=None, lateral_scale=None, dead_zone=0.0,
                 lateral_dead_zone=None):
        """
        Initialize the classifier.

        Args:
            vertical_threshold (float): Vertical delta that counts as a top gesture
            lateral_threshold (float): Lateral delta that counts as a left/right gesture
            lateral_noise (float): Lateral band a top gesture must stay inside.
                None disables cross-talk suppression.
            vertical_scale (float): Delta shown as full top intensity. Defaults to the threshold.
            lateral_scale (float): Delta shown as full left/right intensity. Defaults to the threshold.
            dead_zone (float): Deltas up to this size show no intensity
            lateral_dead_zone (float): Lateral dead zone when it differs from the
                vertical one. None uses ``dead_zone`` for both axes.
        """
        self.vertical_threshold = vertical_threshold
        self.lateral_threshold = lateral_threshold
        self.lateral_noise = lateral_noise
        self.vertical_scale = vertical_scale
        self.lateral_scale = lateral_scale
        self.dead_zone = dead_zone
        self.lateral_dead_zone = lateral_dead_zone

    def classify(self, vertical: float, lateral: float) -> GestureVerdict:
        """
        Classify one gesture-space delta.

        Args:
            vertical (float): Delta toward the top edge
            lateral (float): Delta toward the right edge

        Returns:
            GestureVerdict: Edge pointed at and its intensity
        """
        if abs(lateral) > self.lateral_threshold:
            edge = Edge.RIGHT if lateral > 0 else Edge.LEFT
            return GestureVerdict(edge, _ratio(abs(lateral), self._lateral_scale))

        if vertical > self.vertical_threshold and (
                self.lateral_noise is None or abs(lateral) < self.lateral_noise):
            return GestureVerdict(Edge.TOP, _ratio(vertical, self._vertical_scale))

        return NEUTRAL

    def intensities(self, vertical: float, lateral: float) -> EdgeIntensities:
        """
        Per-edge closeness to the trigger, for the edge glow.
        """
        top = _ratio(vertical, self._vertical_scale) if vertical > self.dead_zone else 0.0
        side = self.dead_zone if self.lateral_dead_zone is None else self.lateral_dead_zone
        left = _ratio(-lateral, self._lateral_scale) if lateral < -side else 0.0
        right = _ratio(lateral, self._lateral_scale) if lateral > side else 0.0
        return EdgeIntensities(top=top, left=left, right=right)

    @property
    def _vertical_scale(self) -> float:
        return self.vertical_threshold if self.vertical_scale is None else self.vertical_scale

    @property
    def _lateral_scale(self) -> float:
        return self.lateral_threshold if self.lateral_scale is None else self.lateral_scale


@dataclass(frozen=True)
class DwellResult:
    """Outcome of one dwell gate update."""

    progress: float = 0.0
    fired: Optional[Edge] = None
    awaiting_neutral: bool = False


class DwellGate:
    """
    Dwell-time gate with return-to-neutral re-arming.

    A verdict must persist continuously for ``dwell_time`` seconds before it
    fires. Switching to a different edge restarts the timer. After firing, no
    new dwell can start until the verdict is neutral again.
    """

    def __init__(self, dwell_time=None):
        """
        Args:
            dwell_time (float): Seconds a verdict must hold. If None, uses config default.
        """
        self.dwell_time = DwellConfig.DWELL_TIME if dwell_time is None else dwell_time
        self.current_edge = Edge.NONE
        self.dwell_start = None
        self.requires_return_to_neutral = False

    def update(self, verdict: GestureVerdict, now: float, at_neutral: bool = True) -> DwellResult:
        """
        Advance the gate by one frame.

        Args:
            verdict (GestureVerdict): This frame's verdict
            now (float): Frame timestamp in seconds
            at_neutral (bool): Whether the source considers itself back at
                neutral. Only consulted while waiting to re-arm.

        Returns:
            DwellResult: Progress toward firing, the fired edge if any, and
            whether the gate is waiting for a return to neutral
        """
        edge = verdict.edge

        if self.requires_return_to_neutral:
            if edge is not Edge.NONE or not at_neutral:
                return DwellResult(0.0, None, True)
            self.requires_return_to_neutral = False
            logger.debug("Returned to neutral, dwell re-armed")

        if edge is Edge.NONE:
            self._clear()
            return DwellResult()

        if edge is not self.current_edge or self.dwell_start is None:
            self.current_edge = edge
            self.dwell_start = now

        elapsed = now - self.dwell_start
        dwell_time = max(self.dwell_time, 0.0)

        if elapsed >= dwell_time:
            logger.info(f"Dwell complete: {edge} after {elapsed:.3f}s")
            self.requires_return_to_neutral = True
            self._clear()
            return DwellResult(1.0, edge, True)

        return DwellResult(min(elapsed / dwell_time, 1.0), None, False)

    @property
    def in_progress(self) -> bool:
        """True from the first frame of a dwell until it fires or breaks."""
        return self.dwell_start is not None

    def reset(self):
        """Clear dwell tracking and the neutral lock."""
        self._clear()
        self.requires_return_to_neutral = False

    def _clear(self):
        self.current_edge = Edge.NONE
        self.dwell_start = None
