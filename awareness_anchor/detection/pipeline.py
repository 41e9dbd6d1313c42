"""
Gesture pipelines for the head pose and pointer sources.

Both sources run the same chain, smoother -> baseline -> classifier -> dwell
gate, implemented once in ``GesturePipeline``. The sources only differ in how
raw channels map into gesture space, which thresholds apply, and what counts
as neutral again after a trigger.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np

from awareness_anchor.config import DetectionSettings, HeadPoseConfig, PointerConfig
from awareness_anchor.core.types import (
    Edge,
    EdgeIntensities,
    InputSource,
    RawSample,
    SourceSnapshot,
)
from awareness_anchor.detection.filters import BaselineCapture, SignalSmoother
from awareness_anchor.detection.gesture_detection import DwellGate, GestureClassifier

logger = logging.getLogger(__name__)


class GesturePipeline:
    """
    Generic per-source gesture pipeline.

    Samples are delivered one at a time by a single producer. After every
    update the pipeline publishes a new immutable ``SourceSnapshot``, which
    the arbiter may read at any time from its own tick.
    """

    def __init__(self, source: InputSource, settings: Optional[DetectionSettings] = None):
        self.source = source
        self.smoother = SignalSmoother()
        self.baseline = BaselineCapture()
        self.classifier = GestureClassifier(0.0, 0.0)
        self.dwell = DwellGate()
        self.settings = None

        self.active = False
        self._subject_seen = False
        self._trigger_count = 0
        self._last_trigger = Edge.NONE
        self._snapshot = SourceSnapshot(source)

        self.configure(settings or DetectionSettings())

    # ----- source specific hooks -----

    def _apply_settings(self, settings: DetectionSettings) -> None:
        raise NotImplementedError

    def _to_gesture_space(self, delta: np.ndarray) -> Tuple[float, float]:
        """Map a baseline delta to (vertical, lateral)."""
        raise NotImplementedError

    def _activity(self, smoothed: np.ndarray, delta: np.ndarray) -> Tuple[float, ...]:
        """Channels normalised to this source's gesture range."""
        raise NotImplementedError

    def _at_neutral(self, vertical: float, lateral: float) -> bool:
        return True

    # ----- lifecycle -----

    @property
    def snapshot(self) -> SourceSnapshot:
        return self._snapshot

    @property
    def subject_seen(self) -> bool:
        """
        Whether the subject was observed since the last activation.
        Kept after deactivation so the window owner can still read it.
        """
        return self._subject_seen

    def configure(self, settings: DetectionSettings) -> None:
        """
        Apply new settings from the next frame on.

        In-progress dwell and the captured baseline are kept.
        """
        self.settings = settings
        self.dwell.dwell_time = settings.dwell_time
        self._apply_settings(settings)

    def activate(self) -> None:
        """Start a fresh window: no baseline, no dwell, no smoothing history."""
        self._reset_state()
        self._subject_seen = False
        self.active = True
        self._publish(SourceSnapshot(self.source, timestamp=None,
                                     trigger_count=self._trigger_count,
                                     last_trigger=self._last_trigger))
        logger.info(f"[{self.source}] Pipeline activated")

    def deactivate(self) -> None:
        """
        Stop processing and synchronously drop all per-window state.
        Safe to call repeatedly.
        """
        was_active = self.active
        self.active = False
        self._reset_state()
        self._publish(SourceSnapshot(self.source,
                                     subject_seen=self._subject_seen,
                                     trigger_count=self._trigger_count,
                                     last_trigger=self._last_trigger))
        if was_active:
            logger.info(f"[{self.source}] Pipeline deactivated")

    def _reset_state(self) -> None:
        self.smoother.reset()
        self.baseline.reset()
        self.dwell.reset()

    def _publish(self, snapshot: SourceSnapshot) -> SourceSnapshot:
        self._snapshot = snapshot
        return snapshot

    # ----- per frame -----

    def update(self, sample: RawSample) -> SourceSnapshot:
        """
        Process one raw sample.

        Args:
            sample (RawSample): Raw reading with presence flag and timestamp

        Returns:
            SourceSnapshot: The newly published state
        """
        if not self.active:
            return self._snapshot

        if not sample.present:
            # No data this frame: dwell does not advance, baseline is kept
            previous = self._snapshot
            return self._publish(SourceSnapshot(
                self.source,
                present=False,
                subject_seen=self._subject_seen,
                dwell_progress=previous.dwell_progress,
                dwell_active=previous.dwell_active,
                awaiting_neutral=previous.awaiting_neutral,
                activity=previous.activity,
                trigger_count=self._trigger_count,
                last_trigger=self._last_trigger,
                timestamp=sample.timestamp,
            ))

        if not self._subject_seen:
            logger.info(f"[{self.source}] Subject detected")
        self._subject_seen = True

        raw = np.asarray(sample.channels, dtype=float)
        if self.baseline.warming_up:
            # Warm-up frames never reach the smoother
            self.baseline.observe(raw)
            delta = None
        else:
            smoothed = self.smoother.update(raw)
            delta = self.baseline.observe(smoothed)

        if delta is None:
            return self._publish(SourceSnapshot(
                self.source,
                present=True,
                subject_seen=True,
                trigger_count=self._trigger_count,
                last_trigger=self._last_trigger,
                timestamp=sample.timestamp,
            ))

        vertical, lateral = self._to_gesture_space(delta)
        logger.debug(f"[{self.source}] Delta: vertical={vertical:.3f}, lateral={lateral:.3f}")

        verdict = self.classifier.classify(vertical, lateral)
        result = self.dwell.update(verdict, sample.timestamp,
                                   at_neutral=self._at_neutral(vertical, lateral))

        if result.fired is not None:
            self._trigger_count += 1
            self._last_trigger = result.fired
            logger.info(f"[{self.source}] TRIGGERED: {result.fired} "
                        f"(vertical={vertical:.3f}, lateral={lateral:.3f})")

        return self._publish(SourceSnapshot(
            self.source,
            present=True,
            subject_seen=True,
            intensities=self.classifier.intensities(vertical, lateral),
            dwell_progress=result.progress,
            dwell_active=self.dwell.in_progress,
            awaiting_neutral=result.awaiting_neutral,
            activity=self._activity(self.smoother.value, delta),
            trigger_count=self._trigger_count,
            last_trigger=self._last_trigger,
            timestamp=sample.timestamp,
        ))


class HeadPoseSource(GesturePipeline):
    """
    Head orientation gestures from (pitch, yaw) in radians.

    Tilting up points at the top edge. Positive yaw is a turn to the user's
    left because the camera image is mirrored.
    """

    def __init__(self, settings: Optional[DetectionSettings] = None):
        super().__init__(InputSource.HEAD, settings)

    def _apply_settings(self, settings: DetectionSettings) -> None:
        self.smoother.factor = settings.smoothing_factor
        self.baseline.frames_to_skip = settings.frames_to_skip
        self.classifier.vertical_threshold = settings.pitch_threshold
        self.classifier.lateral_threshold = settings.yaw_threshold
        self.classifier.lateral_noise = settings.yaw_noise_threshold
        self.classifier.dead_zone = HeadPoseConfig.DEAD_ZONE

    def _to_gesture_space(self, delta: np.ndarray) -> Tuple[float, float]:
        pitch_delta, yaw_delta = float(delta[0]), float(delta[1])
        return -pitch_delta, -yaw_delta

    def _activity(self, smoothed: np.ndarray, delta: np.ndarray) -> Tuple[float, ...]:
        pitch_scale = self.settings.pitch_threshold or 1.0
        yaw_scale = self.settings.yaw_threshold or 1.0
        return float(delta[0]) / pitch_scale, float(delta[1]) / yaw_scale


@dataclass(frozen=True)
class ScreenGeometry:
    """Pixel size of the screen the pointer moves on, origin top-left."""

    width: float = PointerConfig.DEFAULT_WIDTH
    height: float = PointerConfig.DEFAULT_HEIGHT

    @property
    def center(self) -> Tuple[float, float]:
        return self.width / 2.0, self.height / 2.0


class PointerEdgeSource(GesturePipeline):
    """
    Screen-edge gestures from pointer (x, y) in pixels.

    The zero reference is the screen centre. Parking the pointer within the
    edge zone of the top, left or right edge is the gesture. After a trigger
    the pointer has to come back near the centre before the next one.
    """

    def __init__(self, screen: Optional[ScreenGeometry] = None,
                 settings: Optional[DetectionSettings] = None):
        self.screen = screen or ScreenGeometry()
        super().__init__(InputSource.POINTER, settings)
        self.baseline.reference = np.asarray(self.screen.center, dtype=float)

    def set_screen(self, screen: ScreenGeometry) -> None:
        """Change screen geometry; takes effect from the next activation."""
        self.screen = screen
        self.baseline.reference = np.asarray(screen.center, dtype=float)
        self._apply_settings(self.settings)

    def _apply_settings(self, settings: DetectionSettings) -> None:
        half_w, half_h = self.screen.center
        self.smoother.factor = settings.pointer_smoothing_factor
        self.baseline.frames_to_skip = 0
        self.classifier.vertical_threshold = max(0.0, 1.0 - settings.edge_zone_px / half_h)
        self.classifier.lateral_threshold = max(0.0, 1.0 - settings.edge_zone_px / half_w)
        self.classifier.lateral_noise = None
        self.classifier.vertical_scale = 1.0
        self.classifier.lateral_scale = 1.0
        self.classifier.dead_zone = settings.dead_zone_px / half_h
        self.classifier.lateral_dead_zone = settings.dead_zone_px / half_w

    def _to_gesture_space(self, delta: np.ndarray) -> Tuple[float, float]:
        half_w, half_h = self.screen.center
        dx, dy = float(delta[0]), float(delta[1])
        # Screen y grows downward
        return -dy / half_h, dx / half_w

    def _activity(self, smoothed: np.ndarray, delta: np.ndarray) -> Tuple[float, ...]:
        return float(smoothed[0]) / self.screen.width, float(smoothed[1]) / self.screen.height

    def _at_neutral(self, vertical: float, lateral: float) -> bool:
        half_w, half_h = self.screen.center
        distance = float(np.hypot(lateral * half_w, vertical * half_h))
        radius = self.settings.neutral_radius_fraction * min(self.screen.width, self.screen.height)
        return distance < radius
