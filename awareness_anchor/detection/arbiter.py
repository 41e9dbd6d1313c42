"""
Cross-source arbitration between the head pose and pointer pipelines.

When both sources run at the same time, the arbiter decides on a fixed tick
which one is authoritative. Only the active source's intensities and triggers
reach downstream consumers.
"""

import logging
from typing import Dict, Optional

from awareness_anchor.config import DetectionSettings
from awareness_anchor.core.types import (
    Edge,
    InputSource,
    PresentationFrame,
    SourceSnapshot,
)
from awareness_anchor.detection.pipeline import GesturePipeline

logger = logging.getLogger(__name__)

SOURCES = (InputSource.HEAD, InputSource.POINTER)


class InputArbiter:
    """
    Motion-based source selection with lock, hysteresis and debounce.

    Each source's speed is how fast its normalised channels move, so the
    angular head signal and the pixel pointer signal become comparable. A
    source that is mid-gesture or waiting for return to neutral keeps
    control. While it is idle, a gesture starting on the other source takes
    over at once. Otherwise a faster source must move at least at the minimum
    speed and beat the active one by the hysteresis ratio continuously for the
    debounce period before it takes over.
    """

    def __init__(self, head: GesturePipeline, pointer: GesturePipeline,
                 settings: Optional[DetectionSettings] = None):
        self.pipelines: Dict[InputSource, GesturePipeline] = {
            InputSource.HEAD: head,
            InputSource.POINTER: pointer,
        }
        self.enabled = {source: True for source in SOURCES}
        self.smoothed_speed = {source: 0.0 for source in SOURCES}
        self.active_source = InputSource.NONE
        self.pending_source: Optional[InputSource] = None
        self.pending_since: Optional[float] = None
        self.suppressed_triggers = 0

        self.speed_smoothing = 0.0
        self.hysteresis_ratio = 1.0
        self.switch_debounce = 0.0
        self.min_speed = 0.0

        self._last_activity = {source: None for source in SOURCES}
        self._last_tick: Optional[float] = None
        self._seen_triggers = {source: 0 for source in SOURCES}

        self.configure(settings or DetectionSettings())
        self.reset()

    def configure(self, settings: DetectionSettings) -> None:
        """Apply new arbitration settings from the next tick on."""
        self.speed_smoothing = settings.speed_smoothing
        self.hysteresis_ratio = settings.hysteresis_ratio
        self.switch_debounce = settings.switch_debounce
        self.min_speed = settings.min_speed
        self.enabled[InputSource.HEAD] = settings.head_enabled
        self.enabled[InputSource.POINTER] = settings.pointer_enabled

    def reset(self) -> None:
        """
        Forget speeds and the current decision.

        Triggers already fired by either pipeline are marked as seen so they
        are never delivered late.
        """
        for source in SOURCES:
            self.smoothed_speed[source] = 0.0
            self._last_activity[source] = None
            self._seen_triggers[source] = self.pipelines[source].snapshot.trigger_count
        self._last_tick = None
        self._clear_pending()
        self._switch(InputSource.NONE)

    def tick(self, now: float) -> PresentationFrame:
        """
        Run one arbitration step.

        Args:
            now (float): Tick timestamp in seconds

        Returns:
            PresentationFrame: Unified output of the active source
        """
        # One read per source; each snapshot is internally consistent
        snapshots = {source: self.pipelines[source].snapshot for source in SOURCES}

        self._update_speeds(snapshots, now)
        self._select_source(snapshots, now)
        trigger = self._collect_trigger(snapshots)
        return self._frame(snapshots, trigger)

    # ----- speeds -----

    def _update_speeds(self, snapshots: Dict[InputSource, SourceSnapshot], now: float) -> None:
        last_tick = self._last_tick
        self._last_tick = now
        dt = None if last_tick is None else now - last_tick

        for source in SOURCES:
            activity = snapshots[source].activity
            previous = self._last_activity[source]
            if activity is not None:
                self._last_activity[source] = activity

            if dt is None or dt <= 0:
                continue

            speed = 0.0
            if self.enabled[source] and activity is not None and previous is not None:
                speed = max(abs(a - b) for a, b in zip(activity, previous)) / dt

            k = self.speed_smoothing
            self.smoothed_speed[source] = k * self.smoothed_speed[source] + (1 - k) * speed

        logger.debug(f"Speeds: head={self.smoothed_speed[InputSource.HEAD]:.3f}, "
                     f"pointer={self.smoothed_speed[InputSource.POINTER]:.3f}")

    # ----- selection -----

    def _select_source(self, snapshots: Dict[InputSource, SourceSnapshot], now: float) -> None:
        enabled = [source for source in SOURCES if self.enabled[source]]

        if not enabled:
            self._clear_pending()
            self._switch(InputSource.NONE)
            return

        if len(enabled) == 1:
            self._clear_pending()
            self._switch(enabled[0])
            return

        active = self.active_source

        if active is InputSource.NONE:
            self._adopt_initial_source(snapshots)
            return

        if snapshots[active].is_locked:
            # An in-progress gesture is never interrupted by the other source
            self._clear_pending()
            return

        candidate = InputSource.POINTER if active is InputSource.HEAD else InputSource.HEAD
        if self._claims(candidate, snapshots[candidate]):
            # A gesture started on the other source takes over at once
            self._clear_pending()
            self._switch(candidate)
            return

        if self._outruns(candidate, active):
            if self.pending_source is not candidate:
                self.pending_source = candidate
                self.pending_since = now
            elif now - self.pending_since >= self.switch_debounce:
                self._clear_pending()
                self._switch(candidate)
        else:
            self._clear_pending()

    def _adopt_initial_source(self, snapshots: Dict[InputSource, SourceSnapshot]) -> None:
        """Nothing decided yet: the first source to gesture or move clearly wins."""
        for source in SOURCES:
            snapshot = snapshots[source]
            if snapshot.is_locked or snapshot.trigger_count > self._seen_triggers[source]:
                self._switch(source)
                return

        if self._outruns(InputSource.HEAD, InputSource.POINTER):
            self._switch(InputSource.HEAD)
        elif self._outruns(InputSource.POINTER, InputSource.HEAD):
            self._switch(InputSource.POINTER)

    def _claims(self, source: InputSource, snapshot: SourceSnapshot) -> bool:
        """A dwell under way or an unseen trigger."""
        if snapshot.trigger_count > self._seen_triggers[source]:
            return True
        return snapshot.is_locked and not snapshot.awaiting_neutral

    def _outruns(self, candidate: InputSource, other: InputSource) -> bool:
        speed = self.smoothed_speed[candidate]
        return speed >= self.min_speed and speed > self.smoothed_speed[other] * self.hysteresis_ratio

    def _switch(self, source: InputSource) -> None:
        if source is not self.active_source:
            logger.info(f"Source changed: {self.active_source} -> {source}")
            self.active_source = source

    def _clear_pending(self) -> None:
        self.pending_source = None
        self.pending_since = None

    # ----- output -----

    def _collect_trigger(self, snapshots: Dict[InputSource, SourceSnapshot]) -> Optional[Edge]:
        trigger = None
        for source in SOURCES:
            snapshot = snapshots[source]
            seen = self._seen_triggers[source]
            if snapshot.trigger_count <= seen:
                continue
            self._seen_triggers[source] = snapshot.trigger_count
            if source is self.active_source:
                trigger = snapshot.last_trigger
                logger.info(f"Forwarding trigger {trigger} from {source}")
            else:
                self.suppressed_triggers += snapshot.trigger_count - seen
                logger.debug(f"Suppressed trigger {snapshot.last_trigger} from inactive {source}")
        return trigger

    def _frame(self, snapshots: Dict[InputSource, SourceSnapshot],
               trigger: Optional[Edge]) -> PresentationFrame:
        active = self.active_source
        if active is InputSource.NONE:
            present = any(snapshots[s].present for s in SOURCES if self.enabled[s])
            return PresentationFrame(subject_present=present)

        snapshot = snapshots[active]
        return PresentationFrame(
            top_intensity=snapshot.intensities.top,
            left_intensity=snapshot.intensities.left,
            right_intensity=snapshot.intensities.right,
            dwell_progress=snapshot.dwell_progress,
            active_source=active,
            trigger_edge=trigger,
            subject_present=snapshot.present,
        )
