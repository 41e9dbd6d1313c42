"""
Host-side wiring of the response loop.

The controller owns both gesture sources, the arbiter, the chime scheduler
and the response recorder. A single consumer feeds it samples and calls
``tick`` at a fixed rate; everything it does happens on that thread.
"""

import logging
from typing import Callable, Dict, Optional, Set, Union

from awareness_anchor.config import DetectionSettings
from awareness_anchor.core.recorder import ResponseRecorder
from awareness_anchor.core.scheduler import ChimeScheduler
from awareness_anchor.core.types import (
    Edge,
    InputSource,
    Outcome,
    PresentationFrame,
    RawSample,
)
from awareness_anchor.detection.arbiter import SOURCES, InputArbiter
from awareness_anchor.detection.pipeline import (
    GesturePipeline,
    HeadPoseSource,
    PointerEdgeSource,
    ScreenGeometry,
)
from awareness_anchor.stats.history import EventHistory

logger = logging.getLogger(__name__)


class ResponseController:
    """
    Chime -> response window -> gesture -> recorded outcome.

    On a chime the playback callback runs, a window opens and the enabled
    pipelines start from a fresh baseline. The first forwarded trigger is
    the response (top: Present, left or right: Returned). The window closes
    on a response or when it expires, and the pipelines stop.
    """

    def __init__(self, settings: Optional[DetectionSettings] = None,
                 history: Optional[EventHistory] = None,
                 screen: Optional[ScreenGeometry] = None,
                 on_chime: Optional[Callable[[], None]] = None,
                 sink: Optional[Callable[[PresentationFrame], None]] = None,
                 seed: Optional[int] = None):
        """
        Args:
            settings (DetectionSettings): Initial settings. If None, uses defaults.
            history (EventHistory): Event store. If None, a new in-memory one.
            screen (ScreenGeometry): Pointer screen size
            on_chime (callable): Plays the chime sound
            sink (callable): Receives every presentation frame
            seed (int): Seed of the chime interval generator
        """
        self.settings = (settings or DetectionSettings()).clamped()
        self.history = history if history is not None else EventHistory()
        self.on_chime = on_chime
        self.sink = sink

        self.head = HeadPoseSource(self.settings)
        self.pointer = PointerEdgeSource(screen, self.settings)
        self.arbiter = InputArbiter(self.head, self.pointer, self.settings)
        self.scheduler = ChimeScheduler(seed)
        self.recorder = ResponseRecorder(self.history,
                                         self.settings.response_window,
                                         self.settings.absent_policy)

        self.calibrating = False
        self.last_frame = PresentationFrame()
        self._window_sources: Set[InputSource] = set()

        logger.info("ResponseController initialized")

    @property
    def pipelines(self) -> Dict[InputSource, GesturePipeline]:
        return self.arbiter.pipelines

    @property
    def is_playing(self) -> bool:
        return self.recorder.session is not None

    def enabled_sources(self):
        return [source for source in SOURCES if self.arbiter.enabled[source]]

    # ==================== Session control ====================

    def start(self, now: float, schedule: bool = True) -> None:
        """
        Start a practice session.

        Args:
            now (float): Session start time
            schedule (bool): Run the random chime schedule. When False, chimes
                only ring through ``chime(now)``.
        """
        if self.is_playing:
            logger.warning("Session already running")
            return
        avg = self.settings.average_interval
        self.recorder.start_session(now, avg)
        if schedule:
            self.scheduler.start(now, avg)

    def stop(self, now: float) -> None:
        """Stop chiming, close any open window as unanswered and end the session."""
        self.scheduler.stop()
        seen = self._subject_seen()
        self.recorder.end_session(now, subject_seen=seen)
        self._window_sources.clear()
        if not self.calibrating:
            self._deactivate_all()

    def pause(self, now: float) -> None:
        """Suspend the schedule, e.g. while the machine sleeps."""
        self.scheduler.pause(now)

    def resume(self, now: float) -> None:
        self.scheduler.resume(now)

    def configure(self, settings: DetectionSettings, now: Optional[float] = None) -> None:
        """
        Apply new settings to every component from the next frame on.

        Args:
            settings (DetectionSettings): New settings, clamped before use
            now (float): Current time; when given, a changed average interval
                also reschedules the pending chime
        """
        settings = settings.clamped()
        interval_changed = settings.average_interval != self.settings.average_interval
        self.settings = settings

        self.head.configure(settings)
        self.pointer.configure(settings)
        self.arbiter.configure(settings)
        self.recorder.window_duration = settings.response_window
        self.recorder.absent_policy = settings.absent_policy

        if interval_changed and now is not None and self.is_playing:
            self.scheduler.update_interval(now, settings.average_interval)

        # Sources enabled or disabled while running follow immediately
        running = self.recorder.is_window_open or self.calibrating
        for source in SOURCES:
            pipeline = self.pipelines[source]
            if not self.arbiter.enabled[source]:
                pipeline.deactivate()
            elif running and not pipeline.active:
                pipeline.activate()
                self._window_sources.add(source)

        logger.info("Settings applied")

    # ==================== Calibration ====================

    def start_calibration(self) -> None:
        """
        Run the enabled pipelines without a response window. Triggers still
        reach the sink but are never recorded.
        """
        self.calibrating = True
        for source in self.enabled_sources():
            if not self.pipelines[source].active:
                self.pipelines[source].activate()
        self.arbiter.reset()
        logger.info("Calibration started")

    def stop_calibration(self) -> None:
        self.calibrating = False
        if not self.recorder.is_window_open:
            self._deactivate_all()
        logger.info("Calibration stopped")

    # ==================== Per-sample / per-tick ====================

    def push_sample(self, source: Union[InputSource, str], sample: RawSample) -> None:
        """
        Deliver one raw sample to its pipeline.

        Raises:
            ValueError: If ``source`` does not name a gesture source
        """
        source = InputSource(source)
        if source is InputSource.NONE:
            raise ValueError("Samples must come from a real source")
        self.pipelines[source].update(sample)

    def chime(self, now: float) -> None:
        """
        Ring a chime and open a response window.

        A window still open from the previous chime is closed unanswered first.
        """
        if not self.is_playing:
            logger.warning("Chime ignored: no session running")
            return

        if self.recorder.is_window_open:
            self._close_unanswered(now)

        logger.info("Chime")
        if self.on_chime is not None:
            try:
                self.on_chime()
            except Exception as e:
                logger.error(f"Chime playback failed: {e}", exc_info=True)

        self.recorder.open_window(now)
        self._window_sources = set(self.enabled_sources())
        for source in self._window_sources:
            self.pipelines[source].activate()
        self.arbiter.reset()

    def tick(self, now: float) -> PresentationFrame:
        """
        One fixed-rate step: scheduler, arbitration, response handling.

        Args:
            now (float): Tick time in seconds since the epoch

        Returns:
            PresentationFrame: Frame also handed to the sink
        """
        if self.scheduler.poll(now):
            self.chime(now)

        frame = self.arbiter.tick(now)

        if frame.trigger_edge is not None and frame.trigger_edge is not Edge.NONE:
            self._handle_trigger(frame.trigger_edge, now)
        elif self.recorder.expired(now):
            self._close_unanswered(now)

        self.last_frame = frame
        if self.sink is not None:
            self.sink(frame)
        return frame

    def _handle_trigger(self, edge: Edge, now: float) -> None:
        if self.recorder.is_window_open:
            self.recorder.record_response(Outcome.for_edge(edge), now)
            self._end_window()
        elif self.calibrating:
            logger.info(f"Calibration trigger: {edge}")
        else:
            logger.warning(f"Trigger {edge} outside a response window ignored")

    def _close_unanswered(self, now: float) -> None:
        self.recorder.close_window(now, self._subject_seen())
        self._end_window()

    def _end_window(self) -> None:
        self._window_sources.clear()
        if not self.calibrating:
            self._deactivate_all()

    def _subject_seen(self) -> bool:
        return any(self.pipelines[source].subject_seen for source in self._window_sources)

    def _deactivate_all(self) -> None:
        for pipeline in self.pipelines.values():
            pipeline.deactivate()
