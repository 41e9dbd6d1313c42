"""
Randomised chime scheduling.
"""

import logging
from typing import Optional

import numpy as np

from awareness_anchor.config import SessionConfig

logger = logging.getLogger(__name__)


class ChimeScheduler:
    """
    Tick-driven chime timer.

    Intervals are drawn uniformly between half and one and a half times the
    average, never shorter than ``SessionConfig.MIN_INTERVAL``. The host calls
    ``poll(now)`` on its tick; it returns True once per due chime.
    """

    def __init__(self, seed: Optional[int] = None):
        self.rng = np.random.default_rng(seed)
        self.average_interval = SessionConfig.AVERAGE_INTERVAL
        self.is_running = False
        self.is_paused = False
        self.next_fire_time: Optional[float] = None
        self.remaining_on_pause: Optional[float] = None

    def next_interval(self) -> float:
        factor = 0.5 + self.rng.random()
        return max(SessionConfig.MIN_INTERVAL, self.average_interval * factor)

    def start(self, now: float, avg_interval: float = SessionConfig.AVERAGE_INTERVAL) -> None:
        self.average_interval = avg_interval
        self.is_running = True
        self.is_paused = False
        self.remaining_on_pause = None
        self._schedule(now, self.next_interval())

    def stop(self) -> None:
        self.is_running = False
        self.is_paused = False
        self.next_fire_time = None
        self.remaining_on_pause = None
        logger.info("Chime scheduler stopped")

    def update_interval(self, now: float, avg_interval: float) -> None:
        """Change the average and reschedule the next chime."""
        self.average_interval = avg_interval
        if self.is_running and not self.is_paused:
            self._schedule(now, self.next_interval())

    def pause(self, now: float) -> None:
        """Suspend, keeping the time left until the next chime."""
        if not self.is_running or self.is_paused:
            return
        self.is_paused = True
        if self.next_fire_time is not None:
            self.remaining_on_pause = max(0.0, self.next_fire_time - now)
        self.next_fire_time = None
        logger.info(f"Chime scheduler paused, {self.remaining_on_pause or 0:.1f}s remaining")

    def resume(self, now: float) -> None:
        if not self.is_running or not self.is_paused:
            return
        self.is_paused = False
        remaining = self.remaining_on_pause
        self.remaining_on_pause = None
        if remaining is not None and remaining > 0:
            self._schedule(now, remaining)
        else:
            self._schedule(now, self.next_interval())

    def poll(self, now: float) -> bool:
        """
        Returns:
            bool: True if a chime is due; the next one is then scheduled
        """
        if not self.is_running or self.is_paused or self.next_fire_time is None:
            return False
        if now < self.next_fire_time:
            return False
        self._schedule(now, self.next_interval())
        return True

    def _schedule(self, now: float, interval: float) -> None:
        self.next_fire_time = now + interval
        logger.info(f"Next chime in {interval:.1f}s")
