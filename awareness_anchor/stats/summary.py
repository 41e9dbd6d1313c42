"""
Period statistics over the event history.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Optional, Tuple

from awareness_anchor.core.types import Outcome
from awareness_anchor.stats.estimator import TimeInStateEstimate, estimate_events, practice_duration
from awareness_anchor.stats.history import EventHistory

logger = logging.getLogger(__name__)


class StatsPeriod(Enum):
    """
    Reporting periods, all ending at the end of the current day.
    """

    TODAY = "today"
    WEEK = "week"
    MONTH = "month"
    ALL_TIME = "all"

    def __str__(self) -> str:
        return self.value

    def date_range(self, now: float) -> Tuple[float, float]:
        """
        Args:
            now (float): Current time in seconds since the epoch

        Returns:
            tuple: (start, end) in seconds since the epoch, local calendar days
        """
        current = datetime.fromtimestamp(now)
        start_of_day = current.replace(hour=0, minute=0, second=0, microsecond=0)
        end = (start_of_day + timedelta(days=1)).timestamp()

        if self is StatsPeriod.TODAY:
            return start_of_day.timestamp(), end
        if self is StatsPeriod.WEEK:
            return (current - timedelta(days=7)).timestamp(), end
        if self is StatsPeriod.MONTH:
            return _one_month_before(current).timestamp(), end
        return float("-inf"), end


def _one_month_before(moment: datetime) -> datetime:
    year, month = (moment.year, moment.month - 1) if moment.month > 1 else (moment.year - 1, 12)
    day = moment.day
    while True:
        try:
            return moment.replace(year=year, month=month, day=day)
        except ValueError:
            # e.g. March 31st -> February 28th
            day -= 1


@dataclass(frozen=True)
class StatsSummary:
    """Counts and ratios for one period."""

    present_count: int
    returned_count: int
    missed_count: int
    absent_count: int
    average_response_time_ms: int
    practice_seconds: float
    estimate: TimeInStateEstimate

    @property
    def total_chimes(self) -> int:
        """Windows that count toward statistics; absent windows do not."""
        return self.present_count + self.returned_count + self.missed_count

    @property
    def awareness_ratio(self) -> float:
        """Share of chimes that got any response."""
        if self.total_chimes == 0:
            return 0.0
        return (self.present_count + self.returned_count) / self.total_chimes

    @property
    def quality_ratio(self) -> float:
        """Share of responses where the user was already present."""
        responded = self.present_count + self.returned_count
        if responded == 0:
            return 0.0
        return self.present_count / responded


def summarize(history: EventHistory, period: StatsPeriod, now: float,
              level: Optional[float] = None) -> StatsSummary:
    """
    Build the statistics for one period from a history snapshot.
    """
    start, end = period.date_range(now)
    events = history.query(start, end)

    counts = {outcome: 0 for outcome in Outcome}
    for event in events:
        counts[event.outcome] += 1

    latencies = [e.response_latency_ms for e in events if e.response_latency_ms is not None]
    average_latency = sum(latencies) // len(latencies) if latencies else 0

    result = estimate_events(events) if level is None else estimate_events(events, level)

    logger.info(f"Stats for {period.value}: {len(events)} events "
                f"(present={counts[Outcome.PRESENT]}, returned={counts[Outcome.RETURNED]}, "
                f"missed={counts[Outcome.MISSED]}, absent={counts[Outcome.ABSENT]})")

    return StatsSummary(
        present_count=counts[Outcome.PRESENT],
        returned_count=counts[Outcome.RETURNED],
        missed_count=counts[Outcome.MISSED],
        absent_count=counts[Outcome.ABSENT],
        average_response_time_ms=average_latency,
        practice_seconds=practice_duration(history.sessions(limit=None), start, end),
        estimate=result,
    )
