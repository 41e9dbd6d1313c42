"""
Time-in-state estimation from the response history.

Every chime is a sample of whether the user was already aware (Present) or
not (Returned, Missed). The share of Present outcomes estimates the fraction
of time spent aware. Consecutive outcomes are correlated, so the confidence
interval uses an effective sample size corrected by the lag-1
autocorrelation instead of the raw count.
"""

import logging
from dataclasses import dataclass
from typing import Iterable, Optional, Sequence, Tuple

import numpy as np
from scipy import stats

from awareness_anchor.config import StatsConfig
from awareness_anchor.core.types import Outcome

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TimeInStateEstimate:
    """
    Result of one estimation run.

    Callers must check ``has_enough_data`` before showing the interval; with
    fewer than ``StatsConfig.MIN_SAMPLES`` events the numbers are
    structurally valid but statistically meaningless.
    """

    point_estimate: float
    ci_low: float
    ci_high: float
    effective_n: float
    raw_n: int
    rho: float
    has_enough_data: bool

    @property
    def ci(self) -> Tuple[float, float]:
        return self.ci_low, self.ci_high

    @property
    def ci_width(self) -> float:
        return self.ci_high - self.ci_low


def z_for_level(level: float = StatsConfig.CONFIDENCE_LEVEL) -> float:
    """Two-sided normal quantile, 1.96 for 95%."""
    return float(stats.norm.ppf(1.0 - (1.0 - level) / 2.0))


def encode_outcomes(outcomes: Iterable) -> np.ndarray:
    """
    Binary-encode outcomes: Present is 1, Returned and Missed are 0.

    Absent outcomes carry no information about awareness and are dropped.
    Plain strings ("present", ...) are accepted.
    """
    encoded = []
    for outcome in outcomes:
        outcome = Outcome(outcome)
        if outcome is Outcome.ABSENT:
            continue
        encoded.append(1.0 if outcome is Outcome.PRESENT else 0.0)
    return np.asarray(encoded, dtype=float)


def lag1_autocorrelation(x: Sequence[float]) -> float:
    """
    Lag-1 autocorrelation of a sequence, clamped to [-1, 1].

    Returns 0 for fewer than three values and for constant sequences, where
    the autocorrelation is undefined.
    """
    x = np.asarray(x, dtype=float)
    n = x.size
    if n < 3:
        return 0.0

    deviations = x - x.mean()
    variance = float(np.sum(deviations ** 2)) / (n - 1)
    if variance <= 0.0:
        return 0.0

    autocovariance = float(np.sum(deviations[:-1] * deviations[1:])) / (n - 1)
    return float(np.clip(autocovariance / variance, -1.0, 1.0))


def effective_sample_size(n: int, rho: float) -> float:
    """
    Sample size corrected for lag-1 autocorrelation.

    Sticky (positively correlated) sequences carry less independent
    information than their length suggests.
    """
    if n <= 0:
        return 0.0
    if rho <= -1.0:
        return float(n)
    if rho >= 1.0:
        return 1.0
    return max(1.0, n * (1.0 - rho) / (1.0 + rho))


def wilson_interval(p: float, n_eff: float, z: Optional[float] = None) -> Tuple[float, float]:
    """
    Wilson score interval for a proportion.

    Args:
        p (float): Observed proportion
        n_eff (float): Trial count, effective sample size for correlated data
        z (float): Normal quantile. If None, uses the configured confidence level.

    Returns:
        tuple: (low, high), clamped to [0, 1]
    """
    if n_eff <= 0:
        return 0.0, 1.0
    if z is None:
        z = z_for_level()

    z2 = z * z
    denom = 1.0 + z2 / n_eff
    center = (p + z2 / (2.0 * n_eff)) / denom
    spread = z * np.sqrt(p * (1.0 - p) / n_eff + z2 / (4.0 * n_eff * n_eff)) / denom
    return max(0.0, float(center - spread)), min(1.0, float(center + spread))


def estimate(outcomes: Iterable, level: float = StatsConfig.CONFIDENCE_LEVEL) -> TimeInStateEstimate:
    """
    Estimate the fraction of time spent aware from ordered outcomes.

    Args:
        outcomes: Outcomes in chronological order
        level (float): Confidence level of the interval

    Returns:
        TimeInStateEstimate: Point estimate, interval and diagnostics
    """
    if outcomes is None:
        raise TypeError("outcomes must be a sequence, not None")

    x = encode_outcomes(list(outcomes))
    raw_n = int(x.size)
    if raw_n == 0:
        return TimeInStateEstimate(0.0, 0.0, 1.0, 0.0, 0, 0.0, False)

    p = float(x.mean())
    rho = lag1_autocorrelation(x)
    n_eff = effective_sample_size(raw_n, rho)
    low, high = wilson_interval(p, n_eff, z_for_level(level))

    logger.debug(f"Estimate: p={p:.3f}, rho={rho:.3f}, n={raw_n}, n_eff={n_eff:.2f}, "
                 f"ci=[{low:.3f}, {high:.3f}]")

    return TimeInStateEstimate(
        point_estimate=p,
        ci_low=low,
        ci_high=high,
        effective_n=n_eff,
        raw_n=raw_n,
        rho=rho,
        has_enough_data=raw_n >= StatsConfig.MIN_SAMPLES,
    )


def estimate_events(events: Sequence, level: float = StatsConfig.CONFIDENCE_LEVEL) -> TimeInStateEstimate:
    """
    Estimate from ``ChimeEvent`` records.

    The events are copied before computing, so a history appended to
    concurrently cannot change the result halfway.

    Raises:
        TypeError: If ``events`` is None
        ValueError: If the events are not in ascending timestamp order
    """
    if events is None:
        raise TypeError("events must be a sequence, not None")

    events = list(events)
    timestamps = np.asarray([event.timestamp for event in events], dtype=float)
    if timestamps.size > 1 and np.any(np.diff(timestamps) < 0):
        raise ValueError("events must be ordered by ascending timestamp")

    return estimate([event.outcome for event in events], level)


def practice_duration(sessions: Iterable, start: float, end: float) -> float:
    """
    Total seconds of closed sessions overlapping ``[start, end)``.

    Open sessions are not counted.
    """
    total = 0.0
    for session in sessions:
        if session.end_time is None:
            continue
        if session.start_time < end and session.end_time > start:
            total += session.end_time - session.start_time
    return total
