"""
Awareness Anchor - command-line entry point.

Replays recorded head pose and pointer samples through the response loop on
a simulated clock, and prints statistics from a saved event history.
"""

import json
import logging
import os
import signal
import threading
import time

from awareness_anchor.args_parser import get_args
from awareness_anchor.config import ArbiterConfig, DetectionSettings, load_settings
from awareness_anchor.core.controller import ResponseController
from awareness_anchor.core.types import InputSource, RawSample
from awareness_anchor.stats.history import EventHistory
from awareness_anchor.stats.summary import StatsPeriod, summarize

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def load_samples(filename):
    """
    Load a JSON-lines sample recording.

    Each line is ``{"source": "head"|"pointer", "t": seconds,
    "channels": [a, b], "present": bool}``.

    Args:
        filename (str): Path to the recording

    Returns:
        list: (source, RawSample) tuples ordered by time
    """
    samples = []
    with open(filename, "r") as f:
        for line_no, line in enumerate(f, start=1):
            line = line.strip()
            if not line:
                continue
            try:
                record = json.loads(line)
                source = InputSource(record["source"])
                sample = RawSample(
                    channels=tuple(float(c) for c in record.get("channels", (0.0, 0.0))),
                    present=bool(record.get("present", True)),
                    timestamp=float(record["t"]),
                )
            except (KeyError, ValueError) as e:
                logger.warning(f"Skipping line {line_no} of {filename}: {e}")
                continue
            samples.append((source, sample))

    samples.sort(key=lambda item: item[1].timestamp)
    logger.info(f"Loaded {len(samples)} samples from {filename}")
    return samples


def setup_signal_handler(stop_event):
    """
    Setup signal handler for graceful shutdown.

    Args:
        stop_event (threading.Event): Event to signal on interrupt
    """
    def signal_handler(sig, frame):
        logger.info("Signal received, shutting down...")
        stop_event.set()

    signal.signal(signal.SIGINT, signal_handler)


def run_replay(args, stop_event):
    """
    Feed a recording through the controller, ticking on the samples' clock.

    Returns:
        EventHistory: History including the replayed events
    """
    settings = load_settings(args.settings) if args.settings else DetectionSettings()

    if args.history and os.path.exists(args.history):
        history = EventHistory.load(args.history)
    else:
        history = EventHistory()

    samples = load_samples(args.samples)
    chimes = sorted(args.chime_at)
    if not samples and not chimes:
        logger.warning("Nothing to replay")
        return history

    tick = args.tick or ArbiterConfig.TICK_INTERVAL
    times = [sample.timestamp for _, sample in samples] + chimes
    start, end = min(times), max(times) + settings.response_window

    controller = ResponseController(settings, history)
    # Explicit chime times replace the random schedule
    controller.start(start, schedule=not chimes)

    index = 0
    now = start
    while now <= end and not stop_event.is_set():
        while chimes and chimes[0] <= now:
            controller.chime(chimes.pop(0))
        while index < len(samples) and samples[index][1].timestamp <= now:
            source, sample = samples[index]
            controller.push_sample(source, sample)
            index += 1

        frame = controller.tick(now)
        if frame.trigger_edge is not None:
            logger.info(f"t={now:.3f}: trigger {frame.trigger_edge} from {frame.active_source}")
        now += tick

    controller.stop(min(now, end))

    if args.history:
        history.save(args.history)
    return history


def print_summary(summary, period):
    estimate = summary.estimate
    print(f"Period: {period.value}")
    print(f"  Present:  {summary.present_count}")
    print(f"  Returned: {summary.returned_count}")
    print(f"  Missed:   {summary.missed_count}")
    print(f"  Absent:   {summary.absent_count}")
    print(f"  Awareness ratio: {summary.awareness_ratio:.0%}")
    print(f"  Quality ratio:   {summary.quality_ratio:.0%}")
    print(f"  Average response: {summary.average_response_time_ms} ms")
    print(f"  Practice time:    {summary.practice_seconds / 60:.1f} min")
    if estimate.has_enough_data:
        print(f"  Time in awareness: {estimate.point_estimate:.0%} "
              f"(95% CI {estimate.ci_low:.0%} - {estimate.ci_high:.0%}, "
              f"n={estimate.raw_n}, effective n={estimate.effective_n:.1f})")
    else:
        print(f"  Time in awareness: not enough data ({estimate.raw_n} responses)")


# ==================== Main Entry Point ====================

if __name__ == "__main__":
    args = get_args()
    if args.debug:
        logging.getLogger().setLevel(logging.DEBUG)

    stop_event = threading.Event()
    setup_signal_handler(stop_event)

    try:
        if args.command == "replay":
            history = run_replay(args, stop_event)
            events = history.snapshot()
            if events:
                now = max(e.timestamp for e in events)
                print_summary(summarize(history, StatsPeriod.ALL_TIME, now), StatsPeriod.ALL_TIME)
        elif args.command == "stats":
            history = EventHistory.load(args.history)
            print_summary(summarize(history, args.period, time.time()), args.period)
    except KeyboardInterrupt:
        logger.info("KeyboardInterrupt received, shutting down...")
        stop_event.set()
