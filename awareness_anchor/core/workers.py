"""
Background worker thread for the response loop.

Sample producers (camera callbacks, pointer hooks) only enqueue into a
bounded channel. A single consumer thread drains the channel into the
controller and runs its tick at a fixed rate, so pipeline state is only
ever touched from one thread.
"""

import logging
import queue
import threading
import time
from typing import Callable, List, Optional, Tuple, Union

from awareness_anchor.config import ArbiterConfig, WorkerConfig
from awareness_anchor.core.types import InputSource, RawSample

logger = logging.getLogger(__name__)


# ==================== Sample Channel ====================

class SampleChannel:
    """
    Bounded FIFO between producers and the consumer.

    When full, the oldest sample is dropped: the freshest frames are the ones
    that matter for a gesture in progress.
    """

    def __init__(self, maxsize: int = WorkerConfig.SAMPLE_QUEUE_MAXSIZE):
        self.queue = queue.Queue(maxsize=maxsize)
        self.dropped = 0
        self._drop_lock = threading.Lock()

    def put(self, source: Union[InputSource, str], sample: RawSample) -> None:
        """
        Enqueue a sample without blocking.

        Args:
            source: Source the sample came from
            sample (RawSample): The sample
        """
        item = (InputSource(source), sample)
        while True:
            try:
                self.queue.put_nowait(item)
                return
            except queue.Full:
                with self._drop_lock:
                    try:
                        self.queue.get_nowait()
                        self.dropped += 1
                        logger.warning(f"Sample channel full, dropped oldest sample "
                                       f"({self.dropped} dropped so far)")
                    except queue.Empty:
                        pass

    def get(self, timeout: Optional[float] = None) -> Tuple[InputSource, RawSample]:
        """
        Raises:
            queue.Empty: If nothing arrived within ``timeout``
        """
        return self.queue.get(timeout=timeout)

    def drain(self) -> List[Tuple[InputSource, RawSample]]:
        """Take everything currently queued."""
        items = []
        while True:
            try:
                items.append(self.queue.get_nowait())
            except queue.Empty:
                return items

    def __len__(self) -> int:
        return self.queue.qsize()


# ==================== Input Worker ====================

class InputWorker(threading.Thread):
    """
    Single consumer of the sample channel.

    Delivers queued samples to the controller as they arrive and calls
    ``controller.tick`` every ``tick_interval`` seconds until stopped.
    """

    def __init__(self, controller, channel: SampleChannel, stop_event=None,
                 tick_interval: float = ArbiterConfig.TICK_INTERVAL,
                 clock: Callable[[], float] = time.time):
        """
        Initialize the input worker.

        Args:
            controller (ResponseController): Receives samples and ticks
            channel (SampleChannel): Channel to consume
            stop_event (threading.Event): Event to signal shutdown
            tick_interval (float): Seconds between ticks
            clock (callable): Time source for ticks; must match the sample timestamps
        """
        super().__init__(daemon=True, name="InputWorker")
        self.controller = controller
        self.channel = channel
        self.stop_event = stop_event or threading.Event()
        self.tick_interval = tick_interval
        self.clock = clock
        self.ticks = 0

        logger.info(f"InputWorker initialized (tick every {tick_interval * 1000:.0f}ms)")

    def run(self):
        """Main worker loop - drains samples and ticks the controller."""
        logger.info("InputWorker started")
        next_tick = self.clock()

        while not self.stop_event.is_set():
            wait = min(WorkerConfig.QUEUE_TIMEOUT, max(0.0, next_tick - self.clock()))
            try:
                source, sample = self.channel.get(timeout=wait)
                self._deliver(source, sample)
                for source, sample in self.channel.drain():
                    self._deliver(source, sample)
            except queue.Empty:
                pass

            now = self.clock()
            if now >= next_tick:
                try:
                    self.controller.tick(now)
                    self.ticks += 1
                except Exception as e:
                    logger.error(f"Error in controller tick: {e}", exc_info=True)
                next_tick += self.tick_interval
                if next_tick < now:
                    # Fell behind; skip missed ticks instead of bursting
                    next_tick = now + self.tick_interval

        logger.info("InputWorker stopped")

    def _deliver(self, source: InputSource, sample: RawSample) -> None:
        try:
            self.controller.push_sample(source, sample)
        except Exception as e:
            logger.error(f"Error processing {source} sample: {e}", exc_info=True)

    def stop(self):
        """Signal the worker to stop."""
        logger.info("Stopping InputWorker...")
        self.stop_event.set()

    def shutdown(self, timeout: float = WorkerConfig.THREAD_SHUTDOWN_TIMEOUT) -> bool:
        """
        Stop the worker and wait for the thread to exit.

        Args:
            timeout (float): Seconds to wait for the thread

        Returns:
            bool: True if the thread exited in time
        """
        self.stop()
        self.join(timeout=timeout)
        if self.is_alive():
            logger.warning(f"InputWorker did not exit within {timeout}s")
            return False
        return True
