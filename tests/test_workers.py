"""Tests for the sample channel and the input worker thread."""

import threading
import time

import pytest

from awareness_anchor.config import WorkerConfig
from awareness_anchor.core.types import InputSource, RawSample
from awareness_anchor.core.workers import InputWorker, SampleChannel


class RecordingController:
    """Collects what the worker delivers; optionally fails on the first sample."""

    def __init__(self, fail_first=False):
        self.samples = []
        self.ticks = []
        self.fail_first = fail_first
        self.lock = threading.Lock()

    def push_sample(self, source, sample):
        with self.lock:
            if self.fail_first:
                self.fail_first = False
                raise RuntimeError("bad sample")
            self.samples.append((source, sample))

    def tick(self, now):
        with self.lock:
            self.ticks.append(now)


def wait_for(condition, timeout=2.0):
    deadline = time.time() + timeout
    while time.time() < deadline:
        if condition():
            return True
        time.sleep(0.005)
    return False


class TestSampleChannel:
    def test_fifo(self):
        channel = SampleChannel(maxsize=4)
        channel.put(InputSource.HEAD, RawSample((0.0, 0.0), True, 1.0))
        channel.put("pointer", RawSample((1.0, 1.0), True, 2.0))

        items = channel.drain()
        assert [source for source, _ in items] == [InputSource.HEAD, InputSource.POINTER]
        assert len(channel) == 0

    def test_full_channel_drops_oldest(self):
        channel = SampleChannel(maxsize=2)
        for t in (1.0, 2.0, 3.0):
            channel.put(InputSource.HEAD, RawSample((0.0, 0.0), True, t))

        assert channel.dropped == 1
        assert [sample.timestamp for _, sample in channel.drain()] == [2.0, 3.0]

    def test_unknown_source_rejected(self):
        with pytest.raises(ValueError):
            SampleChannel().put("keyboard", RawSample((0.0, 0.0), True, 0.0))

    def test_default_size(self):
        assert SampleChannel().queue.maxsize == WorkerConfig.SAMPLE_QUEUE_MAXSIZE


class TestInputWorker:
    def test_delivers_samples_and_ticks(self):
        controller = RecordingController()
        channel = SampleChannel()
        worker = InputWorker(controller, channel, tick_interval=0.01)
        worker.start()
        try:
            channel.put(InputSource.HEAD, RawSample((0.1, 0.2), True, 1.0))
            assert wait_for(lambda: len(controller.samples) == 1)
            assert wait_for(lambda: len(controller.ticks) >= 3)
        finally:
            exited = worker.shutdown()

        assert exited
        assert not worker.is_alive()
        assert controller.samples[0][0] is InputSource.HEAD

    def test_bad_sample_does_not_kill_worker(self):
        controller = RecordingController(fail_first=True)
        channel = SampleChannel()
        stop_event = threading.Event()
        worker = InputWorker(controller, channel, stop_event=stop_event, tick_interval=0.01)
        worker.start()
        try:
            channel.put(InputSource.HEAD, RawSample((0.0, 0.0), True, 1.0))
            channel.put(InputSource.POINTER, RawSample((5.0, 5.0), True, 2.0))
            assert wait_for(lambda: len(controller.samples) == 1)
        finally:
            stop_event.set()
            worker.join(timeout=WorkerConfig.THREAD_SHUTDOWN_TIMEOUT)

        assert controller.samples[0][0] is InputSource.POINTER
        assert not worker.is_alive()
