"""
Tests for the detection slot, scripted detector, and background feed.
"""

import threading
import time

import numpy as np
import pytest

from facecamo.detection import (
    DetectionFeed,
    DetectionSlot,
    DetectorUnavailableError,
    ScriptedDetector,
)

FRAME = np.zeros((48, 64, 3), dtype=np.uint8)


def wait_until(predicate, timeout=2.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.005)
    return predicate()


class FailingLoadDetector:
    """Detector whose load() always fails."""

    def __init__(self, error=None):
        self.error = error or OSError("model file missing")
        self.closed = False

    def load(self):
        raise self.error

    def detect(self, frame):
        raise AssertionError("detect() called without a model")

    def close(self):
        self.closed = True


class FlakyDetector:
    """Fails the first `failures` detect() calls, then returns one face."""

    def __init__(self, face, failures=1):
        self.face = face
        self.failures = failures
        self.calls = 0
        self.closed = False

    def load(self):
        pass

    def detect(self, frame):
        self.calls += 1
        if self.calls <= self.failures:
            raise RuntimeError("inference failed")
        return [self.face]

    def close(self):
        self.closed = True


class BlockingDetector:
    """detect() blocks until released, so a stop can land mid-detection."""

    def __init__(self, face):
        self.face = face
        self.entered = threading.Event()
        self.release = threading.Event()
        self.closed = False

    def load(self):
        pass

    def detect(self, frame):
        self.entered.set()
        self.release.wait(2.0)
        return [self.face]

    def close(self):
        self.closed = True


class TestDetectionSlot:
    """Test the shared detection slot."""

    def test_starts_empty(self):
        slot = DetectionSlot()
        assert slot.read() == ()
        assert slot.version == 0

    def test_publish_replaces_wholesale(self, make_face):
        slot = DetectionSlot()
        slot.publish([make_face(100, 100), make_face(300, 100)])
        slot.publish([make_face(200, 200)])
        assert len(slot.read()) == 1
        assert slot.version == 2

    def test_published_list_is_decoupled(self, make_face):
        slot = DetectionSlot()
        detections = [make_face(100, 100)]
        slot.publish(detections)
        detections.append(make_face(300, 100))
        assert len(slot.read()) == 1

    def test_clear(self, make_face):
        slot = DetectionSlot()
        slot.publish([make_face(100, 100)])
        slot.clear()
        assert slot.read() == ()
        assert slot.version == 2


class TestScriptedDetector:
    """Test replaying fixed detections."""

    def test_loops(self, make_face):
        frames = [[make_face(100, 100)], []]
        detector = ScriptedDetector(frames)
        results = [len(detector.detect(FRAME)) for _ in range(5)]
        assert results == [1, 0, 1, 0, 1]
        assert detector.calls == 5

    def test_holds_last_frame_without_loop(self, make_face):
        frames = [[], [make_face(100, 100), make_face(300, 100)]]
        detector = ScriptedDetector(frames, loop=False)
        results = [len(detector.detect(FRAME)) for _ in range(4)]
        assert results == [0, 2, 2, 2]

    def test_load_close(self, make_face):
        detector = ScriptedDetector([[make_face(100, 100)]])
        detector.load()
        assert detector.loaded
        detector.close()
        assert not detector.loaded

    def test_empty_script_raises(self):
        with pytest.raises(ValueError):
            ScriptedDetector([])

    def test_from_json(self, tmp_path, make_face):
        import json
        path = tmp_path / "replay.json"
        path.write_text(json.dumps({
            "source": "landmarks68",
            "frames": [[make_face(100, 100).tolist()]],
        }))
        detector = ScriptedDetector.from_json(path, loop=False)
        assert len(detector.detect(FRAME)) == 1
        assert detector.loop is False


class TestDetectionFeed:
    """Test the background detection loop."""

    def test_publishes_and_signals_ready(self, make_face):
        slot = DetectionSlot()
        ready = threading.Event()
        detector = ScriptedDetector([[make_face(100, 100)]])
        feed = DetectionFeed(detector, lambda: FRAME, slot, on_ready=ready.set)

        feed.start()
        try:
            assert ready.wait(2.0)
            assert wait_until(lambda: len(slot.read()) == 1)
            assert feed.running
        finally:
            feed.stop()

        assert not feed.running
        assert feed.cycles >= 1
        assert not detector.loaded

    def test_waits_for_frames(self, make_face):
        slot = DetectionSlot()
        detector = ScriptedDetector([[make_face(100, 100)]])
        feed = DetectionFeed(detector, lambda: None, slot)
        feed.start()
        time.sleep(0.05)
        feed.stop()
        assert detector.calls == 0
        assert slot.version == 0

    def test_start_twice_raises(self, make_face):
        feed = DetectionFeed(ScriptedDetector([[]]), lambda: None, DetectionSlot())
        feed.start()
        try:
            with pytest.raises(RuntimeError):
                feed.start()
        finally:
            feed.stop()

    def test_load_failure_reported(self):
        errors = []
        detector = FailingLoadDetector()
        feed = DetectionFeed(detector, lambda: FRAME, DetectionSlot(), on_error=errors.append)
        feed.start()
        assert wait_until(lambda: len(errors) == 1)
        assert isinstance(errors[0], DetectorUnavailableError)
        assert "model file missing" in str(errors[0])
        assert wait_until(lambda: not feed.running)
        assert detector.closed

    def test_unavailable_error_passed_through(self):
        errors = []
        original = DetectorUnavailableError("no mediapipe")
        feed = DetectionFeed(
            FailingLoadDetector(original), lambda: FRAME, DetectionSlot(), on_error=errors.append
        )
        feed.start()
        assert wait_until(lambda: len(errors) == 1)
        assert errors[0] is original

    def test_retries_after_failed_cycle(self, make_face):
        slot = DetectionSlot()
        detector = FlakyDetector(make_face(100, 100), failures=2)
        feed = DetectionFeed(detector, lambda: FRAME, slot, retry_delay=0.01)
        feed.start()
        try:
            assert wait_until(lambda: len(slot.read()) == 1)
        finally:
            feed.stop()
        assert feed.failures == 2
        assert detector.closed

    def test_no_retry_ends_loop(self, make_face):
        slot = DetectionSlot()
        detector = FlakyDetector(make_face(100, 100), failures=1)
        feed = DetectionFeed(detector, lambda: FRAME, slot, retry_on_error=False)
        feed.start()
        assert wait_until(lambda: not feed.running)
        assert feed.failures == 1
        assert detector.calls == 1
        assert slot.read() == ()
        assert detector.closed

    def test_result_after_stop_discarded(self, make_face):
        slot = DetectionSlot()
        detector = BlockingDetector(make_face(100, 100))
        feed = DetectionFeed(detector, lambda: FRAME, slot)
        feed.start()
        assert detector.entered.wait(2.0)

        feed.stop(wait=False)
        detector.release.set()
        assert wait_until(lambda: not feed.running)

        assert slot.read() == ()
        assert feed.discarded == 1
        assert detector.closed
