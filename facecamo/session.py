"""
Capture session lifecycle.

A Session owns one capture device and one detector per run and moves
through IDLE -> STARTING -> DETECTING -> STOPPED:

- IDLE: nothing acquired (initial state, or after a failed start)
- STARTING: capture open, detector loading on the detection thread
- DETECTING: detector ready, detections flowing into the shared slot
- STOPPED: everything released; start() may be called again

render_cycle() is the synchronous per-frame call made by the host loop.
"""

import logging
import threading
import numpy as np
from enum import Enum
from typing import Callable, Optional
from numpy.typing import NDArray

from .capture import AcquisitionError, FrameSource
from .compositor import FrameCompositor, IDLE_MESSAGE, LOADING_MESSAGE
from .detection import DetectionFeed, DetectionSlot, DetectorUnavailableError, LandmarkDetector

logger = logging.getLogger(__name__)


WAITING_MESSAGE = "Waiting for camera..."


class SessionState(Enum):
    IDLE = "idle"
    STARTING = "starting"
    DETECTING = "detecting"
    STOPPED = "stopped"


class Session:
    """
    Start/stop control plus the per-frame render cycle.

    Capture devices and detectors are created fresh for every start()
    through the given factories, so a run never shares them with another.

    Args:
        capture_factory: Returns a new, unopened FrameSource
        detector_factory: Returns a new, unloaded LandmarkDetector
        compositor: Compositor used to draw output frames
        retry_on_error: Passed to the DetectionFeed
        retry_delay: Passed to the DetectionFeed
    """

    def __init__(
        self,
        capture_factory: Callable[[], FrameSource],
        detector_factory: Callable[[], LandmarkDetector],
        compositor: Optional[FrameCompositor] = None,
        retry_on_error: bool = True,
        retry_delay: float = 0.1
    ):
        self.capture_factory = capture_factory
        self.detector_factory = detector_factory
        self.compositor = compositor or FrameCompositor()
        self.retry_on_error = retry_on_error
        self.retry_delay = retry_delay

        self.slot = DetectionSlot()
        self.last_error: Optional[Exception] = None

        self._lock = threading.RLock()
        # Serializes capture reads with releases; never held with _lock
        self._capture_lock = threading.Lock()
        self._state = SessionState.IDLE
        self._run_id = 0
        self._capture: Optional[FrameSource] = None
        self._detector: Optional[LandmarkDetector] = None
        self._feed: Optional[DetectionFeed] = None

        self._latest_frame: Optional[NDArray[np.uint8]] = None
        self._frame_seq = 0
        self._detected_seq = 0
        self._last_output: Optional[NDArray[np.uint8]] = None

    def __enter__(self) -> "Session":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()

    @property
    def state(self) -> SessionState:
        with self._lock:
            return self._state

    @property
    def is_active(self) -> bool:
        return self.state in (SessionState.STARTING, SessionState.DETECTING)

    @property
    def detector(self) -> Optional[LandmarkDetector]:
        with self._lock:
            return self._detector

    @property
    def capture_exhausted(self) -> bool:
        """True once a file-backed capture has run out of frames."""
        with self._lock:
            return self._capture is not None and bool(self._capture.exhausted)

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def start(self) -> None:
        """
        Acquire the capture device and begin loading the detector.

        Does nothing if a run is already active.

        Raises:
            AcquisitionError: If the capture device cannot be opened
            DetectorUnavailableError: If the detector cannot be created

        Any error from detector_factory releases the capture and leaves the
        session IDLE before propagating.
        """
        with self._lock:
            if self._state not in (SessionState.IDLE, SessionState.STOPPED):
                logger.warning("start() ignored in state %s", self._state.value)
                return

            self.last_error = None
            capture = self.capture_factory()
            try:
                capture.open()
            except AcquisitionError as e:
                capture.release()
                self._fail(e)
                raise

            try:
                detector = self.detector_factory()
            except Exception as e:
                capture.release()
                self._fail(e)
                raise

            self._run_id += 1
            run_id = self._run_id

            self._capture = capture
            self._detector = detector
            self._latest_frame = None
            self._frame_seq = 0
            self._detected_seq = 0
            self._last_output = None
            self.slot.clear()
            self.compositor.reset()

            feed = DetectionFeed(
                detector,
                self._next_detection_frame,
                self.slot,
                on_ready=lambda: self._on_detector_ready(run_id),
                on_error=lambda error: self._on_detector_error(run_id, error),
                retry_on_error=self.retry_on_error,
                retry_delay=self.retry_delay,
            )
            self._feed = feed
            self._state = SessionState.STARTING
            logger.info("Session started, loading detector")

        feed.start()

    def stop(self) -> None:
        """Release everything and move to STOPPED. Safe in any state."""
        with self._lock:
            # Invalidate callbacks from the run being stopped
            self._run_id += 1

            feed = self._feed
            capture = self._capture
            self._feed = None
            self._capture = None
            self._detector = None
            self._latest_frame = None
            self._last_output = None

            # Stop publishing before clearing the slot
            if feed is not None:
                feed.stop(wait=False)
            self.slot.clear()

            previous = self._state
            self._state = SessionState.STOPPED
            stopped_run = self._run_id

        if capture is not None:
            self._release_capture(capture)

        # Joined outside the lock: the feed thread's callbacks take it
        if feed is not None:
            feed.stop(wait=True)
            with self._lock:
                # A detection finished before the thread saw the stop flag
                if self._run_id == stopped_run:
                    self.slot.clear()

        logger.info("Session stopped (was %s)", previous.value)

    def toggle(self) -> None:
        """Start if idle or stopped, otherwise stop."""
        if self.is_active:
            self.stop()
        else:
            self.start()

    def _fail(self, error: Exception) -> None:
        self.last_error = error
        self._state = SessionState.IDLE
        logger.error("Session failed to start: %s", error)

    def _on_detector_ready(self, run_id: int) -> None:
        with self._lock:
            if run_id != self._run_id or self._state is not SessionState.STARTING:
                return
            self._state = SessionState.DETECTING
            logger.info("Detector ready, detecting faces")

    def _on_detector_error(self, run_id: int, error: Exception) -> None:
        with self._lock:
            if run_id != self._run_id:
                return

            capture = self._capture
            self._capture = None
            self._detector = None
            self._feed = None
            self._latest_frame = None
            self._fail(error)

        if capture is not None:
            self._release_capture(capture)

    def _release_capture(self, capture: FrameSource) -> None:
        with self._capture_lock:
            capture.release()

    # -------------------------------------------------------------------------
    # Per-frame
    # -------------------------------------------------------------------------

    def _next_detection_frame(self) -> Optional[NDArray[np.uint8]]:
        """Newest frame not yet handed to the detector, or None."""
        with self._lock:
            if self._latest_frame is None or self._detected_seq == self._frame_seq:
                return None
            self._detected_seq = self._frame_seq
            return self._latest_frame

    def render_cycle(self) -> NDArray[np.uint8]:
        """
        Run one draw cycle.

        Returns:
            The output frame: a placeholder outside an active run, raw video
            with a loading banner while STARTING, and composed video while
            DETECTING
        """
        with self._lock:
            state = self._state
            capture = self._capture
            run_id = self._run_id

            if state not in (SessionState.STARTING, SessionState.DETECTING) or capture is None:
                return self._idle_placeholder()

        # Camera reads can block; the detection thread must not wait on them
        with self._capture_lock:
            frame = capture.read()

        with self._lock:
            state = self._state
            if run_id != self._run_id or state not in (SessionState.STARTING, SessionState.DETECTING):
                return self._idle_placeholder()

            if frame is None:
                if self._last_output is not None:
                    return self._last_output
                return self.compositor.render_placeholder(WAITING_MESSAGE)

            self._latest_frame = frame
            self._frame_seq += 1

        if state is SessionState.STARTING:
            output = self.compositor.draw_banner(frame.copy(), LOADING_MESSAGE)
        else:
            output = self.compositor.compose(frame, self.slot.read())

        with self._lock:
            if run_id == self._run_id:
                self._last_output = output
        return output

    def _idle_placeholder(self) -> NDArray[np.uint8]:
        error = str(self.last_error) if self.last_error is not None else None
        return self.compositor.render_placeholder(IDLE_MESSAGE, error=error)
