"""
Landmark detection: detector backends and the background detection feed.

The detection feed runs the detector on its own thread, independent of the
render loop. Each finished detection replaces the contents of a shared
DetectionSlot wholesale; the render loop reads whatever the slot holds at
draw time and never waits for the detector.

Backends:
- MediaPipeLandmarkDetector: live MediaPipe FaceLandmarker (optional
  ``mediapipe`` dependency, imported on load)
- ScriptedDetector: replays fixed detection sequences (from memory or a
  landmark JSON file)
"""

import logging
import threading
import time
import urllib.request
import cv2
import numpy as np
from pathlib import Path
from typing import Callable, List, Optional, Protocol, Sequence, Tuple, Union
from numpy.typing import NDArray

from .landmarks import Detection, LandmarkIngest

logger = logging.getLogger(__name__)


class DetectorUnavailableError(RuntimeError):
    """The landmark model could not be loaded."""


class LandmarkDetector(Protocol):
    """Interface for landmark detectors."""

    def load(self) -> None:
        """Load the model. Raises DetectorUnavailableError on failure."""
        ...

    def detect(self, frame: NDArray[np.uint8]) -> List[Detection]:
        """Detect faces in a BGR frame, returning one Detection per face."""
        ...

    def close(self) -> None:
        """Free model resources."""
        ...


# =============================================================================
# Shared slot
# =============================================================================

class DetectionSlot:
    """
    Holds the latest detections.

    The content is always a complete tuple: publish() swaps the whole tuple
    in, read() returns whichever tuple is current. Last writer wins.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._detections: Tuple[Detection, ...] = ()
        self._version = 0

    def publish(self, detections: Sequence[Detection]) -> None:
        detections = tuple(detections)
        with self._lock:
            self._detections = detections
            self._version += 1

    def read(self) -> Tuple[Detection, ...]:
        with self._lock:
            return self._detections

    def clear(self) -> None:
        with self._lock:
            self._detections = ()
            self._version += 1

    @property
    def version(self) -> int:
        """Incremented on every publish() or clear()."""
        with self._lock:
            return self._version


# =============================================================================
# Detection feed
# =============================================================================

class DetectionFeed:
    """
    Background detection loop.

    Loads the detector, signals readiness, then repeatedly pulls the newest
    frame, runs detection and publishes the result to the slot. Stopping is
    cooperative: stop() sets a flag that the loop checks between steps, and
    a detection that finishes after stop() is discarded instead of
    published. The detector is closed by the loop thread on exit.

    A failed detection cycle is logged. With ``retry_on_error`` the loop
    waits ``retry_delay`` seconds and continues; without it the loop ends
    and detections stop updating until the next session.

    Args:
        detector: Detector to run (not yet loaded)
        frame_provider: Returns the newest frame, or None if there is no new
            frame since the last call
        slot: Where results are published
        on_ready: Called on the feed thread after the detector loads
        on_error: Called on the feed thread with the exception if the
            detector fails to load
        retry_on_error: Keep running after a failed detection cycle
        retry_delay: Seconds to wait before retrying a failed cycle
        idle_delay: Seconds to wait when no new frame is available
    """

    def __init__(
        self,
        detector: LandmarkDetector,
        frame_provider: Callable[[], Optional[NDArray[np.uint8]]],
        slot: DetectionSlot,
        on_ready: Optional[Callable[[], None]] = None,
        on_error: Optional[Callable[[Exception], None]] = None,
        retry_on_error: bool = True,
        retry_delay: float = 0.1,
        idle_delay: float = 0.005
    ):
        self.detector = detector
        self.frame_provider = frame_provider
        self.slot = slot
        self.on_ready = on_ready
        self.on_error = on_error
        self.retry_on_error = retry_on_error
        self.retry_delay = retry_delay
        self.idle_delay = idle_delay

        self.cycles = 0
        self.failures = 0
        self.discarded = 0

        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    @property
    def stopped(self) -> bool:
        return self._stop_event.is_set()

    def start(self) -> None:
        if self._thread is not None:
            raise RuntimeError("DetectionFeed can only be started once")

        self._thread = threading.Thread(
            target=self._run, name="facecamo-detection", daemon=True
        )
        self._thread.start()

    def stop(self, wait: bool = True, timeout: Optional[float] = 2.0) -> None:
        """
        Ask the loop to stop.

        Args:
            wait: Block until the loop thread exits (or timeout elapses)
            timeout: Seconds to wait for the thread
        """
        self._stop_event.set()

        thread = self._thread
        if wait and thread is not None and thread is not threading.current_thread():
            thread.join(timeout)
            if thread.is_alive():
                logger.warning("Detection thread did not exit within %.1fs", timeout)

    def _run(self) -> None:
        try:
            self.detector.load()
        except Exception as e:
            if not isinstance(e, DetectorUnavailableError):
                e = DetectorUnavailableError(f"Could not load landmark detector: {e}")
            logger.error("Landmark detector unavailable: %s", e)
            self._close_detector()
            if self.on_error is not None:
                self.on_error(e)
            return

        try:
            if self._stop_event.is_set():
                return

            logger.info("Landmark detector ready")
            if self.on_ready is not None:
                self.on_ready()

            self._loop()
        finally:
            self._close_detector()

    def _loop(self) -> None:
        while not self._stop_event.is_set():
            frame = self.frame_provider()
            if frame is None:
                self._stop_event.wait(self.idle_delay)
                continue

            try:
                detections = self.detector.detect(frame)
            except Exception:
                self.failures += 1
                logger.exception("Detection cycle failed")
                if not self.retry_on_error:
                    logger.warning("Detection loop stopped after a failed cycle")
                    return
                self._stop_event.wait(self.retry_delay)
                continue

            if self._stop_event.is_set():
                self.discarded += 1
                logger.debug("Discarding detection result that finished after stop")
                return

            self.slot.publish(detections)
            self.cycles += 1
            logger.debug("Detection cycle %d: %d face(s)", self.cycles, len(detections))

    def _close_detector(self) -> None:
        try:
            self.detector.close()
        except Exception:
            logger.exception("Error closing landmark detector")


# =============================================================================
# Backends
# =============================================================================

LANDMARKER_MODEL_URL = (
    "https://storage.googleapis.com/mediapipe-models/"
    "face_landmarker/face_landmarker/float16/1/face_landmarker.task"
)
MODEL_CACHE_DIR = Path.home() / ".cache" / "facecamo"
LANDMARKER_MODEL_PATH = MODEL_CACHE_DIR / "face_landmarker.task"


def ensure_model(url: str = LANDMARKER_MODEL_URL, path: Path = LANDMARKER_MODEL_PATH) -> Path:
    """Download a model file if not cached."""
    if path.exists():
        return path

    path.parent.mkdir(parents=True, exist_ok=True)
    logger.info("Downloading %s...", path.name)
    urllib.request.urlretrieve(url, str(path))
    return path


class MediaPipeLandmarkDetector:
    """
    Live landmark detection with MediaPipe FaceLandmarker.

    Runs the landmarker in video mode and converts each face's 478 mesh
    points to the 68-point convention.

    Args:
        max_faces: Maximum number of faces to return
        min_detection_confidence: Face detection threshold (0-1)
        min_tracking_confidence: Tracking threshold (0-1)
        model_path: FaceLandmarker .task file (downloaded to the cache when
            not given)
    """

    def __init__(
        self,
        max_faces: int = 3,
        min_detection_confidence: float = 0.5,
        min_tracking_confidence: float = 0.5,
        model_path: Optional[str] = None
    ):
        self.max_faces = max_faces
        self.min_detection_confidence = min_detection_confidence
        self.min_tracking_confidence = min_tracking_confidence
        self.model_path = model_path

        self._mp = None
        self._landmarker = None
        self._last_timestamp_ms = -1

    def load(self) -> None:
        try:
            import mediapipe as mp
            from mediapipe.tasks import python
            from mediapipe.tasks.python import vision
        except ImportError:
            raise DetectorUnavailableError(
                "mediapipe is required for live landmark detection. "
                "Install with: pip install mediapipe"
            )

        try:
            model_path = self.model_path or str(ensure_model())
            options = vision.FaceLandmarkerOptions(
                base_options=python.BaseOptions(model_asset_path=model_path),
                running_mode=vision.RunningMode.VIDEO,
                num_faces=self.max_faces,
                min_face_detection_confidence=self.min_detection_confidence,
                min_face_presence_confidence=self.min_detection_confidence,
                min_tracking_confidence=self.min_tracking_confidence,
            )
            self._landmarker = vision.FaceLandmarker.create_from_options(options)
        except Exception as e:
            raise DetectorUnavailableError(f"Could not load FaceLandmarker model: {e}") from e

        self._mp = mp

    def detect(self, frame: NDArray[np.uint8]) -> List[Detection]:
        if self._landmarker is None:
            raise RuntimeError("Detector not loaded; call load() first")

        height, width = frame.shape[:2]
        rgb = np.ascontiguousarray(cv2.cvtColor(frame, cv2.COLOR_BGR2RGB))
        image = self._mp.Image(image_format=self._mp.ImageFormat.SRGB, data=rgb)

        # Video mode requires strictly increasing timestamps
        timestamp_ms = max(int(time.monotonic() * 1000), self._last_timestamp_ms + 1)
        self._last_timestamp_ms = timestamp_ms

        result = self._landmarker.detect_for_video(image, timestamp_ms)
        return [
            LandmarkIngest.from_mediapipe(
                [[lm.x, lm.y] for lm in face], image_size=(width, height)
            )
            for face in result.face_landmarks
        ]

    def close(self) -> None:
        if self._landmarker is not None:
            self._landmarker.close()
            self._landmarker = None


class ScriptedDetector:
    """
    Replays a fixed sequence of detections, one frame per detect() call.

    Useful for demos without a camera model and for tests. The frame
    content passed to detect() is ignored.

    Args:
        frames: Sequence of frames, each a sequence of detections
        loop: Restart from the first frame after the last one (otherwise
            the last frame repeats)
        latency: Seconds to sleep in each detect() call
    """

    def __init__(
        self,
        frames: Sequence[Sequence[Detection]],
        loop: bool = True,
        latency: float = 0.0
    ):
        if len(frames) == 0:
            raise ValueError("ScriptedDetector needs at least one frame")
        self.frames = [list(frame) for frame in frames]
        self.loop = loop
        self.latency = latency
        self.loaded = False
        self.calls = 0

    @classmethod
    def from_json(cls, filepath: Union[str, Path], **kwargs) -> "ScriptedDetector":
        """Create a detector replaying a landmark JSON file (see LandmarkIngest.from_json)."""
        return cls(LandmarkIngest.from_json(filepath), **kwargs)

    def load(self) -> None:
        self.loaded = True

    def detect(self, frame: NDArray[np.uint8]) -> List[Detection]:
        if self.latency > 0:
            time.sleep(self.latency)

        index = self.calls
        self.calls += 1
        if self.loop:
            index %= len(self.frames)
        else:
            index = min(index, len(self.frames) - 1)
        return list(self.frames[index])

    def close(self) -> None:
        self.loaded = False
