"""
Frame sources.

A frame source hands out BGR frames at the configured resolution. The
session opens one per run and releases it on stop.
"""

import logging
import cv2
import numpy as np
from typing import Optional, Protocol, Tuple, Union
from numpy.typing import NDArray

logger = logging.getLogger(__name__)


class AcquisitionError(RuntimeError):
    """The capture device could not be opened."""


class FrameSource(Protocol):
    """Interface for anything that produces video frames."""

    exhausted: bool

    def open(self) -> None:
        """Acquire the device. Raises AcquisitionError on failure."""
        ...

    def read(self) -> Optional[NDArray[np.uint8]]:
        """Return the next frame, or None if no frame is available."""
        ...

    def release(self) -> None:
        """Release the device. Safe to call more than once."""
        ...


class OpenCVCapture:
    """
    Frame source backed by cv2.VideoCapture.

    Reads from a camera (integer index) or a video file (path). Frames are
    resized to ``resolution`` when the device delivers a different size.
    When a video file runs out, read() returns None and ``exhausted`` is
    set.

    Example:
        capture = OpenCVCapture(0, resolution=(640, 480))
        capture.open()
        frame = capture.read()
        capture.release()
    """

    def __init__(
        self,
        source: Union[int, str] = 0,
        resolution: Tuple[int, int] = (640, 480)
    ):
        self.source = source
        self.resolution = resolution
        self.exhausted = False
        self._capture: Optional[cv2.VideoCapture] = None

    @property
    def is_open(self) -> bool:
        return self._capture is not None

    def open(self) -> None:
        if self._capture is not None:
            return

        capture = cv2.VideoCapture(self.source)
        if not capture.isOpened():
            capture.release()
            raise AcquisitionError(f"Could not open capture source: {self.source!r}")

        if isinstance(self.source, int):
            width, height = self.resolution
            capture.set(cv2.CAP_PROP_FRAME_WIDTH, width)
            capture.set(cv2.CAP_PROP_FRAME_HEIGHT, height)

        self._capture = capture
        self.exhausted = False
        logger.info("Opened capture source %r", self.source)

    def read(self) -> Optional[NDArray[np.uint8]]:
        if self._capture is None:
            return None

        ok, frame = self._capture.read()
        if not ok or frame is None:
            if not isinstance(self.source, int):
                self.exhausted = True
            logger.debug("No frame from capture source %r", self.source)
            return None

        width, height = self.resolution
        if frame.shape[1] != width or frame.shape[0] != height:
            frame = cv2.resize(frame, (width, height), interpolation=cv2.INTER_AREA)
        return frame

    def release(self) -> None:
        if self._capture is not None:
            self._capture.release()
            self._capture = None
            logger.info("Released capture source %r", self.source)
