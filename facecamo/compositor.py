"""
Frame composition.

FrameCompositor is the per-frame entry point of the rendering core. Given
the current video frame and the latest detections, it produces the output
frame: raw video, video with the active effect applied to every face, or a
placeholder when there is no video.
"""

import logging
import cv2
import numpy as np
from typing import List, Optional, Sequence, Tuple
from numpy.typing import NDArray

from .canvas import Canvas
from .config import DistortionParameters
from .effects import dispatch
from .landmarks import Detection, smooth_detections
from .regions import extract_features

logger = logging.getLogger(__name__)


IDLE_MESSAGE = 'Press SPACE to start the camera'
LOADING_MESSAGE = "Loading face landmark model..."

_FONT = cv2.FONT_HERSHEY_SIMPLEX


def _put_centered_text(
    image: NDArray[np.uint8],
    text: str,
    center: Tuple[int, int],
    scale: float,
    color: Tuple[int, int, int],
    thickness: int = 1
) -> None:
    (text_w, text_h), _ = cv2.getTextSize(text, _FONT, scale, thickness)
    origin = (int(center[0] - text_w / 2), int(center[1] + text_h / 2))
    cv2.putText(image, text, origin, _FONT, scale, color, thickness, cv2.LINE_AA)


class FrameCompositor:
    """
    Compose output frames.

    Keeps the raw (unsmoothed) detections of the last frame that had faces,
    which the next frame's detections are smoothed against.

    Args:
        params: Distortion parameters, read on every compose() call
        frame_size: (width, height) of placeholder frames
    """

    def __init__(
        self,
        params: Optional[DistortionParameters] = None,
        frame_size: Tuple[int, int] = (640, 480)
    ):
        self.params = params or DistortionParameters()
        self.frame_size = frame_size
        self.previous_detections: List[Detection] = []

    def reset(self) -> None:
        """Forget the previous frame's detections."""
        self.previous_detections = []

    def compose(
        self,
        frame: Optional[NDArray[np.uint8]],
        detections: Sequence[Detection]
    ) -> NDArray[np.uint8]:
        """
        Produce one output frame.

        Args:
            frame: Current BGR video frame, or None when no session is active
            detections: Latest detections (may be empty)

        Returns:
            New BGR image; the input frame is not modified
        """
        if frame is None:
            return self.render_placeholder(IDLE_MESSAGE)

        output = frame.copy()
        if len(detections) == 0:
            return output

        snapshot = frame.copy()
        snapshot.flags.writeable = False

        smoothed = smooth_detections(
            detections, self.previous_detections, self.params.smoothing_factor
        )
        self.previous_detections = list(detections)

        strategy = dispatch(self.params.effect_type)
        style = self.params.style(strategy.name)
        canvas = Canvas(output)

        for detection in smoothed:
            features = extract_features(detection)
            strategy.apply(canvas, snapshot, features, self.params, style)

        return output

    def render_placeholder(self, message: str = IDLE_MESSAGE, error: Optional[str] = None) -> NDArray[np.uint8]:
        """
        Black frame with a centered message and an optional error line.

        Args:
            message: Main text
            error: Error text shown in red below the message

        Returns:
            New BGR image of size frame_size
        """
        width, height = self.frame_size
        image = np.zeros((height, width, 3), dtype=np.uint8)
        _put_centered_text(image, message, (width // 2, height // 2), 0.8, (255, 255, 255), 2)
        if error:
            _put_centered_text(image, error, (width // 2, height // 2 + 40), 0.5, (0, 0, 255), 1)
        return image

    @staticmethod
    def draw_banner(image: NDArray[np.uint8], text: str = LOADING_MESSAGE) -> NDArray[np.uint8]:
        """Draw a dark strip with text across the top of an image, in place."""
        height, width = image.shape[:2]
        strip_h = min(36, height)
        strip = image[:strip_h]
        strip[:] = (strip.astype(np.float32) * 0.35).astype(np.uint8)
        _put_centered_text(image, text, (width // 2, strip_h // 2), 0.6, (255, 255, 255), 1)
        return image
