"""
Facial landmark definitions, ingestion, and temporal smoothing.

This module provides:
- The 68-point facial landmark convention used throughout the package
- Named region index ranges (jaw, nose, eyes, mouth)
- Detection validation (68 x 2 float32 arrays in frame pixel coordinates)
- Temporal smoothing of landmark streams
- LandmarkIngest: Convert external landmark formats to the 68-point convention

The 68 keypoints follow the standard iBUG/dlib convention:
  0-16:  Jawline contour (17 points)
  17-21: Right eyebrow (5 points)
  22-26: Left eyebrow (5 points)
  27-30: Nose bridge (4 points)
  31-35: Nose bottom/nostrils (5 points)
  36-41: Left eye in image space (6 points)
  42-47: Right eye in image space (6 points)
  48-59: Outer lip (12 points)
  60-67: Inner lip (8 points)

Eye naming follows the image (viewer) side, not the subject's anatomy, so
"left_eye" is the eye that appears on the left of the frame.
"""

import json
import logging
import numpy as np
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple, Union
from numpy.typing import NDArray

logger = logging.getLogger(__name__)


NUM_LANDMARKS = 68

# A detection is one face's landmarks: shape (68, 2), float32, pixel coords.
Detection = NDArray[np.float32]


# =============================================================================
# Region Index Ranges
# =============================================================================
# Half-open [start, stop) ranges into a 68-point detection.

REGION_INDEX_RANGES: Dict[str, Tuple[int, int]] = {
    "left_eye": (36, 42),
    "right_eye": (42, 48),
    "nose": (27, 36),
    "mouth": (48, 68),
    "jaw": (0, 17),
}

# Fixed drawing order for per-region effects
REGION_ORDER = ("left_eye", "right_eye", "nose", "mouth", "jaw")

# Regions that effects distort (the jaw is only used as an anchor)
FEATURE_REGIONS = ("left_eye", "right_eye", "nose", "mouth")


def as_detection(points: Union[Sequence[Sequence[float]], NDArray]) -> Detection:
    """
    Validate and convert a landmark array to a Detection.

    Args:
        points: 68 (x, y) points, any array-like. Extra columns (e.g. z)
            are dropped.

    Returns:
        Float32 array of shape (68, 2)

    Raises:
        ValueError: If the input does not hold 68 two-dimensional points.
    """
    arr = np.asarray(points, dtype=np.float32)

    if arr.ndim != 2 or arr.shape[1] < 2:
        raise ValueError(
            f"Expected landmarks shape ({NUM_LANDMARKS}, 2), got {arr.shape}"
        )
    if arr.shape[0] != NUM_LANDMARKS:
        raise ValueError(
            f"Expected {NUM_LANDMARKS} landmarks, got {arr.shape[0]}"
        )

    return np.ascontiguousarray(arr[:, :2])


# =============================================================================
# Temporal Smoothing
# =============================================================================

def smooth_detections(
    current: Sequence[Detection],
    previous: Sequence[Detection],
    factor: float
) -> Sequence[Detection]:
    """
    Blend this frame's detections with the previous frame's detections.

    Each landmark is linearly interpolated per axis:

        pos = current * (1 - factor) + previous * factor

    Faces are matched by list index. A face with no counterpart in
    ``previous`` (a face that just appeared) is passed through unsmoothed.

    Args:
        current: Detections for this frame
        previous: Raw detections from the previous frame (may be empty)
        factor: Weight of the previous frame, 0 (no smoothing) to 1

    Returns:
        ``current`` itself if ``previous`` is empty, otherwise a new list of
        smoothed detections. Inputs are never modified.
    """
    if len(previous) == 0:
        return current

    smoothed = []
    for i, curr in enumerate(current):
        if i >= len(previous):
            smoothed.append(curr)
            continue

        prev = previous[i]
        blended = curr * (1.0 - factor) + prev * factor
        smoothed.append(blended.astype(np.float32))

    return smoothed


# =============================================================================
# Landmark Ingestion
# =============================================================================
# Converts external landmark formats to the 68-point convention.

# MediaPipe Face Mesh 478 → 68-point index mapping (MaixPy convention).
# Each entry is a single MediaPipe vertex index that maps to the
# corresponding 68-point keypoint.
MEDIAPIPE_TO_LANDMARKS_68 = [
    # Jawline 0-16
    162, 234, 93, 58, 172, 136, 149, 148, 152, 377, 378, 365, 397, 288, 323, 454, 389,
    # Right eyebrow 17-21
    71, 63, 105, 66, 107,
    # Left eyebrow 22-26
    336, 296, 334, 293, 301,
    # Nose bridge 27-30
    168, 197, 5, 4,
    # Nose bottom 31-35
    75, 97, 2, 326, 305,
    # Eye 36-41
    33, 160, 158, 133, 153, 144,
    # Eye 42-47
    362, 385, 387, 263, 373, 380,
    # Outer lip 48-59
    61, 39, 37, 0, 267, 269, 291, 405, 314, 17, 84, 181,
    # Inner lip 60-67
    78, 82, 13, 312, 308, 317, 14, 87,
]

MEDIAPIPE_MIN_LANDMARKS = 468


class LandmarkIngest:
    """
    Convert external landmark formats to 68-point detections.

    Supported input formats:
    - "mediapipe": MediaPipe Face Mesh (468 or 478 normalized landmarks)
    - "landmarks68": Pre-converted 68-point pixel landmarks, grouped into
      frames (used for scripted replays)

    Usage:
        # From raw MediaPipe landmarks (list of [x, y, z]):
        detection = LandmarkIngest.from_mediapipe(mp_landmarks, (640, 480))

        # From a JSON file:
        frames = LandmarkIngest.from_json("replay.json")
    """

    @staticmethod
    def from_mediapipe(
        landmarks: Union[List[List[float]], NDArray[np.float32]],
        image_size: Optional[Tuple[int, int]] = None,
    ) -> Detection:
        """
        Convert MediaPipe Face Mesh landmarks to a 68-point detection.

        MediaPipe landmarks are normalized: x to image width, y to image
        height. If image_size is provided, coordinates are denormalized to
        pixel space, which is what every downstream consumer expects.

        Args:
            landmarks: MediaPipe face landmarks, shape (N, 2) or (N, 3) where
                N is 468 (standard) or 478 (refined with iris tracking).
            image_size: (width, height) of the frame the landmarks came from.

        Returns:
            Detection, shape (68, 2), float32.

        Raises:
            ValueError: If landmarks have wrong shape or too few points.
        """
        lm = np.asarray(landmarks, dtype=np.float32)

        if lm.ndim != 2 or lm.shape[1] not in (2, 3):
            raise ValueError(
                f"Expected landmarks shape (N, 2) or (N, 3), got {lm.shape}"
            )

        n = lm.shape[0]
        if n < MEDIAPIPE_MIN_LANDMARKS:
            raise ValueError(
                f"MediaPipe landmarks require at least {MEDIAPIPE_MIN_LANDMARKS} points, got {n}"
            )

        points = lm[MEDIAPIPE_TO_LANDMARKS_68, :2].copy()

        if image_size is not None:
            w, h = image_size
            points[:, 0] *= w
            points[:, 1] *= h
        else:
            logger.debug("No image_size provided, keeping normalized coordinates")

        return as_detection(points)

    @staticmethod
    def from_json(filepath: Union[str, Path]) -> List[List[Detection]]:
        """
        Load landmark frames from a JSON file.

        Auto-detects the source format from the JSON "source" field.

        Supported JSON formats:
        - MediaPipe: {"source": "mediapipe", "landmarks": [[x,y,z], ...],
          "image_size": [w, h]} → one frame with one face
        - Replay: {"source": "landmarks68", "frames": [[face, ...], ...]}
          where each face is a list of 68 [x, y] pixel points

        Args:
            filepath: Path to JSON file.

        Returns:
            List of frames, each a list of detections.

        Raises:
            ValueError: If format is unrecognized or data is invalid.
            FileNotFoundError: If file does not exist.
        """
        filepath = Path(filepath)
        with open(filepath, 'r') as f:
            data = json.load(f)

        source = data.get("source", "").lower()

        if source == "mediapipe":
            raw_landmarks = data.get("landmarks")
            if raw_landmarks is None:
                raise ValueError(
                    f"MediaPipe JSON missing 'landmarks' field in {filepath}"
                )
            image_size = data.get("image_size")
            if image_size is not None:
                image_size = tuple(image_size)
            detection = LandmarkIngest.from_mediapipe(
                raw_landmarks, image_size=image_size
            )
            return [[detection]]

        if source == "landmarks68":
            raw_frames = data.get("frames")
            if raw_frames is None:
                raise ValueError(
                    f"Replay JSON missing 'frames' field in {filepath}"
                )
            frames = [[as_detection(face) for face in frame] for frame in raw_frames]
            logger.debug(
                "Loaded replay from %s: %d frames", filepath, len(frames)
            )
            return frames

        raise ValueError(
            f"Unsupported landmark source: '{source}' in {filepath}. "
            f"Supported: 'mediapipe', 'landmarks68'"
        )
