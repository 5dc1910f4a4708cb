"""
FaceCamo - Real-time facial distortion and camouflage effects.

This package renders visual distortions over live video, driven by
per-frame 68-point facial landmark detections:
- Geometric displacement (stretch, bulge, twist)
- Procedural overlays (dazzle, CV dazzle, juggalo, gan3d, contour, face paint)
- Pixel obfuscation (blur, mosaic)

Example usage:
    from facecamo import DistortionParameters, FrameCompositor

    params = DistortionParameters(effect_type="dazzle", intensity=1.0)
    params.set_style("dazzle", variant="asymmetric")
    compositor = FrameCompositor(params)
    output = compositor.compose(frame, detections)
"""

__version__ = "0.1.0"
__author__ = "Your Name"

from .canvas import Canvas
from .capture import AcquisitionError, OpenCVCapture
from .compositor import FrameCompositor
from .config import Config, DistortionParameters, EffectStyle, EFFECT_TYPES
from .detection import (
    DetectionFeed,
    DetectionSlot,
    DetectorUnavailableError,
    MediaPipeLandmarkDetector,
    ScriptedDetector,
)
from .effects import dispatch
from .landmarks import LandmarkIngest, as_detection, smooth_detections
from .regions import BoundingBox, expand_box, extract_features
from .session import Session, SessionState
from .strategy import DistortionStrategy

__all__ = [
    "AcquisitionError",
    "BoundingBox",
    "Canvas",
    "Config",
    "DetectionFeed",
    "DetectionSlot",
    "DetectorUnavailableError",
    "DistortionParameters",
    "DistortionStrategy",
    "EFFECT_TYPES",
    "EffectStyle",
    "FrameCompositor",
    "LandmarkIngest",
    "MediaPipeLandmarkDetector",
    "OpenCVCapture",
    "ScriptedDetector",
    "Session",
    "SessionState",
    "as_detection",
    "dispatch",
    "expand_box",
    "extract_features",
    "smooth_detections",
]
