"""
Configuration management for facecamo.

Handles:
- Distortion parameters (effect, intensity, smoothing, per-effect styles)
- Command-line argument parsing
- YAML config file loading
- Configuration validation
"""

from dataclasses import dataclass, field
from typing import Optional, Tuple, Dict, Any
import argparse


# Effect identifiers in control-surface order
EFFECT_TYPES = (
    "stretch", "bulge", "twist",
    "dazzle", "juggalo", "gan3d", "contour", "cvdazzle", "facepaint",
    "blur", "mosaic",
)

DEFAULT_EFFECT = "stretch"

# Style variants per effect; the first entry is the default
STYLE_VARIANTS: Dict[str, Tuple[str, ...]] = {
    "dazzle": ("geometric", "asymmetric", "minimal"),
    "juggalo": ("classic", "modern", "extreme"),
    "gan3d": ("geometric", "organic", "hybrid"),
    "contour": ("natural", "dramatic", "avantgarde"),
    "cvdazzle": ("mesh", "asymmetric", "occlusion"),
    "facepaint": ("cubist", "scarf", "fractal"),
}

# Per-effect style intensity: (min, max, default)
STYLE_INTENSITY_RANGES: Dict[str, Tuple[float, float, float]] = {
    "gan3d": (0.0, 1.0, 0.5),
    "contour": (0.0, 1.0, 0.5),
    "blur": (0.0, 1.0, 0.5),
    "mosaic": (5.0, 30.0, 10.0),  # mosaic tile size in pixels
}

INTENSITY_RANGE = (0.0, 2.0)
SMOOTHING_RANGE = (0.0, 1.0)


@dataclass
class EffectStyle:
    """Style selection for one effect. Unused fields stay None."""
    variant: Optional[str] = None
    intensity: Optional[float] = None


def default_styles() -> Dict[str, EffectStyle]:
    """Default style for every effect that has a variant or style intensity."""
    styles = {}
    for effect in EFFECT_TYPES:
        variants = STYLE_VARIANTS.get(effect)
        intensity_range = STYLE_INTENSITY_RANGES.get(effect)
        styles[effect] = EffectStyle(
            variant=variants[0] if variants else None,
            intensity=intensity_range[2] if intensity_range else None,
        )
    return styles


@dataclass
class DistortionParameters:
    """
    Parameters controlling the active effect.

    Set by the control surface; the rendering core only reads them.
    """
    effect_type: str = DEFAULT_EFFECT
    intensity: float = 1.0
    smoothing_factor: float = 0.3
    styles: Dict[str, EffectStyle] = field(default_factory=default_styles)

    def style(self, effect_type: Optional[str] = None) -> EffectStyle:
        """Style for an effect (default: the active effect)."""
        effect_type = effect_type or self.effect_type
        return self.styles.get(effect_type) or EffectStyle()

    def set_style(
        self,
        effect_type: str,
        variant: Optional[str] = None,
        intensity: Optional[float] = None
    ) -> None:
        """Update one effect's style, leaving unspecified fields unchanged."""
        style = self.styles.setdefault(effect_type, EffectStyle())
        if variant is not None:
            style.variant = variant
        if intensity is not None:
            style.intensity = intensity

    def validate(self) -> None:
        """
        Check ranges and names.

        Raises:
            ValueError: On unknown effect/variant or out-of-range values
        """
        if self.effect_type not in EFFECT_TYPES:
            raise ValueError(
                f"Unknown effect type: {self.effect_type}. "
                f"Choose from: {', '.join(EFFECT_TYPES)}"
            )

        lo, hi = INTENSITY_RANGE
        if not lo <= self.intensity <= hi:
            raise ValueError(f"intensity must be in [{lo}, {hi}], got {self.intensity}")

        lo, hi = SMOOTHING_RANGE
        if not lo <= self.smoothing_factor <= hi:
            raise ValueError(
                f"smoothing_factor must be in [{lo}, {hi}], got {self.smoothing_factor}"
            )

        for effect, style in self.styles.items():
            variants = STYLE_VARIANTS.get(effect, ())
            if style.variant is not None and style.variant not in variants:
                raise ValueError(
                    f"Unknown {effect} variant: {style.variant}. "
                    f"Choose from: {', '.join(variants) or '(none)'}"
                )
            if style.intensity is not None and effect in STYLE_INTENSITY_RANGES:
                lo, hi, _ = STYLE_INTENSITY_RANGES[effect]
                if not lo <= style.intensity <= hi:
                    raise ValueError(
                        f"{effect} style intensity must be in [{lo}, {hi}], got {style.intensity}"
                    )


@dataclass
class CaptureConfig:
    """Capture device configuration."""
    camera_index: int = 0
    input_file: Optional[str] = None  # Video file instead of a camera
    resolution: Tuple[int, int] = (640, 480)
    fps: float = 30.0


@dataclass
class DetectorConfig:
    """Landmark detector configuration."""
    backend: str = "mediapipe"  # "mediapipe", "replay"
    max_faces: int = 3
    min_detection_confidence: float = 0.5
    min_tracking_confidence: float = 0.5
    replay_file: Optional[str] = None  # Required for "replay"
    model_path: Optional[str] = None  # FaceLandmarker .task file (downloaded if unset)
    retry_on_error: bool = True
    retry_delay: float = 0.1


@dataclass
class OutputConfig:
    """Display and recording configuration."""
    show_window: bool = True
    window_name: str = "FaceCamo"
    output_file: Optional[str] = None
    max_frames: Optional[int] = None
    autostart: bool = True


DETECTOR_BACKENDS = ("mediapipe", "replay")


@dataclass
class Config:
    """Complete configuration."""
    capture: CaptureConfig = field(default_factory=CaptureConfig)
    detector: DetectorConfig = field(default_factory=DetectorConfig)
    effect: DistortionParameters = field(default_factory=DistortionParameters)
    output: OutputConfig = field(default_factory=OutputConfig)

    def validate(self) -> None:
        """
        Validate the complete configuration.

        Raises:
            ValueError: On any invalid setting
        """
        self.effect.validate()

        if self.detector.backend not in DETECTOR_BACKENDS:
            raise ValueError(
                f"Unknown detector backend: {self.detector.backend}. "
                f"Choose from: {', '.join(DETECTOR_BACKENDS)}"
            )
        if self.detector.backend == "replay" and not self.detector.replay_file:
            raise ValueError("The replay detector requires --replay-file (or detector.replay_file)")
        if self.detector.max_faces < 1:
            raise ValueError(f"max_faces must be at least 1, got {self.detector.max_faces}")

        width, height = self.capture.resolution
        if width <= 0 or height <= 0:
            raise ValueError(f"Invalid resolution: {width}x{height}")
        if self.capture.fps <= 0:
            raise ValueError(f"fps must be positive, got {self.capture.fps}")

    @classmethod
    def from_args(cls, args: argparse.Namespace) -> "Config":
        """
        Create config from parsed command-line arguments.

        Loads config file if specified, then applies command-line overrides.

        Args:
            args: Parsed arguments from argparse

        Returns:
            Validated Config instance

        Raises:
            ValueError: If any setting is invalid
        """
        if args.config:
            config = cls.from_yaml(args.config)
        else:
            config = cls()

        # Capture overrides
        if args.camera is not None:
            config.capture.camera_index = args.camera
        if args.input:
            config.capture.input_file = args.input
        if args.resolution:
            try:
                w, h = args.resolution.lower().split('x')
                config.capture.resolution = (int(w), int(h))
            except ValueError:
                raise ValueError(f"Invalid resolution format: {args.resolution}. Use WxH (e.g., 640x480)")
        if args.fps is not None:
            config.capture.fps = args.fps

        # Detector overrides
        if args.detector:
            config.detector.backend = args.detector
        if args.replay_file:
            config.detector.replay_file = args.replay_file
            if not args.detector:
                config.detector.backend = "replay"
        if args.max_faces is not None:
            config.detector.max_faces = args.max_faces
        if args.min_detection_confidence is not None:
            config.detector.min_detection_confidence = args.min_detection_confidence
        if args.no_retry:
            config.detector.retry_on_error = False

        # Effect overrides
        if args.effect:
            config.effect.effect_type = args.effect
        if args.intensity is not None:
            config.effect.intensity = args.intensity
        if args.smoothing is not None:
            config.effect.smoothing_factor = args.smoothing
        if args.variant or args.style_intensity is not None:
            config.effect.set_style(
                config.effect.effect_type,
                variant=args.variant,
                intensity=args.style_intensity
            )

        # Output overrides
        if args.output:
            config.output.output_file = args.output
        if args.no_window:
            config.output.show_window = False
        if args.max_frames is not None:
            config.output.max_frames = args.max_frames

        config.validate()
        return config

    @classmethod
    def from_yaml(cls, filepath: str) -> "Config":
        """
        Load config from YAML file.

        Args:
            filepath: Path to YAML config file

        Returns:
            Config instance (not yet validated)
        """
        try:
            import yaml
        except ImportError:
            raise ImportError(
                "PyYAML is required for config files. "
                "Install with: pip install pyyaml"
            )

        with open(filepath, 'r') as f:
            data = yaml.safe_load(f) or {}

        capture_data = data.get('capture', {})
        capture = CaptureConfig(
            camera_index=capture_data.get('camera_index', 0),
            input_file=capture_data.get('input_file'),
            resolution=tuple(capture_data.get('resolution', [640, 480])),
            fps=capture_data.get('fps', 30.0)
        )

        detector_data = data.get('detector', {})
        detector = DetectorConfig(
            backend=detector_data.get('backend', 'mediapipe'),
            max_faces=detector_data.get('max_faces', 3),
            min_detection_confidence=detector_data.get('min_detection_confidence', 0.5),
            min_tracking_confidence=detector_data.get('min_tracking_confidence', 0.5),
            replay_file=detector_data.get('replay_file'),
            model_path=detector_data.get('model_path'),
            retry_on_error=detector_data.get('retry_on_error', True),
            retry_delay=detector_data.get('retry_delay', 0.1)
        )

        effect_data = data.get('effect', {})
        effect = DistortionParameters(
            effect_type=effect_data.get('type', DEFAULT_EFFECT),
            intensity=effect_data.get('intensity', 1.0),
            smoothing_factor=effect_data.get('smoothing_factor', 0.3)
        )
        for effect_type, style_data in (effect_data.get('styles') or {}).items():
            style_data = style_data or {}
            effect.set_style(
                effect_type,
                variant=style_data.get('variant'),
                intensity=style_data.get('intensity')
            )

        output_data = data.get('output', {})
        output = OutputConfig(
            show_window=output_data.get('show_window', True),
            window_name=output_data.get('window_name', 'FaceCamo'),
            output_file=output_data.get('output_file'),
            max_frames=output_data.get('max_frames'),
            autostart=output_data.get('autostart', True)
        )

        return cls(capture=capture, detector=detector, effect=effect, output=output)

    def to_yaml(self, filepath: str) -> None:
        """
        Save config to YAML file.

        Args:
            filepath: Path to save YAML config file
        """
        try:
            import yaml
        except ImportError:
            raise ImportError(
                "PyYAML is required for config files. "
                "Install with: pip install pyyaml"
            )

        styles: Dict[str, Any] = {}
        for effect_type, style in self.effect.styles.items():
            entry = {}
            if style.variant is not None:
                entry['variant'] = style.variant
            if style.intensity is not None:
                entry['intensity'] = style.intensity
            if entry:
                styles[effect_type] = entry

        data = {
            'capture': {
                'camera_index': self.capture.camera_index,
                'input_file': self.capture.input_file,
                'resolution': list(self.capture.resolution),
                'fps': self.capture.fps
            },
            'detector': {
                'backend': self.detector.backend,
                'max_faces': self.detector.max_faces,
                'min_detection_confidence': self.detector.min_detection_confidence,
                'min_tracking_confidence': self.detector.min_tracking_confidence,
                'replay_file': self.detector.replay_file,
                'model_path': self.detector.model_path,
                'retry_on_error': self.detector.retry_on_error,
                'retry_delay': self.detector.retry_delay
            },
            'effect': {
                'type': self.effect.effect_type,
                'intensity': self.effect.intensity,
                'smoothing_factor': self.effect.smoothing_factor,
                'styles': styles
            },
            'output': {
                'show_window': self.output.show_window,
                'window_name': self.output.window_name,
                'output_file': self.output.output_file,
                'max_frames': self.output.max_frames,
                'autostart': self.output.autostart
            }
        }

        with open(filepath, 'w') as f:
            yaml.dump(data, f, default_flow_style=False, sort_keys=False)

    @staticmethod
    def generate_default_config_template() -> str:
        """
        Generate a default configuration template with comments.

        Returns:
            YAML string with comments explaining each option
        """
        return """# FaceCamo Configuration File
#
# Command-line arguments override values specified here.

# Capture device
capture:
  # Camera index (ignored when input_file is set)
  camera_index: 0

  # Optional video file to read instead of a camera
  input_file: null

  # Frame size [width, height]; frames are resized to this
  resolution: [640, 480]

  # Render loop rate (frames per second)
  fps: 30.0

# Landmark detector
detector:
  # Backend: mediapipe (live model), replay (scripted landmarks from JSON)
  backend: "mediapipe"

  # Maximum number of faces to track
  max_faces: 3

  # MediaPipe confidence thresholds (0-1)
  min_detection_confidence: 0.5
  min_tracking_confidence: 0.5

  # JSON file for the replay backend
  replay_file: null

  # FaceLandmarker model file (downloaded to ~/.cache/facecamo when null)
  model_path: null

  # Keep detecting after a failed detection cycle
  retry_on_error: true

  # Seconds to wait before retrying a failed cycle
  retry_delay: 0.1

# Active effect
effect:
  # stretch, bulge, twist, dazzle, juggalo, gan3d, contour, cvdazzle,
  # facepaint, blur, mosaic
  type: "stretch"

  # Effect strength (0-2)
  intensity: 1.0

  # Landmark smoothing: weight of the previous frame (0-1)
  smoothing_factor: 0.3

  # Per-effect styles
  styles:
    dazzle: {variant: "geometric"}     # geometric, asymmetric, minimal
    juggalo: {variant: "classic"}      # classic, modern, extreme
    gan3d: {variant: "geometric", intensity: 0.5}   # geometric, organic, hybrid; 0-1
    contour: {variant: "natural", intensity: 0.5}   # natural, dramatic, avantgarde; 0-1
    cvdazzle: {variant: "mesh"}        # mesh, asymmetric, occlusion
    facepaint: {variant: "cubist"}     # cubist, scarf, fractal
    blur: {intensity: 0.5}             # 0-1 (radius = intensity * 20)
    mosaic: {intensity: 10}            # tile size in pixels, 5-30

# Display and recording
output:
  # Show a preview window with keyboard controls
  show_window: true
  window_name: "FaceCamo"

  # Optional video file to record the output to
  output_file: null

  # Stop after this many frames (null = run until quit or end of input)
  max_frames: null

  # Start the camera immediately instead of waiting for SPACE
  autostart: true
"""


def create_argument_parser() -> argparse.ArgumentParser:
    """
    Create command-line argument parser.

    Returns:
        Configured ArgumentParser
    """
    parser = argparse.ArgumentParser(
        prog="facecamo",
        description="Real-time facial distortion effects driven by facial landmarks",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
        epilog="Configuration file (YAML) can be used to set all options. Command-line arguments override config file values."
    )

    parser.add_argument(
        "--config", "-c",
        help="Path to YAML configuration file"
    )
    parser.add_argument(
        "--save-config",
        metavar="PATH",
        help="Save default configuration to YAML file and exit"
    )

    # Capture options
    capture_group = parser.add_argument_group("Capture Options")
    capture_group.add_argument(
        "--camera",
        type=int,
        metavar="INDEX",
        help="Camera device index (default: 0)"
    )
    capture_group.add_argument(
        "--input", "-i",
        metavar="VIDEO",
        help="Read frames from a video file instead of a camera"
    )
    capture_group.add_argument(
        "--resolution",
        type=str,
        metavar="WxH",
        help="Frame size (default: 640x480)"
    )
    capture_group.add_argument(
        "--fps",
        type=float,
        help="Render loop rate in frames per second (default: 30)"
    )

    # Detector options
    detector_group = parser.add_argument_group("Detector Options")
    detector_group.add_argument(
        "--detector",
        choices=list(DETECTOR_BACKENDS),
        help="Landmark detector backend"
    )
    detector_group.add_argument(
        "--replay-file",
        metavar="JSON",
        help="Landmark JSON for the replay detector (implies --detector replay)"
    )
    detector_group.add_argument(
        "--max-faces",
        type=int,
        metavar="N",
        help="Maximum number of faces to track"
    )
    detector_group.add_argument(
        "--min-detection-confidence",
        type=float,
        metavar="P",
        help="Minimum face detection confidence (0-1)"
    )
    detector_group.add_argument(
        "--no-retry",
        action="store_true",
        help="Stop the detection loop after a failed detection cycle"
    )

    # Effect options
    effect_group = parser.add_argument_group("Effect Options")
    effect_group.add_argument(
        "--effect", "-e",
        choices=list(EFFECT_TYPES),
        help="Distortion effect"
    )
    effect_group.add_argument(
        "--intensity",
        type=float,
        help="Effect intensity (0-2)"
    )
    effect_group.add_argument(
        "--smoothing",
        type=float,
        help="Landmark smoothing factor (0-1)"
    )
    effect_group.add_argument(
        "--variant",
        help="Style variant for the selected effect (e.g. asymmetric)"
    )
    effect_group.add_argument(
        "--style-intensity",
        type=float,
        help="Style intensity for the selected effect (gan3d/contour/blur: 0-1, mosaic: tile size 5-30)"
    )

    # Output options
    output_group = parser.add_argument_group("Output Options")
    output_group.add_argument(
        "--output", "-o",
        metavar="VIDEO",
        help="Record the output frames to a video file"
    )
    output_group.add_argument(
        "--no-window",
        action="store_true",
        help="Run without a preview window"
    )
    output_group.add_argument(
        "--max-frames",
        type=int,
        metavar="N",
        help="Stop after N frames"
    )

    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Verbose output"
    )

    return parser
