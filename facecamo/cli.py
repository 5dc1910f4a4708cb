"""
Command-line interface for facecamo.

This module provides the main entry point for the CLI tool: it builds the
capture and detector factories from the configuration, drives the render
loop at the configured frame rate, shows the output in a window and/or
records it to a video file, and maps keys to parameter changes.

Keyboard controls (preview window):
  SPACE   start / stop the camera
  e / E   next / previous effect
  v       next style variant of the current effect
  + / -   effect intensity up / down
  ] / [   landmark smoothing up / down
  q, ESC  quit
"""

import logging
import sys
import time
from typing import Callable, Optional

import cv2

from .capture import AcquisitionError, OpenCVCapture
from .compositor import FrameCompositor
from .config import (
    Config, DistortionParameters, EFFECT_TYPES, INTENSITY_RANGE, SMOOTHING_RANGE,
    STYLE_VARIANTS, create_argument_parser,
)
from .detection import (
    DetectorUnavailableError, LandmarkDetector, MediaPipeLandmarkDetector, ScriptedDetector,
)
from .session import Session, SessionState

logger = logging.getLogger(__name__)

INTENSITY_STEP = 0.1
SMOOTHING_STEP = 0.1


# =============================================================================
# Factories
# =============================================================================

def build_capture_factory(config: Config) -> Callable[[], OpenCVCapture]:
    source = config.capture.input_file or config.capture.camera_index
    resolution = config.capture.resolution
    return lambda: OpenCVCapture(source, resolution=resolution)


def build_detector_factory(config: Config) -> Callable[[], LandmarkDetector]:
    detector = config.detector

    if detector.backend == "replay":
        def make_replay() -> LandmarkDetector:
            try:
                return ScriptedDetector.from_json(detector.replay_file)
            except (OSError, ValueError) as e:
                raise DetectorUnavailableError(f"Could not load replay file: {e}") from e
        return make_replay

    return lambda: MediaPipeLandmarkDetector(
        max_faces=detector.max_faces,
        min_detection_confidence=detector.min_detection_confidence,
        min_tracking_confidence=detector.min_tracking_confidence,
        model_path=detector.model_path,
    )


# =============================================================================
# Keyboard controls
# =============================================================================

def _clamp(value: float, bounds) -> float:
    lo, hi = bounds
    return min(max(value, lo), hi)


def cycle_effect(params: DistortionParameters, step: int = 1) -> str:
    """Move to the next (or previous) effect and return its name."""
    try:
        index = EFFECT_TYPES.index(params.effect_type)
    except ValueError:
        index = 0
    params.effect_type = EFFECT_TYPES[(index + step) % len(EFFECT_TYPES)]
    return params.effect_type


def cycle_variant(params: DistortionParameters) -> Optional[str]:
    """Move the current effect to its next style variant. None if it has none."""
    variants = STYLE_VARIANTS.get(params.effect_type)
    if not variants:
        return None

    current = params.style().variant
    index = variants.index(current) if current in variants else -1
    variant = variants[(index + 1) % len(variants)]
    params.set_style(params.effect_type, variant=variant)
    return variant


def handle_key(key: int, session: Session, params: DistortionParameters) -> bool:
    """
    Apply one key press.

    Args:
        key: Key code from cv2.waitKey (-1 for none)
        session: Session to start/stop
        params: Parameters to modify

    Returns:
        False if the key asks to quit, True otherwise
    """
    if key < 0:
        return True
    key &= 0xFF
    char = chr(key)

    if char in ("q", "\x1b"):
        return False

    if char == " ":
        try:
            session.toggle()
        except (AcquisitionError, DetectorUnavailableError) as e:
            print(f"Error: {e}", file=sys.stderr)
    elif char == "e":
        logger.info("Effect: %s", cycle_effect(params, 1))
    elif char == "E":
        logger.info("Effect: %s", cycle_effect(params, -1))
    elif char == "v":
        variant = cycle_variant(params)
        if variant is not None:
            logger.info("%s variant: %s", params.effect_type, variant)
    elif char in ("+", "="):
        params.intensity = round(_clamp(params.intensity + INTENSITY_STEP, INTENSITY_RANGE), 3)
        logger.info("Intensity: %.1f", params.intensity)
    elif char == "-":
        params.intensity = round(_clamp(params.intensity - INTENSITY_STEP, INTENSITY_RANGE), 3)
        logger.info("Intensity: %.1f", params.intensity)
    elif char == "]":
        params.smoothing_factor = round(_clamp(params.smoothing_factor + SMOOTHING_STEP, SMOOTHING_RANGE), 3)
        logger.info("Smoothing: %.2f", params.smoothing_factor)
    elif char == "[":
        params.smoothing_factor = round(_clamp(params.smoothing_factor - SMOOTHING_STEP, SMOOTHING_RANGE), 3)
        logger.info("Smoothing: %.2f", params.smoothing_factor)

    return True


# =============================================================================
# Render loop
# =============================================================================

def run(config: Config, session: Session) -> int:
    """
    Drive the session until quit, end of input, or max_frames.

    Returns:
        Exit code (0 = success, non-zero = error)
    """
    output = config.output
    interval = 1.0 / config.capture.fps
    writer: Optional[cv2.VideoWriter] = None
    frames = 0

    if output.autostart or not output.show_window:
        session.start()

    try:
        while True:
            tick = time.monotonic()
            frame = session.render_cycle()
            frames += 1

            if output.output_file and session.is_active:
                if writer is None:
                    height, width = frame.shape[:2]
                    fourcc = cv2.VideoWriter_fourcc(*"mp4v")
                    writer = cv2.VideoWriter(output.output_file, fourcc, config.capture.fps, (width, height))
                    if not writer.isOpened():
                        raise IOError(f"Could not open video writer: {output.output_file}")
                writer.write(frame)

            if output.max_frames is not None and frames >= output.max_frames:
                break
            if session.capture_exhausted:
                logger.info("End of input after %d frames", frames)
                break
            if session.state is SessionState.IDLE and session.last_error is not None and not output.show_window:
                print(f"Error: {session.last_error}", file=sys.stderr)
                return 1

            remaining = interval - (time.monotonic() - tick)
            if output.show_window:
                cv2.imshow(output.window_name, frame)
                key = cv2.waitKey(max(1, int(remaining * 1000)))
                if not handle_key(key, session, config.effect):
                    break
            elif remaining > 0:
                time.sleep(remaining)
    finally:
        session.stop()
        if writer is not None:
            writer.release()
            print(f"Recorded {output.output_file}")
        if output.show_window:
            cv2.destroyAllWindows()

    return 0


def main(argv: Optional[list] = None) -> int:
    """
    Main entry point for CLI.

    Args:
        argv: Command-line arguments (None = sys.argv)

    Returns:
        Exit code (0 = success, non-zero = error)
    """
    parser = create_argument_parser()
    args = parser.parse_args(argv)

    # Handle --save-config
    if args.save_config:
        template = Config.generate_default_config_template()
        with open(args.save_config, 'w') as f:
            f.write(template)
        print(f"Default configuration saved to: {args.save_config}")
        print(f"Edit this file and use with: facecamo --config {args.save_config}")
        return 0

    try:
        config = Config.from_args(args)
    except ValueError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        print(f"\nUse --help for usage information or --save-config to generate a template.", file=sys.stderr)
        return 1

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(name)s: %(message)s")
    else:
        logging.basicConfig(level=logging.INFO, format="%(message)s")

    if args.verbose:
        print("=" * 60)
        print("FaceCamo - Real-time Facial Distortion")
        print("=" * 60)
        print(f"Source: {config.capture.input_file or f'camera {config.capture.camera_index}'}")
        print(f"Resolution: {config.capture.resolution[0]}x{config.capture.resolution[1]} @ {config.capture.fps:g} fps")
        print(f"Detector: {config.detector.backend}")
        print(f"Effect: {config.effect.effect_type} (intensity {config.effect.intensity})")
        print("=" * 60)

    compositor = FrameCompositor(config.effect, frame_size=config.capture.resolution)
    session = Session(
        build_capture_factory(config),
        build_detector_factory(config),
        compositor,
        retry_on_error=config.detector.retry_on_error,
        retry_delay=config.detector.retry_delay,
    )

    try:
        return run(config, session)
    except FileNotFoundError as e:
        print(f"Error: File not found: {e}", file=sys.stderr)
        return 1
    except (AcquisitionError, DetectorUnavailableError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        return 130
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        if args.verbose:
            import traceback
            traceback.print_exc()
        return 1


if __name__ == "__main__":
    sys.exit(main())
