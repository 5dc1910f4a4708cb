"""
Tests for configuration defaults, validation, argument parsing and YAML.
"""

import pytest

from facecamo.config import (
    EFFECT_TYPES,
    STYLE_VARIANTS,
    Config,
    DistortionParameters,
    EffectStyle,
    create_argument_parser,
    default_styles,
)


def config_from(argv):
    return Config.from_args(create_argument_parser().parse_args(argv))


class TestDistortionParameters:
    """Test effect parameters."""

    def test_defaults(self):
        params = DistortionParameters()
        assert params.effect_type == "stretch"
        assert params.intensity == 1.0
        assert params.smoothing_factor == 0.3
        params.validate()

    def test_default_styles(self):
        styles = default_styles()
        assert set(styles) == set(EFFECT_TYPES)
        for effect, variants in STYLE_VARIANTS.items():
            assert styles[effect].variant == variants[0]
        assert styles["mosaic"].intensity == 10.0
        assert styles["stretch"] == EffectStyle()

    def test_style_defaults_to_active_effect(self):
        params = DistortionParameters(effect_type="juggalo")
        assert params.style().variant == "classic"
        assert params.style("gan3d").intensity == 0.5

    def test_set_style_partial(self):
        params = DistortionParameters()
        params.set_style("gan3d", variant="organic")
        assert params.style("gan3d") == EffectStyle("organic", 0.5)
        params.set_style("gan3d", intensity=0.9)
        assert params.style("gan3d") == EffectStyle("organic", 0.9)

    def test_styles_not_shared(self):
        a, b = DistortionParameters(), DistortionParameters()
        a.set_style("dazzle", variant="minimal")
        assert b.style("dazzle").variant == "geometric"

    @pytest.mark.parametrize("kwargs, match", [
        ({"effect_type": "sparkle"}, "Unknown effect"),
        ({"intensity": 2.5}, "intensity"),
        ({"intensity": -0.1}, "intensity"),
        ({"smoothing_factor": 1.5}, "smoothing_factor"),
    ])
    def test_validate_rejects(self, kwargs, match):
        with pytest.raises(ValueError, match=match):
            DistortionParameters(**kwargs).validate()

    def test_validate_rejects_bad_style(self):
        params = DistortionParameters()
        params.set_style("contour", variant="gothic")
        with pytest.raises(ValueError, match="contour variant"):
            params.validate()

        params = DistortionParameters()
        params.set_style("mosaic", intensity=2.0)
        with pytest.raises(ValueError, match="mosaic style intensity"):
            params.validate()


class TestConfigFromArgs:
    """Test building configs from command-line arguments."""

    def test_defaults(self):
        config = config_from([])
        assert config == Config()
        assert config.capture.resolution == (640, 480)
        assert config.detector.backend == "mediapipe"
        assert config.output.show_window

    def test_effect_options(self):
        config = config_from([
            "--effect", "juggalo", "--variant", "extreme",
            "--intensity", "1.5", "--smoothing", "0.6",
        ])
        assert config.effect.effect_type == "juggalo"
        assert config.effect.style().variant == "extreme"
        assert config.effect.intensity == 1.5
        assert config.effect.smoothing_factor == 0.6

    def test_style_intensity_applies_to_selected_effect(self):
        config = config_from(["--effect", "mosaic", "--style-intensity", "25"])
        assert config.effect.style("mosaic").intensity == 25.0
        assert config.effect.style("blur").intensity == 0.5

    def test_capture_options(self):
        config = config_from(["--input", "clip.mp4", "--resolution", "320X240", "--fps", "15"])
        assert config.capture.input_file == "clip.mp4"
        assert config.capture.resolution == (320, 240)
        assert config.capture.fps == 15.0

    def test_bad_resolution(self):
        with pytest.raises(ValueError, match="resolution"):
            config_from(["--resolution", "large"])

    def test_replay_file_implies_backend(self):
        config = config_from(["--replay-file", "faces.json"])
        assert config.detector.backend == "replay"
        assert config.detector.replay_file == "faces.json"

    def test_replay_backend_requires_file(self):
        with pytest.raises(ValueError, match="replay"):
            config_from(["--detector", "replay"])

    def test_output_options(self):
        config = config_from(["--no-window", "--output", "out.mp4", "--max-frames", "10", "--no-retry"])
        assert not config.output.show_window
        assert config.output.output_file == "out.mp4"
        assert config.output.max_frames == 10
        assert not config.detector.retry_on_error

    def test_invalid_variant_rejected(self):
        with pytest.raises(ValueError, match="variant"):
            config_from(["--effect", "dazzle", "--variant", "plaid"])


class TestConfigYaml:
    """Test YAML loading and saving."""

    def test_round_trip(self, tmp_path):
        config = Config()
        config.capture.input_file = "clip.mp4"
        config.detector.backend = "replay"
        config.detector.replay_file = "faces.json"
        config.effect.effect_type = "cvdazzle"
        config.effect.set_style("cvdazzle", variant="occlusion")
        config.effect.set_style("mosaic", intensity=20.0)
        config.output.max_frames = 50

        path = tmp_path / "config.yaml"
        config.to_yaml(str(path))
        loaded = Config.from_yaml(str(path))

        assert loaded == config
        loaded.validate()

    def test_template_matches_defaults(self, tmp_path):
        path = tmp_path / "template.yaml"
        path.write_text(Config.generate_default_config_template())
        loaded = Config.from_yaml(str(path))
        loaded.validate()
        assert loaded == Config()

    def test_partial_file(self, tmp_path):
        path = tmp_path / "partial.yaml"
        path.write_text("effect:\n  type: blur\n  styles:\n    blur: {intensity: 0.8}\n")
        loaded = Config.from_yaml(str(path))
        assert loaded.effect.effect_type == "blur"
        assert loaded.effect.style().intensity == 0.8
        assert loaded.capture == Config().capture

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert Config.from_yaml(str(path)) == Config()

    def test_command_line_overrides_file(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("effect:\n  type: blur\n  intensity: 0.5\n")
        config = config_from(["--config", str(path), "--intensity", "1.8"])
        assert config.effect.effect_type == "blur"
        assert config.effect.intensity == 1.8
