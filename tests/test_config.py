"""
Tests for configuration loading and validation
"""

import pytest
import yaml

from maestro.control.controller import ControllerConfig
from maestro.control.mappers import StaticConfig
from maestro.core.errors import ConfigError
from maestro.core.types import ControlMode
from maestro.detection.observations import PoseConfig
from maestro.utils.config import (
    DEFAULTS,
    DEFAULT_CONFIG_PATH,
    config_section,
    config_value,
    load_config,
    validate_config,
)


def write_yaml(path, data):
    path.write_text(yaml.safe_dump(data))
    return str(path)


class TestLoadConfig:
    """Test suite for load_config."""

    def test_bundled_config_matches_defaults(self):
        config = load_config(DEFAULT_CONFIG_PATH, required=True)
        assert config == DEFAULTS

    def test_overrides_merge_over_defaults(self, tmp_path):
        path = write_yaml(tmp_path / "c.yaml", {
            "controller": {"initial_mode": "static"},
            "slider": {"deadzone_x": 20},
        })
        config = load_config(path)
        assert config["controller"]["initial_mode"] == "static"
        assert config["controller"]["default_volume"] == 0.6
        assert config["slider"]["deadzone_x"] == 20
        assert config["slider"]["deadzone_y"] == 10

    def test_defaults_not_mutated(self, tmp_path):
        path = write_yaml(tmp_path / "c.yaml", {"fade": {"steps": 4}})
        load_config(path)
        assert DEFAULTS["fade"]["steps"] == 10

    def test_missing_file_falls_back(self, tmp_path):
        config = load_config(str(tmp_path / "absent.yaml"))
        assert config == DEFAULTS

    def test_missing_required_file(self, tmp_path):
        with pytest.raises(ConfigError, match="not found"):
            load_config(str(tmp_path / "absent.yaml"), required=True)

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("controller: [unclosed\n")
        with pytest.raises(ConfigError, match="Invalid YAML"):
            load_config(str(path))

    def test_non_mapping_root(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ConfigError, match="mapping"):
            load_config(str(path))

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert load_config(str(path)) == DEFAULTS


class TestValidateConfig:
    """Validation never raises; it only reports."""

    def test_defaults_are_valid(self):
        assert validate_config(DEFAULTS) == []

    def test_wrong_types_reported(self):
        data = {k: dict(v) for k, v in DEFAULTS.items()}
        data["fade"] = {"steps": "ten", "step_interval_ms": 50}
        data["slider"] = {"deadzone_x": True}
        warnings = validate_config(data)
        assert any("fade.steps" in w for w in warnings)
        assert any("slider.deadzone_x" in w for w in warnings)

    def test_int_accepted_for_float(self):
        data = {k: dict(v) for k, v in DEFAULTS.items()}
        data["controller"]["default_volume"] = 1
        assert validate_config(data) == []

    def test_missing_section_reported(self):
        data = {k: v for k, v in DEFAULTS.items() if k != "pose"}
        assert validate_config(data) == ["Missing config section: 'pose'"]


class TestConfigObjects:
    """Dataclass configs built from the merged dictionary."""

    def test_controller_config_from_loaded_yaml(self, tmp_path):
        path = write_yaml(tmp_path / "c.yaml", {
            "controller": {"initial_mode": "static", "tick_interval_ms": 40},
            "static": {"volume_tiers": {1: 0.2, 2: 0.4}},
            "fade": {"steps": 5},
        })
        config = ControllerConfig.from_dict(load_config(path))
        assert config.initial_mode is ControlMode.STATIC
        assert config.tick_interval_ms == 40
        assert config.static.volume_tiers == {1: 0.2, 2: 0.4}
        assert config.static.rate_tiers[4] == 1.5
        assert config.fade.duration_ms == 250

    def test_unknown_mode_falls_back_to_slider(self, caplog):
        config = ControllerConfig.from_dict({"controller": {"initial_mode": "turbo"}})
        assert config.initial_mode is ControlMode.SLIDER
        assert "Unknown control mode" in caplog.text

    def test_wrong_types_fall_back_to_defaults(self):
        config = ControllerConfig.from_dict({
            "controller": {"default_volume": "loud", "tick_interval_ms": None,
                           "tracking_enabled": "yes"},
            "fade": {"steps": "ten"},
            "smoothing": {"volume_step": [0.1]},
            "slider": {"deadzone_x": True, "rate_gain": 0.01},
            "pose": {"canvas_width": "wide"},
        })
        assert config.default_volume == 0.6
        assert config.tick_interval_ms == 50
        assert config.tracking_enabled is True
        assert config.fade.steps == 10
        assert config.smoothing.volume_step == 0.02
        assert config.slider.deadzone_x == 15.0
        assert config.slider.rate_gain == 0.01
        assert config.canvas_width == 640

    def test_non_mapping_sections_use_defaults(self):
        config = ControllerConfig.from_dict({"controller": "static", "fade": 3,
                                             "static": None})
        assert config == ControllerConfig()
        assert ControllerConfig.from_dict(None) == ControllerConfig()

    def test_malformed_tiers_use_defaults(self):
        config = ControllerConfig.from_dict({
            "static": {"volume_tiers": {"one": 0.1}, "rate_tiers": [0.5, 1.0]},
        })
        assert config.static == StaticConfig()

    def test_canvas_from_pose_section(self):
        config = ControllerConfig.from_dict({"pose": {"canvas_width": 1280, "canvas_height": 0}})
        assert (config.canvas_width, config.canvas_height) == (1280, 1)

    def test_pose_config(self):
        config = PoseConfig.from_dict(DEFAULTS["pose"])
        assert config.mirror_correction is True
        assert (config.canvas_width, config.canvas_height) == (640, 480)


class TestConfigValue:
    """Typed reads with fallback."""

    def test_matching_type_kept(self):
        assert config_value({"steps": 4}, "steps", 10) == 4

    def test_int_widened_to_float(self):
        value = config_value({"gain": 1}, "gain", 0.5)
        assert value == 1.0
        assert isinstance(value, float)

    @pytest.mark.parametrize("value", [True, "1", None])
    def test_wrong_type_uses_default(self, value, caplog):
        assert config_value({"steps": value}, "steps", 10) == 10
        assert "using default 10" in caplog.text

    def test_missing_key_and_bad_section(self):
        assert config_value({}, "steps", 10) == 10
        assert config_value("nope", "steps", 10) == 10
        assert config_section({"fade": [1, 2]}, "fade") == {}
        assert config_section({"fade": {"steps": 3}}, "fade") == {"steps": 3}
