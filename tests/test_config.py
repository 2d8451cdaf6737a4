"""
Smoke tests for configuration loading and validation.
"""

import pytest

from main import load_config, validate_config


class TestValidateConfig:
    """Tests for validate_config function."""

    def test_valid_config_passes(self, valid_config):
        """A complete valid config passes validation."""
        is_valid, error = validate_config(valid_config)

        assert is_valid is True
        assert error is None

    @pytest.mark.parametrize("section", ["camera", "detection", "log_path", "log_level"])
    def test_missing_required_section(self, valid_config, section):
        del valid_config[section]

        is_valid, error = validate_config(valid_config)

        assert is_valid is False
        assert section in error.lower()

    def test_optional_sections_may_be_absent(self, valid_config):
        for section in ("overlay", "loop", "web", "default_mode"):
            del valid_config[section]

        is_valid, error = validate_config(valid_config)

        assert is_valid is True

    def test_invalid_device_id_type(self, valid_config):
        valid_config["camera"]["device_id"] = [1, 2, 3]

        is_valid, error = validate_config(valid_config)

        assert is_valid is False
        assert "device_id" in error.lower()

    def test_negative_device_id(self, valid_config):
        valid_config["camera"]["device_id"] = -1

        is_valid, error = validate_config(valid_config)

        assert is_valid is False
        assert "device_id" in error.lower()

    def test_string_device_id_valid(self, valid_config):
        """String device_id (video file) is valid."""
        valid_config["camera"]["device_id"] = "samples/street.mp4"

        is_valid, error = validate_config(valid_config)

        assert is_valid is True

    def test_invalid_resolution_length(self, valid_config):
        valid_config["camera"]["resolution"] = [1920]

        is_valid, error = validate_config(valid_config)

        assert is_valid is False
        assert "resolution" in error.lower()

    def test_invalid_camera_fps(self, valid_config):
        valid_config["camera"]["fps"] = 0

        is_valid, error = validate_config(valid_config)

        assert is_valid is False
        assert "fps" in error.lower()

    def test_invalid_rotate(self, valid_config):
        valid_config["camera"]["rotate"] = 45

        is_valid, error = validate_config(valid_config)

        assert is_valid is False
        assert "rotate" in error.lower()

    def test_invalid_detection_backend(self, valid_config):
        valid_config["detection"]["backend"] = "magic"

        is_valid, error = validate_config(valid_config)

        assert is_valid is False
        assert "backend" in error.lower()

    def test_yolo_backend_requires_model(self, valid_config):
        valid_config["detection"]["yolo"] = {}

        is_valid, error = validate_config(valid_config)

        assert is_valid is False
        assert "model" in error.lower()

    def test_ssd_backend_requires_files(self, valid_config):
        valid_config["detection"] = {"backend": "ssd", "ssd": {"model": "m.pb", "config": "m.pbtxt"}}

        is_valid, error = validate_config(valid_config)

        assert is_valid is False
        assert "labels" in error.lower()

    def test_ssd_backend_valid(self, valid_config):
        valid_config["detection"] = {
            "backend": "ssd",
            "ssd": {"model": "m.pb", "config": "m.pbtxt", "labels": "coco.names"},
        }

        is_valid, error = validate_config(valid_config)

        assert is_valid is True

    @pytest.mark.parametrize("threshold", [None, 0, 0.5, 1])
    def test_confidence_threshold_accepted(self, valid_config, threshold):
        valid_config["overlay"]["confidence_threshold"] = threshold

        is_valid, error = validate_config(valid_config)

        assert is_valid is True

    @pytest.mark.parametrize("threshold", [-0.1, 1.5, "high"])
    def test_confidence_threshold_rejected(self, valid_config, threshold):
        valid_config["overlay"]["confidence_threshold"] = threshold

        is_valid, error = validate_config(valid_config)

        assert is_valid is False
        assert "confidence_threshold" in error.lower()

    def test_invalid_box_color(self, valid_config):
        valid_config["overlay"]["box_color"] = [0, 300, 0]

        is_valid, error = validate_config(valid_config)

        assert is_valid is False
        assert "box_color" in error.lower()

    def test_invalid_loop_fps(self, valid_config):
        valid_config["loop"]["fps"] = 0

        is_valid, error = validate_config(valid_config)

        assert is_valid is False
        assert "loop.fps" in error.lower()

    def test_invalid_max_consecutive_failures(self, valid_config):
        valid_config["loop"]["max_consecutive_failures"] = 0

        is_valid, error = validate_config(valid_config)

        assert is_valid is False
        assert "max_consecutive_failures" in error.lower()

    def test_invalid_port(self, valid_config):
        valid_config["web"]["port"] = 70000

        is_valid, error = validate_config(valid_config)

        assert is_valid is False
        assert "port" in error.lower()

    def test_invalid_default_mode(self, valid_config):
        valid_config["default_mode"] = "video"

        is_valid, error = validate_config(valid_config)

        assert is_valid is False
        assert "default_mode" in error.lower()

    def test_invalid_log_level(self, valid_config):
        valid_config["log_level"] = "VERBOSE"

        is_valid, error = validate_config(valid_config)

        assert is_valid is False
        assert "log_level" in error.lower()


class TestLoadConfig:
    """Tests for load_config function."""

    def test_loads_default_yaml(self, temp_config_dir):
        """Config loads from default.yaml when only it exists."""
        config_path = str(temp_config_dir / "config.yaml")

        config = load_config(config_path)

        assert config["camera"]["device_id"] == 0
        assert config["camera"]["resolution"] == [640, 480]
        assert config["overlay"]["confidence_threshold"] is None

    def test_local_overrides_merge(self, temp_config_dir):
        """Local config.yaml overrides default.yaml."""
        config_yaml = temp_config_dir / "config.yaml"
        config_yaml.write_text("""
camera:
  resolution: [1280, 720]
overlay:
  confidence_threshold: 0.6
""")

        config = load_config(str(config_yaml))

        assert config["camera"]["resolution"] == [1280, 720]
        assert config["overlay"]["confidence_threshold"] == 0.6
        # Original values preserved
        assert config["camera"]["fps"] == 30
        assert config["overlay"]["label_height"] == 20

    def test_deep_merge_preserves_nested(self, temp_config_dir):
        config_yaml = temp_config_dir / "config.yaml"
        config_yaml.write_text("""
detection:
  yolo:
    model: "yolov8s.pt"
""")

        config = load_config(str(config_yaml))

        assert config["detection"]["yolo"]["model"] == "yolov8s.pt"
        assert config["detection"]["yolo"]["conf_threshold"] == 0.25
        assert config["detection"]["backend"] == "yolo"

    def test_explicit_config_applied_last(self, temp_config_dir):
        (temp_config_dir / "config.yaml").write_text("loop:\n  fps: 15\n")
        explicit = temp_config_dir / "demo.yaml"
        explicit.write_text("loop:\n  fps: 5\n")

        config = load_config(str(explicit))

        assert config["loop"]["fps"] == 5
        assert config["loop"]["max_consecutive_failures"] == 1

    def test_loaded_defaults_validate(self, temp_config_dir):
        config = load_config(str(temp_config_dir / "config.yaml"))

        is_valid, error = validate_config(config)

        assert is_valid is True, error

    def test_invalid_yaml_exits(self, temp_config_dir):
        (temp_config_dir / "config.yaml").write_text("camera: [unclosed\n")

        with pytest.raises(SystemExit):
            load_config(str(temp_config_dir / "config.yaml"))
