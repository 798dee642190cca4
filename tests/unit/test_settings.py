"""Tests for configuration models."""

import math

import pytest

from inkflow.config import (
    BrightnessConfig,
    ControlType,
    EmitterConfig,
    FlowFieldConfig,
    InkflowSettings,
    StippleConfig,
    StippleDepthConfig,
    get_default_settings,
)
from inkflow.core import get_algorithm, list_algorithms
from inkflow.exceptions import UnknownAlgorithmError


class TestAlgorithmConfig:
    """Tests for label-addressed parameter parsing."""

    def test_defaults(self):
        """Test default values with no input."""
        config = StippleConfig.from_params({})
        assert config.max_stipples == 2000
        assert config.tsp_art is False
        assert config.seed == -1

    def test_labels_and_field_names(self):
        """Test that both control labels and field names are accepted."""
        by_label = StippleConfig.from_params({"Max Stipples": 4000})
        by_name = StippleConfig.from_params({"max_stipples": 4000})
        assert by_label.max_stipples == by_name.max_stipples == 4000

    def test_clamping(self):
        """Test that out-of-range numbers are clamped, not rejected."""
        config = StippleConfig.from_params({"Max Stipples": 10**9, "Max Iterations": -5})
        assert config.max_stipples == 10000
        assert config.max_iterations == 2

    @pytest.mark.parametrize("bad", [math.nan, math.inf, "abc", None, [1, 2]])
    def test_unusable_values_fall_back(self, bad):
        """Test that NaN, infinities and garbage fall back to defaults."""
        config = FlowFieldConfig.from_params({"Noise Scale": bad, "Max Length": bad})
        assert config.noise_scale == 0.001
        assert config.max_length == 40.0

    def test_numeric_strings(self):
        """Test that numeric strings are parsed."""
        config = StippleConfig.from_params({"Max Stipples": "1234.6"})
        assert config.max_stipples == 1235

    def test_bool_coercion(self):
        """Test checkbox values from various encodings."""
        assert StippleConfig.from_params({"TSP Art": "true"}).tsp_art is True
        assert StippleConfig.from_params({"TSP Art": 0}).tsp_art is False
        assert StippleConfig.from_params({"TSP Art": "maybe"}).tsp_art is False

    def test_select_options(self):
        """Test that unknown select values fall back to the default."""
        assert StippleConfig.from_params({"Stipple type": "Spirals"}).stipple_type == "Spirals"
        assert StippleConfig.from_params({"Stipple type": "Squares"}).stipple_type == "Circles"

    def test_non_mapping_input(self):
        """Test that a non-mapping input gives defaults."""
        assert StippleConfig.model_validate([1, 2, 3]) == StippleConfig()

    def test_unknown_keys_ignored(self):
        """Test that extra keys are ignored."""
        config = StippleDepthConfig.from_params({"Nope": 1, "Depth Influence": 0.5})
        assert config.depth_influence == 0.5

    def test_frozen(self):
        """Test that configs are immutable."""
        config = BrightnessConfig()
        with pytest.raises(ValueError):
            config.contrast = 10


class TestControls:
    """Tests for control self-description."""

    def test_range_control(self):
        """Test a range control declaration."""
        spec = next(s for s in StippleConfig.controls() if s.label == "Max Stipples")
        assert spec.type == ControlType.RANGE
        assert spec.value == 2000
        assert spec.min == 500
        assert spec.max == 10000

    def test_checkbox_control(self):
        """Test a checkbox declaration."""
        spec = next(s for s in StippleConfig.controls() if s.label == "TSP Art")
        assert spec.type == ControlType.CHECKBOX
        assert spec.checked is False
        assert "value" not in spec.to_dict()

    def test_select_control(self):
        """Test a select declaration."""
        spec = next(s for s in FlowFieldConfig.controls() if s.label == "Field Type")
        assert spec.type == ControlType.SELECT
        assert spec.options == ["noise", "curl_noise"]

    def test_algorithm_controls_include_image_controls(self):
        """Test that every algorithm exposes the shared image controls first."""
        for name in list_algorithms():
            labels = [s.label for s in get_algorithm(name).controls()]
            assert labels[0] == "Inverted"
            assert "Blur radius" in labels
            assert len(labels) == len(set(labels))


class TestSettings:
    """Tests for application settings."""

    def test_default_settings(self):
        """Test the defaults."""
        settings = get_default_settings()
        assert isinstance(settings, InkflowSettings)
        assert settings.emitter.max_path_length == 50000.0
        assert settings.processing.max_workers is None
        assert settings.logging.log_file is None

    def test_emitter_validation(self):
        """Test that emitter settings are validated."""
        with pytest.raises(ValueError):
            EmitterConfig(max_path_length=0)

    def test_unknown_algorithm(self):
        """Test that an unknown algorithm name is an error."""
        with pytest.raises(UnknownAlgorithmError):
            get_algorithm("watercolor")
