"""Integration tests for the command-line interface."""

import json
from pathlib import Path

import numpy as np
import pytest
import typer
from PIL import Image
from typer.testing import CliRunner

from inkflow import __version__
from inkflow.cli.app import app, default_output_path, parse_settings, parse_value

runner = CliRunner()


@pytest.fixture
def image_path(tmp_path: Path) -> Path:
    """A 60x40 dark gray PNG."""
    path = tmp_path / "portrait.png"
    Image.fromarray(np.full((40, 60, 3), 70, dtype=np.uint8)).save(path)
    return path


class TestParsing:
    """Tests for --set parsing helpers."""

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [("true", True), ("Off", False), ("12", 12), ("0.5", 0.5), ("Spirals", "Spirals")],
    )
    def test_parse_value(self, raw, expected):
        """Test value interpretation."""
        assert parse_value(raw) == expected

    def test_parse_settings(self):
        """Test Label=value parsing with spaces in labels."""
        params = parse_settings(["Max Stipples=800", "TSP Art=true", "Stipple type=Hexagons"])
        assert params == {"Max Stipples": 800, "TSP Art": True, "Stipple type": "Hexagons"}

    def test_parse_settings_rejects_missing_equals(self):
        """Test that an item without '=' is rejected."""
        with pytest.raises(typer.BadParameter):
            parse_settings(["Max Stipples"])

    def test_default_output_path(self):
        """Test the default result file name."""
        assert default_output_path(Path("a/b.png"), "stipple") == Path("a/b-stipple.json")


class TestCommands:
    """Tests for CLI commands."""

    def test_version(self):
        """Test the --version flag."""
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_algorithms(self):
        """Test listing algorithms."""
        result = runner.invoke(app, ["algorithms"])
        assert result.exit_code == 0
        for name in ("stipple", "stippledepth", "flowfield", "constellation", "circlepack"):
            assert name in result.output

    def test_controls(self):
        """Test showing an algorithm's controls."""
        result = runner.invoke(app, ["controls", "stipple"])
        assert result.exit_code == 0
        assert "Stipples" in result.output

    def test_controls_unknown_algorithm(self):
        """Test that an unknown algorithm exits with an error."""
        result = runner.invoke(app, ["controls", "watercolor"])
        assert result.exit_code == 1

    def test_render(self, image_path: Path, tmp_path: Path):
        """Test rendering an image to a JSON result."""
        output = tmp_path / "out.json"
        result = runner.invoke(
            app,
            [
                "render",
                str(image_path),
                "-s",
                "Max Stipples=500",
                "-s",
                "Max Iterations=2",
                "--seed",
                "5",
                "-o",
                str(output),
                "-j",
                "1",
                "-q",
            ],
        )
        assert result.exit_code == 0, result.output

        document = json.loads(output.read_text())
        assert document["algorithm"] == "stipple"
        assert document["seed"] == 5
        assert len(document["paths"]) == 500

    def test_render_default_output(self, image_path: Path):
        """Test that the result lands beside the image by default."""
        result = runner.invoke(
            app,
            [
                "render",
                str(image_path),
                "-a",
                "flowfield",
                "-s",
                "Min Separation=2",
                "-s",
                "Max Separation=5",
                "-j",
                "1",
                "-q",
            ],
        )
        assert result.exit_code == 0, result.output
        assert (image_path.parent / "portrait-flowfield.json").exists()

    def test_render_missing_file(self, tmp_path: Path):
        """Test that a missing image exits with an error."""
        result = runner.invoke(app, ["render", str(tmp_path / "missing.png")])
        assert result.exit_code == 1

    def test_render_unknown_algorithm(self, image_path: Path):
        """Test that an unknown algorithm exits with an error."""
        result = runner.invoke(app, ["render", str(image_path), "-a", "watercolor", "-q"])
        assert result.exit_code == 1

    def test_render_verbose_and_quiet(self, image_path: Path):
        """Test that --verbose and --quiet are mutually exclusive."""
        result = runner.invoke(app, ["render", str(image_path), "-v", "-q"])
        assert result.exit_code == 1
