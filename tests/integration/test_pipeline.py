"""Integration tests for the image-to-path pipeline.

Runs every registered algorithm on synthetic images to verify:
- Relaxed stipples spread evenly over a uniform image
- Each algorithm produces valid path strings
- Output written through the I/O layer is loadable
"""

import json
import math
import re
from pathlib import Path

import numpy as np
import pytest
from conftest import make_rgba, make_split_rgba
from PIL import Image

from inkflow.config import StippleConfig
from inkflow.core import get_algorithm, list_algorithms
from inkflow.core.brightness import BrightnessField
from inkflow.core.processor import run_job
from inkflow.core.spatial_index import IndexEntry, RTree
from inkflow.core.stipple import StipplingEngine
from inkflow.domain import Job, JobResult
from inkflow.io import ImageReader, ResultWriter

PATH_TOKEN = re.compile(r"^[MLCaZ0-9.,\s-]*$")


def mean_nearest_distance(points: list[tuple[float, float]]) -> float:
    tree = RTree().bulk_load(IndexEntry.point(x, y) for x, y in points)
    total = 0.0
    for x, y in points:
        # The nearest entry is the point itself
        _, other = tree.knn(x, y, k=2)
        ox, oy = other.center
        total += math.hypot(ox - x, oy - y)
    return total / len(points)


class TestStippleDistribution:
    """Test stipple spacing on a uniform image."""

    def test_relaxed_spacing_is_even(self) -> None:
        """Test that 500 relaxed stipples on 200x200 sit about 8px apart."""
        field = BrightnessField.uniform(200, 200, 127)
        config = StippleConfig.from_params({"Max Stipples": 500, "Max Iterations": 20})
        engine = StipplingEngine(field, config, np.random.default_rng(11))
        engine.seed()
        engine.relax()

        assert len(engine.particles) == 500
        mean = mean_nearest_distance([p.to_tuple() for p in engine.particles])
        assert 7.0 <= mean <= 9.0

    def test_relaxation_improves_spacing(self) -> None:
        """Test that relaxation spreads out clumped random seeds."""
        field = BrightnessField.uniform(200, 200, 127)
        config = StippleConfig.from_params({"Max Stipples": 500, "Max Iterations": 20})
        engine = StipplingEngine(field, config, np.random.default_rng(5))
        engine.seed()
        before = mean_nearest_distance([p.to_tuple() for p in engine.particles])
        engine.relax()
        after = mean_nearest_distance([p.to_tuple() for p in engine.particles])
        assert after > before


class TestAlgorithms:
    """Test each registered algorithm end to end."""

    @pytest.mark.parametrize("name", list_algorithms())
    def test_algorithm_produces_paths(self, name: str) -> None:
        """Test that an algorithm turns a split image into path strings."""
        job = Job(
            algorithm=name,
            pixels=make_split_rgba(120, 60),
            width=120,
            height=60,
            config={
                "Seed": 4,
                "Max Stipples": 500,
                "Max Iterations": 3,
                "Min Separation": 2,
                "Max Separation": 6,
            },
        )
        data = run_job(job.to_dict())

        assert "error" not in data
        result = JobResult.from_dict(data)
        assert result.segments
        assert result.seed == 4
        for segment in result.segments:
            assert segment.startswith("M")
            assert PATH_TOKEN.match(segment)

    def test_algorithm_run_directly(self) -> None:
        """Test running an algorithm without the job runner."""
        job = Job(
            algorithm="stipple",
            pixels=make_rgba(80, 80, 40),
            width=80,
            height=80,
            config={"Seed": 8, "Max Stipples": 500, "Max Iterations": 2, "TSP Art": True},
        )
        output = get_algorithm("stipple").run(job)

        assert output.seed == 8
        assert len(output.pathset.lines) == 1
        assert len(output.pathset.lines[0]) == 500


class TestFileRoundTrip:
    """Test loading an image file and writing the result document."""

    def test_image_to_json(self, tmp_path: Path) -> None:
        """Test the reader, job runner and writer together."""
        data = np.full((50, 70, 3), 90, dtype=np.uint8)
        image_path = tmp_path / "input.png"
        Image.fromarray(data).save(image_path)

        reader = ImageReader(image_path)
        reader.load()
        job = reader.to_job("stipple", {"Seed": 3, "Max Stipples": 500, "Max Iterations": 2})
        result = JobResult.from_dict(run_job(job.to_dict()))

        output = tmp_path / "result.json"
        ResultWriter(output).write(result, reader.width, reader.height)
        document = json.loads(output.read_text())

        assert document["width"] == 70
        assert document["height"] == 50
        assert document["seed"] == 3
        assert len(document["paths"]) == 500
