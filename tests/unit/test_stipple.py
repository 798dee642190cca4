"""Tests for weighted Voronoi stippling."""

import numpy as np
import pytest

from inkflow.config import StippleConfig, StippleType
from inkflow.core.brightness import BrightnessField
from inkflow.core.context import JobContext
from inkflow.core.stipple import (
    BORDER,
    StipplingEngine,
    StippleStage,
    WeightTable,
    cell_scanlines,
    weighted_centroid,
)
from inkflow.exceptions import JobCancelledError


def split_field(width: int = 120, height: int = 60) -> BrightnessField:
    """White (no ink) left half, full ink right half."""
    grid = np.zeros((height, width))
    grid[:, width // 2 :] = 255.0
    return BrightnessField(grid)


def make_config(**params) -> StippleConfig:
    base = {"Max Stipples": 500, "Max Iterations": 5}
    base.update(params)
    return StippleConfig.from_params(base)


class TestScanlines:
    """Tests for cell rasterisation and centroids."""

    def test_square_spans(self):
        """Test the row spans of an axis-aligned square."""
        square = np.array([(2.0, 2.0), (6.0, 2.0), (6.0, 6.0), (2.0, 6.0)])
        spans = cell_scanlines(square)
        assert set(spans) == {2, 3, 4, 5, 6}
        assert all(span == (2, 6) for span in spans.values())

    def test_uniform_centroid_is_center(self):
        """Test that a uniform field puts the centroid at the cell centre."""
        table = WeightTable(BrightnessField.uniform(20, 20, 100))
        square = np.array([(2.0, 2.0), (8.0, 2.0), (8.0, 8.0), (2.0, 8.0)])
        cx, cy = weighted_centroid(square, table)
        assert cx == pytest.approx(5.0)
        assert cy == pytest.approx(5.0)

    def test_centroid_pulled_to_ink(self):
        """Test that the centroid moves toward the inked side."""
        table = WeightTable(split_field(20, 20))
        square = np.array([(2.0, 2.0), (17.0, 2.0), (17.0, 17.0), (2.0, 17.0)])
        cx, _ = weighted_centroid(square, table)
        assert cx > 10.0

    def test_white_cell_still_has_centroid(self):
        """Test that the epsilon weight avoids dividing by zero."""
        table = WeightTable(BrightnessField.uniform(20, 20, 0))
        square = np.array([(2.0, 2.0), (8.0, 2.0), (8.0, 8.0), (2.0, 8.0)])
        assert weighted_centroid(square, table) is not None


class TestStipplingEngine:
    """Tests for seeding, relaxation and rendering."""

    def test_seed_count_and_bounds(self):
        """Test that seeding places exactly the requested number inside the border."""
        field = BrightnessField.uniform(100, 80, 127)
        engine = StipplingEngine(field, make_config(), np.random.default_rng(1))
        particles = engine.seed()

        assert len(particles) == 500
        for p in particles:
            assert BORDER <= p.x <= 100 - BORDER
            assert BORDER <= p.y <= 80 - BORDER

    def test_seed_avoids_white(self):
        """Test that no particle lands where there is no ink."""
        engine = StipplingEngine(split_field(), make_config(), np.random.default_rng(2))
        particles = engine.seed()
        assert all(p.x >= 60 for p in particles)

    def test_blank_field_gives_no_particles(self):
        """Test that an all-white image yields an empty result rather than hanging."""
        field = BrightnessField.uniform(30, 30, 0)
        engine = StipplingEngine(field, make_config(), np.random.default_rng(3))
        pathset = engine.run()
        assert pathset.is_empty()

    def test_relaxed_count_and_bounds(self):
        """Test that relaxation keeps every particle and the border."""
        field = BrightnessField.uniform(100, 80, 200)
        engine = StipplingEngine(field, make_config(), np.random.default_rng(4))
        engine.seed()
        engine.relax()

        assert len(engine.particles) == 500
        for p in engine.particles:
            assert BORDER <= p.x <= 100 - BORDER
            assert BORDER <= p.y <= 80 - BORDER

    def test_seeding_matches_ink_probability(self):
        """Test that seeds split between halves in proportion to their ink.

        Weights are 40 and 255 over equal areas, so about 255 / 295 of the
        seeds land on the dark half.
        """
        grid = np.full((60, 120), 40.0)
        grid[:, 60:] = 255.0
        engine = StipplingEngine(BrightnessField(grid), make_config(), np.random.default_rng(5))
        engine.seed()

        share = sum(1 for p in engine.particles if p.x >= 60) / len(engine.particles)
        assert share == pytest.approx(255.0 / 295.0, abs=0.05)

    def test_density_follows_ink(self):
        """Test that relaxed points stay concentrated on the dark half.

        Lloyd relaxation drifts the density from the ink ratio towards its
        square root, so the dark share ends between 0.72 and 0.86.
        """
        grid = np.full((60, 120), 40.0)
        grid[:, 60:] = 255.0
        field = BrightnessField(grid)
        engine = StipplingEngine(
            field, make_config(**{"Max Iterations": 10}), np.random.default_rng(5)
        )
        engine.seed()
        engine.relax()

        share = sum(1 for p in engine.particles if p.x >= 60) / len(engine.particles)
        assert 0.68 <= share <= 0.90

    def test_relaxation_reports_iterations(self):
        """Test that each iteration is a checkpoint with a status message."""
        messages: list[str] = []
        context = JobContext(progress=messages.append)
        field = BrightnessField.uniform(60, 60, 127)
        engine = StipplingEngine(
            field, make_config(**{"Max Iterations": 3}), np.random.default_rng(6), context
        )
        engine.run()
        assert messages[:3] == ["Iteration 0", "Iteration 1", "Iteration 2"]
        assert messages[-1] == "Done"
        assert engine.stage == StippleStage.DONE

    def test_cancellation(self):
        """Test that a set cancel event stops the run."""

        class _Set:
            def is_set(self) -> bool:
                return True

        context = JobContext(job_id="j1", cancel_event=_Set())
        field = BrightnessField.uniform(60, 60, 127)
        engine = StipplingEngine(field, make_config(), np.random.default_rng(7), context)
        with pytest.raises(JobCancelledError):
            engine.run()

    def test_reproducible(self):
        """Test that the same seed gives the same particles."""
        field = BrightnessField.uniform(60, 60, 127)
        runs = []
        for _ in range(2):
            engine = StipplingEngine(field, make_config(), np.random.default_rng(42))
            engine.seed()
            engine.relax()
            runs.append([p.to_tuple() for p in engine.particles])
        assert runs[0] == runs[1]


class TestRendering:
    """Tests for the render stage."""

    def _engine(self, **params) -> StipplingEngine:
        field = BrightnessField.uniform(60, 60, 255)
        engine = StipplingEngine(
            field, make_config(**{"Max Iterations": 2, **params}), np.random.default_rng(11)
        )
        engine.seed()
        engine.relax()
        return engine

    def test_circles_sized_by_brightness(self):
        """Test that circles get min size plus the scaled brightness."""
        engine = self._engine(**{"Min dot size": 1.0, "Dot size range": 2.0})
        pathset = engine.render()
        assert len(pathset.circles) == 500
        assert all(c.r == pytest.approx(3.0) for c in pathset.circles)

    def test_tsp_art_single_line(self):
        """Test that TSP art renders one polyline through every particle."""
        engine = self._engine(**{"TSP Art": True})
        pathset = engine.render(stroke_width=2.0)
        assert len(pathset.lines) == 1
        assert len(pathset.lines[0]) == 500
        assert not pathset.circles
        assert pathset.stroke_width == 2.0

    @pytest.mark.parametrize(
        "kind",
        [StippleType.SPIRALS, StippleType.HEXAGONS, StippleType.PENTAGRAMS, StippleType.SNOWFLAKES],
    )
    def test_shapes(self, kind):
        """Test that shape types render as polylines."""
        engine = self._engine(**{"Stipple type": kind.value})
        pathset = engine.render()
        assert pathset.lines
        assert not pathset.circles
        assert all(len(line) >= 2 for line in pathset.lines)
