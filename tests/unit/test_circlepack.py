"""Tests for circle packing."""

import numpy as np
import pytest

from inkflow.config import CirclePackConfig
from inkflow.core.brightness import BrightnessField
from inkflow.core.circlepack import circle_radius, fits, pack_circles
from inkflow.core.spatial_index import IndexEntry, RTree
from inkflow.domain import Circle


def make_config(**params) -> CirclePackConfig:
    return CirclePackConfig.from_params(params)


def placed(circle: Circle, padding: float = 0.0) -> IndexEntry:
    reach = circle.r + padding
    return IndexEntry(
        circle.x - reach, circle.y - reach, circle.x + reach, circle.y + reach, circle
    )


class TestFits:
    """Tests for the circle collision test."""

    def test_empty_tree(self):
        """Test that anything fits an empty canvas."""
        assert fits(RTree(), 10.0, 10.0, 5.0, 1.0)

    def test_overlap_rejected(self):
        """Test that overlapping circles are rejected."""
        tree = RTree().insert(placed(Circle(0.0, 0.0, 5.0)))
        assert not fits(tree, 6.0, 0.0, 3.0, 0.0)

    def test_boxes_touch_but_circles_clear(self):
        """Test that a diagonal neighbour whose box overlaps still fits."""
        tree = RTree().insert(placed(Circle(0.0, 0.0, 5.0)))
        assert fits(tree, 7.0, 7.0, 3.0, 0.0)

    def test_padding_counts(self):
        """Test that circles must clear each other by the padding."""
        tree = RTree().insert(placed(Circle(0.0, 0.0, 5.0), padding=2.0))
        assert fits(tree, 9.0, 0.0, 3.0, 0.0)
        assert not fits(tree, 9.0, 0.0, 3.0, 2.0)


class TestRadius:
    """Tests for darkness-driven radii."""

    def test_range(self):
        """Test that white and black map to the radius bounds."""
        config = make_config(**{"Min Radius": 2, "Max Radius": 10})
        assert circle_radius(0.0, config) == pytest.approx(2.0)
        assert circle_radius(255.0, config) == pytest.approx(10.0)

    def test_power_curve(self):
        """Test that mid gray follows the darkness power."""
        config = make_config(**{"Min Radius": 2, "Max Radius": 10, "Darkness Power": 2})
        assert circle_radius(127.5, config) == pytest.approx(2.0 + 0.25 * 8.0)


class TestPackCircles:
    """Tests for the packing loop."""

    def test_no_overlaps(self):
        """Test that every pair of circles clears the padding."""
        field = BrightnessField.uniform(120, 120, 255)
        config = make_config(**{"Min Radius": 1, "Max Radius": 6, "Padding": 0.5})
        circles = pack_circles(field, config, seed=1)
        assert len(circles) > 20

        xs = np.array([c.x for c in circles])
        ys = np.array([c.y for c in circles])
        rs = np.array([c.r for c in circles])
        distance = np.hypot(xs[:, None] - xs[None, :], ys[:, None] - ys[None, :])
        required = rs[:, None] + rs[None, :] + 0.5
        np.fill_diagonal(distance, np.inf)
        assert np.all(distance >= required - 1e-9)

    def test_inside_image(self):
        """Test that circles never cross the image edge."""
        field = BrightnessField.uniform(80, 50, 200)
        for c in pack_circles(field, make_config(), seed=2):
            assert c.x - c.r >= 0 and c.x + c.r <= 80
            assert c.y - c.r >= 0 and c.y + c.r <= 50

    def test_light_image_gives_nothing(self):
        """Test that ink below the minimum darkness places no circles."""
        field = BrightnessField.uniform(80, 80, 5)
        assert pack_circles(field, make_config(**{"Min Darkness": 10}), seed=3) == []

    def test_max_circles_cap(self):
        """Test that packing stops at the circle limit."""
        field = BrightnessField.uniform(400, 400, 255)
        config = make_config(
            **{"Max Circles": 200, "Samples": 20000, "Min Radius": 0.5, "Max Radius": 2}
        )
        assert len(pack_circles(field, config, seed=4)) == 200

    def test_reproducible(self):
        """Test that a fixed seed reproduces the packing."""
        field = BrightnessField(np.tile(np.linspace(0, 255, 100), (60, 1)))
        config = make_config()
        assert pack_circles(field, config, seed=6) == pack_circles(field, config, seed=6)
