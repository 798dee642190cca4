"""Tests for seeding and simplex noise."""

import numpy as np
import pytest

from inkflow.core.boundary import parse_polygon, rasterize_polygon
from inkflow.core.noise import MAX_SEED, make_rng, random_int, resolve_seed, simplex_grid


class TestSeeds:
    """Tests for seed resolution."""

    def test_explicit_seed_kept(self):
        """Test that a non-negative seed is used as is."""
        assert resolve_seed(42) == 42
        assert resolve_seed(0) == 0

    @pytest.mark.parametrize("seed", [None, -1])
    def test_unseeded_draws_seed(self, seed):
        """Test that a missing seed draws one in range."""
        drawn = resolve_seed(seed)
        assert 0 <= drawn <= MAX_SEED


class TestSimplexGrid:
    """Tests for simplex_grid."""

    def test_range_and_shape(self):
        """Test one value per pixel, within [-1, 1] and not flat."""
        values = simplex_grid(64, 48, 0.13, 3)
        assert values.shape == (48, 64)
        assert np.all(np.abs(values) <= 1.0)
        assert values.std() > 0.05

    def test_same_seed_same_values(self):
        """Test determinism per seed."""
        a = simplex_grid(30, 20, 0.1, 9)
        b = simplex_grid(30, 20, 0.1, 9)
        c = simplex_grid(30, 20, 0.1, 10)
        np.testing.assert_array_equal(a, b)
        assert not np.array_equal(a, c)

    def test_scale_is_frequency(self):
        """Test that pixel (x, y) samples the noise at (x * scale, y * scale)."""
        fine = simplex_grid(40, 40, 0.05, 7)
        coarse = simplex_grid(20, 20, 0.1, 7)
        np.testing.assert_allclose(coarse, fine[::2, ::2])

    def test_smooth_at_low_frequency(self):
        """Test that neighbouring pixels differ little at a low scale."""
        values = simplex_grid(50, 50, 0.01, 1)
        assert np.abs(np.diff(values, axis=1)).max() < 0.1

    def test_seeded_from_generator(self):
        """Test that a generator-drawn seed reproduces the same grid."""
        a = simplex_grid(16, 16, 0.2, random_int(make_rng(5), 1 << 31))
        b = simplex_grid(16, 16, 0.2, random_int(make_rng(5), 1 << 31))
        np.testing.assert_array_equal(a, b)


class TestPolygonParsing:
    """Tests for face-boundary polygon parsing."""

    def test_mixed_forms(self):
        """Test that list and mapping points are both read."""
        raw = [[0, 0], {"x": 4, "y": 0}, (4, 4)]
        assert parse_polygon(raw) == ((0.0, 0.0), (4.0, 0.0), (4.0, 4.0))

    def test_bad_points_skipped(self):
        """Test that unusable points are dropped before the size check."""
        raw = [[0, 0], ["a", 1], [float("nan"), 2], [4, 4]]
        assert parse_polygon(raw) is None

    def test_not_a_list(self):
        """Test that non-sequences are rejected."""
        assert parse_polygon({"x": 1}) is None

    def test_rasterize(self):
        """Test that the mask covers the polygon interior only."""
        mask = rasterize_polygon(((2, 2), (8, 2), (8, 8), (2, 8)), 10, 10)
        assert mask.shape == (10, 10)
        assert mask[5, 5]
        assert not mask[0, 0]
