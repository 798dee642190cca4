"""Tests for path string emission."""

import math
import re

import pytest
from shapely.geometry import Polygon

from inkflow.config import EmitterConfig
from inkflow.core.emitter import PathEmitter, clip_lines, split_by_length
from inkflow.domain import Circle, PathSet


def chunk_length(chunk: list[tuple[float, float]]) -> float:
    return sum(math.hypot(b[0] - a[0], b[1] - a[1]) for a, b in zip(chunk, chunk[1:]))


class TestSplitByLength:
    """Tests for length splitting."""

    def test_short_line_not_split(self):
        """Test that a line under the limit stays whole."""
        line = [(0.0, 0.0), (1.0, 0.0), (2.0, 0.0)]
        assert split_by_length(line, 10.0) == [line]

    def test_chunks_share_boundary_vertex(self):
        """Test that consecutive chunks meet at a shared vertex."""
        line = [(float(x), 0.0) for x in range(21)]
        chunks = split_by_length(line, 5.0)

        assert len(chunks) == 4
        for a, b in zip(chunks, chunks[1:]):
            assert a[-1] == b[0]
        assert all(chunk_length(c) <= 5.0 for c in chunks)

    def test_chunks_cover_line(self):
        """Test that rejoining the chunks gives back the line."""
        line = [(float(x), float(x % 3)) for x in range(30)]
        chunks = split_by_length(line, 7.0)
        rejoined = chunks[0] + [p for c in chunks[1:] for p in c[1:]]
        assert rejoined == line

    def test_long_single_segment(self):
        """Test that one segment longer than the limit is kept whole."""
        line = [(0.0, 0.0), (100.0, 0.0)]
        assert split_by_length(line, 5.0) == [line]


class TestPathEmitter:
    """Tests for path string formats."""

    def test_straight_path(self):
        """Test the move/line format."""
        emitter = PathEmitter()
        assert emitter.straight_path([(0, 0), (1.5, 2), (3.25, 4.125)]) == (
            "M0.00,0.00 L1.50,2.00 L3.25,4.12"
        )

    def test_decimals(self):
        """Test configurable coordinate precision."""
        emitter = PathEmitter(EmitterConfig(decimals=0))
        assert emitter.straight_path([(0.4, 0.6), (2.0, 3.0)]) == "M0,1 L2,3"

    def test_degenerate_line_skipped(self):
        """Test that a single point produces no path."""
        assert PathEmitter().straight_path([(1.0, 1.0)]) == ""

    def test_circle_path(self):
        """Test the near-full-circle arc format."""
        path = PathEmitter().circle_path(Circle(10.0, 20.0, 3.0))
        assert path == "M10.00,17.00 a 3.000 3.000 0 1 0 0.001 0Z"

    def test_smooth_path(self):
        """Test that smooth mode emits one cubic per segment ending on each vertex."""
        emitter = PathEmitter(EmitterConfig(smooth=True))
        points = [(0.0, 0.0), (10.0, 0.0), (10.0, 10.0), (0.0, 10.0)]
        path = emitter.smooth_path(points)
        assert path.startswith("M0.00,0.00")
        cubics = re.findall(r"C[^C]+", path)
        assert len(cubics) == 3
        assert cubics[-1].strip().endswith("0.00,10.00")

    def test_emit_joins_segments(self):
        """Test the joined output of lines and circles."""
        pathset = PathSet(
            lines=[[(0.0, 0.0), (1.0, 1.0)]],
            circles=[Circle(5.0, 5.0, 1.0)],
        )
        emitter = PathEmitter()
        segments = emitter.emit_segments(pathset)
        assert len(segments) == 2
        assert emitter.emit(pathset) == " ".join(segments)

    def test_empty_pathset(self):
        """Test that no geometry is an empty string."""
        assert PathEmitter().emit(PathSet()) == ""

    def test_splitting_applied(self):
        """Test that long lines become several sub-paths."""
        line = [(float(x), 0.0) for x in range(101)]
        emitter = PathEmitter(EmitterConfig(max_path_length=25.0))
        segments = emitter.emit_segments(PathSet(lines=[line]))
        assert len(segments) == 4
        assert segments[1].startswith("M25.00,0.00")


class TestClipping:
    """Tests for face-polygon clipping."""

    @pytest.fixture
    def square(self) -> Polygon:
        return Polygon([(10, 10), (20, 10), (20, 20), (10, 20)])

    def test_line_clipped_to_polygon(self, square):
        """Test that only the inside part of a crossing line is kept."""
        parts = clip_lines([[(0.0, 15.0), (30.0, 15.0)]], square)
        assert len(parts) == 1
        xs = sorted(x for x, _ in parts[0])
        assert xs[0] == pytest.approx(10.0)
        assert xs[-1] == pytest.approx(20.0)

    def test_line_leaving_and_reentering(self, square):
        """Test that a line crossing out and back in yields two sub-paths."""
        line = [(12.0, 15.0), (30.0, 15.0), (30.0, 12.0), (12.0, 12.0)]
        assert len(clip_lines([line], square)) == 2

    def test_outside_line_dropped(self, square):
        """Test that a line fully outside disappears."""
        assert clip_lines([[(0.0, 0.0), (5.0, 5.0)]], square) == []

    def test_circles_outside_dropped(self, square):
        """Test that circles centred outside the polygon are removed."""
        emitter = PathEmitter(clip_polygon=square)
        pathset = PathSet(circles=[Circle(15, 15, 1), Circle(50, 50, 1)])
        assert len(emitter.emit_segments(pathset)) == 1
