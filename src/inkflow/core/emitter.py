"""Path string emission.

Turns a :class:`~inkflow.domain.PathSet` into plotter path strings:

- lines become ``M x,y L x,y ...`` (or Catmull-Rom cubics in smooth mode);
- circles become a single near-360 degree arc;
- with an active face polygon, lines are clipped to it and circles whose
  centres fall outside are dropped;
- lines longer than the configured maximum are split into sub-paths that
  share their boundary vertex.
"""

import math
from collections.abc import Sequence

from shapely.geometry import LineString, Point, Polygon
from shapely.geometry.base import BaseGeometry

from inkflow.config import EmitterConfig
from inkflow.domain import Circle, Coord, PathSet, Polyline

MIN_RADIUS = 0.001


def split_by_length(points: Sequence[Coord], max_length: float) -> list[Polyline]:
    """Split a polyline into chunks no longer than ``max_length``.

    Splits happen at vertices and consecutive chunks share the boundary
    vertex. A single segment longer than ``max_length`` stays whole.
    """
    if not points:
        return []
    if len(points) == 1:
        return [list(points)]

    chunks: list[Polyline] = []
    current: Polyline = [points[0]]
    length = 0.0
    for prev, point in zip(points, points[1:]):
        segment = math.hypot(point[0] - prev[0], point[1] - prev[1])
        if length + segment > max_length and len(current) > 1:
            chunks.append(current)
            current = [prev, point]
            length = segment
        else:
            current.append(point)
            length += segment
    chunks.append(current)
    return chunks


def _line_parts(geometry: BaseGeometry) -> list[Polyline]:
    if geometry.is_empty:
        return []
    if isinstance(geometry, LineString):
        coords = [(float(x), float(y)) for x, y in geometry.coords]
        return [coords] if len(coords) >= 2 else []
    parts: list[Polyline] = []
    for part in getattr(geometry, "geoms", ()):
        parts.extend(_line_parts(part))
    return parts


def clip_lines(lines: Sequence[Polyline], polygon: Polygon) -> list[Polyline]:
    """Keep only the parts of ``lines`` inside ``polygon``."""
    clipped: list[Polyline] = []
    for line in lines:
        if len(line) < 2:
            continue
        clipped.extend(_line_parts(LineString(line).intersection(polygon)))
    return clipped


class PathEmitter:
    """Serializes path sets into path strings.

    Args:
        config: Emission settings
        clip_polygon: Optional inclusion polygon for lines and circles
    """

    def __init__(self, config: EmitterConfig | None = None, clip_polygon: Polygon | None = None) -> None:
        self.config = config or EmitterConfig()
        self.clip_polygon = clip_polygon

    def _fmt(self, value: float) -> str:
        return f"{value:.{self.config.decimals}f}"

    def _xy(self, point: Coord) -> str:
        return f"{self._fmt(point[0])},{self._fmt(point[1])}"

    def straight_path(self, points: Sequence[Coord]) -> str:
        """``M x,y L x,y ...`` for a polyline."""
        if len(points) < 2:
            return ""
        return "M" + self._xy(points[0]) + "".join(" L" + self._xy(p) for p in points[1:])

    def smooth_path(self, points: Sequence[Coord]) -> str:
        """Catmull-Rom spline through ``points`` as cubic Bezier segments."""
        if len(points) < 2:
            return ""
        t = self.config.tension
        parts = ["M" + self._xy(points[0])]
        last = len(points) - 1
        for i in range(last):
            p0 = points[i - 1] if i > 0 else points[i]
            p1 = points[i]
            p2 = points[i + 1]
            p3 = points[i + 2] if i + 2 <= last else p2
            c1 = (p1[0] + (p2[0] - p0[0]) / 6 * t, p1[1] + (p2[1] - p0[1]) / 6 * t)
            c2 = (p2[0] - (p3[0] - p1[0]) / 6 * t, p2[1] - (p3[1] - p1[1]) / 6 * t)
            parts.append(f"C{self._xy(c1)} {self._xy(c2)} {self._xy(p2)}")
        return " ".join(parts)

    def circle_path(self, circle: Circle) -> str:
        """A circle drawn as one arc starting at its top."""
        r = max(circle.r, MIN_RADIUS)
        return f"M{self._fmt(circle.x)},{self._fmt(circle.y - r)} a {r:.3f} {r:.3f} 0 1 0 0.001 0Z"

    def keep_circle(self, circle: Circle) -> bool:
        """Check if a circle survives clipping."""
        if self.clip_polygon is None:
            return True
        return self.clip_polygon.contains(Point(circle.x, circle.y))

    def prepare_lines(self, pathset: PathSet) -> list[Polyline]:
        """Clip and length-split every line and polygon of a path set."""
        lines = [list(line) for line in pathset.lines] + [list(poly) for poly in pathset.polygons]
        if self.clip_polygon is not None:
            lines = clip_lines(lines, self.clip_polygon)
        prepared: list[Polyline] = []
        for line in lines:
            if len(line) >= 2:
                prepared.extend(split_by_length(line, self.config.max_path_length))
        return prepared

    def emit_segments(self, pathset: PathSet) -> list[str]:
        """Independently addressable path strings for a path set."""
        render = self.smooth_path if self.config.smooth else self.straight_path
        segments = [render(line) for line in self.prepare_lines(pathset)]
        segments.extend(self.circle_path(c) for c in pathset.circles if self.keep_circle(c))
        return [s for s in segments if s]

    def emit(self, pathset: PathSet) -> str:
        """All segments joined into one path string; empty when nothing is drawn."""
        return " ".join(self.emit_segments(pathset))
