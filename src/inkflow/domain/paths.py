"""Path containers produced by the generative algorithms.

- Streamline: A traced curve that grows while it is integrated
- PathSet: The terminal output of a job, handed to the emitter
"""

import math
from dataclasses import dataclass, field
from typing import Any

from inkflow.domain.geometry import Circle

Coord = tuple[float, float]
Polyline = list[Coord]
FrozenLine = tuple[Coord, ...]


@dataclass
class Streamline:
    """A polyline with its cumulative arc length.

    Points are only ever appended; ``freeze`` hands out the immutable copy
    a tracer emits once the line is finished.

    Attributes:
        points: Ordered points of the line
        length: Cumulative arc length of ``points``
    """

    points: list[Coord] = field(default_factory=list)
    length: float = 0.0

    def append(self, x: float, y: float) -> None:
        """Append a point and extend the arc length."""
        if self.points:
            lx, ly = self.points[-1]
            self.length += math.hypot(x - lx, y - ly)
        self.points.append((x, y))

    def freeze(self) -> FrozenLine:
        """Return the points as an immutable tuple."""
        return tuple(self.points)

    def __len__(self) -> int:
        return len(self.points)


@dataclass
class PathSet:
    """Geometry produced by one algorithm run.

    Attributes:
        lines: Open polylines
        polygons: Closed polylines (first point repeated at the end)
        circles: Circle marks
        stroke_width: Pen width hint for rendering
    """

    lines: list[Polyline] = field(default_factory=list)
    polygons: list[Polyline] = field(default_factory=list)
    circles: list[Circle] = field(default_factory=list)
    stroke_width: float = 1.0

    def is_empty(self) -> bool:
        """Check if the set contains no geometry."""
        return not (self.lines or self.polygons or self.circles)

    def point_count(self) -> int:
        """Total number of vertices plus circles."""
        return (
            sum(len(line) for line in self.lines)
            + sum(len(poly) for poly in self.polygons)
            + len(self.circles)
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary for IPC."""
        return {
            "lines": [[list(p) for p in line] for line in self.lines],
            "polygons": [[list(p) for p in poly] for poly in self.polygons],
            "circles": [c.to_dict() for c in self.circles],
            "stroke_width": self.stroke_width,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PathSet":
        """Deserialize from dictionary."""
        return cls(
            lines=[[(p[0], p[1]) for p in line] for line in data.get("lines", [])],
            polygons=[[(p[0], p[1]) for p in poly] for poly in data.get("polygons", [])],
            circles=[Circle.from_dict(c) for c in data.get("circles", [])],
            stroke_width=data.get("stroke_width", 1.0),
        )
