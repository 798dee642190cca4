"""Weighted Voronoi stippling.

The engine moves through three stages:

1. Seeding: rejection-sample particles with acceptance ``brightness / 255``.
2. Relaxing: a fixed number of Lloyd iterations, each moving every particle
   to the brightness-weighted centroid of its Voronoi cell.
3. Rendering: shapes sized by local brightness, or one TSP-art tour.

The iteration count is fixed by configuration; there is no convergence test.
"""

import math
from enum import Enum

import numpy as np
import structlog
from scipy.spatial import QhullError, Voronoi

from inkflow.config import StippleConfig, StippleType
from inkflow.core.brightness import BrightnessField
from inkflow.core.context import JobContext
from inkflow.core.route import tsp_tour
from inkflow.domain import Circle, Coord, Particle, PathSet, Polyline

logger = structlog.get_logger("inkflow.stipple")

BORDER = 6

# Keeps fully white cells from dividing by zero
WEIGHT_EPSILON = 0.001

# Seeding gives up after this many candidates per requested particle
MAX_ATTEMPTS_PER_PARTICLE = 1000

_MIRROR_PAD = 1e-6

_S60 = math.sin(math.radians(60))
_C60 = 0.5


class StippleStage(str, Enum):
    """Lifecycle of a stippling run."""

    SEEDING = "seeding"
    RELAXING = "relaxing"
    RENDERING = "rendering"
    DONE = "done"


class WeightTable:
    """Per-row prefix sums of ``brightness + epsilon`` for scanline centroids."""

    def __init__(self, field: BrightnessField) -> None:
        weights = field.grid + WEIGHT_EPSILON
        xs = np.arange(field.width, dtype=np.float64)
        self.width = field.width
        self.height = field.height
        zeros = np.zeros((field.height, 1))
        self._w = np.hstack([zeros, np.cumsum(weights, axis=1)])
        self._wx = np.hstack([zeros, np.cumsum(weights * xs, axis=1)])

    def row(self, y: int, x0: int, x1: int) -> tuple[float, float]:
        """Return ``(sum w, sum w x)`` over pixels ``x0..x1`` of row ``y``."""
        y = min(self.height - 1, max(0, y))
        x0 = min(self.width - 1, max(0, x0))
        x1 = min(self.width - 1, max(0, x1))
        if x1 < x0:
            return 0.0, 0.0
        w = self._w[y, x1 + 1] - self._w[y, x0]
        wx = self._wx[y, x1 + 1] - self._wx[y, x0]
        return float(w), float(wx)


def cell_scanlines(polygon: np.ndarray) -> dict[int, tuple[int, int]]:
    """Walk a closed cell outline into per-row ``(min_x, max_x)`` spans."""
    spans: dict[int, tuple[int, int]] = {}

    def mark(px: float, py: float) -> None:
        ix = int(math.floor(px + 0.5))
        iy = int(math.floor(py + 0.5))
        lo, hi = spans.get(iy, (ix, ix))
        spans[iy] = (min(lo, ix), max(hi, ix))

    count = len(polygon)
    sx, sy = float(polygon[0][0]), float(polygon[0][1])
    for k in range(1, count + 1):
        ex, ey = float(polygon[k % count][0]), float(polygon[k % count][1])
        if sy == ey:
            mark(sx, sy)
        elif sy < ey:
            dx = (ex - sx) / (ey - sy)
            while sy < ey:
                mark(sx, sy)
                sy += 1
                sx += dx
        else:
            dx = (ex - sx) / (ey - sy)
            while sy > ey:
                mark(sx, sy)
                sy -= 1
                sx -= dx
        sx, sy = ex, ey
    return spans


def weighted_centroid(polygon: np.ndarray, table: WeightTable) -> Coord | None:
    """Brightness-weighted centroid of a convex cell, or None if it covers no pixels."""
    w_sum = x_sum = y_sum = 0.0
    for y, (x0, x1) in cell_scanlines(polygon).items():
        w, wx = table.row(y, x0, x1)
        w_sum += w
        x_sum += wx
        y_sum += w * y
    if w_sum <= 0:
        return None
    return (x_sum / w_sum, y_sum / w_sum)


def _ordered(vertices: np.ndarray) -> np.ndarray:
    center = vertices.mean(axis=0)
    angles = np.arctan2(vertices[:, 1] - center[1], vertices[:, 0] - center[0])
    return vertices[np.argsort(angles)]


class StipplingEngine:
    """Lloyd-relaxed stipple placement over a brightness field.

    Example:
        engine = StipplingEngine(field, StippleConfig(), np.random.default_rng(7))
        pathset = engine.run()
    """

    def __init__(
        self,
        field: BrightnessField,
        config: StippleConfig,
        rng: np.random.Generator,
        context: JobContext | None = None,
        border: float = BORDER,
    ) -> None:
        self.field = field
        self.config = config
        self.rng = rng
        self.context = context or JobContext()
        self.border = border
        self.particles: list[Particle] = []
        self.stage = StippleStage.SEEDING

    @property
    def bounds(self) -> tuple[float, float, float, float]:
        """Bordered canvas as ``(min_x, min_y, max_x, max_y)``."""
        b = self.border
        return (b, b, self.field.width - b, self.field.height - b)

    def seed(self) -> list[Particle]:
        """Rejection-sample ``max_stipples`` particles."""
        self.stage = StippleStage.SEEDING
        target = self.config.max_stipples
        min_x, min_y, max_x, max_y = self.bounds
        self.particles = []
        if max_x <= min_x or max_y <= min_y:
            return self.particles

        budget = target * MAX_ATTEMPTS_PER_PARTICLE
        batch = max(1024, target * 4)
        attempts = 0
        while len(self.particles) < target and attempts < budget:
            xs = self.rng.uniform(min_x, max_x, batch)
            ys = self.rng.uniform(min_y, max_y, batch)
            accept = self.rng.random(batch) * 255.0 < self.field.sample_many(xs, ys)
            for x, y in zip(xs[accept], ys[accept]):
                self.particles.append(Particle(float(x), float(y)))
                if len(self.particles) == target:
                    break
            attempts += batch

        if len(self.particles) < target:
            logger.info(
                "Seeding stopped early",
                requested=target,
                placed=len(self.particles),
            )
        return self.particles

    def _voronoi_cells(self) -> list[np.ndarray | None]:
        min_x, min_y, max_x, max_y = self.bounds
        # Mirror just outside the border so particles clamped onto it stay distinct
        lo_x, lo_y = min_x - _MIRROR_PAD, min_y - _MIRROR_PAD
        hi_x, hi_y = max_x + _MIRROR_PAD, max_y + _MIRROR_PAD
        points = np.array([(p.x, p.y) for p in self.particles], dtype=np.float64)
        mirrored = [
            points,
            np.column_stack([2 * lo_x - points[:, 0], points[:, 1]]),
            np.column_stack([2 * hi_x - points[:, 0], points[:, 1]]),
            np.column_stack([points[:, 0], 2 * lo_y - points[:, 1]]),
            np.column_stack([points[:, 0], 2 * hi_y - points[:, 1]]),
        ]
        diagram = Voronoi(np.vstack(mirrored))

        cells: list[np.ndarray | None] = []
        for i in range(len(points)):
            region_index = diagram.point_region[i]
            region = diagram.regions[region_index] if region_index >= 0 else []
            if len(region) < 3 or -1 in region:
                cells.append(None)
                continue
            vertices = diagram.vertices[region].copy()
            vertices[:, 0] = np.clip(vertices[:, 0], min_x, max_x)
            vertices[:, 1] = np.clip(vertices[:, 1], min_y, max_y)
            cells.append(_ordered(vertices))
        return cells

    def relax_step(self, table: WeightTable) -> None:
        """Move every particle to its weighted cell centroid once."""
        min_x, min_y, max_x, max_y = self.bounds
        for particle, cell in zip(self.particles, self._voronoi_cells()):
            if cell is None:
                continue
            centroid = weighted_centroid(cell, table)
            if centroid is None:
                continue
            particle.x = min(max_x, max(min_x, centroid[0]))
            particle.y = min(max_y, max(min_y, centroid[1]))

    def relax(self) -> None:
        """Run the configured number of Lloyd iterations."""
        self.stage = StippleStage.RELAXING
        if len(self.particles) < 2:
            return
        table = WeightTable(self.field)
        for k in range(self.config.max_iterations):
            self.context.checkpoint(f"Iteration {k}")
            try:
                self.relax_step(table)
            except QhullError as e:
                logger.warning("Voronoi construction failed, relaxation stopped", error=str(e))
                break

    def radius(self, x: float, y: float) -> float:
        """Mark radius at a particle position."""
        scale = self.config.dot_size_range / 255.0
        return self.field.sample(x, y) * scale + self.config.min_dot_size

    def render(self, stroke_width: float = 1.0) -> PathSet:
        """Turn the current particles into geometry."""
        self.stage = StippleStage.RENDERING
        if len(self.particles) < 2:
            return PathSet(stroke_width=stroke_width)

        if self.config.tsp_art:
            self.context.checkpoint("Route optimization")
            tour = tsp_tour(
                [p.to_tuple() for p in self.particles],
                self.rng,
                on_pass=self.context.report,
                checkpoint=self.context.checkpoint,
            )
            return PathSet(lines=[tour], stroke_width=stroke_width)

        kind = StippleType(self.config.stipple_type)
        if kind is StippleType.CIRCLES:
            circles = []
            for p in self.particles:
                p.r = self.radius(p.x, p.y)
                circles.append(Circle(p.x, p.y, p.r))
            return PathSet(circles=circles, stroke_width=stroke_width)

        shape = _SHAPES[kind]
        lines: list[Polyline] = []
        for p in self.particles:
            lines.extend(shape(p.x, p.y, self.radius(p.x, p.y)))
        return PathSet(lines=lines, stroke_width=stroke_width)

    def run(self, stroke_width: float = 1.0) -> PathSet:
        """Seed, relax and render."""
        self.seed()
        self.relax()
        pathset = self.render(stroke_width)
        self.stage = StippleStage.DONE
        self.context.report("Done")
        return pathset


def spiral(x: float, y: float, r: float) -> list[Polyline]:
    """One full loop at radius ``r``, then an inward spiral."""
    points: Polyline = []
    theta = 0.0
    while r >= 0.1:
        points.append((x + r * math.cos(theta), y + r * math.sin(theta)))
        theta += 0.5
        if theta > 6.3:
            r -= 0.1
    return [points] if len(points) > 1 else []


def hexagon(x: float, y: float, r: float) -> list[Polyline]:
    return [
        [
            (x + r, y),
            (x + r * _C60, y - r * _S60),
            (x - r * _C60, y - r * _S60),
            (x - r, y),
            (x - r * _C60, y + r * _S60),
            (x + r * _C60, y + r * _S60),
            (x + r, y),
        ]
    ]


_PENTA = [(math.sin(math.radians(a)), math.cos(math.radians(a))) for a in range(0, 360, 72)]


def pentagram(x: float, y: float, r: float) -> list[Polyline]:
    order = (0, 3, 1, 4, 2, 0)
    return [[(x + r * _PENTA[i][0], y + r * _PENTA[i][1]) for i in order]]


def snowflake(x: float, y: float, r: float) -> list[Polyline]:
    """Three strokes through the centre, 60 degrees apart."""
    return [
        [(x - r, y), (x + r, y)],
        [(x + r * _C60, y + r * _S60), (x - r * _C60, y - r * _S60)],
        [(x - r * _C60, y + r * _S60), (x + r * _C60, y - r * _S60)],
    ]


_SHAPES = {
    StippleType.SPIRALS: spiral,
    StippleType.HEXAGONS: hexagon,
    StippleType.PENTAGRAMS: pentagram,
    StippleType.SNOWFLAKES: snowflake,
}
