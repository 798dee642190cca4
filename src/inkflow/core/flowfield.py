"""Evenly-spaced flow-field streamlines (Jobard-Lefer placement).

Streamlines are traced through a composited vector field at a reduced
working resolution. Each candidate seed is accepted only if it is at least
the local separation distance from every placed point; accepted streamlines
then spawn new seeds alongside themselves. Local separation shrinks with
darkness, so dark regions fill with denser lines.

Lengths (``Min Length``, ``Max Length``) are measured at the working
resolution.
"""

import math
from collections.abc import Sequence

import numpy as np
import structlog

from inkflow.config import FieldType, FlowFieldConfig
from inkflow.core.brightness import BrightnessField
from inkflow.core.context import JobContext
from inkflow.core.noise import make_rng, random_int
from inkflow.core.route import sort_lines
from inkflow.core.spatial_index import PointIndex
from inkflow.core.vector_field import (
    EPS,
    VectorField,
    composite,
    curl_noise_field,
    noise_field,
    rk4,
)
from inkflow.domain import Coord, FrozenLine, Polyline, Streamline

logger = structlog.get_logger("inkflow.flowfield")

# Recent points of the current streamline ignored by self-avoidance
LOOKBACK = 15

# Guard against streamlines caught in a closed orbit
MAX_BRANCH_POINTS = 600

# Seeds are offset this many local separations from their streamline
SEED_MARGIN = 1.1

# Arc length traced on one field copy before the selector may switch
FIELD_SWITCH_LENGTH = 10.0


def _round(value: float) -> int:
    return int(math.floor(value + 0.5))


class SeparationMap:
    """Local separation distance per working-resolution pixel."""

    def __init__(self, guide: np.ndarray, min_sep: float, max_sep: float) -> None:
        values = (np.asarray(guide, dtype=np.float64) / 255.0) ** 2
        grid = values * (max_sep - min_sep) + min_sep
        self.height, self.width = grid.shape
        self.grid = grid
        self._rows = grid.tolist()

    def inside(self, x: float, y: float) -> bool:
        """Check if ``(x, y)`` rounds to a pixel of the grid."""
        xi, yi = _round(x), _round(y)
        return 0 <= xi < self.width and 0 <= yi < self.height

    def __call__(self, x: float, y: float) -> float:
        xi = min(self.width - 1, max(0, _round(x)))
        yi = min(self.height - 1, max(0, _round(y)))
        return self._rows[yi][xi]


class FieldSelector:
    """Wanders between field copies as a streamline grows.

    Every :data:`FIELD_SWITCH_LENGTH` units of arc length the active copy
    steps by -1, 0 or +1 (wrapping).
    """

    def __init__(self, fields: Sequence[VectorField], rng: np.random.Generator) -> None:
        self._fields = fields
        self._rng = rng
        self._mark = 0.0
        self.index = random_int(rng, len(fields))

    def select(self, length: float) -> VectorField:
        if length - self._mark > FIELD_SWITCH_LENGTH:
            self._mark = length
            delta = random_int(self._rng, 3) - 1
            self.index = (self.index + delta) % len(self._fields)
        return self._fields[self.index]


def seed_points(path: Sequence[Coord], separation: SeparationMap, count: int) -> list[Coord]:
    """Candidate seeds beside ``path`` and beyond both of its ends.

    ``count`` evenly spaced samples along the path each yield a seed on both
    sides; the ends also yield seeds straight ahead and diagonally.
    """
    if len(path) < 2 or count <= 0:
        return []

    if count == 1:
        sample_ids = {0}
    else:
        step = (len(path) - 1) / (count - 1)
        sample_ids = {_round(i * step) for i in range(count)}

    def unit(ax: float, ay: float, bx: float, by: float) -> tuple[float, float]:
        dx, dy = bx - ax, by - ay
        norm = max(math.hypot(dx, dy), EPS)
        return dx / norm, dy / norm

    seeds: list[Coord] = []
    cx, cy = path[0]
    dx, dy = unit(cx, cy, path[1][0], path[1][1])
    nx, ny = dy, -dx
    d = SEED_MARGIN * separation(cx, cy)
    seeds.append((cx + d * nx, cy + d * ny))
    seeds.append((cx - d * nx, cy - d * ny))
    seeds.append((cx - d * dx, cy - d * dy))
    seeds.append((cx - d * dx + d * nx, cy - d * dy + d * ny))
    seeds.append((cx - d * dx - d * nx, cy - d * dy - d * ny))

    for i in range(1, len(path)):
        if i not in sample_ids:
            continue
        lx, ly = cx, cy
        cx, cy = path[i]
        dx, dy = unit(lx, ly, cx, cy)
        nx, ny = dy, -dx
        d = SEED_MARGIN * separation(cx, cy)
        seeds.append((cx + d * nx, cy + d * ny))
        seeds.append((cx - d * nx, cy - d * ny))

    d = SEED_MARGIN * separation(cx, cy)
    seeds.append((cx + d * dx, cy + d * dy))
    seeds.append((cx + d * dx + d * nx, cy + d * dy + d * ny))
    seeds.append((cx + d * dx - d * nx, cy + d * dy - d * ny))
    return seeds


class FlowFieldTracer:
    """Places evenly-spaced streamlines over one or more field copies.

    Args:
        fields: Field copies sharing one working resolution
        separation: Local separation distances
        rng: Random source for seed shuffling and field selection
        min_length: Branches shorter than this are dropped
        max_length: Cap on the arc length of a whole streamline
        test_frequency: Integration steps per local separation
        seedpoints_per_path: Samples along each streamline used for new seeds
        context: Progress and cancellation hooks
    """

    def __init__(
        self,
        fields: Sequence[VectorField],
        separation: SeparationMap,
        rng: np.random.Generator,
        *,
        min_length: float = 0.0,
        max_length: float = 40.0,
        test_frequency: float = 2.0,
        seedpoints_per_path: int = 40,
        context: JobContext | None = None,
    ) -> None:
        self.fields = list(fields)
        self.separation = separation
        self.rng = rng
        self.min_length = max(0.0, min_length)
        self.max_length = max(self.min_length, max_length)
        self.test_frequency = max(1.0, test_frequency)
        self.seedpoints_per_path = max(1, seedpoints_per_path)
        self.context = context or JobContext()
        self.index = PointIndex()

    def trace(self) -> list[FrozenLine]:
        """Trace until the seed queue runs dry.

        Returns:
            Finished streamlines in placement order
        """
        sep = self.separation
        queue: list[Coord] = [(sep.width / 2, sep.height / 2)]
        lines: list[FrozenLine] = []

        while queue:
            x, y = queue.pop()
            if not sep.inside(x, y):
                continue
            if self.index.any_within(x, y, sep(x, y)):
                continue

            path = self.trace_streamline(x, y)
            if len(path) <= 2:
                continue

            self.index.add_points(path)
            lines.append(path)

            seeds = seed_points(path, sep, self.seedpoints_per_path)
            order = self.rng.permutation(len(seeds))
            queue.extend(seeds[i] for i in order)

            if len(lines) % self.context.progress_every == 0:
                self.context.checkpoint(f"Tracing lines: {len(lines)}")
            else:
                self.context.checkpoint()

        logger.debug("Tracing finished", streamlines=len(lines), points=len(self.index))
        return lines

    def trace_streamline(self, x: float, y: float) -> FrozenLine:
        """Trace forwards then backwards from a seed and join the branches."""
        selector = FieldSelector(self.fields, self.rng)
        own = PointIndex()

        forward = self._trace_branch(x, y, 1.0, selector, own, self.max_length)
        if forward.length < self.min_length:
            forward = Streamline([(x, y)])

        backward = self._trace_branch(x, y, -1.0, selector, own, self.max_length - forward.length)
        if backward.length < self.min_length:
            backward = Streamline([(x, y)])

        joined = Streamline()
        for px, py in backward.points[::-1] + forward.points[1:]:
            joined.append(px, py)
        return joined.freeze()

    def _trace_branch(
        self,
        x: float,
        y: float,
        sign: float,
        selector: FieldSelector,
        own: PointIndex,
        budget: float,
    ) -> Streamline:
        sep = self.separation
        line = Streamline()
        line.append(x, y)

        while len(line) < MAX_BRANCH_POINTS:
            field = selector.select(line.length)
            step = sep(x, y) / self.test_frequency
            dx, dy = rk4(field, x, y, step)
            # Stalled at a critical point of the field
            if abs(dx) < EPS and abs(dy) < EPS:
                break
            nx, ny = x + step * dx * sign, y + step * dy * sign

            if not sep.inside(nx, ny):
                break
            if self.index.any_within(nx, ny, sep(nx, ny)):
                break
            if own.any_within(nx, ny, sep(x, y)):
                break
            if line.length + math.hypot(nx - x, ny - y) > budget:
                break

            if len(line) >= 2 * LOOKBACK:
                own.add_point(*line.points[-LOOKBACK])

            line.append(nx, ny)
            x, y = nx, ny

        return line


def mask_paths(paths: Sequence[Sequence[Coord]], opaque: np.ndarray) -> list[Polyline]:
    """Split paths where they cross transparent pixels.

    Pieces shorter than two points are dropped.
    """
    height, width = opaque.shape
    rows = opaque.tolist()
    masked: list[Polyline] = []
    for path in paths:
        current: Polyline = []
        for px, py in path:
            xi = min(width - 1, max(0, _round(px)))
            yi = min(height - 1, max(0, _round(py)))
            if rows[yi][xi]:
                current.append((px, py))
                continue
            if len(current) >= 2:
                masked.append(current)
            current = []
        if len(current) >= 2:
            masked.append(current)
    return masked


def build_guide(
    field: BrightnessField,
    alpha: np.ndarray,
    scale: float,
    transparent_value: float,
) -> tuple[np.ndarray, np.ndarray]:
    """Sample the guide grid and opaque mask at working resolution.

    Returns:
        ``(guide, opaque)`` where guide is 255 for white and opaque is boolean
    """
    width = max(1, _round(field.width * scale))
    height = max(1, _round(field.height * scale))
    sx = np.minimum(field.width - 1, np.floor(np.arange(width) / scale)).astype(np.intp)
    sy = np.minimum(field.height - 1, np.floor(np.arange(height) / scale)).astype(np.intp)

    opaque = np.asarray(alpha)[np.ix_(sy, sx)] > 0
    brightness = np.clip(255.0 - field.grid[np.ix_(sy, sx)], 0.0, 255.0)
    guide = np.where(opaque, brightness, float(transparent_value))
    return guide, opaque


def trace_flow_field(
    field: BrightnessField,
    alpha: np.ndarray,
    config: FlowFieldConfig,
    seed: int,
    flow_seed: int,
    context: JobContext | None = None,
) -> list[Polyline]:
    """Full flow-field pipeline from brightness to image-space polylines.

    Args:
        field: Brightness field of the image
        alpha: ``(height, width)`` alpha channel of the image
        config: Flow-field parameters
        seed: Seed for seed shuffling and field-copy selection
        flow_seed: Seed for the noise permutation tables
        context: Progress and cancellation hooks

    Returns:
        Streamlines in image coordinates
    """
    context = context or JobContext()
    scale = min(1.0, config.max_size / field.width, config.max_size / field.height)
    guide, opaque = build_guide(field, alpha, scale, config.transparent_value)
    if not opaque.any():
        logger.info("Image has no opaque pixels, nothing to trace")
        return []

    rng = make_rng(seed)
    flow_rng = make_rng(flow_seed)
    height, width = guide.shape

    context.checkpoint("Generating flow field")
    if config.field_type == FieldType.CURL_NOISE.value:
        base = curl_noise_field(width, height, config.noise_scale, flow_rng)
    else:
        base = noise_field(width, height, config.noise_scale, flow_rng)

    combined = VectorField(
        composite(
            base,
            guide,
            opaque,
            edge_weight=config.edge_field,
            dark_weight=config.dark_field,
            rotation=config.rotate_field,
        )
    )
    copies = max(1, config.field_copies)
    fields = [combined.rotated(i * 360.0 / copies) for i in range(copies)]

    min_sep = max(EPS, config.min_separation)
    max_sep = max(min_sep, config.max_separation)
    separation = SeparationMap(guide, min_sep, max_sep)

    context.checkpoint("Tracing lines")
    tracer = FlowFieldTracer(
        fields,
        separation,
        rng,
        min_length=config.min_length,
        max_length=config.max_length,
        test_frequency=config.test_frequency,
        seedpoints_per_path=config.seedpoints_per_path,
        context=context,
    )
    paths = tracer.trace()

    if config.mask_transparent:
        paths = mask_paths(paths, opaque)

    inverse = 1.0 / scale
    polylines = [[(px * inverse, py * inverse) for px, py in path] for path in paths]

    if config.optimize_route and polylines:
        polylines = sort_lines(polylines)
    return polylines
