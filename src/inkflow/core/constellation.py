"""Constellations: darkness-sampled points joined to their nearest neighbours.

Points are placed on a jittered grid and kept with a probability that grows
with darkness. Every point then links to a handful of its nearest neighbours
found through the R-tree's kNN search, darker points taking more links.
Each undirected edge is drawn once.
"""

import math

import numpy as np
import structlog

from inkflow.config import ConstellationConfig
from inkflow.core.brightness import BrightnessField
from inkflow.core.context import JobContext
from inkflow.core.noise import make_rng
from inkflow.core.route import sort_lines
from inkflow.core.spatial_index import IndexEntry, RTree
from inkflow.domain import Polyline

logger = structlog.get_logger("inkflow.constellation")


def sample_points(
    field: BrightnessField,
    config: ConstellationConfig,
    rng: np.random.Generator,
) -> list[tuple[float, float, float]]:
    """Jittered grid points kept with probability ``(ink / 255) ** power * density``.

    Returns:
        ``(x, y, ink)`` triples in grid order
    """
    spacing = config.point_spacing
    offset = config.jitter * spacing
    points: list[tuple[float, float, float]] = []

    y = spacing / 2
    while y < field.height:
        x = spacing / 2
        while x < field.width:
            px = x + (rng.random() * 2 - 1) * offset
            py = y + (rng.random() * 2 - 1) * offset
            x += spacing
            if px < 0 or py < 0 or px >= field.width or py >= field.height:
                continue
            ink = field.sample(px, py)
            probability = min(1.0, (ink / 255.0) ** config.darkness_power * config.density)
            if rng.random() < probability:
                points.append((px, py, ink))
        y += spacing
    return points


def link_count(ink: float, max_links: int) -> int:
    """Links wanted by a point, from none on white to ``max_links`` on black."""
    return int(math.floor(ink / 255.0 * max_links + 0.5))


def link_points(
    points: list[tuple[float, float, float]],
    config: ConstellationConfig,
    context: JobContext | None = None,
) -> list[Polyline]:
    """Join each point to its nearest neighbours.

    Neighbours closer than ``min_distance`` or farther than ``max_distance``
    are skipped. A point stops linking once it has added its own share of
    new edges.

    Args:
        points: ``(x, y, ink)`` triples
        config: Link limits
        context: Cancellation hook

    Returns:
        Two-point lines, one per undirected edge
    """
    context = context or JobContext()
    tree = RTree().bulk_load(IndexEntry.point(x, y, i) for i, (x, y, _) in enumerate(points))
    edges: set[tuple[int, int]] = set()
    lines: list[Polyline] = []

    for i, (x, y, ink) in enumerate(points):
        wanted = link_count(ink, config.max_links)
        if wanted <= 0:
            continue
        context.checkpoint()

        neighbours = tree.knn(
            x,
            y,
            k=max(wanted * 3, config.max_links + 1),
            predicate=lambda entry, own=i: entry.payload != own,
            max_distance=config.max_distance,
        )
        added = 0
        for entry in neighbours:
            nx, ny = entry.center
            distance = math.hypot(nx - x, ny - y)
            if distance < config.min_distance or distance > config.max_distance:
                continue
            key = (min(i, entry.payload), max(i, entry.payload))
            if key in edges:
                continue
            edges.add(key)
            lines.append([(x, y), (nx, ny)])
            added += 1
            if added >= wanted:
                break
    return lines


def trace_constellation(
    field: BrightnessField,
    config: ConstellationConfig,
    seed: int,
    context: JobContext | None = None,
) -> list[Polyline]:
    """Sample, link and optionally order the constellation lines."""
    context = context or JobContext()
    rng = make_rng(seed)

    context.checkpoint("Sampling points")
    points = sample_points(field, config, rng)
    if len(points) < 2:
        logger.info("Too few points to link", points=len(points))
        return []

    context.checkpoint(f"Linking {len(points)} points")
    lines = link_points(points, config, context)
    logger.debug("Constellation linked", points=len(points), edges=len(lines))

    if config.optimize_route and lines:
        lines = sort_lines(lines)
    return lines
