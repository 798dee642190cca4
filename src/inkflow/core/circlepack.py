"""Circle packing into dark areas.

Random candidates become circles whose radius grows with darkness. A
candidate is kept only if it clears every placed circle by ``padding``;
placed circles live in an R-tree under their padded bounding boxes.
"""

import structlog

from inkflow.config import CirclePackConfig
from inkflow.core.brightness import BrightnessField
from inkflow.core.context import JobContext
from inkflow.core.noise import make_rng
from inkflow.core.spatial_index import IndexEntry, RTree
from inkflow.domain import Circle

logger = structlog.get_logger("inkflow.circlepack")

# Candidates between cancellation checks
CHECK_EVERY = 1000


def circle_radius(ink: float, config: CirclePackConfig) -> float:
    """Radius for a circle centred on ``ink``, from ``min_radius`` to ``max_radius``."""
    t = (ink / 255.0) ** config.darkness_power
    return config.min_radius + t * (config.max_radius - config.min_radius)


def fits(tree: RTree, x: float, y: float, r: float, padding: float) -> bool:
    """Check that a circle keeps ``padding`` clear of every placed circle."""
    reach = r + padding
    bbox = (x - reach, y - reach, x + reach, y + reach)
    if not tree.collides(bbox):
        return True
    for entry in tree.search(bbox):
        other: Circle = entry.payload
        gap = other.r + r + padding
        if (other.x - x) ** 2 + (other.y - y) ** 2 < gap * gap:
            return False
    return True


def pack_circles(
    field: BrightnessField,
    config: CirclePackConfig,
    seed: int,
    context: JobContext | None = None,
) -> list[Circle]:
    """Place up to ``max_circles`` circles from ``samples`` random candidates.

    Candidates on ink below ``min_darkness`` or whose circle would leave the
    image are skipped.

    Args:
        field: Brightness field of the image
        config: Packing parameters
        seed: Seed for candidate positions
        context: Progress and cancellation hooks

    Returns:
        Circles in placement order
    """
    context = context or JobContext()
    rng = make_rng(seed)
    width, height = field.width, field.height
    tree = RTree()
    circles: list[Circle] = []

    context.checkpoint("Packing circles")
    for i in range(config.samples):
        if len(circles) >= config.max_circles:
            break
        if i % CHECK_EVERY == 0:
            context.checkpoint()

        x = rng.random() * width
        y = rng.random() * height
        ink = field.sample(x, y)
        if ink < config.min_darkness:
            continue

        r = circle_radius(ink, config)
        if r <= 0:
            continue
        if x - r < 0 or x + r > width or y - r < 0 or y + r > height:
            continue
        if not fits(tree, x, y, r, config.padding):
            continue

        circle = Circle(float(x), float(y), float(r))
        reach = r + config.padding
        tree.insert(IndexEntry(x - reach, y - reach, x + reach, y + reach, circle))
        circles.append(circle)

    logger.debug("Circle packing finished", candidates=config.samples, circles=len(circles))
    return circles
