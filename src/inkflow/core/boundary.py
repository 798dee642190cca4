"""Face-boundary context for masking and clipping.

A face boundary arrives from the host as either a polygon (optionally grown
outward by an offset) or a precomputed raster mask. It is resolved once per
image size into a :class:`PreparedBoundary`:

- the raster mask zeroes brightness outside the face;
- the clip polygon (polygon input only) trims emitted lines.

Resolution results are cached by the caller, keyed on the caller's revision
counter, so nothing here holds module-level state.
"""

import math
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

import numpy as np
import structlog
from PIL import Image, ImageDraw
from shapely.geometry import MultiPolygon, Polygon

logger = structlog.get_logger("inkflow.boundary")

Coord = tuple[float, float]


def _to_coord(point: Any) -> Coord | None:
    if isinstance(point, Mapping):
        raw = (point.get("x"), point.get("y"))
    elif isinstance(point, (list, tuple)) and len(point) >= 2:
        raw = (point[0], point[1])
    else:
        return None
    try:
        x, y = float(raw[0]), float(raw[1])
    except (TypeError, ValueError):
        return None
    if not (math.isfinite(x) and math.isfinite(y)):
        return None
    return (x, y)


def parse_polygon(raw: Any) -> tuple[Coord, ...] | None:
    """Parse ``[[x, y], ...]`` or ``[{"x": .., "y": ..}, ...]``.

    Returns:
        Polygon coordinates, or None when fewer than 3 usable points remain
    """
    if not isinstance(raw, (list, tuple)):
        return None
    coords = tuple(c for c in (_to_coord(p) for p in raw) if c is not None)
    return coords if len(coords) >= 3 else None


def _largest_polygon(geometry: Any) -> Polygon | None:
    if isinstance(geometry, Polygon):
        return None if geometry.is_empty else geometry
    if isinstance(geometry, MultiPolygon) and not geometry.is_empty:
        return max(geometry.geoms, key=lambda g: g.area)
    return None


@dataclass(frozen=True)
class PreparedBoundary:
    """A face boundary resolved for one image size.

    Attributes:
        mask: Boolean ``(height, width)`` array, True inside the face
        clip_polygon: Polygon used to clip emitted lines, if any
        polygon: Coordinates of ``clip_polygon`` after offsetting
    """

    mask: np.ndarray | None
    clip_polygon: Polygon | None = None
    polygon: tuple[Coord, ...] | None = None

    @property
    def active(self) -> bool:
        """Check if any masking or clipping applies."""
        return self.mask is not None or self.clip_polygon is not None


@dataclass(frozen=True)
class FaceBoundary:
    """Immutable face-boundary input.

    Attributes:
        polygon: Boundary polygon in image coordinates
        offset: Outward growth applied to ``polygon`` in pixels
        mask: Precomputed row-major mask values (truthy = inside)
        mask_width: Width of ``mask``
        mask_height: Height of ``mask``
        revision: Caller-owned counter; bump it whenever the inputs change
    """

    polygon: tuple[Coord, ...] | None = None
    offset: float = 0.0
    mask: tuple[int, ...] | None = None
    mask_width: int = 0
    mask_height: int = 0
    revision: int = 0

    @classmethod
    def from_config(cls, config: Mapping[str, Any], offset: float = 0.0) -> "FaceBoundary":
        """Build from the reserved job config keys."""
        raw_mask = config.get("faceBoundaryMask")
        mask: tuple[int, ...] | None = None
        if raw_mask is not None:
            try:
                mask = tuple(int(bool(v)) for v in raw_mask)
            except TypeError:
                mask = None

        def _int(key: str) -> int:
            try:
                value = float(config.get(key, 0))
            except (TypeError, ValueError):
                return 0
            return int(value) if math.isfinite(value) else 0

        return cls(
            polygon=parse_polygon(config.get("faceBoundary")),
            offset=max(0.0, offset) if math.isfinite(offset) else 0.0,
            mask=mask,
            mask_width=_int("faceBoundaryMaskWidth"),
            mask_height=_int("faceBoundaryMaskHeight"),
            revision=_int("faceBoundaryRevision"),
        )

    def cache_key(self, width: int, height: int) -> tuple[Any, ...]:
        """Key identifying this boundary resolved at a given size."""
        return (self.revision, width, height, self.offset)

    def prepare(self, width: int, height: int) -> PreparedBoundary:
        """Resolve into a mask and clip polygon for a ``width x height`` image.

        A precomputed mask wins when its dimensions match the image. Otherwise
        the polygon is offset and rasterised. Malformed input disables the
        boundary instead of failing.
        """
        if self.mask is not None and self.mask_width == width and self.mask_height == height:
            if len(self.mask) == width * height:
                array = np.asarray(self.mask, dtype=bool).reshape(height, width)
                return PreparedBoundary(mask=array)
            logger.warning(
                "Face mask size mismatch, ignoring mask",
                expected=width * height,
                actual=len(self.mask),
            )

        if self.polygon is None:
            if self.mask is not None:
                logger.warning(
                    "Face mask dimensions do not match image, boundary disabled",
                    mask_width=self.mask_width,
                    mask_height=self.mask_height,
                    width=width,
                    height=height,
                )
            return PreparedBoundary(mask=None)

        shape = Polygon(self.polygon)
        if not shape.is_valid:
            shape = shape.buffer(0)
        if self.offset > 0:
            grown = _largest_polygon(shape.buffer(self.offset, join_style="round"))
            if grown is not None and len(grown.exterior.coords) >= 4:
                shape = grown

        shape = _largest_polygon(shape)
        if shape is None or shape.area <= 0:
            logger.warning("Face boundary polygon is degenerate, boundary disabled")
            return PreparedBoundary(mask=None)

        coords = tuple((float(x), float(y)) for x, y in shape.exterior.coords)
        return PreparedBoundary(
            mask=rasterize_polygon(coords, width, height),
            clip_polygon=shape,
            polygon=coords,
        )


def rasterize_polygon(polygon: tuple[Coord, ...], width: int, height: int) -> np.ndarray:
    """Rasterise a polygon to a boolean ``(height, width)`` mask."""
    image = Image.new("L", (max(1, width), max(1, height)), 0)
    ImageDraw.Draw(image).polygon([(x, y) for x, y in polygon], fill=255, outline=255)
    return np.asarray(image, dtype=np.uint8)[:height, :width] > 0


class BoundaryCache:
    """Caller-owned cache of prepared boundaries keyed by revision."""

    def __init__(self, max_entries: int = 8) -> None:
        self._max_entries = max_entries
        self._entries: dict[tuple[Any, ...], PreparedBoundary] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, boundary: FaceBoundary, width: int, height: int) -> PreparedBoundary:
        """Return a prepared boundary, resolving it on first use."""
        key = boundary.cache_key(width, height)
        prepared = self._entries.get(key)
        if prepared is None:
            prepared = boundary.prepare(width, height)
            if len(self._entries) >= self._max_entries:
                self._entries.pop(next(iter(self._entries)))
            self._entries[key] = prepared
        return prepared

    def clear(self) -> None:
        """Drop every cached entry."""
        self._entries.clear()
