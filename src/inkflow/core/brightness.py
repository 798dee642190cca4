"""Brightness field: the shared pixel-sampling contract.

Every algorithm reads the image through a :class:`BrightnessField`, which maps
``(x, y)`` to an ink intensity in ``[0, 255]`` (255 = darkest ink). All image
processing (blur, luma, brightness/contrast, inversion, depth modulation and
the face mask) happens once at construction; sampling is a pure lookup.
"""

import math
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

import numpy as np
import structlog
from scipy import ndimage

from inkflow.config import BrightnessConfig, DepthMode
from inkflow.core.boundary import BoundaryCache, FaceBoundary, PreparedBoundary
from inkflow.domain import Job

logger = structlog.get_logger("inkflow.brightness")

LUMA_WEIGHTS = (0.2125, 0.7154, 0.0721)

# Divide mode never divides by less than this
MIN_DEPTH = 0.05


def contrast_factor(contrast: float) -> float:
    """Standard contrast correction factor for ``contrast`` in [-255, 255]."""
    return (259.0 * (contrast + 255.0)) / (255.0 * (259.0 - contrast))


def pixels_to_array(pixels: bytes | np.ndarray, width: int, height: int) -> np.ndarray:
    """View an RGBA buffer as a ``(height, width, 4)`` uint8 array.

    Raises:
        ValueError: If the buffer size does not match the dimensions
    """
    array = np.frombuffer(pixels, dtype=np.uint8) if isinstance(pixels, (bytes, bytearray)) else (
        np.asarray(pixels, dtype=np.uint8)
    )
    expected = width * height * 4
    if array.size != expected:
        raise ValueError(f"Pixel buffer has {array.size} bytes, expected {expected}")
    return array.reshape(height, width, 4)


def box_blur(data: np.ndarray, radius: int) -> np.ndarray:
    """Box blur over the first two axes with a ``2 * radius + 1`` window.

    Edges repeat the border pixel. Trailing axes (colour channels) are
    blurred independently.
    """
    data = np.asarray(data, dtype=np.float64)
    if radius <= 0:
        return data
    window = 2 * radius + 1
    size = (window, window) + (1,) * (data.ndim - 2)
    return ndimage.uniform_filter(data, size=size, mode="nearest")


def box_blur_rgb(rgba: np.ndarray, radius: int) -> np.ndarray:
    """Box blur the RGB channels, leaving alpha untouched."""
    if radius <= 0:
        return rgba
    blurred = np.clip(np.rint(box_blur(rgba[..., :3], radius)), 0, 255).astype(np.uint8)
    out = rgba.copy()
    out[..., :3] = blurred
    return out


@dataclass(frozen=True)
class DepthMap:
    """A grayscale depth grid (255 = nearest).

    Attributes:
        data: ``(height, width)`` uint8 array
    """

    data: np.ndarray

    @property
    def width(self) -> int:
        return int(self.data.shape[1])

    @property
    def height(self) -> int:
        return int(self.data.shape[0])

    @classmethod
    def from_payload(cls, payload: Any) -> "DepthMap | None":
        """Parse ``{"data": [...], "width": w, "height": h}``.

        Returns:
            None for missing or malformed payloads
        """
        if not isinstance(payload, Mapping):
            return None
        try:
            width = int(payload.get("width") or 0)
            height = int(payload.get("height") or 0)
            raw = payload.get("data")
            if raw is None or width <= 0 or height <= 0:
                return None
            if isinstance(raw, (bytes, bytearray)):
                data = np.frombuffer(raw, dtype=np.uint8)
            else:
                data = np.clip(np.asarray(raw, dtype=np.float64), 0, 255).astype(np.uint8)
            if data.size != width * height:
                return None
        except (TypeError, ValueError):
            return None
        return cls(data=data.reshape(height, width))

    def lut(self, invert: bool, gamma: float) -> np.ndarray:
        """Lookup table applying inversion and gamma."""
        gamma = gamma if math.isfinite(gamma) and gamma > 0 else 1.0
        values = np.arange(256, dtype=np.float64) / 255.0
        if invert:
            values = 1.0 - values
        return np.round(np.power(values, gamma) * 255.0)

    def resample(self, width: int, height: int, invert: bool = False, gamma: float = 1.0) -> np.ndarray:
        """Nearest-neighbour resample to ``(height, width)``, values in [0, 255]."""
        sx = np.clip(np.floor(np.arange(width) * (self.width / width)), 0, self.width - 1)
        sy = np.clip(np.floor(np.arange(height) * (self.height / height)), 0, self.height - 1)
        sampled = self.data[np.ix_(sy.astype(np.intp), sx.astype(np.intp))]
        return self.lut(invert, gamma)[sampled]


class BrightnessField:
    """Immutable ``(x, y) -> [0, 255]`` sampler over a precomputed grid.

    Coordinates are floored to pixel indices and clamped to the image, so any
    real coordinate is a valid query.

    Example:
        field = BrightnessField.from_pixels(rgba_bytes, 200, 100, BrightnessConfig())
        ink = field.sample(10.5, 20.25)
    """

    def __init__(self, grid: np.ndarray) -> None:
        values = np.clip(np.asarray(grid, dtype=np.float64), 0.0, 255.0)
        if values.ndim != 2:
            raise ValueError("Brightness grid must be two-dimensional")
        values.flags.writeable = False
        self._grid = values
        self._height, self._width = values.shape

    @property
    def width(self) -> int:
        return self._width

    @property
    def height(self) -> int:
        return self._height

    @property
    def grid(self) -> np.ndarray:
        """Read-only ``(height, width)`` intensity array."""
        return self._grid

    def sample(self, x: float, y: float) -> float:
        """Ink intensity at ``(x, y)``."""
        if not self._width or not self._height:
            return 0.0
        xi = min(self._width - 1, max(0, int(math.floor(x))))
        yi = min(self._height - 1, max(0, int(math.floor(y))))
        return float(self._grid[yi, xi])

    def sample_many(self, xs: np.ndarray, ys: np.ndarray) -> np.ndarray:
        """Vectorized :meth:`sample`."""
        xi = np.clip(np.floor(np.asarray(xs)), 0, self._width - 1).astype(np.intp)
        yi = np.clip(np.floor(np.asarray(ys)), 0, self._height - 1).astype(np.intp)
        return self._grid[yi, xi]

    def blend_depth(
        self, depth: DepthMap, influence: float, invert: bool = False, gamma: float = 1.0
    ) -> "BrightnessField":
        """Mix intensity with raw depth: ``base (1 - i) + depth i``."""
        influence = min(1.0, max(0.0, influence)) if math.isfinite(influence) else 0.0
        if influence <= 0:
            return self
        depth_values = depth.resample(self._width, self._height, invert, gamma)
        return BrightnessField(self._grid * (1.0 - influence) + depth_values * influence)

    @classmethod
    def uniform(cls, width: int, height: int, value: float) -> "BrightnessField":
        """A field with the same intensity everywhere."""
        return cls(np.full((height, width), float(value)))

    @classmethod
    def from_pixels(
        cls,
        pixels: bytes | np.ndarray,
        width: int,
        height: int,
        config: BrightnessConfig,
        *,
        depth: DepthMap | None = None,
        boundary: PreparedBoundary | None = None,
        ignore_depth: bool = False,
        pre_blur: int = 0,
    ) -> "BrightnessField":
        """Build a field from an RGBA buffer.

        Args:
            pixels: RGBA bytes or array
            width: Image width
            height: Image height
            config: Image adjustment settings
            depth: Optional depth map for depth modulation
            boundary: Optional prepared face boundary; its mask zeroes intensity
            ignore_depth: Skip depth modulation even when enabled
            pre_blur: Extra blur applied before ``config.blur_radius``

        Returns:
            The brightness field
        """
        rgba = pixels_to_array(pixels, width, height)
        rgba = box_blur_rgb(rgba, pre_blur)
        rgba = box_blur_rgb(rgba, config.blur_radius)

        factor = contrast_factor(config.contrast)
        channels = rgba[..., :3].astype(np.float64)
        adjusted = factor * (channels - 128.0) + 128.0 + config.brightness
        value = adjusted @ np.asarray(LUMA_WEIGHTS)

        if config.inverted:
            value = np.minimum(255.0 - config.min_brightness, 255.0 - value)
        else:
            value = np.maximum(float(config.min_brightness), value)
        base = np.clip(config.max_brightness - value, 0.0, 255.0)

        if boundary is not None and boundary.mask is not None:
            base = np.where(boundary.mask, base, 0.0)

        strength = config.depth_strength
        if config.depth_map and not ignore_depth and depth is not None and strength > 0:
            depth_values = (
                depth.resample(width, height, config.depth_invert, config.depth_gamma) / 255.0
            )
            if config.depth_mode == DepthMode.DIVIDE.value:
                modulated = base / np.maximum(depth_values, MIN_DEPTH)
            else:
                modulated = base * depth_values
            modulated = np.clip(modulated, 0.0, 255.0)
            base = base * (1.0 - strength) + modulated * strength
        elif config.depth_map and not ignore_depth and depth is None:
            logger.warning("Depth map enabled but no usable depth data, depth disabled")

        return cls(base)

    @classmethod
    def from_job(
        cls,
        job: Job,
        config: BrightnessConfig,
        cache: BoundaryCache | None = None,
        *,
        ignore_depth: bool = False,
        pre_blur: int = 0,
    ) -> tuple["BrightnessField", PreparedBoundary | None]:
        """Build a field from a job, resolving its reserved config keys.

        Returns:
            The field and the prepared face boundary (None when disabled)
        """
        prepared: PreparedBoundary | None = None
        if config.face_boundary:
            boundary = FaceBoundary.from_config(job.config, config.face_boundary_offset)
            cache = cache if cache is not None else BoundaryCache()
            prepared = cache.get(boundary, job.width, job.height)
            if not prepared.active:
                prepared = None

        depth = DepthMap.from_payload(job.config.get("depthData"))
        field = cls.from_pixels(
            job.pixels,
            job.width,
            job.height,
            config,
            depth=depth,
            boundary=prepared,
            ignore_depth=ignore_depth,
            pre_blur=pre_blur,
        )
        return field, prepared
