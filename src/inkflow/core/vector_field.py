"""Composited unit-vector fields for streamline tracing.

Fields are ``(height, width, 2)`` float arrays of unit vectors. The tracer
combines a noise base field with optional image-driven fields:

- edge field: runs along intensity edges, weighted by gradient magnitude;
- dark field: runs around dark regions of a blurred guide, weighted by
  darkness.
"""

import math

import numpy as np

from inkflow.core.brightness import box_blur
from inkflow.core.noise import random_int, simplex_grid

EPS = 1e-10

_MAX_NOISE_SEED = 0x7FFFFFFF


def _round_index(value: float, upper: int) -> int:
    return min(upper - 1, max(0, int(math.floor(value + 0.5))))


def gradient(data: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    """Per-pixel ``(d/dx, d/dy)`` of a 2D grid."""
    data = np.asarray(data, dtype=np.float64)
    height, width = data.shape
    # np.gradient needs two samples along an axis
    grad_x = np.gradient(data, axis=1) if width > 1 else np.zeros_like(data)
    grad_y = np.gradient(data, axis=0) if height > 1 else np.zeros_like(data)
    return grad_x, grad_y


def normalize(field: np.ndarray) -> np.ndarray:
    """Scale vectors to unit length; near-zero vectors are left as they are."""
    norm = np.hypot(field[..., 0], field[..., 1])
    safe = np.where(norm > EPS, norm, 1.0)
    return field / safe[..., None]


def rotate(field: np.ndarray, degrees: float) -> np.ndarray:
    """Rotate every vector by ``degrees``."""
    if degrees == 0:
        return field
    radians = math.radians(degrees)
    s, c = math.sin(radians), math.cos(radians)
    x, y = field[..., 0], field[..., 1]
    return np.stack([c * x - s * y, s * x + c * y], axis=-1)


def _perpendicular(grad_x: np.ndarray, grad_y: np.ndarray) -> np.ndarray:
    return np.stack([grad_y, -grad_x], axis=-1)


def noise_field(width: int, height: int, scale: float, rng: np.random.Generator) -> np.ndarray:
    """Field from two independent simplex noises, one per component."""
    x_noise = simplex_grid(width, height, scale, random_int(rng, _MAX_NOISE_SEED))
    y_noise = simplex_grid(width, height, scale, random_int(rng, _MAX_NOISE_SEED))
    field = np.stack([x_noise, y_noise], axis=-1)

    norm = np.hypot(field[..., 0], field[..., 1])
    degenerate = norm <= EPS
    field = normalize(field)
    field[degenerate] = (1.0, 0.0)
    return field


def curl_noise_field(width: int, height: int, scale: float, rng: np.random.Generator) -> np.ndarray:
    """Divergence-free field ``(dn/dy, -dn/dx)`` of one simplex noise."""
    noise = simplex_grid(width, height, scale, random_int(rng, _MAX_NOISE_SEED))
    grad_x, grad_y = gradient(noise)
    return normalize(_perpendicular(grad_x, grad_y))


def edge_field(guide: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    """Field along intensity edges.

    Returns:
        The unit field and per-pixel weights ``|grad| / max |grad|``
    """
    grad_x, grad_y = gradient(guide)
    magnitude = np.hypot(grad_x, grad_y)
    peak = float(magnitude.max()) if magnitude.size else 0.0
    weights = magnitude / peak if peak > 0 else magnitude
    return normalize(_perpendicular(grad_x, grad_y)), weights


def dark_field(guide: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    """Field circling dark regions of a heavily blurred guide.

    Returns:
        The unit field and per-pixel weights ``1 - guide / 255``
    """
    height, width = guide.shape
    kernel = int(math.sqrt(width * height) / 4.5)
    if kernel % 2 == 0:
        kernel += 1
    radius = max(1, kernel // 2)
    grad_x, grad_y = gradient(box_blur(guide, radius))
    weights = 1.0 - np.asarray(guide, dtype=np.float64) / 255.0
    return normalize(_perpendicular(grad_x, grad_y)), weights


def composite(
    base: np.ndarray,
    guide: np.ndarray,
    opaque: np.ndarray,
    edge_weight: float = 0.0,
    dark_weight: float = 0.0,
    rotation: float = 0.0,
) -> np.ndarray:
    """Blend image-driven fields over a noise base.

    ``sum(field_i * w_i * m_i) + base * clamp(1 - sum(w_i * m_i), 0, 1)`` on
    opaque pixels and the pure base elsewhere, renormalised and rotated.

    Args:
        base: Noise field
        guide: Guide brightness grid (255 = white)
        opaque: Boolean mask of opaque pixels
        edge_weight: Edge field multiplier (0 disables)
        dark_weight: Dark field multiplier (0 disables)
        rotation: Global rotation in degrees

    Returns:
        The composite unit field
    """
    field = np.zeros_like(base)
    weights = np.zeros(base.shape[:2])

    if edge_weight > 0:
        edge, edge_w = edge_field(guide)
        w = edge_w * edge_weight
        field += edge * w[..., None]
        weights += w

    if dark_weight > 0:
        dark, dark_w = dark_field(guide)
        w = dark_w * dark_weight
        field += dark * w[..., None]
        weights += w

    field += base * np.clip(1.0 - weights, 0.0, 1.0)[..., None]
    field = np.where(opaque[..., None], field, base)
    return rotate(normalize(field), rotation)


class VectorField:
    """Read-only grid of unit vectors with nearest-pixel lookup."""

    def __init__(self, field: np.ndarray) -> None:
        data = np.array(field, dtype=np.float64)
        data.flags.writeable = False
        self._data = data
        self.height, self.width = data.shape[:2]
        # Plain lists are much faster than numpy scalars in the tracing loop
        self._xs = data[..., 0].tolist()
        self._ys = data[..., 1].tolist()

    @property
    def data(self) -> np.ndarray:
        return self._data

    def get(self, x: float, y: float) -> tuple[float, float]:
        """Vector at the pixel nearest ``(x, y)``, clamped to the grid."""
        xi = _round_index(x, self.width)
        yi = _round_index(y, self.height)
        return self._xs[yi][xi], self._ys[yi][xi]

    def rotated(self, degrees: float) -> "VectorField":
        """A copy with every vector rotated."""
        if degrees == 0:
            return self
        return VectorField(rotate(self._data, degrees))


def rk4(field: VectorField, x: float, y: float, h: float) -> tuple[float, float]:
    """Fourth-order Runge-Kutta direction estimate for step ``h``."""
    k1x, k1y = field.get(x, y)
    k2x, k2y = field.get(x + h / 2 * k1x, y + h / 2 * k1y)
    k3x, k3y = field.get(x + h / 2 * k2x, y + h / 2 * k2y)
    k4x, k4y = field.get(x + h * k3x, y + h * k3y)
    return (
        (k1x + 2 * k2x + 2 * k3x + k4x) / 6,
        (k1y + 2 * k2y + 2 * k3y + k4y) / 6,
    )
