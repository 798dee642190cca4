"""Seeded randomness and 2D simplex noise.

Every random decision in a job flows from an explicit seed so runs can be
reproduced. A negative or missing seed means "pick one", and the picked seed
is reported back with the result.
"""

import numpy as np
from opensimplex import OpenSimplex

# Seeds are kept inside the range the "Seed" control accepts
MAX_SEED = 100000


def resolve_seed(seed: int | None) -> int:
    """Return ``seed`` if usable, otherwise draw a fresh one."""
    if seed is not None and seed >= 0:
        return int(seed)
    return int(np.random.default_rng().integers(0, MAX_SEED + 1))


def make_rng(seed: int) -> np.random.Generator:
    """Create a generator for a resolved seed."""
    return np.random.default_rng(seed)


def random_int(rng: np.random.Generator, upper: int) -> int:
    """Uniform integer in ``[0, upper)``."""
    return int(rng.integers(0, upper))


def simplex_grid(width: int, height: int, scale: float, seed: int) -> np.ndarray:
    """Simplex noise sampled at every pixel centre of a grid.

    Args:
        width: Grid width
        height: Grid height
        scale: Noise frequency; pixel ``(x, y)`` samples ``(x * scale, y * scale)``
        seed: Noise permutation seed

    Returns:
        ``(height, width)`` array of values in ``[-1, 1]``
    """
    xs = np.arange(width, dtype=np.float64) * scale
    ys = np.arange(height, dtype=np.float64) * scale
    return OpenSimplex(seed=seed).noise2array(xs, ys)
