"""Shared fixtures: synthetic RGBA images."""

import numpy as np
import pytest

from inkflow.domain import Job


def make_rgba(width: int, height: int, gray: int = 128, alpha: int = 255) -> bytes:
    """Uniform gray RGBA buffer."""
    data = np.empty((height, width, 4), dtype=np.uint8)
    data[..., :3] = gray
    data[..., 3] = alpha
    return data.tobytes()


def make_split_rgba(width: int, height: int) -> bytes:
    """White left half, black right half."""
    data = np.full((height, width, 4), 255, dtype=np.uint8)
    data[:, width // 2 :, :3] = 0
    return data.tobytes()


@pytest.fixture
def gray_pixels() -> bytes:
    """100x80 mid-gray image."""
    return make_rgba(100, 80, gray=128)


@pytest.fixture
def split_pixels() -> bytes:
    """120x60 white/black split image."""
    return make_split_rgba(120, 60)


@pytest.fixture
def gray_job(gray_pixels: bytes) -> Job:
    """Small stipple job over a gray image."""
    return Job(
        algorithm="stipple",
        pixels=gray_pixels,
        width=100,
        height=80,
        config={
            "width": 100,
            "height": 80,
            "penWidth": 1.5,
            "Max Stipples": 500,
            "Max Iterations": 2,
            "Seed": 7,
        },
    )
