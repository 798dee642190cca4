"""Image and auxiliary data readers.

This module loads raster images into RGBA buffers and the optional
face-boundary polygon and depth map that accompany a job.
"""

import json
from pathlib import Path
from typing import Any

import numpy as np
from PIL import Image, UnidentifiedImageError

from inkflow.core.boundary import parse_polygon
from inkflow.domain import Job
from inkflow.exceptions import AuxiliaryDataError, ImageLoadError


class ImageReader:
    """Loads raster images as RGBA pixel buffers.

    Example:
        reader = ImageReader(Path("portrait.png"))
        reader.load()
        job = reader.to_job("stipple", {"Max Stipples": 4000})
    """

    def __init__(self, image_path: Path, max_size: int | None = None) -> None:
        """Initialize the image reader.

        Args:
            image_path: Path to any image format Pillow can open
            max_size: Downscale so neither side exceeds this (None keeps size)
        """
        self._image_path = image_path
        self._max_size = max_size
        self._image: Image.Image | None = None

    def load(self) -> None:
        """Load and convert the image to RGBA.

        Raises:
            ImageLoadError: If the file is missing or not a readable image
        """
        if not self._image_path.exists():
            raise ImageLoadError(str(self._image_path), "file not found")
        try:
            with Image.open(self._image_path) as image:
                rgba = image.convert("RGBA")
        except (UnidentifiedImageError, OSError) as e:
            raise ImageLoadError(str(self._image_path), str(e)) from e

        if self._max_size is not None and max(rgba.size) > self._max_size:
            rgba.thumbnail((self._max_size, self._max_size), Image.Resampling.LANCZOS)
        self._image = rgba

    def _require(self) -> Image.Image:
        if self._image is None:
            raise RuntimeError("Image not loaded. Call load() first.")
        return self._image

    @property
    def width(self) -> int:
        return self._require().width

    @property
    def height(self) -> int:
        return self._require().height

    @property
    def pixels(self) -> bytes:
        """Row-major RGBA bytes."""
        return self._require().tobytes()

    def to_job(
        self,
        algorithm: str,
        params: dict[str, Any] | None = None,
        *,
        pen_width: float = 1.0,
        slot: str = "default",
    ) -> Job:
        """Build a job for this image.

        Args:
            algorithm: Registered algorithm name
            params: Algorithm parameters keyed by control label
            pen_width: Pen width hint
            slot: Output slot

        Returns:
            A job carrying the pixels, dimensions and parameters
        """
        config: dict[str, Any] = dict(params or {})
        config.update({"width": self.width, "height": self.height, "penWidth": pen_width})
        return Job(
            algorithm=algorithm,
            pixels=self.pixels,
            width=self.width,
            height=self.height,
            config=config,
            slot=slot,
        )


def load_polygon(path: Path) -> list[list[float]]:
    """Load a face-boundary polygon from JSON.

    Accepts ``[[x, y], ...]``, ``[{"x": .., "y": ..}, ...]`` or an object
    with a ``"polygon"`` key holding either form.

    Raises:
        AuxiliaryDataError: If the file is unreadable or holds fewer than 3 points
    """
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        raise AuxiliaryDataError(str(path), str(e)) from e

    if isinstance(data, dict):
        data = data.get("polygon")
    polygon = parse_polygon(data)
    if polygon is None:
        raise AuxiliaryDataError(str(path), "polygon needs at least 3 points")
    return [[x, y] for x, y in polygon]


def load_depth(path: Path, width: int | None = None, height: int | None = None) -> dict[str, Any]:
    """Load a grayscale depth image as a depth payload.

    Args:
        path: Depth image (white = near)
        width: Optional width to resize to
        height: Optional height to resize to

    Returns:
        ``{"data": [...], "width": w, "height": h}``

    Raises:
        AuxiliaryDataError: If the image cannot be read
    """
    try:
        with Image.open(path) as image:
            gray = image.convert("L")
    except (UnidentifiedImageError, OSError) as e:
        raise AuxiliaryDataError(str(path), str(e)) from e

    if width and height and gray.size != (width, height):
        gray = gray.resize((width, height), Image.Resampling.BILINEAR)
    data = np.asarray(gray, dtype=np.uint8)
    return {"data": data.ravel().tolist(), "width": gray.width, "height": gray.height}
