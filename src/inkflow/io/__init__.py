"""Image I/O layer for inkflow.

This module handles reading images with Pillow and writing job results.
It keeps file formats out of the algorithms, which only see RGBA buffers.

Key responsibilities:
- Load images of any Pillow-supported format as RGBA
- Load face-boundary polygons (JSON) and depth maps (grayscale images)
- Write results as JSON

Key classes:
- ImageReader: Load images and build jobs
- ResultWriter: Save job results
"""

from inkflow.io.reader import ImageReader, load_depth, load_polygon
from inkflow.io.writer import ResultWriter

__all__ = [
    "ImageReader",
    "ResultWriter",
    "load_depth",
    "load_polygon",
]
