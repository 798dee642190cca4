"""Inkflow - Turn raster images into plotter-ready line art.

Inkflow samples an image into a brightness field and runs one of several
generative algorithms over it (weighted Voronoi stippling, TSP art,
evenly-spaced flow-field streamlines), emitting path data a pen plotter can
draw.

Example:
    $ inkflow render portrait.png --algorithm stipple --seed 7

This writes portrait-stipple.json containing the generated path strings.
"""

__version__ = "0.1.0"

__all__ = ["__version__"]
