"""Domain models for inkflow.

This module contains the value types exchanged between the algorithms and
the job layer. All models are designed to be:

- Small dataclasses with explicit fields
- Serializable for inter-process communication (parallel processing)
- Independent of numpy, scipy and Pillow

Key classes:
- Point, Particle, Circle: Geometric primitives
- Streamline: A traced polyline with arc length
- PathSet: Terminal geometry of a job
- Job, JobResult: Job input and terminal message
"""

from inkflow.domain.geometry import Circle, Particle, Point
from inkflow.domain.job import RESERVED_KEYS, Job, JobResult
from inkflow.domain.paths import Coord, FrozenLine, PathSet, Polyline, Streamline

__all__: list[str] = [
    # Primitives
    "Point",
    "Particle",
    "Circle",
    # Paths
    "Coord",
    "FrozenLine",
    "Polyline",
    "Streamline",
    "PathSet",
    # Jobs
    "RESERVED_KEYS",
    "Job",
    "JobResult",
]
