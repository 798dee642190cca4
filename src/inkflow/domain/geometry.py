"""Core geometric types for generated artwork.

This module defines the small value types passed between the algorithms:
- Point: An immutable 2D point
- Particle: A mutable stipple site that moves during relaxation
- Circle: A circle mark for circle output
"""

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True, slots=True)
class Point:
    """A point in 2D space.

    Immutable and hashable for use in sets/dicts.

    Attributes:
        x: X coordinate in pixels
        y: Y coordinate in pixels
    """

    x: float
    y: float

    def to_tuple(self) -> tuple[float, float]:
        """Convert to simple (x, y) tuple."""
        return (self.x, self.y)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary for IPC."""
        return {"x": self.x, "y": self.y}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Point":
        """Deserialize from dictionary."""
        return cls(x=data["x"], y=data["y"])


@dataclass(slots=True)
class Particle:
    """A stipple site.

    Particles are moved in place by every relaxation iteration; the radius
    is assigned at render time from the local brightness.

    Attributes:
        x: X coordinate in pixels
        y: Y coordinate in pixels
        r: Mark radius in pixels
    """

    x: float
    y: float
    r: float = 0.0

    def to_tuple(self) -> tuple[float, float]:
        """Convert position to (x, y) tuple."""
        return (self.x, self.y)


@dataclass(frozen=True, slots=True)
class Circle:
    """A circle mark.

    Attributes:
        x: Center X coordinate
        y: Center Y coordinate
        r: Radius
    """

    x: float
    y: float
    r: float

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary for IPC."""
        return {"x": self.x, "y": self.y, "r": self.r}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Circle":
        """Deserialize from dictionary."""
        return cls(x=data["x"], y=data["y"], r=data["r"])
