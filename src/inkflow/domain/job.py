"""Job input and result models.

A job is one isolated run of one algorithm over one image. Jobs cross a
process boundary, so both sides serialize to plain dictionaries.
"""

import math
import uuid
from dataclasses import dataclass, field
from typing import Any

# Config keys owned by the host rather than by an algorithm
RESERVED_KEYS = (
    "width",
    "height",
    "penWidth",
    "depthData",
    "faceBoundary",
    "faceBoundaryMask",
    "faceBoundaryMaskWidth",
    "faceBoundaryMaskHeight",
    "faceBoundaryRevision",
)


@dataclass
class Job:
    """A single algorithm invocation.

    Attributes:
        algorithm: Registered algorithm name
        pixels: RGBA bytes, row-major, ``width * height * 4`` long
        width: Image width in pixels
        height: Image height in pixels
        config: Reserved keys plus algorithm parameters keyed by control label
        slot: Logical output slot; a newer job replaces an older one in the same slot
        job_id: Unique identifier
    """

    algorithm: str
    pixels: bytes
    width: int
    height: int
    config: dict[str, Any] = field(default_factory=dict)
    slot: str = "default"
    job_id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])

    @property
    def pen_width(self) -> float:
        """Pen width hint, defaulting to 1 for missing or invalid values."""
        try:
            value = float(self.config.get("penWidth", 1.0))
        except (TypeError, ValueError):
            return 1.0
        return value if math.isfinite(value) and value > 0 else 1.0

    def params(self) -> dict[str, Any]:
        """Algorithm parameters without the reserved keys."""
        return {k: v for k, v in self.config.items() if k not in RESERVED_KEYS}

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary for IPC."""
        return {
            "algorithm": self.algorithm,
            "pixels": self.pixels,
            "width": self.width,
            "height": self.height,
            "config": self.config,
            "slot": self.slot,
            "job_id": self.job_id,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Job":
        """Deserialize from dictionary."""
        return cls(
            algorithm=data["algorithm"],
            pixels=data["pixels"],
            width=int(data["width"]),
            height=int(data["height"]),
            config=dict(data.get("config") or {}),
            slot=data.get("slot", "default"),
            job_id=data.get("job_id") or uuid.uuid4().hex[:12],
        )


@dataclass
class JobResult:
    """Terminal message of a job.

    An empty ``path`` is a valid "no geometry" result.

    Attributes:
        job_id: Identifier of the job that produced this result
        algorithm: Algorithm name
        path: Joined path string
        segments: Independently addressable sub-paths
        seed: Seed actually used, for reproducing the run
        stroke_width: Pen width hint
        messages: Progress messages emitted during the run
        duration_ms: Wall time of the run
    """

    job_id: str
    algorithm: str
    path: str
    segments: list[str] = field(default_factory=list)
    seed: int | None = None
    stroke_width: float = 1.0
    messages: list[str] = field(default_factory=list)
    duration_ms: float = 0.0

    @property
    def is_empty(self) -> bool:
        """Check if no geometry was produced."""
        return not self.path

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary for IPC."""
        return {
            "job_id": self.job_id,
            "algorithm": self.algorithm,
            "path": self.path,
            "segments": list(self.segments),
            "seed": self.seed,
            "stroke_width": self.stroke_width,
            "messages": list(self.messages),
            "duration_ms": self.duration_ms,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "JobResult":
        """Deserialize from dictionary."""
        return cls(
            job_id=data["job_id"],
            algorithm=data["algorithm"],
            path=data["path"],
            segments=list(data.get("segments", [])),
            seed=data.get("seed"),
            stroke_width=data.get("stroke_width", 1.0),
            messages=list(data.get("messages", [])),
            duration_ms=data.get("duration_ms", 0.0),
        )
