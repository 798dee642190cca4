"""Configuration settings for Inkflow.

Algorithm parameters arrive from the host as a flat mapping keyed by control
label (``{"Max Stipples": 2000, "TSP Art": True}``). Each algorithm config is a
pydantic model whose aliases are those labels. Values are never rejected:
numbers are clamped into their declared range and anything unparseable falls
back to the field default.
"""

import math
from collections.abc import Mapping
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator


class ControlType(str, Enum):
    """Kind of host control a parameter is rendered with."""

    RANGE = "range"
    CHECKBOX = "checkbox"
    SELECT = "select"


class ControlSpec(BaseModel):
    """Self-description of one tunable parameter, consumed by the host UI."""

    label: str
    type: ControlType = ControlType.RANGE
    value: float | str | None = None
    checked: bool | None = None
    min: float | None = None
    max: float | None = None
    step: float | None = None
    options: list[str] | None = None

    def to_dict(self) -> dict[str, Any]:
        """Serialize without unset entries."""
        return self.model_dump(mode="json", exclude_none=True)


def control(
    default: Any,
    label: str,
    *,
    ge: float | None = None,
    le: float | None = None,
    step: float | None = None,
    options: list[str] | None = None,
    description: str = "",
) -> Any:
    """Declare a host-controllable field.

    Args:
        default: Default value
        label: Control label, also accepted as the input key
        ge: Lower bound values are clamped to
        le: Upper bound values are clamped to
        step: Slider step hint
        options: Allowed values for select controls
        description: Human readable description

    Returns:
        A pydantic FieldInfo carrying the control metadata
    """
    extra: dict[str, Any] = {"control": True}
    if ge is not None:
        extra["min"] = ge
    if le is not None:
        extra["max"] = le
    if step is not None:
        extra["step"] = step
    if options is not None:
        extra["options"] = list(options)
    return Field(
        default=default,
        alias=label,
        description=description or label,
        json_schema_extra=extra,
    )


def _coerce_bool(raw: Any) -> bool | None:
    if isinstance(raw, bool):
        return raw
    if isinstance(raw, (int, float)) and not (isinstance(raw, float) and math.isnan(raw)):
        return raw != 0
    if isinstance(raw, str):
        lowered = raw.strip().lower()
        if lowered in ("1", "true", "yes", "on"):
            return True
        if lowered in ("0", "false", "no", "off", ""):
            return False
    return None


def _coerce_number(raw: Any, extra: dict[str, Any], integer: bool) -> float | int | None:
    if isinstance(raw, bool):
        raw = int(raw)
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(value):
        return None
    if "min" in extra:
        value = max(extra["min"], value)
    if "max" in extra:
        value = min(extra["max"], value)
    if integer:
        return int(round(value))
    return value


class AlgorithmConfig(BaseModel):
    """Base class for label-addressed, self-clamping parameter sets."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    @model_validator(mode="before")
    @classmethod
    def _sanitize(cls, data: Any) -> Any:
        if not isinstance(data, Mapping):
            return {}

        cleaned: dict[str, Any] = {}
        for name, info in cls.model_fields.items():
            key = info.alias or name
            if key in data:
                raw = data[key]
            elif name in data:
                raw = data[name]
            else:
                continue

            extra = info.json_schema_extra if isinstance(info.json_schema_extra, dict) else {}
            if not extra.get("control"):
                cleaned[key] = raw
                continue

            if info.annotation is bool:
                value = _coerce_bool(raw)
            elif "options" in extra:
                value = raw if raw in extra["options"] else None
            else:
                value = _coerce_number(raw, extra, integer=info.annotation is int)

            # Unusable input falls back to the field default
            if value is not None:
                cleaned[key] = value

        return cleaned

    @classmethod
    def from_params(cls, params: Mapping[str, Any] | None) -> "AlgorithmConfig":
        """Build a config from a host parameter mapping."""
        return cls.model_validate(dict(params or {}))

    @classmethod
    def controls(cls) -> list[ControlSpec]:
        """Describe the tunable parameters of this config."""
        specs: list[ControlSpec] = []
        for name, info in cls.model_fields.items():
            extra = info.json_schema_extra if isinstance(info.json_schema_extra, dict) else {}
            if not extra.get("control"):
                continue
            label = info.alias or name
            if info.annotation is bool:
                specs.append(
                    ControlSpec(label=label, type=ControlType.CHECKBOX, checked=info.default)
                )
            elif "options" in extra:
                specs.append(
                    ControlSpec(
                        label=label,
                        type=ControlType.SELECT,
                        value=info.default,
                        options=extra["options"],
                    )
                )
            else:
                specs.append(
                    ControlSpec(
                        label=label,
                        value=info.default,
                        min=extra.get("min"),
                        max=extra.get("max"),
                        step=extra.get("step"),
                    )
                )
        return specs


class DepthMode(str, Enum):
    """How the depth map modulates brightness."""

    MULTIPLY = "Multiply"
    DIVIDE = "Divide"


class BrightnessConfig(AlgorithmConfig):
    """Shared image adjustment controls used to build the brightness field."""

    inverted: bool = control(False, "Inverted")
    brightness: int = control(0, "Brightness", ge=-100, le=100)
    contrast: int = control(0, "Contrast", ge=-100, le=100)
    blur_radius: int = control(0, "Blur radius", ge=0, le=50)
    min_brightness: int = control(0, "Min brightness", ge=0, le=255)
    max_brightness: int = control(255, "Max brightness", ge=0, le=255)
    face_boundary: bool = control(False, "Face Boundary")
    face_boundary_offset: float = control(0.0, "Face Boundary Offset", ge=0, le=200, step=1)
    depth_map: bool = control(False, "Depth Map")
    depth_strength: float = control(0.5, "Depth Strength", ge=0, le=1, step=0.05)
    depth_mode: str = control(
        DepthMode.MULTIPLY.value,
        "Depth Mode",
        options=[m.value for m in DepthMode],
    )
    depth_invert: bool = control(False, "Depth Invert")
    depth_gamma: float = control(1.0, "Depth Gamma", ge=0.2, le=3, step=0.1)


class StippleType(str, Enum):
    """Mark drawn at each stipple."""

    CIRCLES = "Circles"
    SPIRALS = "Spirals"
    HEXAGONS = "Hexagons"
    PENTAGRAMS = "Pentagrams"
    SNOWFLAKES = "Snowflakes"


class StippleConfig(AlgorithmConfig):
    """Parameters for weighted Voronoi stippling."""

    max_stipples: int = control(2000, "Max Stipples", ge=500, le=10000)
    max_iterations: int = control(30, "Max Iterations", ge=2, le=200)
    min_dot_size: float = control(2.0, "Min dot size", ge=0.5, le=8, step=0.1)
    dot_size_range: float = control(4.0, "Dot size range", ge=0, le=20, step=0.1)
    tsp_art: bool = control(False, "TSP Art")
    stipple_type: str = control(
        StippleType.CIRCLES.value,
        "Stipple type",
        options=[t.value for t in StippleType],
    )
    seed: int = control(-1, "Seed", ge=-1, le=100000, step=1)


class StippleDepthConfig(StippleConfig):
    """Stippling whose density mixes image brightness with a depth map."""

    depth_influence: float = control(0.0, "Depth Influence", ge=0, le=1, step=0.05)


class FieldType(str, Enum):
    """Base noise field used by the flow tracer."""

    NOISE = "noise"
    CURL_NOISE = "curl_noise"


class FlowFieldConfig(AlgorithmConfig):
    """Parameters for evenly-spaced flow-field streamlines."""

    noise_scale: float = control(0.001, "Noise Scale", ge=0.0002, le=0.02, step=0.0002)
    field_copies: int = control(1, "Field Copies", ge=1, le=8, step=1)
    min_separation: float = control(0.8, "Min Separation", ge=0.2, le=12, step=0.1)
    max_separation: float = control(10.0, "Max Separation", ge=1, le=30, step=0.5)
    min_length: float = control(0.0, "Min Length", ge=0, le=80, step=1)
    max_length: float = control(40.0, "Max Length", ge=10, le=200, step=5)
    test_frequency: float = control(2.0, "Test Frequency", ge=1, le=8, step=0.5)
    seedpoints_per_path: int = control(40, "Seedpoints per Path", ge=4, le=80, step=1)
    field_type: str = control(
        FieldType.NOISE.value,
        "Field Type",
        options=[t.value for t in FieldType],
    )
    edge_field: float = control(0.0, "Edge Field", ge=0, le=4, step=0.1)
    dark_field: float = control(0.0, "Dark Field", ge=0, le=4, step=0.1)
    rotate_field: float = control(0.0, "Rotate Field", ge=-180, le=180, step=1)
    mask_transparent: bool = control(True, "Mask Transparent")
    transparent_value: int = control(127, "Transparent Value", ge=0, le=255, step=1)
    max_size: int = control(800, "Max Size", ge=200, le=2000, step=50)
    seed: int = control(-1, "Seed", ge=-1, le=100000, step=1)
    flow_seed: int = control(-1, "Flow Seed", ge=-1, le=100000, step=1)
    optimize_route: bool = control(True, "Optimize Route")


class ConstellationConfig(AlgorithmConfig):
    """Parameters for darkness-sampled points joined to their neighbours."""

    point_spacing: float = control(10.0, "Point Spacing", ge=4, le=30, step=1)
    jitter: float = control(0.35, "Jitter", ge=0, le=1, step=0.05)
    density: float = control(1.2, "Density", ge=0.1, le=3, step=0.1)
    darkness_power: float = control(1.6, "Darkness Power", ge=0.4, le=3, step=0.1)
    max_links: int = control(4, "Max Links", ge=1, le=10, step=1)
    min_distance: float = control(6.0, "Min Distance", ge=0, le=40, step=1)
    max_distance: float = control(90.0, "Max Distance", ge=10, le=300, step=5)
    seed: int = control(-1, "Seed", ge=-1, le=100000, step=1)
    optimize_route: bool = control(True, "Optimize Route")


class CirclePackConfig(AlgorithmConfig):
    """Parameters for non-overlapping circles packed into dark areas."""

    samples: int = control(8000, "Samples", ge=1000, le=50000, step=500)
    max_circles: int = control(2000, "Max Circles", ge=200, le=15000, step=100)
    min_radius: float = control(1.0, "Min Radius", ge=0.5, le=10, step=0.5)
    max_radius: float = control(8.0, "Max Radius", ge=2, le=30, step=1)
    padding: float = control(0.4, "Padding", ge=0, le=4, step=0.1)
    darkness_power: float = control(1.4, "Darkness Power", ge=0.4, le=3, step=0.1)
    min_darkness: float = control(10.0, "Min Darkness", ge=0, le=200, step=5)
    seed: int = control(-1, "Seed", ge=-1, le=100000, step=1)


class EmitterConfig(BaseModel):
    """Configuration for path string emission."""

    max_path_length: float = Field(
        default=50000.0,
        gt=0,
        description="Paths longer than this are split into sub-paths",
    )
    decimals: int = Field(
        default=2,
        ge=0,
        le=6,
        description="Decimal places for coordinates",
    )
    smooth: bool = Field(
        default=False,
        description="Emit Catmull-Rom curves instead of straight segments",
    )
    tension: float = Field(
        default=1.0,
        ge=0.0,
        le=2.0,
        description="Catmull-Rom tension used in smooth mode",
    )


class ProcessingConfig(BaseModel):
    """Configuration for job execution."""

    max_workers: int | None = Field(
        default=None,
        description="Max worker processes (None = auto)",
    )
    progress_every: int = Field(
        default=100,
        ge=1,
        description="Streamlines traced between progress messages",
    )


class LoggingConfig(BaseModel):
    """Logging configuration."""

    log_file: Path | None = Field(
        default=None,
        description="Path to log file",
    )
    log_level: str = Field(
        default="WARNING",
        description="Console log level",
    )
    file_log_level: str = Field(
        default="DEBUG",
        description="File log level (more verbose)",
    )


class InkflowSettings(BaseModel):
    """Main application settings."""

    emitter: EmitterConfig = Field(default_factory=EmitterConfig)
    processing: ProcessingConfig = Field(default_factory=ProcessingConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


def get_default_settings() -> InkflowSettings:
    """Get default application settings."""
    return InkflowSettings()
