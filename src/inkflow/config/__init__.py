"""Configuration management for inkflow.

This module provides configuration management using Pydantic models.
Algorithm parameters are addressed by their control labels and clamped
into range rather than rejected.

Key classes:
- BrightnessConfig: Shared image adjustment controls
- StippleConfig / StippleDepthConfig: Stippling parameters
- FlowFieldConfig: Flow-field tracing parameters
- ConstellationConfig / CirclePackConfig: Point-graph and circle-packing parameters
- EmitterConfig: Path emission settings
- InkflowSettings: Main application settings
"""

from inkflow.config.settings import (
    AlgorithmConfig,
    BrightnessConfig,
    CirclePackConfig,
    ConstellationConfig,
    ControlSpec,
    ControlType,
    DepthMode,
    EmitterConfig,
    FieldType,
    FlowFieldConfig,
    InkflowSettings,
    LoggingConfig,
    ProcessingConfig,
    StippleConfig,
    StippleDepthConfig,
    StippleType,
    get_default_settings,
)

__all__ = [
    "AlgorithmConfig",
    "BrightnessConfig",
    "CirclePackConfig",
    "ConstellationConfig",
    "ControlSpec",
    "ControlType",
    "DepthMode",
    "EmitterConfig",
    "FieldType",
    "FlowFieldConfig",
    "InkflowSettings",
    "LoggingConfig",
    "ProcessingConfig",
    "StippleConfig",
    "StippleDepthConfig",
    "StippleType",
    "get_default_settings",
]
