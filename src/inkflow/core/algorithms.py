"""Algorithm registry.

Every algorithm shares one entry contract: build a brightness field from the
job, then ``generate`` a :class:`~inkflow.domain.PathSet` from it. Algorithms
are stateless and registered by name.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

from inkflow.config import (
    AlgorithmConfig,
    BrightnessConfig,
    CirclePackConfig,
    ConstellationConfig,
    ControlSpec,
    FlowFieldConfig,
    StippleConfig,
    StippleDepthConfig,
)
from inkflow.core.boundary import BoundaryCache, PreparedBoundary
from inkflow.core.brightness import BrightnessField, DepthMap, pixels_to_array
from inkflow.core.circlepack import pack_circles
from inkflow.core.constellation import trace_constellation
from inkflow.core.context import JobContext
from inkflow.core.flowfield import trace_flow_field
from inkflow.core.noise import make_rng, resolve_seed
from inkflow.core.stipple import StipplingEngine
from inkflow.domain import Job, PathSet
from inkflow.exceptions import UnknownAlgorithmError


@dataclass
class AlgorithmOutput:
    """What an algorithm run hands back to the job layer.

    Attributes:
        pathset: Generated geometry
        seed: Seed actually used
        boundary: Prepared face boundary, used for clipping on emission
    """

    pathset: PathSet
    seed: int | None
    boundary: PreparedBoundary | None = None


class Algorithm(ABC):
    """Base class for registered algorithms."""

    name: str = ""
    description: str = ""
    config_model: type[AlgorithmConfig] = AlgorithmConfig
    # Extra blur applied before the configured blur radius
    pre_blur: int = 0
    # Skip depth modulation inside the brightness field
    ignore_depth: bool = False

    @classmethod
    def controls(cls) -> list[ControlSpec]:
        """Shared image controls followed by the algorithm's own."""
        return BrightnessConfig.controls() + cls.config_model.controls()

    def parse(self, params: dict[str, Any]) -> AlgorithmConfig:
        return self.config_model.from_params(params)

    def run(
        self,
        job: Job,
        context: JobContext | None = None,
        boundary_cache: BoundaryCache | None = None,
    ) -> AlgorithmOutput:
        """Build the brightness field for ``job`` and generate geometry.

        Args:
            job: Job to run
            context: Progress and cancellation hooks
            boundary_cache: Caller-owned face-boundary cache

        Returns:
            Geometry, seed and prepared boundary
        """
        context = context or JobContext(job.job_id)
        params = job.params()
        brightness = BrightnessConfig.from_params(params)
        config = self.parse(params)
        field, boundary = BrightnessField.from_job(
            job,
            brightness,
            boundary_cache,
            ignore_depth=self.ignore_depth,
            pre_blur=self.pre_blur,
        )
        seed = resolve_seed(getattr(config, "seed", None))
        pathset = self.generate(job, config, field, seed, context)
        return AlgorithmOutput(pathset=pathset, seed=seed, boundary=boundary)

    @abstractmethod
    def generate(
        self,
        job: Job,
        config: Any,
        field: BrightnessField,
        seed: int,
        context: JobContext,
    ) -> PathSet:
        """Produce geometry from a brightness field."""


class StippleAlgorithm(Algorithm):
    name = "stipple"
    description = "Weighted Voronoi stippling with optional TSP-art tour"
    config_model = StippleConfig
    pre_blur = 1

    def generate(self, job, config, field, seed, context):
        engine = StipplingEngine(field, config, make_rng(seed), context)
        return engine.run(job.pen_width)


class StippleDepthAlgorithm(StippleAlgorithm):
    """Stippling whose density mixes brightness with raw depth."""

    name = "stippledepth"
    description = "Stippling with density blended from a depth map"
    config_model = StippleDepthConfig
    ignore_depth = True

    def generate(self, job, config, field, seed, context):
        depth = DepthMap.from_payload(job.config.get("depthData"))
        if depth is not None and config.depth_influence > 0:
            brightness = BrightnessConfig.from_params(job.params())
            field = field.blend_depth(
                depth,
                config.depth_influence,
                invert=brightness.depth_invert,
                gamma=brightness.depth_gamma,
            )
        return super().generate(job, config, field, seed, context)


class FlowFieldAlgorithm(Algorithm):
    name = "flowfield"
    description = "Evenly-spaced streamlines over a composited noise field"
    config_model = FlowFieldConfig

    def generate(self, job, config, field, seed, context):
        flow_seed = config.flow_seed if config.flow_seed >= 0 else seed
        alpha = pixels_to_array(job.pixels, job.width, job.height)[..., 3]
        lines = trace_flow_field(field, alpha, config, seed, flow_seed, context)
        return PathSet(lines=lines, stroke_width=job.pen_width)


class ConstellationAlgorithm(Algorithm):
    name = "constellation"
    description = "Darkness-sampled points linked to their nearest neighbours"
    config_model = ConstellationConfig

    def generate(self, job, config, field, seed, context):
        lines = trace_constellation(field, config, seed, context)
        return PathSet(lines=lines, stroke_width=job.pen_width)


class CirclePackAlgorithm(Algorithm):
    name = "circlepack"
    description = "Non-overlapping circles packed into dark areas"
    config_model = CirclePackConfig

    def generate(self, job, config, field, seed, context):
        circles = pack_circles(field, config, seed, context)
        return PathSet(circles=circles, stroke_width=job.pen_width)


ALGORITHMS: dict[str, type[Algorithm]] = {
    cls.name: cls
    for cls in (
        StippleAlgorithm,
        StippleDepthAlgorithm,
        FlowFieldAlgorithm,
        ConstellationAlgorithm,
        CirclePackAlgorithm,
    )
}


def get_algorithm(name: str) -> Algorithm:
    """Instantiate a registered algorithm.

    Raises:
        UnknownAlgorithmError: If no algorithm is registered under ``name``
    """
    try:
        return ALGORITHMS[name]()
    except KeyError:
        raise UnknownAlgorithmError(name) from None


def list_algorithms() -> list[str]:
    """Registered algorithm names, sorted."""
    return sorted(ALGORITHMS)
