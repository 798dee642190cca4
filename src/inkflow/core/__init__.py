"""Core algorithms for inkflow.

This module contains:

- Brightness sampling (blur, luma, contrast, depth, face mask)
- Spatial indexing (R-tree with k-nearest-neighbour search)
- Route optimisation (greedy line ordering, 2-opt tours)
- Weighted Voronoi stippling
- Flow-field streamline tracing
- Constellation graphs and circle packing over the R-tree
- Path string emission
- Job execution in worker processes

All algorithms are designed to be:
- Stateless between jobs (safe for use in worker processes)
- Seeded explicitly for reproducible runs
- Single-threaded; parallelism lives in the job layer

Key classes:
- BrightnessField: Pure (x, y) -> [0, 255] sampler
- RTree, PointIndex: Spatial index
- StipplingEngine: Seeding, relaxation and rendering of stipples
- FlowFieldTracer: Jobard-Lefer streamline placement
- PathEmitter: PathSet to path strings
- JobProcessor: Submit jobs and receive futures
"""

from inkflow.core.algorithms import (
    ALGORITHMS,
    Algorithm,
    AlgorithmOutput,
    CirclePackAlgorithm,
    ConstellationAlgorithm,
    FlowFieldAlgorithm,
    StippleAlgorithm,
    StippleDepthAlgorithm,
    get_algorithm,
    list_algorithms,
)
from inkflow.core.boundary import BoundaryCache, FaceBoundary, PreparedBoundary
from inkflow.core.brightness import BrightnessField, DepthMap
from inkflow.core.context import JobContext
from inkflow.core.emitter import PathEmitter, split_by_length
from inkflow.core.flowfield import FlowFieldTracer, trace_flow_field
from inkflow.core.processor import JobProcessor, run_job
from inkflow.core.route import (
    nearest_neighbor_tour,
    sort_lines,
    travel_distance,
    two_opt,
)
from inkflow.core.spatial_index import IndexEntry, PointIndex, RTree
from inkflow.core.stipple import StippleStage, StipplingEngine

__all__ = [
    # Algorithms
    "ALGORITHMS",
    "Algorithm",
    "AlgorithmOutput",
    "CirclePackAlgorithm",
    "ConstellationAlgorithm",
    "FlowFieldAlgorithm",
    "StippleAlgorithm",
    "StippleDepthAlgorithm",
    "get_algorithm",
    "list_algorithms",
    # Brightness
    "BoundaryCache",
    "BrightnessField",
    "DepthMap",
    "FaceBoundary",
    "PreparedBoundary",
    # Engines
    "FlowFieldTracer",
    "StippleStage",
    "StipplingEngine",
    "trace_flow_field",
    # Spatial index
    "IndexEntry",
    "PointIndex",
    "RTree",
    # Routing
    "nearest_neighbor_tour",
    "sort_lines",
    "travel_distance",
    "two_opt",
    # Emission
    "PathEmitter",
    "split_by_length",
    # Jobs
    "JobContext",
    "JobProcessor",
    "run_job",
]
