"""
geosample - ingestion, reduction and statistics for geo-tagged tabular data

This package turns large CSV/JSON files into bounded, renderable point sets
and the statistics that visualization front-ends display next to them.

The main entry points are exposed at the package level:
    from geosample import load_dataset, optimize_dataset, compute_statistics
"""

__version__ = "0.1.0"

from .advisor import (
    calculate_optimal_radius,
    estimate_memory_usage,
    get_performance_recommendation,
)
from .config_loader import Config, load_config
from .errors import (
    EmptyDataError,
    EmptyInputError,
    EmptyResultError,
    ParseError,
    PipelineError,
    SchemaDetectionError,
    SchemaError,
    UnsupportedFormatError,
)
from .models import (
    DataPoint,
    Dataset,
    DataQuality,
    IngestResult,
    OptimizationConfig,
    OptimizationStats,
    ParseMetadata,
    ParseResult,
    SamplingMethod,
    SpatialStatistics,
    Statistics,
)
from .parsers import parse_csv, parse_json, parse_text
from .pipeline import load_dataset, load_file, switch_dataset_field
from .reduction import (
    cluster_points,
    grid_sample,
    needs_optimization,
    optimize_dataset,
    random_sample,
    uniform_sample,
)
from .schema_detection import detect_csv_schema, detect_json_schema
from .statistics import (
    compute_data_quality,
    compute_spatial_statistics,
    compute_statistics,
    detect_outliers,
)
from .worker import ParseWorker, RequestType, WorkerRequest

__all__ = [
    "Config",
    "load_config",
    "PipelineError",
    "EmptyInputError",
    "EmptyDataError",
    "SchemaDetectionError",
    "SchemaError",
    "ParseError",
    "EmptyResultError",
    "UnsupportedFormatError",
    "DataPoint",
    "Dataset",
    "DataQuality",
    "IngestResult",
    "OptimizationConfig",
    "OptimizationStats",
    "ParseMetadata",
    "ParseResult",
    "SamplingMethod",
    "SpatialStatistics",
    "Statistics",
    "detect_csv_schema",
    "detect_json_schema",
    "parse_csv",
    "parse_json",
    "parse_text",
    "load_dataset",
    "load_file",
    "switch_dataset_field",
    "needs_optimization",
    "uniform_sample",
    "random_sample",
    "grid_sample",
    "cluster_points",
    "optimize_dataset",
    "compute_statistics",
    "compute_spatial_statistics",
    "compute_data_quality",
    "detect_outliers",
    "get_performance_recommendation",
    "calculate_optimal_radius",
    "estimate_memory_usage",
    "ParseWorker",
    "RequestType",
    "WorkerRequest",
]
