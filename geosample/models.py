#!/usr/bin/env python3
"""
Data Model for the geosample Pipeline

Immutable value types shared by the parser, the reduction engine and the
statistics engine. Nothing in here is mutated after construction: reduction
and field switching build new points and new datasets instead.
"""

import math
from dataclasses import asdict, dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple, Union

# Extra field cell: number, text, or None when absent
FieldValue = Optional[Union[float, str]]

LAT_MIN, LAT_MAX = -90.0, 90.0
LON_MIN, LON_MAX = -180.0, 180.0


@dataclass(frozen=True)
class DataPoint:
    """A single geo-tagged numeric sample."""

    latitude: float
    longitude: float
    value: float
    extras: Mapping[str, FieldValue] = field(
        default_factory=lambda: MappingProxyType({}), hash=False
    )

    def __post_init__(self) -> None:
        if not isinstance(self.extras, MappingProxyType):
            object.__setattr__(self, "extras", MappingProxyType(dict(self.extras)))

    def number(self, field_name: str) -> Optional[float]:
        """Return an extra field only if it holds a number."""
        raw = self.extras.get(field_name)
        if isinstance(raw, float):
            return raw
        return None

    def text(self, field_name: str) -> Optional[str]:
        """Return an extra field only if it holds text."""
        raw = self.extras.get(field_name)
        if isinstance(raw, str):
            return raw
        return None

    def has_valid_coordinates(self) -> bool:
        return (
            math.isfinite(self.latitude)
            and math.isfinite(self.longitude)
            and LAT_MIN <= self.latitude <= LAT_MAX
            and LON_MIN <= self.longitude <= LON_MAX
        )

    def is_valid(self) -> bool:
        """True when lat/lon are finite and in range and the value is finite."""
        return self.has_valid_coordinates() and math.isfinite(self.value)

    def to_dict(self) -> Dict[str, Any]:
        record: Dict[str, Any] = {
            "latitude": self.latitude,
            "longitude": self.longitude,
            "value": self.value,
        }
        for name, raw in self.extras.items():
            if raw is not None:
                record[name] = raw
        return record


@dataclass(frozen=True)
class ValueRange:
    min: float
    max: float


@dataclass(frozen=True)
class Dataset:
    """One uploaded dataset. Replaced wholesale on re-upload."""

    name: str
    points: Tuple[DataPoint, ...]
    value_range: ValueRange
    fields: Tuple[str, ...] = ()
    selected_field: Optional[str] = None

    @classmethod
    def from_points(
        cls,
        name: str,
        points: Sequence[DataPoint],
        fields: Sequence[str] = (),
        selected_field: Optional[str] = None,
    ) -> "Dataset":
        """Build a dataset and compute its value range from the points."""
        values = [p.value for p in points if math.isfinite(p.value)]
        if values:
            value_range = ValueRange(min=min(values), max=max(values))
        else:
            value_range = ValueRange(min=0.0, max=0.0)
        return cls(
            name=name,
            points=tuple(points),
            value_range=value_range,
            fields=tuple(fields),
            selected_field=selected_field,
        )

    def with_points(self, points: Sequence[DataPoint]) -> "Dataset":
        """Return a new dataset holding ``points`` with a recomputed value range."""
        return Dataset.from_points(self.name, points, self.fields, self.selected_field)

    def __len__(self) -> int:
        return len(self.points)


class SamplingMethod(str, Enum):
    UNIFORM = "uniform"
    RANDOM = "random"
    GRID = "grid"


@dataclass(frozen=True)
class OptimizationConfig:
    """Reduction settings, passed by value into the reduction engine."""

    max_points: int = 50000
    sampling_method: SamplingMethod = SamplingMethod.UNIFORM
    clustering_enabled: bool = True
    cluster_radius: float = 0.5  # degrees

    def __post_init__(self) -> None:
        if self.max_points < 1:
            raise ValueError(f"max_points must be >= 1, got {self.max_points}")
        if self.cluster_radius < 0:
            raise ValueError(f"cluster_radius must be >= 0, got {self.cluster_radius}")
        object.__setattr__(self, "sampling_method", SamplingMethod(self.sampling_method))

    @classmethod
    def from_config(cls, config: Any) -> "OptimizationConfig":
        """Build from the ``optimization.*`` keys of a Config instance."""
        return cls(
            max_points=int(config.get_optimization_setting("max_points")),
            sampling_method=SamplingMethod(config.get_optimization_setting("sampling_method")),
            clustering_enabled=bool(config.get_optimization_setting("clustering_enabled")),
            cluster_radius=float(config.get_optimization_setting("cluster_radius")),
        )


@dataclass(frozen=True)
class OptimizationStats:
    original_size: int
    optimized_size: int
    reduction_percent: float
    processing_time_ms: float
    method: str
    clustered: bool

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class Statistics:
    count: int
    mean: float
    median: float
    std_dev: float
    variance: float
    min: float
    max: float
    range: float
    q1: float
    q3: float
    iqr: float
    skewness: float
    kurtosis: float

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class Centroid:
    lat: float
    lon: float


@dataclass(frozen=True)
class SpatialStatistics:
    coverage_area: float  # square degrees, planar
    point_density: float  # points per square degree
    lat_range: Tuple[float, float]
    lon_range: Tuple[float, float]
    centroid: Centroid

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class DataQuality:
    total_points: int
    valid_points: int
    invalid_points: int
    missing_values: int
    outliers: int
    completeness: float  # percent
    quality_score: float  # 0-100

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class Histogram:
    bin_edges: Tuple[float, ...]  # left edge of each bin
    counts: Tuple[int, ...]

    def to_dict(self) -> Dict[str, Any]:
        return {"bins": list(self.bin_edges), "counts": list(self.counts)}


@dataclass(frozen=True)
class ParseMetadata:
    """Summary of a parse run.

    ``original_count`` is the number of valid points before auto-decimation,
    ``total_rows`` the number of non-blank data rows seen.
    """

    original_count: int
    decimated_count: int
    value_field: str
    fields: Tuple[str, ...]
    lat_field: str = ""
    lon_field: str = ""
    total_rows: int = 0
    dropped_rows: int = 0
    source_format: str = "csv"

    def to_dict(self) -> Dict[str, Any]:
        metadata = asdict(self)
        metadata["fields"] = list(self.fields)
        return metadata


@dataclass(frozen=True)
class ParseResult:
    points: Tuple[DataPoint, ...]
    metadata: ParseMetadata


@dataclass(frozen=True)
class PerformanceRecommendation:
    level: str  # 'excellent', 'good', 'moderate', 'poor'
    message: str
    should_optimize: bool


@dataclass(frozen=True)
class MemoryEstimate:
    bytes: int
    megabytes: float
    readable: str


@dataclass(frozen=True)
class IngestResult:
    """Outcome of the ingestion boundary. Never raised, always returned."""

    success: bool
    data: Optional[Dataset] = None
    metadata: Optional[ParseMetadata] = None
    error: Optional[str] = None
