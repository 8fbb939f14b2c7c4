#!/usr/bin/env python3
"""
Statistics Engine - descriptive, spatial and quality statistics.

Pure functions over point sequences. Nothing here mutates its input, and
empty or degenerate input yields ``None`` (or a zeroed snapshot) instead of
raising.

Conventions:
- Quartiles are index-based (``sorted[floor(n * p)]``), not interpolated
- Variance, standard deviation and the moments divide by n (population)
- Area and centroid are planar in degrees, not geodesic
"""

import math
from typing import List, Optional, Sequence

import numpy as np
from loguru import logger

from .models import (
    Centroid,
    DataPoint,
    DataQuality,
    Histogram,
    SpatialStatistics,
    Statistics,
)

TUKEY_FENCE = 1.5
COMPLETENESS_WEIGHT = 0.7
OUTLIER_WEIGHT = 0.3


def _finite_values(points: Sequence[DataPoint]) -> np.ndarray:
    values = np.fromiter((p.value for p in points), dtype=float, count=len(points))
    return values[np.isfinite(values)]


def calculate_statistics(values: Sequence[float]) -> Optional[Statistics]:
    """
    Descriptive statistics over raw values.

    Args:
        values: Numeric values (must be finite)

    Returns:
        Statistics snapshot, or None for empty input
    """
    data = np.asarray(values, dtype=float)
    n = data.size
    if n == 0:
        return None

    ordered = np.sort(data)
    mean = float(data.mean())

    if n % 2 == 0:
        median = float((ordered[n // 2 - 1] + ordered[n // 2]) / 2)
    else:
        median = float(ordered[n // 2])

    q1 = float(ordered[math.floor(n * 0.25)])
    q3 = float(ordered[math.floor(n * 0.75)])

    deviations = data - mean
    variance = float(np.mean(deviations**2))
    std_dev = math.sqrt(variance)

    if std_dev > 0:
        z_scores = deviations / std_dev
        skewness = float(np.mean(z_scores**3))
        kurtosis = float(np.mean(z_scores**4)) - 3.0
    else:
        skewness = 0.0
        kurtosis = 0.0

    minimum = float(ordered[0])
    maximum = float(ordered[-1])

    return Statistics(
        count=n,
        mean=mean,
        median=median,
        std_dev=std_dev,
        variance=variance,
        min=minimum,
        max=maximum,
        range=maximum - minimum,
        q1=q1,
        q3=q3,
        iqr=q3 - q1,
        skewness=skewness,
        kurtosis=kurtosis,
    )


def compute_statistics(points: Sequence[DataPoint]) -> Optional[Statistics]:
    """Descriptive statistics over the finite values of a point set."""
    return calculate_statistics(_finite_values(points))


def compute_spatial_statistics(points: Sequence[DataPoint]) -> Optional[SpatialStatistics]:
    """
    Spatial coverage of a point set.

    Coverage area is the planar bounding box in square degrees; density is 0
    when every point coincides (zero area). Points with non-finite
    coordinates are ignored.
    """
    n = len(points)
    lats = np.fromiter((p.latitude for p in points), dtype=float, count=n)
    lons = np.fromiter((p.longitude for p in points), dtype=float, count=n)
    keep = np.isfinite(lats) & np.isfinite(lons)
    lats, lons = lats[keep], lons[keep]
    if lats.size == 0:
        return None

    min_lat, max_lat = float(lats.min()), float(lats.max())
    min_lon, max_lon = float(lons.min()), float(lons.max())
    coverage_area = (max_lat - min_lat) * (max_lon - min_lon)
    point_density = lats.size / coverage_area if coverage_area > 0 else 0.0

    return SpatialStatistics(
        coverage_area=coverage_area,
        point_density=point_density,
        lat_range=(min_lat, max_lat),
        lon_range=(min_lon, max_lon),
        centroid=Centroid(lat=float(lats.mean()), lon=float(lons.mean())),
    )


def detect_outliers(
    values: Sequence[float], method: str = "iqr", z_threshold: float = 3.0
) -> List[int]:
    """
    Indices of outlying values.

    Args:
        values: Numeric values
        method: 'iqr' for the Tukey fence [Q1 - 1.5*IQR, Q3 + 1.5*IQR],
                'zscore' for |z| > z_threshold
        z_threshold: Cut-off for the z-score method

    Returns:
        Indices into ``values``, in order
    """
    if method not in ("iqr", "zscore"):
        raise ValueError(f"Unknown outlier method: {method}")

    data = np.asarray(values, dtype=float)
    stats = calculate_statistics(data)
    if stats is None:
        return []

    if method == "iqr":
        lower = stats.q1 - TUKEY_FENCE * stats.iqr
        upper = stats.q3 + TUKEY_FENCE * stats.iqr
        flagged = (data < lower) | (data > upper)
    else:
        if stats.std_dev == 0:
            return []
        flagged = np.abs((data - stats.mean) / stats.std_dev) > z_threshold

    return [int(i) for i in np.flatnonzero(flagged)]


def compute_data_quality(
    points: Sequence[DataPoint], total_rows: Optional[int] = None
) -> DataQuality:
    """
    Data quality snapshot for a point set.

    Args:
        points: Points to assess; may include invalid records
        total_rows: Number of source rows when rows were already dropped
                    during parsing (e.g. ``ParseMetadata.total_rows``), so
                    dropped rows count as invalid

    Returns:
        DataQuality with counts, completeness (%) and a 0-100 quality score
        that falls as either the invalid ratio or the outlier ratio rises
    """
    total_points = max(len(points), total_rows or 0)

    valid_values = []
    missing_values = 0
    for point in points:
        if point.is_valid():
            valid_values.append(point.value)
        elif point.has_valid_coordinates():
            missing_values += 1

    valid_points = len(valid_values)
    invalid_points = total_points - valid_points
    outliers = len(detect_outliers(valid_values))

    completeness = valid_points / total_points * 100 if total_points else 0.0
    if valid_points:
        outlier_ratio = outliers / valid_points
        quality_score = (
            COMPLETENESS_WEIGHT * completeness + OUTLIER_WEIGHT * (1 - outlier_ratio) * 100
        )
    else:
        quality_score = 0.0

    if invalid_points:
        logger.debug(f"Quality check: {invalid_points:,} of {total_points:,} points invalid")

    return DataQuality(
        total_points=total_points,
        valid_points=valid_points,
        invalid_points=invalid_points,
        missing_values=missing_values,
        outliers=outliers,
        completeness=completeness,
        quality_score=max(0.0, min(100.0, quality_score)),
    )


def create_histogram(values: Sequence[float], bins: int = 20) -> Optional[Histogram]:
    """Equal-width histogram between min and max.

    When every value is identical they all land in the first bin.
    """
    if bins < 1:
        raise ValueError(f"bins must be >= 1, got {bins}")

    stats = calculate_statistics(values)
    if stats is None:
        return None

    data = np.asarray(values, dtype=float)
    bin_width = stats.range / bins
    edges = tuple(stats.min + i * bin_width for i in range(bins))

    if bin_width > 0:
        indices = np.minimum(np.floor((data - stats.min) / bin_width).astype(np.int64), bins - 1)
    else:
        indices = np.zeros(data.size, dtype=np.int64)
    counts = np.bincount(indices, minlength=bins)

    return Histogram(bin_edges=edges, counts=tuple(int(c) for c in counts))


def filter_by_value_range(
    points: Sequence[DataPoint], min_value: float, max_value: float
) -> List[DataPoint]:
    return [p for p in points if min_value <= p.value <= max_value]


def filter_by_bounding_box(
    points: Sequence[DataPoint],
    min_lat: float,
    max_lat: float,
    min_lon: float,
    max_lon: float,
) -> List[DataPoint]:
    return [
        p
        for p in points
        if min_lat <= p.latitude <= max_lat and min_lon <= p.longitude <= max_lon
    ]
