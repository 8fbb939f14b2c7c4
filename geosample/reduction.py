#!/usr/bin/env python3
"""
Reduction Engine - sampling and clustering for oversized point sets.

Every function here returns a new list (or, when no reduction is needed, the
input object itself) and never mutates its input. Distances and cells are
planar in degrees, not geodesic; radius and legend settings downstream are
tuned to that.
"""

import math
import time
from typing import Callable, List, Optional, Sequence, Tuple, TypeVar

import numpy as np
from loguru import logger

from .models import DataPoint, OptimizationConfig, OptimizationStats, SamplingMethod

T = TypeVar("T")
R = TypeVar("R")

DEFAULT_MAX_POINTS = 50000
CLUSTERING_MIN_POINTS = 1000


def needs_optimization(data_size: int, max_points: int = DEFAULT_MAX_POINTS) -> bool:
    """Determine if a dataset of ``data_size`` points exceeds the budget."""
    return data_size > max_points


def _check_target(target_size: int) -> None:
    if target_size < 1:
        raise ValueError(f"target_size must be >= 1, got {target_size}")


def _coordinate_arrays(points: Sequence[DataPoint]) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    n = len(points)
    lats = np.fromiter((p.latitude for p in points), dtype=float, count=n)
    lons = np.fromiter((p.longitude for p in points), dtype=float, count=n)
    values = np.fromiter((p.value for p in points), dtype=float, count=n)
    return lats, lons, values


def uniform_sample(points: Sequence[DataPoint], target_size: int) -> Sequence[DataPoint]:
    """
    Stride sampling - keep every ``ceil(n / target_size)``-th point.

    Args:
        points: Input points
        target_size: Upper bound on the number of returned points

    Returns:
        The input itself when it already fits, otherwise a new list
    """
    _check_target(target_size)
    if len(points) <= target_size:
        return points

    step = math.ceil(len(points) / target_size)
    return list(points[::step])


def random_sample(
    points: Sequence[DataPoint], target_size: int, seed: Optional[int] = None
) -> Sequence[DataPoint]:
    """
    Draw ``target_size`` distinct points uniformly without replacement.

    The selection is random (reproducible only with ``seed``); the returned
    points keep their input order.
    """
    _check_target(target_size)
    if len(points) <= target_size:
        return points

    rng = np.random.default_rng(seed)
    indices = np.sort(rng.choice(len(points), size=target_size, replace=False))
    return [points[i] for i in indices]


def grid_sample(points: Sequence[DataPoint], target_size: int) -> List[DataPoint]:
    """
    Grid-based sampling - one averaged point per non-empty grid cell.

    The bounding box of the data is split into ``ceil(sqrt(target_size))``
    equal cells per axis. Each output point is a synthetic centroid carrying
    the mean latitude, longitude and value of its cell, so the result never
    holds more than ``ceil(sqrt(target_size)) ** 2`` points. Unlike the other
    strategies this always builds new points, even for small inputs.
    """
    _check_target(target_size)
    if len(points) == 0:
        return []

    grid_size = math.ceil(math.sqrt(target_size))
    lats, lons, values = _coordinate_arrays(points)

    def cell_index(coords: np.ndarray) -> np.ndarray:
        low = coords.min()
        span = coords.max() - low
        if span <= 0:
            return np.zeros(len(coords), dtype=np.int64)
        cells = np.floor((coords - low) / span * grid_size).astype(np.int64)
        # points on the max edge belong to the last cell
        return np.clip(cells, 0, grid_size - 1)

    keys = cell_index(lats) * grid_size + cell_index(lons)
    _, inverse, member_counts = np.unique(keys, return_inverse=True, return_counts=True)
    inverse = inverse.ravel()

    mean_lats = np.bincount(inverse, weights=lats) / member_counts
    mean_lons = np.bincount(inverse, weights=lons) / member_counts
    mean_values = np.bincount(inverse, weights=values) / member_counts

    sampled = [
        DataPoint(latitude=float(lat), longitude=float(lon), value=float(value))
        for lat, lon, value in zip(mean_lats, mean_lons, mean_values)
    ]
    logger.debug(f"Grid sampled {len(points):,} points into {len(sampled):,} cells")
    return sampled


def sample_data(points: Sequence[DataPoint], config: OptimizationConfig) -> Sequence[DataPoint]:
    """Apply the configured sampling strategy when the budget is exceeded."""
    if len(points) <= config.max_points:
        return points

    logger.info(
        f"📉 Optimizing dataset: {len(points):,} points → {config.max_points:,} points "
        f"({config.sampling_method.value})"
    )

    if config.sampling_method is SamplingMethod.RANDOM:
        return random_sample(points, config.max_points)
    if config.sampling_method is SamplingMethod.GRID:
        return grid_sample(points, config.max_points)
    return uniform_sample(points, config.max_points)


def cluster_points(points: Sequence[DataPoint], radius_degrees: float = 0.5) -> Sequence[DataPoint]:
    """
    Greedy radius clustering.

    Points are visited in input order; each unvisited point seeds a cluster
    holding every still-unvisited point within ``radius_degrees`` of it
    (Euclidean in lat/lon). A cluster becomes one point at the mean position
    carrying the maximum value, so peaks survive the merge. Worst case is
    O(n^2), which is acceptable after sampling has bounded n.
    """
    if radius_degrees < 0:
        raise ValueError(f"radius_degrees must be >= 0, got {radius_degrees}")
    if len(points) == 0:
        return points

    lats, lons, values = _coordinate_arrays(points)
    visited = np.zeros(len(points), dtype=bool)
    clusters: List[DataPoint] = []

    for i in range(len(points)):
        if visited[i]:
            continue

        distances = np.hypot(lats - lats[i], lons - lons[i])
        members = ~visited & (distances <= radius_degrees)
        members[i] = True
        visited |= members

        if members.sum() == 1:
            clusters.append(points[i])
            continue

        clusters.append(
            DataPoint(
                latitude=float(lats[members].mean()),
                longitude=float(lons[members].mean()),
                value=float(values[members].max()),
            )
        )

    logger.debug(f"Clustered {len(points):,} points into {len(clusters):,} clusters")
    return clusters


def optimize_dataset(
    points: Sequence[DataPoint], config: Optional[OptimizationConfig] = None
) -> Tuple[Sequence[DataPoint], OptimizationStats]:
    """
    Sample and optionally cluster a point set.

    Args:
        points: Input points (left untouched)
        config: Reduction settings, defaults to ``OptimizationConfig()``

    Returns:
        Tuple of (optimized points, OptimizationStats)
    """
    config = config or OptimizationConfig()
    start_time = time.perf_counter()
    original_size = len(points)

    optimized = points
    if needs_optimization(original_size, config.max_points):
        optimized = sample_data(points, config)

    clustered = False
    if config.clustering_enabled and len(optimized) > CLUSTERING_MIN_POINTS:
        optimized = cluster_points(optimized, config.cluster_radius)
        clustered = True

    elapsed_ms = (time.perf_counter() - start_time) * 1000
    reduction = (original_size - len(optimized)) / original_size * 100 if original_size else 0.0

    stats = OptimizationStats(
        original_size=original_size,
        optimized_size=len(optimized),
        reduction_percent=reduction,
        processing_time_ms=elapsed_ms,
        method=config.sampling_method.value,
        clustered=clustered,
    )
    logger.info(
        f"  ✅ Optimized {original_size:,} → {len(optimized):,} points "
        f"({reduction:.1f}% reduction, {elapsed_ms:.0f} ms)"
    )
    return optimized, stats


def process_in_chunks(
    items: Sequence[T],
    processor: Callable[[Sequence[T]], List[R]],
    chunk_size: int = 10000,
    on_progress: Optional[Callable[[float], None]] = None,
) -> List[R]:
    """
    Run ``processor`` over consecutive slices of ``items``.

    ``on_progress`` receives the completed percentage after each chunk.
    """
    if chunk_size < 1:
        raise ValueError(f"chunk_size must be >= 1, got {chunk_size}")

    results: List[R] = []
    total = len(items)
    for start in range(0, total, chunk_size):
        results.extend(processor(items[start : start + chunk_size]))
        if on_progress is not None:
            on_progress(min(100.0, (start + chunk_size) / total * 100))
    return results
