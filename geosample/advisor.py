"""
Optimization Advisor - size-based performance guidance.

Pure lookup-table logic. Advisory only: callers decide whether to run the
reduction engine.
"""

from .models import MemoryEstimate, PerformanceRecommendation

EXCELLENT_MAX = 10000
GOOD_MAX = 50000
MODERATE_MAX = 100000

BYTES_PER_POINT = 24  # three float64 fields

MIN_RADIUS_PX = 10
MAX_RADIUS_PX = 50


def get_performance_recommendation(data_size: int) -> PerformanceRecommendation:
    """Classify a dataset size into excellent/good/moderate/poor."""
    if data_size <= EXCELLENT_MAX:
        return PerformanceRecommendation(
            level="excellent",
            message="Dataset size is optimal for smooth performance",
            should_optimize=False,
        )
    if data_size <= GOOD_MAX:
        return PerformanceRecommendation(
            level="good",
            message="Dataset size is manageable, performance should be good",
            should_optimize=False,
        )
    if data_size <= MODERATE_MAX:
        return PerformanceRecommendation(
            level="moderate",
            message="Large dataset detected. Optimization recommended for better performance",
            should_optimize=True,
        )
    return PerformanceRecommendation(
        level="poor",
        message="Very large dataset detected. Optimization strongly recommended",
        should_optimize=True,
    )


def calculate_optimal_radius(data_size: int, zoom_level: float = 2) -> float:
    """
    Heatmap radius in pixels for a dataset size and zoom level.

    Denser datasets get smaller radii; the result scales with ``zoom / 2``
    and is clamped to [10, 50].
    """
    if data_size > MODERATE_MAX:
        radius = 15.0
    elif data_size > GOOD_MAX:
        radius = 20.0
    elif data_size > EXCELLENT_MAX:
        radius = 25.0
    else:
        radius = 30.0

    radius *= zoom_level / 2
    return max(MIN_RADIUS_PX, min(MAX_RADIUS_PX, radius))


def estimate_memory_usage(data_size: int) -> MemoryEstimate:
    """Rough in-memory footprint of ``data_size`` lat/lon/value points."""
    size_bytes = data_size * BYTES_PER_POINT
    megabytes = size_bytes / (1024 * 1024)

    if megabytes < 1:
        readable = f"{size_bytes / 1024:.2f} KB"
    elif megabytes < 1024:
        readable = f"{megabytes:.2f} MB"
    else:
        readable = f"{megabytes / 1024:.2f} GB"

    return MemoryEstimate(bytes=size_bytes, megabytes=megabytes, readable=readable)
