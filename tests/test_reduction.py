import math

import pytest

from geosample.models import DataPoint, OptimizationConfig, SamplingMethod
from geosample.reduction import (
    cluster_points,
    grid_sample,
    needs_optimization,
    optimize_dataset,
    process_in_chunks,
    random_sample,
    sample_data,
    uniform_sample,
)

from conftest import make_points


def test_needs_optimization():
    assert needs_optimization(50001)
    assert not needs_optimization(50000)
    assert needs_optimization(11, max_points=10)


def test_uniform_sample_returns_input_when_it_fits():
    points = make_points(10)

    assert uniform_sample(points, 10) is points
    assert uniform_sample(points, 100) is points


def test_uniform_sample_takes_every_kth_point():
    points = make_points(100)

    sampled = uniform_sample(points, 10)

    assert sampled == points[::10]


@pytest.mark.parametrize("n, k", [(100, 30), (1000, 7), (50001, 50000), (12, 11)])
def test_uniform_sample_never_exceeds_target(n, k):
    points = make_points(n)

    sampled = uniform_sample(points, k)

    assert len(sampled) == math.ceil(n / math.ceil(n / k))
    assert len(sampled) <= k
    assert sampled[0] is points[0]


def test_sampling_rejects_non_positive_target():
    points = make_points(5)
    for sampler in (uniform_sample, random_sample, grid_sample):
        with pytest.raises(ValueError):
            sampler(points, 0)


def test_random_sample_size_and_membership():
    points = make_points(500)

    sampled = random_sample(points, 50, seed=1)

    assert len(sampled) == 50
    assert len({id(p) for p in sampled}) == 50
    positions = [points.index(p) for p in sampled]
    assert positions == sorted(positions)


def test_random_sample_is_reproducible_with_seed():
    points = make_points(500)

    assert random_sample(points, 25, seed=42) == random_sample(points, 25, seed=42)


def test_random_sample_returns_input_when_it_fits():
    points = make_points(5)

    assert random_sample(points, 5) is points


@pytest.mark.parametrize("target", [1, 10, 50, 400])
def test_grid_sample_is_bounded_by_cell_count(target):
    points = make_points(3000)

    sampled = grid_sample(points, target)

    assert 1 <= len(sampled) <= math.ceil(math.sqrt(target)) ** 2


def test_grid_sample_values_stay_within_input_range():
    points = make_points(3000)
    values = [p.value for p in points]

    sampled = grid_sample(points, 100)

    assert all(min(values) <= p.value <= max(values) for p in sampled)
    assert all(-40 <= p.latitude <= 40 for p in sampled)


def test_grid_sample_averages_cell_members():
    points = [DataPoint(0.0, 0.0, 1.0), DataPoint(0.0, 0.0, 3.0), DataPoint(10.0, 10.0, 8.0)]

    sampled = grid_sample(points, 4)

    assert [(p.latitude, p.longitude, p.value) for p in sampled] == [
        (0.0, 0.0, 2.0),
        (10.0, 10.0, 8.0),
    ]


def test_grid_sample_identical_points_collapse():
    points = [DataPoint(5.0, 5.0, float(v)) for v in range(10)]

    sampled = grid_sample(points, 9)

    assert len(sampled) == 1
    assert sampled[0].value == pytest.approx(4.5)


def test_grid_sample_empty():
    assert grid_sample([], 10) == []


def test_cluster_points_merges_neighbours_and_keeps_peak():
    lonely = DataPoint(10.0, 10.0, 2.0)
    points = [DataPoint(0.0, 0.0, 1.0), DataPoint(0.1, 0.0, 5.0), lonely]

    clusters = cluster_points(points, radius_degrees=0.5)

    assert len(clusters) == 2
    merged = clusters[0]
    assert merged.latitude == pytest.approx(0.05)
    assert merged.longitude == pytest.approx(0.0)
    assert merged.value == 5.0
    assert clusters[1] is lonely


def test_cluster_points_zero_radius_merges_only_duplicates():
    points = [DataPoint(1.0, 1.0, 1.0), DataPoint(1.0, 1.0, 4.0), DataPoint(1.0, 1.1, 2.0)]

    clusters = cluster_points(points, radius_degrees=0)

    assert len(clusters) == 2
    assert clusters[0].value == 4.0


def test_cluster_points_rejects_negative_radius():
    with pytest.raises(ValueError):
        cluster_points(make_points(3), radius_degrees=-1)


def test_sample_data_dispatches_on_method():
    points = make_points(400)

    grid = sample_data(points, OptimizationConfig(max_points=16, sampling_method="grid"))
    random = sample_data(points, OptimizationConfig(max_points=16, sampling_method="random"))
    uniform = sample_data(points, OptimizationConfig(max_points=16))

    assert len(grid) <= 16
    assert len(random) == 16
    assert uniform == points[::25]


def test_optimize_dataset_leaves_small_input_alone():
    points = make_points(50)

    optimized, stats = optimize_dataset(points)

    assert optimized is points
    assert stats.original_size == 50
    assert stats.optimized_size == 50
    assert stats.reduction_percent == 0.0
    assert stats.clustered is False
    assert stats.method == "uniform"
    assert stats.processing_time_ms >= 0


def test_optimize_dataset_samples_without_clustering():
    points = make_points(5000)
    before = list(points)

    optimized, stats = optimize_dataset(
        points, OptimizationConfig(max_points=1000, clustering_enabled=False)
    )

    assert len(optimized) == 1000
    assert stats.reduction_percent == pytest.approx(80.0)
    assert stats.clustered is False
    assert points == before


def test_optimize_dataset_clusters_dense_data():
    points = [DataPoint(0.001 * i, 0.001 * (i % 50), float(i)) for i in range(2000)]

    optimized, stats = optimize_dataset(
        points, OptimizationConfig(max_points=5000, cluster_radius=5.0)
    )

    assert len(optimized) == 1
    assert optimized[0].value == 1999.0
    assert stats.clustered is True
    assert stats.optimized_size == 1


def test_optimization_config_validates():
    with pytest.raises(ValueError):
        OptimizationConfig(max_points=0)
    with pytest.raises(ValueError):
        OptimizationConfig(cluster_radius=-0.1)
    assert OptimizationConfig(sampling_method="grid").sampling_method is SamplingMethod.GRID


def test_process_in_chunks_reports_progress():
    progress = []

    result = process_in_chunks(
        list(range(5)),
        lambda chunk: [x * 2 for x in chunk],
        chunk_size=2,
        on_progress=progress.append,
    )

    assert result == [0, 2, 4, 6, 8]
    assert progress == [40.0, 80.0, 100.0]


def test_process_in_chunks_empty_and_invalid():
    assert process_in_chunks([], lambda chunk: list(chunk)) == []
    with pytest.raises(ValueError):
        process_in_chunks([1], lambda chunk: list(chunk), chunk_size=0)
