#!/usr/bin/env python3
"""
geosample command-line interface

Usage:
    geosample parse data/sst.csv --max-points 20000
    geosample optimize data/sst.csv --method grid --radius 0.25
    geosample stats data/sst.json --bins 30
    geosample advise 250000 --zoom 4

    # Verbose logging:
    geosample --verbose parse data/sst.csv
"""

import json
import sys
from typing import Any, Dict, Optional, Tuple

import click
from loguru import logger

from .advisor import (
    calculate_optimal_radius,
    estimate_memory_usage,
    get_performance_recommendation,
)
from .config_loader import Config
from .log_utils import handle_critical_error, setup_logging
from .models import Dataset, OptimizationConfig, ParseMetadata, SamplingMethod
from .pipeline import load_file
from .reduction import optimize_dataset
from .statistics import (
    compute_data_quality,
    compute_spatial_statistics,
    compute_statistics,
    create_histogram,
)


def _echo_json(payload: Dict[str, Any]) -> None:
    click.echo(json.dumps(payload, indent=2, default=str))


def _load_or_exit(
    ctx: click.Context, file_path: str, max_points: Optional[int]
) -> Tuple[Dataset, ParseMetadata]:
    def on_progress(percent: float, message: str) -> None:
        logger.debug(f"  ⏳ {percent:5.1f}% {message}")

    result = load_file(file_path, max_points=max_points, on_progress=on_progress)
    if not result.success or result.data is None or result.metadata is None:
        click.echo(f"💥 {result.error}", err=True)
        ctx.exit(1)
    return result.data, result.metadata


def _recommendation_dict(size: int, zoom: float = 2) -> Dict[str, Any]:
    recommendation = get_performance_recommendation(size)
    memory = estimate_memory_usage(size)
    return {
        "level": recommendation.level,
        "message": recommendation.message,
        "should_optimize": recommendation.should_optimize,
        "optimal_radius": calculate_optimal_radius(size, zoom),
        "memory": memory.readable,
    }


@click.group()
@click.option("--config", "config_file", type=click.Path(exists=True), help="Path to YAML config")
@click.option("-v", "--verbose", is_flag=True, help="Enable DEBUG level logging")
@click.option("--trace", is_flag=True, help="Enable TRACE level logging for deep debugging")
@click.pass_context
def cli(ctx: click.Context, config_file: Optional[str], verbose: bool, trace: bool) -> None:
    """🗺️ Geo-tagged tabular data: parse, reduce and summarize."""
    config = Config(config_file)
    setup_logging(verbose=verbose, enable_trace=trace, level=config.get("logging.level", "INFO"))
    config.print_config_summary()
    ctx.obj = config


@cli.command()
@click.argument("file_path", type=click.Path())
@click.option("--max-points", type=click.IntRange(min=1), help="Point budget for decimation")
@click.pass_context
def parse(ctx: click.Context, file_path: str, max_points: Optional[int]) -> None:
    """Parse a CSV/JSON file and report what was detected."""
    dataset, metadata = _load_or_exit(ctx, file_path, max_points)

    _echo_json(
        {
            "name": dataset.name,
            "points": len(dataset),
            "value_range": {"min": dataset.value_range.min, "max": dataset.value_range.max},
            "metadata": metadata.to_dict(),
            "recommendation": _recommendation_dict(metadata.original_count),
        }
    )


@cli.command()
@click.argument("file_path", type=click.Path())
@click.option(
    "--method",
    type=click.Choice([m.value for m in SamplingMethod]),
    help="Sampling strategy (default from config)",
)
@click.option("--max-points", type=click.IntRange(min=1), help="Target point count")
@click.option("--cluster/--no-cluster", default=None, help="Merge nearby points after sampling")
@click.option("--radius", type=click.FloatRange(min=0), help="Cluster radius in degrees")
@click.pass_context
def optimize(
    ctx: click.Context,
    file_path: str,
    method: Optional[str],
    max_points: Optional[int],
    cluster: Optional[bool],
    radius: Optional[float],
) -> None:
    """Reduce a dataset with sampling and clustering and report the outcome."""
    base = OptimizationConfig.from_config(ctx.obj)
    config = OptimizationConfig(
        max_points=max_points or base.max_points,
        sampling_method=SamplingMethod(method) if method else base.sampling_method,
        clustering_enabled=base.clustering_enabled if cluster is None else cluster,
        cluster_radius=base.cluster_radius if radius is None else radius,
    )

    # The parser applies parsing.max_points first; --max-points is the reduction target
    dataset, _ = _load_or_exit(ctx, file_path, max_points=None)

    _, stats = optimize_dataset(dataset.points, config)

    _echo_json({"name": dataset.name, "stats": stats.to_dict()})


@cli.command()
@click.argument("file_path", type=click.Path())
@click.option("--bins", type=click.IntRange(min=1), default=20, show_default=True)
@click.option("--max-points", type=click.IntRange(min=1), help="Point budget for decimation")
@click.pass_context
def stats(ctx: click.Context, file_path: str, bins: int, max_points: Optional[int]) -> None:
    """Descriptive, spatial and quality statistics for a file."""
    dataset, metadata = _load_or_exit(ctx, file_path, max_points)

    points = dataset.points
    descriptive = compute_statistics(points)
    spatial = compute_spatial_statistics(points)
    histogram = create_histogram([p.value for p in points], bins=bins)

    # Dropped rows only count against quality when nothing was decimated away
    total_rows = None
    if metadata.decimated_count == metadata.original_count:
        total_rows = metadata.total_rows
    quality = compute_data_quality(points, total_rows=total_rows)

    _echo_json(
        {
            "name": dataset.name,
            "statistics": descriptive.to_dict() if descriptive else None,
            "spatial": spatial.to_dict() if spatial else None,
            "quality": quality.to_dict(),
            "histogram": histogram.to_dict() if histogram else None,
        }
    )


@cli.command()
@click.argument("size", type=click.IntRange(min=0))
@click.option("--zoom", type=float, default=2, show_default=True, help="Map zoom level")
def advise(size: int, zoom: float) -> None:
    """Performance guidance for a dataset of SIZE points."""
    _echo_json({"size": size, **_recommendation_dict(size, zoom)})


def main() -> None:
    try:
        cli()
    except Exception as e:
        handle_critical_error(e, "geosample failed")
        sys.exit(1)


if __name__ == "__main__":
    main()
