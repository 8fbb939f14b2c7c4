#!/usr/bin/env python3
"""
Streaming Parser - CSV/JSON text to validated DataPoints.

Both parsers work batch by batch, report progress after every batch, drop
rows whose latitude, longitude or value is not a finite in-range number, and
finish with an automatic uniform decimation when the result exceeds the
point budget.
"""

import io
import json
import math
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
from loguru import logger

from .config_loader import Config
from .errors import EmptyInputError, EmptyResultError, ParseError, UnsupportedFormatError
from .models import (
    LAT_MAX,
    LAT_MIN,
    LON_MAX,
    LON_MIN,
    DataPoint,
    FieldValue,
    ParseMetadata,
    ParseResult,
)
from .reduction import process_in_chunks, uniform_sample
from .schema_detection import (
    ColumnSchema,
    FieldSchema,
    detect_csv_schema,
    detect_json_schema,
    parse_number,
)

ProgressCallback = Callable[[float, str], None]

SUPPORTED_FORMATS = ("csv", "json")
# Formats the dashboards accept upstream but this pipeline does not read
BINARY_FORMATS = {"nc": "NetCDF", "hdf": "HDF5", "hdf5": "HDF5", "h5": "HDF5"}


class ProgressReporter:
    """Wraps a progress callback so percentages never decrease or leave [0, 100]."""

    def __init__(self, callback: Optional[ProgressCallback] = None):
        self.callback = callback
        self.last_percent = 0.0

    def __call__(self, percent: float, message: str) -> None:
        percent = max(self.last_percent, min(100.0, max(0.0, percent)))
        self.last_percent = percent
        if self.callback is not None:
            self.callback(percent, message)


def detect_format(file_name: str) -> str:
    """Map a file name to 'csv' or 'json' by extension."""
    extension = Path(file_name).suffix.lower().lstrip(".")
    if extension in SUPPORTED_FORMATS:
        return extension
    if extension in BINARY_FORMATS:
        raise UnsupportedFormatError(
            f"{BINARY_FORMATS[extension]} files (.{extension}) are not supported, "
            "please convert to CSV or JSON"
        )
    raise UnsupportedFormatError(
        f"Unsupported file format: .{extension or '?'}. Please use CSV or JSON files"
    )


def _resolve_limits(max_points: Optional[int], batch_size: Optional[int]) -> Tuple[int, int]:
    if max_points is None or batch_size is None:
        config = Config()
        if max_points is None:
            max_points = int(config.get_parsing_setting("max_points"))
        if batch_size is None:
            batch_size = int(config.get_parsing_setting("batch_size"))
    if max_points < 1:
        raise ValueError(f"max_points must be >= 1, got {max_points}")
    if batch_size < 1:
        raise ValueError(f"batch_size must be >= 1, got {batch_size}")
    return max_points, batch_size


def coerce_extra(raw: Any) -> FieldValue:
    """Convert a raw cell into a tagged extra value (number, text or absent)."""
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, (int, float)):
        number = float(raw)
        return number if math.isfinite(number) else None
    if isinstance(raw, str):
        text = raw.strip()
        if not text:
            return None
        number = parse_number(text)
        return number if math.isfinite(number) else text
    return None


def _read_header(line: str) -> List[str]:
    """Header cells, trimmed and kept verbatim (duplicates are not renamed)."""
    header = pd.read_csv(
        io.StringIO(line),
        header=None,
        dtype=str,
        skipinitialspace=True,
        keep_default_na=False,
        na_filter=False,
    )
    return [str(cell).strip() for cell in header.iloc[0].tolist()]


def _strip_cell(raw: Any) -> Any:
    return raw.strip() if isinstance(raw, str) else raw


def _valid_mask(lats: np.ndarray, lons: np.ndarray, values: np.ndarray) -> np.ndarray:
    with np.errstate(invalid="ignore"):
        return (
            np.isfinite(lats)
            & np.isfinite(lons)
            & np.isfinite(values)
            & (lats >= LAT_MIN)
            & (lats <= LAT_MAX)
            & (lons >= LON_MIN)
            & (lons <= LON_MAX)
        )


def _numeric_column(chunk: pd.DataFrame, index: int) -> np.ndarray:
    column = chunk.iloc[:, index].map(_strip_cell)
    return pd.to_numeric(column, errors="coerce").to_numpy(dtype=float, na_value=np.nan)


def _csv_chunk_to_points(
    chunk: pd.DataFrame, schema: ColumnSchema, headers: Sequence[str]
) -> List[DataPoint]:
    lats = _numeric_column(chunk, schema.lat_index)
    lons = _numeric_column(chunk, schema.lon_index)
    values = _numeric_column(chunk, schema.value_index)
    mask = _valid_mask(lats, lons, values)

    used = {schema.lat_index, schema.lon_index, schema.value_index}
    extra_indices = [i for i in range(len(headers)) if i not in used]
    extra_names = [headers[i] for i in extra_indices]

    if extra_indices:
        extra_rows = chunk.iloc[np.flatnonzero(mask), extra_indices].itertuples(
            index=False, name=None
        )
    else:
        extra_rows = iter(() for _ in range(int(mask.sum())))

    points = []
    for lat, lon, value, cells in zip(lats[mask], lons[mask], values[mask], extra_rows):
        extras = {}
        for name, cell in zip(extra_names, cells):
            coerced = coerce_extra(cell)
            if coerced is not None:
                extras[name] = coerced
        points.append(DataPoint(float(lat), float(lon), float(value), extras))
    return points


def _finish(
    points: List[DataPoint],
    total_rows: int,
    max_points: int,
    value_field: str,
    fields: Sequence[str],
    lat_field: str,
    lon_field: str,
    source_format: str,
    report: ProgressReporter,
) -> ParseResult:
    dropped = total_rows - len(points)
    if dropped:
        logger.warning(
            f"  ⚠️ Dropped {dropped:,} of {total_rows:,} rows with non-numeric "
            "or out-of-range lat/lon/value"
        )

    if not points:
        raise EmptyResultError(
            "No valid data points found. Check that lat is -90 to 90, lon is -180 to 180"
        )

    decimated = uniform_sample(points, max_points)
    if len(decimated) < len(points):
        logger.info(
            f"  📉 Decimated {len(points):,} → {len(decimated):,} points "
            f"({len(decimated) / len(points) * 100:.1f}% retained)"
        )

    report(100.0, f"Parsed {total_rows:,} rows, {len(points):,} valid points")

    metadata = ParseMetadata(
        original_count=len(points),
        decimated_count=len(decimated),
        value_field=value_field,
        fields=tuple(fields),
        lat_field=lat_field,
        lon_field=lon_field,
        total_rows=total_rows,
        dropped_rows=dropped,
        source_format=source_format,
    )
    return ParseResult(points=tuple(decimated), metadata=metadata)


def parse_csv(
    text: str,
    max_points: Optional[int] = None,
    on_progress: Optional[ProgressCallback] = None,
    batch_size: Optional[int] = None,
    value_field: Optional[str] = None,
) -> ParseResult:
    """
    Parse CSV text (header row plus comma-separated rows) into points.

    Args:
        text: Full file text
        max_points: Point budget; larger results are uniformly decimated
        on_progress: Called with (percent, message) at start, per batch and at 100%
        batch_size: Rows per batch, also the progress cadence
        value_field: Use this column as the value instead of auto-detecting

    Returns:
        ParseResult with the retained points and parse metadata

    Raises:
        EmptyInputError: Empty text or no data rows
        SchemaDetectionError: lat/lon/value columns not found
        ParseError: Malformed CSV
        EmptyResultError: Every row was dropped
    """
    max_points, batch_size = _resolve_limits(max_points, batch_size)
    report = ProgressReporter(on_progress)

    lines = [line for line in text.splitlines() if line.strip()]
    if not lines:
        raise EmptyInputError("File is empty")
    total_rows = len(lines) - 1
    if total_rows < 1:
        raise EmptyInputError("CSV file has a header but no data rows")

    logger.debug(f"🗂️ Parsing CSV with {total_rows:,} data rows")
    report(0.0, "Parsing CSV data...")

    headers: List[str] = []
    schema: Optional[ColumnSchema] = None
    points: List[DataPoint] = []
    rows_seen = 0

    try:
        headers = _read_header(lines[0])
        # Rows with more cells than the header are skipped and counted as dropped
        reader = pd.read_csv(
            io.StringIO("\n".join(lines[1:])),
            header=None,
            names=list(range(len(headers))),
            dtype=str,
            chunksize=batch_size,
            index_col=False,
            skipinitialspace=True,
            keep_default_na=False,
            na_filter=False,
            on_bad_lines="skip",
        )
        for chunk in reader:
            if chunk.empty:
                continue
            if schema is None:
                schema = detect_csv_schema(headers, chunk.iloc[0].tolist(), value_field)

            points.extend(_csv_chunk_to_points(chunk, schema, headers))
            rows_seen += len(chunk)
            report(
                rows_seen / total_rows * 100,
                f"Parsed {rows_seen:,} of {total_rows:,} rows...",
            )
    except pd.errors.EmptyDataError as e:
        raise EmptyInputError(f"File is empty: {e}") from e
    except pd.errors.ParserError as e:
        raise ParseError(f"Malformed CSV: {e}") from e

    if schema is None:
        raise EmptyResultError(
            f"No readable data rows: all {total_rows:,} rows have more cells than the header"
        )

    return _finish(
        points,
        total_rows,
        max_points,
        schema.value_field,
        headers,
        schema.lat_field,
        schema.lon_field,
        "csv",
        report,
    )


def _json_records_to_points(records: Sequence[Any], schema: FieldSchema) -> List[DataPoint]:
    used = {schema.lat_field, schema.lon_field, schema.value_field}
    points = []
    for record in records:
        if not isinstance(record, Mapping):
            continue
        lat = parse_number(record.get(schema.lat_field))
        lon = parse_number(record.get(schema.lon_field))
        value = parse_number(record.get(schema.value_field))
        point = DataPoint(lat, lon, value)
        if not point.is_valid():
            continue

        extras: Dict[str, FieldValue] = {}
        for key, raw in record.items():
            if key in used:
                continue
            coerced = coerce_extra(raw)
            if coerced is not None:
                extras[key] = coerced
        points.append(DataPoint(lat, lon, value, extras))
    return points


def parse_json(
    text: str,
    max_points: Optional[int] = None,
    on_progress: Optional[ProgressCallback] = None,
    batch_size: Optional[int] = None,
    value_field: Optional[str] = None,
) -> ParseResult:
    """Parse JSON text (one object or an array of objects) into points.

    Field detection runs on the first record. Arguments, return value and
    errors match ``parse_csv``.
    """
    max_points, batch_size = _resolve_limits(max_points, batch_size)
    report = ProgressReporter(on_progress)

    if not text.strip():
        raise EmptyInputError("File is empty")

    report(0.0, "Parsing JSON data...")

    try:
        document = json.loads(text)
    except json.JSONDecodeError as e:
        raise ParseError(f"Malformed JSON: {e}") from e

    if isinstance(document, dict):
        records = [document]
    elif isinstance(document, list):
        records = document
    else:
        raise ParseError("JSON must be an object or an array of objects")

    if not records:
        raise EmptyInputError("Empty JSON data")

    sample = records[0]
    if not isinstance(sample, dict):
        raise ParseError("JSON must be an object or an array of objects")

    schema = detect_json_schema(sample, value_field)
    total = len(records)
    logger.debug(f"🗂️ Parsing JSON with {total:,} records")

    points = process_in_chunks(
        records,
        lambda chunk: _json_records_to_points(chunk, schema),
        chunk_size=batch_size,
        on_progress=lambda percent: report(
            percent, f"Parsed {min(total, round(percent / 100 * total)):,} of {total:,} records..."
        ),
    )

    return _finish(
        points,
        total,
        max_points,
        schema.value_field,
        list(sample.keys()),
        schema.lat_field,
        schema.lon_field,
        "json",
        report,
    )


def parse_text(
    text: str,
    source_format: str,
    max_points: Optional[int] = None,
    on_progress: Optional[ProgressCallback] = None,
    batch_size: Optional[int] = None,
    value_field: Optional[str] = None,
) -> ParseResult:
    """Dispatch to ``parse_csv`` or ``parse_json`` by format name."""
    source_format = source_format.lower().lstrip(".")
    if source_format == "csv":
        parser = parse_csv
    elif source_format == "json":
        parser = parse_json
    else:
        raise UnsupportedFormatError(f"Unsupported format: {source_format}")
    return parser(
        text,
        max_points=max_points,
        on_progress=on_progress,
        batch_size=batch_size,
        value_field=value_field,
    )
