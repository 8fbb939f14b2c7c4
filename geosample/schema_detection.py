#!/usr/bin/env python3
"""
Schema Detection - infer latitude, longitude and value columns.

Header names are matched case-insensitively; the value column is the first
remaining column whose first data cell parses as a finite number. First match
wins everywhere, so column order in the file matters.
"""

import math
import re
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Sequence

import pandas as pd
from loguru import logger

from .errors import SchemaDetectionError

LAT_PATTERN = re.compile(r"^(lat|latitude)$", re.IGNORECASE)
LON_PATTERN = re.compile(r"^(lon|longitude|long)$", re.IGNORECASE)


@dataclass(frozen=True)
class ColumnSchema:
    """Positional schema for CSV rows."""

    lat_index: int
    lon_index: int
    value_index: int
    lat_field: str
    lon_field: str
    value_field: str


@dataclass(frozen=True)
class FieldSchema:
    """Keyed schema for JSON records."""

    lat_field: str
    lon_field: str
    value_field: str


def parse_number(raw: Any) -> float:
    """Coerce a raw cell to float, returning NaN when it is not numeric.

    Text goes through ``pd.to_numeric`` so detection accepts exactly what
    the row parser accepts. Booleans are rejected even though Python treats
    them as ints.
    """
    if isinstance(raw, bool):
        return math.nan
    if isinstance(raw, (int, float)):
        return float(raw)
    if isinstance(raw, str):
        return float(pd.to_numeric(raw.strip(), errors="coerce"))
    return math.nan


def is_finite_number(raw: Any) -> bool:
    return math.isfinite(parse_number(raw))


def _find_first(names: Sequence[str], pattern: "re.Pattern[str]") -> int:
    for index, name in enumerate(names):
        if pattern.match(name.strip()):
            return index
    return -1


def _missing_message(lat_found: bool, lon_found: bool, value_found: bool) -> str:
    missing = [
        label
        for label, found in (("lat", lat_found), ("lon", lon_found), ("value", value_found))
        if not found
    ]
    return f"missing lat/lon/value: could not detect {', '.join(missing)}"


def detect_csv_schema(
    headers: Sequence[str],
    first_row: Sequence[Any],
    value_field: Optional[str] = None,
) -> ColumnSchema:
    """
    Detect lat/lon/value column indices from a CSV header and first data row.

    Args:
        headers: Header names (whitespace is ignored)
        first_row: Cells of the first data row, aligned with ``headers``
        value_field: Force this column as the value column (field switching)

    Returns:
        ColumnSchema with indices and names

    Raises:
        SchemaDetectionError: If any of the three columns cannot be found
    """
    names = [str(h).strip() for h in headers]
    lat_index = _find_first(names, LAT_PATTERN)
    lon_index = _find_first(names, LON_PATTERN)

    value_index = -1
    if value_field is not None:
        wanted = value_field.strip()
        if wanted not in names:
            raise SchemaDetectionError(f"Field '{value_field}' not found in dataset")
        value_index = names.index(wanted)
        if value_index in (lat_index, lon_index):
            raise SchemaDetectionError(
                f"Field '{value_field}' is not available as a value column"
            )
    else:
        for index, name in enumerate(names):
            if index in (lat_index, lon_index):
                continue
            cell = first_row[index] if index < len(first_row) else None
            if is_finite_number(cell):
                value_index = index
                break

    if lat_index < 0 or lon_index < 0 or value_index < 0:
        logger.debug(f"Schema detection failed for headers: {names}")
        raise SchemaDetectionError(
            _missing_message(lat_index >= 0, lon_index >= 0, value_index >= 0)
        )

    schema = ColumnSchema(
        lat_index=lat_index,
        lon_index=lon_index,
        value_index=value_index,
        lat_field=names[lat_index],
        lon_field=names[lon_index],
        value_field=names[value_index],
    )
    logger.debug(
        f"  📍 Detected columns - lat: {schema.lat_field}, lon: {schema.lon_field}, "
        f"value: {schema.value_field}"
    )
    return schema


def detect_json_schema(
    sample: Mapping[str, Any], value_field: Optional[str] = None
) -> FieldSchema:
    """Detect lat/lon/value keys from a representative JSON record.

    Mirrors ``detect_csv_schema`` with the record's key order standing in for
    column order.
    """
    keys = list(sample.keys())
    positional = detect_csv_schema(keys, [sample[k] for k in keys], value_field=value_field)
    # Keys are used verbatim for lookups, so map back from the stripped names
    return FieldSchema(
        lat_field=keys[positional.lat_index],
        lon_field=keys[positional.lon_index],
        value_field=keys[positional.value_index],
    )
