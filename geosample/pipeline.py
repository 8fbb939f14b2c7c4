#!/usr/bin/env python3
"""
Ingestion boundary - text or file in, Dataset out.

``load_dataset`` and ``load_file`` never raise: every failure comes back as
``IngestResult(success=False, error=...)`` so callers can show a message
without try/except. Parsing runs on a background worker while progress is
delivered on the calling thread.
"""

from pathlib import Path
from typing import Optional, Union

from loguru import logger

from .errors import PipelineError, SchemaDetectionError
from .models import Dataset, IngestResult
from .parsers import ProgressCallback, detect_format, parse_text
from .worker import CompleteMessage, ParseWorker, ProgressMessage, RequestType, WorkerRequest

REQUEST_TYPES = {"csv": RequestType.PARSE_CSV, "json": RequestType.PARSE_JSON}


def _failure(name: str, error: str) -> IngestResult:
    logger.error(f"❌ Failed to load '{name}': {error}")
    return IngestResult(success=False, error=error)


def load_dataset(
    text: str,
    name: str,
    max_points: Optional[int] = None,
    on_progress: Optional[ProgressCallback] = None,
    source_format: Optional[str] = None,
    batch_size: Optional[int] = None,
    timeout: Optional[float] = None,
) -> IngestResult:
    """
    Parse raw text into a Dataset on a background worker.

    Args:
        text: Full file text
        name: Dataset name, usually the file name
        max_points: Point budget for the parser's automatic decimation
        on_progress: Called with (percent, message) on the calling thread
        source_format: 'csv' or 'json'; detected from ``name`` when omitted
        batch_size: Rows per parse batch
        timeout: Seconds to wait for each worker message

    Returns:
        IngestResult, successful with ``data`` and ``metadata`` or failed with ``error``
    """
    logger.info(f"📥 Loading dataset '{name}'")

    try:
        fmt = (source_format or detect_format(name)).lower().lstrip(".")
        if fmt not in REQUEST_TYPES:
            return _failure(name, f"Unsupported format: {fmt}")

        options = {"max_points": max_points, "batch_size": batch_size}
        request = WorkerRequest(type=REQUEST_TYPES[fmt], data=text, options=options)

        worker = ParseWorker()
        worker.submit(request)
        for message in worker.messages(request.request_id, timeout=timeout):
            if isinstance(message, ProgressMessage):
                if on_progress is not None:
                    on_progress(message.progress, message.message)
            elif isinstance(message, CompleteMessage):
                metadata = message.metadata
                dataset = Dataset.from_points(
                    name,
                    message.data,
                    fields=metadata.fields,
                    selected_field=metadata.value_field,
                )
                logger.success(
                    f"✅ Loaded '{name}': {len(dataset):,} points "
                    f"(value field: {metadata.value_field})"
                )
                return IngestResult(success=True, data=dataset, metadata=metadata)
            else:
                return _failure(name, message.error)
    except PipelineError as e:
        return _failure(name, str(e))
    except Exception as e:
        logger.opt(exception=e).debug("Ingestion failure details")
        return _failure(name, f"{type(e).__name__}: {e}")

    return _failure(name, "Worker finished without a result")


def load_file(
    file_path: Union[str, Path],
    max_points: Optional[int] = None,
    on_progress: Optional[ProgressCallback] = None,
    batch_size: Optional[int] = None,
    timeout: Optional[float] = None,
) -> IngestResult:
    """Read a CSV/JSON file from disk and load it with ``load_dataset``."""
    file_path = Path(file_path)

    if not file_path.exists():
        return _failure(file_path.name, f"File not found: {file_path}")

    size_mb = file_path.stat().st_size / (1024 * 1024)
    logger.info(f"🗺️ Reading {file_path} ({size_mb:.2f} MB)")

    try:
        text = file_path.read_text(encoding="utf-8-sig")
    except (OSError, UnicodeDecodeError) as e:
        return _failure(file_path.name, f"Could not read file: {e}")

    if not text:
        return _failure(file_path.name, "File is empty")

    return load_dataset(
        text,
        file_path.name,
        max_points=max_points,
        on_progress=on_progress,
        batch_size=batch_size,
        timeout=timeout,
    )


def switch_dataset_field(
    dataset: Dataset,
    text: str,
    new_field: str,
    source_format: Optional[str] = None,
    max_points: Optional[int] = None,
) -> Dataset:
    """
    Re-parse a dataset's source text with a different value field.

    Args:
        dataset: Dataset previously loaded from ``text``
        text: The original file text
        new_field: Column or key to use as the value
        source_format: 'csv' or 'json'; detected from the dataset name when omitted
        max_points: Point budget for automatic decimation

    Returns:
        A new Dataset; the input dataset is left untouched

    Raises:
        SchemaDetectionError: If ``new_field`` is not a field of the dataset
        EmptyResultError: If no row has a valid value for ``new_field``
    """
    if dataset.fields and new_field not in dataset.fields:
        raise SchemaDetectionError(f'Field "{new_field}" not found in dataset')

    fmt = source_format or detect_format(dataset.name)
    result = parse_text(text, fmt, max_points=max_points, value_field=new_field)

    logger.info(
        f"🔀 Switched '{dataset.name}' to field '{new_field}' ({len(result.points):,} points)"
    )
    return Dataset.from_points(
        dataset.name, result.points, fields=dataset.fields, selected_field=new_field
    )
