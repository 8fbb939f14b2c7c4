"""
Exception taxonomy for the geosample pipeline.

Every error here is fatal to the current parse/reduce call. Row-level numeric
failures are never raised; they are only counted in the parse metadata.
"""


class PipelineError(Exception):
    """Base class for all pipeline failures surfaced to callers."""


class EmptyInputError(PipelineError):
    """The input text is empty or holds no data rows."""


class SchemaDetectionError(PipelineError):
    """Latitude, longitude or value column could not be detected."""


class ParseError(PipelineError):
    """The CSV or JSON text is malformed."""


class EmptyResultError(PipelineError):
    """Every row was dropped as non-numeric or out of range."""


class UnsupportedFormatError(PipelineError):
    """The file extension or declared format is not CSV or JSON."""


# Short names used by the ingestion boundary
EmptyDataError = EmptyInputError
SchemaError = SchemaDetectionError
