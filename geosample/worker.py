#!/usr/bin/env python3
"""
Background parse worker.

Each request runs on its own daemon thread and talks to the caller only
through an ordered per-request queue of immutable messages tagged with the
request id: zero or more PROGRESS messages followed by exactly one COMPLETE or
ERROR. Submitting a new request supersedes the previous one and discards
whatever the superseded request still posts.

Usage:
    worker = ParseWorker()
    request_id = worker.submit(WorkerRequest(RequestType.PARSE_CSV, csv_text))
    for message in worker.messages(request_id):
        ...
"""

import queue
import threading
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional, Sequence, Union

from loguru import logger

from .errors import PipelineError
from .models import DataPoint, ParseMetadata
from .parsers import parse_csv, parse_json
from .reduction import uniform_sample

DEFAULT_DECIMATE_MAX_POINTS = 50000


class RequestType(str, Enum):
    PARSE_CSV = "PARSE_CSV"
    PARSE_JSON = "PARSE_JSON"
    DECIMATE_DATA = "DECIMATE_DATA"


def _new_request_id() -> str:
    return uuid.uuid4().hex


@dataclass(frozen=True)
class WorkerRequest:
    """A unit of background work. ``options`` may hold max_points, batch_size, value_field."""

    type: Union[RequestType, str]
    data: Union[str, Sequence[DataPoint]]
    options: Mapping[str, Any] = field(default_factory=dict)
    request_id: str = field(default_factory=_new_request_id)


@dataclass(frozen=True)
class DecimationMetadata:
    original_count: int
    decimated_count: int

    def to_dict(self) -> Dict[str, Any]:
        return {"original_count": self.original_count, "decimated_count": self.decimated_count}


@dataclass(frozen=True)
class ProgressMessage:
    request_id: str
    progress: float
    message: str
    type: str = field(default="PROGRESS", init=False)
    is_terminal = False

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type, "progress": self.progress, "message": self.message}


@dataclass(frozen=True)
class CompleteMessage:
    request_id: str
    data: Sequence[DataPoint]
    metadata: Union[ParseMetadata, DecimationMetadata]
    type: str = field(default="COMPLETE", init=False)
    is_terminal = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "data": [point.to_dict() for point in self.data],
            "metadata": self.metadata.to_dict(),
        }


@dataclass(frozen=True)
class ErrorMessage:
    request_id: str
    error: str
    type: str = field(default="ERROR", init=False)
    is_terminal = True

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type, "error": self.error}


WorkerMessage = Union[ProgressMessage, CompleteMessage, ErrorMessage]


def _require_text(request: WorkerRequest) -> str:
    if not isinstance(request.data, str):
        raise PipelineError(f"{RequestType(request.type).value} expects text data")
    return request.data


def _run_request(
    request: WorkerRequest, post: Callable[[WorkerMessage], None]
) -> CompleteMessage:
    request_id = request.request_id
    options = request.options

    def on_progress(percent: float, message: str) -> None:
        post(ProgressMessage(request_id, percent, message))

    try:
        request_type = RequestType(request.type)
    except ValueError:
        raise PipelineError(f"Unknown worker task: {request.type}") from None

    if request_type is RequestType.DECIMATE_DATA:
        points = list(request.data)
        post(ProgressMessage(request_id, 50.0, "Decimating data..."))
        decimated = uniform_sample(
            points, int(options.get("max_points") or DEFAULT_DECIMATE_MAX_POINTS)
        )
        metadata = DecimationMetadata(len(points), len(decimated))
        post(
            ProgressMessage(
                request_id, 100.0, f"Decimated {len(points):,} to {len(decimated):,} points"
            )
        )
        return CompleteMessage(request_id, tuple(decimated), metadata)

    parser = parse_csv if request_type is RequestType.PARSE_CSV else parse_json
    result = parser(
        _require_text(request),
        max_points=options.get("max_points"),
        on_progress=on_progress,
        batch_size=options.get("batch_size"),
        value_field=options.get("value_field"),
    )
    return CompleteMessage(request_id, result.points, result.metadata)


def handle_request(request: WorkerRequest, post: Callable[[WorkerMessage], None]) -> None:
    """
    Run one request synchronously, posting its messages in order.

    Always ends with exactly one terminal message: COMPLETE on success,
    ERROR for any failure.
    """
    logger.debug(f"⚙️ Worker task {request.type} started ({request.request_id[:8]})")
    try:
        terminal: WorkerMessage = _run_request(request, post)
    except PipelineError as e:
        logger.error(f"❌ Worker task {request.type} failed: {e}")
        terminal = ErrorMessage(request.request_id, str(e))
    except Exception as e:
        logger.opt(exception=e).error(f"💥 Worker task {request.type} crashed")
        terminal = ErrorMessage(request.request_id, f"{type(e).__name__}: {e}")
    post(terminal)


class ParseWorker:
    """Runs requests on background threads and hands messages back through queues.

    Each request gets its own outbox. Submitting a new request drops the
    outboxes of earlier ones, so messages from superseded requests are
    discarded and can never be mixed into the current request's stream.
    """

    def __init__(self) -> None:
        self._outboxes: Dict[str, "queue.Queue[WorkerMessage]"] = {}
        self._current_request_id: Optional[str] = None

    @property
    def current_request_id(self) -> Optional[str]:
        return self._current_request_id

    def submit(self, request: WorkerRequest) -> str:
        """Start ``request`` in the background, superseding any earlier request."""
        if self._current_request_id is not None:
            logger.debug(f"Superseding request {self._current_request_id[:8]}")

        outbox: "queue.Queue[WorkerMessage]" = queue.Queue()
        self._outboxes = {request.request_id: outbox}
        self._current_request_id = request.request_id

        thread = threading.Thread(
            target=handle_request,
            args=(request, outbox.put),
            name=f"geosample-worker-{request.request_id[:8]}",
            daemon=True,
        )
        thread.start()
        return request.request_id

    def messages(
        self, request_id: Optional[str] = None, timeout: Optional[float] = None
    ) -> Iterator[WorkerMessage]:
        """
        Yield messages for one request, in order, through its terminal message.

        Args:
            request_id: Request to follow, defaults to the latest submission
            timeout: Seconds to wait for each message; None waits forever

        Raises:
            ValueError: If nothing was submitted or ``request_id`` was superseded
            TimeoutError: If no message arrives within ``timeout``
        """
        request_id = request_id or self._current_request_id
        if request_id is None:
            raise ValueError("No request has been submitted")

        outbox = self._outboxes.get(request_id)
        if outbox is None:
            raise ValueError(f"Request {request_id[:8]} was superseded or never submitted")

        while True:
            try:
                message = outbox.get(timeout=timeout)
            except queue.Empty:
                raise TimeoutError(
                    f"No message for request {request_id[:8]} within {timeout}s"
                ) from None

            yield message
            if message.is_terminal:
                return

    def run(self, request: WorkerRequest, timeout: Optional[float] = None) -> List[WorkerMessage]:
        """Submit ``request`` and collect all of its messages."""
        request_id = self.submit(request)
        return list(self.messages(request_id, timeout=timeout))
