import pytest

from geosample.models import DataPoint, ParseMetadata
from geosample.worker import (
    CompleteMessage,
    DecimationMetadata,
    ErrorMessage,
    ParseWorker,
    ProgressMessage,
    RequestType,
    WorkerRequest,
    handle_request,
)

from conftest import make_csv, make_points


def run_sync(request):
    messages = []
    handle_request(request, messages.append)
    return messages


def assert_well_formed(messages, request_id):
    """Progress messages first, then exactly one terminal message."""
    assert messages
    assert all(m.request_id == request_id for m in messages)
    assert [m.is_terminal for m in messages] == [False] * (len(messages) - 1) + [True]
    progress = [m.progress for m in messages if isinstance(m, ProgressMessage)]
    assert progress == sorted(progress)


def test_parse_csv_request_completes(end_to_end_csv):
    request = WorkerRequest(RequestType.PARSE_CSV, end_to_end_csv, {"max_points": 10})

    messages = run_sync(request)

    assert_well_formed(messages, request.request_id)
    complete = messages[-1]
    assert isinstance(complete, CompleteMessage)
    assert isinstance(complete.metadata, ParseMetadata)
    assert len(complete.data) == 3
    assert messages[-2].progress == 100.0


def test_large_parse_posts_progress_per_batch():
    request = WorkerRequest(
        RequestType.PARSE_CSV, make_csv(50000), {"max_points": 50000, "batch_size": 10000}
    )

    messages = run_sync(request)

    assert_well_formed(messages, request.request_id)
    progress = [m for m in messages if isinstance(m, ProgressMessage)]
    assert len(progress) >= 6
    assert messages[-1].metadata.original_count == 50000


def test_parse_json_request_with_value_field():
    text = '[{"lat": 1, "lon": 2, "a": 3, "b": 4}]'
    request = WorkerRequest("PARSE_JSON", text, {"max_points": 10, "value_field": "b"})

    messages = run_sync(request)

    assert messages[-1].data[0].value == 4.0
    assert messages[-1].metadata.value_field == "b"


def test_failed_parse_posts_single_error():
    request = WorkerRequest(RequestType.PARSE_CSV, "a,b,c\n1,2,3", {"max_points": 10})

    messages = run_sync(request)

    assert_well_formed(messages, request.request_id)
    assert isinstance(messages[-1], ErrorMessage)
    assert "lat" in messages[-1].error
    assert not any(isinstance(m, CompleteMessage) for m in messages)


def test_unknown_request_type_is_an_error():
    request = WorkerRequest("PARSE_XML", "whatever")

    messages = run_sync(request)

    assert len(messages) == 1
    assert isinstance(messages[0], ErrorMessage)
    assert "Unknown worker task" in messages[0].error


def test_parse_request_requires_text():
    request = WorkerRequest(RequestType.PARSE_CSV, make_points(3))

    messages = run_sync(request)

    assert isinstance(messages[-1], ErrorMessage)


def test_decimate_request():
    points = make_points(100)
    request = WorkerRequest(RequestType.DECIMATE_DATA, points, {"max_points": 10})

    messages = run_sync(request)

    assert_well_formed(messages, request.request_id)
    assert messages[0].progress == 50.0
    assert messages[0].message == "Decimating data..."
    assert messages[-2].progress == 100.0
    complete = messages[-1]
    assert list(complete.data) == points[::10]
    assert complete.metadata == DecimationMetadata(original_count=100, decimated_count=10)


def test_message_dicts():
    point = DataPoint(1.0, 2.0, 3.0, {"station": "A"})

    assert ProgressMessage("r", 10.0, "x").to_dict() == {
        "type": "PROGRESS",
        "progress": 10.0,
        "message": "x",
    }
    assert ErrorMessage("r", "boom").to_dict() == {"type": "ERROR", "error": "boom"}
    assert CompleteMessage("r", (point,), DecimationMetadata(1, 1)).to_dict() == {
        "type": "COMPLETE",
        "data": [{"latitude": 1.0, "longitude": 2.0, "value": 3.0, "station": "A"}],
        "metadata": {"original_count": 1, "decimated_count": 1},
    }


def test_parse_worker_runs_in_background(end_to_end_csv):
    worker = ParseWorker()
    request = WorkerRequest(RequestType.PARSE_CSV, end_to_end_csv, {"max_points": 10})

    messages = worker.run(request, timeout=30)

    assert_well_formed(messages, request.request_id)
    assert worker.current_request_id == request.request_id
    assert isinstance(messages[-1], CompleteMessage)


def test_superseded_request_messages_are_discarded(end_to_end_csv):
    worker = ParseWorker()
    first = WorkerRequest(RequestType.PARSE_CSV, make_csv(20000), {"max_points": 50000})
    second = WorkerRequest(RequestType.PARSE_CSV, end_to_end_csv, {"max_points": 10})

    worker.submit(first)
    worker.submit(second)
    messages = list(worker.messages(timeout=30))

    assert_well_formed(messages, second.request_id)
    assert len(messages[-1].data) == 3


def test_following_a_superseded_request_keeps_current_messages(end_to_end_csv):
    worker = ParseWorker()
    first = WorkerRequest(RequestType.PARSE_CSV, make_csv(2000), {"max_points": 50000})
    second = WorkerRequest(RequestType.PARSE_CSV, end_to_end_csv, {"max_points": 10})

    worker.submit(first)
    worker.submit(second)
    with pytest.raises(ValueError):
        next(worker.messages(first.request_id, timeout=30))

    messages = list(worker.messages(second.request_id, timeout=30))

    assert_well_formed(messages, second.request_id)
    assert len(messages[-1].data) == 3


def test_messages_without_submission():
    with pytest.raises(ValueError):
        next(ParseWorker().messages())
