"""Tests for client.consumer: requests.Session is mocked."""

from unittest.mock import MagicMock, call

import requests

from client.consumer import StreamConsumer, StreamStatus
from core.events import ProgressEvent
from core.sse import encode_event

RUN_EVENTS = [
    ProgressEvent.connection_test(),
    ProgressEvent.status("planning", "Creating generation plan"),
    ProgressEvent.plan_chunk('{"files":', '{"files":'),
    ProgressEvent.plan_complete({"files": []}),
    ProgressEvent.status("generating", "Generating 1 files"),
    ProgressEvent.file_started("lib/a.ts", "utility"),
    ProgressEvent.file_chunk("lib/a.ts", "line 1\n", "line 1\n"),
    ProgressEvent.file_completed("lib/a.ts", "line 1\nline 2"),
    ProgressEvent.file_started("lib/b.ts", "utility"),
    ProgressEvent.file_failed("lib/b.ts", "bad reply"),
    ProgressEvent.validation_started(),
    ProgressEvent.validation_file_result("lib/a.ts", 0, 0, 10.0),
    ProgressEvent.validation_completed({"pass": True, "qualityScore": 10.0}),
    ProgressEvent.run_completed("Generated 1 files", runId="r1", statistics={"totalFiles": 1}),
]


def _stream(events):
    return "".join(encode_event(e) for e in events).encode("utf-8")


def _response(status=200, body=b"", error=None, piece=7):
    resp = MagicMock()
    resp.status_code = status
    resp.json.return_value = {"error": "denied"}

    def iter_content(chunk_size=None):
        for i in range(0, len(body), piece):
            yield body[i:i + piece]
        if error is not None:
            raise error

    resp.iter_content.side_effect = iter_content
    return resp


def _consumer(*responses, **kwargs):
    session = MagicMock()
    session.post.side_effect = list(responses)
    sleep = MagicMock()
    consumer = StreamConsumer("http://localhost:5001/", "tok", session=session, sleep=sleep, **kwargs)
    return consumer, session, sleep


def test_successful_stream():
    consumer, session, sleep = _consumer(_response(body=_stream(RUN_EVENTS)))
    state = consumer.start_generation({"projectId": "p1", "specification": "todo"})

    assert state.status == StreamStatus.COMPLETE
    assert state.is_complete is True
    assert state.run_id == "r1"
    assert state.files == {"lib/a.ts": "line 1\nline 2"}
    assert state.failed_files == {"lib/b.ts": "bad reply"}
    assert state.newly_created_files == set()
    assert state.plan == {"files": []}
    assert state.validation == {"pass": True, "qualityScore": 10.0}
    assert state.validation_results["lib/a.ts"]["score"] == 10.0
    assert state.statistics == {"totalFiles": 1}
    assert state.retry_count == 0
    sleep.assert_not_called()

    url = session.post.call_args[0][0]
    kwargs = session.post.call_args[1]
    assert url == "http://localhost:5001/api/stream-generate"
    assert kwargs["headers"]["Authorization"] == "Bearer tok"
    assert kwargs["stream"] is True


def test_in_progress_file_tracking():
    seen = []

    def on_event(event, state):
        seen.append((event.type.value, set(state.newly_created_files), dict(state.files)))

    consumer, _, _ = _consumer(_response(body=_stream(RUN_EVENTS)), on_event=on_event)
    consumer.start_generation({})
    by_type = {t: (created, files) for t, created, files in seen}
    assert by_type["file_chunk"] == ({"lib/a.ts"}, {"lib/a.ts": "line 1\n"})
    assert seen[5][1] == {"lib/a.ts"}
    assert seen[5][2] == {"lib/a.ts": ""}
    assert seen[7][1] == set()


def test_error_event_is_terminal_without_retry():
    events = [ProgressEvent.connection_test(), ProgressEvent.run_failed("Validation failed: high security risk")]
    consumer, session, sleep = _consumer(_response(body=_stream(events)))
    state = consumer.start_generation({})
    assert state.status == StreamStatus.ERRORED
    assert state.error == "Validation failed: high security risk"
    assert session.post.call_count == 1
    sleep.assert_not_called()


def test_three_connection_failures_give_up():
    error = requests.exceptions.ConnectionError("refused")
    consumer, session, sleep = _consumer(error, error, error, _response(body=_stream(RUN_EVENTS)))
    state = consumer.start_generation({})
    assert state.status == StreamStatus.ERRORED
    assert state.retry_count == 3
    assert "3 attempts" in state.error
    assert session.post.call_count == 3
    assert sleep.call_args_list == [call(2), call(4)]


def test_reconnects_after_dropped_stream():
    truncated = _stream(RUN_EVENTS[:1])
    consumer, session, sleep = _consumer(
        _response(body=truncated),
        _response(body=_stream(RUN_EVENTS)),
    )
    state = consumer.start_generation({})
    assert state.status == StreamStatus.COMPLETE
    assert state.retry_count == 1
    assert session.post.call_count == 2
    assert sleep.call_args_list == [call(2)]


def test_chunked_encoding_error_is_transient():
    broken = _response(body=_stream(RUN_EVENTS[:1]), error=requests.exceptions.ChunkedEncodingError("reset"))
    consumer, session, _ = _consumer(broken, _response(body=_stream(RUN_EVENTS)))
    assert consumer.start_generation({}).status == StreamStatus.COMPLETE
    assert session.post.call_count == 2


def test_partial_progress_does_not_reset_failure_count():
    error = requests.exceptions.Timeout("slow")
    partial = _response(body=_stream(RUN_EVENTS[:6]))
    consumer, session, sleep = _consumer(error, partial, error, _response(body=_stream(RUN_EVENTS)))
    state = consumer.start_generation({})
    assert state.status == StreamStatus.ERRORED
    assert state.retry_count == 3
    assert session.post.call_count == 3
    assert sleep.call_args_list == [call(2), call(4)]


def test_three_drops_after_progress_give_up():
    def dropped():
        return _response(body=_stream(RUN_EVENTS[:3]), error=requests.exceptions.ChunkedEncodingError("reset"))

    consumer, session, sleep = _consumer(*[dropped() for _ in range(6)])
    state = consumer.start_generation({})
    assert state.status == StreamStatus.ERRORED
    assert "3 attempts" in state.error
    assert session.post.call_count == 3
    assert sleep.call_args_list == [call(2), call(4)]


def test_failure_count_starts_over_for_each_generation():
    error = requests.exceptions.ConnectionError("refused")
    consumer, session, _ = _consumer(
        error, error, error,
        error, _response(body=_stream(RUN_EVENTS)),
    )
    assert consumer.start_generation({}).status == StreamStatus.ERRORED
    state = consumer.start_generation({})
    assert state.status == StreamStatus.COMPLETE
    assert state.retry_count == 1
    assert session.post.call_count == 5


def test_partial_output_cleared_on_reconnect():
    partial = _response(body=_stream(RUN_EVENTS[:6]))
    finished = _response(body=_stream([ProgressEvent.run_completed("Generated 0 files")]))
    consumer, _, _ = _consumer(partial, finished)
    state = consumer.start_generation({})
    assert state.files == {}
    assert state.newly_created_files == set()


def test_server_error_is_transient():
    consumer, session, sleep = _consumer(_response(status=502), _response(body=_stream(RUN_EVENTS)))
    assert consumer.start_generation({}).status == StreamStatus.COMPLETE
    assert sleep.call_args_list == [call(2)]


def test_unauthorized_is_terminal():
    consumer, session, sleep = _consumer(_response(status=401), _response(body=_stream(RUN_EVENTS)))
    state = consumer.start_generation({})
    assert state.status == StreamStatus.ERRORED
    assert "401" in state.error
    assert "denied" in state.error
    assert session.post.call_count == 1
    sleep.assert_not_called()


def test_bad_request_is_terminal():
    consumer, session, _ = _consumer(_response(status=400))
    assert consumer.start_generation({}).status == StreamStatus.ERRORED
    assert session.post.call_count == 1


def test_start_while_active_is_noop():
    consumer, session, _ = _consumer(_response(body=_stream(RUN_EVENTS)))
    consumer._active.acquire()
    try:
        state = consumer.start_generation({})
    finally:
        consumer._active.release()
    assert state.status == StreamStatus.IDLE
    session.post.assert_not_called()


def test_reset():
    consumer, _, _ = _consumer(_response(body=_stream(RUN_EVENTS)))
    consumer.start_generation({})
    consumer.reset()
    assert consumer.state.status == StreamStatus.IDLE
    assert consumer.state.files == {}
