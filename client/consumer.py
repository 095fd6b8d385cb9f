"""Stream consumer: decodes a run's SSE stream and keeps UI-facing state.

Transient network failures re-run the whole generation with exponential
backoff (2, 4, ... seconds). After `max_retries` consecutive failures the
consumer stops in a terminal ERRORED state and never retries on its own.
"""

import logging
import threading
import time
from dataclasses import dataclass, field
from enum import Enum

import requests

from config.defaults import get_setting
from core.events import EventType
from core.sse import SSEDecoder

logger = logging.getLogger(__name__)


class StreamStatus(str, Enum):
    IDLE = "idle"
    CONNECTING = "connecting"
    STREAMING = "streaming"
    RECONNECTING = "reconnecting"
    COMPLETE = "complete"
    ERRORED = "errored"


TERMINAL_STATUSES = {StreamStatus.COMPLETE, StreamStatus.ERRORED}


@dataclass
class StreamingState:
    status: StreamStatus = StreamStatus.IDLE
    current_phase: str = ""
    current_message: str = ""
    current_file: str | None = None
    plan_content: str = ""
    plan: dict | None = None
    files: dict = field(default_factory=dict)               # path -> content so far
    newly_created_files: set = field(default_factory=set)   # started, not yet complete
    failed_files: dict = field(default_factory=dict)        # path -> message
    validation_results: dict = field(default_factory=dict)  # path -> {errorCount, ...}
    validation: dict | None = None
    statistics: dict | None = None
    run_id: str | None = None
    error: str | None = None
    is_complete: bool = False
    retry_count: int = 0

    @property
    def is_streaming(self) -> bool:
        return self.status in (StreamStatus.CONNECTING, StreamStatus.STREAMING)

    @property
    def is_reconnecting(self) -> bool:
        return self.status == StreamStatus.RECONNECTING


class TransientStreamError(Exception):
    """Connection dropped, timed out, 5xx, or stream ended without a terminal event."""


class FatalStreamError(Exception):
    """Authentication/authorization or request error. Never retried."""


class StreamConsumer:
    def __init__(self, base_url, auth_token, session=None, max_retries=None,
                 sleep=time.sleep, on_event=None, timeout=(10, 300)):
        self.url = base_url.rstrip("/") + "/api/stream-generate"
        self.auth_token = auth_token
        self.session = session or requests.Session()
        self.max_retries = max_retries or get_setting("max_stream_retries")
        self.on_event = on_event
        self.timeout = timeout
        self.state = StreamingState()
        self._sleep = sleep
        self._active = threading.Lock()

    @property
    def is_active(self) -> bool:
        return self._active.locked()

    def reset(self):
        if not self.is_active:
            self.state = StreamingState()

    def start_generation(self, payload):
        """Run one generation to a terminal state. No-op while one is already active."""
        if not self._active.acquire(blocking=False):
            logger.info("Generation already in progress, ignoring start request")
            return self.state
        try:
            self._run(payload)
        finally:
            self._active.release()
        return self.state

    def _run(self, payload):
        self.state = StreamingState()
        failures = 0
        while True:
            self.state.status = StreamStatus.CONNECTING
            try:
                self._stream_once(payload)
                return
            except FatalStreamError as e:
                self.state.status = StreamStatus.ERRORED
                self.state.error = str(e)
                return
            except TransientStreamError as e:
                # partial progress does not reset the count; only a terminal event ends the run
                failures += 1
                self.state.retry_count = failures
                if failures >= self.max_retries:
                    self.state.status = StreamStatus.ERRORED
                    self.state.error = f"Connection failed after {failures} attempts: {e}"
                    logger.error("Giving up on stream: %s", e)
                    return
                delay = 2 ** failures
                self.state.status = StreamStatus.RECONNECTING
                logger.warning("Stream interrupted (%s), reconnecting in %ds (attempt %d/%d)",
                               e, delay, failures + 1, self.max_retries)
                self._sleep(delay)
                self._clear_progress()

    def _clear_progress(self):
        """Forget partial output before the run is started again."""
        retry_count = self.state.retry_count
        self.state = StreamingState(status=StreamStatus.RECONNECTING, retry_count=retry_count)

    def _stream_once(self, payload):
        headers = {
            "Authorization": f"Bearer {self.auth_token}",
            "Accept": "text/event-stream",
        }
        try:
            response = self.session.post(
                self.url, json=payload, headers=headers, stream=True, timeout=self.timeout,
            )
        except (requests.exceptions.ConnectionError, requests.exceptions.Timeout) as e:
            raise TransientStreamError(str(e)) from e

        try:
            if response.status_code in (401, 403):
                raise FatalStreamError(f"Not authorized ({response.status_code}): {_error_text(response)}")
            if response.status_code >= 500:
                raise TransientStreamError(f"Server error {response.status_code}")
            if response.status_code >= 400:
                raise FatalStreamError(f"Request rejected ({response.status_code}): {_error_text(response)}")

            self.state.status = StreamStatus.STREAMING
            decoder = SSEDecoder()
            try:
                for chunk in response.iter_content(chunk_size=None):
                    for event in decoder.feed(chunk):
                        self._handle(event)
                        if event.is_terminal:
                            return True
            except (requests.exceptions.ConnectionError, requests.exceptions.Timeout,
                    requests.exceptions.ChunkedEncodingError) as e:
                raise TransientStreamError(str(e)) from e
            raise TransientStreamError("Stream closed before the run finished")
        finally:
            response.close()

    def _handle(self, event):
        state = self.state
        data = event.data
        kind = event.type

        if kind == EventType.STATUS:
            state.current_phase = data.get("phase", "")
            state.current_message = data.get("message", "")
        elif kind == EventType.PLAN_CHUNK:
            state.plan_content = data.get("accumulated", state.plan_content + data.get("chunk", ""))
        elif kind == EventType.PLAN_COMPLETE:
            state.plan = data.get("plan")
            state.current_message = "Plan ready"
        elif kind == EventType.FILE_START:
            path = data["filePath"]
            state.current_file = path
            state.files[path] = ""
            state.newly_created_files.add(path)
            state.failed_files.pop(path, None)
        elif kind == EventType.FILE_CHUNK:
            state.files[data["filePath"]] = data.get("accumulated", "")
        elif kind == EventType.FILE_COMPLETE:
            path = data["filePath"]
            state.files[path] = data.get("content", "")
            state.newly_created_files.discard(path)
            if state.current_file == path:
                state.current_file = None
        elif kind == EventType.FILE_ERROR:
            path = data["filePath"]
            state.failed_files[path] = data.get("message", "")
            state.newly_created_files.discard(path)
            if state.files.get(path) == "":
                del state.files[path]
        elif kind == EventType.BATCH_PROGRESS:
            state.current_message = f"Generated {data.get('completed')}/{data.get('total')} files"
        elif kind == EventType.VALIDATION_START:
            state.current_phase = "validating"
            state.current_message = data.get("message", "")
        elif kind == EventType.VALIDATION_FILE:
            state.validation_results[data["filePath"]] = data
        elif kind == EventType.VALIDATION_COMPLETE:
            state.validation = data.get("report")
        elif kind == EventType.COMPLETE:
            state.status = StreamStatus.COMPLETE
            state.is_complete = True
            state.current_message = data.get("message", "")
            state.statistics = data.get("statistics")
            state.run_id = data.get("runId")
            state.current_file = None
        elif kind == EventType.ERROR:
            state.status = StreamStatus.ERRORED
            state.error = data.get("message", "Generation failed")
            state.run_id = data.get("runId")
            state.current_file = None

        if self.on_event is not None:
            self.on_event(event, state)


def _error_text(response):
    try:
        return response.json().get("error", "")
    except ValueError:
        return response.text[:200]
