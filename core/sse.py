"""Server-sent event framing: `event: <type>\\ndata: <json>\\n\\n`."""

import codecs
import json
import logging

from core.events import EventType, ProgressEvent

logger = logging.getLogger(__name__)

_SEPARATOR = "\n\n"


def encode_event(event: ProgressEvent) -> str:
    data = json.dumps(event.data, separators=(",", ":"), default=str)
    return f"event: {event.type.value}\ndata: {data}{_SEPARATOR}"


def parse_message(message: str):
    """Parse one complete SSE message (without the trailing blank line).

    Returns (event_type, data) or None for comment/keep-alive messages.
    Multiple data lines are joined with newlines as the SSE format requires.
    """
    event_type = "message"
    data_lines = []
    for line in message.split("\n"):
        line = line.rstrip("\r")
        if not line or line.startswith(":"):
            continue
        name, _, value = line.partition(":")
        if value.startswith(" "):
            value = value[1:]
        if name == "event":
            event_type = value
        elif name == "data":
            data_lines.append(value)
    if not data_lines:
        return None
    return event_type, json.loads("\n".join(data_lines))


class SSEDecoder:
    """Incremental decoder. Only complete `\\n\\n`-terminated messages are parsed."""

    def __init__(self):
        self._buffer = ""
        self._decoder = codecs.getincrementaldecoder("utf-8")()

    @property
    def pending(self) -> str:
        return self._buffer

    def feed(self, text):
        if isinstance(text, bytes):
            text = self._decoder.decode(text)
        # a "\r\n" pair may straddle two reads
        self._buffer = (self._buffer + text).replace("\r\n", "\n")
        events = []
        while _SEPARATOR in self._buffer:
            message, self._buffer = self._buffer.split(_SEPARATOR, 1)
            try:
                parsed = parse_message(message)
            except json.JSONDecodeError:
                logger.warning("Discarding SSE message with invalid JSON payload")
                continue
            if parsed is None:
                continue
            name, data = parsed
            try:
                events.append(ProgressEvent(EventType(name), data))
            except ValueError:
                logger.debug("Ignoring unknown SSE event type %r", name)
        return events
