"""Progress events emitted during a run."""

from dataclasses import dataclass, field
from enum import Enum


class EventType(str, Enum):
    CONNECTION_TEST = "connection_test"
    STATUS = "status"
    PLAN_CHUNK = "plan_chunk"
    PLAN_COMPLETE = "plan_complete"
    FILE_START = "file_start"
    FILE_CHUNK = "file_chunk"
    FILE_COMPLETE = "file_complete"
    FILE_ERROR = "file_error"
    BATCH_PROGRESS = "batch_progress"
    VALIDATION_START = "validation_start"
    VALIDATION_FILE = "validation_file"
    VALIDATION_COMPLETE = "validation_complete"
    COMPLETE = "complete"
    ERROR = "error"


TERMINAL_EVENTS = frozenset({EventType.COMPLETE, EventType.ERROR})


@dataclass(frozen=True)
class ProgressEvent:
    type: EventType
    data: dict = field(default_factory=dict, hash=False)

    @property
    def is_terminal(self) -> bool:
        return self.type in TERMINAL_EVENTS

    @property
    def path(self):
        return self.data.get("filePath")

    @classmethod
    def connection_test(cls):
        return cls(EventType.CONNECTION_TEST, {"message": "connected"})

    @classmethod
    def status(cls, phase, message):
        return cls(EventType.STATUS, {"phase": phase, "message": message})

    @classmethod
    def plan_chunk(cls, chunk, accumulated):
        return cls(EventType.PLAN_CHUNK, {"chunk": chunk, "accumulated": accumulated})

    @classmethod
    def plan_complete(cls, plan):
        return cls(EventType.PLAN_COMPLETE, {"plan": plan})

    @classmethod
    def file_started(cls, path, category=""):
        return cls(EventType.FILE_START, {"filePath": path, "type": category})

    @classmethod
    def file_chunk(cls, path, delta, accumulated):
        return cls(EventType.FILE_CHUNK, {"filePath": path, "chunk": delta, "accumulated": accumulated})

    @classmethod
    def file_completed(cls, path, content):
        return cls(EventType.FILE_COMPLETE, {"filePath": path, "content": content})

    @classmethod
    def file_failed(cls, path, message):
        return cls(EventType.FILE_ERROR, {"filePath": path, "message": message})

    @classmethod
    def batch_progress(cls, completed, total, batch):
        return cls(EventType.BATCH_PROGRESS, {"completed": completed, "total": total, "batch": list(batch)})

    @classmethod
    def validation_started(cls):
        return cls(EventType.VALIDATION_START, {"message": "Validating generated files"})

    @classmethod
    def validation_file_result(cls, path, error_count, warning_count, score):
        return cls(EventType.VALIDATION_FILE, {
            "filePath": path,
            "errorCount": error_count,
            "warningCount": warning_count,
            "score": score,
        })

    @classmethod
    def validation_completed(cls, report):
        return cls(EventType.VALIDATION_COMPLETE, {"report": report})

    @classmethod
    def run_completed(cls, message, **extra):
        return cls(EventType.COMPLETE, {"message": message, **extra})

    @classmethod
    def run_failed(cls, message, **extra):
        return cls(EventType.ERROR, {"message": message, **extra})
