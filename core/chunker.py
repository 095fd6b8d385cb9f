"""Line-based chunker for streamed file content."""

from dataclasses import dataclass

from config.defaults import get_setting


@dataclass
class ChunkResult:
    emit: bool
    chunk: str = ""
    complete: bool = False


class SmartChunker:
    """Buffers streamed text and releases it in runs of whole lines.

    add_content() emits exactly `lines_per_chunk` newline-terminated lines
    once that many are buffered, keeping the rest. flush() releases whatever
    is left. Concatenating every emitted chunk reproduces the input.
    """

    def __init__(self, lines_per_chunk=None):
        if lines_per_chunk is None:
            lines_per_chunk = get_setting("lines_per_chunk")
        self.lines_per_chunk = lines_per_chunk
        if self.lines_per_chunk < 1:
            raise ValueError("lines_per_chunk must be >= 1")
        self._buffer = ""
        self._complete = False

    @property
    def pending(self) -> str:
        return self._buffer

    def add_content(self, text: str) -> ChunkResult:
        if self._complete:
            raise RuntimeError("Chunker already flushed")
        self._buffer += text

        # position just past the K-th newline, if there is one
        end = -1
        for _ in range(self.lines_per_chunk):
            end = self._buffer.find("\n", end + 1)
            if end == -1:
                return ChunkResult(emit=False)

        chunk = self._buffer[:end + 1]
        self._buffer = self._buffer[end + 1:]
        return ChunkResult(emit=True, chunk=chunk)

    def drain(self, text: str = ""):
        """Feed text and yield every chunk that becomes available."""
        result = self.add_content(text)
        while result.emit:
            yield result.chunk
            result = self.add_content("")

    def flush(self) -> ChunkResult:
        self._complete = True
        chunk, self._buffer = self._buffer, ""
        return ChunkResult(emit=bool(chunk), chunk=chunk, complete=True)

    def reset(self):
        self._buffer = ""
        self._complete = False
