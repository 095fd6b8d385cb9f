"""Shared prompt/parse cycle for every generator strategy."""

import logging
import os
import re

from pydantic import ValidationError

from config.defaults import get_setting
from core.chunker import SmartChunker
from core.errors import MalformedReplyError
from core.schemas import FileGenerationReply
from core.state import GeneratedFile
from utils.llm import strip_fences
from utils.partial_json import extract_string_field

logger = logging.getLogger(__name__)

_PROMPT_DIR = os.path.join(os.path.dirname(__file__), "prompts")

_USE_CLIENT = re.compile(r"""^\s*(?://[^\n]*\n\s*|/\*.*?\*/\s*)*["']use client["']""", re.DOTALL)


def _load_prompt(name):
    with open(os.path.join(_PROMPT_DIR, f"{name}.txt")) as f:
        return f.read()


def has_use_client(content):
    """True if the file opens with the "use client" directive."""
    return bool(_USE_CLIENT.match(content))


class BaseStrategy:
    """Turns one FileTask into a GeneratedFile via one model call.

    Subclasses set `prompt_name` and override instructions() for
    category-specific guidance, synthesize() to bypass the model for
    well-known paths, and enrich_metadata() to add category hints.
    """

    name = "base"
    prompt_name = "utility"

    def __init__(self, llm, lines_per_chunk=None, related_content_chars=None):
        self.llm = llm
        self.lines_per_chunk = lines_per_chunk
        self.related_content_chars = related_content_chars or get_setting("related_content_chars")

    def system_prompt(self, task):
        return _load_prompt(self.prompt_name) + _load_prompt("_reply_format")

    def instructions(self, task, context):
        """Category-specific lines appended to the user message."""
        return []

    def synthesize(self, task, related, context):
        """Return a GeneratedFile built without the model, or None."""
        return None

    def enrich_metadata(self, task, reply, metadata):
        return metadata

    def build_message(self, task, related, context):
        parts = [
            "Project specification:",
            context.specification.strip(),
            "",
            f"Project type: {context.project_type}",
        ]
        if context.architecture:
            parts.append("Architecture decisions:")
            for key, value in sorted(context.architecture.items()):
                if value not in (None, ""):
                    parts.append(f"- {key}: {value}")
        if context.dependencies:
            packages = ", ".join(f"{d.package}@{d.version}" for d in context.dependencies)
            parts.append(f"Installed packages: {packages}")

        parts += [
            "",
            f"File to generate: {task.path}",
            f"Category: {task.category.value}",
            f"Description: {task.description or '(none)'}",
        ]
        if task.dependencies:
            parts.append(f"Declared dependencies: {', '.join(task.dependencies)}")

        extra = self.instructions(task, context)
        if extra:
            parts.append("")
            parts.extend(extra)

        if related:
            parts.append("")
            parts.append("Already generated files this file may use:")
            for f in related:
                exports = ", ".join(f.exports) if f.exports else "none declared"
                body = f.content
                if len(body) > self.related_content_chars:
                    body = body[:self.related_content_chars] + "\n/* ... truncated ... */"
                parts.append(f"\n--- {f.path} (exports: {exports})\n{body}")
        return "\n".join(parts)

    def generate(self, task, related, context, on_chunk=None):
        """Produce the file for `task`.

        With on_chunk, the reply is streamed and on_chunk(delta, accumulated)
        receives the growing file content in whole-line chunks, then a final
        flush of whatever is left.
        """
        synthesized = self.synthesize(task, related, context)
        if synthesized is not None:
            logger.debug("Synthesized %s without a model call", task.path)
            if on_chunk is not None:
                self._replay(synthesized.content, on_chunk)
            return synthesized

        system = self.system_prompt(task)
        message = self.build_message(task, related, context)
        if on_chunk is None:
            text = self.llm.complete(system, message)
        else:
            text = self._stream(system, message, on_chunk)
        return self.parse_reply(task, text)

    def _stream(self, system, message, on_chunk):
        chunker = SmartChunker(self.lines_per_chunk)
        raw = ""
        seen = ""
        accumulated = ""
        for delta in self.llm.stream(system, message):
            raw += delta
            content, _ = extract_string_field(raw, "content")
            fresh = content[len(seen):]
            seen = content
            for chunk in chunker.drain(fresh):
                accumulated += chunk
                on_chunk(chunk, accumulated)
        tail = chunker.flush()
        if tail.emit:
            accumulated += tail.chunk
            on_chunk(tail.chunk, accumulated)
        return raw

    def _replay(self, content, on_chunk):
        chunker = SmartChunker(self.lines_per_chunk)
        accumulated = ""
        for chunk in chunker.drain(content):
            accumulated += chunk
            on_chunk(chunk, accumulated)
        tail = chunker.flush()
        if tail.emit:
            on_chunk(tail.chunk, accumulated + tail.chunk)

    def parse_reply(self, task, text):
        try:
            reply = FileGenerationReply.model_validate_json(strip_fences(text))
        except ValidationError as e:
            raise MalformedReplyError(
                task.path, f"reply failed schema validation ({e.error_count()} error(s))"
            ) from e
        if reply.errors:
            raise MalformedReplyError(task.path, "model reported: " + "; ".join(reply.errors))

        metadata = reply.metadata.model_dump()
        metadata["isClientComponent"] = metadata["isClientComponent"] or has_use_client(reply.content)
        metadata["packages"] = list(reply.dependencies)
        metadata = self.enrich_metadata(task, reply, metadata)

        return GeneratedFile(
            path=task.path,
            content=reply.content,
            category=task.category,
            imports=tuple(reply.imports),
            exports=tuple(reply.exports),
            metadata=metadata,
        )
