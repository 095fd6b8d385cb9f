"""Claude API client handle for planning and file generation."""

import logging
import os
import re
import time

import anthropic

from config.defaults import get_setting
from core.errors import (
    AuthenticationFailure,
    ModelFailure,
    ProviderUnavailableError,
)

logger = logging.getLogger(__name__)

JSON_INSTRUCTION = "\n\nIMPORTANT: Respond ONLY with valid JSON. No markdown fences, no commentary."


def strip_fences(text):
    """Remove a markdown fence wrapped around the whole reply, if any."""
    cleaned = text.strip()
    if cleaned.startswith("```"):
        cleaned = re.sub(r"^```\w*\n?", "", cleaned)
        cleaned = re.sub(r"\n?```$", "", cleaned)
    return cleaned


def translate_error(exc):
    """Map an anthropic SDK exception onto the pipeline's error taxonomy."""
    if isinstance(exc, (anthropic.AuthenticationError, anthropic.PermissionDeniedError)):
        return AuthenticationFailure(f"Model provider rejected credentials: {exc}")
    if isinstance(exc, (anthropic.APIConnectionError, anthropic.RateLimitError,
                        anthropic.InternalServerError)):
        return ProviderUnavailableError(f"Model provider unavailable: {exc}")
    if isinstance(exc, anthropic.APIStatusError) and exc.status_code >= 500:
        return ProviderUnavailableError(f"Model provider unavailable: {exc}")
    return ModelFailure(f"Model request failed: {exc}")


class LLMClient:
    """Explicitly scoped handle around anthropic.Anthropic.

    Construct one per process or per run, open() it, pass it to the agents
    and close() it when done. Usable as a context manager.
    """

    def __init__(self, api_key=None, model=None, max_tokens=None, timeout=None,
                 retries=None, retry_delay=None, sleep=time.sleep):
        self.api_key = api_key
        self.model = model or get_setting("model")
        self.max_tokens = max_tokens or get_setting("max_tokens")
        self.timeout = timeout or get_setting("llm_timeout")
        self.retries = get_setting("llm_retries") if retries is None else retries
        self.retry_delay = get_setting("llm_retry_delay") if retry_delay is None else retry_delay
        self._sleep = sleep
        self._client = None

    @property
    def is_open(self) -> bool:
        return self._client is not None

    def open(self):
        if self._client is not None:
            return self
        api_key = self.api_key or os.environ.get("ANTHROPIC_API_KEY")
        if not api_key:
            raise AuthenticationFailure(
                "ANTHROPIC_API_KEY environment variable is not set. "
                "Get a key at https://console.anthropic.com/ and run:\n"
                "  export ANTHROPIC_API_KEY='your-key-here'"
            )
        # retries are handled here so they map onto the error taxonomy
        self._client = anthropic.Anthropic(api_key=api_key, timeout=self.timeout, max_retries=0)
        return self

    def close(self):
        if self._client is not None:
            self._client.close()
            self._client = None

    def __enter__(self):
        return self.open()

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False

    def _require_client(self):
        if self._client is None:
            raise RuntimeError("LLMClient is not open; call open() first")
        return self._client

    def _backoff(self, attempt, error):
        delay = self.retry_delay * (2 ** attempt)
        logger.warning("Provider unavailable (%s), retrying in %.1fs", error, delay)
        self._sleep(delay)

    def complete(self, system_prompt, user_message, json_reply=True):
        """Return the full reply text. Retries provider-unavailable failures."""
        client = self._require_client()
        if json_reply:
            system_prompt = system_prompt + JSON_INSTRUCTION

        attempt = 0
        while True:
            try:
                response = client.messages.create(
                    model=self.model,
                    max_tokens=self.max_tokens,
                    system=system_prompt,
                    messages=[{"role": "user", "content": user_message}],
                )
            except anthropic.APIError as e:
                error = translate_error(e)
                if isinstance(error, ProviderUnavailableError) and attempt < self.retries:
                    self._backoff(attempt, error)
                    attempt += 1
                    continue
                raise error from e

            if response.stop_reason == "max_tokens":
                logger.warning("Reply truncated at max_tokens=%d", self.max_tokens)
            return "".join(
                block.text for block in response.content if getattr(block, "type", "") == "text"
            )

    def stream(self, system_prompt, user_message, json_reply=True):
        """Yield reply text deltas as they arrive.

        Failures before the first delta are retried; a failure after text
        has been yielded is raised so the caller can restart the file.
        """
        client = self._require_client()
        if json_reply:
            system_prompt = system_prompt + JSON_INSTRUCTION

        attempt = 0
        while True:
            started = False
            try:
                with client.messages.stream(
                    model=self.model,
                    max_tokens=self.max_tokens,
                    system=system_prompt,
                    messages=[{"role": "user", "content": user_message}],
                ) as stream:
                    for delta in stream.text_stream:
                        started = True
                        yield delta
                    final = stream.get_final_message()
                if final.stop_reason == "max_tokens":
                    logger.warning("Reply truncated at max_tokens=%d", self.max_tokens)
                return
            except anthropic.APIError as e:
                error = translate_error(e)
                if (isinstance(error, ProviderUnavailableError) and not started
                        and attempt < self.retries):
                    self._backoff(attempt, error)
                    attempt += 1
                    continue
                raise error from e
