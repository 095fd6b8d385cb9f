"""Default pipeline settings."""

import os

DEFAULTS = {
    "model": "claude-sonnet-4-5-20250929",
    "max_tokens": 16384,
    "llm_timeout": 120,
    "llm_retries": 2,
    "llm_retry_delay": 2,
    "lines_per_chunk": 2,       # chunker granularity for file_chunk events
    "batch_size": 3,
    "file_retries": 1,          # extra attempts for a file after a provider timeout
    "max_stream_retries": 3,    # consumer reconnect ceiling
    "long_function_lines": 50,
    "related_content_chars": 4000,
    "project_type": "nextjs",
}


def get_setting(key):
    """Return APPFORGE_<KEY> from the environment if set, else the default.

    Environment values are coerced to the type of the default.
    """
    default = DEFAULTS[key]
    raw = os.environ.get(f"APPFORGE_{key.upper()}")
    if raw is None or raw == "":
        return default
    if isinstance(default, bool):
        return raw.lower() in ("1", "true", "yes", "on")
    if isinstance(default, int):
        return int(raw)
    return raw
