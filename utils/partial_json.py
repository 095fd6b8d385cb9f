"""Pull a string field out of a JSON object that is still being streamed.

The model streams its structured reply as raw JSON text. While it is
incomplete, json.loads() cannot parse it, but the value of the top-level
"content" field can be decoded up to the last complete character. That
growing prefix is what gets forwarded as file_chunk events.
"""

import re

_ESCAPES = {
    '"': '"',
    "\\": "\\",
    "/": "/",
    "b": "\b",
    "f": "\f",
    "n": "\n",
    "r": "\r",
    "t": "\t",
}

_HEX4 = re.compile(r"[0-9a-fA-F]{4}")


def _find_value_start(text, field):
    """Index of the first character inside the field's opening quote, or -1.

    Only keys at object depth 1 count, so a "content" key inside metadata
    or inside a string value is never matched.
    """
    depth = 0
    i = 0
    n = len(text)
    expecting_key = False
    while i < n:
        ch = text[i]
        if ch == '"':
            end = _skip_string(text, i + 1)
            if end == -1:
                return -1
            if depth == 1 and expecting_key:
                key = text[i + 1:end]
                j = end + 1
                while j < n and text[j] in " \t\r\n":
                    j += 1
                if j >= n:
                    return -1
                if text[j] == ":":
                    j += 1
                    while j < n and text[j] in " \t\r\n":
                        j += 1
                    if j >= n:
                        return -1
                    if key == field:
                        return j + 1 if text[j] == '"' else -1
                    expecting_key = False
                    i = j
                    continue
            i = end + 1
            continue
        if ch in "{[":
            depth += 1
            expecting_key = ch == "{" and depth == 1
        elif ch in "}]":
            depth -= 1
        elif ch == "," and depth == 1:
            expecting_key = True
        i += 1
    return -1


def _skip_string(text, start):
    """Index of the closing quote of a string starting at `start`, or -1."""
    i = start
    n = len(text)
    while i < n:
        ch = text[i]
        if ch == "\\":
            i += 2
            continue
        if ch == '"':
            return i
        i += 1
    return -1


def _decode_prefix(text, start):
    """Decode a JSON string body from `start`, stopping at the closing quote
    or at the first escape sequence that is not yet complete.

    Returns (decoded, closed).
    """
    out = []
    i = start
    n = len(text)
    while i < n:
        ch = text[i]
        if ch == '"':
            return "".join(out), True
        if ch != "\\":
            out.append(ch)
            i += 1
            continue
        if i + 1 >= n:
            break
        esc = text[i + 1]
        if esc in _ESCAPES:
            out.append(_ESCAPES[esc])
            i += 2
            continue
        if esc != "u":
            # invalid escape, keep it literally
            out.append(esc)
            i += 2
            continue
        hex_digits = text[i + 2:i + 6]
        if len(hex_digits) < 4:
            break
        if not _HEX4.fullmatch(hex_digits):
            out.append(hex_digits)
            i += 6
            continue
        code = int(hex_digits, 16)
        if 0xD800 <= code <= 0xDBFF:
            # high surrogate, needs the low half before anything can be emitted
            tail = text[i + 6:i + 12]
            if len(tail) < 6:
                break
            if tail.startswith("\\u") and _HEX4.fullmatch(tail[2:]):
                low = int(tail[2:], 16)
                if 0xDC00 <= low <= 0xDFFF:
                    out.append(chr(0x10000 + ((code - 0xD800) << 10) + (low - 0xDC00)))
                    i += 12
                    continue
            out.append("�")
            i += 6
            continue
        out.append(chr(code))
        i += 6
    return "".join(out), False


def extract_string_field(text, field="content"):
    """Return (value_prefix, closed) for a top-level string field.

    value_prefix is "" when the field has not started yet. The prefix only
    ever grows as more text arrives, so callers can diff successive values.
    """
    start = _find_value_start(text, field)
    if start == -1:
        return "", False
    return _decode_prefix(text, start)
