"""Shared utilities for interpreting LLM responses and failures."""

from __future__ import annotations

from typing import Optional

QUOTA_MARKERS = (
    "quota",
    "rate limit",
    "rate_limit",
    "ratelimit",
    "resource_exhausted",
    "resource exhausted",
    "too many requests",
    "429",
)


def extract_json_object(raw: str) -> Optional[str]:
    """Return the first balanced ``{...}`` span in ``raw``, or None.

    Braces inside JSON string literals are ignored, so a value such as
    ``"reasoning": "use {x}"`` does not end the span early.
    """
    if not raw:
        return None

    start = raw.find("{")
    while start >= 0:
        depth = 0
        in_string = False
        escaped = False
        for idx in range(start, len(raw)):
            ch = raw[idx]
            if in_string:
                if escaped:
                    escaped = False
                elif ch == "\\":
                    escaped = True
                elif ch == '"':
                    in_string = False
                continue
            if ch == '"':
                in_string = True
            elif ch == "{":
                depth += 1
            elif ch == "}":
                depth -= 1
                if depth == 0:
                    return raw[start:idx + 1]
        # Unbalanced from this brace; try the next opening brace
        start = raw.find("{", start + 1)
    return None


def is_quota_error(error: BaseException) -> bool:
    """True when an LLM failure message looks like a quota / rate-limit rejection."""
    message = str(error).lower()
    return any(marker in message for marker in QUOTA_MARKERS)
