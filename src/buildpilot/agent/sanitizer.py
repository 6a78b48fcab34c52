"""Normalize raw model replies into executable commands."""

from __future__ import annotations

import re

DEFAULT_COMPLETION_TOKEN = "BUILD_COMPLETE"

_OPENING_FENCE = re.compile(r"^`{3,}")
_CLOSING_FENCE = re.compile(r"\n?`{3,}$")
_LANGUAGE_TAG = re.compile(r"^[\w.+-]*$")


def sanitize_command(raw_reply: str | None) -> str:
    """Trim a reply and unwrap it from a fenced code block if present.

    The language tag on the opening fence line is dropped. Nothing else about
    the command text is altered.
    """
    if not raw_reply:
        return ""
    cleaned = raw_reply.strip()
    opening = _OPENING_FENCE.match(cleaned)
    if opening:
        cleaned = _unwrap_fence(cleaned[opening.end():])
    return cleaned


def is_completion(command: str, completion_token: str = DEFAULT_COMPLETION_TOKEN) -> bool:
    return command == completion_token


def _unwrap_fence(rest: str) -> str:
    if "\n" in rest:
        first_line, body = rest.split("\n", 1)
        if not _LANGUAGE_TAG.match(first_line.strip()):
            body = rest
    else:
        body = rest
    body = _CLOSING_FENCE.sub("", body.rstrip())
    return body.strip()
