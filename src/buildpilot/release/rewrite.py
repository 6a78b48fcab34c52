"""Pick an nginx rewrite rule for single-page-app routing."""

from __future__ import annotations

import logging
import re
from pathlib import Path

from buildpilot.agent.loop import Planner
from buildpilot.agent.models import Message
from buildpilot.agent.prompts import REWRITE_RULE_PROMPT
from buildpilot.agent.sanitizer import sanitize_command

LOGGER = logging.getLogger(__name__)

DEFAULT_REWRITE_RULE = "location / { try_files $uri /index.html; }"
REWRITE_RULE_FILENAME = "Pseudo-static"

_LOCATION_ROOT_BLOCK = re.compile(r"location\s+/\s*\{")


def normalize_rewrite_rule(text: str | None) -> str:
    return sanitize_command(text)


def is_valid_rewrite_rule(text: str | None) -> bool:
    normalized = normalize_rewrite_rule(text)
    if not normalized:
        return False
    if not _LOCATION_ROOT_BLOCK.search(normalized):
        return False
    if not _braces_balanced(normalized):
        return False
    return normalized.endswith((";", "}"))


def select_rewrite_rule(reply: str | None) -> str:
    """Return the model's rule when it passes validation, else the default."""
    normalized = normalize_rewrite_rule(reply)
    if is_valid_rewrite_rule(normalized):
        return normalized
    LOGGER.warning("rewrite_rule_defaulted", extra={"reply_length": len(reply or "")})
    return DEFAULT_REWRITE_RULE


def request_rewrite_rule(client: Planner, system_message: Message) -> str:
    reply = client.complete([system_message, Message(role="user", content=REWRITE_RULE_PROMPT)])
    return select_rewrite_rule(reply)


def write_rewrite_rule(release_dir: Path, rule: str) -> Path:
    target = release_dir / REWRITE_RULE_FILENAME
    target.write_text(f"{rule}\n", encoding="utf-8")
    return target


def _braces_balanced(text: str) -> bool:
    open_count = 0
    for char in text:
        if char == "{":
            open_count += 1
        elif char == "}":
            open_count -= 1
            if open_count < 0:
                return False
    return open_count == 0
