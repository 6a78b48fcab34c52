from __future__ import annotations

import pytest

from buildpilot.agent.sanitizer import DEFAULT_COMPLETION_TOKEN, is_completion, sanitize_command


@pytest.mark.parametrize(
    "raw",
    [
        "```bash\nnpm run build\n```",
        "```sh\nnpm run build\n```",
        "```\nnpm run build\n```",
        "  ```shell\n  npm run build  \n```  \n",
        "````bash\nnpm run build\n````",
    ],
)
def test_sanitize_strips_fences_and_language_tag(raw: str) -> None:
    assert sanitize_command(raw) == "npm run build"


def test_sanitize_keeps_multiline_body() -> None:
    raw = "```bash\ncd app\nnpm install\n```"

    assert sanitize_command(raw) == "cd app\nnpm install"


def test_sanitize_single_line_fence() -> None:
    assert sanitize_command("```ls -la```") == "ls -la"


def test_sanitize_only_trims_plain_text() -> None:
    assert sanitize_command("  cd web && npm ci \n") == "cd web && npm ci"


def test_sanitize_leaves_inner_backticks_alone() -> None:
    assert sanitize_command("echo `date`") == "echo `date`"


@pytest.mark.parametrize("raw", [None, "", "   \n\t", "```\n```"])
def test_sanitize_empty_inputs(raw: str | None) -> None:
    assert sanitize_command(raw) == ""


def test_completion_token_survives_surrounding_whitespace() -> None:
    command = sanitize_command(f"\n  {DEFAULT_COMPLETION_TOKEN}  \n")

    assert command == DEFAULT_COMPLETION_TOKEN
    assert is_completion(command)


@pytest.mark.parametrize(
    "raw",
    [
        "build_complete",
        f"{DEFAULT_COMPLETION_TOKEN}.",
        f"The build is done: {DEFAULT_COMPLETION_TOKEN}",
        f"echo {DEFAULT_COMPLETION_TOKEN}",
    ],
)
def test_completion_requires_exact_match(raw: str) -> None:
    assert not is_completion(sanitize_command(raw))


def test_completion_with_custom_token() -> None:
    assert is_completion(sanitize_command("```\nDONE\n```"), "DONE")
