"""Turn command results into bounded observations for the model."""

from __future__ import annotations

from buildpilot.agent.models import ExecutionResult

OBSERVATION_LIMIT = 6000
TRUNCATION_MARKER = "\n...(truncated)"
EMPTY_STREAM_MARKER = "(none)"


def summarize_output(result: ExecutionResult, *, limit: int = OBSERVATION_LIMIT) -> str:
    """Render exit code, stdout and stderr, hard-truncated at ``limit`` characters."""
    combined = "\n".join(
        [
            f"exit_code: {result.exit_code}",
            f"stdout:\n{result.stdout or EMPTY_STREAM_MARKER}",
            f"stderr:\n{result.stderr or EMPTY_STREAM_MARKER}",
        ]
    )
    if len(combined) <= limit:
        return combined
    return f"{combined[:limit]}{TRUNCATION_MARKER}"
