"""Shell adapter implementations."""

from .base import DEFAULT_MAX_OUTPUT_BYTES, CommandResult, ShellAdapter
from .bash_adapter import BashAdapter


def create_shell_adapter(
    shell_name: str, *, max_output_bytes: int = DEFAULT_MAX_OUTPUT_BYTES
) -> ShellAdapter:
    normalized = shell_name.strip().lower()
    if normalized in {"bash", "sh", "shell"}:
        return BashAdapter(
            executable="sh" if normalized == "sh" else None,
            max_output_bytes=max_output_bytes,
        )
    msg = f"Unsupported shell adapter: {shell_name}"
    raise ValueError(msg)


__all__ = [
    "BashAdapter",
    "CommandResult",
    "ShellAdapter",
    "create_shell_adapter",
]
