"""Base shell adapter primitives."""

from __future__ import annotations

import abc
import logging
import re
import time
from dataclasses import dataclass

from buildpilot.agent.models import ExecutionResult

LOGGER = logging.getLogger(__name__)

DEFAULT_MAX_OUTPUT_BYTES = 10 * 1024 * 1024

_SECRET_PATTERNS = [
    re.compile(pattern, re.IGNORECASE)
    for pattern in (
        r"(--?(?:password|token|secret|api[-_]?key|auth)\s+)([^\s]+)",
        r"((?:password|token|secret|api[-_]?key|_auth(?:token)?)\s*=\s*)([^\s]+)",
    )
]


@dataclass(frozen=True, slots=True)
class CommandResult:
    """Result of a command execution."""

    command: str
    shell: str
    exit_code: int
    stdout: str
    stderr: str
    timed_out: bool = False
    duration_seconds: float = 0.0
    executed: bool = True
    output_truncated: bool = False

    def to_execution_result(self) -> ExecutionResult:
        return ExecutionResult(
            exit_code=self.exit_code,
            stdout=self.stdout,
            stderr=self.stderr,
            duration=self.duration_seconds,
        )


class ShellAdapter(abc.ABC):
    """Abstract adapter for running one command in a working directory."""

    def __init__(self, *, max_output_bytes: int = DEFAULT_MAX_OUTPUT_BYTES) -> None:
        self.max_output_bytes = max_output_bytes

    @property
    @abc.abstractmethod
    def name(self) -> str:
        """Friendly shell adapter name."""

    @abc.abstractmethod
    def execute(
        self,
        command: str,
        *,
        cwd: str | None = None,
        timeout: float | None = None,
    ) -> CommandResult:
        """Execute a shell command and return a normalized result."""

    def log_request(self, command: str, *, cwd: str | None, timeout: float | None) -> None:
        LOGGER.info(
            "command_request",
            extra={
                "shell": self.name,
                "command": self._sanitize_command(command),
                "cwd": cwd,
                "timeout": timeout,
            },
        )

    def log_result(self, result: CommandResult) -> None:
        LOGGER.info(
            "command_result",
            extra={
                "shell": result.shell,
                "exit_code": result.exit_code,
                "timed_out": result.timed_out,
                "duration_seconds": round(result.duration_seconds, 4),
                "executed": result.executed,
                "output_truncated": result.output_truncated,
                "stdout_length": len(result.stdout),
                "stderr_length": len(result.stderr),
            },
        )

    @staticmethod
    def monotonic_now() -> float:
        return time.monotonic()

    @staticmethod
    def _sanitize_command(command: str) -> str:
        sanitized = command
        for pattern in _SECRET_PATTERNS:
            sanitized = pattern.sub(r"\1***", sanitized)
        return sanitized
