"""Bash shell adapter implementation."""

from __future__ import annotations

import locale
import os
import shutil
import subprocess
import tempfile
from typing import IO

from .base import DEFAULT_MAX_OUTPUT_BYTES, CommandResult, ShellAdapter

TIMEOUT_EXIT_CODE = 124
NOT_FOUND_EXIT_CODE = 127


class BashAdapter(ShellAdapter):
    """Adapter for command execution via ``bash``/``sh``.

    Output streams are spooled to temporary files and only the first
    ``max_output_bytes`` of each are read back, so a noisy build cannot grow
    memory without bound.
    """

    def __init__(
        self,
        executable: str | None = None,
        *,
        fallback_to_sh: bool = True,
        max_output_bytes: int = DEFAULT_MAX_OUTPUT_BYTES,
    ) -> None:
        super().__init__(max_output_bytes=max_output_bytes)
        self.executable = executable or _default_executable(fallback_to_sh=fallback_to_sh)

    @property
    def name(self) -> str:
        return "bash"

    def execute(
        self,
        command: str,
        *,
        cwd: str | None = None,
        timeout: float | None = None,
    ) -> CommandResult:
        self.log_request(command, cwd=cwd, timeout=timeout)
        started = self.monotonic_now()
        if cwd is not None and not os.path.isdir(cwd):
            return self._not_run(command, f"working directory not found: {cwd}", started)
        with tempfile.TemporaryFile() as stdout_file, tempfile.TemporaryFile() as stderr_file:
            try:
                process = subprocess.run(
                    [self.executable, "-c", command],
                    stdin=subprocess.DEVNULL,
                    stdout=stdout_file,
                    stderr=stderr_file,
                    cwd=cwd,
                    timeout=timeout,
                    check=False,
                )
            except subprocess.TimeoutExpired:
                exit_code = TIMEOUT_EXIT_CODE
                timed_out = True
            except FileNotFoundError:
                return self._not_run(
                    command, f"{self.name} executable not found: {self.executable}", started
                )
            else:
                exit_code = process.returncode
                timed_out = False

            stdout, stdout_truncated = _read_bounded(stdout_file, self.max_output_bytes)
            stderr, stderr_truncated = _read_bounded(stderr_file, self.max_output_bytes)

        if timed_out:
            note = f"command timed out after {timeout}s"
            stderr = f"{stderr}\n{note}" if stderr else note
        result = CommandResult(
            command=command,
            shell=self.name,
            exit_code=exit_code,
            stdout=stdout,
            stderr=stderr,
            timed_out=timed_out,
            duration_seconds=self.monotonic_now() - started,
            output_truncated=stdout_truncated or stderr_truncated,
        )
        self.log_result(result)
        return result

    def _not_run(self, command: str, reason: str, started: float) -> CommandResult:
        result = CommandResult(
            command=command,
            shell=self.name,
            exit_code=NOT_FOUND_EXIT_CODE,
            stdout="",
            stderr=reason,
            executed=False,
            duration_seconds=self.monotonic_now() - started,
        )
        self.log_result(result)
        return result


def _default_executable(*, fallback_to_sh: bool) -> str:
    if shutil.which("bash"):
        return "bash"
    if fallback_to_sh and shutil.which("sh"):
        return "sh"
    return "bash"


def _read_bounded(handle: IO[bytes], limit: int) -> tuple[str, bool]:
    handle.seek(0)
    payload = handle.read(limit + 1)
    truncated = len(payload) > limit
    return _normalize_output(payload[:limit]), truncated


def _normalize_output(payload: bytes | str | None) -> str:
    if payload is None:
        return ""
    if isinstance(payload, str):
        return payload

    for encoding in ("utf-8", "utf-8-sig", locale.getpreferredencoding(False)):
        try:
            return payload.decode(encoding)
        except (LookupError, UnicodeDecodeError):
            continue
    return payload.decode("utf-8", errors="replace")
