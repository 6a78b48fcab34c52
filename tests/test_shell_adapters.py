from __future__ import annotations

import subprocess
from types import SimpleNamespace

import pytest

from buildpilot.shell import BashAdapter, create_shell_adapter
from buildpilot.shell.base import ShellAdapter


@pytest.mark.parametrize("factory_input", ["bash", "sh", "Shell"])
def test_create_shell_adapter(factory_input: str) -> None:
    adapter = create_shell_adapter(factory_input)
    assert isinstance(adapter, BashAdapter)


def test_create_shell_adapter_invalid() -> None:
    with pytest.raises(ValueError, match="Unsupported shell adapter"):
        create_shell_adapter("powershell")


def test_create_shell_adapter_passes_output_cap() -> None:
    adapter = create_shell_adapter("bash", max_output_bytes=64)
    assert adapter.max_output_bytes == 64


def test_bash_adapter_command_formatting(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    def fake_run(*args: object, **kwargs: object) -> SimpleNamespace:
        assert args[0] == ["bash", "-c", "npm run build"]
        assert kwargs["cwd"] == str(tmp_path)
        assert kwargs["timeout"] is None
        kwargs["stdout"].write(b"compiled")
        kwargs["stderr"].write(b"warn")
        return SimpleNamespace(returncode=3)

    monkeypatch.setattr(subprocess, "run", fake_run)

    result = BashAdapter(executable="bash").execute("npm run build", cwd=str(tmp_path))

    assert result.exit_code == 3
    assert result.stdout == "compiled"
    assert result.stderr == "warn"
    assert result.output_truncated is False
    execution = result.to_execution_result()
    assert execution.exit_code == 3
    assert execution.stdout == "compiled"


def test_bash_adapter_caps_output(monkeypatch: pytest.MonkeyPatch) -> None:
    def fake_run(*args: object, **kwargs: object) -> SimpleNamespace:
        kwargs["stdout"].write(b"a" * 100)
        return SimpleNamespace(returncode=0)

    monkeypatch.setattr(subprocess, "run", fake_run)

    result = BashAdapter(executable="bash", max_output_bytes=10).execute("yes")

    assert result.stdout == "a" * 10
    assert result.stderr == ""
    assert result.output_truncated is True


def test_bash_adapter_timeout(monkeypatch: pytest.MonkeyPatch) -> None:
    def fake_run(*args: object, **kwargs: object) -> SimpleNamespace:
        kwargs["stderr"].write(b"late")
        raise subprocess.TimeoutExpired(cmd=args[0], timeout=1)

    monkeypatch.setattr(subprocess, "run", fake_run)

    result = BashAdapter(executable="bash").execute("sleep 5", timeout=1)

    assert result.timed_out is True
    assert result.exit_code == 124
    assert result.stderr.startswith("late\n")
    assert "timed out" in result.stderr


def test_bash_adapter_missing_executable() -> None:
    result = BashAdapter(executable="/definitely/missing/bash").execute("echo hi")

    assert result.exit_code == 127
    assert result.executed is False
    assert "not found" in result.stderr


def test_bash_adapter_missing_working_directory(tmp_path) -> None:
    missing = tmp_path / "gone"

    result = create_shell_adapter("sh").execute("echo hi", cwd=str(missing))

    assert result.exit_code == 127
    assert result.executed is False
    assert result.stderr == f"working directory not found: {missing}"
    assert "executable" not in result.stderr


def test_bash_adapter_runs_real_command(tmp_path) -> None:
    adapter = create_shell_adapter("sh")

    result = adapter.execute("echo out; echo err >&2; exit 4", cwd=str(tmp_path))

    assert result.exit_code == 4
    assert result.stdout == "out\n"
    assert result.stderr == "err\n"


def test_command_logging_masks_secrets() -> None:
    masked = ShellAdapter._sanitize_command("npm config set _authToken=abc123 --token xyz")

    assert "abc123" not in masked
    assert "xyz" not in masked
