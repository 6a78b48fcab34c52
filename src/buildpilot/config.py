"""Environment-backed application configuration."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path

from buildpilot.agent.sanitizer import DEFAULT_COMPLETION_TOKEN
from buildpilot.errors import ConfigurationError
from buildpilot.shell.base import DEFAULT_MAX_OUTPUT_BYTES

LOGGER = logging.getLogger(__name__)

DEFAULT_MODEL = "gpt-4o-mini"
SUPPORTED_SHELLS = frozenset({"bash", "sh", "shell"})


@dataclass(slots=True)
class AppConfig:
    """Runtime settings loaded from environment variables and config files."""

    api_key: str | None
    api_url: str | None
    model: str
    temperature: float
    request_timeout: float
    max_steps: int
    completion_token: str
    root_dir: str
    task_dir_name: str
    source_dir_name: str
    release_dir_name: str
    log_dir: str
    log_level: str
    shell: str
    command_timeout: float | None
    max_output_bytes: int

    @classmethod
    def from_env(cls) -> AppConfig:
        file_config = _load_preferred_file_config()
        openai_from_file = file_config.get("openai")
        openai_config = openai_from_file if isinstance(openai_from_file, dict) else {}

        return cls(
            api_key=(
                os.getenv("BUILDPILOT_API_KEY")
                or os.getenv("OPENAI_API_KEY")
                or _to_optional_string(openai_config.get("api_key"))
            ),
            api_url=(
                os.getenv("BUILDPILOT_API_URL")
                or os.getenv("OPENAI_API_URL")
                or _to_optional_string(openai_config.get("api_url"))
            ),
            model=(
                os.getenv("BUILDPILOT_MODEL")
                or os.getenv("OPENAI_MODEL")
                or _to_optional_string(openai_config.get("model"))
                or DEFAULT_MODEL
            ),
            temperature=_to_float(
                os.getenv("BUILDPILOT_TEMPERATURE") or openai_config.get("temperature"),
                default=0.2,
            ),
            request_timeout=_to_float(
                os.getenv("BUILDPILOT_REQUEST_TIMEOUT") or openai_config.get("timeout"),
                default=120.0,
            ),
            max_steps=_to_positive_int(
                os.getenv("BUILDPILOT_MAX_STEPS")
                or os.getenv("MAX_STEPS")
                or file_config.get("max_steps"),
                default=30,
            ),
            completion_token=(
                os.getenv("BUILDPILOT_COMPLETION_TOKEN")
                or _to_optional_string(file_config.get("completion_token"))
                or DEFAULT_COMPLETION_TOKEN
            ),
            root_dir=(
                os.getenv("BUILDPILOT_ROOT")
                or _to_optional_string(file_config.get("root_dir"))
                or str(Path.cwd())
            ),
            task_dir_name=(
                os.getenv("BUILDPILOT_TASK_DIR")
                or _to_optional_string(file_config.get("task_dir"))
                or "task"
            ),
            source_dir_name=(
                os.getenv("BUILDPILOT_SOURCE_DIR")
                or _to_optional_string(file_config.get("source_dir"))
                or "source"
            ),
            release_dir_name=(
                os.getenv("BUILDPILOT_RELEASE_DIR")
                or _to_optional_string(file_config.get("release_dir"))
                or "release"
            ),
            log_dir=(
                os.getenv("BUILDPILOT_LOG_DIR")
                or _to_optional_string(file_config.get("log_dir"))
                or "logs"
            ),
            log_level=(
                os.getenv("BUILDPILOT_LOG_LEVEL")
                or _to_optional_string(file_config.get("log_level"))
                or "WARNING"
            ).upper(),
            shell=(
                os.getenv("BUILDPILOT_SHELL")
                or _to_optional_string(file_config.get("shell"))
                or "bash"
            ),
            command_timeout=_to_optional_positive_float(
                os.getenv("BUILDPILOT_COMMAND_TIMEOUT") or file_config.get("command_timeout")
            ),
            max_output_bytes=_to_positive_int(
                os.getenv("BUILDPILOT_MAX_OUTPUT_BYTES") or file_config.get("max_output_bytes"),
                default=DEFAULT_MAX_OUTPUT_BYTES,
            ),
        )

    def validate(self) -> None:
        """Fail fast when the model endpoint cannot be reached."""
        missing = [
            name
            for name, value in (("api_key", self.api_key), ("api_url", self.api_url))
            if not value
        ]
        if missing:
            raise ConfigurationError(
                "Missing required settings: "
                + ", ".join(missing)
                + " (set BUILDPILOT_API_KEY/OPENAI_API_KEY and BUILDPILOT_API_URL/OPENAI_API_URL)"
            )
        if not self.completion_token.strip():
            raise ConfigurationError("completion_token must not be blank")
        if self.shell.strip().lower() not in SUPPORTED_SHELLS:
            raise ConfigurationError(f"Unsupported shell adapter: {self.shell}")

    @property
    def root_path(self) -> Path:
        return Path(self.root_dir).expanduser().resolve()

    @property
    def task_dir(self) -> Path:
        return self.root_path / self.task_dir_name

    @property
    def source_dir(self) -> Path:
        return self.root_path / self.source_dir_name

    @property
    def release_dir(self) -> Path:
        return self.root_path / self.release_dir_name


def _to_optional_string(value: object) -> str | None:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _load_file_config(path_value: str) -> dict[str, object]:
    path = Path(path_value)
    if not path.exists() or not path.is_file():
        return {}
    try:
        with path.open("r", encoding="utf-8") as fh:
            parsed = json.load(fh)
    except (OSError, json.JSONDecodeError) as exc:
        LOGGER.warning("config_file_unreadable", extra={"path": path_value, "error": str(exc)})
        return {}
    if isinstance(parsed, dict):
        return parsed
    return {}


def _load_preferred_file_config() -> dict[str, object]:
    explicit_path = os.getenv("BUILDPILOT_CONFIG_FILE")
    if explicit_path:
        return _load_file_config(explicit_path)

    shared_config = _load_file_config("buildpilot.config.json")
    local_override = _load_file_config("buildpilot.config.local.json")
    return _merge_dicts(shared_config, local_override)


def _merge_dicts(base: dict[str, object], override: dict[str, object]) -> dict[str, object]:
    merged: dict[str, object] = dict(base)
    for key, value in override.items():
        base_value = merged.get(key)
        if isinstance(base_value, dict) and isinstance(value, dict):
            merged[key] = _merge_dicts(base_value, value)
        else:
            merged[key] = value
    return merged


def _to_positive_int(value: object, *, default: int) -> int:
    if isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value if value > 0 else default
    if isinstance(value, str):
        try:
            parsed = int(value.strip())
        except ValueError:
            return default
        return parsed if parsed > 0 else default
    return default


def _to_float(value: object, *, default: float) -> float:
    if isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return default
    return default


def _to_optional_positive_float(value: object) -> float | None:
    parsed = _to_float(value, default=0.0)
    return parsed if parsed > 0 else None
