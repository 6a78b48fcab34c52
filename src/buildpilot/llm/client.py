"""Thin chat-completions client used as the build planner."""

from __future__ import annotations

import json
import logging
from collections.abc import Sequence
from http.client import HTTPException
from urllib import request
from urllib.error import HTTPError, URLError

from buildpilot.agent.models import Message
from buildpilot.errors import OracleError

LOGGER = logging.getLogger(__name__)

CHAT_COMPLETIONS_SUFFIX = "/chat/completions"


def resolve_chat_completions_url(raw_url: str) -> str:
    """Expand a base API URL into the chat-completions endpoint."""
    trimmed = raw_url.strip().rstrip("/")
    if trimmed.endswith(CHAT_COMPLETIONS_SUFFIX):
        return trimmed
    if trimmed.endswith("/v1"):
        return f"{trimmed}{CHAT_COMPLETIONS_SUFFIX}"
    return f"{trimmed}/v1{CHAT_COMPLETIONS_SUFFIX}"


class LLMClient:
    """Small HTTP client that sends a conversation and returns one text reply."""

    def __init__(
        self,
        *,
        api_key: str | None,
        api_url: str,
        model: str,
        temperature: float = 0.2,
        timeout: float = 120.0,
    ) -> None:
        self.api_key = api_key
        self.api_url = resolve_chat_completions_url(api_url)
        self.model = model
        self.temperature = temperature
        self.timeout = timeout

    def complete(self, messages: Sequence[Message]) -> str:
        """Send ``messages`` and return the stripped reply text.

        Any failure to obtain a reply is fatal for the run and raised as
        :class:`OracleError`.
        """
        payload = self._build_payload(messages)
        body = json.dumps(payload, ensure_ascii=False).encode("utf-8")
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"

        LOGGER.debug(
            "llm_request_prepared",
            extra={
                "api_url": self.api_url,
                "model": self.model,
                "payload_bytes": len(body),
                "messages": len(messages),
            },
        )

        req = request.Request(self.api_url, data=body, headers=headers, method="POST")
        try:
            with request.urlopen(req, timeout=self.timeout) as resp:  # noqa: S310
                raw_body = resp.read().decode("utf-8")
        except HTTPError as exc:
            body_excerpt = self._read_error_body_excerpt(exc)
            LOGGER.error(
                "llm_request_http_error",
                extra={
                    "api_url": self.api_url,
                    "model": self.model,
                    "http_status": exc.code,
                    "reason": exc.reason,
                    "response_excerpt": body_excerpt,
                },
            )
            details = f"Model request failed with HTTP {exc.code}: {exc.reason}"
            if body_excerpt:
                details = f"{details}. Response body: {body_excerpt}"
            raise OracleError(details) from exc
        except URLError as exc:
            LOGGER.error(
                "llm_request_transport_error",
                extra={"api_url": self.api_url, "model": self.model, "reason": str(exc.reason)},
            )
            raise OracleError(f"Model request transport error: {exc.reason}") from exc
        except TimeoutError as exc:
            LOGGER.error(
                "llm_request_timeout",
                extra={
                    "api_url": self.api_url,
                    "model": self.model,
                    "timeout_seconds": self.timeout,
                },
            )
            raise OracleError(f"Model request timed out after {self.timeout:.1f}s") from exc
        except HTTPException as exc:
            LOGGER.error(
                "llm_request_protocol_error",
                extra={"api_url": self.api_url, "model": self.model, "error": repr(exc)},
            )
            raise OracleError(f"Model request protocol error: {exc!r}") from exc
        except UnicodeDecodeError as exc:
            raise OracleError(f"Model response parsing error: {exc}") from exc

        try:
            parsed = json.loads(raw_body)
        except json.JSONDecodeError as exc:
            LOGGER.error(
                "llm_response_parse_error",
                extra={"api_url": self.api_url, "model": self.model, "error": str(exc)},
            )
            raise OracleError(f"Model response parsing error: {exc}") from exc

        content = self._extract_content(parsed)
        if content is None:
            raise OracleError(f"Unexpected model response: {self._excerpt(raw_body)}")
        return content.strip()

    def _build_payload(self, messages: Sequence[Message]) -> dict[str, object]:
        return {
            "model": self.model,
            "messages": [message.to_payload() for message in messages],
            "temperature": self.temperature,
        }

    @staticmethod
    def _extract_content(payload: object) -> str | None:
        if not isinstance(payload, dict):
            return None
        choices = payload.get("choices")
        if not isinstance(choices, list) or not choices:
            return None
        first = choices[0]
        if not isinstance(first, dict):
            return None
        message = first.get("message")
        if not isinstance(message, dict):
            return None
        content = message.get("content")
        if not isinstance(content, str) or not content:
            return None
        return content

    @classmethod
    def _read_error_body_excerpt(cls, exc: HTTPError) -> str | None:
        if exc.fp is None:
            return None
        try:
            raw = exc.read()
        except OSError:
            return None

        if not raw:
            return None
        return cls._excerpt(raw.decode("utf-8", errors="replace"))

    @staticmethod
    def _excerpt(text: str, *, max_chars: int = 500) -> str:
        excerpt = text.replace("\n", " ").strip()
        if len(excerpt) > max_chars:
            return f"{excerpt[:max_chars]}..."
        return excerpt
