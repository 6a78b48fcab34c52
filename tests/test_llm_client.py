from __future__ import annotations

import io
import json
from http.client import IncompleteRead
from urllib.error import HTTPError, URLError

import pytest

from buildpilot.agent.models import Message
from buildpilot.errors import OracleError, ProtocolError
from buildpilot.llm.client import LLMClient, resolve_chat_completions_url


class FakeResponse:
    def __init__(self, body: bytes) -> None:
        self.body = body

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        return False

    def read(self) -> bytes:
        return self.body


def _client() -> LLMClient:
    return LLMClient(api_key="secret", api_url="https://llm.example.com/v1", model="gpt-4o-mini")


def _messages() -> list[Message]:
    return [Message(role="system", content="sys"), Message(role="user", content="go")]


@pytest.mark.parametrize(
    ("raw_url", "expected"),
    [
        ("https://api.example.com", "https://api.example.com/v1/chat/completions"),
        ("https://api.example.com/", "https://api.example.com/v1/chat/completions"),
        ("https://api.example.com/v1", "https://api.example.com/v1/chat/completions"),
        ("https://api.example.com/v1/", "https://api.example.com/v1/chat/completions"),
        (
            "https://api.example.com/v1/chat/completions",
            "https://api.example.com/v1/chat/completions",
        ),
    ],
)
def test_resolve_chat_completions_url(raw_url: str, expected: str) -> None:
    assert resolve_chat_completions_url(raw_url) == expected


def test_complete_sends_messages_and_returns_content(monkeypatch: pytest.MonkeyPatch) -> None:
    captured: dict[str, object] = {}

    def fake_urlopen(req, timeout):
        captured["url"] = req.full_url
        captured["headers"] = dict(req.header_items())
        captured["body"] = json.loads(req.data.decode("utf-8"))
        captured["timeout"] = timeout
        payload = {"choices": [{"message": {"role": "assistant", "content": "  npm ci \n"}}]}
        return FakeResponse(json.dumps(payload).encode("utf-8"))

    monkeypatch.setattr("buildpilot.llm.client.request.urlopen", fake_urlopen)

    reply = _client().complete(_messages())

    assert reply == "npm ci"
    assert captured["url"] == "https://llm.example.com/v1/chat/completions"
    assert captured["headers"]["Authorization"] == "Bearer secret"
    assert captured["body"] == {
        "model": "gpt-4o-mini",
        "messages": [
            {"role": "system", "content": "sys"},
            {"role": "user", "content": "go"},
        ],
        "temperature": 0.2,
    }
    assert captured["timeout"] == 120.0


def test_http_error_is_fatal(monkeypatch: pytest.MonkeyPatch) -> None:
    def fake_urlopen(*_args, **_kwargs):
        raise HTTPError(
            url="https://llm.example.com",
            code=503,
            msg="Service Unavailable",
            hdrs=None,
            fp=io.BytesIO(b'{"error":"overloaded"}'),
        )

    monkeypatch.setattr("buildpilot.llm.client.request.urlopen", fake_urlopen)

    with pytest.raises(OracleError, match="HTTP 503") as excinfo:
        _client().complete(_messages())
    assert "overloaded" in str(excinfo.value)
    assert isinstance(excinfo.value, ProtocolError)


def test_transport_error_is_fatal(monkeypatch: pytest.MonkeyPatch) -> None:
    def fake_urlopen(*_args, **_kwargs):
        raise URLError("connection refused")

    monkeypatch.setattr("buildpilot.llm.client.request.urlopen", fake_urlopen)

    with pytest.raises(OracleError, match="transport error"):
        _client().complete(_messages())


def test_timeout_is_fatal(monkeypatch: pytest.MonkeyPatch) -> None:
    def fake_urlopen(*_args, **_kwargs):
        raise TimeoutError

    monkeypatch.setattr("buildpilot.llm.client.request.urlopen", fake_urlopen)

    with pytest.raises(OracleError, match="timed out"):
        _client().complete(_messages())


def test_incomplete_read_is_fatal(monkeypatch: pytest.MonkeyPatch) -> None:
    class TruncatedResponse(FakeResponse):
        def read(self) -> bytes:
            raise IncompleteRead(b'{"choices"', 120)

    monkeypatch.setattr(
        "buildpilot.llm.client.request.urlopen", lambda *_a, **_k: TruncatedResponse(b"")
    )

    with pytest.raises(OracleError, match="protocol error"):
        _client().complete(_messages())


def test_invalid_json_is_fatal(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(
        "buildpilot.llm.client.request.urlopen", lambda *_a, **_k: FakeResponse(b"not-json")
    )

    with pytest.raises(OracleError, match="parsing error"):
        _client().complete(_messages())


@pytest.mark.parametrize(
    "payload",
    [
        {},
        {"choices": []},
        {"choices": [{"message": {}}]},
        {"choices": [{"message": {"content": ""}}]},
        {"choices": [{"message": {"content": None}}]},
        ["not", "an", "object"],
    ],
)
def test_missing_content_is_fatal(monkeypatch: pytest.MonkeyPatch, payload: object) -> None:
    body = json.dumps(payload).encode("utf-8")
    monkeypatch.setattr("buildpilot.llm.client.request.urlopen", lambda *_a, **_k: FakeResponse(body))

    with pytest.raises(OracleError, match="Unexpected model response"):
        _client().complete(_messages())


def test_payload_uses_configured_temperature() -> None:
    client = LLMClient(api_key=None, api_url="https://x", model="m", temperature=0.7)

    payload = client._build_payload(_messages())

    assert payload["temperature"] == 0.7
    assert payload["model"] == "m"
