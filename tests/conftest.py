"""Shared fixtures and payload builders."""

from __future__ import annotations

import json
from typing import Any, Callable, Optional

import httpx
import pytest


def openai_body(
    content: Optional[str] = None,
    tool_calls: Optional[list[dict[str, Any]]] = None,
    finish_reason: str = "stop",
    **extra: Any,
) -> dict[str, Any]:
    """Build a Chat Completions response body with a single choice."""
    message: dict[str, Any] = {"role": "assistant", "content": content}
    if tool_calls is not None:
        message["tool_calls"] = tool_calls
    return {
        "id": "chatcmpl-123",
        "object": "chat.completion",
        "created": 0,
        "model": "gpt-4o-mini",
        "choices": [{"index": 0, "message": message, "finish_reason": finish_reason}],
        **extra,
    }


def tool_call(call_id: str, name: str, arguments: Any) -> dict[str, Any]:
    return {
        "id": call_id,
        "type": "function",
        "function": {"name": name, "arguments": arguments},
    }


class RecordingTransport:
    """Fake executor transport: records payloads and delivers a canned result."""

    def __init__(
        self,
        body: Optional[dict[str, Any]] = None,
        error: Optional[Exception] = None,
    ) -> None:
        self.body = body
        self.error = error
        self.payloads: list[dict[str, Any]] = []

    async def request(self, payload, callback) -> None:
        self.payloads.append(payload)
        callback(self.body, self.error)


class CallbackRecorder:
    """Completion handler that remembers every invocation."""

    def __init__(self) -> None:
        self.calls: list[tuple[Any, Any]] = []

    def __call__(self, body, error) -> None:
        self.calls.append((body, error))

    @property
    def body(self) -> Any:
        assert len(self.calls) == 1
        return self.calls[0][0]

    @property
    def error(self) -> Any:
        assert len(self.calls) == 1
        return self.calls[0][1]


@pytest.fixture
def weather_tool() -> dict[str, Any]:
    return {
        "name": "get_weather",
        "description": "Get the current weather in a given location",
        "input_schema": {
            "type": "object",
            "properties": {
                "location": {
                    "type": "string",
                    "description": "City and state, e.g. San Francisco, CA",
                },
                "unit": {"type": "string", "enum": ["celsius", "fahrenheit"]},
            },
            "required": ["location"],
        },
    }


@pytest.fixture
def anthropic_request(weather_tool) -> dict[str, Any]:
    return {
        "model": "claude-3-5-haiku-20241022",
        "max_tokens": 256,
        "system": "You are a helpful assistant.",
        "messages": [
            {"role": "user", "content": "What's the weather in San Francisco?"},
            {"role": "assistant", "content": "Let me check."},
            {"role": "user", "content": "Thanks"},
        ],
        "tools": [weather_tool],
    }


@pytest.fixture
def mock_http() -> Callable[[Callable[[httpx.Request], httpx.Response]], httpx.AsyncClient]:
    """Build an ``httpx.AsyncClient`` whose requests are answered by *handler*."""

    def build(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(handler))

    return build


def request_json(request: httpx.Request) -> dict[str, Any]:
    return json.loads(request.content)
