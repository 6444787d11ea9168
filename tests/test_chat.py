"""Tests for the chat call site and its local tool loop."""

import httpx
import pytest

from conftest import openai_body, request_json, tool_call
from llm_relay._exceptions import RelayError, TransportError
from llm_relay.chat import (
    ANTHROPIC_VERSION,
    ChatSession,
    DirectChatSender,
    TranslatingChatSender,
    create_chat_session,
)
from llm_relay.config import Backend, RelaySettings
from llm_relay.local_tools import EVALUATE_EXPRESSION, LocalToolRunner

MESSAGES = [{"role": "user", "content": "What is 1 + 2?"}]


def eval_call(call_id: str, expression: str) -> dict:
    return tool_call(call_id, EVALUATE_EXPRESSION, f'{{"expression": "{expression}"}}')


class ErrorCollector:
    def __init__(self) -> None:
        self.errors: list[RelayError] = []

    def __call__(self, error: RelayError) -> None:
        self.errors.append(error)


class TestTranslatingChatSession:
    """Chat turns against the OpenAI-compatible backend."""

    @pytest.mark.asyncio
    async def test_round_trip_runs_local_tool(self, mock_http):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(
                200,
                json=openai_body(
                    content="Let me compute that.",
                    tool_calls=[eval_call("call_1", "1 + 2")],
                    finish_reason="tool_calls",
                ),
            )

        sender = TranslatingChatSender(
            api_key="sk-test", base_url="http://backend.test/v1", client=mock_http(handler)
        )
        session = ChatSession(
            sender, model="gpt-4o-mini", max_tokens=128, system="You can do arithmetic."
        )

        response = await session.send(MESSAGES)

        request = seen[0]
        body = request_json(request)
        assert request.url.path == "/v1/chat/completions"
        assert request.headers["authorization"] == "Bearer sk-test"
        assert body["messages"][0] == {"role": "system", "content": "You can do arithmetic."}
        assert body["messages"][1:] == MESSAGES
        assert body["tools"][0]["function"]["name"] == EVALUATE_EXPRESSION
        assert body["temperature"] == 0.1

        assert response.stop_reason == "tool_use"
        assert session.transcript.lines == ("Assistant: Let me compute that.", "=> 3")

    @pytest.mark.asyncio
    async def test_session_temperature_is_sent(self, mock_http):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request_json(request))
            return httpx.Response(200, json=openai_body(content="ok"))

        sender = TranslatingChatSender(
            api_key="sk-test", base_url="http://backend.test/v1", client=mock_http(handler)
        )
        session = ChatSession(sender, model="m", max_tokens=16, temperature=0.5)

        await session.send(MESSAGES)

        assert seen[0]["temperature"] == 0.5

    @pytest.mark.asyncio
    async def test_failed_evaluation_does_not_stop_the_loop(self, mock_http):
        body = openai_body(
            tool_calls=[eval_call("a", "1/0"), eval_call("b", "2 * 21")],
            finish_reason="tool_calls",
        )
        sender = TranslatingChatSender(
            api_key="sk-test",
            base_url="http://backend.test/v1",
            client=mock_http(lambda request: httpx.Response(200, json=body)),
        )
        session = ChatSession(sender, model="m", max_tokens=16)

        await session.send(MESSAGES)

        assert session.transcript.lines == (
            "Error: ZeroDivisionError: division by zero",
            "=> 42",
        )


class TestDirectChatSession:
    @pytest.mark.asyncio
    async def test_posts_anthropic_body_unchanged(self, mock_http):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(
                200,
                json={
                    "id": "msg_1",
                    "type": "message",
                    "role": "assistant",
                    "model": "claude-3-5-haiku-20241022",
                    "content": [
                        {"type": "text", "text": "Computing."},
                        {
                            "type": "tool_use",
                            "id": "toolu_1",
                            "name": EVALUATE_EXPRESSION,
                            "input": {"expression": "len('abc')"},
                        },
                    ],
                    "stop_reason": "tool_use",
                },
            )

        sender = DirectChatSender(
            api_key="sk-ant-test", base_url="http://backend.test", client=mock_http(handler)
        )
        session = ChatSession(sender, model="claude-3-5-haiku-20241022", max_tokens=64)

        response = await session.send(MESSAGES)

        request = seen[0]
        body = request_json(request)
        assert request.url.path == "/v1/messages"
        assert request.headers["x-api-key"] == "sk-ant-test"
        assert request.headers["anthropic-version"] == ANTHROPIC_VERSION
        assert body["messages"] == MESSAGES
        assert body["tools"][0]["name"] == EVALUATE_EXPRESSION
        assert "system" not in body

        assert response.id == "msg_1"
        assert session.transcript.lines == ("Assistant: Computing.", "=> 3")


class TestChatTransportFailures:
    """A failed call aborts the turn: one report, no transcript change."""

    @pytest.mark.parametrize(
        "response",
        [
            httpx.Response(500, json={"error": {"message": "boom"}}),
            httpx.Response(200, text="<html>gateway</html>"),
            httpx.Response(
                200, content=b"{truncated", headers={"content-type": "application/json"}
            ),
        ],
        ids=["server-error", "wrong-content-type", "invalid-json"],
    )
    @pytest.mark.asyncio
    async def test_failure_is_reported_once(self, mock_http, response):
        errors = ErrorCollector()
        sender = TranslatingChatSender(
            api_key="sk-test",
            base_url="http://backend.test/v1",
            client=mock_http(lambda request: response),
        )
        session = ChatSession(sender, model="m", max_tokens=16, on_error=errors)

        result = await session.send(MESSAGES)

        assert result is None
        assert len(errors.errors) == 1
        assert isinstance(errors.errors[0], TransportError)
        assert len(session.transcript) == 0

    @pytest.mark.asyncio
    async def test_connection_error_is_classified(self, mock_http):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        errors = ErrorCollector()
        sender = DirectChatSender(
            api_key="sk-ant-test", base_url="http://backend.test", client=mock_http(handler)
        )
        session = ChatSession(sender, model="m", max_tokens=16, on_error=errors)

        assert await session.send(MESSAGES) is None
        assert isinstance(errors.errors[0].original_exc, httpx.ConnectError)

    @pytest.mark.asyncio
    async def test_failure_without_handler_still_returns_none(self, mock_http):
        sender = DirectChatSender(
            api_key="sk-ant-test",
            base_url="http://backend.test",
            client=mock_http(lambda request: httpx.Response(503, json={})),
        )
        session = ChatSession(sender, model="m", max_tokens=16)

        assert await session.send(MESSAGES) is None


class TestCreateChatSession:
    def test_openai_backend_uses_translating_sender(self, mock_http):
        settings = RelaySettings(backend=Backend.OPENAI, api_key="sk-test")

        session = create_chat_session(settings, client=mock_http(lambda request: None))

        assert isinstance(session.sender, TranslatingChatSender)
        assert session.sender.default_temperature == 0.1
        assert session.temperature == 0.1

    def test_anthropic_backend_uses_direct_sender(self, mock_http):
        settings = RelaySettings(backend=Backend.ANTHROPIC, api_key="sk-ant-test")

        session = create_chat_session(settings, client=mock_http(lambda request: None))

        assert isinstance(session.sender, DirectChatSender)

    def test_defaults_offer_evaluate_expression(self):
        settings = RelaySettings(backend=Backend.ANTHROPIC, api_key="sk-ant-test")

        session = create_chat_session(settings)

        assert [tool.name for tool in session.tools] == [EVALUATE_EXPRESSION]

    def test_shared_runner(self):
        runner = LocalToolRunner(namespace={"x": 1})
        settings = RelaySettings(backend=Backend.OPENAI, api_key="sk-test")

        session = create_chat_session(settings, runner=runner)

        assert session.runner is runner
        assert session.transcript is runner.transcript
