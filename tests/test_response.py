"""Tests for OpenAI -> Anthropic response translation."""

import pytest
from openai.types.chat import ChatCompletion

from conftest import openai_body, tool_call
from llm_relay._exceptions import InvalidPayloadError
from llm_relay.adapters.openai import (
    decode_tool_arguments,
    map_finish_reason,
    translate_response,
)
from llm_relay.types.chat import OpenAIChatResponse, TextBlock, ToolUseBlock


class TestTranslateResponse:
    def test_plain_text(self):
        """A text-only answer becomes a single text block and end_turn."""
        response = translate_response(openai_body(content="hello"))

        assert response.to_dict()["content"] == [{"type": "text", "text": "hello"}]
        assert response.stop_reason == "end_turn"

    def test_two_tool_calls_keep_order(self):
        body = openai_body(
            tool_calls=[
                tool_call("a", "first", '{"x": 1}'),
                tool_call("b", "second", '{"y": 2}'),
            ],
            finish_reason="tool_calls",
        )

        response = translate_response(body)

        assert response.content == [
            ToolUseBlock(id="a", name="first", input={"x": 1}),
            ToolUseBlock(id="b", name="second", input={"y": 2}),
        ]
        assert response.stop_reason == "tool_use"

    def test_text_precedes_tool_calls(self):
        body = openai_body(
            content="Checking",
            tool_calls=[tool_call("a", "get_weather", "{}")],
            finish_reason="tool_calls",
        )

        response = translate_response(body)

        assert isinstance(response.content[0], TextBlock)
        assert [type(block) for block in response.content] == [TextBlock, ToolUseBlock]

    def test_empty_text_is_dropped(self):
        body = openai_body(content="", tool_calls=[tool_call("a", "t", "{}")])

        response = translate_response(body)

        assert response.content == [ToolUseBlock(id="a", name="t", input={})]

    def test_none_response(self):
        assert translate_response(None) is None

    @pytest.mark.parametrize(
        "body",
        [
            {},
            {"choices": []},
            {"choices": None},
            {"choices": [{}]},
            {"choices": [{"message": None, "finish_reason": None}]},
            {"choices": [{"message": {"content": None, "tool_calls": None}}]},
        ],
    )
    def test_empty_shapes_yield_empty_content(self, body):
        """Missing pieces give a valid, empty response instead of an error."""
        response = translate_response(body)

        assert response.content == []
        assert response.stop_reason is None

    def test_only_first_choice_is_used(self):
        body = openai_body(content="first")
        body["choices"].append(
            {"index": 1, "message": {"content": "second"}, "finish_reason": "length"}
        )

        response = translate_response(body)

        assert response.content == [TextBlock(text="first")]
        assert response.stop_reason == "end_turn"

    def test_content_parts_are_joined(self):
        body = openai_body()
        body["choices"][0]["message"]["content"] = [
            {"type": "text", "text": "Hello, "},
            {"type": "text", "text": "world"},
        ]

        response = translate_response(body)

        assert response.content == [TextBlock(text="Hello, world")]

    def test_metadata_and_usage_are_carried(self):
        body = openai_body(
            content="hi", usage={"prompt_tokens": 12, "completion_tokens": 3, "total_tokens": 15}
        )

        result = translate_response(body).to_dict()

        assert result["id"] == "chatcmpl-123"
        assert result["model"] == "gpt-4o-mini"
        assert result["usage"] == {"input_tokens": 12, "output_tokens": 3}

    def test_sdk_completion_with_invalid_arguments(self):
        """An SDK ChatCompletion is accepted; bad JSON arguments stay raw."""
        completion = ChatCompletion.model_validate(
            openai_body(
                tool_calls=[tool_call("id1", "test", "{not valid json")],
                finish_reason="tool_calls",
            )
        )

        response = translate_response(completion)

        assert response.content == [
            ToolUseBlock(id="id1", name="test", input="{not valid json")
        ]
        assert response.stop_reason == "tool_use"

    def test_non_object_body_is_rejected(self):
        with pytest.raises(InvalidPayloadError):
            translate_response(["not", "an", "object"])

    def test_accepts_parsed_response(self):
        parsed = OpenAIChatResponse.from_dict(openai_body(content="hello"))

        assert translate_response(parsed).content == [TextBlock(text="hello")]


class TestDecodeToolArguments:
    def test_json_string(self):
        assert decode_tool_arguments('{"x":1}') == {"x": 1}

    def test_invalid_json_string(self):
        assert decode_tool_arguments("not json") == "not json"

    def test_structured_value_used_as_is(self):
        args = {"x": [1, 2]}

        assert decode_tool_arguments(args) is args

    def test_empty_string_stays_raw(self):
        assert decode_tool_arguments("") == ""

    def test_deeply_nested_string_stays_raw(self):
        arguments = "[" * 100000 + "]" * 100000

        assert decode_tool_arguments(arguments) is arguments

    def test_deeply_nested_arguments_in_response(self):
        arguments = "[" * 100000 + "]" * 100000
        body = openai_body(tool_calls=[tool_call("a", "t", arguments)], finish_reason="tool_calls")

        response = translate_response(body)

        assert response.content == [ToolUseBlock(id="a", name="t", input=arguments)]


class TestMapFinishReason:
    @pytest.mark.parametrize(
        "finish_reason, expected",
        [
            ("tool_calls", "tool_use"),
            ("stop", "end_turn"),
            ("length", "length"),
            ("content_filter", "content_filter"),
            ("backend_specific", "backend_specific"),
            (None, None),
        ],
    )
    def test_mapping(self, finish_reason, expected):
        assert map_finish_reason(finish_reason) == expected
