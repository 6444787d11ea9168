"""OpenAI-compatible adapter: pure request/response transformations."""

from __future__ import annotations

import json
import logging
from typing import Any, Mapping, Optional, Union

from llm_relay.adapters.tools import translate_tools
from llm_relay.types.chat import (
    ChatMessage,
    ContentBlock,
    OpenAIChatResponse,
    OpenAIRequest,
    TextBlock,
    ToolUseBlock,
    UnifiedRequest,
    UnifiedResponse,
)

__all__ = [
    "DEFAULT_TEMPERATURE",
    "OpenAICompatAdapter",
    "decode_tool_arguments",
    "map_finish_reason",
    "translate_request",
    "translate_response",
]

logger = logging.getLogger(__name__)

DEFAULT_TEMPERATURE = 0.0

_FINISH_REASONS = {
    "tool_calls": "tool_use",
    "stop": "end_turn",
}


def translate_request(
    request: Union[UnifiedRequest, Mapping[str, Any]],
    *,
    default_temperature: float = DEFAULT_TEMPERATURE,
) -> OpenAIRequest:
    """Build a Chat Completions request from an Anthropic Messages request."""
    if not isinstance(request, UnifiedRequest):
        request = UnifiedRequest.from_dict(request)

    messages: list[ChatMessage] = []
    if request.system is not None:
        messages.append({"role": "system", "content": request.system})
    messages.extend(request.messages)

    tools = translate_tools(request.tools) if request.tools else None
    temperature = (
        request.temperature if request.temperature is not None else default_temperature
    )

    logger.debug(
        "Translated request for %s: %d message(s), %d tool(s)",
        request.model,
        len(messages),
        len(tools or ()),
    )
    return OpenAIRequest(
        model=request.model,
        max_tokens=request.max_tokens,
        temperature=temperature,
        messages=messages,
        tools=tools,
    )


def decode_tool_arguments(arguments: Any) -> Any:
    """
    Decode tool-call arguments.

    Strings are parsed as JSON; a string that is not valid JSON comes back
    unchanged. Anything already structured is returned as-is.
    """
    if not isinstance(arguments, str):
        return arguments
    try:
        return json.loads(arguments)
    except (ValueError, RecursionError):
        logger.warning("Tool call arguments are not valid JSON; passing raw string")
        return arguments


def map_finish_reason(finish_reason: Optional[str]) -> Optional[str]:
    """Map an OpenAI finish_reason to an Anthropic stop_reason; unknown values pass through."""
    if finish_reason is None:
        return None
    return _FINISH_REASONS.get(finish_reason, finish_reason)


def _map_usage(usage: Optional[dict[str, Any]]) -> Optional[dict[str, Any]]:
    if not usage:
        return None
    mapped: dict[str, Any] = {}
    if "prompt_tokens" in usage:
        mapped["input_tokens"] = usage["prompt_tokens"]
    if "completion_tokens" in usage:
        mapped["output_tokens"] = usage["completion_tokens"]
    return mapped or None


def translate_response(raw: Any) -> Optional[UnifiedResponse]:
    """
    Build an Anthropic Messages response from a Chat Completions response.

    Accepts a parsed ``OpenAIChatResponse``, a response dict, or an SDK
    ``ChatCompletion``. Returns None when there is no response at all, so the
    caller has to deal with that case explicitly.
    """
    if raw is None:
        return None
    response = raw if isinstance(raw, OpenAIChatResponse) else OpenAIChatResponse.from_dict(raw)

    content: list[ContentBlock] = []
    finish_reason: Optional[str] = None

    if response.choices:
        # Only the first choice is consumed.
        choice = response.choices[0]
        finish_reason = choice.finish_reason
        if choice.content:
            content.append(TextBlock(text=choice.content))
        for call in choice.tool_calls:
            content.append(
                ToolUseBlock(
                    id=call.id,
                    name=call.name,
                    input=decode_tool_arguments(call.arguments),
                )
            )

    return UnifiedResponse(
        content=content,
        stop_reason=map_finish_reason(finish_reason),
        id=response.id,
        model=response.model,
        usage=_map_usage(response.usage),
    )


class OpenAICompatAdapter:
    """Adapter for converting between Anthropic-shaped and OpenAI-shaped payloads."""

    def __init__(self, *, default_temperature: float = DEFAULT_TEMPERATURE) -> None:
        self.default_temperature = default_temperature

    def to_provider(self, request: Union[UnifiedRequest, Mapping[str, Any]]) -> dict[str, Any]:
        """Convert a host request to an OpenAI request body."""
        return translate_request(
            request, default_temperature=self.default_temperature
        ).to_dict()

    def from_provider(self, raw: Any) -> Optional[dict[str, Any]]:
        """Convert an OpenAI response body to the host's response dict."""
        response = translate_response(raw)
        return response.to_dict() if response is not None else None
