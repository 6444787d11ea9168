"""Typed request and response shapes for both protocols."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Union

from llm_relay._exceptions import InvalidPayloadError
from llm_relay.types.tool import OpenAIToolDefinition, ToolDefinition


# Type alias for chat messages ({role, content} plus whatever the host adds)
ChatMessage = dict[str, Any]


def _dump(raw: Any) -> Any:
    """Turn SDK pydantic models into plain dicts; leave everything else alone."""
    dump = getattr(raw, "model_dump", None)
    if callable(dump):
        return dump()
    return raw


@dataclass
class UnifiedRequest:
    """Anthropic Messages request as the host builds it."""

    model: Any
    max_tokens: Any
    messages: list[ChatMessage] = field(default_factory=list)
    temperature: Optional[float] = None
    system: Optional[Union[str, list[Any]]] = None
    tools: Optional[list[ToolDefinition]] = None

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "UnifiedRequest":
        """
        Parse a host payload. ``model`` and ``max_tokens`` are copied as-is;
        only the containers the translator walks are checked.
        """
        if not isinstance(payload, Mapping):
            raise InvalidPayloadError(
                f"request must be an object, got {type(payload).__name__}"
            )

        messages = payload.get("messages", [])
        if not isinstance(messages, list):
            raise InvalidPayloadError("'messages' must be a list")
        for index, message in enumerate(messages):
            if not isinstance(message, Mapping):
                raise InvalidPayloadError(f"messages[{index}] must be an object")

        raw_tools = payload.get("tools")
        tools: Optional[list[ToolDefinition]] = None
        if raw_tools is not None:
            if not isinstance(raw_tools, list):
                raise InvalidPayloadError("'tools' must be a list")
            tools = [
                tool if isinstance(tool, ToolDefinition) else ToolDefinition.from_dict(tool)
                for tool in raw_tools
            ]

        return cls(
            model=payload.get("model"),
            max_tokens=payload.get("max_tokens"),
            messages=messages,
            temperature=payload.get("temperature"),
            system=payload.get("system"),
            tools=tools,
        )

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"model": self.model, "max_tokens": self.max_tokens}
        if self.temperature is not None:
            body["temperature"] = self.temperature
        if self.system is not None:
            body["system"] = self.system
        body["messages"] = list(self.messages)
        if self.tools:
            body["tools"] = [tool.to_dict() for tool in self.tools]
        return body


@dataclass
class OpenAIRequest:
    """Chat Completions request body for an OpenAI-compatible backend."""

    model: Any
    max_tokens: Any
    temperature: float
    messages: list[ChatMessage] = field(default_factory=list)
    tools: Optional[list[OpenAIToolDefinition]] = None

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "temperature": self.temperature,
            "messages": list(self.messages),
        }
        # Backends must not see a tools key unless tools exist.
        if self.tools:
            body["tools"] = [tool.to_dict() for tool in self.tools]
        return body


@dataclass
class OpenAIToolCall:
    id: str
    name: str
    arguments: Any  # JSON string from most backends, already decoded from some


@dataclass
class OpenAIChoice:
    content: Optional[str] = None
    tool_calls: list[OpenAIToolCall] = field(default_factory=list)
    finish_reason: Optional[str] = None


def _text_from_content(content: Any) -> Optional[str]:
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        # Some backends return content parts instead of a plain string.
        parts = [
            part.get("text", "")
            for part in content
            if isinstance(part, Mapping) and part.get("type") == "text"
        ]
        return "".join(parts)
    return None


def _parse_tool_call(raw: Any) -> Optional[OpenAIToolCall]:
    if not isinstance(raw, Mapping):
        return None
    function = raw.get("function")
    if not isinstance(function, Mapping):
        function = {}
    call_id = raw.get("id")
    name = function.get("name")
    return OpenAIToolCall(
        id=call_id if isinstance(call_id, str) else "",
        name=name if isinstance(name, str) else "",
        arguments=function.get("arguments", {}),
    )


def _parse_choice(raw: Any) -> OpenAIChoice:
    if not isinstance(raw, Mapping):
        return OpenAIChoice()
    message = raw.get("message")
    if not isinstance(message, Mapping):
        message = {}

    raw_calls = message.get("tool_calls")
    tool_calls = []
    if isinstance(raw_calls, list):
        for raw_call in raw_calls:
            call = _parse_tool_call(raw_call)
            if call is not None:
                tool_calls.append(call)

    finish_reason = raw.get("finish_reason")
    return OpenAIChoice(
        content=_text_from_content(message.get("content")),
        tool_calls=tool_calls,
        finish_reason=finish_reason if isinstance(finish_reason, str) else None,
    )


@dataclass
class OpenAIChatResponse:
    """Chat Completions response. Missing or mistyped fields read as absent."""

    choices: list[OpenAIChoice] = field(default_factory=list)
    id: Optional[str] = None
    model: Optional[str] = None
    usage: Optional[dict[str, Any]] = None

    @classmethod
    def from_dict(cls, raw: Any) -> "OpenAIChatResponse":
        data = _dump(raw)
        if not isinstance(data, Mapping):
            raise InvalidPayloadError(
                f"response must be an object, got {type(data).__name__}"
            )
        raw_choices = data.get("choices")
        choices = (
            [_parse_choice(choice) for choice in raw_choices]
            if isinstance(raw_choices, list)
            else []
        )
        usage = data.get("usage")
        return cls(
            choices=choices,
            id=data.get("id") if isinstance(data.get("id"), str) else None,
            model=data.get("model") if isinstance(data.get("model"), str) else None,
            usage=dict(usage) if isinstance(usage, Mapping) else None,
        )


@dataclass(frozen=True, slots=True)
class TextBlock:
    text: str

    def to_dict(self) -> dict[str, Any]:
        return {"type": "text", "text": self.text}


@dataclass(frozen=True, slots=True)
class ToolUseBlock:
    id: str
    name: str
    input: Any

    def to_dict(self) -> dict[str, Any]:
        return {"type": "tool_use", "id": self.id, "name": self.name, "input": self.input}


ContentBlock = Union[TextBlock, ToolUseBlock]


@dataclass
class UnifiedResponse:
    """Anthropic Messages response as the host consumes it."""

    content: list[ContentBlock] = field(default_factory=list)
    stop_reason: Optional[str] = None
    id: Optional[str] = None
    model: Optional[str] = None
    usage: Optional[dict[str, Any]] = None

    @property
    def text(self) -> str:
        return "".join(block.text for block in self.content if isinstance(block, TextBlock))

    @property
    def tool_uses(self) -> list[ToolUseBlock]:
        return [block for block in self.content if isinstance(block, ToolUseBlock)]

    @classmethod
    def from_dict(cls, raw: Any) -> "UnifiedResponse":
        """Parse a native Anthropic response (the untranslated path)."""
        data = _dump(raw)
        if not isinstance(data, Mapping):
            raise InvalidPayloadError(
                f"response must be an object, got {type(data).__name__}"
            )
        blocks: list[ContentBlock] = []
        raw_content = data.get("content")
        for block in raw_content if isinstance(raw_content, list) else []:
            if not isinstance(block, Mapping):
                continue
            if block.get("type") == "text":
                blocks.append(TextBlock(text=block.get("text") or ""))
            elif block.get("type") == "tool_use":
                blocks.append(
                    ToolUseBlock(
                        id=block.get("id") or "",
                        name=block.get("name") or "",
                        input=block.get("input", {}),
                    )
                )
        usage = data.get("usage")
        return cls(
            content=blocks,
            stop_reason=data.get("stop_reason"),
            id=data.get("id"),
            model=data.get("model"),
            usage=dict(usage) if isinstance(usage, Mapping) else None,
        )

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {
            "content": [block.to_dict() for block in self.content],
            "stop_reason": self.stop_reason,
        }
        for key in ("id", "model", "usage"):
            value = getattr(self, key)
            if value is not None:
                body[key] = value
        return body
