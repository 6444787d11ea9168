"""
Tool definitions in both wire shapes, plus the result of running a tool locally.

Schemas are opaque: neither shape inspects or copies the JSON-Schema it carries.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

from llm_relay._exceptions import InvalidPayloadError

__all__ = ["ToolDefinition", "OpenAIToolDefinition", "ToolCallResult"]


@dataclass(frozen=True, slots=True)
class ToolDefinition:
    """Anthropic-shaped tool: ``{name, description, input_schema}``."""
    name: str
    description: str = ""
    input_schema: Any = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ToolDefinition":
        if not isinstance(data, Mapping):
            raise InvalidPayloadError(
                f"tool definition must be an object, got {type(data).__name__}"
            )
        name = data.get("name")
        if not isinstance(name, str):
            raise InvalidPayloadError("tool definition is missing a string 'name'")
        return cls(
            name=name,
            description=data.get("description") or "",
            input_schema=data.get("input_schema", {}),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "input_schema": self.input_schema,
        }


@dataclass(frozen=True, slots=True)
class OpenAIToolDefinition:
    """OpenAI function tool; serializes as ``{type: "function", function: {...}}``."""
    name: str
    description: str
    parameters: Any

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters,
            },
        }


@dataclass(slots=True)
class ToolCallResult:
    """Outcome of one locally executed tool call."""
    id: str                     # matches the tool_use id
    content: str
    is_error: bool = False
