"""Tool schema translation: Anthropic ``input_schema`` tools to OpenAI function tools."""

from __future__ import annotations

from typing import Any, Iterable, Mapping, Union

from llm_relay.types.tool import OpenAIToolDefinition, ToolDefinition

__all__ = ["coerce_tool", "translate_tool", "translate_tools"]

ToolLike = Union[ToolDefinition, Mapping[str, Any]]


def coerce_tool(tool: ToolLike) -> ToolDefinition:
    """Accept a ToolDefinition or the host's raw tool dict."""
    if isinstance(tool, ToolDefinition):
        return tool
    return ToolDefinition.from_dict(tool)


def translate_tool(tool: ToolLike) -> OpenAIToolDefinition:
    """Re-nest one tool definition. The schema object is handed over untouched."""
    definition = coerce_tool(tool)
    return OpenAIToolDefinition(
        name=definition.name,
        description=definition.description,
        parameters=definition.input_schema,
    )


def translate_tools(tools: Iterable[ToolLike]) -> list[OpenAIToolDefinition]:
    return [translate_tool(tool) for tool in tools]
