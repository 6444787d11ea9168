"""Pure transformation adapters between the Anthropic and OpenAI wire shapes."""

from .openai import (
    OpenAICompatAdapter,
    decode_tool_arguments,
    map_finish_reason,
    translate_request,
    translate_response,
)
from .tools import translate_tool, translate_tools

__all__ = [
    "OpenAICompatAdapter",
    "decode_tool_arguments",
    "map_finish_reason",
    "translate_request",
    "translate_response",
    "translate_tool",
    "translate_tools",
]
