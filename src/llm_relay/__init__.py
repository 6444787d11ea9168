"""
LLM Relay - lets Anthropic-Messages clients talk to OpenAI-compatible backends.
"""

import logging

from ._exceptions import InvalidPayloadError, RelayError, TransportError
from .adapters import (
    OpenAICompatAdapter,
    translate_request,
    translate_response,
    translate_tool,
    translate_tools,
)
from .chat import ChatSession, create_chat_session
from .config import Backend, RelaySettings, default_backend, get_api_key
from .local_tools import EVALUATE_EXPRESSION_TOOL, LocalToolRunner, Transcript
from .transport import (
    RequestTransport,
    TranslatingTransport,
    create_transport,
    wrap_transport,
)
from .types import (
    OpenAIChatResponse,
    OpenAIRequest,
    OpenAIToolDefinition,
    TextBlock,
    ToolCallResult,
    ToolDefinition,
    ToolUseBlock,
    UnifiedRequest,
    UnifiedResponse,
)

logging.getLogger(__name__).addHandler(logging.NullHandler())

__version__ = "0.1.0"

__all__ = [
    "Backend",
    "ChatSession",
    "EVALUATE_EXPRESSION_TOOL",
    "InvalidPayloadError",
    "LocalToolRunner",
    "OpenAIChatResponse",
    "OpenAICompatAdapter",
    "OpenAIRequest",
    "OpenAIToolDefinition",
    "RelayError",
    "RelaySettings",
    "RequestTransport",
    "TextBlock",
    "ToolCallResult",
    "ToolDefinition",
    "ToolUseBlock",
    "Transcript",
    "TransportError",
    "TranslatingTransport",
    "UnifiedRequest",
    "UnifiedResponse",
    "create_chat_session",
    "create_transport",
    "default_backend",
    "get_api_key",
    "translate_request",
    "translate_response",
    "translate_tool",
    "translate_tools",
    "wrap_transport",
]
