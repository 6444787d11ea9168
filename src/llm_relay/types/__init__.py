from .chat import (
    ChatMessage,
    ContentBlock,
    OpenAIChatResponse,
    OpenAIChoice,
    OpenAIRequest,
    OpenAIToolCall,
    TextBlock,
    ToolUseBlock,
    UnifiedRequest,
    UnifiedResponse,
)
from .tool import OpenAIToolDefinition, ToolCallResult, ToolDefinition

__all__ = [
    "ChatMessage",
    "ContentBlock",
    "OpenAIChatResponse",
    "OpenAIChoice",
    "OpenAIRequest",
    "OpenAIToolCall",
    "TextBlock",
    "ToolUseBlock",
    "UnifiedRequest",
    "UnifiedResponse",
    "OpenAIToolDefinition",
    "ToolCallResult",
    "ToolDefinition",
]
