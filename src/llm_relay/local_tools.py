"""
Local tool execution for the chat path.

The chat call site has no downstream executor, so the translated response is
walked here: text goes to the transcript, ``evaluate_expression`` calls are run
against the host namespace, and every other tool call is skipped.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Optional

from llm_relay.types.chat import TextBlock, ToolUseBlock, UnifiedResponse
from llm_relay.types.tool import ToolCallResult, ToolDefinition

__all__ = [
    "EVALUATE_EXPRESSION",
    "EVALUATE_EXPRESSION_TOOL",
    "Evaluator",
    "LocalToolRunner",
    "Transcript",
]

EVALUATE_EXPRESSION = "evaluate_expression"

EVALUATE_EXPRESSION_TOOL = ToolDefinition(
    name=EVALUATE_EXPRESSION,
    description="Evaluate a Python expression in the host environment and return its value.",
    input_schema={
        "type": "object",
        "properties": {
            "expression": {
                "type": "string",
                "description": "A single Python expression, e.g. \"sum(range(10))\"",
            },
        },
        "required": ["expression"],
    },
)

Evaluator = Callable[[str], Any]


class Transcript:
    """Append-only conversation log."""

    ASSISTANT_PREFIX = "Assistant: "
    RESULT_PREFIX = "=> "
    ERROR_PREFIX = "Error: "

    def __init__(self) -> None:
        self._lines: list[str] = []

    def append(self, line: str) -> None:
        self._lines.append(line)

    @property
    def lines(self) -> tuple[str, ...]:
        return tuple(self._lines)

    def text(self) -> str:
        return "\n".join(self._lines)

    def __len__(self) -> int:
        return len(self._lines)


def _extract_expression(tool_input: Any) -> Optional[str]:
    if isinstance(tool_input, str):
        # Undecodable arguments arrive as the raw string.
        return tool_input
    if isinstance(tool_input, dict):
        expression = tool_input.get("expression")
        if isinstance(expression, str):
            return expression
    return None


class LocalToolRunner:
    """Runs the one locally supported tool and records everything in a transcript."""

    def __init__(
        self,
        transcript: Optional[Transcript] = None,
        *,
        evaluator: Optional[Evaluator] = None,
        namespace: Optional[dict[str, Any]] = None,
        logger: Optional[logging.Logger] = None,
        name: Optional[str] = None,
    ) -> None:
        self.transcript = transcript if transcript is not None else Transcript()
        self.namespace = namespace if namespace is not None else {}
        self._evaluator = evaluator or self._eval_in_namespace
        self.logger = logger or logging.getLogger(__name__)
        self.name = name if name is not None else self.__class__.__name__

    def _eval_in_namespace(self, expression: str) -> Any:
        code = compile(expression, f"<{EVALUATE_EXPRESSION}>", "eval")
        return eval(code, self.namespace)

    def run(self, response: Optional[UnifiedResponse]) -> list[ToolCallResult]:
        """Walk the response content in order; returns one result per executed call."""
        results: list[ToolCallResult] = []
        if response is None:
            return results

        for block in response.content:
            if isinstance(block, TextBlock):
                self.transcript.append(Transcript.ASSISTANT_PREFIX + block.text)
            elif isinstance(block, ToolUseBlock):
                if block.name != EVALUATE_EXPRESSION:
                    self._log(f"Skipping unsupported tool {block.name!r}", logging.DEBUG)
                    continue
                results.append(self._execute(block))
        return results

    def _execute(self, block: ToolUseBlock) -> ToolCallResult:
        expression = _extract_expression(block.input)
        try:
            if expression is None:
                raise ValueError("tool input has no 'expression' string")
            value = self._evaluator(expression)
            rendered = repr(value)
        except Exception as exc:
            message = f"{exc.__class__.__name__}: {exc}"
            self._log(f"Evaluation failed for call {block.id}: {message}", logging.WARNING)
            self.transcript.append(Transcript.ERROR_PREFIX + message)
            return ToolCallResult(id=block.id, content=message, is_error=True)

        self.transcript.append(Transcript.RESULT_PREFIX + rendered)
        return ToolCallResult(id=block.id, content=rendered)

    def _log(self, message: str, level: int = logging.INFO) -> None:
        self.logger.log(level, f"[{self.name}] {message}")
