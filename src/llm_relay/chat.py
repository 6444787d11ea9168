"""
Chat-path dispatch.

Unlike the executor path, the chat call site builds its own request body and
makes the HTTP call itself. The sender is picked once, when the session is
wired: ``DirectChatSender`` posts the Anthropic body unchanged,
``TranslatingChatSender`` posts a Chat Completions body and translates the
reply. Either way the resulting ``UnifiedResponse`` goes to the local tool
runner.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, Mapping, Optional, Protocol, Self, Sequence

import httpx

from llm_relay._exceptions import RelayError, classify_error
from llm_relay.adapters.openai import translate_request, translate_response
from llm_relay.adapters.tools import ToolLike, coerce_tool
from llm_relay.config import Backend, RelaySettings
from llm_relay.local_tools import EVALUATE_EXPRESSION_TOOL, LocalToolRunner, Transcript
from llm_relay.transport import post_json
from llm_relay.types.chat import (
    ChatMessage,
    OpenAIChatResponse,
    UnifiedRequest,
    UnifiedResponse,
)

__all__ = [
    "ANTHROPIC_VERSION",
    "BaseChatSender",
    "ChatSender",
    "ChatSession",
    "DirectChatSender",
    "TranslatingChatSender",
    "create_chat_session",
]

ANTHROPIC_VERSION = "2023-06-01"

ErrorSink = Callable[[RelayError], None]


class ChatSender(Protocol):
    """Protocol for the chat call site's network step."""

    async def send(self, request: UnifiedRequest) -> Optional[UnifiedResponse]:
        """Send *request*; raise on transport failure."""
        ...


class BaseChatSender(ABC):
    """Shared HTTP plumbing for chat senders."""

    def __init__(
        self,
        *,
        base_url: str,
        client: Optional[httpx.AsyncClient] = None,
        headers: Optional[Mapping[str, str]] = None,
        timeout: float = 60.0,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.headers = {"content-type": "application/json", **(headers or {})}
        self._client = client or httpx.AsyncClient(timeout=timeout)

    @property
    @abstractmethod
    def url(self) -> str:
        ...

    @abstractmethod
    async def send(self, request: UnifiedRequest) -> Optional[UnifiedResponse]:
        ...

    async def _post(self, body: Mapping[str, Any]) -> dict[str, Any]:
        return await post_json(self._client, self.url, body, headers=self.headers)

    async def aclose(self) -> None:
        await self._client.aclose()


class DirectChatSender(BaseChatSender):
    """Posts the Anthropic Messages body as-is."""

    def __init__(
        self,
        *,
        api_key: str,
        base_url: str = "https://api.anthropic.com",
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 60.0,
    ) -> None:
        super().__init__(
            base_url=base_url,
            client=client,
            headers={"x-api-key": api_key, "anthropic-version": ANTHROPIC_VERSION},
            timeout=timeout,
        )

    @property
    def url(self) -> str:
        return f"{self.base_url}/v1/messages"

    async def send(self, request: UnifiedRequest) -> Optional[UnifiedResponse]:
        raw = await self._post(request.to_dict())
        return UnifiedResponse.from_dict(raw)


class TranslatingChatSender(BaseChatSender):
    """Posts a Chat Completions body and translates the reply."""

    def __init__(
        self,
        *,
        api_key: str,
        base_url: str = "https://api.openai.com/v1",
        default_temperature: float = 0.1,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 60.0,
    ) -> None:
        super().__init__(
            base_url=base_url,
            client=client,
            headers={"authorization": f"Bearer {api_key}"},
            timeout=timeout,
        )
        self.default_temperature = default_temperature

    @property
    def url(self) -> str:
        return f"{self.base_url}/chat/completions"

    async def send(self, request: UnifiedRequest) -> Optional[UnifiedResponse]:
        body = translate_request(
            request, default_temperature=self.default_temperature
        ).to_dict()
        raw = await self._post(body)
        return translate_response(OpenAIChatResponse.from_dict(raw))


class ChatSession:
    """
    The chat call site: ``send(messages)`` builds the request, sends it, and
    runs any local tool calls in the reply.

    Transport failures abort the turn. They are logged, passed to ``on_error``
    if one was given, and ``send`` returns None without touching the transcript.
    """

    def __init__(
        self,
        sender: ChatSender,
        *,
        model: str,
        max_tokens: int,
        temperature: Optional[float] = None,
        system: Optional[str] = None,
        tools: Optional[Sequence[ToolLike]] = None,
        runner: Optional[LocalToolRunner] = None,
        on_error: Optional[ErrorSink] = None,
        logger: Optional[logging.Logger] = None,
        name: Optional[str] = None,
    ) -> None:
        self.sender = sender
        self.model = model
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.system = system
        if tools is None:
            tools = [EVALUATE_EXPRESSION_TOOL]
        self.tools = [coerce_tool(tool) for tool in tools]
        self.runner = runner or LocalToolRunner()
        self.on_error = on_error
        self.logger = logger or logging.getLogger(__name__)
        self.name = name if name is not None else self.__class__.__name__

    @property
    def transcript(self) -> Transcript:
        return self.runner.transcript

    def build_request(self, messages: Sequence[ChatMessage]) -> UnifiedRequest:
        return UnifiedRequest(
            model=self.model,
            max_tokens=self.max_tokens,
            messages=list(messages),
            temperature=self.temperature,
            system=self.system,
            tools=self.tools or None,
        )

    async def send(self, messages: Sequence[ChatMessage]) -> Optional[UnifiedResponse]:
        request = self.build_request(messages)
        self._log(f"Sending chat request with {len(request.messages)} message(s)", logging.DEBUG)

        try:
            response = await self.sender.send(request)
        except Exception as exc:
            error = classify_error(exc, self.logger)
            self._log(f"Chat request aborted: {error}", logging.ERROR)
            if self.on_error is not None:
                self.on_error(error)
            return None

        if response is None:
            return None
        self.runner.run(response)
        return response

    def _log(self, message: str, level: int = logging.INFO) -> None:
        self.logger.log(level, f"[{self.name}] {message}")

    async def aclose(self) -> None:
        close = getattr(self.sender, "aclose", None)
        if close:
            await close()

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()


def create_chat_session(
    settings: Optional[RelaySettings] = None,
    *,
    client: Optional[httpx.AsyncClient] = None,
    runner: Optional[LocalToolRunner] = None,
    system: Optional[str] = None,
    tools: Optional[Sequence[ToolLike]] = None,
    on_error: Optional[ErrorSink] = None,
    logger: Optional[logging.Logger] = None,
) -> ChatSession:
    """
    Factory for a chat session. The backend is read from *settings* once, here.

    Args:
        settings: Wiring-time configuration; read from the environment if omitted.
        client: Optional ``httpx.AsyncClient`` used for the chat call.
        runner: Local tool runner (and its transcript); a fresh one if omitted.
        system: Optional system prompt sent with every turn.
        tools: Tools offered to the model; defaults to ``evaluate_expression``.
        on_error: Called once with the classified error when a turn aborts.
        logger: Optional custom logger.
    """
    settings = settings or RelaySettings.from_env()
    api_key = settings.resolve_api_key()

    sender: BaseChatSender
    if settings.backend is Backend.OPENAI:
        sender = TranslatingChatSender(
            api_key=api_key,
            base_url=settings.openai_base_url,
            default_temperature=settings.chat_temperature,
            client=client,
            timeout=settings.timeout,
        )
    else:
        sender = DirectChatSender(
            api_key=api_key,
            base_url=settings.anthropic_base_url,
            client=client,
            timeout=settings.timeout,
        )

    return ChatSession(
        sender,
        model=settings.model,
        max_tokens=settings.max_tokens,
        temperature=settings.chat_temperature,
        system=system,
        tools=tools,
        runner=runner,
        on_error=on_error,
        logger=logger,
    )
