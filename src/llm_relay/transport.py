"""
Executor-path transports.

Every transport exposes ``request(payload, callback)`` and calls ``callback``
exactly once, with ``(body, None)`` on success or ``(None, error)`` on failure.
``TranslatingTransport`` decorates another transport with the same signature
and rewrites traffic when the OpenAI-compatible backend is selected.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, Mapping, Optional, Protocol, Self, Union

import httpx
from anthropic import AsyncAnthropic
from openai import AsyncOpenAI

from llm_relay._exceptions import InvalidPayloadError, TransportError, classify_error
from llm_relay.adapters.openai import DEFAULT_TEMPERATURE, OpenAICompatAdapter
from llm_relay.config import Backend, RelaySettings

__all__ = [
    "AnthropicTransport",
    "BackendSource",
    "BaseTransport",
    "HttpTransport",
    "OpenAITransport",
    "RequestTransport",
    "ResponseCallback",
    "TranslatingTransport",
    "create_transport",
    "post_json",
    "wrap_transport",
]

ResponseCallback = Callable[[Optional[dict[str, Any]], Optional[Exception]], None]
BackendSource = Union[Backend, Callable[[], Backend]]


class RequestTransport(Protocol):
    """Protocol for the executor call site: one request, one callback invocation."""

    async def request(self, payload: dict[str, Any], callback: ResponseCallback) -> None:
        ...


async def post_json(
    client: httpx.AsyncClient,
    url: str,
    payload: Mapping[str, Any],
    *,
    headers: Optional[Mapping[str, str]] = None,
) -> dict[str, Any]:
    """
    POST a JSON body and return the decoded JSON object.

    Status and content type are checked before the body is decoded. Any
    framing problem raises TransportError; nothing is half-parsed.
    """
    response = await client.post(url, json=dict(payload), headers=headers)
    status = response.status_code
    if not response.is_success:
        raise TransportError(f"HTTP {status} from {url}", status_code=status)

    content_type = response.headers.get("content-type", "")
    if "json" not in content_type.lower():
        raise TransportError(
            f"Unexpected content type {content_type!r} from {url}", status_code=status
        )

    try:
        body = response.json()
    except ValueError as exc:
        raise TransportError(
            f"Response body from {url} is not valid JSON", exc, status_code=status
        ) from exc

    if not isinstance(body, dict):
        raise TransportError(
            f"Response body from {url} is not a JSON object", status_code=status
        )
    return body


class BaseTransport(ABC):
    """
    Abstract base class for transports that send one JSON body and receive one.
    """

    def __init__(
        self,
        *,
        logger: Optional[logging.Logger] = None,
        name: Optional[str] = None,
    ) -> None:
        self.logger = logger or logging.getLogger(__name__)
        self.name = name if name is not None else self.__class__.__name__

    @abstractmethod
    async def _send(self, payload: dict[str, Any]) -> dict[str, Any]:
        """Send *payload* and return the decoded response body."""
        ...

    async def request(self, payload: dict[str, Any], callback: ResponseCallback) -> None:
        """
        Send the payload, then hand the body (or the classified error) to *callback*.

        Cancellation is not an ``Exception`` and propagates untouched.
        """
        try:
            body = await self._send(payload)
        except Exception as exc:
            callback(None, classify_error(exc, self.logger))
            return
        callback(body, None)

    def _log(self, message: str, level: int = logging.INFO) -> None:
        self.logger.log(level, f"[{self.name}] {message}")

    # --- lifecycle ---------------------------------------------------------
    async def aclose(self) -> None:
        """
        Close the underlying async HTTP client. Safe to call multiple times.
        """
        client = getattr(self, "_client", None)
        close = getattr(client, "aclose", None) or getattr(client, "close", None)
        if close:
            await close()

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()


class AnthropicTransport(BaseTransport):
    """
    Direct transport to the Anthropic Messages API.

    Use ``AnthropicTransport.from_client`` when you already have an ``AsyncAnthropic`` instance.
    """

    def __init__(
        self,
        *,
        api_key: str,
        timeout: float = 60.0,
        max_retries: int = 2,
        logger: Optional[logging.Logger] = None,
        name: Optional[str] = None,
        base_url: Optional[str] = None,
    ) -> None:
        super().__init__(logger=logger, name=name)
        self._client = AsyncAnthropic(
            api_key=api_key,
            timeout=timeout,
            max_retries=max_retries,
            base_url=base_url,
        )

    @classmethod
    def from_client(
        cls,
        client: AsyncAnthropic,
        *,
        logger: Optional[logging.Logger] = None,
        name: Optional[str] = None,
    ) -> Self:
        """
        Wrap an existing ``AsyncAnthropic`` client.
        """
        if not isinstance(client, AsyncAnthropic):
            raise TypeError(
                f"AnthropicTransport.from_client expects AsyncAnthropic; got {type(client).__name__}"
            )

        self = cls.__new__(cls)  # bypass __init__
        BaseTransport.__init__(self, logger=logger, name=name)
        self._client = client
        return self

    async def _send(self, payload: dict[str, Any]) -> dict[str, Any]:
        self._log(f"Sending request to Anthropic model {payload.get('model')}", logging.DEBUG)
        message = await self._client.messages.create(**payload)
        return message.model_dump()


class OpenAITransport(BaseTransport):
    """
    Transport to an OpenAI-compatible Chat Completions endpoint via the OpenAI SDK.

    Use ``OpenAITransport.from_client`` when you already have an ``AsyncOpenAI`` instance.
    """

    def __init__(
        self,
        *,
        api_key: str,
        timeout: float = 60.0,
        max_retries: int = 2,
        logger: Optional[logging.Logger] = None,
        name: Optional[str] = None,
        base_url: Optional[str] = None,
    ) -> None:
        super().__init__(logger=logger, name=name)
        self._client = AsyncOpenAI(
            api_key=api_key,
            timeout=timeout,
            max_retries=max_retries,
            base_url=base_url,
        )

    @classmethod
    def from_client(
        cls,
        client: AsyncOpenAI,
        *,
        logger: Optional[logging.Logger] = None,
        name: Optional[str] = None,
    ) -> Self:
        """
        Build an ``OpenAITransport`` around an already-configured ``AsyncOpenAI`` client.
        """
        if not isinstance(client, AsyncOpenAI):
            raise TypeError(
                f"OpenAITransport.from_client expects AsyncOpenAI; got {type(client).__name__}"
            )

        self = cls.__new__(cls)  # bypass __init__
        BaseTransport.__init__(self, logger=logger, name=name)
        self._client = client
        return self

    async def _send(self, payload: dict[str, Any]) -> dict[str, Any]:
        self._log(f"Sending request to OpenAI model {payload.get('model')}", logging.DEBUG)
        completion = await self._client.chat.completions.create(**payload)
        return completion.model_dump()


class HttpTransport(BaseTransport):
    """Plain JSON-over-HTTP transport for servers the SDKs don't reach."""

    def __init__(
        self,
        url: str,
        *,
        client: Optional[httpx.AsyncClient] = None,
        headers: Optional[Mapping[str, str]] = None,
        timeout: float = 60.0,
        logger: Optional[logging.Logger] = None,
        name: Optional[str] = None,
    ) -> None:
        super().__init__(logger=logger, name=name)
        self.url = url
        self.headers = dict(headers or {})
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def _send(self, payload: dict[str, Any]) -> dict[str, Any]:
        self._log(f"POST {self.url}", logging.DEBUG)
        return await post_json(self._client, self.url, payload, headers=self.headers)


class TranslatingTransport:
    """
    Decorator over a ``RequestTransport`` with the same ``request`` signature.

    The backend is read once per request. For the OpenAI-compatible backend the
    payload is translated on the way out and the body is translated on the way
    back before the caller's callback runs. Any other backend calls straight
    through with the caller's payload and callback.
    """

    def __init__(
        self,
        inner: RequestTransport,
        *,
        backend: BackendSource,
        default_temperature: float = DEFAULT_TEMPERATURE,
        logger: Optional[logging.Logger] = None,
        name: Optional[str] = None,
    ) -> None:
        self.inner = inner
        self._backend = backend
        self.adapter = OpenAICompatAdapter(default_temperature=default_temperature)
        self.logger = logger or logging.getLogger(__name__)
        self.name = name if name is not None else self.__class__.__name__

    def _snapshot_backend(self) -> Backend:
        if isinstance(self._backend, Backend):
            return self._backend
        return Backend(self._backend())

    async def request(self, payload: dict[str, Any], callback: ResponseCallback) -> None:
        try:
            backend = self._snapshot_backend()
        except Exception as exc:
            callback(None, classify_error(exc, self.logger))
            return
        if not backend.translates:
            await self.inner.request(payload, callback)
            return

        try:
            translated = self.adapter.to_provider(payload)
        except InvalidPayloadError as exc:
            self._log(f"Rejected request: {exc}", logging.WARNING)
            callback(None, exc)
            return

        await self.inner.request(translated, self._wrap_callback(callback))

    def _wrap_callback(self, callback: ResponseCallback) -> ResponseCallback:
        def translated_callback(
            body: Optional[dict[str, Any]], error: Optional[Exception]
        ) -> None:
            if error is not None:
                # Transport failures reach the caller exactly as delivered.
                callback(body, error)
                return
            try:
                response = self.adapter.from_provider(body)
            except Exception as exc:
                self._log(f"Untranslatable response: {exc}", logging.WARNING)
                callback(None, classify_error(exc, self.logger))
                return
            callback(response, None)

        return translated_callback

    def _log(self, message: str, level: int = logging.INFO) -> None:
        self.logger.log(level, f"[{self.name}] {message}")

    async def aclose(self) -> None:
        close = getattr(self.inner, "aclose", None)
        if close:
            await close()

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()


def wrap_transport(
    inner: RequestTransport,
    backend: BackendSource,
    *,
    default_temperature: float = DEFAULT_TEMPERATURE,
    logger: Optional[logging.Logger] = None,
) -> RequestTransport:
    """
    Compose the translating decorator around *inner*.

    A fixed non-translating backend gets *inner* back unchanged.
    """
    if isinstance(backend, Backend) and not backend.translates:
        return inner
    return TranslatingTransport(
        inner, backend=backend, default_temperature=default_temperature, logger=logger
    )


def create_transport(
    settings: Optional[RelaySettings] = None,
    *,
    client: AsyncOpenAI | AsyncAnthropic | None = None,
    logger: Optional[logging.Logger] = None,
) -> RequestTransport:
    """
    Factory for the executor-path transport.

    Args:
        settings: Wiring-time configuration; read from the environment if omitted.
        client: Optional pre-configured SDK client.
            - For Backend.OPENAI: an AsyncOpenAI instance
            - For Backend.ANTHROPIC: an AsyncAnthropic instance
        logger: Optional custom logger.
    """
    settings = settings or RelaySettings.from_env()
    backend = settings.backend

    inner: BaseTransport
    if backend is Backend.OPENAI:
        if client is not None:
            inner = OpenAITransport.from_client(client, logger=logger)
        else:
            inner = OpenAITransport(
                api_key=settings.resolve_api_key(),
                timeout=settings.timeout,
                max_retries=settings.max_retries,
                base_url=settings.openai_base_url,
                logger=logger,
            )
    else:
        if client is not None:
            inner = AnthropicTransport.from_client(client, logger=logger)
        else:
            inner = AnthropicTransport(
                api_key=settings.resolve_api_key(),
                timeout=settings.timeout,
                max_retries=settings.max_retries,
                base_url=settings.anthropic_base_url,
                logger=logger,
            )

    return wrap_transport(
        inner,
        backend,
        default_temperature=settings.executor_temperature,
        logger=logger,
    )
