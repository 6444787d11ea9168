"""
Translate noisy provider and transport tracebacks into a unified `RelayError`,
while preserving the original exception for full tracebacks.
"""

from __future__ import annotations

import logging
from typing import Final, Optional, Type

import anthropic
import httpx
import openai

__all__: tuple[str, ...] = (
    "RelayError",
    "TransportError",
    "InvalidPayloadError",
    "classify_error",
)


class RelayError(RuntimeError):
    """Public relay-level exception.

    Attributes:
        original_exc: The underlying provider or transport exception, if any.
    """

    original_exc: Optional[Exception]

    def __init__(self, message: str, original_exc: Optional[Exception] = None) -> None:
        super().__init__(message)
        self.original_exc = original_exc
        self.__cause__ = original_exc


class TransportError(RelayError):
    """The request never produced a usable response body."""

    def __init__(
        self,
        message: str,
        original_exc: Optional[Exception] = None,
        *,
        status_code: Optional[int] = None,
    ) -> None:
        super().__init__(message, original_exc)
        self.status_code = status_code


class InvalidPayloadError(RelayError, ValueError):
    """Raised when a host payload does not have the expected shape."""


API_ERRORS: Final[tuple[Type[Exception], ...]] = (
    openai.APIError,
    anthropic.APIError,
    httpx.HTTPStatusError,
)

CONN_ERRORS: Final[tuple[Type[Exception], ...]] = (
    openai.APIConnectionError,
    anthropic.APIConnectionError,
    httpx.TransportError,
    TimeoutError,
    ConnectionError,
)

RATE_LIMIT_ERRORS: Final[tuple[Type[Exception], ...]] = (
    openai.RateLimitError,
    anthropic.RateLimitError,
)


def _status_code(exc: Exception) -> Optional[int]:
    status = getattr(exc, "status_code", None)
    if status is None and isinstance(exc, httpx.HTTPStatusError):
        status = exc.response.status_code
    return status


def classify_error(
    exc: Exception,
    logger: Optional[logging.Logger] = None,
) -> RelayError:
    """Wrap an SDK or transport exception in a RelayError with a concise message."""
    log = logger or logging.getLogger("llm_relay.exceptions")

    if isinstance(exc, RelayError):
        return exc

    # Connection errors subclass APIError in both SDKs, so check them first.
    if isinstance(exc, RATE_LIMIT_ERRORS):
        msg = "Rate-limit exceeded - please retry later"
    elif isinstance(exc, CONN_ERRORS):
        msg = "Connection problem - unable to reach the LLM backend"
    elif isinstance(exc, API_ERRORS):
        msg = f"Backend reported an error ({_status_code(exc) or 'unknown'})"
    else:
        log.warning("Wrapping unexpected exception", extra={"exc": exc})
        return RelayError(f"{exc.__class__.__name__}: {exc}", exc)

    log.warning("Wrapping backend exception", extra={"exc": exc})
    return TransportError(f"{msg}: {exc}", exc, status_code=_status_code(exc))
