"""
Backend selection and relay settings.

The environment (and an optional ``.env`` file) only supplies defaults; the
selected backend is handed to the transport and chat factories when they are
wired, never read from inside translation code.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Final, Optional

from dotenv import load_dotenv

load_dotenv()

__all__ = ["Backend", "RelaySettings", "default_backend", "get_api_key"]


class Backend(StrEnum):
    ANTHROPIC = "anthropic"
    OPENAI = "openai"

    @property
    def translates(self) -> bool:
        """True when requests must be rewritten for an OpenAI-compatible backend."""
        return self is Backend.OPENAI


_ENV_VARS: Final[dict[Backend, str]] = {
    Backend.ANTHROPIC: "ANTHROPIC_API_KEY",
    Backend.OPENAI: "OPENAI_API_KEY",
}

BACKEND_ENV_VAR: Final = "LLM_RELAY_BACKEND"


def get_api_key(backend: Backend) -> str:
    """Return the API key for *backend* or raise RuntimeError."""
    try:
        env_var = _ENV_VARS[backend]
    except KeyError:
        raise RuntimeError(f"No config for {backend!s}") from None

    try:
        return os.environ[env_var]
    except KeyError as exc:
        raise RuntimeError(f"{env_var} missing") from exc


def _parse_backend(value: str) -> Backend:
    try:
        return Backend(value.strip().lower())
    except ValueError:
        choices = ", ".join(b.value for b in Backend)
        raise ValueError(
            f"{BACKEND_ENV_VAR}={value!r} is not one of: {choices}"
        ) from None


def default_backend() -> Backend:
    """Backend named by ``LLM_RELAY_BACKEND``, falling back to Anthropic."""
    raw = os.environ.get(BACKEND_ENV_VAR)
    if not raw:
        return Backend.ANTHROPIC
    return _parse_backend(raw)


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None


@dataclass
class RelaySettings:
    """Wiring-time configuration for transports and chat sessions."""

    backend: Backend = Backend.ANTHROPIC
    model: str = "claude-3-5-haiku-20241022"
    max_tokens: int = 1024

    # The two call sites default differently; keep both explicit.
    executor_temperature: float = 0.0
    chat_temperature: float = 0.1

    openai_base_url: str = "https://api.openai.com/v1"
    anthropic_base_url: str = "https://api.anthropic.com"
    timeout: float = 60.0
    max_retries: int = 2
    api_key: Optional[str] = field(default=None, repr=False)

    @classmethod
    def from_env(cls) -> "RelaySettings":
        """Build settings from ``LLM_RELAY_*`` environment variables."""
        defaults = cls()
        return cls(
            backend=default_backend(),
            model=os.environ.get("LLM_RELAY_MODEL") or defaults.model,
            max_tokens=_env_int("LLM_RELAY_MAX_TOKENS", defaults.max_tokens),
            executor_temperature=_env_float(
                "LLM_RELAY_EXECUTOR_TEMPERATURE", defaults.executor_temperature
            ),
            chat_temperature=_env_float(
                "LLM_RELAY_CHAT_TEMPERATURE", defaults.chat_temperature
            ),
            openai_base_url=os.environ.get("LLM_RELAY_OPENAI_BASE_URL")
            or defaults.openai_base_url,
            anthropic_base_url=os.environ.get("LLM_RELAY_ANTHROPIC_BASE_URL")
            or defaults.anthropic_base_url,
            timeout=_env_float("LLM_RELAY_TIMEOUT", defaults.timeout),
        )

    def resolve_api_key(self) -> str:
        """Explicit key if one was configured, else the backend's env var."""
        return self.api_key or get_api_key(self.backend)
