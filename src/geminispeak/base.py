"""Base classes for translation drivers and client configuration."""

import os
from abc import ABC, abstractmethod
from typing import Any, Generic, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field

from geminispeak.constants import (
    API_KEY_ENV_VARS,
    BASE_URL_ENV_VAR,
    DEFAULT_BASE_URL,
    DEFAULT_TIMEOUT_SECONDS,
    TIMEOUT_ENV_VAR,
)
from geminispeak.exceptions import ConfigurationError

UniversalRequestT = TypeVar("UniversalRequestT")
UniversalResponseT = TypeVar("UniversalResponseT")
WireRequestT = TypeVar("WireRequestT")
WireResponseT = TypeVar("WireResponseT")


def resolve_timeout_config(
    env_value: Optional[str],
    default: float = DEFAULT_TIMEOUT_SECONDS,
) -> Optional[float]:
    """
    Resolve a timeout value from an environment string, or default.

    Args:
        env_value: Environment variable string value
        default: Default timeout in seconds when nothing else specified

    Returns:
        Timeout in seconds or None to disable timeouts
    """
    if env_value is None:
        return default

    normalized = env_value.strip().lower()
    if not normalized:
        return default
    if normalized in {"none", "off", "disable", "disabled", "infinite"}:
        return None

    try:
        return float(env_value)
    except ValueError as exc:
        raise ConfigurationError(
            f"Invalid timeout value '{env_value}'. Provide a float or 'none'."
        ) from exc


class GeminiConfig(BaseModel):
    """Connection settings for the Gemini API."""

    model_config = ConfigDict(frozen=True)

    api_key: Optional[str] = Field(None, description="API key sent as x-goog-api-key")
    base_url: str = Field(DEFAULT_BASE_URL, description="Base URL for the API")
    timeout_seconds: Optional[float] = Field(
        DEFAULT_TIMEOUT_SECONDS, description="Request timeout in seconds (None disables)"
    )

    @classmethod
    def from_env(cls, require_api_key: bool = True) -> "GeminiConfig":
        """
        Build a config from environment variables.

        Args:
            require_api_key: Raise if none of the API key variables is set

        Returns:
            Resolved configuration

        Raises:
            ConfigurationError: If the API key is required but missing
        """
        api_key = next((os.environ[name] for name in API_KEY_ENV_VARS if os.environ.get(name)), None)
        if require_api_key and not api_key:
            raise ConfigurationError(
                f"Gemini API key must be provided ({' or '.join(API_KEY_ENV_VARS)})"
            )

        return cls(
            api_key=api_key,
            base_url=os.environ.get(BASE_URL_ENV_VAR) or DEFAULT_BASE_URL,
            timeout_seconds=resolve_timeout_config(os.environ.get(TIMEOUT_ENV_VAR)),
        )

    def __repr__(self) -> str:
        masked = "***" if self.api_key else None
        return (
            f"GeminiConfig(api_key={masked!r}, base_url={self.base_url!r}, "
            f"timeout_seconds={self.timeout_seconds!r})"
        )


class BaseTranslationDriver(
    ABC, Generic[UniversalRequestT, UniversalResponseT, WireRequestT, WireResponseT]
):
    """Bidirectional mapping between universal shapes and Gemini wire shapes."""

    @abstractmethod
    def to_wire(self, request: UniversalRequestT) -> WireRequestT:
        """Convert a universal request into a Gemini request."""
        pass

    @abstractmethod
    def from_wire(self, response: WireResponseT) -> UniversalResponseT:
        """Convert a Gemini response into a universal response."""
        pass

    @abstractmethod
    def to_universal(self, request: WireRequestT) -> UniversalRequestT:
        """Convert a Gemini request back into a universal request."""
        pass

    @abstractmethod
    def from_universal(self, response: UniversalResponseT) -> WireResponseT:
        """Convert a universal response into a Gemini response."""
        pass

    def _check_type(self, value: Any, expected: type, what: str) -> None:
        if not isinstance(value, expected):
            raise TypeError(f"Expected {expected.__name__} instance for {what}.")
