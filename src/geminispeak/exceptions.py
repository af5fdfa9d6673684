"""Exception hierarchy for geminispeak.

Every error raised by the library derives from GeminiSpeakError.
"""

from typing import Any, Dict, Optional


class GeminiSpeakError(Exception):
    """Base exception for all geminispeak errors."""
    pass


class ConfigurationError(GeminiSpeakError):
    """Required configuration is missing (API key, model, contents, etc.)."""
    pass


class TransportError(GeminiSpeakError):
    """The HTTP exchange could not be completed (DNS, connection, timeout)."""

    def __init__(self, message: str, url: Optional[str] = None):
        super().__init__(message)
        self.url = url


class APIError(GeminiSpeakError):
    """The Gemini API answered with a non-2xx status or an unusable body."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        error: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.error = error


class TranslationError(GeminiSpeakError):
    """A schema adapter met a shape it cannot map."""
    pass


class PipelineError(GeminiSpeakError):
    """The staged pipeline could not complete its run."""
    pass


class ValidationError(GeminiSpeakError):
    """Advisory validation finding.

    Returned in lists by ``validate()`` methods rather than raised, so callers
    can decide whether a request is good enough to send.
    """

    def __init__(self, field: str, message: str):
        super().__init__(message)
        self.field = field
        self.message = message

    def __repr__(self) -> str:
        return f"ValidationError(field={self.field!r}, message={self.message!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ValidationError):
            return NotImplemented
        return (self.field, self.message) == (other.field, other.message)

    def __hash__(self) -> int:
        return hash((self.field, self.message))
