"""
DeepL API Exceptions

This module contains exception classes for the DeepL client and the
translation session. Separated to avoid circular imports between client.py,
models.py and session.py.

Every error carries an optional ``step`` naming the session step it was
raised in ("create glossary", "translate", "delete glossary",
"back-translate"). The session sets it; the client never does.
"""

from typing import Optional


class TranslationError(Exception):
    """Translation service error with optional code and details."""

    def __init__(self, message: str, code: str = None, details: dict = None, step: Optional[str] = None):
        super().__init__(message)
        self.code = code
        self.details = details or {}
        self.step = step

    def __str__(self) -> str:
        message = super().__str__()
        if self.step:
            return f"{self.step} failed: {message}"
        return message

    def to_dict(self) -> dict:
        return {
            "error": str(self),
            "code": self.code,
            "step": self.step,
            "details": self.details,
        }


class ConfigurationError(TranslationError):
    """Missing credentials or invalid settings. Fatal at startup."""

    def __init__(self, message: str, code: str = "config_invalid", details: dict = None):
        super().__init__(message, code=code, details=details)


class TransportError(TranslationError):
    """Network-level failure: connection refused, DNS, timeout."""

    def __init__(self, message: str, code: str = "transport_error", details: dict = None):
        super().__init__(message, code=code, details=details)


class RemoteError(TranslationError):
    """The service answered with a non-2xx status."""

    def __init__(self, status_code: int, message: str = "", details: dict = None):
        text = f"DeepL API error ({status_code})"
        if message:
            text = f"{text}: {message}"
        super().__init__(text, code="remote_error", details=details)
        self.status_code = status_code
        self.details.setdefault("status_code", status_code)


class DecodingError(TranslationError):
    """The response body could not be decoded into the expected shape."""

    def __init__(self, message: str, details: dict = None):
        super().__init__(message, code="decoding_error", details=details)


class CleanupError(TranslationError):
    """Deleting the temporary glossary failed after it was used."""

    def __init__(self, glossary_id: str, cause: TranslationError):
        super().__init__(
            f"Could not delete glossary {glossary_id}: {cause}",
            code="cleanup_failed",
            details={"glossary_id": glossary_id, "cause": cause.code},
        )
        self.glossary_id = glossary_id
        self.cause = cause
