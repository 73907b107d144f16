"""
DeepL API Data Classes

Request parameters and decoded responses for the DeepL endpoints used by the
translation session. Every ``from_response`` raises DecodingError when the
JSON does not have the expected shape.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from glossary_translator.api.exceptions import DecodingError

AUTH_HEADER_PREFIX = "DeepL-Auth-Key"


class ApiPlan(str, Enum):
    """DeepL account tier. Selects the API host."""

    FREE = "free"
    PRO = "pro"

    @property
    def base_url(self) -> str:
        if self is ApiPlan.FREE:
            return "https://api-free.deepl.com"
        return "https://api.deepl.com"

    @classmethod
    def parse(cls, value: Any) -> "ApiPlan":
        if isinstance(value, ApiPlan):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValueError(f"Unknown DeepL API plan: {value!r} (expected 'free' or 'pro')")


@dataclass(frozen=True)
class Credentials:
    """API key plus plan tier."""

    api_key: str
    plan: ApiPlan = ApiPlan.FREE

    @property
    def base_url(self) -> str:
        return self.plan.base_url

    @property
    def authorization(self) -> str:
        return f"{AUTH_HEADER_PREFIX} {self.api_key}"

    def __repr__(self) -> str:
        return f"Credentials(api_key='***', plan={self.plan.value!r})"


@dataclass
class GlossaryRequest:
    name: str
    source_lang: str
    target_lang: str
    entries: str
    entries_format: str = "csv"

    def to_form(self) -> Dict[str, str]:
        return {
            "name": self.name,
            "source_lang": self.source_lang,
            "target_lang": self.target_lang,
            "entries_format": self.entries_format,
            "entries": self.entries,
        }


@dataclass
class GlossaryHandle:
    """A glossary as created (or listed) by the service."""

    glossary_id: str
    ready: bool
    entry_count: int
    name: str = ""
    source_lang: str = ""
    target_lang: str = ""
    creation_time: Optional[datetime] = None

    @classmethod
    def from_response(cls, payload: Any) -> "GlossaryHandle":
        if not isinstance(payload, dict):
            raise DecodingError(f"Expected a glossary object, got {type(payload).__name__}")

        glossary_id = payload.get("glossary_id")
        if not isinstance(glossary_id, str) or not glossary_id:
            raise DecodingError("Glossary response has no glossary_id", details={"keys": sorted(payload)})

        entry_count = payload.get("entry_count", 0)
        if not isinstance(entry_count, int) or isinstance(entry_count, bool):
            raise DecodingError(f"Invalid entry_count in glossary response: {entry_count!r}")

        return cls(
            glossary_id=glossary_id,
            ready=bool(payload.get("ready", False)),
            entry_count=entry_count,
            name=payload.get("name") or "",
            source_lang=(payload.get("source_lang") or "").upper(),
            target_lang=(payload.get("target_lang") or "").upper(),
            creation_time=_parse_timestamp(payload.get("creation_time")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "glossary_id": self.glossary_id,
            "ready": self.ready,
            "entry_count": self.entry_count,
            "name": self.name,
            "source_lang": self.source_lang,
            "target_lang": self.target_lang,
            "creation_time": self.creation_time.isoformat() if self.creation_time else None,
        }


@dataclass
class TranslationRequest:
    text: str
    source_lang: str
    target_lang: str
    glossary_id: Optional[str] = None

    def to_form(self) -> Dict[str, str]:
        form = {
            "text": self.text,
            "source_lang": self.source_lang,
            "target_lang": self.target_lang,
        }
        if self.glossary_id:
            form["glossary_id"] = self.glossary_id
        return form


@dataclass
class TranslationResult:
    text: str
    detected_source_language: Optional[str] = None

    @classmethod
    def from_response(cls, payload: Any) -> "TranslationResult":
        """Decode the first entry of a ``/v2/translate`` response."""
        translations = payload.get("translations") if isinstance(payload, dict) else None
        if not isinstance(translations, list) or not translations:
            raise DecodingError("Translate response contains no translations")

        first = translations[0]
        if not isinstance(first, dict) or not isinstance(first.get("text"), str):
            raise DecodingError(f"Unexpected translation entry: {first!r}")

        return cls(
            text=first["text"],
            detected_source_language=first.get("detected_source_language"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "text": self.text,
            "detected_source_language": self.detected_source_language,
        }


@dataclass
class Usage:
    character_count: int
    character_limit: int

    @property
    def remaining(self) -> int:
        return max(self.character_limit - self.character_count, 0)

    @classmethod
    def from_response(cls, payload: Any) -> "Usage":
        try:
            return cls(
                character_count=int(payload["character_count"]),
                character_limit=int(payload["character_limit"]),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise DecodingError(f"Unexpected usage response: {e}")

    def to_dict(self) -> Dict[str, int]:
        return {
            "character_count": self.character_count,
            "character_limit": self.character_limit,
            "remaining": self.remaining,
        }


@dataclass
class SessionResult:
    """Everything a translation session produced.

    ``translation`` is always set; a failed translate step raises instead of
    returning. ``cleanup_error`` and ``back_translation_error`` are reported
    next to a successful translation rather than replacing it.
    """

    input_text: str
    translation: TranslationResult
    glossary: Optional[GlossaryHandle] = None
    back_translation: Optional[TranslationResult] = None
    back_translation_error: Optional[Exception] = None
    cleanup_error: Optional[Exception] = None
    warnings: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "input": self.input_text,
            "translation": self.translation.to_dict(),
            "back_translation": self.back_translation.to_dict() if self.back_translation else None,
            "glossary": self.glossary.to_dict() if self.glossary else None,
            "back_translation_error": _error_dict(self.back_translation_error),
            "cleanup_error": _error_dict(self.cleanup_error),
            "warnings": list(self.warnings),
        }


def _error_dict(error: Optional[Exception]) -> Optional[Dict[str, Any]]:
    if error is None:
        return None
    if hasattr(error, "to_dict"):
        return error.to_dict()
    return {"error": str(error)}


def _parse_timestamp(value: Any) -> Optional[datetime]:
    if not value:
        return None
    if not isinstance(value, str):
        raise DecodingError(f"Invalid creation_time: {value!r}")
    try:
        # fromisoformat() only accepts a trailing 'Z' from Python 3.11 on
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        raise DecodingError(f"Invalid creation_time: {value!r}")
