"""
API Module

This module provides the DeepL client, its data classes and exceptions.
"""

from glossary_translator.api.exceptions import (
    TranslationError,
    ConfigurationError,
    TransportError,
    RemoteError,
    DecodingError,
    CleanupError,
)
from glossary_translator.api.models import (
    ApiPlan,
    Credentials,
    GlossaryRequest,
    GlossaryHandle,
    TranslationRequest,
    TranslationResult,
    Usage,
    SessionResult,
)
from glossary_translator.api.client import DeepLClient

__all__ = [
    'TranslationError',
    'ConfigurationError',
    'TransportError',
    'RemoteError',
    'DecodingError',
    'CleanupError',
    'ApiPlan',
    'Credentials',
    'GlossaryRequest',
    'GlossaryHandle',
    'TranslationRequest',
    'TranslationResult',
    'Usage',
    'SessionResult',
    'DeepLClient',
]
