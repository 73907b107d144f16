"""
Translation Session Module

Runs one glossary-assisted translation against DeepL:

1. create a temporary glossary from the loaded CSV entries
2. translate the input text with that glossary
3. delete the glossary (always, even if step 2 failed or was cancelled)
4. optionally back-translate the result without a glossary

DeepL glossaries cannot be edited in place, so every session creates a
fresh one and owns it until step 3.
"""

import asyncio
import uuid
from enum import Enum
from typing import Any, Awaitable, Optional, TypeVar

import httpx

from glossary_translator.logger import get_logger
from glossary_translator import language_codes as lc
from glossary_translator.config import SessionConfig
from glossary_translator.glossary import GlossaryEntries, load_glossary
from glossary_translator.api.client import DeepLClient
from glossary_translator.api.exceptions import CleanupError, TranslationError
from glossary_translator.api.models import (
    GlossaryHandle,
    GlossaryRequest,
    SessionResult,
    TranslationRequest,
    TranslationResult,
)

logger = get_logger(__name__)

T = TypeVar("T")


class Step(str, Enum):
    """Session steps, used to tag errors."""

    CREATE_GLOSSARY = "create glossary"
    TRANSLATE = "translate"
    DELETE_GLOSSARY = "delete glossary"
    BACK_TRANSLATE = "back-translate"


async def run_step(step: Step, awaitable: Awaitable[T]) -> T:
    """Await one remote call, tagging any TranslationError with the step."""
    logger.debug(f"Step '{step.value}' started")
    try:
        return await awaitable
    except TranslationError as e:
        e.step = step.value
        raise


class GlossaryScope:
    """
    Async context manager owning one server-side glossary.

    Entering creates the glossary; leaving deletes it on every exit path,
    including exceptions and task cancellation; further cancels arriving
    while the delete is in flight wait for it to finish. A failed delete never
    replaces an exception already propagating out of the block; on a clean
    exit it is kept in ``cleanup_error`` for the caller to report.
    """

    def __init__(self, client: DeepLClient, request: GlossaryRequest):
        self.client = client
        self.request = request
        self.handle: Optional[GlossaryHandle] = None
        self.cleanup_error: Optional[CleanupError] = None

    async def __aenter__(self) -> GlossaryHandle:
        self.handle = await run_step(Step.CREATE_GLOSSARY, self.client.create_glossary(self.request))
        logger.info(
            f"Glossary '{self.handle.name or self.request.name}' created: {self.handle.glossary_id} "
            f"({self.handle.entry_count} entries)"
        )
        return self.handle

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        glossary_id = self.handle.glossary_id
        delete = asyncio.ensure_future(self.client.delete_glossary(glossary_id))
        cancelled = await wait_uncancellable(delete)

        try:
            delete.result()
            logger.info(f"Glossary {glossary_id} deleted")
        except TranslationError as e:
            cleanup_error = CleanupError(glossary_id, e)
            cleanup_error.step = Step.DELETE_GLOSSARY.value
            if exc is None and not cancelled:
                logger.error(str(cleanup_error))
                self.cleanup_error = cleanup_error
            else:
                logger.warning(f"{cleanup_error} (while handling: {exc or 'cancellation'!r})")

        # A cancel held back during the delete still ends the session
        if cancelled and not isinstance(exc, asyncio.CancelledError):
            raise asyncio.CancelledError()
        return False


async def wait_uncancellable(future: asyncio.Future) -> bool:
    """
    Wait until ``future`` is done, even if the calling task is cancelled meanwhile.

    The caller's HTTP client and event loop must outlive the future, so
    cancellations are absorbed until it finishes.

    Returns:
        True if the calling task was cancelled while waiting
    """
    cancelled = False
    while not future.done():
        try:
            await asyncio.wait({future})
        except asyncio.CancelledError:
            cancelled = True
            logger.warning("Cancellation requested during glossary cleanup, finishing the delete first")
    return cancelled


class TranslationSession:
    """One client plus the settings for a glossary-assisted translation."""

    def __init__(self, client: DeepLClient, config: SessionConfig):
        self.client = client
        self.config = config

    def glossary_name(self) -> str:
        if self.config.unique_glossary_name:
            return f"{self.config.glossary_name}-{uuid.uuid4().hex[:8]}"
        return self.config.glossary_name

    def build_glossary_request(self, entries: GlossaryEntries) -> GlossaryRequest:
        source_lang, target_lang = lc.glossary_language_pair(self.config.source_lang, self.config.target_lang)
        return GlossaryRequest(
            name=self.glossary_name(),
            source_lang=source_lang,
            target_lang=target_lang,
            entries=entries.csv_text,
        )

    def glossary(self, entries: GlossaryEntries) -> GlossaryScope:
        return GlossaryScope(self.client, self.build_glossary_request(entries))

    async def translate(self, text: str, glossary_id: str) -> TranslationResult:
        request = TranslationRequest(
            text=text,
            source_lang=self.config.source_lang,
            target_lang=self.config.target_lang,
            glossary_id=glossary_id,
        )
        return await run_step(Step.TRANSLATE, self.client.translate_text(request))

    async def back_translate(self, translated_text: str) -> TranslationResult:
        source_lang, target_lang = lc.back_translation_pair(self.config.source_lang, self.config.target_lang)
        request = TranslationRequest(text=translated_text, source_lang=source_lang, target_lang=target_lang)
        return await run_step(Step.BACK_TRANSLATE, self.client.translate_text(request))

    async def run(
        self,
        text: str,
        entries: GlossaryEntries,
        back_translate: Optional[bool] = None,
    ) -> SessionResult:
        """
        Execute the whole workflow for one input text.

        Args:
            text: Text to translate
            entries: Glossary entries for the temporary glossary
            back_translate: Override config.back_translate

        Returns:
            SessionResult with the translation and any non-fatal errors

        Raises:
            ValueError: If text is empty
            TranslationError: Glossary creation or translation failed; ``step`` names which
        """
        if not text or not text.strip():
            raise ValueError("Nothing to translate")
        if back_translate is None:
            back_translate = self.config.back_translate

        logger.info(
            f"Translating {len(text)} chars {self.config.source_lang} -> {self.config.target_lang} "
            f"(back-translate: {back_translate})"
        )

        scope = self.glossary(entries)
        try:
            async with scope as handle:
                translation = await self.translate(text, handle.glossary_id)
        except TranslationError as e:
            logger.error(f"Translation session failed: {e}")
            raise

        result = SessionResult(
            input_text=text,
            translation=translation,
            glossary=scope.handle,
            cleanup_error=scope.cleanup_error,
        )
        if scope.cleanup_error:
            result.warnings.append(str(scope.cleanup_error))
        for line_no, reason in entries.skipped:
            result.warnings.append(f"Glossary line {line_no} skipped: {reason}")

        if back_translate:
            try:
                result.back_translation = await self.back_translate(translation.text)
            except TranslationError as e:
                logger.warning(f"Back-translation failed, keeping primary result: {e}")
                result.back_translation_error = e
                result.warnings.append(str(e))

        return result


async def run_session(
    text: str,
    config: SessionConfig,
    back_translate: Optional[bool] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> SessionResult:
    """Load the glossary file, open a client and run one session."""
    entries = load_glossary(config.glossary_file)
    async with DeepLClient(config.credentials, timeout=config.timeout, transport=transport) as client:
        return await TranslationSession(client, config).run(text, entries, back_translate=back_translate)


def run_session_sync(text: str, config: SessionConfig, back_translate: Optional[bool] = None, **kwargs: Any) -> SessionResult:
    """Blocking wrapper around run_session for the CLI and Flask views."""
    return asyncio.run(run_session(text, config, back_translate=back_translate, **kwargs))
