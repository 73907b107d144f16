"""
DeepL API Client

This module contains the transport helper for the DeepL v2 REST API:
- one authenticated request per call, no retries
- error classification (RemoteError / TransportError / DecodingError)
- typed wrappers for the glossary, translate and usage endpoints

The client is an async context manager owning an ``httpx.AsyncClient``.
"""

from typing import Any, Dict, List, Optional
from urllib.parse import quote

import httpx

from glossary_translator.logger import get_logger
from glossary_translator.api.exceptions import DecodingError, RemoteError, TransportError
from glossary_translator.api.models import (
    Credentials,
    GlossaryHandle,
    GlossaryRequest,
    TranslationRequest,
    TranslationResult,
    Usage,
)

logger = get_logger(__name__)

DEFAULT_TIMEOUT = 30.0


def get_httpx_timeout(timeout: Optional[float]) -> httpx.Timeout:
    """
    Build the per-request httpx.Timeout from the configured seconds.

    Connecting and waiting for a pooled connection are capped at 10 seconds;
    reads and writes get the full value.
    """
    timeout_value = float(timeout) if timeout else DEFAULT_TIMEOUT
    return httpx.Timeout(
        connect=min(10.0, timeout_value),
        write=timeout_value,
        read=timeout_value,
        pool=min(10.0, timeout_value),
    )


def handle_http_error(response: httpx.Response) -> None:
    """Raise RemoteError for a non-2xx response, with the service's message if it sent one."""
    status_code = response.status_code
    error_text = ""

    try:
        error_json = response.json()
        if isinstance(error_json, dict):
            error_text = str(error_json.get("message") or error_json.get("detail") or "")
    except ValueError:
        error_text = response.text[:500]

    raise RemoteError(status_code, error_text, details={"url": str(response.request.url)})


class DeepLClient:
    """Authenticated access to one DeepL API host."""

    def __init__(
        self,
        credentials: Credentials,
        timeout: float = DEFAULT_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        base_url: Optional[str] = None,
    ):
        self.credentials = credentials
        self.base_url = (base_url or credentials.base_url).rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers={"Authorization": credentials.authorization},
            timeout=get_httpx_timeout(timeout),
            transport=transport,
        )

    async def __aenter__(self) -> "DeepLClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def request(
        self,
        method: str,
        path: str,
        data: Optional[Dict[str, str]] = None,
        params: Optional[Dict[str, str]] = None,
    ) -> Any:
        """
        Perform one call and return the decoded JSON body.

        Returns None for an empty body (e.g. 204 from DELETE).

        Raises:
            TransportError: connection failure or timeout
            RemoteError: non-2xx status
            DecodingError: body is not JSON
        """
        logger.debug(f"DeepL {method} {path}")

        try:
            response = await self._client.request(method, path, data=data, params=params)
        except httpx.TimeoutException as e:
            raise TransportError(
                f"DeepL API request timeout ({method} {path})",
                code="timeout",
                details={"error": type(e).__name__},
            )
        except httpx.RequestError as e:
            raise TransportError(
                f"DeepL API request failed ({method} {path}): {e}",
                details={"error": type(e).__name__},
            )

        if not response.is_success:
            logger.debug(f"DeepL {method} {path} -> {response.status_code}: {response.text[:200]}")
            handle_http_error(response)

        if not response.content:
            return None

        try:
            return response.json()
        except ValueError as e:
            raise DecodingError(f"DeepL API returned invalid JSON for {method} {path}: {e}")

    async def create_glossary(self, glossary: GlossaryRequest) -> GlossaryHandle:
        payload = await self.request("POST", "/v2/glossaries", data=glossary.to_form())
        handle = GlossaryHandle.from_response(payload)
        logger.debug(f"Created glossary {handle.glossary_id} ({handle.entry_count} entries)")
        return handle

    async def translate_text(self, translation: TranslationRequest) -> TranslationResult:
        payload = await self.request("POST", "/v2/translate", data=translation.to_form())
        return TranslationResult.from_response(payload)

    async def delete_glossary(self, glossary_id: str) -> None:
        # The id is a single path segment
        await self.request("DELETE", f"/v2/glossaries/{quote(glossary_id, safe='')}")
        logger.debug(f"Deleted glossary {glossary_id}")

    async def list_glossaries(self) -> List[GlossaryHandle]:
        payload = await self.request("GET", "/v2/glossaries")
        glossaries = payload.get("glossaries") if isinstance(payload, dict) else None
        if not isinstance(glossaries, list):
            raise DecodingError("Glossary list response has no 'glossaries' array")
        return [GlossaryHandle.from_response(item) for item in glossaries]

    async def get_usage(self) -> Usage:
        payload = await self.request("GET", "/v2/usage")
        return Usage.from_response(payload)


async def fetch_usage(
    credentials: Credentials,
    timeout: float = DEFAULT_TIMEOUT,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> Usage:
    """One-shot usage check with a short-lived client."""
    async with DeepLClient(credentials, timeout=timeout, transport=transport) as client:
        return await client.get_usage()
