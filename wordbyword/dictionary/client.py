"""Async HTTP client for a free dictionary API.

WHY: The reader offers a definition for the single word on screen. The
lookup is slow compared to everything else the reader does, so it is
async and lives behind a one-method protocol the controller can be handed
(or a test can fake).

HOW: Uses httpx.AsyncClient for non-blocking HTTP. DictionaryClient is an
async context manager; enter it to open the connection pool, exit to
close it. define() GETs /entries/{language}/{word} and returns the first
definition of the first meaning.

RULES:
- Always use the async context manager (async with DictionaryClient() as client:)
- A 404 means the service knows no definition: define() returns ""
- Any other non-200 response raises DictionaryAPIError
- Surrounding punctuation is stripped from the word before lookup
- Blank words are not sent; define() returns ""
"""

from __future__ import annotations

import logging
import re
from typing import Any, Optional, Protocol
from urllib.parse import quote

import httpx

from wordbyword.config import DICTIONARY_BASE_URL, DICTIONARY_LANGUAGE

logger = logging.getLogger(__name__)

_LEADING_PUNCT_RE = re.compile(r"^[\"'“‘(\[]+")
_TRAILING_PUNCT_RE = re.compile(r"[.,!?…:;)\]\"'”’]+$")


def clean_word(word: str) -> str:
    """Remove leading/trailing punctuation so "good." is looked up as "good"."""
    return _TRAILING_PUNCT_RE.sub("", _LEADING_PUNCT_RE.sub("", word.strip()))


class DefinitionLookup(Protocol):
    """Anything that can define a single word asynchronously."""

    async def define(self, word: str) -> str:
        ...


class DictionaryAPIError(Exception):
    """Raised when the dictionary service returns an unexpected error response.

    RULES:
    - Always include status_code and message
    - Not raised for 404 (unknown word)
    """

    def __init__(self, status_code: int, message: str) -> None:
        self.status_code = status_code
        self.message = message
        super().__init__(f"Dictionary API error {status_code}: {message}")


class DictionaryClient:
    """Async client for https://dictionaryapi.dev style endpoints.

    RULES:
    - base_url defaults to DICTIONARY_BASE_URL from config
    - language defaults to DICTIONARY_LANGUAGE from config
    - transport is for tests (httpx.MockTransport); production uses the default
    """

    def __init__(
        self,
        base_url: str | None = None,
        language: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = (base_url or DICTIONARY_BASE_URL).rstrip("/")
        self._language = language or DICTIONARY_LANGUAGE
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> DictionaryClient:
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            timeout=httpx.Timeout(10.0, connect=5.0),
            transport=self._transport,
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:  # noqa: ANN001
        if self._client:
            await self._client.aclose()
            self._client = None

    def _ensure_client(self) -> httpx.AsyncClient:
        """Return the active httpx client, raising if not in context manager."""
        if self._client is None:
            raise RuntimeError(
                "DictionaryClient must be used as an async context manager: "
                "async with DictionaryClient() as client: ..."
            )
        return self._client

    async def define(self, word: str) -> str:
        """Return the first definition of `word`, or "" if none is known.

        Raises:
            DictionaryAPIError: On any non-200, non-404 response.
            httpx.HTTPError: On network failures.
        """
        client = self._ensure_client()
        cleaned = clean_word(word)
        if not cleaned:
            return ""

        resp = await client.get(
            "/entries/{}/{}".format(self._language, quote(cleaned.lower(), safe=""))
        )
        if resp.status_code == 404:
            logger.info("No definition found for %r", cleaned)
            return ""
        if resp.status_code != 200:
            raise DictionaryAPIError(resp.status_code, resp.text)

        return _first_definition(resp.json())


def _first_definition(payload: Any) -> str:
    """Pull the first non-empty definition out of an entries response.

    The response is a list of entries, each with "meanings", each with
    "definitions", each with a "definition" string. Anything else yields "".
    """
    if not isinstance(payload, list):
        return ""
    for entry in payload:
        if not isinstance(entry, dict):
            continue
        for meaning in entry.get("meanings") or []:
            for definition in meaning.get("definitions") or []:
                text: Optional[str] = definition.get("definition")
                if text and text.strip():
                    return text.strip()
    return ""
