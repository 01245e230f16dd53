"""Unit tests for the dictionary client.

HOW: httpx.MockTransport stands in for the network; each test builds a
handler that inspects the request and returns a canned response.
"""

from __future__ import annotations

import asyncio

import httpx
import pytest

from wordbyword.dictionary.client import (
    DictionaryAPIError,
    DictionaryClient,
    clean_word,
)

ENTRIES = [
    {
        "word": "solemnly",
        "meanings": [
            {"partOfSpeech": "adverb", "definitions": [{"definition": ""}]},
            {
                "partOfSpeech": "adverb",
                "definitions": [
                    {"definition": "In a solemn manner; with dignity."},
                    {"definition": "Seriously."},
                ],
            },
        ],
    }
]


def _define(handler, word, **kwargs):
    async def run():
        transport = httpx.MockTransport(handler)
        async with DictionaryClient(
            base_url="https://dict.test/api/v2", transport=transport, **kwargs
        ) as client:
            return await client.define(word)

    return asyncio.run(run())


class TestCleanWord:
    @pytest.mark.parametrize("raw, expected", [
        ("good.", "good"),
        ("\"Hello,", "Hello"),
        ("(aside)", "aside"),
        ("life...", "life"),
        ("“quoted”", "quoted"),
        ("it's", "it's"),
        ("...", ""),
    ])
    def test_strips_surrounding_punctuation(self, raw, expected):
        assert clean_word(raw) == expected


class TestDefine:
    def test_returns_first_non_empty_definition(self):
        seen = []

        def handler(request):
            seen.append(request.url.path)
            return httpx.Response(200, json=ENTRIES)

        assert _define(handler, "Solemnly,") == "In a solemn manner; with dignity."
        assert seen == ["/api/v2/entries/en/solemnly"]

    def test_language_is_configurable(self):
        seen = []

        def handler(request):
            seen.append(request.url.path)
            return httpx.Response(200, json=ENTRIES)

        _define(handler, "word", language="fr")
        assert seen == ["/api/v2/entries/fr/word"]

    def test_not_found_returns_empty(self):
        def handler(request):
            return httpx.Response(404, json={"title": "No Definitions Found"})

        assert _define(handler, "xyzzy") == ""

    def test_server_error_raises(self):
        def handler(request):
            return httpx.Response(503, text="down for maintenance")

        with pytest.raises(DictionaryAPIError) as excinfo:
            _define(handler, "word")
        assert excinfo.value.status_code == 503
        assert "maintenance" in excinfo.value.message

    def test_unexpected_payload_returns_empty(self):
        def handler(request):
            return httpx.Response(200, json={"message": "odd"})

        assert _define(handler, "word") == ""

    def test_blank_word_makes_no_request(self):
        def handler(request):
            raise AssertionError("no request expected")

        assert _define(handler, "...") == ""

    def test_requires_context_manager(self):
        with pytest.raises(RuntimeError, match="async context manager"):
            asyncio.run(DictionaryClient().define("word"))
