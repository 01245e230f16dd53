"""Definition lookup for the word currently on screen.

WHY: When reading one word at a time, a paused reader can ask what the
displayed word means. The lookup is an external service; this package
holds the protocol the controller depends on and an HTTP implementation.

RULES:
- All HTTP calls go through DictionaryClient (no direct httpx usage elsewhere)
- "No definition" is an empty string, not an exception
"""

from wordbyword.dictionary.client import (
    DefinitionLookup,
    DictionaryAPIError,
    DictionaryClient,
)

__all__ = ["DefinitionLookup", "DictionaryAPIError", "DictionaryClient"]
