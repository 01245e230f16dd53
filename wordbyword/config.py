"""Configuration defaults and .env loading.

WHY: Reading speed, grouping, the abbreviation list used by the sentence
splitter and the library location are user preferences. Keeping them in
one place, overridable from the environment, means neither the CLI nor
the tests need to hardcode them.

HOW: python-dotenv loads the .env file on import. Defaults are plain
module-level constants read from os.environ as raw strings; conversion
and validation happen in PlaybackConfig.from_env() so bad values surface
as ConfigurationError at the point of use.

RULES:
- Every default can be overridden with a WORDBYWORD_* environment variable
- Values here are raw strings or simple constants, never validated objects
- DEFAULT_ABBREVIATIONS is the splitter's built-in list, not an exhaustive one
"""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

# ---------------------------------------------------------------------------
# Playback defaults
# ---------------------------------------------------------------------------

DEFAULT_WORDS_PER_MINUTE = os.getenv("WORDBYWORD_WPM", "250")
DEFAULT_GROUP_SIZE = os.getenv("WORDBYWORD_GROUP_SIZE", "1")
DEFAULT_GROUPING_MODE = os.getenv("WORDBYWORD_GROUPING_MODE", "words")

# ---------------------------------------------------------------------------
# Sentence splitting
# ---------------------------------------------------------------------------

DEFAULT_ABBREVIATIONS: tuple[str, ...] = ("Mr", "Dr", "Ms", "St", "a", "p", "m", "K")
"""Words whose trailing period does not end a sentence (matched case-insensitively)."""

ABBREVIATIONS_OVERRIDE = os.getenv("WORDBYWORD_ABBREVIATIONS", "")

SENTENCE_TERMINALS = ".!?…\"”"
"""Characters that may end a sentence: period, bang, question mark, ellipsis, closing quotes."""


def parse_abbreviations(raw: str) -> tuple[str, ...]:
    """Parse a comma-separated abbreviation list, e.g. "Mr,Mrs,Jr,vs".

    Empty entries are dropped; an empty string yields an empty tuple.
    """
    return tuple(part.strip() for part in raw.split(",") if part.strip())


# ---------------------------------------------------------------------------
# Library and dictionary service
# ---------------------------------------------------------------------------

LIBRARY_PATH = Path(
    os.getenv("WORDBYWORD_LIBRARY_PATH", str(Path.home() / ".wordbyword" / "library.json"))
).expanduser()

DICTIONARY_BASE_URL = os.getenv(
    "WORDBYWORD_DICTIONARY_URL", "https://api.dictionaryapi.dev/api/v2"
)
DICTIONARY_LANGUAGE = os.getenv("WORDBYWORD_DICTIONARY_LANGUAGE", "en")

NO_DEFINITION_MESSAGE = "Could not find the definition :("
