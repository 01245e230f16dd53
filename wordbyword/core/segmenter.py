"""Text segmentation: split raw document text into display units.

WHY: The reader never shows a whole document. It shows one unit at a
time, either a fixed number of words or a fixed number of sentences.
Everything downstream (pacing, resume offsets, stepping) is expressed in
unit indices, so the split must be deterministic for a given text and
configuration.

HOW: Two entry points, both pure:
  1. split_into_word_groups() — normalize line breaks, split on
     whitespace, chunk the tokens.
  2. split_into_sentence_groups() — normalize line breaks, split at
     sentence boundaries with a regex, chunk the sentences.
segment() dispatches on a PlaybackConfig.

RULES:
- Units are joined with a single space and are never empty
- Every non-whitespace token of the input appears exactly once, in order
- Empty or whitespace-only text yields an empty tuple
- A period directly after a listed abbreviation ("Mr.", "Dr.") is not a
  sentence boundary; the match is case-insensitive
- A closing quote counts as terminal punctuation, so '."' ends a sentence
"""

from __future__ import annotations

import functools
import re
from typing import Iterable, List, Sequence, Tuple

from wordbyword import config
from wordbyword.core.models import (
    ConfigurationError,
    GroupingMode,
    PlaybackConfig,
    normalize_abbreviations,
)

UnitSequence = Tuple[str, ...]

# =============================================================================
# Text Utilities
# =============================================================================

LINE_BREAK_RE = re.compile(r"\r\n|\r|\n")


def normalize_line_breaks(text: str) -> str:
    """Replace every line-break sequence (CRLF, CR, LF) with a single space."""
    return LINE_BREAK_RE.sub(" ", text)


def count_words(unit: str) -> int:
    """Number of whitespace-delimited words in a unit."""
    return len(unit.split())


def _chunk(items: Sequence[str], size: int) -> UnitSequence:
    """Join consecutive runs of `size` items with a single space."""
    return tuple(
        " ".join(items[start:start + size]) for start in range(0, len(items), size)
    )


def _check_group_size(group_size: int) -> None:
    if isinstance(group_size, bool) or not isinstance(group_size, int) or group_size < 1:
        raise ConfigurationError(
            "group_size must be an integer of at least 1, got {!r}".format(group_size)
        )


# =============================================================================
# Sentence Boundaries
# =============================================================================

@functools.lru_cache(maxsize=32)
def build_sentence_boundary(
    abbreviations: Tuple[str, ...] = config.DEFAULT_ABBREVIATIONS,
    terminals: str = config.SENTENCE_TERMINALS,
) -> "re.Pattern[str]":
    """Compile the whitespace pattern that separates two sentences.

    WHY: Python's re module only supports fixed-width lookbehind, so the
    abbreviation guard cannot be a single alternation of words with
    different lengths.

    HOW: One negative lookbehind per abbreviation ("(?<!\\bMr\\.)"), each
    of fixed width, followed by a positive lookbehind on the terminal
    character class and the whitespace run itself.

    RULES:
    - Abbreviations are anchored to a word boundary, so "idea." still ends
      a sentence even though "a" is listed
    - The three-dot ellipsis ends a sentence through the "." member of the
      terminal class, exactly like the single "…" glyph
    - Matching is case-insensitive
    """
    guards = "".join(
        r"(?<!\b{}\.)".format(re.escape(abbreviation))
        for abbreviation in normalize_abbreviations(abbreviations)
    )
    terminal_class = "[{}]".format(re.escape(terminals))
    return re.compile(r"{}(?<={})\s+".format(guards, terminal_class), re.IGNORECASE)


def split_sentences(
    text: str,
    abbreviations: Iterable[str] = config.DEFAULT_ABBREVIATIONS,
) -> List[str]:
    """Split text into individual sentences, keeping their punctuation.

    Line breaks become spaces before matching; leading and trailing
    whitespace never produces an empty sentence.
    """
    normalized = normalize_line_breaks(text).strip()
    if not normalized:
        return []
    pattern = build_sentence_boundary(tuple(abbreviations))
    return [sentence for sentence in pattern.split(normalized) if sentence]


# =============================================================================
# Public API
# =============================================================================

def split_into_word_groups(text: str, group_size: int) -> UnitSequence:
    """Split text into units of `group_size` words.

    Example: "I solemnly swear\\r\\nI am up to no good." with group_size=3
    gives ("I solemnly swear", "I am up", "to no good.").

    Raises:
        ConfigurationError: If group_size is not an integer >= 1.
    """
    _check_group_size(group_size)
    tokens = normalize_line_breaks(text).split()
    return _chunk(tokens, group_size)


def split_into_sentence_groups(
    text: str,
    group_size: int,
    abbreviations: Iterable[str] = config.DEFAULT_ABBREVIATIONS,
) -> UnitSequence:
    """Split text into units of `group_size` sentences.

    RULES:
    - "Mr. Smith" stays inside one sentence with the default abbreviations
    - '"... refuse." He said.' splits after the closing quote
    - The final unit may hold fewer than group_size sentences

    Raises:
        ConfigurationError: If group_size is not an integer >= 1.
    """
    _check_group_size(group_size)
    return _chunk(split_sentences(text, abbreviations), group_size)


def segment(text: str, playback_config: PlaybackConfig) -> UnitSequence:
    """Build the unit sequence for `text` under the given configuration."""
    if playback_config.grouping_mode is GroupingMode.SENTENCES:
        return split_into_sentence_groups(
            text, playback_config.group_size, playback_config.abbreviations
        )
    return split_into_word_groups(text, playback_config.group_size)
