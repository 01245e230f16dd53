"""Pacing: convert a words-per-minute target into a per-unit delay.

WHY: The reader holds each unit on screen for as long as it would take to
read its words at the chosen speed. Word groups all have the same size, so
one delay serves the whole run; sentence groups vary, so each unit gets
its own delay.

HOW: wpm / 60 gives words per second, 1000 / that gives milliseconds per
word. The per-word figure is floored BEFORE multiplying by the unit's word
count, so 200 wpm and 3 words gives exactly 900 ms.

RULES:
- words_per_minute that is not a finite positive number raises
  ConfigurationError
- A unit with 0 words gets a 0 ms delay
- Never round after multiplying; the floor applies to the per-word figure
"""

from __future__ import annotations

import math

from wordbyword.core.models import ConfigurationError, check_words_per_minute


def milliseconds_per_word(words_per_minute: float) -> float:
    """Unfloored milliseconds spent on a single word at `words_per_minute`."""
    check_words_per_minute(words_per_minute)
    words_per_second = words_per_minute / 60
    return 1000 / words_per_second


def compute_delay_ms(words_per_minute: float, unit_word_count: int) -> int:
    """Return the display delay in whole milliseconds for one unit.

    Args:
        words_per_minute: Target reading speed, must be positive.
        unit_word_count: Number of words shown in the unit.

    Returns:
        floor(ms per word) * unit_word_count.

    Raises:
        ConfigurationError: If words_per_minute <= 0 or the word count is negative.
    """
    if unit_word_count < 0:
        raise ConfigurationError(
            "unit_word_count must not be negative, got {}".format(unit_word_count)
        )
    return math.floor(milliseconds_per_word(words_per_minute)) * unit_word_count
