"""Playback configuration, states and observer events.

WHY: The segmenter, pacer and controller all agree on a small vocabulary:
how text is grouped, how fast it plays, which state a session is in, and
what an observer is told on every advance. Defining these once keeps the
three components decoupled from each other.

HOW: Two str enums (GroupingMode, PlaybackState) and two dataclasses
(PlaybackConfig, PlaybackEvent). PlaybackConfig validates itself in
__post_init__ so an invalid configuration can never be constructed.

RULES:
- group_size >= 1 and words_per_minute finite and > 0, otherwise
  ConfigurationError
- Invalid values are rejected, never clamped
- PlaybackConfig is frozen; reconfiguring means building a new one
- Abbreviations are stored without their trailing period, deduplicated
  case-insensitively, in first-seen order
"""

from __future__ import annotations

import enum
import math
import numbers
from dataclasses import dataclass
from typing import Iterable, Optional, Tuple

from wordbyword import config


class ConfigurationError(ValueError):
    """Raised when a playback setting is out of range or malformed.

    WHY: A zero or negative reading speed, or an empty group, has no
    meaningful playback. Failing loudly at configure time beats a reader
    that silently never advances.

    RULES:
    - Message names the offending setting and the value received
    """


class GroupingMode(str, enum.Enum):
    """How display units are formed: from words or from sentences."""

    WORDS = "words"
    SENTENCES = "sentences"


class PlaybackState(str, enum.Enum):
    """Lifecycle of a playback session.

    RULES:
    - idle: no session, or the session was reset/stopped
    - running: the advance loop is awaiting a unit delay
    - paused: the loop was cancelled mid-sequence
    - completed: the loop ran past the final unit
    """

    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"
    COMPLETED = "completed"


def check_words_per_minute(words_per_minute: float) -> None:
    """Reject speeds that cannot pace anything: non-numbers, NaN, infinity, <= 0."""
    if isinstance(words_per_minute, bool) or not isinstance(words_per_minute, numbers.Real):
        raise ConfigurationError(
            "words_per_minute must be a number, got {!r}".format(words_per_minute)
        )
    if not math.isfinite(words_per_minute) or not words_per_minute > 0:
        raise ConfigurationError(
            "words_per_minute must be a finite number greater than 0, got {}".format(
                words_per_minute
            )
        )


def normalize_abbreviations(abbreviations: Iterable[str]) -> Tuple[str, ...]:
    """Strip trailing periods and drop case-insensitive duplicates.

    "Mr" and "Mr." name the same abbreviation; the splitter adds the period
    itself when it builds the boundary guard.
    """
    seen = set()
    result = []
    for abbreviation in abbreviations:
        cleaned = abbreviation.strip().rstrip(".")
        if not cleaned or cleaned.lower() in seen:
            continue
        seen.add(cleaned.lower())
        result.append(cleaned)
    return tuple(result)


@dataclass(frozen=True)
class PlaybackConfig:
    """Grouping and pacing settings for one reader.

    WHY: The controller segments and paces with the same settings for the
    lifetime of a session. Bundling them makes "did the config change?" a
    single equality check.

    RULES:
    - grouping_mode: GroupingMode (plain strings "words"/"sentences" accepted)
    - group_size: words per unit (WORDS) or sentences per unit (SENTENCES)
    - words_per_minute: target reading speed, any positive number
    - abbreviations: period-terminated words that do not end a sentence
    """

    grouping_mode: GroupingMode = GroupingMode.WORDS
    group_size: int = 1
    words_per_minute: float = 250
    abbreviations: Tuple[str, ...] = config.DEFAULT_ABBREVIATIONS

    def __post_init__(self) -> None:
        try:
            mode = GroupingMode(self.grouping_mode)
        except ValueError:
            raise ConfigurationError(
                "Unknown grouping mode '{}'. Available: {}".format(
                    self.grouping_mode, ", ".join(m.value for m in GroupingMode)
                )
            ) from None
        object.__setattr__(self, "grouping_mode", mode)

        if isinstance(self.group_size, bool) or not isinstance(self.group_size, int):
            raise ConfigurationError(
                "group_size must be an integer, got {!r}".format(self.group_size)
            )
        if self.group_size < 1:
            raise ConfigurationError(
                "group_size must be at least 1, got {}".format(self.group_size)
            )
        check_words_per_minute(self.words_per_minute)
        object.__setattr__(
            self, "abbreviations", normalize_abbreviations(self.abbreviations)
        )

    @property
    def segmentation_key(self) -> Tuple[GroupingMode, int, Tuple[str, ...]]:
        """The settings that change the unit sequence (speed does not)."""
        return (self.grouping_mode, self.group_size, self.abbreviations)

    @classmethod
    def from_env(cls) -> PlaybackConfig:
        """Build a config from the WORDBYWORD_* defaults in wordbyword.config.

        RULES:
        - Non-numeric WPM or group size raises ConfigurationError
        - WORDBYWORD_ABBREVIATIONS, when set, replaces the built-in list
        """
        try:
            words_per_minute = float(config.DEFAULT_WORDS_PER_MINUTE)
        except ValueError:
            raise ConfigurationError(
                "WORDBYWORD_WPM must be a number, got '{}'".format(
                    config.DEFAULT_WORDS_PER_MINUTE
                )
            ) from None
        try:
            group_size = int(config.DEFAULT_GROUP_SIZE)
        except ValueError:
            raise ConfigurationError(
                "WORDBYWORD_GROUP_SIZE must be an integer, got '{}'".format(
                    config.DEFAULT_GROUP_SIZE
                )
            ) from None

        abbreviations = config.DEFAULT_ABBREVIATIONS
        if config.ABBREVIATIONS_OVERRIDE.strip():
            abbreviations = config.parse_abbreviations(config.ABBREVIATIONS_OVERRIDE)

        return cls(
            grouping_mode=config.DEFAULT_GROUPING_MODE.strip().lower(),
            group_size=group_size,
            words_per_minute=words_per_minute,
            abbreviations=abbreviations,
        )


@dataclass(frozen=True)
class PlaybackEvent:
    """What observers are told on every advance and state change.

    RULES:
    - index: active unit index (0 when there are no units)
    - unit: the displayed text, "" when nothing is shown
    - total: number of units in the active sequence
    - elapsed_s: reading time in seconds, only set once the run ended at
      the last unit; None otherwise
    """

    index: int
    unit: str
    total: int
    state: PlaybackState
    busy: bool
    grouping_mode: GroupingMode
    elapsed_s: Optional[float] = None
