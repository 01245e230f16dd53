"""Shared fixtures for the wordbyword test suite.

WHY: Segmenter, controller and CLI tests all read the same handful of
sample texts, and every controller test needs a store and a way to run
playback without real waiting.

HOW: Sample texts are module constants. The `store` fixture is a fresh
InMemoryDocumentStore. The `instant_delays` fixture replaces
CancellationToken.sleep with a version that records the requested delay,
yields to the event loop once, and still honours cancellation, so pause
and step tests are fast and deterministic.

RULES:
- Each test gets its own store (no shared mutable state)
- Controller tests run their coroutines with asyncio.run()
"""

from __future__ import annotations

import asyncio
from typing import List

import pytest

from wordbyword.core.controller import CancellationToken, PlaybackCancelled
from wordbyword.library.documents import InMemoryDocumentStore

SOLEMN_TEXT = "I solemnly swear\r\nI am up to no good."

PLAGUEIS_TEXT = (
    "Did you ever hear the tragedy of Darth Plagueis the Wise? "
    "I thought not. It's not a story the Jedi would tell you. It's a Sith legend. "
    "Darth Plagueis was a Dark Lord of the Sith, so powerful and so wise he could "
    "use the Force to influence the midichlorians to create life..."
)

PLAGUEIS_SENTENCES = [
    "Did you ever hear the tragedy of Darth Plagueis the Wise?",
    "I thought not.",
    "It's not a story the Jedi would tell you.",
    "It's a Sith legend.",
    "Darth Plagueis was a Dark Lord of the Sith, so powerful and so wise he could "
    "use the Force to influence the midichlorians to create life...",
]

QUOTE_TEXT = "\"I'm going to make him an offer he cannot refuse.\" He said."

# 600,000 wpm floors to 0 ms per word
FAST_WPM = 600_000


@pytest.fixture
def store():
    """A fresh, empty in-memory document store."""
    return InMemoryDocumentStore()


@pytest.fixture
def instant_delays(monkeypatch) -> List[int]:
    """Make unit delays instant; returns the list of requested delays (ms)."""
    requested: List[int] = []

    async def fake_sleep(self, delay_ms):
        requested.append(delay_ms)
        if self.cancelled:
            raise PlaybackCancelled()
        await asyncio.sleep(0)
        if self.cancelled:
            raise PlaybackCancelled()

    monkeypatch.setattr(CancellationToken, "sleep", fake_sleep)
    return requested
