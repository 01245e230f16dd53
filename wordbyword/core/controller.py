"""Playback controller: drives a document's units at a paced cadence.

WHY: Segmenting and pacing are pure; playback is not. Something has to
own the current position, wait the right amount of time between units,
stop immediately when the reader pauses or steps, remember where they
stopped, and time how long a full read took. This module is that owner.

HOW: Four components work together:
  CancellationToken   — one per run; its sleep() is the cancellable delay
  Stopwatch           — accumulates reading time across pause/resume
  PlaybackController  — commands (configure/start/pause/step/stop/reset),
                        the advance loop, and observer notification
  PlaybackStateError  — raised when a command is not valid in the
                        current state (PlaybackBusyError for start)

State machine:
  idle ──start──▶ running ──pause/step/stop──▶ paused
                     │                            │
                     └──── last unit done ──▶ completed
  paused/completed ──reset/stop──▶ idle

RULES:
- At most one advance loop per controller; start() while running raises
  PlaybackBusyError
- Single writer: while running, only the loop writes the current index.
  Every command that moves the index first cancels the token and waits
  for the loop task to finish before touching the index
- A cancelled delay is a pause signal, never an error; the loop returns
  PlaybackState.PAUSED
- Any other exception in the loop (a failing listener, an unpaceable
  unit) leaves the session PAUSED at the current unit and propagates out
  of start(); no event is published for that transition
- Word mode computes one delay from group_size at loop start; sentence
  mode computes each unit's delay from its own word count
- Saved offsets are written only when playback pauses, completes, stops
  or resets; a pause at the last unit saves 0
- Changing grouping mode, group size or abbreviations stops the session
  first; changing only the speed takes effect on the next start()
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Callable, List, Optional, Tuple

from wordbyword import config
from wordbyword.core.models import (
    GroupingMode,
    PlaybackConfig,
    PlaybackEvent,
    PlaybackState,
)
from wordbyword.core.pacer import compute_delay_ms
from wordbyword.core.segmenter import UnitSequence, count_words, segment
from wordbyword.dictionary.client import DefinitionLookup
from wordbyword.library.documents import Document, DocumentStore

logger = logging.getLogger(__name__)

Listener = Callable[[PlaybackEvent], None]


class PlaybackStateError(RuntimeError):
    """Raised when a playback command is issued in a state that forbids it."""


class PlaybackBusyError(PlaybackStateError):
    """Raised by start() while a playback loop is already running."""


class PlaybackCancelled(Exception):
    """The in-flight unit delay was cancelled by a pause, step, stop or reset."""


# ---------------------------------------------------------------------------
# Cancellation and timing primitives
# ---------------------------------------------------------------------------


class CancellationToken:
    """Cancellation flag for one playback run, observable at the delay.

    WHY: The only suspension point of the advance loop is the per-unit
    delay, so that is where cancellation has to be seen. An asyncio.Event
    lets the delay end early the moment the flag is set.

    RULES:
    - Create inside a running event loop (start() does this)
    - A token is never reset; each run gets a fresh one
    - sleep() raises PlaybackCancelled if the token is or becomes cancelled
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        self._event.set()

    async def sleep(self, delay_ms: int) -> None:
        """Wait delay_ms milliseconds unless cancelled first."""
        if self._event.is_set():
            raise PlaybackCancelled()
        try:
            await asyncio.wait_for(self._event.wait(), timeout=max(delay_ms, 0) / 1000)
        except asyncio.TimeoutError:
            return
        raise PlaybackCancelled()


class Stopwatch:
    """Accumulating stopwatch with an injectable monotonic clock."""

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._accumulated = 0.0
        self._started_at: Optional[float] = None

    @property
    def running(self) -> bool:
        return self._started_at is not None

    @property
    def elapsed(self) -> float:
        if self._started_at is None:
            return self._accumulated
        return self._accumulated + (self._clock() - self._started_at)

    def start(self) -> None:
        if self._started_at is None:
            self._started_at = self._clock()

    def stop(self) -> None:
        if self._started_at is not None:
            self._accumulated += self._clock() - self._started_at
            self._started_at = None

    def restart(self) -> None:
        self._accumulated = 0.0
        self._started_at = self._clock()

    def reset(self) -> None:
        self._accumulated = 0.0
        self._started_at = None


# ---------------------------------------------------------------------------
# Controller
# ---------------------------------------------------------------------------


class PlaybackController:
    """Plays one document at a time through the segmenter and pacer.

    WHY: A reader front-end (terminal, GUI, web) should only have to say
    "start", "pause", "back one", and draw whatever it is told to draw.
    All ordering, timing and bookkeeping lives here.

    HOW: start() segments the document (reusing the previous units when the
    text and segmentation settings are unchanged), picks the start index
    (the session index after a step, the store's saved offset, or 0), and
    runs the advance loop as an asyncio task which it awaits. Other
    commands cancel the run's token and wait for that task before acting.
    Every shown unit and every state change is pushed to subscribers as a
    PlaybackEvent.

    RULES:
    - All commands must be called from the event loop that runs start()
    - Listener exceptions propagate to whoever triggered the publish
    - The controller never edits document text; it reads it via the store
    """

    def __init__(
        self,
        store: DocumentStore,
        playback_config: Optional[PlaybackConfig] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._store = store
        self._config = playback_config or PlaybackConfig()
        self._listeners: List[Listener] = []
        self._stopwatch = Stopwatch(clock)

        self._document: Optional[Document] = None
        self._units: Optional[UnitSequence] = None
        self._units_key: Optional[Tuple[str, tuple]] = None
        self._index = 0
        self._resume = False
        self._current_unit = ""
        self._elapsed_s: Optional[float] = None
        self._state = PlaybackState.IDLE
        self._token: Optional[CancellationToken] = None
        self._task: Optional["asyncio.Task[PlaybackState]"] = None
        self._save_on_halt = False

    # ------------------------------------------------------------------
    # Observable state
    # ------------------------------------------------------------------

    @property
    def config(self) -> PlaybackConfig:
        return self._config

    @property
    def state(self) -> PlaybackState:
        return self._state

    @property
    def busy(self) -> bool:
        return self._state is PlaybackState.RUNNING

    @property
    def document(self) -> Optional[Document]:
        return self._document

    @property
    def units(self) -> UnitSequence:
        return self._units or ()

    @property
    def current_index(self) -> int:
        return self._index

    @property
    def current_unit(self) -> str:
        return self._current_unit

    @property
    def resume(self) -> bool:
        return self._resume

    @property
    def elapsed_s(self) -> Optional[float]:
        """Reading time of the last run that ended at the final unit."""
        return self._elapsed_s

    @property
    def at_end(self) -> bool:
        """True when the active index is the last unit of the active sequence."""
        return bool(self._units) and self._index == len(self._units) - 1

    @property
    def at_beginning(self) -> bool:
        return self._index == 0

    def snapshot(self) -> PlaybackEvent:
        return PlaybackEvent(
            index=self._index,
            unit=self._current_unit,
            total=len(self.units),
            state=self._state,
            busy=self.busy,
            grouping_mode=self._config.grouping_mode,
            elapsed_s=self._elapsed_s,
        )

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener; returns a callable that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    async def configure(
        self,
        grouping_mode: Optional[GroupingMode] = None,
        group_size: Optional[int] = None,
        words_per_minute: Optional[float] = None,
        abbreviations: Optional[Tuple[str, ...]] = None,
    ) -> PlaybackConfig:
        """Validate and store new settings; unspecified settings are kept.

        Raises:
            ConfigurationError: If the resulting configuration is invalid.
                The previous configuration stays in effect.
        """
        current = self._config
        new_config = PlaybackConfig(
            grouping_mode=current.grouping_mode if grouping_mode is None else grouping_mode,
            group_size=current.group_size if group_size is None else group_size,
            words_per_minute=(
                current.words_per_minute if words_per_minute is None else words_per_minute
            ),
            abbreviations=current.abbreviations if abbreviations is None else abbreviations,
        )

        if (
            new_config.segmentation_key != current.segmentation_key
            and self._document is not None
        ):
            await self.stop()

        self._config = new_config
        logger.info(
            "Configured %s x%d at %s wpm",
            new_config.grouping_mode.value,
            new_config.group_size,
            new_config.words_per_minute,
        )
        return new_config

    async def start(self, document: Document) -> PlaybackState:
        """Play `document` from its saved position until done or interrupted.

        Returns:
            PlaybackState.COMPLETED if the last unit was shown and its delay
            elapsed, PlaybackState.PAUSED if a command cancelled the run.

        Raises:
            PlaybackBusyError: If a run is already in progress.
            ConfigurationError: If the current settings cannot pace the text.
        """
        if self.busy:
            raise PlaybackBusyError(
                "Cannot start '{}': already playing '{}'".format(
                    document.id, self._document.id if self._document else "?"
                )
            )

        if self._document is not None and self._document.id != document.id:
            self._persist_position()
            self._end_session()

        text = self._store.get_text(document)
        previous_units = self._units
        units = self._materialize(text)
        if units is not previous_units:
            self._resume = False
        self._document = document

        if not self._resume:
            self._index = self._saved_index(document, len(units))
            self._resume = self._index != 0

        if not units:
            logger.info("Document %s has no text to play", document.id)
            self._index = 0
            self._current_unit = ""
            self._state = PlaybackState.COMPLETED
            self._publish()
            return self._state

        start_index = self._index if self._resume else 0
        self._index = start_index
        self._start_stopwatch()
        self._token = CancellationToken()
        self._state = PlaybackState.RUNNING
        logger.info(
            "Playing %s from unit %d/%d (resume=%s)",
            document.id, start_index, len(units), self._resume,
        )

        self._task = asyncio.ensure_future(
            self._advance(units, start_index, self._config, self._token)
        )
        return await self._task

    async def pause(self) -> None:
        """Cancel the running delay and save the position for later resume.

        Raises:
            PlaybackStateError: If nothing is playing.
        """
        if self._state is not PlaybackState.RUNNING:
            raise PlaybackStateError(
                "Cannot pause: playback is {}".format(self._state.value)
            )

        self._save_on_halt = True
        await self._interrupt()

    async def step_forward(self) -> int:
        """Show the next unit without waiting; a no-op at the last unit.

        Returns:
            The index now displayed.

        Raises:
            PlaybackStateError: If no document has been started.
        """
        units = self._require_units("step forward")
        await self._interrupt()
        if self._index < len(units) - 1:
            self._index += 1
            self._show_step(units)
        return self._index

    async def step_backward(self) -> int:
        """Show the previous unit without waiting; a no-op at index 0.

        Raises:
            PlaybackStateError: If no document has been started.
        """
        units = self._require_units("step backward")
        await self._interrupt()
        if self._index > 0:
            self._index -= 1
            self._show_step(units)
        return self._index

    async def stop(self) -> None:
        """End the session, keeping the saved position of a paused read."""
        if self._document is None:
            return
        await self._interrupt()
        self._persist_position()
        self._end_session()

    async def reset(self) -> None:
        """End the session and rewind the document to the beginning."""
        document = self._document
        await self._interrupt()
        self._end_session()
        if document is not None:
            self._store.set_saved_offsets(document, 0, 0)
            logger.info("Reset %s to the beginning", document.id)

    async def define_current_unit(self, lookup: DefinitionLookup) -> str:
        """Look up the displayed word; returns a fallback text if unknown.

        RULES:
        - Only while not playing, in word mode with group_size 1
        - A word must be displayed

        Raises:
            PlaybackStateError: If any of the rules above is violated.
        """
        if self.busy:
            raise PlaybackStateError("Cannot look up a definition while playing")
        if (
            self._config.grouping_mode is not GroupingMode.WORDS
            or self._config.group_size != 1
        ):
            raise PlaybackStateError(
                "Definitions are only available when reading one word at a time"
            )
        if not self._current_unit:
            raise PlaybackStateError("No word is displayed")

        definition = await lookup.define(self._current_unit)
        return definition or config.NO_DEFINITION_MESSAGE

    # ------------------------------------------------------------------
    # Advance loop
    # ------------------------------------------------------------------

    async def _advance(
        self,
        units: UnitSequence,
        start_index: int,
        playback_config: PlaybackConfig,
        token: CancellationToken,
    ) -> PlaybackState:
        last_index = len(units) - 1
        fixed_delay_ms: Optional[int] = None
        try:
            if playback_config.grouping_mode is GroupingMode.WORDS:
                fixed_delay_ms = compute_delay_ms(
                    playback_config.words_per_minute, playback_config.group_size
                )

            for index in range(start_index, len(units)):
                self._index = index
                unit = units[index]
                if unit.strip():
                    self._current_unit = unit
                    self._publish()
                    if fixed_delay_ms is not None:
                        delay_ms = fixed_delay_ms
                    else:
                        delay_ms = compute_delay_ms(
                            playback_config.words_per_minute, count_words(unit)
                        )
                    logger.debug("Unit %d/%d for %d ms", index, last_index, delay_ms)
                    await token.sleep(delay_ms)

                if self._resume and index == last_index:
                    self._resume = False
        except PlaybackCancelled:
            self._halt()
            return self._state
        except asyncio.CancelledError:
            self._halt()
            raise
        except Exception:
            logger.exception(
                "Playback of %s failed at unit %d",
                self._document.id if self._document else "?", self._index,
            )
            self._abort()
            raise

        self._capture_elapsed()
        self._stopwatch.stop()
        self._state = PlaybackState.COMPLETED
        self._save_on_halt = False
        self._persist_offset(0)
        logger.info(
            "Finished %s in %.1fs", self._document.id if self._document else "?",
            self._elapsed_s or 0.0,
        )
        self._publish()
        return self._state

    def _abort(self) -> None:
        """Leave a failed run paused at its current unit, without publishing."""
        if self._current_unit:
            self._resume = True
        self._stopwatch.stop()
        self._save_on_halt = False
        self._state = PlaybackState.PAUSED

    def _halt(self) -> None:
        """Bookkeeping for a run whose delay was cancelled."""
        if self._current_unit:
            self._resume = True
        self._capture_elapsed()
        self._stopwatch.stop()
        self._state = PlaybackState.PAUSED

        if self._save_on_halt:
            self._save_on_halt = False
            if self.at_end:
                self._resume = False
                self._persist_offset(0)
            else:
                self._persist_offset(self._index)
            logger.info(
                "Paused %s at unit %d",
                self._document.id if self._document else "?", self._index,
            )
        self._publish()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _interrupt(self) -> None:
        """Cancel the current run and wait until its loop has exited."""
        if self._token is not None:
            self._token.cancel()
        task = self._task
        if task is not None and not task.done():
            await asyncio.wait({task})

    def _materialize(self, text: str) -> UnitSequence:
        key = (text, self._config.segmentation_key)
        if self._units is not None and self._units_key == key:
            logger.debug("Reusing %d units", len(self._units))
            return self._units
        units = segment(text, self._config)
        logger.debug("Segmented %d chars into %d units", len(text), len(units))
        self._units = units
        self._units_key = key
        return units

    def _saved_index(self, document: Document, total: int) -> int:
        word_offset, sentence_offset = self._store.get_saved_offsets(document)
        if self._config.grouping_mode is GroupingMode.SENTENCES:
            saved = sentence_offset
        else:
            saved = word_offset
        if saved >= total:
            if saved:
                logger.info(
                    "Saved offset %d of %s is past its %d units, starting over",
                    saved, document.id, total,
                )
            return 0
        return saved

    def _start_stopwatch(self) -> None:
        if self.at_beginning or self.at_end:
            self._stopwatch.restart()
            self._elapsed_s = None
        else:
            self._stopwatch.start()

    def _capture_elapsed(self) -> None:
        if self.at_end:
            self._elapsed_s = self._stopwatch.elapsed

    def _show_step(self, units: UnitSequence) -> None:
        self._current_unit = units[self._index]
        self._resume = True
        if self._state is PlaybackState.COMPLETED:
            self._state = PlaybackState.PAUSED
        self._publish()

    def _require_units(self, command: str) -> UnitSequence:
        if self._units is None or self._document is None:
            raise PlaybackStateError(
                "Cannot {}: no document has been started".format(command)
            )
        return self._units

    def _persist_offset(self, index: int) -> None:
        if self._document is None:
            return
        word_offset, sentence_offset = self._store.get_saved_offsets(self._document)
        if self._config.grouping_mode is GroupingMode.SENTENCES:
            sentence_offset = index
        else:
            word_offset = index
        self._store.set_saved_offsets(self._document, word_offset, sentence_offset)

    def _persist_position(self) -> None:
        """Save the position of a paused session (0 when paused at the end)."""
        if self._state is PlaybackState.PAUSED and self._units:
            self._persist_offset(0 if self.at_end else self._index)

    def _end_session(self) -> None:
        self._token = None
        self._task = None
        self._document = None
        self._units = None
        self._units_key = None
        self._index = 0
        self._resume = False
        self._current_unit = ""
        self._elapsed_s = None
        self._stopwatch.reset()
        self._state = PlaybackState.IDLE
        self._publish()

    def _publish(self) -> None:
        event = self.snapshot()
        for listener in list(self._listeners):
            listener(event)
