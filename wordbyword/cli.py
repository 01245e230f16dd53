"""Command-line reader: play a text file word by word in the terminal.

WHY: The playback core needs a front-end to be useful, and the terminal
is the smallest one. Running the reader on a file should feel like
opening a book at the bookmark: it resumes where the last run paused.

HOW: Uses argparse for the file and the grouping/speed options (defaults
come from wordbyword.config via PlaybackConfig.from_env()). The file is
registered in the JSON library under its resolved path, then played by a
PlaybackController inside asyncio.run(). Each unit overwrites a single
terminal line. Ctrl+C pauses the run, which saves the position to the
library; the next invocation resumes from there.

RULES:
- Positional argument: path to a UTF-8 text file
- Document id is the resolved file path; if the file's text changed since
  the last run its saved positions are reset
- --restart rewinds the document before playing
- --define-on-pause looks up the displayed word after a pause (word mode,
  group size 1 only)
- Status output goes to stderr; units go to stdout
- Exit codes: 0 completed or paused, 1 configuration/library error,
  130 interrupted without a running session
- Python 3.9 compatible: no match/case, no X | Y unions at runtime
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import sys
from pathlib import Path
from typing import List, Optional, TextIO

from wordbyword import config
from wordbyword.core.controller import PlaybackController, PlaybackStateError
from wordbyword.core.models import (
    ConfigurationError,
    GroupingMode,
    PlaybackConfig,
    PlaybackEvent,
    PlaybackState,
)
from wordbyword.dictionary.client import DictionaryAPIError, DictionaryClient
from wordbyword.library.documents import Document, InMemoryDocumentStore
from wordbyword.library.json_store import JsonLibraryStore, LibraryError

logger = logging.getLogger(__name__)


def _status(msg: str) -> None:
    """Print a status message to stderr so stdout only carries the text."""
    print(msg, file=sys.stderr, flush=True)


class TerminalDisplay:
    """Playback listener that redraws one terminal line per unit."""

    def __init__(self, stream: Optional[TextIO] = None) -> None:
        self._stream = stream or sys.stdout
        self._width = 0

    def __call__(self, event: PlaybackEvent) -> None:
        if event.state is not PlaybackState.RUNNING or not event.unit:
            return
        self._width = max(self._width, len(event.unit))
        self._stream.write("\r{}".format(event.unit.ljust(self._width)))
        self._stream.flush()

    def finish(self) -> None:
        if self._width:
            self._stream.write("\n")
            self._stream.flush()


def build_playback_config(args: argparse.Namespace) -> PlaybackConfig:
    """Merge command-line overrides onto the environment defaults.

    Raises:
        ConfigurationError: If a default or an override is invalid.
    """
    defaults = PlaybackConfig.from_env()
    grouping_mode = defaults.grouping_mode
    if args.sentences:
        grouping_mode = GroupingMode.SENTENCES
    elif args.words:
        grouping_mode = GroupingMode.WORDS

    abbreviations = defaults.abbreviations
    if args.abbreviations is not None:
        abbreviations = config.parse_abbreviations(args.abbreviations)

    return PlaybackConfig(
        grouping_mode=grouping_mode,
        group_size=defaults.group_size if args.group_size is None else args.group_size,
        words_per_minute=defaults.words_per_minute if args.wpm is None else args.wpm,
        abbreviations=abbreviations,
    )


def register_document(store: InMemoryDocumentStore, path: Path) -> Document:
    """Add the file to the library, or refresh it if its text changed.

    The text is stored exactly as it is on disk; line endings are left for
    the segmenter to normalize.
    """
    with path.open(encoding="utf-8", newline="") as f:
        text = f.read()
    document_id = str(path.resolve())
    document = store.get_document(document_id)
    if document is None:
        return store.add_document(text, title=path.name, document_id=document_id)
    if document.text != text:
        _status("Text of {} changed, starting from the beginning.".format(path.name))
        return store.update_text(document_id, text)
    return document


class PauseOnSignal:
    """SIGINT callback that asks the controller to pause.

    RULES:
    - At most one pause request is in flight; repeated Ctrl+C presses while
      it is pending are ignored
    - A request that finds playback already stopped is logged, not raised
    """

    def __init__(self, controller: PlaybackController) -> None:
        self._controller = controller
        self.task: Optional["asyncio.Future[None]"] = None

    def __call__(self) -> None:
        if self.task is not None and not self.task.done():
            return
        if not self._controller.busy:
            return
        self.task = asyncio.ensure_future(self._controller.pause())
        self.task.add_done_callback(self._log_result)

    @staticmethod
    def _log_result(task: "asyncio.Future[None]") -> None:
        if task.cancelled():
            return
        error = task.exception()
        if isinstance(error, PlaybackStateError):
            logger.debug("Pause request ignored: %s", error)
        elif error is not None:
            logger.error("Pause request failed", exc_info=error)


def _install_pause_handler(controller: PlaybackController) -> Optional[PauseOnSignal]:
    """Route SIGINT to controller.pause(). Returns None where unsupported."""
    loop = asyncio.get_running_loop()
    request_pause = PauseOnSignal(controller)

    try:
        loop.add_signal_handler(signal.SIGINT, request_pause)
    except (NotImplementedError, RuntimeError):
        logger.debug("Signal handlers unavailable; Ctrl+C will exit without saving")
        return None
    return request_pause


async def _show_definition(controller: PlaybackController) -> None:
    try:
        async with DictionaryClient() as client:
            definition = await controller.define_current_unit(client)
    except PlaybackStateError as e:
        _status("No definition: {}".format(e))
        return
    except DictionaryAPIError as e:
        _status("Dictionary lookup failed: {}".format(e))
        return
    _status("{}: {}".format(controller.current_unit, definition))


async def _run_reader(args: argparse.Namespace) -> int:
    """Play the file once; returns the process exit code."""
    try:
        playback_config = build_playback_config(args)
        store = JsonLibraryStore(args.library)
        document = register_document(store, Path(args.input_file))
    except (ConfigurationError, LibraryError, OSError, UnicodeDecodeError) as e:
        print("Error: {}".format(e), file=sys.stderr)
        return 1

    if args.restart:
        store.set_saved_offsets(document, 0, 0)

    controller = PlaybackController(store, playback_config)
    display = TerminalDisplay()
    controller.subscribe(display)

    request_pause = _install_pause_handler(controller)
    try:
        state = await controller.start(document)
    finally:
        if request_pause is not None:
            asyncio.get_running_loop().remove_signal_handler(signal.SIGINT)
            if request_pause.task is not None:
                await asyncio.wait({request_pause.task})
        display.finish()

    total = len(controller.units)
    if state is PlaybackState.PAUSED:
        _status("Paused at {}/{}. Run again to resume.".format(
            controller.current_index + 1, total
        ))
        if args.define_on_pause:
            await _show_definition(controller)
    elif total == 0:
        _status("{} has no text to read.".format(document.title or document.id))
    else:
        _status("Finished {} unit(s) in {:.1f}s.".format(total, controller.elapsed_s or 0.0))
    return 0


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for the CLI.

    RULES:
    - Positional: input_file (required)
    - Grouping: --words (default) or --sentences, --group-size N
    - Speed: --wpm N
    - Library: --library PATH, --restart
    """
    parser = argparse.ArgumentParser(
        prog="wordbyword",
        description="Read a text file a few words (or sentences) at a time at a "
                    "steady pace. Ctrl+C pauses and remembers your place.",
    )

    parser.add_argument(
        "input_file",
        help="Path to the UTF-8 text file to read.",
    )

    mode = parser.add_mutually_exclusive_group()
    mode.add_argument(
        "--words",
        action="store_true",
        help="Show groups of words (default unless WORDBYWORD_GROUPING_MODE says otherwise).",
    )
    mode.add_argument(
        "--sentences",
        action="store_true",
        help="Show groups of sentences.",
    )

    parser.add_argument(
        "--group-size",
        type=int,
        default=None,
        help="Words or sentences per display unit (default: {}).".format(
            config.DEFAULT_GROUP_SIZE
        ),
    )

    parser.add_argument(
        "--wpm",
        type=float,
        default=None,
        help="Reading speed in words per minute (default: {}).".format(
            config.DEFAULT_WORDS_PER_MINUTE
        ),
    )

    parser.add_argument(
        "--abbreviations",
        default=None,
        help="Comma-separated words whose period does not end a sentence "
             "(default: {}).".format(",".join(config.DEFAULT_ABBREVIATIONS)),
    )

    parser.add_argument(
        "--library",
        default=None,
        help="Library file holding saved positions (default: {}).".format(
            config.LIBRARY_PATH
        ),
    )

    parser.add_argument(
        "--restart",
        action="store_true",
        help="Start from the beginning instead of the saved position.",
    )

    parser.add_argument(
        "--define-on-pause",
        action="store_true",
        help="After pausing on a single word, look up its definition.",
    )

    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Log debug output to stderr.",
    )

    return parser


def main(argv: Optional[List[str]] = None) -> None:
    """Entry point for ``python -m wordbyword`` and the ``wordbyword`` script.

    RULES:
    - argv=None means use sys.argv (normal CLI invocation)
    - Explicit argv is for testing
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )

    try:
        exit_code = asyncio.run(_run_reader(args))
    except KeyboardInterrupt:
        _status("\nInterrupted.")
        sys.exit(130)
    if exit_code:
        sys.exit(exit_code)


if __name__ == "__main__":
    main()
