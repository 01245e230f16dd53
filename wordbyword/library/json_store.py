"""Document library persisted to a JSON file.

WHY: A reader that forgets where you stopped is not resumable across
runs. The library (titles, texts, saved positions) is small enough to
live in one JSON file next to the user's other settings.

HOW: JsonLibraryStore extends InMemoryDocumentStore. It loads the file on
construction and rewrites it after every mutation through the _on_change
hook, so a saved offset reaches disk at the same pause/stop boundary the
controller writes it.

RULES:
- A missing file is an empty library; its parent directory is created on
  first save
- A file that is not a JSON list raises LibraryError
- Entries without an "id" are skipped with a warning
- Busy documents are not written to disk
- Writes go to a temp file first and are renamed into place
- save() is synchronous. The controller triggers it from inside the event
  loop on pause, stop, reset and completion, so each write blocks the loop
  for the duration of one small file write
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from dataclasses import asdict
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from wordbyword import config
from wordbyword.library.documents import Document, InMemoryDocumentStore

logger = logging.getLogger(__name__)


class LibraryError(Exception):
    """Raised when the library file exists but cannot be read as a library."""


def _document_from_dict(data: Dict[str, Any]) -> Document:
    return Document(
        id=str(data["id"]),
        title=str(data.get("title", "")),
        text=str(data.get("text", "")),
        current_word_index=max(0, int(data.get("current_word_index", 0))),
        current_sentence_index=max(0, int(data.get("current_sentence_index", 0))),
    )


def _document_to_dict(document: Document) -> Dict[str, Any]:
    data = asdict(document)
    data.pop("is_busy")
    return data


class JsonLibraryStore(InMemoryDocumentStore):
    """Document store backed by a library.json file."""

    def __init__(self, path: Optional[Union[str, Path]] = None) -> None:
        self.path = Path(path) if path is not None else config.LIBRARY_PATH
        super().__init__(self._load())

    def _load(self) -> List[Document]:
        if not self.path.exists():
            logger.info("No library at %s, starting empty", self.path)
            return []

        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise LibraryError(
                "Could not read library file {}: {}".format(self.path, e)
            ) from e

        if not isinstance(raw, list):
            raise LibraryError(
                "Library file {} must contain a JSON list of documents".format(self.path)
            )

        documents = []
        for entry in raw:
            if not isinstance(entry, dict) or "id" not in entry:
                logger.warning("Skipping malformed library entry in %s", self.path)
                continue
            try:
                documents.append(_document_from_dict(entry))
            except (TypeError, ValueError):
                logger.warning(
                    "Skipping library entry %s with invalid offsets", entry["id"]
                )

        logger.info("Loaded %d document(s) from %s", len(documents), self.path)
        return documents

    def save(self) -> None:
        """Write every non-busy document to the library file.

        Blocking file I/O; called on the event loop thread when playback
        saves an offset.
        """
        with self._lock:
            payload = [
                _document_to_dict(document)
                for document in self._documents.values()
                if not document.is_busy
            ]

        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            prefix=".library_", suffix=".json", dir=str(self.path.parent)
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(payload, f, indent=2, ensure_ascii=False)
            os.replace(tmp_name, self.path)
        except OSError:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise

        logger.debug("Saved %d document(s) to %s", len(payload), self.path)

    def _on_change(self) -> None:
        self.save()
