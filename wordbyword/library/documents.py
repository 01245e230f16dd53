"""Documents and the in-memory document store.

WHY: A document is the unit the reader opens: some text plus the last
word-group and sentence-group positions reached in it. The playback
controller reads text and positions and writes positions back, so several
callers (CLI, tests, future front-ends) need one shared, thread-safe place
for that state.

HOW: Three components:
  Document              — dataclass holding id, title, text and offsets
  DocumentStore         — typing.Protocol with the three calls the
                          controller makes
  InMemoryDocumentStore — dict-based store with add/get/list/remove and the
                          protocol methods, guarded by a threading.Lock

RULES:
- All store mutations are protected by self._lock
- Offsets are per grouping mode: word-group index and sentence-group index
- Offsets must be >= 0; negative offsets raise ValueError
- Replacing a document's text resets both offsets (old positions are stale)
- get_document() returns None for unknown ids; the protocol methods raise
  KeyError so the controller never plays a document the store lost
"""

from __future__ import annotations

import logging
import threading
import uuid
from dataclasses import dataclass
from typing import Dict, List, Optional, Protocol, Tuple

logger = logging.getLogger(__name__)


@dataclass
class Document:
    """A readable text and where the reader last stopped in it.

    RULES:
    - id: unique, immutable after creation
    - current_word_index: saved unit index for word-group playback
    - current_sentence_index: saved unit index for sentence-group playback
    - is_busy: True while the text is still being produced (e.g. by OCR);
      busy documents are not persisted
    """

    id: str
    title: str = ""
    text: str = ""
    current_word_index: int = 0
    current_sentence_index: int = 0
    is_busy: bool = False


class DocumentStore(Protocol):
    """The narrow interface the playback controller needs from a library."""

    def get_text(self, document: Document) -> str:
        ...

    def get_saved_offsets(self, document: Document) -> Tuple[int, int]:
        ...

    def set_saved_offsets(
        self, document: Document, word_index: int, sentence_index: int
    ) -> None:
        ...


class InMemoryDocumentStore:
    """Thread-safe in-memory document library.

    WHY: The controller may run its playback loop while another thread
    (a UI, a signal handler) adds or edits documents. A single lock around
    the dict keeps reads and writes consistent.

    HOW: Documents are stored in a dict keyed by id. Callers hold live
    Document objects; the store updates those same objects so a caller's
    reference always shows the latest offsets.
    """

    def __init__(self, documents: Optional[List[Document]] = None) -> None:
        self._documents: Dict[str, Document] = {}
        self._lock = threading.Lock()
        for document in documents or []:
            self._documents[document.id] = document

    # ------------------------------------------------------------------
    # Library management
    # ------------------------------------------------------------------

    def add_document(
        self,
        text: str,
        title: str = "",
        document_id: Optional[str] = None,
    ) -> Document:
        """Create and store a document with offsets at 0.

        Raises:
            ValueError: If document_id is already in the library.
        """
        with self._lock:
            doc_id = document_id or uuid.uuid4().hex
            if doc_id in self._documents:
                raise ValueError("Document '{}' already exists".format(doc_id))
            document = Document(id=doc_id, title=title, text=text)
            self._documents[doc_id] = document

        logger.info("Added document %s (%d chars)", doc_id, len(text))
        self._on_change()
        return document

    def get_document(self, document_id: str) -> Optional[Document]:
        with self._lock:
            return self._documents.get(document_id)

    def list_documents(self) -> List[Document]:
        """Snapshot of all documents, ordered by title then id."""
        with self._lock:
            return sorted(self._documents.values(), key=lambda d: (d.title, d.id))

    def update_text(self, document_id: str, text: str) -> Document:
        """Replace a document's text and reset its saved offsets.

        Raises:
            KeyError: If the document is not in the library.
        """
        with self._lock:
            document = self._require(document_id)
            document.text = text
            document.current_word_index = 0
            document.current_sentence_index = 0

        logger.info("Replaced text of document %s", document_id)
        self._on_change()
        return document

    def rename_document(self, document_id: str, title: str) -> Document:
        with self._lock:
            document = self._require(document_id)
            document.title = title
        self._on_change()
        return document

    def remove_document(self, document_id: str) -> bool:
        """Remove a document. Returns False if it was not in the library."""
        with self._lock:
            document = self._documents.pop(document_id, None)

        if document is None:
            return False
        logger.info("Removed document %s", document_id)
        self._on_change()
        return True

    # ------------------------------------------------------------------
    # DocumentStore protocol
    # ------------------------------------------------------------------

    def get_text(self, document: Document) -> str:
        with self._lock:
            return self._require(document.id).text

    def get_saved_offsets(self, document: Document) -> Tuple[int, int]:
        with self._lock:
            stored = self._require(document.id)
            return stored.current_word_index, stored.current_sentence_index

    def set_saved_offsets(
        self, document: Document, word_index: int, sentence_index: int
    ) -> None:
        """Persist the reader's position for both grouping modes.

        Raises:
            KeyError: If the document is not in the library.
            ValueError: If either offset is negative.
        """
        if word_index < 0 or sentence_index < 0:
            raise ValueError(
                "Offsets must not be negative, got ({}, {})".format(
                    word_index, sentence_index
                )
            )
        with self._lock:
            stored = self._require(document.id)
            stored.current_word_index = word_index
            stored.current_sentence_index = sentence_index
            if document is not stored:
                document.current_word_index = word_index
                document.current_sentence_index = sentence_index

        logger.debug(
            "Saved offsets for %s: word=%d sentence=%d",
            document.id, word_index, sentence_index,
        )
        self._on_change()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _require(self, document_id: str) -> Document:
        """Look up a document; caller must hold self._lock."""
        document = self._documents.get(document_id)
        if document is None:
            raise KeyError("Document '{}' is not in the library".format(document_id))
        return document

    def _on_change(self) -> None:
        """Hook called after every mutation, outside the lock."""
