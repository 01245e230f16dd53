"""Document library: documents, their text and their saved reading positions.

WHY: The playback core needs a document's text and the position the
reader last stopped at, and must be able to write that position back.
It does not care where documents live.

HOW: documents.py defines the Document dataclass, the DocumentStore
protocol the controller depends on, and an in-memory store. json_store.py
adds a store that persists the library to a JSON file.

RULES:
- The controller only calls get_text, get_saved_offsets, set_saved_offsets
- Stores never segment or interpret text
"""

from wordbyword.library.documents import Document, DocumentStore, InMemoryDocumentStore
from wordbyword.library.json_store import JsonLibraryStore, LibraryError

__all__ = [
    "Document",
    "DocumentStore",
    "InMemoryDocumentStore",
    "JsonLibraryStore",
    "LibraryError",
]
