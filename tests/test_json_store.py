"""Unit tests for JsonLibraryStore persistence."""

from __future__ import annotations

import json

import pytest

from wordbyword import config
from wordbyword.library.json_store import JsonLibraryStore, LibraryError


@pytest.fixture
def library_path(tmp_path):
    return tmp_path / "nested" / "library.json"


class TestLoad:
    def test_missing_file_is_empty_library(self, library_path):
        store = JsonLibraryStore(library_path)
        assert store.list_documents() == []
        assert not library_path.exists()

    def test_default_path_comes_from_config(self, tmp_path, monkeypatch):
        monkeypatch.setattr(config, "LIBRARY_PATH", tmp_path / "default.json")
        assert JsonLibraryStore().path == tmp_path / "default.json"

    def test_invalid_json_raises(self, tmp_path):
        path = tmp_path / "library.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(LibraryError):
            JsonLibraryStore(path)

    def test_non_list_raises(self, tmp_path):
        path = tmp_path / "library.json"
        path.write_text(json.dumps({"id": "doc"}), encoding="utf-8")
        with pytest.raises(LibraryError, match="JSON list"):
            JsonLibraryStore(path)

    def test_malformed_entries_are_skipped(self, tmp_path):
        path = tmp_path / "library.json"
        path.write_text(
            json.dumps([
                {"id": "good", "title": "Good", "text": "hello", "current_word_index": 2},
                {"title": "no id"},
                "not an object",
                {"id": "bad", "current_word_index": "lots"},
            ]),
            encoding="utf-8",
        )
        store = JsonLibraryStore(path)
        documents = store.list_documents()
        assert [d.id for d in documents] == ["good"]
        assert documents[0].current_word_index == 2
        assert documents[0].current_sentence_index == 0

    def test_negative_offsets_are_clamped(self, tmp_path):
        path = tmp_path / "library.json"
        path.write_text(
            json.dumps([{"id": "doc", "current_sentence_index": -3}]),
            encoding="utf-8",
        )
        document = JsonLibraryStore(path).get_document("doc")
        assert document.current_sentence_index == 0


class TestSave:
    def test_mutations_are_written(self, library_path):
        store = JsonLibraryStore(library_path)
        document = store.add_document("Mr. Smith went home.", title="Story", document_id="doc")
        store.set_saved_offsets(document, 2, 1)

        saved = json.loads(library_path.read_text(encoding="utf-8"))
        assert saved == [{
            "id": "doc",
            "title": "Story",
            "text": "Mr. Smith went home.",
            "current_word_index": 2,
            "current_sentence_index": 1,
        }]

    def test_reload_restores_offsets(self, library_path):
        store = JsonLibraryStore(library_path)
        document = store.add_document("text", document_id="doc")
        store.set_saved_offsets(document, 7, 3)

        reloaded = JsonLibraryStore(library_path)
        assert reloaded.get_saved_offsets(reloaded.get_document("doc")) == (7, 3)

    def test_busy_documents_are_not_written(self, library_path):
        store = JsonLibraryStore(library_path)
        store.add_document("done", document_id="done")
        busy = store.add_document("", document_id="busy")
        busy.is_busy = True
        store.save()

        saved = json.loads(library_path.read_text(encoding="utf-8"))
        assert [entry["id"] for entry in saved] == ["done"]

    def test_remove_is_written(self, library_path):
        store = JsonLibraryStore(library_path)
        store.add_document("text", document_id="doc")
        store.remove_document("doc")
        assert json.loads(library_path.read_text(encoding="utf-8")) == []

    def test_unicode_is_kept_readable(self, library_path):
        store = JsonLibraryStore(library_path)
        store.add_document("Wait… “what”", document_id="doc")
        assert "Wait… “what”" in library_path.read_text(encoding="utf-8")

    def test_no_temp_files_left_behind(self, library_path):
        store = JsonLibraryStore(library_path)
        store.add_document("text", document_id="doc")
        assert [p.name for p in library_path.parent.iterdir()] == ["library.json"]
