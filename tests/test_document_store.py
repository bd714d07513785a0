from __future__ import annotations

from datetime import datetime, timedelta
from pathlib import Path

import pytest

from document_store import JsonDocumentStore
from models import Document


@pytest.fixture
def store(tmp_path: Path) -> JsonDocumentStore:
    return JsonDocumentStore(path=tmp_path / "documents.json")


def _doc(doc_id: str, title: str, transcript: str, minutes: int) -> Document:
    return Document(
        id=doc_id,
        title=title,
        transcript=transcript,
        created_at=datetime(2025, 12, 10, 15, 0) + timedelta(minutes=minutes),
    )


def test_put_and_get_roundtrip(store: JsonDocumentStore) -> None:
    doc = _doc("a", "Groceries", "milk and eggs", 0)
    doc.summary = "## Summary\n• milk"

    store.put(doc)

    assert store.get("a") == doc
    assert store.get("missing") is None


def test_get_all_is_newest_first(store: JsonDocumentStore) -> None:
    store.put(_doc("old", "Old", "x", 0))
    store.put(_doc("new", "New", "y", 10))
    store.put(_doc("mid", "Mid", "z", 5))

    assert [d.id for d in store.get_all()] == ["new", "mid", "old"]
    assert store.count() == 3


def test_put_overwrites_same_id(store: JsonDocumentStore) -> None:
    store.put(_doc("a", "First", "one", 0))
    store.put(_doc("a", "Second", "two", 0))

    assert store.count() == 1
    assert store.get("a").title == "Second"


def test_delete_removes_document(store: JsonDocumentStore) -> None:
    store.put(_doc("a", "A", "x", 0))

    store.delete("a")
    store.delete("a")

    assert store.get("a") is None
    assert store.count() == 0


def test_search_matches_title_or_transcript_case_insensitively(store: JsonDocumentStore) -> None:
    store.put(_doc("1", "Team Meeting", "discussed budget", 0))
    store.put(_doc("2", "Shopping", "buy MILK", 1))
    store.put(_doc("3", "Ideas", "nothing relevant", 2))

    assert [d.id for d in store.search("meeting")] == ["1"]
    assert [d.id for d in store.search("milk")] == ["2"]
    assert store.search("absent") == []
    assert len(store.search("")) == 3


def test_field_updates(store: JsonDocumentStore) -> None:
    store.put(_doc("a", "A", "x", 0))

    store.update_title("a", "Renamed")
    store.update_transcript("a", "edited text")
    store.update_summary("a", "summary text")

    doc = store.get("a")
    assert doc.title == "Renamed"
    assert doc.transcript == "edited text"
    assert doc.summary == "summary text"


def test_update_unknown_id_is_noop(store: JsonDocumentStore) -> None:
    store.update_title("ghost", "x")

    assert store.count() == 0


def test_persists_across_instances(tmp_path: Path) -> None:
    path = tmp_path / "documents.json"
    JsonDocumentStore(path=path).put(_doc("a", "A", "x", 0))

    assert JsonDocumentStore(path=path).get("a").title == "A"


def test_corrupt_file_reads_as_empty(tmp_path: Path) -> None:
    path = tmp_path / "documents.json"
    path.write_text("{not json", encoding="utf-8")

    store = JsonDocumentStore(path=path)
    assert store.get_all() == []

    store.put(_doc("a", "A", "x", 0))
    assert store.count() == 1


def test_unreadable_record_is_skipped(tmp_path: Path) -> None:
    path = tmp_path / "documents.json"
    path.write_text('{"bad": {"id": "bad", "created_at": "yesterday"}}', encoding="utf-8")

    assert JsonDocumentStore(path=path).get_all() == []
