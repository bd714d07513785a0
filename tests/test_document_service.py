from __future__ import annotations

from pathlib import Path
from typing import List

import pytest

from document_service import DictationNoteKeeper, DocumentService
from document_store import JsonDocumentStore
from errors import EMPTY_TRANSCRIPT, DocumentNotFoundError, SummarizeError


class FakeSummarizer:
    def __init__(self, configured: bool = True, result: str = "## Summary\n• ok") -> None:
        self.configured = configured
        self.result = result
        self.calls: List[str] = []
        self.error: Exception | None = None

    @property
    def is_configured(self) -> bool:
        return self.configured

    def summarize(self, transcript: str) -> str:
        self.calls.append(transcript)
        if self.error is not None:
            raise self.error
        return self.result


@pytest.fixture
def summarizer() -> FakeSummarizer:
    return FakeSummarizer()


@pytest.fixture
def store(tmp_path: Path) -> JsonDocumentStore:
    return JsonDocumentStore(path=tmp_path / "documents.json")


@pytest.fixture
def service(store: JsonDocumentStore, summarizer: FakeSummarizer) -> DocumentService:
    return DocumentService(store, summarizer)


def test_create_from_transcript_trims_and_saves(service: DocumentService, store) -> None:  # noqa: ANN001
    document = service.create_from_transcript("  hello world  ")

    assert document is not None
    assert document.transcript == "hello world"
    assert document.title.startswith("Note — ")
    assert store.get(document.id) == document


def test_blank_transcript_is_not_saved(service: DocumentService, store) -> None:  # noqa: ANN001
    assert service.create_from_transcript("   ") is None
    assert store.count() == 0


def test_create_blank_note(service: DocumentService) -> None:
    document = service.create_blank()

    assert document.transcript == ""
    assert service.get(document.id) == document


def test_edit_and_delete(service: DocumentService) -> None:
    document = service.create_from_transcript("draft")

    service.update_title(document.id, "Final")
    service.update_transcript(document.id, "final text")
    assert service.get(document.id).title == "Final"
    assert service.get(document.id).transcript == "final text"

    service.delete(document.id)
    assert service.get(document.id) is None


def test_list_documents_filters_by_query(service: DocumentService) -> None:
    service.create_from_transcript("remember the budget")
    service.create_from_transcript("call mom")

    assert len(service.list_documents()) == 2
    assert [d.transcript for d in service.list_documents("BUDGET")] == ["remember the budget"]


def test_generate_summary_persists_result(service: DocumentService, summarizer) -> None:  # noqa: ANN001
    document = service.create_from_transcript("long meeting notes")

    summary = service.generate_summary(document.id)

    assert summary == summarizer.result
    assert summarizer.calls == ["long meeting notes"]
    assert service.get(document.id).summary == summarizer.result


def test_generate_summary_unknown_document(service: DocumentService) -> None:
    with pytest.raises(DocumentNotFoundError):
        service.generate_summary("missing")


def test_generate_summary_failure_keeps_document(service: DocumentService, summarizer) -> None:  # noqa: ANN001
    document = service.create_blank()
    summarizer.error = SummarizeError(EMPTY_TRANSCRIPT)

    with pytest.raises(SummarizeError):
        service.generate_summary(document.id)

    assert service.get(document.id).summary is None


def test_is_summarizer_configured(store: JsonDocumentStore) -> None:
    assert DocumentService(store, FakeSummarizer(configured=False)).is_summarizer_configured is False


def test_keeper_saves_transcript_when_session_ends(service: DocumentService, store) -> None:  # noqa: ANN001
    saved: List[str] = []
    keeper = DictationNoteKeeper(
        service, transcript=lambda: "dictated text", on_saved=lambda doc: saved.append(doc.id)
    )

    document = keeper.session_ended()

    assert document is not None
    assert store.get(document.id).transcript == "dictated text"
    assert saved == [document.id]


def test_keeper_skips_blank_transcript(service: DocumentService, store) -> None:  # noqa: ANN001
    keeper = DictationNoteKeeper(service, transcript=lambda: "  ")

    assert keeper.session_ended() is None
    assert store.count() == 0


def test_keeper_discard_applies_to_one_session(service: DocumentService, store) -> None:  # noqa: ANN001
    keeper = DictationNoteKeeper(service, transcript=lambda: "scratch")

    keeper.discard_next()
    assert keeper.session_ended() is None
    assert store.count() == 0

    assert keeper.session_ended() is not None
    assert store.count() == 1


def test_keeper_new_session_clears_stale_discard(service: DocumentService, store) -> None:  # noqa: ANN001
    keeper = DictationNoteKeeper(service, transcript=lambda: "kept")

    keeper.discard_next()
    keeper.session_started()

    assert keeper.session_ended() is not None
    assert store.count() == 1
