"""Application layer for notes and the dictations that produce them."""

from __future__ import annotations

import logging
import threading
from typing import Callable, List, Optional

from errors import DocumentNotFoundError
from interfaces import DocumentStore, Summarizer
from models import Document

logger = logging.getLogger(__name__)


class DocumentService:
    def __init__(self, store: DocumentStore, summarizer: Summarizer) -> None:
        self._store = store
        self._summarizer = summarizer

    @property
    def is_summarizer_configured(self) -> bool:
        return self._summarizer.is_configured

    def list_documents(self, query: str = "") -> List[Document]:
        return self._store.search(query)

    def get(self, doc_id: str) -> Optional[Document]:
        return self._store.get(doc_id)

    def create_from_transcript(self, transcript: str) -> Optional[Document]:
        """Persist a dictated transcript; blank transcripts are not saved."""
        text = transcript.strip()
        if not text:
            return None
        document = Document.from_dictation(text)
        self._store.put(document)
        logger.info("saved note %s (%d chars)", document.id, len(text))
        return document

    def create_blank(self) -> Document:
        document = Document.blank()
        self._store.put(document)
        return document

    def update_title(self, doc_id: str, title: str) -> None:
        self._store.update_title(doc_id, title)

    def update_transcript(self, doc_id: str, transcript: str) -> None:
        self._store.update_transcript(doc_id, transcript)

    def delete(self, doc_id: str) -> None:
        self._store.delete(doc_id)
        logger.info("deleted note %s", doc_id)

    def generate_summary(self, doc_id: str) -> str:
        """Summarize a stored note and persist the result.

        Raises ``DocumentNotFoundError`` for unknown ids; summarizer failures
        propagate as ``SummarizeError``.
        """
        document = self._store.get(doc_id)
        if document is None:
            raise DocumentNotFoundError(doc_id)
        summary = self._summarizer.summarize(document.transcript)
        self._store.update_summary(doc_id, summary)
        return summary


class DictationNoteKeeper:
    """Saves the dictated transcript each time a session ends.

    Wire ``session_ended`` to the controller's ``on_listening_stopped`` so
    that sessions closed by a fatal error are kept as well as ones the user
    stopped. Call ``discard_next`` before cancelling to skip the save.
    """

    def __init__(
        self,
        documents: DocumentService,
        transcript: Callable[[], str],
        on_saved: Optional[Callable[[Document], None]] = None,
    ) -> None:
        self._documents = documents
        self._transcript = transcript
        self._on_saved = on_saved
        self._discard = False
        self._lock = threading.Lock()

    def session_started(self) -> None:
        with self._lock:
            self._discard = False

    def discard_next(self) -> None:
        with self._lock:
            self._discard = True

    def session_ended(self) -> Optional[Document]:
        with self._lock:
            discard, self._discard = self._discard, False
        if discard:
            logger.info("dictation discarded")
            return None
        document = self._documents.create_from_transcript(self._transcript())
        if document is not None and self._on_saved:
            self._on_saved(document)
        return document
