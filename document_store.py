"""JSON file backed key-value store for notes."""

from __future__ import annotations

import json
import logging
import threading
from pathlib import Path
from typing import Dict, List, Optional

from models import Document

logger = logging.getLogger(__name__)


class JsonDocumentStore:
    """Documents keyed by id in a single JSON file. Last write wins."""

    def __init__(self, path: Path | None = None) -> None:
        self._path = path or Path.home() / ".local" / "share" / "dictation_notes" / "documents.json"
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()

    def put(self, document: Document) -> None:
        with self._lock:
            data = self._read_all()
            data[document.id] = document.to_dict()
            self._write_all(data)

    def get_all(self) -> List[Document]:
        """All documents, newest first."""
        with self._lock:
            documents = self._load_documents()
        documents.sort(key=lambda doc: doc.created_at, reverse=True)
        return documents

    def get(self, doc_id: str) -> Optional[Document]:
        with self._lock:
            raw = self._read_all().get(doc_id)
        if raw is None:
            return None
        return Document.from_dict(raw)

    def delete(self, doc_id: str) -> None:
        with self._lock:
            data = self._read_all()
            if data.pop(doc_id, None) is not None:
                self._write_all(data)

    def search(self, query: str) -> List[Document]:
        documents = self.get_all()
        if not query:
            return documents
        needle = query.lower()
        return [
            doc
            for doc in documents
            if needle in doc.title.lower() or needle in doc.transcript.lower()
        ]

    def update_title(self, doc_id: str, title: str) -> None:
        self._update_field(doc_id, "title", title)

    def update_transcript(self, doc_id: str, transcript: str) -> None:
        self._update_field(doc_id, "transcript", transcript)

    def update_summary(self, doc_id: str, summary: str) -> None:
        self._update_field(doc_id, "summary", summary)

    def count(self) -> int:
        with self._lock:
            return len(self._read_all())

    def _update_field(self, doc_id: str, name: str, value: str) -> None:
        with self._lock:
            data = self._read_all()
            record = data.get(doc_id)
            if record is None:
                return
            record[name] = value
            self._write_all(data)

    def _load_documents(self) -> List[Document]:
        documents = []
        for doc_id, raw in self._read_all().items():
            try:
                documents.append(Document.from_dict(raw))
            except (KeyError, TypeError, ValueError) as exc:
                logger.warning("skipping unreadable document %s: %s", doc_id, exc)
        return documents

    def _read_all(self) -> Dict[str, dict]:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError) as exc:
            logger.warning("could not read %s: %s", self._path, exc)
            return {}
        return data if isinstance(data, dict) else {}

    def _write_all(self, data: Dict[str, dict]) -> None:
        tmp_path = self._path.with_suffix(".tmp")
        tmp_path.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")
        tmp_path.replace(self._path)
