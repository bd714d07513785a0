"""Core data models for the app."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional


class SessionState(str, Enum):
    IDLE = "IDLE"
    STARTING = "STARTING"
    LISTENING = "LISTENING"
    RESTARTING = "RESTARTING"
    STOPPING = "STOPPING"
    CANCELLING = "CANCELLING"


class RecognitionKind(str, Enum):
    PARTIAL = "partial"
    FINAL = "final"
    STATUS = "status"
    ERROR = "error"


class RecognitionStatus(str, Enum):
    LISTENING = "listening"
    NOT_LISTENING = "notListening"
    DONE = "done"


@dataclass
class AudioFrame:
    pcm16_bytes: bytes
    sample_rate: int = 16000
    channels: int = 1
    timestamp_ms: int = 0
    rms: float = 0.0


@dataclass
class RecognitionEvent:
    kind: str
    text: str = ""
    status: str = ""
    code: str = ""
    message: str = ""
    fatal: bool = False


@dataclass
class ListenConfig:
    partial_results: bool = True
    cancel_on_error: bool = False
    mode: str = "dictation"
    listen_for_s: float = 60.0
    pause_for_s: float = 30.0
    locale: Optional[str] = None


@dataclass
class Document:
    id: str
    title: str
    transcript: str
    summary: Optional[str] = None
    created_at: datetime = field(default_factory=datetime.now)

    @classmethod
    def from_dictation(
        cls,
        transcript: str,
        doc_id: Optional[str] = None,
        created_at: Optional[datetime] = None,
    ) -> "Document":
        now = created_at or datetime.now()
        return cls(
            id=doc_id or str(uuid.uuid4()),
            title=default_title(now),
            transcript=transcript,
            created_at=now,
        )

    @classmethod
    def blank(cls, created_at: Optional[datetime] = None) -> "Document":
        return cls.from_dictation("", created_at=created_at)

    @property
    def preview(self) -> str:
        """First line of the transcript, truncated for list display."""
        if not self.transcript:
            return "No content"
        first_line = self.transcript.split("\n", 1)[0]
        if len(first_line) > 100:
            return first_line[:100] + "..."
        return first_line

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "transcript": self.transcript,
            "summary": self.summary,
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Document":
        return cls(
            id=str(data["id"]),
            title=str(data.get("title", "")),
            transcript=str(data.get("transcript", "")),
            summary=data.get("summary"),
            created_at=datetime.fromisoformat(data["created_at"]),
        )


def default_title(moment: datetime) -> str:
    """Format a note title such as ``Note — 2025-12-10 3:42 PM``."""
    hour = moment.hour % 12 or 12
    period = "PM" if moment.hour >= 12 else "AM"
    return f"Note — {moment:%Y-%m-%d} {hour}:{moment.minute:02d} {period}"
