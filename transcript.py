"""Transcript accumulation for a dictation session."""

from __future__ import annotations

from typing import List, Tuple


class TranscriptBuffer:
    """Finalized segments in arrival order plus the latest partial text.

    Final segments are only ever appended. The partial is replaced wholesale
    on each update and only enters the transcript through ``flush_partial``.
    """

    def __init__(self) -> None:
        self._segments: List[str] = []
        self._text = ""
        self._partial = ""

    @property
    def text(self) -> str:
        return self._text

    @property
    def partial(self) -> str:
        return self._partial

    @property
    def segments(self) -> Tuple[str, ...]:
        return tuple(self._segments)

    @property
    def live_text(self) -> str:
        return f"{self._text} {self._partial}".strip()

    def set_partial(self, text: str) -> None:
        self._partial = text

    def clear_partial(self) -> None:
        self._partial = ""

    def append_final(self, text: str) -> bool:
        """Commit a final segment. Returns False for blank text."""
        self._partial = ""
        if not text.strip():
            return False
        self._append(text)
        return True

    def flush_partial(self) -> str:
        """Move a pending partial into the transcript and return it."""
        pending = self._partial
        self._partial = ""
        if not pending.strip():
            return ""
        self._append(pending)
        return pending

    def reset(self) -> None:
        self._segments = []
        self._text = ""
        self._partial = ""

    def _append(self, text: str) -> None:
        if self._text and not self._text[-1].isspace():
            self._text += " "
        self._text += text
        self._segments.append(text)
