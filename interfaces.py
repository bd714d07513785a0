"""Protocol interfaces used by the controller and the application layer."""

from __future__ import annotations

from queue import Queue
from typing import Callable, List, Optional, Protocol

from models import AudioFrame, Document, ListenConfig, RecognitionEvent


class Recorder(Protocol):
    def start(self, audio_queue: Queue[AudioFrame | None]) -> None: ...

    def stop(self) -> None: ...

    def has_input_device(self) -> bool: ...


class SpeechCapability(Protocol):
    def probe(self) -> bool: ...

    def listen(
        self,
        config: ListenConfig,
        on_event: Callable[[RecognitionEvent], None],
    ) -> None: ...

    def request_stop(self, flush: bool) -> None: ...

    def locales(self) -> List[str]: ...


class ScheduledCall(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    def call_later(self, delay_s: float, callback: Callable[[], None]) -> ScheduledCall: ...


class DocumentStore(Protocol):
    def put(self, document: Document) -> None: ...

    def get_all(self) -> List[Document]: ...

    def get(self, doc_id: str) -> Optional[Document]: ...

    def delete(self, doc_id: str) -> None: ...

    def search(self, query: str) -> List[Document]: ...

    def update_title(self, doc_id: str, title: str) -> None: ...

    def update_transcript(self, doc_id: str, transcript: str) -> None: ...

    def update_summary(self, doc_id: str, summary: str) -> None: ...


class Summarizer(Protocol):
    @property
    def is_configured(self) -> bool: ...

    def summarize(self, transcript: str) -> str: ...
