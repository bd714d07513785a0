"""Speech recognition capability using DashScope qwen3-asr-flash.

The qwen3-asr-flash model accepts complete audio and streams back
recognition results via ``stream=True``. Each capture collects PCM frames
from the microphone until the caller asks for a stop, the utterance limit is
reached, or the speaker stays silent for the pause window. Voiced audio is
then converted to WAV and sent to the model; streamed chunks become partial
events and the last text becomes the final event. Every capture ends with a
``done`` status event.
"""

from __future__ import annotations

import base64
import io
import logging
import os
import threading
import time
import wave
from queue import Empty, Queue
from typing import Callable, List, Optional

from errors import ASR_PROTOCOL_ERROR, AUTH_FAILED, NETWORK_ERROR, NO_MATCH
from interfaces import Recorder
from models import AudioFrame, ListenConfig, RecognitionEvent, RecognitionKind, RecognitionStatus
from recorder import SoundDeviceRecorder

try:
    import dashscope
except Exception:  # pragma: no cover
    dashscope = None  # type: ignore

logger = logging.getLogger(__name__)

SUPPORTED_LOCALES = ["zh", "en", "ja", "ko", "de", "fr", "es", "it", "pt", "ru", "ar"]

EventCallback = Callable[[RecognitionEvent], None]


def _pcm_to_wav_base64(
    pcm: bytes,
    sample_rate: int = 16000,
    channels: int = 1,
    sample_width: int = 2,
) -> str:
    """Convert raw PCM bytes to a base64-encoded WAV data URI payload."""
    buf = io.BytesIO()
    with wave.open(buf, "wb") as wf:
        wf.setnchannels(channels)
        wf.setsampwidth(sample_width)
        wf.setframerate(sample_rate)
        wf.writeframes(pcm)
    wav_bytes = buf.getvalue()
    return base64.b64encode(wav_bytes).decode("ascii")


def _status(status: RecognitionStatus) -> RecognitionEvent:
    return RecognitionEvent(kind=RecognitionKind.STATUS.value, status=status.value)


class _Capture:
    """Stop flags and worker thread for one ``listen`` call."""

    def __init__(self) -> None:
        self.end = threading.Event()
        self.discard = threading.Event()
        self.thread: Optional[threading.Thread] = None

    @property
    def alive(self) -> bool:
        return self.thread is not None and self.thread.is_alive()


class DashscopeSpeechCapability:
    def __init__(
        self,
        api_key: str = "",
        model: str = "qwen3-asr-flash",
        recorder: Optional[Recorder] = None,
        request_timeout_s: float = 10.0,
        silence_rms: float = 500.0,
        queue_maxsize: int = 50,
    ) -> None:
        self._api_key = api_key
        self._model = model
        self._recorder = recorder or SoundDeviceRecorder()
        self._request_timeout_s = request_timeout_s
        self._silence_rms = silence_rms
        self._queue_maxsize = queue_maxsize
        self._lock = threading.Lock()
        self._capture: Optional[_Capture] = None

    def probe(self) -> bool:
        if dashscope is None:
            logger.warning("dashscope is not installed")
            return False
        if not self._resolve_api_key():
            logger.warning("no DashScope API key configured")
            return False
        return self._recorder.has_input_device()

    def locales(self) -> List[str]:
        return list(SUPPORTED_LOCALES)

    def listen(self, config: ListenConfig, on_event: EventCallback) -> None:
        """Open a new capture, retiring any capture that is still winding down.

        A retired capture discards its audio and only reports ``done``; it is
        never joined, because its worker may be blocked delivering that event
        to the caller.
        """
        with self._lock:
            previous = self._capture
            if previous is not None and previous.alive:
                logger.debug("retiring previous capture")
                previous.discard.set()
                previous.end.set()
                self._recorder.stop()
            capture = _Capture()
            audio_queue: Queue[AudioFrame | None] = Queue(maxsize=self._queue_maxsize)
            self._recorder.start(audio_queue)
            capture.thread = threading.Thread(
                target=self._worker,
                args=(capture, audio_queue, config, on_event),
                daemon=True,
            )
            self._capture = capture
            capture.thread.start()

    def request_stop(self, flush: bool) -> None:
        with self._lock:
            capture = self._capture
            if capture is None or not capture.alive:
                return
            if not flush:
                capture.discard.set()
            capture.end.set()
            self._recorder.stop()

    def replace_api_key(self, api_key: str) -> None:
        self._api_key = api_key

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _resolve_api_key(self) -> str:
        return self._api_key or os.getenv("DASHSCOPE_API_KEY", "")

    def _end_capture(self, capture: _Capture) -> None:
        with self._lock:
            if capture.end.is_set():
                return
            capture.end.set()
            if capture is self._capture:
                self._recorder.stop()

    def _worker(
        self,
        capture: _Capture,
        audio_queue: Queue[AudioFrame | None],
        config: ListenConfig,
        on_event: EventCallback,
    ) -> None:
        on_event(_status(RecognitionStatus.LISTENING))
        pcm, sample_rate, channels, voiced = self._collect(capture, audio_queue, config)

        if capture.discard.is_set():
            logger.debug("capture discarded")
        elif not voiced:
            on_event(
                RecognitionEvent(
                    kind=RecognitionKind.ERROR.value,
                    code=NO_MATCH,
                    message="no speech detected",
                )
            )
        else:
            wav_b64 = _pcm_to_wav_base64(bytes(pcm), sample_rate, channels)
            self._recognize_stream(capture, wav_b64, config, on_event)
        on_event(_status(RecognitionStatus.DONE))

    def _collect(
        self,
        capture: _Capture,
        audio_queue: Queue[AudioFrame | None],
        config: ListenConfig,
    ) -> tuple[bytearray, int, int, bool]:
        """Collect frames until the capture is asked or timed to end."""
        pcm = bytearray()
        sample_rate = 16000
        channels = 1
        voiced = False
        started = time.monotonic()
        last_voice = started

        while True:
            now = time.monotonic()
            if not capture.end.is_set() and (
                now - started >= config.listen_for_s or now - last_voice >= config.pause_for_s
            ):
                logger.debug("utterance window elapsed")
                self._end_capture(capture)
            try:
                frame = audio_queue.get(timeout=0.2)
            except Empty:
                if capture.end.is_set():
                    break
                continue
            if frame is None:
                break
            pcm.extend(frame.pcm16_bytes)
            sample_rate = frame.sample_rate
            channels = frame.channels
            if frame.rms >= self._silence_rms:
                voiced = True
                last_voice = time.monotonic()
        return pcm, sample_rate, channels, voiced

    def _recognize_stream(
        self,
        capture: _Capture,
        wav_base64: str,
        config: ListenConfig,
        on_event: EventCallback,
    ) -> None:
        """Send audio to dashscope and stream partial/final results."""
        if dashscope is None:
            on_event(
                RecognitionEvent(
                    kind=RecognitionKind.ERROR.value,
                    code=ASR_PROTOCOL_ERROR,
                    message="dashscope is not installed",
                    fatal=True,
                )
            )
            return

        api_key = self._resolve_api_key()
        if not api_key:
            on_event(
                RecognitionEvent(
                    kind=RecognitionKind.ERROR.value,
                    code=AUTH_FAILED,
                    message="No API key configured",
                    fatal=True,
                )
            )
            return

        asr_options: dict = {"enable_itn": False}
        if config.locale:
            asr_options["language"] = config.locale

        try:
            response = dashscope.MultiModalConversation.call(
                api_key=api_key,
                model=self._model,
                messages=[
                    {"role": "system", "content": [{"text": ""}]},
                    {"role": "user", "content": [{"audio": f"data:audio/wav;base64,{wav_base64}"}]},
                ],
                result_format="message",
                asr_options=asr_options,
                stream=True,
                timeout=self._request_timeout_s,
            )
        except Exception as exc:
            on_event(self._to_error_event(exc))
            return

        latest_text = ""
        try:
            for chunk in response:
                if capture.discard.is_set():
                    return
                text = self._extract_text(chunk)
                if text:
                    latest_text = text
                    if config.partial_results:
                        on_event(RecognitionEvent(kind=RecognitionKind.PARTIAL.value, text=text))
        except Exception as exc:
            on_event(self._to_error_event(exc))
            return

        on_event(RecognitionEvent(kind=RecognitionKind.FINAL.value, text=latest_text))

    def _extract_text(self, chunk: object) -> str:
        """Pull text from a dashscope streaming chunk dict."""
        if isinstance(chunk, dict):
            output = chunk.get("output") or {}
            choices = output.get("choices") or []
            if not choices:
                return ""
            message = choices[0].get("message") or {}
            content = message.get("content") or []
            if not content:
                return ""
            value = content[0]
            if isinstance(value, dict):
                return str(value.get("text", ""))
        return ""

    def _to_error_event(self, exc: Exception) -> RecognitionEvent:
        """Map an SDK/network exception to a standard error event."""
        message = str(exc)
        low = message.lower()
        if "401" in low or "auth" in low or "api key" in low:
            code = AUTH_FAILED
            fatal = True
        elif "timeout" in low or "network" in low or "connection" in low:
            code = NETWORK_ERROR
            fatal = False
        else:
            code = ASR_PROTOCOL_ERROR
            fatal = False
        return RecognitionEvent(
            kind=RecognitionKind.ERROR.value,
            code=code,
            message=message,
            fatal=fatal,
        )
