"""State-machine based dictation session orchestration."""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import Callable, Iterator, List, Optional

from errors import (
    ASR_PROTOCOL_ERROR,
    ERROR_MESSAGES,
    NO_MATCH,
    SPEECH_UNAVAILABLE,
    START_FAILED,
)
from interfaces import ScheduledCall, Scheduler, SpeechCapability
from models import (
    ListenConfig,
    RecognitionEvent,
    RecognitionKind,
    RecognitionStatus,
    SessionState,
)
from scheduler import ThreadingScheduler
from transcript import TranscriptBuffer

logger = logging.getLogger(__name__)

StateCallback = Callable[[SessionState, SessionState], None]
TextCallback = Callable[[str], None]
ErrorCallback = Callable[[str, str, bool], None]
LifecycleCallback = Callable[[], None]

_TRANSITIONS = {
    SessionState.IDLE: {
        SessionState.STARTING,
        SessionState.STOPPING,
        SessionState.CANCELLING,
    },
    SessionState.STARTING: {
        SessionState.LISTENING,
        SessionState.RESTARTING,
        SessionState.STOPPING,
        SessionState.CANCELLING,
        SessionState.IDLE,
    },
    SessionState.LISTENING: {
        SessionState.RESTARTING,
        SessionState.STOPPING,
        SessionState.CANCELLING,
        SessionState.IDLE,
    },
    SessionState.RESTARTING: {
        SessionState.STARTING,
        SessionState.STOPPING,
        SessionState.CANCELLING,
        SessionState.IDLE,
    },
    SessionState.STOPPING: {SessionState.IDLE},
    SessionState.CANCELLING: {SessionState.IDLE},
}

_TERMINAL_STATUSES = {RecognitionStatus.DONE.value, RecognitionStatus.NOT_LISTENING.value}


class DictationSessionController:
    """Keeps one continuous dictation session alive across capture drops.

    The caller sees a single session between ``start()`` and ``stop()`` or
    ``cancel()``. Whenever the capability ends a capture on its own (silence
    timeout, utterance limit, transient error) while the caller still wants
    to listen, a restart is scheduled after a short delay. Only the final
    stop fires ``on_listening_stopped``; every successful (re)launch fires
    ``on_listening_started``.

    Capability events are delivered on worker threads, so every state field
    is guarded by one re-entrant lock.
    """

    def __init__(
        self,
        capability: SpeechCapability,
        scheduler: Optional[Scheduler] = None,
        listen_config: Optional[ListenConfig] = None,
        finalize_timeout_s: float = 2.0,
        status_restart_delay_s: float = 0.1,
        error_restart_delay_s: float = 0.5,
        on_state_change: Optional[StateCallback] = None,
        on_partial_result: Optional[TextCallback] = None,
        on_result: Optional[TextCallback] = None,
        on_error: Optional[ErrorCallback] = None,
        on_listening_started: Optional[LifecycleCallback] = None,
        on_listening_stopped: Optional[LifecycleCallback] = None,
    ) -> None:
        self._capability = capability
        self._scheduler = scheduler or ThreadingScheduler()
        self._listen_config = listen_config or ListenConfig()
        self._finalize_timeout_s = finalize_timeout_s
        self._status_restart_delay_s = status_restart_delay_s
        self._error_restart_delay_s = error_restart_delay_s
        self._on_state_change = on_state_change
        self._on_partial_result = on_partial_result
        self._on_result = on_result
        self._on_error = on_error
        self._on_listening_started = on_listening_started
        self._on_listening_stopped = on_listening_stopped

        self._lock = threading.RLock()
        # How deep the current thread is inside the lock.
        self._held = threading.local()
        self._state = SessionState.IDLE
        self._initialized = False
        self._desired_listening = False
        self._active_listening = False
        self._transcript = TranscriptBuffer()
        # Events from any other attempt are stale and dropped.
        self._attempt = 0
        # Only the restart carrying the current generation may fire.
        self._generation = 0
        self._pending_restart: Optional[ScheduledCall] = None
        self._pending_delay_s = 0.0
        self._quiesced = threading.Event()
        self._quiesced.set()

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def is_listening(self) -> bool:
        return self._active_listening

    @property
    def wants_listening(self) -> bool:
        return self._desired_listening

    @property
    def transcript(self) -> str:
        return self._transcript.text

    @property
    def partial_text(self) -> str:
        return self._transcript.partial

    @property
    def live_text(self) -> str:
        return self._transcript.live_text

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    def initialize(self) -> bool:
        """Probe the capability once; later calls return the cached result."""
        with self._guard():
            if self._initialized:
                return True
            try:
                self._initialized = bool(self._capability.probe())
            except Exception as exc:
                logger.warning("speech capability probe failed: %s", exc)
                self._initialized = False
            return self._initialized

    def start(self) -> None:
        with self._guard():
            if self._desired_listening and self._state != SessionState.IDLE:
                return
            if self._state in (SessionState.STOPPING, SessionState.CANCELLING):
                logger.debug("start ignored while %s", self._state.value)
                return
            if not self.initialize():
                self._emit_error(
                    SPEECH_UNAVAILABLE, ERROR_MESSAGES[SPEECH_UNAVAILABLE], fatal=True
                )
                return
            if not self._desired_listening:
                self._transcript.reset()
            self._desired_listening = True
            self._cancel_pending_restart()
            self._launch()

    def stop(self) -> None:
        """End the session, flushing buffered audio into a final result.

        Called from one of this controller's callbacks, the capability cannot
        deliver ``done`` until the callback returns, so the session closes
        without waiting and late flushed results are dropped.
        """
        nested = getattr(self._held, "depth", 0) > 0
        with self._guard():
            if not self._desired_listening:
                return
            capturing = self._active_listening or self._state == SessionState.STARTING
            self._desired_listening = False
            self._active_listening = False
            self._cancel_pending_restart()
            self._transition(SessionState.STOPPING)
            if capturing:
                self._quiesced.clear()
            self._safe_request_stop(flush=True)

        if capturing and nested:
            logger.debug("stop called from a callback, not waiting for done")
        # Flushed finals arrive on the capability's thread while we wait.
        elif capturing and not self._quiesced.wait(timeout=self._finalize_timeout_s):
            logger.info(
                "capture did not report done within %.1fs, closing session",
                self._finalize_timeout_s,
            )

        with self._guard():
            if self._state != SessionState.STOPPING:
                return
            self._attempt += 1
            flushed = self._transcript.flush_partial()
            if flushed:
                logger.debug("committed pending partial on stop: %r", flushed)
            self._transition(SessionState.IDLE)
            self._fire(self._on_listening_stopped)

    def cancel(self) -> None:
        """End the session, discarding buffered audio and the pending partial."""
        with self._guard():
            if not self._desired_listening:
                return
            self._desired_listening = False
            self._active_listening = False
            self._cancel_pending_restart()
            self._transition(SessionState.CANCELLING)
            self._attempt += 1
            self._safe_request_stop(flush=False)
            self._transcript.clear_partial()
            self._quiesced.set()
            self._transition(SessionState.IDLE)
            self._fire(self._on_listening_stopped)

    def supported_locales(self) -> List[str]:
        if not self.initialize():
            return []
        try:
            return list(self._capability.locales())
        except Exception as exc:
            logger.warning("could not enumerate locales: %s", exc)
            return []

    def dispose(self) -> None:
        self.cancel()

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    @contextmanager
    def _guard(self) -> Iterator[None]:
        with self._lock:
            self._held.depth = getattr(self._held, "depth", 0) + 1
            try:
                yield
            finally:
                self._held.depth -= 1

    def _launch(self) -> None:
        self._transition(SessionState.STARTING)
        self._attempt += 1
        attempt = self._attempt
        try:
            self._capability.listen(
                self._listen_config,
                lambda event: self._handle_event(attempt, event),
            )
        except Exception as exc:
            logger.warning("listen failed: %s", exc)
            self._attempt += 1
            self._active_listening = False
            self._transition(SessionState.IDLE)
            self._emit_error(START_FAILED, f"Error starting speech recognition: {exc}", fatal=False)
            return

        # The capability may already have reported a drop from inside listen().
        if self._state != SessionState.STARTING or attempt != self._attempt:
            return
        self._active_listening = True
        self._transition(SessionState.LISTENING)
        self._fire(self._on_listening_started)

    def _handle_event(self, attempt: int, event: RecognitionEvent) -> None:
        with self._guard():
            if attempt != self._attempt or self._state == SessionState.IDLE:
                logger.debug("dropping %s event from stale capture %d", event.kind, attempt)
                return
            kind = event.kind
            if kind == RecognitionKind.PARTIAL.value:
                self._transcript.set_partial(event.text)
                if self._on_partial_result:
                    self._on_partial_result(event.text)
                return
            if kind == RecognitionKind.FINAL.value:
                if self._transcript.append_final(event.text) and self._on_result:
                    self._on_result(event.text)
                return
            if kind == RecognitionKind.STATUS.value:
                self._handle_status(event.status)
                return
            if kind == RecognitionKind.ERROR.value:
                self._handle_error(event)

    def _handle_status(self, status: str) -> None:
        if status not in _TERMINAL_STATUSES:
            return
        self._active_listening = False
        self._quiesced.set()
        if self._desired_listening and self._state != SessionState.STOPPING:
            self._schedule_restart(self._status_restart_delay_s)

    def _handle_error(self, event: RecognitionEvent) -> None:
        code = event.code or ASR_PROTOCOL_ERROR
        if code == NO_MATCH:
            logger.debug("no speech matched, treating as a pause")
        else:
            message = event.message or ERROR_MESSAGES.get(code, code)
            self._emit_error(code, message, fatal=event.fatal)

        if event.fatal:
            self._terminate_after_fatal()
            return
        if self._desired_listening and self._state != SessionState.STOPPING:
            self._active_listening = False
            self._quiesced.set()
            self._schedule_restart(self._error_restart_delay_s)

    def _terminate_after_fatal(self) -> None:
        self._active_listening = False
        self._quiesced.set()
        if self._state == SessionState.STOPPING:
            # stop() is waiting and will finish the session itself.
            return
        self._desired_listening = False
        self._cancel_pending_restart()
        self._attempt += 1
        self._safe_request_stop(flush=False)
        self._transition(SessionState.IDLE)
        self._fire(self._on_listening_stopped)

    def _schedule_restart(self, delay_s: float) -> None:
        if self._pending_restart is not None:
            delay_s = max(delay_s, self._pending_delay_s)
            self._pending_restart.cancel()
        self._generation += 1
        generation = self._generation
        self._pending_delay_s = delay_s
        self._transition(SessionState.RESTARTING)
        logger.debug("capture dropped, restarting in %.2fs", delay_s)
        self._pending_restart = self._scheduler.call_later(
            delay_s, lambda: self._restart(generation)
        )

    def _restart(self, generation: int) -> None:
        with self._guard():
            if generation != self._generation:
                return
            self._pending_restart = None
            self._pending_delay_s = 0.0
            if (
                not self._desired_listening
                or self._active_listening
                or self._state != SessionState.RESTARTING
            ):
                return
            self._launch()

    def _cancel_pending_restart(self) -> None:
        self._generation += 1
        if self._pending_restart is not None:
            self._pending_restart.cancel()
            self._pending_restart = None
        self._pending_delay_s = 0.0

    def _safe_request_stop(self, flush: bool) -> None:
        try:
            self._capability.request_stop(flush)
        except Exception as exc:
            logger.debug("ignoring request_stop failure: %s", exc)

    def _emit_error(self, code: str, message: str, fatal: bool) -> None:
        if fatal:
            logger.warning("fatal dictation error %s: %s", code, message)
        else:
            logger.info("dictation error %s: %s", code, message)
        if self._on_error:
            self._on_error(code, message, fatal)

    def _fire(self, callback: Optional[LifecycleCallback]) -> None:
        if callback:
            callback()

    def _transition(self, to_state: SessionState) -> None:
        from_state = self._state
        if from_state == to_state:
            return
        if to_state not in _TRANSITIONS[from_state]:
            raise RuntimeError(f"illegal session transition {from_state.value} -> {to_state.value}")
        self._state = to_state
        if self._on_state_change:
            self._on_state_change(from_state, to_state)
