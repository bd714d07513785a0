"""Global toggle hotkey based on pynput."""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Optional

try:
    from pynput import keyboard
except Exception:  # pragma: no cover
    keyboard = None  # type: ignore

logger = logging.getLogger(__name__)


def key_name(key: object) -> str:
    """Name a pynput key as the config stores it: ``Key.f9`` or a lowercase character."""
    char = getattr(key, "char", None)
    if char:
        return char.lower()
    return str(key)


def _normalize(name: str) -> str:
    bare = name.strip().strip("'")
    return bare.lower() if len(bare) == 1 else name.strip()


class GlobalHotkeyAdapter:
    """Calls ``on_toggle`` once per press of the configured key.

    Auto-repeat while the key is held does not toggle again, and neither does
    a second press within ``min_interval_s`` of the last toggle.
    """

    def __init__(self, hotkey_name: str = "Key.f9", min_interval_s: float = 0.3) -> None:
        self._hotkey_name = _normalize(hotkey_name)
        self._min_interval_s = min_interval_s
        self._listener: Optional[object] = None
        self._on_toggle: Optional[Callable[[], None]] = None
        self._held = False
        self._last_toggle = float("-inf")
        self._lock = threading.Lock()

    def start(self, on_toggle: Callable[[], None]) -> None:
        if keyboard is None:
            raise RuntimeError("pynput is not installed")
        self._on_toggle = on_toggle
        self._listener = keyboard.Listener(on_press=self._handle_press, on_release=self._handle_release)
        self._listener.start()
        logger.info("toggle hotkey %s active", self._hotkey_name)

    def stop(self) -> None:
        listener = self._listener
        if listener is not None:
            listener.stop()
            self._listener = None

    def _handle_press(self, key: object) -> None:
        if key_name(key) != self._hotkey_name:
            return
        now = time.monotonic()
        with self._lock:
            if self._held:
                return
            self._held = True
            if now - self._last_toggle < self._min_interval_s:
                logger.debug("ignoring hotkey bounce")
                return
            self._last_toggle = now
        if self._on_toggle:
            self._on_toggle()

    def _handle_release(self, key: object) -> None:
        if key_name(key) != self._hotkey_name:
            return
        with self._lock:
            self._held = False
