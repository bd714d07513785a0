"""Timer-based scheduler for delayed controller work."""

from __future__ import annotations

import threading
from typing import Callable


class TimerCall:
    def __init__(self, timer: threading.Timer) -> None:
        self._timer = timer

    def cancel(self) -> None:
        self._timer.cancel()


class ThreadingScheduler:
    """Runs callbacks on daemon timer threads after a delay."""

    def call_later(self, delay_s: float, callback: Callable[[], None]) -> TimerCall:
        timer = threading.Timer(max(delay_s, 0.0), callback)
        timer.daemon = True
        timer.start()
        return TimerCall(timer)
