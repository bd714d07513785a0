"""Overlay window showing the live transcript while dictating."""

from __future__ import annotations

try:
    from PySide6.QtCore import Qt, QTimer
    from PySide6.QtWidgets import QApplication, QLabel, QWidget, QVBoxLayout
except Exception:  # pragma: no cover
    Qt = None  # type: ignore
    QTimer = None  # type: ignore
    QApplication = None  # type: ignore
    QLabel = object  # type: ignore
    QWidget = object  # type: ignore
    QVBoxLayout = object  # type: ignore

_TEXT_STYLE = (
    "color: white; font-size: 18px; padding: 16px;"
    "background: rgba(0,0,0,190); border-radius: 12px;"
)
_ERROR_STYLE = (
    "color: #FF6B6B; font-size: 18px; padding: 16px;"
    "background: rgba(0,0,0,210); border-radius: 12px;"
)


def format_elapsed(seconds: int) -> str:
    minutes, remaining = divmod(max(seconds, 0), 60)
    return f"{minutes:02d}:{remaining:02d}"


class OverlayWindow(QWidget):
    def __init__(self) -> None:
        if Qt is None:
            raise RuntimeError("PySide6 is not installed")
        super().__init__()
        self.setWindowFlags(
            Qt.WindowStaysOnTopHint | Qt.FramelessWindowHint | Qt.Tool
        )
        self.setAttribute(Qt.WA_TranslucentBackground, True)
        self.setFixedWidth(600)

        self._timer_label = QLabel("00:00")
        self._timer_label.setStyleSheet("color: #FF4444; font-size: 13px; padding: 4px 16px;")
        self._label = QLabel("")
        self._label.setWordWrap(True)
        self._label.setTextFormat(Qt.RichText)
        self._label.setStyleSheet(_TEXT_STYLE)

        layout = QVBoxLayout()
        layout.setContentsMargins(0, 0, 0, 0)
        layout.addWidget(self._timer_label)
        layout.addWidget(self._label)
        self.setLayout(layout)

        self._hide_timer: QTimer | None = None
        self._elapsed_s = 0
        self._clock = QTimer(self)
        self._clock.setInterval(1000)
        self._clock.timeout.connect(self._tick)

    def start_clock(self) -> None:
        self._elapsed_s = 0
        self._timer_label.setText(format_elapsed(0))
        self._timer_label.show()
        self._clock.start()

    def stop_clock(self) -> None:
        self._clock.stop()
        self._timer_label.hide()

    def set_transcript(self, committed: str, partial: str) -> None:
        """Show committed text with the provisional partial greyed out."""
        committed_html = _escape(committed)
        partial_html = _escape(partial)
        if partial_html:
            separator = " " if committed_html else ""
            body = f"{committed_html}{separator}<span style='color:#AAAAAA'>{partial_html}</span>"
        else:
            body = committed_html or "Listening..."
        self._label.setStyleSheet(_TEXT_STYLE)
        self._show(body)

    def set_text(self, text: str) -> None:
        self._label.setStyleSheet(_TEXT_STYLE)
        self._show(_escape(text))

    def show_error(self, text: str, hide_after_ms: int = 2500) -> None:
        self._label.setStyleSheet(_ERROR_STYLE)
        self._show(f"⚠️ {_escape(text)}")
        self.hide_with_delay(hide_after_ms)

    def hide_with_delay(self, delay_ms: int = 400) -> None:
        self._cancel_hide_timer()
        self._hide_timer = QTimer()
        self._hide_timer.setSingleShot(True)
        self._hide_timer.timeout.connect(self.hide)
        self._hide_timer.start(delay_ms)

    def _show(self, html: str) -> None:
        self._cancel_hide_timer()
        self._label.setText(html)
        self._center_top()
        self.show()

    def _tick(self) -> None:
        self._elapsed_s += 1
        self._timer_label.setText(format_elapsed(self._elapsed_s))

    def _center_top(self) -> None:
        if QApplication is None:
            return
        screen = QApplication.primaryScreen()
        if screen is None:
            return
        geom = screen.availableGeometry()
        self.adjustSize()
        x = geom.x() + (geom.width() - self.width()) // 2
        y = geom.y() + 40
        self.move(x, y)

    def _cancel_hide_timer(self) -> None:
        if self._hide_timer is not None:
            self._hide_timer.stop()
            self._hide_timer = None


def _escape(text: str) -> str:
    return text.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")
