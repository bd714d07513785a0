"""Application entrypoint."""

from __future__ import annotations

import logging
import os
import sys
import threading

from clipboard import ClipboardService
from config import JsonConfigStore, load_environment
from document_service import DictationNoteKeeper, DocumentService
from document_store import JsonDocumentStore
from errors import ERROR_MESSAGES, SummarizeError, is_user_visible
from hotkey import GlobalHotkeyAdapter
from overlay import OverlayWindow
from recorder import SoundDeviceRecorder
from session_controller import DictationSessionController
from speech_capability import DashscopeSpeechCapability
from summarizer import DashscopeSummarizer

try:
    from PySide6.QtCore import QObject, Signal, QSize
    from PySide6.QtGui import QAction, QIcon, QPixmap, QPainter, QColor, QBrush
    from PySide6.QtWidgets import (
        QApplication,
        QInputDialog,
        QLineEdit,
        QMenu,
        QMessageBox,
        QSystemTrayIcon,
    )
except Exception as exc:  # pragma: no cover
    raise SystemExit(f"PySide6 is required to run the desktop app: {exc}")

logger = logging.getLogger(__name__)

RECENT_NOTES_LIMIT = 10


def _create_icon(color: str = "#888888", size: int = 22) -> QIcon:
    """Generate a simple circular tray icon with the given color."""
    pixmap = QPixmap(QSize(size, size))
    pixmap.fill(QColor(0, 0, 0, 0))
    painter = QPainter(pixmap)
    painter.setRenderHint(QPainter.Antialiasing, True)
    painter.setBrush(QBrush(QColor(color)))
    painter.setPen(QColor(color))
    painter.drawEllipse(2, 2, size - 4, size - 4)
    painter.end()
    return QIcon(pixmap)


ICON_IDLE = "#888888"      # grey
ICON_LISTENING = "#FF4444"  # red
ICON_ERROR = "#FF8800"     # orange


class UIBridge(QObject):
    transcript_signal = Signal(str, str)  # committed, partial
    listening_signal = Signal(bool)
    error_signal = Signal(str, bool)  # message, fatal
    notice_signal = Signal(str)


class App:
    def __init__(self) -> None:
        self.app = QApplication(sys.argv)
        self.app.setQuitOnLastWindowClosed(False)
        self.config_store = JsonConfigStore()
        self.clipboard = ClipboardService()
        self.overlay = OverlayWindow()
        self.ui = UIBridge()
        self.ui.transcript_signal.connect(self._on_transcript_ui)
        self.ui.listening_signal.connect(self._on_listening_ui)
        self.ui.error_signal.connect(self._on_error_ui)
        self.ui.notice_signal.connect(self._on_notice_ui)

        api_key = self.config_store.get_api_key()
        self.capability = DashscopeSpeechCapability(
            api_key=api_key,
            model=self.config_store.get_asr_model(),
            recorder=SoundDeviceRecorder(),
        )
        self.summarizer = DashscopeSummarizer(
            api_key=api_key,
            model=self.config_store.get_summary_model(),
        )
        data_dir = self.config_store.get_data_dir()
        self.documents = DocumentService(
            JsonDocumentStore(data_dir / "documents.json"),
            self.summarizer,
        )
        self.controller = DictationSessionController(
            capability=self.capability,
            listen_config=self.config_store.get_listen_config(),
            on_partial_result=self._on_text_changed,
            on_result=self._on_text_changed,
            on_error=self._on_error,
            on_listening_started=self._on_listening_started,
            on_listening_stopped=self._on_listening_stopped,
        )
        self.notes = DictationNoteKeeper(
            self.documents,
            transcript=lambda: self.controller.transcript,
            on_saved=lambda document: self.ui.notice_signal.emit(f"Note saved: {document.title}"),
        )
        self.hotkey = GlobalHotkeyAdapter(hotkey_name=self.config_store.get_hotkey())
        self._search_query = ""

        self.tray = QSystemTrayIcon()
        self.tray.setIcon(_create_icon(ICON_IDLE))
        self.tray.setToolTip("Dictation Notes — Ready")
        self._setup_menu()
        self.tray.show()

    def _setup_menu(self) -> None:
        menu = QMenu()

        self.toggle_action = QAction("Start Dictation", menu)
        self.toggle_action.triggered.connect(self.toggle_dictation)
        menu.addAction(self.toggle_action)

        discard_action = QAction("Discard Dictation", menu)
        discard_action.triggered.connect(self.discard_dictation)
        menu.addAction(discard_action)

        new_note_action = QAction("New Blank Note", menu)
        new_note_action.triggered.connect(self._create_blank_note)
        menu.addAction(new_note_action)

        self.recent_menu = menu.addMenu("Recent Notes")
        self.recent_menu.aboutToShow.connect(self._populate_recent_notes)

        search_action = QAction("Search Notes...", menu)
        search_action.triggered.connect(self._search_notes)
        menu.addAction(search_action)

        menu.addSeparator()
        api_action = QAction("Set API Key", menu)
        api_action.triggered.connect(self._set_api_key)
        menu.addAction(api_action)

        hotkey_action = QAction("Set Hotkey", menu)
        hotkey_action.triggered.connect(self._set_hotkey)
        menu.addAction(hotkey_action)

        menu.addSeparator()
        quit_action = QAction("Quit", menu)
        quit_action.triggered.connect(self.quit)
        menu.addAction(quit_action)

        self.tray.setContextMenu(menu)

    def _populate_recent_notes(self) -> None:
        self.recent_menu.clear()
        notes = self.documents.list_documents(self._search_query)[:RECENT_NOTES_LIMIT]
        if self._search_query:
            self.recent_menu.setTitle(f"Notes matching \"{self._search_query}\"")
            clear_action = self.recent_menu.addAction("Show All Notes")
            clear_action.triggered.connect(lambda _=False: self._set_search_query(""))
            self.recent_menu.addSeparator()
        else:
            self.recent_menu.setTitle("Recent Notes")
        if not notes:
            empty = self.recent_menu.addAction("No matching notes" if self._search_query else "No notes yet")
            empty.setEnabled(False)
            return
        for note in notes:
            note_menu = self.recent_menu.addMenu(note.title)
            note_menu.setToolTip(note.preview)
            copy_action = note_menu.addAction("Copy Transcript")
            copy_action.triggered.connect(lambda _=False, text=note.transcript: self._copy(text))
            if note.summary:
                summary_action = note_menu.addAction("Copy Summary")
                summary_action.triggered.connect(lambda _=False, text=note.summary: self._copy(text))
            rename_action = note_menu.addAction("Rename...")
            rename_action.triggered.connect(
                lambda _=False, doc_id=note.id, title=note.title: self._rename(doc_id, title)
            )
            edit_action = note_menu.addAction("Edit Transcript...")
            edit_action.triggered.connect(
                lambda _=False, doc_id=note.id, text=note.transcript: self._edit_transcript(doc_id, text)
            )
            summarize_action = note_menu.addAction("Summarize")
            summarize_action.setEnabled(self.documents.is_summarizer_configured)
            summarize_action.triggered.connect(lambda _=False, doc_id=note.id: self._summarize(doc_id))
            delete_action = note_menu.addAction("Delete")
            delete_action.triggered.connect(lambda _=False, doc_id=note.id: self._delete(doc_id))

    def _create_blank_note(self) -> None:
        document = self.documents.create_blank()
        self.ui.notice_signal.emit(f"Created {document.title}")

    def _search_notes(self) -> None:
        value, ok = QInputDialog.getText(
            None, "Search Notes", "Title or transcript contains", QLineEdit.Normal, self._search_query
        )
        if not ok:
            return
        self._set_search_query(value)
        count = len(self.documents.list_documents(self._search_query))
        self.ui.notice_signal.emit(f"{count} note(s) found, see the notes menu")

    def _set_search_query(self, query: str) -> None:
        self._search_query = query.strip()

    def _rename(self, doc_id: str, current: str) -> None:
        value, ok = QInputDialog.getText(None, "Rename Note", "Title", QLineEdit.Normal, current)
        if not ok or not value.strip():
            return
        self.documents.update_title(doc_id, value.strip())

    def _edit_transcript(self, doc_id: str, current: str) -> None:
        value, ok = QInputDialog.getMultiLineText(None, "Edit Transcript", "Transcript", current)
        if not ok:
            return
        self.documents.update_transcript(doc_id, value)

    def _set_api_key(self) -> None:
        value, ok = QInputDialog.getText(None, "API Key", "DashScope API Key")
        if not ok:
            return
        self.config_store.set_api_key(value)
        self.capability.replace_api_key(value)
        self.summarizer.replace_api_key(value)
        QMessageBox.information(None, "Saved", "API Key saved and applied.")

    def _set_hotkey(self) -> None:
        value, ok = QInputDialog.getText(
            None, "Hotkey", "Use pynput key format, e.g. Key.f9"
        )
        if not ok or not value:
            return
        self.config_store.set_hotkey(value)
        QMessageBox.information(None, "Saved", "Hotkey saved. Restart app to apply.")

    # ------------------------------------------------------------------
    # Dictation
    # ------------------------------------------------------------------

    def toggle_dictation(self) -> None:
        if self.controller.wants_listening:
            # stop() waits for the flushed final result; keep Qt responsive.
            # The note is saved from on_listening_stopped.
            threading.Thread(target=self.controller.stop, daemon=True).start()
        else:
            self.controller.start()

    def discard_dictation(self) -> None:
        if not self.controller.wants_listening:
            return
        self.notes.discard_next()
        self.controller.cancel()

    def _copy(self, text: str) -> None:
        if self.clipboard.copy_text(text):
            self.ui.notice_signal.emit("Copied to clipboard")

    def _delete(self, doc_id: str) -> None:
        self.documents.delete(doc_id)

    def _summarize(self, doc_id: str) -> None:
        def _work() -> None:
            try:
                summary = self.documents.generate_summary(doc_id)
            except SummarizeError as exc:
                self.ui.error_signal.emit(exc.message, True)
                return
            except KeyError as exc:
                self.ui.error_signal.emit(str(exc), True)
                return
            self.clipboard.copy_text(summary)
            self.ui.notice_signal.emit("Summary saved and copied to clipboard")

        self.ui.notice_signal.emit("Summarizing...")
        threading.Thread(target=_work, daemon=True).start()

    # ------------------------------------------------------------------
    # Controller callbacks (worker threads → emit signals for UI thread)
    # ------------------------------------------------------------------

    def _on_text_changed(self, _text: str) -> None:
        self.ui.transcript_signal.emit(self.controller.transcript, self.controller.partial_text)

    def _on_listening_started(self) -> None:
        self.notes.session_started()
        self.ui.listening_signal.emit(True)

    def _on_listening_stopped(self) -> None:
        self.notes.session_ended()
        self.ui.listening_signal.emit(False)

    def _on_error(self, code: str, message: str, fatal: bool) -> None:
        if is_user_visible(code, fatal):
            self.ui.error_signal.emit(ERROR_MESSAGES.get(code, message), fatal)

    # ------------------------------------------------------------------
    # UI thread handlers (safe for Qt)
    # ------------------------------------------------------------------

    def _on_transcript_ui(self, committed: str, partial: str) -> None:
        self.overlay.set_transcript(committed, partial)

    def _on_listening_ui(self, listening: bool) -> None:
        if listening:
            self.tray.setIcon(_create_icon(ICON_LISTENING))
            self.tray.setToolTip("Dictation Notes — Listening...")
            self.toggle_action.setText("Stop Dictation")
            if not self.overlay.isVisible():
                self.overlay.start_clock()
                self.overlay.set_transcript(self.controller.transcript, "")
        else:
            self.tray.setIcon(_create_icon(ICON_IDLE))
            self.tray.setToolTip("Dictation Notes — Ready")
            self.toggle_action.setText("Start Dictation")
            self.overlay.stop_clock()
            self.overlay.hide_with_delay(1500)

    def _on_error_ui(self, msg: str, fatal: bool) -> None:
        if fatal:
            self.tray.setIcon(_create_icon(ICON_ERROR))
        self.overlay.show_error(msg)

    def _on_notice_ui(self, msg: str) -> None:
        self.tray.showMessage("Dictation Notes", msg)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def run(self) -> int:
        try:
            self.hotkey.start(on_toggle=self.toggle_dictation)
        except Exception as exc:
            logger.warning("hotkey disabled: %s", exc)
            self.overlay.show_error(f"Hotkey disabled: {exc}")
        return self.app.exec()

    def quit(self) -> None:
        self.hotkey.stop()
        self.controller.dispose()
        self.app.quit()


def main() -> int:
    load_environment()
    logging.basicConfig(
        format="%(asctime)s | %(name)s | %(levelname)s | %(message)s",
        level=os.getenv("DICTATION_LOG_LEVEL", "INFO").upper(),
    )
    app = App()
    return app.run()


if __name__ == "__main__":
    raise SystemExit(main())
