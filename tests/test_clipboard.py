from __future__ import annotations

from unittest.mock import MagicMock

import clipboard
from clipboard import ClipboardService


def test_copy_returns_false_when_dependency_missing(monkeypatch) -> None:  # noqa: ANN001
    monkeypatch.setattr(clipboard, "pyperclip", None)

    assert ClipboardService().copy_text("hello") is False


def test_copy_rejects_blank_text(monkeypatch) -> None:  # noqa: ANN001
    fake = MagicMock()
    monkeypatch.setattr(clipboard, "pyperclip", fake)

    assert ClipboardService().copy_text("   ") is False
    fake.copy.assert_not_called()


def test_copy_writes_text(monkeypatch) -> None:  # noqa: ANN001
    fake = MagicMock()
    monkeypatch.setattr(clipboard, "pyperclip", fake)

    assert ClipboardService().copy_text("note body") is True
    fake.copy.assert_called_once_with("note body")


def test_copy_failure_is_reported(monkeypatch) -> None:  # noqa: ANN001
    fake = MagicMock()
    fake.copy.side_effect = RuntimeError("no clipboard mechanism")
    monkeypatch.setattr(clipboard, "pyperclip", fake)

    assert ClipboardService().copy_text("note body") is False
