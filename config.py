"""Simple JSON-based config store."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv

from models import ListenConfig

logger = logging.getLogger(__name__)

DEFAULT_HOTKEY = "Key.f9"
DEFAULT_ASR_MODEL = "qwen3-asr-flash"
DEFAULT_SUMMARY_MODEL = "qwen-plus"


def load_environment(env_path: Optional[Path] = None) -> None:
    """Load ``.env`` values (e.g. DASHSCOPE_API_KEY) into the process."""
    load_dotenv(dotenv_path=env_path)


class JsonConfigStore:
    def __init__(self, path: Path | None = None) -> None:
        self._path = path or Path.home() / ".config" / "dictation_notes" / "config.json"
        self._path.parent.mkdir(parents=True, exist_ok=True)

    def get_api_key(self) -> str:
        data = self._read_all()
        return str(data.get("api_key") or os.getenv("DASHSCOPE_API_KEY", ""))

    def set_api_key(self, key: str) -> None:
        self._set("api_key", key)

    def get_hotkey(self) -> str:
        return str(self._read_all().get("hotkey", DEFAULT_HOTKEY))

    def set_hotkey(self, hotkey: str) -> None:
        self._set("hotkey", hotkey)

    def get_locale(self) -> Optional[str]:
        value = self._read_all().get("locale")
        return str(value) if value else None

    def set_locale(self, locale: Optional[str]) -> None:
        self._set("locale", locale)

    def get_asr_model(self) -> str:
        return str(self._read_all().get("asr_model", DEFAULT_ASR_MODEL))

    def get_summary_model(self) -> str:
        return str(self._read_all().get("summary_model", DEFAULT_SUMMARY_MODEL))

    def get_data_dir(self) -> Path:
        value = self._read_all().get("data_dir")
        if value:
            return Path(value).expanduser()
        return Path.home() / ".local" / "share" / "dictation_notes"

    def get_listen_config(self) -> ListenConfig:
        data = self._read_all()
        defaults = ListenConfig()
        return ListenConfig(
            listen_for_s=_as_float(data.get("listen_for_s"), defaults.listen_for_s),
            pause_for_s=_as_float(data.get("pause_for_s"), defaults.pause_for_s),
            locale=self.get_locale(),
        )

    def _set(self, name: str, value: Any) -> None:
        data = self._read_all()
        data[name] = value
        self._write_all(data)

    def _read_all(self) -> dict:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError) as exc:
            logger.warning("ignoring unreadable config %s: %s", self._path, exc)
            return {}
        return data if isinstance(data, dict) else {}

    def _write_all(self, data: dict) -> None:
        self._path.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")


def _as_float(value: Any, default: float) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    return number if number > 0 else default
