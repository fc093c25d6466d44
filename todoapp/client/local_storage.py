"""Stockage local clé/valeur (équivalent du localStorage du navigateur)"""

import json
import logging
import os
import threading
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

TODOS_KEY = "next-todo"
THEME_KEY = "theme"
TOKEN_KEY = "token"


class LocalStorage:
    def __init__(self, path):
        self.path = Path(path)
        self._lock = threading.Lock()

    def _read(self) -> dict:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except ValueError as e:
            logger.warning(f"Corrupted storage file {self.path}: {e}")
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self, data: dict) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_name(self.path.name + ".tmp")
        tmp.write_text(json.dumps(data), encoding="utf-8")
        os.replace(tmp, self.path)

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            return self._read().get(key, default)

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            data = self._read()
            data[key] = value
            self._write(data)

    def remove(self, key: str) -> None:
        with self._lock:
            data = self._read()
            if data.pop(key, None) is not None:
                self._write(data)


class ThemePreference:
    LIGHT = "light"
    DARK = "dark"

    def __init__(self, storage: LocalStorage, default: str = LIGHT):
        self.storage = storage
        self.default = default

    @property
    def current(self) -> str:
        value = self.storage.get(THEME_KEY)
        return value if value in (self.LIGHT, self.DARK) else self.default

    def set(self, theme: str) -> None:
        if theme not in (self.LIGHT, self.DARK):
            raise ValueError(f"Unknown theme: {theme}")
        self.storage.set(THEME_KEY, theme)

    def toggle(self) -> str:
        theme = self.LIGHT if self.current == self.DARK else self.DARK
        self.set(theme)
        return theme
