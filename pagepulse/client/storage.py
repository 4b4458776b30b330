"""
PagePulse client — page-local key/value storage.

The page runtime's analogue of browser local storage: string keys, string
values, surviving reloads when backed by a file.
"""

from __future__ import annotations

import json
import logging
import os
from typing import Optional, Protocol

logger = logging.getLogger("pagepulse.client")


class Storage(Protocol):
    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...


class MemoryStorage:
    """Storage that lives as long as the process."""

    def __init__(self, initial: Optional[dict[str, str]] = None):
        self._data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = str(value)


class JsonFileStorage:
    """Storage persisted to a JSON file (best-effort, like a browser's)."""

    def __init__(self, path: str):
        self.path = path
        self._data: dict[str, str] = {}
        self._load()

    def _load(self) -> None:
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                loaded = json.load(f)
        except FileNotFoundError:
            return
        except (OSError, ValueError):
            logger.warning("Could not read page storage from %s, starting empty", self.path)
            return
        if isinstance(loaded, dict):
            self._data = {str(k): str(v) for k, v in loaded.items()}

    def _save(self) -> None:
        directory = os.path.dirname(self.path)
        try:
            if directory:
                os.makedirs(directory, exist_ok=True)
            with open(self.path, "w", encoding="utf-8") as f:
                json.dump(self._data, f)
        except OSError:
            logger.warning("Could not persist page storage to %s", self.path)

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = str(value)
        self._save()
