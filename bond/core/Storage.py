"""
Key-value storage slots for the persisted graph.

The graph is stored as one opaque text blob under one key. MemoryStorage backs
tests and throwaway sessions; FileStorage keeps one file per key in a
directory so the graph survives restarts.
"""
from __future__ import annotations

import os
import re
from abc import ABC, abstractmethod
from logging import getLogger
from pathlib import Path
from typing import Dict, Optional, Union

logger = getLogger(__name__)


class KeyValueStorage(ABC):

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        pass

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        pass

    @abstractmethod
    def remove(self, key: str) -> None:
        pass


class MemoryStorage(KeyValueStorage):
    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._slots: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._slots.get(key)

    def set(self, key: str, value: str) -> None:
        self._slots[key] = value

    def remove(self, key: str) -> None:
        self._slots.pop(key, None)

    def __contains__(self, key: str) -> bool:
        return key in self._slots


class FileStorage(KeyValueStorage):
    """One ``<key>.json`` file per key under ``root``."""

    _SAFE_KEY = re.compile(r"^[A-Za-z0-9._-]+$")

    def __init__(self, root: Union[str, Path]):
        self.root = Path(root).expanduser()

    def _path(self, key: str) -> Path:
        if not self._SAFE_KEY.match(key):
            raise ValueError(f"Storage key '{key}' contains unsupported characters")
        return self.root / f"{key}.json"

    def get(self, key: str) -> Optional[str]:
        path = self._path(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as exc:
            # Unreadable slot is treated the same as an empty one.
            logger.warning(f"Could not read storage slot {path}: {exc}")
            return None

    def set(self, key: str, value: str) -> None:
        path = self._path(key)
        self.root.mkdir(parents=True, exist_ok=True)
        # Write then rename so a crash never leaves a half-written blob.
        tmp_path = path.with_suffix(".json.tmp")
        tmp_path.write_text(value, encoding="utf-8")
        os.replace(tmp_path, path)

    def remove(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)
