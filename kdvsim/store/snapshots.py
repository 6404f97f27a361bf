from __future__ import annotations
import json
from abc import ABC, abstractmethod
import logging
import re
import threading
from pathlib import Path
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

_KEY_RE = re.compile(r"^[A-Za-z0-9_\-]{1,64}$")


def validate_key(key: str) -> str:
    if not _KEY_RE.match(key or ""):
        raise ValueError("snapshot key must be 1-64 characters of letters, digits, '_' or '-'")
    return key


class SnapshotStore(ABC):
    """Key -> JSON-serializable snapshot of a screen's latest parameters or results."""

    @abstractmethod
    def get(self, key: str) -> Optional[Any]:
        raise NotImplementedError

    @abstractmethod
    def set(self, key: str, value: Any) -> None:
        raise NotImplementedError

    @abstractmethod
    def clear(self, key: str) -> None:
        raise NotImplementedError

    @abstractmethod
    def keys(self) -> list[str]:
        raise NotImplementedError

    def clear_all(self) -> None:
        for key in self.keys():
            self.clear(key)


class MemorySnapshotStore(SnapshotStore):
    def __init__(self):
        self._data: Dict[str, Any] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            return self._data.get(key)

    def set(self, key: str, value: Any) -> None:
        # Store a JSON copy so callers cannot mutate a stored snapshot.
        body = json.loads(json.dumps(value))
        with self._lock:
            self._data[validate_key(key)] = body

    def clear(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def keys(self) -> list[str]:
        with self._lock:
            return sorted(self._data)


class FileSnapshotStore(SnapshotStore):
    """One `<key>.json` file per snapshot under `root`."""

    def __init__(self, root: str | Path):
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()

    def _path(self, key: str) -> Path:
        return self.root / f"{validate_key(key)}.json"

    def get(self, key: str) -> Optional[Any]:
        path = self._path(key)
        with self._lock:
            if not path.exists():
                return None
            return json.loads(path.read_text())

    def set(self, key: str, value: Any) -> None:
        body = json.dumps(value, indent=2)
        with self._lock:
            self._path(key).write_text(body)

    def clear(self, key: str) -> None:
        with self._lock:
            self._path(key).unlink(missing_ok=True)

    def keys(self) -> list[str]:
        with self._lock:
            return sorted(p.stem for p in self.root.glob("*.json"))


def reset_to_defaults(store: SnapshotStore) -> None:
    """Forget every screen snapshot so screens fall back to DEFAULT_PARAMETERS."""
    store.clear_all()
    logger.info("snapshot store reset")
