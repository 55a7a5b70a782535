"""Local key-value storage.

Each key is a JSON document. Unreadable or missing documents read as None so
callers can fall back to their defaults.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
import time
from abc import ABC, abstractmethod
from pathlib import Path
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterator, Optional

from .config import get_config

logger = logging.getLogger("promptopt.storage")

# One lock per document path, shared by every JsonFileStorage in the process
_path_locks: Dict[Path, threading.RLock] = {}
_path_locks_guard = threading.Lock()


def _lock_for(path: Path) -> threading.RLock:
    key = path.resolve()
    with _path_locks_guard:
        lock = _path_locks.get(key)
        if lock is None:
            lock = _path_locks[key] = threading.RLock()
        return lock


LOCK_TIMEOUT = 10.0


@contextmanager
def _file_lock(path: Path) -> Iterator[None]:
    """Exclusive ``<path>.lock`` so separate processes update one document in turn."""
    lock_path = path.with_name(path.name + ".lock")
    lock_path.parent.mkdir(parents=True, exist_ok=True)
    deadline = time.monotonic() + LOCK_TIMEOUT
    while True:
        try:
            fd = os.open(lock_path, os.O_CREAT | os.O_EXCL | os.O_WRONLY)
            os.close(fd)
            break
        except FileExistsError:
            if time.monotonic() >= deadline:
                # Left behind by a process that died mid-update
                logger.warning("Breaking stale lock %s", lock_path)
                lock_path.unlink(missing_ok=True)
                deadline = time.monotonic() + LOCK_TIMEOUT
            time.sleep(0.01)
    try:
        yield
    finally:
        lock_path.unlink(missing_ok=True)


class KeyValueStorage(ABC):
    """Interface shared by the file and in-memory stores."""

    @abstractmethod
    def get(self, key: str) -> Any:
        """Stored value, or None when missing or unreadable."""
        pass

    @abstractmethod
    def set(self, key: str, value: Any) -> None:
        pass

    @abstractmethod
    def update(self, key: str, change: Callable[[Any], Any]) -> Any:
        """
        Read-modify-write of one key

        Args:
            key: Storage key
            change: Called with the current stored value (or None), returns the new one

        Returns:
            The value that was written
        """
        pass


class JsonFileStorage(KeyValueStorage):
    """Stores ``<root>/<key>.json`` files. Defaults to ~/.promptopt"""

    def __init__(self, root: Optional[Path] = None):
        self.root = Path(root) if root is not None else get_config().home

    def path_for(self, key: str) -> Path:
        return self.root / f"{key}.json"

    def get(self, key: str) -> Any:
        path = self.path_for(key)
        if not path.exists():
            return None
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning("Ignoring unreadable %s: %s", path, e)
            return None

    def set(self, key: str, value: Any) -> None:
        path = self.path_for(key)
        payload = json.dumps(value, ensure_ascii=False, indent=2)
        with _lock_for(path):
            path.parent.mkdir(parents=True, exist_ok=True)
            # Write to a sibling temp file first so readers never see half a document
            fd, tmp = tempfile.mkstemp(dir=path.parent, prefix=f".{key}.", suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(payload)
                os.replace(tmp, path)
            except BaseException:
                Path(tmp).unlink(missing_ok=True)
                raise

    def update(self, key: str, change: Callable[[Any], Any]) -> Any:
        path = self.path_for(key)
        with _lock_for(path), _file_lock(path):
            value = change(self.get(key))
            self.set(key, value)
            return value


class MemoryStorage(KeyValueStorage):
    """Keeps serialized documents in a dict."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self.data: Dict[str, str] = dict(initial or {})
        self._lock = threading.RLock()

    def get(self, key: str) -> Any:
        raw = self.data.get(key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except ValueError as e:
            logger.warning("Ignoring unreadable value for %s: %s", key, e)
            return None

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            self.data[key] = json.dumps(value, ensure_ascii=False)

    def update(self, key: str, change: Callable[[Any], Any]) -> Any:
        with self._lock:
            value = change(self.get(key))
            self.set(key, value)
            return value
