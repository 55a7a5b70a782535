"""
Optimization History

Keeps the most recent optimization results, newest first, with a favorite
flag and text search.
"""

from __future__ import annotations

import logging
import threading
import time
from enum import Enum
from typing import Any, Callable, List, Optional, Union

from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from . import HISTORY_KEY
from .models import HistoryEntry, TargetModel
from .storage import KeyValueStorage

logger = logging.getLogger("promptopt.history")

MAX_HISTORY_ENTRIES = 100

_entries_adapter: TypeAdapter = TypeAdapter(List[HistoryEntry])


class HistoryView(str, Enum):
    HISTORY = "history"
    FAVORITES = "favorites"


def parse_history(data: Any) -> List[HistoryEntry]:
    """Validate a stored collection; malformed data reads as empty."""
    if not isinstance(data, list):
        return []
    try:
        return _entries_adapter.validate_python(data)
    except PydanticValidationError as e:
        logger.warning("Stored history is invalid, starting fresh: %s", e.error_count())
        return []


def _next_id(entries: List[HistoryEntry]) -> int:
    """Millisecond timestamp, bumped past the newest id when the clock repeats."""
    now = int(time.time() * 1000)
    if entries:
        now = max(now, max(e.id for e in entries) + 1)
    return now


def _flip(entry: HistoryEntry) -> HistoryEntry:
    entry.is_favorite = not entry.is_favorite
    return entry


class HistoryStore:
    """Manages the bounded history collection and its persistence"""

    def __init__(
        self,
        storage: KeyValueStorage,
        key: str = HISTORY_KEY,
        max_entries: int = MAX_HISTORY_ENTRIES,
    ):
        """
        Initialize history store

        Args:
            storage: Key-value storage the collection is saved to
            key: Storage key of the collection
            max_entries: Maximum number of entries to keep
        """
        self.storage = storage
        self.key = key
        self.max_entries = max_entries
        self._lock = threading.RLock()
        self.entries: List[HistoryEntry] = []
        self.load()

    def load(self):
        """Load history from storage"""
        with self._lock:
            self.entries = parse_history(self.storage.get(self.key))[: self.max_entries]

    def _commit(self, change: Callable[[List[HistoryEntry]], List[HistoryEntry]]) -> None:
        """Apply ``change`` to the stored collection and persist it.

        The collection is re-read inside the storage update, so entries written
        by another store over the same storage are kept.
        """

        def _apply(stored: Any) -> List[dict]:
            entries = change(parse_history(stored)[: self.max_entries])
            self.entries = entries[: self.max_entries]
            return [e.to_storage() for e in self.entries]

        with self._lock:
            self.storage.update(self.key, _apply)

    def __len__(self) -> int:
        return len(self.entries)

    def next_id(self) -> int:
        return _next_id(self.entries)

    def record(
        self,
        original_prompt: str,
        optimized_prompt: str,
        target_model: Union[TargetModel, str],
    ) -> HistoryEntry:
        """Create an entry for a finished optimization and append it."""
        model = TargetModel(target_model)
        created: List[HistoryEntry] = []

        def _prepend(entries: List[HistoryEntry]) -> List[HistoryEntry]:
            entry = HistoryEntry(
                id=_next_id(entries),
                original_prompt=original_prompt,
                optimized_prompt=optimized_prompt,
                target_model=model,
            )
            created.append(entry)
            return [entry] + entries

        self._commit(_prepend)
        return created[0]

    def append(self, entry: HistoryEntry) -> None:
        """Prepend ``entry``, evict past capacity and persist."""
        self._commit(lambda entries: [entry] + [e for e in entries if e.id != entry.id])

    def get_by_id(self, entry_id: int) -> Optional[HistoryEntry]:
        for entry in self.entries:
            if entry.id == entry_id:
                return entry
        return None

    def toggle_favorite(self, entry_id: int) -> Optional[HistoryEntry]:
        """Flip the favorite flag. Returns the entry, or None if the id is unknown."""
        with self._lock:
            if self.get_by_id(entry_id) is None:
                return None
            self._commit(lambda entries: [_flip(e) if e.id == entry_id else e for e in entries])
            return self.get_by_id(entry_id)

    def filter(
        self,
        view: Union[HistoryView, str] = HistoryView.HISTORY,
        search_term: str = "",
    ) -> List[HistoryEntry]:
        """
        Entries for a sidebar view

        Args:
            view: "history" for everything, "favorites" for flagged entries
            search_term: Case-insensitive text matched against both prompts

        Returns:
            Matching entries, newest first
        """
        items = list(self.entries)
        if HistoryView(view) is HistoryView.FAVORITES:
            items = [e for e in items if e.is_favorite]
        if search_term:
            items = [e for e in items if e.matches(search_term)]
        return items

    def favorites(self) -> List[HistoryEntry]:
        return self.filter(HistoryView.FAVORITES)
