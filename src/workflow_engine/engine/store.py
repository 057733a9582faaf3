"""In-memory keyed storage for definitions and instances.

Nothing is persisted across restarts. The store owns the canonical copy of
every item: `put` stores a deep copy and reads hand out deep copies, so the
only way to change stored state is another `put`.
"""

from __future__ import annotations

import threading
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Generic, TypeVar

from pydantic import BaseModel

from workflow_engine.engine.errors import InvalidItemError

ModelT = TypeVar("ModelT", bound=BaseModel)


class _KeyLock:
    __slots__ = ("lock", "holders")

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.holders = 0


@dataclass
class KeyedStore(Generic[ModelT]):
    """Thread-safe mapping from an item's identifier to the item.

    `key` extracts the identifier from an item. Besides the store-wide lock
    guarding the mapping, `locked(item_id)` holds one lock per key so callers
    can make read-modify-write sequences on a single id atomic without
    blocking other ids. A key lock lives only while someone holds or waits on
    it, so lookups of ids that never existed leave nothing behind.
    """

    key: Callable[[ModelT], str]

    def __post_init__(self) -> None:
        self._lock = threading.Lock()
        self._items: dict[str, ModelT] = {}
        self._key_locks: dict[str, _KeyLock] = {}

    def put(self, item: ModelT) -> None:
        item_id = self.key(item)
        if not isinstance(item_id, str) or not item_id.strip():
            raise InvalidItemError(
                f"{type(item).__name__} has a missing or empty identifier"
            )
        copy = item.model_copy(deep=True)
        with self._lock:
            self._items[item_id] = copy

    def get(self, item_id: str) -> ModelT | None:
        if not item_id:
            return None
        with self._lock:
            item = self._items.get(item_id)
            return item.model_copy(deep=True) if item is not None else None

    def list(self) -> list[ModelT]:
        # Snapshot taken under the store lock; insertion order, but callers
        # must not rely on it.
        with self._lock:
            return [item.model_copy(deep=True) for item in self._items.values()]

    @contextmanager
    def locked(self, item_id: str) -> Iterator[None]:
        with self._lock:
            entry = self._key_locks.get(item_id)
            if entry is None:
                entry = self._key_locks[item_id] = _KeyLock()
            entry.holders += 1
        try:
            with entry.lock:
                yield
        finally:
            with self._lock:
                entry.holders -= 1
                if entry.holders == 0:
                    del self._key_locks[item_id]

    def locked_keys(self) -> int:
        """Number of keys currently held or waited on."""

        with self._lock:
            return len(self._key_locks)

    def __contains__(self, item_id: object) -> bool:
        with self._lock:
            return item_id in self._items

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)
