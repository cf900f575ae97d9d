"""Keyed in-process storage used for sessions and rate-limit records.

Flow logic only talks to the ``KeyedStore`` interface, so the in-memory
backend can later be swapped for an external cache.
"""

import logging
from abc import ABC, abstractmethod
from typing import Callable, Dict, Generic, Iterator, Optional, Tuple, TypeVar


logger = logging.getLogger(__name__)

T = TypeVar("T")


class KeyedStore(ABC, Generic[T]):
    """Abstract keyed store."""

    @abstractmethod
    def get(self, key: str) -> Optional[T]:
        """Return the value for key, or None."""
        pass

    @abstractmethod
    def put(self, key: str, value: T) -> None:
        """Insert or replace the value for key."""
        pass

    @abstractmethod
    def delete(self, key: str) -> bool:
        """Remove key. Returns whether anything was removed."""
        pass

    @abstractmethod
    def sweep(self, should_remove: Callable[[T], bool]) -> int:
        """Remove every value matching the predicate. Returns the count removed."""
        pass

    @abstractmethod
    def items(self) -> Iterator[Tuple[str, T]]:
        """Snapshot of stored entries."""
        pass


class InMemoryStore(KeyedStore[T]):
    """Dict-backed store. Safe for a single event loop."""

    def __init__(self):
        self._data: Dict[str, T] = {}

    def get(self, key: str) -> Optional[T]:
        return self._data.get(key)

    def put(self, key: str, value: T) -> None:
        self._data[key] = value

    def delete(self, key: str) -> bool:
        return self._data.pop(key, None) is not None

    def sweep(self, should_remove: Callable[[T], bool]) -> int:
        expired = [key for key, value in list(self._data.items()) if should_remove(value)]
        for key in expired:
            del self._data[key]
        return len(expired)

    def items(self) -> Iterator[Tuple[str, T]]:
        return iter(list(self._data.items()))

    def __len__(self) -> int:
        return len(self._data)
