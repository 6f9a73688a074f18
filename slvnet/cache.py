"""A keyed in-memory store for loaded assets."""

from __future__ import annotations

from typing import Generic, Hashable, TypeVar

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")


class AssetCache(Generic[K, V]):
    """Holds loaded assets by key."""

    def __init__(self) -> None:
        self._entries: dict[K, V] = {}

    def get(self, key):
        """Return the asset stored under ``key``, or None."""
        return self._entries.get(key)

    def insert(self, key, value):
        """Store ``value`` under ``key``, replacing any earlier entry."""
        self._entries[key] = value

    def __contains__(self, key):
        return key in self._entries

    def __len__(self):
        return len(self._entries)