"""
Explicit keyed cache for engine results.

The engine itself never caches. Callers that want to skip recomputation
own a ResultCache and key it by user id plus a content hash of the inputs,
so any change to the logs produces a new key.
"""

from __future__ import annotations

import hashlib
import json
import logging
from typing import Callable, Generic, Optional, TypeVar

from cachetools import LRUCache

from metabolic.engine import EngineInputs
from metabolic.serialization import serialize_inputs

logger = logging.getLogger(__name__)

T = TypeVar("T")


def content_hash(inputs: EngineInputs) -> str:
    """SHA-256 of the canonical JSON form of the inputs."""
    canonical = json.dumps(serialize_inputs(inputs), sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def cache_key(user_id: str, inputs: EngineInputs) -> str:
    return f"{user_id}:{content_hash(inputs)}"


class ResultCache(Generic[T]):
    """Bounded in-memory cache with least-recently-used eviction.

    Not shared between instances; whoever creates it decides its lifetime.
    """

    def __init__(self, max_entries: int = 128) -> None:
        if max_entries < 1:
            raise ValueError(f"max_entries must be at least 1, got {max_entries}")
        self.max_entries = max_entries
        self._entries: LRUCache[str, T] = LRUCache(maxsize=max_entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def get(self, key: str) -> Optional[T]:
        """Cached value for ``key``, or None on a miss."""
        if key not in self._entries:
            logger.debug("Cache miss for key: %s", key)
            return None
        return self._entries[key]

    def put(self, key: str, value: T) -> None:
        """Store a value, evicting the least recently used entry when full."""
        if key not in self._entries and len(self._entries) >= self.max_entries:
            logger.debug("Cache full (%d entries), evicting least recently used", self.max_entries)
        self._entries[key] = value

    def get_or_compute(self, key: str, compute: Callable[[], T]) -> T:
        """Return the cached value or compute, store and return it."""
        if key in self._entries:
            return self._entries[key]
        value = compute()
        self.put(key, value)
        return value

    def invalidate(self, key: str) -> None:
        self._entries.pop(key, None)

    def clear(self) -> None:
        """Remove all entries."""
        self._entries.clear()
