from __future__ import annotations

import logging
import time
from collections import OrderedDict
from collections.abc import Callable
from dataclasses import dataclass

from .schemas import LinkMetadata

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CacheEntry:
    metadata: LinkMetadata
    expires_at: float | None


class MetadataCache:
    """
    In-memory metadata cache keyed by normalized URL.
    - Entries expire after ``ttl`` seconds (falsy ttl: never)
    - At most ``max_entries`` are kept; the least recently used one is evicted
    """

    def __init__(
        self,
        *,
        ttl: float | None = 24 * 60 * 60,
        max_entries: int = 1024,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self._ttl = ttl or None
        self._max_entries = max_entries
        self._clock = clock
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()

    def get(self, key: str) -> LinkMetadata | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.expires_at is not None and entry.expires_at <= self._clock():
            logger.debug("Cache entry expired: %s", key)
            del self._entries[key]
            return None
        self._entries.move_to_end(key)
        return entry.metadata

    def set(self, key: str, metadata: LinkMetadata) -> None:
        expires_at = self._clock() + self._ttl if self._ttl else None
        self._entries[key] = CacheEntry(metadata=metadata, expires_at=expires_at)
        self._entries.move_to_end(key)
        while len(self._entries) > self._max_entries:
            evicted, _ = self._entries.popitem(last=False)
            logger.debug("Cache full, evicted: %s", evicted)

    def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()

    def __contains__(self, key: object) -> bool:
        entry = self._entries.get(key) if isinstance(key, str) else None
        if entry is None:
            return False
        return entry.expires_at is None or entry.expires_at > self._clock()

    def __len__(self) -> int:
        return len(self._entries)
