"""
In-memory cache of the decrypted record set.

The cache loads the whole store from its backend on first read, serves
later reads from memory, and writes every mutation straight back. It can
be evicted at any time to drop decrypted data from memory; the next read
decrypts again.

Records that fail validation on load are dropped from the effective
store without raising. The count is kept in ``dropped`` and logged.
"""

import logging
import threading
from contextlib import contextmanager
from typing import Iterable, Iterator, Optional

from .protocol import BackendProtocol
from .types import Bookmark, is_valid_record

logger = logging.getLogger(__name__)


class StoreCache:
    """
    Lazy, dirty-tracked mirror of a backend's records.

    Lifecycle: not loaded -> loaded (on first ``get``/``mutate``) ->
    not loaded (on ``evict``). ``mutate`` flushes before returning, so
    the dirty window only stays open when a flush fails.

    All methods hold one re-entrant lock. Use ``transaction()`` to keep a
    read-modify-write sequence atomic with respect to other callers and
    to eviction.
    """

    def __init__(self, backend: BackendProtocol):
        self.backend = backend
        self._records: Optional[list[Bookmark]] = None
        self._dirty = False
        self._dropped = 0
        self._lock = threading.RLock()

    @property
    def loaded(self) -> bool:
        return self._records is not None

    @property
    def dirty(self) -> bool:
        return self._dirty

    @property
    def dropped(self) -> int:
        """Invalid records discarded by the most recent load or mutation."""
        return self._dropped

    @contextmanager
    def transaction(self) -> Iterator["StoreCache"]:
        """Hold the cache lock across several operations."""
        with self._lock:
            yield self

    def get(self) -> list[Bookmark]:
        """
        Return the current records, loading from the backend if needed.

        Backend errors propagate; nothing is cached when loading fails.
        """
        with self._lock:
            if self._records is None:
                raw = self.backend.load_all()
                self._records = self._filter(raw)
                logger.info(
                    "Loaded %d bookmarks from %r", len(self._records), self.backend
                )
            return list(self._records)

    def mutate(self, records: Iterable[Bookmark]) -> None:
        """Replace the record set and write it back."""
        with self._lock:
            self._records = self._filter(records)
            self._dirty = True
            self.flush()

    def flush(self) -> None:
        """
        Write pending changes to the backend.

        On failure the dirty flag stays set and the error propagates.
        """
        with self._lock:
            if not self._dirty or self._records is None:
                return
            self.backend.store_all([b.to_dict() for b in self._records])
            self._dirty = False
            logger.debug("Flushed %d bookmarks", len(self._records))

    def evict(self) -> None:
        """Forget the in-memory records, whether or not they were flushed."""
        with self._lock:
            if self._dirty:
                logger.warning("Evicting cache with unflushed changes")
            was_loaded = self._records is not None
            self._records = None
            self._dirty = False
            if was_loaded:
                logger.info("Bookmark cache cleared")

    def _filter(self, records: Iterable) -> list[Bookmark]:
        kept: list[Bookmark] = []
        dropped = 0
        for r in records:
            if not is_valid_record(r):
                dropped += 1
                continue
            kept.append(r if isinstance(r, Bookmark) else Bookmark.from_dict(r))
        self._dropped = dropped
        if dropped:
            logger.warning("Dropped %d invalid bookmark records", dropped)
        return kept
