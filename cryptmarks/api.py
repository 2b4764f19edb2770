"""
Core API for the encrypted bookmark store.

Record operations validate input, apply the change to the cached record
set and write it back before returning. Queries read from the cache and
only touch the backend to load it.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Callable, Optional, Sequence

from .backend import create_backend
from .cache import StoreCache
from .config import StoreConfig, get_config_dir, load_or_create_config
from .errors import DuplicateBookmark, InvalidBookmark, InvalidURL, NoBookmarks, NotFound
from .idle import IdleEvictor
from .protocol import BackendProtocol
from .query import all_tags, exists, filter_by_tag, find_by_url
from .types import (
    Bookmark,
    is_valid_record,
    is_valid_url,
    normalize_description,
    normalize_tags,
)

logger = logging.getLogger(__name__)

Chooser = Callable[[Sequence[Bookmark]], Bookmark]


class Bookmarks:
    """
    Encrypted bookmark store.

    Example:
        bm = Bookmarks()
        bm.add("https://example.com", "Example", "web, demo")
        for b in bm.list(tag="web"):
            print(b.url)
    """

    def __init__(
        self,
        store_path: Optional[str | Path] = None,
        *,
        config: Optional[StoreConfig] = None,
        backend: Optional[BackendProtocol] = None,
        ops_log: bool = True,
    ) -> None:
        """
        Open a bookmark store.

        Args:
            store_path: Store directory holding cryptmarks.toml. Uses
                $CRYPTMARKS_HOME or ~/.cryptmarks if not specified.
            config: Pre-loaded StoreConfig (skips filesystem config discovery).
            backend: Injected backend (skips backend creation from config).
            ops_log: Write an operations log into the store directory.
        """
        if config is not None:
            self._config = config
        else:
            config_dir = Path(store_path).expanduser() if store_path is not None else get_config_dir()
            self._config = load_or_create_config(config_dir)

        self._backend = backend if backend is not None else create_backend(self._config)
        self._cache = StoreCache(self._backend)

        self._ops_log_handler = None
        if ops_log:
            from .logging_config import configure_ops_log
            self._config.path.mkdir(parents=True, exist_ok=True)
            self._ops_log_handler = configure_ops_log(self._config.path)

        self._idle: Optional[IdleEvictor] = None
        security = self._config.security
        if security.clear_cache_on_idle:
            self._idle = IdleEvictor(self._cache.evict, security.idle_seconds)

    @property
    def config(self) -> StoreConfig:
        return self._config

    @property
    def backend(self) -> BackendProtocol:
        return self._backend

    @property
    def cache(self) -> StoreCache:
        return self._cache

    def _touch(self) -> None:
        if self._idle is not None:
            self._idle.touch()

    @staticmethod
    def _build(url: str, description: Any, tags: Any) -> Bookmark:
        """Build a normalized record, rejecting input the store would drop."""
        if not is_valid_url(url):
            raise InvalidURL(url)
        if description is not None and not isinstance(description, str):
            raise InvalidBookmark(
                f"Description must be a string, got {type(description).__name__}"
            )
        bookmark = Bookmark(
            url=url,
            description=normalize_description(description),
            tags=tuple(normalize_tags(tags)),
        )
        if not is_valid_record(bookmark):
            raise InvalidBookmark(f"Invalid bookmark for {url}")
        return bookmark

    # -------------------------------------------------------------------------
    # Record operations
    # -------------------------------------------------------------------------

    def add(
        self,
        url: str,
        description: Optional[str] = None,
        tags: Any = None,
    ) -> Bookmark:
        """
        Add a bookmark at the end of the store.

        Raises:
            InvalidURL: url is not a usable http(s) URL
            InvalidBookmark: description is not a string
            DuplicateBookmark: a bookmark with this url exists
        """
        self._touch()
        bookmark = self._build(url, description, tags)
        with self._cache.transaction() as cache:
            records = cache.get()
            if exists(records, url):
                raise DuplicateBookmark(url)
            records.append(bookmark)
            cache.mutate(records)
        logger.info("Added bookmark (%d stored)", len(records))
        return bookmark

    def delete(self, url: str) -> bool:
        """
        Delete the bookmark with this url.

        Deleting a url that isn't stored is a no-op. Returns True if a
        bookmark was removed.

        Raises:
            NoBookmarks: the store is empty
        """
        self._touch()
        with self._cache.transaction() as cache:
            records = cache.get()
            if not records:
                raise NoBookmarks()
            remaining = [b for b in records if b.url != url]
            removed = len(remaining) != len(records)
            cache.mutate(remaining)
        if removed:
            logger.info("Deleted bookmark (%d stored)", len(remaining))
        else:
            logger.debug("Delete: no matching bookmark")
        return removed

    def edit(
        self,
        url: str,
        description: Optional[str] = None,
        tags: Any = None,
    ) -> Bookmark:
        """
        Replace the description and tags of an existing bookmark.

        Both fields are replaced: an empty description clears it and
        empty tags remove all tags. Position in the store is kept.

        Raises:
            InvalidURL: url is not a usable http(s) URL
            InvalidBookmark: description is not a string
            NotFound: no bookmark with this url
        """
        self._touch()
        updated = self._build(url, description, tags)
        with self._cache.transaction() as cache:
            records = cache.get()
            for i, b in enumerate(records):
                if b.url == url:
                    break
            else:
                raise NotFound(url)
            records[i] = updated
            cache.mutate(records)
        logger.info("Edited bookmark %d of %d", i + 1, len(records))
        return updated

    def reload(self) -> list[Bookmark]:
        """Discard cached records and read the backend again."""
        self._touch()
        with self._cache.transaction() as cache:
            cache.evict()
            return cache.get()

    def initialize(self) -> bool:
        """
        Create an empty store if the backend has none yet.

        Returns True if the store was created.
        """
        if self._backend.exists():
            return False
        self._backend.store_all([])
        logger.info("Initialized empty store at %r", self._backend)
        return True

    def clear_cache(self) -> None:
        """Drop decrypted bookmarks from memory now."""
        if self._idle is not None:
            self._idle.cancel()
        self._cache.evict()

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def get(self, url: str) -> Optional[Bookmark]:
        self._touch()
        return find_by_url(self._cache.get(), url)

    def exists(self, url: str) -> bool:
        self._touch()
        return exists(self._cache.get(), url)

    def list(self, tag: Optional[str] = None) -> list[Bookmark]:
        """All bookmarks in store order, optionally only those with ``tag``."""
        self._touch()
        records = self._cache.get()
        if tag:
            return filter_by_tag(records, tag)
        return records

    def list_tags(self) -> list[str]:
        """All tags in use, sorted."""
        self._touch()
        return sorted(all_tags(self._cache.get()))

    def select_one(
        self,
        tag: Optional[str] = None,
        chooser: Optional[Chooser] = None,
    ) -> str:
        """
        Pick one bookmark and return its URL.

        ``chooser`` receives the candidates and returns one of them. Without
        a chooser, a single candidate is returned as is.

        Raises:
            NoBookmarks: there are no candidates
            ValueError: several candidates and no chooser, or the chooser
                returned something that isn't a candidate
        """
        candidates = self.list(tag)
        if not candidates:
            if tag:
                raise NoBookmarks(f"No bookmarks tagged {tag!r}")
            raise NoBookmarks()
        if chooser is None:
            if len(candidates) > 1:
                raise ValueError(f"{len(candidates)} bookmarks match; a chooser is required")
            return candidates[0].url
        chosen = chooser(candidates)
        if chosen not in candidates:
            raise ValueError(f"Chooser returned a bookmark that isn't a candidate: {chosen!r}")
        return chosen.url

    def count(self) -> int:
        self._touch()
        return len(self._cache.get())

    # -------------------------------------------------------------------------

    def close(self) -> None:
        """Stop the idle timer, drop cached records and remove the ops log handler."""
        if self._idle is not None:
            self._idle.cancel()
        self._cache.evict()

        if self._ops_log_handler is not None:
            logging.getLogger("cryptmarks").removeHandler(self._ops_log_handler)
            self._ops_log_handler.close()
            self._ops_log_handler = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
