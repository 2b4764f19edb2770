"""Read-only queries over a sequence of bookmarks."""

from typing import Iterable, Optional, Sequence

from .types import Bookmark


def find_by_url(store: Iterable[Bookmark], url: str) -> Optional[Bookmark]:
    """First bookmark with this URL, in store order."""
    for bookmark in store:
        if bookmark.url == url:
            return bookmark
    return None


def exists(store: Iterable[Bookmark], url: str) -> bool:
    return find_by_url(store, url) is not None


def all_tags(store: Iterable[Bookmark]) -> set[str]:
    """Every tag used by any bookmark. Unordered; sort for display."""
    tags: set[str] = set()
    for bookmark in store:
        tags.update(bookmark.tags)
    return tags


def filter_by_tag(store: Sequence[Bookmark], tag: str) -> list[Bookmark]:
    """Bookmarks carrying ``tag`` (exact match), in store order."""
    return [b for b in store if b.has_tag(tag)]
