"""
Data types and validation for bookmark records.
"""

import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Optional
from urllib.parse import urlparse


_SCHEME_RE = re.compile(r'^https?://')

# Free-form tag input: commas and runs of whitespace both separate tags
_TAG_SPLIT_RE = re.compile(r'[,\s]+')


@dataclass(frozen=True)
class Bookmark:
    """
    A single bookmark record.

    ``description`` is None when absent, which is distinct from "".
    Tag order is kept as given but lookups only test membership.
    """
    url: str
    description: Optional[str] = None
    tags: tuple[str, ...] = field(default_factory=tuple)

    def has_tag(self, tag: str) -> bool:
        return tag in self.tags

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the persisted record shape."""
        return {
            "url": self.url,
            "description": self.description,
            "tags": list(self.tags),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Bookmark":
        """Build from a persisted record. Caller validates first."""
        return cls(
            url=data["url"],
            description=data.get("description"),
            tags=tuple(data.get("tags") or ()),
        )


def is_valid_url(url: Any) -> bool:
    """Check that url is http(s) with a host that has a dot or is localhost."""
    if not isinstance(url, str) or not url:
        return False
    if not _SCHEME_RE.match(url):
        return False
    try:
        host = urlparse(url).hostname
    except ValueError:
        return False
    if not host:
        return False
    return "." in host or host == "localhost"


def is_valid_record(record: Any) -> bool:
    """Check that a Bookmark or raw mapping is a well-formed record.

    Never raises: malformed input of any shape is simply not valid.
    """
    if isinstance(record, Bookmark):
        url, description, tags = record.url, record.description, record.tags
    elif isinstance(record, Mapping):
        url = record.get("url")
        description = record.get("description")
        tags = record.get("tags")
    else:
        return False

    if not is_valid_url(url):
        return False
    if description is not None and not isinstance(description, str):
        return False
    if not tags:
        return True
    if not isinstance(tags, (list, tuple)):
        return False
    return all(isinstance(t, str) for t in tags)


def normalize_tags(tags: Any) -> list[str]:
    """
    Normalize free-form tag input into a list of tags.

    Accepts a delimited string ("a, b c") or a sequence. Strings are split
    on commas and whitespace; sequences are filtered to non-empty strings.
    Order is preserved and duplicates are kept. Anything else yields [].
    """
    if not tags:
        return []
    if isinstance(tags, str):
        return [t.strip() for t in _TAG_SPLIT_RE.split(tags) if t.strip()]
    if isinstance(tags, (list, tuple)):
        return [t for t in tags if isinstance(t, str) and t]
    return []


def normalize_description(description: Optional[str]) -> Optional[str]:
    """Empty description means absent."""
    if not description:
        return None
    return description
