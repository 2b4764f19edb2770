"""
cryptmarks - encrypted bookmark store.

Bookmarks are kept in a gpg-encrypted (or plain) JSON file, cached in
memory while in use and dropped from memory after inactivity.

Basic usage:
    from cryptmarks import Bookmarks

    bm = Bookmarks()
    bm.add("https://example.com", "Example", "web, demo")
    urls = [b.url for b in bm.list(tag="web")]
"""

from .api import Bookmarks
from .backend import (
    CustomBackend,
    EncryptedFileBackend,
    PlainFileBackend,
    create_backend,
    register_backend,
    unregister_backend,
)
from .cache import StoreCache
from .config import SecurityConfig, StoreConfig
from .errors import (
    ConfigurationError,
    CryptmarksError,
    DecryptionFailed,
    DuplicateBookmark,
    EncryptionFailed,
    InvalidBookmark,
    InvalidURL,
    NoBookmarks,
    NotFound,
    ParseError,
    StorageIOError,
)
from .types import Bookmark, is_valid_record, is_valid_url, normalize_tags

__version__ = "0.1.0"
__all__ = [
    "Bookmark",
    "Bookmarks",
    "ConfigurationError",
    "CryptmarksError",
    "CustomBackend",
    "DecryptionFailed",
    "DuplicateBookmark",
    "EncryptedFileBackend",
    "EncryptionFailed",
    "InvalidBookmark",
    "InvalidURL",
    "NoBookmarks",
    "NotFound",
    "ParseError",
    "PlainFileBackend",
    "SecurityConfig",
    "StorageIOError",
    "StoreCache",
    "StoreConfig",
    "create_backend",
    "is_valid_record",
    "is_valid_url",
    "normalize_tags",
    "register_backend",
    "unregister_backend",
]
