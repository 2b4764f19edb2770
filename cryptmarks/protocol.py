"""
Protocol definitions for storage backends.

A backend persists and retrieves the full record set at once. Records
cross this boundary in their raw serialized shape (plain dicts); the
cache validates them and builds Bookmark objects.

Implemented by:
- EncryptedFileBackend (gpg-encrypted JSON file)
- PlainFileBackend (plaintext JSON file)
- CustomBackend (user-supplied handler function)
"""

from typing import Any, Callable, Optional, Protocol, runtime_checkable


RawRecord = dict[str, Any]

# handler("read") -> list of raw records; handler("write", records) -> None
BackendHandler = Callable[..., Optional[list[RawRecord]]]


@runtime_checkable
class BackendProtocol(Protocol):
    """Read-all / write-all persistence for the record set."""

    def load_all(self) -> list[RawRecord]: ...

    def store_all(self, records: list[RawRecord]) -> None: ...

    def exists(self) -> bool: ...
