"""
Pluggable storage backend factory.

Creates the storage backend based on configuration. Built-in backends
store a JSON array in a file, either gpg-encrypted or in plaintext.
Custom backends are plain handler functions, registered at runtime with
``register_backend`` or published via the ``cryptmarks.backends`` entry
point group.

A handler takes a mode tag and, for writes, the records::

    def handler(mode: str, records: list[dict] | None = None):
        if mode == "read":
            return [...]
        if mode == "write":
            ...

and can be registered in a package's pyproject.toml::

    [project.entry-points."cryptmarks.backends"]
    my-backend = "my_package.backend:handler"
"""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Optional

from .ciphers import CipherProtocol, GpgCipher, IdentityCipher
from .config import StoreConfig
from .errors import ConfigurationError, ParseError, StorageIOError
from .protocol import BackendHandler, BackendProtocol, RawRecord

logger = logging.getLogger(__name__)

_custom_handlers: dict[str, BackendHandler] = {}


def decode_records(payload: str) -> list[RawRecord]:
    """
    Parse a decrypted payload into raw records.

    Empty or whitespace-only payloads and a top-level null mean no records.
    Individual elements are not checked here; the cache drops bad ones.
    """
    text = payload.strip()
    if not text:
        return []
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ParseError(f"Bookmarks file is not valid JSON: {e}") from e
    if data is None:
        return []
    if not isinstance(data, list):
        raise ParseError(
            f"Bookmarks file must contain a JSON array, got {type(data).__name__}"
        )
    return data


def encode_records(records: list[RawRecord]) -> str:
    """Serialize raw records to the persisted JSON text."""
    return json.dumps(records, ensure_ascii=False, indent=2) + "\n"


class FileBackend:
    """
    Stores the record set as a single JSON file passed through a cipher.

    A missing file reads as an empty store. Writes replace the whole file
    atomically (temp file + rename) with owner-only permissions.
    """

    def __init__(self, path: Path, cipher: CipherProtocol):
        self.path = Path(path)
        self.cipher = cipher

    def exists(self) -> bool:
        return self.path.exists()

    def load_all(self) -> list[RawRecord]:
        try:
            raw = self.path.read_bytes()
        except FileNotFoundError:
            logger.debug("No bookmarks file at %s", self.path)
            return []
        except OSError as e:
            raise StorageIOError(f"Cannot read {self.path}: {e}") from e
        plaintext = self.cipher.decrypt(raw)
        try:
            text = plaintext.decode("utf-8")
        except UnicodeDecodeError as e:
            raise ParseError(f"Bookmarks file is not UTF-8 text: {e}") from e
        return decode_records(text)

    def store_all(self, records: list[RawRecord]) -> None:
        data = self.cipher.encrypt(encode_records(records).encode("utf-8"))
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp = tempfile.mkstemp(
                dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp"
            )
            try:
                with os.fdopen(fd, "wb") as f:
                    f.write(data)
                os.chmod(tmp, 0o600)
                os.replace(tmp, self.path)
            except BaseException:
                Path(tmp).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise StorageIOError(f"Cannot write {self.path}: {e}") from e
        logger.debug("Wrote %d records to %s", len(records), self.path)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({str(self.path)!r})"


class EncryptedFileBackend(FileBackend):
    """JSON file encrypted with gpg (to a recipient, or symmetric)."""

    def __init__(
        self,
        path: Path,
        recipient: Optional[str] = None,
        *,
        cipher: Optional[CipherProtocol] = None,
        gpg_binary: str = "gpg",
    ):
        super().__init__(path, cipher or GpgCipher(recipient, gpg_binary=gpg_binary))
        self.recipient = recipient


class PlainFileBackend(FileBackend):
    """Plaintext JSON file."""

    def __init__(self, path: Path):
        super().__init__(path, IdentityCipher())


class CustomBackend:
    """Adapts a handler function to the backend protocol.

    The handler owns its storage, so the medium always counts as existing.
    """

    def __init__(self, handler: BackendHandler, name: str = "custom"):
        self.handler = handler
        self.name = name

    def exists(self) -> bool:
        return True

    def load_all(self) -> list[RawRecord]:
        records = self.handler("read")
        if records is None:
            return []
        if not isinstance(records, list):
            raise ParseError(
                f"Backend {self.name!r} returned {type(records).__name__}, expected a list"
            )
        return records

    def store_all(self, records: list[RawRecord]) -> None:
        self.handler("write", records)

    def __repr__(self) -> str:
        return f"CustomBackend({self.name!r})"


def register_backend(name: str, handler: BackendHandler) -> None:
    """Register a custom backend handler under a selector name."""
    if name in ("encrypted", "plain"):
        raise ConfigurationError(f"Cannot replace built-in backend: {name!r}")
    _custom_handlers[name] = handler


def unregister_backend(name: str) -> None:
    _custom_handlers.pop(name, None)


def create_backend(config: StoreConfig) -> BackendProtocol:
    """
    Create the storage backend from configuration.

    ``encrypted`` and ``plain`` are built in. Other names are looked up in
    the runtime registry, then in the ``cryptmarks.backends`` entry points.
    """
    name = config.backend
    if not name:
        raise ConfigurationError("No backend configured")
    if name == "encrypted":
        return EncryptedFileBackend(
            config.data_path, config.recipient, gpg_binary=config.gpg
        )
    if name == "plain":
        return PlainFileBackend(config.data_path)
    if name in _custom_handlers:
        return CustomBackend(_custom_handlers[name], name)
    return CustomBackend(_load_handler(name), name)


def _load_handler(name: str) -> Any:
    """Load a backend handler by entry point name."""
    from importlib.metadata import entry_points

    eps = entry_points(group="cryptmarks.backends")
    for ep in eps:
        if ep.name == name:
            return ep.load()

    available = ["encrypted", "plain", *sorted(_custom_handlers), *[ep.name for ep in eps]]
    raise ConfigurationError(
        f"Unknown backend: {name!r}. Available: {available}"
    )
