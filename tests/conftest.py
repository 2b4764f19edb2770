"""
Shared pytest fixtures for cryptmarks tests.

Provides a fake cipher and an in-memory backend so no test needs gpg.
"""

import base64
import copy

import pytest

from cryptmarks.api import Bookmarks
from cryptmarks.backend import FileBackend
from cryptmarks.config import SecurityConfig, StoreConfig
from cryptmarks.errors import DecryptionFailed


class FakeCipher:
    """
    Reversible stand-in for gpg.

    Ciphertext is a marker plus base64, so tests can check the file on
    disk is not plaintext. Anything without the marker fails to decrypt.
    """

    MARKER = b"FAKE-ENCRYPTED:"

    def __init__(self):
        self.encrypt_calls = 0
        self.decrypt_calls = 0

    def encrypt(self, data: bytes) -> bytes:
        self.encrypt_calls += 1
        return self.MARKER + base64.b64encode(data)

    def decrypt(self, data: bytes) -> bytes:
        self.decrypt_calls += 1
        if not data.startswith(self.MARKER):
            raise DecryptionFailed("gpg: decryption failed: Bad session key")
        return base64.b64decode(data[len(self.MARKER):])


class MemoryHandler:
    """Custom backend handler keeping records in a list."""

    def __init__(self, records=None):
        self.records = copy.deepcopy(records) if records is not None else []
        self.reads = 0
        self.writes = 0
        self.fail_writes = False

    def __call__(self, mode, records=None):
        if mode == "read":
            self.reads += 1
            return copy.deepcopy(self.records)
        if mode == "write":
            if self.fail_writes:
                raise OSError("disk full")
            self.writes += 1
            self.records = copy.deepcopy(records)
            return None
        raise ValueError(f"unknown mode {mode!r}")


@pytest.fixture
def fake_cipher():
    return FakeCipher()


@pytest.fixture
def memory_handler():
    return MemoryHandler()


@pytest.fixture
def plain_config(tmp_path):
    """Plain-file config with idle eviction off."""
    return StoreConfig(
        path=tmp_path,
        backend="plain",
        security=SecurityConfig(clear_cache_on_idle=False),
    )


@pytest.fixture
def encrypted_backend(tmp_path, fake_cipher):
    return FileBackend(tmp_path / "bookmarks.json.gpg", fake_cipher)


@pytest.fixture
def bm(plain_config, encrypted_backend):
    """Bookmarks over an encrypted file using the fake cipher."""
    bookmarks = Bookmarks(config=plain_config, backend=encrypted_backend, ops_log=False)
    yield bookmarks
    bookmarks.close()


@pytest.fixture
def memory_bm(plain_config, memory_handler):
    """Bookmarks over an in-memory custom backend."""
    from cryptmarks.backend import CustomBackend
    bookmarks = Bookmarks(
        config=plain_config,
        backend=CustomBackend(memory_handler, "memory"),
        ops_log=False,
    )
    yield bookmarks
    bookmarks.close()
