"""Tests for storage backends and backend selection."""

import json
import os
import stat

import pytest

from cryptmarks.backend import (
    CustomBackend,
    EncryptedFileBackend,
    FileBackend,
    PlainFileBackend,
    create_backend,
    decode_records,
    encode_records,
    register_backend,
    unregister_backend,
)
from cryptmarks.ciphers import GpgCipher
from cryptmarks.config import StoreConfig
from cryptmarks.errors import ConfigurationError, DecryptionFailed, ParseError, StorageIOError
from cryptmarks.protocol import BackendProtocol


RECORDS = [
    {"url": "https://example.com", "description": "Example", "tags": ["a", "b"]},
    {"url": "http://localhost:8000", "description": None, "tags": []},
    {"url": "https://ünïcode.example/päth", "description": "Grüße", "tags": ["ß"]},
]


class TestDecodeRecords:
    @pytest.mark.parametrize("payload", ["", "  ", "\n\n", " \t\n"])
    def test_blank_payload_is_empty(self, payload):
        assert decode_records(payload) == []

    def test_null_is_empty(self):
        assert decode_records("null") == []

    def test_array(self):
        assert decode_records(json.dumps(RECORDS)) == RECORDS

    def test_invalid_json(self):
        with pytest.raises(ParseError):
            decode_records("[{not json")

    def test_object_is_not_a_store(self):
        with pytest.raises(ParseError, match="JSON array"):
            decode_records('{"url": "https://example.com"}')

    def test_elements_are_not_validated_here(self):
        assert decode_records('[1, "x", {"url": "nope"}]') == [1, "x", {"url": "nope"}]

    def test_encode_writes_nulls_explicitly(self):
        text = encode_records([{"url": "https://example.com", "description": None, "tags": []}])
        assert '"description": null' in text
        assert text.endswith("\n")


class TestPlainFileBackend:
    def test_missing_file_loads_empty(self, tmp_path):
        backend = PlainFileBackend(tmp_path / "bookmarks.json")
        assert not backend.exists()
        assert backend.load_all() == []

    def test_round_trip(self, tmp_path):
        backend = PlainFileBackend(tmp_path / "bookmarks.json")
        backend.store_all(RECORDS)
        assert backend.load_all() == RECORDS
        backend.store_all(backend.load_all())
        assert backend.load_all() == RECORDS

    def test_file_is_readable_json(self, tmp_path):
        path = tmp_path / "bookmarks.json"
        PlainFileBackend(path).store_all(RECORDS)
        assert json.loads(path.read_text(encoding="utf-8")) == RECORDS

    def test_store_replaces_contents(self, tmp_path):
        backend = PlainFileBackend(tmp_path / "bookmarks.json")
        backend.store_all(RECORDS)
        backend.store_all(RECORDS[:1])
        assert backend.load_all() == RECORDS[:1]

    def test_creates_parent_directory(self, tmp_path):
        backend = PlainFileBackend(tmp_path / "nested" / "dir" / "bookmarks.json")
        backend.store_all([])
        assert backend.exists()

    def test_owner_only_permissions(self, tmp_path):
        path = tmp_path / "bookmarks.json"
        PlainFileBackend(path).store_all(RECORDS)
        assert stat.S_IMODE(os.stat(path).st_mode) == 0o600

    def test_no_temp_files_left(self, tmp_path):
        PlainFileBackend(tmp_path / "bookmarks.json").store_all(RECORDS)
        assert [p.name for p in tmp_path.iterdir()] == ["bookmarks.json"]

    def test_whitespace_file_is_empty(self, tmp_path):
        path = tmp_path / "bookmarks.json"
        path.write_text("\n\n")
        assert PlainFileBackend(path).load_all() == []

    def test_corrupt_file_raises_parse_error(self, tmp_path):
        path = tmp_path / "bookmarks.json"
        path.write_text("[{")
        with pytest.raises(ParseError):
            PlainFileBackend(path).load_all()

    def test_non_utf8_raises_parse_error(self, tmp_path):
        path = tmp_path / "bookmarks.json"
        path.write_bytes(b"\xff\xfe[]")
        with pytest.raises(ParseError):
            PlainFileBackend(path).load_all()

    def test_unreadable_path_raises_storage_error(self, tmp_path):
        # A directory where the file should be
        path = tmp_path / "bookmarks.json"
        path.mkdir()
        with pytest.raises(StorageIOError):
            PlainFileBackend(path).load_all()

    def test_permission_denied_raises_storage_error(self, tmp_path, monkeypatch):
        path = tmp_path / "bookmarks.json"
        path.write_text("[]")

        def deny(p):
            raise PermissionError(13, "Permission denied", str(p))

        monkeypatch.setattr(type(path), "read_bytes", deny)
        with pytest.raises(StorageIOError) as exc_info:
            PlainFileBackend(path).load_all()
        assert isinstance(exc_info.value.__cause__, PermissionError)

    def test_unwritable_path_raises_storage_error(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")
        with pytest.raises(StorageIOError):
            PlainFileBackend(blocker / "bookmarks.json").store_all([])


class TestEncryptedFile:
    def test_round_trip_through_cipher(self, encrypted_backend, fake_cipher):
        encrypted_backend.store_all(RECORDS)
        assert encrypted_backend.load_all() == RECORDS
        assert fake_cipher.encrypt_calls == 1
        assert fake_cipher.decrypt_calls == 1

    def test_file_is_not_plaintext(self, encrypted_backend):
        encrypted_backend.store_all(RECORDS)
        raw = encrypted_backend.path.read_bytes()
        assert b"example.com" not in raw

    def test_decryption_failure_propagates(self, encrypted_backend):
        encrypted_backend.path.write_bytes(b"garbage")
        with pytest.raises(DecryptionFailed, match="Bad session key"):
            encrypted_backend.load_all()

    def test_decrypts_to_blank(self, encrypted_backend, fake_cipher):
        encrypted_backend.path.write_bytes(fake_cipher.encrypt(b"\n\n"))
        assert encrypted_backend.load_all() == []

    def test_missing_file_skips_cipher(self, encrypted_backend, fake_cipher):
        assert encrypted_backend.load_all() == []
        assert fake_cipher.decrypt_calls == 0

    def test_default_cipher_is_gpg(self, tmp_path):
        backend = EncryptedFileBackend(tmp_path / "b.gpg", "alice@example.org", gpg_binary="gpg2")
        assert isinstance(backend.cipher, GpgCipher)
        assert backend.cipher.recipient == "alice@example.org"
        assert backend.cipher.gpg_binary == "gpg2"

    def test_no_recipient_is_symmetric(self, tmp_path):
        backend = EncryptedFileBackend(tmp_path / "b.gpg")
        assert backend.cipher.symmetric


class TestCustomBackend:
    def test_delegates_read_and_write(self, memory_handler):
        backend = CustomBackend(memory_handler)
        backend.store_all(RECORDS)
        assert memory_handler.writes == 1
        assert backend.load_all() == RECORDS
        assert memory_handler.reads == 1

    def test_none_reads_as_empty(self):
        backend = CustomBackend(lambda mode, records=None: None)
        assert backend.load_all() == []

    def test_non_list_result_is_parse_error(self):
        backend = CustomBackend(lambda mode, records=None: {"url": "x"})
        with pytest.raises(ParseError):
            backend.load_all()

    def test_handler_errors_propagate(self, memory_handler):
        memory_handler.fail_writes = True
        with pytest.raises(OSError, match="disk full"):
            CustomBackend(memory_handler).store_all([])

    def test_always_exists(self, memory_handler):
        assert CustomBackend(memory_handler).exists()


class TestCreateBackend:
    def test_plain(self, tmp_path):
        backend = create_backend(StoreConfig(path=tmp_path, backend="plain"))
        assert isinstance(backend, PlainFileBackend)
        assert backend.path == tmp_path / "bookmarks.json"

    def test_encrypted(self, tmp_path):
        config = StoreConfig(path=tmp_path, backend="encrypted", recipient="bob@example.org")
        backend = create_backend(config)
        assert isinstance(backend, EncryptedFileBackend)
        assert backend.path == tmp_path / "bookmarks.json.gpg"
        assert backend.recipient == "bob@example.org"

    def test_custom_file_name(self, tmp_path):
        config = StoreConfig(path=tmp_path, backend="plain", file="marks.json")
        assert create_backend(config).path == tmp_path / "marks.json"

    def test_registered_handler(self, tmp_path, memory_handler):
        register_backend("memory", memory_handler)
        try:
            backend = create_backend(StoreConfig(path=tmp_path, backend="memory"))
            assert isinstance(backend, CustomBackend)
            assert backend.handler is memory_handler
        finally:
            unregister_backend("memory")

    def test_cannot_shadow_builtin(self, memory_handler):
        with pytest.raises(ConfigurationError):
            register_backend("plain", memory_handler)

    def test_unset_backend(self, tmp_path):
        with pytest.raises(ConfigurationError, match="No backend"):
            create_backend(StoreConfig(path=tmp_path, backend=""))

    def test_unknown_backend(self, tmp_path):
        with pytest.raises(ConfigurationError, match="Unknown backend"):
            create_backend(StoreConfig(path=tmp_path, backend="carrier-pigeon"))

    def test_configuration_error_is_value_error(self, tmp_path):
        with pytest.raises(ValueError):
            create_backend(StoreConfig(path=tmp_path, backend="carrier-pigeon"))

    @pytest.mark.parametrize("backend", ["plain", "encrypted"])
    def test_satisfies_protocol(self, tmp_path, backend):
        assert isinstance(create_backend(StoreConfig(path=tmp_path, backend=backend)), BackendProtocol)

    def test_file_backend_satisfies_protocol(self, encrypted_backend):
        assert isinstance(encrypted_backend, FileBackend)
        assert isinstance(encrypted_backend, BackendProtocol)
