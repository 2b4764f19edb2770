"""Tests for TOML store configuration."""

import pytest

from cryptmarks.config import (
    CONFIG_FILENAME,
    SecurityConfig,
    StoreConfig,
    get_config_dir,
    load_config,
    load_or_create_config,
    save_config,
)
from cryptmarks.errors import ConfigurationError


class TestConfigDir:
    def test_env_override(self, tmp_path, monkeypatch):
        monkeypatch.setenv("CRYPTMARKS_HOME", str(tmp_path / "custom"))
        assert get_config_dir() == tmp_path / "custom"

    def test_default(self, monkeypatch):
        monkeypatch.delenv("CRYPTMARKS_HOME", raising=False)
        assert get_config_dir().name == ".cryptmarks"


class TestSaveLoad:
    def test_round_trip(self, tmp_path):
        config = StoreConfig(
            path=tmp_path,
            backend="encrypted",
            file="marks.gpg",
            recipient="alice@example.org",
            gpg="gpg2",
            security=SecurityConfig(clear_cache_on_idle=False, idle_seconds=60),
        )
        save_config(config)
        loaded = load_config(tmp_path)
        assert loaded == config

    def test_defaults_omit_optional_keys(self, tmp_path):
        save_config(StoreConfig(path=tmp_path))
        text = (tmp_path / CONFIG_FILENAME).read_text()
        assert "recipient" not in text
        assert 'backend = "encrypted"' in text
        loaded = load_config(tmp_path)
        assert loaded.recipient is None
        assert loaded.security == SecurityConfig()

    def test_missing_config(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path)

    def test_load_or_create(self, tmp_path):
        store = tmp_path / "store"
        config = load_or_create_config(store)
        assert (store / CONFIG_FILENAME).exists()
        assert config.backend == "encrypted"
        assert load_or_create_config(store) == config

    def test_data_path_defaults(self, tmp_path):
        assert StoreConfig(path=tmp_path).data_path == tmp_path / "bookmarks.json.gpg"
        assert StoreConfig(path=tmp_path, backend="plain").data_path == tmp_path / "bookmarks.json"

    def test_absolute_data_path(self, tmp_path):
        target = tmp_path / "elsewhere" / "b.json"
        config = StoreConfig(path=tmp_path / "store", file=str(target))
        assert config.data_path == target


class TestInvalidConfig:
    def _write(self, tmp_path, text):
        (tmp_path / CONFIG_FILENAME).write_text(text)

    def test_missing_backend_is_unset(self, tmp_path):
        self._write(tmp_path, "[store]\nversion = 1\n")
        assert load_config(tmp_path).backend == ""

    def test_newer_version(self, tmp_path):
        self._write(tmp_path, '[store]\nversion = 99\nbackend = "plain"\n')
        with pytest.raises(ConfigurationError, match="newer"):
            load_config(tmp_path)

    def test_bad_toml(self, tmp_path):
        self._write(tmp_path, "[store\n")
        with pytest.raises(ConfigurationError):
            load_config(tmp_path)

    @pytest.mark.parametrize("idle", ["0", "-5", '"soon"', "true"])
    def test_bad_idle_seconds(self, tmp_path, idle):
        self._write(tmp_path, f'[store]\nbackend = "plain"\n\n[security]\nidle_seconds = {idle}\n')
        with pytest.raises(ConfigurationError, match="idle_seconds"):
            load_config(tmp_path)

    def test_bad_clear_flag(self, tmp_path):
        self._write(tmp_path, '[store]\nbackend = "plain"\n\n[security]\nclear_cache_on_idle = "yes"\n')
        with pytest.raises(ConfigurationError, match="clear_cache_on_idle"):
            load_config(tmp_path)

    @pytest.mark.parametrize("text, key", [
        ('store = "plain"\n', "store"),
        ('security = 5\n\n[store]\nbackend = "plain"\n', "security"),
    ])
    def test_section_not_a_table(self, tmp_path, text, key):
        self._write(tmp_path, text)
        with pytest.raises(ConfigurationError, match=key):
            load_config(tmp_path)

    def test_string_version(self, tmp_path):
        self._write(tmp_path, '[store]\nversion = "1"\nbackend = "plain"\n')
        with pytest.raises(ConfigurationError, match="version"):
            load_config(tmp_path)

    @pytest.mark.parametrize("key", ["backend", "path", "recipient", "gpg"])
    def test_non_string_store_field(self, tmp_path, key):
        self._write(tmp_path, f'[store]\nversion = 1\n{key} = 5\n')
        with pytest.raises(ConfigurationError, match=key):
            load_config(tmp_path)
