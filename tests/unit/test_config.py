"""
Unit tests — config.py
"""
from __future__ import annotations

import pytest
import yaml

from imgcache.config import CacheSettings
from imgcache.exceptions import ConfigError


@pytest.fixture
def clean_env(monkeypatch):
    monkeypatch.delenv("IMGCACHE_STORAGE_DIR", raising=False)
    monkeypatch.delenv("IMGCACHE_CONFIG", raising=False)


class TestDefaults:

    def test_defaults_match_cache_constants(self):
        from imgcache.cache import CACHE_EXPIRY_MS, CACHE_KEY, MAX_CACHE_SIZE
        from imgcache.preloader import PRELOAD_DELAY

        settings = CacheSettings()
        assert settings.max_entries == MAX_CACHE_SIZE
        assert settings.expiry_ms == CACHE_EXPIRY_MS
        assert settings.storage_key == CACHE_KEY
        assert settings.preload_delay == PRELOAD_DELAY

    def test_storage_path_expands_home(self):
        assert "~" not in str(CacheSettings(storage_dir="~/imgs").storage_path)

    def test_load_without_sources_gives_defaults(self, clean_env):
        assert CacheSettings.load() == CacheSettings()


class TestLoad:

    def test_yaml_file(self, tmp_path):
        path = tmp_path / "imgcache.yaml"
        path.write_text(yaml.safe_dump({"max_entries": 10, "expiry_days": 1.5, "verify_images": False}))

        settings = CacheSettings.load(path)
        assert settings.max_entries == 10
        assert settings.expiry_ms == int(1.5 * 24 * 60 * 60 * 1000)
        assert settings.verify_images is False

    def test_config_path_from_environment(self, tmp_path, monkeypatch):
        path = tmp_path / "imgcache.yaml"
        path.write_text("storage_key: shop_images\n")
        monkeypatch.setenv("IMGCACHE_CONFIG", str(path))
        assert CacheSettings.load().storage_key == "shop_images"

    def test_environment_overrides_file(self, tmp_path, monkeypatch):
        path = tmp_path / "imgcache.yaml"
        path.write_text("max_entries: 10\nlog_level: info\nstorage_key: from_file\n")
        monkeypatch.setenv("IMGCACHE_MAX_ENTRIES", "25")
        monkeypatch.setenv("IMGCACHE_VERIFY_IMAGES", "false")

        settings = CacheSettings.load(path)
        assert settings.max_entries == 25
        assert settings.verify_images is False
        assert settings.log_level == "INFO"
        assert settings.storage_key == "from_file"

    def test_overrides_win_and_none_is_ignored(self, tmp_path, monkeypatch):
        monkeypatch.setenv("IMGCACHE_LOG_LEVEL", "ERROR")
        settings = CacheSettings.load(
            overrides={"log_level": "debug", "storage_dir": None}
        )
        assert settings.log_level == "DEBUG"
        assert settings.storage_dir.endswith("shared-store")

    def test_save_then_load(self, tmp_path, clean_env):
        path = tmp_path / "out.yaml"
        original = CacheSettings(max_entries=7, preload_delay=0.25, storage_dir=str(tmp_path))
        original.save(path)
        assert CacheSettings.load(path) == original

    def test_empty_file(self, tmp_path, clean_env):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert CacheSettings.load(path) == CacheSettings()


class TestValidation:

    @pytest.mark.parametrize(
        "overrides",
        [
            {"max_entries": 0},
            {"expiry_days": 0},
            {"preload_delay": -1},
            {"request_timeout": 0},
            {"quota_bytes": -5},
            {"log_level": "LOUD"},
            {"storage_key": "../escape"},
            {"storage_key": ""},
        ],
    )
    def test_out_of_range_values(self, overrides):
        with pytest.raises(ConfigError, match=next(iter(overrides))):
            CacheSettings.load(overrides=overrides)

    def test_unknown_key(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("max_entriez: 3\n")
        with pytest.raises(ConfigError, match="max_entriez"):
            CacheSettings.load(path)

    def test_non_mapping_file(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- 1\n- 2\n")
        with pytest.raises(ConfigError, match="mapping"):
            CacheSettings.load(path)

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "broken.yaml"
        path.write_text("max_entries: [1,\n")
        with pytest.raises(ConfigError, match="Invalid YAML"):
            CacheSettings.load(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError, match="Cannot read"):
            CacheSettings.load(tmp_path / "nope.yaml")

    @pytest.mark.parametrize(
        "name, value",
        [("IMGCACHE_MAX_ENTRIES", "many"), ("IMGCACHE_VERIFY_IMAGES", "perhaps")],
    )
    def test_bad_environment_values(self, monkeypatch, name, value):
        monkeypatch.setenv(name, value)
        with pytest.raises(ConfigError, match="Invalid settings"):
            CacheSettings.load()
