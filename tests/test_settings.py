"""
Tests for the settings module.

Verifies:
- Defaults when settings.json is missing or corrupt
- Versioned envelope on write
- Cache invalidation on set / remove and via clear_entry()
"""
import json

import pytest

from imagor_editor import settings
from imagor_editor.config import DEFAULT_SETTINGS


def write_raw(config_home, payload):
    (config_home / "settings.json").write_text(payload, encoding="utf-8")


class TestDefaults:

    def test_missing_file_uses_defaults(self, config_home):
        assert settings.get_setting("base_url") == "http://localhost:8000"
        assert settings.get_all() == DEFAULT_SETTINGS

    def test_explicit_default_wins_for_missing_key(self, config_home):
        assert settings.get_setting("custom", default=3) == 3

    @pytest.mark.parametrize("payload", [
        "{broken",
        json.dumps({"base_url": "http://flat"}),
        json.dumps({"version": 2, "settings": {"base_url": "http://future"}}),
        json.dumps({"version": 1, "settings": ["nope"]}),
    ])
    def test_bad_file_falls_back(self, config_home, payload):
        write_raw(config_home, payload)
        assert settings.get_setting("base_url") == "http://localhost:8000"


class TestPersistence:

    def test_set_writes_envelope(self, config_home):
        settings.set_setting("secret", "mysecret")
        raw = json.loads((config_home / "settings.json").read_text(encoding="utf-8"))
        assert raw == {"version": 1, "settings": {"secret": "mysecret"}}

    def test_set_keeps_other_keys(self, config_home):
        settings.set_setting("secret", "s")
        settings.set_setting("unsafe", False)
        assert settings.get_setting("secret") == "s"
        assert settings.get_setting("unsafe") is False

    def test_remove_restores_default(self, config_home):
        settings.set_setting("debounce_ms", 100)
        settings.remove_setting("debounce_ms")
        assert settings.get_setting("debounce_ms") == 500

    def test_remove_unknown_key_is_noop(self, config_home):
        settings.remove_setting("never-set")
        assert not (config_home / "settings.json").exists()


class TestCache:

    def test_value_cached_until_cleared(self, config_home):
        assert settings.get_setting("base_url") == "http://localhost:8000"
        write_raw(config_home, json.dumps({"version": 1, "settings": {"base_url": "http://edited"}}))
        assert settings.get_setting("base_url") == "http://localhost:8000"

        settings.clear_entry("base_url")
        assert settings.get_setting("base_url") == "http://edited"

    def test_set_invalidates_entry(self, config_home):
        assert settings.get_setting("access_token") == ""
        settings.set_setting("access_token", "tok")
        assert settings.get_setting("access_token") == "tok"

    def test_failed_write_keeps_cache(self, config_home):
        settings.get_setting("secret")
        with pytest.raises(TypeError):
            settings.set_setting("secret", object())
        assert settings.get_setting("secret") == ""
