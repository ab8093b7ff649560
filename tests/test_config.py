"""Tests for Settings."""

from __future__ import annotations

from pathlib import Path

import pytest

from terminai.config import DEFAULT_MAX_KEEP, DEFAULT_TIMEOUT, Settings
from terminai.errors import InvalidRequestError


class TestSettingsFromEnv:
    def test_defaults_follow_xdg(self):
        settings = Settings.from_env({"XDG_CACHE_HOME": "/c", "XDG_STATE_HOME": "/s"})
        assert settings.cache_dir == Path("/c/terminai")
        assert settings.state_dir == Path("/s/terminai")
        assert settings.memory_file == Path("/s/terminai/memory.json")
        assert settings.max_keep == DEFAULT_MAX_KEEP
        assert settings.strict_storage is False

    def test_defaults_without_xdg(self):
        settings = Settings.from_env({})
        assert settings.cache_dir == Path.home() / ".cache" / "terminai"
        assert settings.state_dir == Path.home() / ".local" / "state" / "terminai"

    def test_explicit_overrides(self):
        settings = Settings.from_env(
            {
                "XDG_CACHE_HOME": "/c",
                "TERMINAI_CACHE_DIR": "/my/cache",
                "TERMINAI_STATE_DIR": "/my/state",
                "TERMINAI_MAX_KEEP": "5",
                "TERMINAI_MEMORY_WINDOW": "3",
                "TERMINAI_STRICT_STORAGE": "true",
                "TERMINAI_SERVE_FROM_CACHE": "1",
                "TERMINAI_MODEL": "tiny",
            }
        )
        assert settings.cache_dir == Path("/my/cache")
        assert settings.state_dir == Path("/my/state")
        assert settings.max_keep == 5
        assert settings.memory_window == 3
        assert settings.strict_storage is True
        assert settings.serve_from_cache is True
        assert settings.model == "tiny"

    def test_invalid_values_are_rejected(self):
        with pytest.raises(ValueError):
            Settings.from_env({"TERMINAI_MAX_KEEP": "0"})
        with pytest.raises(ValueError):
            Settings.from_env({"TERMINAI_MAX_KEEP": "many"})

    def test_with_overrides_skips_none(self, settings: Settings):
        updated = settings.with_overrides(cache_dir=Path("/elsewhere"), state_dir=None)
        assert updated.cache_dir == Path("/elsewhere")
        assert updated.state_dir == settings.state_dir

    def test_request_timeout(self):
        assert Settings.from_env({}).timeout == DEFAULT_TIMEOUT
        assert Settings.from_env({"TERMINAI_TIMEOUT": "30"}).timeout == 30
        assert Settings.from_env({"TERMINAI_TIMEOUT": ""}).timeout == DEFAULT_TIMEOUT

    @pytest.mark.parametrize("bad", ["soon", "0", "-5", "1.5"])
    def test_invalid_request_timeout(self, bad):
        with pytest.raises(InvalidRequestError):
            Settings.from_env({"TERMINAI_TIMEOUT": bad})
