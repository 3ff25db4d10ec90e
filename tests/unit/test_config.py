"""Unit tests for configuration defaults and environment overrides."""

from __future__ import annotations

import pydantic
import pytest

from pitchparty.config import PLACEHOLDER_GIF_URL, CacheSettings, GiphySettings, Settings


class TestDefaults:
    def test_cache_defaults(self) -> None:
        cache = CacheSettings()
        assert cache.size == 20
        assert cache.preload_enabled is True
        assert cache.fill_fraction == 0.8
        assert cache.maintenance_interval_seconds == 30.0
        assert cache.failure_cooldown_seconds == 5.0

    def test_giphy_defaults(self) -> None:
        giphy = GiphySettings()
        assert giphy.api_key == ""
        assert giphy.query == "clapping"
        assert giphy.limit == 50
        assert giphy.pool_ttl_seconds == 3600.0
        assert giphy.placeholder_url == PLACEHOLDER_GIF_URL

    def test_retry_defaults(self) -> None:
        settings = Settings()
        assert settings.retry.max_retries == 5
        assert settings.retry.base_delay_seconds == 1.0


class TestValidation:
    def test_cache_size_must_be_positive(self) -> None:
        with pytest.raises(pydantic.ValidationError):
            CacheSettings(size=0)

    def test_fill_fraction_upper_bound(self) -> None:
        with pytest.raises(pydantic.ValidationError):
            CacheSettings(fill_fraction=1.5)


class TestEnvironment:
    def test_nested_env_override(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("PITCHPARTY__CACHE__SIZE", "42")
        monkeypatch.setenv("PITCHPARTY__CACHE__PRELOAD_ENABLED", "false")
        monkeypatch.setenv("PITCHPARTY__GIPHY__API_KEY", "from-env")

        settings = Settings()

        assert settings.cache.size == 42
        assert settings.cache.preload_enabled is False
        assert settings.giphy.api_key == "from-env"

    def test_constructor_args_beat_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("PITCHPARTY__CACHE__SIZE", "42")
        settings = Settings(cache={"size": 7})
        assert settings.cache.size == 7
