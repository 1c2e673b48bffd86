"""Tests for settings and Redis key layout."""

import pytest
from pydantic import ValidationError

from cleanplay.config import Settings, WorkerSettings
from cleanplay.infrastructure.cache import RedisKeys


class TestSettings:
    """Test defaults and environment overrides."""

    def test_defaults(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Scheduler defaults: 3s ticks, 2 parallel checks, 24h lyrics cache."""
        monkeypatch.chdir("/")
        settings = Settings()

        assert settings.worker.check_interval_seconds == 3.0
        assert settings.worker.parallel_checks == 2
        assert settings.lyrics.cache_ttl_seconds == 24 * 60 * 60
        assert settings.app_key == "cleanplay"

    def test_nested_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Nested groups are set with a double underscore."""
        monkeypatch.setenv("WORKER__PARALLEL_CHECKS", "8")
        monkeypatch.setenv("SPOTIFY__CLIENT_ID", "abc")
        monkeypatch.setenv("LYRICS__MUSIXMATCH_TOKENS", '["t1", "t2"]')

        settings = Settings()

        assert settings.worker.parallel_checks == 8
        assert settings.spotify.client_id == "abc"
        assert settings.lyrics.musixmatch_tokens == ["t1", "t2"]

    def test_rejects_zero_parallelism(self) -> None:
        """At least one check must run at a time."""
        with pytest.raises(ValidationError):
            WorkerSettings(parallel_checks=0)


class TestRedisKeys:
    """Test the key layout."""

    def test_keys_are_namespaced(self) -> None:
        """Every key starts with the app key."""
        keys = RedisKeys("app")

        assert keys.lyrics("genius", "t1") == "app:lyrics:genius:t1"
        assert keys.backoff("u1") == "app:backoff:u1"
        assert keys.rate_limit("u1", "analyze") == "app:ratelimit:u1:analyze"
        assert keys.skippage("u1", "t1") == "app:skippage:u1:t1"
        assert keys.notice("cannot_skip", "u1") == "app:notice:cannot_skip:u1"
        assert keys.profanity_queue == "app:queue:profanity_check"
