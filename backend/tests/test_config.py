"""Tests for blog_api.core.config.Settings."""

from typing import Any

import pytest
from pydantic import ValidationError

from blog_api.core.config import Settings

# Shared kwargs that satisfy required fields
_BASE: dict[str, Any] = {
    "jwt_secret_key": "a-valid-secret-key-that-is-long-enough-for-testing",
    "database_url": "postgresql+asyncpg://u:p@localhost/db",
}


class TestJwtSecretValidation:

    def test_short_secret_rejected(self):
        with pytest.raises(ValidationError):
            Settings(**{**_BASE, "jwt_secret_key": "too-short"})

    def test_valid_secret_accepted(self):
        s = Settings(**_BASE)
        assert len(s.jwt_secret_key) >= 32


class TestCorsOrigins:
    """cors_origins parses comma-separated string."""

    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("http://a,http://b", ["http://a", "http://b"]),
            ("http://a , http://b ", ["http://a", "http://b"]),
            ("http://only", ["http://only"]),
            ("", []),
        ],
        ids=["basic", "whitespace", "single", "empty"],
    )
    def test_cors_parsing(self, raw: str, expected: list[str]):
        s = Settings(**_BASE, CORS_ORIGINS=raw)
        assert s.cors_origins == expected


class TestAiModels:

    def test_fallback_order_kept(self):
        s = Settings(**_BASE, AI_MODELS="gpt-4o-mini, gpt-3.5-turbo")
        assert s.ai_models == ["gpt-4o-mini", "gpt-3.5-turbo"]

    def test_empty_entries_dropped(self):
        assert Settings(**_BASE, AI_MODELS="a,,b,").ai_models == ["a", "b"]


class TestDatabaseUrl:

    @pytest.mark.parametrize(
        "raw",
        ["postgres://u:p@db:5432/blog", "postgresql://u:p@db:5432/blog"],
        ids=["postgres", "postgresql"],
    )
    def test_sync_urls_use_asyncpg(self, raw: str):
        s = Settings(**{**_BASE, "database_url": raw})
        assert s.database_url == "postgresql+asyncpg://u:p@db:5432/blog"

    def test_async_urls_untouched(self):
        s = Settings(**{**_BASE, "database_url": "sqlite+aiosqlite://"})
        assert s.database_url == "sqlite+aiosqlite://"


class TestNotificationSettings:

    def test_defaults(self):
        s = Settings(**_BASE)
        assert s.notification_retention_days == 30
        assert s.notification_cleanup_interval_hours == 24
        assert s.notification_cleanup_enabled is True

    def test_interval_must_be_positive(self):
        with pytest.raises(ValidationError):
            Settings(**_BASE, notification_cleanup_interval_hours=0)


class TestRedisAvailable:
    """redis_available flag based on credentials."""

    def test_redis_available_when_both_set(self):
        s = Settings(
            **_BASE,
            upstash_redis_rest_url="https://redis.example.com",
            upstash_redis_rest_token="tok",
        )
        assert s.redis_available is True

    def test_redis_unavailable_when_url_missing(self):
        s = Settings(**_BASE, upstash_redis_rest_url="", upstash_redis_rest_token="tok")
        assert s.redis_available is False

    def test_redis_unavailable_when_token_missing(self):
        s = Settings(**_BASE, upstash_redis_rest_url="https://r.io", upstash_redis_rest_token="")
        assert s.redis_available is False


class TestDefaults:
    """Sensible default values."""

    def test_app_name(self):
        assert Settings(**_BASE).app_name == "Blog API"

    def test_api_prefix(self):
        assert Settings(**_BASE).api_prefix == "/api/v1"

    def test_jwt_algorithm_default(self):
        assert Settings(**_BASE).jwt_algorithm == "HS256"

    def test_rate_limit_enabled_default(self):
        assert Settings(**_BASE, rate_limit_enabled=True).rate_limit_enabled is True
