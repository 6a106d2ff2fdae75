"""
Unit tests for Redis settings. Building a pool opens no connection, so no
server is needed.
"""

import pytest

from jiradl.config.redis_config import RedisConfig

REDIS_VARS = (
    "REDIS_URL",
    "REDIS_HOST",
    "REDIS_PORT",
    "REDIS_DB",
    "REDIS_PASSWORD",
    "REDIS_KEY_PREFIX",
    "CREDENTIAL_TTL_SECONDS",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in REDIS_VARS:
        monkeypatch.delenv(name, raising=False)


class TestRedisConfig:
    def test_defaults(self):
        config = RedisConfig()

        assert config.url == "redis://localhost:6379/0"
        assert config.key_prefix == "jiradl"
        assert config.credential_ttl is None

    def test_url_built_from_parts(self, monkeypatch):
        monkeypatch.setenv("REDIS_HOST", "cache")
        monkeypatch.setenv("REDIS_PORT", "6380")
        monkeypatch.setenv("REDIS_DB", "2")
        monkeypatch.setenv("REDIS_PASSWORD", "p@ss/word")

        config = RedisConfig()

        assert config.url == "redis://:p%40ss%2Fword@cache:6380/2"
        kwargs = config.connect().connection_pool.connection_kwargs
        assert kwargs["host"] == "cache"
        assert kwargs["port"] == 6380
        assert kwargs["db"] == 2
        assert kwargs["password"] == "p@ss/word"

    def test_redis_url_wins_over_parts(self, monkeypatch):
        monkeypatch.setenv("REDIS_URL", "redis://broker:6379/5")
        monkeypatch.setenv("REDIS_HOST", "ignored")

        assert RedisConfig().url == "redis://broker:6379/5"

    def test_credential_ttl(self, monkeypatch):
        monkeypatch.setenv("CREDENTIAL_TTL_SECONDS", "900")

        assert RedisConfig().credential_ttl == 900

    def test_repository_keys_use_prefix(self, monkeypatch):
        monkeypatch.setenv("REDIS_KEY_PREFIX", "exports")
        config = RedisConfig()

        repository = config.repository(config.connect())

        assert repository._make_key("job:1") == "exports:job:1"
