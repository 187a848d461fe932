"""
缓存配置单元测试
"""

import pytest
from pydantic import ValidationError

from devmate.core.cache import CacheConfig, create_cache_config_from_settings, create_redis_client, validate_cache_config
from tests.helpers.app_factory import make_settings


class TestCacheConfig:
    def test_url_takes_precedence(self):
        config = CacheConfig(url="rediss://cache.example.com:6380/1", host="ignored")
        assert config.resolve_connection_url() == "rediss://cache.example.com:6380/1"

    def test_url_built_from_host_port(self):
        assert CacheConfig(host="redis", port=6380, db=2).resolve_connection_url() == "redis://redis:6380/2"

    def test_password_is_quoted(self):
        config = CacheConfig(host="redis", password="p@ss/word")
        assert config.resolve_connection_url() == "redis://:p%40ss%2Fword@redis:6379/0"

    @pytest.mark.parametrize(
        "field, value",
        [("port", 0), ("port", 70000), ("db", -1), ("default_ttl", 0), ("max_retries", -1), ("reconnect_interval", -1)],
    )
    def test_invalid_values(self, field, value):
        with pytest.raises(ValidationError):
            CacheConfig(**{field: value})


class TestValidateCacheConfig:
    def test_default_config_has_no_warnings(self):
        assert validate_cache_config(CacheConfig()) == []

    def test_disabled_cache(self):
        warnings = validate_cache_config(CacheConfig(enabled=False))
        assert len(warnings) == 1

    def test_suspicious_values(self):
        warnings = validate_cache_config(CacheConfig(default_ttl=5, key_prefix="", max_retries=20, reconnect_interval=0))
        assert len(warnings) == 4


class TestFromSettings:
    def test_create_from_settings(self):
        settings = make_settings(REDIS_URL=None, REDIS_HOST="cache", REDIS_PORT=6390, CACHE_KEY_PREFIX="dm")

        config = create_cache_config_from_settings(settings)
        client = create_redis_client(config)

        assert client.url == "redis://cache:6390/0"
        assert client.key_prefix == "dm"
        assert client.reconnect_interval == 0

    def test_redis_url_from_settings(self):
        config = create_cache_config_from_settings(make_settings(REDIS_URL="redis://:secret@r:6379/3"))
        assert config.resolve_connection_url() == "redis://:secret@r:6379/3"
