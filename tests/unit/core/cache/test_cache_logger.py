"""
缓存日志记录测试

测试结构化 JSON 日志格式的正确性。
"""

import json
from unittest.mock import Mock

import pytest

from devmate.core.cache import CacheLogger, get_cache_logger


class TestCacheLogger:
    """测试缓存日志记录器"""

    @pytest.fixture
    def cache_logger(self):
        return CacheLogger("test.cache")

    @pytest.fixture
    def mock_logger(self, cache_logger):
        cache_logger.logger = Mock()
        return cache_logger.logger

    def test_log_cache_get(self, cache_logger, mock_logger):
        cache_logger.log_cache_get(key="/api/posts_user:1", hit=True, latency_ms=5.234)

        log_data = json.loads(mock_logger.debug.call_args[0][0])
        assert log_data["operation"] == "cache_get"
        assert log_data["key"] == "/api/posts_user:1"
        assert log_data["hit"] is True
        assert log_data["latency_ms"] == 5.23
        assert log_data["source"] == "RedisClient"
        assert "timestamp" in log_data

    def test_log_cache_invalidate_pattern(self, cache_logger, mock_logger):
        cache_logger.log_cache_invalidate(pattern="/api/posts*", count=3)

        log_data = json.loads(mock_logger.info.call_args[0][0])
        assert log_data["operation"] == "cache_invalidate"
        assert log_data["pattern"] == "/api/posts*"
        assert log_data["count"] == 3
        assert "key" not in log_data

    def test_log_cache_error(self, cache_logger, mock_logger):
        cache_logger.log_cache_error("set", "k", ValueError("bad ttl"))

        log_data = json.loads(mock_logger.error.call_args[0][0])
        assert log_data["level"] == "ERROR"
        assert log_data["original_operation"] == "set"
        assert log_data["error_type"] == "ValueError"
        assert log_data["error"] == "bad ttl"

    @pytest.mark.parametrize("new_state, method", [("error", "warning"), ("end", "warning"), ("ready", "info")])
    def test_log_state_change(self, cache_logger, mock_logger, new_state, method):
        cache_logger.log_state_change("connected", new_state)

        log_data = json.loads(getattr(mock_logger, method).call_args[0][0])
        assert log_data["from"] == "connected"
        assert log_data["to"] == new_state

    def test_get_cache_logger_is_shared(self):
        assert get_cache_logger() is get_cache_logger()
