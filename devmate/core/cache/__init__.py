"""
缓存模块

提供基于 Redis 的响应缓存：带连接状态跟踪的客户端、命中统计、
GET 响应缓存中间件和写操作失效中间件。Redis 不可用时整体退化为直通。
"""

from devmate.core.cache.config import CacheConfig, create_cache_config_from_settings, validate_cache_config
from devmate.core.cache.factory import create_monitored_cache, create_redis_client, load_invalidation_rules
from devmate.core.cache.invalidation import InvalidationMiddleware, InvalidationRule
from devmate.core.cache.logger import CacheLogger, get_cache_logger
from devmate.core.cache.metrics import CacheMetrics, get_cache_metrics
from devmate.core.cache.middleware import CacheMiddleware, build_cache_key
from devmate.core.cache.monitor import CacheMonitor, MonitoredCache
from devmate.core.cache.redis_client import MISSING, ConnectionState, RedisClient

__all__ = [
    "CacheConfig",
    "create_cache_config_from_settings",
    "validate_cache_config",
    "create_redis_client",
    "create_monitored_cache",
    "load_invalidation_rules",
    "RedisClient",
    "ConnectionState",
    "MISSING",
    "CacheMonitor",
    "MonitoredCache",
    "CacheMiddleware",
    "build_cache_key",
    "InvalidationMiddleware",
    "InvalidationRule",
    "CacheLogger",
    "get_cache_logger",
    "CacheMetrics",
    "get_cache_metrics",
]
