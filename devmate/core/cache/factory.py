"""
缓存工厂函数

根据配置创建缓存组件。组件在进程启动时创建一次，通过 app.state 传递给使用方。
"""

import logging
from typing import Any

from devmate.core.cache.config import CacheConfig
from devmate.core.cache.invalidation import InvalidationRule
from devmate.core.cache.monitor import CacheMonitor, MonitoredCache
from devmate.core.cache.redis_client import RedisClient

logger = logging.getLogger(__name__)


def create_redis_client(config: CacheConfig) -> RedisClient:
    """根据配置创建 Redis 客户端（不发起连接）

    Args:
        config: 缓存配置

    Returns:
        RedisClient 实例
    """
    return RedisClient(
        url=config.resolve_connection_url(),
        key_prefix=config.key_prefix,
        max_retries=config.max_retries,
        socket_timeout=config.socket_timeout,
        socket_connect_timeout=config.socket_timeout,
        reconnect_interval=config.reconnect_interval,
    )


def create_monitored_cache(client: RedisClient) -> MonitoredCache:
    """在客户端之上创建带统计的缓存门面"""
    return MonitoredCache(client, CacheMonitor())


def load_invalidation_rules(raw_rules: list[dict[str, Any]]) -> list[InvalidationRule]:
    """从配置项加载失效规则

    Args:
        raw_rules: 形如 {"path": ..., "patterns": [...], "methods": [...]} 的字典列表

    Returns:
        list[InvalidationRule]: 校验后的规则列表

    Raises:
        pydantic.ValidationError: 规则格式错误
    """
    rules = [InvalidationRule.model_validate(raw) for raw in raw_rules]
    for rule in rules:
        logger.debug(f"加载缓存失效规则: {sorted(rule.methods)} {rule.path} -> {rule.patterns}")
    return rules
