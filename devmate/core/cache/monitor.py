"""
缓存监控模块

在 RedisClient 之上统计命中、未命中、写入和错误次数，不改变任何缓存行为。
"""

import logging
import time
from typing import Any

from devmate.core.cache.metrics import get_cache_metrics
from devmate.core.cache.redis_client import DEFAULT_TTL, MISSING, RedisClient

logger = logging.getLogger(__name__)

# 只有读写操作的错误计入 errors
COUNTED_ERROR_OPERATIONS = frozenset({"get", "set"})


class CacheMonitor:
    """缓存统计计数器

    计数只增不减，仅在运维显式调用 reset() 时清零，不做持久化。
    """

    def __init__(self):
        self.started_at = time.monotonic()
        self.metrics = get_cache_metrics()
        self._reset_counters()

    def _reset_counters(self) -> None:
        self.hits = 0
        self.misses = 0
        self.sets = 0
        self.errors = 0

    def record_hit(self) -> None:
        self.hits += 1
        self.metrics.record_cache_hit()

    def record_miss(self) -> None:
        self.misses += 1
        self.metrics.record_cache_miss()

    def record_set(self) -> None:
        self.sets += 1
        self.metrics.record_cache_set()

    def record_error(self, operation: str) -> None:
        self.errors += 1
        self.metrics.record_cache_error(operation)

    @property
    def total_requests(self) -> int:
        return self.hits + self.misses

    def hit_rate(self) -> str:
        """命中率，保留两位小数；没有任何读取记录时为 "0%" """
        if self.total_requests == 0:
            return "0%"
        return f"{self.hits / self.total_requests * 100:.2f}%"

    def get_stats(self) -> dict[str, Any]:
        """获取统计信息

        Returns:
            dict: hits / misses / sets / errors / total_requests / hit_rate / uptime
        """
        return {
            "hits": self.hits,
            "misses": self.misses,
            "sets": self.sets,
            "errors": self.errors,
            "total_requests": self.total_requests,
            "hit_rate": self.hit_rate(),
            "uptime": round(time.monotonic() - self.started_at, 3),
        }

    def reset(self) -> None:
        """重置统计计数"""
        self._reset_counters()
        logger.info("缓存统计信息已重置")


class MonitoredCache:
    """带统计的缓存门面

    接口与 RedisClient 一致，所有缓存行为委托给底层客户端。
    """

    def __init__(self, client: RedisClient, monitor: CacheMonitor | None = None):
        self.client = client
        self.monitor = monitor or CacheMonitor()
        client.add_error_listener(self._on_client_error)

    def _on_client_error(self, operation: str, key: str, error: Exception) -> None:
        if operation in COUNTED_ERROR_OPERATIONS:
            self.monitor.record_error(operation)

    async def get(self, key: str) -> Any:
        try:
            result = await self.client.get(key)
        except Exception as e:
            self.monitor.record_error("get")
            logger.error(f"缓存 GET 异常 (key={key}): {e}")
            return MISSING

        if result is MISSING:
            self.monitor.record_miss()
            logger.debug(f"缓存 MISS: {key}")
        else:
            self.monitor.record_hit()
            logger.debug(f"缓存 HIT: {key}")
        return result

    async def set(self, key: str, value: Any, ttl: int = DEFAULT_TTL) -> bool:
        try:
            result = await self.client.set(key, value, ttl)
        except Exception as e:
            self.monitor.record_error("set")
            logger.error(f"缓存 SET 异常 (key={key}): {e}")
            return False

        if result:
            self.monitor.record_set()
            logger.debug(f"缓存 SET: {key} (ttl={ttl}s)")
        return result

    async def delete(self, key: str) -> bool:
        return await self.client.delete(key)

    async def delete_pattern(self, pattern: str) -> bool:
        return await self.client.delete_pattern(pattern)

    def is_connected(self) -> bool:
        return self.client.is_connected()

    def get_stats(self) -> dict[str, Any]:
        return self.monitor.get_stats()
