"""
缓存监控指标模块

提供 Prometheus 格式的缓存指标，由 CacheMonitor 和 RedisClient 更新。
"""

import logging

from prometheus_client import Counter, Gauge

logger = logging.getLogger(__name__)


cache_hits_total = Counter("devmate_cache_hits_total", "缓存命中总次数")

cache_misses_total = Counter("devmate_cache_misses_total", "缓存未命中总次数")

cache_sets_total = Counter("devmate_cache_sets_total", "缓存写入成功总次数")

cache_errors_total = Counter(
    "devmate_cache_errors_total",
    "缓存操作错误总次数",
    ["operation"],  # operation: get, set
)

cache_invalidations_total = Counter(
    "devmate_cache_invalidations_total",
    "按模式失效的缓存键总数",
)

cache_connected_status = Gauge("devmate_cache_connected", "Redis 连接状态（1=可用，0=不可用）")


class CacheMetrics:
    """缓存指标记录器"""

    @staticmethod
    def record_cache_hit() -> None:
        cache_hits_total.inc()

    @staticmethod
    def record_cache_miss() -> None:
        cache_misses_total.inc()

    @staticmethod
    def record_cache_set() -> None:
        cache_sets_total.inc()

    @staticmethod
    def record_cache_error(operation: str) -> None:
        cache_errors_total.labels(operation=operation).inc()

    @staticmethod
    def record_invalidation(count: int) -> None:
        if count > 0:
            cache_invalidations_total.inc(count)

    @staticmethod
    def set_connected(connected: bool) -> None:
        """设置连接状态指标

        Args:
            connected: 是否可用（True=1, False=0）
        """
        cache_connected_status.set(1 if connected else 0)
        logger.debug(f"设置连接状态指标: connected={connected}")


_metrics: CacheMetrics = CacheMetrics()


def get_cache_metrics() -> CacheMetrics:
    """获取全局缓存指标记录器实例"""
    return _metrics
