"""
缓存日志记录模块

提供结构化的 JSON 日志格式，记录缓存读写、失效和连接状态变化。
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any


class CacheLogger:
    """缓存日志记录器

    以 JSON 行的形式输出缓存事件，便于日志平台检索。
    """

    def __init__(self, logger_name: str = "devmate.cache"):
        self.logger = logging.getLogger(logger_name)

    def _format_log(self, level: str, operation: str, **kwargs) -> str:
        """格式化日志为 JSON 字符串

        Args:
            level: 日志级别（INFO, WARNING, ERROR）
            operation: 操作类型
            **kwargs: 其他日志字段

        Returns:
            str: JSON 格式的日志字符串
        """
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": level,
            "operation": operation,
            "source": "RedisClient",
            **kwargs,
        }
        return json.dumps(log_data, ensure_ascii=False, default=str)

    def log_cache_get(self, key: str, hit: bool, latency_ms: float) -> None:
        """记录缓存读取"""
        self.logger.debug(
            self._format_log("DEBUG", "cache_get", key=key, hit=hit, latency_ms=round(latency_ms, 2))
        )

    def log_cache_set(self, key: str, ttl: int, latency_ms: float) -> None:
        """记录缓存写入"""
        self.logger.debug(
            self._format_log("DEBUG", "cache_set", key=key, ttl=ttl, latency_ms=round(latency_ms, 2))
        )

    def log_cache_invalidate(self, key: str | None = None, pattern: str | None = None, count: int = 0) -> None:
        """记录缓存失效

        Args:
            key: 缓存键（单键失效）
            pattern: 缓存键模式（批量失效）
            count: 删除的键数量
        """
        log_data: dict[str, Any] = {}
        if key:
            log_data["key"] = key
        if pattern:
            log_data["pattern"] = pattern
            log_data["count"] = count

        self.logger.info(self._format_log("INFO", "cache_invalidate", **log_data))

    def log_cache_error(self, operation: str, key: str, error: Exception) -> None:
        """记录缓存操作错误"""
        self.logger.error(
            self._format_log(
                "ERROR",
                "cache_error",
                original_operation=operation,
                key=key,
                error_type=type(error).__name__,
                error=str(error),
            )
        )

    def log_state_change(self, old_state: str, new_state: str, error: Exception | None = None) -> None:
        """记录连接状态变化"""
        log_data: dict[str, Any] = {"from": old_state, "to": new_state}
        if error is not None:
            log_data["error"] = str(error)

        if new_state in ("error", "end"):
            self.logger.warning(self._format_log("WARNING", "connection_state", **log_data))
        else:
            self.logger.info(self._format_log("INFO", "connection_state", **log_data))


_cache_logger: CacheLogger | None = None


def get_cache_logger() -> CacheLogger:
    """获取全局缓存日志记录器实例"""
    global _cache_logger
    if _cache_logger is None:
        _cache_logger = CacheLogger()
    return _cache_logger
