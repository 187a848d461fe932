"""
Redis 客户端封装

提供带连接状态跟踪的异步缓存操作。所有操作在 Redis 不可用时静默降级：
读取返回 MISSING，写入/删除返回 False，从不向调用方抛出异常。
缓存只是性能优化，业务正确性不依赖它。
"""

import asyncio
import json
import logging
import time
from collections.abc import Callable
from enum import Enum
from typing import Any

from redis import asyncio as aioredis
from redis.backoff import ExponentialBackoff
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import RedisError
from redis.exceptions import TimeoutError as RedisTimeoutError
from redis.retry import Retry

from devmate.core.cache.logger import get_cache_logger
from devmate.core.cache.metrics import get_cache_metrics

logger = logging.getLogger(__name__)

DEFAULT_TTL = 300

# 网络层面的错误，出现时连接状态切换为 error
CONNECTIVITY_ERRORS = (RedisConnectionError, RedisTimeoutError, OSError)


class ConnectionState(str, Enum):
    """Redis 连接状态

    idle -> connected -> ready -> error -> end -> connected ...
    """

    IDLE = "idle"
    CONNECTED = "connected"
    READY = "ready"
    ERROR = "error"
    END = "end"

    @property
    def healthy(self) -> bool:
        return self in (ConnectionState.CONNECTED, ConnectionState.READY)


class _Missing:
    """缓存未命中标记，区别于缓存中存储的 None / 0 / "" 等假值"""

    __slots__ = ()

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING: Any = _Missing()

ErrorListener = Callable[[str, str, Exception], None]


class RedisClient:
    """Redis 客户端封装类

    连接状态由实例自身持有，仅通过 _on_connect / _on_ready / _on_error / _on_end
    回调变更；每个操作在发起网络 I/O 前先检查状态。
    """

    def __init__(
        self,
        url: str = "redis://localhost:6379/0",
        key_prefix: str = "devmate",
        max_retries: int = 3,
        socket_timeout: float = 5.0,
        socket_connect_timeout: float = 5.0,
        reconnect_interval: float = 5.0,
        redis: Any | None = None,
    ):
        """初始化 Redis 客户端（不发起连接）

        Args:
            url: Redis 连接串
            key_prefix: 键命名空间前缀，对键和模式透明地添加
            max_retries: 单次命令的最大重试次数
            socket_timeout: Socket 超时时间（秒）
            socket_connect_timeout: 连接超时时间（秒）
            reconnect_interval: 断线后重连探测间隔（秒），0 表示不自动重连
            redis: 预先构建的 redis.asyncio.Redis 兼容实例（可选）
        """
        self.url = url
        self.key_prefix = key_prefix
        self.max_retries = max_retries
        self.socket_timeout = socket_timeout
        self.socket_connect_timeout = socket_connect_timeout
        self.reconnect_interval = reconnect_interval

        self._client = redis
        self._state = ConnectionState.IDLE
        self._error_listeners: list[ErrorListener] = []
        self._reconnect_task: asyncio.Task | None = None

        self.cache_logger = get_cache_logger()
        self.metrics = get_cache_metrics()
        self.metrics.set_connected(False)

    # ------------------------------------------------------------------
    # 连接状态
    # ------------------------------------------------------------------

    @property
    def state(self) -> ConnectionState:
        return self._state

    def is_connected(self) -> bool:
        """当前连接是否可用"""
        return self._state.healthy

    def _transition(self, new_state: ConnectionState, error: Exception | None = None) -> None:
        old_state = self._state
        self._state = new_state
        if old_state is not new_state:
            self.cache_logger.log_state_change(old_state.value, new_state.value, error)
        self.metrics.set_connected(new_state.healthy)

    def _on_connect(self) -> None:
        self._transition(ConnectionState.CONNECTED)

    def _on_ready(self) -> None:
        self._transition(ConnectionState.READY)

    def _on_error(self, error: Exception) -> None:
        self._transition(ConnectionState.ERROR, error)
        self._start_reconnect()

    def _on_end(self) -> None:
        self._transition(ConnectionState.END)

    def add_error_listener(self, listener: ErrorListener) -> None:
        """注册操作错误监听器

        监听器以 (operation, key, error) 调用，用于在不抛出异常的前提下上报错误。
        """
        self._error_listeners.append(listener)

    def _report_error(self, operation: str, key: str, error: Exception) -> None:
        self.cache_logger.log_cache_error(operation, key, error)

        if isinstance(error, CONNECTIVITY_ERRORS):
            self._on_error(error)

        for listener in self._error_listeners:
            try:
                listener(operation, key, error)
            except Exception as e:
                logger.error(f"缓存错误监听器执行失败: {e}")

    # ------------------------------------------------------------------
    # 生命周期
    # ------------------------------------------------------------------

    def _create_client(self) -> aioredis.Redis:
        retry = Retry(ExponentialBackoff(cap=1.0, base=0.1), self.max_retries)
        return aioredis.from_url(
            self.url,
            decode_responses=True,
            socket_timeout=self.socket_timeout,
            socket_connect_timeout=self.socket_connect_timeout,
            retry=retry,
            retry_on_error=[RedisConnectionError, RedisTimeoutError],
        )

    async def connect(self) -> bool:
        """建立连接并验证可用性

        连接失败不会抛出异常：客户端进入 error 状态，缓存保持直通，
        并由后台任务周期性尝试重连。

        Returns:
            bool: 连接是否可用
        """
        if self._client is None:
            self._client = self._create_client()

        try:
            await self._client.ping()
        except (RedisError, OSError) as e:
            logger.error(f"Redis 连接失败，缓存将降级为直通: {e}")
            self._on_error(e)
            return False

        self._on_connect()
        self._on_ready()
        logger.info("Redis 连接成功")
        return True

    def _start_reconnect(self) -> None:
        if self.reconnect_interval <= 0:
            return
        if self._reconnect_task is not None and not self._reconnect_task.done():
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        self._reconnect_task = loop.create_task(self._reconnect_loop())

    async def _reconnect_loop(self) -> None:
        """断线期间周期性 PING，恢复后重新进入 ready 状态"""
        while self._state is ConnectionState.ERROR:
            await asyncio.sleep(self.reconnect_interval)
            if self._state is not ConnectionState.ERROR:
                break
            try:
                await self._client.ping()
            except (RedisError, OSError) as e:
                logger.debug(f"Redis 重连失败，{self.reconnect_interval}s 后重试: {e}")
                continue
            self._on_connect()
            self._on_ready()
            logger.info("Redis 连接已恢复")

    async def ping(self) -> bool:
        """健康检查

        Returns:
            bool: PING 是否成功
        """
        if self._client is None:
            return False
        try:
            return bool(await self._client.ping())
        except (RedisError, OSError) as e:
            logger.warning(f"Redis PING 失败: {e}")
            self._on_error(e)
            return False

    async def close(self) -> None:
        """关闭连接，释放连接池"""
        if self._reconnect_task is not None:
            self._reconnect_task.cancel()
            self._reconnect_task = None

        if self._client is not None:
            try:
                await self._client.aclose()
            except (RedisError, OSError) as e:
                logger.error(f"关闭 Redis 连接时出错: {e}")
            finally:
                self._client = None

        self._on_end()
        logger.info("Redis 连接已关闭")

    # ------------------------------------------------------------------
    # 缓存操作
    # ------------------------------------------------------------------

    def _namespaced(self, key: str) -> str:
        return f"{self.key_prefix}:{key}" if self.key_prefix else key

    async def get(self, key: str) -> Any:
        """获取缓存值

        Args:
            key: 缓存键

        Returns:
            反序列化后的值；不存在、未连接或出错时返回 MISSING
        """
        if not self.is_connected():
            logger.debug(f"Redis 未连接，跳过缓存读取: {key}")
            return MISSING

        start_time = time.perf_counter()
        try:
            raw_value = await self._client.get(self._namespaced(key))
        except (RedisError, OSError) as e:
            self._report_error("get", key, e)
            return MISSING

        latency_ms = (time.perf_counter() - start_time) * 1000
        self.cache_logger.log_cache_get(key=key, hit=raw_value is not None, latency_ms=latency_ms)

        if raw_value is None:
            return MISSING

        try:
            return json.loads(raw_value)
        except (json.JSONDecodeError, TypeError) as e:
            self._report_error("get", key, e)
            return MISSING

    async def set(self, key: str, value: Any, ttl: int = DEFAULT_TTL) -> bool:
        """序列化并写入缓存值

        Args:
            key: 缓存键
            value: 可 JSON 序列化的值
            ttl: 过期时间（秒），必须为正数

        Returns:
            bool: 是否写入成功
        """
        if not self.is_connected():
            logger.debug(f"Redis 未连接，跳过缓存写入: {key}")
            return False

        if ttl <= 0:
            self._report_error("set", key, ValueError(f"TTL 必须为正数: {ttl}"))
            return False

        try:
            serialized = json.dumps(value, ensure_ascii=False)
        except (TypeError, ValueError) as e:
            self._report_error("set", key, e)
            return False

        start_time = time.perf_counter()
        try:
            await self._client.setex(self._namespaced(key), ttl, serialized)
        except (RedisError, OSError) as e:
            self._report_error("set", key, e)
            return False

        self.cache_logger.log_cache_set(key=key, ttl=ttl, latency_ms=(time.perf_counter() - start_time) * 1000)
        return True

    async def delete(self, key: str) -> bool:
        """删除单个键，删除不存在的键同样视为成功

        Args:
            key: 缓存键

        Returns:
            bool: 是否执行成功
        """
        if not self.is_connected():
            return False

        try:
            await self._client.delete(self._namespaced(key))
        except (RedisError, OSError) as e:
            self._report_error("delete", key, e)
            return False

        self.cache_logger.log_cache_invalidate(key=key)
        return True

    async def delete_pattern(self, pattern: str) -> bool:
        """批量删除匹配模式的键

        使用 SCAN 收集全部匹配键（避免 KEYS 阻塞 Redis），再一次性 DEL。
        没有匹配键时视为成功。

        Args:
            pattern: 键模式（Redis glob 语法）

        Returns:
            bool: 是否执行成功
        """
        if not self.is_connected():
            return False

        match = self._namespaced(pattern)
        try:
            keys: list[str] = []
            cursor = 0
            while True:
                cursor, batch = await self._client.scan(cursor=cursor, match=match, count=100)
                keys.extend(batch)
                # cursor 为 0 表示遍历完成
                if cursor == 0:
                    break

            deleted_count = await self._client.delete(*keys) if keys else 0
        except (RedisError, OSError) as e:
            self._report_error("delete_pattern", pattern, e)
            return False

        self.cache_logger.log_cache_invalidate(pattern=pattern, count=deleted_count)
        self.metrics.record_invalidation(deleted_count)
        return True

    async def info(self, section: str = "memory") -> dict[str, Any]:
        """读取 Redis INFO 信息

        Args:
            section: INFO 分区名

        Returns:
            dict: INFO 字段，未连接或出错时为空字典
        """
        if not self.is_connected():
            return {}

        try:
            return dict(await self._client.info(section))
        except (RedisError, OSError) as e:
            self._report_error("info", section, e)
            return {}
