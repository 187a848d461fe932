"""
FastAPI 响应缓存中间件

自动缓存 GET 请求的 JSON 响应。缓存键由规范化的路径+查询串和当前用户身份组成，
不同用户之间绝不共享缓存条目。Redis 不可用时中间件对客户端完全透明。
"""

import json
import logging

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from devmate.core.cache.monitor import MonitoredCache
from devmate.core.cache.redis_client import DEFAULT_TTL, MISSING

logger = logging.getLogger(__name__)

ANONYMOUS = "anonymous"


def _reject_constant(name: str):
    # NaN / Infinity 无法由 JSONResponse 渲染，这类响应不缓存
    raise ValueError(f"不支持的 JSON 常量: {name}")


def get_principal_id(request: Request) -> str:
    """读取请求上的认证用户标识，未认证时返回 "anonymous"

    用户由 Starlette AuthenticationMiddleware 写入 scope["user"]，这里只读取 identity。
    """
    user = request.scope.get("user")
    if user is not None and getattr(user, "is_authenticated", False):
        return str(user.identity)
    return ANONYMOUS


def build_cache_key(request: Request) -> str:
    """构建缓存键

    格式：<path>[?<排序后的查询参数>]_user:<用户ID>

    Args:
        request: FastAPI 请求对象

    Returns:
        str: 缓存键
    """
    path = request.url.path
    if request.url.query:
        # 查询参数排序，保证参数顺序不同的相同请求命中同一条缓存
        query_string = "&".join(sorted(request.url.query.split("&")))
        path = f"{path}?{query_string}"

    return f"{path}_user:{get_principal_id(request)}"


class CacheMiddleware(BaseHTTPMiddleware):
    """GET 响应缓存中间件

    命中：直接返回缓存内容，附带 X-Cache: HIT、X-Cache-Key 和
    Cache-Control: private, max-age=<duration>。
    未命中：执行下游处理器，2xx 的 JSON 响应在返回前写入缓存，附带 X-Cache: MISS。
    """

    def __init__(
        self,
        app,
        cache: MonitoredCache,
        duration: int = DEFAULT_TTL,
        paths: list[str] | None = None,
        excluded_paths: list[str] | None = None,
    ):
        """初始化缓存中间件

        Args:
            app: ASGI 应用
            cache: 缓存门面实例
            duration: 缓存时间（秒），对本实例生成的所有键生效
            paths: 参与缓存的路径前缀，None 表示全部路径
            excluded_paths: 不参与缓存的路径前缀
        """
        super().__init__(app)
        self.cache = cache
        self.duration = duration
        self.paths = paths
        self.excluded_paths = excluded_paths or []

        logger.info(f"缓存中间件已初始化: duration={duration}s, paths={paths or '*'}")

    def _should_cache_request(self, request: Request) -> bool:
        """只缓存幂等的 GET 请求，并按路径前缀过滤"""
        if request.method != "GET":
            return False

        path = request.url.path
        if any(path.startswith(excluded) for excluded in self.excluded_paths):
            return False

        if self.paths is not None:
            return any(path.startswith(prefix) for prefix in self.paths)

        return True

    async def dispatch(self, request: Request, call_next):
        if not self._should_cache_request(request):
            return await call_next(request)

        cache_key = build_cache_key(request)

        cached_data = await self.cache.get(cache_key)
        if cached_data is not MISSING:
            return self._build_cached_response(cached_data, cache_key)

        response = await call_next(request)

        if 200 <= response.status_code < 300 and self._is_json(response):
            response = await self._cache_response(response, cache_key)

        response.headers["X-Cache"] = "MISS"
        response.headers["X-Cache-Key"] = cache_key
        return response

    def _build_cached_response(self, cached_data, cache_key: str) -> Response:
        """构建命中缓存的响应"""
        logger.debug(f"缓存命中: {cache_key}")
        return JSONResponse(
            content=cached_data,
            headers={
                "X-Cache": "HIT",
                "X-Cache-Key": cache_key,
                "Cache-Control": f"private, max-age={self.duration}",
            },
        )

    @staticmethod
    def _is_json(response: Response) -> bool:
        content_type = response.headers.get("content-type", "")
        return content_type.startswith("application/json")

    async def _cache_response(self, response: Response, cache_key: str) -> Response:
        """读取下游响应体，写入缓存后重建响应

        响应体与命中时一样由 JSONResponse 渲染，保证 MISS 和 HIT 返回相同的字节。
        写入失败只记录日志，不影响返回给客户端的内容。
        """
        response_body = b""
        async for chunk in response.body_iterator:  # type: ignore[attr-defined]
            response_body += chunk if isinstance(chunk, bytes) else chunk.encode("utf-8")

        try:
            payload = json.loads(response_body, parse_constant=_reject_constant)
        except ValueError as e:
            logger.warning(f"响应体不是合法 JSON，跳过缓存 (key={cache_key}): {e}")
            new_response = Response(
                content=response_body, status_code=response.status_code, background=response.background
            )
            self._copy_headers(response, new_response, skip=(b"content-length",))
            return new_response

        stored = await self.cache.set(cache_key, payload, self.duration)
        # 未连接时的跳过属于预期降级，不重复告警
        if not stored and self.cache.is_connected():
            logger.warning(f"缓存写入失败，本次响应未缓存 (key={cache_key})")

        new_response = JSONResponse(content=payload, status_code=response.status_code, background=response.background)
        self._copy_headers(response, new_response, skip=(b"content-length", b"content-type"))
        return new_response

    @staticmethod
    def _copy_headers(source: Response, target: Response, skip: tuple[bytes, ...]) -> None:
        """逐条复制原始响应头，保留 Set-Cookie 等重复出现的头"""
        target.raw_headers.extend((name, value) for name, value in source.raw_headers if name.lower() not in skip)
