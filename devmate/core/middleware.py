"""
中间件配置模块

统一注册应用中间件。Starlette 中后添加的中间件位于外层，执行顺序（从外到内）：
1. ErrorHandlerMiddleware - 请求日志和兜底异常处理
2. CORSMiddleware - 跨域支持
3. AuthenticationMiddleware - 解析 JWT，写入 request.user
4. InvalidationMiddleware - 写操作成功后清除缓存
5. CacheMiddleware - GET 响应缓存
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.authentication import AuthenticationMiddleware

from devmate.core.cache import CacheMiddleware, InvalidationMiddleware, InvalidationRule, MonitoredCache
from devmate.core.config import Settings
from devmate.core.error_handlers import ErrorHandlerMiddleware
from devmate.core.logging import app_logger
from devmate.core.security import JWTAuthBackend


def setup_middlewares(
    app: FastAPI,
    settings: Settings,
    cache: MonitoredCache,
    invalidation_rules: list[InvalidationRule],
) -> None:
    """
    为 FastAPI 应用配置所有中间件。

    Args:
        app: FastAPI 应用实例
        settings: 应用配置
        cache: 缓存门面实例
        invalidation_rules: 写操作缓存失效规则
    """
    app.add_middleware(
        CacheMiddleware,
        cache=cache,
        duration=settings.CACHE_DEFAULT_TTL,
        paths=settings.CACHE_PATHS,
        excluded_paths=settings.CACHE_EXCLUDED_PATHS,
    )
    app.add_middleware(InvalidationMiddleware, cache=cache, rules=invalidation_rules)
    app_logger.debug("缓存中间件已添加")

    app.add_middleware(AuthenticationMiddleware, backend=JWTAuthBackend())
    app_logger.debug("认证中间件已添加")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Cache", "X-Cache-Key", "X-Request-ID"],
    )
    app_logger.debug("CORS 中间件已配置")

    app.add_middleware(ErrorHandlerMiddleware)

    app_logger.info("中间件配置完成")
