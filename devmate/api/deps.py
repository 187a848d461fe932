"""
API 依赖注入模块

缓存组件在应用创建时构建一次并保存在 app.state，路由通过这里的依赖获取。
"""

from fastapi import Request

from devmate.core.cache import MonitoredCache, RedisClient
from devmate.core.error_handlers import AuthenticationError, AuthorizationError


def get_cache(request: Request) -> MonitoredCache:
    """获取带统计的缓存门面"""
    return request.app.state.cache


def get_cache_client(request: Request) -> RedisClient:
    """获取底层 Redis 客户端，健康检查使用它以免影响命中率统计"""
    return request.app.state.cache.client


def is_cache_enabled(request: Request) -> bool:
    return getattr(request.app.state, "cache_enabled", True)


async def require_admin(request: Request) -> None:
    """
    要求当前用户为管理员。

    Raises:
        AuthenticationError: 未登录
        AuthorizationError: 不是管理员
    """
    scopes = request.auth.scopes if "auth" in request.scope else []
    if "authenticated" not in scopes:
        raise AuthenticationError()
    if "admin" not in scopes:
        raise AuthorizationError()
