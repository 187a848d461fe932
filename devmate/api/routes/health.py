"""
健康检查与缓存诊断路由

- GET  /health             服务整体健康状态（API / 数据库 / Redis）
- GET  /cache-stats        缓存统计、进程内存和 Redis 内存信息
- POST /cache-stats/reset  重置缓存统计计数（需要管理员）
"""

import logging
import time
from datetime import datetime, timezone
from typing import Any, Dict

import psutil
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from devmate.api.deps import get_cache, get_cache_client, is_cache_enabled, require_admin
from devmate.core.cache import MonitoredCache, RedisClient
from devmate.core.database import HEALTHY, UNHEALTHY, UNKNOWN, check_database

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])

HEALTH_CHECK_KEY = "health_check"
HEALTH_CHECK_VALUE = "ok"
HEALTH_CHECK_TTL = 10

# Redis INFO memory 中对外展示的字段
REDIS_MEMORY_FIELDS = ("used_memory", "used_memory_human", "used_memory_peak_human", "maxmemory_human")


async def _check_redis(client: RedisClient) -> Dict[str, Any]:
    """用一次写入+读取验证 Redis 可用

    直接使用底层客户端，探测读写不计入缓存命中统计。
    """
    if not client.is_connected():
        return {"status": UNHEALTHY}

    try:
        stored = await client.set(HEALTH_CHECK_KEY, HEALTH_CHECK_VALUE, HEALTH_CHECK_TTL)
        value = await client.get(HEALTH_CHECK_KEY)
    except Exception as e:
        logger.error(f"Redis 健康检查异常: {e}")
        return {"status": UNHEALTHY, "error": str(e)}

    if stored and value == HEALTH_CHECK_VALUE:
        return {"status": HEALTHY}
    return {"status": UNHEALTHY}


@router.get("/health")
async def health_check(
    client: RedisClient = Depends(get_cache_client),
    cache_enabled: bool = Depends(is_cache_enabled),
):
    """
    健康检查端点

    所有服务为 healthy/unknown 时返回 200，否则返回 503。
    """
    database_status = await check_database()

    if cache_enabled:
        redis_result = await _check_redis(client)
    else:
        redis_result = {"status": UNKNOWN}

    health: Dict[str, Any] = {
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "services": {
            "api": HEALTHY,
            "database": database_status,
            "redis": redis_result["status"],
        },
    }
    if "error" in redis_result:
        health["redis_error"] = redis_result["error"]

    all_healthy = all(status in (HEALTHY, UNKNOWN) for status in health["services"].values())
    if not all_healthy:
        health["status"] = "degraded"

    return JSONResponse(status_code=200 if all_healthy else 503, content=health)


def _process_memory() -> Dict[str, int]:
    memory = psutil.Process().memory_info()
    return {"rss": memory.rss, "vms": memory.vms}


def _process_uptime() -> float:
    return round(time.time() - psutil.Process().create_time(), 3)


@router.get("/cache-stats")
async def cache_stats(
    cache: MonitoredCache = Depends(get_cache),
):
    """缓存统计端点，Redis 未连接时返回 503"""
    if not cache.is_connected():
        return JSONResponse(status_code=503, content={"error": "Redis not connected"})

    redis_info = await cache.client.info("memory")
    return {
        "connected": True,
        "uptime": _process_uptime(),
        "memory_usage": _process_memory(),
        "cache_info": {
            "stats": cache.get_stats(),
            "redis_memory": {field: redis_info[field] for field in REDIS_MEMORY_FIELDS if field in redis_info},
        },
    }


@router.post("/cache-stats/reset", dependencies=[Depends(require_admin)])
async def reset_cache_stats(cache: MonitoredCache = Depends(get_cache)):
    """重置缓存统计计数"""
    cache.monitor.reset()
    return {"success": True, "message": "缓存统计已重置", "stats": cache.get_stats()}
