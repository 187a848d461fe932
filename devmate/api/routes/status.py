"""
服务状态路由（挂载在 /api 下）

保留旧版客户端使用的存活检查和数据库状态接口。
"""

from datetime import datetime, timezone

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from devmate.core.database import HEALTHY, UNKNOWN, check_database

router = APIRouter(tags=["status"])


@router.get("/health")
async def api_health():
    """存活检查：API 进程可用即返回 200"""
    database_status = await check_database()
    return {
        "status": "OK",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "database": "Connected" if database_status == HEALTHY else "Disconnected",
        "message": "DevMate API is running",
    }


@router.get("/db-status")
async def db_status():
    """数据库连接状态"""
    database_status = await check_database()
    connected = database_status == HEALTHY

    if connected:
        help_text = None
    elif database_status == UNKNOWN:
        help_text = "DATABASE_URL 未配置"
    else:
        help_text = "请检查 DATABASE_URL 以及数据库服务是否可达"

    return JSONResponse(
        status_code=200 if connected else 503,
        content={"connected": connected, "status": database_status, "help": help_text},
    )
