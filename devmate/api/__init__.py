"""
API 路由注册
"""

from fastapi import APIRouter

from devmate.api.routes import health, metrics, status

# 根路径下的诊断接口
root_router = APIRouter()
root_router.include_router(health.router)
root_router.include_router(metrics.router)

# /api 前缀下的接口
api_router = APIRouter(prefix="/api")
api_router.include_router(status.router)

__all__ = ["root_router", "api_router"]
