"""
DevMate API 应用入口

负责应用初始化、缓存组件装配、中间件配置和路由注册。
"""

import sys
import traceback
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from dotenv import load_dotenv
from fastapi import FastAPI

from devmate.api import api_router, root_router
from devmate.core.cache import (
    RedisClient,
    create_cache_config_from_settings,
    create_monitored_cache,
    create_redis_client,
    load_invalidation_rules,
)
from devmate.core.config import Settings, settings as default_settings
from devmate.core.error_handlers import setup_exception_handlers
from devmate.core.logging import app_logger
from devmate.core.middleware import setup_middlewares

# 加载环境变量
load_dotenv()


def create_app(settings: Optional[Settings] = None, cache_client: Optional[RedisClient] = None) -> FastAPI:
    """
    创建 FastAPI 应用

    缓存组件在这里创建（不发起网络连接），中间件实例化时即可引用；
    连接在 lifespan 启动阶段建立，关闭阶段释放。

    Args:
        settings: 应用配置，默认使用全局配置
        cache_client: 预先构建的 Redis 客户端（可选）

    Returns:
        FastAPI: 应用实例
    """
    settings = settings or default_settings

    if cache_client is None:
        cache_client = create_redis_client(create_cache_config_from_settings(settings))
    cache = create_monitored_cache(cache_client)
    invalidation_rules = load_invalidation_rules(settings.CACHE_INVALIDATION_RULES)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app_logger.info(f"应用启动: {settings.APP_NAME} v{settings.APP_VERSION}")

        if settings.CACHE_ENABLED:
            if not await cache_client.connect():
                app_logger.warning("Redis 不可用，缓存以直通模式运行")
        else:
            app_logger.info("缓存已禁用")

        yield

        await cache_client.close()
        app_logger.info("应用已关闭")

    app = FastAPI(
        title=settings.APP_NAME,
        description="DevMate 开发者社交平台后端服务",
        version=settings.APP_VERSION,
        lifespan=lifespan,
    )

    app.state.cache_enabled = settings.CACHE_ENABLED
    app.state.cache = cache

    setup_middlewares(app, settings, cache, invalidation_rules)
    setup_exception_handlers(app)

    app.include_router(root_router)
    app.include_router(api_router)

    return app


app = create_app()


if __name__ == "__main__":
    exit_code = 0
    try:
        app_logger.info(f"服务器启动: http://{default_settings.HOST}:{default_settings.PORT}")
        uvicorn.run(app, host=default_settings.HOST, port=default_settings.PORT, log_level="warning")
    except Exception as e:
        app_logger.error(f"主程序异常: {str(e)}")
        app_logger.error(traceback.format_exc())
        exit_code = 1
    finally:
        sys.exit(exit_code)
