"""
数据库连接检查模块

只负责健康检查所需的连通性探测；业务数据模型不在本服务的缓存层范围内。
"""

import logging
from functools import lru_cache
from typing import Optional

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from starlette.concurrency import run_in_threadpool

from devmate.core.config import settings

logger = logging.getLogger(__name__)

HEALTHY = "healthy"
UNHEALTHY = "unhealthy"
UNKNOWN = "unknown"


@lru_cache(maxsize=1)
def get_engine(database_url: Optional[str] = None) -> Optional[Engine]:
    """
    获取数据库引擎，未配置 DATABASE_URL 时返回 None。

    Args:
        database_url: 数据库连接串，默认使用 settings.DATABASE_URL

    Returns:
        Optional[Engine]: SQLAlchemy 引擎
    """
    url = database_url or settings.DATABASE_URL
    if not url:
        return None

    return create_engine(
        url,
        connect_args={"check_same_thread": False} if url.startswith("sqlite") else {},
        pool_pre_ping=True,
        echo=False,
    )


def _ping(engine: Engine) -> None:
    with engine.connect() as connection:
        connection.execute(text("SELECT 1"))


async def check_database(engine: Optional[Engine] = None) -> str:
    """
    探测数据库连通性。

    Args:
        engine: 数据库引擎，默认使用 get_engine()

    Returns:
        str: "healthy"、"unhealthy"，未配置数据库时为 "unknown"
    """
    engine = engine if engine is not None else get_engine()
    if engine is None:
        return UNKNOWN

    try:
        await run_in_threadpool(_ping, engine)
    except SQLAlchemyError as e:
        logger.warning(f"数据库连接检查失败: {e}")
        return UNHEALTHY

    return HEALTHY
