"""
测试公共配置和 fixtures
"""

import os

# 必须在导入 devmate 之前设置，Settings 在导入时读取环境变量
os.environ.setdefault("JWT_SECRET_KEY", "devmate-test-secret-key")
os.environ.setdefault("CONFIG_ENV", "dev")
os.environ.pop("DATABASE_URL", None)
os.environ.pop("REDIS_URL", None)

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from devmate.core.cache import CacheMonitor, MonitoredCache, RedisClient
from devmate.main import create_app
from tests.helpers import FakeRedis
from tests.helpers.app_factory import TEST_KEY_PREFIX, PostStore, build_demo_router, make_settings


@pytest.fixture
def fake_redis() -> FakeRedis:
    """内存 Redis 替身"""
    return FakeRedis()


@pytest.fixture
def redis_client(fake_redis) -> RedisClient:
    """未连接的 Redis 客户端（关闭自动重连，避免测试结束后残留任务）"""
    return RedisClient(key_prefix=TEST_KEY_PREFIX, reconnect_interval=0, redis=fake_redis)


@pytest.fixture
def connected_client(redis_client) -> RedisClient:
    """已处于 ready 状态的 Redis 客户端"""
    redis_client._on_connect()
    redis_client._on_ready()
    return redis_client


@pytest.fixture
def monitored_cache(connected_client) -> MonitoredCache:
    return MonitoredCache(connected_client, CacheMonitor())


@pytest.fixture
def post_store() -> PostStore:
    return PostStore()


@pytest.fixture
def app(redis_client, post_store) -> FastAPI:
    application = create_app(make_settings(), cache_client=redis_client)
    application.include_router(build_demo_router(post_store))
    return application


@pytest.fixture
def client(app):
    """启动 lifespan 的测试客户端"""
    with TestClient(app) as test_client:
        yield test_client
