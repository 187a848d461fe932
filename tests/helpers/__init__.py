"""
测试辅助模块
"""

from tests.helpers.fake_redis import FakeRedis

__all__ = ["FakeRedis"]
