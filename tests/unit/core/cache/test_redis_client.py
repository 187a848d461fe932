"""
RedisClient 单元测试

覆盖读写、MISSING 语义、连接状态短路、错误上报和批量删除。
"""

import asyncio
import json
from unittest.mock import AsyncMock, Mock, patch

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import ResponseError

from devmate.core.cache import MISSING, ConnectionState, RedisClient
from tests.helpers.app_factory import TEST_KEY_PREFIX


class TestMissingSentinel:
    def test_missing_is_falsy_and_distinct(self):
        assert not MISSING
        assert MISSING is not None
        assert repr(MISSING) == "MISSING"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("value", [None, 0, "", [], {}, False])
    async def test_falsy_values_are_not_missing(self, connected_client, value):
        assert await connected_client.set("falsy", value, 60) is True

        result = await connected_client.get("falsy")

        assert result is not MISSING
        assert result == value


class TestGetSet:
    @pytest.mark.asyncio
    async def test_set_then_get_returns_value(self, connected_client):
        payload = {"id": 1, "title": "你好", "tags": ["a", "b"]}

        assert await connected_client.set("post:1", payload, 60) is True
        assert await connected_client.get("post:1") == payload

    @pytest.mark.asyncio
    async def test_get_absent_key_returns_missing(self, connected_client):
        assert await connected_client.get("nope") is MISSING

    @pytest.mark.asyncio
    async def test_keys_are_namespaced(self, connected_client, fake_redis):
        await connected_client.set("post:1", {"id": 1}, 60)

        assert fake_redis.keys() == [f"{TEST_KEY_PREFIX}:post:1"]
        assert json.loads(fake_redis.raw(f"{TEST_KEY_PREFIX}:post:1")) == {"id": 1}

    @pytest.mark.asyncio
    async def test_empty_prefix_stores_raw_key(self, fake_redis):
        client = RedisClient(key_prefix="", reconnect_interval=0, redis=fake_redis)
        client._on_connect()

        await client.set("plain", 1, 60)

        assert fake_redis.keys() == ["plain"]

    @pytest.mark.asyncio
    async def test_set_uses_default_ttl(self, connected_client, fake_redis):
        fake_redis.setex = AsyncMock(return_value=True)

        await connected_client.set("k", "v")

        fake_redis.setex.assert_awaited_once_with(f"{TEST_KEY_PREFIX}:k", 300, '"v"')

    @pytest.mark.asyncio
    async def test_entry_expires_after_ttl(self, connected_client):
        await connected_client.set("k", "v", 1)
        assert await connected_client.get("k") == "v"

        await asyncio.sleep(1.1)

        assert await connected_client.get("k") is MISSING

    @pytest.mark.asyncio
    @pytest.mark.parametrize("ttl", [0, -5])
    async def test_non_positive_ttl_is_rejected(self, connected_client, fake_redis, ttl):
        listener = Mock()
        connected_client.add_error_listener(listener)

        assert await connected_client.set("k", "v", ttl) is False
        assert "setex" not in fake_redis.calls
        listener.assert_called_once()
        assert listener.call_args[0][0] == "set"

    @pytest.mark.asyncio
    async def test_unserializable_value_is_rejected(self, connected_client):
        listener = Mock()
        connected_client.add_error_listener(listener)

        assert await connected_client.set("k", object(), 60) is False
        assert listener.call_args[0][0] == "set"
        # 序列化错误不影响连接状态
        assert connected_client.state is ConnectionState.READY

    @pytest.mark.asyncio
    async def test_corrupt_payload_reads_as_missing(self, connected_client, fake_redis):
        fake_redis.put_raw(f"{TEST_KEY_PREFIX}:bad", "{not json")
        listener = Mock()
        connected_client.add_error_listener(listener)

        assert await connected_client.get("bad") is MISSING
        assert listener.call_args[0][0] == "get"


class TestDisconnected:
    @pytest.mark.asyncio
    async def test_operations_short_circuit_without_io(self, redis_client, fake_redis):
        assert redis_client.state is ConnectionState.IDLE
        assert redis_client.is_connected() is False

        assert await redis_client.get("k") is MISSING
        assert await redis_client.set("k", "v", 60) is False
        assert await redis_client.delete("k") is False
        assert await redis_client.delete_pattern("k*") is False
        assert await redis_client.info() == {}

        assert fake_redis.calls == []

    @pytest.mark.asyncio
    async def test_connectivity_error_flips_state(self, connected_client, fake_redis):
        fake_redis.fail("get", RedisConnectionError("connection reset"))

        assert await connected_client.get("k") is MISSING
        assert connected_client.state is ConnectionState.ERROR
        assert connected_client.is_connected() is False

        # 之后的操作不再访问 Redis
        calls_before = len(fake_redis.calls)
        assert await connected_client.set("k", "v", 60) is False
        assert len(fake_redis.calls) == calls_before

    @pytest.mark.asyncio
    async def test_command_error_keeps_state(self, connected_client, fake_redis):
        fake_redis.fail("setex", ResponseError("WRONGTYPE"))

        assert await connected_client.set("k", "v", 60) is False
        assert connected_client.state is ConnectionState.READY

    @pytest.mark.asyncio
    async def test_listener_failure_is_contained(self, connected_client, fake_redis):
        connected_client.add_error_listener(Mock(side_effect=RuntimeError("listener bug")))
        fake_redis.fail("get", ResponseError("bad"))

        assert await connected_client.get("k") is MISSING


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_connect_success(self, redis_client):
        assert await redis_client.connect() is True
        assert redis_client.state is ConnectionState.READY

    @pytest.mark.asyncio
    async def test_connect_failure_never_raises(self, redis_client, fake_redis):
        fake_redis.fail("ping", RedisConnectionError("refused"))

        assert await redis_client.connect() is False
        assert redis_client.state is ConnectionState.ERROR

    @pytest.mark.asyncio
    async def test_reconnect_loop_restores_connection(self, fake_redis):
        client = RedisClient(key_prefix=TEST_KEY_PREFIX, reconnect_interval=0.01, redis=fake_redis)
        fake_redis.fail("ping", RedisConnectionError("refused"))

        assert await client.connect() is False
        await asyncio.sleep(0.05)
        assert client.state is ConnectionState.ERROR

        fake_redis.recover()
        for _ in range(50):
            if client.is_connected():
                break
            await asyncio.sleep(0.01)

        assert client.state is ConnectionState.READY
        await client.close()

    @pytest.mark.asyncio
    async def test_close_ends_connection(self, connected_client, fake_redis):
        await connected_client.close()

        assert connected_client.state is ConnectionState.END
        assert fake_redis.closed is True
        assert await connected_client.get("k") is MISSING

    @pytest.mark.asyncio
    async def test_ping(self, connected_client, fake_redis):
        assert await connected_client.ping() is True

        fake_redis.fail("ping", RedisConnectionError("gone"))
        assert await connected_client.ping() is False
        assert connected_client.state is ConnectionState.ERROR

    def test_create_client_uses_bounded_retries(self):
        client = RedisClient(url="redis://cache.internal:6380/2", max_retries=3)
        with patch("devmate.core.cache.redis_client.aioredis.from_url") as from_url:
            client._create_client()

        args, kwargs = from_url.call_args
        assert args == ("redis://cache.internal:6380/2",)
        assert kwargs["decode_responses"] is True
        assert kwargs["retry"]._retries == 3


class TestDelete:
    @pytest.mark.asyncio
    async def test_delete_existing_and_absent_key(self, connected_client, fake_redis):
        await connected_client.set("k", "v", 60)

        assert await connected_client.delete("k") is True
        assert await connected_client.get("k") is MISSING
        assert await connected_client.delete("k") is True

    @pytest.mark.asyncio
    async def test_delete_pattern_removes_all_matches(self, connected_client, fake_redis):
        # 超过单页 SCAN 数量，验证游标遍历完整
        for i in range(250):
            await connected_client.set(f"/api/posts/{i}_user:anonymous", i, 60)
        await connected_client.set("/api/users/1_user:anonymous", "keep", 60)

        assert await connected_client.delete_pattern("/api/posts*") is True

        assert fake_redis.keys() == [f"{TEST_KEY_PREFIX}:/api/users/1_user:anonymous"]
        assert fake_redis.calls.count("delete") == 1

    @pytest.mark.asyncio
    async def test_delete_pattern_with_no_matches(self, connected_client, fake_redis):
        assert await connected_client.delete_pattern("/nothing*") is True
        assert "delete" not in fake_redis.calls

    @pytest.mark.asyncio
    async def test_delete_pattern_does_not_escape_namespace(self, connected_client, fake_redis):
        fake_redis.put_raw("other-app:/api/posts", "x")
        await connected_client.set("/api/posts", "mine", 60)

        await connected_client.delete_pattern("*")

        assert fake_redis.keys() == ["other-app:/api/posts"]

    @pytest.mark.asyncio
    async def test_delete_pattern_error_returns_false(self, connected_client, fake_redis):
        fake_redis.fail("scan", ResponseError("scan failed"))

        assert await connected_client.delete_pattern("*") is False


class TestInfo:
    @pytest.mark.asyncio
    async def test_info_returns_section(self, connected_client):
        info = await connected_client.info("memory")
        assert "used_memory_human" in info

    @pytest.mark.asyncio
    async def test_info_error_returns_empty(self, connected_client, fake_redis):
        fake_redis.fail("info", ResponseError("no"))
        assert await connected_client.info() == {}

