"""
Integration tests untuk ZooKeeper dan Redis adapters.
Tests terhadap server asli di-skip jika server tidak tersedia.
Redis adapter juga di-test terhadap fakeredis.

  docker run -d -p 2181:2181 zookeeper:3.9
  docker run -d -p 6379:6379 redis:7-alpine
"""

import asyncio
import uuid

import pytest
from zklock.core.exceptions import CoordinationFailure
from zklock.core.lock import Lock, LockFailure
from zklock.utils.config import Config

POLL = 0.01


async def connect_zookeeper(root):
    from zklock.coordination.zookeeper import ZooKeeperClient

    client = ZooKeeperClient.from_hosts(Config.ZK_HOSTS, root=root, timeout=2.0)
    try:
        await client.start(timeout=2.0)
    except CoordinationFailure:
        await client.close()
        pytest.skip(f"ZooKeeper not available at {Config.ZK_HOSTS}")
    return client


async def connect_redis(namespace, session_ttl=10.0):
    from zklock.coordination.redis_store import RedisCoordinationClient

    client = RedisCoordinationClient.from_settings(
        Config.REDIS_HOST, Config.REDIS_PORT, Config.REDIS_DB,
        namespace=namespace, session_ttl=session_ttl
    )
    try:
        await client.start()
    except CoordinationFailure:
        await client.redis.aclose()
        pytest.skip(f"Redis not available at {Config.REDIS_HOST}:{Config.REDIS_PORT}")
    return client


def fake_redis_clients(count=2, session_ttl=10.0):
    """RedisCoordinationClients yang berbagi satu fakeredis server"""
    import fakeredis
    import fakeredis.aioredis
    from zklock.coordination.redis_store import RedisCoordinationClient

    server = fakeredis.FakeServer()
    return [
        RedisCoordinationClient(fakeredis.aioredis.FakeRedis(server=server, decode_responses=True),
                                namespace="zklock-test", session_ttl=session_ttl)
        for _ in range(count)
    ]


async def run_write_lock_scenario(alice_client, bob_client):
    """A holds, B denied, A releases, B acquires"""
    alice = Lock(alice_client, poll_interval=POLL)
    bob = Lock(bob_client, poll_interval=POLL)

    handle_a = await alice.write_lock("res")
    assert handle_a == "res/lock-0000000000"

    assert await bob.write_lock("res", 0) is None
    assert await bob_client.get_children("res") == ["lock-0000000000"]

    assert await bob.read_lock("res", 0) is None
    assert await bob.is_locked("res", "read")

    assert await alice.unlock(handle_a) is True
    assert await alice.unlock(handle_a) is False

    handle_b = await bob.write_lock("res", 0)
    assert handle_b is not None
    assert handle_b != handle_a
    return handle_b


@pytest.mark.asyncio
async def test_zookeeper_write_lock_scenario():
    root = f"/zklock-test-{uuid.uuid4().hex}"
    alice_client = await connect_zookeeper(root)
    bob_client = await connect_zookeeper(root)

    try:
        await run_write_lock_scenario(alice_client, bob_client)
    finally:
        await alice_client.close()
        await asyncio.to_thread(bob_client.zk.delete, root, recursive=True)
        await bob_client.close()


@pytest.mark.asyncio
async def test_zookeeper_session_close_releases_lock():
    root = f"/zklock-test-{uuid.uuid4().hex}"
    alice_client = await connect_zookeeper(root)
    bob_client = await connect_zookeeper(root)

    try:
        assert await Lock(alice_client).write_lock("res") is not None
        await alice_client.close()
        assert await Lock(bob_client, poll_interval=POLL).write_lock("res", timeout=5) is not None
    finally:
        await asyncio.to_thread(bob_client.zk.delete, root, recursive=True)
        await bob_client.close()


@pytest.mark.asyncio
async def test_redis_write_lock_scenario():
    namespace = f"zklock-test-{uuid.uuid4().hex}"
    alice_client = await connect_redis(namespace)
    bob_client = await connect_redis(namespace)

    try:
        await run_write_lock_scenario(alice_client, bob_client)
    finally:
        await alice_client.close()
        await bob_client.close()


@pytest.mark.asyncio
async def test_redis_expired_session_is_reaped():
    """Node dari session yang expired tidak lagi blocking"""
    namespace = f"zklock-test-{uuid.uuid4().hex}"
    alice_client = await connect_redis(namespace)
    bob_client = await connect_redis(namespace)

    try:
        assert await Lock(alice_client).write_lock("res") is not None

        # Simulate crash: heartbeat berhenti dan session key expired
        alice_client._running = False
        alice_client._heartbeat_task.cancel()
        await alice_client.redis.delete(alice_client._session(alice_client.session_id))

        assert await Lock(bob_client, poll_interval=POLL).write_lock("res") is not None
        assert len(await bob_client.get_children("res")) == 1
    finally:
        await alice_client.close()
        await bob_client.close()


@pytest.mark.asyncio
async def test_redis_write_lock_scenario_on_fakeredis():
    alice_client, bob_client = fake_redis_clients()
    await alice_client.start()
    await bob_client.start()

    try:
        await run_write_lock_scenario(alice_client, bob_client)
    finally:
        await alice_client.close()
        await bob_client.close()


@pytest.mark.asyncio
async def test_redis_expired_session_cannot_acquire():
    """Client dengan session expired tidak boleh grant lock"""
    alice_client, bob_client = fake_redis_clients()
    await alice_client.start()
    await bob_client.start()

    try:
        await alice_client.redis.delete(alice_client._session(alice_client.session_id))

        result = await Lock(alice_client).acquire("res", "write")
        assert result.failure == LockFailure.COORDINATION
        assert "expired" in result.error

        assert await Lock(bob_client).write_lock("res") == "res/lock-0000000000"
        assert await Lock(alice_client).write_lock("res") is None
        assert await bob_client.get_children("res") == ["lock-0000000000"]
    finally:
        await alice_client.close()
        await bob_client.close()


@pytest.mark.asyncio
async def test_redis_heartbeat_stops_when_session_key_is_gone():
    client, = fake_redis_clients(count=1, session_ttl=0.3)
    await client.start()

    try:
        await client.redis.delete(client._session(client.session_id))
        await asyncio.wait_for(client._heartbeat_task, timeout=2)

        assert client._running is False
        assert not await client.redis.exists(client._session(client.session_id))
        with pytest.raises(CoordinationFailure):
            await client.create("res", b"")
    finally:
        await client.close()


if __name__ == "__main__":
    pytest.main([__file__, '-v'])
