"""
Tests untuk LockNode HTTP API dan RemoteLock client.
"""

import pytest
from aiohttp import test_utils

from zklock.communication.lock_client import RemoteLock
from zklock.coordination.memory import InMemoryCoordinator
from zklock.core.naming import LockType
from zklock.nodes.lock_node import LockNode


def make_node(**kwargs):
    service = InMemoryCoordinator()
    node = LockNode(node_id=1, host='127.0.0.1', port=0, client=service.session(),
                    poll_interval=0.01, **kwargs)
    return service, node


@pytest.mark.asyncio
async def test_acquire_and_release_over_http():
    """Test acquire, contention, dan release lewat HTTP"""
    _, node = make_node()

    async with test_utils.TestClient(test_utils.TestServer(node.app)) as client:
        resp = await client.post('/api/lock/acquire', json={'key': 'orders', 'mode': 'write'})
        assert resp.status == 200
        data = await resp.json()
        assert data['status'] == 'acquired'
        handle = data['handle']
        assert handle == 'orders/lock-0000000000'

        resp = await client.post('/api/lock/acquire', json={'key': 'orders', 'mode': 'write', 'timeout': 0})
        data = await resp.json()
        assert data['status'] == 'denied'
        assert data['reason'] == 'timeout'

        resp = await client.get('/api/lock/status', params={'key': 'orders', 'mode': 'read'})
        data = await resp.json()
        assert data == {'key': 'orders', 'mode': 'read', 'locked': True}

        resp = await client.post('/api/lock/release', json={'handle': handle})
        assert (await resp.json())['status'] == 'released'

        resp = await client.post('/api/lock/release', json={'handle': handle})
        assert (await resp.json())['status'] == 'not_found'

    assert node.locks_acquired == 1
    assert node.locks_denied == 1
    assert node.locks_released == 1


@pytest.mark.asyncio
async def test_invalid_requests_rejected():
    _, node = make_node()

    async with test_utils.TestClient(test_utils.TestServer(node.app)) as client:
        resp = await client.post('/api/lock/acquire', json={'mode': 'write'})
        assert resp.status == 400

        resp = await client.post('/api/lock/acquire', json={'key': 'orders', 'mode': 'shared'})
        assert resp.status == 400

        resp = await client.post('/api/lock/acquire', json={'key': 'orders', 'timeout': -1})
        assert resp.status == 400

        resp = await client.post('/api/lock/release', data='not json')
        assert resp.status == 400

        resp = await client.get('/api/lock/status')
        assert resp.status == 400


@pytest.mark.asyncio
async def test_status_reports_held_locks():
    _, node = make_node()

    async with test_utils.TestClient(test_utils.TestServer(node.app)) as client:
        await client.post('/api/lock/acquire', json={'key': 'a', 'mode': 'read'})
        await client.post('/api/lock/acquire', json={'key': 'b', 'mode': 'exclusive'})

        resp = await client.get('/api/status')
        data = await resp.json()
        assert data['held_locks'] == 2
        assert {info['key'] for info in data['locks'].values()} == {'a', 'b'}

        resp = await client.get('/api/metrics')
        assert resp.status == 200
        assert 'zklock_attempts_total' in await resp.text()


@pytest.mark.asyncio
async def test_release_all_on_shutdown():
    """Handles yang masih di-hold dilepas saat node stop"""
    service, node = make_node()
    observer = service.session()

    await node.acquire_lock('orders', LockType.WRITE, 0)
    assert len(await observer.get_children('orders')) == 1

    await node.release_all()

    assert node.held == {}
    assert await observer.get_children('orders') == []


@pytest.mark.asyncio
async def test_remote_lock_client():
    """RemoteLock punya semantics yang sama dengan Lock facade"""
    _, node = make_node()

    async with test_utils.TestServer(node.app) as server:
        address = f"{server.host}:{server.port}"
        async with RemoteLock(address) as alice, RemoteLock(address) as bob:
            handle = await alice.write_lock('res')
            assert handle == 'res/lock-0000000000'

            assert await bob.write_lock('res') is None
            assert await bob.is_locked('res')
            assert await bob.read_lock('res') is None

            assert await alice.unlock(handle) is True
            assert await alice.unlock(handle) is False

            assert await bob.read_lock('res') is not None
            assert await alice.lock('res') is not None


@pytest.mark.asyncio
async def test_remote_lock_unreachable_node():
    async with RemoteLock('127.0.0.1:1', request_timeout=0.5) as client:
        assert await client.lock('res') is None
        assert await client.unlock('res/lock-0000000000') is False
        assert client.get_stats()['failed_requests'] == 2


if __name__ == "__main__":
    pytest.main([__file__, '-v'])
