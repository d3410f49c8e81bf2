"""
Unit tests untuk in-memory coordination service.
"""

import pytest
from zklock.coordination.base import CreateFlags
from zklock.coordination.memory import InMemoryCoordinator
from zklock.core.exceptions import CoordinationFailure

EPHEMERAL_SEQUENCE = CreateFlags.EPHEMERAL | CreateFlags.SEQUENCE


@pytest.mark.asyncio
async def test_ensure_path_is_idempotent():
    """ensure_path membuat ancestors dan aman dipanggil berulang"""
    client = InMemoryCoordinator().session()

    assert await client.ensure_path("/app/locks/orders")
    assert await client.ensure_path("/app/locks/orders")
    assert await client.exists("/app")
    assert await client.exists("/app/locks")
    assert await client.get_children("/app/locks") == ["orders"]


@pytest.mark.asyncio
async def test_sequential_nodes_are_monotonic_across_prefixes():
    """Sequence counter per parent, dipakai bersama oleh lock- dan read- nodes"""
    client = InMemoryCoordinator().session()
    await client.ensure_path("res")

    first = await client.create("res/lock-", b"1", EPHEMERAL_SEQUENCE)
    second = await client.create("res/read-", b"1", EPHEMERAL_SEQUENCE)
    third = await client.create("res/lock-", b"1", EPHEMERAL_SEQUENCE)

    assert first == "res/lock-0000000000"
    assert second == "res/read-0000000001"
    assert third == "res/lock-0000000002"
    assert sorted(await client.get_children("res")) == [
        "lock-0000000000", "lock-0000000002", "read-0000000001"
    ]


@pytest.mark.asyncio
async def test_create_requires_parent():
    client = InMemoryCoordinator().session()

    with pytest.raises(CoordinationFailure):
        await client.create("missing/lock-", b"1", EPHEMERAL_SEQUENCE)


@pytest.mark.asyncio
async def test_ephemeral_nodes_removed_on_close():
    """Ephemeral nodes hilang saat session berakhir, persistent nodes tetap"""
    service = InMemoryCoordinator()
    holder = service.session()
    observer = service.session()

    await holder.ensure_path("res")
    await holder.create("res/lock-", b"1", EPHEMERAL_SEQUENCE)
    assert len(await observer.get_children("res")) == 1

    await holder.close()

    assert await observer.get_children("res") == []
    assert await observer.exists("res")


@pytest.mark.asyncio
async def test_expired_session_rejects_operations():
    service = InMemoryCoordinator()
    client = service.session()
    client.expire()

    with pytest.raises(CoordinationFailure):
        await client.exists("res")


@pytest.mark.asyncio
async def test_remove_absent_node_returns_false():
    client = InMemoryCoordinator().session()
    await client.ensure_path("res")
    handle = await client.create("res/lock-", b"1", EPHEMERAL_SEQUENCE)

    assert await client.remove(handle) is True
    assert await client.remove(handle) is False
    assert await client.remove("never/existed") is False


@pytest.mark.asyncio
async def test_ephemeral_node_cannot_have_children():
    client = InMemoryCoordinator().session()
    await client.create("eph", b"", CreateFlags.EPHEMERAL)

    assert await client.ensure_path("eph/child") is False
    with pytest.raises(CoordinationFailure):
        await client.create("eph/lock-", b"1", EPHEMERAL_SEQUENCE)


@pytest.mark.asyncio
async def test_child_watch_fires_once():
    """Child watch dipanggil sekali saat set of children berubah"""
    client = InMemoryCoordinator().session()
    await client.ensure_path("res")
    calls = []

    await client.get_children("res", watch=lambda: calls.append("changed"))
    handle = await client.create("res/lock-", b"1", EPHEMERAL_SEQUENCE)
    await client.remove(handle)

    assert calls == ["changed"]


if __name__ == "__main__":
    pytest.main([__file__, '-v'])
