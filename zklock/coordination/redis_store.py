"""
Redis adapter: coordination service semantics di atas Redis.

Layout keys (prefix = namespace):
- <ns>:node:<path>           hash {data, owner}, owner kosong untuk persistent nodes
- <ns>:children:<path>       set of child names
- <ns>:seq:<path>            sequence counter untuk children (INCR, atomic)
- <ns>:session:<id>          session liveness key dengan TTL
- <ns>:session-nodes:<id>    ephemeral nodes milik session

Session tetap hidup selama heartbeat task me-refresh TTL. Nodes dari session
yang sudah expired di-reap secara lazy saat exists()/get_children().
Jika session sendiri sudah expired, operasi yang bisa grant lock gagal dengan
CoordinationFailure, sama seperti ZooKeeper session yang expired.
Redis tidak punya child watches, jadi acquisition selalu polling.
"""

import asyncio
import logging
import uuid
from contextlib import contextmanager
from typing import Dict, List, Optional

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from .base import ChildWatch, CoordinationClient, CreateFlags
from ..core.exceptions import CoordinationFailure
from ..core.naming import format_sequence

logger = logging.getLogger(__name__)


def _key(path: str) -> str:
    return path.strip("/")


def _split(key: str):
    if "/" not in key:
        return "", key
    parent, _, name = key.rpartition("/")
    return parent, name


@contextmanager
def _redis_errors(operation: str, path: str):
    """Translate Redis errors ke CoordinationFailure"""
    try:
        yield
    except RedisError as e:
        raise CoordinationFailure(f"Redis error during {operation} {path}: {e!r}") from e


class RedisCoordinationClient(CoordinationClient):
    """CoordinationClient dengan satu session di atas Redis"""

    supports_watches = False

    def __init__(self, redis: aioredis.Redis, namespace: str = "zklock", session_ttl: float = 10.0):
        """
        Args:
            redis: Redis connection (decode_responses=True)
            namespace: Prefix untuk semua keys
            session_ttl: Session dianggap expired jika tidak di-refresh selama ini (seconds)
        """
        self.redis = redis
        self.namespace = namespace
        self.session_ttl = session_ttl
        self.session_id = uuid.uuid4().hex

        self._heartbeat_task: Optional[asyncio.Task] = None
        self._running = False
        self._expired = False

    @classmethod
    def from_settings(cls, host: str, port: int, db: int = 0, **kwargs) -> "RedisCoordinationClient":
        redis = aioredis.Redis(host=host, port=port, db=db, decode_responses=True)
        return cls(redis, **kwargs)

    # Key helpers
    def _node(self, key: str) -> str:
        return f"{self.namespace}:node:{key}"

    def _children(self, key: str) -> str:
        return f"{self.namespace}:children:{key}"

    def _seq(self, key: str) -> str:
        return f"{self.namespace}:seq:{key}"

    def _session(self, session_id: str) -> str:
        return f"{self.namespace}:session:{session_id}"

    def _session_nodes(self, session_id: str) -> str:
        return f"{self.namespace}:session-nodes:{session_id}"

    async def start(self):
        """Register session dan start heartbeat"""
        with _redis_errors("start", self.session_id):
            await self.redis.set(self._session(self.session_id), "1", px=int(self.session_ttl * 1000))

        self._running = True
        self._heartbeat_task = asyncio.create_task(self._heartbeat_loop())
        logger.info(f"Redis session {self.session_id} started (ttl={self.session_ttl}s)")

    async def _heartbeat_loop(self):
        """Background task untuk refresh session TTL"""
        while self._running:
            try:
                await asyncio.sleep(self.session_ttl / 3)
                refreshed = await self.redis.pexpire(self._session(self.session_id), int(self.session_ttl * 1000))
                if not refreshed:
                    # pexpire pada key yang hilang adalah no-op, session tidak bisa kembali
                    logger.error(f"Redis session {self.session_id} expired, stopping heartbeat")
                    self._expired = True
                    self._running = False
            except asyncio.CancelledError:
                break
            except RedisError as e:
                logger.error(f"Session heartbeat failed: {e}")

    async def _check_session(self):
        """Raise CoordinationFailure jika session sudah expired"""
        if not self._expired and await self.redis.exists(self._session(self.session_id)):
            return
        self._expired = True
        raise CoordinationFailure(f"Session {self.session_id} expired")

    async def _owner_alive(self, owners: List[str]) -> Dict[str, bool]:
        """Check liveness untuk setiap owner session"""
        unique = [owner for owner in set(owners) if owner]
        if not unique:
            return {}
        async with self.redis.pipeline(transaction=False) as pipe:
            for owner in unique:
                pipe.exists(self._session(owner))
            results = await pipe.execute()
        return {owner: bool(alive) for owner, alive in zip(unique, results)}

    async def _delete_node(self, key: str, owner: str = ""):
        parent, name = _split(key)
        async with self.redis.pipeline(transaction=True) as pipe:
            pipe.delete(self._node(key))
            pipe.srem(self._children(parent), name)
            if owner:
                pipe.srem(self._session_nodes(owner), key)
            results = await pipe.execute()
        return bool(results[0])

    async def _node_exists(self, key: str) -> bool:
        if not key:
            return True
        owner = await self.redis.hget(self._node(key), "owner")
        if owner is None:
            return False
        if owner and not (await self._owner_alive([owner]))[owner]:
            logger.debug(f"Reaping {key}: session {owner} expired")
            await self._delete_node(key, owner)
            return False
        return True

    async def ensure_path(self, path: str) -> bool:
        key = _key(path)
        if not key:
            return True

        with _redis_errors("ensure_path", path):
            await self._check_session()
            current = ""
            for part in key.split("/"):
                parent = current
                current = f"{current}/{part}" if current else part
                if await self._node_exists(current):
                    continue
                if parent and await self.redis.hget(self._node(parent), "owner"):
                    return False
                if await self.redis.hsetnx(self._node(current), "owner", ""):
                    await self.redis.hset(self._node(current), "data", "")
                    await self.redis.sadd(self._children(parent), part)
        return True

    async def create(self, path: str, data: bytes = b"", flags: CreateFlags = CreateFlags.PERSISTENT) -> str:
        parent, _ = _split(_key(path))

        with _redis_errors("create", path):
            await self._check_session()
            if not await self._node_exists(parent):
                raise CoordinationFailure(f"No node for parent of {path}")
            if parent and await self.redis.hget(self._node(parent), "owner"):
                raise CoordinationFailure(f"Ephemeral node cannot have children: {path}")

            if flags & CreateFlags.SEQUENCE:
                sequence = await self.redis.incr(self._seq(parent)) - 1
                path = path + format_sequence(sequence)

            key = _key(path)
            _, name = _split(key)
            owner = self.session_id if flags & CreateFlags.EPHEMERAL else ""

            if not await self.redis.hsetnx(self._node(key), "owner", owner):
                raise CoordinationFailure(f"Node already exists: {path}")

            async with self.redis.pipeline(transaction=True) as pipe:
                pipe.hset(self._node(key), "data", data)
                pipe.sadd(self._children(parent), name)
                if owner:
                    pipe.sadd(self._session_nodes(owner), key)
                await pipe.execute()
        return path

    async def exists(self, path: str) -> bool:
        with _redis_errors("exists", path):
            return await self._node_exists(_key(path))

    async def get_children(self, path: str, watch: Optional[ChildWatch] = None) -> List[str]:
        key = _key(path)
        with _redis_errors("get_children", path):
            await self._check_session()
            names = list(await self.redis.smembers(self._children(key)))
            if not names:
                return []

            child_keys = [f"{key}/{name}" if key else name for name in names]
            async with self.redis.pipeline(transaction=False) as pipe:
                for child_key in child_keys:
                    pipe.hget(self._node(child_key), "owner")
                owners = await pipe.execute()

            alive = await self._owner_alive(owners)
            children = []
            for name, child_key, owner in zip(names, child_keys, owners):
                if owner is None:
                    # Stale entry, node sudah dihapus
                    await self.redis.srem(self._children(key), name)
                    continue
                if owner and not alive[owner]:
                    logger.debug(f"Reaping {child_key}: session {owner} expired")
                    await self._delete_node(child_key, owner)
                    continue
                children.append(name)
        return children

    async def remove(self, path: str) -> bool:
        key = _key(path)
        if not key:
            return False

        with _redis_errors("remove", path):
            owner = await self.redis.hget(self._node(key), "owner")
            if owner is None:
                return False
            if await self.redis.scard(self._children(key)):
                raise CoordinationFailure(f"Node not empty: {path}")
            return await self._delete_node(key, owner)

    async def close(self):
        """Stop heartbeat, remove ephemeral nodes, dan close connection"""
        self._running = False
        if self._heartbeat_task:
            self._heartbeat_task.cancel()
            try:
                await self._heartbeat_task
            except asyncio.CancelledError:
                pass

        try:
            owned = await self.redis.smembers(self._session_nodes(self.session_id))
            for key in owned:
                await self._delete_node(key, self.session_id)
            await self.redis.delete(self._session(self.session_id), self._session_nodes(self.session_id))
            logger.info(f"Redis session {self.session_id} closed, removed {len(owned)} ephemeral nodes")
        except RedisError as e:
            logger.error(f"Error closing Redis session {self.session_id}: {e}")
        finally:
            await self.redis.aclose()
