"""
ZooKeeper adapter menggunakan kazoo.

Kazoo API adalah blocking, jadi setiap call dijalankan di default executor.
Watch callbacks datang dari kazoo thread dan diteruskan ke event loop
oleh caller (lihat AcquisitionLoop).
"""

import asyncio
import logging
from typing import List, Optional

from kazoo.client import KazooClient
from kazoo.exceptions import KazooException, NoNodeError, NotEmptyError
from kazoo.handlers.threading import KazooTimeoutError

from .base import ChildWatch, CoordinationClient, CreateFlags
from ..core.exceptions import CoordinationFailure

logger = logging.getLogger(__name__)


class ZooKeeperClient(CoordinationClient):
    """
    CoordinationClient di atas KazooClient.

    Relative keys ("res") di-map ke root ("/locks/res"). Paths yang di-return
    tetap dalam namespace caller.
    """

    supports_watches = True

    def __init__(self, zk: KazooClient, root: str = "/"):
        """
        Args:
            zk: KazooClient (started atau belum)
            root: Base path untuk semua keys
        """
        self.zk = zk
        self.root = "/" + root.strip("/") if root.strip("/") else ""

    @classmethod
    def from_hosts(cls, hosts: str, root: str = "/", timeout: float = 10.0) -> "ZooKeeperClient":
        """Create adapter dengan KazooClient baru"""
        return cls(KazooClient(hosts=hosts, timeout=timeout), root=root)

    def _abs(self, path: str) -> str:
        return f"{self.root}/{path.strip('/')}"

    def _rel(self, path: str, like: str) -> str:
        """Convert absolute znode path kembali ke bentuk path yang diberikan caller"""
        relative = path[len(self.root):] if self.root else path
        if like.startswith("/"):
            return relative
        return relative.lstrip("/")

    async def _call(self, func, *args, **kwargs):
        try:
            return await asyncio.to_thread(func, *args, **kwargs)
        except (KazooException, KazooTimeoutError) as e:
            raise CoordinationFailure(f"ZooKeeper error: {e!r}") from e

    async def start(self, timeout: float = 15.0):
        """Connect ke ensemble"""
        await self._call(self.zk.start, timeout=timeout)
        logger.info(f"Connected to ZooKeeper (root={self.root or '/'})")

    async def ensure_path(self, path: str) -> bool:
        return bool(await self._call(self.zk.ensure_path, self._abs(path)))

    async def create(self, path: str, data: bytes = b"", flags: CreateFlags = CreateFlags.PERSISTENT) -> str:
        created = await self._call(
            self.zk.create,
            self._abs(path),
            value=data,
            ephemeral=bool(flags & CreateFlags.EPHEMERAL),
            sequence=bool(flags & CreateFlags.SEQUENCE),
        )
        return self._rel(created, path)

    async def exists(self, path: str) -> bool:
        return await self._call(self.zk.exists, self._abs(path)) is not None

    async def get_children(self, path: str, watch: Optional[ChildWatch] = None) -> List[str]:
        kazoo_watch = None
        if watch is not None:
            def kazoo_watch(event):
                try:
                    watch()
                except RuntimeError:
                    # Event loop sudah closed
                    logger.debug(f"Dropped child watch for {path}")

        try:
            return await self._call(self.zk.get_children, self._abs(path), watch=kazoo_watch)
        except CoordinationFailure as e:
            if isinstance(e.__cause__, NoNodeError):
                return []
            raise

    async def remove(self, path: str) -> bool:
        try:
            await self._call(self.zk.delete, self._abs(path))
        except CoordinationFailure as e:
            if isinstance(e.__cause__, NoNodeError):
                return False
            if isinstance(e.__cause__, NotEmptyError):
                logger.warning(f"Cannot remove {path}: node has children")
            raise
        return True

    async def close(self):
        """Stop session. Ephemeral request nodes akan dihapus oleh ZooKeeper"""
        await asyncio.to_thread(self.zk.stop)
        await asyncio.to_thread(self.zk.close)
        logger.info("ZooKeeper session closed")
