"""
Coordination service client interface.

Lock logic hanya bergantung pada interface ini, bukan pada client tertentu.
Concrete adapters: in-memory, ZooKeeper (kazoo), Redis.
"""

from abc import ABC, abstractmethod
from enum import IntFlag
from typing import Callable, List, Optional

ChildWatch = Callable[[], None]


class CreateFlags(IntFlag):
    """Flags untuk create(), bisa dikombinasikan dengan |"""
    PERSISTENT = 0
    EPHEMERAL = 1
    SEQUENCE = 2


class CoordinationClient(ABC):
    """
    Async client untuk hierarchical coordination service.

    Semua methods raise CoordinationFailure untuk transport/session errors.
    """

    # True jika get_children() bisa arm one-shot child watch
    supports_watches: bool = False

    @abstractmethod
    async def ensure_path(self, path: str) -> bool:
        """Create path beserta ancestors jika belum ada. Returns True jika path exists"""

    @abstractmethod
    async def create(self, path: str, data: bytes = b"", flags: CreateFlags = CreateFlags.PERSISTENT) -> str:
        """
        Create node.

        Dengan SEQUENCE flag, service menambahkan suffix numerik yang unique
        dan monotonic ke path. Returns full path yang dibuat.
        """

    @abstractmethod
    async def exists(self, path: str) -> bool:
        ...

    @abstractmethod
    async def get_children(self, path: str, watch: Optional[ChildWatch] = None) -> List[str]:
        """
        List child names (unordered).

        Jika watch diberikan dan supports_watches True, watch dipanggil sekali
        saat set of children berubah.
        """

    @abstractmethod
    async def remove(self, path: str) -> bool:
        """Remove node. Returns False jika node tidak ada"""

    async def close(self):
        """End session. Ephemeral nodes milik session ini akan hilang"""
        pass
