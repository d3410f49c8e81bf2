"""
Distributed Lock.
Implementasi lock recipe di atas coordination service dengan:
- Exclusive locks
- Write locks (FIFO berdasarkan sequence index)
- Read locks (multiple readers, defer ke writer requests)

Setiap attempt membuat ephemeral sequential request node di bawah resource
path. Handle yang di-return adalah full path node tersebut.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

from .acquisition import AcquisitionLoop, PollingWaiter, DEFAULT_POLL_INTERVAL
from .contention import ContentionEvaluator
from .exceptions import CoordinationFailure, PathCreationFailure, TimeoutExceeded
from .naming import LockType, build_prefix, parent_path, parse_index
from ..coordination.base import CoordinationClient, CreateFlags
from ..utils.metrics import metrics, measure_time

logger = logging.getLogger(__name__)

REQUEST_NODE_DATA = b"1"


class LockFailure(Enum):
    """Alasan lock tidak acquired"""
    PATH_CREATION = "path_creation"
    COORDINATION = "coordination"
    TIMEOUT = "timeout"


_FAILURE_ERRORS = {
    LockFailure.PATH_CREATION: PathCreationFailure,
    LockFailure.COORDINATION: CoordinationFailure,
    LockFailure.TIMEOUT: TimeoutExceeded,
}


@dataclass(frozen=True)
class LockResult:
    """Hasil dari acquire(): handle jika sukses, failure reason jika tidak"""
    handle: Optional[str] = None
    failure: Optional[LockFailure] = None
    error: str = ""

    @property
    def acquired(self) -> bool:
        return self.handle is not None

    @property
    def outcome(self) -> str:
        if self.acquired:
            return "acquired"
        return self.failure.value

    def __bool__(self):
        return self.acquired

    def unwrap(self) -> str:
        """Return handle, atau raise exception yang sesuai dengan failure"""
        if self.acquired:
            return self.handle
        raise _FAILURE_ERRORS[self.failure](self.error)

    def __repr__(self):
        if self.acquired:
            return f"LockResult(acquired, handle={self.handle})"
        return f"LockResult({self.failure.value}, error={self.error!r})"


class Lock:
    """
    Lock facade.

    Semua failure (path creation, coordination, timeout) di-collapse menjadi
    None untuk lock(), write_lock() dan read_lock(). Gunakan acquire() jika
    butuh failure reason.
    """

    def __init__(self,
                 client: CoordinationClient,
                 poll_interval: float = DEFAULT_POLL_INTERVAL,
                 waiter: Optional[PollingWaiter] = None):
        """
        Args:
            client: Coordination service client (session dikelola oleh caller)
            poll_interval: Interval antara contention checks (seconds)
            waiter: Custom wait strategy, default PollingWaiter(poll_interval)
        """
        self.client = client
        self.evaluator = ContentionEvaluator(client)
        self.loop = AcquisitionLoop(self.evaluator, waiter or PollingWaiter(poll_interval))

    async def lock(self, key: str, timeout: float = 0) -> Optional[str]:
        return (await self.acquire(key, LockType.EXCLUSIVE, timeout)).handle

    async def write_lock(self, key: str, timeout: float = 0) -> Optional[str]:
        return (await self.acquire(key, LockType.WRITE, timeout)).handle

    async def read_lock(self, key: str, timeout: float = 0) -> Optional[str]:
        return (await self.acquire(key, LockType.READ, timeout)).handle

    async def acquire(self,
                      key: str,
                      mode: Union[LockType, str] = LockType.EXCLUSIVE,
                      timeout: float = 0) -> LockResult:
        """
        Acquire lock pada resource key.

        Args:
            key: Resource path
            mode: exclusive, write atau read
            timeout: Maximum waktu menunggu (seconds), 0 berarti satu check

        Returns:
            LockResult dengan handle atau failure reason
        """
        mode = LockType.coerce(mode)

        with measure_time() as timer:
            result = await self._acquire(key, mode, timeout)

        metrics.record_attempt(mode.value, result.outcome, timer.elapsed, result.handle)
        if result.acquired:
            logger.info(f"Acquired {mode.value} lock on {key}: {result.handle}")
        else:
            logger.warning(f"{mode.value} lock on {key} not acquired ({result.failure.value}): {result.error}")
        return result

    async def _acquire(self, key: str, mode: LockType, timeout: float) -> LockResult:
        handle = None
        try:
            prefix = build_prefix(key, mode)
            handle = await self.create_request(prefix)

            if not await self.loop.await_turn(parent_path(prefix), parse_index(handle), mode, timeout):
                await self._discard(handle)
                return LockResult(failure=LockFailure.TIMEOUT,
                                  error=f"Timed out after {timeout}s waiting for {key}")

            return LockResult(handle=handle)

        except PathCreationFailure as e:
            return LockResult(failure=LockFailure.PATH_CREATION, error=str(e))

        except CoordinationFailure as e:
            logger.error(f"Coordination failure while locking {key}: {e}")
            if handle is not None:
                await self._discard(handle)
            return LockResult(failure=LockFailure.COORDINATION, error=str(e))

        except asyncio.CancelledError:
            # Request node tidak boleh tertinggal untuk sisa session
            if handle is not None:
                logger.info(f"Lock attempt on {key} cancelled, removing {handle}")
                await asyncio.shield(self._discard(handle))
            raise

    async def create_request(self, prefix: str) -> str:
        """
        Create ephemeral sequential request node.

        Returns:
            Full path dari node (lock handle)
        """
        resource = parent_path(prefix)
        if not await self.client.ensure_path(resource):
            raise PathCreationFailure(f"Could not create parent node {resource}")
        return await self.client.create(prefix, REQUEST_NODE_DATA,
                                        CreateFlags.EPHEMERAL | CreateFlags.SEQUENCE)

    async def _discard(self, handle: str):
        """Best-effort cleanup untuk request yang gagal"""
        try:
            await self.client.remove(handle)
        except CoordinationFailure as e:
            logger.warning(f"Could not remove request node {handle}: {e}")

    async def unlock(self, handle: str) -> bool:
        """
        Release lock.

        Returns:
            True jika node dihapus, False jika node sudah tidak ada
        """
        released = await self.client.remove(handle)
        metrics.record_release(handle, released)
        if released:
            logger.info(f"Released {handle}")
        else:
            logger.debug(f"Release of {handle}: node already gone")
        return released

    async def is_locked(self, key: str, mode: Union[LockType, str] = LockType.EXCLUSIVE) -> bool:
        """
        Check apakah request baru dengan mode ini akan blocked sekarang.
        Tidak membuat node apapun.

        Evaluasi selalu terhadap writer requests (lock-*): reader hanya
        defer ke writers, dan writer baru akan berada di belakang setiap
        writer yang sudah ada. Mode yang tidak dikenal tidak memakai filter
        apapun, jadi request apapun (termasuk readers) dianggap locked.
        """
        resource = parent_path(build_prefix(key))
        if not isinstance(mode, LockType) and mode not in [t.value for t in LockType]:
            return await self.evaluator.has_requests(resource)
        return await self.evaluator.is_blocked(resource, None, mode)

    @asynccontextmanager
    async def hold(self, key: str, mode: Union[LockType, str] = LockType.EXCLUSIVE, timeout: float = 0):
        """
        Context manager: acquire, yield handle, lalu unlock.

        Raises:
            PathCreationFailure, CoordinationFailure atau TimeoutExceeded
        """
        handle = (await self.acquire(key, mode, timeout)).unwrap()
        try:
            yield handle
        finally:
            await self.unlock(handle)


# Test code
async def demo_lock():
    """Demo Lock dengan in-memory coordination service"""
    from ..coordination.memory import InMemoryCoordinator

    service = InMemoryCoordinator()
    alice = Lock(service.session())
    bob = Lock(service.session())

    print("\n1. Alice acquires WRITE lock on 'res'")
    handle = await alice.write_lock("res")
    print(f"   Result: {handle}")

    print("\n2. Bob tries WRITE lock on 'res' (should fail)")
    print(f"   Result: {await bob.acquire('res', 'write')}")

    print("\n3. Alice releases")
    print(f"   Result: {await alice.unlock(handle)}")

    print("\n4. Bob retries")
    print(f"   Result: {await bob.write_lock('res')}")


if __name__ == "__main__":
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    asyncio.run(demo_lock())
