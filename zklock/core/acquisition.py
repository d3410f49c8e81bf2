"""
Acquisition loop: poll contention evaluator sampai unblocked atau deadline lewat.

Pause di antara polls bisa diganti:
- PollingWaiter: sleep dengan interval tetap (default 100ms)
- WatchingWaiter: tunggu child watch event pada resource path, fallback ke deadline
"""

import asyncio
import logging
import time
from typing import Optional, Union

from .contention import ContentionEvaluator
from .naming import LockType
from ..coordination.base import CoordinationClient

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 0.1


class PollingWaiter:
    """Fixed interval polling"""

    def __init__(self, interval: float = DEFAULT_POLL_INTERVAL):
        self.interval = interval

    def watch(self, client: CoordinationClient) -> Optional[asyncio.Event]:
        """Event yang di-set saat children berubah, None jika tidak dipakai"""
        return None

    async def pause(self, changed: Optional[asyncio.Event], remaining: float):
        await asyncio.sleep(self.interval)


class WatchingWaiter(PollingWaiter):
    """
    Notification based waiting.

    Child watch di-arm bersamaan dengan listing yang dievaluasi, jadi tidak ada
    perubahan yang terlewat. Client tanpa watch support di-handle dengan polling.
    """

    def watch(self, client: CoordinationClient) -> Optional[asyncio.Event]:
        if not client.supports_watches:
            return None
        return asyncio.Event()

    async def pause(self, changed: Optional[asyncio.Event], remaining: float):
        if changed is None:
            await super().pause(changed, remaining)
            return
        try:
            await asyncio.wait_for(changed.wait(), timeout=max(remaining, 0.0))
        except asyncio.TimeoutError:
            pass


class AcquisitionLoop:
    """Wait sampai request punya priority tertinggi"""

    def __init__(self, evaluator: ContentionEvaluator, waiter: Optional[PollingWaiter] = None):
        self.evaluator = evaluator
        self.waiter = waiter or PollingWaiter()

    async def await_turn(self,
                         resource_path: str,
                         own_index: Optional[int],
                         mode: Union[LockType, str],
                         timeout: float) -> bool:
        """
        Repeat contention check sampai tidak blocked.

        timeout 0 berarti tepat satu check.

        Returns:
            True jika acquired, False jika deadline lewat
        """
        deadline = time.monotonic() + timeout
        loop = asyncio.get_running_loop()
        attempts = 0

        while True:
            attempts += 1
            changed = self.waiter.watch(self.evaluator.client)
            on_change = None
            if changed is not None:
                def on_change(event=changed):
                    loop.call_soon_threadsafe(event.set)

            if not await self.evaluator.is_blocked(resource_path, own_index, mode, watch=on_change):
                return True

            remaining = deadline - time.monotonic()
            if remaining <= 0:
                break
            await self.waiter.pause(changed, remaining)

        logger.debug(f"{resource_path}: still blocked after {attempts} check(s), giving up")
        return False
