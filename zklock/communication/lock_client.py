"""
HTTP client untuk LockNode.
Menggunakan aiohttp untuk async HTTP communication.

RemoteLock punya API yang sama dengan Lock facade: handle atau None.
"""

import asyncio
import aiohttp
from typing import Any, Dict, Optional
import logging

logger = logging.getLogger(__name__)


class RemoteLock:
    """
    Lock facade yang memanggil LockNode lewat HTTP.
    Semua transport errors di-collapse menjadi None / False.
    """

    def __init__(self, address: str, request_timeout: float = 5.0):
        """
        Args:
            address: LockNode address, format "host:port"
            request_timeout: HTTP timeout di luar lock timeout (seconds)
        """
        self.address = address
        self.request_timeout = request_timeout
        self.session: Optional[aiohttp.ClientSession] = None

        # Statistics
        self.requests_sent = 0
        self.failed_requests = 0

    async def initialize(self):
        """Initialize HTTP client session"""
        self.session = aiohttp.ClientSession()
        logger.info(f"RemoteLock initialized for {self.address}")

    async def close(self):
        """Close HTTP client session"""
        if self.session:
            await self.session.close()
        logger.info(f"RemoteLock closed for {self.address}")

    async def __aenter__(self):
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    async def _request(self, method: str, path: str, timeout: float = 0, **kwargs) -> Optional[Dict[str, Any]]:
        """
        Send request ke LockNode.

        Returns:
            JSON response, atau None jika gagal
        """
        if not self.session:
            await self.initialize()

        url = f"http://{self.address}{path}"
        client_timeout = aiohttp.ClientTimeout(total=timeout + self.request_timeout)

        try:
            async with self.session.request(method, url, timeout=client_timeout, **kwargs) as response:
                self.requests_sent += 1
                if response.status == 200:
                    return await response.json()
                logger.warning(f"{method} {path} on {self.address} failed: HTTP {response.status}")
                self.failed_requests += 1
                return None

        except asyncio.TimeoutError:
            logger.warning(f"Timeout on {method} {path} to {self.address}")
            self.failed_requests += 1
            return None

        except aiohttp.ClientError as e:
            logger.error(f"Error on {method} {path} to {self.address}: {e}")
            self.failed_requests += 1
            return None

    async def _acquire(self, key: str, mode: str, timeout: float) -> Optional[str]:
        result = await self._request(
            'POST', '/api/lock/acquire', timeout=timeout,
            json={'key': key, 'mode': mode, 'timeout': timeout}
        )
        if result is None or result.get('status') != 'acquired':
            return None
        return result['handle']

    async def lock(self, key: str, timeout: float = 0) -> Optional[str]:
        return await self._acquire(key, 'exclusive', timeout)

    async def write_lock(self, key: str, timeout: float = 0) -> Optional[str]:
        return await self._acquire(key, 'write', timeout)

    async def read_lock(self, key: str, timeout: float = 0) -> Optional[str]:
        return await self._acquire(key, 'read', timeout)

    async def unlock(self, handle: str) -> bool:
        result = await self._request('POST', '/api/lock/release', json={'handle': handle})
        return result is not None and result.get('status') == 'released'

    async def is_locked(self, key: str, mode: str = 'exclusive') -> bool:
        result = await self._request('GET', '/api/lock/status', params={'key': key, 'mode': mode})
        return bool(result and result.get('locked'))

    def get_stats(self) -> Dict[str, int]:
        """Get client statistics"""
        return {
            'requests_sent': self.requests_sent,
            'failed_requests': self.failed_requests
        }
