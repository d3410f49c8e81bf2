"""
Lock service node.
Expose lock facade lewat HTTP API (aiohttp), supaya process yang tidak
punya koneksi langsung ke coordination service tetap bisa memakai locks.
"""

import asyncio
import logging
import time
from typing import Any, Dict, Optional

from aiohttp import web

from ..coordination.base import CoordinationClient
from ..core.acquisition import PollingWaiter, WatchingWaiter
from ..core.exceptions import CoordinationFailure
from ..core.lock import Lock
from ..core.naming import LockType
from ..utils.metrics import metrics

logger = logging.getLogger(__name__)


class LockNode:
    """
    Lock service node.

    Endpoints:
    - POST /api/lock/acquire  {"key", "mode", "timeout"}
    - POST /api/lock/release  {"handle"}
    - GET  /api/lock/status?key=...&mode=...
    - GET  /api/status, /api/metrics, /health
    """

    def __init__(self,
                 node_id: int,
                 host: str,
                 port: int,
                 client: CoordinationClient,
                 wait_strategy: str = 'poll',
                 poll_interval: float = 0.1):
        """
        Args:
            node_id: Unique ID untuk node
            host: Host address
            port: Port number
            client: Coordination client (lifecycle dikelola oleh caller)
            wait_strategy: 'poll' atau 'watch'
            poll_interval: Interval antara contention checks (seconds)
        """
        self.node_id = node_id
        self.host = host
        self.port = port
        self.client = client

        if wait_strategy == 'watch':
            waiter = WatchingWaiter(poll_interval)
        else:
            waiter = PollingWaiter(poll_interval)
        self.locker = Lock(client, waiter=waiter)

        # Handles yang di-grant oleh node ini: handle -> info
        self.held: Dict[str, Dict[str, Any]] = {}

        # Statistics
        self.locks_acquired = 0
        self.locks_denied = 0
        self.locks_released = 0

        # HTTP server
        self.app = web.Application()
        self.runner: Optional[web.AppRunner] = None
        self.site: Optional[web.TCPSite] = None
        self._setup_routes()

        self._running = False

        logger.info(f"LockNode {node_id} initialized at {host}:{port}")

    def _setup_routes(self):
        """Setup HTTP API routes"""
        self.app.router.add_post('/api/lock/acquire', self.handle_acquire_lock)
        self.app.router.add_post('/api/lock/release', self.handle_release_lock)
        self.app.router.add_get('/api/lock/status', self.handle_lock_status)
        self.app.router.add_get('/api/status', self.handle_status)
        self.app.router.add_get('/api/metrics', self.handle_metrics)
        self.app.router.add_get('/health', self.handle_health)

    async def start(self):
        """Start HTTP server"""
        logger.info(f"Starting node {self.node_id}...")

        self.runner = web.AppRunner(self.app)
        await self.runner.setup()
        self.site = web.TCPSite(self.runner, self.host, self.port)
        await self.site.start()

        self._running = True
        logger.info(f"Node {self.node_id} started successfully at http://{self.host}:{self.port}")

    async def stop(self):
        """Stop node, release locks yang masih di-hold"""
        logger.info(f"Stopping node {self.node_id}...")
        self._running = False

        await self.release_all()

        if self.site:
            await self.site.stop()
        if self.runner:
            await self.runner.cleanup()

        logger.info(f"Node {self.node_id} stopped")

    async def release_all(self):
        """Release semua handles yang di-grant oleh node ini"""
        for handle in list(self.held):
            try:
                await self.locker.unlock(handle)
            except CoordinationFailure as e:
                logger.warning(f"Could not release {handle} on shutdown: {e}")
            self.held.pop(handle, None)

    async def acquire_lock(self, key: str, mode: LockType, timeout: float) -> Dict[str, Any]:
        """
        Acquire lock pada resource.

        Returns:
            Dict dengan status: 'acquired' atau 'denied'
        """
        result = await self.locker.acquire(key, mode, timeout)

        if not result.acquired:
            self.locks_denied += 1
            return {
                'status': 'denied',
                'key': key,
                'reason': result.failure.value
            }

        self.locks_acquired += 1
        self.held[result.handle] = {
            'key': key,
            'mode': mode.value,
            'acquired_time': time.time()
        }
        return {
            'status': 'acquired',
            'key': key,
            'mode': mode.value,
            'handle': result.handle
        }

    async def release_lock(self, handle: str) -> Dict[str, Any]:
        """Release lock by handle"""
        released = await self.locker.unlock(handle)
        self.held.pop(handle, None)

        if not released:
            return {'status': 'not_found', 'handle': handle}

        self.locks_released += 1
        return {'status': 'released', 'handle': handle}

    @staticmethod
    def _parse_mode(value: Any) -> LockType:
        try:
            return LockType(value)
        except ValueError:
            raise ValueError(f"Unknown lock mode: {value!r}")

    async def handle_acquire_lock(self, request: web.Request) -> web.Response:
        """HTTP endpoint untuk acquire lock"""
        try:
            data = await request.json()
            key = data['key']
            if not isinstance(key, str) or not key:
                raise ValueError("key must be a non-empty string")
            mode = self._parse_mode(data.get('mode', LockType.EXCLUSIVE.value))
            timeout = float(data.get('timeout', 0))
            if timeout < 0:
                raise ValueError("timeout must be >= 0")
        except (KeyError, ValueError, TypeError) as e:
            return web.json_response({'error': f"Invalid request: {e}"}, status=400)

        try:
            result = await self.acquire_lock(key, mode, timeout)
            return web.json_response(result)

        except Exception as e:
            logger.error(f"Error in acquire_lock: {e}")
            return web.json_response({'error': str(e)}, status=500)

    async def handle_release_lock(self, request: web.Request) -> web.Response:
        """HTTP endpoint untuk release lock"""
        try:
            data = await request.json()
            handle = data['handle']
        except (KeyError, ValueError, TypeError) as e:
            return web.json_response({'error': f"Invalid request: {e}"}, status=400)

        try:
            result = await self.release_lock(handle)
            return web.json_response(result)

        except CoordinationFailure as e:
            logger.error(f"Error in release_lock: {e}")
            return web.json_response({'error': str(e)}, status=503)

    async def handle_lock_status(self, request: web.Request) -> web.Response:
        """Check apakah request baru pada key akan blocked"""
        key = request.query.get('key')
        if not key:
            return web.json_response({'error': 'Missing key parameter'}, status=400)
        try:
            mode = self._parse_mode(request.query.get('mode', LockType.EXCLUSIVE.value))
        except ValueError as e:
            return web.json_response({'error': str(e)}, status=400)

        try:
            locked = await self.locker.is_locked(key, mode)
        except CoordinationFailure as e:
            logger.error(f"Error in lock_status: {e}")
            return web.json_response({'error': str(e)}, status=503)

        return web.json_response({'key': key, 'mode': mode.value, 'locked': locked})

    async def handle_status(self, request: web.Request) -> web.Response:
        """Get node status"""
        now = time.time()
        status = {
            'node_id': self.node_id,
            'address': f"{self.host}:{self.port}",
            'running': self._running,
            'held_locks': len(self.held),
            'locks': {
                handle: {
                    'key': info['key'],
                    'mode': info['mode'],
                    'age': now - info['acquired_time']
                }
                for handle, info in self.held.items()
            },
            'statistics': {
                'locks_acquired': self.locks_acquired,
                'locks_denied': self.locks_denied,
                'locks_released': self.locks_released
            }
        }
        return web.json_response(status)

    async def handle_metrics(self, request: web.Request) -> web.Response:
        """Export Prometheus metrics"""
        metrics_data = metrics.get_metrics()
        return web.Response(body=metrics_data, content_type='text/plain')

    async def handle_health(self, request: web.Request) -> web.Response:
        """Health check endpoint"""
        if self._running:
            return web.json_response({'status': 'healthy'})
        else:
            return web.json_response({'status': 'unhealthy'}, status=503)


# Test code
async def demo_lock_node():
    """Run LockNode dengan in-memory backend"""
    from ..coordination.memory import InMemoryCoordinator

    service = InMemoryCoordinator()
    node = LockNode(node_id=1, host='localhost', port=6001, client=service.session())
    await node.start()

    print("\nLockNode running at http://localhost:6001. Press Ctrl+C to stop...")
    try:
        await asyncio.sleep(30)
    except KeyboardInterrupt:
        pass

    await node.stop()


if __name__ == "__main__":
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    asyncio.run(demo_lock_node())
