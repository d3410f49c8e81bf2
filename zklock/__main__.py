"""
Main entry point untuk menjalankan lock service node.
"""

import asyncio
import argparse
import logging
import sys

from zklock.coordination.base import CoordinationClient
from zklock.coordination.memory import InMemoryCoordinator
from zklock.core.exceptions import CoordinationFailure
from zklock.nodes.lock_node import LockNode
from zklock.utils.config import Config


def setup_logging():
    """Setup logging configuration"""
    logging.basicConfig(
        level=getattr(logging, Config.LOG_LEVEL),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.StreamHandler(sys.stdout),
            logging.FileHandler(Config.LOG_FILE) if Config.LOG_FILE else logging.NullHandler()
        ]
    )


async def create_client(backend: str) -> CoordinationClient:
    """
    Create dan connect coordination client.

    Args:
        backend: memory, zookeeper atau redis
    """
    if backend == 'memory':
        return InMemoryCoordinator().session()

    if backend == 'zookeeper':
        from zklock.coordination.zookeeper import ZooKeeperClient
        client = ZooKeeperClient.from_hosts(Config.ZK_HOSTS, root=Config.ZK_ROOT, timeout=Config.ZK_TIMEOUT)
        await client.start()
        return client

    if backend == 'redis':
        from zklock.coordination.redis_store import RedisCoordinationClient
        client = RedisCoordinationClient.from_settings(
            Config.REDIS_HOST,
            Config.REDIS_PORT,
            Config.REDIS_DB,
            namespace=Config.REDIS_NAMESPACE,
            session_ttl=Config.REDIS_SESSION_TTL
        )
        await client.start()
        return client

    raise ValueError(f"Unknown coordination backend: {backend}")


async def run_node(backend: str, port: int):
    """
    Run lock service node.

    Args:
        backend: Coordination backend
        port: HTTP port
    """
    client = await create_client(backend)
    node = LockNode(
        Config.NODE_ID,
        Config.NODE_HOST,
        port,
        client,
        wait_strategy=Config.LOCK_WAIT_STRATEGY,
        poll_interval=Config.LOCK_POLL_INTERVAL
    )

    await node.start()

    print(f"\n{'='*60}")
    print(f"  LOCK NODE {Config.NODE_ID} STARTED ({backend})")
    print(f"  Address: http://{Config.NODE_HOST}:{port}")
    print(f"{'='*60}\n")

    try:
        # Keep running
        while True:
            await asyncio.sleep(1)
    finally:
        await node.stop()
        await client.close()


def main():
    """Main entry point"""
    parser = argparse.ArgumentParser(description='Distributed lock service')
    parser.add_argument(
        '--backend',
        choices=['memory', 'zookeeper', 'redis'],
        default=Config.COORDINATION_BACKEND,
        help='Coordination backend'
    )
    parser.add_argument(
        '--port',
        type=int,
        default=Config.NODE_PORT,
        help='HTTP port'
    )

    args = parser.parse_args()

    # Setup logging
    setup_logging()

    # Display configuration
    Config.COORDINATION_BACKEND = args.backend
    Config.display()

    # Run node
    try:
        asyncio.run(run_node(args.backend, args.port))
    except KeyboardInterrupt:
        print("\nExiting...")
    except (CoordinationFailure, ValueError) as e:
        print(f"Error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
