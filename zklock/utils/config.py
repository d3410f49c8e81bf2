"""
Configuration manager untuk lock service.
File ini membaca environment variables dan menyediakan
konfigurasi default untuk node, coordination backend dan lock loop.
"""

import os
from dotenv import load_dotenv

# Load environment variables dari .env file
load_dotenv()


class Config:
    """Class untuk manage semua konfigurasi sistem"""

    # Node Configuration
    NODE_ID: int = int(os.getenv('NODE_ID', 1))
    NODE_HOST: str = os.getenv('NODE_HOST', 'localhost')
    NODE_PORT: int = int(os.getenv('NODE_PORT', 5000))

    # Coordination backend: memory, zookeeper atau redis
    COORDINATION_BACKEND: str = os.getenv('COORDINATION_BACKEND', 'memory')

    # ZooKeeper Configuration
    ZK_HOSTS: str = os.getenv('ZK_HOSTS', '127.0.0.1:2181')
    ZK_ROOT: str = os.getenv('ZK_ROOT', '/zklock')
    ZK_TIMEOUT: float = float(os.getenv('ZK_TIMEOUT', 10.0))

    # Redis Configuration
    REDIS_HOST: str = os.getenv('REDIS_HOST', 'localhost')
    REDIS_PORT: int = int(os.getenv('REDIS_PORT', 6379))
    REDIS_DB: int = int(os.getenv('REDIS_DB', 0))
    REDIS_NAMESPACE: str = os.getenv('REDIS_NAMESPACE', 'zklock')
    REDIS_SESSION_TTL: float = float(os.getenv('REDIS_SESSION_TTL', 10.0))

    # Lock loop (seconds)
    LOCK_POLL_INTERVAL: float = float(os.getenv('LOCK_POLL_INTERVAL', 0.1))
    LOCK_WAIT_STRATEGY: str = os.getenv('LOCK_WAIT_STRATEGY', 'poll')

    # Logging
    LOG_LEVEL: str = os.getenv('LOG_LEVEL', 'INFO')
    LOG_FILE: str = os.getenv('LOG_FILE', '')

    @classmethod
    def display(cls):
        """Print semua konfigurasi untuk debugging"""
        print("=== Configuration ===")
        print(f"Node ID: {cls.NODE_ID}")
        print(f"Node Address: {cls.NODE_HOST}:{cls.NODE_PORT}")
        print(f"Backend: {cls.COORDINATION_BACKEND}")
        if cls.COORDINATION_BACKEND == 'zookeeper':
            print(f"ZooKeeper: {cls.ZK_HOSTS} (root={cls.ZK_ROOT})")
        elif cls.COORDINATION_BACKEND == 'redis':
            print(f"Redis: {cls.REDIS_HOST}:{cls.REDIS_PORT}/{cls.REDIS_DB}")
        print(f"Lock wait: {cls.LOCK_WAIT_STRATEGY} (interval={cls.LOCK_POLL_INTERVAL}s)")
        print("=" * 30)


# Test configuration saat file dijalankan langsung
if __name__ == "__main__":
    Config.display()
