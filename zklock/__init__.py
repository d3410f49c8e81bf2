"""
zklock

Distributed locks di atas coordination service (sequential ephemeral nodes):
- Exclusive dan write locks (FIFO berdasarkan sequence index)
- Read locks (multiple readers, defer ke writer requests)
- Adapters untuk in-memory, ZooKeeper (kazoo) dan Redis
"""

from .core import (
    Lock, LockResult, LockFailure, LockType,
    LockError, PathCreationFailure, CoordinationFailure, TimeoutExceeded,
)
from .coordination import CoordinationClient, CreateFlags, InMemoryCoordinator

__version__ = "1.0.0"

__all__ = [
    'Lock', 'LockResult', 'LockFailure', 'LockType',
    'LockError', 'PathCreationFailure', 'CoordinationFailure', 'TimeoutExceeded',
    'CoordinationClient', 'CreateFlags', 'InMemoryCoordinator',
]
