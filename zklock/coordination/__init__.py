"""Coordination service clients"""

from .base import CoordinationClient, CreateFlags
from .memory import InMemoryCoordinator, InMemorySession

__all__ = ['CoordinationClient', 'CreateFlags', 'InMemoryCoordinator', 'InMemorySession']
