"""
In-memory coordination service.

Process-local implementation dari hierarchical namespace dengan:
- Ephemeral nodes (hilang saat session close/expire)
- Sequential nodes (per-parent counter, 10 digit)
- One-shot child watches

Dipakai untuk tests, demo, dan single-process deployments.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set

from .base import ChildWatch, CoordinationClient, CreateFlags
from ..core.exceptions import CoordinationFailure
from ..core.naming import format_sequence

logger = logging.getLogger(__name__)


def _key(path: str) -> str:
    """Normalize path: "res", "/res" dan "res/" menunjuk node yang sama"""
    return path.strip("/")


def _split(key: str):
    if "/" not in key:
        return "", key
    parent, _, name = key.rpartition("/")
    return parent, name


@dataclass
class ZNode:
    """Node dalam namespace"""
    data: bytes = b""
    owner: Optional[int] = None  # session id untuk ephemeral nodes
    children: Set[str] = field(default_factory=set)
    sequence: int = 0  # next sequence number untuk children


class InMemoryCoordinator:
    """
    The service side: namespace, sessions dan watches.
    Setiap client mendapat session sendiri via session().
    """

    def __init__(self):
        self.nodes: Dict[str, ZNode] = {"": ZNode()}
        self._child_watches: Dict[str, List[ChildWatch]] = {}
        self._sessions: Dict[int, "InMemorySession"] = {}
        self._next_session_id = 1

    def session(self) -> "InMemorySession":
        """Open session baru"""
        session = InMemorySession(self, self._next_session_id)
        self._sessions[session.session_id] = session
        self._next_session_id += 1
        logger.debug(f"Opened session {session.session_id}")
        return session

    def _fire_child_watches(self, parent: str):
        watches = self._child_watches.pop(parent, [])
        for watch in watches:
            watch()

    def _add(self, key: str, node: ZNode):
        parent, name = _split(key)
        self.nodes[key] = node
        self.nodes[parent].children.add(name)
        self._fire_child_watches(parent)

    def _delete(self, key: str):
        parent, name = _split(key)
        del self.nodes[key]
        parent_node = self.nodes.get(parent)
        if parent_node is not None:
            parent_node.children.discard(name)
        self._fire_child_watches(parent)

    def _end_session(self, session_id: int):
        """Remove semua ephemeral nodes milik session"""
        owned = [key for key, node in self.nodes.items() if node.owner == session_id]
        for key in owned:
            self._delete(key)
        self._sessions.pop(session_id, None)
        if owned:
            logger.info(f"Session {session_id} ended, removed {len(owned)} ephemeral nodes")


class InMemorySession(CoordinationClient):
    """CoordinationClient yang terikat ke satu session InMemoryCoordinator"""

    supports_watches = True

    def __init__(self, coordinator: InMemoryCoordinator, session_id: int):
        self.coordinator = coordinator
        self.session_id = session_id
        self.closed = False

    def _check_session(self):
        if self.closed:
            raise CoordinationFailure(f"Session {self.session_id} is closed")

    async def ensure_path(self, path: str) -> bool:
        self._check_session()
        key = _key(path)
        if not key:
            return True

        nodes = self.coordinator.nodes
        current = ""
        for part in key.split("/"):
            current = f"{current}/{part}" if current else part
            if current in nodes:
                continue
            parent, _ = _split(current)
            if nodes[parent].owner is not None:
                return False
            self.coordinator._add(current, ZNode())
        return True

    async def create(self, path: str, data: bytes = b"", flags: CreateFlags = CreateFlags.PERSISTENT) -> str:
        self._check_session()
        nodes = self.coordinator.nodes
        parent, _ = _split(_key(path))

        parent_node = nodes.get(parent)
        if parent_node is None:
            raise CoordinationFailure(f"No node for parent of {path}")
        if parent_node.owner is not None:
            raise CoordinationFailure(f"Ephemeral node cannot have children: {path}")

        if flags & CreateFlags.SEQUENCE:
            path = path + format_sequence(parent_node.sequence)
            parent_node.sequence += 1

        key = _key(path)
        if key in nodes:
            raise CoordinationFailure(f"Node already exists: {path}")

        owner = self.session_id if flags & CreateFlags.EPHEMERAL else None
        self.coordinator._add(key, ZNode(data=data, owner=owner))
        return path

    async def exists(self, path: str) -> bool:
        self._check_session()
        return _key(path) in self.coordinator.nodes

    async def get_children(self, path: str, watch: Optional[ChildWatch] = None) -> List[str]:
        self._check_session()
        key = _key(path)
        node = self.coordinator.nodes.get(key)
        if node is None:
            return []
        if watch is not None:
            self.coordinator._child_watches.setdefault(key, []).append(watch)
        return list(node.children)

    async def remove(self, path: str) -> bool:
        self._check_session()
        key = _key(path)
        node = self.coordinator.nodes.get(key)
        if node is None or not key:
            return False
        if node.children:
            raise CoordinationFailure(f"Node not empty: {path}")
        self.coordinator._delete(key)
        return True

    async def close(self):
        if self.closed:
            return
        self.closed = True
        self.coordinator._end_session(self.session_id)

    def expire(self):
        """Simulate session loss (misal client crash atau network partition)"""
        self.closed = True
        self.coordinator._end_session(self.session_id)
