"""
Naming rules untuk request nodes.

Request node dibuat sebagai child dari resource path:
- lock-<sequence>  untuk exclusive dan write locks
- read-<sequence>  untuk read locks

Sequence number di-assign oleh coordination service (10 digit, zero padded).
"""

import re
from enum import Enum
from typing import Optional, Union

WRITE_PREFIX = "lock-"
READ_PREFIX = "read-"
SEQUENCE_WIDTH = 10

_TRAILING_DIGITS = re.compile(r"[0-9]+$")


class LockType(Enum):
    """Tipe locks"""
    EXCLUSIVE = "exclusive"
    WRITE = "write"
    READ = "read"

    @classmethod
    def coerce(cls, value: Union["LockType", str]) -> "LockType":
        """
        Convert string ke LockType.
        Unknown strings fall back ke EXCLUSIVE.
        """
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            return cls.EXCLUSIVE


def build_prefix(resource_key: str, kind: Union[LockType, str] = LockType.EXCLUSIVE) -> str:
    """
    Build path prefix untuk request node.

    Args:
        resource_key: Resource path (parent node)
        kind: Lock type

    Returns:
        "<resource_key>/read-" untuk read, "<resource_key>/lock-" untuk lainnya
    """
    if LockType.coerce(kind) == LockType.READ:
        name = READ_PREFIX
    else:
        name = WRITE_PREFIX
    return f"{resource_key}/{name}"


def parse_index(node_name: str) -> Optional[int]:
    """
    Parse sequence index dari trailing digits sebuah node name.

    Returns:
        Integer index, atau None jika node bukan sequence node
    """
    match = _TRAILING_DIGITS.search(node_name)
    if not match:
        return None
    return int(match.group(0).lstrip("0") or "0")


def format_sequence(index: int) -> str:
    """Render sequence number seperti ZooKeeper (zero padded)"""
    return str(index).zfill(SEQUENCE_WIDTH)


def parent_path(path: str) -> str:
    """Return parent dari path, seperti dirname()"""
    head, sep, _ = path.rstrip("/").rpartition("/")
    if not sep:
        return ""
    return head or "/"
