"""
Contention evaluator.

Rules:
- WRITE/EXCLUSIVE: blocked jika ada writer request (lock-*) dengan index lebih kecil.
  Reader requests (read-*) diabaikan.
- READ: blocked jika ada writer request apapun, tanpa melihat index.
  Readers tidak pernah saling block.
"""

import logging
from typing import List, Optional, Tuple, Union

from .naming import LockType, build_prefix, parse_index
from ..coordination.base import ChildWatch, CoordinationClient

logger = logging.getLogger(__name__)


class ContentionEvaluator:
    """Decide apakah sebuah request sedang di-block oleh siblings-nya"""

    def __init__(self, client: CoordinationClient):
        self.client = client

    async def _writer_requests(self, resource_path: str,
                               watch: Optional[ChildWatch]) -> List[Tuple[str, Optional[int]]]:
        """
        Snapshot writer requests di bawah resource_path.
        Returns list of (full_path, index), index None untuk non-sequence nodes.
        """
        name_filter = build_prefix(resource_path, LockType.WRITE)
        children = await self.client.get_children(resource_path, watch=watch)

        writers = []
        for child_name in children:
            child = f"{resource_path}/{child_name}"
            if not child.startswith(name_filter):
                continue
            writers.append((child, parse_index(child_name)))
        return writers

    async def is_blocked(self,
                         resource_path: str,
                         own_index: Optional[int],
                         mode: Union[LockType, str] = LockType.EXCLUSIVE,
                         watch: Optional[ChildWatch] = None) -> bool:
        """
        Check apakah request dengan own_index sedang blocked.

        Args:
            resource_path: Parent node dari request nodes
            own_index: Sequence index request sendiri. None berarti tidak ada
                index filter (setiap writer request dianggap blocking)
            mode: Lock type dari request
            watch: Optional one-shot child watch, di-arm bersama listing

        Returns:
            True jika blocked
        """
        if not await self.client.exists(resource_path):
            return False

        mode = LockType.coerce(mode)
        writers = await self._writer_requests(resource_path, watch)

        if mode == LockType.READ or own_index is None:
            if writers:
                logger.debug(f"{resource_path}: {len(writers)} writer request(s) present, "
                             f"{mode.value} request blocked")
            return bool(writers)

        for child, index in writers:
            if index is None:
                # Not a sequence node
                continue
            if index < own_index:
                logger.debug(f"{resource_path}: blocked by {child} (index {index} < {own_index})")
                return True
        return False

    async def has_requests(self, resource_path: str) -> bool:
        """True jika resource_path punya child apapun, reader maupun writer"""
        if not await self.client.exists(resource_path):
            return False
        return bool(await self.client.get_children(resource_path))
