"""
Content digests and node emission.

The digest is an md5 over the canonical JSON form of a finished node, so
unchanged remote data reproduces the same digest and the storage runtime
can skip it.
"""

import hashlib
import json
from typing import Any, Iterable

from loguru import logger

from .nodes import GraphNode
from .store import GraphStore


def content_digest(payload: Any) -> str:
    """md5 hex digest of the canonical JSON encoding of a payload."""
    canonical = json.dumps(
        payload,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
        default=str,
    )
    return hashlib.md5(canonical.encode("utf-8")).hexdigest()


class DigestEmitter:
    """Finalizes nodes with their digest and hands them to the store."""

    def __init__(self, store: GraphStore):
        self.store = store
        self.logger = logger.bind(component="DigestEmitter")

    @staticmethod
    def finalize(node: GraphNode) -> GraphNode:
        """Attach the digest; embedded nodes are finalized first."""
        for child in node.embedded_nodes():
            DigestEmitter.finalize(child)
        node.digest = content_digest(node.model_dump(mode="json", exclude={"digest"}))
        return node

    async def emit_all(self, nodes: Iterable[GraphNode]) -> int:
        count = 0
        for node in nodes:
            await self.store.emit(self.finalize(node))
            count += 1
        self.logger.debug(f"Emitted {count} nodes")
        return count
