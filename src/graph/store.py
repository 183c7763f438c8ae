"""
Storage runtime interface.

The pipeline hands every finished node to a GraphStore. MemoryGraphStore
keeps them in process; GraphLoader (loader.py) writes them to SurrealDB.
"""

from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Set

from .nodes import GraphNode


class GraphStore(ABC):
    """Where finished nodes go."""

    @abstractmethod
    async def emit(self, node: GraphNode) -> None:
        """Persist a finalized node, replacing any node with the same id."""

    @abstractmethod
    async def touch(self, node_id: str, kind: Optional[str] = None) -> None:
        """Mark a node from an earlier run as still valid."""

    @abstractmethod
    async def has(self, node_id: str, kind: Optional[str] = None) -> bool:
        """Whether a node with this id is currently stored."""

    @abstractmethod
    async def get_all_nodes(self, kind: str) -> List[GraphNode]:
        """All nodes of one type tag, e.g. 'wcProducts'."""

    async def close(self) -> None:
        return None


class MemoryGraphStore(GraphStore):
    """In-process store, keyed by node id."""

    def __init__(self):
        self.nodes: Dict[str, GraphNode] = {}
        self.touched: Set[str] = set()

    async def emit(self, node: GraphNode) -> None:
        self.nodes[node.id] = node

    async def touch(self, node_id: str, kind: Optional[str] = None) -> None:
        self.touched.add(node_id)

    async def has(self, node_id: str, kind: Optional[str] = None) -> bool:
        return node_id in self.nodes

    async def get_all_nodes(self, kind: str) -> List[GraphNode]:
        return [node for node in self.nodes.values() if node.kind == kind]

    def get(self, node_id: str) -> Optional[GraphNode]:
        return self.nodes.get(node_id)

    def __len__(self) -> int:
        return len(self.nodes)
