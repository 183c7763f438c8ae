"""
Metadata normalization.

WooCommerce returns meta_data as [{"id": .., "key": .., "value": ..}, ...]
with repeated keys and values of any shape. Nodes carry it as one flat
mapping instead: later entries win, keys and values are left as they are.
"""

from collections.abc import Mapping
from typing import Any, Dict, Iterable, List

from .nodes import GraphNode


def normalize_metadata(entries: Any) -> Dict[str, Any]:
    """Flatten key/value entries; an existing mapping passes through."""
    if isinstance(entries, Mapping):
        return dict(entries)

    result: Dict[str, Any] = {}
    for entry in entries or []:
        if isinstance(entry, Mapping) and "key" in entry:
            result[entry["key"]] = entry.get("value")
    return result


class MetadataNormalizer:
    """Moves data["meta_data"] into node.metadata."""

    def normalize(self, node: GraphNode) -> GraphNode:
        if "meta_data" in node.data:
            node.metadata.update(normalize_metadata(node.data.pop("meta_data")))
        for child in node.embedded_nodes():
            self.normalize(child)
        return node

    def normalize_all(self, nodes: Iterable[GraphNode]) -> List[GraphNode]:
        return [self.normalize(node) for node in nodes]
