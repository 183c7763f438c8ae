"""
Graph Layer - identity, reconciliation, enrichment and emission of nodes.
"""

from .nodes import GraphNode, IdentityAssigner, normalise_field_name, node_type
from .relationships import RelationshipRewriter
from .media import MediaCache, MediaResolver
from .expander import ProductExpander
from .metadata import MetadataNormalizer
from .digest import DigestEmitter
from .store import GraphStore, MemoryGraphStore
from .schema import ParentChildIndex, TypeDefinition, build_type_definitions

__all__ = [
    "GraphNode",
    "IdentityAssigner",
    "normalise_field_name",
    "node_type",
    "RelationshipRewriter",
    "MediaCache",
    "MediaResolver",
    "ProductExpander",
    "MetadataNormalizer",
    "DigestEmitter",
    "GraphStore",
    "MemoryGraphStore",
    "ParentChildIndex",
    "TypeDefinition",
    "build_type_definitions",
]
