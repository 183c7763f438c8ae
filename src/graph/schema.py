"""
Graph Schema Definition.

One output type per configured resource kind, each with two derived
(non-stored) fields:

- parent:   the node of the same type and site whose remote_id equals this
            node's remote_parent_id
- children: the nodes of the same type and site whose remote_parent_id
            equals this node's remote_id

Both resolvers scan the type's node set; they run at query time, not during
ingestion. get_schema_statements() renders the same types as SurrealQL DDL.
"""

from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from .nodes import GraphNode, MEDIA_KIND, normalise_field_name, node_type


@dataclass(frozen=True)
class TypeDefinition:
    """Output type for one resource kind."""
    name: str
    resource_kind: str
    derived_fields: tuple = ("parent", "children")

    def resolve_parent(
        self, source: GraphNode, nodes: Iterable[GraphNode]
    ) -> Optional[GraphNode]:
        if source.remote_parent_id is None:
            return None
        return next(
            (
                node for node in nodes
                if node.kind == self.name
                and node.site_name == source.site_name
                and node.remote_id == source.remote_parent_id
            ),
            None,
        )

    def resolve_children(
        self, source: GraphNode, nodes: Iterable[GraphNode]
    ) -> List[GraphNode]:
        return [
            node for node in nodes
            if node.kind == self.name
            and node.site_name == source.site_name
            and node.remote_parent_id == source.remote_id
        ]


def build_type_definitions(fields: Iterable[str]) -> List[TypeDefinition]:
    """One TypeDefinition per configured field, in configured order."""
    definitions: Dict[str, TypeDefinition] = {}
    for configured in fields:
        kind = normalise_field_name(configured)
        name = node_type(kind)
        definitions.setdefault(name, TypeDefinition(name=name, resource_kind=kind))
    return list(definitions.values())


@dataclass
class ParentChildIndex:
    """
    In-memory parent/children lookup for one batch of nodes.

    Keyed per (type tag, site) so parent links never cross types or sites.
    """
    by_remote_id: Dict[tuple, GraphNode] = field(default_factory=dict)
    by_parent_id: Dict[tuple, List[GraphNode]] = field(
        default_factory=lambda: defaultdict(list)
    )

    @classmethod
    def from_nodes(cls, nodes: Iterable[GraphNode]) -> "ParentChildIndex":
        index = cls()
        for node in nodes:
            index.by_remote_id.setdefault((node.kind, node.site_name, node.remote_id), node)
            if node.remote_parent_id is not None:
                index.by_parent_id[(node.kind, node.site_name, node.remote_parent_id)].append(node)
        return index

    def parent_of(self, node: GraphNode) -> Optional[GraphNode]:
        if node.remote_parent_id is None:
            return None
        return self.by_remote_id.get((node.kind, node.site_name, node.remote_parent_id))

    def children_of(self, node: GraphNode) -> List[GraphNode]:
        return list(self.by_parent_id.get((node.kind, node.site_name, node.remote_id), []))

    def orphans(self) -> List[GraphNode]:
        """Nodes pointing at a non-zero parent that is not in the batch."""
        return [
            child
            for (kind, site_name, parent_id), children in self.by_parent_id.items()
            if parent_id not in (0, "0", "")
            and (kind, site_name, parent_id) not in self.by_remote_id
            for child in children
        ]


# ──────────────────────────────────────────────────────────────────────────────
# SurrealQL DDL
# ──────────────────────────────────────────────────────────────────────────────

def get_schema_statements(fields: Iterable[str]) -> List[str]:
    """
    SurrealQL statements defining one table per configured type plus media.

    Tables are SCHEMALESS since record shapes differ per kind; the fields the
    pipeline itself queries on are indexed.
    """
    tables = [definition.name for definition in build_type_definitions(fields)]
    media_table = node_type(MEDIA_KIND)
    if media_table not in tables:
        tables.append(media_table)

    statements: List[str] = []
    for table in tables:
        statements.extend([
            f"DEFINE TABLE {table} SCHEMALESS",
            f"DEFINE INDEX {table}_node_id ON TABLE {table} FIELDS node_id UNIQUE",
            f"DEFINE INDEX {table}_remote_id ON TABLE {table} FIELDS site_name, remote_id",
            f"DEFINE INDEX {table}_parent ON TABLE {table} FIELDS site_name, remote_parent_id",
        ])
    return statements
