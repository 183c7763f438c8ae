"""
Graph nodes and identity assignment.

Every raw record becomes one GraphNode whose id is a pure function of
(site name, resource kind, remote id), so re-ingesting unchanged data
yields the same ids run after run.
"""

import uuid
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional, Union

from loguru import logger
from pydantic import BaseModel, Field

from src.errors import IdentityError


# Fixed namespace for uuid5 node ids. Changing it changes every id.
NODE_NAMESPACE = uuid.UUID("6f1d3f3e-8a41-5b6c-9c1e-2b7d0c4a9e55")

PRODUCT_KIND = "products"
CATEGORY_KIND = "productsCategories"
TAG_KIND = "productsTags"
ATTRIBUTE_KIND = "productsAttributes"
VARIATION_KIND = "productsVariations"
MEDIA_KIND = "media"

PARENT_FIELDS = ("parent", "parent_id")

RemoteId = Union[int, str]


def normalise_field_name(field: str) -> str:
    """'products/categories' -> 'productsCategories'."""
    parts = [part for part in field.strip("/").split("/") if part]
    if not parts:
        return ""
    return parts[0] + "".join(part[0].upper() + part[1:] for part in parts[1:])


def node_type(kind: str) -> str:
    """'productsCategories' -> 'wcProductsCategories'."""
    return f"wc{kind[0].upper()}{kind[1:]}"


def make_node_id(site_name: str, kind: str, remote_id: RemoteId) -> str:
    """Deterministic node id for (site, kind, remote id)."""
    return str(uuid.uuid5(NODE_NAMESPACE, f"woocommerce-{site_name}-{kind}-{remote_id}"))


def relation_ref(node_id: Optional[str], remote_id: Any, **extra: Any) -> Dict[str, Any]:
    """A relation entry; node_id None marks a dangling reference."""
    ref = {"node_id": node_id, "remote_id": remote_id, "resolved": node_id is not None}
    ref.update(extra)
    return ref


class GraphNode(BaseModel):
    """One typed record of the ingested graph."""
    id: str
    remote_id: RemoteId
    remote_parent_id: Optional[RemoteId] = None
    site_name: str
    resource_kind: str
    kind: str
    data: Dict[str, Any] = Field(default_factory=dict)
    relations: Dict[str, List[Any]] = Field(default_factory=dict)
    metadata: Dict[str, Any] = Field(default_factory=dict)
    digest: Optional[str] = None

    def embedded_nodes(self) -> List["GraphNode"]:
        """Nodes nested inside this node's relations (e.g. variations)."""
        return [
            entry
            for entries in self.relations.values()
            for entry in entries
            if isinstance(entry, GraphNode)
        ]


def iter_nodes(nodes: Iterable[GraphNode]) -> Iterator[GraphNode]:
    """Yield every node and, depth-first, the nodes embedded in it."""
    for node in nodes:
        yield node
        yield from iter_nodes(node.embedded_nodes())


# ──────────────────────────────────────────────────────────────────────────────
# Remote id extraction. Kinds whose records are not keyed by a numeric "id"
# get an entry here; every other kind uses the generic rule.
# ──────────────────────────────────────────────────────────────────────────────

def _field(name: str) -> Callable[[Dict[str, Any]], Any]:
    return lambda record: record.get(name)


REMOTE_ID_EXTRACTORS: Dict[str, Callable[[Dict[str, Any]], Any]] = {
    "dataCurrencies": _field("code"),
    "dataCountries": _field("code"),
    "dataContinents": _field("code"),
    "reports": _field("slug"),
    "reportsTotals": _field("slug"),
    "reportsOrdersTotals": _field("slug"),
    "reportsProductsTotals": _field("slug"),
    "reportsCustomersTotals": _field("slug"),
    "paymentGateways": _field("id"),
    "shippingMethods": _field("id"),
    "settings": _field("id"),
    "systemStatusTools": _field("id"),
}


def extract_remote_id(record: Any, kind: str) -> RemoteId:
    """
    Extract the remote identifier of a record.

    Raises:
        IdentityError: If the record has no usable identifier.
    """
    if not isinstance(record, dict):
        raise IdentityError(f"{kind} record is not an object: {type(record).__name__}")

    extractor = REMOTE_ID_EXTRACTORS.get(kind, _field("id"))
    remote_id = extractor(record)

    if isinstance(remote_id, bool) or remote_id is None or remote_id == "":
        raise IdentityError(f"{kind} record has no remote id")
    if not isinstance(remote_id, (int, str)):
        raise IdentityError(f"{kind} record has unusable remote id {remote_id!r}")
    return remote_id


class IdentityAssigner:
    """Turns raw records into GraphNodes with stable identities."""

    def __init__(self):
        self.logger = logger.bind(component="IdentityAssigner")

    def assign(
        self,
        record: Dict[str, Any],
        kind: str,
        site_name: str,
        parent_id: Optional[RemoteId] = None,
    ) -> GraphNode:
        remote_id = extract_remote_id(record, kind)

        if parent_id is None:
            parent_id = next(
                (record[name] for name in PARENT_FIELDS if name in record), None
            )

        return GraphNode(
            id=make_node_id(site_name, kind, remote_id),
            remote_id=remote_id,
            remote_parent_id=parent_id,
            site_name=site_name,
            resource_kind=kind,
            kind=node_type(kind),
            data=dict(record),
        )

    def assign_all(
        self,
        records: Iterable[Dict[str, Any]],
        kind: str,
        site_name: str,
        parent_id: Optional[RemoteId] = None,
    ) -> List[GraphNode]:
        """Assign identities, dropping records that have none."""
        nodes = []
        for position, record in enumerate(records):
            try:
                nodes.append(self.assign(record, kind, site_name, parent_id))
            except IdentityError as e:
                self.logger.warning(
                    f"Dropping {kind} record #{position} (site: {site_name}): {e}"
                )
        return nodes
