"""
Cross-record relationship rewriting.

Runs over one site's complete batch of nodes, replacing foreign-key style
fields on products with relation lists of node ids:

    categories        -> relations["categories"]      (productsCategories)
    tags              -> relations["tags"]            (productsTags)
    grouped_products  -> relations["groupedProducts"] (products)

Resolved categories and tags get the product added to their reverse
relations["products"]. References that cannot be resolved are kept with
their remote id and resolved=False.
"""

from collections import Counter
from typing import Any, Dict, Iterable, List, Optional

from loguru import logger

from .nodes import (
    CATEGORY_KIND,
    PRODUCT_KIND,
    TAG_KIND,
    GraphNode,
    iter_nodes,
    relation_ref,
)


# raw field -> (relation name, target kind, reverse relation on target)
PRODUCT_REFERENCES = {
    "categories": ("categories", CATEGORY_KIND, "products"),
    "tags": ("tags", TAG_KIND, "products"),
    "grouped_products": ("groupedProducts", PRODUCT_KIND, None),
}


def _reference_id(reference: Any) -> Any:
    """Embedded objects carry their id; bare ids are used as-is."""
    if isinstance(reference, dict):
        return reference.get("id")
    return reference


class RelationshipRewriter:
    """Rewrites product references into relations for one site's batch."""

    def __init__(self):
        self.logger = logger.bind(component="RelationshipRewriter")

    def rewrite(self, nodes: List[GraphNode]) -> List[GraphNode]:
        index: Dict[str, Dict[Any, GraphNode]] = {}
        for node in nodes:
            index.setdefault(node.resource_kind, {}).setdefault(node.remote_id, node)

        products = [node for node in nodes if node.resource_kind == PRODUCT_KIND]
        for product in products:
            for field, (relation, target_kind, reverse) in PRODUCT_REFERENCES.items():
                references = product.data.get(field)
                if not isinstance(references, list):
                    continue
                product.data.pop(field)
                product.relations[relation] = self._map_references(
                    product, references, index.get(target_kind, {}), reverse
                )

        unresolved = count_unresolved(nodes)
        if unresolved:
            self.logger.warning(f"Unresolved references kept as dangling: {dict(unresolved)}")
        return nodes

    @staticmethod
    def _map_references(
        product: GraphNode,
        references: List[Any],
        targets: Dict[Any, GraphNode],
        reverse: Optional[str],
    ) -> List[Dict[str, Any]]:
        mapped = []
        for reference in references:
            remote_id = _reference_id(reference)
            target = targets.get(remote_id)
            if target is None:
                mapped.append(relation_ref(None, remote_id))
                continue
            mapped.append(relation_ref(target.id, remote_id))
            if reverse:
                target.relations.setdefault(reverse, []).append(
                    relation_ref(product.id, product.remote_id)
                )
        return mapped


def count_unresolved(nodes: Iterable[GraphNode]) -> Counter:
    """Dangling references per relation name, embedded nodes included."""
    counts: Counter = Counter()
    for node in iter_nodes(nodes):
        for relation, entries in node.relations.items():
            for entry in entries:
                if isinstance(entry, dict) and entry.get("resolved") is False:
                    counts[relation] += 1
    return counts
