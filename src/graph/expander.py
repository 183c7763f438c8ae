"""
Product expansion.

Products reference sub-resources that the collection endpoint does not
embed. For each product:

- variations: paginated GET products/{id}/variations; every variation gets
  its own identity (kind productsVariations, parent = the product) and is
  embedded in relations["variations"]. Listed variation ids the fetch does
  not return are kept there as dangling references.
- attributes: the product's attribute list becomes relations["attributes"];
  global attributes (id != 0) get their terms from one non-paginated
  GET products/attributes/{id}/terms, shared by all products of the site.

Products are expanded concurrently; one product failing leaves the others
untouched.
"""

import asyncio
from typing import Any, Dict, List, Optional, Tuple

from loguru import logger

from src.errors import TransportError
from src.source import ClientRegistry, PageFetcher
from src.utils.config import SiteConfig
from .nodes import (
    ATTRIBUTE_KIND, PRODUCT_KIND, VARIATION_KIND, GraphNode, IdentityAssigner, relation_ref,
)


class ProductExpander:
    """Fetches and attaches variations and attribute terms."""

    def __init__(
        self,
        fetcher: PageFetcher,
        assigner: IdentityAssigner,
        clients: ClientRegistry,
        per_page: Optional[int] = None,
    ):
        self.fetcher = fetcher
        self.assigner = assigner
        self.clients = clients
        self.per_page = per_page
        # (site name, attribute id) -> terms request, shared across products
        self._terms: Dict[Tuple[str, Any], asyncio.Task] = {}
        self.failures = 0
        self.logger = logger.bind(component="ProductExpander")

    async def expand(self, nodes: List[GraphNode], site: SiteConfig) -> List[GraphNode]:
        targets = [
            node for node in nodes
            if node.resource_kind in (PRODUCT_KIND, ATTRIBUTE_KIND)
        ]
        if not targets:
            return nodes

        results = await asyncio.gather(
            *(self._expand_node(node, site) for node in targets),
            return_exceptions=True,
        )
        failed = 0
        for node, result in zip(targets, results):
            if isinstance(result, Exception):
                failed += 1
                self.logger.warning(
                    f"Expansion of {node.kind} {node.remote_id} "
                    f"(site: {site.site_name}) failed: {result}"
                )
            elif result is False:
                failed += 1
        self.failures += failed

        self.logger.debug(
            f"{site.site_name}: expanded {len(targets) - failed} of {len(targets)} nodes"
        )
        return nodes

    async def _expand_node(self, node: GraphNode, site: SiteConfig) -> bool:
        """Expand one node; False when some of its variations could not be fetched."""
        if node.resource_kind == ATTRIBUTE_KIND:
            node.relations["terms"] = await self._attribute_terms(node.remote_id, site)
            return True
        complete = await self._expand_variations(node, site)
        await self._expand_attributes(node, site)
        return complete

    async def _expand_variations(self, product: GraphNode, site: SiteConfig) -> bool:
        variation_ids = product.data.get("variations")
        if not isinstance(variation_ids, list) or not variation_ids:
            return True

        records = await self.fetcher.fetch(
            VARIATION_KIND, site, endpoint=f"products/{product.remote_id}/variations"
        )
        product.data.pop("variations")
        variations: List[Any] = self.assigner.assign_all(
            records, VARIATION_KIND, site.site_name, parent_id=product.remote_id
        )
        # Listed ids the fetch did not return stay as dangling references
        fetched = {variation.remote_id for variation in variations}
        missing = [vid for vid in variation_ids if vid not in fetched]
        variations.extend(relation_ref(None, vid) for vid in missing)
        product.relations["variations"] = variations

        if missing:
            self.logger.warning(
                f"Variations of product {product.remote_id} (site: {site.site_name}) "
                f"incomplete, keeping {len(missing)} placeholder(s)"
            )
        return not missing

    async def _expand_attributes(self, product: GraphNode, site: SiteConfig) -> None:
        attributes = product.data.get("attributes")
        if not isinstance(attributes, list):
            return

        expanded = []
        for attribute in attributes:
            entry = dict(attribute) if isinstance(attribute, dict) else {"value": attribute}
            if entry.get("id"):
                entry["terms"] = await self._attribute_terms(entry["id"], site)
            expanded.append(entry)

        product.data.pop("attributes")
        product.relations["attributes"] = expanded

    async def _attribute_terms(self, attribute_id: Any, site: SiteConfig) -> Optional[List[Any]]:
        key = (site.site_name, attribute_id)
        task = self._terms.get(key)
        if task is None:
            task = asyncio.ensure_future(self._fetch_terms(attribute_id, site))
            self._terms[key] = task
        return await task

    async def _fetch_terms(self, attribute_id: Any, site: SiteConfig) -> Optional[List[Any]]:
        """One request, no pagination; None marks terms that could not be fetched."""
        params = {"per_page": self.per_page} if self.per_page else None
        try:
            terms = await self.clients.get(site).get_json(
                f"products/attributes/{attribute_id}/terms", params
            )
        except TransportError as e:
            self.logger.warning(
                f"Terms of attribute {attribute_id} (site: {site.site_name}) unavailable: {e}"
            )
            return None
        return terms if isinstance(terms, list) else None
