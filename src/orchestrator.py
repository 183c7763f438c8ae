"""
Ingestion Orchestrator.

Runs the pipeline for every configured site, one site at a time:

    Phase 1 (sequential): fetch every configured field, assign identities
    Phase 2 (after all fields are in): expand products -> resolve media ->
        rewrite relationships -> normalize metadata -> finalize and emit

Phase 2 only starts once every node of the site exists, since relationships
cross kinds. No relationship is ever resolved across sites.
"""

import time
from dataclasses import dataclass, field
from typing import Dict, Optional

import httpx
from loguru import logger

from src.graph import (
    DigestEmitter,
    GraphStore,
    IdentityAssigner,
    MediaCache,
    MediaResolver,
    MetadataNormalizer,
    ParentChildIndex,
    ProductExpander,
    RelationshipRewriter,
    normalise_field_name,
)
from src.graph.relationships import count_unresolved
from src.source import ClientRegistry, PageFetcher
from src.utils.config import PipelineConfig, SiteConfig, validate_config


@dataclass
class SiteResult:
    """Outcome of one site's run."""
    site_name: str
    fetched: Dict[str, int] = field(default_factory=dict)
    dropped: Dict[str, int] = field(default_factory=dict)
    nodes_emitted: int = 0
    media_resolved: int = 0
    media_failed: int = 0
    expansion_failures: int = 0
    unresolved: Dict[str, int] = field(default_factory=dict)
    orphaned: int = 0
    duration_s: float = 0.0

    @property
    def total_fetched(self) -> int:
        return sum(self.fetched.values())


class Orchestrator:
    """
    Drives the ingestion of all configured sites into a GraphStore.

    The client registry and media cache are the only state shared between
    sites; both are keyed (by site name and by URL) and only appended to.
    """

    def __init__(
        self,
        config: PipelineConfig,
        store: GraphStore,
        clients: Optional[ClientRegistry] = None,
        media_client: Optional[httpx.AsyncClient] = None,
        media_cache: Optional[MediaCache] = None,
    ):
        self.config = config
        self.store = store
        self.clients = clients if clients is not None else ClientRegistry(config.transport)
        self._media_client = media_client
        if media_cache is None:
            media_cache = MediaCache(config.media.cache_path).load()
        self.media_cache = media_cache
        self.assigner = IdentityAssigner()
        self.fetcher = PageFetcher(self.clients, config.per_page)
        self.logger = logger.bind(component="Orchestrator")

    def _progress(self, message: str) -> None:
        if self.config.verbose:
            self.logger.info(message)
        else:
            self.logger.debug(message)

    async def run(self) -> Dict[str, SiteResult]:
        """
        Ingest every configured site.

        Raises:
            ConfigurationError: Before any request, if the config is unusable.
        """
        validate_config(self.config)

        owns_media_client = self._media_client is None
        media_client = self._media_client or httpx.AsyncClient(
            timeout=self.config.media.timeout, follow_redirects=True
        )

        results: Dict[str, SiteResult] = {}
        try:
            for site in self.config.sites:
                results[site.site_name] = await self.run_site(site, media_client)
        finally:
            await self.clients.close_all()
            if owns_media_client:
                await media_client.aclose()
            self.media_cache.save()

        total = sum(r.nodes_emitted for r in results.values())
        self.logger.info(f"Run complete: {len(results)} site(s), {total} nodes emitted")
        return results

    async def run_site(self, site: SiteConfig, media_client: httpx.AsyncClient) -> SiteResult:
        result = SiteResult(site_name=site.site_name)
        started = time.monotonic()
        self.logger.info(f"Loading fields (site: {site.site_name}): {self.config.fields}")

        # Phase 1: every field fetched and identified before any cross-referencing
        nodes = []
        for configured in self.config.fields:
            kind = normalise_field_name(configured)
            records = await self.fetcher.fetch(kind, site, endpoint=configured)
            self._progress(f"Fetched {len(records)} records for field: {configured}")

            kind_nodes = self.assigner.assign_all(records, kind, site.site_name)
            result.fetched[kind] = len(records)
            result.dropped[kind] = len(records) - len(kind_nodes)
            nodes.extend(kind_nodes)

        # Phase 2
        expander = ProductExpander(
            self.fetcher, self.assigner, self.clients, self.config.per_page
        )
        await expander.expand(nodes, site)
        result.expansion_failures = expander.failures

        if self.config.media.enabled:
            resolver = MediaResolver(self.store, media_client, self.media_cache, site.site_name)
            await resolver.resolve(nodes)
            result.media_resolved = resolver.resolved
            result.media_failed = resolver.failed

        RelationshipRewriter().rewrite(nodes)
        MetadataNormalizer().normalize_all(nodes)
        result.unresolved = dict(count_unresolved(nodes))
        result.orphaned = len(ParentChildIndex.from_nodes(nodes).orphans())

        result.nodes_emitted = await DigestEmitter(self.store).emit_all(nodes)
        result.duration_s = time.monotonic() - started

        self._progress(
            f"{result.nodes_emitted} nodes mapped, processed, and created "
            f"in {result.duration_s:.2f}s (site: {site.site_name})"
        )
        return result
