"""
WooCommerce Graph Source.

Ingests WooCommerce REST collections into a typed, content-addressed graph.

Technologies:
- Source: httpx (async REST client, paginated fetches)
- Graph: Pydantic nodes, uuid5 identities, md5 content digests
- Store: in-memory or SurrealDB
"""

from .orchestrator import Orchestrator, SiteResult

__all__ = [
    "Orchestrator",
    "SiteResult",
]
