"""
Media resolution.

Image references on any node (products' `images`, categories' and
variations' `image`) are turned into relations["media"] entries that point
at wcMedia nodes. Media nodes are keyed by site and source URL: any number
of references to one URL on one site resolve to one node and one download.
"""

import asyncio
import hashlib
import json
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import httpx
from loguru import logger

from src.errors import TransportError
from .digest import DigestEmitter
from .nodes import MEDIA_KIND, GraphNode, iter_nodes, make_node_id, node_type, relation_ref
from .store import GraphStore


# raw field -> whether it holds a list of images or a single one
MEDIA_FIELDS = {
    "images": True,
    "image": False,
}

MEDIA_TYPE = node_type(MEDIA_KIND)


@dataclass
class MediaEntry:
    """Cached resolution of one media URL."""
    node_id: str
    modified: Optional[str] = None


class MediaCache:
    """
    (site name, URL) -> MediaEntry map, optionally persisted as JSON between runs.

    Sites never share entries: the same URL on two sites resolves to two
    media nodes. Entries are only ever added or replaced for their own key.
    """

    def __init__(self, path: Optional[Path] = None):
        self.path = Path(path) if path else None
        self._entries: Dict[str, Dict[str, MediaEntry]] = {}

    def load(self) -> "MediaCache":
        if self.path and self.path.exists():
            with open(self.path, "r", encoding="utf-8") as f:
                raw = json.load(f)
            self._entries = {
                site_name: {url: MediaEntry(**entry) for url, entry in urls.items()}
                for site_name, urls in raw.items()
            }
        return self

    def save(self) -> None:
        if not self.path:
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(
                {
                    site_name: {url: asdict(entry) for url, entry in sorted(urls.items())}
                    for site_name, urls in sorted(self._entries.items())
                },
                f,
                indent=2,
            )

    def get(self, site_name: str, url: str) -> Optional[MediaEntry]:
        return self._entries.get(site_name, {}).get(url)

    def set(self, site_name: str, url: str, entry: MediaEntry) -> None:
        self._entries.setdefault(site_name, {})[url] = entry

    def __len__(self) -> int:
        return sum(len(urls) for urls in self._entries.values())


def _modified(image: Dict[str, Any]) -> Optional[str]:
    return image.get("date_modified_gmt") or image.get("date_modified")


class MediaResolver:
    """Resolves image references of one site's nodes to media nodes."""

    def __init__(
        self,
        store: GraphStore,
        http_client: httpx.AsyncClient,
        cache: MediaCache,
        site_name: str,
    ):
        self.store = store
        self.http_client = http_client
        self.cache = cache
        self.site_name = site_name
        self.resolved = 0
        self.failed = 0
        self.logger = logger.bind(component="MediaResolver")

    async def resolve(self, nodes: List[GraphNode]) -> List[GraphNode]:
        # Collect every reference first so each URL is fetched once
        pending: Dict[str, Tuple[GraphNode, List[Dict[str, Any]]]] = {}
        first_image: Dict[str, Dict[str, Any]] = {}
        for node in iter_nodes(nodes):
            images = self._take_images(node)
            if images is None:
                continue
            pending[node.id] = (node, images)
            for image in images:
                first_image.setdefault(image["src"], image)

        urls = list(first_image)
        results = await asyncio.gather(
            *(self._resolve_url(url, first_image[url]) for url in urls),
            return_exceptions=True,
        )
        node_ids: List[Optional[str]] = []
        for url, result in zip(urls, results):
            if isinstance(result, Exception):
                self.logger.warning(f"Media resolution failed for {url}, keeping placeholder: {result}")
                result = None
            node_ids.append(result)
        by_url = dict(zip(urls, node_ids))

        for node, images in pending.values():
            node.relations["media"] = [
                relation_ref(by_url[image["src"]], image.get("id"), url=image["src"])
                for image in images
            ]

        self.resolved += sum(1 for node_id in node_ids if node_id)
        self.failed += sum(1 for node_id in node_ids if not node_id)
        if urls:
            self.logger.debug(
                f"{self.site_name}: {len(urls)} media URLs, "
                f"{sum(1 for node_id in node_ids if not node_id)} unresolved"
            )
        return nodes

    @staticmethod
    def _take_images(node: GraphNode) -> Optional[List[Dict[str, Any]]]:
        """Pop the media fields off a node; None if it has none."""
        found = None
        for field, many in MEDIA_FIELDS.items():
            if field not in node.data:
                continue
            value = node.data.pop(field)
            values = value if many else [value]
            images = [
                image for image in values or []
                if isinstance(image, dict) and image.get("src")
            ]
            found = (found or []) + images
        return found

    async def _resolve_url(self, url: str, image: Dict[str, Any]) -> Optional[str]:
        """Node id for a media URL, or None when it cannot be fetched."""
        modified = _modified(image)
        cached = self.cache.get(self.site_name, url)
        # A cache entry only stands in for a download while its node is stored
        if cached and cached.modified == modified \
                and await self.store.has(cached.node_id, MEDIA_TYPE):
            await self.store.touch(cached.node_id, MEDIA_TYPE)
            return cached.node_id

        try:
            response = await self.http_client.get(url)
            if response.status_code != 200:
                raise TransportError(
                    f"status {response.status_code}", status=response.status_code
                )
        except (httpx.HTTPError, TransportError) as e:
            self.logger.warning(f"Media fetch failed for {url}, keeping placeholder: {e}")
            return None

        content = response.content
        node = GraphNode(
            id=make_node_id(self.site_name, MEDIA_KIND, url),
            remote_id=image.get("id") or url,
            site_name=self.site_name,
            resource_kind=MEDIA_KIND,
            kind=MEDIA_TYPE,
            data={
                "url": url,
                "name": image.get("name"),
                "alt": image.get("alt"),
                "modified": modified,
                "content_type": response.headers.get("content-type"),
                "size": len(content),
                "content_digest": hashlib.md5(content).hexdigest(),
            },
        )
        await self.store.emit(DigestEmitter.finalize(node))
        self.cache.set(self.site_name, url, MediaEntry(node_id=node.id, modified=modified))
        return node.id
