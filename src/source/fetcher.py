"""
Paginated collection fetcher.

Walks a collection page by page until the advertised page count is reached.
A failed page is logged and ends the walk; whatever was already collected
is returned.
"""

from typing import Any, Dict, List, Optional

import httpx
from loguru import logger

from src.errors import TransportError
from src.utils.config import SiteConfig
from .client import ClientRegistry


TOTAL_PAGES_HEADER = "X-WP-TotalPages"


def total_pages(response: httpx.Response) -> Optional[int]:
    """Read the page count header, None when absent or malformed."""
    raw = response.headers.get(TOTAL_PAGES_HEADER)
    if raw is None:
        return None
    try:
        return int(raw)
    except ValueError:
        return None


class PageFetcher:
    """
    Fetches every page of one collection for one site.

    Pages are requested strictly in order; page N+1 is only requested after
    page N has been read, since the page count comes from the responses.
    """

    def __init__(self, clients: ClientRegistry, per_page: Optional[int] = None):
        self.clients = clients
        self.per_page = per_page
        self.logger = logger.bind(component="PageFetcher")

    async def fetch(
        self,
        kind: str,
        site: SiteConfig,
        endpoint: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """
        Fetch all records of a collection.

        Args:
            kind: Resource kind, used for logging.
            site: Site to fetch from.
            endpoint: Endpoint path; defaults to the kind itself.

        Returns:
            Records in server order. Truncated at the first failed page.
        """
        endpoint = endpoint or kind
        client = self.clients.get(site)
        records: List[Dict[str, Any]] = []
        page = 1

        while True:
            params: Dict[str, Any] = {"page": page}
            if self.per_page:
                params["per_page"] = self.per_page

            try:
                response = await client.get(endpoint, params)
            except TransportError as e:
                self._warn(kind, site, page, str(e))
                break

            if response.status_code != 200:
                self._warn(
                    kind, site, page,
                    f"status {response.status_code}: {response.text[:200]}",
                )
                break

            try:
                items = response.json()
            except ValueError as e:
                self._warn(kind, site, page, f"invalid JSON body: {e}")
                break
            if not isinstance(items, list):
                self._warn(kind, site, page, "response body is not a JSON array")
                break

            records.extend(items)

            pages = total_pages(response)
            if pages is None or page >= pages:
                break
            page += 1

        self.logger.debug(
            f"{site.site_name}/{endpoint}: {len(records)} records over {page} page(s)"
        )
        return records

    def _warn(self, kind: str, site: SiteConfig, page: int, cause: str) -> None:
        self.logger.warning(
            f"Fetch of '{kind}' (site: {site.site_name}) failed on page {page}, "
            f"keeping records already fetched. Cause: {cause}"
        )
