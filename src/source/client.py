"""
WooCommerce REST client - one httpx.AsyncClient per configured site.

Endpoint reference (WooCommerce REST API v3):
- GET /wp-json/wc/v3/{collection}?page=N&per_page=M
- GET /wp-json/wc/v3/products/{id}/variations
- GET /wp-json/wc/v3/products/attributes/{id}/terms

Paginated collections report their page count in the X-WP-TotalPages
response header.
"""

from typing import Any, Dict, Optional

import httpx
from loguru import logger

from src.errors import TransportError
from src.utils.config import SiteConfig, TransportConfig


class WooCommerceClient:
    """Thin async client for one WooCommerce store."""

    def __init__(
        self,
        site: SiteConfig,
        transport: TransportConfig,
        http_transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.site = site
        self.transport = transport
        self.base_url = self._build_base_url(site, transport)
        self.logger = logger.bind(component="WooCommerceClient")

        client_args: Dict[str, Any] = {
            "base_url": self.base_url,
            "timeout": transport.timeout,
        }
        if not transport.query_string_auth:
            client_args["auth"] = httpx.BasicAuth(
                site.api_keys.consumer_key, site.api_keys.consumer_secret
            )
        if transport.proxy:
            client_args["proxy"] = transport.proxy
        if transport.encoding:
            client_args["default_encoding"] = transport.encoding
        if http_transport is not None:
            client_args["transport"] = http_transport
        client_args.update(transport.http_config)

        self._client = httpx.AsyncClient(**client_args)

    @staticmethod
    def _build_base_url(site: SiteConfig, transport: TransportConfig) -> str:
        """http[s]://{api}[:{port}]/{prefix}/{version}/"""
        host = site.api.strip("/")
        port = f":{transport.port}" if transport.port else ""
        prefix = transport.wp_api_prefix.strip("/")
        version = site.api_version.strip("/")
        return f"{site.scheme}://{host}{port}/{prefix}/{version}/"

    def _params(self, params: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        merged = dict(params or {})
        if self.transport.query_string_auth:
            merged["consumer_key"] = self.site.api_keys.consumer_key
            merged["consumer_secret"] = self.site.api_keys.consumer_secret
        return merged

    async def get(
        self, endpoint: str, params: Optional[Dict[str, Any]] = None
    ) -> httpx.Response:
        """
        GET a collection endpoint relative to the API root.

        Raises:
            TransportError: If the request could not be completed.
        """
        try:
            return await self._client.get(endpoint, params=self._params(params))
        except httpx.HTTPError as e:
            raise TransportError(f"GET {endpoint} failed: {e}") from e

    async def get_json(
        self, endpoint: str, params: Optional[Dict[str, Any]] = None
    ) -> Any:
        """GET an endpoint and decode the body, requiring HTTP 200."""
        response = await self.get(endpoint, params)
        if response.status_code != 200:
            raise TransportError(
                f"GET {endpoint} returned {response.status_code}: {response.text[:200]}",
                status=response.status_code,
            )
        try:
            return response.json()
        except ValueError as e:
            raise TransportError(f"GET {endpoint} returned invalid JSON: {e}") from e

    async def close(self) -> None:
        await self._client.aclose()


class ClientRegistry:
    """
    Lazily creates and caches one WooCommerceClient per site name.

    Each key is written once, by the first get() for that site.
    """

    def __init__(
        self,
        transport: Optional[TransportConfig] = None,
        http_transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.transport = transport or TransportConfig()
        self.http_transport = http_transport
        self._clients: Dict[str, WooCommerceClient] = {}

    def get(self, site: SiteConfig) -> WooCommerceClient:
        client = self._clients.get(site.site_name)
        if client is None:
            client = WooCommerceClient(site, self.transport, self.http_transport)
            self._clients[site.site_name] = client
            logger.bind(component="ClientRegistry").debug(
                f"Created client for site '{site.site_name}': {client.base_url}"
            )
        return client

    def __len__(self) -> int:
        return len(self._clients)

    async def close_all(self) -> None:
        for client in self._clients.values():
            await client.close()
        self._clients.clear()
