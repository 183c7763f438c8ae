"""
A fake WooCommerce store for tests, served through httpx.MockTransport.
"""

import math
from typing import Any, Dict, List, Optional, Tuple, Union

import httpx


API_PREFIX = "/wp-json/wc/v3/"


class FakeWooCommerce:
    """
    Serves collections the way the WooCommerce REST API does.

    collections maps an endpoint ("products", "products/12/variations") to
    its full record list; pages are cut with per_page and advertised in
    X-WP-TotalPages. failures maps (endpoint, page) to an HTTP status or to
    "connect" for a transport error. media maps absolute URLs to bytes, or
    to "connect".
    """

    def __init__(
        self,
        collections: Optional[Dict[str, List[Any]]] = None,
        per_page: int = 10,
        failures: Optional[Dict[Tuple[str, int], Union[int, str]]] = None,
        media: Optional[Dict[str, Union[bytes, str]]] = None,
        send_total_pages: bool = True,
    ):
        self.collections = collections or {}
        self.per_page = per_page
        self.failures = failures or {}
        self.media = media or {}
        self.send_total_pages = send_total_pages
        self.requests: List[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if not path.startswith(API_PREFIX):
            return self._media(request)

        endpoint = path[len(API_PREFIX):]
        page = int(request.url.params.get("page", 1))
        per_page = int(request.url.params.get("per_page", self.per_page))

        failure = self.failures.get((endpoint, page))
        if failure == "connect":
            raise httpx.ConnectError("connection refused", request=request)
        if failure:
            return httpx.Response(failure, json={"code": "internal_error"})

        records = self.collections.get(endpoint)
        if records is None:
            return httpx.Response(404, json={"code": "rest_no_route"})

        pages = max(1, math.ceil(len(records) / per_page))
        chunk = records[(page - 1) * per_page:page * per_page]
        headers = {"X-WP-TotalPages": str(pages)} if self.send_total_pages else {}
        return httpx.Response(200, json=chunk, headers=headers)

    def _media(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        body = self.media.get(url)
        if body == "connect":
            raise httpx.ConnectError("connection refused", request=request)
        if body is None:
            return httpx.Response(404)
        return httpx.Response(200, content=body, headers={"content-type": "image/jpeg"})

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def media_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=self.transport())

    def requests_to(self, endpoint: str) -> List[httpx.Request]:
        return [r for r in self.requests if r.url.path == API_PREFIX + endpoint]

    def media_requests(self, url: str) -> List[httpx.Request]:
        return [r for r in self.requests if str(r.url) == url]


def records(start: int, count: int, **fields) -> List[Dict[str, Any]]:
    """count records with consecutive ids from start."""
    return [{"id": i, "name": f"Item {i}", **fields} for i in range(start, start + count)]
