"""
willhaben-cli — Marketplace client

Thin async HTTP layer over willhaben.at. Every page the client reads is a
Next.js page; the data lives in its `__NEXT_DATA__` script and is handed to
the parser unchanged.

Errors:
  - transport failures and non-2xx responses → NetworkError
  - pages without a usable `__NEXT_DATA__`    → ParseError
  - documents missing the primary container  → MissingDataError (from parser)
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from willhaben_cli.errors import NetworkError
from willhaben_cli.models import BASE_URL, ListingDetail, SearchResult, UserProfile
from willhaben_cli.parser import (
    CATEGORY_PARAM,
    extract_next_data,
    parse_listing_detail,
    parse_search_result,
    parse_user_profile,
)

logger = logging.getLogger("willhaben.client")

SEARCH_PATH = "/iad/kaufen-und-verkaufen/marktplatz"
DETAIL_PATH = "/iad/object"

USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)

DEFAULT_TIMEOUT = 20.0


def build_headers(cookies: str = "") -> dict[str, str]:
    headers = {
        "User-Agent": USER_AGENT,
        "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
        "Accept-Language": "de-AT,de;q=0.9,en;q=0.8",
    }
    if cookies:
        headers["Cookie"] = cookies
    return headers


def search_params(
    query: str,
    category_id: str | None = None,
    page: int = 1,
    location_id: int | None = None,
) -> dict[str, Any]:
    """Query string for a marketplace search. Page 1 is implicit."""
    params: dict[str, Any] = {"keyword": query}
    if category_id:
        params[CATEGORY_PARAM] = category_id
    if page > 1:
        params["page"] = page
    if location_id is not None:
        params["areaId"] = location_id
    return params


class MarketplaceClient:
    """
    willhaben.at search, detail, image and profile calls.

    One pooled httpx.AsyncClient is created lazily and reused; call
    close() on shutdown.
    """

    def __init__(
        self,
        cookies: str = "",
        base_url: str = BASE_URL,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.cookies = cookies
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the persistent HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers=build_headers(self.cookies),
                timeout=self.timeout,
                follow_redirects=True,
                transport=self._transport,
                limits=httpx.Limits(max_connections=10, max_keepalive_connections=5),
            )
        return self._client

    async def close(self):
        """Close HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def _get(self, url: str, params: dict[str, Any] | None = None) -> httpx.Response:
        client = await self._get_client()
        try:
            response = await client.get(url, params=params)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            logger.warning(f"GET {url} -> HTTP {status}")
            raise NetworkError(f"Request failed with status: {status}", status_code=status) from e
        except httpx.HTTPError as e:
            logger.warning(f"GET {url} failed: {e}")
            raise NetworkError(f"Request failed: {e}") from e
        return response

    async def _get_document(self, url: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        response = await self._get(url, params=params)
        return extract_next_data(response.text)

    # ──────────────────────────────────────────────────────────
    # Collaborator calls
    # ──────────────────────────────────────────────────────────

    async def search(
        self,
        query: str,
        category_id: str | None = None,
        page: int = 1,
        location_id: int | None = None,
    ) -> SearchResult:
        params = search_params(query, category_id, page, location_id)
        logger.info("Search", extra={"query": query, "category_id": category_id, "page": page})
        document = await self._get_document(SEARCH_PATH, params=params)
        result = parse_search_result(document)
        logger.debug(f"Search '{query}' p{page}: {len(result.items)} items, {len(result.categories)} categories")
        return result

    async def fetch_detail(self, listing_id: str) -> ListingDetail:
        logger.info("Fetch detail", extra={"listing_id": listing_id})
        document = await self._get_document(DETAIL_PATH, params={"adId": listing_id})
        return parse_listing_detail(document)

    async def fetch_image(self, url: str) -> bytes:
        response = await self._get(url)
        return response.content

    async def fetch_profile(self) -> UserProfile | None:
        """Profile of the user the cookies belong to; None when anonymous."""
        if not self.cookies:
            return None
        document = await self._get_document("/")
        return parse_user_profile(document)
