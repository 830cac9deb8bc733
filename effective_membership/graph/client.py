"""
Async Graph API client with pagination and read-only enforcement.

The client performs exactly one HTTP exchange per call and never retries:
failures surface as GraphAPIError so that the retry wrapper can decide what
is transient. Every error message starts with "Graph API Error <status>".
"""

from __future__ import annotations

import logging
from typing import Any, AsyncGenerator, Optional

import httpx

from ..config import (
    GRAPH_BASE_URL,
    GRAPH_API_VERSION,
    DEFAULT_PAGE_SIZE,
    MAX_PAGES_PER_ENDPOINT,
    REQUEST_TIMEOUT_SECONDS,
    CONNECT_TIMEOUT_SECONDS,
)
from ..safety.guardian import SafetyGuardian

logger = logging.getLogger("effective_membership.graph")


class GraphAPIError(Exception):
    """Raised when Graph API returns a non-success status."""
    def __init__(self, status_code: int, message: str, url: str):
        self.status_code = status_code
        self.url = url
        super().__init__(f"Graph API Error {status_code} for {url}: {message}")


class GraphClient:
    """
    Async Microsoft Graph API client.
    Features:
      - Safety-validated requests (read-only enforcement)
      - Automatic pagination with @odata.nextLink
      - Request and page counters
      - Injectable httpx transport
    """

    def __init__(
        self,
        access_token: str,
        guardian: Optional[SafetyGuardian] = None,
        page_size: int = DEFAULT_PAGE_SIZE,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.access_token = access_token
        self.guardian = guardian or SafetyGuardian()
        self.page_size = page_size
        self._transport = transport
        self._request_count = 0
        self._page_count = 0
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self):
        self._client = httpx.AsyncClient(
            timeout=httpx.Timeout(REQUEST_TIMEOUT_SECONDS, connect=CONNECT_TIMEOUT_SECONDS),
            headers={
                "Authorization": f"Bearer {self.access_token}",
                "Accept": "application/json",
                "ConsistencyLevel": "eventual",  # Required for advanced $filter
            },
            transport=self._transport,
        )
        return self

    async def __aexit__(self, *args):
        if self._client:
            await self._client.aclose()
            self._client = None

    def _build_url(self, endpoint: str) -> str:
        """Build full Graph URL from relative endpoint."""
        if endpoint.startswith("http"):
            return endpoint
        endpoint = endpoint.lstrip("/")
        return f"{GRAPH_BASE_URL}/{GRAPH_API_VERSION}/{endpoint}"

    async def get(self, endpoint: str, params: Optional[dict] = None) -> dict:
        """Execute a single GET request."""
        url = self._build_url(endpoint)
        self.guardian.validate_request("GET", url)
        return await self._execute("GET", url, params=params)

    async def get_all_pages(
        self,
        endpoint: str,
        params: Optional[dict] = None,
    ) -> list[dict]:
        """
        Drain every page of a collection endpoint into a list.
        """
        items = []
        async for item in self.get_all_pages_stream(endpoint, params):
            items.append(item)
        return items

    async def get_all_pages_stream(
        self,
        endpoint: str,
        params: Optional[dict] = None,
    ) -> AsyncGenerator[dict, None]:
        """
        Yield the items of a paginated collection one at a time.
        """
        params = dict(params or {})
        params.setdefault("$top", str(self.page_size))

        url: Optional[str] = self._build_url(endpoint)
        pages = 0

        while url and pages < MAX_PAGES_PER_ENDPOINT:
            self.guardian.validate_request("GET", url)
            data = await self._execute("GET", url, params=params)
            self._page_count += 1

            for item in data.get("value", []):
                yield item

            # nextLink already carries every query parameter
            url = data.get("@odata.nextLink")
            params = None
            pages += 1

        if url and pages >= MAX_PAGES_PER_ENDPOINT:
            logger.warning(
                f"Pagination safety cap reached ({MAX_PAGES_PER_ENDPOINT} pages) "
                f"for endpoint: {endpoint}"
            )

    async def _execute(
        self,
        method: str,
        url: str,
        params: Optional[dict] = None,
    ) -> dict:
        """Perform one request and translate the response."""
        response = await self._execute_raw(method, url, params=params)
        self._request_count += 1

        if response.status_code == 200:
            if not response.content or not response.content.strip():
                return {"value": []}
            return response.json()

        if response.status_code == 204:
            return {}

        error_msg = _error_message(response)
        logger.debug(f"{response.status_code} from {url}: {error_msg}")
        raise GraphAPIError(response.status_code, error_msg, url)

    async def _execute_raw(
        self,
        method: str,
        url: str,
        params: Optional[dict] = None,
    ) -> httpx.Response:
        """Execute raw HTTP request."""
        if not self._client:
            raise RuntimeError("GraphClient not initialized. Use 'async with' context.")

        return await self._client.request(method, url, params=params)

    def get_stats(self) -> dict:
        """Return client statistics."""
        return {
            "total_requests": self._request_count,
            "pages_fetched": self._page_count,
        }


def _error_message(response: httpx.Response) -> str:
    """Pull the Graph error message out of a failed response."""
    try:
        body: Any = response.json() if response.content else {}
    except ValueError:
        return response.text[:200] or response.reason_phrase
    if isinstance(body, dict):
        error = body.get("error", {})
        if isinstance(error, dict) and error.get("message"):
            code = error.get("code")
            return f"{code}: {error['message']}" if code else error["message"]
    return response.reason_phrase or "Unknown error"
