# SPDX-License-Identifier: EUPL-1.2
# SPDX-FileCopyrightText: © 2025-present Jürgen Mülbert

"""
Async HTTP client for a pygeoapi / OGC API server.

Thin read-only wrapper around `httpx.AsyncClient`:
- `/collections` (optionally localised with the locale's query string)
- `/collections/{id}`, `/items`, `/queryables`, `/tiles`
- URL builders for WMS coverage and tile templates

Every call may target another server than the default `base_url`; the
orchestrator passes the server URL in effect for each request so a
response can always be matched to the server it came from.

Usage:
    async with PygeoapiClient("https://demo.pygeoapi.io/master") as client:
        collections = await client.fetch_collections("lang=en")
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING, Any, Final, Self

import httpx
import structlog

from ogcapi_viewer.exceptions import ApiRequestError, CollectionFetchFailed

if TYPE_CHECKING:
    from types import TracebackType

log: structlog.stdlib.BoundLogger
log = structlog.get_logger(__name__)

DEFAULT_TIMEOUT: Final[float] = 10.0
DEFAULT_FEATURE_LIMIT: Final[int] = 1000


async def _log_request(request: httpx.Request) -> None:
    log.debug("API request", method=request.method, url=str(request.url))


async def _log_response(response: httpx.Response) -> None:
    log.debug("API response", status=response.status_code, url=str(response.request.url))


def _with_query(url: str, query: str | None) -> str:
    # The locale query string is appended verbatim.
    if not query:
        return url
    separator = "&" if "?" in url else "?"
    return f"{url}{separator}{query.lstrip('?&')}"


class PygeoapiClient:
    """Read-only client for the OGC API endpoints the viewer uses."""

    def __init__(
        self,
        base_url: str,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        Initialize the client.

        Args:
            base_url: Server URL used when a call does not name another one.
            timeout: Request timeout in seconds.
            transport: Optional httpx transport (e.g. `httpx.MockTransport`).
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.close()

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create the async HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout),
                follow_redirects=True,
                headers={"Accept": "application/json"},
                transport=self._transport,
                event_hooks={"request": [_log_request], "response": [_log_response]},
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()

    def _root(self, base_url: str | None) -> str:
        return (base_url or self.base_url).rstrip("/")

    async def _get_json(
        self,
        url: str,
        params: Mapping[str, Any] | None = None,
        error_cls: type[ApiRequestError] = ApiRequestError,
    ) -> Any:
        client = self._get_client()
        try:
            response = await client.get(url, params=params)
        except httpx.TimeoutException as e:
            log.warning("API request timed out", url=url, timeout=self.timeout)
            msg = f"Request to {url} timed out after {self.timeout}s"
            raise error_cls(msg, url=url) from e
        except httpx.RequestError as e:
            log.warning("API request failed", url=url, error=str(e))
            msg = f"Request to {url} failed: {e}"
            raise error_cls(msg, url=url) from e

        if response.status_code >= 400:  # noqa: PLR2004
            log.warning("API error response", url=url, status=response.status_code)
            msg = f"{url} returned HTTP {response.status_code}"
            raise error_cls(msg, url=url, status_code=response.status_code)

        try:
            return response.json()
        except ValueError as e:
            log.warning("API response is not JSON", url=url)
            msg = f"{url} did not return JSON"
            raise error_cls(msg, url=url, status_code=response.status_code) from e

    async def fetch_collections(self, query: str | None = None, *, base_url: str | None = None) -> list[dict[str, Any]]:
        """
        Fetch the collection list. Entries without a string `id` are dropped.

        Raises:
            CollectionFetchFailed: On transport errors, HTTP errors, a body
                that is not a JSON object, or a `collections` member that is
                not a list.
        """
        url = _with_query(f"{self._root(base_url)}/collections", query)
        data = await self._get_json(url, error_cls=CollectionFetchFailed)
        if not isinstance(data, Mapping):
            msg = f"{url} returned an unexpected document"
            raise CollectionFetchFailed(msg, url=url)
        collections = data.get("collections")
        if collections is None:
            return []
        if not isinstance(collections, list):
            msg = f"{url} returned 'collections' that is not a list"
            raise CollectionFetchFailed(msg, url=url)
        return [c for c in collections if isinstance(c, Mapping) and isinstance(c.get("id"), str)]

    async def fetch_collection(
        self, collection_id: str, query: str | None = None, *, base_url: str | None = None
    ) -> dict[str, Any]:
        url = _with_query(f"{self._root(base_url)}/collections/{collection_id}", query)
        return await self._get_json(url)

    async def fetch_items(
        self, collection_id: str, *, base_url: str | None = None, **params: Any
    ) -> dict[str, Any]:
        """
        Fetch features of a collection.

        `limit` defaults to 1000; `bbox` and `properties` sequences are joined
        with commas; `datetime` and `skipGeometry` are passed through.
        """
        query: dict[str, Any] = {k: v for k, v in params.items() if v is not None}
        query["limit"] = params.get("limit") or DEFAULT_FEATURE_LIMIT
        for key in ("bbox", "properties"):
            value = query.get(key)
            if isinstance(value, Sequence) and not isinstance(value, str):
                query[key] = ",".join(str(v) for v in value)
        if isinstance(query.get("skipGeometry"), bool):
            query["skipGeometry"] = str(query["skipGeometry"]).lower()

        url = f"{self._root(base_url)}/collections/{collection_id}/items"
        log.debug("Fetching features", collection_id=collection_id, params=query)
        return await self._get_json(url, params=query)

    async def fetch_queryables(self, collection_id: str, *, base_url: str | None = None) -> dict[str, Any]:
        return await self._get_json(f"{self._root(base_url)}/collections/{collection_id}/queryables")

    async def fetch_tileset(self, collection_id: str, *, base_url: str | None = None) -> dict[str, Any]:
        return await self._get_json(f"{self._root(base_url)}/collections/{collection_id}/tiles")

    def wms_url(self, collection_id: str, *, base_url: str | None = None) -> str:
        return f"{self._root(base_url)}/collections/{collection_id}/coverage/wms"

    def tile_url(self, collection_id: str, tile_format: str = "mvt", *, base_url: str | None = None) -> str:
        """Return the tile URL template for `collection_id`."""
        if tile_format == "mvt":
            path = f"/collections/{collection_id}/tiles/WebMercatorQuad/{{z}}/{{x}}/{{y}}"
        else:
            path = f"/collections/{collection_id}/tiles/{{z}}/{{x}}/{{y}}"
        return f"{self._root(base_url)}{path}"
