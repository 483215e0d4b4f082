"""
HTTP client for the Notion v3 (web app) API.

Covers the three calls notion-util drives: loadPageChunk,
queryCollection and submitTransaction.  Authenticates with the
``token_v2`` session cookie.

Reads are retried on transient errors.  submitTransaction is sent once:
a retried "create page" that had in fact been applied would create the
page twice.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional

import httpx

from .errors import StoreClientError

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://www.notion.so/api/v3"

# Retry config for reads
MAX_RETRIES = 3
RETRY_BACKOFF_BASE = 1.0  # seconds

DEFAULT_TIMEOUT = 30.0

PAGE_CHUNK_LIMIT = 50
QUERY_LIMIT = 1000


class NotionClient:
    """Async client for the Notion v3 API."""

    def __init__(
        self,
        token: str,
        *,
        api_url: str = DEFAULT_API_URL,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        if not token:
            raise ValueError("A Notion token_v2 is required")
        self._api_url = api_url.rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=self._api_url,
            headers={"Content-Type": "application/json"},
            cookies={"token_v2": token},
            timeout=timeout,
        )

    async def _post_with_retry(self, endpoint: str, payload: dict) -> dict[str, Any]:
        """POST an idempotent read, retrying transport errors and 5xx."""
        last_error: Exception | None = None
        for attempt in range(MAX_RETRIES):
            try:
                resp = await self._client.post(f"/{endpoint}", json=payload)
                resp.raise_for_status()
            except httpx.HTTPStatusError as e:
                if e.response.status_code < 500:
                    raise StoreClientError(
                        f"{endpoint} rejected: {e.response.status_code} {e.response.text}"
                    ) from e
                last_error = e
            except httpx.TransportError as e:
                last_error = e
            else:
                try:
                    return resp.json()
                except ValueError as e:
                    raise StoreClientError(f"{endpoint} returned a non-JSON body: {e}") from e

            if attempt < MAX_RETRIES - 1:
                delay = RETRY_BACKOFF_BASE * (2 ** attempt)
                logger.info(
                    "%s attempt %d failed, retrying in %.1fs: %s",
                    endpoint, attempt + 1, delay, last_error,
                )
                await asyncio.sleep(delay)

        raise StoreClientError(
            f"{endpoint} failed after {MAX_RETRIES} attempts: {last_error}"
        ) from last_error

    async def load_page_chunk(self, page_id: str) -> dict[str, Any]:
        """POST /loadPageChunk -> recordMap of the page."""
        data = await self._post_with_retry("loadPageChunk", {
            "pageId": page_id,
            "limit": PAGE_CHUNK_LIMIT,
            "cursor": {"stack": []},
            "chunkNumber": 0,
            "verticalColumns": False,
        })
        return data.get("recordMap", {})

    async def query_collection(
        self,
        collection_id: str,
        collection_view_id: str,
        filters: Optional[list] = None,
    ) -> dict[str, Any]:
        """POST /queryCollection -> recordMap of the rows.

        No sort and no search query are sent; ``filters`` defaults to none.
        """
        data = await self._post_with_retry("queryCollection", {
            "collectionId": collection_id,
            "collectionViewId": collection_view_id,
            "query": {
                "aggregate": [],
                "filter": filters or [],
                "filter_operator": "and",
                "sort": [],
            },
            "loader": {
                "type": "table",
                "limit": QUERY_LIMIT,
                "searchQuery": "",
                "loadContentCover": False,
            },
        })
        return data.get("recordMap", {})

    async def submit_transaction(self, operations: list[dict]) -> dict[str, Any]:
        """POST /submitTransaction, once.

        A rejected transaction comes back as ``{"error": {...}}`` carrying
        the server's error body, so the caller can report its message.
        """
        try:
            resp = await self._client.post(
                "/submitTransaction", json={"operations": operations},
            )
        except httpx.TransportError as e:
            raise StoreClientError(f"submitTransaction failed: {e}") from e

        if resp.status_code >= 400:
            try:
                body = resp.json()
            except ValueError:
                body = None
            if isinstance(body, dict) and body.get("message"):
                return {"error": body}
            raise StoreClientError(
                f"submitTransaction rejected: {resp.status_code} {resp.text}"
            )
        try:
            return resp.json()
        except ValueError:
            return {}

    async def aclose(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()

    async def __aenter__(self) -> "NotionClient":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()
