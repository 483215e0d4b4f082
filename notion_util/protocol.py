"""
Protocol for the document-store client.

Notebook only shapes requests and responses around these three calls.
Implemented by:
- NotionClient (httpx client for the Notion v3 API)
- in-memory fakes in the test suite
"""

from typing import Any, Optional, Protocol, runtime_checkable


@runtime_checkable
class DocumentStoreClient(Protocol):

    async def load_page_chunk(self, page_id: str) -> dict[str, Any]:
        """Snapshot of a page: its record map."""
        ...

    async def query_collection(
        self,
        collection_id: str,
        collection_view_id: str,
        filters: Optional[list] = None,
    ) -> dict[str, Any]:
        """Record map of every row the view exposes for ``filters``."""
        ...

    async def submit_transaction(self, operations: list[dict]) -> dict[str, Any]:
        """Apply ``operations`` as one unit.

        Returns the response body; an ``error`` key means nothing was applied.
        """
        ...

    async def aclose(self) -> None: ...
