"""
Core API for notion-util.

Notebook ties the pieces together:
- resolve_collection(): kind -> (collection id, view id), cached
- query(): search a collection by title
- submit_transaction(): apply operations, raising on server errors
- ensure_today_id(): find or create today's note, cached
- memo(), append_today(), create_draft(), update_read_at(), update_met_at()

A Notebook owns its caches.  They live as long as the Notebook and are
never invalidated; a schema change on the server is picked up on the
next query, but a moved database needs a new Notebook.
"""

import asyncio
import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

from . import transactions
from .cache import OnceCache
from .config import BOOK, NOTE, PEOPLE, Config
from .errors import CollectionNotFoundError, ConfigError, TodayNoteNotFoundError, TransactionError
from .logging_config import configure_ops_log
from .protocol import DocumentStoreClient
from .schema import first_collection_schema, property_keys
from .types import CollectionDescriptor, Operation, QueryResult, Record, page_id_from_url, to_plain_id

logger = logging.getLogger(__name__)

DEFAULT_DATE_PROPERTY = "Read at"

# Projection of a property the schema or the page doesn't have
MISSING_VALUE = "undefined"


class Notebook:
    """
    Search and edit a Notion workspace through a document-store client.

    Not safe for use from several threads; within one event loop,
    concurrent resolutions of the same collection or of today's note
    share a single round trip.
    """

    def __init__(
        self,
        client: DocumentStoreClient,
        config: Optional[Config] = None,
        *,
        collections: Optional[OnceCache[str, CollectionDescriptor]] = None,
        daily_notes: Optional[OnceCache[str, str]] = None,
        log_dir: Optional[Path] = None,
    ):
        self._client = client
        self._config = config or Config()
        self._collections = collections if collections is not None else OnceCache("collections")
        self._daily_notes = daily_notes if daily_notes is not None else OnceCache("daily-notes")

        # --- Persistent operations log ---
        self._ops_log_handler = configure_ops_log(log_dir) if log_dir is not None else None

    @property
    def config(self) -> Config:
        return self._config

    async def close(self) -> None:
        try:
            await self._client.aclose()
        finally:
            # Remove ops log handler to avoid handler accumulation
            if self._ops_log_handler is not None:
                logging.getLogger("notion_util").removeHandler(self._ops_log_handler)
                self._ops_log_handler.close()
                self._ops_log_handler = None

    # -------------------------------------------------------------------------
    # Collections and queries
    # -------------------------------------------------------------------------

    async def resolve_collection(self, kind: str) -> CollectionDescriptor:
        """Collection and view ids for ``kind``, resolved once per Notebook."""
        return await self._collections.get_or_compute(
            kind, lambda: self._load_collection(kind),
        )

    async def _load_collection(self, kind: str) -> CollectionDescriptor:
        page_id = page_id_from_url(self._config.kind(kind).url)
        record_map = await self._client.load_page_chunk(page_id)

        collection_id = next(iter(record_map.get("collection") or {}), None)
        view_id = next(iter(record_map.get("collection_view") or {}), None)
        if not collection_id or not view_id:
            raise CollectionNotFoundError("no collection id")

        logger.info("Resolved %s collection %s (view %s)", kind, collection_id, view_id)
        return CollectionDescriptor(collection_id, view_id)

    async def query(
        self,
        kind: str,
        search_term: str = "",
        *,
        property_name: Optional[str] = None,
    ) -> list[QueryResult]:
        """
        Pages of ``kind`` whose title contains ``search_term``.

        Matching is a case-sensitive substring test on the first title run;
        an empty term matches every page.  Results keep the order of the
        store's record map.

        Each result carries the JSON of ``property_name`` (default: the
        kind's date property), or "undefined" where there is none.
        """
        descriptor = await self.resolve_collection(kind)
        record_map = await self._client.query_collection(
            descriptor.collection_id, descriptor.collection_view_id, [],
        )

        keys = property_keys(first_collection_schema(record_map))
        if property_name is None:
            property_name = self._config.kind(kind).date_property or DEFAULT_DATE_PROPERTY
        code = keys.get(property_name)

        results = []
        for entry in (record_map.get("block") or {}).values():
            value = entry.get("value")
            if not value:
                continue
            record = Record.from_value(value)
            if not record.is_queryable:
                continue
            if search_term not in record.title:
                continue
            results.append(QueryResult(record.id, record.title, _project(record, code)))

        logger.debug("query %s %r: %d results", kind, search_term, len(results))
        return results

    # -------------------------------------------------------------------------
    # Transactions
    # -------------------------------------------------------------------------

    async def submit_transaction(self, operations: list[Operation]) -> dict[str, Any]:
        """Submit ``operations`` as one transaction.

        Raises:
            TransactionError: with the server's message, if it reports an error
        """
        result = await self._client.submit_transaction(transactions.serialize(operations))
        error = result.get("error") if isinstance(result, dict) else None
        if error:
            message = error.get("message", "") if isinstance(error, dict) else str(error)
            raise TransactionError(message, error if isinstance(error, dict) else None)
        logger.debug("Submitted %d operations", len(operations))
        return result

    async def _stamp_date(self, kind: str, page_id: str) -> str:
        code = self._config.kind(kind).date_code
        if not code:
            raise ConfigError(f"kinds.{kind} has no date_code to stamp")
        day = self.today()
        await self.submit_transaction(transactions.set_date_property(page_id, code, day))
        return day

    async def update_read_at(self, page_id: str) -> str:
        """Set a book's "Read at" to today.  Returns the date written."""
        return await self._stamp_date(BOOK, page_id)

    async def update_met_at(self, page_id: str) -> str:
        """Set a person's "Met at" to today.  Returns the date written."""
        return await self._stamp_date(PEOPLE, page_id)

    async def create_draft(self, title: str, content: Optional[str] = None) -> str:
        """Create a draft page, optionally with a first paragraph.  Returns its id."""
        draft_id = transactions.new_id()
        parent = self._config.parents.drafts
        if content:
            ops = transactions.create_page_with_text(
                title, content, parent, page_id=draft_id, **self._time_kwargs(),
            )
        else:
            ops = transactions.create_page(title, parent, page_id=draft_id)
        await self.submit_transaction(ops)
        logger.info("Created draft %s: %s", draft_id, title)
        return draft_id

    async def memo(self, text: str) -> str:
        """Append a timestamped bullet to the memo page.  Returns the page id."""
        bucket = self._config.parents.memo
        await self.submit_transaction(transactions.append_text(
            bucket, text, block_type="bulleted_list", **self._time_kwargs(),
        ))
        return bucket

    # -------------------------------------------------------------------------
    # Today's note
    # -------------------------------------------------------------------------

    def today(self, now: Optional[datetime] = None) -> str:
        return transactions.today(now, self._config.utc_offset)

    async def ensure_today_id(self) -> str:
        """
        Id of today's note, creating the page if it doesn't exist.

        Resolved at most once per day per Notebook; concurrent callers
        share one resolution, so at most one page is created.

        Raises:
            TodayNoteNotFoundError: if the page can't be found after creating it
        """
        key = self.today()
        return await self._daily_notes.get_or_compute(key, lambda: self._resolve_today(key))

    async def _find_note(self, title: str) -> Optional[str]:
        for result in await self.query(NOTE, title):
            if result.title == title:
                return result.id
        return None

    async def _resolve_today(self, key: str) -> str:
        page_id = await self._find_note(key)
        if page_id:
            return page_id

        parent = self._config.parents.daily_notes
        if not parent:
            parent = (await self.resolve_collection(NOTE)).collection_id
        logger.info("Creating daily note %s", key)
        await self.submit_transaction(transactions.create_page(key, parent))

        # The new row may take a moment to show up in query results
        retries = max(self._config.today_retries, 1)
        for attempt in range(retries):
            page_id = await self._find_note(key)
            if page_id:
                return page_id
            if attempt < retries - 1:
                delay = self._config.today_retry_delay * (2 ** attempt)
                logger.info("Daily note %s not visible yet, retrying in %.1fs", key, delay)
                await asyncio.sleep(delay)

        raise TodayNoteNotFoundError(f"Created daily note {key} but could not find it")

    async def append_today(self, text: str) -> str:
        """Append a timestamped paragraph to today's note.  Returns its id."""
        page_id = await self.ensure_today_id()
        await self.submit_transaction(transactions.append_text(
            page_id, text, **self._time_kwargs(),
        ))
        return page_id

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def page_url(self, page_id: str) -> str:
        return self._config.workspace_url + to_plain_id(page_id)

    def _time_kwargs(self) -> dict:
        return {"offset": self._config.utc_offset, "time_zone": self._config.time_zone}


def _project(record: Record, code: Optional[str]) -> str:
    if code is None or code not in (record.properties or {}):
        return MISSING_VALUE
    return json.dumps(record.properties[code], ensure_ascii=False, separators=(",", ":"))
