"""
Shared pytest fixtures for notion-util tests.

Provides an in-memory document store so no test touches the network.
"""

import asyncio
from typing import Any, Optional

import pytest

from notion_util.api import Notebook
from notion_util.config import Config, KindConfig


BOOK_PAGE = "4044898e-9515-46df-9fad-bbba4d98c10f"
NOTE_PAGE = "80f1b4ba-6159-49fa-a962-5bc42c5fb531"
PEOPLE_PAGE = "6a3eb7d3-28bc-4e32-8a9b-abb598d44d0e"

BOOK_COLLECTION = "c0000000-0000-4000-8000-00000000b00c"
BOOK_VIEW = "v0000000-0000-4000-8000-00000000b00c"
NOTE_COLLECTION = "c0000000-0000-4000-8000-0000000000n0"
NOTE_VIEW = "v0000000-0000-4000-8000-0000000000n0"
PEOPLE_COLLECTION = "c0000000-0000-4000-8000-000000000p0e"
PEOPLE_VIEW = "v0000000-0000-4000-8000-000000000p0e"

BOOK_SCHEMA = {
    "title": {"name": "Name", "type": "title"},
    "fz`,": {"name": "Read at", "type": "date"},
    "a1b2": {"name": "Author", "type": "text"},
}

NOTE_SCHEMA = {"title": {"name": "Name", "type": "title"}}

PEOPLE_SCHEMA = {
    "title": {"name": "Name", "type": "title"},
    "87:u": {"name": "Met at", "type": "date"},
}


def page_value(id: str, title: Optional[str], **properties) -> dict:
    """A page block value as it appears in a record map."""
    props = dict(properties)
    if title is not None:
        props["title"] = [[title]]
    return {
        "id": id,
        "type": "page",
        "alive": True,
        "properties": props or None,
    }


class FakeStore:
    """
    In-memory stand-in for the document-store client.

    Pages map to collections; ``create page`` operations whose parent is a
    known collection add rows to it, so find-or-create flows can be tested.
    """

    def __init__(self):
        self.pages: dict[str, tuple[str, str]] = {}
        self.schemas: dict[str, dict] = {}
        self.rows: dict[str, dict[str, dict]] = {}
        self.views: dict[str, str] = {}
        self.load_calls: list[str] = []
        self.query_calls: list[tuple] = []
        self.submitted: list[list[dict]] = []
        self.submit_response: Optional[dict] = None
        # Number of queries for which newly created rows stay invisible
        self.hide_created_for = 0
        self._hidden: set[str] = set()
        # Yield to the event loop inside every call, to expose races
        self.yield_in_calls = False
        self.closed = False

    def add_collection(self, page_id: str, collection_id: str, view_id: str, schema: dict) -> None:
        self.pages[page_id] = (collection_id, view_id)
        self.views[collection_id] = view_id
        self.schemas[collection_id] = schema
        self.rows.setdefault(collection_id, {})

    def add_row(self, collection_id: str, value: dict) -> None:
        self.rows[collection_id][value["id"]] = value

    async def _maybe_yield(self) -> None:
        if self.yield_in_calls:
            await asyncio.sleep(0)

    async def load_page_chunk(self, page_id: str) -> dict[str, Any]:
        self.load_calls.append(page_id)
        await self._maybe_yield()
        if page_id not in self.pages:
            return {"block": {}}
        collection_id, view_id = self.pages[page_id]
        return {
            "block": {page_id: {"value": {"id": page_id, "type": "collection_view_page"}}},
            "collection": {collection_id: {"value": {"id": collection_id}}},
            "collection_view": {view_id: {"value": {"id": view_id}}},
        }

    async def query_collection(self, collection_id, collection_view_id, filters=None):
        self.query_calls.append((collection_id, collection_view_id, filters))
        await self._maybe_yield()
        if self.hide_created_for > 0:
            self.hide_created_for -= 1
            visible = {k: v for k, v in self.rows[collection_id].items() if k not in self._hidden}
        else:
            self._hidden.clear()
            visible = self.rows[collection_id]
        return {
            "collection": {
                collection_id: {"value": {"id": collection_id, "schema": self.schemas[collection_id]}},
            },
            "block": {k: {"value": v} for k, v in visible.items()},
        }

    async def submit_transaction(self, operations: list[dict]) -> dict[str, Any]:
        self.submitted.append(operations)
        await self._maybe_yield()
        if self.submit_response is not None:
            return self.submit_response
        for op in operations:
            args = op["args"]
            if (op["command"] == "set" and op["path"] == [] and isinstance(args, dict)
                    and args.get("type") == "page" and args.get("parent_id") in self.rows):
                self.rows[args["parent_id"]][args["id"]] = args
                if self.hide_created_for > 0:
                    self._hidden.add(args["id"])
        return {}

    async def aclose(self) -> None:
        self.closed = True


def make_config(**overrides) -> Config:
    config = Config(
        kinds={
            "BOOK": KindConfig(
                "https://www.notion.so/ws/4044898e951546df9fadbbba4d98c10f?v=59575ce5af824944a6bc7bd95a14704e",
                date_property="Read at",
                date_code="fz`,",
            ),
            "NOTE": KindConfig(
                "https://www.notion.so/ws/80f1b4ba615949faa9625bc42c5fb531?v=c1d00e9c432347c189b0055c24722312",
            ),
            "PRM": KindConfig(
                "https://www.notion.so/ws/6a3eb7d328bc4e328a9babb598d44d0e",
                date_property="Met at",
                date_code="87:u",
            ),
        },
        today_retry_delay=0,
    )
    for key, value in overrides.items():
        setattr(config, key, value)
    return config


@pytest.fixture
def store() -> FakeStore:
    """FakeStore with books, daily notes and people databases."""
    s = FakeStore()
    s.add_collection(BOOK_PAGE, BOOK_COLLECTION, BOOK_VIEW, BOOK_SCHEMA)
    s.add_collection(NOTE_PAGE, NOTE_COLLECTION, NOTE_VIEW, NOTE_SCHEMA)
    s.add_collection(PEOPLE_PAGE, PEOPLE_COLLECTION, PEOPLE_VIEW, PEOPLE_SCHEMA)
    return s


@pytest.fixture
def config() -> Config:
    return make_config()


@pytest.fixture
def notebook(store, config) -> Notebook:
    return Notebook(store, config)
