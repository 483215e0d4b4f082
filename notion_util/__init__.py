"""
notion-util

Search, stamp and append to a Notion workspace: look up books, drafts
and people by title, mark them read or met, create drafts, and keep a
running memo and a daily note.

Quick Start:
    from notion_util import Notebook, NotionClient, load_or_default_config

    config = load_or_default_config()
    async with NotionClient(config.token()) as client:
        nb = Notebook(client, config)
        for result in await nb.query("BOOK", "Dune"):
            print(result.title, nb.page_url(result.id))
        await nb.append_today("finished chapter 3")

CLI Usage:
    notion-util book "Dune"
    notion-util read "Dune"
    notion-util today "finished chapter 3"

Environment Variables:
    NOTION_TOKEN         - Notion token_v2 cookie value
    NOTION_UTIL_CONFIG   - Override config file location
    NOTION_UTIL_HOME     - Override error log directory
    NOTION_UTIL_VERBOSE  - Set to 1 for debug logging
"""

from .api import Notebook
from .client import NotionClient
from .config import Config, load_or_default_config
from .errors import (
    CollectionNotFoundError,
    IdentifierNotFoundError,
    NotionUtilError,
    TodayNoteNotFoundError,
    TransactionError,
)
from .types import QueryResult, canonicalize_id, page_id_from_url, to_dash_id

__version__ = "0.1.0"
__all__ = [
    "Notebook",
    "NotionClient",
    "Config",
    "load_or_default_config",
    "NotionUtilError",
    "IdentifierNotFoundError",
    "CollectionNotFoundError",
    "TransactionError",
    "TodayNoteNotFoundError",
    "QueryResult",
    "canonicalize_id",
    "page_id_from_url",
    "to_dash_id",
]
