"""
Data types and identifier handling for the Notion document store.

Notion identifiers are 128-bit values that appear in two textual forms:
dashed (``0eeee000-cccc-bbbb-aaaa-123450000000``, 36 chars) and plain
(``0eeee000ccccbbbbaaaa123450000000``, 32 chars).  Page URLs carry the
plain form, optionally preceded by a title slug.
"""

import enum
from dataclasses import dataclass, field
from typing import Any, NamedTuple, Optional
from urllib.parse import urlparse

from .errors import IdentifierNotFoundError


DASH_ID_LENGTH = len("0eeee000-cccc-bbbb-aaaa-123450000000")
PLAIN_ID_LENGTH = len("0eeee000ccccbbbbaaaa123450000000")

# Group boundaries of the 8-4-4-4-12 dashed form
_ID_GROUPS = ((0, 8), (8, 12), (12, 16), (16, 20), (20, 32))


# ---------------------------------------------------------------------------
# Identifier canonicalization
# ---------------------------------------------------------------------------


class IdStatus(enum.Enum):
    """Outcome of canonicalizing an identifier."""
    CANONICAL = "canonical"    # already dashed, returned as-is
    CONVERTED = "converted"    # plain form, dashes inserted
    UNCHANGED = "unchanged"    # not an identifier, passed through


class IdResult(NamedTuple):
    value: str
    status: IdStatus

    @property
    def ok(self) -> bool:
        return self.status is not IdStatus.UNCHANGED


def is_dash_id(s: str) -> bool:
    """True if ``s`` has the length of a dashed id and contains a dash.

    Structural check only: a 36-char string with misplaced dashes passes.
    """
    return len(s) == DASH_ID_LENGTH and "-" in s


def canonicalize_id(s: str) -> IdResult:
    """Canonicalize ``s`` to the dashed form, reporting what happened."""
    if is_dash_id(s):
        return IdResult(s, IdStatus.CANONICAL)
    plain = s.replace("-", "")
    if len(plain) != PLAIN_ID_LENGTH:
        return IdResult(s, IdStatus.UNCHANGED)
    return IdResult(
        "-".join(plain[start:end] for start, end in _ID_GROUPS),
        IdStatus.CONVERTED,
    )


def to_dash_id(s: str) -> str:
    """Return the dashed form of ``s``.

    Malformed input (anything that is not 32 hex-ish chars once dashes
    are removed) is returned unchanged rather than raising.  Use
    :func:`canonicalize_id` to tell the two cases apart.
    """
    return canonicalize_id(s).value


def to_plain_id(s: str) -> str:
    """Strip dashes, as used in page URLs."""
    return s.replace("-", "")


def page_id_from_url(url: str) -> str:
    """Extract the dashed page id from a Notion page or database URL.

    Handles ``/<workspace>/<id>``, ``/<Title-Slug>-<id>`` and a trailing
    ``?v=<view id>`` query (which is ignored).

    Raises:
        IdentifierNotFoundError: if the last path token is not 32 chars
    """
    path = urlparse(url).path or ""
    last_segment = path.split("/")[-1]
    token = last_segment.split("-")[-1]
    if token and len(token) == PLAIN_ID_LENGTH:
        return to_dash_id(token)
    raise IdentifierNotFoundError(f"Cannot get page id from {url}", url)


# ---------------------------------------------------------------------------
# Store records
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CollectionDescriptor:
    """A collection and the view used to query it."""
    collection_id: str
    collection_view_id: str


@dataclass
class Record:
    """
    A block record from a record map.

    Only ``type == "page"`` records with a non-empty property bag take
    part in collection queries.
    """
    id: str
    type: str
    alive: bool = True
    properties: Optional[dict[str, Any]] = None

    @classmethod
    def from_value(cls, value: dict) -> "Record":
        return cls(
            id=value.get("id", ""),
            type=value.get("type", ""),
            alive=value.get("alive", True),
            properties=value.get("properties"),
        )

    @property
    def is_queryable(self) -> bool:
        return self.type == "page" and bool(self.properties)

    @property
    def title(self) -> str:
        """Text of the first run of the title property ("" if absent)."""
        runs = (self.properties or {}).get("title") or []
        if not runs or not runs[0]:
            return ""
        return runs[0][0]


class QueryResult(NamedTuple):
    """A matching page: id, title text, and the JSON of its date property."""
    id: str
    title: str
    date_value: str


@dataclass
class Operation:
    """One atomic operation of a transaction."""
    id: str
    table: str
    path: list[str]
    command: str
    args: Any = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "table": self.table,
            "path": list(self.path),
            "command": self.command,
            "args": self.args,
        }
