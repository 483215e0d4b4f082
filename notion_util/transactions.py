"""
Transaction construction.

Each builder returns the complete, ordered list of operations for one
logical change.  The store applies a list as a single unit, so callers
submit the whole list in one ``submitTransaction`` call.

Any operation that appends to a parent's ``content`` list is followed,
in the same transaction, by a ``last_edited_time`` stamp on that parent.
Without the stamp the store does not surface the edit as recent.

Dates use a fixed UTC offset (default +9h), not a timezone database.
"""

import time
import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

from .types import Operation

DEFAULT_UTC_OFFSET = timedelta(hours=9)
DEFAULT_TIME_ZONE = "Asia/Seoul"

# Inline mention marker used by Notion for dates, users and pages
MENTION = "‣"

BLOCK_TABLE = "block"


def new_id() -> str:
    return str(uuid.uuid4())


def now_ms() -> int:
    """Current time in epoch milliseconds, the store's timestamp unit."""
    return int(time.time() * 1000)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _shifted(now: Optional[datetime], offset: timedelta) -> datetime:
    if now is None:
        now = _utc_now()
    elif now.tzinfo is not None:
        now = now.astimezone(timezone.utc)
    return now + offset


def today(now: Optional[datetime] = None, offset: timedelta = DEFAULT_UTC_OFFSET) -> str:
    """Calendar date (YYYY-MM-DD) at a fixed UTC offset.

    Naive datetimes are taken to be UTC.
    """
    return _shifted(now, offset).date().isoformat()


def now_token(
    now: Optional[datetime] = None,
    offset: timedelta = DEFAULT_UTC_OFFSET,
    time_zone: str = DEFAULT_TIME_ZONE,
) -> list:
    """Rich-text run holding a relative datetime mention for ``now``."""
    local = _shifted(now, offset)
    return [
        MENTION,
        [[
            "d",
            {
                "type": "datetime",
                "time_zone": time_zone,
                "start_date": local.date().isoformat(),
                "start_time": f"{local.hour:02d}:{local.minute:02d}",
                "date_format": "relative",
            },
        ]],
    ]


def date_mention(day: str) -> list:
    """Property value holding a single date."""
    return [[MENTION, [["d", {"type": "date", "start_date": day}]]]]


# ---------------------------------------------------------------------------
# Single operations
# ---------------------------------------------------------------------------


def _page_op(page_id: str, title: str, parent_id: str, parent_table: str, created: int) -> Operation:
    return Operation(
        id=page_id,
        table=BLOCK_TABLE,
        path=[],
        command="set",
        args={
            "id": page_id,
            "version": 1,
            "type": "page",
            "alive": True,
            "properties": {"title": [[title]]},
            "parent_id": parent_id,
            "parent_table": parent_table,
            "created_time": created,
        },
    )


def _text_block_op(
    block_id: str,
    content: str,
    parent_id: str,
    created: int,
    *,
    block_type: str,
    stamp: list,
) -> Operation:
    return Operation(
        id=block_id,
        table=BLOCK_TABLE,
        path=[],
        command="set",
        args={
            "id": block_id,
            "type": block_type,
            "alive": True,
            "properties": {"title": [stamp, [" " + content]]},
            "parent_id": parent_id,
            "parent_table": BLOCK_TABLE,
            "created_time": created,
        },
    )


def _append_child_ops(parent_id: str, child_id: str, edited: int) -> list[Operation]:
    """``listAfter`` on the parent's content, then its edit stamp."""
    return [
        Operation(
            id=parent_id,
            table=BLOCK_TABLE,
            path=["content"],
            command="listAfter",
            args={"id": child_id},
        ),
        Operation(
            id=parent_id,
            table=BLOCK_TABLE,
            path=["last_edited_time"],
            command="set",
            args=edited,
        ),
    ]


# ---------------------------------------------------------------------------
# Transactions
# ---------------------------------------------------------------------------


def create_page(
    title: str,
    parent_id: str,
    *,
    parent_table: str = "collection",
    page_id: Optional[str] = None,
) -> list[Operation]:
    """Create a page (a collection row by default)."""
    return [_page_op(page_id or new_id(), title, parent_id, parent_table, now_ms())]


def create_page_with_text(
    title: str,
    content: str,
    parent_id: str,
    *,
    parent_table: str = "collection",
    page_id: Optional[str] = None,
    block_id: Optional[str] = None,
    now: Optional[datetime] = None,
    offset: timedelta = DEFAULT_UTC_OFFSET,
    time_zone: str = DEFAULT_TIME_ZONE,
) -> list[Operation]:
    """Create a page whose first child is a timestamped text block."""
    page_id = page_id or new_id()
    block_id = block_id or new_id()
    created = now_ms()
    return [
        _page_op(page_id, title, parent_id, parent_table, created),
        _text_block_op(
            block_id, content, page_id, created,
            block_type="text", stamp=now_token(now, offset, time_zone),
        ),
        *_append_child_ops(page_id, block_id, now_ms()),
    ]


def append_text(
    parent_id: str,
    content: str,
    *,
    block_type: str = "text",
    block_id: Optional[str] = None,
    now: Optional[datetime] = None,
    offset: timedelta = DEFAULT_UTC_OFFSET,
    time_zone: str = DEFAULT_TIME_ZONE,
) -> list[Operation]:
    """Append a timestamped block to the end of an existing page."""
    block_id = block_id or new_id()
    return [
        _text_block_op(
            block_id, content, parent_id, now_ms(),
            block_type=block_type, stamp=now_token(now, offset, time_zone),
        ),
        *_append_child_ops(parent_id, block_id, now_ms()),
    ]


def set_date_property(page_id: str, code: str, day: str) -> list[Operation]:
    """Overwrite a single-date property (e.g. "Read at") with ``day``."""
    return [
        Operation(
            id=page_id,
            table=BLOCK_TABLE,
            path=["properties", code],
            command="set",
            args=date_mention(day),
        )
    ]


def serialize(operations: list[Operation]) -> list[dict]:
    return [op.to_dict() for op in operations]
