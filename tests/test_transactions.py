"""Tests for transaction construction."""

from datetime import datetime, timedelta, timezone

import pytest

from notion_util import transactions
from notion_util.transactions import (
    append_text,
    create_page,
    create_page_with_text,
    date_mention,
    now_token,
    serialize,
    set_date_property,
    today,
)


def _assert_append_then_stamp(ops, parent_id, child_id):
    """listAfter on the parent is immediately followed by its edit stamp."""
    commands = [(op.id, op.path, op.command) for op in ops]
    i = commands.index((parent_id, ["content"], "listAfter"))
    assert commands[i + 1] == (parent_id, ["last_edited_time"], "set")
    assert ops[i].args == {"id": child_id}
    assert isinstance(ops[i + 1].args, int)


# ---------------------------------------------------------------------------
# Dates
# ---------------------------------------------------------------------------


class TestDates:
    def test_today_shifts_by_nine_hours(self):
        # 15:30 UTC is 00:30 the next day at +9
        assert today(datetime(2024, 3, 1, 15, 30, tzinfo=timezone.utc)) == "2024-03-02"
        assert today(datetime(2024, 3, 1, 14, 59, tzinfo=timezone.utc)) == "2024-03-01"

    def test_today_naive_is_utc(self):
        assert today(datetime(2024, 12, 31, 20, 0)) == "2025-01-01"

    def test_today_aware_non_utc(self):
        est = timezone(timedelta(hours=-5))
        # 10:00 EST == 15:00 UTC == 00:00 next day at +9
        assert today(datetime(2024, 3, 1, 10, 0, tzinfo=est)) == "2024-03-02"

    def test_today_custom_offset(self):
        assert today(datetime(2024, 3, 1, 15, 30, tzinfo=timezone.utc), timedelta(0)) == "2024-03-01"

    def test_now_token(self):
        token = now_token(datetime(2024, 3, 1, 15, 5, tzinfo=timezone.utc))
        assert token == [
            "‣",
            [[
                "d",
                {
                    "type": "datetime",
                    "time_zone": "Asia/Seoul",
                    "start_date": "2024-03-02",
                    "start_time": "00:05",
                    "date_format": "relative",
                },
            ]],
        ]

    def test_date_mention(self):
        assert date_mention("2024-03-02") == [["‣", [["d", {"type": "date", "start_date": "2024-03-02"}]]]]


# ---------------------------------------------------------------------------
# Transactions
# ---------------------------------------------------------------------------


class TestCreatePage:
    def test_single_set(self):
        ops = create_page("2024-03-02", "coll-1", page_id="page-1")
        assert len(ops) == 1
        op = ops[0]
        assert (op.id, op.table, op.path, op.command) == ("page-1", "block", [], "set")
        assert op.args["type"] == "page"
        assert op.args["version"] == 1
        assert op.args["alive"] is True
        assert op.args["properties"] == {"title": [["2024-03-02"]]}
        assert op.args["parent_id"] == "coll-1"
        assert op.args["parent_table"] == "collection"
        assert isinstance(op.args["created_time"], int)

    def test_generates_id(self):
        op = create_page("t", "coll-1")[0]
        assert op.id == op.args["id"]
        assert len(op.id) == 36


class TestCreatePageWithText:
    def test_shape(self):
        ops = create_page_with_text(
            "Essay", "first thought", "coll-1",
            page_id="page-1", block_id="block-1",
            now=datetime(2024, 3, 1, 3, 7, tzinfo=timezone.utc),
        )
        assert [op.command for op in ops] == ["set", "set", "listAfter", "set"]
        page, block = ops[0], ops[1]
        assert page.id == "page-1" and page.args["type"] == "page"
        assert block.id == "block-1"
        assert block.args["type"] == "text"
        assert block.args["parent_id"] == "page-1"
        assert block.args["parent_table"] == "block"
        title = block.args["properties"]["title"]
        assert title[0][1][0][1]["start_time"] == "12:07"
        assert title[1] == [" first thought"]
        _assert_append_then_stamp(ops, "page-1", "block-1")


class TestAppendText:
    def test_shape(self):
        ops = append_text("parent-1", "hello", block_id="block-1")
        assert [op.command for op in ops] == ["set", "listAfter", "set"]
        assert ops[0].args["parent_id"] == "parent-1"
        assert ops[0].args["properties"]["title"][1] == [" hello"]
        _assert_append_then_stamp(ops, "parent-1", "block-1")

    def test_block_type(self):
        ops = append_text("parent-1", "hello", block_type="bulleted_list")
        assert ops[0].args["type"] == "bulleted_list"

    @pytest.mark.parametrize("content", ["", "a", "multi\nline", "한글 메모"])
    def test_append_always_followed_by_stamp(self, content):
        ops = append_text("p", content)
        _assert_append_then_stamp(ops, "p", ops[0].id)


class TestSetDateProperty:
    def test_shape(self):
        ops = set_date_property("page-1", "fz`,", "2024-03-02")
        assert len(ops) == 1
        op = ops[0]
        assert op.path == ["properties", "fz`,"]
        assert op.command == "set"
        assert op.args == date_mention("2024-03-02")


def test_serialize():
    ops = append_text("p", "x", block_id="b")
    data = serialize(ops)
    assert [d["command"] for d in data] == ["set", "listAfter", "set"]
    assert data[1] == {"id": "p", "table": "block", "path": ["content"], "command": "listAfter", "args": {"id": "b"}}


def test_now_ms_is_epoch_millis(monkeypatch):
    monkeypatch.setattr(transactions.time, "time", lambda: 1700000000.5)
    assert transactions.now_ms() == 1700000000500
