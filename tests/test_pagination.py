from datetime import datetime

import pytest

from app.core.exceptions import ValidationError
from app.db.pagination import (
    ASCENDING,
    DESCENDING,
    combine_filters,
    decode_cursor,
    encode_cursor,
    fetch_page,
    resolve_page_size,
    start_after_filter,
)
from tests.fakes import FakeCollection


def _docs(count):
    return [
        {"_id": f"doc{i:02d}", "createdAt": datetime(2024, 1, 1 + i), "name": f"user {i}"}
        for i in range(count)
    ]


def test_cursor_keeps_datetime_sort_value():
    token = encode_cursor({"_id": "abc", "createdAt": datetime(2024, 5, 1, 8, 30)}, "createdAt")
    value, doc_id = decode_cursor(token)
    assert value == datetime(2024, 5, 1, 8, 30)
    assert doc_id == "abc"


def test_cursor_accepts_serialized_documents():
    token = encode_cursor({"id": "xyz", "order": 3}, "order")
    assert decode_cursor(token) == (3, "xyz")


def test_encode_cursor_of_empty_page():
    assert encode_cursor(None, "createdAt") is None


@pytest.mark.parametrize("token", ["not-a-cursor", "e30", "!!!"])
def test_malformed_cursor_is_rejected(token):
    with pytest.raises(ValidationError) as exc:
        decode_cursor(token)
    assert exc.value.message == "Invalid pagination cursor"


def test_start_after_descending():
    token = encode_cursor({"_id": "b", "createdAt": datetime(2024, 1, 2)}, "createdAt")
    assert start_after_filter("createdAt", DESCENDING, token) == {
        "$or": [
            {"createdAt": {"$lt": datetime(2024, 1, 2)}},
            {"createdAt": datetime(2024, 1, 2), "_id": {"$lt": "b"}},
        ]
    }


def test_start_after_ascending_and_without_cursor():
    token = encode_cursor({"_id": "b", "order": 2}, "order")
    assert start_after_filter("order", ASCENDING, token)["$or"][0] == {"order": {"$gt": 2}}
    assert start_after_filter("order", ASCENDING, None) == {}


def test_page_size_defaults_and_clamps():
    assert resolve_page_size(None) == 10
    assert resolve_page_size(0) == 10
    assert resolve_page_size(25) == 25
    assert resolve_page_size(1000) == 100


def test_combine_filters():
    assert combine_filters({}, {}) == {}
    assert combine_filters({"status": "pending"}, {}) == {"status": "pending"}
    assert combine_filters({"a": 1}, {"b": 2}) == {"$and": [{"a": 1}, {"b": 2}]}


@pytest.mark.asyncio
async def test_full_page_reports_has_more():
    collection = FakeCollection("users")
    collection.documents = _docs(3)

    items, last_visible, has_more = await fetch_page(collection, {}, "createdAt", DESCENDING, page_size=3)

    assert [item["id"] for item in items] == ["doc00", "doc01", "doc02"]
    assert has_more is True
    assert decode_cursor(last_visible) == (datetime(2024, 1, 3), "doc02")
    assert collection.cursors[0].sort_args == ([("createdAt", DESCENDING), ("_id", DESCENDING)],)


@pytest.mark.asyncio
async def test_short_page_has_no_more():
    collection = FakeCollection("users")
    collection.documents = _docs(2)

    items, _, has_more = await fetch_page(collection, {"kycStatus": "pending"}, "createdAt", page_size=3)

    assert len(items) == 2
    assert has_more is False
    assert collection.find_calls[0] == {"kycStatus": "pending"}


@pytest.mark.asyncio
async def test_empty_page():
    collection = FakeCollection("users")

    items, last_visible, has_more = await fetch_page(collection, {}, "createdAt", page_size=5)

    assert items == []
    assert last_visible is None
    assert has_more is False


@pytest.mark.asyncio
async def test_cursor_is_applied_to_query():
    collection = FakeCollection("users")
    token = encode_cursor({"_id": "doc05", "createdAt": datetime(2024, 1, 6)}, "createdAt")

    await fetch_page(collection, {"accountStatus": "active"}, "createdAt", DESCENDING, 5, token)

    query = collection.find_calls[0]
    assert query["$and"][0] == {"accountStatus": "active"}
    assert "$or" in query["$and"][1]
