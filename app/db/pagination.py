"""
app/db/pagination.py

Purpose: Cursor-based pagination

- Opaque cursor tokens carrying the last seen (sort value, id)
- "start after" filters for ascending and descending listings
- Page fetching with the full-page "has more" heuristic
"""

import base64
import binascii
import json
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from pymongo import ASCENDING, DESCENDING

from app.core.config import settings
from app.core.exceptions import ValidationError
from app.db.mongo import serialize_document


def encode_cursor(document: Optional[Dict[str, Any]], sort_field: str) -> Optional[str]:
    """
    Builds the cursor token for the last document of a page.

    Accepts raw (`_id`) or serialized (`id`) documents.

    Returns:
        URL-safe token, or None when the page was empty
    """
    if not document:
        return None

    doc_id = document.get("_id", document.get("id"))
    value = document.get(sort_field)

    if isinstance(value, datetime):
        payload = {"t": "dt", "v": value.isoformat(), "id": str(doc_id)}
    else:
        payload = {"t": "raw", "v": value, "id": str(doc_id)}

    raw = json.dumps(payload, separators=(",", ":"), default=str).encode("utf-8")
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


def decode_cursor(token: str) -> Tuple[Any, str]:
    """
    Decodes a cursor token back into (sort value, document id).

    Raises:
        ValidationError: If the token is malformed
    """
    try:
        padded = token + "=" * (-len(token) % 4)
        payload = json.loads(base64.urlsafe_b64decode(padded.encode("ascii")))
        value = payload["v"]
        if payload.get("t") == "dt":
            value = datetime.fromisoformat(value)
        return value, str(payload["id"])
    except (binascii.Error, ValueError, KeyError, TypeError, UnicodeError) as e:
        raise ValidationError("Invalid pagination cursor", details={"cursor": token}) from e


def start_after_filter(sort_field: str, direction: int, cursor: Optional[str]) -> Dict[str, Any]:
    """
    Filter selecting documents strictly after the cursor position.

    Ties on the sort value are broken by `_id` in the same direction,
    matching the (sort_field, _id) sort used for listings.
    """
    if not cursor:
        return {}

    value, doc_id = decode_cursor(cursor)
    op = "$lt" if direction == DESCENDING else "$gt"

    return {
        "$or": [
            {sort_field: {op: value}},
            {sort_field: value, "_id": {op: doc_id}},
        ]
    }


def resolve_page_size(page_size: Optional[int]) -> int:
    """
    Applies the default page size and clamps to the configured maximum.
    """
    if not page_size or page_size < 1:
        return settings.DEFAULT_PAGE_SIZE
    return min(page_size, settings.MAX_PAGE_SIZE)


def combine_filters(*filters: Dict[str, Any]) -> Dict[str, Any]:
    """
    ANDs non-empty filters together.
    """
    parts = [f for f in filters if f]
    if not parts:
        return {}
    if len(parts) == 1:
        return parts[0]
    return {"$and": parts}


async def fetch_page(
    collection,
    filters: Dict[str, Any],
    sort_field: str,
    direction: int = DESCENDING,
    page_size: Optional[int] = None,
    cursor: Optional[str] = None,
) -> Tuple[List[Dict[str, Any]], Optional[str], bool]:
    """
    Runs one page of a listing query.

    Args:
        collection: Motor collection
        filters: Equality filters for the listing
        sort_field: Field the listing is ordered by
        direction: ASCENDING or DESCENDING
        page_size: Requested page size
        cursor: Token from the previous page's last document

    Returns:
        (serialized documents, cursor of the last document, has_more)

    `has_more` is true whenever the page came back full, so a listing
    whose size is an exact multiple of the page size reports one extra,
    empty page.
    """
    page_size = resolve_page_size(page_size)
    query = combine_filters(filters, start_after_filter(sort_field, direction, cursor))

    documents = await (
        collection.find(query)
        .sort([(sort_field, direction), ("_id", direction)])
        .limit(page_size)
        .to_list(length=page_size)
    )

    last_visible = encode_cursor(documents[-1], sort_field) if documents else None
    has_more = len(documents) == page_size

    return [serialize_document(d) for d in documents], last_visible, has_more


__all__ = [
    "ASCENDING",
    "DESCENDING",
    "encode_cursor",
    "decode_cursor",
    "start_after_filter",
    "resolve_page_size",
    "combine_filters",
    "fetch_page",
]
