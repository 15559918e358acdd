"""
app/services/analytics_service.py

Purpose: Time-bucketed admin analytics

- User growth (sign-ups per period)
- Transaction volume (count and amount per period)
- Revenue (fees per period)

Documents in the timeframe window are read in ascending `createdAt`
order; buckets keep first-seen order.
"""

from datetime import datetime
from typing import Optional, Dict, Any, List, Callable

from pymongo import ASCENDING

from app.core.logging import get_logger
from app.db.mongo import get_collection
from utils.constants import USERS_COLLECTION, TRANSACTIONS_COLLECTION
from utils.time_utils import get_timeframe_start, get_period_key

logger = get_logger(__name__)


async def _load_window(
    collection_name: str,
    timeframe: str,
    now: Optional[datetime] = None,
    projection: Optional[Dict[str, int]] = None
) -> List[Dict[str, Any]]:
    start = get_timeframe_start(timeframe, now)
    return await (
        get_collection(collection_name)
        .find({"createdAt": {"$gte": start}}, projection)
        .sort("createdAt", ASCENDING)
        .to_list(length=None)
    )


def bucket_documents(
    documents: List[Dict[str, Any]],
    timeframe: str,
    fields: Dict[str, Callable[[Dict[str, Any]], float]]
) -> List[Dict[str, Any]]:
    """
    Groups documents by period key and sums each field.

    Args:
        documents: Documents with a `createdAt` datetime
        timeframe: day, week, month or year
        fields: Output field -> per-document value

    Returns:
        [{"period": ..., <field>: total, ...}] in first-seen order
    """
    buckets: Dict[str, Dict[str, Any]] = {}

    for document in documents:
        created_at = document.get("createdAt")
        if not isinstance(created_at, datetime):
            continue

        key = get_period_key(created_at, timeframe)
        bucket = buckets.get(key)
        if bucket is None:
            bucket = {"period": key, **{name: 0 for name in fields}}
            buckets[key] = bucket

        for name, value in fields.items():
            bucket[name] += value(document)

    return list(buckets.values())


def _one(document: Dict[str, Any]) -> int:
    return 1


def _amount(document: Dict[str, Any]) -> float:
    return document.get("amount") or 0


def _fee(document: Dict[str, Any]) -> float:
    return document.get("fee") or 0


async def get_user_growth_analytics(timeframe: str = "month", now: Optional[datetime] = None) -> List[Dict[str, Any]]:
    """Sign-ups per period: [{"period", "count"}]."""
    users = await _load_window(USERS_COLLECTION, timeframe, now, {"createdAt": 1})
    result = bucket_documents(users, timeframe, {"count": _one})
    logger.debug(f"User growth ({timeframe}): {len(result)} periods")
    return result


async def get_transaction_volume_analytics(
    timeframe: str = "month",
    now: Optional[datetime] = None
) -> List[Dict[str, Any]]:
    """Transactions per period: [{"period", "count", "volume"}]."""
    transactions = await _load_window(TRANSACTIONS_COLLECTION, timeframe, now, {"createdAt": 1, "amount": 1})
    return bucket_documents(transactions, timeframe, {"count": _one, "volume": _amount})


async def get_revenue_analytics(timeframe: str = "month", now: Optional[datetime] = None) -> List[Dict[str, Any]]:
    """Fee revenue per period: [{"period", "revenue"}]."""
    transactions = await _load_window(TRANSACTIONS_COLLECTION, timeframe, now, {"createdAt": 1, "fee": 1})
    return bucket_documents(transactions, timeframe, {"revenue": _fee})
