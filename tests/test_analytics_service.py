from datetime import datetime

import pytest

from app.services import analytics_service

NOW = datetime(2024, 6, 15, 12, 0)


@pytest.mark.asyncio
async def test_user_growth_by_month(db):
    db.get("users").documents = [
        {"_id": "u1", "createdAt": datetime(2024, 4, 2)},
        {"_id": "u2", "createdAt": datetime(2024, 4, 20)},
        {"_id": "u3", "createdAt": datetime(2024, 6, 1)},
    ]

    result = await analytics_service.get_user_growth_analytics("month", now=NOW)

    assert result == [{"period": "2024-04", "count": 2}, {"period": "2024-06", "count": 1}]
    assert db.get("users").find_calls[0] == {"createdAt": {"$gte": datetime(2023, 6, 15, 12, 0)}}


@pytest.mark.asyncio
async def test_transaction_volume_by_day(db):
    db.get("transactions").documents = [
        {"_id": "t1", "createdAt": datetime(2024, 6, 14, 9), "amount": 100.0},
        {"_id": "t2", "createdAt": datetime(2024, 6, 14, 18), "amount": 50.0},
        {"_id": "t3", "createdAt": datetime(2024, 6, 15, 8)},
    ]

    result = await analytics_service.get_transaction_volume_analytics("day", now=NOW)

    assert result == [
        {"period": "2024-06-14", "count": 2, "volume": 150.0},
        {"period": "2024-06-15", "count": 1, "volume": 0},
    ]


@pytest.mark.asyncio
async def test_revenue_treats_missing_fee_as_zero(db):
    db.get("transactions").documents = [
        {"_id": "t1", "createdAt": datetime(2022, 3, 1), "fee": 1.5},
        {"_id": "t2", "createdAt": datetime(2024, 1, 1)},
        {"_id": "t3", "createdAt": datetime(2024, 5, 1), "fee": 2.0},
    ]

    result = await analytics_service.get_revenue_analytics("year", now=NOW)

    assert result == [{"period": "2022", "revenue": 1.5}, {"period": "2024", "revenue": 2.0}]


def test_buckets_keep_first_seen_order_and_skip_bad_timestamps():
    documents = [
        {"createdAt": datetime(2024, 3, 7)},
        {"createdAt": "2024-03-08"},
        {"createdAt": None},
        {"createdAt": datetime(2024, 3, 1)},
        {"createdAt": datetime(2024, 3, 8)},
    ]

    result = analytics_service.bucket_documents(documents, "week", {"count": lambda d: 1})

    assert result == [{"period": "2024-W2", "count": 2}, {"period": "2024-W1", "count": 1}]


def test_unknown_timeframe_buckets_by_month():
    documents = [{"createdAt": datetime(2024, 3, 7)}]
    assert analytics_service.bucket_documents(documents, "fortnight", {"count": lambda d: 1}) == [
        {"period": "2024-03", "count": 1}
    ]
