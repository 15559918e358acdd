"""
app/services/admin_service.py

Purpose: Back-office operations

- Admin sign-in (auth provider + admin_users membership)
- User listing, search, details and account status
- KYC review queue, approval and rejection
- Wallet listing and balance adjustment
- Transaction listing and details
- Dashboard statistics
"""

import asyncio
from datetime import datetime
from typing import Optional, Dict, Any, List, Iterable

from app.core.config import settings
from app.core.exceptions import AuthorizationError, ResourceNotFoundError, ValidationError
from app.core.logging import get_logger, LogContext
from app.db.mongo import get_collection, serialize_document, serialize_documents
from app.db.pagination import (
    ASCENDING,
    DESCENDING,
    encode_cursor,
    fetch_page,
    resolve_page_size,
    start_after_filter,
)
from app.services import user_service
from app.services.auth_service import get_auth_service
from app.services.functions_service import get_functions_service
from utils.constants import (
    USERS_COLLECTION,
    ADMIN_USERS_COLLECTION,
    WALLETS_COLLECTION,
    TRANSACTIONS_COLLECTION,
    TRANSACTION_ACTIVITIES_COLLECTION,
    KYC_DOCUMENTS_COLLECTION,
    ACCOUNT_STATUSES,
    KYC_STATUSES,
    TRANSACTION_STATUSES,
    FN_APPROVE_KYC,
    FN_REJECT_KYC,
    FN_ADJUST_BALANCE,
    UNKNOWN_USER_NAME,
)
from utils.validation_utils import require_choice

logger = get_logger(__name__)


# ============================================================
# ADMIN ACCOUNT
# ============================================================

async def get_admin_data(admin_id: str) -> Dict[str, Any]:
    admin = await get_collection(ADMIN_USERS_COLLECTION).find_one({"_id": admin_id})
    if not admin:
        raise ResourceNotFoundError("Admin not found", details={"admin_id": admin_id})
    return serialize_document(admin)


async def is_admin(uid: str) -> bool:
    return await get_collection(ADMIN_USERS_COLLECTION).count_documents({"_id": uid}, limit=1) > 0


async def sign_in(email: str, password: str) -> Dict[str, Any]:
    """
    Signs an admin in.

    Returns:
        {"credential": ..., "admin": ...}

    Raises:
        AuthenticationError: Bad credentials
        AuthorizationError: Account is not in admin_users
    """
    credential = await get_auth_service().sign_in_with_email_password(email, password)

    admin = await get_collection(ADMIN_USERS_COLLECTION).find_one({"_id": credential["uid"]})
    if not admin:
        logger.warning("Non-admin sign in attempt", extra={"user_id": credential["uid"]})
        raise AuthorizationError("User is not an admin")

    logger.info("Admin signed in", extra={"admin_id": credential["uid"]})
    return {"credential": credential, "admin": serialize_document(admin)}


# ============================================================
# USER SUMMARIES
# ============================================================

def _user_summary(user_id: Optional[str], user: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    if not user:
        return {"id": user_id, "displayName": UNKNOWN_USER_NAME, "email": "", "phone": ""}
    return {
        "id": str(user["_id"]),
        "displayName": user.get("displayName"),
        "email": user.get("email"),
        "phone": user.get("phone"),
    }


async def get_user_summaries(user_ids: Iterable[Optional[str]]) -> Dict[str, Dict[str, Any]]:
    """
    Loads {id, displayName, email, phone} for each referenced user.
    Missing users get the "Unknown User" placeholder.
    """
    ids = sorted({user_id for user_id in user_ids if user_id})
    if not ids:
        return {}

    users = await get_collection(USERS_COLLECTION).find({"_id": {"$in": ids}}).to_list(length=len(ids))
    by_id = {str(user["_id"]): user for user in users}

    return {user_id: _user_summary(user_id, by_id.get(user_id)) for user_id in ids}


async def _attach_users(items: List[Dict[str, Any]], field: str = "userId") -> List[Dict[str, Any]]:
    summaries = await get_user_summaries(item.get(field) for item in items)
    return [
        {**item, "user": summaries.get(item.get(field)) or _user_summary(item.get(field), None)}
        for item in items
    ]


# ============================================================
# USER MANAGEMENT
# ============================================================

async def get_users(
    page_size: Optional[int] = None,
    cursor: Optional[str] = None,
    kyc_status: Optional[str] = None,
    account_status: Optional[str] = None
) -> Dict[str, Any]:
    """
    Lists users newest first.
    """
    filters: Dict[str, Any] = {}
    if kyc_status:
        filters["kycStatus"] = require_choice(kyc_status, KYC_STATUSES, "KYC status")
    if account_status:
        filters["accountStatus"] = require_choice(account_status, ACCOUNT_STATUSES, "account status")

    users, last_visible, has_more = await fetch_page(
        get_collection(USERS_COLLECTION), filters, "createdAt", DESCENDING, page_size, cursor
    )
    return {"users": users, "last_visible": last_visible, "has_more": has_more}


async def search_users(term: str, limit: int = 10) -> List[Dict[str, Any]]:
    """
    Finds users by exact email, then by display name substring.

    The display name pass only scans the first USER_SEARCH_SCAN_LIMIT users.
    """
    term = (term or "").strip()
    if not term:
        return []

    users_collection = get_collection(USERS_COLLECTION)
    matches = serialize_documents(
        await users_collection.find({"email": term}).limit(limit).to_list(length=limit)
    )

    if len(matches) < limit:
        seen = {user["id"] for user in matches}
        needle = term.lower()
        scanned = await (
            users_collection.find({})
            .limit(settings.USER_SEARCH_SCAN_LIMIT)
            .to_list(length=settings.USER_SEARCH_SCAN_LIMIT)
        )

        for user in serialize_documents(scanned):
            if len(matches) >= limit:
                break
            name = user.get("displayName")
            if name and needle in name.lower() and user["id"] not in seen:
                matches.append(user)
                seen.add(user["id"])

    return matches[:limit]


async def get_user_details(user_id: str) -> Dict[str, Any]:
    """
    User profile with wallets, KYC documents and recent transactions.
    """
    user = await user_service.get_user_profile(user_id)

    wallets, kyc_documents, transactions = await asyncio.gather(
        user_service.get_user_wallets(user_id),
        user_service.get_kyc_documents(user_id),
        user_service.get_user_transactions(user_id, limit=settings.RECENT_TRANSACTIONS_LIMIT),
    )

    return {
        "user": user,
        "wallets": wallets,
        "kyc_documents": kyc_documents,
        "recent_transactions": transactions,
    }


async def update_user_status(user_id: str, status: str, admin_id: Optional[str] = None) -> Dict[str, Any]:
    require_choice(status, ACCOUNT_STATUSES, "account status")

    with LogContext(user_id=user_id, admin_id=admin_id):
        result = await get_collection(USERS_COLLECTION).update_one(
            {"_id": user_id},
            {"$set": {"accountStatus": status, "updatedAt": datetime.utcnow()}}
        )
        if result.matched_count == 0:
            raise ResourceNotFoundError("User not found", details={"user_id": user_id})

        logger.info(f"Account status set to {status}", extra={"user_id": user_id, "admin_id": admin_id})
        return {"success": True}


# ============================================================
# KYC REVIEW
# ============================================================

async def get_kyc_requests(
    status: str = "pending",
    page_size: Optional[int] = None,
    cursor: Optional[str] = None
) -> Dict[str, Any]:
    """
    KYC documents with the given status, oldest submission first,
    each joined with its owner's summary.
    """
    documents, last_visible, has_more = await fetch_page(
        get_collection(KYC_DOCUMENTS_COLLECTION),
        {"status": status},
        "submittedAt",
        ASCENDING,
        page_size,
        cursor,
    )
    return {
        "requests": await _attach_users(documents),
        "last_visible": last_visible,
        "has_more": has_more,
    }


async def get_kyc_document_details(document_id: str) -> Dict[str, Any]:
    document = await get_collection(KYC_DOCUMENTS_COLLECTION).find_one({"_id": document_id})
    if not document:
        raise ResourceNotFoundError("Document not found", details={"document_id": document_id})

    user = await get_collection(USERS_COLLECTION).find_one({"_id": document.get("userId")})
    return {"document": serialize_document(document), "user": serialize_document(user)}


async def approve_kyc_document(
    document_id: str,
    admin_id: str,
    notes: str = "",
    id_token: Optional[str] = None
) -> Any:
    """Calls approveKycDocument {documentId, notes}."""
    with LogContext(admin_id=admin_id, document_id=document_id):
        result = await get_functions_service().call(
            FN_APPROVE_KYC,
            {"documentId": document_id, "notes": notes or ""},
            id_token=id_token
        )
        logger.info("KYC document approved", extra={"document_id": document_id, "admin_id": admin_id})
        return result


async def reject_kyc_document(
    document_id: str,
    admin_id: str,
    rejection_reason: str,
    id_token: Optional[str] = None
) -> Any:
    """Calls rejectKycDocument {documentId, rejectionReason}."""
    if not rejection_reason or not rejection_reason.strip():
        raise ValidationError("Rejection reason is required")

    with LogContext(admin_id=admin_id, document_id=document_id):
        result = await get_functions_service().call(
            FN_REJECT_KYC,
            {"documentId": document_id, "rejectionReason": rejection_reason.strip()},
            id_token=id_token
        )
        logger.info("KYC document rejected", extra={"document_id": document_id, "admin_id": admin_id})
        return result


# ============================================================
# WALLETS
# ============================================================

async def get_all_wallets(page_size: Optional[int] = None, cursor: Optional[str] = None) -> Dict[str, Any]:
    wallets, last_visible, has_more = await fetch_page(
        get_collection(WALLETS_COLLECTION), {}, "updatedAt", DESCENDING, page_size, cursor
    )
    return {
        "wallets": await _attach_users(wallets),
        "last_visible": last_visible,
        "has_more": has_more,
    }


async def adjust_wallet_balance(
    wallet_id: str,
    amount: float,
    reason: str,
    admin_id: str,
    id_token: Optional[str] = None
) -> Any:
    """
    Calls adjustWalletBalance {walletId, amount, reason, adminId}.
    The amount may be negative.
    """
    if not amount:
        raise ValidationError("Adjustment amount must be non-zero")
    if not reason or not reason.strip():
        raise ValidationError("Adjustment reason is required")

    with LogContext(admin_id=admin_id, wallet_id=wallet_id):
        result = await get_functions_service().call(
            FN_ADJUST_BALANCE,
            {"walletId": wallet_id, "amount": amount, "reason": reason.strip(), "adminId": admin_id},
            id_token=id_token
        )
        logger.info(f"Wallet balance adjusted by {amount}", extra={"wallet_id": wallet_id, "admin_id": admin_id})
        return result


# ============================================================
# TRANSACTIONS
# ============================================================

async def get_all_transactions(
    page_size: Optional[int] = None,
    cursor: Optional[str] = None,
    status: Optional[str] = None,
    transaction_type: Optional[str] = None,
    user_id: Optional[str] = None
) -> Dict[str, Any]:
    """
    Lists transactions newest first.

    With `user_id`, sent and received pages are fetched separately and
    merged; `has_more` then means the merge overflowed the page.
    """
    filters: Dict[str, Any] = {}
    if status:
        filters["status"] = require_choice(status, TRANSACTION_STATUSES, "status")
    if transaction_type:
        filters["type"] = transaction_type

    if not user_id:
        transactions, last_visible, has_more = await fetch_page(
            get_collection(TRANSACTIONS_COLLECTION), filters, "createdAt", DESCENDING, page_size, cursor
        )
        return {"transactions": transactions, "last_visible": last_visible, "has_more": has_more}

    page_size = resolve_page_size(page_size)
    after = start_after_filter("createdAt", DESCENDING, cursor)
    if after:
        filters = {"$and": [filters, after]} if filters else after

    sent, received = await user_service.query_user_transactions(user_id, filters, page_size)
    merged = user_service.merge_transactions(sent, received, tag_direction=False)

    page = merged[:page_size]
    return {
        "transactions": page,
        "last_visible": encode_cursor(page[-1], "createdAt") if page else None,
        "has_more": len(merged) > page_size,
    }


async def get_transaction_details(transaction_id: str) -> Dict[str, Any]:
    """
    Transaction with sender/recipient summaries and its activity log.
    """
    transaction = await user_service.get_transaction_by_id(transaction_id)

    summaries, activities = await asyncio.gather(
        get_user_summaries([transaction.get("senderUserId"), transaction.get("recipientUserId")]),
        get_collection(TRANSACTION_ACTIVITIES_COLLECTION)
        .find({"transactionId": transaction_id})
        .sort("timestamp", ASCENDING)
        .to_list(length=None),
    )

    return {
        "transaction": transaction,
        "sender": summaries.get(transaction.get("senderUserId")),
        "recipient": summaries.get(transaction.get("recipientUserId")),
        "activities": serialize_documents(activities),
    }


# ============================================================
# DASHBOARD
# ============================================================

async def _count_by(collection_name: str, field: str) -> Dict[str, int]:
    pipeline = [{"$group": {"_id": f"${field}", "count": {"$sum": 1}}}]
    rows = await get_collection(collection_name).aggregate(pipeline).to_list(length=None)
    return {str(row["_id"]) if row["_id"] is not None else "unknown": row["count"] for row in rows}


async def _transaction_totals() -> Dict[str, Any]:
    pipeline = [
        {"$group": {
            "_id": "$status",
            "count": {"$sum": 1},
            "volume": {"$sum": {"$ifNull": ["$amount", 0]}},
            "revenue": {"$sum": {"$ifNull": ["$fee", 0]}},
        }}
    ]
    rows = await get_collection(TRANSACTIONS_COLLECTION).aggregate(pipeline).to_list(length=None)

    return {
        "by_status": {str(row["_id"]): row["count"] for row in rows},
        "total": sum(row["count"] for row in rows),
        "total_volume": sum(row["volume"] for row in rows),
        "total_revenue": sum(row["revenue"] for row in rows),
    }


async def get_dashboard_stats() -> Dict[str, Any]:
    """
    Counts for the admin dashboard.
    """
    users_by_account, users_by_kyc, transactions, kyc_by_status = await asyncio.gather(
        _count_by(USERS_COLLECTION, "accountStatus"),
        _count_by(USERS_COLLECTION, "kycStatus"),
        _transaction_totals(),
        _count_by(KYC_DOCUMENTS_COLLECTION, "status"),
    )

    return {
        "users": {
            "total": sum(users_by_account.values()),
            "by_account_status": users_by_account,
            "by_kyc_status": users_by_kyc,
        },
        "transactions": transactions,
        "kyc_documents": {
            "total": sum(kyc_by_status.values()),
            "by_status": kyc_by_status,
            "pending": kyc_by_status.get("pending", 0),
        },
    }
