"""
app/services/user_service.py

Purpose: End-user data management

- Profile reads/updates and profile image upload
- KYC document upload and status
- Wallet reads and funding calls
- Transaction history (sent + received merge), send/request money
- Notifications
- Two-factor preference
"""

import asyncio
from datetime import datetime
from typing import Optional, Dict, Any, List

from pymongo import DESCENDING

from app.core.config import settings
from app.core.exceptions import (
    AuthorizationError,
    ResourceNotFoundError,
    ValidationError,
)
from app.core.logging import get_logger, LogContext
from app.db.mongo import get_collection, new_document_id, serialize_document, serialize_documents
from app.db.storage import get_storage
from app.services.functions_service import get_functions_service
from utils.constants import (
    USERS_COLLECTION,
    WALLETS_COLLECTION,
    TRANSACTIONS_COLLECTION,
    KYC_DOCUMENTS_COLLECTION,
    NOTIFICATIONS_COLLECTION,
    PROFILE_IMAGES_PREFIX,
    KYC_DOCUMENTS_PREFIX,
    KYC_DOCUMENT_TYPES,
    KYC_STATUS_PENDING,
    TRANSACTION_DIRECTION_SENT,
    TRANSACTION_DIRECTION_RECEIVED,
    TRANSACTION_STATUSES,
    TRANSACTION_DATE_RANGES,
    TWO_FACTOR_METHODS,
    FN_ADD_FUNDS,
    FN_WITHDRAW_FUNDS,
    FN_CREATE_TRANSACTION,
    FN_REQUEST_MONEY,
    FN_MARK_ALL_NOTIFICATIONS_READ,
    ERROR_SELECT_WALLET,
    ERROR_RECIPIENT_EMAIL,
    ERROR_INVALID_AMOUNT,
)
from utils.time_utils import epoch_millis, is_within_date_range
from utils.validation_utils import parse_amount, require_choice, sanitize_filename

logger = get_logger(__name__)


# ============================================================
# PROFILE
# ============================================================

async def get_user_profile(user_id: str) -> Dict[str, Any]:
    """
    Retrieves a user profile.

    Raises:
        ResourceNotFoundError: If the user document does not exist
    """
    user = await get_collection(USERS_COLLECTION).find_one({"_id": user_id})
    if not user:
        raise ResourceNotFoundError("User not found", details={"user_id": user_id})
    return serialize_document(user)


async def update_user_profile(user_id: str, profile_data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Updates profile fields and stamps `updatedAt`.
    """
    with LogContext(user_id=user_id):
        result = await get_collection(USERS_COLLECTION).update_one(
            {"_id": user_id},
            {"$set": {**profile_data, "updatedAt": datetime.utcnow()}}
        )

        if result.matched_count == 0:
            raise ResourceNotFoundError("User not found", details={"user_id": user_id})

        logger.info("Profile updated", extra={"user_id": user_id, "fields": sorted(profile_data)})
        return {"success": True}


async def upload_profile_image(
    user_id: str,
    content: bytes,
    filename: Optional[str],
    content_type: Optional[str] = None
) -> str:
    """
    Stores a new profile image and points the profile at it.

    Returns:
        Download URL of the uploaded image
    """
    path = f"{PROFILE_IMAGES_PREFIX}/{user_id}/{epoch_millis()}_{sanitize_filename(filename, 'image')}"
    download_url = await get_storage().upload_bytes(path, content, content_type, {"userId": user_id})

    await update_user_profile(user_id, {"profileImageUrl": download_url})
    return download_url


# ============================================================
# TWO-FACTOR PREFERENCE
# ============================================================

async def enroll_two_factor(user_id: str, method: str) -> Dict[str, Any]:
    """
    Records the user's chosen second factor. Enforcement belongs to the
    authentication provider.
    """
    require_choice(method, TWO_FACTOR_METHODS, "two-factor method")
    await update_user_profile(user_id, {
        "twoFactor": {"enabled": True, "method": method, "enrolledAt": datetime.utcnow()}
    })
    logger.info(f"Two-factor enrolled with method {method}", extra={"user_id": user_id})
    return {"success": True, "method": method}


async def disable_two_factor(user_id: str) -> Dict[str, Any]:
    await update_user_profile(user_id, {"twoFactor": {"enabled": False, "method": None}})
    logger.info("Two-factor disabled", extra={"user_id": user_id})
    return {"success": True}


# ============================================================
# KYC DOCUMENTS
# ============================================================

async def upload_kyc_document(
    user_id: str,
    document_type: str,
    content: bytes,
    filename: Optional[str] = None,
    content_type: Optional[str] = None,
    metadata: Optional[Dict[str, Any]] = None
) -> Dict[str, str]:
    """
    Uploads a KYC document file and creates its pending review record.

    Args:
        user_id: Owner
        document_type: id_card, passport, driver_license or selfie
        content: File bytes
        filename: Original filename (kept for reference)
        content_type: MIME type
        metadata: documentNumber, expiryDate, issuingCountry, ...

    Returns:
        {"document_id": ..., "document_url": ...}
    """
    require_choice(document_type, KYC_DOCUMENT_TYPES, "document type")
    metadata = metadata or {}

    with LogContext(user_id=user_id):
        path = f"{KYC_DOCUMENTS_PREFIX}/{user_id}/{document_type}_{epoch_millis()}"
        document_url = await get_storage().upload_bytes(
            path, content, content_type, {"userId": user_id, "documentType": document_type}
        )

        document_id = new_document_id()
        record = {
            "_id": document_id,
            "documentId": document_id,
            "userId": user_id,
            "type": document_type,
            "status": "pending",
            "documentUrl": document_url,
            "documentNumber": metadata.get("documentNumber") or "",
            "expiryDate": metadata.get("expiryDate"),
            "issuingCountry": metadata.get("issuingCountry") or "",
            "fileName": filename,
            "submittedAt": datetime.utcnow(),
        }
        # Extra metadata is stored alongside, without overriding identity fields
        for key, value in metadata.items():
            record.setdefault(key, value)

        await get_collection(KYC_DOCUMENTS_COLLECTION).insert_one(record)

        logger.info(
            f"KYC document uploaded ({document_type})",
            extra={"user_id": user_id, "document_id": document_id}
        )
        return {"document_id": document_id, "document_url": document_url}


async def get_kyc_documents(user_id: str) -> List[Dict[str, Any]]:
    """Returns the user's KYC documents, newest first."""
    documents = await (
        get_collection(KYC_DOCUMENTS_COLLECTION)
        .find({"userId": user_id})
        .sort("submittedAt", DESCENDING)
        .to_list(length=None)
    )
    return serialize_documents(documents)


async def get_kyc_status(user_id: str) -> Dict[str, Any]:
    """
    Returns {"kyc_status", "kyc_verified_at"}; status defaults to pending.
    """
    user = await get_user_profile(user_id)
    return {
        "kyc_status": user.get("kycStatus") or KYC_STATUS_PENDING,
        "kyc_verified_at": user.get("kycVerifiedAt"),
    }


# ============================================================
# WALLETS
# ============================================================

async def get_user_wallets(user_id: str) -> List[Dict[str, Any]]:
    documents = await get_collection(WALLETS_COLLECTION).find({"userId": user_id}).to_list(length=None)
    return serialize_documents(documents)


async def get_wallet_by_id(wallet_id: str) -> Dict[str, Any]:
    wallet = await get_collection(WALLETS_COLLECTION).find_one({"_id": wallet_id})
    if not wallet:
        raise ResourceNotFoundError("Wallet not found", details={"wallet_id": wallet_id})
    return serialize_document(wallet)


async def get_owned_wallet(user_id: str, wallet_id: str) -> Dict[str, Any]:
    """
    Fetches a wallet and checks it belongs to the user.

    Raises:
        AuthorizationError: If the wallet belongs to someone else
    """
    wallet = await get_wallet_by_id(wallet_id)
    if wallet.get("userId") != user_id:
        logger.warning("Wallet ownership check failed", extra={"user_id": user_id, "wallet_id": wallet_id})
        raise AuthorizationError("Wallet does not belong to this user")
    return wallet


async def add_funds_to_wallet(wallet_id: str, amount: Any, id_token: Optional[str] = None) -> Any:
    """Calls addFundsToWallet {walletId, amount}."""
    parsed = parse_amount(amount)
    if parsed is None:
        raise ValidationError(ERROR_INVALID_AMOUNT)

    return await get_functions_service().call(
        FN_ADD_FUNDS,
        {"walletId": wallet_id, "amount": parsed},
        id_token=id_token
    )


async def withdraw_funds_from_wallet(
    wallet_id: str,
    amount: Any,
    bank_details: Dict[str, Any],
    id_token: Optional[str] = None
) -> Any:
    """Calls withdrawFundsFromWallet {walletId, amount, bankDetails}."""
    parsed = parse_amount(amount)
    if parsed is None:
        raise ValidationError(ERROR_INVALID_AMOUNT)

    return await get_functions_service().call(
        FN_WITHDRAW_FUNDS,
        {"walletId": wallet_id, "amount": parsed, "bankDetails": bank_details},
        id_token=id_token
    )


# ============================================================
# TRANSACTIONS
# ============================================================

def _transaction_sort_key(transaction: Dict[str, Any]) -> tuple:
    # Same order as the queries: createdAt then _id, both descending
    return (transaction.get("createdAt") or datetime.min, transaction["id"])


def merge_transactions(
    sent: List[Dict[str, Any]],
    received: List[Dict[str, Any]],
    tag_direction: bool = True
) -> List[Dict[str, Any]]:
    """
    Combines sent and received transactions, newest first.
    A transaction seen in both lists (self transfer) is kept once.
    """
    merged: List[Dict[str, Any]] = []
    seen = set()

    for direction, items in ((TRANSACTION_DIRECTION_SENT, sent), (TRANSACTION_DIRECTION_RECEIVED, received)):
        for item in items:
            if item["id"] in seen:
                continue
            seen.add(item["id"])
            merged.append({**item, "direction": direction} if tag_direction else item)

    merged.sort(key=_transaction_sort_key, reverse=True)
    return merged


async def query_user_transactions(
    user_id: str,
    filters: Optional[Dict[str, Any]] = None,
    limit: Optional[int] = None
) -> tuple:
    """
    Runs the sent and received queries concurrently.

    Returns:
        (sent, received) serialized document lists
    """
    filters = filters or {}
    collection = get_collection(TRANSACTIONS_COLLECTION)

    def build(field: str):
        cursor = collection.find({field: user_id, **filters}).sort([("createdAt", DESCENDING), ("_id", DESCENDING)])
        if limit:
            cursor = cursor.limit(limit)
        return cursor.to_list(length=limit)

    sent, received = await asyncio.gather(build("senderUserId"), build("recipientUserId"))
    return serialize_documents(sent), serialize_documents(received)


async def get_user_transactions(
    user_id: str,
    status: Optional[str] = None,
    limit: Optional[int] = None
) -> List[Dict[str, Any]]:
    """
    Retrieves the user's transactions in both directions, tagged with
    `direction`, newest first. The limit applies to the merged list.
    """
    filters = {}
    if status and status != "all":
        filters["status"] = require_choice(status, TRANSACTION_STATUSES, "status")

    try:
        sent, received = await query_user_transactions(user_id, filters, limit)
    except Exception as e:
        logger.error(f"Error getting user transactions: {e}", extra={"user_id": user_id})
        raise

    transactions = merge_transactions(sent, received)
    if limit and len(transactions) > limit:
        return transactions[:limit]
    return transactions


def filter_transactions(
    transactions: List[Dict[str, Any]],
    status: str = "all",
    direction: str = "all",
    date_range: str = "all",
    search: Optional[str] = None,
    now: Optional[datetime] = None
) -> List[Dict[str, Any]]:
    """
    Applies the transaction history filters.

    Args:
        transactions: Direction-tagged transactions
        status: "all" or a transaction status
        direction: "all", "sent" or "received"
        date_range: "all", "today", "week" or "month"
        search: Case-insensitive match on description or id
    """
    require_choice(date_range, TRANSACTION_DATE_RANGES, "date range")
    query = search.lower() if search else None

    def keep(transaction: Dict[str, Any]) -> bool:
        if status != "all" and transaction.get("status") != status:
            return False
        if direction != "all" and transaction.get("direction") != direction:
            return False
        if not is_within_date_range(transaction.get("createdAt"), date_range, now):
            return False
        if query:
            description = (transaction.get("description") or "").lower()
            return query in description or query in str(transaction.get("id", "")).lower()
        return True

    return [t for t in transactions if keep(t)]


async def get_transaction_by_id(transaction_id: str) -> Dict[str, Any]:
    transaction = await get_collection(TRANSACTIONS_COLLECTION).find_one({"_id": transaction_id})
    if not transaction:
        raise ResourceNotFoundError("Transaction not found", details={"transaction_id": transaction_id})
    return serialize_document(transaction)


async def find_user_by_email(email: str) -> Optional[Dict[str, Any]]:
    user = await get_collection(USERS_COLLECTION).find_one({"email": email.strip()})
    return serialize_document(user)


async def send_money(
    sender_user_id: str,
    wallet_id: Optional[str],
    recipient_email: Optional[str],
    amount: Any,
    description: str = "",
    id_token: Optional[str] = None
) -> Any:
    """
    Sends money to another user through createTransaction.

    The sender's wallet must belong to them; the recipient is resolved by
    email. The function is sent {recipientUserId, amount, description} and
    identifies the sender from the caller's token.

    Returns:
        Function result (contains transactionId)
    """
    if not wallet_id:
        raise ValidationError(ERROR_SELECT_WALLET)
    if not recipient_email:
        raise ValidationError(ERROR_RECIPIENT_EMAIL)

    parsed = parse_amount(amount)
    if parsed is None:
        raise ValidationError(ERROR_INVALID_AMOUNT)

    with LogContext(user_id=sender_user_id, wallet_id=wallet_id):
        await get_owned_wallet(sender_user_id, wallet_id)

        recipient = await find_user_by_email(recipient_email)
        if not recipient:
            raise ResourceNotFoundError("Recipient not found", details={"email": recipient_email})

        try:
            result = await get_functions_service().call(
                FN_CREATE_TRANSACTION,
                {
                    "recipientUserId": recipient["id"],
                    "amount": parsed,
                    "description": description or "",
                },
                id_token=id_token
            )
        except Exception as e:
            logger.error(f"Error sending money: {e}", extra={"user_id": sender_user_id})
            raise

        logger.info("Money sent", extra={"user_id": sender_user_id})
        return result


async def request_money(
    requester_id: str,
    requestee_id: str,
    amount: Any,
    description: str = "",
    id_token: Optional[str] = None
) -> Any:
    """Calls requestMoney {requesteeId, amount, description}."""
    parsed = parse_amount(amount)
    if parsed is None:
        raise ValidationError(ERROR_INVALID_AMOUNT)

    with LogContext(user_id=requester_id):
        return await get_functions_service().call(
            FN_REQUEST_MONEY,
            {"requesteeId": requestee_id, "amount": parsed, "description": description or ""},
            id_token=id_token
        )


# ============================================================
# NOTIFICATIONS
# ============================================================

async def get_user_notifications(user_id: str, unread_only: bool = False) -> List[Dict[str, Any]]:
    query: Dict[str, Any] = {"userId": user_id}
    if unread_only:
        query["isRead"] = False

    documents = await (
        get_collection(NOTIFICATIONS_COLLECTION)
        .find(query)
        .sort("createdAt", DESCENDING)
        .to_list(length=None)
    )
    return serialize_documents(documents)


async def mark_notification_as_read(notification_id: str, user_id: str) -> Dict[str, Any]:
    result = await get_collection(NOTIFICATIONS_COLLECTION).update_one(
        {"_id": notification_id, "userId": user_id},
        {"$set": {"isRead": True, "readAt": datetime.utcnow()}}
    )
    if result.matched_count == 0:
        raise ResourceNotFoundError("Notification not found", details={"notification_id": notification_id})
    return {"success": True}


async def mark_all_notifications_as_read(user_id: str, id_token: Optional[str] = None) -> Any:
    """Calls markAllNotificationsAsRead {userId}."""
    return await get_functions_service().call(
        FN_MARK_ALL_NOTIFICATIONS_READ,
        {"userId": user_id},
        id_token=id_token
    )


# ============================================================
# DASHBOARD
# ============================================================

async def get_dashboard(user_id: str, recent_limit: Optional[int] = None) -> Dict[str, Any]:
    """
    Wallets, most recent transactions and unread notifications.
    """
    wallets, transactions, notifications = await asyncio.gather(
        get_user_wallets(user_id),
        get_user_transactions(user_id, limit=recent_limit or settings.RECENT_TRANSACTIONS_LIMIT),
        get_user_notifications(user_id, unread_only=True),
    )
    return {
        "wallets": wallets,
        "recent_transactions": transactions,
        "unread_notifications": notifications,
    }
