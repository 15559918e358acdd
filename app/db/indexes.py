"""
app/db/indexes.py

Purpose: Database index management

- Creates the indexes every listing and lookup query relies on
- Unique lookups (user email)
- Compound indexes matching (filter, sort, _id) listing shapes
"""

from pymongo import ASCENDING, DESCENDING

from app.db.mongo import get_collection
from app.core.logging import get_logger
from utils.constants import (
    USERS_COLLECTION,
    WALLETS_COLLECTION,
    TRANSACTIONS_COLLECTION,
    TRANSACTION_ACTIVITIES_COLLECTION,
    KYC_DOCUMENTS_COLLECTION,
    NOTIFICATIONS_COLLECTION,
    SUPPORT_TICKETS_COLLECTION,
    TICKET_MESSAGES_COLLECTION,
    FAQ_ITEMS_COLLECTION,
)

logger = get_logger(__name__)


# collection -> [(keys, options)]
INDEXES = {
    USERS_COLLECTION: [
        ([("email", ASCENDING)], {"name": "email_idx"}),
        ([("createdAt", DESCENDING), ("_id", DESCENDING)], {"name": "created_idx"}),
        ([("kycStatus", ASCENDING), ("createdAt", DESCENDING)], {"name": "kyc_status_created_idx"}),
        ([("accountStatus", ASCENDING), ("createdAt", DESCENDING)], {"name": "account_status_created_idx"}),
    ],
    WALLETS_COLLECTION: [
        ([("userId", ASCENDING)], {"name": "wallet_user_idx"}),
        ([("updatedAt", DESCENDING), ("_id", DESCENDING)], {"name": "wallet_updated_idx"}),
    ],
    TRANSACTIONS_COLLECTION: [
        ([("senderUserId", ASCENDING), ("createdAt", DESCENDING)], {"name": "sender_created_idx"}),
        ([("recipientUserId", ASCENDING), ("createdAt", DESCENDING)], {"name": "recipient_created_idx"}),
        ([("status", ASCENDING), ("createdAt", DESCENDING)], {"name": "status_created_idx"}),
        ([("type", ASCENDING), ("createdAt", DESCENDING)], {"name": "type_created_idx"}),
        ([("createdAt", DESCENDING), ("_id", DESCENDING)], {"name": "transaction_created_idx"}),
    ],
    TRANSACTION_ACTIVITIES_COLLECTION: [
        ([("transactionId", ASCENDING), ("timestamp", ASCENDING)], {"name": "activity_transaction_idx"}),
    ],
    KYC_DOCUMENTS_COLLECTION: [
        ([("userId", ASCENDING), ("submittedAt", DESCENDING)], {"name": "kyc_user_submitted_idx"}),
        ([("status", ASCENDING), ("submittedAt", ASCENDING), ("_id", ASCENDING)], {"name": "kyc_status_submitted_idx"}),
    ],
    NOTIFICATIONS_COLLECTION: [
        ([("userId", ASCENDING), ("isRead", ASCENDING), ("createdAt", DESCENDING)], {"name": "notification_user_idx"}),
    ],
    SUPPORT_TICKETS_COLLECTION: [
        ([("userId", ASCENDING), ("updatedAt", DESCENDING)], {"name": "ticket_user_updated_idx"}),
        ([("status", ASCENDING), ("updatedAt", DESCENDING)], {"name": "ticket_status_updated_idx"}),
        ([("updatedAt", DESCENDING), ("_id", DESCENDING)], {"name": "ticket_updated_idx"}),
    ],
    TICKET_MESSAGES_COLLECTION: [
        ([("ticketId", ASCENDING), ("createdAt", ASCENDING)], {"name": "message_ticket_idx"}),
    ],
    FAQ_ITEMS_COLLECTION: [
        ([("order", ASCENDING)], {"name": "faq_order_idx"}),
    ],
}


async def create_indexes():
    """
    Creates all necessary database indexes.
    This function is idempotent - safe to run multiple times.
    """
    try:
        logger.info("Creating database indexes...")

        for collection_name, index_specs in INDEXES.items():
            collection = get_collection(collection_name)
            for keys, options in index_specs:
                await collection.create_index(keys, **options)
                logger.debug(f"Created index {options['name']} on {collection_name}")

        logger.info(
            f"All database indexes created successfully "
            f"({sum(len(v) for v in INDEXES.values())} indexes)"
        )

    except Exception as e:
        logger.error(f"Failed to create indexes: {str(e)}", exc_info=True)
        raise
