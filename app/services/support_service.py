"""
app/services/support_service.py

Purpose: Support tickets for users and admins

- Ticket creation with an initial message
- Ticket listing (per user, and paginated for admins)
- Message threads and attachments
- Status changes and assignment
"""

from datetime import datetime
from typing import Optional, Dict, Any, List

from app.core.exceptions import ResourceNotFoundError, ValidationError
from app.core.logging import get_logger, LogContext
from app.db.mongo import get_collection, new_document_id, serialize_document, serialize_documents
from app.db.pagination import ASCENDING, DESCENDING, fetch_page
from app.db.storage import get_storage
from app.services.admin_service import get_user_summaries
from utils.constants import (
    SUPPORT_TICKETS_COLLECTION,
    TICKET_MESSAGES_COLLECTION,
    USERS_COLLECTION,
    SUPPORT_ATTACHMENTS_PREFIX,
    TICKET_STATUSES,
    TICKET_CATEGORIES,
    TICKET_STATUS_ALL,
    DEFAULT_TICKET_PRIORITY,
    ATTACHMENT_MESSAGE,
    UNKNOWN_USER_NAME,
    TICKET_STATUS_CHANGED_MESSAGE,
    ERROR_SUBJECT_REQUIRED,
    ERROR_MESSAGE_REQUIRED,
)
from utils.time_utils import epoch_millis
from utils.validation_utils import require_choice, sanitize_filename

logger = get_logger(__name__)


# ============================================================
# TICKETS
# ============================================================

async def create_support_ticket(user_id: str, subject: str, message: str, category: str) -> Dict[str, str]:
    """
    Opens a ticket and posts the user's first message.

    Returns:
        {"ticket_id": ...}
    """
    require_choice(category, TICKET_CATEGORIES, "category")
    now = datetime.utcnow()
    ticket_id = new_document_id()

    with LogContext(user_id=user_id, ticket_id=ticket_id):
        await get_collection(SUPPORT_TICKETS_COLLECTION).insert_one({
            "_id": ticket_id,
            "ticketId": ticket_id,
            "userId": user_id,
            "subject": subject,
            "status": "open",
            "priority": DEFAULT_TICKET_PRIORITY,
            "category": category,
            "createdAt": now,
            "updatedAt": now,
        })

        await _insert_message(ticket_id, user_id, message, [], is_admin=False)

        logger.info("Support ticket created", extra={"user_id": user_id, "ticket_id": ticket_id})
        return {"ticket_id": ticket_id}


async def submit_support_request(
    user_id: str,
    subject: Optional[str],
    message: Optional[str],
    category: str,
    attachment: Optional[bytes] = None,
    attachment_name: Optional[str] = None,
    attachment_type: Optional[str] = None
) -> Dict[str, Any]:
    """
    Contact-support flow: validates input, uploads the optional attachment,
    opens the ticket and posts the attachment as a follow-up message.
    """
    if not subject or not subject.strip():
        raise ValidationError(ERROR_SUBJECT_REQUIRED)
    if not message or not message.strip():
        raise ValidationError(ERROR_MESSAGE_REQUIRED)
    require_choice(category, TICKET_CATEGORIES, "category")

    attachment_url = None
    if attachment:
        # The ticket does not exist yet, so the file goes under a temporary id
        attachment_url = await upload_ticket_attachment(
            f"temp-{epoch_millis()}", user_id, attachment, attachment_name, attachment_type
        )

    result = await create_support_ticket(user_id, subject.strip(), message.strip(), category)

    if attachment_url:
        await add_ticket_message(result["ticket_id"], user_id, ATTACHMENT_MESSAGE, [attachment_url])

    return {**result, "attachment_url": attachment_url}


async def get_user_support_tickets(user_id: str) -> List[Dict[str, Any]]:
    tickets = await (
        get_collection(SUPPORT_TICKETS_COLLECTION)
        .find({"userId": user_id})
        .sort("updatedAt", DESCENDING)
        .to_list(length=None)
    )
    return serialize_documents(tickets)


async def get_support_ticket_by_id(ticket_id: str) -> Dict[str, Any]:
    ticket = await get_collection(SUPPORT_TICKETS_COLLECTION).find_one({"_id": ticket_id})
    if not ticket:
        raise ResourceNotFoundError("Ticket not found", details={"ticket_id": ticket_id})
    return serialize_document(ticket)


async def _touch_ticket(ticket_id: str, **fields: Any) -> None:
    result = await get_collection(SUPPORT_TICKETS_COLLECTION).update_one(
        {"_id": ticket_id},
        {"$set": {**fields, "updatedAt": datetime.utcnow()}}
    )
    if result.matched_count == 0:
        raise ResourceNotFoundError("Ticket not found", details={"ticket_id": ticket_id})


# ============================================================
# MESSAGES
# ============================================================

async def _insert_message(
    ticket_id: str,
    sender_id: str,
    content: str,
    attachments: List[str],
    is_admin: bool
) -> str:
    message_id = new_document_id()
    await get_collection(TICKET_MESSAGES_COLLECTION).insert_one({
        "_id": message_id,
        "messageId": message_id,
        "ticketId": ticket_id,
        "senderId": sender_id,
        "isAdmin": is_admin,
        "content": content,
        "attachments": list(attachments or []),
        "createdAt": datetime.utcnow(),
        "isRead": False,
    })
    return message_id


async def get_ticket_messages(ticket_id: str) -> List[Dict[str, Any]]:
    """Messages of a ticket, oldest first."""
    messages = await (
        get_collection(TICKET_MESSAGES_COLLECTION)
        .find({"ticketId": ticket_id})
        .sort("createdAt", ASCENDING)
        .to_list(length=None)
    )
    return serialize_documents(messages)


async def add_ticket_message(
    ticket_id: str,
    sender_id: str,
    message: str,
    attachments: Optional[List[str]] = None,
    is_admin: bool = False
) -> Dict[str, str]:
    """
    Posts a message and bumps the ticket's `updatedAt`.

    Returns:
        {"message_id": ...}
    """
    if not message or not message.strip():
        raise ValidationError(ERROR_MESSAGE_REQUIRED)

    with LogContext(ticket_id=ticket_id):
        await _touch_ticket(ticket_id)
        message_id = await _insert_message(ticket_id, sender_id, message, attachments or [], is_admin)

        logger.info(
            f"Ticket message added ({'admin' if is_admin else 'user'})",
            extra={"ticket_id": ticket_id}
        )
        return {"message_id": message_id}


async def upload_ticket_attachment(
    ticket_id: str,
    user_id: str,
    content: bytes,
    filename: Optional[str] = None,
    content_type: Optional[str] = None
) -> str:
    """
    Stores a ticket attachment.

    Returns:
        Download URL
    """
    path = f"{SUPPORT_ATTACHMENTS_PREFIX}/{ticket_id}/{epoch_millis()}_{sanitize_filename(filename, 'attachment')}"
    return await get_storage().upload_bytes(
        path, content, content_type, {"ticketId": ticket_id, "userId": user_id}
    )


# ============================================================
# ADMIN
# ============================================================

async def get_support_tickets(
    status: str = TICKET_STATUS_ALL,
    page_size: Optional[int] = None,
    cursor: Optional[str] = None
) -> Dict[str, Any]:
    """
    Admin ticket queue by most recent activity, with user summaries.
    """
    filters: Dict[str, Any] = {}
    if status and status != TICKET_STATUS_ALL:
        filters["status"] = require_choice(status, TICKET_STATUSES, "ticket status")

    tickets, last_visible, has_more = await fetch_page(
        get_collection(SUPPORT_TICKETS_COLLECTION), filters, "updatedAt", DESCENDING, page_size, cursor
    )

    summaries = await get_user_summaries(ticket.get("userId") for ticket in tickets)
    for ticket in tickets:
        summary = summaries.get(ticket.get("userId"))
        if summary:
            ticket["user"] = {key: summary[key] for key in ("id", "displayName", "email")}
        else:
            ticket["user"] = {"id": ticket.get("userId"), "displayName": UNKNOWN_USER_NAME, "email": ""}

    return {"tickets": tickets, "last_visible": last_visible, "has_more": has_more}


async def get_support_ticket_details(ticket_id: str) -> Dict[str, Any]:
    ticket = await get_support_ticket_by_id(ticket_id)
    user = await get_collection(USERS_COLLECTION).find_one({"_id": ticket.get("userId")})

    return {
        "ticket": ticket,
        "user": serialize_document(user),
        "messages": await get_ticket_messages(ticket_id),
    }


async def update_ticket_status(ticket_id: str, status: str, admin_id: str) -> Dict[str, Any]:
    """
    Changes ticket status and records the change in the thread.
    """
    require_choice(status, TICKET_STATUSES, "ticket status")

    with LogContext(ticket_id=ticket_id, admin_id=admin_id):
        fields: Dict[str, Any] = {"status": status}
        if status == "resolved":
            fields["resolvedAt"] = datetime.utcnow()

        await _touch_ticket(ticket_id, **fields)
        await _insert_message(
            ticket_id,
            admin_id,
            TICKET_STATUS_CHANGED_MESSAGE.format(status=status),
            [],
            is_admin=True
        )

        logger.info(f"Ticket status changed to {status}", extra={"ticket_id": ticket_id, "admin_id": admin_id})
        return {"success": True}


async def assign_ticket(ticket_id: str, admin_id: str) -> Dict[str, Any]:
    await _touch_ticket(ticket_id, assignedTo=admin_id)
    logger.info("Ticket assigned", extra={"ticket_id": ticket_id, "admin_id": admin_id})
    return {"success": True}
