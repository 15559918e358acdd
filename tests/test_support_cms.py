from datetime import datetime
from types import SimpleNamespace

import pytest

from app.core.exceptions import ResourceNotFoundError, ValidationError
from app.services import cms_service, support_service


# ============================================================
# SUPPORT
# ============================================================

@pytest.mark.asyncio
async def test_create_ticket_posts_first_message(db):
    result = await support_service.create_support_ticket("u1", "Card declined", "My top-up failed", "payment")

    ticket = db.get("support_tickets").insert_one.call_args.args[0]
    assert ticket["_id"] == result["ticket_id"]
    assert ticket["status"] == "open"
    assert ticket["priority"] == "medium"

    message = db.get("ticket_messages").insert_one.call_args.args[0]
    assert message["ticketId"] == result["ticket_id"]
    assert message["content"] == "My top-up failed"
    assert message["isAdmin"] is False


@pytest.mark.asyncio
async def test_submit_request_with_attachment(db, storage):
    result = await support_service.submit_support_request(
        "u1", " Card declined ", " Please help ", "payment",
        attachment=b"receipt", attachment_name="receipt.pdf", attachment_type="application/pdf"
    )

    path = storage.upload_bytes.call_args.args[0]
    assert path.startswith("support_attachments/temp-")
    assert path.endswith("_receipt.pdf")

    ticket = db.get("support_tickets").insert_one.call_args.args[0]
    assert ticket["subject"] == "Card declined"

    messages = [call.args[0] for call in db.get("ticket_messages").insert_one.call_args_list]
    assert [m["content"] for m in messages] == ["Please help", "Attachment for this ticket:"]
    assert messages[1]["attachments"] == ["http://files.test/object?token=abc"]
    assert result["attachment_url"] == "http://files.test/object?token=abc"


@pytest.mark.asyncio
async def test_submit_request_without_attachment(db, storage):
    result = await support_service.submit_support_request("u1", "Login", "Cannot sign in", "account")

    storage.upload_bytes.assert_not_called()
    assert db.get("ticket_messages").insert_one.call_count == 1
    assert result["attachment_url"] is None


@pytest.mark.asyncio
@pytest.mark.parametrize("subject,message,expected", [
    ("", "body", "Please enter a subject"),
    ("Subject", "  ", "Please enter a message"),
])
async def test_submit_request_validation(db, storage, subject, message, expected):
    with pytest.raises(ValidationError) as exc:
        await support_service.submit_support_request("u1", subject, message, "other", attachment=b"x")

    assert exc.value.message == expected
    storage.upload_bytes.assert_not_called()


@pytest.mark.asyncio
async def test_unknown_category_rejected_before_upload(db, storage):
    with pytest.raises(ValidationError):
        await support_service.submit_support_request("u1", "Help", "body", "billing", attachment=b"x")

    storage.upload_bytes.assert_not_called()
    db.get("support_tickets").insert_one.assert_not_awaited()


@pytest.mark.asyncio
async def test_message_on_missing_ticket(db):
    db.get("support_tickets").update_one.return_value = SimpleNamespace(matched_count=0, modified_count=0)

    with pytest.raises(ResourceNotFoundError):
        await support_service.add_ticket_message("missing", "u1", "hello")

    db.get("ticket_messages").insert_one.assert_not_awaited()


@pytest.mark.asyncio
async def test_resolving_records_status_message(db):
    await support_service.update_ticket_status("t1", "resolved", "admin-1")

    update = db.get("support_tickets").update_one.call_args.args[1]["$set"]
    assert update["status"] == "resolved"
    assert isinstance(update["resolvedAt"], datetime)

    message = db.get("ticket_messages").insert_one.call_args.args[0]
    assert message["content"] == "Ticket status changed to resolved"
    assert message["isAdmin"] is True
    assert message["senderId"] == "admin-1"


@pytest.mark.asyncio
async def test_admin_ticket_queue_has_user_summaries(db):
    db.get("support_tickets").documents = [
        {"_id": "t1", "userId": "u1", "status": "open", "updatedAt": datetime(2024, 2, 2)},
        {"_id": "t2", "userId": "gone", "status": "open", "updatedAt": datetime(2024, 2, 1)},
    ]
    db.get("users").documents = [
        {"_id": "u1", "displayName": "Amina", "email": "amina@example.com", "phone": "+254700000001"}
    ]

    result = await support_service.get_support_tickets(status="open")

    assert db.get("support_tickets").find_calls[0] == {"status": "open"}
    assert result["tickets"][0]["user"] == {"id": "u1", "displayName": "Amina", "email": "amina@example.com"}
    assert result["tickets"][1]["user"]["displayName"] == "Unknown User"


# ============================================================
# CMS
# ============================================================

@pytest.mark.asyncio
async def test_content_version_follows_editor_version(db):
    db.get("content").find_one.return_value = {"_id": "terms", "version": 7}

    result = await cms_service.update_content("terms", {"body": "New terms", "version": 3}, "admin-1")

    assert result == {"success": True, "version": 4}
    update = db.get("content").update_one.call_args.args[1]["$set"]
    assert update["body"] == "New terms"
    assert update["updatedBy"] == "admin-1"


@pytest.mark.asyncio
async def test_content_version_falls_back_to_stored(db):
    db.get("content").find_one.return_value = {"_id": "privacy", "version": 2}

    result = await cms_service.update_content("privacy", {"body": "Updated"}, "admin-1")

    assert result["version"] == 3


@pytest.mark.asyncio
async def test_update_missing_content(db):
    with pytest.raises(ResourceNotFoundError):
        await cms_service.update_content("nope", {"body": "x"}, "admin-1")


@pytest.mark.asyncio
async def test_published_faq_items(db):
    db.get("faq_items").documents = [{"_id": "f1", "question": "Fees?", "order": 1, "isPublished": True}]

    items = await cms_service.get_faq_items(published_only=True)

    assert db.get("faq_items").find_calls == [{"isPublished": True}]
    assert items[0]["id"] == "f1"


@pytest.mark.asyncio
async def test_new_faq_items_start_unpublished(db):
    result = await cms_service.create_faq_item({"question": "Fees?", "answer": "None", "order": 1}, "admin-1")

    stored = db.get("faq_items").insert_one.call_args.args[0]
    assert stored["_id"] == result["id"]
    assert stored["isPublished"] is False


@pytest.mark.asyncio
async def test_delete_missing_faq_item(db):
    db.get("faq_items").delete_one.return_value = SimpleNamespace(deleted_count=0)

    with pytest.raises(ResourceNotFoundError):
        await cms_service.delete_faq_item("f9")
