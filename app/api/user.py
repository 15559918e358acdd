"""
app/api/user.py

Purpose: End-user routes (signed-in user's own data)

- Profile, dashboard, notifications
- KYC documents and the upload wizard
- Wallets and money movement
- Support tickets
- Published FAQ
"""

from typing import Optional, Dict, Any

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile

from app.api.deps import get_current_user
from app.core.config import settings
from app.core.exceptions import AuthorizationError, ValidationError
from app.core.logging import get_logger
from app.schemas.user import (
    ProfileUpdateRequest,
    AddFundsRequest,
    WithdrawFundsRequest,
    SendMoneyRequest,
    RequestMoneyRequest,
    TicketMessageRequest,
)
from app.services import user_service, kyc_wizard_service, support_service, cms_service

logger = get_logger(__name__)
router = APIRouter()


UPLOAD_CHUNK_SIZE = 1024 * 1024


async def _read_upload(file: Optional[UploadFile]) -> Optional[bytes]:
    """
    Reads an upload, stopping as soon as it passes the size limit.
    """
    if file is None:
        return None

    limit = settings.max_upload_bytes
    too_large = ValidationError(
        f"File exceeds the {settings.MAX_UPLOAD_SIZE_MB} MB upload limit",
        details={"filename": file.filename}
    )
    if file.size is not None and file.size > limit:
        raise too_large

    content = bytearray()
    while True:
        chunk = await file.read(UPLOAD_CHUNK_SIZE)
        if not chunk:
            break
        content.extend(chunk)
        if len(content) > limit:
            raise too_large
    return bytes(content)


# ============================================================
# PROFILE
# ============================================================

@router.get("/me/profile")
async def get_profile(current_user: Dict[str, Any] = Depends(get_current_user)):
    return await user_service.get_user_profile(current_user["uid"])


@router.patch("/me/profile")
async def update_profile(
    request: ProfileUpdateRequest,
    current_user: Dict[str, Any] = Depends(get_current_user)
):
    return await user_service.update_user_profile(current_user["uid"], request.to_document())


@router.post("/me/profile/image")
async def upload_profile_image(
    image: UploadFile = File(...),
    current_user: Dict[str, Any] = Depends(get_current_user)
):
    url = await user_service.upload_profile_image(
        current_user["uid"], await _read_upload(image), image.filename, image.content_type
    )
    return {"profile_image_url": url}


@router.get("/me/dashboard")
async def get_dashboard(current_user: Dict[str, Any] = Depends(get_current_user)):
    return await user_service.get_dashboard(current_user["uid"])


# ============================================================
# KYC
# ============================================================

@router.get("/me/kyc/status")
async def get_kyc_status(current_user: Dict[str, Any] = Depends(get_current_user)):
    return await user_service.get_kyc_status(current_user["uid"])


@router.get("/me/kyc/documents")
async def get_kyc_documents(current_user: Dict[str, Any] = Depends(get_current_user)):
    return {"documents": await user_service.get_kyc_documents(current_user["uid"])}


@router.post("/me/kyc/documents", status_code=201)
async def upload_kyc_document(
    document_type: str = Form(...),
    document: UploadFile = File(...),
    document_number: Optional[str] = Form(None),
    expiry_date: Optional[str] = Form(None),
    issuing_country: Optional[str] = Form(None),
    current_user: Dict[str, Any] = Depends(get_current_user)
):
    return await user_service.upload_kyc_document(
        current_user["uid"],
        document_type,
        await _read_upload(document),
        document.filename,
        document.content_type,
        {
            "documentNumber": document_number,
            "expiryDate": expiry_date,
            "issuingCountry": issuing_country,
        }
    )


@router.get("/me/kyc/wizard")
async def get_kyc_wizard(current_user: Dict[str, Any] = Depends(get_current_user)):
    return await kyc_wizard_service.get_wizard_state(current_user["uid"])


@router.post("/me/kyc/wizard/id-document")
async def submit_id_document(
    document_type: str = Form("id_card"),
    document: Optional[UploadFile] = File(None),
    document_number: Optional[str] = Form(None),
    expiry_date: Optional[str] = Form(None),
    issuing_country: Optional[str] = Form(None),
    current_user: Dict[str, Any] = Depends(get_current_user)
):
    return await kyc_wizard_service.submit_id_document(
        current_user["uid"],
        document_type,
        await _read_upload(document),
        document.filename if document else None,
        document.content_type if document else None,
        {
            "documentNumber": document_number,
            "expiryDate": expiry_date,
            "issuingCountry": issuing_country,
        }
    )


@router.post("/me/kyc/wizard/selfie")
async def submit_selfie(
    selfie: Optional[UploadFile] = File(None),
    current_user: Dict[str, Any] = Depends(get_current_user)
):
    return await kyc_wizard_service.submit_selfie(
        current_user["uid"],
        await _read_upload(selfie),
        selfie.filename if selfie else None,
        selfie.content_type if selfie else None
    )


@router.post("/me/kyc/wizard/reset")
async def reset_kyc_wizard(current_user: Dict[str, Any] = Depends(get_current_user)):
    return await kyc_wizard_service.reset_wizard(current_user["uid"])


# ============================================================
# WALLETS
# ============================================================

@router.get("/me/wallets")
async def get_wallets(current_user: Dict[str, Any] = Depends(get_current_user)):
    return {"wallets": await user_service.get_user_wallets(current_user["uid"])}


@router.get("/me/wallets/{wallet_id}")
async def get_wallet(wallet_id: str, current_user: Dict[str, Any] = Depends(get_current_user)):
    return await user_service.get_owned_wallet(current_user["uid"], wallet_id)


@router.post("/me/wallets/{wallet_id}/add-funds")
async def add_funds(
    wallet_id: str,
    request: AddFundsRequest,
    current_user: Dict[str, Any] = Depends(get_current_user)
):
    await user_service.get_owned_wallet(current_user["uid"], wallet_id)
    result = await user_service.add_funds_to_wallet(wallet_id, request.amount, current_user["id_token"])
    return {"result": result}


@router.post("/me/wallets/{wallet_id}/withdraw")
async def withdraw_funds(
    wallet_id: str,
    request: WithdrawFundsRequest,
    current_user: Dict[str, Any] = Depends(get_current_user)
):
    await user_service.get_owned_wallet(current_user["uid"], wallet_id)
    result = await user_service.withdraw_funds_from_wallet(
        wallet_id, request.amount, request.bank_details.to_payload(), current_user["id_token"]
    )
    return {"result": result}


# ============================================================
# TRANSACTIONS
# ============================================================

@router.get("/me/transactions")
async def get_transactions(
    status: str = Query("all"),
    direction: str = Query("all", pattern="^(all|sent|received)$"),
    date_range: str = Query("all"),
    search: Optional[str] = Query(None, max_length=100),
    limit: Optional[int] = Query(None, ge=1, le=500),
    current_user: Dict[str, Any] = Depends(get_current_user)
):
    transactions = await user_service.get_user_transactions(current_user["uid"], limit=limit)
    return {
        "transactions": user_service.filter_transactions(
            transactions, status=status, direction=direction, date_range=date_range, search=search
        )
    }


@router.get("/me/transactions/{transaction_id}")
async def get_transaction(transaction_id: str, current_user: Dict[str, Any] = Depends(get_current_user)):
    transaction = await user_service.get_transaction_by_id(transaction_id)
    if current_user["uid"] not in (transaction.get("senderUserId"), transaction.get("recipientUserId")):
        raise AuthorizationError("Transaction does not belong to this user")
    return transaction


@router.post("/me/transactions/send")
async def send_money(request: SendMoneyRequest, current_user: Dict[str, Any] = Depends(get_current_user)):
    result = await user_service.send_money(
        current_user["uid"],
        request.wallet_id,
        request.recipient_email,
        request.amount,
        request.description,
        id_token=current_user["id_token"]
    )
    return {"result": result}


@router.post("/me/transactions/request")
async def request_money(request: RequestMoneyRequest, current_user: Dict[str, Any] = Depends(get_current_user)):
    result = await user_service.request_money(
        current_user["uid"],
        request.requestee_id,
        request.amount,
        request.description,
        id_token=current_user["id_token"]
    )
    return {"result": result}


# ============================================================
# NOTIFICATIONS
# ============================================================

@router.get("/me/notifications")
async def get_notifications(
    unread_only: bool = Query(False),
    current_user: Dict[str, Any] = Depends(get_current_user)
):
    return {"notifications": await user_service.get_user_notifications(current_user["uid"], unread_only)}


@router.post("/me/notifications/read-all")
async def mark_all_notifications_read(current_user: Dict[str, Any] = Depends(get_current_user)):
    result = await user_service.mark_all_notifications_as_read(current_user["uid"], current_user["id_token"])
    return {"result": result}


@router.post("/me/notifications/{notification_id}/read")
async def mark_notification_read(notification_id: str, current_user: Dict[str, Any] = Depends(get_current_user)):
    return await user_service.mark_notification_as_read(notification_id, current_user["uid"])


# ============================================================
# SUPPORT
# ============================================================

async def _owned_ticket(ticket_id: str, user_id: str) -> Dict[str, Any]:
    ticket = await support_service.get_support_ticket_by_id(ticket_id)
    if ticket.get("userId") != user_id:
        raise AuthorizationError("Ticket does not belong to this user")
    return ticket


@router.get("/me/support/tickets")
async def get_support_tickets(current_user: Dict[str, Any] = Depends(get_current_user)):
    return {"tickets": await support_service.get_user_support_tickets(current_user["uid"])}


@router.post("/me/support/tickets", status_code=201)
async def submit_support_request(
    subject: Optional[str] = Form(None),
    message: Optional[str] = Form(None),
    category: str = Form("other"),
    attachment: Optional[UploadFile] = File(None),
    current_user: Dict[str, Any] = Depends(get_current_user)
):
    return await support_service.submit_support_request(
        current_user["uid"],
        subject,
        message,
        category,
        await _read_upload(attachment),
        attachment.filename if attachment else None,
        attachment.content_type if attachment else None
    )


@router.get("/me/support/tickets/{ticket_id}")
async def get_support_ticket(ticket_id: str, current_user: Dict[str, Any] = Depends(get_current_user)):
    ticket = await _owned_ticket(ticket_id, current_user["uid"])
    return {"ticket": ticket, "messages": await support_service.get_ticket_messages(ticket_id)}


@router.post("/me/support/tickets/{ticket_id}/messages", status_code=201)
async def add_ticket_message(
    ticket_id: str,
    request: TicketMessageRequest,
    current_user: Dict[str, Any] = Depends(get_current_user)
):
    await _owned_ticket(ticket_id, current_user["uid"])
    return await support_service.add_ticket_message(
        ticket_id, current_user["uid"], request.message, request.attachments
    )


@router.post("/me/support/tickets/{ticket_id}/attachments", status_code=201)
async def upload_ticket_attachment(
    ticket_id: str,
    attachment: UploadFile = File(...),
    current_user: Dict[str, Any] = Depends(get_current_user)
):
    await _owned_ticket(ticket_id, current_user["uid"])
    url = await support_service.upload_ticket_attachment(
        ticket_id, current_user["uid"], await _read_upload(attachment), attachment.filename, attachment.content_type
    )
    return {"attachment_url": url}


# ============================================================
# FAQ
# ============================================================

@router.get("/faq")
async def get_published_faq():
    return {"items": await cms_service.get_faq_items(published_only=True)}
