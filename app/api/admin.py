"""
app/api/admin.py

Purpose: Back-office routes (admin_users members only)

- Admin sign-in and profile
- Users, KYC review, wallets, transactions
- Analytics and dashboard statistics
- Content, FAQ and support tickets
- Stored file links and deletion
"""

from typing import Optional, Dict, Any

from fastapi import APIRouter, Depends, Query

from app.api.deps import get_current_admin
from app.core.exceptions import ResourceNotFoundError
from app.core.logging import get_logger
from app.db.storage import get_storage
from app.schemas.admin import (
    AccountStatusUpdate,
    KycApproveRequest,
    KycRejectRequest,
    WalletAdjustmentRequest,
    ContentUpdateRequest,
    FaqItemRequest,
    FaqItemUpdate,
    TicketStatusUpdate,
)
from app.schemas.auth import SignInRequest
from app.schemas.user import TicketMessageRequest
from app.services import admin_service, analytics_service, cms_service, support_service

logger = get_logger(__name__)
router = APIRouter()


@router.post("/sign-in")
async def sign_in(request: SignInRequest):
    return await admin_service.sign_in(request.email, request.password)


@router.get("/me")
async def get_admin(admin: Dict[str, Any] = Depends(get_current_admin)):
    return await admin_service.get_admin_data(admin["uid"])


@router.get("/dashboard")
async def get_dashboard_stats(admin: Dict[str, Any] = Depends(get_current_admin)):
    return await admin_service.get_dashboard_stats()


# ============================================================
# USERS
# ============================================================

@router.get("/users")
async def get_users(
    page_size: Optional[int] = Query(None, ge=1),
    cursor: Optional[str] = None,
    kyc_status: Optional[str] = None,
    account_status: Optional[str] = None,
    admin: Dict[str, Any] = Depends(get_current_admin)
):
    return await admin_service.get_users(page_size, cursor, kyc_status, account_status)


@router.get("/users/search")
async def search_users(
    term: str = Query(..., min_length=1),
    limit: int = Query(10, ge=1, le=50),
    admin: Dict[str, Any] = Depends(get_current_admin)
):
    return {"users": await admin_service.search_users(term, limit)}


@router.get("/users/{user_id}")
async def get_user_details(user_id: str, admin: Dict[str, Any] = Depends(get_current_admin)):
    return await admin_service.get_user_details(user_id)


@router.put("/users/{user_id}/status")
async def update_user_status(
    user_id: str,
    request: AccountStatusUpdate,
    admin: Dict[str, Any] = Depends(get_current_admin)
):
    return await admin_service.update_user_status(user_id, request.status, admin["uid"])


# ============================================================
# KYC
# ============================================================

@router.get("/kyc")
async def get_kyc_requests(
    status: str = "pending",
    page_size: Optional[int] = Query(None, ge=1),
    cursor: Optional[str] = None,
    admin: Dict[str, Any] = Depends(get_current_admin)
):
    return await admin_service.get_kyc_requests(status, page_size, cursor)


@router.get("/kyc/{document_id}")
async def get_kyc_document(document_id: str, admin: Dict[str, Any] = Depends(get_current_admin)):
    return await admin_service.get_kyc_document_details(document_id)


@router.post("/kyc/{document_id}/approve")
async def approve_kyc_document(
    document_id: str,
    request: KycApproveRequest,
    admin: Dict[str, Any] = Depends(get_current_admin)
):
    result = await admin_service.approve_kyc_document(
        document_id, admin["uid"], request.notes, id_token=admin["id_token"]
    )
    return {"result": result}


@router.post("/kyc/{document_id}/reject")
async def reject_kyc_document(
    document_id: str,
    request: KycRejectRequest,
    admin: Dict[str, Any] = Depends(get_current_admin)
):
    result = await admin_service.reject_kyc_document(
        document_id, admin["uid"], request.rejection_reason, id_token=admin["id_token"]
    )
    return {"result": result}


# ============================================================
# WALLETS
# ============================================================

@router.get("/wallets")
async def get_wallets(
    page_size: Optional[int] = Query(None, ge=1),
    cursor: Optional[str] = None,
    admin: Dict[str, Any] = Depends(get_current_admin)
):
    return await admin_service.get_all_wallets(page_size, cursor)


@router.post("/wallets/{wallet_id}/adjust")
async def adjust_wallet_balance(
    wallet_id: str,
    request: WalletAdjustmentRequest,
    admin: Dict[str, Any] = Depends(get_current_admin)
):
    result = await admin_service.adjust_wallet_balance(
        wallet_id, request.amount, request.reason, admin["uid"], id_token=admin["id_token"]
    )
    return {"result": result}


# ============================================================
# TRANSACTIONS
# ============================================================

@router.get("/transactions")
async def get_transactions(
    page_size: Optional[int] = Query(None, ge=1),
    cursor: Optional[str] = None,
    status: Optional[str] = None,
    type: Optional[str] = None,
    user_id: Optional[str] = None,
    admin: Dict[str, Any] = Depends(get_current_admin)
):
    return await admin_service.get_all_transactions(page_size, cursor, status, type, user_id)


@router.get("/transactions/{transaction_id}")
async def get_transaction_details(transaction_id: str, admin: Dict[str, Any] = Depends(get_current_admin)):
    return await admin_service.get_transaction_details(transaction_id)


# ============================================================
# ANALYTICS
# ============================================================

@router.get("/analytics/user-growth")
async def user_growth(timeframe: str = "month", admin: Dict[str, Any] = Depends(get_current_admin)):
    return {"timeframe": timeframe, "data": await analytics_service.get_user_growth_analytics(timeframe)}


@router.get("/analytics/transaction-volume")
async def transaction_volume(timeframe: str = "month", admin: Dict[str, Any] = Depends(get_current_admin)):
    return {"timeframe": timeframe, "data": await analytics_service.get_transaction_volume_analytics(timeframe)}


@router.get("/analytics/revenue")
async def revenue(timeframe: str = "month", admin: Dict[str, Any] = Depends(get_current_admin)):
    return {"timeframe": timeframe, "data": await analytics_service.get_revenue_analytics(timeframe)}


# ============================================================
# CONTENT / FAQ
# ============================================================

@router.get("/content/{content_id}")
async def get_content(content_id: str, admin: Dict[str, Any] = Depends(get_current_admin)):
    return await cms_service.get_content(content_id)


@router.put("/content/{content_id}")
async def update_content(
    content_id: str,
    request: ContentUpdateRequest,
    admin: Dict[str, Any] = Depends(get_current_admin)
):
    return await cms_service.update_content(content_id, request.to_document(), admin["uid"])


@router.get("/faq")
async def get_faq_items(admin: Dict[str, Any] = Depends(get_current_admin)):
    return {"items": await cms_service.get_faq_items()}


@router.post("/faq", status_code=201)
async def create_faq_item(request: FaqItemRequest, admin: Dict[str, Any] = Depends(get_current_admin)):
    return await cms_service.create_faq_item(request.model_dump(), admin["uid"])


@router.patch("/faq/{faq_id}")
async def update_faq_item(
    faq_id: str,
    request: FaqItemUpdate,
    admin: Dict[str, Any] = Depends(get_current_admin)
):
    return await cms_service.update_faq_item(faq_id, request.model_dump(exclude_unset=True), admin["uid"])


@router.delete("/faq/{faq_id}")
async def delete_faq_item(faq_id: str, admin: Dict[str, Any] = Depends(get_current_admin)):
    return await cms_service.delete_faq_item(faq_id)


# ============================================================
# SUPPORT
# ============================================================

@router.get("/support/tickets")
async def get_support_tickets(
    status: str = "all",
    page_size: Optional[int] = Query(None, ge=1),
    cursor: Optional[str] = None,
    admin: Dict[str, Any] = Depends(get_current_admin)
):
    return await support_service.get_support_tickets(status, page_size, cursor)


@router.get("/support/tickets/{ticket_id}")
async def get_support_ticket(ticket_id: str, admin: Dict[str, Any] = Depends(get_current_admin)):
    return await support_service.get_support_ticket_details(ticket_id)


@router.put("/support/tickets/{ticket_id}/status")
async def update_ticket_status(
    ticket_id: str,
    request: TicketStatusUpdate,
    admin: Dict[str, Any] = Depends(get_current_admin)
):
    return await support_service.update_ticket_status(ticket_id, request.status, admin["uid"])


@router.post("/support/tickets/{ticket_id}/messages", status_code=201)
async def add_ticket_message(
    ticket_id: str,
    request: TicketMessageRequest,
    admin: Dict[str, Any] = Depends(get_current_admin)
):
    return await support_service.add_ticket_message(
        ticket_id, admin["uid"], request.message, request.attachments, is_admin=True
    )


@router.post("/support/tickets/{ticket_id}/assign")
async def assign_ticket(ticket_id: str, admin: Dict[str, Any] = Depends(get_current_admin)):
    return await support_service.assign_ticket(ticket_id, admin["uid"])


# ============================================================
# STORED FILES
# ============================================================

@router.get("/files/url")
async def get_file_url(path: str = Query(..., min_length=1), admin: Dict[str, Any] = Depends(get_current_admin)):
    return {"path": path, "download_url": await get_storage().get_download_url(path)}


@router.delete("/files")
async def delete_file(path: str = Query(..., min_length=1), admin: Dict[str, Any] = Depends(get_current_admin)):
    if not await get_storage().delete_object(path):
        raise ResourceNotFoundError("File not found", details={"path": path})

    logger.info(f"Stored object {path} deleted", extra={"admin_id": admin["uid"]})
    return {"success": True}
