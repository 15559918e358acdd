"""
app/schemas/admin.py

Purpose: Back-office request schemas
"""

from pydantic import BaseModel, Field, validator
from typing import Optional, Dict, Any, Literal


class AccountStatusUpdate(BaseModel):
    status: Literal["active", "suspended", "closed"]


class KycApproveRequest(BaseModel):
    notes: str = Field("", max_length=1000)


class KycRejectRequest(BaseModel):
    rejection_reason: str = Field(..., min_length=1, max_length=1000)


class WalletAdjustmentRequest(BaseModel):
    amount: float = Field(..., description="Positive to credit, negative to debit")
    reason: str = Field(..., min_length=1, max_length=500)

    @validator("amount")
    def non_zero(cls, v):
        if v == 0:
            raise ValueError("Adjustment amount must be non-zero")
        return v


class ContentUpdateRequest(BaseModel):
    """
    Content body is free-form; `version` is the version the editor loaded.
    """
    data: Dict[str, Any] = Field(default_factory=dict)
    version: Optional[int] = None

    def to_document(self) -> Dict[str, Any]:
        document = dict(self.data)
        if self.version is not None:
            document["version"] = self.version
        return document


class FaqItemRequest(BaseModel):
    question: str = Field(..., min_length=1, max_length=500)
    answer: str = Field(..., min_length=1, max_length=5000)
    category: Optional[str] = None
    order: int = 0
    isPublished: bool = False


class FaqItemUpdate(BaseModel):
    question: Optional[str] = Field(None, max_length=500)
    answer: Optional[str] = Field(None, max_length=5000)
    category: Optional[str] = None
    order: Optional[int] = None
    isPublished: Optional[bool] = None


class TicketStatusUpdate(BaseModel):
    status: Literal["open", "in_progress", "resolved", "closed"]
