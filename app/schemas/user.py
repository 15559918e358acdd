"""
app/schemas/user.py

Purpose: End-user request schemas

- Profile updates
- Wallet funding and money movement
- Ticket messages
- Support tickets
"""

from pydantic import BaseModel, Field, validator
from typing import Optional, Dict, Any, List, Literal


class ProfileUpdateRequest(BaseModel):
    first_name: Optional[str] = Field(None, max_length=50)
    last_name: Optional[str] = Field(None, max_length=50)
    phone: Optional[str] = Field(None, max_length=20)
    address: Optional[str] = Field(None, max_length=250)

    def to_document(self) -> Dict[str, Any]:
        """
        Stored profile fields. `displayName` is always derived from the
        first and last name.
        """
        first_name = self.first_name or ""
        last_name = self.last_name or ""
        document = {
            "firstName": first_name,
            "lastName": last_name,
            "displayName": f"{first_name} {last_name}".strip(),
        }
        if self.phone is not None:
            document["phone"] = self.phone
        if self.address is not None:
            document["address"] = self.address
        return document


class TwoFactorRequest(BaseModel):
    method: Literal["sms", "app"]


class BankDetails(BaseModel):
    account_name: str = Field(..., min_length=1)
    account_number: str = Field(..., min_length=4, max_length=34)
    bank_name: str = Field(..., min_length=1)
    routing_number: Optional[str] = None

    def to_payload(self) -> Dict[str, Any]:
        payload = {
            "accountName": self.account_name,
            "accountNumber": self.account_number,
            "bankName": self.bank_name,
        }
        if self.routing_number:
            payload["routingNumber"] = self.routing_number
        return payload


class AddFundsRequest(BaseModel):
    amount: float


class WithdrawFundsRequest(BaseModel):
    amount: float
    bank_details: BankDetails


class SendMoneyRequest(BaseModel):
    """
    Amount and recipient are checked by the service so the user sees the
    same messages the web form shows.
    """
    wallet_id: Optional[str] = None
    recipient_email: Optional[str] = None
    amount: Optional[Any] = None
    description: str = Field("", max_length=200)

    class Config:
        json_schema_extra = {
            "example": {
                "wallet_id": "Xb3kP0qW9vLm2sT7yZa1",
                "recipient_email": "baraka@example.com",
                "amount": "250.00",
                "description": "Dinner"
            }
        }


class RequestMoneyRequest(BaseModel):
    requestee_id: str = Field(..., min_length=1)
    amount: Any
    description: str = Field("", max_length=200)


class TicketMessageRequest(BaseModel):
    message: str = Field(..., min_length=1, max_length=5000)
    attachments: List[str] = Field(default_factory=list)

    @validator("message")
    def strip_message(cls, v):
        if not v.strip():
            raise ValueError("Please enter a message")
        return v.strip()
