"""
app/schemas/auth.py

Purpose: Authentication request/response schemas

- Email/password registration and sign-in
- Federated (Google/Apple) sign-in and linking
- Phone verification
- Credential shape returned to clients
"""

from pydantic import BaseModel, EmailStr, Field, validator
from typing import Optional, Literal

from utils.validation_utils import validate_phone_number


class RegisterRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=6)
    confirm_password: str
    display_name: Optional[str] = Field(None, max_length=100)

    class Config:
        json_schema_extra = {
            "example": {
                "email": "amina@example.com",
                "password": "s3cret-pass",
                "confirm_password": "s3cret-pass",
                "display_name": "Amina Yusuf"
            }
        }


class SignInRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class PasswordResetRequest(BaseModel):
    email: EmailStr


class UpdatePasswordRequest(BaseModel):
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=6)
    confirm_password: str


class ProviderSignInRequest(BaseModel):
    """
    Federated sign-in with a provider token obtained by the client
    (Google ID token or Apple identity token).
    """
    provider: Literal["google", "apple"]
    provider_token: str = Field(..., min_length=1)
    request_uri: Optional[str] = None


class PhoneCodeRequest(BaseModel):
    phone_number: str = Field(..., description="Phone number in E.164 format")
    recaptcha_token: str = Field(..., min_length=1)

    @validator("phone_number")
    def validate_phone(cls, v):
        if not validate_phone_number(v):
            raise ValueError("Phone number must be in E.164 format (e.g. +254712345678)")
        return v.replace(" ", "")


class PhoneVerifyRequest(BaseModel):
    session_info: str = Field(..., min_length=1)
    code: str = Field(..., min_length=4, max_length=8)


class RefreshTokenRequest(BaseModel):
    refresh_token: str = Field(..., min_length=1)


class CredentialResponse(BaseModel):
    """
    Signed-in user credential.
    """
    uid: str
    email: Optional[str] = None
    display_name: Optional[str] = None
    phone_number: Optional[str] = None
    id_token: Optional[str] = None
    refresh_token: Optional[str] = None
    expires_in: Optional[int] = None
    is_new_user: bool = False


class EmailChangeRequest(BaseModel):
    new_email: EmailStr
    password: str = Field(..., min_length=1)


class AuthProfileUpdate(BaseModel):
    display_name: Optional[str] = Field(None, max_length=100)
    photo_url: Optional[str] = None
