"""
app/api/auth.py

Purpose: Authentication routes

- Email/password registration, sign-in, reset and password change
- Google/Apple sign-in and linking
- Phone verification and linking
- Account lookup, email/profile changes, provider unlinking, token refresh
- Two-factor preference
"""

from typing import Dict, Any

from fastapi import APIRouter, Depends

from app.api.deps import get_current_user
from app.core.exceptions import ValidationError
from app.core.logging import get_logger
from app.schemas.auth import (
    RegisterRequest,
    SignInRequest,
    PasswordResetRequest,
    UpdatePasswordRequest,
    ProviderSignInRequest,
    PhoneCodeRequest,
    PhoneVerifyRequest,
    RefreshTokenRequest,
    EmailChangeRequest,
    AuthProfileUpdate,
    CredentialResponse,
)
from app.schemas.user import TwoFactorRequest
from app.services import user_service
from app.services.auth_service import get_auth_service
from utils.constants import ERROR_PASSWORDS_MISMATCH

logger = get_logger(__name__)
router = APIRouter()


@router.post("/register", response_model=CredentialResponse, status_code=201)
async def register(request: RegisterRequest):
    if request.password != request.confirm_password:
        raise ValidationError(ERROR_PASSWORDS_MISMATCH)

    return await get_auth_service().register_with_email_password(
        request.email, request.password, request.display_name
    )


@router.post("/sign-in", response_model=CredentialResponse)
async def sign_in(request: SignInRequest):
    return await get_auth_service().sign_in_with_email_password(request.email, request.password)


@router.post("/password-reset")
async def password_reset(request: PasswordResetRequest):
    await get_auth_service().send_password_reset(request.email)
    return {"success": True}


@router.post("/token", response_model=CredentialResponse)
async def refresh_token(request: RefreshTokenRequest):
    return await get_auth_service().refresh_id_token(request.refresh_token)


@router.get("/me")
async def me(current_user: Dict[str, Any] = Depends(get_current_user)):
    return {key: value for key, value in current_user.items() if key != "id_token"}


@router.post("/password", response_model=CredentialResponse)
async def change_password(
    request: UpdatePasswordRequest,
    current_user: Dict[str, Any] = Depends(get_current_user)
):
    if request.new_password != request.confirm_password:
        raise ValidationError(ERROR_PASSWORDS_MISMATCH)

    return await get_auth_service().update_password(
        current_user["id_token"],
        current_user.get("email"),
        request.current_password,
        request.new_password
    )


@router.post("/email", response_model=CredentialResponse)
async def change_email(
    request: EmailChangeRequest,
    current_user: Dict[str, Any] = Depends(get_current_user)
):
    return await get_auth_service().update_email(
        current_user["id_token"], current_user.get("email"), request.password, request.new_email
    )


@router.patch("/profile")
async def update_auth_profile(
    request: AuthProfileUpdate,
    current_user: Dict[str, Any] = Depends(get_current_user)
):
    await get_auth_service().update_profile(current_user["id_token"], request.display_name, request.photo_url)
    return {"success": True}


# ------------------------------------------------------------------
# Google / Apple
# ------------------------------------------------------------------

@router.post("/providers/sign-in", response_model=CredentialResponse)
async def provider_sign_in(request: ProviderSignInRequest):
    return await get_auth_service().sign_in_with_provider(
        request.provider, request.provider_token, request.request_uri
    )


@router.post("/providers/link", response_model=CredentialResponse)
async def provider_link(
    request: ProviderSignInRequest,
    current_user: Dict[str, Any] = Depends(get_current_user)
):
    return await get_auth_service().link_with_provider(
        current_user["id_token"], request.provider, request.provider_token, request.request_uri
    )


@router.delete("/providers/{provider_id}")
async def provider_unlink(provider_id: str, current_user: Dict[str, Any] = Depends(get_current_user)):
    account = await get_auth_service().unlink_provider(current_user["id_token"], provider_id)
    return {"success": True, "providers": account["providers"]}


# ------------------------------------------------------------------
# Phone
# ------------------------------------------------------------------

@router.post("/phone/send-code")
async def phone_send_code(request: PhoneCodeRequest):
    session_info = await get_auth_service().send_phone_verification_code(
        request.phone_number, request.recaptcha_token
    )
    return {"session_info": session_info}


@router.post("/phone/verify", response_model=CredentialResponse)
async def phone_verify(request: PhoneVerifyRequest):
    return await get_auth_service().verify_phone_code(request.session_info, request.code)


@router.post("/phone/link", response_model=CredentialResponse)
async def phone_link(
    request: PhoneVerifyRequest,
    current_user: Dict[str, Any] = Depends(get_current_user)
):
    return await get_auth_service().link_with_phone(current_user["id_token"], request.session_info, request.code)


# ------------------------------------------------------------------
# Two-factor preference
# ------------------------------------------------------------------

@router.post("/two-factor")
async def enroll_two_factor(request: TwoFactorRequest, current_user: Dict[str, Any] = Depends(get_current_user)):
    return await user_service.enroll_two_factor(current_user["uid"], request.method)


@router.delete("/two-factor")
async def disable_two_factor(current_user: Dict[str, Any] = Depends(get_current_user)):
    return await user_service.disable_two_factor(current_user["uid"])
