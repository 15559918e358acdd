"""
app/api/deps.py

Purpose: Request authentication dependencies

- Extracts the bearer ID token
- Resolves the signed-in account through the auth provider
- Restricts admin routes to members of admin_users
"""

from typing import Optional, Dict, Any

from fastapi import Depends, Header

from app.core.exceptions import AuthenticationError, AuthorizationError
from app.core.logging import get_logger
from app.services import admin_service
from app.services.auth_service import get_auth_service

logger = get_logger(__name__)


async def get_id_token(authorization: Optional[str] = Header(None)) -> str:
    """
    Reads `Authorization: Bearer <id token>`.
    """
    if not authorization:
        raise AuthenticationError("Missing Authorization header")

    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise AuthenticationError("Authorization header must be 'Bearer <token>'")

    return token.strip()


async def get_current_user(id_token: str = Depends(get_id_token)) -> Dict[str, Any]:
    """
    The signed-in account, with its ID token for downstream function calls.
    """
    account = await get_auth_service().get_account(id_token)
    return {**account, "id_token": id_token}


async def get_current_admin(current_user: Dict[str, Any] = Depends(get_current_user)) -> Dict[str, Any]:
    if not await admin_service.is_admin(current_user["uid"]):
        logger.warning("Admin route denied", extra={"user_id": current_user["uid"]})
        raise AuthorizationError("User is not an admin")
    return current_user
