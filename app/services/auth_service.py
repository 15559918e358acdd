"""
app/services/auth_service.py

Purpose: Authentication provider integration

- Email/password registration, sign-in, password reset and change
- Google and Apple sign-in and account linking
- Phone number verification and linking
- Profile, email and provider management
- ID token lookup (used to authenticate API requests) and refresh

Talks to the identity provider's REST API; no credentials are stored here.
"""

import httpx
from typing import Any, Dict, Optional
from urllib.parse import urlencode

from app.core.config import settings
from app.core.exceptions import (
    AuthenticationError,
    ExternalServiceError,
    ValidationError,
)
from app.core.logging import get_logger

logger = get_logger(__name__)


# Provider aliases accepted by the API
OAUTH_PROVIDERS = {
    "google": "google.com",
    "apple": "apple.com",
}

# Provider error codes surfaced as 401
AUTHENTICATION_ERRORS = {
    "EMAIL_NOT_FOUND",
    "INVALID_PASSWORD",
    "INVALID_LOGIN_CREDENTIALS",
    "INVALID_ID_TOKEN",
    "TOKEN_EXPIRED",
    "USER_DISABLED",
    "USER_NOT_FOUND",
    "CREDENTIAL_TOO_OLD_LOGIN_AGAIN",
    "INVALID_REFRESH_TOKEN",
    "INVALID_IDP_RESPONSE",
}

# Provider error codes surfaced as 422
VALIDATION_ERRORS = {
    "EMAIL_EXISTS",
    "INVALID_EMAIL",
    "WEAK_PASSWORD",
    "MISSING_PASSWORD",
    "INVALID_PHONE_NUMBER",
    "INVALID_CODE",
    "INVALID_SESSION_INFO",
    "SESSION_EXPIRED",
    "CODE_EXPIRED",
    "CREDENTIAL_ALREADY_IN_USE",
    "FEDERATED_USER_ID_ALREADY_LINKED",
    "PROVIDER_ALREADY_LINKED",
    "INVALID_RECAPTCHA_TOKEN",
    "MISSING_RECAPTCHA_TOKEN",
}


class AuthService:
    """
    Service class for the identity provider REST API.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        token_url: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key if api_key is not None else settings.AUTH_API_KEY
        self.base_url = (base_url or settings.AUTH_BASE_URL).rstrip("/")
        self.token_url = (token_url or settings.TOKEN_BASE_URL).rstrip("/")
        self._timeout = float(settings.AUTH_TIMEOUT)
        self._transport = transport
        self._http: Optional[httpx.AsyncClient] = None

    def _client(self) -> httpx.AsyncClient:
        if self._http is None or self._http.is_closed:
            self._http = httpx.AsyncClient(timeout=self._timeout, transport=self._transport)
        return self._http

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    async def _post(self, method: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        """
        POSTs to `accounts:{method}` and returns the decoded body.
        """
        url = f"{self.base_url}/accounts:{method}"
        try:
            response = await self._client().post(url, params={"key": self.api_key}, json=payload)
        except httpx.HTTPError as e:
            logger.error(f"Auth provider request {method} failed: {e}")
            raise ExternalServiceError("Authentication service unavailable") from e

        return self._handle_response(method, response)

    def _handle_response(self, method: str, response: httpx.Response) -> Dict[str, Any]:
        try:
            body = response.json()
        except ValueError:
            body = {}

        if response.status_code < 400:
            return body

        message = (body.get("error") or {}).get("message", "") if isinstance(body, dict) else ""
        # Messages look like "WEAK_PASSWORD : Password should be at least 6 characters"
        code = message.split(" ")[0] if message else "UNKNOWN"

        logger.warning(f"Auth provider rejected {method}: {code}")

        if code in AUTHENTICATION_ERRORS:
            raise AuthenticationError(message or "Authentication failed", details={"code": code})
        if code in VALIDATION_ERRORS:
            raise ValidationError(message, details={"code": code})
        raise ExternalServiceError(
            message or f"Authentication service returned {response.status_code}",
            details={"code": code}
        )

    @staticmethod
    def _credential(body: Dict[str, Any]) -> Dict[str, Any]:
        """
        Normalizes a sign-in response into a credential dict.
        """
        return {
            "uid": body.get("localId") or body.get("user_id"),
            "email": body.get("email"),
            "display_name": body.get("displayName"),
            "phone_number": body.get("phoneNumber"),
            "id_token": body.get("idToken") or body.get("id_token"),
            "refresh_token": body.get("refreshToken") or body.get("refresh_token"),
            "expires_in": int(body.get("expiresIn") or body.get("expires_in") or 0),
            "is_new_user": bool(body.get("isNewUser", False)),
        }

    # ------------------------------------------------------------------
    # Email / password
    # ------------------------------------------------------------------

    async def register_with_email_password(
        self,
        email: str,
        password: str,
        display_name: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Registers a new user, sets the display name and sends the
        verification email.

        Returns:
            Credential dict
        """
        body = await self._post("signUp", {
            "email": email,
            "password": password,
            "returnSecureToken": True,
        })
        credential = self._credential(body)

        if display_name:
            await self._post("update", {
                "idToken": credential["id_token"],
                "displayName": display_name,
                "returnSecureToken": False,
            })
            credential["display_name"] = display_name

        await self.send_email_verification(credential["id_token"])

        logger.info("User registered", extra={"user_id": credential["uid"]})
        return credential

    async def sign_in_with_email_password(self, email: str, password: str) -> Dict[str, Any]:
        """Signs in with email and password."""
        body = await self._post("signInWithPassword", {
            "email": email,
            "password": password,
            "returnSecureToken": True,
        })
        return self._credential(body)

    async def send_password_reset(self, email: str) -> bool:
        """Sends the password reset email."""
        await self._post("sendOobCode", {"requestType": "PASSWORD_RESET", "email": email})
        return True

    async def send_email_verification(self, id_token: str) -> bool:
        """Sends the email verification message to the signed-in user."""
        await self._post("sendOobCode", {"requestType": "VERIFY_EMAIL", "idToken": id_token})
        return True

    async def reauthenticate(self, email: str, password: str) -> Dict[str, Any]:
        """
        Re-authenticates before a sensitive change.

        Raises:
            AuthenticationError: If the password is wrong
        """
        if not email:
            raise AuthenticationError("No email is associated with this account")
        return await self.sign_in_with_email_password(email, password)

    async def update_password(
        self,
        id_token: str,
        email: str,
        current_password: str,
        new_password: str
    ) -> Dict[str, Any]:
        """
        Changes the password after re-authenticating with the current one.

        Returns:
            Fresh credential (password changes invalidate older tokens)
        """
        fresh = await self.reauthenticate(email, current_password)
        body = await self._post("update", {
            "idToken": fresh["id_token"] or id_token,
            "password": new_password,
            "returnSecureToken": True,
        })
        return self._credential(body)

    # ------------------------------------------------------------------
    # Google / Apple
    # ------------------------------------------------------------------

    @staticmethod
    def resolve_provider(provider: str) -> str:
        provider_id = OAUTH_PROVIDERS.get(provider, provider)
        if provider_id not in OAUTH_PROVIDERS.values():
            raise ValidationError(f"Unsupported provider: {provider}")
        return provider_id

    async def sign_in_with_provider(
        self,
        provider: str,
        provider_token: str,
        request_uri: Optional[str] = None,
        id_token: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Signs in with a Google or Apple ID token. Passing `id_token` links
        the provider to that signed-in account instead.
        """
        provider_id = self.resolve_provider(provider)
        payload = {
            "postBody": urlencode({"id_token": provider_token, "providerId": provider_id}),
            "requestUri": request_uri or settings.APP_URL,
            "returnSecureToken": True,
            "returnIdpCredential": True,
        }
        if id_token:
            payload["idToken"] = id_token

        body = await self._post("signInWithIdp", payload)
        return self._credential(body)

    async def link_with_provider(
        self,
        id_token: str,
        provider: str,
        provider_token: str,
        request_uri: Optional[str] = None
    ) -> Dict[str, Any]:
        """Links a Google or Apple account to the signed-in user."""
        return await self.sign_in_with_provider(provider, provider_token, request_uri, id_token=id_token)

    # ------------------------------------------------------------------
    # Phone
    # ------------------------------------------------------------------

    async def send_phone_verification_code(self, phone_number: str, recaptcha_token: str) -> str:
        """
        Sends an SMS code.

        Returns:
            Session info to pass back with the code
        """
        if not recaptcha_token:
            raise ValidationError("reCAPTCHA token is required")

        body = await self._post("sendVerificationCode", {
            "phoneNumber": phone_number,
            "recaptchaToken": recaptcha_token,
        })
        return body.get("sessionInfo", "")

    async def verify_phone_code(
        self,
        session_info: str,
        code: str,
        id_token: Optional[str] = None
    ) -> Dict[str, Any]:
        """Signs in (or links, when `id_token` is given) with an SMS code."""
        payload = {"sessionInfo": session_info, "code": code}
        if id_token:
            payload["idToken"] = id_token

        body = await self._post("signInWithPhoneNumber", payload)
        return self._credential(body)

    async def link_with_phone(self, id_token: str, session_info: str, code: str) -> Dict[str, Any]:
        """Links a verified phone number to the signed-in user."""
        return await self.verify_phone_code(session_info, code, id_token=id_token)

    # ------------------------------------------------------------------
    # Profile / account
    # ------------------------------------------------------------------

    async def update_profile(
        self,
        id_token: str,
        display_name: Optional[str] = None,
        photo_url: Optional[str] = None
    ) -> bool:
        """Updates display name and/or photo URL."""
        payload: Dict[str, Any] = {"idToken": id_token, "returnSecureToken": False}
        if display_name is not None:
            payload["displayName"] = display_name
        if photo_url is not None:
            payload["photoUrl"] = photo_url

        await self._post("update", payload)
        return True

    async def update_email(self, id_token: str, email: str, password: str, new_email: str) -> Dict[str, Any]:
        """
        Changes the account email after re-authenticating, then sends a
        verification email to the new address.
        """
        fresh = await self.reauthenticate(email, password)
        body = await self._post("update", {
            "idToken": fresh["id_token"] or id_token,
            "email": new_email,
            "returnSecureToken": True,
        })
        credential = self._credential(body)
        await self.send_email_verification(credential["id_token"] or fresh["id_token"])
        return credential

    async def get_account(self, id_token: str) -> Dict[str, Any]:
        """
        Resolves the account behind an ID token.

        Raises:
            AuthenticationError: If the token is invalid or expired
        """
        if not id_token:
            raise AuthenticationError("Missing ID token")

        body = await self._post("lookup", {"idToken": id_token})
        users = body.get("users") or []
        if not users:
            raise AuthenticationError("No user is currently signed in")

        account = users[0]
        if account.get("disabled"):
            raise AuthenticationError("User account is disabled")

        return {
            "uid": account.get("localId"),
            "email": account.get("email"),
            "email_verified": bool(account.get("emailVerified", False)),
            "display_name": account.get("displayName"),
            "photo_url": account.get("photoUrl"),
            "phone_number": account.get("phoneNumber"),
            "providers": [p.get("providerId") for p in account.get("providerUserInfo") or []],
        }

    async def unlink_provider(self, id_token: str, provider_id: str) -> Dict[str, Any]:
        """
        Unlinks a sign-in provider.

        Raises:
            ValidationError: If it is the only provider on the account
        """
        account = await self.get_account(id_token)
        provider_id = OAUTH_PROVIDERS.get(provider_id, provider_id)

        if len(account["providers"]) <= 1:
            raise ValidationError("Cannot unlink the only authentication provider")
        if provider_id not in account["providers"]:
            raise ValidationError(f"Provider {provider_id} is not linked")

        await self._post("update", {"idToken": id_token, "deleteProvider": [provider_id]})
        account["providers"] = [p for p in account["providers"] if p != provider_id]
        return account

    async def refresh_id_token(self, refresh_token: str) -> Dict[str, Any]:
        """Exchanges a refresh token for a new ID token."""
        try:
            response = await self._client().post(
                f"{self.token_url}/token",
                params={"key": self.api_key},
                data={"grant_type": "refresh_token", "refresh_token": refresh_token},
            )
        except httpx.HTTPError as e:
            logger.error(f"Token refresh failed: {e}")
            raise ExternalServiceError("Authentication service unavailable") from e

        return self._credential(self._handle_response("token", response))

    async def close(self):
        """Close the underlying HTTP client."""
        if self._http is not None:
            await self._http.aclose()
            self._http = None


# Global auth service instance
_auth_service: Optional[AuthService] = None


def get_auth_service() -> AuthService:
    """Get or create the global auth service instance."""
    global _auth_service
    if _auth_service is None:
        _auth_service = AuthService()
    return _auth_service


async def close_auth_service():
    """Close auth service and cleanup resources."""
    global _auth_service
    if _auth_service:
        await _auth_service.close()
        _auth_service = None
