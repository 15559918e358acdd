"""
app/core/exceptions.py

Purpose: SawaPay error hierarchy

Services raise these; app/core/errors.py turns them into
{"error", "code", "details"} responses with the matching status.
"""

from typing import Optional, Any


class SawaPayError(Exception):
    """
    Base exception for SawaPay application.
    """
    def __init__(self, message: str, code: str = "INTERNAL_ERROR", status_code: int = 500, details: Optional[Any] = None):
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details
        super().__init__(self.message)


class ResourceNotFoundError(SawaPayError):
    """
    A user, wallet, transaction, KYC document, ticket or stored file is missing.
    """
    def __init__(self, message: str = "Resource not found", details: Optional[Any] = None):
        super().__init__(message, code="NOT_FOUND", status_code=404, details=details)


class AuthenticationError(SawaPayError):
    """
    Missing or rejected ID token, or bad credentials at the auth provider.
    """
    def __init__(self, message: str = "Authentication failed", details: Optional[Any] = None):
        super().__init__(message, code="AUTHENTICATION_FAILED", status_code=401, details=details)


class AuthorizationError(SawaPayError):
    """
    Signed in, but not an admin or not the owner of the document.
    """
    def __init__(self, message: str = "Not allowed", details: Optional[Any] = None):
        super().__init__(message, code="FORBIDDEN", status_code=403, details=details)


class ValidationError(SawaPayError):
    """
    Input the user can fix: empty fields, bad amounts, invalid KYC step, ...
    """
    def __init__(self, message: str = "Validation error", details: Optional[Any] = None):
        super().__init__(message, code="VALIDATION_ERROR", status_code=422, details=details)


class ExternalServiceError(SawaPayError):
    """
    The auth provider or a callable function failed or was unreachable.
    """
    def __init__(self, message: str = "External service error", details: Optional[Any] = None):
        super().__init__(message, code="EXTERNAL_SERVICE_ERROR", status_code=502, details=details)


class FunctionCallError(ExternalServiceError):
    """
    A callable function answered with an error or could not be reached.

    `status` is the function's own error status (e.g. FAILED_PRECONDITION),
    None for transport failures.
    """
    def __init__(self, function: str, message: str, status: Optional[str] = None, details: Optional[Any] = None):
        self.function = function
        self.status = status

        payload = {"function": function}
        if status is not None or details is not None:
            payload.update({"status": status, "details": details})

        super().__init__(message, details=payload)
