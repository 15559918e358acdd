"""
app/schemas/response.py

Purpose: Error body returned by every SawaPay endpoint
"""

from typing import Optional, Any, List

from pydantic import BaseModel


class FieldIssue(BaseModel):
    """One invalid request field, flattened from a pydantic error."""
    field: str
    message: str
    type: Optional[str] = None


class ErrorResponse(BaseModel):
    """
    {"error": <message>, "code": <machine code>, "details": ..., "request_id": ...}

    `details` carries FieldIssue entries for request validation failures and
    free-form data (function name, provider error code, ...) otherwise.
    """
    error: str
    code: str
    details: Optional[Any] = None
    request_id: Optional[str] = None


def field_issues(errors: List[dict]) -> List[FieldIssue]:
    """Turns pydantic's error list into FieldIssue entries ("body.amount", ...)."""
    return [
        FieldIssue(
            field=".".join(str(part) for part in error.get("loc", ())),
            message=error.get("msg", "Invalid value"),
            type=error.get("type"),
        )
        for error in errors
    ]
