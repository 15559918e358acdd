"""
utils/validation_utils.py

Purpose: Input validation

- Phone number and amount checks
- Status vocabulary checks
- Upload filename sanitization
"""

import re
from typing import Any, Iterable, Optional

from app.core.exceptions import ValidationError


E164_PATTERN = r"^\+[1-9]\d{6,14}$"


def validate_phone_number(phone: str) -> bool:
    """
    Validates a phone number in E.164 format (+ and country code).

    Args:
        phone: Phone number string

    Returns:
        True if valid E.164 number
    """
    if not phone:
        return False

    # Remove common separators and spaces
    phone = re.sub(r"[\s\-\(\)]", "", phone)
    return bool(re.match(E164_PATTERN, phone))


def parse_amount(value: Any) -> Optional[float]:
    """
    Parses a user supplied amount.

    Args:
        value: Number or numeric string

    Returns:
        Positive float, or None if the value is missing, non-numeric,
        non-finite or not greater than zero
    """
    if value is None or isinstance(value, bool):
        return None

    try:
        amount = float(value)
    except (TypeError, ValueError):
        return None

    if amount != amount or amount in (float("inf"), float("-inf")):
        return None

    return amount if amount > 0 else None


def require_choice(value: str, choices: Iterable[str], field: str) -> str:
    """
    Ensures a value belongs to a fixed vocabulary.

    Raises:
        ValidationError: If the value is not one of the choices
    """
    choices = tuple(choices)
    if value not in choices:
        raise ValidationError(
            f"Invalid {field}: {value}",
            details={"field": field, "allowed": list(choices)}
        )
    return value


def sanitize_filename(filename: Optional[str], default: str = "file") -> str:
    """
    Makes an uploaded filename safe to embed in an object path.

    Args:
        filename: Client supplied filename
        default: Fallback when nothing usable remains

    Returns:
        Filename without directory parts or unsafe characters
    """
    if not filename:
        return default

    # Drop any directory components
    filename = filename.replace("\\", "/").split("/")[-1]
    filename = re.sub(r"[^A-Za-z0-9._-]", "_", filename).strip("._")

    return filename[:120] or default

