"""Field checks shared by the seller services. Each returns an error message or None."""

from decimal import Decimal, InvalidOperation
from typing import Optional

from django.core.exceptions import ValidationError
from django.core.validators import URLValidator, validate_email

_url_validator = URLValidator(schemes=["http", "https"])


def check_length(value: Optional[str], label: str, min_length: int, max_length: int) -> Optional[str]:
    length = len((value or "").strip())
    if length < min_length or length > max_length:
        return f"{label} must be between {min_length} and {max_length} characters."
    return None


def check_max_length(value: Optional[str], label: str, max_length: int) -> Optional[str]:
    if value and len(value) > max_length:
        return f"{label} must not exceed {max_length} characters."
    return None


def check_url(value: Optional[str], label: str) -> Optional[str]:
    if not value:
        return None
    if len(value) > 500:
        return f"{label} must not exceed 500 characters."
    try:
        _url_validator(value)
    except ValidationError:
        return f"{label} must be a valid http or https URL."
    return None


def check_email(value: Optional[str], label: str, required: bool = False) -> Optional[str]:
    if not value:
        return f"{label} is required." if required else None
    if len(value) > 254:
        return f"{label} must not exceed 254 characters."
    try:
        validate_email(value)
    except ValidationError:
        return f"{label} must be a valid e-mail address."
    return None


def to_decimal(value) -> Optional[Decimal]:
    if value is None or value == "":
        return None
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None
