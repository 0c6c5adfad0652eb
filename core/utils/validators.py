"""Validation utilities for account and invitation input."""

import re
from typing import Optional
from email_validator import validate_email as _validate_email, EmailNotValidError


def validate_email(email: Optional[str]) -> tuple[bool, Optional[str]]:
    """
    Validate email address format.

    Args:
        email: Email address to validate

    Returns:
        Tuple of (is_valid, lower-cased normalized email or error_message)
    """
    if not email or not email.strip():
        return False, "Email is required"
    try:
        validation = _validate_email(email.strip(), check_deliverability=False)
        return True, validation.normalized.lower()
    except EmailNotValidError as e:
        return False, str(e)


def validate_phone(phone: Optional[str]) -> tuple[bool, Optional[str]]:
    """
    Validate phone number format (basic validation).

    Args:
        phone: Phone number to validate

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not phone:
        return False, "Phone number is required"

    cleaned = re.sub(r'[\s\-\(\)\.]', '', phone)
    digits = re.findall(r'\d', cleaned)
    if len(digits) < 7 or len(digits) > 15:
        return False, "Phone number must be between 7 and 15 digits"

    return True, None
