"""Reusable input validators for form fields.

- Optional text normalisation (trim, blank → None)
- Required text (trim, must not be blank)
- Email validation
- Phone number validation (Vietnamese local or international form)
"""

import re

# Regex patterns
EMAIL_REGEX = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")
PHONE_REGEX = re.compile(r"^(?:\+\d{8,15}|0\d{8,10})$")


def optional_text(value: str | None, max_length: int = 1000) -> str | None:
    """Trim an optional string; blank becomes None.

    Raises:
        ValueError: If the trimmed value is too long
    """
    if value is None:
        return None

    value = value.strip()
    if not value:
        return None

    if len(value) > max_length:
        raise ValueError(f"String too long (max {max_length} characters)")

    return value


def required_text(value: str, max_length: int = 255) -> str:
    """Trim a required string.

    Raises:
        ValueError: If blank or too long
    """
    value = (value or "").strip()
    if not value:
        raise ValueError("Value is required")
    if len(value) > max_length:
        raise ValueError(f"String too long (max {max_length} characters)")
    return value


def validate_email(value: str | None) -> str | None:
    """Validate an optional email address.

    Returns:
        Lowercase email address, or None when blank

    Raises:
        ValueError: If email is invalid
    """
    value = optional_text(value, max_length=254)  # RFC 5321
    if value is None:
        return None

    value = value.lower()
    if not EMAIL_REGEX.match(value):
        raise ValueError("Invalid email address format")

    return value


def validate_phone(value: str | None) -> str | None:
    """Validate an optional phone number.

    Accepts local numbers (``0901234567``) and international ones
    (``+84901234567``); spaces, dots and dashes are stripped.

    Raises:
        ValueError: If phone number is invalid
    """
    value = optional_text(value, max_length=30)
    if value is None:
        return None

    value = re.sub(r"[\s.\-]", "", value)

    if not PHONE_REGEX.match(value):
        raise ValueError("Invalid phone number format (e.g. 0901234567 or +84901234567)")

    return value
