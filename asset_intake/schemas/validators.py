"""Reusable string validators shared by the request schemas."""

import re

EMAIL_REGEX = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")


def validate_email(value: str) -> str:
    """Validate an email address and return it lowercased.

    Raises:
        ValueError: If the address is empty or malformed
    """
    if not value:
        raise ValueError("Email is required")

    value = value.strip().lower()

    if len(value) > 254:  # RFC 5321
        raise ValueError("Email address too long")

    if not EMAIL_REGEX.match(value):
        raise ValueError("Enter a valid email address")

    return value
