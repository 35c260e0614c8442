"""
Input validation and sanitization utilities.
Protects against XSS and other injection attacks in visitor-submitted content.
"""

import re
import html
from typing import Optional


# Maximum lengths for different input types
MAX_NAME_LENGTH = 100
MAX_EMAIL_LENGTH = 255
MAX_SUBJECT_LENGTH = 200
MAX_MESSAGE_LENGTH = 5000
MAX_ROLE_LENGTH = 150

# Block script tags, javascript:, data:, etc.
DANGEROUS_PATTERNS = [
    r'<script',
    r'javascript:',
    r'on\w+\s*=',  # onclick=, onerror=, etc.
    r'data:text/html',
    r'vbscript:',
]


def sanitize_text(text: str, max_length: Optional[int] = None, allow_html: bool = False) -> str:
    """
    Sanitize text input to prevent XSS attacks.

    Args:
        text: Input text to sanitize
        max_length: Maximum allowed length (None for no limit)
        allow_html: If False, HTML entities are escaped (default: False)

    Returns:
        Sanitized text
    """
    if not text:
        return ""

    # Strip whitespace
    text = text.strip()

    # Escape HTML to prevent XSS (unless HTML is explicitly allowed)
    if not allow_html:
        text = html.escape(text)

    # Truncate if too long
    if max_length and len(text) > max_length:
        text = text[:max_length]

    return text


def contains_dangerous_pattern(text: str) -> bool:
    return any(re.search(pattern, text, re.IGNORECASE) for pattern in DANGEROUS_PATTERNS)


def validate_name(name: str, field_name: str = "Name", max_length: int = MAX_NAME_LENGTH) -> str:
    """
    Validate and sanitize a short single-line field (name, author, role).

    Raises:
        ValueError if validation fails
    """
    if not name or not name.strip():
        raise ValueError(f"{field_name} cannot be empty")

    if len(name.strip()) > max_length:
        raise ValueError(f"{field_name} must be no more than {max_length} characters")

    if contains_dangerous_pattern(name):
        raise ValueError(f"{field_name} contains invalid characters")

    return sanitize_text(name, max_length=max_length)


def validate_email(email: str) -> str:
    """
    Normalize an email address and check its length.
    Pydantic's EmailStr validates the format.

    Returns:
        Normalized email (lowercase)
    """
    if not email or not email.strip():
        raise ValueError("Email cannot be empty")

    email = email.strip().lower()

    if len(email) > MAX_EMAIL_LENGTH:
        raise ValueError(f"Email must be no more than {MAX_EMAIL_LENGTH} characters")

    return email


def validate_long_text(text: str, field_name: str, min_length: int = 1, max_length: int = MAX_MESSAGE_LENGTH) -> str:
    """Validate and sanitize free text (messages, testimonial content)."""
    if not text or not text.strip():
        raise ValueError(f"{field_name} cannot be empty")

    stripped = text.strip()
    if len(stripped) < min_length:
        raise ValueError(f"{field_name} must be at least {min_length} characters")
    if len(stripped) > max_length:
        raise ValueError(f"{field_name} must be no more than {max_length} characters")

    return sanitize_text(stripped, max_length=None)
