"""
Field validation rules shared by registration, admin forms and password
updates.

Each ``validate_*`` function returns ``None`` when the value is acceptable and
a human-readable message otherwise, so callers can collect every field's
result before rejecting a submission.
"""

import re
from typing import Dict, Optional

from errors import ValidationError

NAME_MIN, NAME_MAX = 20, 60
ADDRESS_MIN, ADDRESS_MAX = 10, 400
PASSWORD_MIN, PASSWORD_MAX = 8, 16
SPECIAL_CHARACTERS = '!@#$%^&*(),.?":{}|<>'

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
UPPERCASE_RE = re.compile(r"[A-Z]")
SPECIAL_RE = re.compile("[" + re.escape(SPECIAL_CHARACTERS) + "]")


def validate_name(name: str) -> Optional[str]:
    if len(name) < NAME_MIN:
        return f"Name must be at least {NAME_MIN} characters long"
    if len(name) > NAME_MAX:
        return f"Name must not exceed {NAME_MAX} characters"
    return None


def validate_address(address: str) -> Optional[str]:
    if len(address) > ADDRESS_MAX:
        return f"Address must not exceed {ADDRESS_MAX} characters"
    if len(address) < ADDRESS_MIN:
        return f"Address must be at least {ADDRESS_MIN} characters long"
    return None


def validate_password(password: str) -> Optional[str]:
    # 8-16 chars, at least one uppercase and one special char
    if not (PASSWORD_MIN <= len(password) <= PASSWORD_MAX):
        return f"Password must be between {PASSWORD_MIN}-{PASSWORD_MAX} characters"
    if not UPPERCASE_RE.search(password):
        return "Password must include at least one uppercase letter"
    if not SPECIAL_RE.search(password):
        return "Password must include at least one special character"
    return None


def validate_email(email: str) -> Optional[str]:
    if not EMAIL_RE.fullmatch(email):
        return "Please enter a valid email address"
    return None


def validate_score(score: int) -> Optional[str]:
    if isinstance(score, bool) or not isinstance(score, int) or not 1 <= score <= 5:
        return "Rating must be a whole number between 1 and 5"
    return None


def collect_errors(results: Dict[str, Optional[str]]) -> Dict[str, str]:
    """Keep only the fields that failed."""
    return {field: message for field, message in results.items() if message}


def ensure_valid(results: Dict[str, Optional[str]]) -> None:
    errors = collect_errors(results)
    if errors:
        raise ValidationError(errors)


def validate_user_fields(name: str, email: str, address: str, password: str) -> None:
    ensure_valid({
        "name": validate_name(name),
        "email": validate_email(email),
        "address": validate_address(address),
        "password": validate_password(password),
    })


def validate_store_fields(name: str, email: str, address: str) -> None:
    ensure_valid({
        "name": validate_name(name),
        "email": validate_email(email),
        "address": validate_address(address),
    })
