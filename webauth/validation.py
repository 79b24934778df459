"""
Input format rules for registration and profile updates.

These run before any store access; a failing rule becomes a 400.
"""
import re

EMAIL_RE = re.compile(r"^[a-zA-Z0-9._%+\-]+@[a-zA-Z0-9.\-]+\.[a-zA-Z]{2,}$")

PASSWORD_MIN_LENGTH = 8
PASSWORD_MAX_LENGTH = 128
PASSWORD_SPECIAL_CHARS = "!@#$%^&*()-_=+[]{}|;:'\",.<>?/`~"

NAME_MAX_LENGTH = 50


def is_valid_email(email: str) -> bool:
    email = email.strip()
    if not 1 <= len(email) <= 100:
        return False
    if not EMAIL_RE.fullmatch(email):
        return False
    if ".." in email:
        return False

    local_part = email.split("@")[0]
    return not (local_part.startswith(".") or local_part.endswith("."))


def is_valid_password(password: str) -> bool:
    """
    At least 8 characters with an upper-case letter, a lower-case letter,
    a digit and one of PASSWORD_SPECIAL_CHARS.
    """
    if not PASSWORD_MIN_LENGTH <= len(password) <= PASSWORD_MAX_LENGTH:
        return False

    has_upper = any(c.isupper() for c in password)
    has_lower = any(c.islower() for c in password)
    has_digit = any(c.isdigit() for c in password)
    has_special = any(c in PASSWORD_SPECIAL_CHARS for c in password)

    return has_upper and has_lower and has_digit and has_special


def is_valid_name(name: str) -> bool:
    name = name.strip()
    if not 1 <= len(name) <= NAME_MAX_LENGTH:
        return False
    return all(c.isalpha() or c == " " for c in name)
