"""Input validators shared by the auth, profile and post services.

Each validator returns ``None`` for valid input and raises ``ValueError``
carrying the message shown to the client otherwise.
"""

import re
from typing import Any

USERNAME_PATTERN = re.compile(r"^[A-Za-z0-9_]{3,20}$")
EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

PASSWORD_MIN_LENGTH = 8
BIO_MAX_LENGTH = 200
POST_MAX_LENGTH = 280


def validate_username(username: Any) -> None:
    if not isinstance(username, str) or not username:
        raise ValueError("Username is required.")
    if not USERNAME_PATTERN.fullmatch(username):
        raise ValueError(
            "Username must be 3-20 characters and only contain letters, "
            "numbers, or underscores."
        )


def validate_password(password: Any) -> None:
    """Check password strength.

    Rules are checked in order and the first failing rule wins: length,
    uppercase letter, lowercase letter, digit, then any non-alphanumeric
    symbol.
    """
    if not isinstance(password, str) or not password:
        raise ValueError("Password is required.")
    if len(password) < PASSWORD_MIN_LENGTH:
        raise ValueError("Password must be at least 8 characters long.")
    if not re.search(r"[A-Z]", password):
        raise ValueError("Password must include at least one uppercase letter.")
    if not re.search(r"[a-z]", password):
        raise ValueError("Password must include at least one lowercase letter.")
    if not re.search(r"[0-9]", password):
        raise ValueError("Password must include at least one number.")
    if not re.search(r"[^A-Za-z0-9]", password):
        raise ValueError("Password must include at least one symbol.")


def validate_email(email: Any) -> None:
    if not isinstance(email, str) or not email.strip():
        raise ValueError("Email is required.")
    if not EMAIL_PATTERN.fullmatch(email):
        raise ValueError("Email format is invalid.")


def validate_bio(bio: Any) -> None:
    if not isinstance(bio, str):
        raise ValueError("Bio must be a string.")
    if len(bio) > BIO_MAX_LENGTH:
        raise ValueError("Bio must be 200 characters or fewer.")


def validate_post_content(content: Any) -> None:
    """Check the body of a post or reply (1-280 characters)."""
    if not isinstance(content, str):
        raise ValueError("Post content is required.")
    if not 1 <= len(content) <= POST_MAX_LENGTH:
        raise ValueError("Post content must be between 1 and 280 characters.")
