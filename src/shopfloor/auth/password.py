"""Password hashing utilities.

Learn: Uses bcrypt for secure password hashing. bcrypt generates a fresh
random salt per hash, so two users with the same password never share a
stored hash. The work factor comes from settings.bcrypt_rounds
(12 ≈ 250ms per hash); tests turn it down to 4.
"""

from typing import Optional

import bcrypt

from shopfloor.config import settings


def hash_password(password: str, rounds: Optional[int] = None) -> str:
    """Hash a password with bcrypt.

    Passwords are truncated to 72 bytes (bcrypt's limit).
    """
    pw_bytes = password.encode("utf-8")[:72]
    salt = bcrypt.gensalt(rounds=rounds or settings.bcrypt_rounds)
    return bcrypt.hashpw(pw_bytes, salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Verify a password against its hash (constant-time compare)."""
    try:
        pw_bytes = password.encode("utf-8")[:72]
        hash_bytes = password_hash.encode("utf-8")
        return bcrypt.checkpw(pw_bytes, hash_bytes)
    except (ValueError, TypeError):
        return False
