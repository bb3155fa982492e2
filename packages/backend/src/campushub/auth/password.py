"""Password hashing utilities.

Uses bcrypt for secure password hashing. bcrypt automatically handles
salting and is resistant to rainbow table attacks. The work factor
defaults to 12 (~250ms per hash on modern hardware) and is configurable
through CAMPUSHUB_BCRYPT_ROUNDS.
"""

import hashlib
import secrets
from typing import Optional

import bcrypt

from campushub.config import settings


def hash_password(password: str, rounds: Optional[int] = None) -> str:
    """Hash a password with bcrypt.

    bcrypt includes a random salt automatically and produces hashes
    starting with "$2b$". Passwords are truncated to 72 bytes (bcrypt's
    limit).
    """
    pw_bytes = password.encode("utf-8")[:72]
    salt = bcrypt.gensalt(rounds=rounds or settings.bcrypt_rounds)
    return bcrypt.hashpw(pw_bytes, salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Verify a password against its bcrypt hash."""
    try:
        pw_bytes = password.encode("utf-8")[:72]
        hash_bytes = password_hash.encode("utf-8")
        return bcrypt.checkpw(pw_bytes, hash_bytes)
    except (ValueError, TypeError):
        return False


def generate_reset_token() -> str:
    """32 random bytes, hex encoded. Shown to the user once."""
    return secrets.token_hex(32)


def hash_reset_token(token: str) -> str:
    """Digest stored in users.reset_token."""
    return hashlib.sha256(token.encode()).hexdigest()
