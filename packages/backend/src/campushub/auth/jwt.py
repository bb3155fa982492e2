"""JWT session token creation and verification.

Each login issues one signed token. The token carries the user id, email,
expiry and a random jti, and is stored verbatim in user_sessions so the
server can revoke it before the signature expires.
"""

import secrets
import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt

from campushub.config import settings


class TokenError(Exception):
    """Raised when token creation/verification fails."""


def create_session_token(
    user_id: uuid.UUID,
    email: str,
    expires_at: Optional[datetime] = None,
) -> str:
    """Create a signed session token.

    The jti makes every issuance unique, even two logins of the same
    user within the same second.
    """
    now = datetime.now(timezone.utc)
    expires = expires_at or now + timedelta(days=settings.session_expire_days)
    payload = {
        "sub": str(user_id),
        "email": email,
        "jti": secrets.token_hex(16),
        "iat": now,
        "exp": expires,
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def verify_token(token: str) -> dict:
    """Verify and decode a session token.

    Returns the payload dict on success.
    Raises TokenError on failure.
    """
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            options={"require": ["sub", "exp"]},
        )
    except jwt.ExpiredSignatureError:
        raise TokenError("Token has expired")
    except jwt.InvalidTokenError as e:
        raise TokenError(f"Invalid token: {e}")
    return payload


def user_id_from_claims(payload: dict) -> uuid.UUID:
    """Parse the subject claim back into a user id."""
    try:
        return uuid.UUID(str(payload["sub"]))
    except (KeyError, ValueError) as e:
        raise TokenError(f"Invalid subject claim: {e}")


def expiry_from_claims(payload: dict) -> datetime:
    return datetime.fromtimestamp(int(payload["exp"]), tz=timezone.utc)
