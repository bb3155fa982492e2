"""FastAPI auth dependencies — the gate in front of protected routes.

Used as Depends() in route handlers (or at include_router level) to
resolve the bearer token to a live session and hand the User to the
handler.

Every token/session failure becomes the same 401 "Invalid or expired
token". Which check failed (bad signature, expired, logged out) goes to
the log, not to the client.
"""

from typing import Optional

import structlog
from fastapi import Depends, Header, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from campushub.auth.errors import AuthError
from campushub.db.engine import get_db
from campushub.db.models import User
from campushub.services.auth_service import AuthService

logger = structlog.get_logger()

_BEARER = "bearer"


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=401,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_bearer_token(
    authorization: Optional[str] = Header(None),
) -> Optional[str]:
    """Extract the token from `Authorization: Bearer <token>`, or None."""
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != _BEARER:
        return None
    return token.strip() or None


async def get_current_user(
    token: Optional[str] = Depends(get_bearer_token),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Resolve the request's bearer token to its user (401 otherwise)."""
    if not token:
        raise _unauthorized("Access token required")

    try:
        return await AuthService(db).authenticate(token)
    except AuthError as e:
        logger.info("auth.rejected", reason=type(e).__name__, error=str(e))
        raise _unauthorized("Invalid or expired token")
