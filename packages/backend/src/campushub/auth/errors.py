"""Auth failure taxonomy.

The service layer raises these; route handlers and the auth gate decide
what the client sees. Token/session failures all collapse into one
generic 401 at the gate, the distinction is for logs only.
"""

from typing import Optional


class AuthError(Exception):
    """Base class for account and session failures."""

    message = "Authentication failed"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.message)


class ConflictError(AuthError):
    message = "User already exists with this email"


class InvalidCredentialsError(AuthError):
    # Same text for unknown email and wrong password.
    message = "Invalid email or password"


class MissingTokenError(AuthError):
    message = "No token provided"


class InvalidTokenError(AuthError):
    message = "Invalid token"


class SessionInactiveError(AuthError):
    message = "Session expired or invalid"


class SessionExpiredError(AuthError):
    message = "Session expired"


class UserNotFoundError(AuthError):
    message = "User not found"


class InvalidOrExpiredTokenError(AuthError):
    message = "Invalid or expired reset token"
