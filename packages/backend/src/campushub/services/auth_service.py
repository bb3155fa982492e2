"""Auth service — accounts, session tokens and password reset.

Every successful register/login issues a signed token AND a UserSession
row. Validation checks both: the signature proves the token came from us,
the row decides whether it is still usable (logout and server-side expiry
only exist in the row).

Session state only moves one way:
    ACTIVE --logout / logout-all--> INACTIVE
    ACTIVE --validated after expires_at--> EXPIRED (is_active = false)
    ACTIVE --authenticated request--> ACTIVE (last_used refreshed)

All is_active writes are conditional UPDATEs (WHERE is_active = true)
and the last_used refresh never touches is_active, so a racing request
cannot bring a revoked session back.
"""

import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

import structlog
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from campushub.auth.errors import (
    ConflictError,
    InvalidCredentialsError,
    InvalidOrExpiredTokenError,
    InvalidTokenError,
    MissingTokenError,
    SessionExpiredError,
    SessionInactiveError,
    UserNotFoundError,
)
from campushub.auth.jwt import (
    TokenError,
    create_session_token,
    expiry_from_claims,
    user_id_from_claims,
    verify_token,
)
from campushub.auth.password import (
    generate_reset_token,
    hash_password,
    hash_reset_token,
    verify_password,
)
from campushub.config import settings
from campushub.db.models import User, UserSession, as_utc, utcnow

logger = structlog.get_logger()


class AuthService:
    """Business logic for authentication and session lifecycle."""

    def __init__(self, db: AsyncSession):
        self.db = db

    # ─── Registration & login ───────────────────────────

    async def register(
        self,
        name: str,
        email: str,
        password: str,
        id_number: Optional[str] = None,
        department: Optional[str] = None,
    ) -> tuple[str, User]:
        """Create an account and sign it in.

        Returns (token, user). Raises ConflictError if the email is taken.
        """
        if await self.get_user_by_email(email):
            raise ConflictError()

        user = User(
            email=email,
            name=name,
            password_hash=hash_password(password),
            roll_number=id_number or None,
            branch=department or None,
        )
        self.db.add(user)
        try:
            await self.db.flush()
        except IntegrityError:
            # Lost a race with a concurrent registration of the same email.
            await self.db.rollback()
            raise ConflictError()

        token, _ = await self.issue_session(user)
        logger.info("auth.registered", user_id=str(user.id))
        return token, user

    async def login(self, email: str, password: str) -> tuple[str, User]:
        """Check credentials and issue a new session.

        Unknown email and wrong password raise the same
        InvalidCredentialsError so callers can't probe for accounts.
        """
        user = await self.get_user_by_email(email)
        if not user or not verify_password(password, user.password_hash):
            logger.info("auth.login_failed", known_user=user is not None)
            raise InvalidCredentialsError()

        token, _ = await self.issue_session(user)
        logger.info("auth.login", user_id=str(user.id))
        return token, user

    async def issue_session(self, user: User) -> tuple[str, UserSession]:
        """Sign a token and persist its session row. Commits."""
        expires_at = utcnow() + timedelta(days=settings.session_expire_days)
        token = create_session_token(user.id, user.email, expires_at)
        session = UserSession(
            user_id=user.id,
            token=token,
            expires_at=expires_at,
            is_active=True,
        )
        self.db.add(session)
        await self.db.commit()
        return token, session

    # ─── Validation ─────────────────────────────────────

    async def authenticate(self, token: str) -> User:
        """Resolve a bearer token to its user.

        Order matters: signature, then session row (repairing a missing
        one), then is_active, then expires_at. Raises an AuthError
        subclass on any failure.
        """
        if not token:
            raise MissingTokenError()

        try:
            claims = verify_token(token)
        except TokenError as e:
            raise InvalidTokenError(str(e))

        session = await self.get_session_by_token(token)
        if session is None:
            session = await self.resolve_or_repair_session(token, claims)

        if not session.is_active:
            raise SessionInactiveError()

        if utcnow() > as_utc(session.expires_at):
            await self._deactivate(UserSession.id == session.id)
            await self.db.commit()
            logger.info("auth.session_expired", session_id=str(session.id))
            raise SessionExpiredError()

        user_id = session.user_id
        await self._touch(session)

        user = await self.db.get(User, user_id)
        if user is None:
            raise UserNotFoundError()
        return user

    async def resolve_or_repair_session(
        self, token: str, claims: dict
    ) -> UserSession:
        """Recreate the session row for a validly signed token that has none.

        Happens when the sessions table lost the row or the token was
        issued out of band. The row inherits expires_at from the token's
        exp claim.
        """
        try:
            user_id = user_id_from_claims(claims)
        except TokenError as e:
            raise InvalidTokenError(str(e))

        user = await self.db.get(User, user_id)
        if user is None:
            raise UserNotFoundError()

        session = UserSession(
            user_id=user.id,
            token=token,
            expires_at=expiry_from_claims(claims),
            is_active=True,
        )
        self.db.add(session)
        try:
            await self.db.commit()
        except IntegrityError:
            # Another request repaired the same token first.
            await self.db.rollback()
            existing = await self.get_session_by_token(token)
            if existing is None:
                raise
            return existing

        logger.warning(
            "auth.session_repaired",
            session_id=str(session.id),
            user_id=str(user.id),
        )
        return session

    async def _touch(self, session: UserSession) -> None:
        """Refresh last_used. Best effort: failures never fail the request."""
        session_id = session.id
        try:
            await self.db.execute(
                update(UserSession)
                .where(UserSession.id == session_id)
                .values(last_used=utcnow())
                .execution_options(synchronize_session=False)
            )
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.warning(
                "auth.last_used_update_failed",
                session_id=str(session_id),
                error=str(e),
            )

    # ─── Logout ─────────────────────────────────────────

    async def logout(self, token: Optional[str]) -> int:
        """Deactivate the active session for this exact token.

        No matching active session is not an error. Returns the number
        of sessions deactivated (0 or 1).
        """
        if not token:
            raise MissingTokenError()

        count = await self._deactivate(UserSession.token == token)
        await self.db.commit()
        return count

    async def logout_all(self, user: User) -> int:
        """Deactivate every active session owned by this user."""
        count = await self._deactivate(UserSession.user_id == user.id)
        await self.db.commit()
        logger.info("auth.logout_all", user_id=str(user.id), sessions=count)
        return count

    async def _deactivate(self, criteria) -> int:
        result = await self.db.execute(
            update(UserSession)
            .where(criteria, UserSession.is_active.is_(True))
            .values(is_active=False)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    # ─── Password reset ─────────────────────────────────

    async def forgot_password(self, email: str) -> str:
        """Start a password reset. Returns the raw reset token.

        Overwrites any earlier outstanding token. Only the digest is
        stored; the caller decides whether the raw token may be shown.
        """
        user = await self.get_user_by_email(email)
        if not user:
            raise UserNotFoundError("User not found with this email")

        reset_token = generate_reset_token()
        user.reset_token = hash_reset_token(reset_token)
        user.reset_token_expiry = utcnow() + timedelta(
            minutes=settings.reset_token_expire_minutes
        )
        await self.db.commit()
        logger.info("auth.password_reset_requested", user_id=str(user.id))
        return reset_token

    async def reset_password(self, token: str, new_password: str) -> User:
        """Consume a reset token and set a new password."""
        if not token:
            raise InvalidOrExpiredTokenError()

        result = await self.db.execute(
            select(User).where(
                User.reset_token == hash_reset_token(token),
                User.reset_token_expiry >= datetime.now(timezone.utc),
            )
        )
        user = result.scalars().first()
        if not user:
            raise InvalidOrExpiredTokenError()

        user.password_hash = hash_password(new_password)
        user.reset_token = None
        user.reset_token_expiry = None
        await self.db.commit()
        logger.info("auth.password_reset", user_id=str(user.id))
        return user

    # ─── Lookups ────────────────────────────────────────

    async def get_user_by_email(self, email: str) -> Optional[User]:
        result = await self.db.execute(select(User).where(User.email == email))
        return result.scalars().first()

    async def get_session_by_token(self, token: str) -> Optional[UserSession]:
        # populate_existing: always read is_active from the store, never a
        # stale identity-map copy.
        result = await self.db.execute(
            select(UserSession)
            .where(UserSession.token == token)
            .execution_options(populate_existing=True)
        )
        return result.scalars().first()

    async def list_sessions(self, user_id: uuid.UUID) -> list[UserSession]:
        result = await self.db.execute(
            select(UserSession)
            .where(UserSession.user_id == user_id)
            .order_by(UserSession.created_at)
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())
