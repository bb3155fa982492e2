"""Profile service — read and patch the signed-in user's profile."""

import uuid

import structlog
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from campushub.auth.errors import ConflictError, UserNotFoundError
from campushub.db.models import User
from campushub.schemas.auth import ProfilePatch

logger = structlog.get_logger()

EMAIL_TAKEN = "Email already in use by another user"


class ProfileService:
    """Business logic for profile updates."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_profile(self, user: User) -> User:
        profile = await self.db.get(User, user.id)
        if profile is None:
            raise UserNotFoundError()
        return profile

    async def update_profile(self, user: User, patch: ProfilePatch) -> User:
        """Apply the fields present in the patch.

        Raises ConflictError if the new email belongs to another account.
        """
        changes = patch.changes()
        user_id = user.id

        email = changes.get("email")
        if email and email != user.email and await self._email_taken(email, user_id):
            raise ConflictError(EMAIL_TAKEN)

        profile = await self.get_profile(user)
        for field, value in changes.items():
            setattr(profile, field, value)

        try:
            await self.db.commit()
        except IntegrityError:
            # Another account claimed the email between the check and the commit.
            await self.db.rollback()
            raise ConflictError(EMAIL_TAKEN)

        logger.info(
            "profile.updated",
            user_id=str(user_id),
            fields=sorted(changes),
        )
        return profile

    async def _email_taken(self, email: str, user_id: uuid.UUID) -> bool:
        result = await self.db.execute(
            select(User.id).where(User.email == email, User.id != user_id)
        )
        return result.first() is not None
