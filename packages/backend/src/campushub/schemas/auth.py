"""Pydantic schemas for auth and profile endpoints.

The mobile client speaks camelCase (idNumber, newPassword, resetToken,
profileImage...). Models use snake_case attributes with a camelCase
alias generator; both spellings are accepted on input, responses are
serialized by alias.
"""

import uuid
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ─── Requests ───────────────────────────────────────────


class RegisterRequest(CamelModel):
    name: str = Field(..., min_length=1, max_length=100)
    email: str = Field(..., min_length=3, max_length=255)
    password: str = Field(..., min_length=8)
    id_number: Optional[str] = Field(None, max_length=50)
    department: Optional[str] = Field(None, max_length=100)


class LoginRequest(CamelModel):
    email: str
    password: str


class ForgotPasswordRequest(CamelModel):
    email: str


class ResetPasswordRequest(CamelModel):
    token: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=8)


class ProfilePatch(CamelModel):
    """Partial profile update.

    Every field is optional. Only fields the client actually sent, and
    sent with a non-null value, are applied.
    """

    name: Optional[str] = Field(None, min_length=1, max_length=100)
    email: Optional[str] = Field(None, min_length=3, max_length=255)
    roll_number: Optional[str] = Field(None, max_length=50)
    branch: Optional[str] = Field(None, max_length=100)
    semester: Optional[str] = Field(None, max_length=20)
    section: Optional[str] = Field(None, max_length=20)
    skills: Optional[list[str]] = None
    achievements: Optional[list[str]] = None
    profile_image: Optional[str] = None

    @field_validator("semester", mode="before")
    @classmethod
    def _semester_as_text(cls, v: Any) -> Any:
        # The app sends semester as a number from its picker.
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v

    def changes(self) -> dict[str, Any]:
        """Field name → new value for everything present in the request."""
        return self.model_dump(exclude_unset=True, exclude_none=True)


# ─── Responses ──────────────────────────────────────────


class UserPublic(CamelModel):
    """Safe projection of a user — never includes the password hash."""

    id: uuid.UUID
    email: str
    name: str

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, from_attributes=True
    )


class UserProfile(UserPublic):
    roll_number: Optional[str] = None
    branch: Optional[str] = None
    semester: Optional[str] = None
    section: Optional[str] = None
    skills: list[str] = []
    achievements: list[str] = []
    profile_image: Optional[str] = None

    @field_validator("skills", "achievements", mode="before")
    @classmethod
    def _empty_list(cls, v: Any) -> Any:
        return v or []


class AuthResponse(CamelModel):
    message: str
    token: str
    user: UserPublic


class MeResponse(CamelModel):
    user: UserPublic


class ProfileResponse(CamelModel):
    message: str
    user: UserProfile


class MessageResponse(CamelModel):
    message: str


class ForgotPasswordResponse(CamelModel):
    message: str
    reset_token: Optional[str] = None
