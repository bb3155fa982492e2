"""Auth API — registration, login, sessions, profile and password reset.

Routes:
- POST /auth/register → create an account, returns a session token
- POST /auth/login → email/password → session token
- GET /auth/me → current user
- PUT /auth/profile → partial profile update
- POST /auth/logout → revoke this token's session
- POST /auth/logout-all → revoke every session of the current user
- POST /auth/forgot-password → start a password reset
- POST /auth/reset-password → finish a password reset
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from campushub.auth.dependencies import get_bearer_token, get_current_user
from campushub.auth.errors import (
    ConflictError,
    InvalidCredentialsError,
    InvalidOrExpiredTokenError,
    MissingTokenError,
    UserNotFoundError,
)
from campushub.config import settings
from campushub.db.engine import get_db
from campushub.db.models import User
from campushub.schemas.auth import (
    AuthResponse,
    ForgotPasswordRequest,
    ForgotPasswordResponse,
    LoginRequest,
    MeResponse,
    MessageResponse,
    ProfilePatch,
    ProfileResponse,
    RegisterRequest,
    ResetPasswordRequest,
    UserProfile,
    UserPublic,
)
from campushub.services.auth_service import AuthService
from campushub.services.profile_service import ProfileService

router = APIRouter(prefix="/auth")


def _svc(db: AsyncSession = Depends(get_db)) -> AuthService:
    return AuthService(db)


def _profiles(db: AsyncSession = Depends(get_db)) -> ProfileService:
    return ProfileService(db)


# ─── Register / login ───────────────────────────────────


@router.post("/register", response_model=AuthResponse, status_code=201)
async def register(body: RegisterRequest, svc: AuthService = Depends(_svc)):
    """Create a new account and sign it in."""
    try:
        token, user = await svc.register(
            name=body.name,
            email=body.email,
            password=body.password,
            id_number=body.id_number,
            department=body.department,
        )
    except ConflictError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return AuthResponse(
        message="User registered successfully",
        token=token,
        user=UserPublic.model_validate(user),
    )


@router.post("/login", response_model=AuthResponse)
async def login(body: LoginRequest, svc: AuthService = Depends(_svc)):
    """Login with email and password → session token."""
    try:
        token, user = await svc.login(body.email, body.password)
    except InvalidCredentialsError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return AuthResponse(
        message="Login successful",
        token=token,
        user=UserPublic.model_validate(user),
    )


# ─── Current user & profile ─────────────────────────────


@router.get("/me", response_model=MeResponse)
async def get_me(user: User = Depends(get_current_user)):
    """Get the current authenticated user's info."""
    return MeResponse(user=UserPublic.model_validate(user))


@router.put("/profile", response_model=ProfileResponse)
async def update_profile(
    body: ProfilePatch,
    user: User = Depends(get_current_user),
    profiles: ProfileService = Depends(_profiles),
):
    """Update whichever profile fields were supplied."""
    try:
        updated = await profiles.update_profile(user, body)
    except ConflictError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return ProfileResponse(
        message="Profile updated successfully",
        user=UserProfile.model_validate(updated),
    )


# ─── Logout ─────────────────────────────────────────────


@router.post(
    "/logout",
    response_model=MessageResponse,
    dependencies=[Depends(get_current_user)],
)
async def logout(
    token: Optional[str] = Depends(get_bearer_token),
    svc: AuthService = Depends(_svc),
):
    """Revoke the session behind the presented token."""
    try:
        await svc.logout(token)
    except MissingTokenError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return MessageResponse(message="Logout successful")


@router.post("/logout-all", response_model=MessageResponse)
async def logout_all(
    user: User = Depends(get_current_user),
    svc: AuthService = Depends(_svc),
):
    """Revoke every session of the current user (all devices)."""
    await svc.logout_all(user)
    return MessageResponse(message="Logged out from all devices successfully")


# ─── Password reset ─────────────────────────────────────


@router.post(
    "/forgot-password",
    response_model=ForgotPasswordResponse,
    response_model_exclude_none=True,
)
async def forgot_password(
    body: ForgotPasswordRequest, svc: AuthService = Depends(_svc)
):
    """Issue a one-hour password reset token.

    The raw token is only echoed back when reset_token_in_response is
    on (non-production by default); otherwise it must reach the user
    out of band.
    """
    try:
        reset_token = await svc.forgot_password(body.email)
    except UserNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    return ForgotPasswordResponse(
        message="Password reset link sent to your email",
        reset_token=reset_token if settings.reset_token_in_response else None,
    )


@router.post("/reset-password", response_model=MessageResponse)
async def reset_password(
    body: ResetPasswordRequest, svc: AuthService = Depends(_svc)
):
    """Set a new password using a reset token. Tokens are single use."""
    try:
        await svc.reset_password(body.token, body.new_password)
    except InvalidOrExpiredTokenError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return MessageResponse(message="Password reset successful")
