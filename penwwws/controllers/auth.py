"""Authentication controller: registration, activation, login and password reset."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta

from fastapi import APIRouter, HTTPException, Response, status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from penwwws.config.settings import settings
from penwwws.controllers.dependencies import SessionDep
from penwwws.models.tokens import ActivationToken, PasswordResetToken
from penwwws.models.user import AuthProvider, User as UserModel
from penwwws.services import (
    OAuthProviderError,
    fetch_google_profile,
    frontend_link,
    try_send_link_email,
)
from penwwws.telemetry import increment_login
from penwwws.utils import (
    create_access_token,
    generate_url_token,
    hash_password,
    verify_password,
)
from penwwws.views import (
    LoginRequest,
    OAuthRequest,
    PasswordResetConfirmRequest,
    PasswordResetRequest,
    RegisterRequest,
    SuccessResponse,
    TokenResponse,
    UserResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])

_SUPPORTED_PROVIDERS = {"google"}


def _issue_token(user: UserModel, response: Response) -> TokenResponse:
    """Sign a token for ``user`` and mirror it in the Authorization header."""

    access_token = create_access_token(subject=str(user.id), user=user)
    response.headers["Authorization"] = f"Bearer {access_token}"
    return TokenResponse(
        access_token=access_token,
        expires_in=settings.security.access_token_expires_minutes * 60,
        user=UserResponse.model_validate(user),
    )


def _is_older_than(created_at: datetime, hours: int) -> bool:
    return created_at + timedelta(hours=hours) < datetime.utcnow()


@router.post(
    "/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED
)
async def register(
    payload: RegisterRequest,
    response: Response,
    session: SessionDep,
) -> TokenResponse:
    """Create a credentials account and e-mail its activation link."""

    email = payload.email.lower()
    existing = await session.execute(
        select(UserModel.id).where(UserModel.email == email)
    )
    if existing.scalar_one_or_none() is not None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Email address already registered",
        )

    user = UserModel(
        email=email,
        full_name=payload.fullName,
        password_hash=hash_password(payload.password),
        provider=AuthProvider.CREDENTIALS,
        is_email_verified=False,
    )
    session.add(user)
    try:
        await session.flush()
        activation = ActivationToken(token=generate_url_token(), user_id=user.id)
        session.add(activation)
        await session.commit()
    except IntegrityError as exc:
        await session.rollback()
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Email address already registered",
        ) from exc

    await session.refresh(user)
    logger.info("Registered user %s", user.id)

    await try_send_link_email(
        recipient=user.email,
        subject="Activate your Penwwws account",
        heading=f"Welcome to Penwwws, {user.full_name}!",
        button_label="Activate account",
        link=frontend_link(f"/activate/{activation.token}"),
    )
    return _issue_token(user, response)


@router.post("/activate/{token}", response_model=SuccessResponse)
async def activate(token: str, session: SessionDep) -> SuccessResponse:
    result = await session.execute(
        select(ActivationToken, UserModel)
        .join(UserModel, UserModel.id == ActivationToken.user_id)
        .where(ActivationToken.token == token)
    )
    row = result.one_or_none()
    if row is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid activation token",
        )

    activation, user = row
    if user.is_email_verified or activation.activated_at is not None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Account already activated",
        )
    if _is_older_than(activation.created_at, settings.security.activation_token_hours):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Activation token expired",
        )

    user.is_email_verified = True
    activation.activated_at = datetime.utcnow()
    await session.commit()
    return SuccessResponse(message="Account activated")


@router.post("/login", response_model=TokenResponse)
async def login(
    payload: LoginRequest,
    response: Response,
    session: SessionDep,
) -> TokenResponse:
    """Validate credentials and issue a JWT access token."""

    result = await session.execute(
        select(UserModel).where(UserModel.email == payload.email.lower())
    )
    user = result.scalar_one_or_none()

    if not user or not verify_password(payload.password, user.password_hash):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
        )

    increment_login()
    return _issue_token(user, response)


@router.post("/oauth", response_model=TokenResponse)
async def oauth_login(
    payload: OAuthRequest,
    response: Response,
    session: SessionDep,
) -> TokenResponse:
    """Exchange a provider access token for a Penwwws token.

    Unknown accounts are created on the fly (201); returning ones get 200.
    """

    provider = payload.provider.lower()
    if provider not in _SUPPORTED_PROVIDERS:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unsupported provider '{payload.provider}'",
        )

    try:
        profile = await fetch_google_profile(payload.token)
    except OAuthProviderError as exc:
        logger.warning("Google sign-in failed: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid provider token",
        ) from exc

    email = profile.email.lower()
    result = await session.execute(select(UserModel).where(UserModel.email == email))
    user = result.scalar_one_or_none()

    if user is None:
        user = UserModel(
            email=email,
            full_name=profile.name,
            provider=AuthProvider.GOOGLE,
            is_email_verified=True,
            avatar_url=profile.picture,
        )
        session.add(user)
        try:
            await session.commit()
        except IntegrityError as exc:
            await session.rollback()
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Email address already registered",
            ) from exc
        await session.refresh(user)
        response.status_code = status.HTTP_201_CREATED
        logger.info("Registered user %s through %s", user.id, provider)

    increment_login()
    return _issue_token(user, response)


@router.post("/reset-password", response_model=SuccessResponse)
async def request_password_reset(
    payload: PasswordResetRequest,
    session: SessionDep,
) -> SuccessResponse:
    """E-mail a single-use password reset link."""

    result = await session.execute(
        select(UserModel).where(UserModel.email == payload.email.lower())
    )
    user = result.scalar_one_or_none()
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No account is associated with this email",
        )

    reset = PasswordResetToken(token=generate_url_token(), user_id=user.id)
    session.add(reset)
    await session.commit()

    await try_send_link_email(
        recipient=user.email,
        subject="Reset your Penwwws password",
        heading="Password reset requested",
        button_label="Reset password",
        link=frontend_link(f"/reset-password/{reset.token}"),
        footer=(
            f"The link expires in {settings.security.reset_token_hours} hours. "
            "If you did not ask for it, ignore this message."
        ),
    )
    return SuccessResponse(message="A password reset link was sent to your email")


@router.post("/reset-password/{token}", response_model=SuccessResponse)
async def confirm_password_reset(
    token: str,
    payload: PasswordResetConfirmRequest,
    session: SessionDep,
) -> SuccessResponse:
    result = await session.execute(
        select(PasswordResetToken, UserModel)
        .join(UserModel, UserModel.id == PasswordResetToken.user_id)
        .where(PasswordResetToken.token == token)
    )
    row = result.one_or_none()
    if row is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid password reset token",
        )

    reset, user = row
    if reset.reset_at is not None or _is_older_than(
        reset.created_at, settings.security.reset_token_hours
    ):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Password reset token expired",
        )

    user.password_hash = hash_password(payload.password)
    reset.reset_at = datetime.utcnow()
    await session.commit()
    return SuccessResponse(message="Password updated")
