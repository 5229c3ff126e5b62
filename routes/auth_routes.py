"""
Authentication endpoints.

POST /auth/register                — create unverified account, email link  (201)
GET  /auth/verify-email/{token}    — consume verification token
POST /auth/resend-verification     — email a fresh verification link
POST /auth/login                   — access + refresh tokens, refresh cookie
POST /auth/refresh-token           — new access token from stored refresh token
GET  /auth/me                      — current user (no credentials)
POST /auth/logout                  — clear stored refresh token and cookie
POST /auth/forgot-password         — email a reset link
PUT  /auth/reset-password/{token}  — consume reset token, set new password
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from config import AppSettings
from dependencies import (
    REFRESH_TOKEN_COOKIE,
    get_account_service,
    get_current_user,
    get_session_manager,
    get_settings,
)
from errors import InvalidRefreshTokenError
from schemas.dto.requests.auth import (
    ForgotPasswordRequest,
    LoginRequest,
    RefreshTokenRequest,
    RegisterRequest,
    ResendVerificationRequest,
    ResetPasswordRequest,
)
from schemas.dto.responses.auth import (
    LoginResponse,
    MeResponse,
    RefreshResponse,
    RegisterResponse,
    UserProfileResponse,
)
from schemas.dto.responses.common import ErrorResponse, MessageResponse
from schemas.models.user import UserDoc
from services.account_service import AccountService
from services.session_manager import SessionManager

router = APIRouter(
    prefix="/auth",
    tags=["auth"],
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
    },
)


def _json(model, status_code: int = 200) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=model.model_dump(by_alias=True, mode="json"),
    )


def set_refresh_cookie(
    response: JSONResponse, token: str, settings: AppSettings
) -> None:
    response.set_cookie(
        REFRESH_TOKEN_COOKIE,
        value=token,
        httponly=True,
        secure=settings.cookie_secure,
        samesite="strict",
        path="/",
        max_age=settings.jwt.refresh_token_ttl_seconds,
    )


def clear_refresh_cookie(response: JSONResponse, settings: AppSettings) -> None:
    response.set_cookie(
        REFRESH_TOKEN_COOKIE,
        value="",
        httponly=True,
        secure=settings.cookie_secure,
        samesite="strict",
        path="/",
        max_age=0,
        expires=0,
    )


@router.post("/register")
async def register(
    body: RegisterRequest,
    accounts: AccountService = Depends(get_account_service),
) -> JSONResponse:
    result = await accounts.register(body.name, body.email, body.password, body.role)
    if result.verification_sent:
        message = (
            "User registered successfully. "
            "Please check your email to verify your account."
        )
    else:
        message = (
            "User registered successfully, but the verification email could "
            "not be sent. Please request a new verification link."
        )
    return _json(
        RegisterResponse(message=message, verification_sent=result.verification_sent),
        status_code=201,
    )


@router.get("/verify-email/{token}")
async def verify_email(
    token: str,
    accounts: AccountService = Depends(get_account_service),
) -> JSONResponse:
    await accounts.verify_email(token)
    return _json(
        MessageResponse(
            success=True, message="Email verified successfully. You can now log in."
        )
    )


@router.post("/resend-verification")
async def resend_verification(
    body: ResendVerificationRequest,
    accounts: AccountService = Depends(get_account_service),
) -> JSONResponse:
    sent = await accounts.resend_verification(body.email)
    return _json(
        MessageResponse(
            success=sent,
            message="Verification email sent"
            if sent
            else "Verification email could not be sent",
        ),
        status_code=200 if sent else 502,
    )


@router.post("/login")
async def login(
    body: LoginRequest,
    sessions: SessionManager = Depends(get_session_manager),
    settings: AppSettings = Depends(get_settings),
) -> JSONResponse:
    result = await sessions.login(body.email, body.password)
    response = _json(
        LoginResponse(
            access_token=result.access_token,
            refresh_token=result.refresh_token,
            user=UserProfileResponse.from_user(result.user),
        )
    )
    set_refresh_cookie(response, result.refresh_token, settings)
    return response


@router.post("/refresh-token")
async def refresh_token(
    request: Request,
    body: RefreshTokenRequest | None = None,
    sessions: SessionManager = Depends(get_session_manager),
) -> JSONResponse:
    presented = (body.refresh_token if body else None) or request.cookies.get(
        REFRESH_TOKEN_COOKIE
    )
    if not presented:
        raise InvalidRefreshTokenError("Refresh token is required")
    access_token = await sessions.refresh(presented)
    return _json(RefreshResponse(access_token=access_token))


@router.get("/me")
async def me(user: UserDoc = Depends(get_current_user)) -> JSONResponse:
    return _json(MeResponse(data=UserProfileResponse.from_user(user)))


@router.post("/logout")
async def logout(
    user: UserDoc = Depends(get_current_user),
    sessions: SessionManager = Depends(get_session_manager),
    settings: AppSettings = Depends(get_settings),
) -> JSONResponse:
    await sessions.logout(user.id_str)
    response = _json(MessageResponse(success=True, message="Logged out successfully"))
    clear_refresh_cookie(response, settings)
    return response


@router.post("/forgot-password")
async def forgot_password(
    body: ForgotPasswordRequest,
    accounts: AccountService = Depends(get_account_service),
) -> JSONResponse:
    """Always success-shaped once the email is known.

    A failed send is logged and the reset token is left to expire; the user
    simply asks again. Unlike resend-verification there is no account left
    stuck behind the failure, so no 502.
    """
    await accounts.forgot_password(body.email)
    return _json(MessageResponse(success=True, message="Password reset email sent"))


@router.put("/reset-password/{token}")
async def reset_password(
    token: str,
    body: ResetPasswordRequest,
    accounts: AccountService = Depends(get_account_service),
) -> JSONResponse:
    await accounts.reset_password(token, body.password)
    return _json(
        MessageResponse(
            success=True,
            message="Password reset successful. Please login with your new password.",
        )
    )
