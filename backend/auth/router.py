# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20261018v1
# ---------------------------------------------------------------------------
"""
Auth endpoints – sign-up, login, logout, refresh, password reset,
verification and current-user info.

The refresh token lives in the ``refreshToken`` cookie, scoped to the auth
path, HttpOnly, and Secure in production.  Only the access token is ever
returned in a JSON body.  Business rules live in :mod:`auth.service`; this
module only moves data between HTTP and the service.
"""

from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from auth.schemas import (
    AccessTokenPayload,
    AuthPayload,
    ForgotPasswordRequest,
    LoginRequest,
    LogoutRequest,
    ResetPasswordRequest,
    SignUpRequest,
    UserResponse,
    VerifyEmailRequest,
    VerifyPhoneRequest,
)
from auth.service import AuthService, SessionTokens
from core.config import Settings
from core.dependencies import (
    AuthenticatedIdentity,
    authenticate,
    get_mailer,
    get_password_hasher,
    get_phone_verifier,
    get_settings,
    get_token_codec,
)
from core.security import PasswordHasher, TokenCodec
from core.responses import success_response
from database import get_db

router = APIRouter(prefix="/auth", tags=["auth"])

REFRESH_COOKIE = "refreshToken"

_FORGOT_PASSWORD_MESSAGE = "If the email exists, a password reset link has been sent"


def get_auth_service(
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    codec: TokenCodec = Depends(get_token_codec),
    hasher: PasswordHasher = Depends(get_password_hasher),
    settings: Settings = Depends(get_settings),
    mailer=Depends(get_mailer),
    phone_verifier=Depends(get_phone_verifier),
) -> AuthService:
    return AuthService(
        db,
        codec=codec,
        hasher=hasher,
        settings=settings,
        mailer=mailer,
        phone_verifier=phone_verifier,
        defer=background_tasks.add_task,
    )


# ---------------------------------------------------------------------------
# Cookie helpers
# ---------------------------------------------------------------------------


def _cookie_path(settings) -> str:
    return settings.api_prefix.rstrip("/") + "/auth"


def set_refresh_cookie(response: JSONResponse, token: str, settings) -> None:
    response.set_cookie(
        key=REFRESH_COOKIE,
        value=token,
        max_age=settings.cookie_max_age_days * 24 * 60 * 60,
        path=_cookie_path(settings),
        httponly=True,
        secure=settings.is_production,
        samesite=settings.cookie_same_site,
    )


def clear_refresh_cookie(response: JSONResponse, settings) -> None:
    response.delete_cookie(
        key=REFRESH_COOKIE,
        path=_cookie_path(settings),
        httponly=True,
        secure=settings.is_production,
        samesite=settings.cookie_same_site,
    )


def _session_response(session: SessionTokens, message: str, settings, status_code: int = 200) -> JSONResponse:
    payload = AuthPayload(
        user=UserResponse.model_validate(session.user),
        access_token=session.access_token,
    )
    response = success_response(message, payload.to_json(), status_code=status_code)
    set_refresh_cookie(response, session.refresh_token, settings)
    return response


# ---------------------------------------------------------------------------
# POST /auth/sign-up
# ---------------------------------------------------------------------------


@router.post("/sign-up", status_code=status.HTTP_201_CREATED)
def sign_up(body: SignUpRequest, request: Request, service: AuthService = Depends(get_auth_service)):
    """Create an account and open its first session."""
    session = service.sign_up(
        name=body.name,
        email=body.email,
        password=body.password,
        is_freelancer=body.is_freelancer,
        is_client=body.is_client,
    )
    return _session_response(
        session, "User registered successfully", request.app.state.settings, status.HTTP_201_CREATED
    )


# ---------------------------------------------------------------------------
# POST /auth/log-in
# ---------------------------------------------------------------------------


@router.post("/log-in")
def log_in(body: LoginRequest, request: Request, service: AuthService = Depends(get_auth_service)):
    session = service.log_in(body.email, body.password)
    return _session_response(session, "Login successful", request.app.state.settings)


# ---------------------------------------------------------------------------
# POST /auth/log-out
# ---------------------------------------------------------------------------


@router.post("/log-out")
def log_out(
    request: Request,
    body: Optional[LogoutRequest] = None,
    service: AuthService = Depends(get_auth_service),
):
    """
    End the session named by the refresh cookie (or ``refreshToken`` in the
    body).  Succeeds even when the token is unknown or absent.
    """
    token = request.cookies.get(REFRESH_COOKIE) or (body.refresh_token if body else None)
    service.log_out(token)
    response = success_response("Logout successful")
    clear_refresh_cookie(response, request.app.state.settings)
    return response


# ---------------------------------------------------------------------------
# POST /auth/log-out-all
# ---------------------------------------------------------------------------


@router.post("/log-out-all")
def log_out_all(
    request: Request,
    identity: AuthenticatedIdentity = Depends(authenticate),
    service: AuthService = Depends(get_auth_service),
):
    """Revoke every refresh token of the caller, on every device."""
    revoked = service.log_out_all(identity.id)
    response = success_response("Logged out from all sessions", {"revokedSessions": revoked})
    clear_refresh_cookie(response, request.app.state.settings)
    return response


# ---------------------------------------------------------------------------
# POST /auth/refresh-token
# ---------------------------------------------------------------------------


@router.post("/refresh-token")
def refresh_token(request: Request, service: AuthService = Depends(get_auth_service)):
    """Rotate the refresh cookie and return a fresh access token."""
    session = service.refresh(request.cookies.get(REFRESH_COOKIE))
    payload = AccessTokenPayload(access_token=session.access_token)
    response = success_response("Token refreshed successfully", payload.to_json())
    set_refresh_cookie(response, session.refresh_token, request.app.state.settings)
    return response


# ---------------------------------------------------------------------------
# POST /auth/forgot-password
# ---------------------------------------------------------------------------


@router.post("/forgot-password")
def forgot_password(body: ForgotPasswordRequest, service: AuthService = Depends(get_auth_service)):
    service.forgot_password(body.email)
    return success_response(_FORGOT_PASSWORD_MESSAGE)


# ---------------------------------------------------------------------------
# POST /auth/reset-password
# ---------------------------------------------------------------------------


@router.post("/reset-password")
def reset_password(body: ResetPasswordRequest, service: AuthService = Depends(get_auth_service)):
    service.reset_password(body.token, body.password)
    return success_response("Password reset successfully")


# ---------------------------------------------------------------------------
# POST /auth/verify-email
# ---------------------------------------------------------------------------


@router.post("/verify-email")
def verify_email(body: VerifyEmailRequest, service: AuthService = Depends(get_auth_service)):
    service.verify_email(body.token)
    return success_response("Email verified successfully")


# ---------------------------------------------------------------------------
# POST /auth/send-verification-email
# ---------------------------------------------------------------------------


@router.post("/send-verification-email")
def send_verification_email(
    identity: AuthenticatedIdentity = Depends(authenticate),
    service: AuthService = Depends(get_auth_service),
):
    service.send_verification_email(identity.id)
    return success_response("Verification email sent")


# ---------------------------------------------------------------------------
# POST /auth/verify-phone
# ---------------------------------------------------------------------------


@router.post("/verify-phone")
def verify_phone(body: VerifyPhoneRequest, service: AuthService = Depends(get_auth_service)):
    service.verify_phone(body.phone, body.code)
    return success_response("Phone number verified successfully")


# ---------------------------------------------------------------------------
# GET /auth/me
# ---------------------------------------------------------------------------


@router.get("/me")
def me(identity: AuthenticatedIdentity = Depends(authenticate)):
    """Return the authenticated identity (no secrets)."""
    return success_response("User retrieved successfully", identity.to_json())
