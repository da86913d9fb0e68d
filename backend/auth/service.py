# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20261018v1
# ---------------------------------------------------------------------------
"""
Session lifecycle: sign-up, login, refresh rotation, logout, password reset
and email / phone verification.

Security notes
--------------
* Login answers "Invalid email or password" both for an unknown email and for
  a wrong password, and burns one bcrypt comparison in the unknown case so the
  two are indistinguishable by timing as well.
* forgot-password answers identically whether or not the email exists.  The
  reset token only ever travels by email.
* A refresh token is single-use.  Rotation deletes the old ledger row and
  inserts the new one in one transaction; if the delete finds nothing, a
  concurrent refresh already consumed the token and this one fails.
* Every token-verification failure inside a flow collapses into one message,
  so callers cannot tell an expired token from a forged one.
"""

import hmac
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from sqlalchemy.orm import Session

from auth.credentials import CredentialStore
from auth.ledger import RefreshTokenLedger
from core.errors import AccountInactive, AlreadyExists, InvalidCredentials, NotFound, ValidationError
from core.logger import logger, redact_email
from core.security import InvalidToken, PasswordHasher, TokenCodec, TokenKind
from database import transaction
from models.user import User

_BAD_REFRESH = "Invalid or expired refresh token"
_BAD_RESET = "Invalid or expired reset token"
_BAD_VERIFICATION = "Invalid or expired verification token"


class PhoneCodeVerifier:
    """
    One-time-code check for phone verification.

    Accepts a single configured code for every number.  An SMS provider that
    stores per-number codes replaces this class; ``check`` is the whole
    interface.
    """

    def __init__(self, code: str):
        self.code = code

    def check(self, phone: str, code: str) -> bool:
        return hmac.compare_digest(code.encode("utf-8"), self.code.encode("utf-8"))


@dataclass
class SessionTokens:
    user: User
    access_token: str
    refresh_token: str


def _run_now(func, *args):
    func(*args)


class AuthService:
    def __init__(
        self,
        db: Session,
        *,
        codec: TokenCodec,
        hasher: PasswordHasher,
        settings,
        mailer=None,
        phone_verifier: Optional[PhoneCodeVerifier] = None,
        defer: Optional[Callable] = None,
    ):
        self.db = db
        self.codec = codec
        self.settings = settings
        self.mailer = mailer
        self.phone_verifier = phone_verifier or PhoneCodeVerifier(settings.phone_verification_code)
        # BackgroundTasks.add_task in requests; scripts and tests run mail inline
        self.defer = defer or _run_now
        self.credentials = CredentialStore(db, hasher)
        self.ledger = RefreshTokenLedger(db)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _ledger_expiry(self) -> datetime:
        days = self.settings.jwt_refresh_token_db_expires_days
        return datetime.now(timezone.utc) + timedelta(days=days)

    def _open_session(self, user: User) -> SessionTokens:
        """Issue an access/refresh pair and record the refresh token.  No commit."""
        access_token = self.codec.issue(TokenKind.ACCESS, user.id)
        refresh_token = self.codec.issue(TokenKind.REFRESH, user.id)
        self.ledger.issue(user.id, refresh_token, self._ledger_expiry())
        return SessionTokens(user=user, access_token=access_token, refresh_token=refresh_token)

    def _queue_mail(self, message: str, email: str, token: str) -> None:
        """Hand ``mailer.<message>(email, token)`` to the deferral hook."""
        if self.mailer is None:
            logger.warning("No mailer configured, dropping email to %s", redact_email(email))
            return
        self.defer(getattr(self.mailer, message), email, token)

    def _queue_verification_email(self, user: User) -> None:
        token = self.codec.issue(TokenKind.EMAIL_VERIFICATION, user.id)
        self._queue_mail("send_email_verification", user.email, token)

    # ------------------------------------------------------------------
    # Sign-up / login / logout
    # ------------------------------------------------------------------

    def sign_up(
        self,
        name: str,
        email: str,
        password: str,
        is_freelancer: bool = False,
        is_client: bool = False,
    ) -> SessionTokens:
        if self.credentials.email_taken(email):
            raise AlreadyExists("User with this email")

        # The unique index on users.email still catches a concurrent sign-up
        # (IntegrityError → 409) and the whole transaction rolls back.
        with transaction(self.db):
            user = self.credentials.create_user(
                name=name,
                email=email,
                password=password,
                is_freelancer=is_freelancer,
                is_client=is_client,
            )
            session = self._open_session(user)

        logger.info("User signed up | id=%s freelancer=%s client=%s", user.id, is_freelancer, is_client)
        self._queue_verification_email(user)
        return session

    def log_in(self, email: str, password: str) -> SessionTokens:
        user = self.credentials.find_by_email(email)
        if user is None:
            self.credentials.hasher.dummy_verify(password)
            logger.info("Login failed | reason=unknown_email")
            raise InvalidCredentials()

        if user.is_inactive:
            logger.info("Login refused | id=%s reason=inactive", user.id)
            raise AccountInactive()

        if not self.credentials.check_password(user, password):
            logger.info("Login failed | id=%s reason=bad_password", user.id)
            raise InvalidCredentials()

        with transaction(self.db):
            session = self._open_session(user)

        logger.info("User logged in | id=%s", user.id)
        return session

    def log_out(self, refresh_token: Optional[str]) -> int:
        """Delete the ledger row for *refresh_token*.  Always succeeds."""
        if not refresh_token:
            return 0
        with transaction(self.db):
            removed = self.ledger.revoke_one(refresh_token)
        return removed

    def log_out_all(self, user_id: str) -> int:
        with transaction(self.db):
            revoked = self.ledger.revoke_all_for_user(user_id)
        logger.info("All sessions revoked | id=%s count=%d", user_id, revoked)
        return revoked

    # ------------------------------------------------------------------
    # Refresh rotation
    # ------------------------------------------------------------------

    def refresh(self, refresh_token: Optional[str]) -> SessionTokens:
        if not refresh_token:
            raise ValidationError("Refresh token is required")

        try:
            claims = self.codec.verify(TokenKind.REFRESH, refresh_token)
        except InvalidToken:
            raise ValidationError(_BAD_REFRESH)

        if self.ledger.find_active(refresh_token, claims.user_id) is None:
            raise ValidationError(_BAD_REFRESH)

        user = self.credentials.get(claims.user_id)
        if user is None:
            raise ValidationError(_BAD_REFRESH)
        if user.is_inactive:
            raise AccountInactive()

        with transaction(self.db):
            if self.ledger.revoke_one(refresh_token) != 1:
                # Lost the race against another refresh with the same token
                logger.warning("Refresh token reuse detected | id=%s", user.id)
                raise ValidationError(_BAD_REFRESH)
            session = self._open_session(user)

        return session

    # ------------------------------------------------------------------
    # Password reset
    # ------------------------------------------------------------------

    def forgot_password(self, email: str) -> None:
        user = self.credentials.find_by_email(email)
        if user is None:
            logger.info("Password reset requested for unknown email")
            return
        token = self.codec.issue(TokenKind.PASSWORD_RESET, user.id)
        self._queue_mail("send_password_reset", user.email, token)
        logger.info("Password reset requested | id=%s", user.id)

    def reset_password(self, token: str, password: str) -> None:
        try:
            claims = self.codec.verify(TokenKind.PASSWORD_RESET, token)
        except InvalidToken:
            raise ValidationError(_BAD_RESET)

        user = self.credentials.get(claims.user_id)
        if user is None:
            raise NotFound("User")

        with transaction(self.db):
            self.credentials.set_password(user, password)
            if self.settings.revoke_sessions_on_password_reset:
                self.ledger.revoke_all_for_user(user.id)

        logger.info("Password reset | id=%s", user.id)

    # ------------------------------------------------------------------
    # Verification
    # ------------------------------------------------------------------

    def verify_email(self, token: str) -> None:
        try:
            claims = self.codec.verify(TokenKind.EMAIL_VERIFICATION, token)
        except InvalidToken:
            raise ValidationError(_BAD_VERIFICATION)

        user = self.credentials.get(claims.user_id)
        if user is None:
            raise NotFound("User")
        if user.is_email_verified:
            raise AlreadyExists("Email verification")

        with transaction(self.db):
            user.is_email_verified = True
        logger.info("Email verified | id=%s", user.id)

    def send_verification_email(self, user_id: str) -> None:
        user = self.credentials.get(user_id)
        if user is None:
            raise NotFound("User")
        if user.is_email_verified:
            raise AlreadyExists("Email verification")
        self._queue_verification_email(user)

    def verify_phone(self, phone: str, code: str) -> None:
        user = self.credentials.find_by_phone(phone)
        if user is None:
            raise NotFound("User with this phone number")
        if user.is_phone_verified:
            raise AlreadyExists("Phone verification")
        if not self.phone_verifier.check(phone, code):
            raise ValidationError("Invalid verification code")

        with transaction(self.db):
            user.is_phone_verified = True
        logger.info("Phone verified | id=%s", user.id)
