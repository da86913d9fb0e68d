# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20261018v1
# ---------------------------------------------------------------------------
"""
Central security module.  All cryptographic primitives live here.  No other
module should touch raw crypto directly.

Responsibilities
----------------
1. Password hashing / verification          (bcrypt, configurable cost)
2. Duration literals                        ("15m", "7d" …)
3. Signed, typed JWTs                       (PyJWT / HS256)

Every token carries a ``type`` claim.  The codec refuses a token whose type
does not match the kind the caller asked for, so a password-reset token can
never be replayed as an access token even though both share a secret.
"""

import re
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Optional

import bcrypt
import jwt as _jwt        # PyJWT

from core.errors import ConfigError, InternalError

JWT_ALGORITHM = "HS256"

# ---------------------------------------------------------------------------
# 1.  bcrypt – password hashing
# ---------------------------------------------------------------------------
# bcrypt only looks at the first 72 bytes of a password and recent releases
# raise instead of truncating; request schemas cap passwords at that length.
# ---------------------------------------------------------------------------

BCRYPT_MAX_PASSWORD_BYTES = 72


class PasswordHasher:
    """
    bcrypt wrapper bound to the configured cost factor.

    Failures inside the library are reported as :class:`InternalError` so a
    broken hash is never confused with a wrong password.
    """

    def __init__(self, rounds: int):
        if not 10 <= rounds <= 15:
            raise ConfigError(f"BCRYPT_SALT_ROUNDS must be between 10 and 15. Current value: {rounds}")
        self.rounds = rounds
        # Built up front so the first unknown-email login costs the same as the rest
        self._dummy_hash = self.hash(uuid.uuid4().hex)

    def hash(self, plain: str) -> str:
        try:
            hashed = bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt(rounds=self.rounds))
        except ValueError as exc:
            raise InternalError("Failed to hash password") from exc
        return hashed.decode("utf-8")

    def verify(self, plain: str, hashed: str) -> bool:
        """Constant-time check of *plain* against a hash made by :meth:`hash`."""
        try:
            return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
        except ValueError as exc:
            raise InternalError("Failed to compare password") from exc

    def dummy_verify(self, plain: str) -> None:
        """
        Spend one comparison's worth of CPU.  Used when no account matches an
        email so that response time does not reveal which emails exist.
        """
        self.verify(plain, self._dummy_hash)


# ---------------------------------------------------------------------------
# 2.  Duration literals
# ---------------------------------------------------------------------------

_DURATION_RE = re.compile(r"^(\d+)([a-zA-Z]+)$")
_DURATION_UNITS = {
    "s": "seconds",
    "m": "minutes",
    "h": "hours",
    "d": "days",
}


def parse_duration(literal: str) -> timedelta:
    """
    Parse ``<integer><unit>`` with unit in s, m, h, d.

    Anything else is a configuration error – there is no silent default.
    """
    match = _DURATION_RE.match(literal.strip()) if literal else None
    if not match:
        raise ValueError(f"Invalid duration: {literal!r}")
    value, unit = int(match.group(1)), match.group(2)
    if unit not in _DURATION_UNITS:
        raise ValueError(f"Invalid time unit: {unit}")
    if value <= 0:
        raise ValueError(f"Duration must be positive: {literal!r}")
    return timedelta(**{_DURATION_UNITS[unit]: value})


# ---------------------------------------------------------------------------
# 3.  JWT – typed tokens
# ---------------------------------------------------------------------------


class TokenKind(str, Enum):
    ACCESS = "access"
    REFRESH = "refresh"
    PASSWORD_RESET = "password_reset"
    EMAIL_VERIFICATION = "email_verification"


class InvalidToken(Exception):
    """Signature, expiry, shape or type check failed.  Callers collapse this
    into one generic message per flow."""


@dataclass(frozen=True)
class TokenClaims:
    user_id: str
    type: TokenKind
    jti: str
    expires_at: datetime


@dataclass(frozen=True)
class _SigningContext:
    secret: str
    lifetime: timedelta


class TokenCodec:
    """
    Issues and verifies the four token kinds, each with its own secret and
    lifetime taken from settings.
    """

    def __init__(self, settings):
        self._contexts = {
            TokenKind.ACCESS: _SigningContext(
                settings.jwt_secret, parse_duration(settings.jwt_access_token_expires_in)
            ),
            TokenKind.REFRESH: _SigningContext(
                settings.jwt_refresh_secret, parse_duration(settings.jwt_refresh_token_expires_in)
            ),
            TokenKind.PASSWORD_RESET: _SigningContext(
                settings.password_reset_secret, parse_duration(settings.jwt_password_reset_expires_in)
            ),
            TokenKind.EMAIL_VERIFICATION: _SigningContext(
                settings.email_verification_secret, parse_duration(settings.jwt_email_verification_expires_in)
            ),
        }
        for kind, ctx in self._contexts.items():
            if not ctx.secret:
                raise ConfigError(f"Signing secret for {kind.value} tokens is not configured")

    def lifetime(self, kind: TokenKind) -> timedelta:
        return self._contexts[kind].lifetime

    def expires_at(self, kind: TokenKind, now: Optional[datetime] = None) -> datetime:
        return (now or datetime.now(timezone.utc)) + self.lifetime(kind)

    def issue(self, kind: TokenKind, user_id: str, now: Optional[datetime] = None) -> str:
        """
        Sign ``{userId, type, jti, iat, exp}``.  The random ``jti`` makes every
        issuance unique, even two logins inside the same second.
        """
        ctx = self._contexts[kind]
        issued_at = now or datetime.now(timezone.utc)
        payload = {
            "userId": str(user_id),
            "type": kind.value,
            "jti": uuid.uuid4().hex,
            "iat": issued_at,
            "exp": self.expires_at(kind, issued_at),
        }
        return _jwt.encode(payload, ctx.secret, algorithm=JWT_ALGORITHM)

    def verify(self, kind: TokenKind, token: str) -> TokenClaims:
        """
        Decode *token* with the secret of *kind* and require that its ``type``
        claim equals *kind*.  Raises :class:`InvalidToken` on any failure.
        """
        ctx = self._contexts[kind]
        try:
            payload = _jwt.decode(
                token,
                ctx.secret,
                algorithms=[JWT_ALGORITHM],
                options={"require": ["exp", "iat"]},
            )
        except _jwt.ExpiredSignatureError as exc:
            raise InvalidToken("Token has expired") from exc
        except _jwt.InvalidTokenError as exc:
            raise InvalidToken(f"Invalid token: {exc}") from exc

        if payload.get("type") != kind.value:
            raise InvalidToken("Token type mismatch")
        user_id = payload.get("userId")
        if not user_id or not isinstance(user_id, str):
            raise InvalidToken("Token has no subject")

        return TokenClaims(
            user_id=user_id,
            type=kind,
            jti=str(payload.get("jti", "")),
            expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
        )
