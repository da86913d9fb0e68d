# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20261018v1
# ---------------------------------------------------------------------------
"""
FastAPI dependencies: application services and the authorization gates.

Gates run in the order they are listed on a route, e.g.::

    @router.get(
        "/freelancer/{userId}/portfolio",
        dependencies=[
            Depends(authenticate),
            Depends(require_freelancer),
            Depends(require_ownership("userId")),
        ],
    )

``authenticate`` / ``optional_authenticate`` resolve the Bearer token and
attach an :class:`AuthenticatedIdentity` to ``request.state.identity``.  The
predicate gates only read that identity: 401 when it is missing, 403 when the
predicate fails.  Only ``require_admin`` touches the database.  A failing gate
raises, which stops the chain before the handler runs.
"""

from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from core.config import Settings
from core.errors import AccountInactive, AppError, Forbidden, Unauthorized, ValidationError
from core.responses import ApiModel
from core.security import InvalidToken, PasswordHasher, TokenCodec, TokenKind
from database import get_db
from models.role import ADMIN_ROLE, Role, UserRoleRelation
from models.user import User

# ---------------------------------------------------------------------------
# Service providers (built once in main.create_app, stored on app.state)
# ---------------------------------------------------------------------------


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_token_codec(request: Request) -> TokenCodec:
    return request.app.state.token_codec


def get_password_hasher(request: Request) -> PasswordHasher:
    return request.app.state.password_hasher


def get_mailer(request: Request):
    return request.app.state.mailer


def get_phone_verifier(request: Request):
    return request.app.state.phone_verifier


# ---------------------------------------------------------------------------
# Identity
# ---------------------------------------------------------------------------


class AuthenticatedIdentity(ApiModel):
    """The minimal, immutable view of the caller attached to a request."""

    model_config = {**ApiModel.model_config, "frozen": True}

    id: str
    email: str
    name: str
    is_freelancer: bool
    is_client: bool
    is_email_verified: bool
    is_phone_verified: bool

    @classmethod
    def from_user(cls, user: User) -> "AuthenticatedIdentity":
        return cls(
            id=user.id,
            email=user.email,
            name=user.name,
            is_freelancer=user.is_freelancer,
            is_client=user.is_client,
            is_email_verified=user.is_email_verified,
            is_phone_verified=user.is_phone_verified,
        )


# auto_error=False: a missing header is reported through our own envelope
_bearer = HTTPBearer(auto_error=False)


def _resolve_identity(
    credentials: Optional[HTTPAuthorizationCredentials],
    db: Session,
    codec: TokenCodec,
) -> AuthenticatedIdentity:
    if credentials is None or not credentials.credentials:
        raise Unauthorized("Access token is required")

    try:
        claims = codec.verify(TokenKind.ACCESS, credentials.credentials)
    except InvalidToken:
        raise Unauthorized("Invalid or expired access token")

    user = db.query(User).filter(User.id == claims.user_id).first()
    if user is None:
        raise Unauthorized("Invalid or expired access token")
    if user.is_inactive:
        raise AccountInactive(headers={"WWW-Authenticate": "Bearer"})

    return AuthenticatedIdentity.from_user(user)


def authenticate(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer),
    db: Session = Depends(get_db),
    codec: TokenCodec = Depends(get_token_codec),
) -> AuthenticatedIdentity:
    """Require a valid access token for an active account.  401 otherwise."""
    identity = _resolve_identity(credentials, db, codec)
    request.state.identity = identity
    return identity


def optional_authenticate(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer),
    db: Session = Depends(get_db),
    codec: TokenCodec = Depends(get_token_codec),
) -> Optional[AuthenticatedIdentity]:
    """Like :func:`authenticate`, but any auth failure continues anonymously."""
    try:
        identity = _resolve_identity(credentials, db, codec)
    except AppError:
        return None
    request.state.identity = identity
    return identity


def current_identity(request: Request) -> AuthenticatedIdentity:
    """The identity attached by an earlier gate, or 401."""
    identity = getattr(request.state, "identity", None)
    if identity is None:
        raise Unauthorized("Authentication required")
    return identity


# ---------------------------------------------------------------------------
# Predicate gates – no database access
# ---------------------------------------------------------------------------


def require_freelancer(identity: AuthenticatedIdentity = Depends(current_identity)) -> AuthenticatedIdentity:
    if not identity.is_freelancer:
        raise Forbidden("Freelancer access required")
    return identity


def require_client(identity: AuthenticatedIdentity = Depends(current_identity)) -> AuthenticatedIdentity:
    if not identity.is_client:
        raise Forbidden("Client access required")
    return identity


def require_verified(identity: AuthenticatedIdentity = Depends(current_identity)) -> AuthenticatedIdentity:
    if not identity.is_email_verified:
        raise Forbidden("Email verification required")
    return identity


def require_phone_verified(identity: AuthenticatedIdentity = Depends(current_identity)) -> AuthenticatedIdentity:
    if not identity.is_phone_verified:
        raise Forbidden("Phone verification required")
    return identity


# ---------------------------------------------------------------------------
# Admin – one role lookup per request, uncached
# ---------------------------------------------------------------------------


def require_admin(
    identity: AuthenticatedIdentity = Depends(current_identity),
    db: Session = Depends(get_db),
) -> AuthenticatedIdentity:
    relation = (
        db.query(UserRoleRelation)
        .join(Role, UserRoleRelation.role_id == Role.id)
        .filter(UserRoleRelation.user_id == identity.id, Role.name == ADMIN_ROLE)
        .first()
    )
    if relation is None:
        raise Forbidden("Admin access required")
    return identity


# ---------------------------------------------------------------------------
# Ownership
# ---------------------------------------------------------------------------


async def _json_body(request: Request) -> dict:
    if not request.headers.get("content-type", "").startswith("application/json"):
        return {}
    try:
        body = await request.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}


def require_ownership(field_name: str = "userId"):
    """
    Build a gate that compares the caller's id with *field_name*, read from
    the path parameters first and the JSON body second.

    400 when the field is absent, 403 when it names someone else.
    """

    async def _ownership_gate(
        request: Request,
        identity: AuthenticatedIdentity = Depends(current_identity),
    ) -> AuthenticatedIdentity:
        owner_id = request.path_params.get(field_name)
        if owner_id is None:
            owner_id = (await _json_body(request)).get(field_name)
        if not owner_id:
            raise ValidationError("Resource user ID is required")
        if str(owner_id) != identity.id:
            raise Forbidden("Access denied: You can only access your own resources")
        return identity

    return _ownership_gate
