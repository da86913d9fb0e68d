# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20261018v1
# ---------------------------------------------------------------------------
"""
User endpoints – public profile, owner profile and account deletion.

``GET /users/{userId}`` is open to anonymous callers; the owner sees the
private fields as well.  The other two routes require the caller to be the
user named in the path.  Soft-deleted accounts are invisible here.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Path, Request
from sqlalchemy.orm import Session

from auth.ledger import RefreshTokenLedger
from auth.router import clear_refresh_cookie
from core.dependencies import (
    AuthenticatedIdentity,
    authenticate,
    optional_authenticate,
    require_ownership,
)
from core.errors import NotFound
from core.logger import logger
from core.responses import success_response
from database import get_db, transaction
from models.user import User
from users.schemas import PrivateUserResponse, PublicUserResponse

router = APIRouter(prefix="/users", tags=["users"])

_owner_only = [Depends(authenticate), Depends(require_ownership("userId"))]


def _get_visible_user(db: Session, user_id: str) -> User:
    user = db.query(User).filter(User.id == user_id, User.is_deleted.is_(False)).first()
    if not user:
        raise NotFound("User")
    return user


# ---------------------------------------------------------------------------
# GET /users/{userId}
# ---------------------------------------------------------------------------


@router.get("/{userId}")
def get_user(
    user_id: str = Path(alias="userId"),
    identity: Optional[AuthenticatedIdentity] = Depends(optional_authenticate),
    db: Session = Depends(get_db),
):
    user = _get_visible_user(db, user_id)
    if identity is not None and identity.id == user.id:
        data = PrivateUserResponse.model_validate(user).to_json()
    else:
        data = PublicUserResponse.model_validate(user).to_json()
    return success_response("User retrieved successfully", data)


# ---------------------------------------------------------------------------
# GET /users/{userId}/profile
# ---------------------------------------------------------------------------


@router.get("/{userId}/profile", dependencies=_owner_only)
def get_profile(user_id: str = Path(alias="userId"), db: Session = Depends(get_db)):
    user = _get_visible_user(db, user_id)
    return success_response("Profile retrieved successfully", PrivateUserResponse.model_validate(user).to_json())


# ---------------------------------------------------------------------------
# DELETE /users/{userId}  – soft delete
# ---------------------------------------------------------------------------


@router.delete("/{userId}", dependencies=_owner_only)
def delete_user(request: Request, user_id: str = Path(alias="userId"), db: Session = Depends(get_db)):
    """
    Flag the account deleted and inactive, and revoke every refresh token.
    The row stays; an admin can restore it.
    """
    user = _get_visible_user(db, user_id)
    with transaction(db):
        user.is_deleted = True
        user.is_active = False
        revoked = RefreshTokenLedger(db).revoke_all_for_user(user.id)

    logger.info("User soft-deleted | id=%s revoked=%d", user_id, revoked)
    response = success_response("User deleted successfully")
    clear_refresh_cookie(response, request.app.state.settings)
    return response
