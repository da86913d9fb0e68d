# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20261018v1
# ---------------------------------------------------------------------------
"""
Admin endpoints – user lifecycle management.

Every endpoint in this router runs ``authenticate`` then ``require_admin``.
A request with a valid access token whose user holds no "admin" role gets
403 before any business logic runs.

Suspending or blocking an account also revokes all of its refresh tokens, so
the user is signed out everywhere once the current access token expires.
"""

from typing import Callable

from fastapi import APIRouter, Depends, Path, Query
from sqlalchemy.orm import Session

from admin.schemas import UserDetail, UserListResponse, UserRow
from auth.ledger import RefreshTokenLedger
from core.dependencies import AuthenticatedIdentity, authenticate, require_admin
from core.errors import NotFound, ValidationError
from core.logger import logger
from core.responses import success_response
from database import get_db, transaction
from models.user import User

router = APIRouter(
    prefix="/admin",
    tags=["admin"],
    dependencies=[Depends(authenticate), Depends(require_admin)],
)


def _get_target(db: Session, user_id: str) -> User:
    target = db.query(User).filter(User.id == user_id).first()
    if not target:
        raise NotFound("User")
    return target


def _apply(
    db: Session,
    admin: AuthenticatedIdentity,
    user_id: str,
    action: str,
    mutate: Callable[[User], None],
    revoke_sessions: bool = False,
) -> User:
    """
    Shared body of the lifecycle actions.

    Guard: an admin cannot act on their own account (prevents accidental
    self-lockout).
    """
    if user_id == admin.id:
        raise ValidationError(f"Cannot {action} yourself")

    target = _get_target(db, user_id)
    with transaction(db):
        mutate(target)
        revoked = RefreshTokenLedger(db).revoke_all_for_user(target.id) if revoke_sessions else 0

    logger.info("Admin action | admin=%s action=%s target=%s revoked=%d", admin.id, action, user_id, revoked)
    return target


def _row(user: User) -> dict:
    return UserRow.model_validate(user).to_json()


# ---------------------------------------------------------------------------
# GET /admin/users  – paginated user list
# ---------------------------------------------------------------------------


@router.get("/users")
def list_users(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    include_deleted: bool = Query(False, alias="includeDeleted"),
    db: Session = Depends(get_db),
):
    """Users newest-first.  Soft-deleted accounts only with ``includeDeleted``."""
    q = db.query(User)
    if not include_deleted:
        q = q.filter(User.is_deleted.is_(False))

    total = q.count()
    users = q.order_by(User.created_at.desc(), User.id).offset((page - 1) * limit).limit(limit).all()

    payload = UserListResponse(
        users=[UserRow.model_validate(u) for u in users],
        total=total,
        page=page,
        limit=limit,
    )
    return success_response("Users retrieved successfully", payload.to_json())


# ---------------------------------------------------------------------------
# GET /admin/users/{userId}
# ---------------------------------------------------------------------------


@router.get("/users/{userId}")
def get_user(user_id: str = Path(alias="userId"), db: Session = Depends(get_db)):
    """One user plus the number of refresh sessions still usable."""
    target = _get_target(db, user_id)
    detail = UserDetail.model_validate(target)
    detail.active_sessions = RefreshTokenLedger(db).count_active(target.id)
    return success_response("User retrieved successfully", detail.to_json())


# ---------------------------------------------------------------------------
# PUT /admin/users/{userId}/suspend  /  unsuspend
# ---------------------------------------------------------------------------


@router.put("/users/{userId}/suspend")
def suspend_user(
    user_id: str = Path(alias="userId"),
    admin: AuthenticatedIdentity = Depends(require_admin),
    db: Session = Depends(get_db),
):
    def _suspend(user: User) -> None:
        user.is_suspended = True

    target = _apply(db, admin, user_id, "suspend", _suspend, revoke_sessions=True)
    return success_response("User suspended", _row(target))


@router.put("/users/{userId}/unsuspend")
def unsuspend_user(
    user_id: str = Path(alias="userId"),
    admin: AuthenticatedIdentity = Depends(require_admin),
    db: Session = Depends(get_db),
):
    def _unsuspend(user: User) -> None:
        user.is_suspended = False

    target = _apply(db, admin, user_id, "unsuspend", _unsuspend)
    return success_response("User unsuspended", _row(target))


# ---------------------------------------------------------------------------
# PUT /admin/users/{userId}/block  /  unblock
# ---------------------------------------------------------------------------


@router.put("/users/{userId}/block")
def block_user(
    user_id: str = Path(alias="userId"),
    admin: AuthenticatedIdentity = Depends(require_admin),
    db: Session = Depends(get_db),
):
    def _block(user: User) -> None:
        user.is_blocked = True

    target = _apply(db, admin, user_id, "block", _block, revoke_sessions=True)
    return success_response("User blocked", _row(target))


@router.put("/users/{userId}/unblock")
def unblock_user(
    user_id: str = Path(alias="userId"),
    admin: AuthenticatedIdentity = Depends(require_admin),
    db: Session = Depends(get_db),
):
    def _unblock(user: User) -> None:
        user.is_blocked = False

    target = _apply(db, admin, user_id, "unblock", _unblock)
    return success_response("User unblocked", _row(target))


# ---------------------------------------------------------------------------
# PUT /admin/users/{userId}/restore  – undo a soft delete
# ---------------------------------------------------------------------------


@router.put("/users/{userId}/restore")
def restore_user(
    user_id: str = Path(alias="userId"),
    admin: AuthenticatedIdentity = Depends(require_admin),
    db: Session = Depends(get_db),
):
    def _restore(user: User) -> None:
        user.is_deleted = False
        user.is_active = True

    target = _apply(db, admin, user_id, "restore", _restore)
    return success_response("User restored", _row(target))


# ---------------------------------------------------------------------------
# POST /admin/users/{userId}/revoke-sessions
# ---------------------------------------------------------------------------


@router.post("/users/{userId}/revoke-sessions")
def revoke_sessions(
    user_id: str = Path(alias="userId"),
    admin: AuthenticatedIdentity = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """Sign the user out of every device without changing account flags."""
    target = _get_target(db, user_id)
    with transaction(db):
        revoked = RefreshTokenLedger(db).revoke_all_for_user(target.id)
    logger.info("Admin action | admin=%s action=revoke-sessions target=%s revoked=%d", admin.id, user_id, revoked)
    return success_response("Sessions revoked", {"revokedSessions": revoked})
