# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20261018v1
# ---------------------------------------------------------------------------
"""
Refresh-token ledger.

The ledger, not the JWT signature, decides whether a refresh token is still
usable: a token is live only while its row exists, belongs to the user named
in the token, is not revoked and has not expired.  Deleting the row is how a
session ends (logout, rotation); marking rows revoked is how every session of
a user ends at once.

None of these methods commit.  Callers group them with other writes inside
``database.transaction``.
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from models.refresh_token import RefreshToken


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RefreshTokenLedger:
    def __init__(self, db: Session):
        self.db = db

    def issue(self, user_id: str, token: str, expires_at: datetime) -> RefreshToken:
        row = RefreshToken(user_id=user_id, token=token, expires_at=expires_at, is_revoked=False)
        self.db.add(row)
        self.db.flush()
        return row

    def find_active(self, token: str, user_id: str, now: Optional[datetime] = None) -> Optional[RefreshToken]:
        """All four conditions must hold: token, owner, not revoked, not expired."""
        return (
            self.db.query(RefreshToken)
            .filter(
                RefreshToken.token == token,
                RefreshToken.user_id == user_id,
                RefreshToken.is_revoked.is_(False),
                RefreshToken.expires_at > (now or _utcnow()),
            )
            .first()
        )

    def revoke_one(self, token: str) -> int:
        """Delete the row for *token*.  Returns 0 (not an error) when absent."""
        return (
            self.db.query(RefreshToken)
            .filter(RefreshToken.token == token)
            .delete(synchronize_session=False)
        )

    def revoke_all_for_user(self, user_id: str) -> int:
        """Mark every live row of *user_id* revoked; returns how many."""
        return (
            self.db.query(RefreshToken)
            .filter(RefreshToken.user_id == user_id, RefreshToken.is_revoked.is_(False))
            .update({RefreshToken.is_revoked: True}, synchronize_session=False)
        )

    def count_active(self, user_id: str, now: Optional[datetime] = None) -> int:
        return (
            self.db.query(RefreshToken)
            .filter(
                RefreshToken.user_id == user_id,
                RefreshToken.is_revoked.is_(False),
                RefreshToken.expires_at > (now or _utcnow()),
            )
            .count()
        )

    def purge_expired(self, now: Optional[datetime] = None) -> int:
        """Delete rows that can never be used again (expired or revoked)."""
        return (
            self.db.query(RefreshToken)
            .filter(or_(RefreshToken.expires_at <= (now or _utcnow()), RefreshToken.is_revoked.is_(True)))
            .delete(synchronize_session=False)
        )
