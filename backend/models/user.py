# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20261018v1
# ---------------------------------------------------------------------------
"""User ORM model."""

import uuid

from sqlalchemy import Column, String, Boolean, DateTime
from sqlalchemy.sql import func

from database import Base


def _new_id() -> str:
    return str(uuid.uuid4())


class User(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=_new_id)
    name = Column(String(255), nullable=False)
    # Exact, case-sensitive match; uniqueness is the race guard at sign-up
    email = Column(String(255), unique=True, nullable=False, index=True)
    # bcrypt hash – never serialised in any response schema
    password = Column(String(255), nullable=False)
    phone = Column(String(32), nullable=True, index=True)

    # A user may be freelancer and client at the same time
    is_freelancer = Column(Boolean, nullable=False, default=False)
    is_client = Column(Boolean, nullable=False, default=False)

    is_email_verified = Column(Boolean, nullable=False, default=False)
    is_phone_verified = Column(Boolean, nullable=False, default=False)

    is_active = Column(Boolean, nullable=False, default=True)
    is_deleted = Column(Boolean, nullable=False, default=False)
    is_suspended = Column(Boolean, nullable=False, default=False)
    is_blocked = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    @property
    def is_inactive(self) -> bool:
        """Deleted, suspended or blocked – barred from authenticating."""
        return bool(self.is_deleted or self.is_suspended or self.is_blocked)
