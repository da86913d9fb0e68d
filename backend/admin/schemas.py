# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20261018v1
# ---------------------------------------------------------------------------
"""Pydantic response models for the admin endpoints."""

from datetime import datetime
from typing import List, Optional

from core.responses import ApiModel


# -- Responses -------------------------------------------------------------


class UserRow(ApiModel):
    id: str
    name: str
    email: str
    phone: Optional[str] = None
    is_freelancer: bool
    is_client: bool
    is_email_verified: bool
    is_phone_verified: bool
    is_active: bool
    is_deleted: bool
    is_suspended: bool
    is_blocked: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class UserListResponse(ApiModel):
    users: List[UserRow]
    total: int
    page: int
    limit: int


class UserDetail(UserRow):
    active_sessions: int = 0
