# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20261018v1
# ---------------------------------------------------------------------------
"""Pydantic response models for the user endpoints."""

from datetime import datetime
from typing import Optional

from core.responses import ApiModel


class PublicUserResponse(ApiModel):
    """What anyone may see about an account."""

    id: str
    name: str
    is_freelancer: bool
    is_client: bool
    is_email_verified: bool
    is_phone_verified: bool
    created_at: Optional[datetime] = None


class PrivateUserResponse(PublicUserResponse):
    """Owner-only view: adds contact details and account state."""

    email: str
    phone: Optional[str] = None
    is_active: bool
    updated_at: Optional[datetime] = None
