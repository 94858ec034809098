from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import DateTime
from sqlmodel import SQLModel, Field

from ..core.timeutils import utcnow


class ProfileBase(SQLModel):
    """Fields shared by the table model and the public view."""
    email: str = Field(unique=True, index=True, max_length=320)
    # Nullable: legacy rows created before billing existed have no tier (treated as free)
    subscription_tier: Optional[str] = Field(default="free", max_length=20, index=True)
    subscription_period_start: Optional[datetime] = Field(
        default=None,
        sa_type=DateTime,
        description="Start of the current paid period (UTC)",
    )
    subscription_period_end: Optional[datetime] = Field(
        default=None,
        sa_type=DateTime,
        description="End of the current paid period (UTC). Kept after a downgrade to drive the grace window",
    )
    grace_tier: Optional[str] = Field(
        default=None,
        max_length=20,
        description="Paid tier the user downgraded from; granted until subscription_period_end",
    )


class Profile(ProfileBase, table=True):
    """One row per user account."""
    id: UUID = Field(default_factory=uuid4, primary_key=True, index=True)
    stripe_customer_id: Optional[str] = Field(default=None, index=True)
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime)
    updated_at: datetime = Field(default_factory=utcnow, sa_type=DateTime)


class ProfilePublic(ProfileBase):
    """Profile as returned by the subscription endpoints."""
    id: UUID
    effective_tier: str
    in_grace_period: bool = False
    updated_at: Optional[datetime] = None


__all__ = ["Profile", "ProfileBase", "ProfilePublic"]
