from datetime import datetime
from typing import Optional
from uuid import UUID
import logging

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlmodel import Session

from ..core.database import get_session
from ..models.enums import SubscriptionTier
from ..models.profile import ProfilePublic
from ..services.billing import subscriptions

log = logging.getLogger(__name__)

router = APIRouter(prefix="/users/{user_id}/subscription", tags=["Subscription"])


class DowngradeRequest(BaseModel):
    period_end: Optional[datetime] = None


class UpgradeRequest(BaseModel):
    tier: SubscriptionTier
    period_start: Optional[datetime] = None


@router.post("/downgrade", response_model=ProfilePublic)
def downgrade(user_id: UUID, body: DowngradeRequest, session: Session = Depends(get_session)):
    profile = subscriptions.downgrade(session, user_id, period_end=body.period_end)
    return subscriptions.to_public(profile)


@router.post("/upgrade", response_model=ProfilePublic)
def upgrade(user_id: UUID, body: UpgradeRequest, session: Session = Depends(get_session)):
    profile = subscriptions.upgrade(session, user_id, body.tier, period_start=body.period_start)
    return subscriptions.to_public(profile)
