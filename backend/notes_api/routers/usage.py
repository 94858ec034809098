from typing import Optional
from uuid import UUID
import logging

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlmodel import Session

from ..core.database import get_session
from ..services.billing import entitlements
from ..services.billing.entitlements import EntitlementResult

log = logging.getLogger(__name__)

router = APIRouter(prefix="/users/{user_id}/usage", tags=["Usage"])


class UsageCheckRequest(BaseModel):
    file_size_mb: float
    duration_minutes: Optional[float] = None


@router.get("", response_model=EntitlementResult)
def get_usage(user_id: UUID, session: Session = Depends(get_session)):
    """Current month usage, limits and remaining allowance for the dashboard."""
    return entitlements.usage_summary(session, user_id)


@router.post("/check", response_model=EntitlementResult)
def check_usage(user_id: UUID, body: UsageCheckRequest, session: Session = Depends(get_session)):
    """Admission check run by the upload flow before a file is accepted.

    Always 200; the caller rejects the upload when ``can_process`` is false.
    """
    return entitlements.check_usage_limits(
        session,
        user_id,
        body.file_size_mb,
        incoming_minutes=body.duration_minutes,
    )
