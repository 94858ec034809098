"""Enumeration types shared by profile and job models."""
from enum import Enum


class SubscriptionTier(str, Enum):
    """Billing tiers. ``genius`` is priced but not sold yet."""
    free = "free"
    student = "student"
    genius = "genius"


PAID_TIERS = frozenset({SubscriptionTier.student, SubscriptionTier.genius})


class JobStatus(str, Enum):
    """Processing status for uploaded lecture files."""
    pending = "pending"
    processing = "processing"
    completed = "completed"
    failed = "failed"


TERMINAL_JOB_STATUSES = frozenset({JobStatus.completed, JobStatus.failed})
