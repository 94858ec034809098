"""Aggregate exports for model convenience imports."""

from .enums import SubscriptionTier, JobStatus, PAID_TIERS, TERMINAL_JOB_STATUSES  # noqa: F401
from .profile import Profile, ProfileBase, ProfilePublic  # noqa: F401
from .job import Job  # noqa: F401
