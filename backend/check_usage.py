#!/usr/bin/env python3
"""
Print a user's profile, effective tier and current-month usage.

Usage:
    python check_usage.py user@example.com
    python check_usage.py 3c684689-f3a2-4822-a72c-323b195a8b32
"""
import argparse
import sys
from pathlib import Path

# Add backend directory to path
backend_dir = Path(__file__).parent.resolve()
if str(backend_dir) not in sys.path:
    sys.path.insert(0, str(backend_dir))

from notes_api.core import crud, database
from notes_api.core.errors import EntitlementError
from notes_api.core.retry import retry_on_storage_unavailable
from notes_api.services import jobs as jobs_svc
from notes_api.services.billing import entitlements


def print_summary(summary) -> None:
    print("📊 Usage this month:")
    print(f"   • Stored tier:    {summary.stored_tier}")
    grace = f" (grace period until {summary.grace_period_ends_at:%Y-%m-%d})" if summary.in_grace_period else ""
    print(f"   • Effective tier: {summary.effective_tier}{grace}")
    print(f"   • Storage:        {summary.current_usage_mb:g} / {summary.monthly_limit_mb} MB ({summary.remaining_mb:g} MB left)")
    print(f"   • Minutes:        {summary.current_usage_minutes:g} / {summary.monthly_limit_minutes} ({summary.remaining_minutes:g} left)")
    print(f"   • Files:          {summary.files_this_month} / {summary.file_limit} ({summary.remaining_files} left)")
    print(f"   • Per-file cap:   {summary.max_file_size_mb} MB")
    if summary.overflow_limit_mb:
        print(f"   • Overflow:       {summary.overflow_used_mb:g} / {summary.overflow_limit_mb} MB used")
    print(f"   • Limits table:   {summary.limits_version}")
    for note in summary.advisories:
        print(f"   ⚠️  {note}")


@retry_on_storage_unavailable(max_attempts=3)
def check_usage(identifier: str, show_jobs: int = 0) -> None:
    with database.session_scope() as session:
        profile = crud.resolve_profile(session, identifier)
        print(f"👤 {profile.email} ({profile.id})")
        print(f"   subscription_tier:         {profile.subscription_tier}")
        print(f"   subscription_period_start: {profile.subscription_period_start}")
        print(f"   subscription_period_end:   {profile.subscription_period_end}")
        print()
        print_summary(entitlements.usage_summary(session, profile.id))
        if show_jobs:
            print()
            print(f"📝 Last {show_jobs} jobs:")
            for job in jobs_svc.list_jobs(session, profile.id, limit=show_jobs):
                print(
                    f"   {job.created_at:%Y-%m-%d %H:%M} {job.status.value:<10} "
                    f"{job.file_size_mb:>7g} MB {job.duration_minutes:>6g} min  {job.lecture_title or 'Untitled'}"
                )


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Show a user's effective tier and monthly usage")
    parser.add_argument("user", help="Profile email or UUID")
    parser.add_argument("--jobs", type=int, default=0, help="Also list the N most recent jobs")
    args = parser.parse_args(argv)

    try:
        check_usage(args.user, args.jobs)
    except EntitlementError as e:
        print(f"❌ {e.detail}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
