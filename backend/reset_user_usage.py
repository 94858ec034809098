#!/usr/bin/env python3
"""
Reset a user's monthly usage (support/testing).

Moves every job created this month to the first day of the previous month so it
no longer counts towards the current allowance.

Usage:
    python reset_user_usage.py user@example.com --dry-run
    python reset_user_usage.py user@example.com
"""
import argparse
import sys
from pathlib import Path

backend_dir = Path(__file__).parent.resolve()
if str(backend_dir) not in sys.path:
    sys.path.insert(0, str(backend_dir))

from notes_api.core import crud, database
from notes_api.core.errors import EntitlementError
from notes_api.core.retry import retry_on_storage_unavailable
from notes_api.services import jobs as jobs_svc
from notes_api.services.billing import entitlements


def _print_usage(label: str, summary) -> None:
    print(f"{label}")
    print(f"   • MB used:         {summary.current_usage_mb:g} / {summary.monthly_limit_mb}")
    print(f"   • Minutes used:    {summary.current_usage_minutes:g}")
    print(f"   • Files processed: {summary.files_this_month} (remaining {summary.remaining_files})")


@retry_on_storage_unavailable(max_attempts=3)
def reset_user_usage(identifier: str, dry_run: bool = False) -> int:
    with database.session_scope() as session:
        profile = crud.resolve_profile(session, identifier)
        print(f"👤 Found user: {profile.email} ({profile.subscription_tier or 'free'} tier)")
        print(f"🆔 User ID: {profile.id}")
        print()
        _print_usage("📊 Current usage:", entitlements.usage_summary(session, profile.id))

        moved = jobs_svc.reset_monthly_usage(session, profile.id, dry_run=dry_run)
        print()
        if dry_run:
            print(f"🔍 DRY RUN: would move {len(moved)} jobs to last month")
        else:
            print(f"✅ Moved {len(moved)} jobs to last month")
        for index, job in enumerate(moved, start=1):
            print(f"   {index}. {job.lecture_title or 'Untitled'} ({job.job_id})")

        if not dry_run:
            print()
            _print_usage("📊 Usage after reset:", entitlements.usage_summary(session, profile.id))
        return len(moved)


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Reset a user's monthly usage by backdating this month's jobs")
    parser.add_argument("user", help="Profile email or UUID")
    parser.add_argument("--dry-run", action="store_true", help="Show what would move without writing")
    args = parser.parse_args(argv)

    try:
        reset_user_usage(args.user, dry_run=args.dry_run)
    except EntitlementError as e:
        print(f"❌ {e.detail}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
