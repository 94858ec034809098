#!/usr/bin/env python3
"""
Clear expired downgrade grace windows so stale period_end dates don't pile up.

Run daily (cron / Cloud Scheduler).

Usage:
    python cleanup_expired_subscriptions.py --dry-run
    python cleanup_expired_subscriptions.py
"""
import argparse
import sys
from pathlib import Path

backend_dir = Path(__file__).parent.resolve()
if str(backend_dir) not in sys.path:
    sys.path.insert(0, str(backend_dir))

from notes_api.core import database
from notes_api.core.errors import EntitlementError
from notes_api.core.retry import retry_on_storage_unavailable
from notes_api.core.timeutils import utcnow
from notes_api.services.billing import subscriptions


@retry_on_storage_unavailable(max_attempts=3)
def run_cleanup(dry_run: bool = False) -> bool:
    now = utcnow()
    print(f"📅 Current time: {now.isoformat()}Z")
    with database.session_scope() as session:
        expired = subscriptions.cleanup_expired_subscriptions(session, now, dry_run=True)
        print(f"📊 Found {len(expired)} users with expired subscription periods")
        for profile in expired:
            days = (now - profile.subscription_period_end).days
            print(f"   • {profile.email} (expired {days} days ago)")

        if dry_run:
            print("🔍 DRY RUN: nothing written")
            return True

        cleaned = subscriptions.cleanup_expired_subscriptions(session, now)
        print(f"✅ Cleaned {len(cleaned)} profiles")

        # Validate: nothing expired should remain
        remaining = subscriptions.cleanup_expired_subscriptions(session, now, dry_run=True)
        if remaining:
            print(f"⚠️  {len(remaining)} expired subscription periods still remain")
            return False
        print("✅ Validation passed: no expired subscription periods remaining")
        return True


@retry_on_storage_unavailable(max_attempts=3)
def print_report() -> None:
    with database.session_scope() as session:
        report = subscriptions.subscription_report(session)
    print()
    print("📈 Subscription status report:")
    print(f"   • Active paid:                 {report.active_paid}")
    print(f"   • Downgraded (still in period): {report.downgraded_in_period}")
    print(f"   • Expired:                     {report.expired}")
    print(f"   • Free:                        {report.free}")
    print(f"   • Total:                       {report.total}")


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Clear expired downgrade grace windows")
    parser.add_argument("--dry-run", action="store_true", help="List affected users without writing")
    args = parser.parse_args(argv)

    print("=" * 50)
    print("🧹 Subscription cleanup")
    print("=" * 50)
    try:
        ok = run_cleanup(dry_run=args.dry_run)
        print_report()
    except EntitlementError as e:
        print(f"❌ Cleanup failed: {e.detail}")
        return 1
    return 0 if ok else 1


if __name__ == "__main__":
    sys.exit(main())
