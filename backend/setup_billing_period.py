#!/usr/bin/env python3
"""
Derive subscription_period_end (start + 1 calendar month) for a profile that
has a period start but no usable end date.

Usage:
    python setup_billing_period.py user@example.com
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
from notes_api.core.timeutils import utcnow
from notes_api.services.billing import subscriptions, tiers


@retry_on_storage_unavailable(max_attempts=3)
def setup_billing_period(identifier: str) -> None:
    with database.session_scope() as session:
        profile = crud.resolve_profile(session, identifier)
        print("📊 Current profile:")
        print(f"   subscription_tier:         {profile.subscription_tier}")
        print(f"   subscription_period_start: {profile.subscription_period_start}")
        print(f"   subscription_period_end:   {profile.subscription_period_end}")

        profile = subscriptions.setup_billing_period(session, profile.id)
        now = utcnow()
        days_left = (profile.subscription_period_end - now).days
        print()
        print("🗓️  Billing period:")
        print(f"   Start: {profile.subscription_period_start:%Y-%m-%d}")
        print(f"   End:   {profile.subscription_period_end:%Y-%m-%d}")
        print(f"   Days remaining: {max(0, days_left)}")
        print()
        print(f"✅ Effective tier: {tiers.effective_tier(profile, now).value}")


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Set a profile's billing period end to one month after its start")
    parser.add_argument("user", help="Profile email or UUID")
    args = parser.parse_args(argv)

    try:
        setup_billing_period(args.user)
    except EntitlementError as e:
        print(f"❌ {e.detail}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
