#!/usr/bin/env python3
"""
Manually move a user onto a paid tier (e.g. when a billing webhook was missed).

Usage:
    python manual_upgrade.py user@example.com
    python manual_upgrade.py <uuid> --tier genius --stripe-customer cus_123
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
from notes_api.models.enums import PAID_TIERS
from notes_api.services.billing import subscriptions


@retry_on_storage_unavailable(max_attempts=3)
def upgrade_user(identifier: str, tier: str, stripe_customer_id=None) -> bool:
    with database.session_scope() as session:
        profile = crud.resolve_profile(session, identifier)
        print(f"👤 {profile.email} ({profile.id}) currently on '{profile.subscription_tier or 'free'}'")
        if profile.subscription_tier == tier:
            print(f"ℹ️  Already on {tier}; nothing to do")
            return False
        profile = subscriptions.upgrade(session, profile.id, tier, stripe_customer_id=stripe_customer_id)
        print(f"✅ Upgraded to {profile.subscription_tier} until {profile.subscription_period_end:%Y-%m-%d}")
        return True


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Upgrade a user to a paid tier")
    parser.add_argument("user", help="Profile email or UUID")
    parser.add_argument("--tier", default="student", choices=sorted(t.value for t in PAID_TIERS))
    parser.add_argument("--stripe-customer", default=None, help="Stripe customer id to record")
    args = parser.parse_args(argv)

    try:
        upgrade_user(args.user, args.tier, args.stripe_customer)
    except EntitlementError as e:
        print(f"❌ {e.detail}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
