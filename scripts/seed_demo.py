#!/usr/bin/env python3
"""Seed demo subscribers into a local ledger.

Creates a few users with active subscriptions and fresh balances so the
API can be exercised without a billing system.

Usage:
    python scripts/seed_demo.py

This script:
1. Initializes the demo database
2. Ingests one subscription per demo user
3. Prints each user's starting balance
"""

from __future__ import annotations

import sys
from datetime import date
from pathlib import Path

# Add src to path for imports
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT / "src"))

from tvorai.db.session import LedgerStore  # noqa: E402
from tvorai.ledger.subscriptions import ingest_subscription  # noqa: E402
from tvorai.ledger.usage import usage_report  # noqa: E402
from tvorai.models.types import SubscriptionUpdate  # noqa: E402

# Constants
DEMO_DB_PATH = PROJECT_ROOT / "demo.db"
DEMO_CYCLE_START = date(2025, 1, 1)
DEMO_CYCLE_END = date(2025, 1, 31)

# (wp_user_id, email, plan_id, monthly_credit_limit, active)
DEMO_SUBSCRIBERS = [
    (1001, "starter@example.com", 1, 1000, True),
    (1002, "pro@example.com", 2, 5000, True),
    (1003, "lapsed@example.com", 1, 1000, False),
]


def seed_database(store: LedgerStore) -> None:
    """Ingest every demo subscription."""
    for wp_user_id, email, plan_id, limit, active in DEMO_SUBSCRIBERS:
        update = SubscriptionUpdate(
            wp_user_id=wp_user_id,
            email=email,
            plan_id=plan_id,
            monthly_credit_limit=limit,
            cycle_start=DEMO_CYCLE_START,
            cycle_end=DEMO_CYCLE_END,
            active=active,
        )
        result = ingest_subscription(store, update)
        print(f"  Seeded wp_user_id={wp_user_id} (user {result.user_id})")


def print_balances(store: LedgerStore) -> None:
    for wp_user_id, *_ in DEMO_SUBSCRIBERS:
        report = usage_report(store, wp_user_id)
        state = "active" if report.active else "inactive"
        print(f"  {wp_user_id}: {report.credits_remaining} credits ({state})")


def main() -> int:
    """Main entry point."""
    print("=" * 60)
    print("TvorAI Demo Seeding Script")
    print("=" * 60)

    store = LedgerStore.from_url(f"sqlite:///{DEMO_DB_PATH}")
    try:
        print("\n[1/2] Seeding database...")
        store.init_schema()
        seed_database(store)

        print("\n[2/2] Starting balances...")
        print_balances(store)
    finally:
        store.dispose()

    print("\n" + "=" * 60)
    print("Demo seeding complete!")
    print(f"Database: {DEMO_DB_PATH}")
    print("=" * 60)

    return 0


if __name__ == "__main__":
    sys.exit(main())
