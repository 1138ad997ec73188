#!/usr/bin/env python3
"""Smoke test for the demo ledger.

Drives the API in-process against the seeded demo database with the
mock generation provider and checks the billing rules end to end.

Usage:
    python scripts/seed_demo.py
    python scripts/smoke_demo.py

Exit codes:
    0: All checks passed
    1: Some checks failed
"""

from __future__ import annotations

import sys
from pathlib import Path

# Add src to path for imports
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT / "src"))

from fastapi.testclient import TestClient  # noqa: E402

from tvorai.api.app import create_app  # noqa: E402
from tvorai.config import Settings  # noqa: E402

# Constants
DEMO_DB_PATH = PROJECT_ROOT / "demo.db"
ACTIVE_USER = 1001
INACTIVE_USER = 1003


def check_database_exists() -> bool:
    """Check that demo database exists."""
    if not DEMO_DB_PATH.exists():
        print(f"FAIL: Demo database not found: {DEMO_DB_PATH}")
        return False
    print(f"OK: Database exists: {DEMO_DB_PATH}")
    return True


def check_health(client: TestClient) -> bool:
    body = client.get("/health").json()
    if not body.get("db"):
        print(f"FAIL: Store not reachable: {body}")
        return False
    print("OK: Store reachable")
    return True


def check_billed_generation(client: TestClient) -> bool:
    """A billed text-to-video job lowers the balance by its price."""
    before = client.get(f"/usage/{ACTIVE_USER}").json()["credits_remaining"]
    response = client.post(
        "/api/kling/v2-5/t2v/generate",
        json={"prompt": "smoke test", "duration": 5, "wp_user_id": ACTIVE_USER},
    )
    if response.status_code != 200:
        print(f"FAIL: Generation rejected: {response.status_code} {response.json()}")
        return False

    body = response.json()
    after = client.get(f"/usage/{ACTIVE_USER}").json()["credits_remaining"]
    if before - after != body["charged"]:
        print(f"FAIL: Balance moved {before - after}, charged {body['charged']}")
        return False

    print(f"OK: Charged {body['charged']} credits, {after} remaining")
    return True


def check_inactive_rejected(client: TestClient) -> bool:
    response = client.post("/consume", json={"wp_user_id": INACTIVE_USER, "explicit_cost": 1})
    if response.status_code != 403:
        print(f"FAIL: Inactive user got {response.status_code}")
        return False
    print("OK: Inactive subscription rejected")
    return True


def check_overdraft_rejected(client: TestClient) -> bool:
    remaining = client.get(f"/usage/{ACTIVE_USER}").json()["credits_remaining"]
    response = client.post(
        "/consume", json={"wp_user_id": ACTIVE_USER, "explicit_cost": remaining + 1}
    )
    if response.status_code != 402:
        print(f"FAIL: Overdraft got {response.status_code}")
        return False
    print(f"OK: Overdraft rejected with {response.json()['credits_remaining']} remaining")
    return True


def main() -> int:
    """Run all smoke checks."""
    print("=" * 60)
    print("TvorAI Demo Smoke Test")
    print("=" * 60)

    checks_passed = 0
    checks_failed = 0

    print("\n[1/5] Checking database...")
    if not check_database_exists():
        print("\n" + "=" * 60)
        print("Run 'python scripts/seed_demo.py' first!")
        print("=" * 60)
        return 1
    checks_passed += 1

    settings = Settings(
        DATABASE_URL=f"sqlite:///{DEMO_DB_PATH}",
        GENERATION_PROVIDER="mock",
        KEEPALIVE_INTERVAL_SECONDS=0,
    )

    with TestClient(create_app(settings=settings)) as client:
        checks = [
            ("[2/5] Checking health...", check_health),
            ("[3/5] Checking billed generation...", check_billed_generation),
            ("[4/5] Checking inactive user...", check_inactive_rejected),
            ("[5/5] Checking overdraft...", check_overdraft_rejected),
        ]
        for title, check in checks:
            print(f"\n{title}")
            if check(client):
                checks_passed += 1
            else:
                checks_failed += 1

    # Summary
    print("\n" + "=" * 60)
    if checks_failed == 0:
        print(f"RESULT: ALL PASSED ({checks_passed} checks)")
        print("=" * 60)
        return 0
    else:
        print(f"RESULT: {checks_passed} passed, {checks_failed} failed")
        print("=" * 60)
        return 1


if __name__ == "__main__":
    sys.exit(main())
