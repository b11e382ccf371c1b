"""Seed script for development data.

Run with:  python -m expense_approvals.seed  (against a running API on BASE_URL)

The user directory is in-memory, so re-run this after every API restart.
"""

from __future__ import annotations

import asyncio
import sys
from datetime import UTC, datetime, timedelta

import httpx

BASE_URL = "http://localhost:8000"

ADMIN_ID = "00000000-0000-0000-0000-000000000001"
MANAGER_ID = "00000000-0000-0000-0000-000000000002"
JOHN_ID = "00000000-0000-0000-0000-000000000003"
JANE_ID = "00000000-0000-0000-0000-000000000004"
BOB_ID = "00000000-0000-0000-0000-000000000005"


def _headers(user_id: str, role: str = "employee") -> dict[str, str]:
    return {"Content-Type": "application/json", "X-User-Id": user_id, "X-Role": role}


ADMIN_HEADERS = _headers(ADMIN_ID, "admin")

USERS = [
    {"id": ADMIN_ID, "name": "Admin User", "email": "admin@example.com", "role": "admin"},
    {
        "id": MANAGER_ID,
        "name": "Manager User",
        "email": "manager@example.com",
        "role": "manager",
        "department": "Engineering",
    },
    {
        "id": JOHN_ID,
        "name": "John Employee",
        "email": "john@example.com",
        "role": "employee",
        "manager_id": MANAGER_ID,
        "department": "Engineering",
    },
    {
        "id": JANE_ID,
        "name": "Jane Smith",
        "email": "jane@example.com",
        "role": "manager",
        "department": "Finance",
    },
    {
        "id": BOB_ID,
        "name": "Bob Johnson",
        "email": "bob@example.com",
        "role": "manager",
        "manager_name": "Manager User",
        "department": "Operations",
    },
]

RULES = [
    {
        "user_id": JOHN_ID,
        "description": "Engineering: manager, then finance, then operations",
        "is_manager_approver": True,
        "approvers": [
            {"user_id": JANE_ID, "required": True},
            {"user_id": BOB_ID, "required": False},
        ],
        "is_sequential": True,
        "minimum_approval_percentage": 60,
    },
    {
        "user_id": BOB_ID,
        "description": "Operations: any two of three",
        "is_manager_approver": False,
        "approvers": [
            {"user_id": MANAGER_ID},
            {"user_id": JANE_ID},
            {"user_id": ADMIN_ID},
        ],
        "is_sequential": False,
        "minimum_approval_percentage": 50,
        "threshold_policy": "percentage_only",
    },
]


async def _safe_post(
    client: httpx.AsyncClient, url: str, json: dict | None, label: str, headers: dict[str, str]
) -> dict | None:
    """POST with 409-conflict tolerance so the script can be re-run."""
    resp = await client.post(url, json=json, headers=headers)
    if resp.status_code in (200, 201):
        print(f"  [OK] {label}")
        return resp.json()
    if resp.status_code == 409:
        print(f"  [SKIP] {label} ({resp.json().get('error', 'conflict')})")
        return None
    print(f"  [ERROR] {label}: {resp.status_code} {resp.text[:200]}")
    return None


async def seed_users(client: httpx.AsyncClient) -> None:
    """Seed the user directory via PUT (upsert)."""
    print("\n--- Seeding users ---")
    for user in USERS:
        body = {k: v for k, v in user.items() if k != "id"}
        resp = await client.put(f"{BASE_URL}/users/{user['id']}", json=body, headers=ADMIN_HEADERS)
        if resp.status_code == 200:
            print(f"  [OK] {user['name']} ({user['role']})")
        else:
            print(f"  [ERROR] {user['name']}: {resp.status_code} {resp.text[:200]}")


async def seed_rules(client: httpx.AsyncClient) -> None:
    """Seed approval rules. A user with an active rule is skipped."""
    print("\n--- Seeding approval rules ---")
    for rule in RULES:
        await _safe_post(client, f"{BASE_URL}/approval-rules", rule, f"Rule: {rule['description']}", ADMIN_HEADERS)


async def _create_and_submit(client: httpx.AsyncClient, user_id: str, body: dict, label: str) -> dict | None:
    headers = _headers(user_id)
    created = await _safe_post(client, f"{BASE_URL}/expenses", body, f"Draft: {label}", headers)
    if created is None:
        return None
    return await _safe_post(client, f"{BASE_URL}/expenses/{created['id']}/submit", None, f"Submit: {label}", headers)


async def seed_expenses(client: httpx.AsyncClient) -> None:
    """Seed expenses in each lifecycle state."""
    print("\n--- Seeding expenses ---")
    today = datetime.now(UTC).date()

    # John: sequential roster, manager acts first and the rest stays pending
    john = await _create_and_submit(
        client,
        JOHN_ID,
        {
            "description": "Client dinner",
            "category": "Meals",
            "amount": "184.50",
            "currency": "USD",
            "expense_date": (today - timedelta(days=3)).isoformat(),
            "paid_by": "Personal card",
        },
        "John client dinner",
    )
    if john:
        await _safe_post(
            client,
            f"{BASE_URL}/expenses/{john['id']}/approve",
            {"note": "Looks fine"},
            "Manager approves John's dinner",
            _headers(MANAGER_ID, "manager"),
        )

    # Bob: parallel 50% rule, two approvals carry it
    bob = await _create_and_submit(
        client,
        BOB_ID,
        {
            "description": "Flight to Berlin warehouse audit",
            "category": "Travel",
            "amount": "612.00",
            "currency": "EUR",
            "expense_date": (today - timedelta(days=10)).isoformat(),
        },
        "Bob travel",
    )
    if bob:
        for approver_id, name in ((JANE_ID, "Jane"), (ADMIN_ID, "Admin")):
            await _safe_post(
                client,
                f"{BASE_URL}/expenses/{bob['id']}/approve",
                None,
                f"{name} approves Bob's travel",
                _headers(approver_id, "manager"),
            )

    # Jane: no rule, approved on submit
    await _create_and_submit(
        client,
        JANE_ID,
        {
            "description": "Team offsite supplies",
            "category": "Office",
            "amount": "45.99",
            "currency": "USD",
            "expense_date": today.isoformat(),
        },
        "Jane supplies (auto-approved)",
    )

    # John: a draft left for editing
    await _safe_post(
        client,
        f"{BASE_URL}/expenses",
        {
            "description": "Conference ticket",
            "category": "Training",
            "amount": "299.00",
            "currency": "USD",
            "expense_date": today.isoformat(),
            "remarks": "Receipt to follow",
        },
        "Draft: John conference ticket",
        _headers(JOHN_ID),
    )


async def main() -> None:
    print("=" * 60)
    print("  Expense Approvals: Development Seed Script")
    print("=" * 60)

    async with httpx.AsyncClient(timeout=30.0) as client:
        try:
            resp = await client.get(f"{BASE_URL}/health")
            if resp.status_code != 200:
                print(f"API health check failed: {resp.status_code}")
                sys.exit(1)
            print("\n[OK] API is healthy")
        except httpx.ConnectError:
            print("ERROR: Cannot connect to API at", BASE_URL)
            print("Make sure the API is running (uvicorn expense_approvals.main:app)")
            sys.exit(1)

        await seed_users(client)
        await seed_rules(client)
        await seed_expenses(client)

    print("\n" + "=" * 60)
    print("  Seeding complete!")
    print("=" * 60)


if __name__ == "__main__":
    asyncio.run(main())
