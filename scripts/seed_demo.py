#!/usr/bin/env python3
"""
Seed demo accounts for the ProMaallem backend.

Registers a handful of maallems across Moroccan cities plus one client
through POST /api/auth/register, so the maallem directory and SOS matching
have someone to work with during a demo.  Accounts that already exist are
reported and skipped.

Usage:
    # Start the backend first:
    promaallem

    # Seed demo accounts:
    python scripts/seed_demo.py

    # With a custom backend URL:
    python scripts/seed_demo.py --url http://localhost:9000

Dependencies: stdlib only (urllib, json).
"""

from __future__ import annotations

import argparse
import json
import sys
import urllib.error
import urllib.request

# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

DEFAULT_URL = "http://localhost:3000"

DEMO_PASSWORD = "promaallem-demo"

ACCOUNTS = [
    {"email": "hamid@promaallem.ma", "role": "maallem", "full_name": "Hamid Benali", "city": "Casablanca", "phone": "0611000001"},
    {"email": "youssef@promaallem.ma", "role": "maallem", "full_name": "Youssef Alaoui", "city": "Casablanca", "phone": "0611000002"},
    {"email": "karim@promaallem.ma", "role": "maallem", "full_name": "Karim Tazi", "city": "Rabat", "phone": "0611000003"},
    {"email": "said@promaallem.ma", "role": "maallem", "full_name": "Said Idrissi", "city": "Marrakech", "phone": "0611000004"},
    {"email": "amina@example.ma", "role": "client", "full_name": "Amina Client", "city": "Casablanca", "phone": "0622000001"},
]

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

BOLD = "\033[1m"
GREEN = "\033[92m"
RED = "\033[91m"
YELLOW = "\033[93m"
RESET = "\033[0m"


def _post(url: str, payload: dict, timeout: int = 30) -> dict:
    """Send a JSON POST request and return the parsed response body."""
    data = json.dumps(payload).encode()
    req = urllib.request.Request(url, data=data, headers={"Content-Type": "application/json"})
    with urllib.request.urlopen(req, timeout=timeout) as resp:
        return json.loads(resp.read().decode())


def _get(url: str, timeout: int = 30) -> list | dict:
    with urllib.request.urlopen(urllib.request.Request(url), timeout=timeout) as resp:
        return json.loads(resp.read().decode())


def check_health(base_url: str) -> bool:
    """Verify the backend is reachable."""
    try:
        req = urllib.request.Request(f"{base_url}/health")
        with urllib.request.urlopen(req, timeout=5) as resp:
            return resp.status == 200
    except (urllib.error.URLError, OSError):
        return False


def register(base_url: str, account: dict) -> dict:
    """Register one account and return the response body."""
    return _post(f"{base_url}/api/auth/register", {**account, "password": DEMO_PASSWORD})


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------


def main() -> None:
    parser = argparse.ArgumentParser(description="Seed demo accounts for ProMaallem.")
    parser.add_argument(
        "--url",
        default=DEFAULT_URL,
        help=f"Backend base URL (default: {DEFAULT_URL})",
    )
    args = parser.parse_args()
    base_url = args.url

    print(f"{BOLD}ProMaallem — Demo Seeder{RESET}")
    print(f"Target: {base_url}")
    print()

    print("Checking backend health...", end=" ")
    if not check_health(base_url):
        print(f"{RED}FAIL{RESET}")
        print(f"\nBackend not reachable at {base_url}")
        print("Start it first with: promaallem")
        sys.exit(1)
    print(f"{GREEN}OK{RESET}")
    print()

    created = 0
    for i, account in enumerate(ACCOUNTS, 1):
        print(f"{BOLD}[{i}/{len(ACCOUNTS)}]{RESET} {account['email']} ({account['role']}, {account['city']})", end=" ")
        try:
            body = register(base_url, account)
        except urllib.error.HTTPError as e:
            error = json.loads(e.read().decode() or "{}").get("error", "")
            colour = YELLOW if e.code == 400 else RED
            print(f"{colour}SKIP ({e.code}: {error}){RESET}")
            continue
        created += 1
        print(f"{GREEN}OK{RESET} id={body['user']['id'][:8]}...")

    print()
    print(f"{'=' * 70}")
    print(f"{BOLD}DEMO SEEDING SUMMARY{RESET}")
    print(f"{'=' * 70}")
    print(f"  Created {GREEN}{created}{RESET}/{len(ACCOUNTS)} accounts\n")

    for maallem in _get(f"{base_url}/api/maallems/nearby"):
        print(f"  {maallem['id'][:8]}...  {maallem['full_name']:<20} {maallem['city']}")
    print()
    print(f"All demo accounts use the password {BOLD}{DEMO_PASSWORD}{RESET}.")


if __name__ == "__main__":
    main()
