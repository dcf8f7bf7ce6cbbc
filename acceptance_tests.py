#!/usr/bin/env python3
"""
Acceptance tests for the ProMaallem intake backend.

Runs the five intake scenarios (AI triage, diagnosis chat, guest SOS booking
with and without a phone, empty triage input) against a live backend and
validates the responses.

Usage:
    # Start the backend first:
    promaallem

    # Then run acceptance tests:
    python acceptance_tests.py

    # Or with a custom URL:
    python acceptance_tests.py --url http://localhost:9000

Scenario C expects no available maallem; run it against a fresh database.
"""

from __future__ import annotations

import argparse
import json
import sys
import textwrap
import urllib.error
import urllib.request
from dataclasses import dataclass, field

# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

DEFAULT_URL = "http://localhost:3000"

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


@dataclass
class Check:
    """A single pass/fail check within a scenario."""

    name: str
    passed: bool
    detail: str = ""


@dataclass
class ScenarioResult:
    """Result of one acceptance scenario."""

    id: str
    name: str
    request: dict
    status: int | None = None
    body: dict = field(default_factory=dict)
    checks: list[Check] = field(default_factory=list)
    error: str | None = None

    @property
    def passed(self) -> bool:
        return self.error is None and all(c.passed for c in self.checks)


def post(base_url: str, path: str, payload: dict, timeout: int = 120) -> tuple[int, dict]:
    """POST JSON and return ``(status, body)``; HTTP errors are returned, not raised."""
    req = urllib.request.Request(
        f"{base_url}{path}",
        data=json.dumps(payload).encode(),
        headers={"Content-Type": "application/json"},
    )
    try:
        with urllib.request.urlopen(req, timeout=timeout) as resp:
            return resp.status, json.loads(resp.read().decode())
    except urllib.error.HTTPError as e:
        return e.code, json.loads(e.read().decode() or "{}")


def wrap(text: str, width: int = 90) -> str:
    """Wrap text for readable console output."""
    return "\n".join(
        textwrap.fill(line, width=width, subsequent_indent="  ") if line.strip() else ""
        for line in text.split("\n")
    )


def _run(result: ScenarioResult, base_url: str, path: str) -> None:
    result.status, result.body = post(base_url, path, result.request)


# ---------------------------------------------------------------------------
# Scenarios
# ---------------------------------------------------------------------------


def scenario_a_triage(base_url: str) -> ScenarioResult:
    """Scenario A — Triage of a leaking tap (default city)."""
    result = ScenarioResult(
        id="A",
        name="Triage of a leaking tap",
        request={"description": "fuite au niveau du robinet"},
    )
    try:
        _run(result, base_url, "/api/ai/analyze-sos")
        analysis = result.body.get("analysis", {})

        result.checks.append(Check(
            name="Answers 200",
            passed=result.status == 200,
            detail=f"status={result.status}",
        ))
        result.checks.append(Check(
            name="Category is Plomberie",
            passed=analysis.get("category") == "Plomberie",
            detail=f"category={analysis.get('category')!r}",
        ))
        urgency = analysis.get("urgency_level")
        result.checks.append(Check(
            name="Urgency level in [1, 5]",
            passed=isinstance(urgency, int) and 1 <= urgency <= 5,
            detail=f"urgency_level={urgency!r}",
        ))
        match = result.body.get("service_match") or {}
        result.checks.append(Check(
            name="Matched to the Plomberie catalog service",
            passed=match.get("name") == "Plomberie",
            detail=f"service_match={match or None}",
        ))

    except Exception as e:
        result.error = str(e)
    return result


def scenario_b_diagnosis(base_url: str) -> ScenarioResult:
    """Scenario B — First diagnosis chat message."""
    result = ScenarioResult(
        id="B",
        name="Diagnosis chat greeting",
        request={"message": "bonjour", "previous_messages": []},
    )
    try:
        _run(result, base_url, "/api/chat/diagnose")
        reply = result.body.get("reply")

        result.checks.append(Check(
            name="Answers 200",
            passed=result.status == 200,
            detail=f"status={result.status}",
        ))
        result.checks.append(Check(
            name="Reply is a non-empty string",
            passed=isinstance(reply, str) and bool(reply.strip()),
            detail=f"{len(reply or '')} chars",
        ))

    except Exception as e:
        result.error = str(e)
    return result


def scenario_c_guest_booking(base_url: str) -> ScenarioResult:
    """Scenario C — Guest SOS booking with no maallem available."""
    result = ScenarioResult(
        id="C",
        name="Guest SOS booking, no maallem available",
        request={"phone": "0600000000", "full_name": "Test"},
    )
    try:
        _run(result, base_url, "/api/bookings/sos")
        booking = result.body.get("booking", {})

        result.checks.append(Check(
            name="Answers 201",
            passed=result.status == 201,
            detail=f"status={result.status}",
        ))
        result.checks.append(Check(
            name="maallem_found is false",
            passed=result.body.get("maallem_found") is False,
            detail=f"maallem_found={result.body.get('maallem_found')!r}",
        ))
        result.checks.append(Check(
            name="Guest booking (client_id null, phone kept)",
            passed=booking.get("client_id") is None and booking.get("guest_phone") == "0600000000",
            detail=f"client_id={booking.get('client_id')!r} guest_phone={booking.get('guest_phone')!r}",
        ))

    except Exception as e:
        result.error = str(e)
    return result


def scenario_d_guest_without_phone(base_url: str) -> ScenarioResult:
    """Scenario D — Guest SOS booking without a phone."""
    result = ScenarioResult(
        id="D",
        name="Guest SOS booking without a phone",
        request={"full_name": "Test"},
    )
    try:
        _run(result, base_url, "/api/bookings/sos")

        result.checks.append(Check(
            name="Answers 400",
            passed=result.status == 400,
            detail=f"status={result.status}",
        ))
        result.checks.append(Check(
            name="Error envelope",
            passed="error" in result.body,
            detail=f"error={result.body.get('error')!r}",
        ))

    except Exception as e:
        result.error = str(e)
    return result


def scenario_e_empty_description(base_url: str) -> ScenarioResult:
    """Scenario E — Triage with an empty description."""
    result = ScenarioResult(
        id="E",
        name="Triage with an empty description",
        request={"description": ""},
    )
    try:
        _run(result, base_url, "/api/ai/analyze-sos")

        result.checks.append(Check(
            name="Answers 400",
            passed=result.status == 400,
            detail=f"status={result.status}",
        ))
        result.checks.append(Check(
            name='Error is "Description is required"',
            passed=result.body.get("error") == "Description is required",
            detail=f"error={result.body.get('error')!r}",
        ))

    except Exception as e:
        result.error = str(e)
    return result


# ---------------------------------------------------------------------------
# Runner
# ---------------------------------------------------------------------------

SCENARIOS = [
    scenario_a_triage,
    scenario_b_diagnosis,
    scenario_c_guest_booking,
    scenario_d_guest_without_phone,
    scenario_e_empty_description,
]

PASS = "\033[92mPASS\033[0m"
FAIL = "\033[91mFAIL\033[0m"
ERR = "\033[93mERROR\033[0m"
BOLD = "\033[1m"
RESET = "\033[0m"


def check_health(base_url: str) -> bool:
    """Verify the backend is reachable."""
    try:
        req = urllib.request.Request(f"{base_url}/health")
        with urllib.request.urlopen(req, timeout=5) as resp:
            return resp.status == 200
    except (urllib.error.URLError, OSError):
        return False


def run_scenarios(base_url: str) -> list[ScenarioResult]:
    """Run all scenarios and return results."""
    results: list[ScenarioResult] = []
    for scenario_fn in SCENARIOS:
        print(f"\n{'='*70}")
        print(f"{BOLD}Running {scenario_fn.__doc__}{RESET}")
        print(f"{'='*70}")

        result = scenario_fn(base_url)
        results.append(result)

        if result.error:
            print(f"  {ERR}  {result.error}")
            continue

        body_preview = json.dumps(result.body, ensure_ascii=False)[:500]
        print(f"\n  {BOLD}Response ({result.status}):{RESET}")
        for line in wrap(body_preview).split("\n"):
            print(f"  {line}")

        print(f"\n  {BOLD}Checks:{RESET}")
        for check in result.checks:
            status = PASS if check.passed else FAIL
            print(f"    {status}  {check.name}")
            if check.detail:
                print(f"           {check.detail}")

        overall = PASS if result.passed else FAIL
        print(f"\n  {BOLD}Result: {overall}{RESET}")

    return results


def print_summary(results: list[ScenarioResult]) -> None:
    """Print a summary table of all scenario results."""
    print(f"\n{'='*70}")
    print(f"{BOLD}ACCEPTANCE TEST SUMMARY{RESET}")
    print(f"{'='*70}")

    total = len(results)
    passed = sum(1 for r in results if r.passed)
    failed = total - passed

    for r in results:
        if r.error:
            status = ERR
            detail = r.error[:60]
        elif r.passed:
            status = PASS
            detail = f"{len(r.checks)}/{len(r.checks)} checks passed"
        else:
            status = FAIL
            failed_checks = [c.name for c in r.checks if not c.passed]
            detail = f"Failed: {', '.join(failed_checks)}"[:60]
        print(f"  {status}  Scenario {r.id}: {r.name}")
        print(f"           {detail}")

    print(f"\n  {BOLD}{passed}/{total} scenarios passed{RESET}", end="")
    if failed:
        print(f"  ({failed} failed)")
    else:
        print(f"  {PASS}")
    print()


def main():
    parser = argparse.ArgumentParser(
        description="Run acceptance scenarios against the ProMaallem backend."
    )
    parser.add_argument(
        "--url",
        default=DEFAULT_URL,
        help=f"Backend base URL (default: {DEFAULT_URL})",
    )
    args = parser.parse_args()

    print(f"{BOLD}ProMaallem — Acceptance Tests{RESET}")
    print(f"Target: {args.url}")
    print()

    print("Checking backend health...", end=" ")
    if not check_health(args.url):
        print(f"{FAIL}")
        print(f"\nBackend not reachable at {args.url}")
        print("Start it first with: promaallem")
        sys.exit(1)
    print(f"{PASS}")

    results = run_scenarios(args.url)
    print_summary(results)

    sys.exit(0 if all(r.passed for r in results) else 1)


if __name__ == "__main__":
    main()
