#!/usr/bin/env python3
"""
Development smoke test for the MS Archive backend.

Verifies that a running backend answers the public endpoints with the
{data, error} envelope and refuses anonymous admin calls.

Usage:
    python scripts/dev_smoke.py [--base-url http://127.0.0.1:8000]

Exit codes:
    0 - All checks passed
    1 - One or more checks failed
"""
import argparse
import sys
import time

import requests

# (description, method, path, expected status, expects envelope)
CHECKS = [
    ("health check", "GET", "/", 200, False),
    ("public incidents", "GET", "/api/incidents?limit=1", 200, True),
    ("public legislation", "GET", "/api/legislation", 200, True),
    ("yearly statistics", "GET", "/api/stats/yearly", 200, True),
    ("unknown incident", "GET", "/api/incidents/does-not-exist", 404, True),
    ("anonymous admin call", "GET", "/api/admin/incidents", 401, True),
    ("CSV export", "GET", "/api/export/incidents.csv", 200, False),
]


def run_smoke_tests(base_url: str) -> bool:
    """Run smoke checks against the backend."""
    tests_passed = 0
    tests_failed = 0

    print("=" * 60)
    print("MS Archive Backend - Development Smoke Test")
    print("=" * 60)
    print(f"Testing backend at: {base_url}")
    print()

    for index, (description, method, path, expected, envelope) in enumerate(CHECKS, start=1):
        print(f"[{index}/{len(CHECKS)}] Testing {description} ({method} {path})...")
        try:
            response = requests.request(method, f"{base_url}{path}", timeout=10)
            if response.status_code != expected:
                print(f"  ✗ FAIL - Expected {expected}, got {response.status_code}")
                print(f"  Response: {response.text[:200]}")
                tests_failed += 1
            elif envelope and set(response.json()) != {"data", "error"}:
                print(f"  ✗ FAIL - Response is not a {{data, error}} envelope: {response.text[:200]}")
                tests_failed += 1
            else:
                print(f"  ✓ PASS - Status: {response.status_code}")
                tests_passed += 1
        except requests.exceptions.ConnectionError:
            print("  ✗ FAIL - Connection refused. Is the backend running?")
            tests_failed += 1
        except (requests.exceptions.RequestException, ValueError) as e:
            print(f"  ✗ FAIL - Error: {e}")
            tests_failed += 1
        print()

    print("=" * 60)
    print(f"Results: {tests_passed} passed, {tests_failed} failed")
    print("=" * 60)

    return tests_failed == 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Smoke test a running MS Archive backend.")
    parser.add_argument("--base-url", default="http://127.0.0.1:8000")
    args = parser.parse_args()

    # Give backend a moment to fully start if just launched
    print("Waiting 2 seconds for backend to be ready...")
    time.sleep(2)
    print()

    success = run_smoke_tests(args.base_url.rstrip("/"))
    sys.exit(0 if success else 1)
