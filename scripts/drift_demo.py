#!/usr/bin/env python3
"""
Manual walkthrough against a running API (see scripts/run_api.py):
missed invalidation, drift report, auto-fix, then a simulated failure.
"""

import argparse
import sys

import requests


def _check(response, expected=200):
    if response.status_code != expected:
        print(f"❌ {response.request.method} {response.url} -> {response.status_code}: {response.text}")
        sys.exit(1)
    return response.json() if response.content else None


def run_demo(api_base: str):
    print("=== Cache Drift Walkthrough ===\n")

    print("1. Creating record (cached immediately)...")
    record = _check(requests.post(f"{api_base}/db/create", json={"value": "A"}), 201)
    record_id = record["id"]
    print(f"✅ Record {record_id} at version {record['version']}")

    print("\n2. Updating without invalidation...")
    record = _check(requests.put(
        f"{api_base}/db/update/{record_id}",
        json={"value": "A2", "invalidate_cache": False}
    ))
    cached = _check(requests.get(f"{api_base}/cache/{record_id}"))
    print(f"Store version {record['version']}, cached version {cached['version']}")

    print("\n3. Drift summary...")
    summary = _check(requests.get(f"{api_base}/analyze/drift/summary"))
    print(f"Drift score {summary['drift_score']:.2f}% -> {summary['verdict']}")

    print("\n4. Full analysis with auto-fix...")
    report = _check(requests.get(f"{api_base}/analyze/drift", params={"auto_fix": True}))
    print(f"Stale: {report['stale_records']}, auto-fixed: {report['auto_fixed_count']}")
    print(f"Verdict: {report['verdict']} ({report['verdict_description']})")

    stale = _check(requests.get(f"{api_base}/analyze/stale/{record_id}"))
    print(f"{'❌' if stale['is_stale'] else '✅'} {stale['message']}")

    print("\n5. Update with a simulated invalidation failure...")
    _check(requests.put(
        f"{api_base}/db/update/{record_id}",
        json={"value": "A3", "simulate_failure": True}
    ))
    for event in _check(requests.get(f"{api_base}/analyze/events/recent", params={"limit": 3})):
        print(f"  [{event['status']}] record {event['record_id']} "
              f"db v{event['db_version']} cache v{event['cache_version']}: {event['reason']}")

    stats = _check(requests.get(f"{api_base}/analyze/events/stats"))
    print(f"\nInvalidation failure rate: {stats['failure_rate']} "
          f"({stats['failed_invalidations']}/{stats['total_invalidation_attempts']})")


def main():
    parser = argparse.ArgumentParser(description='Walk through a cache drift scenario via the API')
    parser.add_argument('--api-base', default='http://localhost:8000',
                        help='Base URL of a running API (default: http://localhost:8000)')
    args = parser.parse_args()

    try:
        run_demo(args.api_base.rstrip('/'))
    except requests.ConnectionError:
        print(f"❌ Could not reach {args.api_base}. Start it with scripts/run_api.py")
        sys.exit(1)


if __name__ == "__main__":
    main()
