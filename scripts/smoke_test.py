#!/usr/bin/env python3
"""Smoke test for a running Health Snapshot instance.

Works against any target: local uvicorn, container, deployed environment.
Uses httpx (project dependency) for HTTP calls. The target may run in
fixture or live mode; checks only assert on the snapshot's shape, never on
specific health values.

Usage:
    python scripts/smoke_test.py                                   # default localhost:8000
    python scripts/smoke_test.py --base-url http://10.0.0.5:8000   # custom target
    python scripts/smoke_test.py --wait 120 --verbose              # longer wait, verbose
"""

import argparse
import math
import sys
import time
import uuid

import httpx

SECTIONS = ("activity", "sleep", "heart", "oxygen", "metabolic", "environment", "body")


class CheckResult:
    def __init__(self, name: str, passed: bool, detail: str = ""):
        self.name = name
        self.passed = passed
        self.detail = detail


def _all_finite(value: object) -> bool:
    if isinstance(value, bool) or value is None or isinstance(value, str):
        return True
    if isinstance(value, (int, float)):
        return math.isfinite(value)
    if isinstance(value, dict):
        return all(_all_finite(v) for v in value.values())
    if isinstance(value, list):
        return all(_all_finite(v) for v in value)
    return False


class SmokeRunner:
    def __init__(self, base_url: str, verbose: bool = False):
        self.client = httpx.Client(base_url=base_url, timeout=60.0)
        self.verbose = verbose
        self.results: list[CheckResult] = []
        self.run_id = uuid.uuid4().hex[:8]
        self.all_responses: list[httpx.Response] = []
        self.snapshot: dict | None = None

    def _record(self, name: str, passed: bool, detail: str = "") -> CheckResult:
        result = CheckResult(name, passed, detail)
        self.results.append(result)
        status = "PASS" if passed else "FAIL"
        line = f" [{status}] {name}"
        if detail and (not passed or self.verbose):
            line += f"  ({detail})"
        print(line)
        return result

    # ── Individual checks ────────────────────────────────────────

    def check_health(self) -> None:
        resp = self.client.get("/health")
        self.all_responses.append(resp)
        ok = resp.status_code == 200 and resp.json() == {"status": "ok"}
        self._record("Health check", ok, f"status={resp.status_code}")

    def check_authorization(self) -> None:
        resp = self.client.post("/api/v1/authorization")
        self.all_responses.append(resp)
        ok = resp.status_code == 200
        detail = f"status={resp.status_code}"
        if ok:
            authorized = resp.json().get("data", {}).get("authorized")
            ok = isinstance(authorized, bool)
            detail = f"authorized={authorized}"
        self._record("Authorization request answers a bool", ok, detail)

    def check_snapshot(self) -> None:
        resp = self.client.get(
            "/api/v1/snapshot", headers={"X-Request-ID": f"smoke-{self.run_id}"}
        )
        self.all_responses.append(resp)
        if resp.status_code == 502:
            body = resp.json()
            ok = resp.headers.get("content-type", "").startswith("application/problem+json")
            self._record("Snapshot rejected as problem+json", ok, body.get("detail", ""))
            return
        if resp.status_code != 200:
            self._record("Snapshot", False, f"expected 200, got {resp.status_code}")
            return

        self.snapshot = resp.json().get("data", {})
        ok = isinstance(self.snapshot.get("authorized"), bool) and "generatedAt" in self.snapshot
        self._record("Snapshot has authorized flag and timestamp", ok)
        source = self.snapshot.get("source")
        self._record("Snapshot tagged with source", source in ("healthkit", "mock"), str(source))

        echoed = resp.headers.get("X-Request-ID") == f"smoke-{self.run_id}"
        self._record("Caller X-Request-ID echoed", echoed)

    def check_snapshot_sections(self) -> None:
        if self.snapshot is None:
            self._record("Snapshot sections non-empty when present", False, "no snapshot")
            return
        empty = [s for s in SECTIONS if s in self.snapshot and not self.snapshot[s]]
        self._record(
            "Snapshot sections non-empty when present",
            not empty,
            f"empty: {empty}" if empty else "",
        )

    def check_snapshot_finite(self) -> None:
        if self.snapshot is None:
            self._record("Snapshot numeric leaves finite", False, "no snapshot")
            return
        self._record("Snapshot numeric leaves finite", _all_finite(self.snapshot))

    def check_unknown_route(self) -> None:
        resp = self.client.get(f"/api/v1/nope-{self.run_id}")
        self.all_responses.append(resp)
        ok = resp.status_code == 404 and resp.headers.get("content-type", "").startswith(
            "application/problem+json"
        )
        self._record("Unknown route answers problem+json 404", ok)

    def check_metrics(self) -> None:
        resp = self.client.get("/metrics/")
        self.all_responses.append(resp)
        ok = resp.status_code == 200
        detail = ""
        if ok:
            has_snapshots = "snapshots_total" in resp.text
            has_queries = "provider_queries_total" in resp.text
            ok = has_snapshots and has_queries
            if not ok:
                detail = f"snapshots={has_snapshots}, queries={has_queries}"
        self._record("Metrics expose snapshot counters", ok, detail)

    def check_request_id_header(self) -> None:
        missing = [
            f"{r.request.method} {r.request.url.path}"
            for r in self.all_responses
            if "X-Request-ID" not in r.headers and not r.request.url.path.startswith("/metrics")
        ]
        self._record(
            "X-Request-ID present on all responses",
            not missing,
            f"missing on: {missing[:3]}" if missing else "",
        )

    def run_all(self) -> int:
        self.check_health()
        self.check_authorization()
        self.check_snapshot()
        self.check_snapshot_sections()
        self.check_snapshot_finite()
        self.check_unknown_route()
        self.check_metrics()
        self.check_request_id_header()

        passed = sum(1 for r in self.results if r.passed)
        failed = len(self.results) - passed
        print(f"\n{passed}/{len(self.results)} passed")
        return failed


# ── Entry point ──────────────────────────────────────────────────


def wait_for_health(client: httpx.Client, timeout: int) -> None:
    """Poll /health until it returns 200 or timeout expires."""
    start = time.monotonic()
    print("Waiting for /health...", end=" ", flush=True)
    while time.monotonic() - start < timeout:
        try:
            resp = client.get("/health")
            if resp.status_code == 200:
                print(f"OK ({time.monotonic() - start:.1f}s)")
                return
        except (httpx.ConnectError, httpx.ReadError, httpx.RemoteProtocolError):
            pass
        time.sleep(2)
    print(f"TIMEOUT ({time.monotonic() - start:.0f}s)")
    print("ERROR: app did not become healthy in time")
    sys.exit(1)


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Smoke test for Health Snapshot API")
    parser.add_argument(
        "--base-url",
        default="http://localhost:8000",
        help="Target URL (default: http://localhost:8000)",
    )
    parser.add_argument(
        "--wait",
        type=int,
        default=60,
        help="Max seconds to wait for /health (default: 60)",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Print response details on success (default: only on failure)",
    )
    return parser.parse_args()


def main() -> None:
    args = parse_args()

    print("Health Snapshot Smoke Test")
    print(f"Target: {args.base_url}")
    print()

    client = httpx.Client(base_url=args.base_url, timeout=30.0)
    wait_for_health(client, timeout=args.wait)
    client.close()

    print()
    runner = SmokeRunner(args.base_url, verbose=args.verbose)
    failed = runner.run_all()
    sys.exit(failed)


if __name__ == "__main__":
    main()
