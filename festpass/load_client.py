#!/usr/bin/env python3
"""
festpass load client (async)

Drives concurrent donations against a running server, then checks the
results:
  1) POST /api/donations  (amount, donorName)  -> {pass: {...}}
  2) POST /api/verify     (identifier = securePassId or displayTransactionId)

It reports duplicate receipt ids, duplicate pass ids, verification failures
and latency percentiles.

Usage:
  festpass-load --base http://localhost:8000 --total 200 --concurrency 50

  python -m festpass.load_client --base https://your.domain \
                                 --total 100 --concurrency 20 --by-receipt

Notes:
- Keep server workers=1 with SQLite to avoid lock contention artifacts.
"""

import asyncio
import random
import time
import argparse
from collections import Counter
from dataclasses import dataclass, field
from typing import Optional, List, Dict

import httpx


@dataclass
class Result:
    ok: bool
    outcome: str  # VERIFIED/TAMPERED/NOT_FOUND/ERROR
    receipt_id: Optional[int] = None
    pass_id: Optional[str] = None
    t_issue: float = 0.0
    t_verify: float = 0.0
    err: Optional[str] = None


@dataclass
class Stats:
    results: List[Result] = field(default_factory=list)

    def add(self, r: Result):
        self.results.append(r)

    def duplicates(self, attr: str) -> Dict:
        seen = Counter(
            getattr(r, attr) for r in self.results
            if getattr(r, attr) is not None
        )
        return {k: n for k, n in seen.items() if n > 1}

    def summary(self) -> Dict[str, float]:
        lat = [r.t_issue for r in self.results if r.t_issue > 0]

        def pct(p):
            if not lat:
                return 0.0
            x = sorted(lat)
            k = int(max(0, min(len(x)-1, round(p/100*(len(x)-1)))))
            return x[k]
        return {
            "total": len(self.results),
            "ok": sum(1 for r in self.results if r.ok),
            "verified": sum(
                1 for r in self.results if r.outcome == "VERIFIED"
            ),
            "tampered": sum(
                1 for r in self.results if r.outcome == "TAMPERED"
            ),
            "not_found": sum(
                1 for r in self.results if r.outcome == "NOT_FOUND"
            ),
            "error": sum(1 for r in self.results if r.outcome == "ERROR"),
            "p50_s": pct(50),
            "p90_s": pct(90),
            "p99_s": pct(99),
            "avg_s": (sum(lat)/len(lat)) if lat else 0.0,
        }

    def print(self, elapsed_s: float):
        s = self.summary()
        dup_receipts = self.duplicates("receipt_id")
        dup_passes = self.duplicates("pass_id")
        print("\n=== Load Summary ===")
        print(
            f"Total: {int(s['total'])}   OK: {int(s['ok'])}   "
            f"VERIFIED: {int(s['verified'])}   "
            f"TAMPERED: {int(s['tampered'])}   "
            f"NOT FOUND: {int(s['not_found'])}   ERROR: {int(s['error'])}"
        )
        print(
            f"Duplicate receipt ids: {len(dup_receipts)}   "
            f"Duplicate pass ids: {len(dup_passes)}"
        )
        for rid, n in sorted(dup_receipts.items()):
            print(f"   receipt {rid} issued {n} times")
        print(
            f"Latency (issuance): "
            f"avg {s['avg_s']:.3f}s   p50 {s['p50_s']:.3f}s   "
            f"p90 {s['p90_s']:.3f}s   p99 {s['p99_s']:.3f}s"
        )
        print(
            f"Wall time: {elapsed_s:.3f}s   "
            f"Throughput: {s['total']/elapsed_s:.1f} ops/s"
        )


async def one_donation(
    client: httpx.AsyncClient,
    base: str,
    amount: float,
    by_receipt: bool,
) -> Result:
    r = Result(ok=False, outcome="ERROR")

    # 1) issue
    t0 = time.perf_counter()
    try:
        resp = await client.post(
            f"{base}/api/donations",
            json={"amount": amount, "donorName": "Load Test",
                  "purpose": "load", "paymentMethod": "cash"},
            timeout=30.0,
        )
        resp.raise_for_status()
        p = resp.json()["pass"]
        r.receipt_id = int(p["receiptId"])
        r.pass_id = p["securePassId"]
        display_id = p["displayTransactionId"]
    except (httpx.HTTPError, KeyError, TypeError, ValueError) as e:
        r.err = f"issue: {e}"
        return r
    r.t_issue = time.perf_counter() - t0

    # 2) verify via the QR payload or the printed receipt
    t1 = time.perf_counter()
    try:
        resp = await client.post(
            f"{base}/api/verify",
            json={"identifier": display_id if by_receipt else r.pass_id},
            timeout=30.0,
        )
        resp.raise_for_status()
        reason = resp.json()["reason"]
    except (httpx.HTTPError, KeyError, TypeError, ValueError) as e:
        r.err = f"verify: {e}"
        return r
    r.t_verify = time.perf_counter() - t1

    r.ok = reason == "verified"
    r.outcome = reason.upper().replace(" ", "_")
    return r


async def run_load(
    base: str,
    total: int,
    concurrency: int,
    by_receipt: bool,
    http2: bool,
) -> Stats:
    sem = asyncio.Semaphore(concurrency)
    stats = Stats()

    limits = httpx.Limits(
        max_keepalive_connections=concurrency, max_connections=concurrency
    )
    async with httpx.AsyncClient(
        limits=limits, http2=http2, headers={"User-Agent": "festpassLoad/1.0"}
    ) as client:

        async def worker(n: int):
            async with sem:
                amount = round(random.uniform(1, 5000), 2)
                res = await one_donation(client, base, amount, by_receipt)
                stats.add(res)

        tasks = [asyncio.create_task(worker(i)) for i in range(total)]
        await asyncio.gather(*tasks)

    return stats


def main(argv=None):
    ap = argparse.ArgumentParser(description="festpass load client")
    ap.add_argument("--base", default="http://localhost:8000",
                    help="Base URL of the app")
    ap.add_argument("--total", type=int, default=100,
                    help="Total donations to issue")
    ap.add_argument("--concurrency", type=int, default=20,
                    help="Concurrent workers")
    ap.add_argument("--by-receipt", action="store_true",
                    help="Verify by displayTransactionId instead of pass id")
    ap.add_argument("--http2", action="store_true",
                    help="Enable HTTP/2 if server supports it")
    args = ap.parse_args(argv)

    t_start = time.perf_counter()
    stats = asyncio.run(run_load(
        base=args.base.rstrip("/"),
        total=args.total,
        concurrency=args.concurrency,
        by_receipt=args.by_receipt,
        http2=args.http2,
    ))
    elapsed = time.perf_counter() - t_start
    stats.print(elapsed)
    failed = stats.duplicates("receipt_id") or stats.duplicates("pass_id")
    return 1 if failed else 0


if __name__ == "__main__":
    raise SystemExit(main())
