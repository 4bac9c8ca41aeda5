"""Benchmark: Vote-weight allocation throughput.

Measures how many full-roster allocations per second
VoteWeightAllocator.allocate() sustains for a chamber of 650 seats with
a few dozen player characters, some of them absent.
"""
from __future__ import annotations

import json
import sys
import time
from datetime import datetime, timedelta, timezone
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from commons_divisions.roster.schema import Character, Party
from commons_divisions.roster.seats import SeatLedger
from commons_divisions.roster.weights import VoteWeightAllocator

_WARMUP: int = 50
_ITERATIONS: int = 2_000
_NOW = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)

_PARTIES: list[tuple[str, int, bool]] = [
    ("Labour", 418, True),
    ("Conservative", 165, True),
    ("Liberal Democrat", 46, True),
    ("Ulster Unionist", 10, False),
    ("Scottish National", 6, False),
    ("Plaid Cymru", 4, False),
    ("Independent", 1, False),
]


def _make_roster() -> tuple[list[Character], SeatLedger]:
    """A 1997-style chamber with 36 player characters."""
    ledger = SeatLedger([Party(name=name, seats=seats, playable=playable) for name, seats, playable in _PARTIES])
    characters: list[Character] = []
    leader_roles = {"Labour": "prime-minister", "Conservative": "leader-opposition", "Liberal Democrat": "party-leader-3rd-4th"}
    for party, count in (("Labour", 20), ("Conservative", 12), ("Liberal Democrat", 4)):
        for i in range(count):
            characters.append(
                Character(
                    name=f"{party}-{i}",
                    party=party,
                    role=leader_roles[party] if i == 0 else "backbencher",
                    absent=i % 7 == 3,
                    joined_at=_NOW - timedelta(days=3 if i % 5 == 4 else 60),
                )
            )
    return characters, ledger


def bench_weight_allocation_throughput() -> dict[str, object]:
    """Benchmark VoteWeightAllocator.allocate() throughput.

    Returns
    -------
    dict with keys: operation, iterations, total_seconds, ops_per_second,
    avg_latency_ms, p99_latency_ms.
    """
    allocator = VoteWeightAllocator()
    characters, ledger = _make_roster()

    for _ in range(_WARMUP):
        allocator.allocate(characters, ledger, _NOW)

    latencies_ms: list[float] = []
    for _ in range(_ITERATIONS):
        t0 = time.perf_counter()
        allocator.allocate(characters, ledger, _NOW)
        latencies_ms.append((time.perf_counter() - t0) * 1000)

    sorted_lats = sorted(latencies_ms)
    n = len(sorted_lats)
    total = sum(latencies_ms) / 1000

    result: dict[str, object] = {
        "operation": "weight_allocation_throughput",
        "iterations": _ITERATIONS,
        "total_seconds": round(total, 4),
        "ops_per_second": round(_ITERATIONS / total, 1),
        "avg_latency_ms": round(sum(latencies_ms) / n, 4),
        "p99_latency_ms": round(sorted_lats[min(int(n * 0.99), n - 1)], 4),
    }
    print(
        f"[bench_weight_allocation] {result['operation']}: "
        f"{result['ops_per_second']:,.0f} ops/sec  "
        f"avg={result['avg_latency_ms']:.4f}ms"
    )
    return result


def run_benchmark() -> dict[str, object]:
    """Entry point returning the benchmark result dict."""
    return bench_weight_allocation_throughput()


if __name__ == "__main__":
    result = run_benchmark()
    results_dir = Path(__file__).parent / "results"
    results_dir.mkdir(exist_ok=True)
    output_path = results_dir / "allocation_baseline.json"
    with open(output_path, "w", encoding="utf-8") as fh:
        json.dump(result, fh, indent=2)
    print(f"Results saved to {output_path}")
