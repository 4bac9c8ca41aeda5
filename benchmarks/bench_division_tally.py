"""Benchmark: Division tally latency — per-tally p50/p99.

Measures the per-call latency of DivisionResolver.tally() on a division
carrying a full turnout of player ballots plus NPC bloc positions and
rebel counts.
"""
from __future__ import annotations

import json
import sys
import time
from datetime import datetime, timezone
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from commons_divisions.division.ledger import Division, cast_vote, open_division, set_npc_votes, set_rebellions
from commons_divisions.division.resolver import DivisionResolver
from commons_divisions.roster.schema import Party
from commons_divisions.roster.seats import SeatLedger

_WARMUP: int = 100
_ITERATIONS: int = 5_000
_BALLOTS: int = 40
_NOW = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


def _make_division() -> tuple[Division, SeatLedger]:
    ledger = SeatLedger(
        [
            Party(name="Labour", seats=418, playable=True),
            Party(name="Conservative", seats=165, playable=True),
            Party(name="Liberal Democrat", seats=46),
            Party(name="Ulster Unionist", seats=10),
            Party(name="Scottish National", seats=6),
        ]
    )
    division = open_division("bench:division", opened_at=_NOW)
    for i in range(_BALLOTS):
        party = "Labour" if i % 3 else "Conservative"
        choice = "aye" if party == "Labour" else "no"
        cast_vote(division, f"member-{i}", party, choice, 10 + i, _NOW)
    set_npc_votes(division, {"Liberal Democrat": "aye", "Ulster Unionist": "no", "Scottish National": "abstain"})
    set_rebellions(division, {"Liberal Democrat": 3})
    return division, ledger


def bench_division_tally_latency() -> dict[str, object]:
    """Benchmark DivisionResolver.tally() per-call latency.

    Returns
    -------
    dict with keys: operation, iterations, total_seconds, ops_per_second,
    avg_latency_ms, p99_latency_ms.
    """
    resolver = DivisionResolver()
    division, ledger = _make_division()

    for _ in range(_WARMUP):
        resolver.tally(division, ledger)

    latencies_ms: list[float] = []
    for _ in range(_ITERATIONS):
        t0 = time.perf_counter()
        resolver.tally(division, ledger)
        latencies_ms.append((time.perf_counter() - t0) * 1000)

    sorted_lats = sorted(latencies_ms)
    n = len(sorted_lats)
    total = sum(latencies_ms) / 1000

    result: dict[str, object] = {
        "operation": "division_tally_latency",
        "iterations": _ITERATIONS,
        "total_seconds": round(total, 4),
        "ops_per_second": round(_ITERATIONS / total, 1),
        "avg_latency_ms": round(sum(latencies_ms) / n, 4),
        "p99_latency_ms": round(sorted_lats[min(int(n * 0.99), n - 1)], 4),
    }
    print(
        f"[bench_division_tally] {result['operation']}: "
        f"p99={result['p99_latency_ms']:.4f}ms  "
        f"mean={result['avg_latency_ms']:.4f}ms"
    )
    return result


def run_benchmark() -> dict[str, object]:
    """Entry point returning the benchmark result dict."""
    return bench_division_tally_latency()


if __name__ == "__main__":
    result = run_benchmark()
    results_dir = Path(__file__).parent / "results"
    results_dir.mkdir(exist_ok=True)
    output_path = results_dir / "tally_baseline.json"
    with open(output_path, "w", encoding="utf-8") as fh:
        json.dump(result, fh, indent=2)
    print(f"Results saved to {output_path}")
