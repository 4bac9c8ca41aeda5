"""Shared bootstrap for commons-divisions benchmarks."""
from __future__ import annotations

import sys
from pathlib import Path

_REPO_ROOT = Path(__file__).parent.parent
_SRC = _REPO_ROOT / "src"
_BENCHMARKS = _REPO_ROOT / "benchmarks"

for _path in [str(_SRC), str(_BENCHMARKS)]:
    if _path not in sys.path:
        sys.path.insert(0, _path)

from commons_divisions.division.ledger import Division, cast_vote, open_division
from commons_divisions.division.resolver import DivisionResolver
from commons_divisions.roster.schema import Character, Party
from commons_divisions.roster.seats import SeatLedger
from commons_divisions.roster.weights import VoteWeightAllocator

__all__ = [
    "Character",
    "Division",
    "DivisionResolver",
    "Party",
    "SeatLedger",
    "VoteWeightAllocator",
    "cast_vote",
    "open_division",
]
