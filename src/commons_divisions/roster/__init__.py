"""Roster package — parties, characters, seats, and voting weight.

Public API
----------
- ``Party`` / ``Character`` / ``Roster`` — roster schema
- ``SeatLedger`` — seats and playable flag per party
- ``VoteWeightAllocator`` — seat-weighted apportionment with absence delegation
- ``WeightAllocation`` — allocator output
- ``set_absence`` — record an absence and optional delegate
"""
from __future__ import annotations

from commons_divisions.roster.schema import (
    INDEPENDENT,
    Actor,
    Character,
    Party,
    Roster,
    is_valid_delegate,
)
from commons_divisions.roster.seats import SeatLedger
from commons_divisions.roster.weights import (
    VoteWeightAllocator,
    WeightAllocation,
    set_absence,
)

__all__ = [
    "INDEPENDENT",
    "Actor",
    "Character",
    "Party",
    "Roster",
    "SeatLedger",
    "VoteWeightAllocator",
    "WeightAllocation",
    "is_valid_delegate",
    "set_absence",
]
