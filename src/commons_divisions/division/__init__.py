"""Division package — weighted votes, tallies, and automatic closing.

Public API
----------
- ``Division`` / ``Ballot`` — the division record
- ``VoteChoice`` / ``DivisionStatus`` / ``DivisionOutcome`` / ``CloseReason`` — enums
- ``open_division`` / ``cast_vote`` / ``set_npc_votes`` / ``set_rebellions`` /
  ``close_division`` / ``reweigh_ballots`` — ledger operations
- ``DivisionResolver`` / ``DivisionTally`` — tallying and outcomes
- ``AutoCloseChecker`` — deadline and full-participation closing
"""
from __future__ import annotations

from commons_divisions.division.auto_close import AutoCloseChecker
from commons_divisions.division.ledger import (
    Ballot,
    CloseReason,
    Division,
    DivisionOutcome,
    DivisionStatus,
    VoteChoice,
    cast_vote,
    close_division,
    open_division,
    reweigh_ballots,
    set_npc_votes,
    set_rebellions,
)
from commons_divisions.division.resolver import DivisionResolver, DivisionTally

__all__ = [
    "AutoCloseChecker",
    "Ballot",
    "CloseReason",
    "Division",
    "DivisionOutcome",
    "DivisionResolver",
    "DivisionStatus",
    "DivisionTally",
    "VoteChoice",
    "cast_vote",
    "close_division",
    "open_division",
    "reweigh_ballots",
    "set_npc_votes",
    "set_rebellions",
]
