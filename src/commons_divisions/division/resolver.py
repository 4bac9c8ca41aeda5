"""Division resolver — tallies a division and reports pass/fail/tied.

Player ballots contribute their recorded weight.  Each non-playable
party with an NPC position contributes its seats less any recorded
rebels to that position.  The resolver never breaks ties: a ``tied``
outcome is handed back to the stage machine, where only the Speaker can
settle it.

Example
-------
>>> resolver = DivisionResolver()
>>> tally = resolver.tally(division, SeatLedger(parties))
>>> tally.aye, tally.no
(340.0, 310.0)
>>> resolver.resolve(division, SeatLedger(parties))
<DivisionOutcome.PASSED: 'passed'>
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field

from commons_divisions.division.ledger import Division, DivisionOutcome, VoteChoice
from commons_divisions.roster.seats import SeatLedger

logger = logging.getLogger(__name__)


@dataclass
class DivisionTally:
    """Totals for one division.

    Attributes
    ----------
    aye / no / abstain:
        Accumulated weight per choice.
    player_ballots:
        Number of individual ballots counted.
    npc_contributions:
        Party -> weight added from its NPC position.
    """

    aye: float = 0.0
    no: float = 0.0
    abstain: float = 0.0
    player_ballots: int = 0
    npc_contributions: dict[str, float] = field(default_factory=dict)

    def add(self, choice: VoteChoice, weight: float) -> None:
        if choice == VoteChoice.AYE:
            self.aye += weight
        elif choice == VoteChoice.NO:
            self.no += weight
        else:
            self.abstain += weight

    @property
    def outcome(self) -> DivisionOutcome:
        if self.aye > self.no:
            return DivisionOutcome.PASSED
        if self.no > self.aye:
            return DivisionOutcome.FAILED
        return DivisionOutcome.TIED

    def as_dict(self) -> dict[str, float]:
        return {"aye": self.aye, "no": self.no, "abstain": self.abstain}


class DivisionResolver:
    """Computes totals and outcomes for divisions."""

    def tally(self, division: Division, ledger: SeatLedger) -> DivisionTally:
        """Sum ballots and NPC bloc positions into a :class:`DivisionTally`."""
        totals = DivisionTally()
        for ballot in division.votes.values():
            totals.add(ballot.choice, ballot.weight)
            totals.player_ballots += 1

        for party, choice in division.npc_votes.items():
            if ledger.is_playable(party):
                continue
            rebels = division.rebels_by_party.get(party, 0)
            weight = float(max(0, ledger.seats_of(party) - rebels))
            totals.add(choice, weight)
            totals.npc_contributions[party] = weight

        logger.debug(
            "tally division=%s aye=%s no=%s abstain=%s",
            division.division_id,
            totals.aye,
            totals.no,
            totals.abstain,
        )
        return totals

    def resolve(self, division: Division, ledger: SeatLedger) -> DivisionOutcome:
        """Return ``passed`` when ayes exceed noes, ``failed`` for the reverse, else ``tied``."""
        return self.tally(division, ledger).outcome
