"""Automatic division closing.

A division closes itself when either

- its simulated or real-time deadline has passed, or
- every expected voter has taken part: each playable-party member holding
  weight has cast a ballot, and each seated non-playable party (other
  than the configured auto-abstainers) has an NPC position recorded.

The full-participation rule lets a division with complete turnout
resolve without waiting for its deadline.  The check is idempotent and
may run on any read path.
"""
from __future__ import annotations

import logging
from datetime import datetime

from commons_divisions.clock.scheduler import DeadlineScheduler
from commons_divisions.clock.sim_date import SimDate
from commons_divisions.config import EngineConfig
from commons_divisions.division.ledger import CloseReason, Division, close_division
from commons_divisions.roster.seats import SeatLedger
from commons_divisions.roster.weights import WeightAllocation

logger = logging.getLogger(__name__)


class AutoCloseChecker:
    """Decides whether an open division should close now.

    Parameters
    ----------
    scheduler:
        Deadline scheduler used for both simulated and real-time checks.
    auto_abstain_parties:
        Non-playable parties that abstain by convention and never need
        an NPC position.
    """

    def __init__(
        self,
        scheduler: DeadlineScheduler | None = None,
        auto_abstain_parties: list[str] | None = None,
    ) -> None:
        self._scheduler = scheduler or DeadlineScheduler()
        self._auto_abstain: frozenset[str] = frozenset(auto_abstain_parties or [])

    @classmethod
    def from_config(cls, config: EngineConfig) -> "AutoCloseChecker":
        return cls(
            scheduler=DeadlineScheduler(config.division.real_time_hours),
            auto_abstain_parties=config.auto_abstain_parties,
        )

    # ------------------------------------------------------------------
    # Participation
    # ------------------------------------------------------------------

    def expected_voters(self, allocation: WeightAllocation, ledger: SeatLedger) -> set[str]:
        """Playable-party characters that hold weight and are expected to vote."""
        return {
            name
            for name, weight in allocation.effective_weights.items()
            if weight > 0 and ledger.is_playable(allocation.party_by_name.get(name, ""))
        }

    def expected_npc_parties(self, ledger: SeatLedger) -> set[str]:
        """Seated non-playable parties that need a moderator-set position."""
        return {party for party in ledger.npc_parties() if party not in self._auto_abstain}

    def is_complete(
        self, division: Division, allocation: WeightAllocation, ledger: SeatLedger
    ) -> bool:
        """``True`` when every expected voter and NPC party has taken part.

        A division with nobody expected is never complete; it waits for
        its deadline instead.
        """
        voters = self.expected_voters(allocation, ledger)
        npc_parties = self.expected_npc_parties(ledger)
        if not voters and not npc_parties:
            return False
        return voters.issubset(division.votes) and npc_parties.issubset(division.npc_votes)

    # ------------------------------------------------------------------
    # Close decision
    # ------------------------------------------------------------------

    def close_reason(
        self,
        division: Division,
        allocation: WeightAllocation,
        ledger: SeatLedger,
        sim_now: SimDate,
        now: datetime | None = None,
    ) -> CloseReason | None:
        """Return why *division* should close now, or ``None`` to keep it open."""
        if not division.is_open:
            return None
        if self._scheduler.any_passed(division.closes_at_sim, division.closes_at, sim_now, now):
            return CloseReason.DEADLINE
        if self.is_complete(division, allocation, ledger):
            return CloseReason.FULL_PARTICIPATION
        return None

    def check_and_close(
        self,
        division: Division,
        allocation: WeightAllocation,
        ledger: SeatLedger,
        sim_now: SimDate,
        now: datetime | None = None,
    ) -> CloseReason | None:
        """Close *division* when due and return the reason, else ``None``."""
        reason = self.close_reason(division, allocation, ledger, sim_now, now)
        if reason is None:
            return None
        close_division(division, reason, now)
        if reason == CloseReason.DEADLINE:
            logger.warning(
                "Division %s closed at deadline (sim %s) with %d ballots.",
                division.division_id,
                sim_now.label,
                len(division.votes),
            )
        return reason
