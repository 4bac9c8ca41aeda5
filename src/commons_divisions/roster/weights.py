"""Vote-weight allocator — seats to per-character voting weight.

Allocation runs in two passes:

1. **Base allocation.**  Each party's seats are shared among its active
   characters.  New backbenchers (still inside the settling period) vote
   only for themselves with weight 1.  The remaining seats are split
   evenly among everyone else; the integer remainder goes to the party
   leader when the leader shares in the split, otherwise to the first
   split member.  A party with nobody to split between hands every
   remaining seat to its leader.
2. **Absence overlay.**  Each absent character's *base* weight moves to a
   single delegate: the party leader for ordinary members, or the
   leader's own chosen delegate when the leader is absent.  Weight with
   no valid delegate is dropped.  Delegation never chains.

Example
-------
>>> allocator = VoteWeightAllocator()
>>> allocation = allocator.allocate(roster.characters, SeatLedger(roster.parties))
>>> allocation.effective_weights["Tony"]
418
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

from commons_divisions.config import EngineConfig
from commons_divisions.roster.schema import Character, is_valid_delegate
from commons_divisions.roster.seats import SeatLedger

logger = logging.getLogger(__name__)

_DEFAULT_LEADER_ROLES: tuple[str, ...] = (
    "prime-minister",
    "leader-opposition",
    "party-leader-3rd-4th",
)


@dataclass
class WeightAllocation:
    """Result of a weight allocation.

    Attributes
    ----------
    effective_weights:
        Character name -> weight after the absence overlay.  One entry per
        active character.
    base_weights:
        Character name -> weight before the absence overlay.
    party_by_name:
        Character name -> party.
    leader_by_party:
        Party -> name of the character treated as its leader.
    """

    effective_weights: dict[str, int] = field(default_factory=dict)
    base_weights: dict[str, int] = field(default_factory=dict)
    party_by_name: dict[str, str] = field(default_factory=dict)
    leader_by_party: dict[str, str] = field(default_factory=dict)

    def weight_of(self, name: str) -> int:
        """Effective weight of *name*; unknown characters weigh 0."""
        return self.effective_weights.get(name, 0)

    def party_total(self, party: str) -> int:
        """Sum of effective weights held by members of *party*."""
        return sum(
            weight
            for name, weight in self.effective_weights.items()
            if self.party_by_name.get(name) == party
        )

    def is_leader(self, name: str) -> bool:
        party = self.party_by_name.get(name)
        return party is not None and self.leader_by_party.get(party) == name


class VoteWeightAllocator:
    """Converts the roster and seat ledger into effective voting weights.

    Parameters
    ----------
    settling_period_days:
        How long a backbencher counts as "new" after ``joined_at``.
    leader_roles:
        Roles recognised as party leaders, in priority order.  Used when
        no member carries an explicit ``party_leader`` flag.
    """

    def __init__(
        self,
        settling_period_days: float = 14.0,
        leader_roles: list[str] | tuple[str, ...] | None = None,
    ) -> None:
        self._settling = timedelta(days=settling_period_days)
        self._leader_roles: tuple[str, ...] = tuple(leader_roles or _DEFAULT_LEADER_ROLES)

    @classmethod
    def from_config(cls, config: EngineConfig) -> "VoteWeightAllocator":
        return cls(
            settling_period_days=config.settling_period_days,
            leader_roles=config.leader_roles,
        )

    # ------------------------------------------------------------------
    # Classification helpers
    # ------------------------------------------------------------------

    def find_leader(self, members: list[Character]) -> Character | None:
        """Return the leader among *members* (roster order), or ``None`` if empty."""
        for member in members:
            if member.party_leader:
                return member
        for role in self._leader_roles:
            for member in members:
                if member.role == role:
                    return member
        return members[0] if members else None

    def is_new_backbencher(self, character: Character, now: datetime) -> bool:
        """``True`` for a backbencher who joined within the settling period."""
        if character.role != "backbencher" or character.joined_at is None:
            return False
        joined = character.joined_at
        if joined.tzinfo is None:
            joined = joined.replace(tzinfo=timezone.utc)
        return now - joined < self._settling

    # ------------------------------------------------------------------
    # Allocation
    # ------------------------------------------------------------------

    def allocate(
        self,
        characters: list[Character],
        ledger: SeatLedger,
        now: datetime | None = None,
    ) -> WeightAllocation:
        """Compute base and effective weights for every active character.

        Parameters
        ----------
        characters:
            Full roster, in stable order.  Inactive characters are ignored.
        ledger:
            Seat ledger for the chamber.
        now:
            Reference time for the settling period (default: current UTC).

        Returns
        -------
        WeightAllocation
        """
        effective_now = now or datetime.now(tz=timezone.utc)
        active = [c for c in characters if c.active]

        by_party: dict[str, list[Character]] = {}
        for character in active:
            by_party.setdefault(character.party, []).append(character)

        allocation = WeightAllocation()
        for party, members in by_party.items():
            self._allocate_party(party, members, ledger, effective_now, allocation)

        allocation.effective_weights = self._apply_absences(active, allocation)
        logger.debug(
            "allocated weights parties=%d characters=%d",
            len(by_party),
            len(allocation.effective_weights),
        )
        return allocation

    def _allocate_party(
        self,
        party: str,
        members: list[Character],
        ledger: SeatLedger,
        now: datetime,
        allocation: WeightAllocation,
    ) -> None:
        base = allocation.base_weights
        for member in members:
            base[member.name] = 0
            allocation.party_by_name[member.name] = party

        leader = self.find_leader(members)
        if leader is not None:
            allocation.leader_by_party[party] = leader.name

        newcomers = [m for m in members if self.is_new_backbencher(m, now)]
        for member in newcomers:
            base[member.name] += 1

        remaining = max(0, ledger.seats_of(party) - len(newcomers))
        newcomer_names = {m.name for m in newcomers}
        split_members = [m for m in members if m.name not in newcomer_names]

        if not split_members:
            if leader is not None:
                base[leader.name] += remaining
            return

        each, odd = divmod(remaining, len(split_members))
        for member in split_members:
            base[member.name] += each
        if odd:
            split_names = {m.name for m in split_members}
            target = leader.name if leader is not None and leader.name in split_names else split_members[0].name
            base[target] += odd

    def _apply_absences(
        self, active: list[Character], allocation: WeightAllocation
    ) -> dict[str, int]:
        effective = dict(allocation.base_weights)
        by_name = {c.name: c for c in active}

        for character in active:
            if not character.absent:
                continue
            amount = allocation.base_weights.get(character.name, 0)
            if amount <= 0:
                continue

            leader_name = allocation.leader_by_party.get(character.party)
            target: str | None = None
            if leader_name == character.name:
                if character.delegated_to and is_valid_delegate(
                    active, character, character.delegated_to
                ):
                    target = character.delegated_to
            elif leader_name is not None and not by_name[leader_name].absent:
                target = leader_name

            effective[character.name] = 0
            if target is not None:
                effective[target] = effective.get(target, 0) + amount
            else:
                logger.debug(
                    "absent character=%s has no valid delegate; %d weight dropped",
                    character.name,
                    amount,
                )
        return effective


def set_absence(
    characters: list[Character],
    name: str,
    absent: bool,
    delegated_to: str | None = None,
) -> bool:
    """Record an absence (or return) for the character called *name*.

    Returns ``False`` without changing anything when the character is
    unknown or the requested delegate is not an active, present member of
    the same party.  Returning from absence clears the delegate.
    """
    character = next((c for c in characters if c.name == name), None)
    if character is None:
        return False
    if not absent:
        character.absent = False
        character.delegated_to = None
        return True

    delegate = (delegated_to or "").strip() or None
    if delegate is not None and not is_valid_delegate(characters, character, delegate):
        return False
    character.absent = True
    character.delegated_to = delegate
    return True
