"""Seat ledger — read-only projection of party seats.

Unknown parties have zero seats and are not playable: legislation that
references a since-removed party must still resolve.
"""
from __future__ import annotations

from commons_divisions.roster.schema import Party


class SeatLedger:
    """Seat count and playable flag per party.

    Parameters
    ----------
    parties:
        The chamber's parties.  The ledger keeps its own copy of the
        figures; later edits to the roster require a new ledger.
    """

    def __init__(self, parties: list[Party]) -> None:
        self._seats: dict[str, int] = {}
        self._playable: dict[str, bool] = {}
        for party in parties:
            self._seats[party.name] = max(0, int(party.seats))
            self._playable[party.name] = bool(party.playable)

    def seats_of(self, party: str) -> int:
        return self._seats.get(party, 0)

    def is_playable(self, party: str) -> bool:
        return self._playable.get(party, False)

    def parties(self) -> list[str]:
        return list(self._seats)

    def playable_parties(self) -> list[str]:
        return [name for name in self._seats if self._playable[name]]

    def npc_parties(self) -> list[str]:
        """Non-playable parties that hold at least one seat."""
        return [name for name, seats in self._seats.items() if not self._playable[name] and seats > 0]

    def total_seats(self) -> int:
        return sum(self._seats.values())

    def __repr__(self) -> str:
        return f"SeatLedger(parties={len(self._seats)}, seats={self.total_seats()})"
