"""Thread-safe division store with per-division atomic upserts.

Concurrent voters on the same division must never lose each other's
ballots.  The store serialises every mutation of a division under that
division's own lock; different divisions never contend.  Every accepted
ballot is also appended to a per-division log, so the vote map can be
rebuilt by replaying the log (last write per actor wins).

Callers that persist documents can pass ``expected_version`` to get
compare-and-swap semantics: a stale version raises
:class:`VersionConflictError` and the caller re-reads and retries.

Example
-------
>>> store = DivisionStore()
>>> store.add(open_division("b1:division"))
>>> store.cast("b1:division", "Tony", "Labour", "aye", 209)
True
>>> store.version("b1:division")
1
"""
from __future__ import annotations

import itertools
import logging
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime

from commons_divisions.clock.sim_date import SimDate
from commons_divisions.division.auto_close import AutoCloseChecker
from commons_divisions.division.ledger import (
    Ballot,
    CloseReason,
    Division,
    VoteChoice,
    cast_vote,
    set_npc_votes,
    set_rebellions,
)
from commons_divisions.roster.seats import SeatLedger
from commons_divisions.roster.weights import WeightAllocation
from commons_divisions.store.document import StateDocument

logger = logging.getLogger(__name__)


class VersionConflictError(RuntimeError):
    """Raised when a mutation's expected version is stale."""

    def __init__(self, division_id: str, expected: int, actual: int) -> None:
        super().__init__(
            f"Division {division_id!r} is at version {actual}, expected {expected}"
        )
        self.division_id = division_id
        self.expected = expected
        self.actual = actual


@dataclass(frozen=True)
class BallotLogEntry:
    """One accepted ballot, in arrival order."""

    sequence: int
    division_id: str
    ballot: Ballot


class DivisionStore:
    """In-memory store of divisions keyed by division id."""

    def __init__(self) -> None:
        self._divisions: dict[str, Division] = {}
        self._locks: dict[str, threading.Lock] = {}
        self._logs: dict[str, list[BallotLogEntry]] = {}
        self._registry_lock = threading.Lock()
        self._sequence = itertools.count(1)

    @classmethod
    def from_document(cls, document: StateDocument) -> "DivisionStore":
        """Load every main and nested division found in *document*."""
        store = cls()
        for division in document.iter_divisions():
            store.add(division)
        return store

    # ------------------------------------------------------------------
    # Registry
    # ------------------------------------------------------------------

    def add(self, division: Division) -> None:
        """Register a copy of *division*, replacing any earlier one with the same id."""
        with self._registry_lock:
            self._divisions[division.division_id] = division.model_copy(deep=True)
            self._locks.setdefault(division.division_id, threading.Lock())
            self._logs.setdefault(division.division_id, [])

    def __contains__(self, division_id: object) -> bool:
        return division_id in self._divisions

    def __len__(self) -> int:
        return len(self._divisions)

    def ids(self) -> list[str]:
        return list(self._divisions)

    def _lock_for(self, division_id: str) -> threading.Lock:
        try:
            return self._locks[division_id]
        except KeyError:
            raise KeyError(f"Unknown division {division_id!r}") from None

    @contextmanager
    def transaction(
        self, division_id: str, expected_version: int | None = None
    ) -> Iterator[Division]:
        """Hold the division's lock and yield the live record.

        Raises
        ------
        KeyError:
            When *division_id* is unknown.
        VersionConflictError:
            When *expected_version* is given and stale.
        """
        lock = self._lock_for(division_id)
        with lock:
            division = self._divisions[division_id]
            if expected_version is not None and expected_version != division.version:
                raise VersionConflictError(division_id, expected_version, division.version)
            yield division

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(self, division_id: str) -> Division:
        """Return a snapshot copy of the division."""
        with self.transaction(division_id) as division:
            return division.model_copy(deep=True)

    def version(self, division_id: str) -> int:
        with self.transaction(division_id) as division:
            return division.version

    def history(self, division_id: str) -> list[BallotLogEntry]:
        with self.transaction(division_id):
            return list(self._logs[division_id])

    def merged_votes(self, division_id: str) -> dict[str, Ballot]:
        """Rebuild the vote map from the ballot log; the last ballot per actor wins."""
        merged: dict[str, Ballot] = {}
        for entry in sorted(self.history(division_id), key=lambda e: e.sequence):
            merged[entry.ballot.actor] = entry.ballot
        return merged

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def cast(
        self,
        division_id: str,
        actor: str,
        party: str,
        choice: VoteChoice | str,
        weight: float,
        now: datetime | None = None,
        expected_version: int | None = None,
    ) -> bool:
        """Atomically upsert *actor*'s ballot.  ``False`` when the division is closed."""
        with self.transaction(division_id, expected_version) as division:
            if not cast_vote(division, actor, party, choice, weight, now):
                return False
            self._logs[division_id].append(
                BallotLogEntry(next(self._sequence), division_id, division.votes[actor])
            )
            return True

    def replace_npc_votes(
        self,
        division_id: str,
        npc_votes: dict[str, VoteChoice | str],
        expected_version: int | None = None,
    ) -> bool:
        with self.transaction(division_id, expected_version) as division:
            return set_npc_votes(division, npc_votes)

    def replace_rebellions(
        self,
        division_id: str,
        rebels_by_party: dict[str, int],
        expected_version: int | None = None,
    ) -> bool:
        with self.transaction(division_id, expected_version) as division:
            return set_rebellions(division, rebels_by_party)

    def close_if_due(
        self,
        division_id: str,
        checker: AutoCloseChecker,
        allocation: WeightAllocation,
        ledger: SeatLedger,
        sim_now: SimDate,
        now: datetime | None = None,
    ) -> CloseReason | None:
        """Run the auto-close check under the division's lock."""
        with self.transaction(division_id) as division:
            return checker.check_and_close(division, allocation, ledger, sim_now, now)

    # ------------------------------------------------------------------
    # Write-back
    # ------------------------------------------------------------------

    def write_back(self, document: StateDocument) -> StateDocument:
        """Return a copy of *document* carrying the store's divisions."""
        updated = document.model_copy(deep=True)
        for item in updated.iter_items():
            if item.division is not None and item.division.division_id in self:
                item.division = self.get(item.division.division_id)
            for amendment in item.amendments:
                if amendment.division is not None and amendment.division.division_id in self:
                    amendment.division = self.get(amendment.division.division_id)
        logger.debug("wrote back %d divisions", len(self))
        return updated
