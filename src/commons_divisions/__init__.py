"""commons-divisions — weighted divisions and stage progression for a simulated Commons.

Public API
----------
The stable public surface is everything exported from this module.
Anything inside submodules not re-exported here is considered private
and may change without notice.

Example
-------
>>> import commons_divisions as cd
>>> cd.__version__
'0.1.0'
>>> engine = cd.LegislativeEngine()
>>> engine.effective_weights(cd.StateDocument()).effective_weights
{}
"""
from __future__ import annotations

__version__: str = "0.1.0"

from commons_divisions.convenience import Chamber

# ---------------------------------------------------------------------------
# Roster
# ---------------------------------------------------------------------------
from commons_divisions.roster.schema import INDEPENDENT, Actor, Character, Party, Roster
from commons_divisions.roster.seats import SeatLedger
from commons_divisions.roster.weights import VoteWeightAllocator, WeightAllocation, set_absence

# ---------------------------------------------------------------------------
# Clock
# ---------------------------------------------------------------------------
from commons_divisions.clock.scheduler import DeadlineScheduler
from commons_divisions.clock.sim_date import SimClock, SimDate

# ---------------------------------------------------------------------------
# Divisions
# ---------------------------------------------------------------------------
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

# ---------------------------------------------------------------------------
# Legislation
# ---------------------------------------------------------------------------
from commons_divisions.legislation.amendments import AmendmentManager, splice_amendment
from commons_divisions.legislation.progression import StageProgression
from commons_divisions.legislation.schema import (
    Amendment,
    AmendmentStatus,
    AmendmentType,
    Article,
    BillType,
    Legislation,
    LegislationKind,
    LegislationStatus,
    Stage,
)

# ---------------------------------------------------------------------------
# Store, engine, config, audit
# ---------------------------------------------------------------------------
from commons_divisions.store.document import Parliament, StateDocument
from commons_divisions.store.division_store import (
    BallotLogEntry,
    DivisionStore,
    VersionConflictError,
)
from commons_divisions.engine import LegislativeEngine, OperationResult
from commons_divisions.config import ConfigLoader, EngineConfig
from commons_divisions.audit.logger import DivisionAuditLog

__all__ = [
    "__version__",
    # Convenience
    "Chamber",
    # Roster
    "INDEPENDENT",
    "Actor",
    "Character",
    "Party",
    "Roster",
    "SeatLedger",
    "VoteWeightAllocator",
    "WeightAllocation",
    "set_absence",
    # Clock
    "DeadlineScheduler",
    "SimClock",
    "SimDate",
    # Divisions
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
    # Legislation
    "Amendment",
    "AmendmentManager",
    "AmendmentStatus",
    "AmendmentType",
    "Article",
    "BillType",
    "Legislation",
    "LegislationKind",
    "LegislationStatus",
    "Stage",
    "StageProgression",
    "splice_amendment",
    # Store, engine, config, audit
    "BallotLogEntry",
    "ConfigLoader",
    "DivisionAuditLog",
    "DivisionStore",
    "EngineConfig",
    "LegislativeEngine",
    "OperationResult",
    "Parliament",
    "StateDocument",
    "VersionConflictError",
]
