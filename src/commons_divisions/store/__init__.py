"""Store package — the shared state document and the division store.

Public API
----------
- ``StateDocument`` / ``Parliament`` — whole-simulation state with JSON/YAML I/O
- ``DivisionStore`` — per-division locking, compare-and-swap and ballot log
- ``VersionConflictError`` — stale ``expected_version``
"""
from __future__ import annotations

from commons_divisions.store.division_store import (
    BallotLogEntry,
    DivisionStore,
    VersionConflictError,
)
from commons_divisions.store.document import Parliament, StateDocument

__all__ = [
    "BallotLogEntry",
    "DivisionStore",
    "Parliament",
    "StateDocument",
    "VersionConflictError",
]
