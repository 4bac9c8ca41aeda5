"""Legislation package — bills, motions, stages, and amendments.

Public API
----------
- ``Legislation`` / ``Amendment`` / ``Article`` — order-paper models
- ``Stage`` / ``LegislationStatus`` / ``AmendmentStatus`` / ``AmendmentType`` — enums
- ``StageProgression`` — the stage state machine
- ``AmendmentManager`` — amendment acceptance, refusal and nested divisions
"""
from __future__ import annotations

from commons_divisions.legislation.amendments import (
    AmendmentManager,
    amendment_division_id,
    splice_amendment,
)
from commons_divisions.legislation.progression import StageProgression, division_id_for
from commons_divisions.legislation.schema import (
    BILL_STAGES,
    MOTION_STAGES,
    VOTING_STAGES,
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

__all__ = [
    "BILL_STAGES",
    "MOTION_STAGES",
    "VOTING_STAGES",
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
    "amendment_division_id",
    "division_id_for",
    "splice_amendment",
]
