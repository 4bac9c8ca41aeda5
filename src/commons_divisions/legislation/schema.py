"""Legislation schema — bills, motions, amendments, and their enums.

Stages, statuses, and amendment states are closed enums so that an
unknown value is rejected when the document is loaded rather than
surfacing later as an impossible transition.
"""
from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field, field_validator

from commons_divisions.clock.sim_date import SimDate
from commons_divisions.division.ledger import Division


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class Stage(str, Enum):
    """Procedural stage of a bill or motion."""

    FIRST_READING = "First Reading"
    SECOND_READING = "Second Reading"
    REPORT_STAGE = "Report Stage"
    REPORT_DEBATE = "Report Debate"
    FINAL_DIVISION = "Final Division"
    FIRST_READING_REFUSED = "First Reading Refused"
    ROYAL_ASSENT = "Royal Assent"
    DEBATE = "Debate"
    DIVISION = "Division"


BILL_STAGES: tuple[Stage, ...] = (
    Stage.FIRST_READING,
    Stage.SECOND_READING,
    Stage.REPORT_STAGE,
    Stage.REPORT_DEBATE,
    Stage.FINAL_DIVISION,
)
MOTION_STAGES: tuple[Stage, ...] = (Stage.DEBATE, Stage.DIVISION)
VOTING_STAGES: frozenset[Stage] = frozenset({Stage.FINAL_DIVISION, Stage.DIVISION})


class LegislationKind(str, Enum):
    BILL = "bill"
    MOTION = "motion"


class BillType(str, Enum):
    """Who introduced a bill; government and opposition-day bills skip First Reading."""

    GOVERNMENT = "government"
    OPPOSITION = "opposition"
    PRIVATE_MEMBER = "pmb"


class LegislationStatus(str, Enum):
    IN_PROGRESS = "in-progress"
    AWAITING_ASSENT = "awaiting-assent"
    PASSED = "passed"
    FAILED = "failed"


TERMINAL_STATUSES: frozenset[LegislationStatus] = frozenset(
    {LegislationStatus.AWAITING_ASSENT, LegislationStatus.PASSED, LegislationStatus.FAILED}
)


class AmendmentStatus(str, Enum):
    PROPOSED = "proposed"
    ACCEPTED = "accepted"
    REFUSED = "refused"
    IN_DIVISION = "in-division"


class AmendmentType(str, Enum):
    REPLACE = "replace"
    INSERT = "insert"
    DELETE = "delete"


# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------


class Article(BaseModel):
    """One numbered clause of a bill."""

    heading: str = ""
    body: str = ""


class Amendment(BaseModel):
    """A proposed change to a single article of a bill.

    Attributes
    ----------
    id:
        Per-bill identifier (``A1``, ``A2``, ...).
    article_number:
        1-based article the amendment targets.
    type:
        ``replace``, ``insert``, or ``delete``.
    supporters:
        Parties whose leaders back the amendment (no duplicates).
    division:
        Nested division, present only while ``in-division`` or after
        the Speaker resolved it.
    """

    model_config = {"populate_by_name": True, "extra": "allow"}

    id: str
    article_number: int = Field(alias="articleNumber", ge=1)
    type: AmendmentType
    title: str = ""
    text: str = ""
    proposed_by: str = Field(default="", alias="proposedBy")
    status: AmendmentStatus = AmendmentStatus.PROPOSED
    supporters: list[str] = Field(default_factory=list)
    submitted_at: datetime | None = Field(default=None, alias="submittedAt")
    division: Division | None = None

    @field_validator("supporters")
    @classmethod
    def dedupe_supporters(cls, values: list[str]) -> list[str]:
        return list(dict.fromkeys(values))


class Legislation(BaseModel):
    """A bill or motion on the order paper.

    Attributes
    ----------
    stage / stage_started_at / stage_deadline_sim:
        Current procedural stage, when it began, and the simulated month
        at which it auto-advances (``None`` for stages without one).
    status:
        ``in-progress`` until the stage machine or a moderator settles it.
    division:
        Present once the voting stage is reached.
    resolved_at_sim:
        Simulated month when the division closed; drives the optional
        tie grace period.
    """

    model_config = {"populate_by_name": True, "extra": "allow"}

    id: str
    kind: LegislationKind = LegislationKind.BILL
    title: str = ""
    author: str = ""
    editors: list[str] = Field(default_factory=list)
    bill_type: BillType = Field(default=BillType.PRIVATE_MEMBER, alias="billType")
    stage: Stage = Stage.FIRST_READING
    stage_started_at: datetime | None = Field(default=None, alias="stageStartedAt")
    stage_deadline_sim: SimDate | None = Field(default=None, alias="stageDeadlineSim")
    status: LegislationStatus = LegislationStatus.IN_PROGRESS
    division: Division | None = None
    amendments: list[Amendment] = Field(default_factory=list)
    articles: list[Article] = Field(default_factory=list)
    legislation_kind: str = Field(default="Bill", alias="legislationKind")
    resolved_at_sim: SimDate | None = Field(default=None, alias="resolvedAtSim")

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def stage_sequence(self) -> tuple[Stage, ...]:
        return MOTION_STAGES if self.kind == LegislationKind.MOTION else BILL_STAGES

    def get_amendment(self, amendment_id: str) -> Amendment | None:
        for amendment in self.amendments:
            if amendment.id == amendment_id:
                return amendment
        return None

    def has_amendment_in_division(self) -> bool:
        return any(a.status == AmendmentStatus.IN_DIVISION for a in self.amendments)

    def can_edit(self, name: str) -> bool:
        """``True`` for the author and any listed editor."""
        return bool(name) and (name == self.author or name in self.editors)

    def body_text(self) -> str:
        """Render the articles as numbered plain text."""
        blocks = [
            f"ARTICLE {index} — {article.heading}\n{article.body}".rstrip()
            for index, article in enumerate(self.articles, start=1)
        ]
        return "\n\n".join(blocks)
