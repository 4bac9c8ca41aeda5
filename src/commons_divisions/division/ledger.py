"""Division ledger — the mutable record of one weighted vote.

A :class:`Division` belongs to exactly one bill, motion, or amendment.
While ``open`` it accepts ballots (last ballot per actor wins) and
moderator bulk updates of NPC positions and rebel counts.  It closes
exactly once, after which every mutator is a rejected no-op.

Example
-------
>>> division = open_division("bill-1:division", opened_at=now)
>>> cast_vote(division, "Tony", party="Labour", choice="aye", weight=209, now=now)
True
>>> close_division(division, CloseReason.EXPLICIT, now=now)
True
>>> cast_vote(division, "John", party="Conservative", choice="no", weight=82, now=now)
False
"""
from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field, field_validator

from commons_divisions.clock.sim_date import SimDate

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class VoteChoice(str, Enum):
    """A ballot position."""

    AYE = "aye"
    NO = "no"
    ABSTAIN = "abstain"

    @classmethod
    def parse(cls, value: object) -> "VoteChoice":
        """Parse a case-insensitive choice string.

        Raises
        ------
        ValueError:
            When *value* is not one of ``aye``, ``no``, ``abstain``.
        """
        if isinstance(value, VoteChoice):
            return value
        text = str(value or "").strip().lower()
        try:
            return cls(text)
        except ValueError:
            raise ValueError(f"Unknown vote choice {value!r}; expected aye, no or abstain") from None


class DivisionStatus(str, Enum):
    """Lifecycle status of a division."""

    OPEN = "open"
    CLOSED = "closed"
    RESOLVED_BY_SPEAKER = "resolved-by-speaker"


class DivisionOutcome(str, Enum):
    """Result of resolving a division."""

    PASSED = "passed"
    FAILED = "failed"
    TIED = "tied"


class CloseReason(str, Enum):
    """Why a division stopped accepting ballots."""

    EXPLICIT = "explicit"
    DEADLINE = "deadline"
    FULL_PARTICIPATION = "full-participation"


# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------


class Ballot(BaseModel):
    """One actor's recorded vote."""

    model_config = {"populate_by_name": True}

    actor: str
    party: str
    choice: VoteChoice
    weight: float = Field(default=0.0, ge=0)
    at: datetime

    @field_validator("choice", mode="before")
    @classmethod
    def normalise_choice(cls, value: object) -> VoteChoice:
        return VoteChoice.parse(value)


class Division(BaseModel):
    """A single weighted vote on a bill, motion, or amendment.

    Attributes
    ----------
    division_id:
        Stable key, e.g. ``"<bill-id>:division"``.
    status:
        ``open`` until closed; ``resolved-by-speaker`` after a Speaker
        tie-break or procedural override.
    votes:
        Actor name -> :class:`Ballot`.
    rebels_by_party:
        Party -> seats voting against the party's NPC position.
    npc_votes:
        Non-playable party -> bloc position.
    opened_at:
        Real instant the division opened.
    closes_at:
        Optional real-time closing instant.
    closes_at_sim:
        Optional simulated closing month.
    closed_at / close_reason:
        Set once, when the division closes.
    outcome:
        Resolved outcome, recorded by the stage machine.
    version:
        Incremented on every accepted mutation; used for compare-and-swap.
    """

    model_config = {"populate_by_name": True, "extra": "allow"}

    division_id: str = Field(default_factory=lambda: str(uuid.uuid4()), alias="divisionId")
    status: DivisionStatus = DivisionStatus.OPEN
    votes: dict[str, Ballot] = Field(default_factory=dict)
    rebels_by_party: dict[str, int] = Field(default_factory=dict, alias="rebelsByParty")
    npc_votes: dict[str, VoteChoice] = Field(default_factory=dict, alias="npcVotes")
    opened_at: datetime = Field(
        default_factory=lambda: datetime.now(tz=timezone.utc), alias="openedAt"
    )
    closes_at: datetime | None = Field(default=None, alias="closesAt")
    closes_at_sim: SimDate | None = Field(default=None, alias="closesAtSim")
    closed_at: datetime | None = Field(default=None, alias="closedAt")
    close_reason: CloseReason | None = Field(default=None, alias="closeReason")
    outcome: DivisionOutcome | None = None
    version: int = 0

    @field_validator("npc_votes", mode="before")
    @classmethod
    def normalise_npc_votes(cls, value: object) -> dict[str, VoteChoice]:
        if not value:
            return {}
        return {str(party): VoteChoice.parse(choice) for party, choice in dict(value).items()}  # type: ignore[arg-type]

    @property
    def is_open(self) -> bool:
        return self.status == DivisionStatus.OPEN


# ---------------------------------------------------------------------------
# Operations
# ---------------------------------------------------------------------------


def open_division(
    division_id: str,
    opened_at: datetime | None = None,
    closes_at: datetime | None = None,
    closes_at_sim: SimDate | None = None,
) -> Division:
    """Create a new, empty, open division."""
    return Division(
        division_id=division_id,
        opened_at=opened_at or datetime.now(tz=timezone.utc),
        closes_at=closes_at,
        closes_at_sim=closes_at_sim,
    )


def cast_vote(
    division: Division,
    actor: str,
    party: str,
    choice: VoteChoice | str,
    weight: float,
    now: datetime | None = None,
) -> bool:
    """Record *actor*'s ballot, replacing any earlier ballot from the same actor.

    Returns
    -------
    bool
        ``False`` (and no change) when the division is not open.

    Raises
    ------
    ValueError:
        When *choice* is not a valid vote choice.
    """
    parsed = VoteChoice.parse(choice)
    if not division.is_open:
        logger.debug("rejected ballot actor=%s division=%s status=%s", actor, division.division_id, division.status.value)
        return False
    division.votes[str(actor)] = Ballot(
        actor=str(actor),
        party=party or "Independent",
        choice=parsed,
        weight=max(0.0, float(weight)),
        at=now or datetime.now(tz=timezone.utc),
    )
    division.version += 1
    return True


def set_npc_votes(division: Division, npc_votes: dict[str, VoteChoice | str]) -> bool:
    """Replace the whole NPC-position map.  Rejected once the division is closed."""
    parsed = {str(party): VoteChoice.parse(choice) for party, choice in npc_votes.items()}
    if not division.is_open:
        return False
    division.npc_votes = parsed
    division.version += 1
    return True


def set_rebellions(division: Division, rebels_by_party: dict[str, int]) -> bool:
    """Replace the whole rebel-count map.  Rejected once the division is closed."""
    if not division.is_open:
        return False
    division.rebels_by_party = {
        str(party): max(0, int(count)) for party, count in rebels_by_party.items()
    }
    division.version += 1
    return True


def reweigh_ballots(division: Division, weights: dict[str, int]) -> bool:
    """Bring every recorded ballot's weight in line with *weights*.

    Actors missing from *weights* weigh 0.  Closed divisions keep the
    weights they closed with.  Returns ``True`` when any ballot changed.
    """
    if not division.is_open:
        return False
    changed = False
    for actor, ballot in division.votes.items():
        weight = float(max(0, weights.get(actor, 0)))
        if ballot.weight != weight:
            ballot.weight = weight
            changed = True
    if changed:
        division.version += 1
        logger.debug("reweighed ballots division=%s", division.division_id)
    return changed


def close_division(
    division: Division,
    reason: CloseReason = CloseReason.EXPLICIT,
    now: datetime | None = None,
) -> bool:
    """Close an open division.  Returns ``False`` when it was already closed."""
    if not division.is_open:
        return False
    division.status = DivisionStatus.CLOSED
    division.closed_at = now or datetime.now(tz=timezone.utc)
    division.close_reason = reason
    division.version += 1
    logger.info(
        "division closed division=%s reason=%s ballots=%d",
        division.division_id,
        reason.value,
        len(division.votes),
    )
    return True
