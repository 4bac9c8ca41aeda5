"""Roster schema — Pydantic v2 models for parties and characters.

The roster is supplied by the host application: which parties sit in the
chamber, how many seats each holds, and which player characters belong to
them.  The engine only reads it, apart from recording absences.

Example
-------
>>> from commons_divisions.roster.schema import Character, Party, Roster
>>> roster = Roster(
...     parties=[Party(name="Labour", seats=418, playable=True)],
...     characters=[Character(name="Tony", party="Labour", party_leader=True)],
... )
>>> roster.validate_roster()
[]
"""
from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from datetime import datetime

from pydantic import BaseModel, Field, field_validator

INDEPENDENT = "Independent"
_MODERATOR_ROLES: frozenset[str] = frozenset({"moderator", "mod", "admin"})


class Party(BaseModel):
    """A party represented in the chamber.

    Attributes
    ----------
    name:
        Unique party name.
    seats:
        Number of seats held (non-negative).
    playable:
        ``True`` when human members cast votes individually; ``False``
        when the party is represented only by a moderator-set NPC vote.
    """

    model_config = {"populate_by_name": True, "extra": "allow"}

    name: str
    seats: int = Field(default=0, ge=0)
    playable: bool = False


class Character(BaseModel):
    """A player-controlled member of the chamber.

    Attributes
    ----------
    name:
        Unique character name; also the actor key on ballots.
    party:
        Party name.  Missing or blank values become ``"Independent"``.
    role:
        Parliamentary role, e.g. ``backbencher``, ``minister``,
        ``prime-minister``, ``leader-opposition``.
    office:
        Office held, e.g. ``leader-commons``.  Used for gatekeeping.
    party_leader:
        Explicit party-leader flag; takes precedence over role-based
        leader detection.
    active:
        Inactive characters receive no weight.
    absent:
        Absent characters hand their weight to a delegate.
    delegated_to:
        Chosen delegate (honoured for party leaders only).
    joined_at:
        When the character took their seat; drives the settling period.
    """

    model_config = {"populate_by_name": True, "extra": "allow"}

    name: str
    party: str = INDEPENDENT
    role: str = "backbencher"
    office: str | None = None
    party_leader: bool = Field(default=False, alias="partyLeader")
    active: bool = True
    absent: bool = False
    delegated_to: str | None = Field(default=None, alias="delegatedTo")
    joined_at: datetime | None = Field(default=None, alias="joinedAt")

    @field_validator("party", mode="before")
    @classmethod
    def default_party(cls, value: object) -> str:
        text = str(value or "").strip()
        return text or INDEPENDENT

    @field_validator("delegated_to", mode="before")
    @classmethod
    def blank_delegate_is_none(cls, value: object) -> str | None:
        if value is None:
            return None
        text = str(value).strip()
        return text or None


class Roster(BaseModel):
    """Parties and characters taken together.

    Character order is significant: it is the stable ordering used for
    leader detection and remainder assignment.
    """

    model_config = {"populate_by_name": True}

    parties: list[Party] = Field(default_factory=list)
    characters: list[Character] = Field(default_factory=list)

    def get_party(self, name: str) -> Party | None:
        """Return the party called *name*, or ``None``."""
        for party in self.parties:
            if party.name == name:
                return party
        return None

    def get_character(self, name: str) -> Character | None:
        """Return the character called *name*, or ``None``."""
        for character in self.characters:
            if character.name == name:
                return character
        return None

    def active_members(self, party: str) -> list[Character]:
        """Active characters of *party*, in roster order."""
        return [c for c in self.characters if c.active and c.party == party]

    # ------------------------------------------------------------------
    # Integrity checks
    # ------------------------------------------------------------------

    def validate_roster(self) -> list[str]:
        """Check roster integrity and return a list of problems.

        Checks performed
        ----------------
        - Party and character names are unique.
        - Characters belong to a known party (``Independent`` excepted).
        - Every delegation targets an active, present, same-party member.
        - Parties with active characters are flagged ``playable``.

        Returns
        -------
        list[str]
            Empty when the roster is consistent.
        """
        errors: list[str] = []

        for name, count in Counter(p.name for p in self.parties).items():
            if count > 1:
                errors.append(f"Party '{name}' is defined {count} times")
        for name, count in Counter(c.name for c in self.characters).items():
            if count > 1:
                errors.append(f"Character '{name}' is defined {count} times")

        known_parties = {p.name for p in self.parties}
        for character in self.characters:
            if character.party not in known_parties and character.party != INDEPENDENT:
                errors.append(
                    f"Character '{character.name}' belongs to unknown party '{character.party}'"
                )
            if character.delegated_to and not is_valid_delegate(
                self.characters, character, character.delegated_to
            ):
                errors.append(
                    f"Character '{character.name}' delegates to invalid target "
                    f"'{character.delegated_to}'"
                )

        for party in self.parties:
            if not party.playable and self.active_members(party.name):
                errors.append(
                    f"Party '{party.name}' has active characters but is not playable"
                )

        return errors


def is_valid_delegate(characters: list[Character], absentee: Character, target_name: str) -> bool:
    """Return ``True`` when *target_name* may receive *absentee*'s weight.

    The target must be a different, active, non-absent member of the same party.
    """
    if not target_name or target_name == absentee.name:
        return False
    for candidate in characters:
        if candidate.name == target_name:
            return candidate.active and not candidate.absent and candidate.party == absentee.party
    return False


@dataclass(frozen=True)
class Actor:
    """Explicit identity of whoever invokes an engine operation.

    Attributes
    ----------
    name:
        Character name (the ballot key).
    roles:
        Account-level roles such as ``speaker`` or ``moderator``.
    office:
        Office held, when not taken from the roster.
    """

    name: str
    roles: frozenset[str] = frozenset()
    office: str | None = None

    @property
    def is_speaker(self) -> bool:
        return "speaker" in self.roles

    @property
    def is_moderator(self) -> bool:
        return bool(self.roles & _MODERATOR_ROLES)
