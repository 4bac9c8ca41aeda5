"""The shared state document.

The host application keeps the whole simulation in a single document:
the parliament's parties, the player characters, the order paper of
bills and motions, and the game-state anchor for the simulated clock.
Keys this package does not model are preserved untouched.

Files ending in ``.yaml`` / ``.yml`` are read and written as YAML;
everything else is treated as JSON.

Example
-------
>>> document = StateDocument.from_file(Path("state.json"))
>>> document.roster().validate_roster()
[]
"""
from __future__ import annotations

import json
from collections.abc import Iterator
from pathlib import Path

import yaml
from pydantic import BaseModel, Field

from commons_divisions.division.ledger import Division
from commons_divisions.legislation.schema import Legislation
from commons_divisions.roster.schema import Character, Party, Roster
from commons_divisions.roster.seats import SeatLedger

_YAML_SUFFIXES = frozenset({".yaml", ".yml"})


class Parliament(BaseModel):
    model_config = {"populate_by_name": True, "extra": "allow"}

    parties: list[Party] = Field(default_factory=list)


class StateDocument(BaseModel):
    """Whole-simulation state exchanged with the persistence collaborator."""

    model_config = {"populate_by_name": True, "extra": "allow"}

    parliament: Parliament = Field(default_factory=Parliament)
    players: list[Character] = Field(default_factory=list)
    bills: list[Legislation] = Field(default_factory=list, alias="orderPaperCommons")
    motions: list[Legislation] = Field(default_factory=list)
    game_state: dict[str, object] = Field(default_factory=dict, alias="gameState")

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    def roster(self) -> Roster:
        return Roster(parties=self.parliament.parties, characters=self.players)

    def seat_ledger(self) -> SeatLedger:
        return SeatLedger(self.parliament.parties)

    def iter_items(self) -> Iterator[Legislation]:
        yield from self.bills
        yield from self.motions

    def find_item(self, item_id: str) -> Legislation | None:
        for item in self.iter_items():
            if item.id == item_id:
                return item
        return None

    def iter_divisions(self) -> Iterator[Division]:
        """Every main and nested division on the order paper."""
        for item in self.iter_items():
            if item.division is not None:
                yield item.division
            for amendment in item.amendments:
                if amendment.division is not None:
                    yield amendment.division

    def find_division(self, division_id: str) -> Division | None:
        for division in self.iter_divisions():
            if division.division_id == division_id:
                return division
        return None

    # ------------------------------------------------------------------
    # Serialisation
    # ------------------------------------------------------------------

    def to_dict(self) -> dict[str, object]:
        return self.model_dump(mode="json", by_alias=True)

    def to_json(self, indent: int = 2) -> str:
        return self.model_dump_json(by_alias=True, indent=indent)

    @classmethod
    def from_json(cls, text: str) -> "StateDocument":
        return cls.model_validate_json(text)

    @classmethod
    def from_file(cls, path: Path) -> "StateDocument":
        """Load a document from *path*.

        Raises
        ------
        FileNotFoundError:
            When *path* does not exist.
        ValueError:
            When the content does not validate.
        """
        if not path.exists():
            raise FileNotFoundError(f"State file not found: {path}")
        text = path.read_text(encoding="utf-8")
        if path.suffix.lower() in _YAML_SUFFIXES:
            return cls.model_validate(yaml.safe_load(text) or {})
        return cls.model_validate(json.loads(text))

    def save(self, path: Path) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        if path.suffix.lower() in _YAML_SUFFIXES:
            path.write_text(
                yaml.safe_dump(self.to_dict(), sort_keys=False, allow_unicode=True),
                encoding="utf-8",
            )
        else:
            path.write_text(self.to_json() + "\n", encoding="utf-8")
