"""Tests for StateDocument loading, lookup, and persistence."""
from __future__ import annotations

import json
from pathlib import Path

import pytest
import yaml

from commons_divisions.legislation.schema import LegislationKind, Stage
from commons_divisions.store.document import StateDocument

_RAW: dict[str, object] = {
    "parliament": {
        "parties": [
            {"name": "Labour", "seats": 418, "playable": True},
            {"name": "Liberal Democrat", "seats": 46},
        ],
        "speaker": "Betty",
    },
    "players": [{"name": "Tony", "party": "Labour", "role": "prime-minister"}],
    "orderPaperCommons": [
        {
            "id": "b1",
            "title": "Minimum Wage Bill",
            "stage": "Final Division",
            "division": {"divisionId": "b1:division", "openedAt": "2024-02-01T12:00:00+00:00"},
        }
    ],
    "motions": [{"id": "m1", "kind": "motion", "stage": "Debate", "legislationKind": "Motion"}],
    "gameState": {"startSimMonth": 10, "startSimYear": 1997},
    "news": [{"headline": "Landslide"}],
}


@pytest.fixture()
def document() -> StateDocument:
    return StateDocument.model_validate(_RAW)


class TestViews:
    def test_roster_and_ledger(self, document: StateDocument) -> None:
        assert document.roster().get_character("Tony") is not None
        assert document.seat_ledger().seats_of("Labour") == 418

    def test_iter_items_bills_then_motions(self, document: StateDocument) -> None:
        assert [item.id for item in document.iter_items()] == ["b1", "m1"]

    def test_find_item(self, document: StateDocument) -> None:
        motion = document.find_item("m1")
        assert motion is not None
        assert motion.kind == LegislationKind.MOTION
        assert motion.stage == Stage.DEBATE
        assert document.find_item("zz") is None

    def test_find_division(self, document: StateDocument) -> None:
        assert document.find_division("b1:division") is not None
        assert document.find_division("m1:division") is None


class TestSerialisation:
    def test_to_dict_uses_aliases_and_keeps_extras(self, document: StateDocument) -> None:
        data = document.to_dict()
        assert "orderPaperCommons" in data
        assert data["news"] == [{"headline": "Landslide"}]
        assert data["parliament"]["speaker"] == "Betty"  # type: ignore[index]

    def test_json_round_trip(self, document: StateDocument) -> None:
        assert StateDocument.from_json(document.to_json()).to_dict() == document.to_dict()

    def test_save_and_load_json(self, document: StateDocument, tmp_path: Path) -> None:
        path = tmp_path / "state.json"
        document.save(path)
        assert json.loads(path.read_text(encoding="utf-8"))["gameState"]["startSimYear"] == 1997
        assert StateDocument.from_file(path).to_dict() == document.to_dict()

    def test_save_and_load_yaml(self, document: StateDocument, tmp_path: Path) -> None:
        path = tmp_path / "state.yaml"
        document.save(path)
        assert yaml.safe_load(path.read_text(encoding="utf-8"))["players"][0]["name"] == "Tony"
        assert StateDocument.from_file(path).to_dict() == document.to_dict()

    def test_empty_yaml_is_empty_document(self, tmp_path: Path) -> None:
        path = tmp_path / "state.yml"
        path.write_text("", encoding="utf-8")
        assert StateDocument.from_file(path).bills == []

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            StateDocument.from_file(tmp_path / "missing.json")

    def test_unknown_stage_rejected(self) -> None:
        with pytest.raises(ValueError):
            StateDocument.model_validate({"orderPaperCommons": [{"id": "b1", "stage": "Committee"}]})
