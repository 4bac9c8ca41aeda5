"""Test that the 3-line quickstart API works for commons-divisions."""
from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path

_NOW = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)

_STATE: dict[str, object] = {
    "parliament": {"parties": [{"name": "Labour", "seats": 418, "playable": True}]},
    "players": [
        {"name": "Tony", "party": "Labour", "role": "prime-minister"},
        {"name": "Gordon", "party": "Labour", "role": "minister"},
    ],
    "orderPaperCommons": [
        {
            "id": "b1",
            "title": "Minimum Wage Bill",
            "stage": "Final Division",
            "stageDeadlineSim": {"month": 12, "year": 1997},
            "division": {
                "divisionId": "b1:division",
                "openedAt": "2024-02-01T12:00:00+00:00",
                "closesAtSim": {"month": 12, "year": 1997},
            },
        }
    ],
    "gameState": {"startSimMonth": 10, "startSimYear": 1997},
}


def _write_state(tmp_path: Path) -> Path:
    path = tmp_path / "state.json"
    path.write_text(json.dumps(_STATE), encoding="utf-8")
    return path


def test_quickstart_import() -> None:
    from commons_divisions import Chamber

    chamber = Chamber()
    assert chamber is not None


def test_quickstart_weights(tmp_path: Path) -> None:
    from commons_divisions import Chamber

    chamber = Chamber.from_file(_write_state(tmp_path))
    assert chamber.weights(_NOW) == {"Tony": 209, "Gordon": 209}


def test_quickstart_vote_updates_document(tmp_path: Path) -> None:
    from commons_divisions import Chamber

    chamber = Chamber.from_file(_write_state(tmp_path))
    result = chamber.vote("Tony", "b1", "aye", now=_NOW)
    assert result.accepted is True
    assert chamber.tally("b1").aye == 209


def test_quickstart_rejected_vote_keeps_document(tmp_path: Path) -> None:
    from commons_divisions import Chamber

    chamber = Chamber.from_file(_write_state(tmp_path))
    before = chamber.document
    result = chamber.vote("Paddy", "b1", "aye", now=_NOW)
    assert result.accepted is False
    assert chamber.document is before


def test_quickstart_full_turnout_resolves(tmp_path: Path) -> None:
    from commons_divisions import Chamber

    chamber = Chamber.from_file(_write_state(tmp_path))
    chamber.vote("Tony", "b1", "aye", now=_NOW)
    result = chamber.vote("Gordon", "b1", "no", now=_NOW)
    assert result.outcome is not None
    assert result.outcome.value == "tied"


def test_quickstart_engine_accessible() -> None:
    from commons_divisions import Chamber
    from commons_divisions.engine import LegislativeEngine

    assert isinstance(Chamber().engine, LegislativeEngine)


def test_quickstart_repr(tmp_path: Path) -> None:
    from commons_divisions import Chamber

    chamber = Chamber.from_file(_write_state(tmp_path))
    assert repr(chamber) == "Chamber(items=1)"
