#!/usr/bin/env python3
"""Example: Quickstart — commons-divisions

Minimal working example: build a chamber, show each member's voting
weight, cast ballots, and tally the division.

Usage:
    python examples/01_quickstart.py

Requirements:
    pip install commons-divisions
"""
from __future__ import annotations

import commons_divisions as cd


def main() -> None:
    print(f"commons-divisions version: {cd.__version__}")

    # Step 1: Describe the chamber and put a bill at its Final Division
    document = cd.StateDocument.model_validate({
        "parliament": {
            "parties": [
                {"name": "Labour", "seats": 418, "playable": True},
                {"name": "Conservative", "seats": 165, "playable": True},
                {"name": "Liberal Democrat", "seats": 46},
            ]
        },
        "players": [
            {"name": "Tony", "party": "Labour", "role": "prime-minister"},
            {"name": "Gordon", "party": "Labour", "role": "minister"},
            {"name": "John", "party": "Conservative", "role": "leader-opposition"},
        ],
        "orderPaperCommons": [
            {
                "id": "b1",
                "title": "National Minimum Wage Bill",
                "stage": "Final Division",
                "stageDeadlineSim": {"month": 12, "year": 1997},
                "division": {"divisionId": "b1:division", "closesAtSim": {"month": 12, "year": 1997}},
            }
        ],
        "gameState": {"startSimMonth": 10, "startSimYear": 1997},
    })
    chamber = cd.Chamber(document)

    # Step 2: Seats become voting weight
    print("\nEffective weights:")
    for name, weight in chamber.weights().items():
        print(f"  {name:<8} {weight:>4}")

    # Step 3: Members vote; the moderator sets the Liberal Democrat bloc
    for member, choice in [("Tony", "aye"), ("Gordon", "aye"), ("John", "no")]:
        result = chamber.vote(member, "b1", choice)
        print(f"  {member} votes {choice}: {result.reason}")

    moderator = cd.Actor("Moderator", roles=frozenset({"moderator"}))
    result = chamber.engine.set_npc_votes(chamber.document, moderator, "b1", {"Liberal Democrat": "no"})
    print(f"\nNPC positions: {result.reason}")
    if result.outcome is not None:
        print(f"Division closed on full turnout: {result.outcome.value}")

    # Step 4: Tally
    tally = cd.LegislativeEngine().resolve_division(result.document, "b1").tally
    assert tally is not None
    print(f"\nAyes {tally.aye:g}  Noes {tally.no:g}  Abstentions {tally.abstain:g}")


if __name__ == "__main__":
    main()
