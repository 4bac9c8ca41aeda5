#!/usr/bin/env python3
"""Example: A bill from introduction to Royal Assent

Walks a government bill through Second Reading, Report Stage and an
amendment division, then to its Final Division, a Speaker's casting
vote, and Royal Assent.  Every step passes the simulated month
explicitly so the run is reproducible.

Usage:
    python examples/02_division_walkthrough.py

Requirements:
    pip install commons-divisions
"""
from __future__ import annotations

from datetime import datetime, timezone

from commons_divisions import (
    Actor,
    Article,
    BillType,
    EngineConfig,
    LegislativeEngine,
    SimDate,
    StageProgression,
    StateDocument,
)

NOW = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)
SPEAKER = Actor("Betty", roles=frozenset({"speaker"}))
MODERATOR = Actor("Moderator", roles=frozenset({"moderator"}))


def _show(label: str, document: StateDocument) -> None:
    bill = document.find_item("b1")
    assert bill is not None
    deadline = bill.stage_deadline_sim.label if bill.stage_deadline_sim else "-"
    print(f"  {label:<28} {bill.stage.value:<16} {bill.status.value:<16} deadline {deadline}")


def main() -> None:
    config = EngineConfig()
    engine = LegislativeEngine(config)

    # Step 1: Introduce a government bill in October 1997
    bill = StageProgression(config).introduce_bill(
        "b1",
        "Scotland Bill",
        "Tony",
        sim_now=SimDate(10, 1997),
        bill_type=BillType.GOVERNMENT,
        articles=[Article(heading="Parliament", body="There shall be a Scottish Parliament.")],
        now=NOW,
    )
    document = StateDocument.model_validate({
        "parliament": {
            "parties": [
                {"name": "Labour", "seats": 418, "playable": True},
                {"name": "Conservative", "seats": 165, "playable": True},
                {"name": "Liberal Democrat", "seats": 46, "playable": True},
            ]
        },
        "players": [
            {"name": "Tony", "party": "Labour", "role": "prime-minister"},
            {"name": "John", "party": "Conservative", "role": "leader-opposition"},
            {"name": "Paddy", "party": "Liberal Democrat", "role": "party-leader-3rd-4th"},
        ],
    })
    document.bills.append(bill)
    print("Order paper:")
    _show("introduced", document)

    # Step 2: Second Reading runs out; the bill reaches Report Stage
    document = engine.advance_stages(document, NOW, SimDate(12, 1997)).document
    _show("December 1997", document)

    # Step 3: John tables an amendment, Paddy backs it, Tony refuses it
    steps = [
        engine.propose_amendment(document, Actor("John"), "b1", 1, "replace",
                                 "Parliament", "There shall be a Scottish Parliament with tax powers.", NOW),
    ]
    steps.append(engine.support_amendment(steps[-1].document, Actor("Paddy"), "b1", "A1", NOW))
    steps.append(engine.refuse_amendment(steps[-1].document, Actor("Tony"), "b1", "A1", NOW, SimDate(12, 1997)))
    for step in steps:
        print(f"  -> {step.reason}")
    document = steps[-1].document

    # Step 4: The amendment division runs, then the Speaker settles it
    document = engine.cast_vote(document, Actor("John"), "b1", "aye", NOW, SimDate(12, 1997), "A1").document
    document = engine.cast_vote(document, Actor("Tony"), "b1", "no", NOW, SimDate(12, 1997), "A1").document
    tally = engine.resolve_division(document, "b1", "A1").tally
    assert tally is not None
    print(f"  amendment division: ayes {tally.aye:g} noes {tally.no:g} (advisory)")
    resolved = engine.resolve_amendment(document, SPEAKER, "b1", "A1", accept=False, now=NOW)
    print(f"  -> {resolved.reason}")
    document = resolved.document

    # Step 5: Report Stage and Report Debate run out; the Final Division opens
    document = engine.advance_stages(document, NOW, SimDate(1, 1998)).document
    document = engine.advance_stages(document, NOW, SimDate(3, 1998)).document
    _show("March 1998", document)

    # Step 6: The vote ties and the Speaker casts the deciding vote
    document = engine.close_division(document, SPEAKER, "b1", NOW, SimDate(3, 1998)).document
    _show("division closed", document)
    document = engine.speaker_casting_vote(document, SPEAKER, "b1", "aye").document
    _show("casting vote", document)

    # Step 7: Royal Assent
    result = engine.royal_assent(document, MODERATOR, "b1", NOW)
    print(f"\n{result.reason}")


if __name__ == "__main__":
    main()
