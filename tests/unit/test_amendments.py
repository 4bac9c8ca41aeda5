"""Tests for AmendmentManager and splice_amendment."""
from __future__ import annotations

from datetime import datetime, timezone

import pytest

from commons_divisions.clock.sim_date import SimDate
from commons_divisions.config import EngineConfig
from commons_divisions.division.ledger import CloseReason, DivisionStatus
from commons_divisions.legislation.amendments import AmendmentManager, splice_amendment
from commons_divisions.legislation.schema import (
    Amendment,
    AmendmentStatus,
    AmendmentType,
    Article,
    Legislation,
    LegislationKind,
    Stage,
)
from commons_divisions.roster.schema import Character, Party
from commons_divisions.roster.seats import SeatLedger
from commons_divisions.roster.weights import VoteWeightAllocator, WeightAllocation

NOW = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)
OCTOBER = SimDate(10, 1997)

TONY = Character(name="Tony", party="Labour", role="prime-minister")
GORDON = Character(name="Gordon", party="Labour", role="minister")
JOHN = Character(name="John", party="Conservative", role="leader-opposition")
DAFYDD = Character(name="Dafydd", party="Plaid Cymru", role="party-leader-3rd-4th")


def _make_ledger() -> SeatLedger:
    return SeatLedger(
        [
            Party(name="Labour", seats=418, playable=True),
            Party(name="Conservative", seats=165, playable=True),
            Party(name="Plaid Cymru", seats=4, playable=True),
        ]
    )


def _make_allocation() -> WeightAllocation:
    return VoteWeightAllocator().allocate([TONY, GORDON, JOHN, DAFYDD], _make_ledger(), NOW)


def _make_bill(stage: Stage = Stage.REPORT_STAGE) -> Legislation:
    return Legislation(
        id="b1",
        title="Minimum Wage Bill",
        author="Tony",
        editors=["Gordon"],
        stage=stage,
        articles=[
            Article(heading="Entitlement", body="Workers shall be paid at least the minimum wage."),
            Article(heading="Rate", body="The rate shall be set by the Secretary of State."),
        ],
    )


def _amendment(number: int, kind: AmendmentType, text: str = "New text") -> Amendment:
    return Amendment(id="A1", article_number=number, type=kind, title="Heading", text=text)


@pytest.fixture()
def manager() -> AmendmentManager:
    return AmendmentManager(EngineConfig())


# ---------------------------------------------------------------------------
# Splicing
# ---------------------------------------------------------------------------


class TestSplice:
    def test_replace_body(self) -> None:
        articles = _make_bill().articles
        assert splice_amendment(articles, _amendment(2, AmendmentType.REPLACE, "Set by Parliament.")) is True
        assert articles[1].body == "Set by Parliament."
        assert len(articles) == 2

    def test_insert_at_position(self) -> None:
        articles = _make_bill().articles
        splice_amendment(articles, _amendment(1, AmendmentType.INSERT))
        assert [a.heading for a in articles] == ["Heading", "Entitlement", "Rate"]

    def test_insert_one_past_end(self) -> None:
        articles = _make_bill().articles
        assert splice_amendment(articles, _amendment(3, AmendmentType.INSERT)) is True
        assert articles[-1].heading == "Heading"

    def test_delete(self) -> None:
        articles = _make_bill().articles
        splice_amendment(articles, _amendment(1, AmendmentType.DELETE))
        assert [a.heading for a in articles] == ["Rate"]

    def test_out_of_range_rejected(self) -> None:
        articles = _make_bill().articles
        assert splice_amendment(articles, _amendment(3, AmendmentType.REPLACE)) is False
        assert splice_amendment(articles, _amendment(4, AmendmentType.INSERT)) is False
        assert splice_amendment(articles, _amendment(5, AmendmentType.DELETE)) is False
        assert len(articles) == 2


# ---------------------------------------------------------------------------
# Proposal and support
# ---------------------------------------------------------------------------


class TestPropose:
    def test_ids_are_sequential(self, manager: AmendmentManager) -> None:
        bill = _make_bill()
        first = manager.propose(bill, GORDON, 1, "replace", _make_allocation(), now=NOW)
        second = manager.propose(bill, GORDON, 2, "delete", _make_allocation(), now=NOW)
        assert first is not None and second is not None
        assert (first.id, second.id) == ("A1", "A2")

    def test_leader_proposal_seeds_party(self, manager: AmendmentManager) -> None:
        amendment = manager.propose(_make_bill(), JOHN, 1, "replace", _make_allocation(), now=NOW)
        assert amendment is not None
        assert amendment.supporters == ["Conservative"]

    def test_backbench_proposal_has_no_supporters(self, manager: AmendmentManager) -> None:
        amendment = manager.propose(_make_bill(), GORDON, 1, "replace", _make_allocation(), now=NOW)
        assert amendment is not None
        assert amendment.supporters == []

    @pytest.mark.parametrize("stage", [Stage.FINAL_DIVISION, Stage.ROYAL_ASSENT])
    def test_rejected_at_late_stages(self, manager: AmendmentManager, stage: Stage) -> None:
        bill = _make_bill(stage)
        assert manager.propose(bill, JOHN, 1, "replace", _make_allocation(), now=NOW) is None
        assert bill.amendments == []

    def test_rejected_on_motion(self, manager: AmendmentManager) -> None:
        motion = Legislation(id="m1", kind=LegislationKind.MOTION, stage=Stage.DEBATE)
        assert manager.propose(motion, JOHN, 1, "replace", _make_allocation(), now=NOW) is None

    def test_rejected_article_zero(self, manager: AmendmentManager) -> None:
        assert manager.propose(_make_bill(), JOHN, 0, "replace", _make_allocation(), now=NOW) is None


class TestSupport:
    def test_leader_support_adds_party(self, manager: AmendmentManager) -> None:
        bill = _make_bill()
        manager.propose(bill, JOHN, 1, "replace", _make_allocation(), now=NOW)
        assert manager.support(bill, "A1", DAFYDD, _make_allocation()) is True
        assert bill.amendments[0].supporters == ["Conservative", "Plaid Cymru"]

    def test_repeat_support_is_not_duplicated(self, manager: AmendmentManager) -> None:
        bill = _make_bill()
        manager.propose(bill, JOHN, 1, "replace", _make_allocation(), now=NOW)
        manager.support(bill, "A1", JOHN, _make_allocation())
        assert bill.amendments[0].supporters == ["Conservative"]

    def test_non_leader_support_rejected(self, manager: AmendmentManager) -> None:
        bill = _make_bill()
        manager.propose(bill, JOHN, 1, "replace", _make_allocation(), now=NOW)
        assert manager.support(bill, "A1", GORDON, _make_allocation()) is False

    def test_unknown_amendment(self, manager: AmendmentManager) -> None:
        assert manager.support(_make_bill(), "A9", JOHN, _make_allocation()) is False


# ---------------------------------------------------------------------------
# Acceptance, refusal, escalation
# ---------------------------------------------------------------------------


class TestAcceptRefuse:
    def test_author_accepts_and_splices(self, manager: AmendmentManager) -> None:
        bill = _make_bill()
        manager.propose(bill, JOHN, 2, "delete", _make_allocation(), now=NOW)
        assert manager.accept(bill, "A1", "Tony") is True
        assert bill.amendments[0].status == AmendmentStatus.ACCEPTED
        assert len(bill.articles) == 1

    def test_editor_may_accept(self, manager: AmendmentManager) -> None:
        bill = _make_bill()
        manager.propose(bill, JOHN, 2, "delete", _make_allocation(), now=NOW)
        assert manager.accept(bill, "A1", "Gordon") is True

    def test_editor_may_not_refuse(self, manager: AmendmentManager) -> None:
        bill = _make_bill()
        manager.propose(bill, JOHN, 2, "delete", _make_allocation(), now=NOW)
        assert manager.refuse(bill, "A1", "Gordon", OCTOBER, NOW) is None
        assert bill.amendments[0].status == AmendmentStatus.PROPOSED
        assert manager.refuse(bill, "A1", "Tony", OCTOBER, NOW) == AmendmentStatus.REFUSED

    def test_non_author_rejected(self, manager: AmendmentManager) -> None:
        bill = _make_bill()
        manager.propose(bill, JOHN, 2, "delete", _make_allocation(), now=NOW)
        assert manager.accept(bill, "A1", "John") is False
        assert manager.refuse(bill, "A1", "John", OCTOBER, NOW) is None
        assert bill.amendments[0].status == AmendmentStatus.PROPOSED

    def test_accept_out_of_range_leaves_proposed(self, manager: AmendmentManager) -> None:
        bill = _make_bill()
        manager.propose(bill, JOHN, 7, "replace", _make_allocation(), now=NOW)
        assert manager.accept(bill, "A1", "Tony") is False
        assert bill.amendments[0].status == AmendmentStatus.PROPOSED

    def test_refusal_stands_with_one_supporter(self, manager: AmendmentManager) -> None:
        bill = _make_bill()
        manager.propose(bill, JOHN, 1, "replace", _make_allocation(), now=NOW)
        assert manager.refuse(bill, "A1", "Tony", OCTOBER, NOW) == AmendmentStatus.REFUSED
        assert bill.amendments[0].division is None

    def test_refusal_escalates_with_two_leaders(self, manager: AmendmentManager) -> None:
        bill = _make_bill()
        manager.propose(bill, JOHN, 1, "replace", _make_allocation(), now=NOW)
        manager.support(bill, "A1", DAFYDD, _make_allocation())
        assert manager.refuse(bill, "A1", "Tony", OCTOBER, NOW) == AmendmentStatus.IN_DIVISION
        division = bill.amendments[0].division
        assert division is not None
        assert division.division_id == "b1:A1:division"
        assert division.closes_at_sim == SimDate(11, 1997)
        assert bill.has_amendment_in_division()

    def test_threshold_is_configurable(self) -> None:
        manager = AmendmentManager(EngineConfig.model_validate({"amendments": {"min_leader_supporters": 1}}))
        bill = _make_bill()
        manager.propose(bill, JOHN, 1, "replace", _make_allocation(), now=NOW)
        assert manager.refuse(bill, "A1", "Tony", OCTOBER, NOW) == AmendmentStatus.IN_DIVISION


class TestNestedDivision:
    def _escalated(self, manager: AmendmentManager) -> Legislation:
        bill = _make_bill()
        manager.propose(bill, JOHN, 1, "replace", _make_allocation(), text="Amended.", now=NOW)
        manager.support(bill, "A1", DAFYDD, _make_allocation())
        manager.refuse(bill, "A1", "Tony", OCTOBER, NOW)
        return bill

    def test_deadline_closes_but_keeps_in_division(self, manager: AmendmentManager) -> None:
        bill = self._escalated(manager)
        closed = manager.expire_divisions(bill, _make_allocation(), _make_ledger(), SimDate(11, 1997), NOW)
        assert closed == ["A1"]
        amendment = bill.amendments[0]
        assert amendment.division is not None
        assert amendment.division.close_reason == CloseReason.DEADLINE
        assert amendment.status == AmendmentStatus.IN_DIVISION

    def test_not_due_stays_open(self, manager: AmendmentManager) -> None:
        bill = self._escalated(manager)
        assert manager.expire_divisions(bill, _make_allocation(), _make_ledger(), OCTOBER, NOW) == []

    def test_speaker_accepts(self, manager: AmendmentManager) -> None:
        bill = self._escalated(manager)
        assert manager.speaker_resolve(bill, "A1", accept=True, now=NOW) is True
        amendment = bill.amendments[0]
        assert amendment.status == AmendmentStatus.ACCEPTED
        assert amendment.division is not None
        assert amendment.division.status == DivisionStatus.RESOLVED_BY_SPEAKER
        assert bill.articles[0].body == "Amended."
        assert not bill.has_amendment_in_division()

    def test_speaker_refuses(self, manager: AmendmentManager) -> None:
        bill = self._escalated(manager)
        assert manager.speaker_resolve(bill, "A1", accept=False, now=NOW) is True
        assert bill.amendments[0].status == AmendmentStatus.REFUSED
        assert bill.articles[0].heading == "Entitlement"

    def test_speaker_resolve_requires_in_division(self, manager: AmendmentManager) -> None:
        bill = _make_bill()
        manager.propose(bill, JOHN, 1, "replace", _make_allocation(), now=NOW)
        assert manager.speaker_resolve(bill, "A1", accept=True, now=NOW) is False

    def test_advisory_tally(self, manager: AmendmentManager) -> None:
        bill = self._escalated(manager)
        tally = manager.tally(bill, "A1", _make_ledger())
        assert tally is not None
        assert tally.aye == 0
        assert manager.tally(bill, "A9", _make_ledger()) is None
