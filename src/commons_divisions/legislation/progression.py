"""Stage progression — the procedural state machine for bills and motions.

Bills move through First Reading, Second Reading, Report Stage, Report
Debate and Final Division.  Motions move through Debate and Division.
Every timed stage carries a simulated-month deadline; once the simulated
calendar reaches it the item moves on and the new deadline is measured
from the current simulated month, so an item that was left unattended
for several months does not skip the stages in between.

At the voting stage the item's :class:`Division` is opened, auto-closed
by deadline or full participation, and resolved.  A tie is never broken
here: it waits for the Speaker (or for the optional tie grace period).

Example
-------
>>> progression = StageProgression(EngineConfig())
>>> bill = progression.introduce_bill("b1", "Wages Bill", "Tony",
...     bill_type=BillType.GOVERNMENT, sim_now=SimDate(10, 1997), now=now)
>>> bill.stage, bill.stage_deadline_sim.label
(<Stage.SECOND_READING: 'Second Reading'>, 'December 1997')
"""
from __future__ import annotations

import logging
import re
from datetime import datetime, timezone

from commons_divisions.clock.scheduler import DeadlineScheduler
from commons_divisions.clock.sim_date import SimDate
from commons_divisions.config import EngineConfig
from commons_divisions.division.auto_close import AutoCloseChecker
from commons_divisions.division.ledger import (
    CloseReason,
    DivisionOutcome,
    DivisionStatus,
    VoteChoice,
    close_division,
    open_division,
)
from commons_divisions.division.resolver import DivisionResolver
from commons_divisions.legislation.schema import (
    VOTING_STAGES,
    Article,
    BillType,
    Legislation,
    LegislationKind,
    LegislationStatus,
    Stage,
)
from commons_divisions.roster.seats import SeatLedger
from commons_divisions.roster.weights import WeightAllocation

logger = logging.getLogger(__name__)

_MAX_STEPS = 32
_BILL_WORD = re.compile(r"\bbill\b", re.IGNORECASE)


def division_id_for(item: Legislation) -> str:
    """Stable key of an item's main division."""
    return f"{item.id}:division"


class StageProgression:
    """Moves bills and motions through their stages.

    Parameters
    ----------
    config:
        Engine configuration; supplies stage durations, gatekeeper
        offices, the optional real-time division window and the optional
        tie grace period.
    """

    def __init__(self, config: EngineConfig | None = None) -> None:
        self._config = config or EngineConfig()
        self._scheduler = DeadlineScheduler(self._config.division.real_time_hours)
        self._auto_close = AutoCloseChecker(
            scheduler=self._scheduler,
            auto_abstain_parties=self._config.auto_abstain_parties,
        )
        self._resolver = DivisionResolver()

    # ------------------------------------------------------------------
    # Introduction
    # ------------------------------------------------------------------

    def introduce_bill(
        self,
        item_id: str,
        title: str,
        author: str,
        sim_now: SimDate,
        bill_type: BillType = BillType.PRIVATE_MEMBER,
        articles: list[Article] | None = None,
        now: datetime | None = None,
    ) -> Legislation:
        """Create a bill at its starting stage.

        Government and opposition-day bills go straight to Second
        Reading; private members' bills wait at First Reading for a
        gatekeeper.
        """
        bill = Legislation(
            id=item_id,
            kind=LegislationKind.BILL,
            title=title,
            author=author,
            bill_type=bill_type,
            articles=list(articles or []),
        )
        start = Stage.FIRST_READING if bill_type == BillType.PRIVATE_MEMBER else Stage.SECOND_READING
        self._enter_stage(bill, start, sim_now, now)
        return bill

    def introduce_motion(
        self,
        item_id: str,
        title: str,
        author: str,
        sim_now: SimDate,
        now: datetime | None = None,
    ) -> Legislation:
        """Create a motion at its Debate stage."""
        motion = Legislation(
            id=item_id,
            kind=LegislationKind.MOTION,
            title=title,
            author=author,
            legislation_kind="Motion",
        )
        self._enter_stage(motion, Stage.DEBATE, sim_now, now)
        return motion

    # ------------------------------------------------------------------
    # Gatekeeping
    # ------------------------------------------------------------------

    def is_gatekeeper(self, office: str | None) -> bool:
        return bool(office) and office in self._config.gatekeeper_offices

    def grant_second_reading(
        self,
        item: Legislation,
        office: str | None,
        sim_now: SimDate,
        now: datetime | None = None,
    ) -> bool:
        """Move a bill waiting at First Reading on to Second Reading."""
        if not self.is_gatekeeper(office):
            return False
        if item.is_terminal or item.stage != Stage.FIRST_READING:
            return False
        self._enter_stage(item, Stage.SECOND_READING, sim_now, now)
        return True

    def refuse_second_reading(
        self, item: Legislation, office: str | None, now: datetime | None = None
    ) -> bool:
        """Refuse a bill at First Reading; the bill fails."""
        if not self.is_gatekeeper(office):
            return False
        if item.is_terminal or item.stage != Stage.FIRST_READING:
            return False
        item.stage = Stage.FIRST_READING_REFUSED
        item.stage_started_at = now or datetime.now(tz=timezone.utc)
        item.stage_deadline_sim = None
        item.status = LegislationStatus.FAILED
        logger.info("item=%s refused at First Reading", item.id)
        return True

    # ------------------------------------------------------------------
    # Advancement
    # ------------------------------------------------------------------

    def next_stage(self, item: Legislation) -> Stage | None:
        sequence = item.stage_sequence
        if item.stage not in sequence:
            return None
        index = sequence.index(item.stage)
        return sequence[index + 1] if index + 1 < len(sequence) else None

    def advance_once(
        self,
        item: Legislation,
        allocation: WeightAllocation,
        ledger: SeatLedger,
        sim_now: SimDate,
        now: datetime | None = None,
    ) -> bool:
        """Make at most one transition.  Returns ``True`` when something changed."""
        if item.is_terminal:
            return False
        if item.stage in VOTING_STAGES:
            return self._step_division(item, allocation, ledger, sim_now, now)
        if not self._scheduler.is_passed(item.stage_deadline_sim, sim_now):
            return False
        following = self.next_stage(item)
        if following is None:
            return False
        self._enter_stage(item, following, sim_now, now)
        return True

    def auto_advance(
        self,
        item: Legislation,
        allocation: WeightAllocation,
        ledger: SeatLedger,
        sim_now: SimDate,
        now: datetime | None = None,
    ) -> int:
        """Apply transitions until the item is stable; return how many were made."""
        steps = 0
        while steps < _MAX_STEPS and self.advance_once(item, allocation, ledger, sim_now, now):
            steps += 1
        if steps == _MAX_STEPS:
            logger.warning("item=%s still changing after %d steps", item.id, steps)
        return steps

    def _enter_stage(
        self,
        item: Legislation,
        stage: Stage,
        sim_now: SimDate,
        now: datetime | None,
    ) -> None:
        effective_now = now or datetime.now(tz=timezone.utc)
        previous = item.stage
        months = self._config.stage_months(stage.value)
        item.stage = stage
        item.stage_started_at = effective_now
        item.stage_deadline_sim = (
            self._scheduler.deadline_in(sim_now, months) if months is not None else None
        )
        if stage in VOTING_STAGES:
            item.division = open_division(
                division_id_for(item),
                opened_at=effective_now,
                closes_at=self._scheduler.real_time_deadline(effective_now),
                closes_at_sim=item.stage_deadline_sim,
            )
        logger.info(
            "item=%s stage %s -> %s deadline=%s",
            item.id,
            previous.value,
            stage.value,
            item.stage_deadline_sim.label if item.stage_deadline_sim else "none",
        )

    def _step_division(
        self,
        item: Legislation,
        allocation: WeightAllocation,
        ledger: SeatLedger,
        sim_now: SimDate,
        now: datetime | None,
    ) -> bool:
        division = item.division
        if division is None:
            logger.warning("item=%s at %s without a division; opening one", item.id, item.stage.value)
            self._enter_stage(item, item.stage, sim_now, now)
            return True

        if division.is_open:
            # Paused while an amendment is being divided upon.
            if item.has_amendment_in_division():
                return False
            if self._auto_close.check_and_close(division, allocation, ledger, sim_now, now) is None:
                return False
            self.apply_outcome(item, ledger, sim_now)
            return True

        if division.status == DivisionStatus.CLOSED and division.outcome is None:
            self.apply_outcome(item, ledger, sim_now)
            return True

        if division.status == DivisionStatus.CLOSED and division.outcome == DivisionOutcome.TIED:
            return self._expire_tie(item, sim_now)
        return False

    # ------------------------------------------------------------------
    # Outcomes
    # ------------------------------------------------------------------

    def apply_outcome(
        self, item: Legislation, ledger: SeatLedger, sim_now: SimDate
    ) -> DivisionOutcome | None:
        """Resolve the item's closed division and settle the item's status."""
        division = item.division
        if division is None or division.is_open:
            return None
        outcome = self._resolver.resolve(division, ledger)
        division.outcome = outcome
        item.resolved_at_sim = sim_now
        if outcome == DivisionOutcome.TIED:
            logger.info("item=%s division tied; awaiting the Speaker", item.id)
            return outcome
        self._settle(item, outcome)
        return outcome

    def _settle(self, item: Legislation, outcome: DivisionOutcome) -> None:
        if outcome == DivisionOutcome.PASSED:
            item.status = (
                LegislationStatus.PASSED
                if item.kind == LegislationKind.MOTION
                else LegislationStatus.AWAITING_ASSENT
            )
        else:
            item.status = LegislationStatus.FAILED
        item.stage_deadline_sim = None
        logger.info("item=%s division %s; status=%s", item.id, outcome.value, item.status.value)

    def _expire_tie(self, item: Legislation, sim_now: SimDate) -> bool:
        grace = self._config.division.tie_grace_months
        if grace is None or item.resolved_at_sim is None:
            return False
        if not self._scheduler.is_passed(item.resolved_at_sim.plus_months(grace), sim_now):
            return False
        logger.warning(
            "item=%s tie unresolved since %s; status quo applies",
            item.id,
            item.resolved_at_sim.label,
        )
        self._settle(item, DivisionOutcome.FAILED)
        return True

    def is_pending_tie(self, item: Legislation) -> bool:
        division = item.division
        return (
            not item.is_terminal
            and division is not None
            and division.status == DivisionStatus.CLOSED
            and division.outcome == DivisionOutcome.TIED
        )

    # ------------------------------------------------------------------
    # Speaker and moderator actions
    # ------------------------------------------------------------------

    def close_division_now(
        self,
        item: Legislation,
        ledger: SeatLedger,
        sim_now: SimDate,
        now: datetime | None = None,
    ) -> DivisionOutcome | None:
        """Close the item's open division at once and apply its outcome."""
        if item.is_terminal or item.division is None:
            return None
        if not close_division(item.division, CloseReason.EXPLICIT, now):
            return None
        return self.apply_outcome(item, ledger, sim_now)

    def speaker_move_on(self, item: Legislation) -> bool:
        """Settle a tie by the status quo: the item fails."""
        if not self.is_pending_tie(item):
            return False
        if item.division is None:
            return False
        item.division.status = DivisionStatus.RESOLVED_BY_SPEAKER
        item.division.outcome = DivisionOutcome.FAILED
        item.division.version += 1
        self._settle(item, DivisionOutcome.FAILED)
        return True

    def speaker_casting_vote(self, item: Legislation, choice: VoteChoice | str) -> bool:
        """Settle a tie by the Speaker's casting vote (``aye`` or ``no``)."""
        parsed = VoteChoice.parse(choice)
        if parsed == VoteChoice.ABSTAIN or not self.is_pending_tie(item):
            return False
        if item.division is None:
            return False
        outcome = DivisionOutcome.PASSED if parsed == VoteChoice.AYE else DivisionOutcome.FAILED
        item.division.status = DivisionStatus.RESOLVED_BY_SPEAKER
        item.division.outcome = outcome
        item.division.version += 1
        self._settle(item, outcome)
        return True

    def royal_assent(self, item: Legislation, now: datetime | None = None) -> bool:
        """Turn a bill awaiting assent into an Act of Parliament."""
        if item.kind != LegislationKind.BILL or item.status != LegislationStatus.AWAITING_ASSENT:
            return False
        item.status = LegislationStatus.PASSED
        item.stage = Stage.ROYAL_ASSENT
        item.stage_started_at = now or datetime.now(tz=timezone.utc)
        item.stage_deadline_sim = None
        item.title = _BILL_WORD.sub("Act", item.title)
        item.legislation_kind = "Act of Parliament"
        logger.info("item=%s received Royal Assent as %r", item.id, item.title)
        return True
