"""Amendment sub-divisions.

An amendment targets one article of a bill.  The bill's author (or an
editor) may accept it, which splices the change into the articles.  Only
the author may refuse it.  A refusal stands unless enough party leaders
back the amendment; in that case it goes to its own nested division
instead.  The nested division closes on its deadline like any other, but the
amendment stays ``in-division`` until the Speaker resolves it.  While
any amendment is in division, the bill's main division takes no votes.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone

from commons_divisions.clock.scheduler import DeadlineScheduler
from commons_divisions.clock.sim_date import SimDate
from commons_divisions.config import EngineConfig
from commons_divisions.division.auto_close import AutoCloseChecker
from commons_divisions.division.ledger import (
    CloseReason,
    DivisionStatus,
    close_division,
    open_division,
)
from commons_divisions.division.resolver import DivisionResolver, DivisionTally
from commons_divisions.legislation.schema import (
    Amendment,
    AmendmentStatus,
    AmendmentType,
    Article,
    Legislation,
    LegislationKind,
    Stage,
)
from commons_divisions.roster.schema import Character
from commons_divisions.roster.seats import SeatLedger
from commons_divisions.roster.weights import WeightAllocation

logger = logging.getLogger(__name__)

_CLOSED_STAGES: frozenset[Stage] = frozenset(
    {Stage.FINAL_DIVISION, Stage.FIRST_READING_REFUSED, Stage.ROYAL_ASSENT}
)


def amendment_division_id(item: Legislation, amendment: Amendment) -> str:
    return f"{item.id}:{amendment.id}:division"


def splice_amendment(articles: list[Article], amendment: Amendment) -> bool:
    """Apply *amendment* to *articles* in place.

    ``replace`` swaps the body of article *n*, ``insert`` places a new
    article at position *n* (one past the end is allowed) and ``delete``
    removes article *n*.  Returns ``False`` when *n* is out of range.
    """
    index = amendment.article_number - 1
    if amendment.type == AmendmentType.INSERT:
        if not 0 <= index <= len(articles):
            return False
        articles.insert(index, Article(heading=amendment.title, body=amendment.text))
        return True
    if not 0 <= index < len(articles):
        return False
    if amendment.type == AmendmentType.REPLACE:
        articles[index] = Article(
            heading=amendment.title or articles[index].heading, body=amendment.text
        )
    else:
        del articles[index]
    return True


class AmendmentManager:
    """Proposal, support, acceptance and escalation of amendments."""

    def __init__(self, config: EngineConfig | None = None) -> None:
        self._config = config or EngineConfig()
        self._scheduler = DeadlineScheduler(self._config.division.real_time_hours)
        self._auto_close = AutoCloseChecker(
            scheduler=self._scheduler,
            auto_abstain_parties=self._config.auto_abstain_parties,
        )
        self._resolver = DivisionResolver()

    def accepts_amendments(self, item: Legislation) -> bool:
        return (
            item.kind == LegislationKind.BILL
            and not item.is_terminal
            and item.stage not in _CLOSED_STAGES
        )

    def propose(
        self,
        item: Legislation,
        proposer: Character,
        article_number: int,
        amendment_type: AmendmentType | str,
        allocation: WeightAllocation,
        title: str = "",
        text: str = "",
        now: datetime | None = None,
    ) -> Amendment | None:
        """Table an amendment.  Returns ``None`` when the bill is closed to amendment."""
        if not self.accepts_amendments(item) or article_number < 1:
            return None
        amendment = Amendment(
            id=f"A{len(item.amendments) + 1}",
            article_number=article_number,
            type=AmendmentType(amendment_type),
            title=title,
            text=text,
            proposed_by=proposer.name,
            supporters=[proposer.party] if allocation.is_leader(proposer.name) else [],
            submitted_at=now or datetime.now(tz=timezone.utc),
        )
        item.amendments.append(amendment)
        logger.info("item=%s amendment %s proposed by %s", item.id, amendment.id, proposer.name)
        return amendment

    def support(
        self,
        item: Legislation,
        amendment_id: str,
        supporter: Character,
        allocation: WeightAllocation,
    ) -> bool:
        """Add the supporter's party when the supporter leads it."""
        amendment = item.get_amendment(amendment_id)
        if amendment is None or amendment.status != AmendmentStatus.PROPOSED:
            return False
        if not allocation.is_leader(supporter.name):
            return False
        if supporter.party not in amendment.supporters:
            amendment.supporters.append(supporter.party)
        return True

    def accept(self, item: Legislation, amendment_id: str, actor_name: str) -> bool:
        """Splice the amendment into the bill on the author's say-so."""
        amendment = item.get_amendment(amendment_id)
        if amendment is None or amendment.status != AmendmentStatus.PROPOSED:
            return False
        if not item.can_edit(actor_name):
            return False
        if not splice_amendment(item.articles, amendment):
            logger.warning(
                "item=%s amendment %s targets missing article %d",
                item.id,
                amendment.id,
                amendment.article_number,
            )
            return False
        amendment.status = AmendmentStatus.ACCEPTED
        logger.info("item=%s amendment %s accepted", item.id, amendment.id)
        return True

    def refuse(
        self,
        item: Legislation,
        amendment_id: str,
        actor_name: str,
        sim_now: SimDate,
        now: datetime | None = None,
    ) -> AmendmentStatus | None:
        """Refuse the amendment, or send it to division when enough leaders back it.

        Returns the amendment's new status, or ``None`` when rejected.
        """
        amendment = item.get_amendment(amendment_id)
        if amendment is None or amendment.status != AmendmentStatus.PROPOSED:
            return None
        if not actor_name or actor_name != item.author:
            return None

        if len(amendment.supporters) < self._config.amendments.min_leader_supporters:
            amendment.status = AmendmentStatus.REFUSED
            logger.info("item=%s amendment %s refused", item.id, amendment.id)
            return amendment.status

        effective_now = now or datetime.now(tz=timezone.utc)
        amendment.status = AmendmentStatus.IN_DIVISION
        amendment.division = open_division(
            amendment_division_id(item, amendment),
            opened_at=effective_now,
            closes_at=self._scheduler.real_time_deadline(effective_now),
            closes_at_sim=self._scheduler.deadline_in(
                sim_now, self._config.stages.amendment_division_months
            ),
        )
        logger.info(
            "item=%s amendment %s sent to division (supporters: %s)",
            item.id,
            amendment.id,
            ", ".join(amendment.supporters),
        )
        return amendment.status

    def speaker_resolve(
        self,
        item: Legislation,
        amendment_id: str,
        accept: bool,
        now: datetime | None = None,
    ) -> bool:
        """Settle an amendment in division, whatever its tally says."""
        amendment = item.get_amendment(amendment_id)
        if amendment is None or amendment.status != AmendmentStatus.IN_DIVISION:
            return False
        if accept and not splice_amendment(item.articles, amendment):
            return False
        if amendment.division is not None:
            close_division(amendment.division, CloseReason.EXPLICIT, now)
            amendment.division.status = DivisionStatus.RESOLVED_BY_SPEAKER
        amendment.status = AmendmentStatus.ACCEPTED if accept else AmendmentStatus.REFUSED
        logger.info(
            "item=%s amendment %s %s by the Speaker",
            item.id,
            amendment.id,
            amendment.status.value,
        )
        return True

    def expire_divisions(
        self,
        item: Legislation,
        allocation: WeightAllocation,
        ledger: SeatLedger,
        sim_now: SimDate,
        now: datetime | None = None,
    ) -> list[str]:
        """Auto-close any nested divisions that are due; return their amendment ids."""
        closed: list[str] = []
        for amendment in item.amendments:
            if amendment.status != AmendmentStatus.IN_DIVISION or amendment.division is None:
                continue
            reason = self._auto_close.check_and_close(
                amendment.division, allocation, ledger, sim_now, now
            )
            if reason is not None:
                amendment.division.outcome = self._resolver.resolve(amendment.division, ledger)
                closed.append(amendment.id)
        return closed

    def tally(
        self, item: Legislation, amendment_id: str, ledger: SeatLedger
    ) -> DivisionTally | None:
        """Advisory totals for an amendment's nested division."""
        amendment = item.get_amendment(amendment_id)
        if amendment is None or amendment.division is None:
            return None
        return self._resolver.tally(amendment.division, ledger)
