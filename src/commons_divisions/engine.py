"""Legislative engine — the outward operation contract.

Every operation takes the current :class:`StateDocument`, the explicit
:class:`Actor` performing it, and explicit ``now`` / ``sim_now`` instants.
It returns an :class:`OperationResult` carrying an updated deep copy of
the document.  The input document is never mutated, so the persistence
collaborator can write the result back with compare-and-swap and retry
on conflict.

Rejected operations never raise.  They come back with
``accepted=False``, the untouched input document and a ``reason``.

Example
-------
>>> engine = LegislativeEngine()
>>> result = engine.cast_vote(document, Actor("Tony"), "b1", "aye", now=now)
>>> result.accepted, result.reason
(True, 'vote recorded')
>>> document = result.document
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from commons_divisions.audit.logger import DivisionAuditLog
from commons_divisions.clock.scheduler import DeadlineScheduler
from commons_divisions.clock.sim_date import SimClock, SimDate
from commons_divisions.config import EngineConfig
from commons_divisions.division.auto_close import AutoCloseChecker
from commons_divisions.division.ledger import (
    CloseReason,
    Division,
    DivisionOutcome,
    VoteChoice,
    cast_vote,
    close_division,
    reweigh_ballots,
    set_npc_votes,
    set_rebellions,
)
from commons_divisions.division.resolver import DivisionResolver, DivisionTally
from commons_divisions.legislation.amendments import AmendmentManager
from commons_divisions.legislation.progression import StageProgression
from commons_divisions.legislation.schema import AmendmentType, Legislation
from commons_divisions.roster.schema import Actor, Character
from commons_divisions.roster.weights import VoteWeightAllocator, WeightAllocation, set_absence
from commons_divisions.store.document import StateDocument

logger = logging.getLogger(__name__)


@dataclass
class OperationResult:
    """Outcome of one engine operation.

    Attributes
    ----------
    accepted:
        ``False`` when the operation was rejected; ``document`` is then
        the unchanged input.
    document:
        The updated document (a new copy when accepted).
    reason:
        Short human-readable explanation.
    outcome:
        Division outcome, when the operation resolved a division.
    tally:
        Totals, for operations that compute them.
    """

    accepted: bool
    document: StateDocument
    reason: str = ""
    outcome: DivisionOutcome | None = None
    tally: DivisionTally | None = None


class LegislativeEngine:
    """Applies division and stage operations to state documents.

    Parameters
    ----------
    config:
        Engine configuration; defaults apply when omitted.
    audit:
        Optional audit log.  When omitted and ``config.audit.enabled`` is
        set, one is opened at ``config.audit.log_path``.
    """

    def __init__(
        self,
        config: EngineConfig | None = None,
        audit: DivisionAuditLog | None = None,
    ) -> None:
        self._config = config or EngineConfig()
        if audit is None and self._config.audit.enabled:
            audit = DivisionAuditLog(self._config.audit.log_path)
        self._audit = audit
        self._allocator = VoteWeightAllocator.from_config(self._config)
        self._scheduler = DeadlineScheduler(self._config.division.real_time_hours)
        self._auto_close = AutoCloseChecker.from_config(self._config)
        self._resolver = DivisionResolver()
        self._progression = StageProgression(self._config)
        self._amendments = AmendmentManager(self._config)

    @property
    def config(self) -> EngineConfig:
        return self._config

    @property
    def progression(self) -> StageProgression:
        return self._progression

    @property
    def amendments(self) -> AmendmentManager:
        return self._amendments

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _now(now: datetime | None) -> datetime:
        return now or datetime.now(tz=timezone.utc)

    @staticmethod
    def _sim_now(document: StateDocument, sim_now: SimDate | None, now: datetime) -> SimDate:
        return sim_now or SimClock(document.game_state).sim_date(now)

    def _reject(self, document: StateDocument, reason: str) -> OperationResult:
        logger.debug("operation rejected: %s", reason)
        return OperationResult(accepted=False, document=document, reason=reason)

    def _emit(self, event: str, **fields: object) -> None:
        if self._audit is not None:
            self._audit.record(event, **fields)

    @staticmethod
    def _active_character(document: StateDocument, actor: Actor) -> Character | None:
        character = document.roster().get_character(actor.name)
        if character is None or not character.active:
            return None
        return character

    def _office_of(self, document: StateDocument, actor: Actor) -> str | None:
        character = document.roster().get_character(actor.name)
        if character is not None and character.office:
            return character.office
        return actor.office

    @staticmethod
    def _target(item: Legislation, amendment_id: str | None) -> tuple[Division | None, str]:
        if amendment_id is None:
            if item.division is None:
                return None, f"item {item.id!r} has no division"
            return item.division, ""
        amendment = item.get_amendment(amendment_id)
        if amendment is None:
            return None, f"unknown amendment {amendment_id!r} on {item.id!r}"
        if amendment.division is None:
            return None, f"amendment {amendment_id!r} has no division"
        return amendment.division, ""

    def _settle_if_due(
        self,
        item: Legislation,
        division: Division,
        allocation: WeightAllocation,
        document: StateDocument,
        sim_now: SimDate,
        now: datetime,
        amendment_id: str | None,
    ) -> DivisionOutcome | None:
        """Close and resolve *division* when it has become due."""
        ledger = document.seat_ledger()
        if amendment_id is not None:
            if amendment_id in self._amendments.expire_divisions(
                item, allocation, ledger, sim_now, now
            ):
                self._emit_closed(item, division, amendment_id)
                return division.outcome
            return None
        if item.has_amendment_in_division():
            return None
        if self._auto_close.check_and_close(division, allocation, ledger, sim_now, now) is None:
            return None
        outcome = self._progression.apply_outcome(item, ledger, sim_now)
        self._emit_closed(item, division, None)
        return outcome

    def _reweigh_open(self, document: StateDocument, allocation: WeightAllocation) -> None:
        for division in document.iter_divisions():
            reweigh_ballots(division, allocation.effective_weights)

    def _emit_closed(
        self, item: Legislation, division: Division, amendment_id: str | None
    ) -> None:
        self._emit(
            "division_closed",
            item=item.id,
            amendment=amendment_id,
            division=division.division_id,
            reason=division.close_reason.value if division.close_reason else None,
            outcome=division.outcome.value if division.outcome else None,
        )

    # ------------------------------------------------------------------
    # Weights
    # ------------------------------------------------------------------

    def effective_weights(
        self, document: StateDocument, now: datetime | None = None
    ) -> WeightAllocation:
        """Seat-weighted voting power of every active character."""
        return self._allocator.allocate(document.players, document.seat_ledger(), self._now(now))

    def set_absence(
        self,
        document: StateDocument,
        actor: Actor,
        absent: bool,
        delegated_to: str | None = None,
        member: str | None = None,
        now: datetime | None = None,
    ) -> OperationResult:
        """Mark a member absent (optionally with a delegate) or present again.

        Members set their own absence; moderators may set anyone's.
        """
        target = member or actor.name
        if target != actor.name and not actor.is_moderator:
            return self._reject(document, "only moderators may set another member's absence")
        working = document.model_copy(deep=True)
        if not set_absence(working.players, target, absent, delegated_to):
            return self._reject(document, f"cannot set absence for {target!r}")
        self._reweigh_open(working, self.effective_weights(working, self._now(now)))
        return OperationResult(True, working, "absent" if absent else "present")

    # ------------------------------------------------------------------
    # Voting
    # ------------------------------------------------------------------

    def cast_vote(
        self,
        document: StateDocument,
        actor: Actor,
        item_id: str,
        choice: VoteChoice | str,
        now: datetime | None = None,
        sim_now: SimDate | None = None,
        amendment_id: str | None = None,
    ) -> OperationResult:
        """Record the actor's ballot at their current effective weight."""
        try:
            parsed = VoteChoice.parse(choice)
        except ValueError as exc:
            return self._reject(document, str(exc))

        effective_now = self._now(now)
        current = self._sim_now(document, sim_now, effective_now)
        working = document.model_copy(deep=True)
        item = working.find_item(item_id)
        if item is None:
            return self._reject(document, f"unknown item {item_id!r}")
        division, problem = self._target(item, amendment_id)
        if division is None:
            return self._reject(document, problem)
        if amendment_id is None and item.has_amendment_in_division():
            return self._reject(document, "voting is paused while an amendment is in division")
        if not division.is_open:
            return self._reject(document, "division is closed")
        if self._scheduler.any_passed(division.closes_at_sim, division.closes_at, current, effective_now):
            return self._reject(document, "division deadline has passed")

        character = self._active_character(working, actor)
        if character is None:
            return self._reject(document, f"{actor.name!r} is not an active member")
        if not working.seat_ledger().is_playable(character.party):
            return self._reject(document, f"{character.party!r} party is not playable")
        allocation = self.effective_weights(working, effective_now)
        weight = allocation.weight_of(actor.name)
        if weight <= 0:
            return self._reject(document, f"{actor.name!r} has no voting weight")

        cast_vote(division, actor.name, character.party, parsed, weight, effective_now)
        reweigh_ballots(division, allocation.effective_weights)
        self._emit(
            "vote_cast",
            item=item.id,
            amendment=amendment_id,
            actor=actor.name,
            party=character.party,
            choice=parsed.value,
            weight=weight,
        )
        outcome = self._settle_if_due(
            item, division, allocation, working, current, effective_now, amendment_id
        )
        return OperationResult(True, working, "vote recorded", outcome)

    def set_npc_votes(
        self,
        document: StateDocument,
        actor: Actor,
        item_id: str,
        npc_votes: dict[str, VoteChoice | str],
        now: datetime | None = None,
        sim_now: SimDate | None = None,
        amendment_id: str | None = None,
    ) -> OperationResult:
        """Replace the NPC party positions (moderators and the Speaker only)."""
        return self._moderate(
            document, actor, item_id, now, sim_now, amendment_id, npc_votes=npc_votes
        )

    def set_rebellions(
        self,
        document: StateDocument,
        actor: Actor,
        item_id: str,
        rebels_by_party: dict[str, int],
        now: datetime | None = None,
        sim_now: SimDate | None = None,
        amendment_id: str | None = None,
    ) -> OperationResult:
        """Replace the per-party rebel counts (moderators and the Speaker only)."""
        return self._moderate(
            document, actor, item_id, now, sim_now, amendment_id, rebels=rebels_by_party
        )

    def _moderate(
        self,
        document: StateDocument,
        actor: Actor,
        item_id: str,
        now: datetime | None,
        sim_now: SimDate | None,
        amendment_id: str | None,
        npc_votes: dict[str, VoteChoice | str] | None = None,
        rebels: dict[str, int] | None = None,
    ) -> OperationResult:
        if not (actor.is_moderator or actor.is_speaker):
            return self._reject(document, "only moderators or the Speaker may set NPC positions")
        effective_now = self._now(now)
        current = self._sim_now(document, sim_now, effective_now)
        working = document.model_copy(deep=True)
        item = working.find_item(item_id)
        if item is None:
            return self._reject(document, f"unknown item {item_id!r}")
        division, problem = self._target(item, amendment_id)
        if division is None:
            return self._reject(document, problem)

        try:
            if npc_votes is not None:
                changed = set_npc_votes(division, npc_votes)
                event, payload = "npc_votes_set", {k: v.value for k, v in division.npc_votes.items()}
            else:
                changed = set_rebellions(division, rebels or {})
                event, payload = "rebellions_set", dict(division.rebels_by_party)
        except (TypeError, ValueError) as exc:
            return self._reject(document, str(exc))
        if not changed:
            return self._reject(document, "division is closed")

        self._emit(event, item=item.id, amendment=amendment_id, actor=actor.name, values=payload)
        allocation = self.effective_weights(working, effective_now)
        reweigh_ballots(division, allocation.effective_weights)
        outcome = self._settle_if_due(
            item, division, allocation, working, current, effective_now, amendment_id
        )
        return OperationResult(True, working, event.replace("_", " "), outcome)

    # ------------------------------------------------------------------
    # Stages and resolution
    # ------------------------------------------------------------------

    def advance_stages(
        self,
        document: StateDocument,
        now: datetime | None = None,
        sim_now: SimDate | None = None,
        item_id: str | None = None,
    ) -> OperationResult:
        """Run deadlines, auto-close checks and stage transitions.

        Applies to every item on the order paper, or just *item_id*.
        Always accepted (unless *item_id* is unknown); ``reason`` lists
        the items that changed.
        """
        effective_now = self._now(now)
        current = self._sim_now(document, sim_now, effective_now)
        working = document.model_copy(deep=True)
        if item_id is not None and working.find_item(item_id) is None:
            return self._reject(document, f"unknown item {item_id!r}")

        ledger = working.seat_ledger()
        allocation = self.effective_weights(working, effective_now)
        changed: list[str] = []
        self._reweigh_open(working, allocation)
        outcome: DivisionOutcome | None = None
        for item in working.iter_items():
            if item_id is not None and item.id != item_id:
                continue
            before = (item.stage, item.status)
            for amendment_id in self._amendments.expire_divisions(
                item, allocation, ledger, current, effective_now
            ):
                amendment = item.get_amendment(amendment_id)
                if amendment is not None and amendment.division is not None:
                    self._emit_closed(item, amendment.division, amendment_id)
                changed.append(f"{item.id}:{amendment_id}")
            was_open = item.division is not None and item.division.is_open
            steps = self._progression.auto_advance(item, allocation, ledger, current, effective_now)
            if not steps:
                continue
            changed.append(item.id)
            if was_open and item.division is not None and not item.division.is_open:
                self._emit_closed(item, item.division, None)
            self._emit(
                "stage_advanced",
                item=item.id,
                from_stage=before[0].value,
                to_stage=item.stage.value,
                from_status=before[1].value,
                status=item.status.value,
                steps=steps,
            )
            if item_id is not None and item.division is not None:
                outcome = item.division.outcome

        reason = "advanced: " + ", ".join(changed) if changed else "no changes"
        return OperationResult(True, working, reason, outcome)

    def close_division(
        self,
        document: StateDocument,
        actor: Actor,
        item_id: str,
        now: datetime | None = None,
        sim_now: SimDate | None = None,
        amendment_id: str | None = None,
    ) -> OperationResult:
        """Close a division at once on the Speaker's order."""
        if not actor.is_speaker:
            return self._reject(document, "only the Speaker may close a division")
        effective_now = self._now(now)
        current = self._sim_now(document, sim_now, effective_now)
        working = document.model_copy(deep=True)
        item = working.find_item(item_id)
        if item is None:
            return self._reject(document, f"unknown item {item_id!r}")
        division, problem = self._target(item, amendment_id)
        if division is None:
            return self._reject(document, problem)
        if not division.is_open:
            return self._reject(document, "division is already closed")

        ledger = working.seat_ledger()
        reweigh_ballots(division, self.effective_weights(working, effective_now).effective_weights)
        if amendment_id is None:
            outcome = self._progression.close_division_now(item, ledger, current, effective_now)
        else:
            close_division(division, CloseReason.EXPLICIT, effective_now)
            outcome = division.outcome = self._resolver.resolve(division, ledger)
        self._emit_closed(item, division, amendment_id)
        return OperationResult(True, working, "division closed", outcome)

    def resolve_division(
        self,
        document: StateDocument,
        item_id: str,
        amendment_id: str | None = None,
    ) -> OperationResult:
        """Tally a division without changing anything."""
        item = document.find_item(item_id)
        if item is None:
            return self._reject(document, f"unknown item {item_id!r}")
        division, problem = self._target(item, amendment_id)
        if division is None:
            return self._reject(document, problem)
        tally = self._resolver.tally(division, document.seat_ledger())
        return OperationResult(True, document, "tallied", tally.outcome, tally)

    def speaker_move_on(
        self, document: StateDocument, actor: Actor, item_id: str
    ) -> OperationResult:
        """Settle a tied division by the status quo."""
        if not actor.is_speaker:
            return self._reject(document, "only the Speaker may settle a tie")
        working = document.model_copy(deep=True)
        item = working.find_item(item_id)
        if item is None or not self._progression.speaker_move_on(item):
            return self._reject(document, f"no pending tie on {item_id!r}")
        self._emit("division_closed", item=item.id, outcome="failed", resolved_by=actor.name)
        return OperationResult(True, working, "status quo applies", DivisionOutcome.FAILED)

    def speaker_casting_vote(
        self,
        document: StateDocument,
        actor: Actor,
        item_id: str,
        choice: VoteChoice | str,
    ) -> OperationResult:
        """Settle a tied division by the Speaker's casting vote."""
        if not actor.is_speaker:
            return self._reject(document, "only the Speaker may give a casting vote")
        working = document.model_copy(deep=True)
        item = working.find_item(item_id)
        if item is None:
            return self._reject(document, f"unknown item {item_id!r}")
        try:
            settled = self._progression.speaker_casting_vote(item, choice)
        except ValueError as exc:
            return self._reject(document, str(exc))
        if not settled or item.division is None:
            return self._reject(document, f"no pending tie on {item_id!r}")
        outcome = item.division.outcome
        self._emit(
            "division_closed",
            item=item.id,
            outcome=outcome.value if outcome else None,
            resolved_by=actor.name,
        )
        return OperationResult(True, working, "casting vote given", outcome)

    def royal_assent(
        self,
        document: StateDocument,
        actor: Actor,
        item_id: str,
        now: datetime | None = None,
    ) -> OperationResult:
        """Grant Royal Assent to a bill awaiting it (moderators only)."""
        if not actor.is_moderator:
            return self._reject(document, "only moderators may grant Royal Assent")
        working = document.model_copy(deep=True)
        item = working.find_item(item_id)
        if item is None or not self._progression.royal_assent(item, self._now(now)):
            return self._reject(document, f"{item_id!r} is not awaiting Royal Assent")
        self._emit("royal_assent", item=item.id, title=item.title, actor=actor.name)
        return OperationResult(True, working, f"{item.title} received Royal Assent")

    def grant_second_reading(
        self,
        document: StateDocument,
        actor: Actor,
        item_id: str,
        now: datetime | None = None,
        sim_now: SimDate | None = None,
    ) -> OperationResult:
        """Let a private member's bill proceed past First Reading."""
        effective_now = self._now(now)
        current = self._sim_now(document, sim_now, effective_now)
        working = document.model_copy(deep=True)
        item = working.find_item(item_id)
        if item is None:
            return self._reject(document, f"unknown item {item_id!r}")
        if not self._progression.grant_second_reading(
            item, self._office_of(working, actor), current, effective_now
        ):
            return self._reject(document, "Second Reading cannot be granted")
        self._emit("stage_advanced", item=item.id, to_stage=item.stage.value, actor=actor.name)
        return OperationResult(True, working, "Second Reading granted")

    def refuse_second_reading(
        self,
        document: StateDocument,
        actor: Actor,
        item_id: str,
        now: datetime | None = None,
    ) -> OperationResult:
        """Refuse a private member's bill at First Reading."""
        working = document.model_copy(deep=True)
        item = working.find_item(item_id)
        if item is None:
            return self._reject(document, f"unknown item {item_id!r}")
        if not self._progression.refuse_second_reading(
            item, self._office_of(working, actor), self._now(now)
        ):
            return self._reject(document, "Second Reading cannot be refused")
        self._emit("stage_advanced", item=item.id, to_stage=item.stage.value, actor=actor.name)
        return OperationResult(True, working, "Second Reading refused")

    # ------------------------------------------------------------------
    # Amendments
    # ------------------------------------------------------------------

    def propose_amendment(
        self,
        document: StateDocument,
        actor: Actor,
        item_id: str,
        article_number: int,
        amendment_type: AmendmentType | str,
        title: str = "",
        text: str = "",
        now: datetime | None = None,
    ) -> OperationResult:
        """Table an amendment to one article of a bill."""
        effective_now = self._now(now)
        working = document.model_copy(deep=True)
        item = working.find_item(item_id)
        if item is None:
            return self._reject(document, f"unknown item {item_id!r}")
        proposer = self._active_character(working, actor)
        if proposer is None:
            return self._reject(document, f"{actor.name!r} is not an active member")
        try:
            kind = AmendmentType(amendment_type)
        except ValueError:
            return self._reject(document, f"unknown amendment type {amendment_type!r}")
        allocation = self.effective_weights(working, effective_now)
        amendment = self._amendments.propose(
            item, proposer, article_number, kind, allocation, title, text, effective_now
        )
        if amendment is None:
            return self._reject(document, f"{item_id!r} is not open to amendment")
        self._emit(
            "amendment_status_changed",
            item=item.id,
            amendment=amendment.id,
            status=amendment.status.value,
            actor=actor.name,
        )
        return OperationResult(True, working, f"amendment {amendment.id} proposed")

    def support_amendment(
        self,
        document: StateDocument,
        actor: Actor,
        item_id: str,
        amendment_id: str,
        now: datetime | None = None,
    ) -> OperationResult:
        """Add the actor's party to an amendment's supporters (party leaders only)."""
        working = document.model_copy(deep=True)
        item = working.find_item(item_id)
        supporter = self._active_character(working, actor)
        if item is None or supporter is None:
            return self._reject(document, "unknown item or inactive member")
        allocation = self.effective_weights(working, self._now(now))
        if not self._amendments.support(item, amendment_id, supporter, allocation):
            return self._reject(document, f"cannot support amendment {amendment_id!r}")
        return OperationResult(True, working, f"{supporter.party} supports {amendment_id}")

    def accept_amendment(
        self,
        document: StateDocument,
        actor: Actor,
        item_id: str,
        amendment_id: str,
    ) -> OperationResult:
        """Accept an amendment and splice it into the bill (author or editors)."""
        working = document.model_copy(deep=True)
        item = working.find_item(item_id)
        if item is None or not self._amendments.accept(item, amendment_id, actor.name):
            return self._reject(document, f"cannot accept amendment {amendment_id!r}")
        self._emit(
            "amendment_status_changed",
            item=item.id,
            amendment=amendment_id,
            status="accepted",
            actor=actor.name,
        )
        return OperationResult(True, working, f"amendment {amendment_id} accepted")

    def refuse_amendment(
        self,
        document: StateDocument,
        actor: Actor,
        item_id: str,
        amendment_id: str,
        now: datetime | None = None,
        sim_now: SimDate | None = None,
    ) -> OperationResult:
        """Refuse an amendment; it goes to division when enough leaders back it."""
        effective_now = self._now(now)
        current = self._sim_now(document, sim_now, effective_now)
        working = document.model_copy(deep=True)
        item = working.find_item(item_id)
        if item is None:
            return self._reject(document, f"unknown item {item_id!r}")
        status = self._amendments.refuse(item, amendment_id, actor.name, current, effective_now)
        if status is None:
            return self._reject(document, f"cannot refuse amendment {amendment_id!r}")
        self._emit(
            "amendment_status_changed",
            item=item.id,
            amendment=amendment_id,
            status=status.value,
            actor=actor.name,
        )
        return OperationResult(True, working, f"amendment {amendment_id} {status.value}")

    def resolve_amendment(
        self,
        document: StateDocument,
        actor: Actor,
        item_id: str,
        amendment_id: str,
        accept: bool,
        now: datetime | None = None,
    ) -> OperationResult:
        """Settle an amendment in division by the Speaker's procedural override."""
        if not actor.is_speaker:
            return self._reject(document, "only the Speaker may resolve an amendment division")
        working = document.model_copy(deep=True)
        item = working.find_item(item_id)
        if item is None or not self._amendments.speaker_resolve(
            item, amendment_id, accept, self._now(now)
        ):
            return self._reject(document, f"cannot resolve amendment {amendment_id!r}")
        status = "accepted" if accept else "refused"
        self._emit(
            "amendment_status_changed",
            item=item.id,
            amendment=amendment_id,
            status=status,
            actor=actor.name,
        )
        return OperationResult(True, working, f"amendment {amendment_id} {status}")
