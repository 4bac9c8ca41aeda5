"""Convenience API for commons-divisions — 3-line quickstart.

Example
-------
::

    from commons_divisions import Chamber
    chamber = Chamber.from_file("state.json")
    print(chamber.weights())

"""
from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Any


class Chamber:
    """A state document and an engine kept together for the common case.

    Each operation replaces the held document with the engine's result
    when it is accepted, so callers can chain calls without threading
    documents through by hand.

    Parameters
    ----------
    document:
        Initial state.  An empty chamber when omitted.
    config:
        Optional :class:`EngineConfig`; defaults apply when omitted.

    Example
    -------
    ::

        chamber = Chamber(document)
        chamber.vote("Tony", "b1", "aye")
        print(chamber.tally("b1").aye)
    """

    def __init__(self, document: Any | None = None, config: Any | None = None) -> None:
        from commons_divisions.engine import LegislativeEngine
        from commons_divisions.store.document import StateDocument

        self._engine = LegislativeEngine(config)
        self._document = document if document is not None else StateDocument()

    @classmethod
    def from_file(cls, path: str | Path, config: Any | None = None) -> "Chamber":
        from commons_divisions.store.document import StateDocument

        return cls(StateDocument.from_file(Path(path)), config)

    def weights(self, now: datetime | None = None) -> dict[str, int]:
        """Effective weight per active member."""
        return dict(self._engine.effective_weights(self._document, now).effective_weights)

    def vote(
        self,
        member: str,
        item_id: str,
        choice: str,
        now: datetime | None = None,
        sim_now: Any | None = None,
    ) -> Any:
        """Cast *member*'s ballot on the item's main division."""
        from commons_divisions.roster.schema import Actor

        return self._apply(
            self._engine.cast_vote(self._document, Actor(member), item_id, choice, now, sim_now)
        )

    def advance(self, now: datetime | None = None, sim_now: Any | None = None) -> Any:
        """Run deadlines and stage transitions for every item."""
        return self._apply(self._engine.advance_stages(self._document, now, sim_now))

    def tally(self, item_id: str, amendment_id: str | None = None) -> Any:
        """Totals for a division, or ``None`` when the item has no such division."""
        return self._engine.resolve_division(self._document, item_id, amendment_id).tally

    def _apply(self, result: Any) -> Any:
        if result.accepted:
            self._document = result.document
        return result

    @property
    def document(self) -> Any:
        """The current state document."""
        return self._document

    @property
    def engine(self) -> Any:
        """The underlying LegislativeEngine instance."""
        return self._engine

    def __repr__(self) -> str:
        return f"Chamber(items={len(list(self._document.iter_items()))})"
