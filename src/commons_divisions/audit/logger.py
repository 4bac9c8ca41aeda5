"""Append-only JSONL audit trail of division and stage events.

Each record is one line of JSON carrying a UTC timestamp, the session id,
the event name and whatever fields the engine supplied.  Writes and reads
share one lock, so the log may be used from several threads at once.

Events written by the engine
----------------------------
``vote_cast``, ``npc_votes_set``, ``rebellions_set``, ``division_closed``,
``stage_advanced``, ``amendment_status_changed``, ``royal_assent``.

Example
-------
>>> audit = DivisionAuditLog(Path("/tmp/divisions.jsonl"))
>>> audit.record("vote_cast", item="b1", actor="Tony", choice="aye", weight=209)
>>> audit.query({"event": "vote_cast"})[0]["actor"]
'Tony'
"""
from __future__ import annotations

import json
import logging
import threading
import uuid
from collections.abc import Iterator
from datetime import datetime, timezone
from pathlib import Path

logger = logging.getLogger(__name__)


class DivisionAuditLog:
    """Append-only JSONL audit log.

    Parameters
    ----------
    log_path:
        Path of the ``.jsonl`` file; parent directories are created on
        first write.
    session_id:
        Stamped on every record.  A random UUID when omitted.
    """

    def __init__(self, log_path: Path, session_id: str | None = None) -> None:
        self._log_path = log_path
        self._session_id: str = session_id or str(uuid.uuid4())
        self._lock = threading.Lock()

    def record(self, event: str, **fields: object) -> None:
        """Append one event record.  ``timestamp``, ``session_id`` and ``event`` win over *fields*."""
        entry: dict[str, object] = {
            **fields,
            "timestamp": datetime.now(tz=timezone.utc).isoformat(),
            "session_id": self._session_id,
            "event": event,
        }
        with self._lock:
            self._log_path.parent.mkdir(parents=True, exist_ok=True)
            with self._log_path.open("a", encoding="utf-8") as fh:
                fh.write(json.dumps(entry, default=str) + "\n")

    def read_all(self) -> list[dict[str, object]]:
        """All records in write order; empty when the file does not exist."""
        return list(self._iter_records())

    def query(self, filters: dict[str, object]) -> list[dict[str, object]]:
        """Records whose top-level fields equal every value in *filters*."""
        return [
            entry
            for entry in self._iter_records()
            if all(entry.get(key) == value for key, value in filters.items())
        ]

    def count(self) -> int:
        return sum(1 for _ in self._iter_records())

    def last_n(self, n: int) -> list[dict[str, object]]:
        records = self.read_all()
        return records[-n:] if n > 0 else []

    def _iter_records(self) -> Iterator[dict[str, object]]:
        if not self._log_path.exists():
            return
        with self._lock:
            lines = self._log_path.read_text(encoding="utf-8").splitlines()
        for number, line in enumerate(lines, start=1):
            if not line.strip():
                continue
            try:
                yield json.loads(line)
            except json.JSONDecodeError:
                logger.warning("skipping malformed audit line %d in %s", number, self._log_path)

    @property
    def log_path(self) -> Path:
        return self._log_path

    @property
    def session_id(self) -> str:
        return self._session_id
