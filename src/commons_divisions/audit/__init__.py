"""Audit package — append-only JSONL trail of division events."""
from __future__ import annotations

from commons_divisions.audit.logger import DivisionAuditLog

__all__ = ["DivisionAuditLog"]
