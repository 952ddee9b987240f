"""Audit trail for draw workflow transitions."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional, Protocol

from sqlalchemy.orm import Session, sessionmaker

from ..models import AuditLog

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Actor:
    """Operator identity attached to every workflow call."""

    identity: str
    source_address: Optional[str] = None


@dataclass(frozen=True)
class AuditRecord:
    """Immutable description of one workflow transition."""

    actor: Actor
    action: str
    event_id: Optional[int]
    prize_id: Optional[int]
    participant_id: Optional[int]
    outcome: str
    timestamp: datetime
    details: Optional[dict[str, Any]] = None


class AuditSink(Protocol):
    def record(self, entry: AuditRecord) -> None:
        """Persist ``entry``. Must not raise for well-formed records."""
        ...


class DatabaseAuditSink:
    """Writes :class:`AuditLog` rows in a transaction of their own.

    A separate transaction keeps failed transitions on record even when the
    business transaction was rolled back.
    """

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory

    def record(self, entry: AuditRecord) -> None:
        with self._session_factory.begin() as session:
            session.add(
                AuditLog(
                    actor=entry.actor.identity,
                    action=entry.action,
                    event_id=entry.event_id,
                    prize_id=entry.prize_id,
                    participant_id=entry.participant_id,
                    outcome=entry.outcome,
                    details_json=(
                        json.dumps(entry.details, sort_keys=True)
                        if entry.details
                        else None
                    ),
                    source_address=entry.actor.source_address,
                    occurred_at=entry.timestamp,
                )
            )
        logger.info(
            "audit %s by %s: event=%s prize=%s participant=%s outcome=%s",
            entry.action,
            entry.actor.identity,
            entry.event_id,
            entry.prize_id,
            entry.participant_id,
            entry.outcome,
        )


class MemoryAuditSink:
    """Collects records in a list; handy for tests and dry runs."""

    def __init__(self) -> None:
        self.records: list[AuditRecord] = []

    def record(self, entry: AuditRecord) -> None:
        self.records.append(entry)


__all__ = [
    "Actor",
    "AuditRecord",
    "AuditSink",
    "DatabaseAuditSink",
    "MemoryAuditSink",
]
