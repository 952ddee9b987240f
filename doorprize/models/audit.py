from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import CheckConstraint, DateTime, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, ID_TYPE

AUDIT_ACTIONS = ("preview", "confirm", "cancel", "expire")


class AuditLog(Base):
    """Append-only trail of every draw workflow transition.

    Subject ids are stored without foreign keys so that the trail survives
    administrative deletion of events or participants.
    """

    __tablename__ = "audit_logs"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    actor: Mapped[str] = mapped_column(String(100), nullable=False)
    action: Mapped[str] = mapped_column(String(20), nullable=False)
    event_id: Mapped[Optional[int]] = mapped_column(ID_TYPE, nullable=True)
    prize_id: Mapped[Optional[int]] = mapped_column(ID_TYPE, nullable=True)
    participant_id: Mapped[Optional[int]] = mapped_column(ID_TYPE, nullable=True)
    outcome: Mapped[str] = mapped_column(String(30), nullable=False)
    details_json: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    source_address: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    occurred_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        CheckConstraint(
            "action IN ('preview','confirm','cancel','expire')", name="action_enum"
        ),
        Index("ix_audit_logs_prize_occurred", "prize_id", "occurred_at"),
    )
