from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING, Optional

from sqlalchemy import CheckConstraint, DateTime, Integer, String, func, select
from sqlalchemy.orm import Mapped, Session, mapped_column, relationship

from .base import Base, ID_TYPE

if TYPE_CHECKING:
    from .forfeiture import Forfeiture
    from .participant import Participant
    from .prize import Prize

EVENT_CATEGORIES = ("main", "regular")


class Event(Base):
    """An organizer's event that owns participants and prizes."""

    __tablename__ = "events"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    category: Mapped[str] = mapped_column(String(20), nullable=False, default="regular")
    capacity: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    """Maximum number of participants; ``None`` means unlimited."""

    sequence_number: Mapped[int] = mapped_column(Integer, nullable=False, unique=True)
    """Event-wide sequence used as the prefix of registration numbers."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    participants: Mapped[list["Participant"]] = relationship(
        back_populates="event", cascade="all, delete-orphan"
    )
    prizes: Mapped[list["Prize"]] = relationship(
        back_populates="event", cascade="all, delete-orphan"
    )
    forfeitures: Mapped[list["Forfeiture"]] = relationship(
        back_populates="event", cascade="all, delete-orphan"
    )

    __table_args__ = (
        CheckConstraint("category IN ('main','regular')", name="category_enum"),
        CheckConstraint("capacity IS NULL OR capacity >= 0", name="capacity_non_negative"),
    )

    def __repr__(self) -> str:  # pragma: no cover - repr is trivial
        return f"<Event(id={self.id}, name={self.name!r}, category={self.category})>"

    @classmethod
    def next_sequence_number(cls, session: Session) -> int:
        """Return the sequence number the next created event should use."""
        current = session.scalar(select(func.max(cls.sequence_number)))
        return (current or 0) + 1

    def participant_count(self, session: Session) -> int:
        from .participant import Participant

        return session.scalar(
            select(func.count(Participant.id)).where(Participant.event_id == self.id)
        ) or 0
