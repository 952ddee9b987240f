from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING, Optional

from sqlalchemy import DateTime, ForeignKey, String, UniqueConstraint, select
from sqlalchemy.orm import Mapped, Session, mapped_column, relationship

from .base import Base, ID_TYPE

if TYPE_CHECKING:
    from .event import Event
    from .winning import Winning


class Participant(Base):
    """A person registered to exactly one event."""

    __tablename__ = "participants"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    event_id: Mapped[int] = mapped_column(
        ID_TYPE, ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    registration_number: Mapped[str] = mapped_column(String(32), nullable=False)
    """Per-event identifier such as ``E1-0042``; also feeds the reel animation."""

    institution: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    event: Mapped["Event"] = relationship(back_populates="participants")
    winnings: Mapped[list["Winning"]] = relationship(back_populates="participant")

    __table_args__ = (
        UniqueConstraint(
            "event_id",
            "registration_number",
            name="uq_participants_event_registration_number",
        ),
    )

    def __repr__(self) -> str:  # pragma: no cover - repr is trivial
        return "<Participant(id={id}, event_id={event_id}, registration_number={reg})>".format(
            id=self.id,
            event_id=self.event_id,
            reg=self.registration_number,
        )

    @classmethod
    def get_by_registration_number(
        cls, session: Session, event_id: int, registration_number: str
    ) -> Optional["Participant"]:
        """Return the participant of ``event_id`` with ``registration_number``."""
        return session.scalar(
            select(cls).where(
                cls.event_id == event_id,
                cls.registration_number == registration_number,
            )
        )
