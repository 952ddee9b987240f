from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING, Optional

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    func,
    select,
)
from sqlalchemy.orm import Mapped, Session, mapped_column, relationship

from .base import Base, ID_TYPE

if TYPE_CHECKING:
    from .event import Event
    from .winning import Winning

PRIZE_CATEGORIES = ("main", "regular")


class Prize(Base):
    """A prize type offered at an event, available ``quantity`` times."""

    __tablename__ = "prizes"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    event_id: Mapped[int] = mapped_column(
        ID_TYPE, ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    category: Mapped[str] = mapped_column(String(20), nullable=False, default="regular")
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    """Total units available. Remaining units are derived from winnings."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    event: Mapped["Event"] = relationship(back_populates="prizes")
    winnings: Mapped[list["Winning"]] = relationship(back_populates="prize")

    __table_args__ = (
        CheckConstraint("category IN ('main','regular')", name="category_enum"),
        CheckConstraint("quantity >= 1", name="quantity_positive"),
    )

    def __repr__(self) -> str:  # pragma: no cover - repr is trivial
        return "<Prize(id={id}, event_id={event_id}, category={cat}, quantity={qty})>".format(
            id=self.id,
            event_id=self.event_id,
            cat=self.category,
            qty=self.quantity,
        )

    def winnings_count(self, session: Session) -> int:
        """Return the number of committed winnings for this prize."""
        from .winning import Winning

        return session.scalar(
            select(func.count(Winning.id)).where(Winning.prize_id == self.id)
        ) or 0

    def remaining_quantity(self, session: Session) -> int:
        """Return ``quantity`` minus committed winnings, floored at zero."""
        return max(self.quantity - self.winnings_count(session), 0)
