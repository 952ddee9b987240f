from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING, Optional

from sqlalchemy import DateTime, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, ID_TYPE

if TYPE_CHECKING:
    from .participant import Participant
    from .prize import Prize


class Winning(Base):
    """Immutable record of a confirmed draw awarding a prize to a participant."""

    __tablename__ = "winnings"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    """Primary key."""

    participant_id: Mapped[int] = mapped_column(
        ID_TYPE, ForeignKey("participants.id", ondelete="CASCADE"), nullable=False, index=True
    )
    """Participant who won."""

    prize_id: Mapped[int] = mapped_column(
        ID_TYPE, ForeignKey("prizes.id", ondelete="CASCADE"), nullable=False, index=True
    )
    """Prize that was awarded."""

    exclusivity_group: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    """Group key of the prize at commit time; ``None`` when the prize is unrestricted."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    """Timestamp of the confirmation."""

    participant: Mapped["Participant"] = relationship(back_populates="winnings")
    prize: Mapped["Prize"] = relationship(back_populates="winnings")

    __table_args__ = (
        UniqueConstraint("participant_id", "prize_id", name="uq_winnings_participant_prize"),
        # NULL groups never collide, so unrestricted prizes are only bound by
        # the participant/prize constraint above.
        UniqueConstraint(
            "participant_id", "exclusivity_group", name="uq_winnings_participant_group"
        ),
    )

    def __repr__(self) -> str:  # pragma: no cover - repr is trivial
        return "<Winning(id={id}, participant_id={pid}, prize_id={prize})>".format(
            id=self.id,
            pid=self.participant_id,
            prize=self.prize_id,
        )
