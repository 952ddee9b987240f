"""Per-prize draw reservations backing the preview/confirm workflow."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING, Optional

from sqlalchemy import JSON, DateTime, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, ID_TYPE

if TYPE_CHECKING:
    from .participant import Participant
    from .prize import Prize


class DrawReservation(Base):
    """Exclusive hold on a prize while a previewed draw awaits confirmation.

    The ``UNIQUE(prize_id)`` constraint is the cross-process lock: inserting a
    row reserves the prize, deleting it releases the prize. The pending
    candidate (the draw attempt) is attached to the same row once selected.
    """

    __tablename__ = "draw_reservations"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    """Primary key."""

    prize_id: Mapped[int] = mapped_column(
        ID_TYPE, ForeignKey("prizes.id", ondelete="CASCADE"), nullable=False
    )
    """Prize held by this reservation."""

    event_id: Mapped[int] = mapped_column(
        ID_TYPE, ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True
    )
    """Event owning the prize, denormalized for pool exclusion queries."""

    token: Mapped[str] = mapped_column(String(64), nullable=False)
    """Opaque handle token; release and commit compare against it."""

    actor: Mapped[str] = mapped_column(String(100), nullable=False)
    """Operator who started the preview."""

    participant_id: Mapped[Optional[int]] = mapped_column(
        ID_TYPE, ForeignKey("participants.id", ondelete="CASCADE"), nullable=True
    )
    """Previewed candidate; ``None`` until the engine has selected one."""

    animation_plan: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    """Serialized reel animation handed to the client."""

    randomness_digest: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    """SHA-256 digest of the randomness token used for the selection."""

    reserved_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    """After this instant the reservation no longer blocks the prize."""

    prize: Mapped["Prize"] = relationship()
    participant: Mapped[Optional["Participant"]] = relationship()

    __table_args__ = (
        UniqueConstraint("prize_id", name="uq_draw_reservations_prize_id"),
        UniqueConstraint(
            "event_id", "participant_id", name="uq_draw_reservations_event_participant"
        ),
    )

    def __repr__(self) -> str:  # pragma: no cover - repr is trivial
        return "<DrawReservation(prize_id={prize}, participant_id={pid}, expires_at={exp})>".format(
            prize=self.prize_id,
            pid=self.participant_id,
            exp=self.expires_at,
        )
