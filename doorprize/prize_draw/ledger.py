"""Authoritative record of prize allocations and per-prize draw reservations."""

from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Optional

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from .eligibility import EligibilityResolver
from .errors import Busy, Conflict, Expired, NotFound, PrizeExhausted
from ..db.utils import as_utc
from ..models import DrawReservation, Participant, Prize, Winning

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class ReservationHandle:
    """Proof that the caller holds the draw reservation for a prize."""

    prize_id: int
    event_id: int
    token: str
    actor: str
    reserved_at: datetime
    expires_at: datetime
    reclaimed: Optional["PendingDraw"] = field(default=None, compare=False, repr=False)
    """Timed-out draw this reservation replaced, if any."""


@dataclass(frozen=True)
class PendingDraw:
    """The draw attempt stored on a live or stale reservation."""

    handle: ReservationHandle
    participant_id: Optional[int]
    animation_plan: Optional[dict[str, Any]]
    randomness_digest: Optional[str]

    def is_expired(self, now: datetime) -> bool:
        return self.handle.expires_at <= as_utc(now)

    @classmethod
    def from_row(cls, row: DrawReservation) -> "PendingDraw":
        return cls(
            handle=ReservationHandle(
                prize_id=row.prize_id,
                event_id=row.event_id,
                token=row.token,
                actor=row.actor,
                reserved_at=as_utc(row.reserved_at),
                expires_at=as_utc(row.expires_at),
            ),
            participant_id=row.participant_id,
            animation_plan=row.animation_plan,
            randomness_digest=row.randomness_digest,
        )


def _unsynchronized(stmt):
    return stmt.execution_options(synchronize_session=False)


class AllocationLedger:
    """Transactional ``reserve`` / ``commit`` / ``release`` over prize rows.

    Each operation runs in its own transaction opened from
    ``session_factory`` so that a reservation is visible to every other
    process as soon as :meth:`reserve` returns.
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        resolver: EligibilityResolver,
        *,
        timeout_seconds: int = 120,
        clock: Optional[Clock] = None,
    ) -> None:
        if timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be positive")
        self._session_factory = session_factory
        self._resolver = resolver
        self.timeout = timedelta(seconds=timeout_seconds)
        self._clock = clock or utc_now

    def now(self) -> datetime:
        return as_utc(self._clock())

    def remaining(self, prize_id: int) -> int:
        """Return how many units of the prize can still be awarded."""
        with self._session_factory() as session:
            prize = session.get(Prize, prize_id)
            if prize is None:
                raise NotFound(f"prize {prize_id} does not exist")
            return prize.remaining_quantity(session)

    def reserve(self, prize_id: int, actor: str) -> ReservationHandle:
        """Take the exclusive draw reservation for ``prize_id``.

        A timed-out reservation on the prize is taken over; the replaced draw
        is returned on :attr:`ReservationHandle.reclaimed` so the caller can
        record its expiry.

        Raises
        ------
        NotFound
            If the prize does not exist.
        PrizeExhausted
            If every unit of the prize has been awarded.
        Busy
            If another live reservation holds the prize.
        """

        now = self.now()
        token = secrets.token_hex(16)
        try:
            with self._session_factory.begin() as session:
                prize = session.get(Prize, prize_id)
                if prize is None:
                    raise NotFound(f"prize {prize_id} does not exist")

                reclaimed = None
                stale = session.scalar(
                    select(DrawReservation).where(
                        DrawReservation.prize_id == prize_id,
                        DrawReservation.expires_at <= now,
                    )
                )
                if stale is not None:
                    # Compare-and-swap on token and expires_at so a live
                    # reservation is never removed.
                    result = session.execute(
                        _unsynchronized(
                            delete(DrawReservation).where(
                                DrawReservation.id == stale.id,
                                DrawReservation.token == stale.token,
                                DrawReservation.expires_at <= now,
                            )
                        )
                    )
                    if result.rowcount == 1:
                        reclaimed = PendingDraw.from_row(stale)
                        logger.warning("Reclaimed expired reservation on prize %s", prize_id)

                if prize.remaining_quantity(session) <= 0:
                    raise PrizeExhausted(
                        f"prize {prize_id} has no remaining capacity"
                    )

                reservation = DrawReservation(
                    prize_id=prize.id,
                    event_id=prize.event_id,
                    token=token,
                    actor=actor,
                    reserved_at=now,
                    expires_at=now + self.timeout,
                )
                session.add(reservation)
                session.flush()
                handle = replace(
                    PendingDraw.from_row(reservation).handle, reclaimed=reclaimed
                )
        except IntegrityError as exc:
            raise Busy(f"a draw for prize {prize_id} is already pending") from exc

        logger.info("Reserved prize %s for %s until %s", prize_id, actor, handle.expires_at)
        return handle

    def attach(
        self,
        handle: ReservationHandle,
        participant_id: int,
        *,
        animation_plan: Optional[dict[str, Any]] = None,
        randomness_digest: Optional[str] = None,
    ) -> None:
        """Record the previewed candidate on the reservation.

        Raises
        ------
        Busy
            If the participant is already the pending candidate of another
            prize of the event.
        Expired
            If the reservation is no longer held by ``handle``.
        """

        try:
            with self._session_factory.begin() as session:
                result = session.execute(
                    _unsynchronized(
                        update(DrawReservation)
                        .where(
                            DrawReservation.prize_id == handle.prize_id,
                            DrawReservation.token == handle.token,
                        )
                        .values(
                            participant_id=participant_id,
                            animation_plan=animation_plan,
                            randomness_digest=randomness_digest,
                        )
                    )
                )
                if result.rowcount != 1:
                    raise Expired(
                        f"reservation on prize {handle.prize_id} was lost before the draw completed"
                    )
        except IntegrityError as exc:
            raise Busy(
                f"participant {participant_id} is pending on another prize"
            ) from exc

    def pending(self, prize_id: int) -> Optional[PendingDraw]:
        """Return the reservation on ``prize_id``, expired or not."""
        with self._session_factory() as session:
            row = session.scalar(
                select(DrawReservation).where(DrawReservation.prize_id == prize_id)
            )
            return PendingDraw.from_row(row) if row is not None else None

    def commit(self, handle: ReservationHandle, participant_id: int) -> Winning:
        """Convert the reservation into a :class:`Winning`.

        The reservation delete, the capacity and exclusivity re-validation,
        and the winning insert form a single transaction. On failure nothing
        is written and the reservation is left in place for the caller to
        release.

        Raises
        ------
        Expired
            If the reservation timed out before the commit.
        Conflict
            If the reservation is gone, the prize is full, or the participant
            became ineligible since the preview.
        """

        now = self.now()
        try:
            with self._session_factory.begin() as session:
                # Written first so SQLite takes its write lock before any
                # re-validation read.
                claimed = session.execute(
                    _unsynchronized(
                        delete(DrawReservation).where(
                            DrawReservation.prize_id == handle.prize_id,
                            DrawReservation.token == handle.token,
                            DrawReservation.expires_at > now,
                        )
                    )
                )
                if claimed.rowcount != 1:
                    self._raise_lost_reservation(session, handle)

                prize = session.scalar(
                    select(Prize).where(Prize.id == handle.prize_id).with_for_update()
                )
                participant = session.get(Participant, participant_id)
                if prize is None or participant is None:
                    raise Conflict("prize or participant no longer exists")
                if prize.winnings_count(session) >= prize.quantity:
                    raise Conflict(f"prize {prize.id} has no remaining capacity")
                reason = self._resolver.conflict_reason(session, prize, participant)
                if reason is not None:
                    raise Conflict(reason)

                winning = Winning(
                    participant_id=participant.id,
                    prize_id=prize.id,
                    exclusivity_group=self._resolver.policy.group_for(prize),
                    created_at=now,
                )
                session.add(winning)
                session.flush()
        except IntegrityError as exc:
            raise Conflict("winning violates an allocation constraint") from exc

        logger.info(
            "Committed winning %s: participant %s, prize %s",
            winning.id,
            participant_id,
            handle.prize_id,
        )
        return winning

    def _raise_lost_reservation(self, session: Session, handle: ReservationHandle) -> None:
        still_there = session.scalar(
            select(DrawReservation.id).where(
                DrawReservation.prize_id == handle.prize_id,
                DrawReservation.token == handle.token,
            )
        )
        if still_there is not None:
            raise Expired(f"draw on prize {handle.prize_id} expired before confirmation")
        raise Conflict(f"reservation on prize {handle.prize_id} is no longer held")

    def release(self, handle: ReservationHandle) -> bool:
        """Drop the reservation held by ``handle``.

        Returns ``False`` when the reservation was already gone. Winnings are
        never touched.
        """

        with self._session_factory.begin() as session:
            result = session.execute(
                _unsynchronized(
                    delete(DrawReservation).where(
                        DrawReservation.prize_id == handle.prize_id,
                        DrawReservation.token == handle.token,
                    )
                )
            )
            released = result.rowcount == 1
        if released:
            logger.info("Released reservation on prize %s", handle.prize_id)
        return released

    def sweep_expired(
        self,
        *,
        event_id: Optional[int] = None,
        prize_id: Optional[int] = None,
    ) -> list[PendingDraw]:
        """Delete timed-out reservations and return what was removed."""

        now = self.now()
        swept: list[PendingDraw] = []
        with self._session_factory.begin() as session:
            stmt = select(DrawReservation).where(DrawReservation.expires_at <= now)
            if event_id is not None:
                stmt = stmt.where(DrawReservation.event_id == event_id)
            if prize_id is not None:
                stmt = stmt.where(DrawReservation.prize_id == prize_id)
            for row in session.scalars(stmt).all():
                pending = PendingDraw.from_row(row)
                result = session.execute(
                    _unsynchronized(
                        delete(DrawReservation).where(
                            DrawReservation.id == row.id,
                            DrawReservation.token == row.token,
                        )
                    )
                )
                if result.rowcount == 1:
                    swept.append(pending)
        return swept


__all__ = [
    "AllocationLedger",
    "PendingDraw",
    "ReservationHandle",
    "utc_now",
]
