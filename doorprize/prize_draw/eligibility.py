"""Computation of the candidate pool for a prize drawing."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterator, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from .errors import NotFound
from .exclusivity import DEFAULT_POLICY_REGISTRY, ExclusivityPolicy
from ..models import DrawReservation, Event, Forfeiture, Participant, Prize, Winning


@dataclass(frozen=True)
class EligiblePool:
    """Fully materialized set of participants who may win a prize right now.

    The pool is always complete: it is built from a single unpaginated query,
    never from a page of results.
    """

    event_id: int
    prize_id: int
    participants: tuple[Participant, ...]

    def __len__(self) -> int:
        return len(self.participants)

    def __iter__(self) -> Iterator[Participant]:
        return iter(self.participants)

    def __getitem__(self, index: int) -> Participant:
        return self.participants[index]

    def __contains__(self, participant: object) -> bool:
        if not isinstance(participant, Participant):
            return False
        return participant.id in self.participant_ids

    @property
    def participant_ids(self) -> frozenset[int]:
        return frozenset(participant.id for participant in self.participants)

    @property
    def registration_numbers(self) -> list[str]:
        return [participant.registration_number for participant in self.participants]


def load_event_and_prize(
    session: Session, event_id: int, prize_id: int
) -> tuple[Event, Prize]:
    """Fetch the event and prize, requiring the prize to belong to the event.

    Raises
    ------
    NotFound
        If either row is missing or the prize belongs to another event.
    """

    event = session.get(Event, event_id)
    if event is None:
        raise NotFound(f"event {event_id} does not exist")
    prize = session.get(Prize, prize_id)
    if prize is None or prize.event_id != event.id:
        raise NotFound(f"prize {prize_id} does not exist for event {event_id}")
    return event, prize


class EligibilityResolver:
    """Applies the exclusivity policy and pending-draw exclusions to a prize."""

    def __init__(self, policy: Optional[ExclusivityPolicy] = None) -> None:
        self.policy = policy or DEFAULT_POLICY_REGISTRY.get("event")

    def conflicting_prize_ids(self, session: Session, prize: Prize) -> list[int]:
        """Return ids of the event's prizes whose winners cannot win ``prize``.

        The list always contains ``prize.id`` itself.
        """
        siblings = session.scalars(
            select(Prize).where(Prize.event_id == prize.event_id).order_by(Prize.id)
        ).all()
        return [other.id for other in siblings if self.policy.conflicts(prize, other)]

    def eligible(
        self,
        session: Session,
        event: Event,
        prize: Prize,
        *,
        now: Optional[datetime] = None,
    ) -> EligiblePool:
        """Return every participant of ``event`` who may win ``prize``.

        Excluded are participants who hold a conflicting winning, who are
        the live pending candidate of another prize's draw, or who have been
        forfeited from the event.

        Raises
        ------
        NotFound
            If ``prize`` does not belong to ``event``.
        """

        if prize.event_id != event.id:
            raise NotFound(f"prize {prize.id} does not exist for event {event.id}")
        now = now or datetime.now(timezone.utc)

        already_won = select(Winning.participant_id).where(
            Winning.prize_id.in_(self.conflicting_prize_ids(session, prize))
        )
        pending_elsewhere = select(DrawReservation.participant_id).where(
            DrawReservation.event_id == event.id,
            DrawReservation.prize_id != prize.id,
            DrawReservation.participant_id.isnot(None),
            DrawReservation.expires_at > now,
        )
        forfeited = select(Forfeiture.participant_id).where(
            Forfeiture.event_id == event.id
        )

        stmt = (
            select(Participant)
            .where(
                Participant.event_id == event.id,
                Participant.id.not_in(already_won),
                Participant.id.not_in(pending_elsewhere),
                Participant.id.not_in(forfeited),
            )
            .order_by(Participant.id.asc())
        )
        # The pool must be complete: no LIMIT or paging here.
        participants = tuple(session.scalars(stmt).all())
        return EligiblePool(event_id=event.id, prize_id=prize.id, participants=participants)

    def conflict_reason(
        self, session: Session, prize: Prize, participant: Participant
    ) -> Optional[str]:
        """Explain why ``participant`` can no longer win ``prize``, if so.

        Used at commit time, after the participant was previewed, to catch
        winnings or forfeitures recorded in the meantime.
        """

        if participant.event_id != prize.event_id:
            return "participant is not registered for the prize's event"
        forfeited = session.scalar(
            select(Forfeiture.id).where(
                Forfeiture.event_id == prize.event_id,
                Forfeiture.participant_id == participant.id,
            )
        )
        if forfeited is not None:
            return "participant has been forfeited from the event"
        held = session.scalar(
            select(Winning.prize_id).where(
                Winning.participant_id == participant.id,
                Winning.prize_id.in_(self.conflicting_prize_ids(session, prize)),
            )
        )
        if held is not None:
            return f"participant already holds conflicting prize {held}"
        return None


__all__ = ["EligibilityResolver", "EligiblePool", "load_event_and_prize"]
