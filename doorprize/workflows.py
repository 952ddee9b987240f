from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from .config import DrawSettings, load_settings
from .db.utils import as_utc
from .models import DrawReservation, Event, Forfeiture, Participant, Prize, Winning
from .models.event import EVENT_CATEGORIES
from .models.prize import PRIZE_CATEGORIES
from .prize_draw.errors import DrawInProgress
from .prize_draw.audit import Actor
from .prize_draw.eligibility import EligiblePool
from .prize_draw.workflow import SYSTEM_ACTOR, BatchDrawResult, DrawPreview, DrawWorkflow


def make_draw_workflow(
    database_url: Optional[str] = None,
    *,
    settings: Optional[DrawSettings] = None,
    **kwargs: Any,
) -> DrawWorkflow:
    """Create a :class:`DrawWorkflow` wired to a fresh engine.

    Parameters
    ----------
    database_url : Optional[str]
        Overrides ``settings.database_url``.
    settings : Optional[DrawSettings]
        Settings to use; loaded from the environment when omitted.
    **kwargs
        Forwarded to :class:`DrawWorkflow` (``randomness``, ``audit_sink``,
        ``clock``, ``policy``).
    """
    from .db.engine import get_sessionmaker, make_engine

    settings = settings or load_settings()
    engine = make_engine(database_url or settings.database_url)
    return DrawWorkflow(get_sessionmaker(engine), settings=settings, **kwargs)


def create_event(
    session: Session,
    name: str,
    *,
    category: str = "regular",
    capacity: Optional[int] = None,
) -> Event:
    """Persist a new event with the next free sequence number.

    Raises
    ------
    ValueError
        If ``category`` is unknown or ``capacity`` is negative.
    """

    if category not in EVENT_CATEGORIES:
        raise ValueError(f"category must be one of {EVENT_CATEGORIES}, got {category!r}")
    if capacity is not None and capacity < 0:
        raise ValueError("capacity must not be negative")

    event = Event(
        name=name,
        category=category,
        capacity=capacity,
        sequence_number=Event.next_sequence_number(session),
    )
    session.add(event)
    session.flush()
    return event


def register_participant(
    session: Session,
    event: Event,
    name: str,
    *,
    institution: Optional[str] = None,
) -> Participant:
    """Register ``name`` for ``event`` and assign a registration number.

    Registration numbers follow ``E<event sequence>-<NNNN>``: the sequential
    part is one more than the highest already issued for the event and is
    zero-padded to at least four digits.

    Parameters
    ----------
    session : Session
        Active SQLAlchemy session.
    event : Event
        Persisted event to register for.
    name : str
        Participant's display name.
    institution : Optional[str]
        Optional affiliation shown on the winner list.

    Returns
    -------
    Participant
        The flushed participant with ``registration_number`` populated.

    Raises
    ------
    ValueError
        If the event is not persisted or has reached its capacity.
    """

    if event.id is None:
        raise ValueError("Event must be persisted before registering participants")

    # Lock the event row so concurrent registrations pick distinct numbers
    # on databases that support row locks.
    session.scalar(select(Event.id).where(Event.id == event.id).with_for_update())

    if event.capacity is not None and event.participant_count(session) >= event.capacity:
        raise ValueError("Event has reached its maximum number of participants")

    prefix = f"E{event.sequence_number}-"
    issued = session.scalars(
        select(Participant.registration_number).where(
            Participant.event_id == event.id,
            Participant.registration_number.like(f"{prefix}%"),
        )
    ).all()
    sequence = [
        int(number.rsplit("-", 1)[-1])
        for number in issued
        if number.rsplit("-", 1)[-1].isdigit()
    ]
    next_number = max(sequence, default=0) + 1

    participant = Participant(
        event_id=event.id,
        name=name,
        institution=institution,
        registration_number=f"{prefix}{next_number:04d}",
    )
    session.add(participant)
    session.flush()
    return participant


def add_prize(
    session: Session,
    event: Event,
    name: str,
    *,
    quantity: int = 1,
    category: str = "regular",
    description: Optional[str] = None,
) -> Prize:
    """Attach a prize to ``event``."""

    if category not in PRIZE_CATEGORIES:
        raise ValueError(f"category must be one of {PRIZE_CATEGORIES}, got {category!r}")
    if quantity < 1:
        raise ValueError("quantity must be at least 1")

    prize = Prize(
        event_id=event.id,
        name=name,
        quantity=quantity,
        category=category,
        description=description,
    )
    session.add(prize)
    session.flush()
    return prize


def _live_reservation_count(session: Session, event_id: int, now: datetime) -> int:
    return session.scalar(
        select(func.count(DrawReservation.id)).where(
            DrawReservation.event_id == event_id,
            DrawReservation.expires_at > now,
        )
    ) or 0


def update_prize_quantity(
    session: Session,
    prize: Prize,
    quantity: int,
    *,
    now: Optional[datetime] = None,
) -> Prize:
    """Change how many units of ``prize`` are available.

    Edits are refused while any prize of the same event has a draw pending,
    so an operator never confirms against a quantity that changed under them.

    Raises
    ------
    DrawInProgress
        If a live draw reservation exists on the event.
    ValueError
        If ``quantity`` is below 1 or below the number already awarded.
    """

    if quantity < 1:
        raise ValueError("quantity must be at least 1")
    now = as_utc(now or datetime.now(timezone.utc))
    if _live_reservation_count(session, prize.event_id, now):
        raise DrawInProgress(
            f"event {prize.event_id} has a pending draw; prize quantities are frozen"
        )
    awarded = prize.winnings_count(session)
    if quantity < awarded:
        raise ValueError(
            f"quantity {quantity} is below the {awarded} units already awarded"
        )
    prize.quantity = quantity
    session.flush()
    return prize


def forfeit_participant(
    session: Session,
    event: Event,
    participant: Participant,
    *,
    reason: Optional[str] = None,
) -> Forfeiture:
    """Disqualify ``participant`` from further draws of ``event``.

    Calling it again for the same participant returns the existing record.
    Winnings already confirmed are not touched.
    """

    if participant.event_id != event.id:
        raise ValueError("Participant is not registered for this event")

    existing = session.scalar(
        select(Forfeiture).where(
            Forfeiture.event_id == event.id,
            Forfeiture.participant_id == participant.id,
        )
    )
    if existing is not None:
        return existing

    forfeiture = Forfeiture(
        event_id=event.id,
        participant_id=participant.id,
        reason=reason,
    )
    session.add(forfeiture)
    session.flush()
    return forfeiture


def draw_statistics(session: Session, event: Event) -> dict[str, Any]:
    """Summarize drawing progress for ``event``.

    Returns
    -------
    dict[str, Any]
        ``total_prizes``, ``total_quantity``, ``total_drawings``,
        ``remaining_prizes``, ``total_participants``, ``winners_count``,
        ``eligible_participants`` (registered, not forfeited, and without any
        winning in the event) and per-category ``total``/``drawn`` counts.
    """

    prizes = session.scalars(select(Prize).where(Prize.event_id == event.id)).all()
    prize_ids = [prize.id for prize in prizes]

    drawn_by_prize: dict[int, int] = {}
    if prize_ids:
        drawn_by_prize = {
            prize_id: count
            for prize_id, count in session.execute(
                select(Winning.prize_id, func.count(Winning.id))
                .where(Winning.prize_id.in_(prize_ids))
                .group_by(Winning.prize_id)
            ).all()
        }

    winners = select(Winning.participant_id).where(Winning.prize_id.in_(prize_ids))
    forfeited = select(Forfeiture.participant_id).where(Forfeiture.event_id == event.id)
    total_participants = event.participant_count(session)
    winners_count = session.scalar(
        select(func.count(func.distinct(Winning.participant_id))).where(
            Winning.prize_id.in_(prize_ids)
        )
    ) or 0
    eligible = session.scalar(
        select(func.count(Participant.id)).where(
            Participant.event_id == event.id,
            Participant.id.not_in(winners),
            Participant.id.not_in(forfeited),
        )
    ) or 0

    categories: dict[str, dict[str, int]] = {
        category: {"total": 0, "drawn": 0} for category in PRIZE_CATEGORIES
    }
    for prize in prizes:
        bucket = categories.setdefault(prize.category, {"total": 0, "drawn": 0})
        bucket["total"] += prize.quantity
        bucket["drawn"] += drawn_by_prize.get(prize.id, 0)

    total_quantity = sum(prize.quantity for prize in prizes)
    total_drawings = sum(drawn_by_prize.values())
    return {
        "total_prizes": len(prizes),
        "total_quantity": total_quantity,
        "total_drawings": total_drawings,
        "remaining_prizes": total_quantity - total_drawings,
        "total_participants": total_participants,
        "winners_count": winners_count,
        "eligible_participants": eligible,
        "categories": categories,
    }


def preview_draw(
    workflow: DrawWorkflow, event_id: int, prize_id: int, actor: Actor = SYSTEM_ACTOR
) -> DrawPreview:
    """Start a draw on ``prize_id``; see :meth:`DrawWorkflow.preview_draw`."""
    return workflow.preview_draw(event_id, prize_id, actor)


def confirm_draw(
    workflow: DrawWorkflow,
    event_id: int,
    prize_id: int,
    participant_id: int,
    actor: Actor = SYSTEM_ACTOR,
) -> Winning:
    """Commit the previewed winner; see :meth:`DrawWorkflow.confirm_draw`."""
    return workflow.confirm_draw(event_id, prize_id, participant_id, actor)


def cancel_draw(
    workflow: DrawWorkflow, event_id: int, prize_id: int, actor: Actor = SYSTEM_ACTOR
) -> bool:
    return workflow.cancel_draw(event_id, prize_id, actor)


def list_eligible(workflow: DrawWorkflow, event_id: int, prize_id: int) -> EligiblePool:
    return workflow.list_eligible(event_id, prize_id)


def draw_prize(
    workflow: DrawWorkflow, event_id: int, prize_id: int, actor: Actor = SYSTEM_ACTOR
) -> BatchDrawResult:
    """Draw every remaining winner of a prize; see :meth:`DrawWorkflow.draw_prize`."""
    return workflow.draw_prize(event_id, prize_id, actor)


def draw_all_prizes(
    workflow: DrawWorkflow, event_id: int, actor: Actor = SYSTEM_ACTOR
) -> list[BatchDrawResult]:
    """Draw every prize of an event in one pass.

    Prizes are visited in id order. Once the eligible pool runs out the
    remaining prizes report ``stopped_by="empty_pool"``.
    """
    return workflow.draw_all_prizes(event_id, actor)
