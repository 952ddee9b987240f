"""Two-phase preview/confirm state machine for live prize drawings."""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session, sessionmaker

from .animation import AnimationPlan, AnimationSequenceGenerator
from .audit import Actor, AuditRecord, AuditSink, DatabaseAuditSink
from .eligibility import EligibilityResolver, EligiblePool, load_event_and_prize
from .engine import DrawEngine, DrawOutcome
from .errors import Conflict, DrawError, Expired, NotFound, PrizeExhausted
from .exclusivity import DEFAULT_POLICY_REGISTRY, ExclusivityPolicy
from .ledger import AllocationLedger, Clock, PendingDraw, ReservationHandle
from .randomness import RandomSource
from ..config import DrawSettings, load_settings
from ..db.utils import dt_iso
from ..models import Event, Participant, Prize, Winning

logger = logging.getLogger(__name__)

SYSTEM_ACTOR = Actor(identity="system")


class DrawState(str, enum.Enum):
    IDLE = "idle"
    PREVIEWING = "previewing"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    EXPIRED = "expired"


@dataclass(frozen=True)
class ParticipantSummary:
    id: int
    name: str
    registration_number: str
    institution: Optional[str] = None

    @classmethod
    def from_participant(cls, participant: Participant) -> "ParticipantSummary":
        return cls(
            id=participant.id,
            name=participant.name,
            registration_number=participant.registration_number,
            institution=participant.institution,
        )


@dataclass(frozen=True)
class DrawPreview:
    """Pending result returned to the operator before confirmation."""

    event_id: int
    prize_id: int
    participant: ParticipantSummary
    animation: AnimationPlan
    expires_at: datetime
    pool_size: int
    state: DrawState = DrawState.PREVIEWING

    def to_dict(self) -> dict[str, Any]:
        return {
            "event_id": self.event_id,
            "prize_id": self.prize_id,
            "state": self.state.value,
            "winner": {
                "id": self.participant.id,
                "name": self.participant.name,
                "registration_number": self.participant.registration_number,
                "institution": self.participant.institution,
            },
            "slot_animation": self.animation.to_dict(),
            "expires_at": dt_iso(self.expires_at),
            "pool_size": self.pool_size,
        }


@dataclass(frozen=True)
class BatchDrawResult:
    """Winnings committed for one prize by an unattended draw.

    Attributes
    ----------
    prize_id : int
        Prize that was drawn.
    winnings : tuple[Winning, ...]
        Winnings committed by this call, in draw order.
    stopped_by : Optional[str]
        Error code that ended the batch before the prize was full
        (``"empty_pool"``, ``"busy"``, ...), or ``None`` when every unit of
        the prize is now awarded.
    """

    prize_id: int
    winnings: tuple[Winning, ...] = ()
    stopped_by: Optional[str] = None

    @property
    def complete(self) -> bool:
        return self.stopped_by is None

    def to_dict(self) -> dict[str, Any]:
        return {
            "prize_id": self.prize_id,
            "winner_ids": [winning.participant_id for winning in self.winnings],
            "complete": self.complete,
            "stopped_by": self.stopped_by,
        }


class DrawWorkflow:
    """Coordinates eligibility, selection, animation, and the ledger.

    One instance can serve any number of concurrent requests; all shared
    state lives in the database behind :class:`AllocationLedger`.
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        *,
        settings: Optional[DrawSettings] = None,
        policy: Optional[ExclusivityPolicy] = None,
        randomness: Optional[RandomSource] = None,
        audit_sink: Optional[AuditSink] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        """Create a workflow bound to a session factory.

        Parameters
        ----------
        session_factory : sessionmaker[Session]
            Factory for independent sessions. It must be configured with
            ``expire_on_commit=False`` (see :func:`doorprize.db.engine.get_sessionmaker`).
        settings : Optional[DrawSettings], default: None
            Timeouts, reel geometry, and the exclusivity policy key. Loaded
            from the environment when omitted.
        policy : Optional[ExclusivityPolicy], default: None
            Overrides the policy named in ``settings``.
        randomness : Optional[RandomSource], default: None
            Entropy source for the engine; the OS CSPRNG when omitted.
        audit_sink : Optional[AuditSink], default: None
            Receiver of transition records; database-backed when omitted.
        clock : Optional[Clock], default: None
            Source of "now", injectable to test timeouts.
        """

        settings = settings or load_settings()
        self._session_factory = session_factory
        self.settings = settings
        self.resolver = EligibilityResolver(
            policy or DEFAULT_POLICY_REGISTRY.get(settings.exclusivity_policy)
        )
        self.engine = DrawEngine(randomness)
        self.animator = AnimationSequenceGenerator(
            reel_length=settings.reel_length,
            stagger_ms=settings.reel_stagger_ms,
            final_spin_ms=settings.final_spin_ms,
        )
        self.ledger = AllocationLedger(
            session_factory,
            self.resolver,
            timeout_seconds=settings.preview_timeout_seconds,
            clock=clock,
        )
        self.audit = audit_sink or DatabaseAuditSink(session_factory)

    # ------------------------------------------------------------------ reads

    def list_eligible(self, event_id: int, prize_id: int) -> EligiblePool:
        """Return the complete eligible pool for a prize."""
        with self._session_factory() as session:
            event, prize = load_event_and_prize(session, event_id, prize_id)
            return self.resolver.eligible(session, event, prize, now=self.ledger.now())

    def draw_state(self, prize_id: int) -> DrawState:
        """Return ``PREVIEWING`` while a live draw holds the prize, else ``IDLE``."""
        pending = self.ledger.pending(prize_id)
        if pending is None or pending.is_expired(self.ledger.now()):
            return DrawState.IDLE
        return DrawState.PREVIEWING

    # ------------------------------------------------------------ transitions

    def preview_draw(self, event_id: int, prize_id: int, actor: Actor) -> DrawPreview:
        """Select a candidate and hold the prize until confirm, cancel, or timeout.

        Nothing is written to the ledger's winnings. If any step fails the
        reservation is released and the error is raised unchanged.

        Raises
        ------
        NotFound, PrizeExhausted, Busy, EmptyPool
            See :mod:`doorprize.prize_draw.errors`.
        """

        self.expire_stale(actor, event_id=event_id)
        try:
            with self._session_factory() as session:
                load_event_and_prize(session, event_id, prize_id)

            handle = self._reserve(prize_id, actor)
            try:
                pool, outcome = self._select(event_id, prize_id)
                plan = self.animator.generate(
                    outcome.winner.registration_number,
                    self.settings.reel_count,
                    filler_identifiers=pool.registration_numbers,
                )
                summary = ParticipantSummary.from_participant(outcome.winner)
                self.ledger.attach(
                    handle,
                    summary.id,
                    animation_plan=plan.to_dict(),
                    randomness_digest=outcome.token.digest,
                )
            except Exception:
                self.ledger.release(handle)
                raise
        except DrawError as exc:
            logger.info("Preview of prize %s failed: %s", prize_id, exc)
            self._record(actor, "preview", event_id, prize_id, None, exc.code, error=str(exc))
            raise

        logger.info(
            "Previewing prize %s: participant %s (%s) from %d candidates",
            prize_id,
            summary.id,
            summary.registration_number,
            outcome.pool_size,
        )
        self._record(
            actor,
            "preview",
            event_id,
            prize_id,
            summary.id,
            DrawState.PREVIEWING.value,
            pool_size=outcome.pool_size,
            randomness_digest=outcome.token.digest,
        )
        return DrawPreview(
            event_id=event_id,
            prize_id=prize_id,
            participant=summary,
            animation=plan,
            expires_at=handle.expires_at,
            pool_size=outcome.pool_size,
        )

    def confirm_draw(
        self, event_id: int, prize_id: int, participant_id: int, actor: Actor
    ) -> Winning:
        """Commit the previewed candidate as a winning.

        ``participant_id`` must name the previewed candidate; a mismatching
        (stale or racing) confirmation is rejected and the pending draw is
        left untouched for its rightful operator.

        Raises
        ------
        NotFound
            If the event/prize pair does not resolve.
        Expired
            If the preview timed out. The prize is released.
        Conflict
            If nothing is pending, the participant does not match, or
            commit-time re-validation fails. In the last case the prize is
            released and the operator must draw again.
        """

        with self._session_factory() as session:
            load_event_and_prize(session, event_id, prize_id)

        pending = self.ledger.pending(prize_id)
        if pending is None or pending.participant_id is None:
            error = Conflict(f"no draw is pending for prize {prize_id}")
            self._record(actor, "confirm", event_id, prize_id, participant_id, error.code, error=str(error))
            raise error
        if pending.is_expired(self.ledger.now()):
            self._expire_pending(actor, pending)
            raise Expired(f"draw on prize {prize_id} expired before confirmation")
        if pending.participant_id != participant_id:
            error = Conflict(
                f"participant {participant_id} is not the pending candidate for prize {prize_id}"
            )
            logger.warning("Rejected stale confirmation on prize %s", prize_id)
            self._record(actor, "confirm", event_id, prize_id, participant_id, error.code, error=str(error))
            raise error

        try:
            winning = self.ledger.commit(pending.handle, participant_id)
        except Expired:
            self._expire_pending(actor, pending)
            raise
        except DrawError as exc:
            self.ledger.release(pending.handle)
            logger.warning("Confirmation on prize %s failed: %s", prize_id, exc)
            self._record(actor, "confirm", event_id, prize_id, participant_id, exc.code, error=str(exc))
            raise
        except Exception:
            self.ledger.release(pending.handle)
            raise

        self._record(
            actor,
            "confirm",
            event_id,
            prize_id,
            participant_id,
            DrawState.CONFIRMED.value,
            winning_id=winning.id,
        )
        return winning

    def cancel_draw(self, event_id: int, prize_id: int, actor: Actor) -> bool:
        """Discard the pending draw on a prize.

        Returns ``True`` when a pending draw was discarded and ``False`` when
        nothing was pending, so repeated cancels are harmless.
        """

        with self._session_factory() as session:
            load_event_and_prize(session, event_id, prize_id)

        pending = self.ledger.pending(prize_id)
        if pending is None:
            return False
        if pending.is_expired(self.ledger.now()):
            return self._expire_pending(actor, pending)

        released = self.ledger.release(pending.handle)
        if released:
            self._record(
                actor,
                "cancel",
                event_id,
                prize_id,
                pending.participant_id,
                DrawState.CANCELLED.value,
            )
        return released

    def expire_stale(
        self,
        actor: Actor = SYSTEM_ACTOR,
        *,
        event_id: Optional[int] = None,
        prize_id: Optional[int] = None,
    ) -> list[PendingDraw]:
        """Release every timed-out preview and record each as expired."""
        swept = self.ledger.sweep_expired(event_id=event_id, prize_id=prize_id)
        for pending in swept:
            self._record_expiry(actor, pending)
        return swept

    # ------------------------------------------------------------ batch draws

    def draw_prize(self, event_id: int, prize_id: int, actor: Actor) -> BatchDrawResult:
        """Draw and commit winners for ``prize_id`` until it is fully awarded.

        Every winner goes through the same reservation, eligibility, and
        commit path as an interactive draw, one reservation per winner, so
        the exclusivity policy, forfeitures, and other prizes' pending
        candidates are honoured. Each committed winning is audited as a
        ``confirm`` with ``mode="batch"``.

        The batch stops early when the pool runs out, another operator holds
        the prize, or commit-time re-validation fails; the winnings committed
        up to that point are kept.

        Raises
        ------
        NotFound
            If the event/prize pair does not resolve.
        """

        with self._session_factory() as session:
            load_event_and_prize(session, event_id, prize_id)
        self.expire_stale(actor, event_id=event_id)

        winnings: list[Winning] = []
        stopped_by: Optional[str] = None
        while True:
            try:
                winning, outcome = self._draw_and_commit(event_id, prize_id, actor)
            except PrizeExhausted:
                break
            except DrawError as exc:
                stopped_by = exc.code
                logger.info("Batch draw on prize %s stopped: %s", prize_id, exc)
                self._record(
                    actor,
                    "confirm",
                    event_id,
                    prize_id,
                    None,
                    exc.code,
                    mode="batch",
                    error=str(exc),
                )
                break
            winnings.append(winning)
            self._record(
                actor,
                "confirm",
                event_id,
                prize_id,
                winning.participant_id,
                DrawState.CONFIRMED.value,
                mode="batch",
                winning_id=winning.id,
                pool_size=outcome.pool_size,
                randomness_digest=outcome.token.digest,
            )

        logger.info(
            "Batch draw on prize %s committed %d winnings", prize_id, len(winnings)
        )
        return BatchDrawResult(
            prize_id=prize_id, winnings=tuple(winnings), stopped_by=stopped_by
        )

    def draw_all_prizes(self, event_id: int, actor: Actor) -> list[BatchDrawResult]:
        """Run :meth:`draw_prize` for every prize of the event, in id order.

        A prize that cannot be filled does not stop the remaining prizes;
        its result reports why it stopped.

        Raises
        ------
        NotFound
            If the event does not exist.
        """

        with self._session_factory() as session:
            if session.get(Event, event_id) is None:
                raise NotFound(f"event {event_id} does not exist")
            prize_ids = session.scalars(
                select(Prize.id).where(Prize.event_id == event_id).order_by(Prize.id)
            ).all()

        return [self.draw_prize(event_id, prize_id, actor) for prize_id in prize_ids]

    # ---------------------------------------------------------------- helpers

    def _reserve(self, prize_id: int, actor: Actor) -> ReservationHandle:
        handle = self.ledger.reserve(prize_id, actor.identity)
        if handle.reclaimed is not None:
            self._record_expiry(actor, handle.reclaimed)
        return handle

    def _select(self, event_id: int, prize_id: int) -> tuple[EligiblePool, DrawOutcome]:
        with self._session_factory() as session:
            event, prize = load_event_and_prize(session, event_id, prize_id)
            pool = self.resolver.eligible(session, event, prize, now=self.ledger.now())
            return pool, self.engine.draw(pool)

    def _draw_and_commit(
        self, event_id: int, prize_id: int, actor: Actor
    ) -> tuple[Winning, DrawOutcome]:
        handle = self._reserve(prize_id, actor)
        try:
            _, outcome = self._select(event_id, prize_id)
            self.ledger.attach(
                handle, outcome.winner.id, randomness_digest=outcome.token.digest
            )
            winning = self.ledger.commit(handle, outcome.winner.id)
        except Exception:
            self.ledger.release(handle)
            raise
        return winning, outcome

    def _expire_pending(self, actor: Actor, pending: PendingDraw) -> bool:
        released = self.ledger.release(pending.handle)
        if released:
            self._record_expiry(actor, pending)
        return released

    def _record_expiry(self, actor: Actor, pending: PendingDraw) -> None:
        logger.info("Expired pending draw on prize %s", pending.handle.prize_id)
        self._record(
            actor,
            "expire",
            pending.handle.event_id,
            pending.handle.prize_id,
            pending.participant_id,
            DrawState.EXPIRED.value,
            reserved_by=pending.handle.actor,
        )

    def _record(
        self,
        actor: Actor,
        action: str,
        event_id: Optional[int],
        prize_id: Optional[int],
        participant_id: Optional[int],
        outcome: str,
        **details: Any,
    ) -> None:
        self.audit.record(
            AuditRecord(
                actor=actor,
                action=action,
                event_id=event_id,
                prize_id=prize_id,
                participant_id=participant_id,
                outcome=outcome,
                timestamp=self.ledger.now(),
                details=details or None,
            )
        )


__all__ = [
    "BatchDrawResult",
    "DrawPreview",
    "DrawState",
    "DrawWorkflow",
    "ParticipantSummary",
    "SYSTEM_ACTOR",
]
