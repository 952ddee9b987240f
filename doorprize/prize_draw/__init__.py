"""Utilities for the prize draw subsystem."""

from .animation import (
    AnimationPlan,
    AnimationSequenceGenerator,
    ReelPlan,
    generate_animation_plan,
    normalize_identifier,
)
from .audit import Actor, AuditRecord, AuditSink, DatabaseAuditSink, MemoryAuditSink
from .eligibility import EligibilityResolver, EligiblePool, load_event_and_prize
from .engine import DrawEngine, DrawOutcome, select_winner
from .errors import (
    Busy,
    Conflict,
    DrawError,
    DrawInProgress,
    EmptyPool,
    Expired,
    NotFound,
    PrizeExhausted,
)
from .exclusivity import DEFAULT_POLICY_REGISTRY, ExclusivityPolicy, PolicyRegistry
from .ledger import AllocationLedger, PendingDraw, ReservationHandle
from .randomness import (
    FixedRandomSource,
    RandomSource,
    RandomnessToken,
    SeededRandomSource,
    SystemRandomSource,
)
from .workflow import (
    BatchDrawResult,
    DrawPreview,
    DrawState,
    DrawWorkflow,
    ParticipantSummary,
)

__all__ = [
    "Actor",
    "AllocationLedger",
    "AnimationPlan",
    "AnimationSequenceGenerator",
    "AuditRecord",
    "AuditSink",
    "BatchDrawResult",
    "Busy",
    "Conflict",
    "DEFAULT_POLICY_REGISTRY",
    "DatabaseAuditSink",
    "DrawEngine",
    "DrawError",
    "DrawInProgress",
    "DrawOutcome",
    "DrawPreview",
    "DrawState",
    "DrawWorkflow",
    "EligibilityResolver",
    "EligiblePool",
    "EmptyPool",
    "ExclusivityPolicy",
    "Expired",
    "FixedRandomSource",
    "MemoryAuditSink",
    "NotFound",
    "ParticipantSummary",
    "PendingDraw",
    "PolicyRegistry",
    "PrizeExhausted",
    "RandomSource",
    "RandomnessToken",
    "ReelPlan",
    "ReservationHandle",
    "SeededRandomSource",
    "SystemRandomSource",
    "generate_animation_plan",
    "load_event_and_prize",
    "normalize_identifier",
    "select_winner",
]
