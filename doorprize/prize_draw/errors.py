"""Error taxonomy reported by the drawing engine.

Every error carries a stable ``code`` so outer layers (HTTP handlers, admin
screens) can map it without string matching. None of them are retried by the
engine; retrying is an operator decision.
"""

from __future__ import annotations


class DrawError(Exception):
    """Base class for all drawing failures."""

    code = "draw_error"


class NotFound(DrawError):
    """The event, prize, or participant reference does not resolve."""

    code = "not_found"


class EmptyPool(DrawError):
    """No participant is eligible for the prize; terminal for that prize."""

    code = "empty_pool"


class PrizeExhausted(EmptyPool):
    """Every unit of the prize has already been awarded."""

    code = "prize_exhausted"


class Busy(DrawError):
    """Another draw for the same prize is awaiting confirmation."""

    code = "busy"


class DrawInProgress(Busy):
    """A prize edit was attempted while a draw on the event is pending."""

    code = "draw_in_progress"


class Conflict(DrawError):
    """Commit-time re-validation failed; the operator must draw again."""

    code = "conflict"


class Expired(DrawError):
    """The previewed draw timed out before it was confirmed."""

    code = "expired"


__all__ = [
    "Busy",
    "Conflict",
    "DrawError",
    "DrawInProgress",
    "EmptyPool",
    "Expired",
    "NotFound",
    "PrizeExhausted",
]
