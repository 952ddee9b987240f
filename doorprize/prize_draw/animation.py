"""Deterministic slot-reel plans derived from a winning registration number."""

from __future__ import annotations

import hashlib
import random
from dataclasses import dataclass
from typing import Any, Iterable, Optional

SEPARATORS = frozenset("-_./:")
DIGITS = "0123456789"


def normalize_identifier(identifier: str, reel_count: int) -> str:
    """Reduce ``identifier`` to exactly ``reel_count`` display characters.

    Separators and whitespace are stripped, the last ``reel_count``
    characters are kept, and shorter values are left-padded with ``'0'``.

    Parameters
    ----------
    identifier : str
        Raw winning identifier, e.g. a registration number ``"E1-0042"``.
    reel_count : int
        Number of reels to fill.

    Examples
    --------
    >>> normalize_identifier("E1-0042", 4)
    '0042'
    >>> normalize_identifier("7", 3)
    '007'
    """

    if identifier is None:
        raise ValueError("identifier must not be None")
    if not isinstance(identifier, str):
        raise TypeError("identifier must be a string")
    if reel_count < 1:
        raise ValueError("reel_count must be at least 1")
    compact = "".join(
        ch for ch in identifier if ch not in SEPARATORS and not ch.isspace()
    )
    return compact[-reel_count:].rjust(reel_count, "0")


@dataclass(frozen=True)
class ReelPlan:
    """Symbols shown on one reel and when it stops.

    Attributes
    ----------
    symbols : tuple[str, ...]
        Cyclic strip; the reel comes to rest on the last symbol.
    stop_delay_ms : int
        Milliseconds after the spin starts at which this reel stops.
    """

    symbols: tuple[str, ...]
    stop_delay_ms: int

    @property
    def terminal(self) -> str:
        return self.symbols[-1]


@dataclass(frozen=True)
class AnimationPlan:
    """Complete client payload for the drawing animation."""

    display_number: str
    reels: tuple[ReelPlan, ...]
    animation_duration_ms: int
    final_spin_duration_ms: int

    @property
    def terminal_symbols(self) -> tuple[str, ...]:
        return tuple(reel.terminal for reel in self.reels)

    @property
    def reel_delays(self) -> list[int]:
        return [reel.stop_delay_ms for reel in self.reels]

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the JSON shape consumed by the slot machine client."""
        payload: dict[str, Any] = {
            f"reel{index}": list(reel.symbols)
            for index, reel in enumerate(self.reels, start=1)
        }
        payload["reel_delays"] = self.reel_delays
        payload["animation_duration"] = self.animation_duration_ms
        payload["final_spin_duration"] = self.final_spin_duration_ms
        payload["display_number"] = self.display_number
        return payload

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "AnimationPlan":
        """Rebuild a plan previously produced by :meth:`to_dict`."""
        delays = list(payload["reel_delays"])
        reels = tuple(
            ReelPlan(symbols=tuple(payload[f"reel{index}"]), stop_delay_ms=int(delay))
            for index, delay in enumerate(delays, start=1)
        )
        return cls(
            display_number=str(payload["display_number"]),
            reels=reels,
            animation_duration_ms=int(payload["animation_duration"]),
            final_spin_duration_ms=int(payload["final_spin_duration"]),
        )


def _reel_rng(display_number: str, reel_index: int) -> random.Random:
    # Seeded from the input only, so repeated calls produce identical strips.
    seed = hashlib.sha256(f"{display_number}:{reel_index}".encode("utf-8")).digest()
    return random.Random(int.from_bytes(seed, "big"))


class AnimationSequenceGenerator:
    """Builds :class:`AnimationPlan` objects with a fixed reel geometry."""

    def __init__(
        self,
        *,
        reel_length: int = 40,
        stagger_ms: int = 1000,
        first_stop_ms: int = 0,
        final_spin_ms: int = 1000,
    ) -> None:
        if reel_length < 1:
            raise ValueError("reel_length must be at least 1")
        if stagger_ms <= 0:
            raise ValueError("stagger_ms must be positive so reels settle left to right")
        if first_stop_ms < 0 or final_spin_ms < 0:
            raise ValueError("durations must not be negative")
        self.reel_length = reel_length
        self.stagger_ms = stagger_ms
        self.first_stop_ms = first_stop_ms
        self.final_spin_ms = final_spin_ms

    def generate(
        self,
        winning_identifier: str,
        reel_count: int,
        *,
        filler_identifiers: Optional[Iterable[str]] = None,
    ) -> AnimationPlan:
        """Return the reel plan that lands on ``winning_identifier``.

        Parameters
        ----------
        winning_identifier : str
            Registration number of the selected participant.
        reel_count : int
            Number of reels; the identifier is normalized to this width.
        filler_identifiers : Optional[Iterable[str]], default: None
            Other registration numbers (typically the rest of the pool) whose
            characters decorate the strips before the stop. Plain digits are
            used when omitted.

        Returns
        -------
        AnimationPlan
            Plan whose reel ``i`` terminates on character ``i`` of the
            normalized identifier and stops strictly after reel ``i - 1``.

        Notes
        -----
        Characters that are not digits are passed through as terminal symbols;
        the animation never refuses a winner.
        """

        display_number = normalize_identifier(winning_identifier, reel_count)
        fillers = sorted(
            {normalize_identifier(value, reel_count) for value in filler_identifiers or ()}
        )

        reels = []
        for index, terminal in enumerate(display_number):
            rng = _reel_rng(display_number, index)
            if fillers:
                strip = [rng.choice(fillers)[index] for _ in range(self.reel_length - 1)]
            else:
                strip = [rng.choice(DIGITS) for _ in range(self.reel_length - 1)]
            strip.append(terminal)
            reels.append(
                ReelPlan(
                    symbols=tuple(strip),
                    stop_delay_ms=self.first_stop_ms + index * self.stagger_ms,
                )
            )

        return AnimationPlan(
            display_number=display_number,
            reels=tuple(reels),
            animation_duration_ms=reels[-1].stop_delay_ms + self.stagger_ms,
            final_spin_duration_ms=self.final_spin_ms,
        )


def generate_animation_plan(winning_identifier: str, reel_count: int = 4) -> AnimationPlan:
    """Shortcut using the default reel geometry."""
    return AnimationSequenceGenerator().generate(winning_identifier, reel_count)


__all__ = [
    "AnimationPlan",
    "AnimationSequenceGenerator",
    "ReelPlan",
    "generate_animation_plan",
    "normalize_identifier",
]
