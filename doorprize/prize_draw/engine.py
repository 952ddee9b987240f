"""Uniform random winner selection over an eligible pool."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional, Sequence

from .errors import EmptyPool
from .randomness import RandomSource, RandomnessToken, SystemRandomSource, uniform_index
from ..models import Participant

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DrawOutcome:
    """Value object describing a single selection.

    Attributes
    ----------
    winner : Participant
        Selected participant.
    token : RandomnessToken
        Entropy the selection was derived from. Retained for audit digests
        and replays only.
    pool_size : int
        Number of candidates the winner was drawn from.
    """

    winner: Participant
    token: RandomnessToken = field(repr=False)
    pool_size: int


def select_winner(pool: Sequence[Participant], token: RandomnessToken) -> Participant:
    """Return the participant picked by ``token`` from ``pool``.

    The pool is put in participant-id order first, so the result depends only
    on the set of candidates and the token, not on how the caller ordered
    them.

    Raises
    ------
    EmptyPool
        If ``pool`` has no members.
    """

    if not pool:
        raise EmptyPool("no eligible participants remain for this prize")
    ordered = sorted(pool, key=lambda participant: participant.id)
    return ordered[uniform_index(token, len(ordered))]


class DrawEngine:
    """Engine that turns an eligible pool into a :class:`DrawOutcome`."""

    def __init__(self, randomness: Optional[RandomSource] = None) -> None:
        """Create an engine.

        Parameters
        ----------
        randomness : Optional[RandomSource], default: None
            Entropy source. Typically omitted, in which case the operating
            system CSPRNG is used. Tests inject a seeded source.
        """

        self._randomness = randomness or SystemRandomSource()

    def draw(
        self,
        pool: Sequence[Participant],
        token: Optional[RandomnessToken] = None,
    ) -> DrawOutcome:
        """Select a winner from ``pool``.

        Parameters
        ----------
        pool : Sequence[Participant]
            Complete eligible pool. Must not be a truncated page.
        token : Optional[RandomnessToken], default: None
            Replay a previous selection. When omitted a fresh token is pulled
            from the engine's source.

        Raises
        ------
        EmptyPool
            If ``pool`` is empty.
        """

        if not pool:
            raise EmptyPool("no eligible participants remain for this prize")
        active_token = token or self._randomness.token()
        winner = select_winner(pool, active_token)
        logger.debug(
            "Selected participant %s from a pool of %d", winner.id, len(pool)
        )
        return DrawOutcome(winner=winner, token=active_token, pool_size=len(pool))


__all__ = ["DrawEngine", "DrawOutcome", "select_winner"]
