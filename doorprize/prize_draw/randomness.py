"""Randomness sources for winner selection."""

from __future__ import annotations

import hashlib
import random
import secrets
from dataclasses import dataclass, field
from typing import Protocol

TOKEN_BYTES = 32


@dataclass(frozen=True)
class RandomnessToken:
    """Raw entropy behind one selection.

    The bytes are kept out of ``repr`` so they do not leak into logs; audit
    records store :attr:`digest` instead.
    """

    raw: bytes = field(repr=False)

    def __post_init__(self) -> None:
        if len(self.raw) < 16:
            raise ValueError("randomness token must carry at least 16 bytes")

    @property
    def digest(self) -> str:
        """Hex SHA-256 of the raw bytes, safe to persist."""
        return hashlib.sha256(self.raw).hexdigest()


class RandomSource(Protocol):
    def token(self) -> RandomnessToken:
        """Return fresh entropy for one draw."""
        ...


class SystemRandomSource:
    """Production source backed by the operating system CSPRNG."""

    def token(self) -> RandomnessToken:
        return RandomnessToken(secrets.token_bytes(TOKEN_BYTES))


class SeededRandomSource:
    """Deterministic source for tests and replays. Never use in production."""

    def __init__(self, seed: int) -> None:
        self._rng = random.Random(seed)

    def token(self) -> RandomnessToken:
        return RandomnessToken(self._rng.getrandbits(TOKEN_BYTES * 8).to_bytes(TOKEN_BYTES, "big"))


class FixedRandomSource:
    """Always returns the same token."""

    def __init__(self, raw: bytes) -> None:
        self._token = RandomnessToken(raw)

    def token(self) -> RandomnessToken:
        return self._token


def uniform_index(token: RandomnessToken, size: int) -> int:
    """Map ``token`` to an index in ``range(size)`` without modulo bias.

    Candidates are drawn from the SHA-256 stream ``H(raw || counter)`` and any
    value in the incomplete top bucket is rejected, so every index is equally
    likely for a uniformly random token.
    """

    if size <= 0:
        raise ValueError("size must be positive")
    space = 1 << 256
    limit = space - (space % size)
    counter = 0
    while True:
        block = hashlib.sha256(token.raw + counter.to_bytes(8, "big")).digest()
        candidate = int.from_bytes(block, "big")
        if candidate < limit:
            return candidate % size
        counter += 1


__all__ = [
    "FixedRandomSource",
    "RandomSource",
    "RandomnessToken",
    "SeededRandomSource",
    "SystemRandomSource",
    "uniform_index",
]
