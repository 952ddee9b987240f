"""Configurable rules deciding which prizes a participant may not win together."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, Optional

from ..models import Prize


@dataclass(frozen=True)
class ExclusivityPolicy:
    """Definition of an exclusivity rule.

    Attributes
    ----------
    key : str
        Registry key used to select the policy from configuration.
    grouper : Callable[[Prize], Optional[str]]
        Maps a prize to its exclusivity group key. ``None`` means the prize
        only excludes participants who already won that same prize.
    description : Optional[str]
        Human-readable summary of the rule.
    """

    key: str
    grouper: Callable[[Prize], Optional[str]]
    description: Optional[str] = None

    def group_for(self, prize: Prize) -> Optional[str]:
        """Return the group key stored on winnings of ``prize``."""
        return self.grouper(prize)

    def conflicts(self, prize: Prize, other: Prize) -> bool:
        """Return ``True`` when a winning of ``other`` blocks winning ``prize``."""
        if prize.id == other.id:
            return True
        group = self.group_for(prize)
        return group is not None and group == self.group_for(other)


class PolicyRegistry:
    """Mutable registry mapping policy keys to definitions."""

    def __init__(self) -> None:
        self._policies: Dict[str, ExclusivityPolicy] = {}

    def register(self, policy: ExclusivityPolicy, *, replace: bool = False) -> None:
        """Register ``policy`` under its key.

        Parameters
        ----------
        policy : ExclusivityPolicy
            Policy to add to the registry.
        replace : bool, default: False
            When ``True`` an existing registration with the same key is
            overwritten. Otherwise a duplicate raises :class:`ValueError`.
        """
        if not replace and policy.key in self._policies:
            raise ValueError(f"Exclusivity policy '{policy.key}' is already registered")
        self._policies[policy.key] = policy

    def get(self, key: str) -> ExclusivityPolicy:
        """Return the policy registered under ``key``."""
        try:
            return self._policies[key]
        except KeyError as exc:
            raise KeyError(f"Unknown exclusivity policy '{key}'") from exc

    def available_policies(self) -> Dict[str, ExclusivityPolicy]:
        """Return a copy of the registered policies keyed by identifier."""
        return dict(self._policies)


def _one_per_event(prize: Prize) -> Optional[str]:
    return "event"


def _one_per_category(prize: Prize) -> Optional[str]:
    return f"category:{prize.category}"


def _one_main_prize(prize: Prize) -> Optional[str]:
    return "category:main" if prize.category == "main" else None


def _unrestricted(prize: Prize) -> Optional[str]:
    return None


DEFAULT_POLICY_REGISTRY = PolicyRegistry()
DEFAULT_POLICY_REGISTRY.register(
    ExclusivityPolicy(
        key="event",
        grouper=_one_per_event,
        description="A participant wins at most one prize per event.",
    )
)
DEFAULT_POLICY_REGISTRY.register(
    ExclusivityPolicy(
        key="category",
        grouper=_one_per_category,
        description="A participant wins at most one main and one regular prize.",
    )
)
DEFAULT_POLICY_REGISTRY.register(
    ExclusivityPolicy(
        key="main",
        grouper=_one_main_prize,
        description="At most one main-category prize; regular prizes are unrestricted.",
    )
)
DEFAULT_POLICY_REGISTRY.register(
    ExclusivityPolicy(
        key="none",
        grouper=_unrestricted,
        description="Only winning the same prize twice is prevented.",
    )
)

__all__ = [
    "DEFAULT_POLICY_REGISTRY",
    "ExclusivityPolicy",
    "PolicyRegistry",
]
