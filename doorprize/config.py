"""Environment-driven settings for the drawing engine."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from dotenv import load_dotenv

from .db.utils import resolve_sqlite_url

# Project root directory (repo root)
ROOT_DIR = Path(__file__).resolve().parents[1]


@dataclass(frozen=True)
class DrawSettings:
    """Tunables for database access, preview timeouts, and reel animation.

    Attributes
    ----------
    database_url : str
        SQLAlchemy URL. Relative SQLite paths are resolved against the repo root.
    preview_timeout_seconds : int
        How long a previewed draw holds the prize before it expires.
    reel_count : int
        Number of reels in the slot animation.
    reel_length : int
        Number of symbols on each reel strip, including the terminal symbol.
    reel_stagger_ms : int
        Delay between consecutive reel stops.
    final_spin_ms : int
        Extra spin time after the last reel is scheduled to stop.
    exclusivity_policy : str
        Key of the exclusivity policy applied to the draw pool.
    """

    database_url: str = "sqlite:///./dev.db"
    preview_timeout_seconds: int = 120
    reel_count: int = 4
    reel_length: int = 40
    reel_stagger_ms: int = 1000
    final_spin_ms: int = 1000
    exclusivity_policy: str = "event"


def _int_setting(env: Mapping[str, str], name: str, default: int, *, minimum: int) -> int:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from exc
    if value < minimum:
        raise ValueError(f"{name} must be >= {minimum}, got {value}")
    return value


def load_settings(env: Optional[Mapping[str, str]] = None) -> DrawSettings:
    """Build :class:`DrawSettings` from ``env`` (defaults to ``os.environ``).

    When reading the process environment, a ``.env`` file is loaded first.
    """

    if env is None:
        load_dotenv()
        env = os.environ

    defaults = DrawSettings()
    database_url = resolve_sqlite_url(
        env.get("DB_URL") or defaults.database_url, ROOT_DIR
    )
    policy = (env.get("DRAW_EXCLUSIVITY_POLICY") or defaults.exclusivity_policy).strip()

    return DrawSettings(
        database_url=database_url,
        preview_timeout_seconds=_int_setting(
            env, "DRAW_PREVIEW_TIMEOUT_SECONDS", defaults.preview_timeout_seconds, minimum=1
        ),
        reel_count=_int_setting(env, "DRAW_REEL_COUNT", defaults.reel_count, minimum=1),
        reel_length=_int_setting(env, "DRAW_REEL_LENGTH", defaults.reel_length, minimum=1),
        reel_stagger_ms=_int_setting(
            env, "DRAW_REEL_STAGGER_MS", defaults.reel_stagger_ms, minimum=1
        ),
        final_spin_ms=_int_setting(env, "DRAW_FINAL_SPIN_MS", defaults.final_spin_ms, minimum=0),
        exclusivity_policy=policy,
    )


__all__ = ["DrawSettings", "ROOT_DIR", "load_settings"]
