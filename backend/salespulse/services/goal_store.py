"""Per-period goal figures kept in a key/value store.

Keys follow ``{period}{tier}``, e.g. ``monthlyMeta`` or ``yearlyUltraMeta``;
values are display strings such as ``"R$ 1.234,56"``.
"""

import logging
from typing import Optional, Protocol

from sqlalchemy.orm import Session

from ..models import Setting
from .currency import ZERO_DISPLAY, format_from_keystrokes
from .goals import GOAL_TIERS, PeriodKind

logger = logging.getLogger(__name__)


class GoalStore(Protocol):
    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...


class SettingsGoalStore:
    """GoalStore backed by the ``settings`` table."""

    def __init__(self, db: Session):
        self.db = db

    def get(self, key: str) -> Optional[str]:
        row = self.db.query(Setting).filter(Setting.key == key).first()
        return row.value if (row and row.value is not None) else None

    def set(self, key: str, value: str) -> None:
        row = self.db.query(Setting).filter(Setting.key == key).first()
        if row:
            row.value = value
        else:
            self.db.add(Setting(key=key, value=value))
        self.db.commit()


class MemoryGoalStore:
    def __init__(self, initial: Optional[dict[str, str]] = None):
        self._data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value


# ── Goal helpers ──────────────────────────────────────────────────────────────


def goal_key(period: PeriodKind, tier: str) -> str:
    period = PeriodKind(period)
    if tier not in GOAL_TIERS:
        raise ValueError(f"unknown goal tier {tier!r}")
    return f"{period.value}{tier}"


def load_goals(store: GoalStore, period: PeriodKind) -> dict[str, str]:
    """Display string per tier, falling back to "R$ 0,00" when unset."""
    return {tier: store.get(goal_key(period, tier)) or ZERO_DISPLAY for tier in GOAL_TIERS}


def save_goal(store: GoalStore, period: PeriodKind, tier: str, raw: str) -> str:
    """Normalise typed input through the keystroke codec and persist it."""
    key = goal_key(period, tier)
    display = format_from_keystrokes(raw)
    store.set(key, display)
    logger.info("Saved goal %s = %s", key, display)
    return display
