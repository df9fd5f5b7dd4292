"""Goal progress: how far ahead or behind schedule a revenue goal is.

expected = share of the period's days already elapsed
actual   = share of the target already sold
deviation = actual - expected   (>= 0 → "ahead", < 0 → "behind")

Nothing is clamped here; only ``bar_width_pct`` is capped at 100 for display.
"""

import calendar
import decimal
import logging
import math
from dataclasses import asdict, dataclass
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from enum import Enum
from typing import Union

logger = logging.getLogger(__name__)

GOAL_TIERS = ("Meta", "SuperMeta", "UltraMeta")

_SECONDS_PER_DAY = 24 * 60 * 60
_HUNDRED = Decimal(100)


class PeriodKind(str, Enum):
    DAILY = "daily"
    MONTHLY = "monthly"
    YEARLY = "yearly"


@dataclass(frozen=True)
class GoalProgress:
    expected_progress_pct: float
    actual_progress_pct: float
    deviation_pct: float
    status: str                 # "ahead" | "behind"
    bar_width_pct: float
    elapsed_days: int
    total_days: int

    def as_dict(self) -> dict:
        return asdict(self)


# ── Period helpers ────────────────────────────────────────────────────────────


def period_bounds(kind: PeriodKind, today: date) -> tuple[date, date]:
    kind = PeriodKind(kind)
    if kind is PeriodKind.DAILY:
        return today, today
    if kind is PeriodKind.MONTHLY:
        last = calendar.monthrange(today.year, today.month)[1]
        return today.replace(day=1), today.replace(day=last)
    return date(today.year, 1, 1), date(today.year, 12, 31)


def days_between_inclusive(start: date, end: date) -> int:
    return (end - start).days + 1


def elapsed_days(period_start: date, now: Union[date, datetime]) -> int:
    """Whole days from the period's first midnight to ``now``, rounded up.

    A plain date counts that day as elapsed.  Not clamped to the period.
    """
    if isinstance(now, datetime):
        start_dt = datetime.combine(period_start, time.min, tzinfo=now.tzinfo)
        return math.ceil((now - start_dt) / timedelta(seconds=_SECONDS_PER_DAY))
    return days_between_inclusive(period_start, now)


def _quantize_pct(value: Decimal) -> Decimal:
    return value.quantize(Decimal("0.01"), rounding=decimal.ROUND_HALF_UP)


# ── Calculator ────────────────────────────────────────────────────────────────


def progress(
    current_amount: Union[Decimal, int, float],
    target_amount: Union[Decimal, int, float],
    period_start: date,
    period_end: date,
    now: Union[date, datetime],
) -> GoalProgress:
    current = Decimal(str(current_amount))
    target = Decimal(str(target_amount))

    total = days_between_inclusive(period_start, period_end)
    elapsed = elapsed_days(period_start, now)

    if total > 0:
        expected = _HUNDRED * elapsed / total
    else:
        logger.warning("Empty goal period %s..%s", period_start, period_end)
        expected = Decimal(0)

    actual = _HUNDRED * current / target if target > 0 else Decimal(0)

    # deviation is computed from the two-decimal figures that get reported
    expected_pct = _quantize_pct(expected)
    actual_pct = _quantize_pct(actual)
    deviation = actual_pct - expected_pct

    return GoalProgress(
        expected_progress_pct=float(expected_pct),
        actual_progress_pct=float(actual_pct),
        deviation_pct=float(deviation),
        status="ahead" if deviation >= 0 else "behind",
        bar_width_pct=float(min(actual_pct, _HUNDRED)),
        elapsed_days=elapsed,
        total_days=total,
    )
