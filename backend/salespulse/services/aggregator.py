"""Bucket aggregation: dense hour / day / month grids over a time window.

Every key in the window exists in the output even when nothing was sold, and
buckets come back in chronological order.  A transaction whose UTC calendar
day falls outside the inclusive window (or whose timestamp cannot be read) is
left out of every bucket without raising.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from decimal import Decimal
from enum import Enum
from typing import Iterable, Iterator, Optional, Protocol, Union

from .currency import cents_to_decimal
from .timestamps import EpochUnit, normalize

logger = logging.getLogger(__name__)

NO_PRODUCT_LABEL = "Sem produto"

BucketKey = Union[int, str]


class Sale(Protocol):
    created_at: Optional[float]
    net_amount_cents: int
    affiliate_amount_cents: int


class Granularity(str, Enum):
    HOUR = "hour"
    DAY = "day"
    MONTH = "month"


@dataclass(frozen=True)
class TimeWindow:
    """Inclusive range of UTC calendar days."""
    start: date
    end: date

    @classmethod
    def single_day(cls, day: date) -> "TimeWindow":
        return cls(day, day)

    @property
    def is_valid(self) -> bool:
        return self.start <= self.end

    @property
    def day_count(self) -> int:
        return (self.end - self.start).days + 1 if self.is_valid else 0

    @property
    def spans_years(self) -> bool:
        return self.start.year != self.end.year

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end


@dataclass
class Bucket:
    key: BucketKey
    net_amount_cents: int = 0
    count: int = 0
    affiliate_amount_cents: int = 0

    def add(self, sale: Sale) -> None:
        self.net_amount_cents += sale.net_amount_cents or 0
        self.count += 1
        self.affiliate_amount_cents += sale.affiliate_amount_cents or 0

    @property
    def net_amount(self) -> Decimal:
        return cents_to_decimal(self.net_amount_cents)

    @property
    def affiliate_amount(self) -> Decimal:
        return cents_to_decimal(self.affiliate_amount_cents)


# ── Key generation ────────────────────────────────────────────────────────────


def _day_keys_in_range(start: date, end: date) -> list[str]:
    keys: list[str] = []
    cur = start
    while cur <= end:
        keys.append(cur.isoformat())
        cur += timedelta(days=1)
    return keys


def _month_keys_in_range(start: date, end: date) -> list[str]:
    """Two-digit months inside one year; YYYY-MM when the window crosses a year."""
    y, m = start.year, start.month
    long_form = start.year != end.year
    keys: list[str] = []
    while (y, m) <= (end.year, end.month):
        keys.append(f"{y}-{m:02d}" if long_form else f"{m:02d}")
        m += 1
        if m > 12:
            m, y = 1, y + 1
    return keys


def bucket_keys(window: TimeWindow, granularity: Granularity) -> list[BucketKey]:
    granularity = Granularity(granularity)
    if not window.is_valid:
        return []
    if granularity is Granularity.HOUR:
        return list(range(24))
    if granularity is Granularity.DAY:
        return _day_keys_in_range(window.start, window.end)
    return _month_keys_in_range(window.start, window.end)


def bucket_key_for(instant: datetime, granularity: Granularity, window: TimeWindow) -> BucketKey:
    granularity = Granularity(granularity)
    if granularity is Granularity.HOUR:
        return instant.hour
    if granularity is Granularity.DAY:
        return instant.date().isoformat()
    if window.spans_years:
        return f"{instant.year}-{instant.month:02d}"
    return f"{instant.month:02d}"


# ── Aggregation ───────────────────────────────────────────────────────────────


def sales_in_window(
    transactions: Optional[Iterable[Sale]],
    window: TimeWindow,
    unit: Optional[EpochUnit] = None,
) -> Iterator[tuple[Sale, datetime]]:
    """Yield (sale, instant) for every sale whose UTC day lies in the window."""
    for sale in transactions or ():
        instant = normalize(sale.created_at, unit)
        if instant is None or not window.contains(instant.date()):
            continue
        yield sale, instant


def aggregate(
    transactions: Optional[Iterable[Sale]],
    window: TimeWindow,
    granularity: Granularity,
    unit: Optional[EpochUnit] = None,
) -> list[Bucket]:
    """Fold transactions into a dense, chronologically ordered bucket grid."""
    granularity = Granularity(granularity)
    if not window.is_valid:
        logger.warning("Inverted window %s > %s; returning no buckets", window.start, window.end)
        return []

    grid: dict[BucketKey, Bucket] = {k: Bucket(key=k) for k in bucket_keys(window, granularity)}

    seen = 0
    placed = 0
    for sale in transactions or ():
        seen += 1
        instant = normalize(sale.created_at, unit)
        if instant is None or not window.contains(instant.date()):
            continue
        bucket = grid.get(bucket_key_for(instant, granularity, window))
        if bucket is None:
            continue
        bucket.add(sale)
        placed += 1

    if placed != seen:
        logger.debug(
            "Excluded %d of %d transactions outside %s..%s",
            seen - placed, seen, window.start, window.end,
        )

    # grid preserves generation order, which is chronological
    return list(grid.values())


def product_breakdown(
    transactions: Optional[Iterable],
    window: TimeWindow,
    unit: Optional[EpochUnit] = None,
) -> list[dict]:
    """Per-product quantity and value for the sales inside the window."""
    totals: dict[str, dict] = defaultdict(lambda: {"quantity": 0, "value_cents": 0})
    for sale, _ in sales_in_window(transactions, window, unit):
        name = getattr(sale, "product_name", None) or NO_PRODUCT_LABEL
        totals[name]["quantity"] += 1
        totals[name]["value_cents"] += sale.net_amount_cents or 0

    return sorted(
        (
            {"name": name, "quantity": v["quantity"], "value_cents": v["value_cents"]}
            for name, v in totals.items()
        ),
        key=lambda x: (-x["value_cents"], x["name"]),
    )
