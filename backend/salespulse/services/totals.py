"""Grand totals and running totals over a bucket grid."""

import decimal
import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Optional

from .aggregator import Bucket, BucketKey, Sale, TimeWindow, sales_in_window
from .currency import cents_to_decimal
from .timestamps import EpochUnit

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Totals:
    net_amount_cents: int = 0
    count: int = 0
    affiliate_amount_cents: int = 0

    @property
    def average_ticket_cents(self) -> int:
        if self.count <= 0:
            return 0
        avg = Decimal(self.net_amount_cents) / Decimal(self.count)
        return int(avg.quantize(Decimal("1"), rounding=decimal.ROUND_HALF_UP))

    @property
    def net_amount(self) -> Decimal:
        return cents_to_decimal(self.net_amount_cents)

    @property
    def affiliate_amount(self) -> Decimal:
        return cents_to_decimal(self.affiliate_amount_cents)

    @property
    def average_ticket(self) -> Decimal:
        return cents_to_decimal(self.average_ticket_cents)


@dataclass(frozen=True)
class RunningTotal:
    key: BucketKey
    net_amount_cents: int
    count: int
    affiliate_amount_cents: int


def totals(buckets: Iterable[Bucket]) -> Totals:
    net = count = affiliate = 0
    for b in buckets:
        net += b.net_amount_cents
        count += b.count
        affiliate += b.affiliate_amount_cents
    return Totals(net_amount_cents=net, count=count, affiliate_amount_cents=affiliate)


def totals_from_transactions(
    transactions: Optional[Iterable[Sale]],
    window: TimeWindow,
    unit: Optional[EpochUnit] = None,
) -> Totals:
    """Fold the raw list directly, applying the aggregator's window rule."""
    if not window.is_valid:
        return Totals()
    net = count = affiliate = 0
    for sale, _ in sales_in_window(transactions, window, unit):
        net += sale.net_amount_cents or 0
        count += 1
        affiliate += sale.affiliate_amount_cents or 0
    return Totals(net_amount_cents=net, count=count, affiliate_amount_cents=affiliate)


def running_totals(buckets: Iterable[Bucket]) -> list[RunningTotal]:
    series: list[RunningTotal] = []
    net = count = affiliate = 0
    for b in buckets:
        net += b.net_amount_cents
        count += b.count
        affiliate += b.affiliate_amount_cents
        series.append(RunningTotal(b.key, net, count, affiliate))
    return series


def reconcile(buckets: list[Bucket], server_totals=None) -> Totals:
    """Totals from the buckets; the upstream figures are only cross-checked.

    ``server_totals`` may be None or carry ``total_transactions`` /
    ``total_net_amount_cents`` (either may be None).
    """
    result = totals(buckets)
    if server_totals is None:
        return result

    reported_count = getattr(server_totals, "total_transactions", None)
    reported_cents = getattr(server_totals, "total_net_amount_cents", None)
    if reported_count is not None and reported_count != result.count:
        logger.warning(
            "Upstream reports %d transactions, buckets hold %d", reported_count, result.count
        )
    if reported_cents is not None and reported_cents != result.net_amount_cents:
        logger.warning(
            "Upstream reports net %d cents, buckets hold %d cents",
            reported_cents, result.net_amount_cents,
        )
    return result
