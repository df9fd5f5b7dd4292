"""Dashboard views: today (hourly), date range (daily), month (daily), year (monthly).

Each ``build_*`` function turns one upstream response into a DashboardView:
the JSON-ready report plus the Totals it was built from.  Goal progress is
added per request by ``goal_section``, so a cached view always uses the goal
figures saved most recently.
"""

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Optional, Union

from ..schemas import SalesResponse
from .aggregator import Bucket, Granularity, TimeWindow, aggregate, product_breakdown
from .currency import format_cents, parse_display
from .goal_store import GoalStore, load_goals
from .goals import PeriodKind, period_bounds, progress
from .totals import Totals, reconcile, running_totals

DEFAULT_RANGE_DAYS = 7


@dataclass
class DashboardView:
    report: dict
    totals: Totals


def _cents_to_reais(cents: int) -> float:
    return round(cents / 100, 2)


# ── Serialisation helpers ─────────────────────────────────────────────────────


def _bucket_dict(b: Bucket, key_name: str) -> dict:
    return {
        key_name: b.key,
        "net_amount": _cents_to_reais(b.net_amount_cents),
        "quantity": b.count,
        "affiliate_value": _cents_to_reais(b.affiliate_amount_cents),
    }


def _totals_dict(t: Totals) -> dict:
    return {
        "total_transactions": t.count,
        "total_net_amount": _cents_to_reais(t.net_amount_cents),
        "total_net_affiliate_value": _cents_to_reais(t.affiliate_amount_cents),
        "average_ticket": _cents_to_reais(t.average_ticket_cents),
        "formatted": {
            "total_net_amount": format_cents(t.net_amount_cents),
            "total_net_affiliate_value": format_cents(t.affiliate_amount_cents),
            "average_ticket": format_cents(t.average_ticket_cents),
        },
    }


def _running_dict(buckets: list[Bucket], key_name: str) -> list[dict]:
    return [
        {
            key_name: r.key,
            "net_amount": _cents_to_reais(r.net_amount_cents),
            "quantity": r.count,
            "affiliate_value": _cents_to_reais(r.affiliate_amount_cents),
        }
        for r in running_totals(buckets)
    ]


def _series_report(
    response: SalesResponse, window: TimeWindow, granularity: Granularity, key_name: str
) -> DashboardView:
    buckets = aggregate(response.data, window, granularity)
    totals = reconcile(buckets, response.totals)
    report = {
        "from": window.start.isoformat(),
        "to": window.end.isoformat(),
        "granularity": Granularity(granularity).value,
        "buckets": [_bucket_dict(b, key_name) for b in buckets],
        "running_totals": _running_dict(buckets, key_name),
        "totals": _totals_dict(totals),
    }
    return DashboardView(report, totals)


# ── Windows ───────────────────────────────────────────────────────────────────


def default_range_window(today: date) -> TimeWindow:
    """Seven days back through today: eight calendar days, today included."""
    return TimeWindow(today - timedelta(days=DEFAULT_RANGE_DAYS), today)


def month_window(year: int, month: int) -> TimeWindow:
    start, end = period_bounds(PeriodKind.MONTHLY, date(year, month, 1))
    return TimeWindow(start, end)


def year_window(year: int) -> TimeWindow:
    start, end = period_bounds(PeriodKind.YEARLY, date(year, 1, 1))
    return TimeWindow(start, end)


# ── Views ─────────────────────────────────────────────────────────────────────


def build_today_report(response: SalesResponse, day: date) -> DashboardView:
    window = TimeWindow.single_day(day)
    view = _series_report(response, window, Granularity.HOUR, "hour")
    view.report["products"] = [
        {"name": p["name"], "quantity": p["quantity"], "value": _cents_to_reais(p["value_cents"])}
        for p in product_breakdown(response.data, window)
    ]
    return view


def build_range_report(response: SalesResponse, window: TimeWindow) -> DashboardView:
    return _series_report(response, window, Granularity.DAY, "date")


def build_monthly_report(response: SalesResponse, year: int, month: int) -> DashboardView:
    view = _series_report(response, month_window(year, month), Granularity.DAY, "date")
    view.report["month"] = f"{year}-{month:02d}"
    return view


def build_yearly_report(response: SalesResponse, year: int) -> DashboardView:
    view = _series_report(response, year_window(year), Granularity.MONTH, "month")
    view.report["year"] = year
    return view


# ── Goals ─────────────────────────────────────────────────────────────────────


def goal_section(
    totals: Totals,
    store: GoalStore,
    period: PeriodKind,
    period_day: date,
    now: Union[date, datetime],
) -> dict:
    """Progress of every goal tier for the period that contains ``period_day``."""
    start, end = period_bounds(period, period_day)
    displays = load_goals(store, period)
    targets = {tier: parse_display(d) for tier, d in displays.items()}
    return {
        tier: {
            "goal": displays[tier],
            "target_amount": float(targets[tier]),
            **progress(totals.net_amount, targets[tier], start, end, now).as_dict(),
        }
        for tier in displays
    }


def public_view(view: DashboardView, goals: Optional[dict] = None) -> dict:
    out = dict(view.report)
    if goals is not None:
        out["goals"] = goals
    return out
