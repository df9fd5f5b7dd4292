"""Dashboard router: today / date range / month / year views with goal progress."""

import re
from datetime import date, datetime, timezone
from typing import Hashable, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session

from ..database import get_db
from ..services.aggregator import TimeWindow
from ..services.goal_store import SettingsGoalStore
from ..services.goals import PeriodKind
from ..services.refresher import (
    DASHBOARD_REFRESH_SECONDS,
    TODAY_REFRESH_SECONDS,
    DashboardHub,
    DashboardRefresher,
    Loader,
)
from ..services.reports import (
    build_monthly_report,
    build_range_report,
    build_today_report,
    build_yearly_report,
    default_range_window,
    goal_section,
    month_window,
    public_view,
    year_window,
)
from ..services.sales_client import SalesSourceClient

router = APIRouter(prefix="/dashboard", tags=["dashboard"])

_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_MONTH_RE = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$")
_YEAR_RE = re.compile(r"^\d{4}$")


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _require_date(value: str, param: str) -> date:
    if _DATE_RE.match(value):
        try:
            return date.fromisoformat(value)
        except ValueError:
            pass
    raise HTTPException(status_code=422, detail=f"{param} must be YYYY-MM-DD, got {value!r}")


def _require_month(value: str, param: str) -> tuple[int, int]:
    if not _MONTH_RE.match(value):
        raise HTTPException(status_code=422, detail=f"{param} must be YYYY-MM, got {value!r}")
    return int(value[:4]), int(value[5:7])


def _require_year(value: str, param: str) -> int:
    if not _YEAR_RE.match(value) or int(value) < 1:
        raise HTTPException(status_code=422, detail=f"{param} must be a 4-digit year, got {value!r}")
    return int(value)


# ── Dependencies ──────────────────────────────────────────────────────────────


def get_hub(request: Request) -> DashboardHub:
    return request.app.state.hub


def get_sales_client(request: Request) -> SalesSourceClient:
    return request.app.state.sales_client


async def _live_view(
    hub: DashboardHub, key: Hashable, load: Loader, interval: float, refresh: bool
) -> DashboardRefresher:
    existed = hub.get(key) is not None
    refresher = await hub.view(key, load, interval)
    if existed and (refresh or refresher.state is None):
        await refresher.refresh()
    if refresher.state is None:
        raise HTTPException(status_code=503, detail=f"Sales source unavailable: {refresher.error}")
    return refresher


def _envelope(refresher: DashboardRefresher, goals: Optional[dict] = None) -> dict:
    body = public_view(refresher.state, goals)
    body["stale"] = refresher.stale
    body["error"] = str(refresher.error) if refresher.error else None
    return body


# ── Views ─────────────────────────────────────────────────────────────────────


@router.get("/today", summary="Hourly sales, product breakdown and daily goals for one day")
async def today(
    day: Optional[str] = Query(None, description="Day YYYY-MM-DD (default: today, UTC)"),
    refresh: bool = Query(False, description="Force a new fetch from the sales source"),
    hub: DashboardHub = Depends(get_hub),
    client: SalesSourceClient = Depends(get_sales_client),
    db: Session = Depends(get_db),
):
    now = _utc_now()
    target_day = _require_date(day, "day") if day else now.date()
    window = TimeWindow.single_day(target_day)

    async def load():
        return build_today_report(await client.fetch(window, view="Today"), target_day)

    refresher = await _live_view(hub, ("today", target_day), load, TODAY_REFRESH_SECONDS, refresh)
    goals = goal_section(refresher.state.totals, SettingsGoalStore(db), PeriodKind.DAILY, target_day, now)
    return _envelope(refresher, goals)


@router.get("/daily", summary="Per-day sales and running totals for a date range")
async def daily(
    from_date: Optional[str] = Query(None, alias="from", description="Start date YYYY-MM-DD"),
    to_date: Optional[str] = Query(None, alias="to", description="End date YYYY-MM-DD"),
    refresh: bool = Query(False, description="Force a new fetch from the sales source"),
    hub: DashboardHub = Depends(get_hub),
    client: SalesSourceClient = Depends(get_sales_client),
):
    default = default_range_window(_utc_now().date())
    window = TimeWindow(
        _require_date(from_date, "from") if from_date else default.start,
        _require_date(to_date, "to") if to_date else default.end,
    )
    if not window.is_valid:
        raise HTTPException(status_code=422, detail="'from' must be ≤ 'to'")

    async def load():
        return build_range_report(await client.fetch(window, view="DailyDashboard"), window)

    refresher = await _live_view(
        hub, ("daily", window.start, window.end), load, DASHBOARD_REFRESH_SECONDS, refresh
    )
    return _envelope(refresher)


@router.get("/monthly", summary="Per-day sales, running totals and monthly goals for one month")
async def monthly(
    month: Optional[str] = Query(None, description="Month YYYY-MM (default: current month, UTC)"),
    refresh: bool = Query(False, description="Force a new fetch from the sales source"),
    hub: DashboardHub = Depends(get_hub),
    client: SalesSourceClient = Depends(get_sales_client),
    db: Session = Depends(get_db),
):
    now = _utc_now()
    year, month_no = _require_month(month, "month") if month else (now.year, now.month)
    window = month_window(year, month_no)

    async def load():
        return build_monthly_report(await client.fetch(window, view="MonthlyDashboard"), year, month_no)

    refresher = await _live_view(hub, ("monthly", year, month_no), load, DASHBOARD_REFRESH_SECONDS, refresh)
    goals = goal_section(refresher.state.totals, SettingsGoalStore(db), PeriodKind.MONTHLY, window.start, now)
    return _envelope(refresher, goals)


@router.get("/yearly", summary="Per-month sales, running totals and yearly goals for one year")
async def yearly(
    year: Optional[str] = Query(None, description="4-digit year (default: current year, UTC)"),
    refresh: bool = Query(False, description="Force a new fetch from the sales source"),
    hub: DashboardHub = Depends(get_hub),
    client: SalesSourceClient = Depends(get_sales_client),
    db: Session = Depends(get_db),
):
    now = _utc_now()
    year_no = _require_year(year, "year") if year else now.year
    window = year_window(year_no)

    async def load():
        return build_yearly_report(await client.fetch(window, view="YearlyDashboard"), year_no)

    refresher = await _live_view(hub, ("yearly", year_no), load, DASHBOARD_REFRESH_SECONDS, refresh)
    goals = goal_section(refresher.state.totals, SettingsGoalStore(db), PeriodKind.YEARLY, window.start, now)
    return _envelope(refresher, goals)
