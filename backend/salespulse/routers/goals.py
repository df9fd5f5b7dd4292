"""Goals router: read and save per-period goal figures."""

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from ..database import get_db
from ..schemas import GoalSchema, GoalUpdate
from ..services.currency import format_from_keystrokes, parse_display
from ..services.goal_store import SettingsGoalStore, goal_key, load_goals, save_goal
from ..services.goals import GOAL_TIERS, PeriodKind

router = APIRouter(prefix="/goals", tags=["goals"])


def _require_period(period: str) -> PeriodKind:
    try:
        return PeriodKind(period)
    except ValueError:
        raise HTTPException(
            status_code=404, detail=f"Unknown period {period!r}; use daily, monthly or yearly"
        ) from None


def _require_tier(tier: str) -> str:
    if tier not in GOAL_TIERS:
        raise HTTPException(
            status_code=404, detail=f"Unknown goal {tier!r}; use {', '.join(GOAL_TIERS)}"
        )
    return tier


@router.get("/preview", summary="Render a keystroke buffer as a currency string")
def preview(raw: str = Query("", description="Characters typed so far")):
    display = format_from_keystrokes(raw)
    return {"display": display, "amount": float(parse_display(display))}


@router.get("/{period}", response_model=list[GoalSchema], summary="Goal figures for a period")
def list_goals(period: str, db: Session = Depends(get_db)):
    kind = _require_period(period)
    return [
        GoalSchema(period=kind.value, tier=tier, key=goal_key(kind, tier), display=display)
        for tier, display in load_goals(SettingsGoalStore(db), kind).items()
    ]


@router.put("/{period}/{tier}", response_model=GoalSchema, summary="Save one goal figure")
def update_goal(period: str, tier: str, body: GoalUpdate, db: Session = Depends(get_db)):
    kind = _require_period(period)
    _require_tier(tier)
    display = save_goal(SettingsGoalStore(db), kind, tier, body.value)
    return GoalSchema(period=kind.value, tier=tier, key=goal_key(kind, tier), display=display)
