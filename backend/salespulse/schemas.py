from typing import Any, Literal, Optional

from pydantic import BaseModel, ValidationError, computed_field, model_validator

from .services.currency import cents_to_decimal, parse_display, to_cents


# ─────────────────────────────────────────────────────────────────────────────
# Health
# ─────────────────────────────────────────────────────────────────────────────


class HealthResponse(BaseModel):
    status: str
    version: str


# ─────────────────────────────────────────────────────────────────────────────
# Upstream sales source
# ─────────────────────────────────────────────────────────────────────────────


def _dig(payload: dict, *path: str) -> Any:
    node: Any = payload
    for key in path:
        if not isinstance(node, dict):
            return None
        node = node.get(key)
    return node


def _as_epoch(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


class SaleTransaction(BaseModel):
    """One sale as delivered by the upstream transactions endpoint.

    Accepts the nested upstream shape::

        {"dates": {"created_at": 1736942400},
         "calculation_details": {"net_amount": 97.0, "net_affiliate_value": 12.5},
         "product": {"name": "Curso"}}

    as well as flat ``created_at`` / ``net_amount`` / ``affiliate_amount`` keys.
    Missing amounts become zero; an unusable timestamp becomes None.
    """

    created_at: Optional[float] = None
    net_amount_cents: int = 0
    affiliate_amount_cents: int = 0
    product_name: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def _flatten_upstream(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return {}
        if "net_amount_cents" in data or "affiliate_amount_cents" in data:
            return data

        created = _dig(data, "dates", "created_at")
        if created is None:
            created = data.get("created_at")

        net = _dig(data, "calculation_details", "net_amount")
        if net is None:
            net = data.get("net_amount")

        affiliate = _dig(data, "calculation_details", "net_affiliate_value")
        if affiliate is None:
            affiliate = data.get("affiliate_amount")

        product = _dig(data, "product", "name")
        if product is None:
            product = data.get("product_name")

        return {
            "created_at": _as_epoch(created),
            "net_amount_cents": to_cents(net),
            "affiliate_amount_cents": to_cents(affiliate),
            "product_name": str(product) if product is not None else None,
        }

    @computed_field
    @property
    def net_amount(self) -> float:
        return float(cents_to_decimal(self.net_amount_cents))

    @computed_field
    @property
    def affiliate_amount(self) -> float:
        return float(cents_to_decimal(self.affiliate_amount_cents))


class ServerTotals(BaseModel):
    total_transactions: Optional[int] = None
    total_net_amount: Optional[float] = None

    @computed_field
    @property
    def total_net_amount_cents(self) -> Optional[int]:
        if self.total_net_amount is None:
            return None
        return to_cents(self.total_net_amount)


class SalesResponse(BaseModel):
    data: list[SaleTransaction] = []
    totals: Optional[ServerTotals] = None

    @model_validator(mode="before")
    @classmethod
    def _tolerate_partial(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return {"data": []}
        rows = data.get("data")
        totals = data.get("totals")
        if isinstance(totals, dict):
            # unreadable upstream totals are dropped; the buckets carry their own
            try:
                totals = ServerTotals.model_validate(totals)
            except ValidationError:
                totals = None
        else:
            totals = None
        return {
            "data": [r for r in rows if isinstance(r, dict)] if isinstance(rows, list) else [],
            "totals": totals,
        }


# ─────────────────────────────────────────────────────────────────────────────
# Goals
# ─────────────────────────────────────────────────────────────────────────────


GoalPeriod = Literal["daily", "monthly", "yearly"]
GoalTier = Literal["Meta", "SuperMeta", "UltraMeta"]


class GoalUpdate(BaseModel):
    value: str   # raw keystroke buffer or display string, e.g. "R$ 1.234,56"


class GoalSchema(BaseModel):
    period: GoalPeriod
    tier: GoalTier
    key: str
    display: str

    @computed_field
    @property
    def amount(self) -> float:
        return float(parse_display(self.display))
