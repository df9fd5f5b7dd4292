from datetime import datetime, timezone
from typing import Optional

import pytest

from salespulse.schemas import SaleTransaction


def _epoch_seconds(instant: str) -> int:
    dt = datetime.fromisoformat(instant)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return int(dt.timestamp())


def sale_payload(
    instant: str,
    net: Optional[float] = None,
    affiliate: Optional[float] = None,
    product: Optional[str] = None,
) -> dict:
    """Upstream-shaped transaction dict; ``instant`` is ISO, UTC unless stated."""
    details = {}
    if net is not None:
        details["net_amount"] = net
    if affiliate is not None:
        details["net_affiliate_value"] = affiliate
    payload = {"dates": {"created_at": _epoch_seconds(instant)}, "calculation_details": details}
    if product is not None:
        payload["product"] = {"name": product}
    return payload


@pytest.fixture
def make_sale():
    def _make(instant: str, net: Optional[float] = None, affiliate: Optional[float] = None,
              product: Optional[str] = None) -> SaleTransaction:
        return SaleTransaction.model_validate(sale_payload(instant, net, affiliate, product))

    return _make


@pytest.fixture
def make_payload():
    return sale_payload
