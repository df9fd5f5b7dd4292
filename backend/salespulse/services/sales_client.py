"""Client for the upstream transactions endpoint.

POST {SALESPULSE_SOURCE_URL}/api/transactions
  {"ordered_at_ini": "2025-01-01T00:00:00.000Z", "ordered_at_end": "2025-01-03T23:59:59.999Z"}
→ {"data": [...], "totals": {"total_transactions": 3, "total_net_amount": 350.0}}

``totals`` is optional; the dashboards never depend on it.
"""

import logging
import os
from typing import Optional

import httpx
from pydantic import ValidationError

from ..schemas import SalesResponse
from .aggregator import TimeWindow

logger = logging.getLogger(__name__)

SALES_API_BASE = os.getenv("SALESPULSE_SOURCE_URL", "http://localhost:3000")
SALES_API_TIMEOUT = float(os.getenv("SALESPULSE_SOURCE_TIMEOUT", "30"))
TRANSACTIONS_PATH = "/api/transactions"


class SalesSourceError(RuntimeError):
    """Network failure, timeout, non-2xx status or unreadable body."""


def window_payload(window: TimeWindow) -> dict:
    """Request body with full ISO instants at UTC day boundaries."""
    return {
        "ordered_at_ini": f"{window.start.isoformat()}T00:00:00.000Z",
        "ordered_at_end": f"{window.end.isoformat()}T23:59:59.999Z",
    }


class SalesSourceClient:
    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url or SALES_API_BASE).rstrip("/")
        self.timeout = timeout if timeout is not None else SALES_API_TIMEOUT
        self.transport = transport

    async def fetch(self, window: TimeWindow, view: str = "") -> SalesResponse:
        headers = {"X-Debug-Request": view} if view else {}
        try:
            async with httpx.AsyncClient(
                base_url=self.base_url, timeout=self.timeout, transport=self.transport
            ) as client:
                r = await client.post(TRANSACTIONS_PATH, json=window_payload(window), headers=headers)
                r.raise_for_status()
                body = r.json()
            response = SalesResponse.model_validate(body)
        except (httpx.HTTPError, ValidationError, ValueError) as exc:
            logger.error("Sales source request failed for %s..%s: %s", window.start, window.end, exc)
            raise SalesSourceError(f"Sales source unavailable: {exc}") from exc

        logger.info(
            "Fetched %d transactions for %s..%s%s",
            len(response.data), window.start, window.end,
            "" if response.totals is not None else " (no upstream totals)",
        )
        return response
