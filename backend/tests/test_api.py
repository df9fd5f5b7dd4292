"""HTTP tests against the FastAPI app with a mocked sales source."""

import json

import httpx
import pytest
from fastapi.testclient import TestClient

import salespulse.database as database
from salespulse.main import app
from salespulse.services.sales_client import SalesSourceClient


@pytest.fixture
def upstream(make_payload):
    """Mutable fake of the transactions endpoint."""
    state = {
        "fail": False,
        "calls": [],
        "rows": [
            make_payload("2025-01-01T10:00:00", 100, 10, "Curso"),
            make_payload("2025-01-01T18:30:00", 50),
            make_payload("2025-01-03T09:15:00", 200),
        ],
    }

    def handler(request: httpx.Request) -> httpx.Response:
        state["calls"].append(json.loads(request.content))
        if state["fail"]:
            return httpx.Response(502, text="bad gateway")
        return httpx.Response(200, json={"data": state["rows"]})

    state["transport"] = httpx.MockTransport(handler)
    return state


@pytest.fixture
def client(tmp_path, monkeypatch, upstream):
    monkeypatch.setattr(database, "DATA_DIR", tmp_path)
    with TestClient(app) as c:
        app.state.sales_client = SalesSourceClient(
            base_url="http://sales.test", transport=upstream["transport"]
        )
        yield c


class TestHealth:
    def test_health(self, client):
        r = client.get("/health")
        assert r.status_code == 200
        assert r.json()["status"] == "ok"

    def test_database_created_in_data_dir(self, client, tmp_path):
        assert (tmp_path / database.DB_FILENAME).exists()


class TestGoalsApi:
    def test_defaults(self, client):
        r = client.get("/goals/monthly")
        assert r.status_code == 200
        body = r.json()
        assert [g["tier"] for g in body] == ["Meta", "SuperMeta", "UltraMeta"]
        assert all(g["display"] == "R$ 0,00" and g["amount"] == 0.0 for g in body)
        assert body[0]["key"] == "monthlyMeta"

    def test_put_then_get(self, client):
        r = client.put("/goals/yearly/UltraMeta", json={"value": "R$ 1.234,567"})
        assert r.status_code == 200
        assert r.json()["display"] == "R$ 12.345,67"
        assert r.json()["amount"] == 12345.67

        goals = {g["tier"]: g["display"] for g in client.get("/goals/yearly").json()}
        assert goals["UltraMeta"] == "R$ 12.345,67"
        assert goals["Meta"] == "R$ 0,00"

    def test_unknown_period(self, client):
        assert client.get("/goals/weekly").status_code == 404

    def test_unknown_tier(self, client):
        assert client.put("/goals/monthly/MegaMeta", json={"value": "1"}).status_code == 404

    def test_missing_body(self, client):
        assert client.put("/goals/monthly/Meta", json={}).status_code == 422

    def test_preview(self, client):
        r = client.get("/goals/preview", params={"raw": "R$ 1.234,5"})
        assert r.json() == {"display": "R$ 123,45", "amount": 123.45}

    def test_preview_empty(self, client):
        assert client.get("/goals/preview").json()["display"] == "R$ 0,00"


class TestDashboardApi:
    def test_daily_range(self, client, upstream):
        r = client.get("/dashboard/daily", params={"from": "2025-01-01", "to": "2025-01-03"})
        assert r.status_code == 200
        body = r.json()
        assert [b["quantity"] for b in body["buckets"]] == [2, 0, 1]
        assert body["totals"]["total_net_amount"] == 350.0
        assert body["totals"]["average_ticket"] == 116.67
        assert body["stale"] is False
        assert body["error"] is None
        assert "goals" not in body
        assert upstream["calls"][0] == {
            "ordered_at_ini": "2025-01-01T00:00:00.000Z",
            "ordered_at_end": "2025-01-03T23:59:59.999Z",
        }

    def test_cached_view_not_refetched(self, client, upstream):
        params = {"from": "2025-01-01", "to": "2025-01-03"}
        client.get("/dashboard/daily", params=params)
        client.get("/dashboard/daily", params=params)
        assert len(upstream["calls"]) == 1
        client.get("/dashboard/daily", params={**params, "refresh": "true"})
        assert len(upstream["calls"]) == 2

    def test_inverted_range(self, client):
        r = client.get("/dashboard/daily", params={"from": "2025-01-03", "to": "2025-01-01"})
        assert r.status_code == 422

    def test_bad_date(self, client):
        assert client.get("/dashboard/daily", params={"from": "2025-02-30"}).status_code == 422

    def test_today_with_goals_and_products(self, client):
        client.put("/goals/daily/Meta", json={"value": "30000"})
        r = client.get("/dashboard/today", params={"day": "2025-01-01"})
        assert r.status_code == 200
        body = r.json()
        assert len(body["buckets"]) == 24
        assert body["buckets"][10]["net_amount"] == 100.0
        assert body["products"][0] == {"name": "Curso", "quantity": 1, "value": 100.0}
        meta = body["goals"]["Meta"]
        assert meta["goal"] == "R$ 300,00"
        assert meta["actual_progress_pct"] == 50.0
        assert meta["total_days"] == 1

    def test_monthly(self, client):
        client.put("/goals/monthly/Meta", json={"value": "100000"})
        r = client.get("/dashboard/monthly", params={"month": "2025-01"})
        body = r.json()
        assert body["month"] == "2025-01"
        assert len(body["buckets"]) == 31
        assert body["goals"]["Meta"]["actual_progress_pct"] == 35.0
        assert body["goals"]["Meta"]["total_days"] == 31

    def test_goal_change_applies_to_cached_view(self, client, upstream):
        client.get("/dashboard/monthly", params={"month": "2025-01"})
        client.put("/goals/monthly/Meta", json={"value": "35000"})
        body = client.get("/dashboard/monthly", params={"month": "2025-01"}).json()
        assert body["goals"]["Meta"]["actual_progress_pct"] == 100.0
        assert len(upstream["calls"]) == 1

    def test_bad_month(self, client):
        assert client.get("/dashboard/monthly", params={"month": "2025-13"}).status_code == 422

    def test_yearly(self, client):
        body = client.get("/dashboard/yearly", params={"year": "2025"}).json()
        assert body["year"] == 2025
        assert body["buckets"][0] == {"month": "01", "net_amount": 350.0, "quantity": 3, "affiliate_value": 10.0}
        assert set(body["goals"]) == {"Meta", "SuperMeta", "UltraMeta"}

    def test_bad_year(self, client):
        assert client.get("/dashboard/yearly", params={"year": "25"}).status_code == 422

    def test_source_down_without_cache(self, client, upstream):
        upstream["fail"] = True
        r = client.get("/dashboard/daily", params={"from": "2025-01-01", "to": "2025-01-03"})
        assert r.status_code == 503

    def test_source_down_after_success_serves_stale(self, client, upstream):
        params = {"from": "2025-01-01", "to": "2025-01-03"}
        client.get("/dashboard/daily", params=params)
        upstream["fail"] = True
        r = client.get("/dashboard/daily", params={**params, "refresh": "true"})
        assert r.status_code == 200
        body = r.json()
        assert body["stale"] is True
        assert "Sales source unavailable" in body["error"]
        assert body["totals"]["total_transactions"] == 3
