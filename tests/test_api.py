import json
import unittest
from datetime import datetime, timezone

import httpx
from fastapi.testclient import TestClient

from app.api.proxy import get_adapter
from app.db import MemoryKeyValueStore
from app.main import app
from app.pipeline.orchestrator import Tracker, get_tracker
from app.pipeline.state import StateStore
from app.providers.finnhub_adapter import FinnhubAdapter

BASE_URL = "https://upstream.test/api/v1"

QUOTES = {"AAPL": {"c": 150.0, "dp": 1.25}, "MSFT": {"c": 300.0, "dp": -0.5}}


def upstream(request: httpx.Request) -> httpx.Response:
    symbol = request.url.params.get("symbol")
    path = request.url.path
    if request.url.params.get("token") != "test-key":
        return httpx.Response(401, json={"error": "Invalid API key"})
    if path.endswith("/quote"):
        if symbol in QUOTES:
            return httpx.Response(200, json=QUOTES[symbol])
        if symbol == "DOWN":
            return httpx.Response(503, text="unavailable")
        return httpx.Response(200, json={"c": 0, "dp": None})
    if path.endswith("/stock/profile2"):
        if symbol == "AAPL":
            return httpx.Response(200, json={"name": "Apple Inc", "finnhubIndustry": "Technology"})
        return httpx.Response(429, json={"error": "limit"})
    if path.endswith("/stock/candle"):
        return httpx.Response(200, json={"s": "ok", "c": [1.0, 2.0], "t": [1, 2]})
    return httpx.Response(404)


def fixed_clock():
    return datetime(2024, 1, 10, 12, 0, tzinfo=timezone.utc)


class ApiTestCase(unittest.TestCase):
    api_key = "test-key"

    def setUp(self):
        self.kv = MemoryKeyValueStore()
        self.adapter = FinnhubAdapter(self.api_key, base_url=BASE_URL, transport=httpx.MockTransport(upstream))
        self.tracker = Tracker(
            StateStore(self.kv),
            self.adapter,
            clock=fixed_clock,
            tz_name="UTC",
            cache_seconds=300,
            concurrency=4,
        )
        app.dependency_overrides[get_tracker] = lambda: self.tracker
        app.dependency_overrides[get_adapter] = lambda: self.adapter
        self.client = TestClient(app)

    def tearDown(self):
        app.dependency_overrides.clear()


class HoldingsApiTests(ApiTestCase):
    def test_health(self):
        r = self.client.get("/health")
        self.assertEqual(r.status_code, 200)
        self.assertTrue(r.json()["upstream_key"])

    def test_add_holding_enriches_industry(self):
        r = self.client.post("/portfolio", json={"symbol": " aapl ", "shares": "2,5"})
        body = r.json()
        self.assertTrue(body["applied"])
        self.assertEqual(body["item"]["symbol"], "AAPL")
        self.assertEqual(body["item"]["shares"], 2.5)
        self.assertEqual(body["item"]["industry"], "Technology")

    def test_profile_failure_still_adds(self):
        body = self.client.post("/portfolio", json={"symbol": "MSFT", "shares": 1}).json()
        self.assertTrue(body["applied"])
        self.assertIsNone(body["item"]["industry"])

    def test_invalid_holding_is_not_applied(self):
        for payload in ({"symbol": "", "shares": 1}, {"symbol": "AAPL", "shares": 0}, {"symbol": "AAPL", "shares": "x"}):
            self.assertEqual(self.client.post("/portfolio", json=payload).json(), {"ok": False, "applied": False})
        self.assertEqual(self.client.get("/portfolio").json(), [])
        self.assertEqual(self.kv.keys(), [])

    def test_edit_and_delete(self):
        item = self.client.post("/portfolio", json={"symbol": "AAPL", "shares": 1}).json()["item"]
        r = self.client.patch(f"/portfolio/{item['id']}", json={"shares": 0})
        self.assertEqual(r.json()["item"]["shares"], 0)
        r = self.client.patch(f"/portfolio/{item['id']}", json={"shares": -1})
        self.assertFalse(r.json()["applied"])
        self.assertEqual(self.client.delete(f"/portfolio/{item['id']}").status_code, 200)
        self.assertEqual(self.client.delete(f"/portfolio/{item['id']}").status_code, 404)

    def test_watchlist(self):
        self.client.post("/watchlist", json={"symbol": "msft"})
        self.client.post("/watchlist", json={"symbol": "aapl", "name": "Apple"})
        names = [it["name"] for it in self.client.get("/watchlist").json()]
        self.assertEqual(names, ["Apple", "MSFT"])


class QuotesApiTests(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.client.post("/portfolio", json={"symbol": "AAPL", "shares": 2})
        self.client.post("/portfolio", json={"symbol": "DOWN", "shares": 1})

    def test_rows_before_refresh(self):
        body = self.client.get("/quotes/portfolio").json()
        self.assertIsNone(body["last_refresh_ms"])
        self.assertEqual({r["status"] for r in body["rows"]}, {"never_fetched"})

    def test_refresh_marks_failures_per_symbol(self):
        r = self.client.post("/quotes/portfolio/refresh")
        self.assertEqual(r.json()["status"], "refreshed")
        self.assertEqual(r.json()["fetched"], 1)
        self.assertEqual(r.json()["unavailable"], 1)
        self.assertTrue(r.json()["logged_today"])

        rows = {row["symbol"]: row for row in self.client.get("/quotes/portfolio").json()["rows"]}
        self.assertEqual(rows["AAPL"]["status"], "fetched")
        self.assertEqual(rows["AAPL"]["value"], 300.0)
        self.assertEqual(rows["DOWN"]["status"], "unavailable")
        self.assertNotIn("value", rows["DOWN"])

        self.assertEqual(self.client.post("/quotes/portfolio/refresh").json()["status"], "fresh")
        self.assertEqual(self.client.post("/quotes/portfolio/refresh?force=true").json()["status"], "refreshed")

    def test_history_and_reset(self):
        self.client.post("/quotes/portfolio/refresh")
        self.assertEqual(self.client.get("/history").json(), {"AAPL": 1})
        data = self.client.get("/history/aapl").json()["data"]
        self.assertEqual([p[1] for p in data], [150.0])

        self.assertEqual(self.client.post("/history/reset").status_code, 400)
        self.assertEqual(self.client.post("/history/reset?confirm=true").status_code, 200)
        self.assertEqual(self.client.get("/history").json(), {})

    def test_chart_needs_two_days(self):
        self.client.post("/quotes/portfolio/refresh")
        body = self.client.get("/charts/portfolio?range=30D").json()
        self.assertEqual(body["mode"], "total")
        self.assertTrue(body["insufficient_history"])
        self.assertEqual(self.client.get("/charts/portfolio/image").status_code, 404)

    def test_chart_mode_must_fit_list(self):
        self.assertEqual(self.client.get("/charts/watchlist?mode=total").status_code, 400)
        self.assertEqual(self.client.get("/charts/portfolio?mode=overlay").status_code, 400)
        self.assertEqual(self.client.get("/charts/portfolio?range=2W").status_code, 422)


class DividendsApiTests(ApiTestCase):
    def test_events_and_summary(self):
        self.client.post("/portfolio", json={"symbol": "KO", "shares": 10})
        r = self.client.post("/dividends/events", json={"symbol": "ko", "date": "2023-12-05", "amount": "20"})
        self.assertTrue(r.json()["applied"])
        self.assertFalse(self.client.post("/dividends/events", json={"symbol": "KO", "date": "2023-12-05", "amount": 0}).json()["applied"])
        r = self.client.put(
            "/dividends/settings",
            json={"symbol": "KO", "annual_per_share": 2, "frequency": "Quarterly", "next_pay_date": "2024-03-15"},
        )
        self.assertTrue(r.json()["applied"])

        summary = self.client.get("/dividends/summary").json()
        self.assertEqual(summary["total_actual"], 20.0)
        self.assertEqual(summary["total_forecast"], 20.0)
        self.assertEqual(summary["forecast"][0]["month"], "2024-01")
        self.assertEqual(summary["actual"][-1]["month"], "2024-01")

        r = self.client.get("/dividends/summary/image")
        self.assertEqual(r.headers["content-type"], "image/png")

        self.assertEqual(self.client.delete("/dividends/settings/ko").status_code, 200)
        self.assertEqual(self.client.get("/dividends/summary").json()["total_forecast"], 0.0)


class ProxyTests(ApiTestCase):
    def test_quote_forwards_body(self):
        r = self.client.get("/api/finnhub/quote?symbol=aapl")
        self.assertEqual(r.status_code, 200)
        self.assertEqual(r.json(), QUOTES["AAPL"])
        self.assertIn("no-store", r.headers["cache-control"])

    def test_quote_forwards_upstream_status(self):
        self.assertEqual(self.client.get("/api/finnhub/quote?symbol=DOWN").status_code, 503)

    def test_missing_symbol(self):
        self.assertEqual(self.client.get("/api/finnhub/quote").status_code, 400)
        self.assertEqual(self.client.get("/api/finnhub/candles?symbol=AAPL").status_code, 400)

    def test_profile(self):
        self.assertEqual(self.client.get("/api/finnhub/profile?symbol=AAPL").json()["industry"], "Technology")
        self.assertEqual(self.client.get("/api/finnhub/profile?symbol=MSFT").status_code, 429)

    def test_candles(self):
        r = self.client.get("/api/finnhub/candles?symbol=AAPL&from=1&to=2")
        self.assertEqual(r.status_code, 200)
        self.assertEqual(json.loads(r.content)["s"], "ok")


class MissingKeyTests(ApiTestCase):
    api_key = None

    def test_proxy_reports_missing_key(self):
        r = self.client.get("/api/finnhub/quote?symbol=AAPL")
        self.assertEqual(r.status_code, 500)
        self.assertIn("FINNHUB_API_KEY", r.json()["error"])

    def test_refresh_marks_all_unavailable(self):
        self.client.post("/watchlist", json={"symbol": "AAPL"})
        body = self.client.post("/quotes/watchlist/refresh").json()
        self.assertEqual(body["unavailable"], 1)
        self.assertFalse(body["logged_today"])


if __name__ == "__main__":
    unittest.main()
