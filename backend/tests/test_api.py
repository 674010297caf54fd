import math
import unittest

from fastapi.testclient import TestClient

from demystify.config import Settings
from demystify.main import create_app


def wave_bars(n=120):
    return [
        {"time": i * 3600, "open": c, "high": c, "low": c, "close": c, "volume": 1.0}
        for i, c in enumerate(100 + 10 * math.sin(i / 5.0) for i in range(n))
    ]


class ApiTests(unittest.TestCase):
    def setUp(self):
        self.client = TestClient(create_app(Settings()))

    def test_root(self):
        response = self.client.get("/")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["status"], "online")

    def test_status_without_data(self):
        body = self.client.get("/status").json()
        self.assertFalse(body["data_loaded"])
        self.assertEqual(body["rows"], 0)

    def test_parse(self):
        response = self.client.post("/parse", json={"strategy": "RSI 30'da al, 70'te sat"})
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["recognizedPatterns"], ["RSI_Mean_Reversion"])
        self.assertEqual(body["entryConditions"][0], {"kind": "rsi_threshold", "comparator": "<", "value": 30.0, "period": 14})

    def test_score(self):
        metrics = {"profitFactor": 3.0, "maxDrawdown": 5, "sharpeRatio": 2.5, "cagr": 60, "winRate": 70}
        response = self.client.post("/score", json={"metrics": metrics})
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["breakdown"]["total"], 100)
        self.assertEqual(body["category"], "exceptional")
        self.assertEqual(body["redFlags"], [])

    def test_backtest_without_data(self):
        response = self.client.post("/backtest", json={"strategy": "RSI 30 70"})
        self.assertEqual(response.status_code, 400)

    def test_backtest_with_inline_bars(self):
        response = self.client.post("/backtest", json={
            "strategy": "RSI 30'da al, 70'te sat",
            "timeframe": "1d",
            "bars": wave_bars(),
        })
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertTrue(body["success"])
        self.assertEqual(body["marketType"], "24hr")
        self.assertEqual(body["backtest"]["strategyPath"], "rsi")
        self.assertGreater(body["backtest"]["metrics"]["totalTrades"], 0)
        total = body["score"]["breakdown"]["total"]
        self.assertTrue(0 <= total <= 100)

    def test_upload_then_backtest(self):
        rows = "\n".join(f"{b['time']},{b['open']},{b['high']},{b['low']},{b['close']},1" for b in wave_bars())
        csv = "time,open,high,low,close,volume\n" + rows + "\n"
        response = self.client.post("/upload-csv", files={"file": ("bars.csv", csv, "text/csv")})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["rows"], 120)

        status = self.client.get("/status").json()
        self.assertTrue(status["data_loaded"])
        self.assertEqual(status["kind"], "bars")

        response = self.client.post("/backtest", json={"strategy": "breakout with 3% stop loss"})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["backtest"]["strategyPath"], "breakout")

    def test_upload_invalid_csv(self):
        response = self.client.post("/upload-csv", files={"file": ("bad.csv", "a,b\n1,2\n", "text/csv")})
        self.assertEqual(response.status_code, 400)


class SettingsTests(unittest.TestCase):
    def test_from_env(self):
        settings = Settings.from_env({
            "CORS_ORIGINS": "http://a.test, http://b.test",
            "DEMYSTIFY_PORT": "5000",
            "DEMYSTIFY_INITIAL_CAPITAL": "5000",
        })
        self.assertEqual(settings.cors_origins, ["http://a.test", "http://b.test"])
        self.assertEqual(settings.port, 5000)
        self.assertEqual(settings.backtest.initial_capital, 5000.0)
        self.assertIsNone(settings.default_data_path)

    def test_defaults(self):
        settings = Settings.from_env({})
        self.assertEqual(settings.port, 4000)
        self.assertEqual(settings.backtest.warmup_bars, 20)


if __name__ == "__main__":
    unittest.main()
