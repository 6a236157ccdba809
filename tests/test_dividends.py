import unittest
from datetime import date

from app.pipeline.dividends import (
    monthly_actual,
    monthly_forecast,
    projected_payments,
    shares_by_symbol,
    summarize,
)
from app.pipeline.models import DividendEvent, DividendSetting, Frequency, Holding


def _event(day, amount, symbol="AAPL"):
    return DividendEvent(symbol=symbol, date=day, amount=amount)


def _setting(symbol, annual, freq, next_pay):
    return DividendSetting(symbol=symbol, annual_per_share=annual, frequency=freq, next_pay_date=next_pay)


def _by_month(buckets):
    return {b.month: b.amount for b in buckets}


class MonthlyActualTests(unittest.TestCase):
    def test_same_month_events_add_up(self):
        buckets = monthly_actual([_event("2024-03-01", 50), _event("2024-03-20", 20)], today=date(2024, 3, 15))
        self.assertEqual(_by_month(buckets)["2024-03"], 70)

    def test_always_twelve_zero_filled_buckets(self):
        buckets = monthly_actual([], today=date(2024, 3, 15))
        self.assertEqual(len(buckets), 12)
        self.assertEqual(buckets[0].month, "2023-04")
        self.assertEqual(buckets[-1].month, "2024-03")
        self.assertTrue(all(b.amount == 0 for b in buckets))

    def test_events_outside_window_are_ignored(self):
        events = [
            _event("2023-03-31", 99),  # before window start
            _event("2023-04-01", 5),
            _event("2024-04-02", 7),  # next month, no bucket
            _event("garbage", 3),
        ]
        buckets = monthly_actual(events, today=date(2024, 3, 15))
        self.assertEqual(_by_month(buckets)["2023-04"], 5)
        self.assertEqual(sum(b.amount for b in buckets), 5)


class MonthlyForecastTests(unittest.TestCase):
    def test_monthly_payer_full_year(self):
        settings = {"AAPL": _setting("AAPL", 12, Frequency.MONTHLY, "2024-03-05")}
        buckets = monthly_forecast(settings, {"AAPL": 10}, today=date(2024, 3, 15))
        self.assertEqual(len(buckets), 12)
        self.assertEqual(buckets[0].month, "2024-03")
        self.assertEqual(buckets[-1].month, "2025-02")
        self.assertTrue(all(b.amount == 10 for b in buckets))
        self.assertEqual(sum(b.amount for b in buckets), 120)

    def test_stale_date_rolls_forward_without_back_payments(self):
        settings = {"KO": _setting("KO", 4, Frequency.QUARTERLY, "2023-01-15")}
        buckets = _by_month(monthly_forecast(settings, {"KO": 10}, today=date(2024, 3, 10)))
        paid = {m: v for m, v in buckets.items() if v}
        self.assertEqual(paid, {"2024-04": 10, "2024-07": 10, "2024-10": 10, "2025-01": 10})

    def test_zero_shares_projects_nothing(self):
        settings = {"KO": _setting("KO", 4, Frequency.QUARTERLY, "2024-04-01")}
        buckets = monthly_forecast(settings, {"KO": 0}, today=date(2024, 3, 10))
        self.assertEqual(sum(b.amount for b in buckets), 0)
        buckets = monthly_forecast(settings, {}, today=date(2024, 3, 10))
        self.assertEqual(sum(b.amount for b in buckets), 0)

    def test_pay_date_beyond_window_is_dropped(self):
        settings = {"X": _setting("X", 5, Frequency.ANNUAL, "2025-06-01")}
        buckets = monthly_forecast(settings, {"X": 1}, today=date(2024, 3, 10))
        self.assertEqual(sum(b.amount for b in buckets), 0)

    def test_semi_annual(self):
        settings = {"X": _setting("X", 3, Frequency.SEMI_ANNUAL, "2024-05-31")}
        paid = {m: v for m, v in _by_month(monthly_forecast(settings, {"X": 2}, today=date(2024, 3, 1))).items() if v}
        self.assertEqual(paid, {"2024-05": 3, "2024-11": 3})

    def test_month_end_pay_date_clamps(self):
        setting = _setting("X", 12, Frequency.MONTHLY, "2024-01-31")
        pays = projected_payments(setting, 1, date(2024, 1, 1), date(2025, 1, 1))
        self.assertEqual(len(pays), 12)
        self.assertEqual(pays[1][0], date(2024, 2, 29))

    def test_unparseable_next_pay_date_is_skipped(self):
        settings = {"X": _setting("X", 12, Frequency.MONTHLY, "soon")}
        buckets = monthly_forecast(settings, {"X": 1}, today=date(2024, 3, 1))
        self.assertEqual(sum(b.amount for b in buckets), 0)


class SummaryTests(unittest.TestCase):
    def test_totals_match_buckets(self):
        holdings = [Holding(symbol="AAPL", shares=4), Holding(symbol="AAPL", shares=6)]
        settings = {"AAPL": _setting("AAPL", 12, Frequency.MONTHLY, "2024-03-05")}
        events = [_event("2024-01-10", 12.5), _event("2024-02-10", 7.5)]
        summary = summarize(events, settings, holdings, today=date(2024, 3, 15))
        self.assertEqual(summary.total_actual, 20)
        self.assertEqual(summary.total_forecast, 120)
        self.assertEqual(len(summary.actual), 12)
        self.assertEqual(len(summary.forecast), 12)

    def test_shares_by_symbol_sums_duplicates(self):
        holdings = [Holding(symbol="AAPL", shares=4), Holding(symbol="AAPL", shares=6), Holding(symbol="KO", shares=1)]
        self.assertEqual(shares_by_symbol(holdings), {"AAPL": 10, "KO": 1})


if __name__ == "__main__":
    unittest.main()
