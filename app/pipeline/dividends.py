from __future__ import annotations
from dataclasses import dataclass, field
from datetime import date
from typing import Iterable

import structlog

from ..utils import add_months, month_key, month_start, now_local, parse_ymd
from .models import DividendEvent, DividendSetting, Frequency

log = structlog.get_logger()

WINDOW_MONTHS = 12

MONTH_STEP = {
    Frequency.MONTHLY: 1,
    Frequency.QUARTERLY: 3,
    Frequency.SEMI_ANNUAL: 6,
    Frequency.ANNUAL: 12,
}

PAYMENTS_PER_YEAR = {
    Frequency.MONTHLY: 12,
    Frequency.QUARTERLY: 4,
    Frequency.SEMI_ANNUAL: 2,
    Frequency.ANNUAL: 1,
}


@dataclass
class MonthBucket:
    month: str  # YYYY-MM
    amount: float


@dataclass
class DividendSummary:
    actual: list[MonthBucket] = field(default_factory=list)
    forecast: list[MonthBucket] = field(default_factory=list)
    total_actual: float = 0.0
    total_forecast: float = 0.0


def _today(today: date | None) -> date:
    return today if today is not None else now_local().date()


def _empty_buckets(start: date) -> dict[str, float]:
    return {month_key(add_months(start, i)): 0.0 for i in range(WINDOW_MONTHS)}


def _to_list(buckets: dict[str, float]) -> list[MonthBucket]:
    return [MonthBucket(k, round(v, 2)) for k, v in buckets.items()]


def shares_by_symbol(holdings: Iterable) -> dict[str, float]:
    """Current shares per symbol; duplicate holdings of one symbol add up."""
    out: dict[str, float] = {}
    for h in holdings:
        out[h.symbol] = out.get(h.symbol, 0.0) + (h.shares or 0.0)
    return out


def monthly_actual(events: Iterable[DividendEvent], today: date | None = None) -> list[MonthBucket]:
    """Received cash per month for the current month and the 11 before it."""
    start = add_months(month_start(_today(today)), -(WINDOW_MONTHS - 1))
    buckets = _empty_buckets(start)
    for ev in events:
        d = parse_ymd(ev.date)
        if d is None or d < start:
            continue
        k = month_key(d)
        if k in buckets:
            buckets[k] += ev.amount
    return _to_list(buckets)


def projected_payments(setting: DividendSetting, shares: float, start: date, end: date) -> list[tuple[date, float]]:
    """Pay dates in ``[start, end)`` with the cash each is expected to bring.

    A ``next_pay_date`` already behind ``start`` is rolled forward to its
    first occurrence on or after ``start``; skipped periods pay nothing.
    """
    pay = parse_ymd(setting.next_pay_date)
    if pay is None or not shares:
        return []
    step = MONTH_STEP[setting.frequency]
    per_payment = setting.annual_per_share / PAYMENTS_PER_YEAR[setting.frequency]
    while pay < start:
        pay = add_months(pay, step)
    out = []
    while pay < end:
        out.append((pay, shares * per_payment))
        pay = add_months(pay, step)
    return out


def monthly_forecast(
    dividend_settings: dict[str, DividendSetting] | Iterable[DividendSetting],
    shares: dict[str, float],
    today: date | None = None,
) -> list[MonthBucket]:
    """Expected cash per month for the current month and the 11 after it."""
    if isinstance(dividend_settings, dict):
        dividend_settings = dividend_settings.values()
    start = month_start(_today(today))
    end = add_months(start, WINDOW_MONTHS)
    buckets = _empty_buckets(start)
    for st in dividend_settings:
        count = shares.get(st.symbol, 0.0)
        if parse_ymd(st.next_pay_date) is None:
            log.warning("dividend_setting_skipped", symbol=st.symbol, next_pay_date=st.next_pay_date)
            continue
        for pay, amount in projected_payments(st, count, start, end):
            k = month_key(pay)
            if k in buckets:
                buckets[k] += amount
    return _to_list(buckets)


def summarize(
    events: Iterable[DividendEvent],
    dividend_settings: dict[str, DividendSetting],
    holdings: Iterable,
    today: date | None = None,
) -> DividendSummary:
    today = _today(today)
    actual = monthly_actual(events, today)
    forecast = monthly_forecast(dividend_settings, shares_by_symbol(holdings), today)
    return DividendSummary(
        actual=actual,
        forecast=forecast,
        total_actual=round(sum(b.amount for b in actual), 2),
        total_forecast=round(sum(b.amount for b in forecast), 2),
    )
