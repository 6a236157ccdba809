"""Validated construction and edits of user-entered records.

Every constructor returns None for input it rejects; callers must not write
anything in that case.
"""
from __future__ import annotations
import math

from ..utils import parse_ymd, ymd
from .models import DividendEvent, DividendSetting, Frequency, Holding, WatchItem


def normalize_symbol(text) -> str | None:
    if text is None:
        return None
    s = str(text).strip().upper()
    return s or None


def parse_number(val) -> float | None:
    """Accepts numbers and numeric strings, with ``,`` as decimal separator."""
    if val is None or isinstance(val, bool):
        return None
    if isinstance(val, (int, float)):
        x = float(val)
    else:
        try:
            x = float(str(val).strip().replace(",", "."))
        except ValueError:
            return None
    return x if math.isfinite(x) else None


def _clean_text(val) -> str:
    return str(val).strip() if val is not None else ""


def make_holding(symbol, shares, name=None, industry: str | None = None) -> Holding | None:
    s = normalize_symbol(symbol)
    sh = parse_number(shares)
    if not s or sh is None or sh <= 0:
        return None
    return Holding(symbol=s, name=_clean_text(name) or s, shares=sh, industry=industry)


def make_watch_item(symbol, name=None) -> WatchItem | None:
    s = normalize_symbol(symbol)
    if not s:
        return None
    return WatchItem(symbol=s, name=_clean_text(name) or s)


def with_shares(items: list[Holding], item_id: str, shares) -> list[Holding] | None:
    sh = parse_number(shares)
    if sh is None or sh < 0:
        return None
    if not any(h.id == item_id for h in items):
        return None
    return [h.model_copy(update={"shares": sh}) if h.id == item_id else h for h in items]


def without(items: list, item_id: str) -> list:
    return [it for it in items if it.id != item_id]


def make_dividend_event(symbol, date, amount, note=None) -> DividendEvent | None:
    s = normalize_symbol(symbol)
    d = parse_ymd(date)
    a = parse_number(amount)
    if not s or d is None or a is None or a <= 0:
        return None
    return DividendEvent(symbol=s, date=ymd(d), amount=a, note=_clean_text(note) or None)


def make_dividend_setting(symbol, annual_per_share, frequency, next_pay_date) -> DividendSetting | None:
    s = normalize_symbol(symbol)
    aps = parse_number(annual_per_share)
    d = parse_ymd(next_pay_date)
    try:
        freq = Frequency(frequency)
    except ValueError:
        return None
    if not s or d is None or aps is None or aps < 0:
        return None
    return DividendSetting(symbol=s, annual_per_share=aps, frequency=freq, next_pay_date=ymd(d))
