from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable

from ..utils import DAY_MS, local_midnight_ms, now_local, to_ms
from .price_log import PriceLog

Point = tuple[int, float]


class RangePreset(str, Enum):
    D30 = "30D"
    D90 = "90D"
    D180 = "180D"
    D365 = "365D"
    ALL = "ALL"


RANGE_DAYS = {
    RangePreset.D30: 30,
    RangePreset.D90: 90,
    RangePreset.D180: 180,
    RangePreset.D365: 365,
}


class ChartMode(str, Enum):
    TOTAL = "total"
    NORMALIZED = "normalized"
    OVERLAY = "overlay"


@dataclass
class NamedSeries:
    name: str
    data: list[Point]


@dataclass
class ChartView:
    mode: ChartMode
    range: RangePreset
    insufficient_history: bool = False
    series: list[NamedSeries] = field(default_factory=list)


def _now_ms(now_ms: int | None) -> int:
    return now_ms if now_ms is not None else to_ms(now_local())


def series_from_log(price_log: PriceLog, symbol: str, tz_name: str | None = None) -> list[Point]:
    out = []
    for day, price in price_log.entries(symbol).items():
        ts = local_midnight_ms(day, tz_name)
        if ts is not None:
            out.append((ts, price))
    out.sort(key=lambda p: p[0])
    return out


def filter_by_range(series: list[Point], range_preset: RangePreset, now_ms: int | None = None) -> list[Point]:
    range_preset = RangePreset(range_preset)
    if range_preset is RangePreset.ALL:
        return list(series)
    cutoff = _now_ms(now_ms) - RANGE_DAYS[range_preset] * DAY_MS
    return [p for p in series if p[0] >= cutoff]


def series_for(
    price_log: PriceLog,
    symbol: str,
    range_preset: RangePreset = RangePreset.ALL,
    now_ms: int | None = None,
    tz_name: str | None = None,
) -> list[Point]:
    """Logged prices of ``symbol`` as ascending (local-midnight ms, price) points."""
    return filter_by_range(series_from_log(price_log, symbol, tz_name), range_preset, now_ms)


def _distinct(symbols: Iterable[str]) -> list[str]:
    return list(dict.fromkeys(symbols))


def total_series(
    price_log: PriceLog,
    holdings: Iterable,
    range_preset: RangePreset = RangePreset.ALL,
    now_ms: int | None = None,
    tz_name: str | None = None,
) -> list[Point]:
    """Sum of ``price * shares`` at every timestamp any holding has a sample.

    A holding without a sample at a timestamp contributes nothing there; its
    last known price is not carried forward.
    """
    holdings = list(holdings)
    by_symbol = {
        s: dict(series_for(price_log, s, range_preset, now_ms, tz_name))
        for s in _distinct(h.symbol for h in holdings)
    }
    times = sorted({t for points in by_symbol.values() for t in points})
    out = []
    for t in times:
        total = 0.0
        for h in holdings:
            price = by_symbol[h.symbol].get(t)
            if price is None:
                continue
            total += price * h.shares
        out.append((t, total))
    return out


def overlay_series(
    price_log: PriceLog,
    symbols: Iterable[str],
    range_preset: RangePreset = RangePreset.ALL,
    now_ms: int | None = None,
    tz_name: str | None = None,
) -> list[NamedSeries]:
    out = []
    for s in _distinct(symbols):
        points = series_for(price_log, s, range_preset, now_ms, tz_name)
        if len(points) >= 2:
            out.append(NamedSeries(s, points))
    return out


def normalize(points: list[Point]) -> list[Point] | None:
    if len(points) < 2:
        return None
    first = points[0][1]
    if not first:
        return None
    return [(t, v / first * 100) for t, v in points]


def normalized_series(
    price_log: PriceLog,
    symbols: Iterable[str],
    range_preset: RangePreset = RangePreset.ALL,
    now_ms: int | None = None,
    tz_name: str | None = None,
) -> list[NamedSeries]:
    """Each symbol rescaled so its first point in range is 100.

    Symbols with fewer than two points or a zero first value are left out.
    """
    out = []
    for s in _distinct(symbols):
        scaled = normalize(series_for(price_log, s, range_preset, now_ms, tz_name))
        if scaled is not None:
            out.append(NamedSeries(s, scaled))
    return out


def build_chart(
    price_log: PriceLog,
    items: list,
    mode: ChartMode,
    range_preset: RangePreset = RangePreset.D365,
    now_ms: int | None = None,
    tz_name: str | None = None,
) -> ChartView:
    mode = ChartMode(mode)
    range_preset = RangePreset(range_preset)
    symbols = [it.symbol for it in items]
    view = ChartView(mode=mode, range=range_preset)

    if mode is ChartMode.TOTAL:
        if any(not hasattr(it, "shares") for it in items):
            raise ValueError("total mode needs items with shares")
        points = total_series(price_log, items, range_preset, now_ms, tz_name)
        if len(points) < 2:
            view.insufficient_history = True
            return view
        view.series = [NamedSeries("Total", points)]
        return view

    if mode is ChartMode.NORMALIZED:
        series = normalized_series(price_log, symbols, range_preset, now_ms, tz_name)
    else:
        series = overlay_series(price_log, symbols, range_preset, now_ms, tz_name)
    if not any(len(s.data) >= 2 for s in series):
        view.insufficient_history = True
        return view
    view.series = series
    return view
