from __future__ import annotations
import math
from typing import Iterable

import structlog

from ..utils import parse_ymd, ymd

log = structlog.get_logger()


class PriceLog:
    """Per-symbol daily price history: ``symbol -> {YYYY-MM-DD -> price}``.

    One value per (symbol, day); a second write on the same day replaces the
    first. Days are never removed except by ``reset``.
    """

    def __init__(self, data: dict[str, dict[str, float]] | None = None):
        self._data: dict[str, dict[str, float]] = {}
        for symbol, days in (data or {}).items():
            if not isinstance(days, dict):
                log.warning("price_log_entry_skipped", symbol=symbol, day=None)
                continue
            for day, price in days.items():
                self._load_entry(symbol, day, price)

    def _load_entry(self, symbol, day, price):
        d = parse_ymd(day)
        if d is None or isinstance(price, bool) or not isinstance(price, (int, float)) or not math.isfinite(price):
            log.warning("price_log_entry_skipped", symbol=symbol, day=day)
            return
        self._data.setdefault(str(symbol), {})[ymd(d)] = float(price)

    def record_price(self, symbol: str, price: float, as_of_date: str):
        d = parse_ymd(as_of_date)
        if d is None:
            raise ValueError(f"as_of_date must be YYYY-MM-DD, got {as_of_date!r}")
        if not math.isfinite(price):
            raise ValueError(f"price must be finite, got {price!r}")
        self._data.setdefault(symbol, {})[ymd(d)] = float(price)

    def has_logged_today(self, symbols: Iterable[str], today: str) -> bool:
        d = parse_ymd(today)
        if d is None:
            return False
        key = ymd(d)
        return any(key in self._data.get(s, {}) for s in symbols)

    def reset(self):
        self._data.clear()

    def entries(self, symbol: str) -> dict[str, float]:
        return dict(self._data.get(symbol, {}))

    def symbols(self) -> list[str]:
        return sorted(self._data)

    def day_count(self, symbol: str) -> int:
        return len(self._data.get(symbol, {}))

    def to_dict(self) -> dict[str, dict[str, float]]:
        return {s: dict(sorted(days.items())) for s, days in self._data.items()}

    def __len__(self):
        return sum(len(days) for days in self._data.values())
