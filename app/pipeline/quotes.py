from __future__ import annotations
import asyncio
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Callable, Protocol

import structlog

from ..utils import day_key, now_local, to_ms
from .models import Fetched, ListKind, Unavailable
from .state import StateStore

log = structlog.get_logger()


class QuoteSource(Protocol):
    async def quote(self, symbol: str) -> Fetched: ...


class RefreshStatus(str, Enum):
    REFRESHED = "refreshed"
    FRESH = "fresh"
    IN_FLIGHT = "in_flight"
    EMPTY = "empty"


@dataclass
class RefreshOutcome:
    kind: ListKind
    status: RefreshStatus
    quotes: dict = field(default_factory=dict)
    last_refresh_ms: int = 0
    logged_today: bool = False


def is_stale(last_refresh_ms: int, now_ms: int, window_ms: int) -> bool:
    return not last_refresh_ms or now_ms - last_refresh_ms > window_ms


class QuoteRefresher:
    """Refreshes a list's quote cache and feeds the daily price log.

    Each symbol is fetched on its own; a failure marks only that symbol
    ``Unavailable``. A trigger that arrives while a refresh of the same list is
    running is dropped.
    """

    def __init__(
        self,
        state: StateStore,
        source: QuoteSource,
        cache_seconds: int = 300,
        concurrency: int = 8,
        clock: Callable[[], datetime] | None = None,
        tz_name: str | None = None,
    ):
        self.state = state
        self.source = source
        self.window_ms = int(cache_seconds) * 1000
        self.concurrency = max(1, int(concurrency))
        self.clock = clock or (lambda: now_local(tz_name))
        self.tz_name = tz_name
        self._locks = {kind: asyncio.Lock() for kind in ListKind}

    def in_flight(self, kind: ListKind) -> bool:
        return self._locks[kind].locked()

    async def _fetch_one(self, symbol: str, sem: asyncio.Semaphore):
        async with sem:
            try:
                return await self.source.quote(symbol)
            except Exception as exc:
                reason = str(exc) or exc.__class__.__name__
                log.warning("quote_fetch_failed", symbol=symbol, reason=reason)
                return Unavailable(reason=reason)

    async def fetch_all(self, symbols: list[str]) -> dict:
        sem = asyncio.Semaphore(self.concurrency)
        results = await asyncio.gather(*(self._fetch_one(s, sem) for s in symbols))
        return dict(zip(symbols, results))

    def log_today(self, symbols: list[str], quotes: dict, today: str) -> bool:
        """Write today's fetched prices unless this symbol set already has a row today."""
        price_log = self.state.load_price_log()
        if price_log.has_logged_today(symbols, today):
            return False
        written = 0
        for s in symbols:
            q = quotes.get(s)
            if isinstance(q, Fetched):
                price_log.record_price(s, q.price, today)
                written += 1
        if not written:
            return False
        self.state.save_price_log(price_log)
        log.info("price_log_written", day=today, symbols=written)
        return True

    async def refresh(self, kind: ListKind, force: bool = False) -> RefreshOutcome:
        kind = ListKind(kind)
        lock = self._locks[kind]
        if lock.locked():
            log.info("quote_refresh_coalesced", kind=kind.value, force=force)
            return RefreshOutcome(kind, RefreshStatus.IN_FLIGHT)

        async with lock:
            items = self.state.load_list(kind)
            if not items:
                return RefreshOutcome(kind, RefreshStatus.EMPTY)

            last = self.state.load_quotes_ts(kind)
            if not force and not is_stale(last, to_ms(self.clock()), self.window_ms):
                return RefreshOutcome(kind, RefreshStatus.FRESH, self.state.load_quotes(kind), last)

            symbols = list(dict.fromkeys(it.symbol for it in items))
            quotes = await self.fetch_all(symbols)

            finished = self.clock()
            ts = to_ms(finished)
            self.state.save_quotes(kind, quotes)
            self.state.save_quotes_ts(kind, ts)
            logged = self.log_today(symbols, quotes, day_key(finished, self.tz_name))

            failed = sum(1 for q in quotes.values() if not isinstance(q, Fetched))
            log.info(
                "quotes_refreshed",
                kind=kind.value,
                force=force,
                symbols=len(symbols),
                failed=failed,
                logged_today=logged,
            )
            return RefreshOutcome(kind, RefreshStatus.REFRESHED, quotes, ts, logged)

    def needs_daily_log(self, kind: ListKind) -> bool:
        items = self.state.load_list(kind)
        if not items:
            return False
        today = day_key(self.clock(), self.tz_name)
        return not self.state.load_price_log().has_logged_today([it.symbol for it in items], today)
