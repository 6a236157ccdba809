from __future__ import annotations
from datetime import datetime
from typing import Callable

import structlog

from ..config import settings
from ..db import SqliteKeyValueStore
from ..providers.finnhub_adapter import FinnhubAdapter
from ..utils import now_local, to_ms
from . import holdings as inputs
from .dividends import DividendSummary, summarize
from .models import DividendEvent, DividendSetting, Fetched, Holding, ListKind, WatchItem
from .quotes import QuoteRefresher, RefreshOutcome
from .series import ChartMode, ChartView, RangePreset, build_chart
from .state import StateStore

log = structlog.get_logger()


class Tracker:
    """Entry point for every user-facing operation on the stored state."""

    def __init__(
        self,
        state: StateStore,
        adapter: FinnhubAdapter,
        clock: Callable[[], datetime] | None = None,
        tz_name: str | None = None,
        cache_seconds: int | None = None,
        concurrency: int | None = None,
    ):
        self.state = state
        self.adapter = adapter
        self.tz_name = tz_name
        self.clock = clock or (lambda: now_local(tz_name))
        self.refresher = QuoteRefresher(
            state,
            adapter,
            cache_seconds=cache_seconds if cache_seconds is not None else settings.quote_cache_seconds,
            concurrency=concurrency if concurrency is not None else settings.quote_concurrency,
            clock=self.clock,
            tz_name=tz_name,
        )

    # holdings / watchlist
    def items(self, kind: ListKind) -> list:
        return self.state.load_list(ListKind(kind))

    async def add_holding(self, symbol, shares, name=None) -> Holding | None:
        holding = inputs.make_holding(symbol, shares, name)
        if holding is None:
            return None
        holding.industry = await self.adapter.industry(holding.symbol)
        # Reload after the profile await so a concurrent edit is not overwritten.
        items = self.state.load_list(ListKind.PORTFOLIO)
        self.state.save_list(ListKind.PORTFOLIO, [holding] + items)
        log.info("holding_added", symbol=holding.symbol, shares=holding.shares)
        return holding

    def add_watch_item(self, symbol, name=None) -> WatchItem | None:
        item = inputs.make_watch_item(symbol, name)
        if item is None:
            return None
        items = self.state.load_list(ListKind.WATCHLIST)
        self.state.save_list(ListKind.WATCHLIST, [item] + items)
        log.info("watch_item_added", symbol=item.symbol)
        return item

    def delete_item(self, kind: ListKind, item_id: str) -> bool:
        kind = ListKind(kind)
        items = self.state.load_list(kind)
        kept = inputs.without(items, item_id)
        if len(kept) == len(items):
            return False
        self.state.save_list(kind, kept)
        return True

    def edit_shares(self, item_id: str, shares) -> Holding | None:
        items = self.state.load_list(ListKind.PORTFOLIO)
        updated = inputs.with_shares(items, item_id, shares)
        if updated is None:
            return None
        self.state.save_list(ListKind.PORTFOLIO, updated)
        return next(h for h in updated if h.id == item_id)

    # quotes
    async def refresh(self, kind: ListKind, force: bool = False) -> RefreshOutcome:
        return await self.refresher.refresh(ListKind(kind), force=force)

    async def refresh_all(self, force: bool = True) -> list[RefreshOutcome]:
        return [await self.refresh(kind, force=force) for kind in ListKind]

    async def ensure_daily_log(self) -> list[RefreshOutcome]:
        """Forced refresh of every list whose symbols have no price logged today."""
        out = []
        for kind in ListKind:
            if self.refresher.needs_daily_log(kind):
                out.append(await self.refresh(kind, force=True))
        return out

    async def startup(self):
        for kind in ListKind:
            await self.refresh(kind, force=False)
        await self.ensure_daily_log()

    def quote_rows(self, kind: ListKind) -> dict:
        kind = ListKind(kind)
        quotes = self.state.load_quotes(kind)
        ts = self.state.load_quotes_ts(kind)
        rows = []
        for it in self.state.load_list(kind):
            q = quotes.get(it.symbol)
            row = it.model_dump()
            if q is None:
                row.update(status="never_fetched", price=None, change_pct=None)
            elif isinstance(q, Fetched):
                row.update(status=q.status, price=q.price, change_pct=q.change_pct)
            else:
                row.update(status=q.status, price=None, change_pct=None)
            if kind is ListKind.PORTFOLIO and row["price"] is not None:
                row["value"] = row["price"] * it.shares
            rows.append(row)
        return {"kind": kind.value, "last_refresh_ms": ts or None, "rows": rows}

    # price history
    def reset_history(self):
        price_log = self.state.load_price_log()
        entries = len(price_log)
        price_log.reset()
        self.state.save_price_log(price_log)
        log.warning("price_history_reset", entries=entries)

    def chart(self, kind: ListKind, mode: ChartMode, range_preset: RangePreset) -> ChartView:
        kind = ListKind(kind)
        return build_chart(
            self.state.load_price_log(),
            self.state.load_list(kind),
            mode,
            range_preset,
            now_ms=to_ms(self.clock()),
            tz_name=self.tz_name,
        )

    # dividends
    def add_dividend_event(self, symbol, date, amount, note=None) -> DividendEvent | None:
        event = inputs.make_dividend_event(symbol, date, amount, note)
        if event is None:
            return None
        events = self.state.load_dividend_events()
        self.state.save_dividend_events([event] + events)
        return event

    def delete_dividend_event(self, event_id: str) -> bool:
        events = self.state.load_dividend_events()
        kept = inputs.without(events, event_id)
        if len(kept) == len(events):
            return False
        self.state.save_dividend_events(kept)
        return True

    def save_dividend_setting(self, symbol, annual_per_share, frequency, next_pay_date) -> DividendSetting | None:
        setting = inputs.make_dividend_setting(symbol, annual_per_share, frequency, next_pay_date)
        if setting is None:
            return None
        current = self.state.load_dividend_settings()
        current[setting.symbol] = setting
        self.state.save_dividend_settings(current)
        return setting

    def delete_dividend_setting(self, symbol) -> bool:
        s = inputs.normalize_symbol(symbol)
        current = self.state.load_dividend_settings()
        if s not in current:
            return False
        del current[s]
        self.state.save_dividend_settings(current)
        return True

    def dividend_summary(self) -> DividendSummary:
        return summarize(
            self.state.load_dividend_events(),
            self.state.load_dividend_settings(),
            self.state.load_list(ListKind.PORTFOLIO),
            today=self.clock().date(),
        )


_tracker: Tracker | None = None

def get_tracker() -> Tracker:
    global _tracker
    if _tracker is None:
        _tracker = Tracker(
            StateStore(SqliteKeyValueStore(settings.db_path)),
            FinnhubAdapter(settings.finnhub_api_key),
        )
    return _tracker
