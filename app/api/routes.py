from dataclasses import asdict
from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import Response
from .schemas import (
    DividendEventCreate,
    DividendSettingSave,
    HoldingCreate,
    RefreshResponse,
    SharesUpdate,
    WatchItemCreate,
)
from ..config import settings
from ..pipeline.models import Fetched, ListKind
from ..pipeline.orchestrator import Tracker, get_tracker
from ..pipeline.series import ChartMode, RangePreset, series_for
from ..services.charts import render_dividend_chart, render_series_chart
from ..utils import to_ms

router = APIRouter()

_NOT_APPLIED = {'ok': False, 'applied': False}

_MODES = {
    ListKind.PORTFOLIO: (ChartMode.TOTAL, {ChartMode.TOTAL, ChartMode.NORMALIZED}),
    ListKind.WATCHLIST: (ChartMode.OVERLAY, {ChartMode.OVERLAY, ChartMode.NORMALIZED}),
}

def _applied(**fields):
    return {'ok': True, 'applied': True, **fields}

def _range_or_default(range_preset: RangePreset | None) -> RangePreset:
    if range_preset is not None:
        return range_preset
    try:
        return RangePreset(settings.default_range)
    except ValueError:
        return RangePreset.D365

def _mode_for(kind: ListKind, mode: ChartMode | None) -> ChartMode:
    default, allowed = _MODES[kind]
    if mode is None:
        return default
    if mode not in allowed:
        raise HTTPException(400, f'mode must be one of {sorted(m.value for m in allowed)} for {kind.value}')
    return mode

@router.get(
    '/health',
    summary="Health check",
    description="Returns service and store connectivity.",
    tags=["Health"],
)
def health(tracker: Tracker = Depends(get_tracker)):
    try:
        tracker.state.kv.get('portfolio')
    except Exception as e:
        raise HTTPException(503, f'store_error: {e}')
    return {'ok': True, 'store': 'ok', 'upstream_key': tracker.adapter.enabled}

# Portfolio

@router.get('/portfolio', summary="List holdings", tags=["Portfolio"])
def list_holdings(tracker: Tracker = Depends(get_tracker)):
    return [h.model_dump() for h in tracker.items(ListKind.PORTFOLIO)]

@router.post(
    '/portfolio',
    summary="Add holding",
    description="Invalid input (empty symbol, non-positive or non-numeric shares) is not applied.",
    tags=["Portfolio"],
)
async def add_holding(req: HoldingCreate, tracker: Tracker = Depends(get_tracker)):
    holding = await tracker.add_holding(req.symbol, req.shares, req.name)
    if holding is None:
        return _NOT_APPLIED
    return _applied(item=holding.model_dump())

@router.patch('/portfolio/{item_id}', summary="Edit shares", tags=["Portfolio"])
def edit_shares(item_id: str, req: SharesUpdate, tracker: Tracker = Depends(get_tracker)):
    holding = tracker.edit_shares(item_id, req.shares)
    if holding is None:
        return _NOT_APPLIED
    return _applied(item=holding.model_dump())

@router.delete('/portfolio/{item_id}', summary="Delete holding", tags=["Portfolio"])
def delete_holding(item_id: str, tracker: Tracker = Depends(get_tracker)):
    if not tracker.delete_item(ListKind.PORTFOLIO, item_id):
        raise HTTPException(404, 'holding not found')
    return {'ok': True}

# Watchlist

@router.get('/watchlist', summary="List watchlist", tags=["Watchlist"])
def list_watchlist(tracker: Tracker = Depends(get_tracker)):
    return [it.model_dump() for it in tracker.items(ListKind.WATCHLIST)]

@router.post('/watchlist', summary="Add watchlist symbol", tags=["Watchlist"])
def add_watch_item(req: WatchItemCreate, tracker: Tracker = Depends(get_tracker)):
    item = tracker.add_watch_item(req.symbol, req.name)
    if item is None:
        return _NOT_APPLIED
    return _applied(item=item.model_dump())

@router.delete('/watchlist/{item_id}', summary="Delete watchlist symbol", tags=["Watchlist"])
def delete_watch_item(item_id: str, tracker: Tracker = Depends(get_tracker)):
    if not tracker.delete_item(ListKind.WATCHLIST, item_id):
        raise HTTPException(404, 'watchlist item not found')
    return {'ok': True}

# Quotes and history

@router.get(
    '/quotes/{kind}',
    summary="Cached quotes",
    description="Per-symbol status is fetched, unavailable (failed last refresh) or never_fetched.",
    tags=["Quotes"],
)
def quotes(kind: ListKind, tracker: Tracker = Depends(get_tracker)):
    return tracker.quote_rows(kind)

@router.post(
    '/quotes/{kind}/refresh',
    response_model=RefreshResponse,
    summary="Refresh quotes",
    description=(
        "Refetches quotes when forced or when the cache is older than the staleness window. "
        "Writes today's prices to the history if the list has none for today yet."
    ),
    tags=["Quotes"],
)
async def refresh_quotes(kind: ListKind, force: bool = False, tracker: Tracker = Depends(get_tracker)):
    out = await tracker.refresh(kind, force=force)
    fetched = sum(1 for q in out.quotes.values() if isinstance(q, Fetched))
    return RefreshResponse(
        kind=out.kind.value,
        status=out.status.value,
        last_refresh_ms=out.last_refresh_ms or None,
        logged_today=out.logged_today,
        fetched=fetched,
        unavailable=len(out.quotes) - fetched,
    )

@router.get('/history', summary="Logged days per symbol", tags=["History"])
def history_overview(tracker: Tracker = Depends(get_tracker)):
    price_log = tracker.state.load_price_log()
    return {s: price_log.day_count(s) for s in price_log.symbols()}

@router.get('/history/{symbol}', summary="Price history of one symbol", tags=["History"])
def history_symbol(
    symbol: str,
    range_preset: RangePreset = Query(default=RangePreset.ALL, alias="range"),
    tracker: Tracker = Depends(get_tracker),
):
    points = series_for(
        tracker.state.load_price_log(),
        symbol.strip().upper(),
        range_preset,
        now_ms=to_ms(tracker.clock()),
        tz_name=tracker.tz_name,
    )
    return {'symbol': symbol.strip().upper(), 'range': range_preset.value, 'data': [list(p) for p in points]}

@router.post(
    '/history/reset',
    summary="Reset price history",
    description="Deletes every logged price. Irreversible; requires confirm=true.",
    tags=["History"],
)
def reset_history(confirm: bool = False, tracker: Tracker = Depends(get_tracker)):
    if not confirm:
        raise HTTPException(400, 'confirmation required: pass confirm=true')
    tracker.reset_history()
    return {'ok': True, 'cleared': True}

# Charts

@router.get(
    '/charts/{kind}',
    summary="Chart series",
    description="Range-filtered series from the local price history; total|normalized for the portfolio, overlay|normalized for the watchlist.",
    tags=["Charts"],
)
def chart(
    kind: ListKind,
    range_preset: RangePreset | None = Query(default=None, alias="range"),
    mode: ChartMode | None = None,
    tracker: Tracker = Depends(get_tracker),
):
    view = tracker.chart(kind, _mode_for(kind, mode), _range_or_default(range_preset))
    return {
        'mode': view.mode.value,
        'range': view.range.value,
        'insufficient_history': view.insufficient_history,
        'series': [{'name': s.name, 'data': [list(p) for p in s.data]} for s in view.series],
    }

@router.get('/charts/{kind}/image', summary="Chart image (PNG)", tags=["Charts"])
def chart_image(
    kind: ListKind,
    range_preset: RangePreset | None = Query(default=None, alias="range"),
    mode: ChartMode | None = None,
    tracker: Tracker = Depends(get_tracker),
):
    view = tracker.chart(kind, _mode_for(kind, mode), _range_or_default(range_preset))
    png = render_series_chart(view, settings.currency, tracker.tz_name)
    if png is None:
        raise HTTPException(404, 'insufficient_history: need at least 2 logged days')
    return Response(content=png, media_type="image/png")

# Dividends

@router.get('/dividends/events', summary="List dividend events", tags=["Dividends"])
def list_dividend_events(tracker: Tracker = Depends(get_tracker)):
    return [e.model_dump() for e in tracker.state.load_dividend_events()]

@router.post(
    '/dividends/events',
    summary="Record dividend",
    description="Total cash received on a date. Non-positive amounts and bad dates are not applied.",
    tags=["Dividends"],
)
def add_dividend_event(req: DividendEventCreate, tracker: Tracker = Depends(get_tracker)):
    event = tracker.add_dividend_event(req.symbol, req.date, req.amount, req.note)
    if event is None:
        return _NOT_APPLIED
    return _applied(item=event.model_dump())

@router.delete('/dividends/events/{event_id}', summary="Delete dividend event", tags=["Dividends"])
def delete_dividend_event(event_id: str, tracker: Tracker = Depends(get_tracker)):
    if not tracker.delete_dividend_event(event_id):
        raise HTTPException(404, 'dividend event not found')
    return {'ok': True}

@router.get('/dividends/settings', summary="List dividend settings", tags=["Dividends"])
def list_dividend_settings(tracker: Tracker = Depends(get_tracker)):
    return {s: st.model_dump(mode="json") for s, st in tracker.state.load_dividend_settings().items()}

@router.put(
    '/dividends/settings',
    summary="Save dividend setting",
    description="Replaces the forecast model of the symbol.",
    tags=["Dividends"],
)
def save_dividend_setting(req: DividendSettingSave, tracker: Tracker = Depends(get_tracker)):
    setting = tracker.save_dividend_setting(req.symbol, req.annual_per_share, req.frequency, req.next_pay_date)
    if setting is None:
        return _NOT_APPLIED
    return _applied(item=setting.model_dump(mode="json"))

@router.delete('/dividends/settings/{symbol}', summary="Delete dividend setting", tags=["Dividends"])
def delete_dividend_setting(symbol: str, tracker: Tracker = Depends(get_tracker)):
    if not tracker.delete_dividend_setting(symbol):
        raise HTTPException(404, 'dividend setting not found')
    return {'ok': True}

@router.get(
    '/dividends/summary',
    summary="Dividend cash flow",
    description="Actual cash of the last 12 months and the forecast of the next 12, by month, with totals.",
    tags=["Dividends"],
)
def dividend_summary(tracker: Tracker = Depends(get_tracker)):
    summary = tracker.dividend_summary()
    return {**asdict(summary), 'currency': settings.currency}

@router.get('/dividends/summary/image', summary="Dividend chart (PNG)", tags=["Dividends"])
def dividend_summary_image(tracker: Tracker = Depends(get_tracker)):
    png = render_dividend_chart(tracker.dividend_summary(), settings.currency)
    return Response(content=png, media_type="image/png")
