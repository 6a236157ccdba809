from __future__ import annotations
import httpx
import structlog
from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse, Response

from ..pipeline.holdings import normalize_symbol
from ..pipeline.orchestrator import get_tracker
from ..providers.finnhub_adapter import FinnhubAdapter, UpstreamError

log = structlog.get_logger()
router = APIRouter(prefix="/api/finnhub", tags=["Proxy"])

NO_STORE = {"Cache-Control": "no-store, no-cache, must-revalidate, proxy-revalidate"}
MISSING_KEY = {"error": "Missing FINNHUB_API_KEY on server"}

def get_adapter() -> FinnhubAdapter:
    return get_tracker().adapter

def _error(message: str, status: int) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=status, headers=NO_STORE)

@router.get(
    "/quote",
    summary="Quote proxy",
    description="Forwards the upstream quote body and status for one symbol.",
)
async def proxy_quote(symbol: str = "", adapter: FinnhubAdapter = Depends(get_adapter)):
    s = normalize_symbol(symbol)
    if not s:
        return _error("Missing symbol", 400)
    if not adapter.enabled:
        return JSONResponse(MISSING_KEY, status_code=500, headers=NO_STORE)
    try:
        r = await adapter.get("/quote", {"symbol": s})
    except httpx.HTTPError as exc:
        log.warning("proxy_upstream_unreachable", endpoint="quote", symbol=s, error=exc.__class__.__name__)
        return _error("Upstream unavailable", 502)
    return Response(content=r.content, status_code=r.status_code, media_type="application/json", headers=NO_STORE)

@router.get(
    "/profile",
    summary="Profile proxy",
    description="Returns name and industry for one symbol.",
)
async def proxy_profile(symbol: str = "", adapter: FinnhubAdapter = Depends(get_adapter)):
    s = normalize_symbol(symbol)
    if not s:
        return _error("Missing symbol", 400)
    if not adapter.enabled:
        return JSONResponse(MISSING_KEY, status_code=500, headers=NO_STORE)
    try:
        profile = await adapter.profile(s)
    except UpstreamError as exc:
        log.warning("proxy_upstream_failed", endpoint="profile", symbol=s, reason=str(exc))
        return _error(str(exc), exc.status if exc.status and exc.status >= 400 else 502)
    return JSONResponse(profile, headers=NO_STORE)

@router.get(
    "/candles",
    summary="Candle proxy",
    description="Daily (or other resolution) OHLC candles between two unix timestamps.",
)
async def proxy_candles(
    symbol: str | None = None,
    from_: str | None = Query(default=None, alias="from"),
    to: str | None = None,
    resolution: str = "D",
    adapter: FinnhubAdapter = Depends(get_adapter),
):
    if not symbol or not from_ or not to:
        return _error("Missing symbol/from/to", 400)
    if not adapter.enabled:
        return JSONResponse(MISSING_KEY, status_code=500, headers=NO_STORE)
    params = {"symbol": symbol, "resolution": resolution, "from": from_, "to": to}
    try:
        r = await adapter.get("/stock/candle", params)
        data = r.json()
    except (httpx.HTTPError, ValueError) as exc:
        log.warning("proxy_upstream_failed", endpoint="candles", symbol=symbol, error=exc.__class__.__name__)
        return _error("Upstream unavailable", 502)
    return JSONResponse(data, status_code=200 if r.is_success else 502, headers=NO_STORE)
