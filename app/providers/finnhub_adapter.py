from __future__ import annotations

import httpx
import structlog

from ..config import settings
from ..pipeline.models import Fetched

log = structlog.get_logger()


class UpstreamError(RuntimeError):
    def __init__(self, message: str, status: int | None = None):
        super().__init__(message)
        self.status = status


class MissingApiKey(UpstreamError):
    pass


def _number(val):
    if isinstance(val, bool) or not isinstance(val, (int, float)):
        return None
    return float(val)


def parse_quote(payload) -> Fetched:
    """Turn a Finnhub ``/quote`` body (``c`` price, ``dp`` day %) into a result.

    Finnhub answers unknown symbols with ``c == 0``; that counts as malformed.
    """
    if not isinstance(payload, dict):
        raise UpstreamError("quote_body_not_object")
    price = _number(payload.get("c"))
    if price is None or price <= 0:
        raise UpstreamError("quote_missing_price")
    return Fetched(price=price, change_pct=_number(payload.get("dp")))


class FinnhubAdapter:
    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_key = api_key
        self.base_url = (base_url or settings.finnhub_base_url).rstrip("/")
        self.timeout = timeout or settings.http_timeout_seconds
        self.transport = transport

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

    async def get(self, path: str, params: dict) -> httpx.Response:
        """Raw upstream GET with the token attached; no status handling."""
        if not self.enabled:
            raise MissingApiKey("missing_api_key")
        query = dict(params)
        query["token"] = self.api_key
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            return await client.get(f"{self.base_url}{path}", params=query)

    async def _get_json(self, path: str, params: dict):
        try:
            r = await self.get(path, params)
        except httpx.HTTPError as exc:
            raise UpstreamError(f"upstream_unreachable: {exc.__class__.__name__}") from exc
        if not r.is_success:
            raise UpstreamError(f"upstream_status_{r.status_code}", status=r.status_code)
        try:
            return r.json()
        except ValueError as exc:
            raise UpstreamError("upstream_body_not_json", status=r.status_code) from exc

    async def quote(self, symbol: str) -> Fetched:
        return parse_quote(await self._get_json("/quote", {"symbol": symbol}))

    async def profile(self, symbol: str) -> dict:
        data = await self._get_json("/stock/profile2", {"symbol": symbol})
        if not isinstance(data, dict):
            raise UpstreamError("profile_body_not_object")
        return {
            "symbol": symbol,
            "name": data.get("name") or None,
            "industry": data.get("finnhubIndustry") or None,
        }

    async def industry(self, symbol: str) -> str | None:
        """Industry from the profile, or None when it cannot be fetched."""
        if not self.enabled:
            return None
        try:
            return (await self.profile(symbol)).get("industry")
        except UpstreamError as exc:
            log.warning("profile_fetch_failed", symbol=symbol, reason=str(exc))
            return None
