from __future__ import annotations
import json
import math
from typing import Protocol

import structlog
from pydantic import BaseModel, TypeAdapter, ValidationError

from .models import (
    DividendEvent,
    DividendSetting,
    Holding,
    ListKind,
    QuoteResult,
    WatchItem,
)
from .price_log import PriceLog

log = structlog.get_logger()

KEY_PRICE_LOG = "price_log"
KEY_DIVIDEND_EVENTS = "dividend_events"
KEY_DIVIDEND_SETTINGS = "dividend_settings"

_QUOTE = TypeAdapter(QuoteResult)
_LIST_MODELS: dict[ListKind, type[BaseModel]] = {
    ListKind.PORTFOLIO: Holding,
    ListKind.WATCHLIST: WatchItem,
}


class KeyValueStore(Protocol):
    def get(self, key: str) -> str | None: ...
    def set(self, key: str, value: str) -> None: ...


def list_key(kind: ListKind) -> str:
    return kind.value

def quotes_key(kind: ListKind) -> str:
    return f"{kind.value}_quotes"

def quotes_ts_key(kind: ListKind) -> str:
    return f"{kind.value}_quotes_ts"


class StateStore:
    """Typed load/save per collection over a string key-value store.

    Anything that fails to decode comes back as the collection's empty
    default; decode errors are logged and never raised.
    """

    def __init__(self, kv: KeyValueStore):
        self.kv = kv

    def _load_json(self, key: str, default, expect):
        raw = self.kv.get(key)
        if raw is None:
            return default
        try:
            data = json.loads(raw)
        except (json.JSONDecodeError, TypeError) as exc:
            log.warning("state_decode_failed", key=key, error=str(exc))
            return default
        if not isinstance(data, expect):
            log.warning("state_decode_failed", key=key, error="unexpected_shape")
            return default
        return data

    def _save_json(self, key: str, obj):
        self.kv.set(key, json.dumps(obj, ensure_ascii=False))

    def _validate_items(self, key: str, items, model: type[BaseModel]) -> list:
        out = []
        for item in items:
            try:
                out.append(model.model_validate(item))
            except ValidationError as exc:
                log.warning("state_item_dropped", key=key, errors=exc.error_count())
        return out

    # holdings / watchlist
    def load_list(self, kind: ListKind) -> list:
        key = list_key(kind)
        return self._validate_items(key, self._load_json(key, [], list), _LIST_MODELS[kind])

    def save_list(self, kind: ListKind, items: list):
        self._save_json(list_key(kind), [it.model_dump() for it in items])

    # quote cache
    def load_quotes(self, kind: ListKind) -> dict:
        key = quotes_key(kind)
        out = {}
        for symbol, value in self._load_json(key, {}, dict).items():
            try:
                out[symbol] = _QUOTE.validate_python(value)
            except ValidationError:
                log.warning("state_item_dropped", key=key, symbol=symbol)
        return out

    def save_quotes(self, kind: ListKind, quotes: dict):
        self._save_json(quotes_key(kind), {s: q.model_dump() for s, q in quotes.items()})

    def load_quotes_ts(self, kind: ListKind) -> int:
        value = self._load_json(quotes_ts_key(kind), 0, (int, float))
        if not value or not math.isfinite(value) or value <= 0:
            return 0
        return int(value)

    def save_quotes_ts(self, kind: ListKind, ts_ms: int):
        self._save_json(quotes_ts_key(kind), int(ts_ms))

    # price log
    def load_price_log(self) -> PriceLog:
        return PriceLog(self._load_json(KEY_PRICE_LOG, {}, dict))

    def save_price_log(self, price_log: PriceLog):
        self._save_json(KEY_PRICE_LOG, price_log.to_dict())

    # dividends
    def load_dividend_events(self) -> list[DividendEvent]:
        return self._validate_items(
            KEY_DIVIDEND_EVENTS, self._load_json(KEY_DIVIDEND_EVENTS, [], list), DividendEvent
        )

    def save_dividend_events(self, events: list[DividendEvent]):
        self._save_json(KEY_DIVIDEND_EVENTS, [e.model_dump() for e in events])

    def load_dividend_settings(self) -> dict[str, DividendSetting]:
        raw = self._load_json(KEY_DIVIDEND_SETTINGS, {}, dict)
        out = {}
        for symbol, value in raw.items():
            try:
                out[symbol] = DividendSetting.model_validate(value)
            except ValidationError:
                log.warning("state_item_dropped", key=KEY_DIVIDEND_SETTINGS, symbol=symbol)
        return out

    def save_dividend_settings(self, dividend_settings: dict[str, DividendSetting]):
        self._save_json(
            KEY_DIVIDEND_SETTINGS,
            {s: st.model_dump(mode="json") for s, st in dividend_settings.items()},
        )
