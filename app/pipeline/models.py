from __future__ import annotations
import uuid
from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field, model_validator


def new_id() -> str:
    return str(uuid.uuid4())


class Holding(BaseModel):
    id: str = Field(default_factory=new_id)
    symbol: str
    name: str = ""
    shares: float = 0.0
    industry: str | None = None

    @model_validator(mode="after")
    def _default_name(self):
        if not self.name:
            self.name = self.symbol
        return self


class WatchItem(BaseModel):
    id: str = Field(default_factory=new_id)
    symbol: str
    name: str = ""

    @model_validator(mode="after")
    def _default_name(self):
        if not self.name:
            self.name = self.symbol
        return self


class Frequency(str, Enum):
    MONTHLY = "Monthly"
    QUARTERLY = "Quarterly"
    SEMI_ANNUAL = "Semi-Annual"
    ANNUAL = "Annual"


class DividendEvent(BaseModel):
    id: str = Field(default_factory=new_id)
    symbol: str
    date: str  # YYYY-MM-DD
    amount: float  # total cash received
    note: str | None = None


class DividendSetting(BaseModel):
    symbol: str
    annual_per_share: float
    frequency: Frequency
    next_pay_date: str  # YYYY-MM-DD


class Fetched(BaseModel):
    status: Literal["fetched"] = "fetched"
    price: float
    change_pct: float | None = None


class Unavailable(BaseModel):
    status: Literal["unavailable"] = "unavailable"
    reason: str | None = None


QuoteResult = Annotated[Union[Fetched, Unavailable], Field(discriminator="status")]


class ListKind(str, Enum):
    PORTFOLIO = "portfolio"
    WATCHLIST = "watchlist"
