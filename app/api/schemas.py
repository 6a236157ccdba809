from pydantic import BaseModel
from typing import Optional, Union, Literal

# Numeric fields accept strings ("1,5") so entry validation stays in one place.
NumberInput = Optional[Union[float, str]]

class HoldingCreate(BaseModel):
    symbol: str = ""
    name: Optional[str] = None
    shares: NumberInput = "1"

class WatchItemCreate(BaseModel):
    symbol: str = ""
    name: Optional[str] = None

class SharesUpdate(BaseModel):
    shares: NumberInput = None

class DividendEventCreate(BaseModel):
    symbol: str = ""
    date: str = ""
    amount: NumberInput = None
    note: Optional[str] = None

class DividendSettingSave(BaseModel):
    symbol: str = ""
    annual_per_share: NumberInput = None
    frequency: str = "Quarterly"
    next_pay_date: str = ""

class RefreshResponse(BaseModel):
    kind: str
    status: Literal['refreshed', 'fresh', 'in_flight', 'empty']
    last_refresh_ms: Optional[int] = None
    logged_today: bool = False
    fetched: int = 0
    unavailable: int = 0
