"""Calendar primitives shared by the price log and the dividend engine.

Day keys are ``YYYY-MM-DD`` in the configured local timezone, month keys are
``YYYY-MM``. Timestamps handed to charts are epoch milliseconds.
"""
import calendar
from datetime import datetime, date, timezone
from dateutil import tz

from .config import settings

DAY_MS = 86_400_000

def local_tz(tz_name: str | None = None):
    return tz.gettz(tz_name or settings.local_tz) or timezone.utc

def now_utc_iso() -> str:
    return datetime.now(timezone.utc).isoformat()

def now_local(tz_name: str | None = None) -> datetime:
    return datetime.now(local_tz(tz_name))

def to_ms(dt: datetime) -> int:
    return int(dt.timestamp() * 1000)

def from_ms(ms: int, tz_name: str | None = None) -> datetime:
    return datetime.fromtimestamp(ms / 1000, local_tz(tz_name))

def ymd(d: date) -> str:
    return f"{d.year:04d}-{d.month:02d}-{d.day:02d}"

def parse_ymd(value: str | None) -> date | None:
    if not value:
        return None
    try:
        return datetime.strptime(str(value).strip(), "%Y-%m-%d").date()
    except ValueError:
        return None

def day_key(dt: datetime | None = None, tz_name: str | None = None) -> str:
    """Local calendar day of ``dt`` (default: now)."""
    if dt is None:
        dt = now_local(tz_name)
    elif dt.tzinfo is not None:
        dt = dt.astimezone(local_tz(tz_name))
    return ymd(dt.date())

def month_key(d: date) -> str:
    return f"{d.year:04d}-{d.month:02d}"

def month_start(d: date) -> date:
    return date(d.year, d.month, 1)

def add_months(d: date, months: int) -> date:
    """Step ``d`` by ``months``, clamping to the last day of a shorter month.

    2024-01-31 + 1 -> 2024-02-29, 2023-01-31 + 1 -> 2023-02-28.
    """
    year = d.year + (d.month - 1 + months) // 12
    month = (d.month - 1 + months) % 12 + 1
    day = min(d.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)

def local_midnight_ms(day: str | date, tz_name: str | None = None) -> int | None:
    d = parse_ymd(day) if isinstance(day, str) else day
    if d is None:
        return None
    return to_ms(datetime(d.year, d.month, d.day, tzinfo=local_tz(tz_name)))
