from __future__ import annotations
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger
from zoneinfo import ZoneInfo
import structlog

from ..config import settings
from .orchestrator import get_tracker

_log = structlog.get_logger()
_scheduler: AsyncIOScheduler | None = None

def get_scheduler() -> AsyncIOScheduler:
    global _scheduler
    if _scheduler is None:
        _scheduler = AsyncIOScheduler(timezone=ZoneInfo(settings.local_tz))
    return _scheduler

def schedule_jobs(sched: AsyncIOScheduler | None = None) -> AsyncIOScheduler:
    sched = sched or get_scheduler()
    tz = ZoneInfo(settings.local_tz)
    if settings.auto_refresh_enable:
        # Forced refresh keeps the displayed quotes current.
        sched.add_job(
            run_periodic_refresh,
            IntervalTrigger(seconds=settings.auto_refresh_seconds, timezone=tz),
            id="quotes_periodic",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
    # Catch a day on which no refresh happened to write the log.
    sched.add_job(
        run_daily_log,
        CronTrigger(hour=settings.daily_log_hour, minute=settings.daily_log_minute, timezone=tz),
        id="price_log_daily",
        replace_existing=True,
    )
    sched.start()
    _log.info("quotes_scheduler_started", auto_refresh=bool(settings.auto_refresh_enable))
    return sched

def shutdown_scheduler():
    global _scheduler
    if _scheduler is not None and _scheduler.running:
        _scheduler.shutdown(wait=False)
    _scheduler = None

async def run_startup():
    await get_tracker().startup()

async def run_periodic_refresh():
    await get_tracker().refresh_all(force=True)

async def run_daily_log():
    outcomes = await get_tracker().ensure_daily_log()
    _log.info("price_log_daily_check", refreshed=[o.kind.value for o in outcomes])
