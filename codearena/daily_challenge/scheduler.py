import asyncio
from datetime import datetime, timedelta
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorDatabase

from codearena.daily_challenge.service import deactivate_expired, generate_if_absent
from codearena.utils import setup_logging, start_of_utc_day, utcnow

logger = setup_logging(__name__)

# (hour, minute) UTC
GENERATION_TIME = (0, 0)
EXPIRY_SWEEP_TIME = (0, 5)


def seconds_until(hour: int, minute: int, now: Optional[datetime] = None) -> float:
    """Seconds from `now` to the next hh:mm UTC (strictly in the future)"""
    now = now or utcnow()
    target = start_of_utc_day(now) + timedelta(hours=hour, minutes=minute)
    if target <= now:
        target += timedelta(days=1)
    return (target - now).total_seconds()


async def _run_at(hour: int, minute: int, job, db: AsyncIOMotorDatabase, name: str):
    while True:
        await asyncio.sleep(seconds_until(hour, minute))
        logger.info("Running %s", name)
        try:
            await job(db)
        except Exception:
            logger.exception("%s failed", name)


async def run_daily_jobs(db: AsyncIOMotorDatabase):
    """
    Background worker: generate the day's challenge at 00:00 UTC and sweep
    expired ones at 00:05 UTC.
    """
    await asyncio.gather(
        _run_at(*GENERATION_TIME, generate_if_absent, db, "daily challenge generation"),
        _run_at(*EXPIRY_SWEEP_TIME, deactivate_expired, db, "expired challenge cleanup"),
    )
