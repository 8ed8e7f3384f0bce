from datetime import date, datetime

from fastapi import APIRouter, Depends
from motor.motor_asyncio import AsyncIOMotorDatabase

from codearena.daily_challenge import database as repo
from codearena.daily_challenge import service
from codearena.daily_challenge.models import ChallengeGenerate
from codearena.dependencies import get_current_user, get_db, require_admin
from codearena.utils import utcnow

router = APIRouter(prefix="/daily-challenge", tags=["Daily Challenge"])


def _as_datetime(day: date) -> datetime:
    return datetime(day.year, day.month, day.day)


@router.get("/today")
async def today(
    db: AsyncIOMotorDatabase = Depends(get_db),
    user: dict = Depends(get_current_user),
):
    """Today's challenge with the caller's progress; generated on first access"""
    return {"success": True, **await service.get_today_for_user(db, user["user_id"])}


@router.get("/history")
async def history(limit: int = 30, db: AsyncIOMotorDatabase = Depends(get_db)):
    challenges = await repo.list_challenges(db, limit)
    return {"success": True, "challenges": challenges, "count": len(challenges)}


@router.get("/my-history")
async def my_history(
    page: int = 1,
    limit: int = 10,
    db: AsyncIOMotorDatabase = Depends(get_db),
    user: dict = Depends(get_current_user),
):
    return {"success": True, **await service.get_user_history(db, user["user_id"], page, limit)}


@router.get("/date/{day}")
async def by_date(day: date, db: AsyncIOMotorDatabase = Depends(get_db)):
    challenge = await service.get_challenge_by_date(db, _as_datetime(day))
    challenge.pop("completed_by", None)
    return {"success": True, "challenge": challenge}


@router.get("/leaderboard/{challenge_id}")
async def leaderboard(challenge_id: str, db: AsyncIOMotorDatabase = Depends(get_db)):
    entries = await repo.get_challenge_leaderboard(db, challenge_id)
    return {"success": True, "leaderboard": entries, "count": len(entries)}


@router.post("/generate")
async def generate(
    request: ChallengeGenerate,
    db: AsyncIOMotorDatabase = Depends(get_db),
    admin: dict = Depends(require_admin),
):
    """Generate (or return the existing) challenge for a date, today by default"""
    day = _as_datetime(request.day) if request.day else utcnow()
    return {"success": True, "challenge": await service.generate_if_absent(db, day)}
