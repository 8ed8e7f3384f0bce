from fastapi import Depends, HTTPException
from motor.motor_asyncio import AsyncIOMotorDatabase

from codearena.auth import verify_token
from codearena.database import get_database
from codearena.submissions.models import UserRole

# ==================== DEPENDENCY FUNCTIONS ====================


async def get_db() -> AsyncIOMotorDatabase:
    """Database dependency"""
    return get_database()


async def get_current_user_id(payload: dict = Depends(verify_token)) -> str:
    return payload["sub"]


async def get_current_user(
    user_id: str = Depends(get_current_user_id),
    db: AsyncIOMotorDatabase = Depends(get_db),
) -> dict:
    """Load the authenticated user's record"""
    user = await db.users.find_one({"user_id": user_id}, {"_id": 0, "solved_problems": 0})
    if not user:
        raise HTTPException(status_code=401, detail="User not found")
    return user


async def require_admin(user: dict = Depends(get_current_user)) -> dict:
    if not UserRole.from_user(user).is_privileged:
        raise HTTPException(status_code=403, detail="Admin access required")
    return user
