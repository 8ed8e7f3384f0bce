from fastapi import APIRouter, Depends
from motor.motor_asyncio import AsyncIOMotorDatabase

from codearena import __version__
from codearena.dependencies import get_db
from codearena.judge import JudgeClient, get_judge_client
from codearena.utils import setup_logging, utcnow

logger = setup_logging(__name__)

router = APIRouter(tags=["System"])


@router.get("/health")
async def health(
    db: AsyncIOMotorDatabase = Depends(get_db),
    judge: JudgeClient = Depends(get_judge_client),
):
    """
    Report reachability of the database and the judge.
    The service itself answering means the API is UP.
    """
    status = {"api": "UP"}

    try:
        await db.command("ping")
        status["database"] = "UP"
    except Exception as e:
        logger.warning("Database ping failed: %s", e)
        status["database"] = "DOWN"

    judge_status = await judge.ping()
    status["judge"] = "UP" if judge_status["success"] else "DOWN"

    return {
        "status": "ok" if status["database"] == "UP" and status["judge"] == "UP" else "degraded",
        "services": status,
        "judge": judge_status,
        "version": __version__,
        "timestamp": utcnow(),
    }
