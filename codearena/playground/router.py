from fastapi import APIRouter, Depends

from codearena.dependencies import get_current_user
from codearena.judge import JudgeClient, get_judge_client
from codearena.playground import service
from codearena.playground.models import PlaygroundRun

router = APIRouter(prefix="/playground", tags=["Playground"])


@router.post("/execute")
async def execute_code(
    run: PlaygroundRun,
    judge: JudgeClient = Depends(get_judge_client),
    user: dict = Depends(get_current_user),
):
    """Run code with optional stdin; nothing is recorded"""
    result = await service.execute_code(judge, user["user_id"], run.code, run.language, run.input)
    return {"success": True, "result": result.to_dict()}
