from codearena.judge.client import JudgeClient, get_judge_client
from codearena.judge.models import JudgeResult, JudgeVerdict, LANGUAGE_IDS

__all__ = ["JudgeClient", "get_judge_client", "JudgeResult", "JudgeVerdict", "LANGUAGE_IDS"]
