from dataclasses import asdict, dataclass
from datetime import date
from typing import Optional

from pydantic import BaseModel

# Easy -> Medium -> Hard -> Medium, indexed by day-of-year mod 4
DIFFICULTY_ROTATION = ["Easy", "Medium", "Hard", "Medium"]


@dataclass
class CompletionResult:
    challenge_id: str
    user_id: str
    is_new_completion: bool
    attempts: int
    rank: Optional[int]
    total_completions: int
    total_attempts: int

    def to_dict(self) -> dict:
        return asdict(self)


class UserProgress(BaseModel):
    has_completed: bool = False
    attempts: int = 0
    rank: Optional[int] = None


class ChallengeGenerate(BaseModel):
    day: Optional[date] = None
