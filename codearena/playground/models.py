from dataclasses import asdict, dataclass

from pydantic import BaseModel


class PlaygroundRun(BaseModel):
    code: str
    language: str
    input: str = ""


@dataclass
class PlaygroundResult:
    output: str
    stderr: str
    compile_output: str
    execution_time_ms: float
    memory_kb: int
    verdict: str
    status: str
    is_error: bool

    def to_dict(self) -> dict:
        return asdict(self)
