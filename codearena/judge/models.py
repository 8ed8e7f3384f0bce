from dataclasses import dataclass
from enum import Enum
from typing import Optional

# ==================== LANGUAGE TABLE ====================

LANGUAGE_IDS = {
    "javascript": 63,  # Node.js
    "python": 71,      # Python 3
    "java": 62,
    "c++": 54,         # GCC 9.2.0
    "c": 50,           # GCC 9.2.0
    "typescript": 74,
    "csharp": 51,
    "go": 60,
}

# ==================== STATUS TABLE ====================


class JudgeVerdict(str, Enum):
    IN_QUEUE = "In Queue"
    PROCESSING = "Processing"
    ACCEPTED = "Accepted"
    WRONG_ANSWER = "Wrong Answer"
    TIME_LIMIT_EXCEEDED = "Time Limit Exceeded"
    COMPILATION_ERROR = "Compilation Error"
    RUNTIME_ERROR_SIGSEGV = "Runtime Error (SIGSEGV)"
    RUNTIME_ERROR_SIGXFSZ = "Runtime Error (SIGXFSZ)"
    RUNTIME_ERROR_SIGFPE = "Runtime Error (SIGFPE)"
    RUNTIME_ERROR_SIGABRT = "Runtime Error (SIGABRT)"
    RUNTIME_ERROR_NZEC = "Runtime Error (NZEC)"
    RUNTIME_ERROR_OTHER = "Runtime Error (Other)"
    INTERNAL_ERROR = "Internal Error"
    EXEC_FORMAT_ERROR = "Exec Format Error"
    UNKNOWN = "Unknown"

    @property
    def is_runtime_error(self) -> bool:
        return self.value.startswith("Runtime Error")


STATUS_VERDICTS = {
    1: JudgeVerdict.IN_QUEUE,
    2: JudgeVerdict.PROCESSING,
    3: JudgeVerdict.ACCEPTED,
    4: JudgeVerdict.WRONG_ANSWER,
    5: JudgeVerdict.TIME_LIMIT_EXCEEDED,
    6: JudgeVerdict.COMPILATION_ERROR,
    7: JudgeVerdict.RUNTIME_ERROR_SIGSEGV,
    8: JudgeVerdict.RUNTIME_ERROR_SIGXFSZ,
    9: JudgeVerdict.RUNTIME_ERROR_SIGFPE,
    10: JudgeVerdict.RUNTIME_ERROR_SIGABRT,
    11: JudgeVerdict.RUNTIME_ERROR_NZEC,
    12: JudgeVerdict.RUNTIME_ERROR_OTHER,
    13: JudgeVerdict.INTERNAL_ERROR,
    14: JudgeVerdict.EXEC_FORMAT_ERROR,
}

IN_PROGRESS_STATUSES = {1, 2}
ACCEPTED_STATUS = 3


def verdict_for_status(status_id: Optional[int]) -> JudgeVerdict:
    return STATUS_VERDICTS.get(status_id, JudgeVerdict.UNKNOWN)


# ==================== POLL RESULT ====================


@dataclass
class JudgeResult:
    token: str
    status_id: int
    status_text: str
    stdout: str = ""
    stderr: str = ""
    compile_output: str = ""
    expected_output: str = ""
    time_ms: float = 0.0
    memory_kb: int = 0

    @property
    def verdict(self) -> JudgeVerdict:
        return verdict_for_status(self.status_id)

    @property
    def is_processing(self) -> bool:
        return self.status_id in IN_PROGRESS_STATUSES

    @property
    def is_accepted(self) -> bool:
        """Judge says Accepted AND the trimmed output really matches"""
        return self.status_id == ACCEPTED_STATUS and self.stdout.strip() == self.expected_output.strip()

    @classmethod
    def from_response(cls, token: str, data: dict) -> "JudgeResult":
        status = data.get("status") or {}
        raw_time = data.get("time")
        return cls(
            token=token,
            status_id=status.get("id") or 0,
            status_text=status.get("description") or "Unknown",
            stdout=data.get("stdout") or "",
            stderr=data.get("stderr") or "",
            compile_output=data.get("compile_output") or "",
            expected_output=data.get("expected_output") or "",
            time_ms=round(float(raw_time) * 1000, 2) if raw_time else 0.0,
            memory_kb=int(data.get("memory") or 0),
        )
