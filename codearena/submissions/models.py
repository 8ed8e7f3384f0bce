from enum import Enum

from pydantic import BaseModel, field_validator

from codearena.judge.models import JudgeVerdict

# ==================== ENUMS ====================


class Verdict(str, Enum):
    PENDING = "Pending"
    ACCEPTED = "Accepted"
    WRONG_ANSWER = "Wrong Answer"
    TIME_LIMIT_EXCEEDED = "Time Limit Exceeded"
    RUNTIME_ERROR = "Runtime Error"
    COMPILATION_ERROR = "Compilation Error"
    SYSTEM_ERROR = "System Error"
    INTERNAL_ERROR = "Internal Error"
    DRAFT = "Draft"

    @property
    def is_terminal(self) -> bool:
        return self not in (Verdict.PENDING, Verdict.DRAFT)


class Language(str, Enum):
    JAVASCRIPT = "javascript"
    PYTHON = "python"
    JAVA = "java"
    CPP = "c++"
    C = "c"
    TYPESCRIPT = "typescript"
    CSHARP = "csharp"
    GO = "go"


class SubmissionKind(str, Enum):
    SUBMIT = "submit"
    RUN = "run"


class UserRole(str, Enum):
    LEARNER = "learner"
    ADMIN = "admin"
    SUPER_ADMIN = "super-admin"

    @classmethod
    def from_user(cls, user: dict) -> "UserRole":
        """Role recorded on a user document; unknown or missing roles are learners"""
        try:
            return cls(user.get("role") or cls.LEARNER.value)
        except ValueError:
            return cls.LEARNER

    @property
    def is_privileged(self) -> bool:
        return self in (UserRole.ADMIN, UserRole.SUPER_ADMIN)


# Audit labels
AUDIT_LABELS = {
    SubmissionKind.SUBMIT: "Submission evaluated",
    SubmissionKind.RUN: "Code run",
}
TEST_RUN_LABEL = "Test run"

# Status code stored on submissions the judge never delivered a verdict for
# (Pending rows carry 0)
SYSTEM_ERROR_STATUS = 6


def verdict_from_judge(judge_verdict: JudgeVerdict) -> Verdict:
    """Collapse the judge's status table onto the stored verdict set"""
    if judge_verdict.is_runtime_error:
        return Verdict.RUNTIME_ERROR
    return {
        JudgeVerdict.ACCEPTED: Verdict.ACCEPTED,
        JudgeVerdict.WRONG_ANSWER: Verdict.WRONG_ANSWER,
        JudgeVerdict.TIME_LIMIT_EXCEEDED: Verdict.TIME_LIMIT_EXCEEDED,
        JudgeVerdict.COMPILATION_ERROR: Verdict.COMPILATION_ERROR,
        JudgeVerdict.INTERNAL_ERROR: Verdict.INTERNAL_ERROR,
        JudgeVerdict.EXEC_FORMAT_ERROR: Verdict.INTERNAL_ERROR,
    }.get(judge_verdict, Verdict.SYSTEM_ERROR)


def label_test_run(verdict: Verdict) -> str:
    return f"Test - {verdict.value}"


# ==================== REQUEST MODELS ====================


class SubmissionCreate(BaseModel):
    problem_id: str
    code: str
    language: Language

    @field_validator("code")
    @classmethod
    def code_not_blank(cls, v):
        if not v or not v.strip():
            raise ValueError("Code cannot be empty")
        return v


class DraftSave(BaseModel):
    code: str = ""
    language: Language = Language.JAVASCRIPT


