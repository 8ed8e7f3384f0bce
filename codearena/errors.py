"""
Error taxonomy.

Every ArenaError carries a message that can be shown to the caller as-is
and the HTTP status the API layer answers with.
"""


class ArenaError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


# ==================== CLIENT INPUT ====================

class InvalidSubmission(ArenaError):
    status_code = 400


class UnsupportedLanguage(ArenaError):
    status_code = 400

    def __init__(self, language: str):
        super().__init__(f"Unsupported language: {language}")
        self.language = language


class ProblemNotFound(ArenaError):
    status_code = 404

    def __init__(self, problem_id: str):
        super().__init__(f"Problem not found: {problem_id}")
        self.problem_id = problem_id


class UserNotFound(ArenaError):
    status_code = 404

    def __init__(self, user_id: str):
        super().__init__(f"User not found: {user_id}")
        self.user_id = user_id


class SubmissionNotFound(ArenaError):
    status_code = 404

    def __init__(self, submission_id: str):
        super().__init__(f"Submission not found: {submission_id}")
        self.submission_id = submission_id


class ChallengeNotFound(ArenaError):
    status_code = 404


class NotAuthorized(ArenaError):
    status_code = 403


# ==================== DATA LAYER ====================

class NoProblemsAvailable(ArenaError):
    status_code = 404


class ConcurrencyConflict(ArenaError):
    status_code = 409


# ==================== UPSTREAM JUDGE ====================

class JudgeError(ArenaError):
    """Judge failures are retryable from the caller's point of view."""
    status_code = 502


class ConfigurationError(JudgeError):
    status_code = 503


class UpstreamError(JudgeError):
    status_code = 502


class ExecutionTimeout(JudgeError):
    status_code = 504
