"""
CodeArena Configuration
Judge service URLs, database and evaluation settings
"""

import os

# MongoDB
MONGO_URL = os.getenv("MONGO_URL", "mongodb://localhost:27017")
MONGO_DB_NAME = os.getenv("MONGO_DB_NAME", "codearena")

# Auth (tokens are issued by the external auth service)
JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "dev-change-me")
JWT_ALGORITHM = "HS256"

# Judge0 service
JUDGE0_API_URL = os.getenv("JUDGE0_API_URL", "http://localhost:2358")
JUDGE0_AUTH_TOKEN = os.getenv("JUDGE0_AUTH_TOKEN", "")

# Judge polling settings
JUDGE_POLL_INTERVAL_SECONDS = float(os.getenv("JUDGE_POLL_INTERVAL_SECONDS", "0.5"))
JUDGE_MAX_POLL_ATTEMPTS = int(os.getenv("JUDGE_MAX_POLL_ATTEMPTS", "20"))
JUDGE_REQUEST_TIMEOUT_SECONDS = float(os.getenv("JUDGE_REQUEST_TIMEOUT_SECONDS", "15"))

# Execution limits sent with every judge submission
JUDGE_EXECUTION_LIMITS = {
    "cpu_time_limit": 5,
    "cpu_extra_time": 2,
    "wall_time_limit": 10,
    "memory_limit": 256000,      # KB
    "stack_limit": 64000,        # KB
    "max_processes_and_or_threads": 60,
    "enable_per_process_and_thread_time_limit": True,
    "enable_per_process_and_thread_memory_limit": True,
    "max_file_size": 2048,       # KB
    "enable_network": False,
}

# Source / stdin size cap (64KB)
MAX_CODE_LENGTH = 65536
MAX_INPUT_LENGTH = 65536

# Optimistic concurrency retry bound for aggregate writes
AGGREGATE_MAX_RETRIES = 10

# Daily challenge
DAILY_CHALLENGE_LOOKBACK_DAYS = 30
ENABLE_DAILY_SCHEDULER = os.getenv("ENABLE_DAILY_SCHEDULER", "true").lower() in ("1", "true", "yes", "y")
