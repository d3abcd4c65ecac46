"""Configuration for the triage recommendation engine (scoring weights, queue, Redis)."""

import os

REDIS_URL: str = os.environ.get("REDIS_URL", "redis://localhost:6379/0")

# --- Scoring configuration defaults ---
# Custom field whose value names the affected system (e.g. "MagaluPay").
DECLARED_FIELD_KEY: str = os.environ.get("DECLARED_FIELD_KEY", "system_field")
# Percent occupancy at/above which an agent is flagged overloaded (display only).
OVERLOAD_THRESHOLD: float = float(os.environ.get("OVERLOAD_THRESHOLD", "80"))
AUTOPILOT_ENABLED: bool = os.environ.get("AUTOPILOT_ENABLED", "false").lower() in ("1", "true", "yes")
DEFAULT_MAX_CAPACITY: int = int(os.environ.get("DEFAULT_MAX_CAPACITY", "8"))

# --- Match evaluator weights ---
# Level 3 on the declared field is worth 40 of the 70 technical points.
FIELD_WEIGHT: float = float(os.environ.get("FIELD_WEIGHT", str(40 / 3)))
CONTENT_WEIGHT: float = float(os.environ.get("CONTENT_WEIGHT", str(25 / 3)))
TAG_WEIGHT: float = float(os.environ.get("TAG_WEIGHT", "5"))
CONTENT_DUPLICATE_BONUS: float = float(os.environ.get("CONTENT_DUPLICATE_BONUS", "5"))
TAG_DUPLICATE_BONUS: float = float(os.environ.get("TAG_DUPLICATE_BONUS", "2"))
TECH_SCORE_CEILING: float = float(os.environ.get("TECH_SCORE_CEILING", "70"))

# --- Occupancy model ---
LOAD_WEIGHT: float = float(os.environ.get("LOAD_WEIGHT", "30"))

# --- Assignment bookkeeping ---
ASSIGNMENT_LOG_CAP: int = int(os.environ.get("ASSIGNMENT_LOG_CAP", "100"))
GENERAL_TAG: str = os.environ.get("GENERAL_TAG", "general")

# --- Pending queue wait-time buckets (minutes) ---
QUEUE_GREEN_MINUTES: int = int(os.environ.get("QUEUE_GREEN_MINUTES", "15"))
QUEUE_YELLOW_MINUTES: int = int(os.environ.get("QUEUE_YELLOW_MINUTES", "40"))
