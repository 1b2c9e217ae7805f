# FILE: faqbot/config.py
"""
FAQ assistant configuration.

All tunables in one place, read from the environment (.env is loaded by
main.py before this module is imported).

RETRIEVAL SCORING:
- "similarity": cosine similarity, higher is better. No numeric floor unless
  FAQ_MIN_SIMILARITY is set; the NO_RELEVANT_FAQS sentinel is only used when
  the candidate list is empty.
- "distance": cosine distance (pgvector `<=>`), lower is better. Candidates
  above FAQ_MAX_DISTANCE are dropped.
The two scores are never compared against each other.
"""

import os
from typing import List, Optional


def _int_env(name: str, default: int) -> int:
    v = os.getenv(name, "").strip()
    if not v:
        return default
    try:
        return int(v)
    except ValueError:
        return default


def _float_env(name: str, default: Optional[float]) -> Optional[float]:
    v = os.getenv(name, "").strip()
    if not v:
        return default
    try:
        return float(v)
    except ValueError:
        return default


def _bool_env(name: str, default: bool) -> bool:
    v = os.getenv(name, "").strip().lower()
    if not v:
        return default
    return v in {"1", "true", "yes", "on"}


def _list_env(name: str, default: str) -> List[str]:
    raw = os.getenv(name, default)
    return [item.strip() for item in raw.split(",") if item.strip()]


# ============================================================================
# PROVIDERS
# ============================================================================

OPENAI_API_KEY = os.getenv("OPENAI_API_KEY", "")

CHAT_MODEL = os.getenv("CHAT_MODEL", "gpt-4o-mini")
EMBEDDING_MODEL = os.getenv("EMBEDDING_MODEL", "text-embedding-3-small")

# Applied to every outbound call (extraction, embedding, generation, query building)
LLM_TIMEOUT_SECONDS: float = _float_env("LLM_TIMEOUT_SECONDS", 30.0)
LLM_MAX_RETRIES: int = _int_env("LLM_MAX_RETRIES", 2)

ANSWER_MAX_TOKENS: int = _int_env("ANSWER_MAX_TOKENS", 120)
GENERAL_MAX_TOKENS: int = _int_env("GENERAL_MAX_TOKENS", 300)

# ============================================================================
# RETRIEVAL
# ============================================================================

SCORE_MODE_SIMILARITY = "similarity"
SCORE_MODE_DISTANCE = "distance"

FAQ_SCORE_MODE = os.getenv("FAQ_SCORE_MODE", SCORE_MODE_SIMILARITY).strip().lower()
FAQ_TOP_K: int = _int_env("FAQ_TOP_K", 5)
FAQ_MAX_DISTANCE: float = _float_env("FAQ_MAX_DISTANCE", 0.9)
FAQ_MIN_SIMILARITY: Optional[float] = _float_env("FAQ_MIN_SIMILARITY", None)
FAQ_DEDUPE_QUESTIONS: bool = _bool_env("FAQ_DEDUPE_QUESTIONS", True)

NO_RELEVANT_FAQS = "NO_RELEVANT_FAQS"
FALLBACK_ANSWER = "I couldn't find this information in our knowledge base."

# ============================================================================
# SESSIONS
# ============================================================================

ENQUIRY_HISTORY_LIMIT: int = _int_env("ENQUIRY_HISTORY_LIMIT", 10)
SESSION_IDLE_TTL_SECONDS: int = _int_env("SESSION_IDLE_TTL_SECONDS", 3600)
# Minimum gap between idle sweeps
SESSION_SWEEP_INTERVAL_SECONDS: int = _int_env("SESSION_SWEEP_INTERVAL_SECONDS", 60)

# Turns kept in the round-tripped chatbot context
CONTEXT_HISTORY_LIMIT: int = _int_env("CONTEXT_HISTORY_LIMIT", 5)

# ============================================================================
# REALTIME DATA
# ============================================================================

REALTIME_COLLECTIONS: List[str] = _list_env("REALTIME_COLLECTIONS", "tours,bookings,schedules")
REALTIME_MAX_ROWS: int = _int_env("REALTIME_MAX_ROWS", 20)
REALTIME_SAMPLE_ROWS: int = _int_env("REALTIME_SAMPLE_ROWS", 3)

# ============================================================================
# DATABASE / LOGGING
# ============================================================================

DATABASE_URL = os.getenv("FAQBOT_DATABASE_URL", "sqlite:///./data/faqbot.db")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
