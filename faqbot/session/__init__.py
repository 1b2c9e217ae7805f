"""
Per-session conversational state and its in-memory store.
"""

from .state import SessionState, normalize_keywords, ACTIVE_ENQUIRY_KEY
from .store import (
    SessionStore,
    merge_facts_into,
    append_keywords_to,
    push_topic_onto,
)

__all__ = [
    "SessionState",
    "SessionStore",
    "normalize_keywords",
    "merge_facts_into",
    "append_keywords_to",
    "push_topic_onto",
    "ACTIVE_ENQUIRY_KEY",
]
