# FILE: faqbot/session/store.py
"""
In-memory session store.

Process-wide, keyed by session id. Not durable: state is lost on restart.

Concurrency:
- map access is guarded by a threading lock
- a full turn for one session (extract -> retrieve -> stream -> record) runs
  under that session's asyncio lock, so overlapping requests for the same
  session apply their merges one after the other

Memory:
- sessions idle for longer than idle_ttl_seconds are evicted by a sweep that
  runs on session fetch, at most once per sweep_interval_seconds (ttl 0 disables)
"""

import asyncio
import logging
import threading
import time
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional

from faqbot import config
from faqbot.session.state import (
    ACTIVE_ENQUIRY_KEY,
    SessionState,
    is_enquiry_key,
    normalize_keywords,
    renumber_enquiries,
)

logger = logging.getLogger(__name__)


# =============================================================================
# MERGE RULES (pure, shared with ephemeral chatbot states)
# =============================================================================

def merge_facts_into(state: SessionState, updates: Optional[Mapping[str, Any]]) -> List[str]:
    """
    Per-key overriding merge.

    - identical values are skipped
    - None never erases an existing fact
    - enquiry_* keys are owned by push_topic and ignored here
    Returns the keys that changed.
    """
    changed: List[str] = []
    if not isinstance(updates, Mapping):
        return changed

    for key, value in updates.items():
        if not isinstance(key, str) or not key:
            continue
        if is_enquiry_key(key) or value is None:
            continue
        if key in state.context_json:
            old = state.context_json[key]
            # 1 == True in Python but not in JSON
            if type(old) is type(value) and old == value:
                continue
        state.context_json[key] = value
        changed.append(key)
    return changed


def append_keywords_to(state: SessionState, keywords: Iterable[Any]) -> List[str]:
    """Case-insensitive union; returns the newly added words."""
    existing = {k.lower() for k in state.accumulated_keywords}
    added: List[str] = []
    for word in normalize_keywords(keywords):
        if word not in existing:
            existing.add(word)
            state.accumulated_keywords.append(word)
            added.append(word)
    return added


def push_topic_onto(state: SessionState, topic: Optional[str], limit: int = config.ENQUIRY_HISTORY_LIMIT) -> bool:
    """
    Append a topic and renumber enquiry_1..enquiry_N.

    No-op if the topic equals the most recently pushed one. Always sets
    active_enquiry to the topic. Returns True when the history changed.
    """
    if not isinstance(topic, str) or not topic.strip():
        return False
    topic = topic.strip()

    state.context_json[ACTIVE_ENQUIRY_KEY] = topic

    if state.enquiry_history and state.enquiry_history[-1].strip().lower() == topic.lower():
        return False

    state.enquiry_history.append(topic)
    if limit > 0 and len(state.enquiry_history) > limit:
        del state.enquiry_history[: len(state.enquiry_history) - limit]
    renumber_enquiries(state)
    return True


# =============================================================================
# STORE
# =============================================================================

class SessionStore:
    """Keyed session state with per-session serialization and idle eviction."""

    def __init__(
        self,
        history_limit: int = config.ENQUIRY_HISTORY_LIMIT,
        idle_ttl_seconds: int = config.SESSION_IDLE_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
        sweep_interval_seconds: int = config.SESSION_SWEEP_INTERVAL_SECONDS,
    ):
        self.history_limit = history_limit
        self.idle_ttl_seconds = idle_ttl_seconds
        self.sweep_interval_seconds = sweep_interval_seconds
        self._last_sweep_at: Optional[float] = None
        self._clock = clock
        self._sessions: Dict[str, SessionState] = {}
        self._locks: Dict[str, asyncio.Lock] = {}
        self._mutex = threading.Lock()

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: str) -> bool:
        return session_id in self._sessions

    # ------------------------------------------------------------------

    def get(self, session_id: str) -> Optional[SessionState]:
        with self._mutex:
            return self._sessions.get(session_id)

    def get_or_create(self, session_id: str) -> SessionState:
        """Idempotent: returns the existing state or a fresh empty one."""
        self._maybe_sweep()

        with self._mutex:
            state = self._sessions.get(session_id)
            if state is None:
                state = SessionState(session_id=session_id, last_active_at=self._clock())
                self._sessions[session_id] = state
                logger.debug("[session] Created state for %s", session_id)
            else:
                state.last_active_at = self._clock()
            return state

    def _maybe_sweep(self) -> None:
        if self.idle_ttl_seconds <= 0:
            return
        now = self._clock()
        if self._last_sweep_at is not None and now - self._last_sweep_at < self.sweep_interval_seconds:
            return
        self._last_sweep_at = now
        self.evict_idle(self.idle_ttl_seconds)

    def lock(self, session_id: str) -> asyncio.Lock:
        """The asyncio lock that serializes turns for one session."""
        with self._mutex:
            lock = self._locks.get(session_id)
            if lock is None:
                lock = asyncio.Lock()
                self._locks[session_id] = lock
            return lock

    # ------------------------------------------------------------------

    def merge_facts(self, session_id: str, updates: Mapping[str, Any]) -> List[str]:
        state = self.get_or_create(session_id)
        with self._mutex:
            changed = merge_facts_into(state, updates)
        if changed:
            logger.debug("[session] %s facts changed: %s", session_id, changed)
        return changed

    def append_keywords(self, session_id: str, keywords: Iterable[Any]) -> List[str]:
        state = self.get_or_create(session_id)
        with self._mutex:
            return append_keywords_to(state, keywords)

    def push_topic(self, session_id: str, topic: str) -> bool:
        state = self.get_or_create(session_id)
        with self._mutex:
            return push_topic_onto(state, topic, self.history_limit)

    def record_turn(self, session_id: str, question: str, answer: str) -> None:
        state = self.get_or_create(session_id)
        with self._mutex:
            state.last_question = question
            state.last_answer = answer
            state.last_active_at = self._clock()

    # ------------------------------------------------------------------

    def evict(self, session_id: str) -> bool:
        with self._mutex:
            removed = self._sessions.pop(session_id, None) is not None
            lock = self._locks.get(session_id)
            if lock is not None and not lock.locked():
                del self._locks[session_id]
        if removed:
            logger.debug("[session] Evicted %s", session_id)
        return removed

    def evict_idle(self, max_idle_seconds: float) -> int:
        """Drop sessions idle for longer than max_idle_seconds; returns the count."""
        now = self._clock()
        with self._mutex:
            stale = [
                sid for sid, state in self._sessions.items()
                if now - state.last_active_at > max_idle_seconds
                and not (sid in self._locks and self._locks[sid].locked())
            ]
            for sid in stale:
                del self._sessions[sid]
                self._locks.pop(sid, None)
        if stale:
            logger.info("[session] Evicted %d idle session(s)", len(stale))
        return len(stale)

