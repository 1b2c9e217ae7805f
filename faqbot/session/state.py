# FILE: faqbot/session/state.py
"""
Per-session conversational state.

Tracks, per session id:
- context_json: open fact bag extracted from the conversation
  (e.g. {"child_count": 2, "traveling_to": "Tokyo"}) plus the reserved
  active_enquiry / enquiry_1..enquiry_N keys
- accumulated_keywords: lowercase single words, append-only
- enquiry_history: most recent topics, oldest first
- last_question / last_answer: the previous turn

The same state can be built from, and rendered to, the round-tripped context
object of the multi-intent chatbot endpoint.
"""

import copy
import re
import time
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional

ACTIVE_ENQUIRY_KEY = "active_enquiry"

_ENQUIRY_KEY_RE = re.compile(r"^enquiry_(\d+)$")


def is_enquiry_key(key: str) -> bool:
    return bool(_ENQUIRY_KEY_RE.match(str(key)))


def enquiry_index(key: str) -> Optional[int]:
    m = _ENQUIRY_KEY_RE.match(str(key))
    return int(m.group(1)) if m else None


def normalize_keywords(keywords: Iterable[Any]) -> List[str]:
    """Lowercase single words, deduplicated, first occurrence order kept."""
    seen = set()
    out: List[str] = []
    for kw in keywords or []:
        if not isinstance(kw, str):
            continue
        for word in kw.lower().split():
            word = word.strip(".,;:!?\"'()[]{}")
            if word and word not in seen:
                seen.add(word)
                out.append(word)
    return out


@dataclass
class SessionState:
    """State of one conversation."""
    session_id: str
    context_json: Dict[str, Any] = field(default_factory=dict)
    accumulated_keywords: List[str] = field(default_factory=list)
    enquiry_history: List[str] = field(default_factory=list)
    last_question: Optional[str] = None
    last_answer: Optional[str] = None
    # Turns kept for the chatbot variant's general path
    history: List[Dict[str, str]] = field(default_factory=list)
    last_active_at: float = field(default_factory=time.monotonic)

    # ------------------------------------------------------------------
    # Typed access to the open fact bag
    # ------------------------------------------------------------------

    @property
    def facts(self) -> Mapping[str, Any]:
        """Read-only view of context_json."""
        return MappingProxyType(self.context_json)

    def fact(self, key: str, default: Any = None) -> Any:
        return self.context_json.get(key, default)

    @property
    def active_enquiry(self) -> Optional[str]:
        value = self.context_json.get(ACTIVE_ENQUIRY_KEY)
        return value if isinstance(value, str) and value else None

    def snapshot(self) -> "SessionState":
        """Deep copy, safe to hand to prompt builders."""
        return copy.deepcopy(self)

    # ------------------------------------------------------------------
    # Round-tripped context (multi-intent chatbot)
    # ------------------------------------------------------------------

    def to_context(self) -> Dict[str, Any]:
        return {
            "keywords": list(self.accumulated_keywords),
            "enquiryHistory": list(self.enquiry_history),
            "json": copy.deepcopy(self.context_json),
            "history": copy.deepcopy(self.history),
        }

    @classmethod
    def from_context(
        cls,
        session_id: str,
        context: Optional[Mapping[str, Any]],
        history_limit: int = 10,
    ) -> "SessionState":
        """
        Build a state from a caller-supplied context.

        Malformed parts are replaced by their empty defaults; enquiry_* keys
        are rebuilt from enquiryHistory so numbering is always contiguous.
        """
        context = context or {}

        raw_json = context.get("json")
        facts = {
            k: v for k, v in (raw_json.items() if isinstance(raw_json, Mapping) else [])
            if not is_enquiry_key(k)
        }

        raw_history = context.get("enquiryHistory")
        topics = [t for t in raw_history if isinstance(t, str) and t.strip()] if isinstance(raw_history, list) else []
        topics = topics[-history_limit:] if history_limit > 0 else []

        raw_turns = context.get("history")
        turns = []
        if isinstance(raw_turns, list):
            for t in raw_turns:
                if isinstance(t, Mapping) and isinstance(t.get("question"), str):
                    turns.append({"question": t["question"], "answer": str(t.get("answer") or "")})

        raw_keywords = context.get("keywords")

        state = cls(
            session_id=session_id,
            context_json=dict(facts),
            accumulated_keywords=normalize_keywords(raw_keywords) if isinstance(raw_keywords, list) else [],
            enquiry_history=topics,
            history=turns,
        )
        if turns:
            state.last_question = turns[-1]["question"]
            state.last_answer = turns[-1]["answer"]
        renumber_enquiries(state)
        return state


def renumber_enquiries(state: SessionState) -> None:
    """Rewrite enquiry_1..enquiry_N from enquiry_history, dropping stale keys."""
    for key in [k for k in state.context_json if is_enquiry_key(k)]:
        del state.context_json[key]
    for i, topic in enumerate(state.enquiry_history, start=1):
        state.context_json[f"enquiry_{i}"] = topic
