# FILE: faqbot/chat/extractor.py
"""
Context extraction: one structured JSON-mode call per turn.

The model returns a delta against the session state:
- keywords            lowercase single words from the question
- corrected_question  spelling/grammar fixed, meaning unchanged
- updated_json        new or changed facts, plus active_enquiry / enquiry_N
- active_enquiry_topic (optional) the topic this turn belongs to
- intent              (multi-intent variant only) faq | realtime | general

Unparseable output never fails the turn: the identity extraction is used
instead (raw question, no keywords, no facts, intent faq).

Provider failures (GenerationError) are NOT recovered here; the caller turns
them into an error frame.
"""

import json
import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

from faqbot import config
from faqbot.chat.prompts import (
    EXTRACTION_SCHEMA,
    EXTRACTION_SYSTEM_PROMPT,
    EXTRACTION_USER_TEMPLATE,
    INTENT_EXTRACTION_SCHEMA,
    INTENT_INSTRUCTIONS,
)
from faqbot.errors import ExtractionParseError
from faqbot.llm.completer import Completer
from faqbot.session.state import (
    ACTIVE_ENQUIRY_KEY,
    SessionState,
    enquiry_index,
    is_enquiry_key,
    normalize_keywords,
)
from faqbot.session.store import append_keywords_to, merge_facts_into, push_topic_onto

logger = logging.getLogger(__name__)


class Intent(str, Enum):
    FAQ = "faq"
    REALTIME = "realtime"
    GENERAL = "general"

    @classmethod
    def parse(cls, value: Any) -> "Intent":
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                pass
        return cls.FAQ


@dataclass
class Extraction:
    corrected_question: str
    keywords: List[str] = field(default_factory=list)
    updated_json: Dict[str, Any] = field(default_factory=dict)
    active_enquiry_topic: Optional[str] = None
    intent: Optional[Intent] = None
    recovered: bool = False

    @classmethod
    def identity(cls, question: str, with_intent: bool = False) -> "Extraction":
        return cls(
            corrected_question=question,
            intent=Intent.FAQ if with_intent else None,
            recovered=True,
        )

    def explicit_topic(self) -> Optional[str]:
        """
        The topic the model assigned, in order of preference:
        active_enquiry_topic, updated_json.active_enquiry, highest enquiry_N.
        """
        if self.active_enquiry_topic:
            return self.active_enquiry_topic

        active = self.updated_json.get(ACTIVE_ENQUIRY_KEY)
        if isinstance(active, str) and active.strip():
            return active.strip()

        numbered = [
            (enquiry_index(k) or 0, v) for k, v in self.updated_json.items()
            if is_enquiry_key(k) and isinstance(v, str) and v.strip()
        ]
        if numbered:
            return max(numbered, key=lambda kv: kv[0])[1].strip()
        return None


# =============================================================================
# PARSING
# =============================================================================

_FENCE_RE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)


def parse_extraction(raw: str, question: str, with_intent: bool = False) -> Extraction:
    """
    Parse a JSON-mode extraction response.

    Raises ExtractionParseError if the payload is not a JSON object.
    Fields of the wrong type fall back to their defaults one by one.
    """
    text = _FENCE_RE.sub("", (raw or "").strip())
    try:
        data = json.loads(text)
    except (json.JSONDecodeError, TypeError) as e:
        raise ExtractionParseError(f"extraction output is not JSON: {e}") from e
    if not isinstance(data, dict):
        raise ExtractionParseError(f"extraction output is {type(data).__name__}, not an object")

    corrected = data.get("corrected_question")
    if not isinstance(corrected, str) or not corrected.strip():
        corrected = question

    keywords = data.get("keywords")
    keywords = normalize_keywords(keywords) if isinstance(keywords, list) else []

    updated = data.get("updated_json")
    updated = dict(updated) if isinstance(updated, dict) else {}

    topic = data.get("active_enquiry_topic")
    topic = topic.strip() if isinstance(topic, str) and topic.strip() else None

    return Extraction(
        corrected_question=corrected.strip(),
        keywords=keywords,
        updated_json=updated,
        active_enquiry_topic=topic,
        intent=Intent.parse(data.get("intent")) if with_intent else None,
    )


# =============================================================================
# MERGE
# =============================================================================

def apply_extraction(
    state: SessionState,
    extraction: Extraction,
    history_limit: int = config.ENQUIRY_HISTORY_LIMIT,
) -> Dict[str, Any]:
    """
    Merge an extraction delta into a session state.

    - facts merge per key (enquiry_* and active_enquiry are handled as topics)
    - keywords are unioned
    - a topic already in the history only becomes active again; a new one is
      pushed as the next enquiry_N
    - with no topic, the current active_enquiry carries over; only when there
      is none do the joined keywords become active_enquiry (history untouched)
    Returns a summary of what changed.
    """
    facts = {k: v for k, v in extraction.updated_json.items() if k != ACTIVE_ENQUIRY_KEY}
    changed = merge_facts_into(state, facts)
    added = append_keywords_to(state, extraction.keywords)

    pushed = False
    topic = extraction.explicit_topic()
    if topic:
        known = {t.strip().lower() for t in state.enquiry_history}
        if topic.lower() in known:
            state.context_json[ACTIVE_ENQUIRY_KEY] = topic
        else:
            pushed = push_topic_onto(state, topic, history_limit)
    elif extraction.keywords and not state.active_enquiry:
        topic = " ".join(extraction.keywords)
        state.context_json[ACTIVE_ENQUIRY_KEY] = topic
    else:
        topic = state.active_enquiry

    return {"changed_facts": changed, "added_keywords": added, "topic": topic, "pushed": pushed}


# =============================================================================
# EXTRACTOR
# =============================================================================

def _dump(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False, default=str)


class ContextExtractor:
    """Runs the structured extraction call for one turn."""

    def __init__(self, completer: Completer, collections: Optional[Iterable[str]] = None):
        self.completer = completer
        self.collections = list(collections if collections is not None else config.REALTIME_COLLECTIONS)

    def build_system_prompt(self, state: SessionState, with_intent: bool = False) -> str:
        prompt = EXTRACTION_SYSTEM_PROMPT.format(
            facts=_dump(dict(state.facts)),
            keywords=", ".join(state.accumulated_keywords) or "(none)",
            enquiries=_dump(state.enquiry_history),
            schema=INTENT_EXTRACTION_SCHEMA if with_intent else EXTRACTION_SCHEMA,
        )
        if with_intent:
            prompt += INTENT_INSTRUCTIONS.format(collections=", ".join(self.collections) or "(none)")
        return prompt

    async def extract(self, state: SessionState, question: str, with_intent: bool = False) -> Extraction:
        """
        Run the extraction call against a snapshot of the state.

        The state itself is not modified; see apply_extraction().
        """
        snapshot = state.snapshot()
        raw = await self.completer.complete_json(
            self.build_system_prompt(snapshot, with_intent=with_intent),
            EXTRACTION_USER_TEMPLATE.format(facts=_dump(dict(snapshot.facts)), question=question),
        )

        try:
            extraction = parse_extraction(raw, question, with_intent=with_intent)
        except ExtractionParseError as e:
            logger.warning("[extractor] %s; using raw question", e)
            return Extraction.identity(question, with_intent=with_intent)

        logger.debug(
            "[extractor] corrected=%r keywords=%s updates=%s intent=%s",
            extraction.corrected_question,
            extraction.keywords,
            list(extraction.updated_json),
            extraction.intent.value if extraction.intent else None,
        )
        return extraction
