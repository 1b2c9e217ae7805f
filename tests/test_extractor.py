# FILE: tests/test_extractor.py
"""
Tests for faqbot/chat/extractor.py
Structured extraction parsing, recovery and the merge policy.
"""

import sys
from pathlib import Path

_project_root = Path(__file__).parent.parent
if str(_project_root) not in sys.path:
    sys.path.insert(0, str(_project_root))

import pytest

from conftest import FakeCompleter, extraction_json


class TestParseExtraction:
    """Test parse_extraction."""

    def test_full_payload(self):
        from faqbot.chat.extractor import parse_extraction
        ex = parse_extraction(
            extraction_json(
                keywords=["Kids", "tour booking"],
                corrected_question="Can my kids join the tour?",
                updated_json={"child_count": 2},
                active_enquiry_topic="children on tours",
            ),
            "can my kidz join tour",
        )
        assert ex.keywords == ["kids", "tour", "booking"]
        assert ex.corrected_question == "Can my kids join the tour?"
        assert ex.updated_json == {"child_count": 2}
        assert ex.active_enquiry_topic == "children on tours"
        assert ex.intent is None

    def test_not_json_raises(self):
        from faqbot.chat.extractor import parse_extraction
        from faqbot.errors import ExtractionParseError
        with pytest.raises(ExtractionParseError):
            parse_extraction("sure! here you go", "q")

    def test_non_object_raises(self):
        from faqbot.chat.extractor import parse_extraction
        from faqbot.errors import ExtractionParseError
        with pytest.raises(ExtractionParseError):
            parse_extraction("[1, 2]", "q")

    def test_wrong_types_default_individually(self):
        from faqbot.chat.extractor import parse_extraction
        ex = parse_extraction('{"keywords": "kids", "corrected_question": 5, "updated_json": [1]}', "raw q")
        assert ex.keywords == []
        assert ex.corrected_question == "raw q"
        assert ex.updated_json == {}

    def test_code_fence_tolerated(self):
        from faqbot.chat.extractor import parse_extraction
        ex = parse_extraction('```json\n{"keywords": ["refund"]}\n```', "q")
        assert ex.keywords == ["refund"]

    def test_unknown_intent_falls_back_to_faq(self):
        from faqbot.chat.extractor import Intent, parse_extraction
        assert parse_extraction('{"intent": "weather"}', "q", with_intent=True).intent == Intent.FAQ
        assert parse_extraction('{"intent": "REALTIME"}', "q", with_intent=True).intent == Intent.REALTIME


class TestExplicitTopic:
    """Test the topic preference order."""

    def test_explicit_field_wins(self):
        from faqbot.chat.extractor import Extraction
        ex = Extraction(
            corrected_question="q",
            updated_json={"active_enquiry": "b", "enquiry_3": "c"},
            active_enquiry_topic="a",
        )
        assert ex.explicit_topic() == "a"

    def test_active_enquiry_then_highest_enquiry(self):
        from faqbot.chat.extractor import Extraction
        assert Extraction("q", updated_json={"active_enquiry": "b", "enquiry_3": "c"}).explicit_topic() == "b"
        assert Extraction("q", updated_json={"enquiry_2": "x", "enquiry_10": "y"}).explicit_topic() == "y"
        assert Extraction("q").explicit_topic() is None


class TestApplyExtraction:
    """Test merging an extraction into a session state."""

    def test_new_topic_pushed(self):
        from faqbot.chat.extractor import Extraction, apply_extraction
        from faqbot.session import SessionState

        state = SessionState("s")
        summary = apply_extraction(state, Extraction(
            "q", keywords=["kids"], updated_json={"child_count": 2, "active_enquiry": "children on tours", "enquiry_1": "children on tours"},
        ))
        assert summary["pushed"] is True
        assert state.enquiry_history == ["children on tours"]
        assert state.context_json == {
            "child_count": 2,
            "active_enquiry": "children on tours",
            "enquiry_1": "children on tours",
        }

    def test_known_topic_only_reactivated(self):
        from faqbot.chat.extractor import Extraction, apply_extraction
        from faqbot.session import SessionState

        state = SessionState.from_context("s", {"enquiryHistory": ["refunds", "children on tours"]})
        summary = apply_extraction(state, Extraction("q", active_enquiry_topic="Refunds"))
        assert summary["pushed"] is False
        assert state.enquiry_history == ["refunds", "children on tours"]
        assert state.active_enquiry == "Refunds"

    def test_keyword_topic_does_not_touch_history(self):
        from faqbot.chat.extractor import Extraction, apply_extraction
        from faqbot.session import SessionState

        state = SessionState("s")
        apply_extraction(state, Extraction("q", keywords=["pickup", "time"]))
        assert state.active_enquiry == "pickup time"
        assert state.enquiry_history == []
        assert "enquiry_1" not in state.context_json

    def test_facts_only_turn_keeps_current_topic(self):
        from faqbot.chat.extractor import Extraction, apply_extraction
        from faqbot.chat.retriever import build_embedding_input
        from faqbot.session import SessionState

        state = SessionState("s")
        apply_extraction(state, Extraction("Can I book a seaplane tour?", active_enquiry_topic="seaplane tour booking"))

        follow_up = Extraction("I have 1 more kid", keywords=["kid", "more"], updated_json={"child_count": 3})
        summary = apply_extraction(state, follow_up)

        assert summary["pushed"] is False
        assert summary["topic"] == "seaplane tour booking"
        assert state.active_enquiry == "seaplane tour booking"
        assert state.enquiry_history == ["seaplane tour booking"]
        assert state.fact("child_count") == 3
        assert "Active Enquiry: seaplane tour booking" in build_embedding_input(
            follow_up.corrected_question, state.active_enquiry, follow_up.keywords,
        )

    def test_identity_extraction_changes_nothing(self):
        from faqbot.chat.extractor import Extraction, apply_extraction
        from faqbot.session import SessionState

        state = SessionState.from_context("s", {"keywords": ["a"], "json": {"x": 1}, "enquiryHistory": ["t"]})
        before = state.to_context()
        apply_extraction(state, Extraction.identity("q"))
        assert state.to_context() == before


class TestContextExtractor:
    """Test the extraction call."""

    @pytest.mark.asyncio
    async def test_prompt_includes_state(self):
        from faqbot.chat.extractor import ContextExtractor
        from faqbot.session import SessionState

        completer = FakeCompleter(json_responses=[extraction_json(corrected_question="Hi?")])
        state = SessionState.from_context("s", {"keywords": ["kids"], "json": {"child_count": 2}, "enquiryHistory": ["children on tours"]})

        ex = await ContextExtractor(completer).extract(state, "hi")
        assert ex.corrected_question == "Hi?"
        system = completer.json_calls[0]["system"]
        assert '"child_count": 2' in system
        assert "kids" in system
        assert "children on tours" in system
        assert '"intent"' not in system

    @pytest.mark.asyncio
    async def test_malformed_output_recovers(self):
        from faqbot.chat.extractor import ContextExtractor
        from faqbot.session import SessionState

        completer = FakeCompleter(json_responses=["not json at all"])
        ex = await ContextExtractor(completer).extract(SessionState("s"), "raw question", with_intent=True)
        assert ex.recovered is True
        assert ex.corrected_question == "raw question"
        assert ex.keywords == []
        assert ex.updated_json == {}
        assert ex.intent.value == "faq"

    @pytest.mark.asyncio
    async def test_intent_prompt_lists_collections(self):
        from faqbot.chat.extractor import ContextExtractor
        from faqbot.session import SessionState

        completer = FakeCompleter(json_responses=['{"intent": "realtime"}'])
        ex = await ContextExtractor(completer, collections=["tours"]).extract(SessionState("s"), "q", with_intent=True)
        assert ex.intent.value == "realtime"
        assert "Realtime collections: tours" in completer.json_calls[0]["system"]

    @pytest.mark.asyncio
    async def test_provider_error_propagates(self):
        from faqbot.chat.extractor import ContextExtractor
        from faqbot.errors import GenerationError
        from faqbot.session import SessionState

        completer = FakeCompleter(json_error=GenerationError("boom"))
        with pytest.raises(GenerationError):
            await ContextExtractor(completer).extract(SessionState("s"), "q")

    @pytest.mark.asyncio
    async def test_state_not_mutated_by_extract(self):
        from faqbot.chat.extractor import ContextExtractor
        from faqbot.session import SessionState

        completer = FakeCompleter(json_responses=[extraction_json(updated_json={"child_count": 9})])
        state = SessionState("s")
        await ContextExtractor(completer).extract(state, "q")
        assert state.context_json == {}
