# FILE: faqbot/chat/streamer.py
"""
Answer generation as a token stream.

Yields plain text tokens in arrival order. Provider error events are raised
as GenerationError so the endpoint can emit a single error frame.
"""

import json
import logging
from contextlib import aclosing
from typing import Any, AsyncIterator, Dict, List, Mapping, Optional, Sequence

from faqbot import config
from faqbot.chat.prompts import ANSWER_SYSTEM_PROMPT, ANSWER_USER_TEMPLATE, GENERAL_SYSTEM_PROMPT
from faqbot.errors import GenerationError
from faqbot.llm.completer import Completer

logger = logging.getLogger(__name__)


class AnswerStreamer:
    def __init__(
        self,
        completer: Completer,
        max_tokens: int = config.ANSWER_MAX_TOKENS,
        general_max_tokens: int = config.GENERAL_MAX_TOKENS,
    ):
        self.completer = completer
        self.max_tokens = max_tokens
        self.general_max_tokens = general_max_tokens

    async def _relay(self, events: AsyncIterator[Dict[str, Any]]) -> AsyncIterator[str]:
        try:
            async for event in events:
                etype = event.get("type")
                if etype == "token":
                    text = event.get("text")
                    if text:
                        yield text
                elif etype == "error":
                    raise GenerationError(event.get("message") or "generation failed")
                elif etype == "done":
                    usage = event.get("usage")
                    if usage:
                        logger.debug("[streamer] usage=%s", usage)
        finally:
            # Closes the provider stream when the consumer stops early
            aclose = getattr(events, "aclose", None)
            if aclose is not None:
                await aclose()

    async def stream_answer(
        self,
        context_block: str,
        last_question: Optional[str],
        last_answer: Optional[str],
        facts: Mapping[str, Any],
        question: str,
    ) -> AsyncIterator[str]:
        """Closed-domain answer over the FAQ context block."""
        if context_block == config.NO_RELEVANT_FAQS:
            logger.info("[streamer] No relevant FAQs; returning fallback answer")
            yield config.FALLBACK_ANSWER
            return

        user_content = ANSWER_USER_TEMPLATE.format(
            context=context_block,
            last_question=last_question or "None",
            last_answer=last_answer or "None",
            facts=json.dumps(dict(facts), ensure_ascii=False, default=str),
            question=question,
        )
        events = self.completer.stream(
            ANSWER_SYSTEM_PROMPT,
            [{"role": "user", "content": user_content}],
            max_tokens=self.max_tokens,
            temperature=0.0,
        )
        async with aclosing(self._relay(events)) as tokens:
            async for token in tokens:
                yield token

    async def stream_general(
        self,
        question: str,
        history: Sequence[Mapping[str, str]],
        facts: Mapping[str, Any],
    ) -> AsyncIterator[str]:
        """Free conversational answer with recent turns as context."""
        messages: List[Dict[str, str]] = []
        for turn in history:
            messages.append({"role": "user", "content": turn.get("question", "")})
            if turn.get("answer"):
                messages.append({"role": "assistant", "content": turn["answer"]})
        messages.append({"role": "user", "content": question})

        system = GENERAL_SYSTEM_PROMPT.format(facts=json.dumps(dict(facts), ensure_ascii=False, default=str))
        events = self.completer.stream(system, messages, max_tokens=self.general_max_tokens, temperature=0.7)
        async with aclosing(self._relay(events)) as tokens:
            async for token in tokens:
                yield token

    async def answer(self, *args, **kwargs) -> str:
        """Collect stream_answer() into one string (non-streaming callers)."""
        parts = [token async for token in self.stream_answer(*args, **kwargs)]
        return "".join(parts)
