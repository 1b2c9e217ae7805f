# FILE: faqbot/chat/intent_router.py
"""
Multi-intent chatbot turn.

The caller round-trips the conversation context; nothing is stored server
side. Frame order:

    {"type": "context", ...}      always first, updated context
    {"type": "chunk", ...}*       faq / general answers
    {"type": "realtime_data",...} realtime answers
    {"type": "error", ...}        at most one, ends the turn
    [DONE]
"""

import asyncio
import json
import logging
import uuid
from contextlib import aclosing
from typing import Any, AsyncIterator, List, Mapping, Optional

from faqbot.chat.engine import ChatEngine
from faqbot.chat.extractor import Extraction, Intent, apply_extraction
from faqbot.errors import FaqBotError
from faqbot.llm.sse import sse_chunk, sse_context, sse_done, sse_error, sse_realtime
from faqbot.session import SessionState

logger = logging.getLogger(__name__)


class IntentRouter:
    def __init__(self, engine: ChatEngine):
        self.engine = engine

    async def _realtime_frames(
        self,
        state: SessionState,
        extraction: Extraction,
        samples_task: Optional["asyncio.Task"],
    ) -> AsyncIterator[str]:
        builder = self.engine.realtime
        if builder is None:
            yield sse_error("Realtime data is not available")
            return

        samples = await samples_task if samples_task is not None else await builder.fetch_samples()
        descriptor = await builder.build(extraction.corrected_question, state.facts, samples)
        rows = await builder.run(descriptor)
        state.history.append({
            "question": extraction.corrected_question,
            "answer": json.dumps({"collection": descriptor.collection, "count": len(rows)}),
        })
        yield sse_realtime(descriptor.collection, rows)

    async def _answer_frames(self, state: SessionState, extraction: Extraction, intent: Intent) -> AsyncIterator[str]:
        if intent == Intent.GENERAL:
            history = state.history[-self.engine.context_history_limit:]
            tokens = self.engine.streamer.stream_general(extraction.corrected_question, history, state.facts)
        else:
            tokens = self.engine.stream_faq_answer(state, extraction)

        parts: List[str] = []
        async with aclosing(tokens):
            async for token in tokens:
                parts.append(token)
                yield sse_chunk(token)

        state.history.append({"question": extraction.corrected_question, "answer": "".join(parts)})

    async def frames(self, question: str, context: Optional[Mapping[str, Any]]) -> AsyncIterator[str]:
        limit = self.engine.sessions.history_limit
        state = SessionState.from_context(f"chatbot-{uuid.uuid4().hex[:8]}", context, history_limit=limit)

        context_sent = False
        samples_task = None
        if self.engine.realtime is not None:
            samples_task = asyncio.create_task(self.engine.realtime.fetch_samples())

        try:
            extraction = await self.engine.extractor.extract(state, question, with_intent=True)
            apply_extraction(state, extraction, limit)
            intent = extraction.intent or Intent.FAQ
            logger.info("[intent] %s: %r", intent.value, extraction.corrected_question)

            ctx = state.to_context()
            ctx["history"] = ctx["history"][-self.engine.context_history_limit:]
            yield sse_context(ctx)
            context_sent = True

            if intent == Intent.REALTIME:
                body = self._realtime_frames(state, extraction, samples_task)
            else:
                body = self._answer_frames(state, extraction, intent)
            async with aclosing(body):
                async for frame in body:
                    yield frame

        except FaqBotError as e:
            logger.warning("[intent] Turn failed: %s", e)
            if not context_sent:
                yield sse_context(state.to_context())
            yield sse_error(str(e))
        except Exception as e:
            logger.exception("[intent] Unexpected failure: %s", e)
            if not context_sent:
                yield sse_context(state.to_context())
            yield sse_error("Internal error")
        finally:
            if samples_task is not None:
                if not samples_task.done():
                    samples_task.cancel()
                elif not samples_task.cancelled() and samples_task.exception() is not None:
                    logger.warning("[intent] Sample pre-fetch failed: %s", samples_task.exception())

        yield sse_done()
