# FILE: faqbot/chat/engine.py
"""
FAQ turn orchestration.

One turn, strictly in order:
    extract (structured call) -> merge into session -> embed + rank
    -> stream answer -> record last Q/A

Per-session turns are serialized with SessionStore.lock(). A turn whose stream
is abandoned (client disconnect) does not record its partial answer.
"""

import logging
from contextlib import aclosing
from typing import AsyncIterator, List, Optional, Protocol

from faqbot import config
from faqbot.chat.extractor import ContextExtractor, Extraction, apply_extraction
from faqbot.chat.realtime import RealtimeQueryBuilder
from faqbot.chat.retriever import FAQDocument, RetrievalResult, Retriever, build_embedding_input
from faqbot.chat.streamer import AnswerStreamer
from faqbot.session import SessionState, SessionStore

logger = logging.getLogger(__name__)


class CorpusSource(Protocol):
    def load(self) -> List[FAQDocument]:
        ...


class ChatEngine:
    """Bundles the pipeline stages; built once per process (see get_chat_engine)."""

    def __init__(
        self,
        extractor: ContextExtractor,
        retriever: Retriever,
        streamer: AnswerStreamer,
        corpus: CorpusSource,
        sessions: SessionStore,
        realtime: Optional[RealtimeQueryBuilder] = None,
        context_history_limit: int = config.CONTEXT_HISTORY_LIMIT,
    ):
        self.extractor = extractor
        self.retriever = retriever
        self.streamer = streamer
        self.corpus = corpus
        self.sessions = sessions
        self.realtime = realtime
        self.context_history_limit = context_history_limit

    async def retrieve_for(self, state: SessionState, extraction: Extraction) -> RetrievalResult:
        query_text = build_embedding_input(
            extraction.corrected_question,
            state.active_enquiry,
            extraction.keywords,
        )
        logger.debug("[engine] Embedding input: %r", query_text)
        return await self.retriever.retrieve(query_text, self.corpus.load())

    async def stream_faq_answer(self, state: SessionState, extraction: Extraction) -> AsyncIterator[str]:
        retrieval = await self.retrieve_for(state, extraction)
        tokens = self.streamer.stream_answer(
            retrieval.context,
            state.last_question,
            state.last_answer,
            state.facts,
            extraction.corrected_question,
        )
        async with aclosing(tokens):
            async for token in tokens:
                yield token

    async def stream_turn(self, session_id: str, question: str) -> AsyncIterator[str]:
        """
        Run one /faq/ask turn and yield answer tokens.

        FaqBotError subclasses (embedding or generation failures) propagate to
        the caller, which owns the wire format.
        """
        async with self.sessions.lock(session_id):
            state = self.sessions.get_or_create(session_id)

            extraction = await self.extractor.extract(state, question)
            summary = apply_extraction(state, extraction, self.sessions.history_limit)
            logger.info(
                "[engine] session=%s topic=%r pushed=%s facts_changed=%s",
                session_id, summary["topic"], summary["pushed"], summary["changed_facts"],
            )

            parts: List[str] = []
            async with aclosing(self.stream_faq_answer(state, extraction)) as tokens:
                async for token in tokens:
                    parts.append(token)
                    yield token

            self.sessions.record_turn(session_id, question, "".join(parts))

    async def answer_once(self, question: str) -> str:
        """Full FAQ answer on a throwaway session (no streaming, nothing stored)."""
        state = SessionState(session_id="ephemeral")
        extraction = await self.extractor.extract(state, question)
        apply_extraction(state, extraction, self.sessions.history_limit)
        parts = [token async for token in self.stream_faq_answer(state, extraction)]
        return "".join(parts)


# =============================================================================
# PROCESS-WIDE INSTANCE
# =============================================================================

_engine: Optional[ChatEngine] = None


def build_default_engine() -> ChatEngine:
    from faqbot.db import SessionLocal, engine as db_engine
    from faqbot.chat.realtime import SqlRecordStore
    from faqbot.embeddings import OpenAIEmbedder
    from faqbot.faq.service import SqlFaqCorpus
    from faqbot.llm import OpenAICompleter

    completer = OpenAICompleter()
    return ChatEngine(
        extractor=ContextExtractor(completer),
        retriever=Retriever(OpenAIEmbedder()),
        streamer=AnswerStreamer(completer),
        corpus=SqlFaqCorpus(SessionLocal),
        sessions=SessionStore(),
        realtime=RealtimeQueryBuilder(completer, SqlRecordStore(db_engine)),
    )


def get_chat_engine() -> ChatEngine:
    """FastAPI dependency; tests override it with a faked engine."""
    global _engine
    if _engine is None:
        _engine = build_default_engine()
        logger.info("[engine] Chat engine initialised (model=%s)", config.CHAT_MODEL)
    return _engine
