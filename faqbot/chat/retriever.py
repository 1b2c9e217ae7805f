# FILE: faqbot/chat/retriever.py
"""
FAQ retrieval: embed the enriched query, score the corpus in memory, build the
context block handed to the answer model.

SCORING MODES (config.FAQ_SCORE_MODE):
- similarity: cosine similarity, sorted descending, optional floor
- distance:   cosine distance, sorted ascending, cut at FAQ_MAX_DISTANCE
"""

import logging
from dataclasses import dataclass
from typing import Any, Iterable, List, Optional, Sequence

from faqbot import config
from faqbot.embeddings import Embedder, cosine_distance, cosine_similarity, normalize_embedding
from faqbot.errors import DimensionMismatchError

logger = logging.getLogger(__name__)


@dataclass
class FAQDocument:
    question: str
    answer: str
    embedding: Any = None
    id: Optional[int] = None


@dataclass
class RetrievalCandidate:
    question: str
    answer: str
    score: float
    mode: str = config.SCORE_MODE_SIMILARITY


@dataclass
class RetrievalResult:
    query_text: str
    candidates: List[RetrievalCandidate]
    context: str

    @property
    def has_matches(self) -> bool:
        return bool(self.candidates)


def build_embedding_input(
    corrected_question: str,
    active_enquiry: Optional[str],
    keywords: Sequence[str],
) -> str:
    return (
        f"Q: {corrected_question}\n"
        f"Active Enquiry: {active_enquiry or ''}\n"
        f"Keywords: {', '.join(keywords)}"
    )


def build_context(candidates: Sequence[RetrievalCandidate]) -> str:
    if not candidates:
        return config.NO_RELEVANT_FAQS
    return "\n\n".join(f"Q: {c.question}\nA: {c.answer}" for c in candidates)


class Retriever:
    """Embeds queries and ranks FAQ documents against them."""

    def __init__(
        self,
        embedder: Embedder,
        mode: str = config.FAQ_SCORE_MODE,
        top_k: int = config.FAQ_TOP_K,
        max_distance: float = config.FAQ_MAX_DISTANCE,
        min_similarity: Optional[float] = config.FAQ_MIN_SIMILARITY,
        dedupe_questions: bool = config.FAQ_DEDUPE_QUESTIONS,
    ):
        if mode not in (config.SCORE_MODE_SIMILARITY, config.SCORE_MODE_DISTANCE):
            logger.warning("[retriever] Unknown score mode %r, using similarity", mode)
            mode = config.SCORE_MODE_SIMILARITY
        self.embedder = embedder
        self.mode = mode
        self.top_k = max(1, top_k)
        self.max_distance = max_distance
        self.min_similarity = min_similarity
        self.dedupe_questions = dedupe_questions

    async def embed(self, text: str) -> List[float]:
        return await self.embedder.embed(text)

    def _score(self, query_vector: Sequence[float], doc_vector: Sequence[float]) -> float:
        if self.mode == config.SCORE_MODE_DISTANCE:
            return cosine_distance(query_vector, doc_vector)
        return cosine_similarity(query_vector, doc_vector)

    def _passes_threshold(self, score: float) -> bool:
        if self.mode == config.SCORE_MODE_DISTANCE:
            return score <= self.max_distance
        if self.min_similarity is not None:
            return score >= self.min_similarity
        return True

    def rank(self, query_vector: Sequence[float], corpus: Iterable[FAQDocument]) -> List[RetrievalCandidate]:
        """Score, sort, dedupe, truncate to top_k, then apply the mode threshold."""
        scored: List[RetrievalCandidate] = []
        skipped_empty = 0
        mismatched = 0

        for doc in corpus:
            vector = normalize_embedding(doc.embedding)
            if vector is None:
                skipped_empty += 1
                continue
            try:
                score = self._score(query_vector, vector)
            except DimensionMismatchError as e:
                mismatched += 1
                logger.warning("[retriever] Skipping FAQ %s: %s", doc.id if doc.id is not None else doc.question[:40], e)
                continue
            scored.append(RetrievalCandidate(question=doc.question, answer=doc.answer, score=score, mode=self.mode))

        descending = self.mode == config.SCORE_MODE_SIMILARITY
        scored.sort(key=lambda c: c.score, reverse=descending)

        if self.dedupe_questions:
            seen = set()
            unique = []
            for c in scored:
                if c.question in seen:
                    continue
                seen.add(c.question)
                unique.append(c)
            scored = unique

        top = [c for c in scored[: self.top_k] if self._passes_threshold(c.score)]

        logger.info(
            "[retriever] mode=%s scored=%d kept=%d skipped_empty=%d mismatched=%d",
            self.mode, len(scored), len(top), skipped_empty, mismatched,
        )
        return top

    async def retrieve(self, query_text: str, corpus: Iterable[FAQDocument]) -> RetrievalResult:
        query_vector = await self.embed(query_text)
        candidates = self.rank(query_vector, corpus)
        return RetrievalResult(query_text=query_text, candidates=candidates, context=build_context(candidates))
