"""
FAQ conversation pipeline: extraction, retrieval, answering, intent routing.
"""

from .extractor import ContextExtractor, Extraction, Intent, apply_extraction, parse_extraction
from .retriever import FAQDocument, RetrievalCandidate, Retriever, build_context, build_embedding_input
from .streamer import AnswerStreamer
from .engine import ChatEngine, get_chat_engine

__all__ = [
    "ContextExtractor",
    "Extraction",
    "Intent",
    "apply_extraction",
    "parse_extraction",
    "FAQDocument",
    "RetrievalCandidate",
    "Retriever",
    "build_context",
    "build_embedding_input",
    "AnswerStreamer",
    "ChatEngine",
    "get_chat_engine",
]
