"""
Embedding support for FAQ retrieval.
Provides query embedding and vector scoring.
"""

from .vectors import (
    normalize_embedding,
    cosine_similarity,
    cosine_distance,
)
from .embedder import Embedder, OpenAIEmbedder

__all__ = [
    "normalize_embedding",
    "cosine_similarity",
    "cosine_distance",
    "Embedder",
    "OpenAIEmbedder",
]
