# FILE: faqbot/embeddings/vectors.py
"""
Vector helpers: embedding validation and cosine scoring.
"""

import json
import math
from numbers import Real
from typing import Any, List, Optional, Sequence

from faqbot.errors import DimensionMismatchError


def normalize_embedding(value: Any) -> Optional[List[float]]:
    """
    Return value as a list of floats, or None if it is not a usable embedding.

    Accepts a non-empty sequence of numbers, or a JSON string encoding one
    (the CMS stores the vector column as JSON text).
    """
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except (json.JSONDecodeError, TypeError):
            return None

    if not isinstance(value, (list, tuple)) or len(value) == 0:
        return None

    for v in value:
        # bool is an int subclass; a vector of flags is not an embedding
        if isinstance(v, bool) or not isinstance(v, Real):
            return None
        if math.isnan(v) or math.isinf(v):
            return None

    return [float(v) for v in value]


def cosine_similarity(vec_a: Sequence[float], vec_b: Sequence[float]) -> float:
    """Compute cosine similarity between two vectors of equal width."""
    if len(vec_a) != len(vec_b):
        raise DimensionMismatchError(len(vec_a), len(vec_b))

    dot_product = sum(a * b for a, b in zip(vec_a, vec_b))
    norm_a = math.sqrt(sum(a * a for a in vec_a))
    norm_b = math.sqrt(sum(b * b for b in vec_b))

    if norm_a == 0 or norm_b == 0:
        return 0.0

    return dot_product / (norm_a * norm_b)


def cosine_distance(vec_a: Sequence[float], vec_b: Sequence[float]) -> float:
    """Cosine distance as computed by pgvector's `<=>` operator."""
    return 1.0 - cosine_similarity(vec_a, vec_b)
