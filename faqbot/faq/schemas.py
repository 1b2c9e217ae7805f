# FILE: faqbot/faq/schemas.py
"""
FAQ endpoint schemas.

Required fields are Optional here so a missing value is answered with the
service's own 400, not FastAPI's 422.
"""
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict


class AskRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    question: Optional[str] = None
    sessionId: Optional[str] = None


class ChatbotRequest(BaseModel):
    question: Optional[str] = None
    context: Optional[Dict[str, Any]] = None


class FaqStatus(BaseModel):
    total: int
    published: int
    with_embedding: int
    dimensions: List[int]
    score_mode: str
    top_k: int
