# FILE: faqbot/faq/service.py
"""
FAQ corpus access.

Only published rows with an embedding are loaded; rows whose embedding does
not parse are left to the retriever, which drops them.
"""

import logging
from typing import Any, Dict, List

from sqlalchemy.orm import Session

from faqbot.chat.retriever import FAQDocument
from faqbot.db import session_scope
from faqbot.embeddings import normalize_embedding
from faqbot.faq.models import Faq

logger = logging.getLogger(__name__)


def load_corpus(db: Session) -> List[FAQDocument]:
    rows = (
        db.query(Faq)
        .filter(Faq.embedding.isnot(None))
        .filter(Faq.embedding != "")
        .filter(Faq.published_at.isnot(None))
        .all()
    )
    logger.debug("[faq] Loaded %d FAQ rows with embeddings", len(rows))
    return [FAQDocument(question=r.question, answer=r.answer, embedding=r.embedding, id=r.id) for r in rows]


def corpus_status(db: Session) -> Dict[str, Any]:
    """Counts for the status endpoint."""
    total = db.query(Faq).count()
    published = db.query(Faq).filter(Faq.published_at.isnot(None)).count()

    usable = 0
    dimensions = set()
    for (raw,) in db.query(Faq.embedding).filter(Faq.published_at.isnot(None)).all():
        vector = normalize_embedding(raw)
        if vector is None:
            continue
        usable += 1
        dimensions.add(len(vector))

    return {
        "total": total,
        "published": published,
        "with_embedding": usable,
        "dimensions": sorted(dimensions),
    }


class SqlFaqCorpus:
    """Corpus source bound to a session factory; loads fresh on every turn."""

    def __init__(self, session_factory):
        self.session_factory = session_factory

    def load(self) -> List[FAQDocument]:
        with session_scope(self.session_factory) as db:
            return load_corpus(db)
