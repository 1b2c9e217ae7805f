# faqbot/faq/models.py
"""
SQLAlchemy ORM model for the FAQ corpus.

The CMS owns this table. The embedding column holds the vector as JSON text
and is filled by the CMS when an entry is saved.
"""

from datetime import datetime
from sqlalchemy import Column, Integer, Text, DateTime
from faqbot.db import Base


class Faq(Base):
    __tablename__ = "faqs"

    id = Column(Integer, primary_key=True, index=True)
    question = Column(Text, nullable=False)
    answer = Column(Text, nullable=False)
    embedding = Column(Text, nullable=True)  # JSON-encoded list of floats
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
    # NULL = draft
    published_at = Column(DateTime, nullable=True)
