# faqbot/chatlog/models.py
from datetime import datetime
from sqlalchemy import Column, Integer, Text, DateTime
from faqbot.db import Base


class ChatLog(Base):
    __tablename__ = "chat_logs"

    id = Column(Integer, primary_key=True, index=True)
    user_query = Column(Text, nullable=False)
    bot_response = Column(Text, nullable=True)
    timestamp = Column(DateTime, default=datetime.utcnow, nullable=True)
