# FILE: faqbot/chatlog/service.py
import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy.orm import Session

from faqbot.chatlog.models import ChatLog

logger = logging.getLogger(__name__)


def create_chat_log(db: Session, user_query: str, bot_response: Optional[str]) -> ChatLog:
    log = ChatLog(user_query=user_query, bot_response=bot_response, timestamp=datetime.utcnow())
    db.add(log)
    db.commit()
    db.refresh(log)
    logger.debug("[chatlog] Stored chat log %s", log.id)
    return log


def list_chat_logs(db: Session, limit: int = 50) -> List[ChatLog]:
    return db.query(ChatLog).order_by(ChatLog.timestamp.desc(), ChatLog.id.desc()).limit(limit).all()
