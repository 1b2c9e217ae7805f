# FILE: faqbot/chatlog/router.py
"""
Non-streaming chat-bot endpoint.

Each ask runs the FAQ pipeline on a throwaway session and is written to
chat_logs.
"""

import logging
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict
from sqlalchemy.orm import Session

from faqbot.chat.engine import ChatEngine, get_chat_engine
from faqbot.chatlog import service
from faqbot.db import get_db
from faqbot.errors import FaqBotError

router = APIRouter(prefix="/chat-bot", tags=["chat-bot"])
logger = logging.getLogger(__name__)


class ChatBotAskRequest(BaseModel):
    query: Optional[str] = None


class ChatBotAskResponse(BaseModel):
    response: str


class ChatLogOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_query: str
    bot_response: Optional[str]
    timestamp: Optional[datetime]


@router.post("/ask", response_model=ChatBotAskResponse)
async def ask(
    req: ChatBotAskRequest,
    db: Session = Depends(get_db),
    engine: ChatEngine = Depends(get_chat_engine),
):
    query = (req.query or "").strip()
    if not query:
        raise HTTPException(status_code=400, detail="Query is required")

    try:
        reply = await engine.answer_once(query)
    except FaqBotError as e:
        logger.error("[chat-bot] Answer failed: %s", e)
        raise HTTPException(status_code=502, detail=str(e))

    service.create_chat_log(db, user_query=query, bot_response=reply)
    return ChatBotAskResponse(response=reply)


@router.get("/logs", response_model=List[ChatLogOut])
def logs(limit: int = 50, db: Session = Depends(get_db)):
    return service.list_chat_logs(db, limit=limit)
