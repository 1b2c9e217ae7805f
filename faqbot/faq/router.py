# FILE: faqbot/faq/router.py
r"""
FAQ endpoints.

POST /faq/ask      plain-token SSE:  data: <token>\n\n ... data: [DONE]\n\n
POST /faq/chatbot  JSON-frame SSE (context / chunk / realtime_data / error)
GET  /faq/status   corpus counts
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from faqbot import config
from faqbot.chat.engine import ChatEngine, get_chat_engine
from faqbot.chat.intent_router import IntentRouter
from faqbot.db import get_db
from faqbot.errors import FaqBotError, RequestValidationError
from faqbot.faq import service
from faqbot.faq.schemas import AskRequest, ChatbotRequest, FaqStatus
from faqbot.llm.sse import SSE_HEADERS, sse_data, sse_done, sse_error_event

router = APIRouter(prefix="/faq", tags=["faq"])
logger = logging.getLogger(__name__)


def _require(value, name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise RequestValidationError(f"{name} is required")
    return value.strip()


async def generate_answer_stream(engine: ChatEngine, request: Request, session_id: str, question: str):
    """Token frames for one turn; errors become one error event before [DONE]."""
    tokens = engine.stream_turn(session_id, question)
    try:
        async for token in tokens:
            if await request.is_disconnected():
                logger.info("[faq] Client disconnected mid-answer (session=%s)", session_id)
                return
            yield sse_data(token)
    except FaqBotError as e:
        logger.warning("[faq] Turn failed (session=%s): %s", session_id, e)
        yield sse_error_event(str(e))
    except Exception as e:
        logger.exception("[faq] Unexpected failure (session=%s): %s", session_id, e)
        yield sse_error_event("Internal error")
    finally:
        await tokens.aclose()

    yield sse_done()


@router.post("/ask")
async def ask(req: AskRequest, request: Request, engine: ChatEngine = Depends(get_chat_engine)):
    try:
        question = _require(req.question, "question")
        session_id = _require(req.sessionId, "sessionId")
    except RequestValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return StreamingResponse(
        generate_answer_stream(engine, request, session_id, question),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )


@router.post("/chatbot")
async def chatbot(req: ChatbotRequest, engine: ChatEngine = Depends(get_chat_engine)):
    try:
        question = _require(req.question, "question")
    except RequestValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return StreamingResponse(
        IntentRouter(engine).frames(question, req.context),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )


@router.get("/status", response_model=FaqStatus)
def status(db: Session = Depends(get_db)):
    counts = service.corpus_status(db)
    return FaqStatus(score_mode=config.FAQ_SCORE_MODE, top_k=config.FAQ_TOP_K, **counts)
