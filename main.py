# FILE: main.py
"""
FAQ Assistant Backend - FastAPI Application
Version: 0.3.0

Features:
- Retrieval-augmented FAQ answers streamed over SSE (/faq/ask)
- Per-session conversational memory (facts, keywords, enquiry topics)
- Multi-intent chatbot with caller round-tripped context (/faq/chatbot)
- Realtime record lookups over configured collections
- Non-streaming chat-bot endpoint with chat logs (/chat-bot/ask)

Run:
    python -m uvicorn main:app --host 127.0.0.1 --port 8000
"""
import os
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from dotenv import load_dotenv

# Load .env FIRST before any other imports that might need env vars
load_dotenv()

from faqbot import __version__, config
from faqbot.db import init_db
from faqbot.llm import check_provider_availability
from faqbot.faq.router import router as faq_router
from faqbot.chatlog.router import router as chatlog_router
from faqbot.debug.router import router as debug_router

logging.basicConfig(
    level=getattr(logging, config.LOG_LEVEL, logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(
    title="FAQ Assistant",
    version=__version__,
    description="Conversational FAQ assistant with retrieval and streaming answers",
)

# ====== CORS ======

app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ====== STARTUP ======

@app.on_event("startup")
def on_startup():
    if config.DATABASE_URL.startswith("sqlite:///./"):
        os.makedirs("data", exist_ok=True)

    init_db()

    print("[startup] Checking environment variables...")
    if check_provider_availability()["openai"]:
        print(f"[startup] OPENAI_API_KEY: [OK] set (chat={config.CHAT_MODEL}, embeddings={config.EMBEDDING_MODEL})")
    else:
        print("[startup] OPENAI_API_KEY: [X] NOT SET - extraction, retrieval and answers will fail")

    print(f"[startup] Retrieval: mode={config.FAQ_SCORE_MODE} top_k={config.FAQ_TOP_K}")
    print(f"[startup] Sessions: idle TTL {config.SESSION_IDLE_TTL_SECONDS}s, {config.ENQUIRY_HISTORY_LIMIT} enquiries kept")
    print(f"[startup] Realtime collections: {', '.join(config.REALTIME_COLLECTIONS) or '(none)'}")


# ====== ROUTERS ======

app.include_router(faq_router)
app.include_router(chatlog_router)
app.include_router(debug_router)


@app.get("/ping")
def ping():
    return {"status": "ok"}
