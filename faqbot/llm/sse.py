# FILE: faqbot/llm/sse.py
"""SSE (Server-Sent Events) frame builders.

Two wire shapes are served:
- plain token frames for /faq/ask:     data: <token>\\n\\n ... data: [DONE]\\n\\n
- JSON frames for /faq/chatbot:        data: {"type": "...", ...}\\n\\n
"""

from __future__ import annotations

import json
from typing import Any, Dict, List

DONE_SENTINEL = "[DONE]"

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


def sse_data(text: str) -> str:
    """Plain data frame. Embedded newlines become continuation data lines."""
    lines = text.split("\n")
    return "".join(f"data: {line}\n" for line in lines) + "\n"


def sse_done() -> str:
    return sse_data(DONE_SENTINEL)


def sse_error_event(message: str) -> str:
    """Typed error frame for the plain-token stream."""
    return "event: error\n" + sse_data(message)


def sse_json(payload: Dict[str, Any]) -> str:
    return "data: " + json.dumps(payload, default=str) + "\n\n"


def sse_context(context: Dict[str, Any]) -> str:
    return sse_json({"type": "context", "context": context})


def sse_chunk(content: str) -> str:
    return sse_json({"type": "chunk", "content": content})


def sse_realtime(collection: str, rows: List[Dict[str, Any]]) -> str:
    return sse_json({"type": "realtime_data", "collection": collection, "data": rows})


def sse_error(error: str) -> str:
    return sse_json({"type": "error", "error": error})
