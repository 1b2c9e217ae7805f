# FILE: faqbot/llm/clients.py
"""
OpenAI client construction.

One AsyncOpenAI client is shared by the embedder and the completer. Every
request made through it is bounded by LLM_TIMEOUT_SECONDS and retried at most
LLM_MAX_RETRIES times by the SDK before the error surfaces.
"""

import logging
from typing import Dict, Optional

from openai import AsyncOpenAI

from faqbot import config

logger = logging.getLogger(__name__)

_client: Optional[AsyncOpenAI] = None


def get_async_client() -> AsyncOpenAI:
    """Return the process-wide AsyncOpenAI client, creating it on first use."""
    global _client
    if _client is None:
        if not config.OPENAI_API_KEY:
            logger.warning("[clients] OPENAI_API_KEY not set - provider calls will fail")
        _client = AsyncOpenAI(
            api_key=config.OPENAI_API_KEY or None,
            timeout=config.LLM_TIMEOUT_SECONDS,
            max_retries=config.LLM_MAX_RETRIES,
        )
    return _client


def reset_client() -> None:
    """Drop the cached client (tests, key rotation)."""
    global _client
    _client = None


def check_provider_availability() -> Dict[str, bool]:
    """Report which providers are configured."""
    return {"openai": bool(config.OPENAI_API_KEY)}
