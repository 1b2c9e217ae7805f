"""
LLM provider access: OpenAI client, completer (JSON + streaming) and SSE framing.
"""

from .completer import Completer, OpenAICompleter
from .clients import get_async_client, check_provider_availability

__all__ = [
    "Completer",
    "OpenAICompleter",
    "get_async_client",
    "check_provider_availability",
]
