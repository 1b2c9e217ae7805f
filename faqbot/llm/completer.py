# FILE: faqbot/llm/completer.py
"""
Chat completion access for the FAQ engine.

Two response shapes share one provider:
- complete_json(): JSON-object mode, returns the raw message content
  (extraction, intent classification, realtime query building)
- stream(): incremental tokens for answers

CANONICAL STREAM EVENTS:
{"type": "metadata", "provider": "openai", "model": "..."}
{"type": "token", "text": "<chunk>"}
{"type": "error", "message": "..."}
{"type": "done", "provider": "openai", "model": "...", "usage": {...}}

NOTE (OpenAI token param drift):
Newer chat models (gpt-5.*, o-series) reject `max_tokens` and `temperature`;
the right parameters are chosen from the model name.
"""

import asyncio
import logging
from typing import Any, AsyncIterator, Dict, List, Optional, Protocol

from openai import AsyncOpenAI

from faqbot import config
from faqbot.errors import GenerationError

logger = logging.getLogger(__name__)


class Completer(Protocol):
    async def complete_json(
        self,
        system_prompt: str,
        user_content: str,
        temperature: float = 0.0,
    ) -> str:
        ...

    def stream(
        self,
        system_prompt: str,
        messages: List[Dict[str, str]],
        max_tokens: Optional[int] = None,
        temperature: float = 0.0,
    ) -> AsyncIterator[Dict[str, Any]]:
        ...


def _is_reasoning_model(model: str) -> bool:
    m = (model or "").strip().lower()
    return m.startswith("gpt-5") or m.startswith("o1") or m.startswith("o3") or m.startswith("o4")


def _uget(obj, key: str):
    if obj is None:
        return None
    if isinstance(obj, dict):
        return obj.get(key)
    return getattr(obj, key, None)


class OpenAICompleter:
    """Completer backed by the OpenAI chat completions API."""

    def __init__(
        self,
        client: Optional[AsyncOpenAI] = None,
        model: str = config.CHAT_MODEL,
        timeout_seconds: float = config.LLM_TIMEOUT_SECONDS,
    ):
        self._client = client
        self.model = model
        self.timeout_seconds = timeout_seconds

    def _get_client(self) -> AsyncOpenAI:
        if self._client is None:
            from faqbot.llm.clients import get_async_client
            self._client = get_async_client()
        return self._client

    def _base_kwargs(self, messages: List[Dict[str, str]], max_tokens: Optional[int], temperature: float) -> Dict[str, Any]:
        kwargs: Dict[str, Any] = {"model": self.model, "messages": messages}
        if _is_reasoning_model(self.model):
            if max_tokens is not None:
                kwargs["max_completion_tokens"] = int(max_tokens)
        else:
            kwargs["temperature"] = temperature
            if max_tokens is not None:
                kwargs["max_tokens"] = int(max_tokens)
        return kwargs

    async def complete_json(
        self,
        system_prompt: str,
        user_content: str,
        temperature: float = 0.0,
    ) -> str:
        """Run one JSON-object completion and return the message content."""
        kwargs = self._base_kwargs(
            [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_content},
            ],
            max_tokens=None,
            temperature=temperature,
        )
        kwargs["response_format"] = {"type": "json_object"}

        try:
            resp = await asyncio.wait_for(
                self._get_client().chat.completions.create(**kwargs),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError as e:
            raise GenerationError(f"completion timed out after {self.timeout_seconds}s") from e
        except Exception as e:
            logger.error("[completer] JSON completion failed: %s", e)
            raise GenerationError(str(e)) from e

        try:
            return resp.choices[0].message.content or ""
        except (AttributeError, IndexError) as e:
            raise GenerationError("completion response had no choices") from e

    async def stream(
        self,
        system_prompt: str,
        messages: List[Dict[str, str]],
        max_tokens: Optional[int] = None,
        temperature: float = 0.0,
    ) -> AsyncIterator[Dict[str, Any]]:
        """
        Stream a chat completion as canonical events.

        The upstream HTTP response is closed when the consumer stops iterating
        (client disconnect, cancellation) so the provider stops generating.
        """
        full_messages = [{"role": "system", "content": system_prompt}]
        full_messages.extend(messages)

        kwargs = self._base_kwargs(full_messages, max_tokens=max_tokens, temperature=temperature)
        kwargs["stream"] = True
        kwargs["stream_options"] = {"include_usage": True}

        yield {"type": "metadata", "provider": "openai", "model": self.model}

        try:
            upstream = await asyncio.wait_for(
                self._get_client().chat.completions.create(**kwargs),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError:
            yield {"type": "error", "message": f"generation timed out after {self.timeout_seconds}s"}
            return
        except Exception as e:
            logger.error("[completer] Stream start failed: %s", e)
            yield {"type": "error", "message": str(e)}
            return

        usage = None
        try:
            async for chunk in upstream:
                u = _uget(chunk, "usage")
                if u:
                    usage = {
                        "prompt_tokens": int(_uget(u, "prompt_tokens") or 0),
                        "completion_tokens": int(_uget(u, "completion_tokens") or 0),
                        "total_tokens": int(_uget(u, "total_tokens") or 0),
                    }
                if not chunk.choices:
                    continue
                delta = chunk.choices[0].delta
                text = getattr(delta, "content", None) if delta is not None else None
                if text:
                    yield {"type": "token", "text": text}
        except asyncio.CancelledError:
            logger.info("[completer] Stream cancelled by consumer")
            raise
        except Exception as e:
            logger.error("[completer] Stream failed mid-response: %s", e)
            yield {"type": "error", "message": str(e)}
            return
        finally:
            close = getattr(upstream, "close", None)
            if close is not None:
                result = close()
                if asyncio.iscoroutine(result):
                    await result

        done: Dict[str, Any] = {"type": "done", "provider": "openai", "model": self.model}
        if usage:
            done["usage"] = usage
        yield done
