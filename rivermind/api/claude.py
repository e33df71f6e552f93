"""
Claude API Client — the voice behind both agents.

Every word RIVER or ENTITY says, every private thought, dream and reflection
is generated through this module. The rest of the system only sees the small
``TextGenerator`` protocol: a prompt goes in, and text (or None) comes out.

Generation is allowed to fail. Timeouts, API errors and empty answers all
become ``None``, and each caller decides what "no words" means for it.
Nothing here retries; the next scheduled cycle is the retry.
"""

from __future__ import annotations

import asyncio
import json
import time
from typing import Any, Optional, Protocol

import anthropic
import structlog

from rivermind.config import EngineConfig
from rivermind.errors import EngineInitError

logger = structlog.get_logger(__name__)


class TextGenerator(Protocol):
    async def generate(
        self,
        system_prompt: str,
        prompt: str,
        *,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
    ) -> Optional[str]: ...


def parse_json_object(text: Optional[str]) -> Optional[dict[str, Any]]:
    """Best-effort JSON object extraction from model text.

    Accepts a bare object, a fenced ```json block, or an object embedded in
    surrounding prose. Returns None for anything else.
    """
    payload = (text or "").strip()
    if not payload:
        return None

    def _parse(candidate: str) -> Optional[dict[str, Any]]:
        try:
            parsed = json.loads(candidate)
        except json.JSONDecodeError:
            return None
        return parsed if isinstance(parsed, dict) else None

    parsed = _parse(payload)
    if parsed is not None:
        return parsed

    if "```" in payload:
        for block in payload.split("```"):
            candidate = block.strip()
            if candidate.startswith("json"):
                candidate = candidate[4:].strip()
            parsed = _parse(candidate)
            if parsed is not None:
                return parsed

    start = payload.find("{")
    end = payload.rfind("}")
    if start >= 0 and end > start:
        return _parse(payload[start : end + 1])
    return None


class AnthropicTextGenerator:
    """
    Wraps the Anthropic Messages API behind ``TextGenerator``.

    The engine keeps no conversational state. It receives a system prompt and
    one user prompt and returns the text of the reply.
    """

    def __init__(self, config: EngineConfig, client: Optional[Any] = None):
        try:
            if client is None:
                if not config.api_key:
                    raise EngineInitError(
                        "ANTHROPIC_API_KEY is not set; cannot create the text generator"
                    )
                client = anthropic.AsyncAnthropic(api_key=config.api_key, max_retries=0)
            self._async_client = client
            self._model = config.model
            self._max_tokens = config.max_tokens
            self._temperature = config.temperature
            self._request_timeout_seconds = float(config.request_timeout_seconds)

            # Telemetry
            self._total_input_tokens = 0
            self._total_output_tokens = 0
            self._total_calls = 0
            self._total_failures = 0
            self._last_call_time: Optional[float] = None

            logger.info("text_generator.initialized", model=self._model)
        except EngineInitError:
            raise
        except Exception as exc:
            raise EngineInitError(f"Failed to initialize text generator: {exc}") from exc

    async def generate(
        self,
        system_prompt: str,
        prompt: str,
        *,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
    ) -> Optional[str]:
        start_time = time.monotonic()
        kwargs: dict[str, Any] = {
            "model": self._model,
            "max_tokens": max_tokens or self._max_tokens,
            "temperature": self._temperature if temperature is None else temperature,
            "system": system_prompt,
            "messages": [{"role": "user", "content": prompt}],
        }

        try:
            response = await asyncio.wait_for(
                self._async_client.messages.create(**kwargs),
                timeout=self._request_timeout_seconds,
            )
        except asyncio.TimeoutError:
            self._total_failures += 1
            logger.warning(
                "text_generator.timeout", timeout_seconds=self._request_timeout_seconds
            )
            return None
        except anthropic.RateLimitError as e:
            self._total_failures += 1
            logger.warning("text_generator.rate_limited", error=str(e))
            return None
        except anthropic.APIError as e:
            self._total_failures += 1
            logger.error(
                "text_generator.api_error",
                error=str(e),
                status=getattr(e, "status_code", None),
            )
            return None

        elapsed = time.monotonic() - start_time
        usage = getattr(response, "usage", None)
        if usage is not None:
            self._total_input_tokens += getattr(usage, "input_tokens", 0) or 0
            self._total_output_tokens += getattr(usage, "output_tokens", 0) or 0
        self._total_calls += 1
        self._last_call_time = elapsed

        text = self.extract_text(response).strip()
        logger.debug(
            "text_generator.complete",
            elapsed_seconds=round(elapsed, 2),
            stop_reason=getattr(response, "stop_reason", None),
            chars=len(text),
        )
        return text or None

    @staticmethod
    def extract_text(response: Any) -> str:
        """Join all text blocks of a response, ignoring anything else."""
        parts = []
        for block in getattr(response, "content", None) or []:
            if getattr(block, "type", None) == "text":
                parts.append(block.text)
        return "\n".join(parts)

    @property
    def telemetry(self) -> dict[str, Any]:
        return {
            "total_calls": self._total_calls,
            "total_failures": self._total_failures,
            "total_input_tokens": self._total_input_tokens,
            "total_output_tokens": self._total_output_tokens,
            "last_call_seconds": self._last_call_time if self._last_call_time is not None else 0.0,
        }
