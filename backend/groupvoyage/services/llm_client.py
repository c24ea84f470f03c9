"""Unified LLM client — tries OpenAI first, falls back to Anthropic."""

import json
import logging

import anthropic
from openai import AsyncOpenAI

from groupvoyage.config import settings
from groupvoyage.services.errors import GenerationError

logger = logging.getLogger(__name__)


class LLMClient:
    """Unified async LLM client with OpenAI primary + Anthropic fallback."""

    def __init__(self):
        self._openai = None
        self._anthropic = None

        if settings.openai_api_key:
            self._openai = AsyncOpenAI(
                api_key=settings.openai_api_key,
                timeout=settings.llm_timeout_seconds,
            )
        if settings.anthropic_api_key:
            self._anthropic = anthropic.AsyncAnthropic(
                api_key=settings.anthropic_api_key,
                timeout=settings.llm_timeout_seconds,
            )

    @property
    def model_name(self) -> str:
        if self._openai:
            return settings.openai_model
        return settings.anthropic_model

    async def complete(
        self,
        system: str,
        user: str,
        *,
        max_tokens: int | None = None,
        temperature: float = 0.7,
    ) -> str:
        """Get a completion from the best available LLM.

        Args:
            system: System prompt
            user: User message
            max_tokens: Max output tokens (defaults to settings.llm_max_tokens)
            temperature: Sampling temperature

        Returns:
            Raw text response from the LLM.

        Raises:
            GenerationError if no provider is configured or all providers fail.
        """
        errors = []
        max_tokens = max_tokens or settings.llm_max_tokens
        chat_messages = [{"role": "user", "content": user}]

        if self._openai:
            try:
                response = await self._openai.chat.completions.create(
                    model=settings.openai_model,
                    max_tokens=max_tokens,
                    temperature=temperature,
                    messages=[{"role": "system", "content": system}] + chat_messages,
                )
                return (response.choices[0].message.content or "").strip()
            except Exception as e:
                errors.append(f"OpenAI: {e}")
                logger.warning(f"OpenAI failed, trying Anthropic: {e}")

        if self._anthropic:
            try:
                response = await self._anthropic.messages.create(
                    model=settings.anthropic_model,
                    max_tokens=max_tokens,
                    temperature=temperature,
                    system=system,
                    messages=chat_messages,
                )
                return response.content[0].text.strip()
            except Exception as e:
                errors.append(f"Anthropic: {e}")
                logger.warning(f"Anthropic also failed: {e}")

        if not errors:
            raise GenerationError("No LLM provider configured")
        raise GenerationError(f"All LLM providers failed: {'; '.join(errors)}")


def _matching_brace(text: str, start: int) -> int | None:
    """Index of the brace closing the object opened at ``start``, honouring JSON strings."""
    depth = 0
    in_string = False
    escaped = False
    for i in range(start, len(text)):
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
        elif ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return i
    return None


def extract_json_object(text: str | None) -> dict:
    """Pull the first ``{...}`` object out of an LLM reply, tolerating prose and code fences.

    Raises:
        GenerationError("Failed to parse AI response") when no object can be decoded.
    """
    if not text or not text.strip():
        raise GenerationError("Failed to parse AI response: empty response")

    start = text.find("{")
    if start == -1:
        raise GenerationError("Failed to parse AI response: no JSON object found")

    end = _matching_brace(text, start)
    if end is None:
        # Unbalanced; fall back to the widest candidate
        end = text.rfind("}")
    if end <= start:
        raise GenerationError("Failed to parse AI response: no JSON object found")

    try:
        parsed = json.loads(text[start:end + 1])
    except json.JSONDecodeError as e:
        raise GenerationError(f"Failed to parse AI response: {e}") from e
    if not isinstance(parsed, dict):
        raise GenerationError("Failed to parse AI response: not a JSON object")
    return parsed


# Singleton
llm_client = LLMClient()
