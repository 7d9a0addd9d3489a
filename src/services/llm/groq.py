"""Groq LLM service implementation."""

from __future__ import annotations

import time
from collections.abc import Sequence
from typing import Any

import groq
from groq import AsyncGroq

from src.config import Settings, get_settings
from src.logging_config import get_logger
from src.services.llm.exceptions import (
    LLMAuthenticationError,
    LLMConnectionError,
    LLMEmptyResponseError,
    LLMRateLimitError,
    LLMServiceError,
)
from src.services.llm.protocol import GenerationResult, Message, Role

logger: Any = get_logger(__name__)

# Agents created for other providers store model names Groq does not serve.
FOREIGN_MODEL_PREFIXES = ("gemini", "gpt-", "claude")


class GroqService:
    """Groq chat completion service for dialog turns and extraction."""

    def __init__(
        self,
        settings: Settings | None = None,
        client: AsyncGroq | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._client: AsyncGroq | None = client

    @property
    def client(self) -> AsyncGroq:
        """Lazy initialization of AsyncGroq client."""
        if self._client is None:
            self._client = AsyncGroq(
                api_key=self._settings.groq_api_key.get_secret_value(),
                timeout=30.0,
                max_retries=2,
            )
        return self._client

    def resolve_model(self, model: str | None) -> str:
        """Map an agent's model identifier onto a model Groq can serve."""
        if not model or model.lower().startswith(FOREIGN_MODEL_PREFIXES):
            return self._settings.default_llm_model
        return model

    async def generate_content(
        self,
        model: str,
        turns: Sequence[Message],
        system_instruction: str,
    ) -> GenerationResult:
        """Generate the next assistant turn.

        Args:
            model: Agent model identifier
            turns: Conversation history, oldest first
            system_instruction: Agent prompt including the tool catalog

        Returns:
            GenerationResult with text and reported token usage

        Raises:
            LLMRateLimitError: When rate limit exceeded
            LLMConnectionError: When API unreachable
            LLMAuthenticationError: When API key invalid
            LLMServiceError: For other API errors
        """
        resolved = self.resolve_model(model)
        api_messages = self._format_messages(system_instruction, turns)
        start_time = time.perf_counter()

        response = await self._create(api_messages, resolved, temperature=0.7, max_tokens=512)

        content = response.choices[0].message.content if response.choices else None
        if not content:
            raise LLMEmptyResponseError("Empty response from Groq")

        result = GenerationResult(
            text=content,
            model=resolved,
            latency_ms=(time.perf_counter() - start_time) * 1000,
            finish_reason=response.choices[0].finish_reason,
        )
        if response.usage:
            result.input_tokens = response.usage.prompt_tokens
            result.output_tokens = response.usage.completion_tokens
        return result

    async def chat(
        self,
        model: str,
        prompt: str,
        history: Sequence[Message] = (),
    ) -> str:
        """Run a single prompt against the model and return its raw text."""
        api_messages = [
            {"role": msg.role.value, "content": msg.content} for msg in history
        ]
        api_messages.append({"role": Role.USER.value, "content": prompt})

        response = await self._create(
            api_messages,
            self.resolve_model(model),
            temperature=0.0,
            max_tokens=512,
        )
        content = response.choices[0].message.content if response.choices else None
        return content or ""

    async def _create(
        self,
        api_messages: list[dict],
        model: str,
        *,
        temperature: float,
        max_tokens: int,
    ) -> Any:
        try:
            return await self.client.chat.completions.create(
                messages=api_messages,  # type: ignore[arg-type]
                model=model,
                temperature=temperature,
                max_tokens=max_tokens,
            )

        except groq.RateLimitError as e:
            logger.warning(f"Groq rate limit hit: {e}")
            raise LLMRateLimitError(
                "Rate limit exceeded",
                retry_after=self._extract_retry_after(e),
            ) from e

        except groq.APIConnectionError as e:
            logger.error(f"Groq connection error: {e.__cause__}")
            raise LLMConnectionError("Failed to connect to Groq API") from e

        except groq.AuthenticationError as e:
            logger.error("Groq authentication failed")
            raise LLMAuthenticationError("Invalid Groq API key") from e

        except groq.APIStatusError as e:
            logger.error(f"Groq API error: {e.status_code} - {e.message}")
            raise LLMServiceError(f"Groq API error: {e.status_code}") from e

        except groq.APIError as e:
            logger.error(f"Groq API error: {e.message}")
            raise LLMServiceError(f"Groq API error: {e.message}") from e

    def _format_messages(self, system_prompt: str, turns: Sequence[Message]) -> list[dict]:
        """Format history for the Groq chat API."""
        api_messages = [{"role": "system", "content": system_prompt}]

        for msg in turns:
            api_messages.append({
                "role": msg.role.value,
                "content": msg.content,
            })

        return api_messages

    def _extract_retry_after(self, error: groq.RateLimitError) -> float:
        """Extract retry-after from rate limit error."""
        if hasattr(error, "response") and error.response:
            retry_after = error.response.headers.get("retry-after")
            if retry_after:
                try:
                    return float(retry_after)
                except ValueError:
                    pass
        return 60.0

    async def health_check(self) -> bool:
        """Check if Groq API is reachable."""
        try:
            response = await self.client.chat.completions.create(
                messages=[{"role": "user", "content": "hi"}],
                model=self._settings.default_llm_model,
                max_tokens=1,
            )
            return bool(response.choices)
        except Exception as e:
            logger.warning(f"Groq health check failed: {e}")
            return False

    async def close(self) -> None:
        """Close the client connection."""
        if self._client:
            await self._client.close()
            self._client = None
