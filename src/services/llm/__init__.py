"""LLM services (Groq)."""

from src.services.llm.exceptions import (
    LLMAuthenticationError,
    LLMConnectionError,
    LLMEmptyResponseError,
    LLMRateLimitError,
    LLMServiceError,
)
from src.services.llm.groq import GroqService
from src.services.llm.protocol import (
    GenerationResult,
    LLMService,
    Message,
    Role,
)

__all__ = [
    # Protocol and types
    "LLMService",
    "Message",
    "Role",
    "GenerationResult",
    # Implementation
    "GroqService",
    # Exceptions
    "LLMServiceError",
    "LLMRateLimitError",
    "LLMConnectionError",
    "LLMAuthenticationError",
    "LLMEmptyResponseError",
]
