"""Convenience exports for build-small LLM client implementations."""

from .gemini import GeminiClient
from .llm_client import (
    GenerationConfig,
    LLMClient,
    LLMClientError,
    LLMRequest,
    LLMResponseFormatError,
    LLMTransportError,
)

__all__ = [
    "GeminiClient",
    "GenerationConfig",
    "LLMClient",
    "LLMClientError",
    "LLMRequest",
    "LLMResponseFormatError",
    "LLMTransportError",
]
