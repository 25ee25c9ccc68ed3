"""Convenience exports for editkit model client implementations."""

from .chat import ChatCompletionsClient
from .llm_client import (
    LLMClient,
    LLMClientError,
    LLMResponseFormatError,
    LLMRetryError,
    LLMTransportError,
    RetryPolicy,
)

__all__ = [
    "ChatCompletionsClient",
    "LLMClient",
    "LLMClientError",
    "LLMResponseFormatError",
    "LLMRetryError",
    "LLMTransportError",
    "RetryPolicy",
]
