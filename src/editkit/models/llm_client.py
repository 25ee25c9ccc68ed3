"""Client base class and retry policy for free-text model completions."""

from __future__ import annotations

import logging
import random
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional

__all__ = [
    "CompletionRequest",
    "LLMClient",
    "LLMClientError",
    "LLMResponseFormatError",
    "LLMRetryError",
    "LLMTransportError",
    "RetryPolicy",
    "default_is_retryable",
]

LOGGER = logging.getLogger(__name__)

_RETRYABLE_STATUSES = frozenset({408, 409, 429})


class LLMClientError(RuntimeError):
    """Base error raised for model client failures."""


class LLMTransportError(LLMClientError):
    """Raised when the underlying transport fails to return a response."""

    def __init__(self, message: str, *, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class LLMResponseFormatError(LLMClientError):
    """Raised when the model returns a payload without usable text."""


class LLMRetryError(LLMClientError):
    """Raised after exhausting the retry budget on retryable failures."""


def default_is_retryable(error: Exception) -> bool:
    """Classify rate limits, 5xx responses and network failures as transient."""
    if not isinstance(error, LLMTransportError):
        return False
    if error.status is None:
        return True
    return error.status in _RETRYABLE_STATUSES or error.status >= 500


@dataclass(slots=True)
class RetryPolicy:
    """Exponential backoff with jitter and a fixed attempt budget."""

    max_attempts: int = 3
    base_delay: float = 0.5
    max_delay: float = 8.0
    jitter: float = 0.25
    is_retryable: Callable[[Exception], bool] = field(default=default_is_retryable)

    def delay_for(self, attempt: int, *, rng: Callable[[], float] = random.random) -> float:
        """Return the sleep before retrying after failed ``attempt`` (1-based)."""
        delay = min(self.base_delay * (2 ** max(attempt - 1, 0)), self.max_delay)
        if self.jitter > 0:
            delay += delay * self.jitter * rng()
        return delay


@dataclass(slots=True)
class CompletionRequest:
    """Prompt payload handed to a transport."""

    prompt: str
    model: str
    system_prompt: Optional[str] = None
    temperature: float = 0.1
    max_tokens: int = 4000

    def to_payload(self) -> Dict[str, Any]:
        messages: list[Dict[str, str]] = []
        if self.system_prompt:
            messages.append({"role": "system", "content": self.system_prompt})
        messages.append({"role": "user", "content": self.prompt})
        return {
            "model": self.model,
            "messages": messages,
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
            "stream": False,
        }


class LLMClient:
    """High-level helper that returns complete text responses with retries."""

    def __init__(
        self,
        model: str,
        *,
        retry_policy: RetryPolicy | None = None,
        temperature: float = 0.1,
        max_tokens: int = 4000,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._model = model
        self._retry_policy = retry_policy or RetryPolicy()
        self._temperature = temperature
        self._max_tokens = max_tokens
        self._sleep = sleep

    @property
    def model(self) -> str:
        """Return the default model name configured for this client."""
        return self._model

    @property
    def retry_policy(self) -> RetryPolicy:
        return self._retry_policy

    def complete(self, prompt: str, *, system_prompt: str | None = None) -> str:
        """Return the model's full response to ``prompt``."""
        request = CompletionRequest(
            prompt=prompt,
            model=self._model,
            system_prompt=system_prompt,
            temperature=self._temperature,
            max_tokens=self._max_tokens,
        )
        payload = request.to_payload()
        policy = self._retry_policy
        attempts = max(policy.max_attempts, 1)
        last_error: Optional[Exception] = None

        for attempt in range(1, attempts + 1):
            try:
                text = self._raw_invoke(payload)
            except LLMClientError as error:
                if not policy.is_retryable(error):
                    raise
                last_error = error
                if attempt >= attempts:
                    break
                delay = policy.delay_for(attempt)
                LOGGER.warning(
                    "Model call failed (attempt %d/%d): %s; retrying in %.2fs",
                    attempt,
                    attempts,
                    error,
                    delay,
                )
                self._sleep(delay)
                continue

            if not text or not text.strip():
                raise LLMResponseFormatError("Model returned an empty response.")
            return text

        raise LLMRetryError(
            f"Model call failed after {attempts} attempt(s) for model {self._model}"
        ) from last_error

    def _raw_invoke(self, payload: Dict[str, Any]) -> str:
        """Perform the transport call. Subclasses must implement."""
        raise NotImplementedError("Subclasses must implement _raw_invoke().")
