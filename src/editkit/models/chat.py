"""OpenAI-compatible chat completions client."""

from __future__ import annotations

import json
import os
from typing import Any, Callable, Dict, Optional

from .llm_client import LLMClient, LLMResponseFormatError, LLMTransportError, RetryPolicy

__all__ = ["ChatCompletionsClient"]


Transport = Callable[[Dict[str, Any]], str]

DEFAULT_BASE_URL = "https://api.openai.com/v1/chat/completions"


class ChatCompletionsClient(LLMClient):
    """Thin adapter around a ``/chat/completions`` endpoint."""

    def __init__(
        self,
        *,
        api_key: Optional[str] = None,
        base_url: str = DEFAULT_BASE_URL,
        model: str = "gpt-4o",
        transport: Optional[Transport] = None,
        timeout: float = 120.0,
        retry_policy: RetryPolicy | None = None,
        temperature: float = 0.1,
        max_tokens: int = 4000,
    ) -> None:
        super().__init__(
            model=model,
            retry_policy=retry_policy,
            temperature=temperature,
            max_tokens=max_tokens,
        )
        self._api_key = api_key or os.getenv("OPENAI_API_KEY")
        self._base_url = base_url
        timeout_override = os.getenv("EDITKIT_TIMEOUT")
        if timeout_override:
            try:
                parsed = float(timeout_override)
                if parsed > 0:
                    timeout = parsed
            except ValueError:
                pass
        self._timeout = timeout
        self._transport = transport or self._http_transport

        if transport is None and not self._api_key:
            raise ValueError("An API key is required when using the default transport.")

    def _raw_invoke(self, payload: Dict[str, Any]) -> str:
        """Send the request over the configured transport."""
        try:
            raw_response = self._transport(payload)
        except LLMTransportError:
            raise
        except Exception as error:
            raise LLMTransportError(f"Transport rejected the request: {error}") from error
        return self._extract_content(raw_response)

    def _http_transport(self, payload: Dict[str, Any]) -> str:
        """Default HTTP transport for OpenAI-compatible servers."""
        import urllib.error
        import urllib.request

        data = json.dumps(payload).encode("utf-8")
        request = urllib.request.Request(
            self._base_url,
            data=data,
            headers={
                "Content-Type": "application/json",
                "Authorization": f"Bearer {self._api_key}",
            },
            method="POST",
        )

        try:
            with urllib.request.urlopen(request, timeout=self._timeout) as response:
                raw = response.read()
                status = getattr(response, "status", 200)
        except TimeoutError as error:  # pragma: no cover - network-dependent
            raise LLMTransportError("Model response timed out.") from error
        except urllib.error.HTTPError as error:  # pragma: no cover - network-dependent
            message = error.read().decode("utf-8", errors="ignore")
            raise LLMTransportError(f"HTTP {error.code}: {message[:2000]}", status=error.code) from error
        except urllib.error.URLError as error:  # pragma: no cover - network-dependent
            raise LLMTransportError(f"Failed to reach model endpoint: {error.reason}") from error

        if status >= 400:
            raise LLMTransportError(f"Unexpected HTTP status {status}", status=status)

        return raw.decode("utf-8")

    @staticmethod
    def _extract_content(raw_response: str) -> str:
        """Pull ``choices[0].message.content`` out of a completions payload."""
        try:
            data = json.loads(raw_response)
        except json.JSONDecodeError as error:
            raise LLMResponseFormatError(f"Model returned invalid JSON: {raw_response[:200]}") from error

        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as error:
            raise LLMResponseFormatError(
                f"Completions payload missing message content: {raw_response[:200]}"
            ) from error
        if not isinstance(content, str):
            raise LLMResponseFormatError("Completions payload content is not text.")
        return content
