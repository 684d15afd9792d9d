"""
Anthropic LLM client implementation.

Wraps AsyncAnthropic behind the LLMClient protocol, with extended
thinking support for the deep analysis stage.
"""

from __future__ import annotations

import time
from typing import Any

from anthropic import APIError, AsyncAnthropic, RateLimitError as AnthropicRateLimitError
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from scout.exceptions import LLMError
from scout.llm.base import (
    AuthenticationError,
    ContextLengthError,
    LLMRequest,
    LLMResponse,
    ModelNotFoundError,
    RateLimitError,
)
from scout.logging import get_logger

logger = get_logger(__name__)

# Models that support extended thinking
EXTENDED_THINKING_MODELS = {
    "claude-opus-4-5-20251101",
    "claude-sonnet-4-5-20250929",
    "claude-sonnet-4-20250514",
    "claude-opus-4-20250514",
}

MIN_THINKING_BUDGET = 1024


class AnthropicClient:
    """Anthropic LLM client using AsyncAnthropic."""

    def __init__(self, api_key: str | None = None, client: AsyncAnthropic | None = None) -> None:
        """Initialize the Anthropic client.

        Args:
            api_key: Anthropic API key.
            client: Pre-built SDK client (tests).
        """
        self._client = client or AsyncAnthropic(api_key=api_key)
        self._provider = "anthropic"

    @property
    def provider(self) -> str:
        """Name of this provider."""
        return self._provider

    def _convert_messages(
        self, messages: list[dict[str, Any]]
    ) -> tuple[str | None, list[dict[str, Any]]]:
        """Split OpenAI-style messages into Anthropic's system + messages."""
        system_message: str | None = None
        converted: list[dict[str, Any]] = []

        for msg in messages:
            role = msg.get("role", "user")
            content = msg.get("content", "")

            if role == "system":
                system_message = f"{system_message}\n\n{content}" if system_message else content
            elif role == "assistant":
                converted.append({"role": "assistant", "content": content})
            else:
                converted.append({"role": "user", "content": content})

        return system_message, converted

    def _translate_error(self, e: Exception, model: str) -> LLMError:
        """Map SDK errors onto the scout LLM error types."""
        if isinstance(e, AnthropicRateLimitError):
            retry_after = None
            response = getattr(e, "response", None)
            if response is not None:
                header = response.headers.get("retry-after")
                if header:
                    retry_after = float(header)
            logger.warning("Anthropic rate limit hit", model=model, retry_after=retry_after)
            return RateLimitError(str(e), retry_after=retry_after)

        error_msg = str(e)
        lowered = error_msg.lower()

        if "authentication" in lowered or "api key" in lowered:
            return AuthenticationError(f"Anthropic authentication failed: {error_msg}")
        if "model" in lowered and "not found" in lowered:
            return ModelNotFoundError(f"Model not found: {model}")
        if "context" in lowered or "too long" in lowered:
            return ContextLengthError(f"Context length exceeded: {error_msg}")
        if "thinking" in lowered:
            return LLMError(f"Extended thinking error: {error_msg}", context={"model": model})

        return LLMError(f"Anthropic API error: {error_msg}", context={"model": model})

    @staticmethod
    def _text_and_thinking(response: Any) -> tuple[str, str]:
        content = ""
        thinking = ""
        for block in response.content:
            if block.type == "text":
                content += block.text
            elif block.type == "thinking":
                thinking += block.thinking
        return content, thinking

    @retry(
        retry=retry_if_exception_type(RateLimitError),
        wait=wait_exponential(multiplier=1, min=1, max=60),
        stop=stop_after_attempt(5),
        reraise=True,
    )
    async def complete(self, request: LLMRequest) -> LLMResponse:
        """Send a completion request.

        Args:
            request: The LLM request.

        Returns:
            LLM response.

        Raises:
            LLMError: If the request fails.
        """
        start_time = time.monotonic()
        system_message, messages = self._convert_messages(request.messages)

        params: dict[str, Any] = {
            "model": request.model,
            "messages": messages,
            "max_tokens": request.max_tokens or 4096,
        }
        if system_message:
            params["system"] = system_message
        if request.temperature is not None:
            params["temperature"] = request.temperature
        if request.stop:
            params["stop_sequences"] = request.stop

        try:
            response = await self._client.messages.create(**params)
        except (AnthropicRateLimitError, APIError) as e:
            raise self._translate_error(e, request.model) from e

        content, _ = self._text_and_thinking(response)

        return LLMResponse(
            content=content,
            model=response.model,
            provider=self._provider,
            input_tokens=response.usage.input_tokens,
            output_tokens=response.usage.output_tokens,
            finish_reason=response.stop_reason or "stop",
            latency_ms=int((time.monotonic() - start_time) * 1000),
        )

    @retry(
        retry=retry_if_exception_type(RateLimitError),
        wait=wait_exponential(multiplier=1, min=1, max=60),
        stop=stop_after_attempt(5),
        reraise=True,
    )
    async def complete_with_thinking(
        self,
        request: LLMRequest,
        budget_tokens: int = 4000,
    ) -> LLMResponse:
        """Send a completion request with extended thinking.

        The answer text is returned as content; thinking text is kept in
        metadata and never parsed.

        Args:
            request: The LLM request.
            budget_tokens: Maximum tokens for thinking blocks (min 1024).

        Returns:
            LLM response with thinking in metadata.

        Raises:
            LLMError: If the request fails.
        """
        start_time = time.monotonic()

        if request.model not in EXTENDED_THINKING_MODELS:
            logger.warning("Model may not support extended thinking", model=request.model)

        budget_tokens = max(budget_tokens, MIN_THINKING_BUDGET)
        system_message, messages = self._convert_messages(request.messages)

        # max_tokens must exceed the thinking budget
        max_tokens = request.max_tokens or 16000
        if max_tokens <= budget_tokens:
            max_tokens = budget_tokens + 4096

        params: dict[str, Any] = {
            "model": request.model,
            "messages": messages,
            "max_tokens": max_tokens,
            "thinking": {"type": "enabled", "budget_tokens": budget_tokens},
        }
        if system_message:
            params["system"] = system_message
        if request.stop:
            params["stop_sequences"] = request.stop

        try:
            response = await self._client.messages.create(**params)
        except (AnthropicRateLimitError, APIError) as e:
            raise self._translate_error(e, request.model) from e

        content, thinking = self._text_and_thinking(response)

        return LLMResponse(
            content=content,
            model=response.model,
            provider=self._provider,
            input_tokens=response.usage.input_tokens,
            output_tokens=response.usage.output_tokens,
            finish_reason=response.stop_reason or "stop",
            latency_ms=int((time.monotonic() - start_time) * 1000),
            metadata={"thinking": thinking, "budget_tokens": budget_tokens},
        )

    async def close(self) -> None:
        """Close the client."""
        await self._client.close()
