"""
LLM client package.

Provides the LLMClient protocol, the Anthropic implementation and
structured-output parsing for model responses.
"""

from scout.llm.anthropic_client import AnthropicClient
from scout.llm.base import (
    AuthenticationError,
    ContextLengthError,
    LLMClient,
    LLMRequest,
    LLMResponse,
    RateLimitError,
)
from scout.llm.parsing import ParseFailure, ParseOk, extract_json_object, parse_structured

__all__ = [
    "AnthropicClient",
    "AuthenticationError",
    "ContextLengthError",
    "LLMClient",
    "LLMRequest",
    "LLMResponse",
    "ParseFailure",
    "ParseOk",
    "RateLimitError",
    "extract_json_object",
    "parse_structured",
]
