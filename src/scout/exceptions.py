"""
Custom exception hierarchy for thesis scout.

All exceptions inherit from ScoutError, which provides optional context
for structured error handling and logging.
"""

from __future__ import annotations

from typing import Any


class ScoutError(Exception):
    """Base exception for all thesis scout errors.

    Attributes:
        message: Human-readable error message.
        context: Optional structured context for logging/debugging.
    """

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        if self.context:
            ctx_str = ", ".join(f"{k}={v!r}" for k, v in self.context.items())
            return f"{self.message} ({ctx_str})"
        return self.message

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, context={self.context!r})"


class ConfigurationError(ScoutError):
    """Raised when configuration is invalid or missing.

    Examples:
        - Running a thesis without ANTHROPIC_API_KEY
    """

    pass


class DataFetchError(ScoutError):
    """Raised inside provider clients when an HTTP call fails.

    Never escapes a source adapter; adapters convert it to an empty result.

    Context should include:
        - source: The provider (e.g., "crunchbase", "brave")
        - status_code: HTTP status code if applicable
    """

    pass


class LLMError(ScoutError):
    """Raised when a language model call fails.

    Context should include:
        - model: The model being used
        - error_type: rate_limit, authentication, context_length, ...
    """

    pass


class StructuredOutputError(ScoutError):
    """Raised when a stage cannot recover from unparseable model output.

    Context should include:
        - stage: The pipeline stage (planning, analyzing)
        - reason: Why parsing failed
    """

    pass


class ValidationError(ScoutError):
    """Raised when input validation fails.

    Context should include:
        - field: The field that failed validation
        - value: The invalid value
    """

    pass


class StoreError(ScoutError):
    """Raised when the persistence store is misused or a lookup fails.

    Context should include:
        - thesis_id: The thesis involved
    """

    pass

