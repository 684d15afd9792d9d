"""
Base classes for agents.

This module implements:
- Agent: Abstract base class for the LLM-backed pipeline stages
- AgentContext: Runtime context with shared resources

Agent types implemented in separate modules:
- query_planner.py: QueryPlannerAgent (thesis expansion)
- fit_filter.py: FitFilterAgent (batched relevance scoring)
- analyst.py: AnalystAgent (deep analysis and merge)
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from scout.llm.base import LLMClient, LLMRequest, LLMResponse
from scout.logging import get_logger, log_context

if TYPE_CHECKING:
    from scout.config import Settings


@dataclass
class AgentContext:
    """Runtime context for agents.

    Contains shared resources that all agents need access to.
    """

    settings: Settings
    llm: LLMClient


class Agent(ABC):
    """Abstract base class for pipeline agents.

    Agents never touch the store; they return values to the orchestrator.
    """

    def __init__(self, context: AgentContext) -> None:
        """Initialize agent with context.

        Args:
            context: Runtime context with shared resources.
        """
        self.context = context
        self._logger = get_logger(f"agent.{self.name}")

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique name of this agent."""
        ...

    @property
    @abstractmethod
    def role(self) -> str:
        """Role description for this agent."""
        ...

    @abstractmethod
    async def run(self, thesis: str, **kwargs: Any) -> Any:
        """Execute the agent's main task.

        Args:
            thesis: The investment thesis being researched.
            **kwargs: Additional arguments specific to the agent type.

        Returns:
            Agent-specific output (varies by agent type).
        """
        ...

    @property
    def llm(self) -> LLMClient:
        """Get the LLM client."""
        return self.context.llm

    @property
    def settings(self) -> Settings:
        """Get settings."""
        return self.context.settings

    async def ask(
        self,
        system: str,
        prompt: str,
        model: str,
        max_tokens: int = 4000,
        thinking_budget: int = 0,
    ) -> LLMResponse:
        """Send one system + user exchange to the model.

        Args:
            system: System instruction.
            prompt: User prompt.
            model: Model identifier.
            max_tokens: Output token cap.
            thinking_budget: Extended thinking tokens; 0 for a plain completion.

        Returns:
            The model response.
        """
        request = LLMRequest(
            messages=[
                {"role": "system", "content": system},
                {"role": "user", "content": prompt},
            ],
            model=model,
            max_tokens=max_tokens,
        )
        with log_context(agent=self.name):
            if thinking_budget > 0:
                response = await self.llm.complete_with_thinking(request, budget_tokens=thinking_budget)
            else:
                response = await self.llm.complete(request)

        self.log_info(
            "Model call finished",
            model=response.model,
            input_tokens=response.input_tokens,
            output_tokens=response.output_tokens,
            latency_ms=response.latency_ms,
        )
        return response

    def log_info(self, message: str, **kwargs: Any) -> None:
        """Log info message with agent context."""
        with log_context(agent=self.name):
            self._logger.info(message, **kwargs)

    def log_warning(self, message: str, **kwargs: Any) -> None:
        """Log warning message with agent context."""
        with log_context(agent=self.name):
            self._logger.warning(message, **kwargs)

    def log_error(self, message: str, **kwargs: Any) -> None:
        """Log error message with agent context."""
        with log_context(agent=self.name):
            self._logger.error(message, **kwargs)
